"""Object storage for pending and published bike photos.

Keys live in a single bucket:

    uploaded/{id}.{ext}   pending image
    uploaded/{id}.json    pending sidecar metadata
    images/{id}.{ext}     published image
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import PurePosixPath
from typing import BinaryIO

from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound

from ..config import AppSettings
from ..errors import NotFoundError, StorageError
from ..logging_config import get_logger, log_performance

logger = get_logger(__name__)

PENDING_PREFIX = "uploaded/"
PUBLISHED_PREFIX = "images/"
SIDECAR_SUFFIX = ".json"

READ_CHUNK_SIZE = 64 * 1024
# BlobReader fetch size; must stay small so images are not buffered whole
GCS_FETCH_SIZE = 256 * 1024


def safe_object_name(name: str) -> bool:
    """
    Check that a name is a single plain object name.

    Rejects empty names, path separators, dot segments, hidden names and
    control characters so a request can never address a key outside the
    intended prefix.
    """
    if not name or name != name.strip():
        return False
    if "/" in name or "\\" in name or ".." in name or name.startswith("."):
        return False
    if any(ord(c) < 32 or ord(c) == 127 for c in name):
        return False
    return PurePosixPath(name).name == name


def pending_key(name: str) -> str:
    return PENDING_PREFIX + name


def published_key(name: str) -> str:
    return PUBLISHED_PREFIX + name


def sidecar_key(stem: str) -> str:
    return PENDING_PREFIX + stem + SIDECAR_SUFFIX


class BlobStream:
    """Iterable of byte chunks for one stored object."""

    def __init__(self, key: str, first_chunk: bytes, chunks: Iterator[bytes], close=None):
        self.key = key
        self._first_chunk = first_chunk
        self._chunks = chunks
        self._close = close

    def __iter__(self) -> Iterator[bytes]:
        try:
            if self._first_chunk:
                yield self._first_chunk
            yield from self._chunks
        finally:
            self.close()

    def read(self) -> bytes:
        return b"".join(self)

    def close(self) -> None:
        if self._close is not None:
            self._close()
            self._close = None


class BlobStore(ABC):
    """Operations the application needs from the object store."""

    @abstractmethod
    def open_read(self, key: str) -> BlobStream:
        """Open an object for streaming; raises NotFoundError before any byte is returned."""

    def read_bytes(self, key: str) -> bytes:
        return self.open_read(key).read()

    @abstractmethod
    def write(self, key: str, source: BinaryIO, content_type: str | None = None) -> None:
        """Stream a file-like object to a new key."""

    @abstractmethod
    def write_bytes(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Store a small object at a new key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete an object; deleting an absent key is a no-op."""

    @abstractmethod
    def copy(self, src_key: str, dst_key: str) -> None:
        """Server-side copy; raises NotFoundError if the source is absent."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check whether an object exists."""

    @abstractmethod
    def list_keys(self, prefix: str, limit: int | None = None) -> Iterator[str]:
        """Lazily yield keys under a prefix in lexical order."""

    def close(self) -> None:
        """Release client resources."""


class GCSBlobStore(BlobStore):
    """Google Cloud Storage implementation of BlobStore."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str | None = None,
        timeout: float = 60.0,
        client: storage.Client | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            bucket_name: GCS bucket holding pending and published objects
            project_id: GCP project ID (optional, ambient credentials otherwise)
            timeout: Deadline in seconds applied to every storage call
            client: Pre-built client, mainly for tests
        """
        if not bucket_name:
            raise StorageError("GCS bucket name is required")

        self.bucket_name = bucket_name
        self.project_id = project_id
        self.timeout = timeout

        try:
            self.client = client or storage.Client(project=project_id)
            self.bucket = self.client.bucket(bucket_name)
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}", original_exception=e) from e

        logger.info("storage_initialized", backend="gcs", bucket=bucket_name, project_id=project_id, timeout=timeout)

    def open_read(self, key: str) -> BlobStream:
        blob = self.bucket.blob(key)
        try:
            reader = blob.open("rb", chunk_size=GCS_FETCH_SIZE, timeout=self.timeout)
            first_chunk = reader.read(READ_CHUNK_SIZE)
        except NotFound as e:
            raise NotFoundError(key, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to read '{key}': {e}", details={"key": key}, original_exception=e) from e

        def chunks() -> Iterator[bytes]:
            while True:
                try:
                    chunk = reader.read(READ_CHUNK_SIZE)
                except GoogleCloudError as e:
                    raise StorageError(
                        f"Failed while streaming '{key}': {e}", details={"key": key}, original_exception=e
                    ) from e
                if not chunk:
                    return
                yield chunk

        logger.debug("object_opened", key=key)
        return BlobStream(key, first_chunk, chunks(), close=reader.close)

    def write(self, key: str, source: BinaryIO, content_type: str | None = None) -> None:
        blob = self.bucket.blob(key)
        start = time.perf_counter()
        try:
            blob.upload_from_file(
                source,
                content_type=content_type,
                rewind=True,
                if_generation_match=0,
                timeout=self.timeout,
            )
        except GoogleCloudError as e:
            raise StorageError(f"Failed to write '{key}': {e}", details={"key": key}, original_exception=e) from e
        log_performance("storage_write", time.perf_counter() - start, key=key, bucket=self.bucket_name)

    def write_bytes(self, key: str, data: bytes, content_type: str | None = None) -> None:
        blob = self.bucket.blob(key)
        try:
            blob.upload_from_string(
                data,
                content_type=content_type or "application/octet-stream",
                if_generation_match=0,
                timeout=self.timeout,
            )
        except GoogleCloudError as e:
            raise StorageError(f"Failed to write '{key}': {e}", details={"key": key}, original_exception=e) from e
        logger.debug("object_written", key=key, size=len(data))

    def delete(self, key: str) -> None:
        try:
            self.bucket.blob(key).delete(timeout=self.timeout)
        except NotFound:
            logger.debug("delete_missing_object", key=key)
            return
        except GoogleCloudError as e:
            raise StorageError(f"Failed to delete '{key}': {e}", details={"key": key}, original_exception=e) from e
        logger.debug("object_deleted", key=key)

    def copy(self, src_key: str, dst_key: str) -> None:
        try:
            self.bucket.copy_blob(self.bucket.blob(src_key), self.bucket, dst_key, timeout=self.timeout)
        except NotFound as e:
            raise NotFoundError(src_key, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to copy '{src_key}' to '{dst_key}': {e}",
                details={"src": src_key, "dst": dst_key},
                original_exception=e,
            ) from e
        logger.debug("object_copied", src=src_key, dst=dst_key)

    def exists(self, key: str) -> bool:
        try:
            exists: bool = self.bucket.blob(key).exists(timeout=self.timeout)
        except GoogleCloudError as e:
            raise StorageError(f"Failed to check '{key}': {e}", details={"key": key}, original_exception=e) from e
        return exists

    def list_keys(self, prefix: str, limit: int | None = None) -> Iterator[str]:
        try:
            for blob in self.client.list_blobs(
                self.bucket_name, prefix=prefix, max_results=limit, timeout=self.timeout
            ):
                yield blob.name
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to list '{prefix}': {e}", details={"prefix": prefix}, original_exception=e
            ) from e

    def close(self) -> None:
        self.client.close()


class MemoryBlobStore(BlobStore):
    """In-process store with the same semantics as GCSBlobStore."""

    def __init__(self) -> None:
        self._objects: dict[str, tuple[bytes, str | None]] = {}
        self._lock = threading.Lock()
        logger.info("storage_initialized", backend="memory")

    def open_read(self, key: str) -> BlobStream:
        with self._lock:
            if key not in self._objects:
                raise NotFoundError(key)
            data = self._objects[key][0]
        chunks = (data[i : i + READ_CHUNK_SIZE] for i in range(READ_CHUNK_SIZE, len(data), READ_CHUNK_SIZE))
        return BlobStream(key, data[:READ_CHUNK_SIZE], chunks)

    def write(self, key: str, source: BinaryIO, content_type: str | None = None) -> None:
        self.write_bytes(key, source.read(), content_type)

    def write_bytes(self, key: str, data: bytes, content_type: str | None = None) -> None:
        with self._lock:
            if key in self._objects:
                raise StorageError(f"Failed to write '{key}': object already exists", details={"key": key})
            self._objects[key] = (bytes(data), content_type)

    def delete(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)

    def copy(self, src_key: str, dst_key: str) -> None:
        with self._lock:
            if src_key not in self._objects:
                raise NotFoundError(src_key)
            self._objects[dst_key] = self._objects[src_key]

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def list_keys(self, prefix: str, limit: int | None = None) -> Iterator[str]:
        with self._lock:
            keys = sorted(k for k in self._objects if k.startswith(prefix))
        if limit is not None:
            keys = keys[:limit]
        yield from keys

    def content_type(self, key: str) -> str | None:
        with self._lock:
            return self._objects[key][1]

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)


def create_blob_store(settings: AppSettings) -> BlobStore:
    """
    Build the configured store once at startup.

    Args:
        settings: Resolved application settings

    Returns:
        BlobStore: Store shared by all request handlers
    """
    if settings.storage_backend == "memory":
        return MemoryBlobStore()
    return GCSBlobStore(
        bucket_name=settings.bucket_name,
        project_id=settings.project_id,
        timeout=settings.storage_timeout,
    )
