"""Moderation queue: listing, approving and rejecting pending submissions."""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import PurePosixPath

from ..errors import DecodeError, NotFoundError, ValidationError
from ..logging_config import get_logger, log_admin_action
from ..models.photo import BikePhoto
from .storage import (
    PENDING_PREFIX,
    SIDECAR_SUFFIX,
    BlobStore,
    pending_key,
    published_key,
    safe_object_name,
    sidecar_key,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class PendingPhoto:
    """A sidecar key and its decoded record."""

    key: str
    photo: BikePhoto


class ModerationService:
    """
    Operator actions over the pending area.

    Approval is copy, delete image, delete sidecar. The three calls are not
    atomic: a failure part way leaves earlier steps in place, and running the
    approval again completes it.
    """

    def __init__(self, store: BlobStore, pending_limit: int = 50, skip_corrupt: bool = False) -> None:
        self.store = store
        self.pending_limit = pending_limit
        self.skip_corrupt = skip_corrupt

    def list_pending(self, limit: int | None = None) -> Iterator[PendingPhoto]:
        """
        Lazily yield pending submissions.

        At most `limit` records are produced; larger queues are truncated.
        A sidecar that fails to decode aborts the listing with DecodeError
        unless skip_corrupt is set, in which case it is skipped.

        Args:
            limit: Maximum number of records (defaults to pending_limit)

        Yields:
            PendingPhoto: One pending submission
        """
        limit = self.pending_limit if limit is None else limit
        produced = 0
        if limit <= 0:
            return

        for key in self.store.list_keys(PENDING_PREFIX):
            if not key.endswith(SIDECAR_SUFFIX):
                continue
            try:
                photo = BikePhoto.from_json(self.store.read_bytes(key), key=key)
            except DecodeError:
                if not self.skip_corrupt:
                    raise
                logger.warning("skipping_corrupt_sidecar", key=key)
                continue
            except NotFoundError:
                # Approved or rejected between listing and reading
                logger.debug("pending_sidecar_vanished", key=key)
                continue

            yield PendingPhoto(key=key, photo=photo)
            produced += 1
            if produced >= limit:
                logger.debug("pending_listing_truncated", limit=limit)
                return

    def approve(self, image_filename: str) -> None:
        """
        Publish a pending image and discard its pending objects.

        Args:
            image_filename: Stored filename of the pending image, e.g. "<id>.jpg"

        Raises:
            ValidationError: If the filename is not a plain object name
            NotFoundError: If neither a pending nor a published copy exists
            StorageError: If any storage call fails
        """
        self._check_filename(image_filename)
        src = pending_key(image_filename)
        dst = published_key(image_filename)

        try:
            self.store.copy(src, dst)
        except NotFoundError:
            if not self.store.exists(dst):
                raise
            logger.info("approval_already_published", image=image_filename)

        self.store.delete(src)
        self.store.delete(sidecar_key(PurePosixPath(image_filename).stem))

        log_admin_action("approve", image=image_filename, published_key=dst)

    def reject(self, image_filename: str) -> None:
        """
        Discard a pending submission without publishing it.

        Raises:
            ValidationError: If the filename is not a plain object name
            StorageError: If a delete fails
        """
        self._check_filename(image_filename)
        self.store.delete(pending_key(image_filename))
        self.store.delete(sidecar_key(PurePosixPath(image_filename).stem))

        log_admin_action("reject", image=image_filename)

    def _check_filename(self, image_filename: str) -> None:
        if not safe_object_name(image_filename or ""):
            raise ValidationError("invalid image filename", code="invalid_image_filename")
        if image_filename.endswith(SIDECAR_SUFFIX):
            raise ValidationError("invalid image filename", code="invalid_image_filename")
