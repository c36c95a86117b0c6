"""Read side of the bucket: published gallery and image proxying."""

from ..errors import NotFoundError
from ..logging_config import get_logger
from .image_processor import ImageProcessor
from .storage import PENDING_PREFIX, PUBLISHED_PREFIX, BlobStore, BlobStream, safe_object_name

logger = get_logger(__name__)


class GalleryService:
    """Lists published images and opens stored images for streaming."""

    def __init__(
        self,
        store: BlobStore,
        image_processor: ImageProcessor | None = None,
        gallery_limit: int = 500,
    ) -> None:
        self.store = store
        self.image_processor = image_processor or ImageProcessor()
        self.gallery_limit = gallery_limit

    def list_published(self, limit: int | None = None) -> list[str]:
        """
        Names of published images in the order the store lists them.

        Args:
            limit: Maximum number of names (defaults to gallery_limit)

        Returns:
            list[str]: Image names relative to the published prefix
        """
        limit = self.gallery_limit if limit is None else limit
        names: list[str] = []
        for key in self.store.list_keys(PUBLISHED_PREFIX):
            name = key[len(PUBLISHED_PREFIX) :]
            if not self.is_servable_name(name):
                continue
            names.append(name)
            if len(names) >= limit:
                break
        return names

    def open_image(self, prefix: str, name: str) -> tuple[BlobStream, str | None]:
        """
        Open a stored image for streaming.

        Names that are not plain .jpg/.png object names are rejected before
        the store is touched.

        Args:
            prefix: PUBLISHED_PREFIX or PENDING_PREFIX
            name: Requested image name

        Returns:
            tuple: (stream of byte chunks, Content-Type or None)

        Raises:
            NotFoundError: If the name is not servable or the object is absent
        """
        if prefix not in (PUBLISHED_PREFIX, PENDING_PREFIX):
            raise ValueError(f"Unknown image prefix: {prefix}")
        if not self.is_servable_name(name):
            raise NotFoundError(prefix + name)

        stream = self.store.open_read(prefix + name)
        return stream, self.image_processor.content_type_for(name)

    def is_servable_name(self, name: str) -> bool:
        """Plain object name with a .jpg or .png extension."""
        return self.image_processor.is_servable(name) and safe_object_name(name)
