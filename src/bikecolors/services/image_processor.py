"""Image type detection for uploaded photos."""

import mimetypes
from pathlib import PurePosixPath
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError

from ..logging_config import get_logger

logger = get_logger(__name__)


class ImageProcessor:
    """Decides the stored extension of an uploaded image."""

    # Pillow format name -> stored extension
    SNIFFED_EXTENSIONS = {
        "JPEG": "jpg",
        "PNG": "png",
    }

    # Declared MIME type -> stored extension
    DECLARED_EXTENSIONS = {
        "image/jpeg": "jpg",
        "image/png": "png",
    }

    # Extensions that may be streamed back to browsers
    SERVABLE_EXTENSIONS = {".jpg", ".png"}

    def sniff_format(self, stream: BinaryIO) -> str | None:
        """
        Identify the image format from its leading bytes.

        The stream position is restored afterwards.

        Args:
            stream: Seekable binary stream of the upload

        Returns:
            str | None: Pillow format name (e.g. "JPEG") or None if unidentified
        """
        position = stream.tell()
        try:
            # Image.open only parses the header; pixel data is not decoded
            with Image.open(stream) as image:
                return image.format
        except (UnidentifiedImageError, OSError):
            return None
        finally:
            stream.seek(position)

    def detect_extension(self, stream: BinaryIO, declared_type: str | None) -> str:
        """
        Choose the stored extension for an upload.

        The sniffed format wins; the declared Content-Type is only used when
        the bytes are not a recognised JPEG or PNG.

        Args:
            stream: Seekable binary stream of the upload
            declared_type: Content-Type sent by the browser for the file part

        Returns:
            str: "jpg", "png", or "" when the type is not recognised
        """
        sniffed = self.sniff_format(stream)
        declared = (declared_type or "").split(";")[0].strip().lower()

        if sniffed in self.SNIFFED_EXTENSIONS:
            extension = self.SNIFFED_EXTENSIONS[sniffed]
            if declared and self.DECLARED_EXTENSIONS.get(declared) != extension:
                logger.info("declared_type_mismatch", declared_type=declared, sniffed_format=sniffed)
            return extension

        extension = self.DECLARED_EXTENSIONS.get(declared, "")
        if not extension:
            logger.warning("unrecognized_image_type", declared_type=declared, sniffed_format=sniffed)
        return extension

    def is_servable(self, name: str) -> bool:
        return PurePosixPath(name).suffix in self.SERVABLE_EXTENSIONS

    def content_type_for(self, name: str) -> str | None:
        content_type, _ = mimetypes.guess_type(name)
        return content_type
