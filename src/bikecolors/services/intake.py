"""Intake of anonymous photo submissions into the pending area."""

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, BinaryIO

from ..errors import MissingFileError, RequestTooLargeError
from ..logging_config import get_logger, log_context
from ..models.photo import BikePhoto
from .image_processor import ImageProcessor
from .storage import BlobStore, pending_key, sidecar_key

logger = get_logger(__name__)

THANK_YOU_MESSAGE = "Thank You.\n\nYour upload will be reviewed in 1-2 days."


@dataclass
class UploadedImage:
    """The file part of an upload form."""

    stream: BinaryIO
    content_type: str | None = None
    filename: str | None = None
    size: int | None = None


class IntakeService:
    """
    Stores a validated submission as two sibling pending objects.

    The image is written first and the sidecar second. If the sidecar write
    fails the image stays behind without metadata; nothing is rolled back.
    """

    def __init__(
        self,
        store: BlobStore,
        image_processor: ImageProcessor | None = None,
        max_upload_size: int = 15 * 1024 * 1024,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.image_processor = image_processor or ImageProcessor()
        self.max_upload_size = max_upload_size
        self.clock = clock or (lambda: datetime.now(UTC))
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def submit(self, fields: Mapping[str, Any], upload: UploadedImage | None) -> str:
        """
        Accept one submission.

        Args:
            fields: Submitted form values; unrecognised names are ignored
            upload: The uploaded image, or None when the form had no file

        Returns:
            str: Acknowledgement shown to the submitter

        Raises:
            RequestTooLargeError: If the file exceeds the size bound
            ValidationError: If a required field is missing or the link is invalid
            MissingFileError: If no image was uploaded
            StorageError: If either write fails
        """
        if upload is not None and upload.size is not None and upload.size > self.max_upload_size:
            raise RequestTooLargeError(upload.size, self.max_upload_size)

        photo = BikePhoto.from_form(fields)
        photo.validate()

        if upload is None:
            raise MissingFileError()

        identifier = self.id_factory()
        extension = self.image_processor.detect_extension(upload.stream, upload.content_type)
        filename = f"{identifier}.{extension}" if extension else identifier

        with log_context(submission_id=identifier, image=filename) as log:
            log.info("uploading_image", key=pending_key(filename), declared_type=upload.content_type)
            self.store.write(
                pending_key(filename),
                upload.stream,
                content_type=self.image_processor.content_type_for(filename) or upload.content_type,
            )

            photo = photo.stamped(filename, self.clock())
            self.store.write_bytes(sidecar_key(identifier), photo.to_json(), content_type="application/json")

            log.info("submission_stored", colors=photo.color_tokens, has_source=bool(photo.src))

        return THANK_YOU_MESSAGE
