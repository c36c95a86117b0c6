"""
Services module for bikecolors.

This module contains the service classes that handle the photo workflow:
- BlobStore: Google Cloud Storage (or in-memory) object access
- ImageProcessor: Image type detection
- IntakeService: Anonymous submissions into the pending area
- ModerationService: Pending queue, approval and rejection
- GalleryService: Published gallery listing and image streaming
"""

from .gallery import GalleryService
from .image_processor import ImageProcessor
from .intake import THANK_YOU_MESSAGE, IntakeService, UploadedImage
from .moderation import ModerationService, PendingPhoto
from .storage import BlobStore, BlobStream, GCSBlobStore, MemoryBlobStore, create_blob_store

__all__ = [
    "BlobStore",
    "BlobStream",
    "GCSBlobStore",
    "MemoryBlobStore",
    "create_blob_store",
    "ImageProcessor",
    "IntakeService",
    "UploadedImage",
    "THANK_YOU_MESSAGE",
    "ModerationService",
    "PendingPhoto",
    "GalleryService",
]
