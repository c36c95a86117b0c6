"""
Pytest configuration and fixtures for bikecolors tests.
"""

import io
from datetime import UTC, datetime
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from bikecolors.config import AppSettings
from bikecolors.services.storage import MemoryBlobStore
from bikecolors.web.app import create_app


def make_image(format_type: str = "JPEG", size: tuple[int, int] = (8, 8)) -> bytes:
    """Create a small test image in memory."""
    image = Image.new("RGB", size, color="red")
    buffer = io.BytesIO()
    image.save(buffer, format=format_type)
    return buffer.getvalue()


@pytest.fixture
def jpeg_data() -> bytes:
    return make_image("JPEG")


@pytest.fixture
def png_data() -> bytes:
    return make_image("PNG")


@pytest.fixture
def memory_store() -> MemoryBlobStore:
    """Fresh in-memory object store."""
    return MemoryBlobStore()


@pytest.fixture
def spy_store(memory_store: MemoryBlobStore) -> Mock:
    """The in-memory store wrapped so calls can be counted."""
    return Mock(wraps=memory_store)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 17, 14, 32, 45, 123456, tzinfo=UTC)


@pytest.fixture
def settings() -> AppSettings:
    """Production-like settings with admin routes enabled."""
    return AppSettings(enable_admin=True, storage_backend="memory")


@pytest.fixture
def client(settings: AppSettings, memory_store: MemoryBlobStore) -> TestClient:
    """Test client bound to the in-memory store."""
    return TestClient(create_app(settings, store=memory_store))


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of the tests."""
    for key in (
        "PORT",
        "DEV_MODE",
        "LOG_REQUESTS",
        "ENABLE_ADMIN",
        "GCS_BUCKET",
        "STORAGE_BACKEND",
        "MAX_UPLOAD_SIZE",
        "PENDING_LIST_LIMIT",
        "SKIP_CORRUPT_PENDING",
    ):
        monkeypatch.delenv(key, raising=False)
