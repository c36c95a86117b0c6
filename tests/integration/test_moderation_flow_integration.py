"""
End-to-end flow: submit, review, approve, view.
"""

import threading

from fastapi.testclient import TestClient

from bikecolors.config import AppSettings
from bikecolors.errors import DecodeError
from bikecolors.services.intake import THANK_YOU_MESSAGE
from bikecolors.services.moderation import ModerationService
from bikecolors.services.storage import MemoryBlobStore
from bikecolors.web.app import create_app


class TestModerationFlow:
    """Full submission lifecycle over HTTP against the in-memory store."""

    def test_submit_review_approve_view(self, client, memory_store, jpeg_data):
        response = client.post(
            "/upload",
            data={"Copyright": "Jane Doe", "Bike": "Fr8", "Colors": "green, cream", "SRC": "https://example.com"},
            files={"img": ("bike.jpg", jpeg_data, "image/jpeg")},
        )
        assert response.status_code == 200
        assert response.text == THANK_YOU_MESSAGE

        # Not public until approved
        assert client.get("/").text.count("/images/") == 0
        pending = [key for key in memory_store.keys() if key.endswith(".jpg")]
        assert len(pending) == 1
        name = pending[0].removeprefix("uploaded/")
        assert client.get(f"/images/{name}").status_code == 404

        queue = client.get("/_admin/")
        assert queue.status_code == 200
        assert name in queue.text
        assert "Fr8" in queue.text

        response = client.post("/_admin/", data={"image_file": name}, follow_redirects=False)
        assert response.status_code == 302

        assert name not in client.get("/_admin/").text
        assert f"/images/{name}" in client.get("/").text
        image = client.get(f"/images/{name}")
        assert image.status_code == 200
        assert image.content == jpeg_data
        assert image.headers["cache-control"] == "public, max-age=21600"

    def test_rejected_submission_never_published(self, client, memory_store, png_data):
        client.post(
            "/upload",
            data={"Copyright": "Jane", "Colors": "red"},
            files={"img": ("bike.png", png_data, "image/png")},
        )
        name = next(key for key in memory_store.keys() if key.endswith(".png")).removeprefix("uploaded/")

        client.post("/_admin/", data={"image_file": name, "action": "reject"})

        assert memory_store.keys() == []
        assert client.get(f"/images/{name}").status_code == 404

    def test_public_only_server_cannot_moderate(self, memory_store, jpeg_data):
        client = TestClient(create_app(AppSettings(), store=memory_store))

        response = client.post(
            "/upload",
            data={"Copyright": "Jane", "Colors": "red"},
            files={"img": ("bike.jpg", jpeg_data, "image/jpeg")},
        )

        assert response.status_code == 200
        assert client.get("/_admin/").status_code == 404


class TestConcurrentModeration:
    """Approvals racing with queue listings."""

    def test_listing_during_approvals_never_fails(self, jpeg_data):
        store = MemoryBlobStore()
        client = TestClient(create_app(AppSettings(enable_admin=True), store=store))
        for _ in range(20):
            client.post(
                "/upload",
                data={"Copyright": "Jane", "Colors": "red"},
                files={"img": ("bike.jpg", jpeg_data, "image/jpeg")},
            )
        names = [key.removeprefix("uploaded/") for key in store.keys() if key.endswith(".jpg")]
        moderation = ModerationService(store)
        errors: list[Exception] = []

        def approve_all() -> None:
            for name in names:
                moderation.approve(name)

        def list_repeatedly() -> None:
            try:
                for _ in range(20):
                    for item in moderation.list_pending():
                        assert item.photo.copyright == "Jane"
            except (DecodeError, AssertionError) as e:
                errors.append(e)

        threads = [threading.Thread(target=approve_all), threading.Thread(target=list_repeatedly)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert sorted(store.keys()) == sorted(f"images/{name}" for name in names)
        assert list(moderation.list_pending()) == []
