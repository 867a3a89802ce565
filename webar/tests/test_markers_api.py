import uuid
from unittest import mock

import pytest

from arcms.models import Marker
from tests.conftest import make_png, make_video

pytestmark = pytest.mark.django_db


def upload(client, **overrides):
    data = {"title": "Ad1", "markerImage": make_png(), "videoFile": make_video()}
    data.update(overrides)
    return client.post("/api/markers", {k: v for k, v in data.items() if v is not None})


class TestMarkerLifecycle:
    def test_create_list_delete(self, admin_client, media_root):
        response = upload(admin_client)
        assert response.status_code == 201
        created = response.json()
        assert created["title"] == "Ad1"
        assert created["markerImageUrl"].startswith("http://testserver/media/marker-images/marker-")
        assert created["videoUrl"].startswith("http://testserver/media/marker-videos/video-")

        marker = Marker.objects.get(pk=created["id"])
        image_file = media_root / marker.marker_image.name
        video_file = media_root / marker.video.name
        assert image_file.exists()
        assert video_file.exists()

        listing = admin_client.get("/api/markers").json()
        assert [m["id"] for m in listing] == [created["id"]]
        assert listing[0]["targetIndex"] == 0

        response = admin_client.delete(f"/api/markers/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "id": created["id"]}

        assert admin_client.get("/api/markers").json() == []
        assert not image_file.exists()
        assert not video_file.exists()

    def test_list_is_public_and_oldest_first(self, client, marker_factory):
        first = marker_factory(title="First")
        second = marker_factory(title="Second")

        response = client.get("/api/markers")
        assert response.status_code == 200
        listing = response.json()
        assert [m["id"] for m in listing] == [str(first.id), str(second.id)]
        assert [m["targetIndex"] for m in listing] == [0, 1]

    def test_create_with_external_video_url(self, admin_client, media_root):
        response = upload(admin_client, videoFile=None, videoUrl="https://cdn.example.com/ad.mp4")
        assert response.status_code == 201
        assert response.json()["videoUrl"] == "https://cdn.example.com/ad.mp4"

        marker = Marker.objects.get()
        assert marker.video_path == "https://cdn.example.com/ad.mp4"
        assert not (media_root / "marker-videos").exists()

    def test_plane_size_is_per_marker(self, admin_client):
        response = upload(admin_client, planeWidth="1.5", planeHeight="0.75")
        assert response.status_code == 201
        assert response.json()["planeWidth"] == 1.5
        assert response.json()["planeHeight"] == 0.75

        default = upload(admin_client, title="Ad2").json()
        assert default["planeWidth"] == 1.0
        assert default["planeHeight"] == 0.552


class TestMarkerValidation:
    def test_missing_fields(self, admin_client):
        response = admin_client.post("/api/markers", {"title": "Ad1"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Missing required fields"
        assert "markerImage" in body["fields"]
        assert "videoFile" in body["fields"]
        assert Marker.objects.count() == 0

    def test_short_title_is_rejected(self, admin_client):
        response = upload(admin_client, title="ab")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid marker upload"

    def test_image_must_be_an_image(self, admin_client):
        from django.core.files.uploadedfile import SimpleUploadedFile

        fake = SimpleUploadedFile("marker.png", b"not an image", content_type="image/png")
        response = upload(admin_client, markerImage=fake)
        assert response.status_code == 400
        assert "markerImage" in response.json()["fields"]

    @pytest.mark.parametrize("name, content_type", [
        ("payload.html", "video/mp4"),
        ("clip", "video/mp4"),
        ("clip.mp4", "text/html"),
    ])
    def test_video_extension_and_type_must_both_be_allowed(self, admin_client, media_root, name, content_type):
        from django.core.files.uploadedfile import SimpleUploadedFile

        video = SimpleUploadedFile(name, b"<script>alert(1)</script>", content_type=content_type)
        response = upload(admin_client, videoFile=video)
        assert response.status_code == 400
        assert "videoFile" in response.json()["fields"]
        assert not Marker.objects.exists()
        assert not (media_root / "marker-videos").exists()

    def test_image_extension_must_be_allowed(self, admin_client, media_root):
        response = upload(admin_client, markerImage=make_png(name="payload.html"))
        assert response.status_code == 400
        assert "markerImage" in response.json()["fields"]
        assert not (media_root / "marker-images").exists()

    def test_video_sent_as_octet_stream_is_accepted(self, admin_client):
        from django.core.files.uploadedfile import SimpleUploadedFile

        video = SimpleUploadedFile("clip.webm", b"\x1aE\xdf\xa3" + b"\x00" * 32,
                                   content_type="application/octet-stream")
        response = upload(admin_client, videoFile=video)
        assert response.status_code == 201
        assert response.json()["videoUrl"].endswith(".webm")

    def test_delete_unknown_marker(self, admin_client):
        response = admin_client.delete(f"/api/markers/{uuid.uuid4()}")
        assert response.status_code == 404

    def test_delete_malformed_id(self, admin_client):
        response = admin_client.delete("/api/markers/not-a-uuid")
        assert response.status_code == 400

    def test_delete_by_json_body(self, admin_client, marker_factory):
        marker = marker_factory()
        response = admin_client.delete(
            "/api/markers", data={"id": str(marker.id)}, content_type="application/json"
        )
        assert response.status_code == 200
        assert not Marker.objects.exists()

    def test_delete_by_json_body_requires_id(self, admin_client):
        response = admin_client.delete("/api/markers", data={}, content_type="application/json")
        assert response.status_code == 400


class TestMarkerAuth:
    @pytest.mark.parametrize("payload", [
        {},
        {"title": "Ad1"},
        None,
    ])
    def test_create_requires_session(self, client, payload):
        if payload is None:
            response = upload(client)
        else:
            response = client.post("/api/markers", payload)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert Marker.objects.count() == 0

    def test_delete_requires_session(self, client, marker_factory):
        marker = marker_factory()
        assert client.delete(f"/api/markers/{marker.id}").status_code == 401
        assert client.delete(f"/api/markers/{uuid.uuid4()}").status_code == 401
        assert client.delete("/api/markers/garbage").status_code == 401
        assert client.delete(
            "/api/markers", data={"id": str(marker.id)}, content_type="application/json"
        ).status_code == 401
        assert Marker.objects.filter(pk=marker.pk).exists()

    def test_bad_bearer_token(self, client):
        response = client.post("/api/markers", {"title": "Ad1"}, HTTP_AUTHORIZATION="Bearer forged")
        assert response.status_code == 401

    def test_session_cookie_is_accepted(self, cookie_client):
        response = upload(cookie_client)
        assert response.status_code == 201


class TestStorageCleanup:
    def test_storage_failure_does_not_block_delete(self, admin_client, marker_factory, caplog):
        marker = marker_factory()
        with mock.patch(
            "django.core.files.storage.FileSystemStorage.delete",
            side_effect=OSError("bucket unavailable"),
        ):
            response = admin_client.delete(f"/api/markers/{marker.id}")

        assert response.status_code == 200
        assert not Marker.objects.filter(pk=marker.pk).exists()
        assert "bucket unavailable" in caplog.text

    def test_queryset_delete_removes_files(self, marker_factory, media_root):
        marker = marker_factory()
        image_file = media_root / marker.marker_image.name
        assert image_file.exists()

        Marker.objects.all().delete()

        assert not image_file.exists()

    def test_external_video_is_left_alone(self, marker_factory):
        marker = marker_factory(video_url="https://cdn.example.com/ad.mp4")
        assert marker.storage_keys() == [marker.marker_image.name]
