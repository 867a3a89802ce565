import io

import pytest
from django.core.management import call_command, CommandError

from arcms import descriptor
from arcms.compilers import CompilerError
from tests.fakes import RecordingCompiler

pytestmark = pytest.mark.django_db


def top_level_files(media_root):
    return sorted(p.name for p in media_root.iterdir() if p.is_file())


@pytest.fixture
def failing_compiler(settings):
    settings.WEBAR = {**settings.WEBAR, "COMPILER_BACKEND": "tests.fakes.FailingCompiler"}


class TestGenerateDescriptor:
    def test_regenerating_replaces_the_single_file(self, marker_factory, media_root):
        marker_factory(title="First")
        first = descriptor.generate_descriptor()
        marker_factory(title="Second", color="blue")
        second = descriptor.generate_descriptor()

        assert first.key == second.key == "targets.mind"
        assert top_level_files(media_root) == ["targets.mind"]
        assert (media_root / "targets.mind").read_bytes()[4:8] == (2).to_bytes(4, "little")
        assert second.marker_count == 2

    def test_images_are_compiled_oldest_first(self, marker_factory):
        first = marker_factory(title="First")
        second = marker_factory(title="Second", color="blue")
        third = marker_factory(title="Third", color="green")

        descriptor.generate_descriptor()

        expected = [m.marker_image.name.rsplit("/", 1)[-1] for m in (first, second, third)]
        assert RecordingCompiler.calls == [expected]

    def test_no_markers_removes_stale_descriptor(self, marker_factory, media_root):
        marker = marker_factory()
        descriptor.generate_descriptor()
        assert descriptor.descriptor_exists()

        marker.delete()
        with pytest.raises(descriptor.NoMarkersError):
            descriptor.generate_descriptor()
        assert not descriptor.descriptor_exists()

    def test_compiler_failure_keeps_previous_descriptor(self, marker_factory, media_root, settings):
        marker_factory()
        descriptor.generate_descriptor()
        before = (media_root / "targets.mind").read_bytes()

        settings.WEBAR = {**settings.WEBAR, "COMPILER_BACKEND": "tests.fakes.FailingCompiler"}
        marker_factory(title="Second", color="blue")
        with pytest.raises(CompilerError):
            descriptor.generate_descriptor()

        assert (media_root / "targets.mind").read_bytes() == before

    def test_empty_compiler_output_is_an_error(self, marker_factory):
        marker_factory()

        class EmptyCompiler(RecordingCompiler):
            def compile(self, images):
                return b""

        with pytest.raises(CompilerError):
            descriptor.generate_descriptor(compiler=EmptyCompiler(None))
        assert not descriptor.descriptor_exists()

    def test_manifest_follows_marker_order(self, marker_factory):
        first = marker_factory(title="First")
        second = marker_factory(title="Second", color="blue")

        manifest = descriptor.target_manifest()

        assert [(m["id"], m["targetIndex"]) for m in manifest] == [
            (str(first.id), 0),
            (str(second.id), 1),
        ]


class TestTargetsApi:
    def test_status_is_public(self, client):
        response = client.get("/api/generate-targets-file")
        assert response.status_code == 200
        assert response.json() == {
            "publicUrl": "http://testserver/media/targets.mind",
            "exists": False,
        }

    def test_generate(self, admin_client, marker_factory):
        marker_factory()
        response = admin_client.post("/api/generate-targets-file")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["markersProcessed"] == 1
        assert body["publicUrl"] == "http://testserver/media/targets.mind"
        assert body["size"] > 0

        assert admin_client.get("/api/generate-targets-file").json()["exists"] is True

    def test_generate_without_markers(self, admin_client):
        response = admin_client.post("/api/generate-targets-file")
        assert response.status_code == 404
        assert response.json() == {"error": "No markers found"}

    def test_generate_compiler_failure(self, admin_client, marker_factory, failing_compiler):
        marker_factory()
        response = admin_client.post("/api/generate-targets-file")
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to generate targets file"
        assert "markup" in body["detail"]

    def test_generate_requires_session(self, client, marker_factory):
        marker_factory()
        assert client.post("/api/generate-targets-file").status_code == 401
        assert RecordingCompiler.calls == []

    def test_manifest(self, admin_client, marker_factory):
        marker = marker_factory()
        response = admin_client.get("/api/generate-targets")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["markers"][0]["id"] == str(marker.id)
        assert body["markers"][0]["imageUrl"].startswith("http://testserver/media/marker-images/")

    def test_manifest_without_markers(self, admin_client):
        assert admin_client.get("/api/generate-targets").status_code == 404

    def test_manifest_requires_session(self, client):
        assert client.get("/api/generate-targets").status_code == 401


class TestGenerateTargetsCommand:
    def test_generates(self, marker_factory, media_root):
        marker_factory()
        out = io.StringIO()
        call_command("generate_targets", stdout=out)
        assert "Compiled 1 markers into targets.mind" in out.getvalue()
        assert (media_root / "targets.mind").exists()

    def test_dry_run_does_not_compile(self, marker_factory, media_root):
        marker_factory(title="Poster")
        out = io.StringIO()
        call_command("generate_targets", "--dry-run", stdout=out)
        assert "[0] Poster" in out.getvalue()
        assert RecordingCompiler.calls == []
        assert not (media_root / "targets.mind").exists()

    def test_no_markers(self):
        with pytest.raises(CommandError, match="No markers found"):
            call_command("generate_targets", stdout=io.StringIO())

    def test_compiler_failure(self, marker_factory, failing_compiler):
        marker_factory()
        with pytest.raises(CommandError, match="markup"):
            call_command("generate_targets", stdout=io.StringIO())
