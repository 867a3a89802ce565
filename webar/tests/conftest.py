"""
Shared fixtures.

Every test gets its own media root, and the recording compiler starts with an
empty call log.
"""
import io

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client
from PIL import Image

from arcms import assets
from arcms.auth import issue_token
from tests.fakes import RecordingCompiler


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    root = tmp_path / "media"
    root.mkdir()
    settings.MEDIA_ROOT = root
    return root


@pytest.fixture(autouse=True)
def reset_compiler_calls():
    RecordingCompiler.calls.clear()
    yield
    RecordingCompiler.calls.clear()


@pytest.fixture
def admin_token():
    token, _expires = issue_token()
    return token


@pytest.fixture
def admin_client(admin_token):
    return Client(HTTP_AUTHORIZATION=f"Bearer {admin_token}")


@pytest.fixture
def cookie_client(admin_token):
    client = Client()
    client.cookies["webar_session"] = admin_token
    return client


def make_png(name="marker.png", color="red", size=(32, 32)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="image/png")


def make_video(name="clip.mp4"):
    return SimpleUploadedFile(name, b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64, content_type="video/mp4")


@pytest.fixture
def marker_factory(db):
    def create(title="Ad1", video_url="", color="red"):
        return assets.create_marker(
            title=title,
            marker_image=make_png(color=color),
            video=None if video_url else make_video(),
            video_url=video_url,
        )

    return create
