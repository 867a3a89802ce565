# arcms/descriptor.py
"""
The targets descriptor: one opaque file compiled from every marker image.

It lives under a single fixed storage key and is replaced wholesale on each
regeneration. Target indexes inside it follow the marker list order, oldest
first, which is also the order the viewer builds its anchors in.
"""

import logging
import mimetypes
from dataclasses import dataclass

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from .assets import list_markers, public_url, discard_file
from .compilers import TargetImage, CompilerError, get_compiler
from .conf import get_config

logger = logging.getLogger(__name__)


class NoMarkersError(Exception):
    """There are no markers to compile."""


class DescriptorError(Exception):
    """Reading marker images or storing the descriptor failed."""


@dataclass(frozen=True)
class DescriptorResult:
    key: str
    url: str
    marker_count: int
    size: int


def descriptor_key():
    return get_config().descriptor_key


def descriptor_exists():
    return default_storage.exists(descriptor_key())


def descriptor_url(request=None):
    return public_url(descriptor_key(), request)


def load_target_images(markers):
    images = []
    for marker in markers:
        key = marker.marker_image.name
        try:
            with default_storage.open(key, "rb") as fh:
                content = fh.read()
        except Exception as e:
            raise DescriptorError(f"Cannot read marker image {key}: {e}") from e
        content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        images.append(TargetImage(name=key.rsplit("/", 1)[-1], content=content, content_type=content_type))
    return images


def store_descriptor(data):
    """Replace the object under the fixed key, never leaving a second copy."""
    key = descriptor_key()
    if default_storage.exists(key):
        default_storage.delete(key)
    saved = default_storage.save(key, ContentFile(data))
    if saved != key:
        # storage picked an alternative name, do not leave it behind
        default_storage.delete(saved)
        raise DescriptorError(f"Storage saved descriptor as {saved!r} instead of {key!r}")
    return key


def generate_descriptor(request=None, compiler=None):
    """
    Compile every marker image into the descriptor and upload it.

    Raises NoMarkersError (after removing any stale descriptor) when there is
    nothing to compile, CompilerError or DescriptorError on failure.
    """
    markers = list(list_markers())
    if not markers:
        discard_file(descriptor_key())
        raise NoMarkersError("No markers found")

    images = load_target_images(markers)
    compiler = compiler or get_compiler()

    logger.info("Compiling descriptor from %d markers with %s", len(images), type(compiler).__name__)
    data = compiler.compile(images)
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise CompilerError("Compiler returned no descriptor data")

    try:
        key = store_descriptor(bytes(data))
    except DescriptorError:
        raise
    except Exception as e:
        raise DescriptorError(f"Cannot store descriptor: {e}") from e

    logger.info("Stored descriptor %s (%d bytes)", key, len(data))
    return DescriptorResult(
        key=key,
        url=descriptor_url(request),
        marker_count=len(markers),
        size=len(data),
    )


def target_manifest(request=None):
    """The images a compiler run would receive, with their target indexes"""
    return [
        {
            "id": str(marker.id),
            "title": marker.title,
            "imageUrl": public_url(marker.marker_image.name, request),
            "targetIndex": index,
        }
        for index, marker in enumerate(list_markers())
    ]
