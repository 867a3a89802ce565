# arcms/assets.py
"""Create, list and delete markers together with their stored files."""

import logging
import uuid

from django.core.files.storage import default_storage
from django.db import transaction

from .models import Marker, DEFAULT_PLANE_WIDTH, DEFAULT_PLANE_HEIGHT

logger = logging.getLogger(__name__)


class InvalidMarkerId(ValueError):
    """The marker identifier is not a well-formed UUID."""


def parse_marker_id(marker_id):
    try:
        return uuid.UUID(str(marker_id))
    except (TypeError, ValueError, AttributeError):
        raise InvalidMarkerId(f"Invalid marker id: {marker_id!r}")


def absolute_url(url, request=None):
    if request is not None and url and url.startswith('/'):
        return request.build_absolute_uri(url)
    return url


def public_url(key, request=None):
    """Public URL of a storage key"""
    if not key:
        return None
    return absolute_url(default_storage.url(key), request)


def create_marker(title, marker_image, video=None, video_url="", plane_width=None, plane_height=None):
    """Store the uploaded files and insert the marker row."""
    marker = Marker(
        title=title,
        video_url="" if video else (video_url or ""),
        plane_width=plane_width or DEFAULT_PLANE_WIDTH,
        plane_height=plane_height or DEFAULT_PLANE_HEIGHT,
    )

    # FieldFile.save writes to storage; the row is written once both files are stored
    marker.marker_image.save(marker_image.name, marker_image, save=False)
    try:
        if video:
            marker.video.save(video.name, video, save=False)
        with transaction.atomic():
            marker.save()
    except Exception:
        _discard_files(marker.storage_keys())
        raise

    logger.info("Created marker %s (%s)", marker.id, marker.title)
    return marker


def list_markers():
    """Markers oldest first, list position == targetIndex"""
    return Marker.objects.order_by("created_at", "id")


def get_marker(marker_id):
    return Marker.objects.get(pk=parse_marker_id(marker_id))


def delete_marker(marker_id):
    """
    Delete a marker row and, best effort, its stored image and video.

    Raises InvalidMarkerId or Marker.DoesNotExist before touching anything.
    """
    marker = get_marker(marker_id)
    keys = marker.storage_keys()

    _discard_files(keys)
    # post_delete would try the same keys again
    marker._storage_cleaned = True
    marker.delete()

    logger.info("Deleted marker %s (%s)", marker_id, marker.title)
    return marker


def _discard_files(keys):
    for key in keys:
        discard_file(key)


def discard_file(key):
    """Delete one storage object, logging (not raising) failures"""
    try:
        if key and default_storage.exists(key):
            default_storage.delete(key)
    except Exception as e:
        logger.warning(f"Could not delete stored file {key}: {e}")


def serialize_marker(marker, request=None, target_index=None):
    video = public_url(marker.video.name, request) if marker.video else marker.video_url
    data = {
        "id": str(marker.id),
        "title": marker.title,
        "markerImageUrl": public_url(marker.marker_image.name, request),
        "videoUrl": video,
        "planeWidth": marker.plane_width,
        "planeHeight": marker.plane_height,
        "createdAt": marker.created_at.isoformat() if marker.created_at else None,
    }
    if target_index is not None:
        data["targetIndex"] = target_index
    return data


def serialize_markers(markers, request=None):
    return [
        serialize_marker(marker, request, target_index=index)
        for index, marker in enumerate(markers)
    ]
