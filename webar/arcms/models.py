# models.py - WebAR content manager
import os
import time
import uuid
from django.db import models
from django.core.validators import FileExtensionValidator, MinValueValidator

IMAGE_EXTENSIONS = ["png", "jpg", "jpeg", "webp"]
VIDEO_EXTENSIONS = ["mp4", "mov", "webm"]

# Overlay plane size used for every target unless a marker overrides it
DEFAULT_PLANE_WIDTH = 1.0
DEFAULT_PLANE_HEIGHT = 0.552


def _extension(filename, default):
    ext = os.path.splitext(filename)[1].lower()
    safe_ext = "".join(c for c in ext if c.isalnum() or c == ".")
    return safe_ext if len(safe_ext) > 1 else default


def _stamp():
    # millisecond timestamp plus a short random suffix, uploads in the same ms must not collide
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


# Upload path functions
def marker_image_path(instance, filename):
    """Storage key for a marker image: marker-images/marker-<ms>-<hex>.<ext>"""
    return f"marker-images/marker-{_stamp()}{_extension(filename, '.png')}"


def marker_video_path(instance, filename):
    """Storage key for a marker video: marker-videos/video-<ms>-<hex>.<ext>"""
    return f"marker-videos/video-{_stamp()}{_extension(filename, '.mp4')}"


class Marker(models.Model):
    """A printed image registered for detection, paired with the video shown on match"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200, help_text="Shown to viewers when the marker is found")

    marker_image = models.ImageField(
        upload_to=marker_image_path,
        max_length=255,
        validators=[FileExtensionValidator(allowed_extensions=IMAGE_EXTENSIONS)],
        help_text="Image to be used as AR marker"
    )

    video = models.FileField(
        upload_to=marker_video_path,
        max_length=255,
        blank=True,
        validators=[FileExtensionValidator(allowed_extensions=VIDEO_EXTENSIONS)],
        help_text="Video to overlay on detected marker"
    )
    video_url = models.URLField(
        max_length=500,
        blank=True,
        help_text="External video URL, used when no video file was uploaded"
    )

    plane_width = models.FloatField(
        default=DEFAULT_PLANE_WIDTH,
        validators=[MinValueValidator(0.01)],
        help_text="Overlay plane width, in marker widths"
    )
    plane_height = models.FloatField(
        default=DEFAULT_PLANE_HEIGHT,
        validators=[MinValueValidator(0.01)],
        help_text="Overlay plane height, in marker widths"
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        # Position in this ordering is the marker's targetIndex in the descriptor
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.title} ({self.id})"

    @property
    def marker_image_path(self):
        return self.marker_image.name if self.marker_image else ""

    @property
    def video_path(self):
        """Storage key of the uploaded video, or the external URL"""
        if self.video:
            return self.video.name
        return self.video_url

    @property
    def has_external_video(self):
        return not self.video and bool(self.video_url)

    def storage_keys(self):
        """Storage objects owned by this marker (external URLs are not ours to delete)"""
        keys = []
        if self.marker_image:
            keys.append(self.marker_image.name)
        if self.video:
            keys.append(self.video.name)
        return keys


class AnalyticsEvent(models.Model):
    """One marker detection reported by a viewer"""

    marker = models.ForeignKey(
        Marker,
        on_delete=models.CASCADE,
        related_name="analytics_events"
    )
    user_agent = models.TextField(blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Detection of {self.marker_id} at {self.created_at}"
