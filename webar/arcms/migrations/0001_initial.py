import uuid

import arcms.models
import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Marker",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(help_text="Shown to viewers when the marker is found", max_length=200)),
                (
                    "marker_image",
                    models.ImageField(
                        help_text="Image to be used as AR marker",
                        max_length=255,
                        upload_to=arcms.models.marker_image_path,
                        validators=[
                            django.core.validators.FileExtensionValidator(
                                allowed_extensions=["png", "jpg", "jpeg", "webp"]
                            )
                        ],
                    ),
                ),
                (
                    "video",
                    models.FileField(
                        blank=True,
                        help_text="Video to overlay on detected marker",
                        max_length=255,
                        upload_to=arcms.models.marker_video_path,
                        validators=[
                            django.core.validators.FileExtensionValidator(
                                allowed_extensions=["mp4", "mov", "webm"]
                            )
                        ],
                    ),
                ),
                (
                    "video_url",
                    models.URLField(
                        blank=True,
                        help_text="External video URL, used when no video file was uploaded",
                        max_length=500,
                    ),
                ),
                (
                    "plane_width",
                    models.FloatField(
                        default=1.0,
                        help_text="Overlay plane width, in marker widths",
                        validators=[django.core.validators.MinValueValidator(0.01)],
                    ),
                ),
                (
                    "plane_height",
                    models.FloatField(
                        default=0.552,
                        help_text="Overlay plane height, in marker widths",
                        validators=[django.core.validators.MinValueValidator(0.01)],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="AnalyticsEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_agent", models.TextField(blank=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "marker",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="analytics_events",
                        to="arcms.marker",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
