# arcms/signals.py
import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from .assets import discard_file
from .models import Marker

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=Marker)
def remove_marker_files(sender, instance: Marker, **kwargs):
    """Queryset and cascade deletes skip delete_marker(), clean storage here too."""
    if getattr(instance, "_storage_cleaned", False):
        return
    for key in instance.storage_keys():
        discard_file(key)
    logger.info("Removed stored files of deleted marker %s", instance.pk)
