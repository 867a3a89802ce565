# arcms/apps.py
from django.apps import AppConfig


class ArcmsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "arcms"
    verbose_name = "WebAR content manager"

    def ready(self):
        from . import signals  # noqa: F401  register signal handlers
        from .compilers import get_compiler
        from .conf import get_config

        # Fail fast on incomplete configuration
        get_config()
        get_compiler()
