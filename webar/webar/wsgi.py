"""WSGI config for the webar project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "webar.settings")

application = get_wsgi_application()
