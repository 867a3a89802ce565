# arcms/conf.py
"""
Platform configuration.

settings.WEBAR is read from the environment once, then validated here into a
frozen PlatformConfig. Anything missing raises ImproperlyConfigured at startup
(ArcmsConfig.ready) instead of on the first login or upload.
"""

import functools
import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "ADMIN_USERNAME",
    "ADMIN_PASSWORD_HASH",
    "ADMIN_PASSWORD_SALT",
    "ADMIN_PASSWORD_ITERATIONS",
    "SESSION_SECRET",
)

DEFAULTS = {
    "SESSION_MAX_AGE": 60 * 60 * 8,
    "SESSION_COOKIE_NAME": "webar_session",
    "SESSION_COOKIE_SECURE": False,
    "COMPILER_BACKEND": "arcms.compilers.HttpCompiler",
    "COMPILER_URL": "",
    "COMPILER_COMMAND": "",
    "COMPILER_TIMEOUT": 180,
    "DESCRIPTOR_KEY": "targets.mind",
}


@dataclass(frozen=True)
class PlatformConfig:
    admin_username: str
    admin_password_hash: str
    admin_password_salt: str
    admin_password_iterations: int
    session_secret: str
    session_max_age: int
    session_cookie_name: str
    session_cookie_secure: bool
    compiler_backend: str
    compiler_url: str
    compiler_command: str
    compiler_timeout: float
    descriptor_key: str


def _positive_int(raw, name):
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f"WEBAR['{name}'] must be an integer, got {raw!r}")
    if value <= 0:
        raise ImproperlyConfigured(f"WEBAR['{name}'] must be positive, got {value}")
    return value


def _positive_float(raw, name):
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f"WEBAR['{name}'] must be a number, got {raw!r}")
    if value <= 0:
        raise ImproperlyConfigured(f"WEBAR['{name}'] must be positive, got {value}")
    return value


def load_config(values=None):
    """Build a PlatformConfig from a WEBAR-style dict (settings.WEBAR by default)."""
    if values is None:
        values = getattr(settings, "WEBAR", None)
    if values is None:
        raise ImproperlyConfigured("The WEBAR setting is missing")

    merged = {**DEFAULTS, **{k: v for k, v in values.items() if v not in (None, "")}}

    missing = [name for name in REQUIRED_FIELDS if not merged.get(name)]
    if missing:
        raise ImproperlyConfigured(
            "Missing required WEBAR configuration: " + ", ".join(missing)
        )

    descriptor_key = str(merged["DESCRIPTOR_KEY"]).strip("/")
    if not descriptor_key:
        raise ImproperlyConfigured("WEBAR['DESCRIPTOR_KEY'] must not be empty")

    return PlatformConfig(
        admin_username=str(merged["ADMIN_USERNAME"]),
        admin_password_hash=str(merged["ADMIN_PASSWORD_HASH"]).lower(),
        admin_password_salt=str(merged["ADMIN_PASSWORD_SALT"]),
        admin_password_iterations=_positive_int(
            merged["ADMIN_PASSWORD_ITERATIONS"], "ADMIN_PASSWORD_ITERATIONS"
        ),
        session_secret=str(merged["SESSION_SECRET"]),
        session_max_age=_positive_int(merged["SESSION_MAX_AGE"], "SESSION_MAX_AGE"),
        session_cookie_name=str(merged["SESSION_COOKIE_NAME"]),
        session_cookie_secure=bool(merged["SESSION_COOKIE_SECURE"]),
        compiler_backend=str(merged["COMPILER_BACKEND"]),
        compiler_url=str(merged["COMPILER_URL"]),
        compiler_command=str(merged["COMPILER_COMMAND"]),
        compiler_timeout=_positive_float(merged["COMPILER_TIMEOUT"], "COMPILER_TIMEOUT"),
        descriptor_key=descriptor_key,
    )


@functools.lru_cache(maxsize=None)
def get_config():
    return load_config()


@receiver(setting_changed)
def _reset_config(*, setting, **kwargs):
    if setting == "WEBAR":
        get_config.cache_clear()
        from .compilers import get_compiler

        get_compiler.cache_clear()
