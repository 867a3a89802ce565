from pathlib import Path
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


# ==============================================================================
# SECURITY SETTINGS
# ==============================================================================
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-webar-dev-only-change-me")
DEBUG = env_bool("DJANGO_DEBUG", False)

ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", "127.0.0.1,localhost")

# ==============================================================================
# APPLICATIONS
# ==============================================================================
INSTALLED_APPS = [
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",  # For CORS handling
    "arcms",  # AR content manager
]

# ==============================================================================
# MIDDLEWARE
# ==============================================================================
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "webar.urls"

# ==============================================================================
# TEMPLATES
# ==============================================================================
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.messages.context_processors.messages",
                "django.template.context_processors.media",
            ],
        },
    },
]

WSGI_APPLICATION = "webar.wsgi.application"

# ==============================================================================
# DATABASE
# ==============================================================================
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DATABASE_USER", ""),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", ""),
        "PORT": os.environ.get("DATABASE_PORT", ""),
    }
}

# ==============================================================================
# INTERNATIONALIZATION
# ==============================================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ==============================================================================
# STATIC FILES CONFIGURATION
# ==============================================================================
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / "staticfiles"

# ==============================================================================
# MEDIA FILES CONFIGURATION
# ==============================================================================
MEDIA_URL = '/media/'
MEDIA_ROOT = Path(os.environ.get("MEDIA_ROOT", BASE_DIR / 'media'))

# Marker images, videos and the targets descriptor go to the default storage.
# With STORAGE_BUCKET set they go to an S3-compatible bucket (R2, S3, MinIO).
STORAGE_BUCKET = os.environ.get("STORAGE_BUCKET", "")

if STORAGE_BUCKET:
    STORAGES = {
        "default": {
            "BACKEND": "storages.backends.s3.S3Storage",
            "OPTIONS": {
                "bucket_name": STORAGE_BUCKET,
                "endpoint_url": os.environ.get("STORAGE_ENDPOINT_URL") or None,
                "access_key": os.environ.get("STORAGE_ACCESS_KEY_ID") or None,
                "secret_key": os.environ.get("STORAGE_SECRET_ACCESS_KEY") or None,
                "custom_domain": os.environ.get("STORAGE_PUBLIC_DOMAIN") or None,
                "region_name": os.environ.get("STORAGE_REGION", "auto"),
                "file_overwrite": True,
                "querystring_auth": False,
                "default_acl": None,
            },
        },
        "staticfiles": {
            "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
        },
    }
else:
    STORAGES = {
        "default": {
            "BACKEND": "django.core.files.storage.FileSystemStorage",
        },
        "staticfiles": {
            "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
        },
    }

# ==============================================================================
# FILE UPLOAD SETTINGS
# ==============================================================================
DATA_UPLOAD_MAX_MEMORY_SIZE = 524288000  # 500MB
FILE_UPLOAD_MAX_MEMORY_SIZE = 10485760   # 10MB, larger uploads spool to disk

# ==============================================================================
# CORS CONFIGURATION (for MindAR)
# ==============================================================================
CORS_ALLOWED_ORIGINS = env_list("CORS_ALLOWED_ORIGINS", "http://127.0.0.1:8000,http://localhost:8000")
CORS_URLS_REGEX = r"^/(api|media)/.*$"
CORS_ALLOW_CREDENTIALS = True

CORS_ALLOW_HEADERS = [
    'accept',
    'accept-encoding',
    'authorization',
    'content-type',
    'dnt',
    'origin',
    'user-agent',
    'x-csrftoken',
    'x-requested-with',
    'range',  # Important for video files
]

# ==============================================================================
# CSRF CONFIGURATION
# ==============================================================================
CSRF_TRUSTED_ORIGINS = env_list("CSRF_TRUSTED_ORIGINS", "http://127.0.0.1:8000,http://localhost:8000")

CSRF_COOKIE_SECURE = env_bool("DJANGO_SECURE_COOKIES", False)
CSRF_COOKIE_HTTPONLY = True
CSRF_COOKIE_SAMESITE = 'Lax'

# Flash messages live in a signed cookie, there is no session database.
MESSAGE_STORAGE = "django.contrib.messages.storage.cookie.CookieStorage"

# ==============================================================================
# SECURITY CONFIGURATION
# ==============================================================================
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# ==============================================================================
# WEBAR PLATFORM CONFIGURATION
# ==============================================================================
# Validated once at startup by arcms.conf.get_config().
WEBAR = {
    "ADMIN_USERNAME": os.environ.get("ADMIN_USERNAME", ""),
    "ADMIN_PASSWORD_HASH": os.environ.get("ADMIN_PASSWORD_HASH", ""),
    "ADMIN_PASSWORD_SALT": os.environ.get("ADMIN_PASSWORD_SALT", ""),
    "ADMIN_PASSWORD_ITERATIONS": os.environ.get("ADMIN_PASSWORD_ITERATIONS", ""),
    "SESSION_SECRET": os.environ.get("SESSION_SECRET", ""),
    "SESSION_MAX_AGE": os.environ.get("SESSION_MAX_AGE", 60 * 60 * 8),
    "SESSION_COOKIE_SECURE": env_bool("DJANGO_SECURE_COOKIES", False),
    "COMPILER_BACKEND": os.environ.get("COMPILER_BACKEND", "arcms.compilers.HttpCompiler"),
    "COMPILER_URL": os.environ.get("COMPILER_URL", ""),
    "COMPILER_COMMAND": os.environ.get("COMPILER_COMMAND", ""),
    "COMPILER_TIMEOUT": os.environ.get("COMPILER_TIMEOUT", 180),
    "DESCRIPTOR_KEY": os.environ.get("DESCRIPTOR_KEY", "targets.mind"),
}

# ==============================================================================
# LOGGING
# ==============================================================================
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "arcms": {
            "handlers": ["console"],
            "level": os.environ.get("WEBAR_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# ==============================================================================
# DEFAULT SETTINGS
# ==============================================================================
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
