import os
from pathlib import Path
from urllib.parse import urlparse

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() == "true"
allowed_hosts_env = os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")
ALLOWED_HOSTS = [host.strip() for host in allowed_hosts_env.split(",") if host.strip()]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "apps.accounts",
    "apps.patients",
    "apps.appointments",
    "apps.webhooks",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

# SQLite by default, PostgreSQL through DATABASE_URL
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

DATABASE_URL = os.getenv("DATABASE_URL")
if DATABASE_URL:
    parsed_db_url = urlparse(DATABASE_URL)
    if parsed_db_url.scheme not in ("postgres", "postgresql"):
        raise ImproperlyConfigured("Unsupported database scheme in DATABASE_URL")

    DATABASES["default"] = {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": parsed_db_url.path.lstrip("/"),
        "USER": parsed_db_url.username,
        "PASSWORD": parsed_db_url.password,
        "HOST": parsed_db_url.hostname,
        "PORT": parsed_db_url.port or "",
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Secrets at rest (Fernet key material for apps.common.security)
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "")

# Booking tool webhook
# Fallback signing key, used until a secret has been rotated into WebhookConfig.
BOOKING_WEBHOOK_SECRET = os.getenv("BOOKING_WEBHOOK_SECRET", "")
BOOKING_WEBHOOK_RATE_LIMIT = int(os.getenv("BOOKING_WEBHOOK_RATE_LIMIT", 100))
BOOKING_WEBHOOK_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_WEBHOOK_RATE_WINDOW_SECONDS", 60))
_default_therapist_id = os.getenv("BOOKING_WEBHOOK_DEFAULT_THERAPIST_ID", "")
BOOKING_WEBHOOK_DEFAULT_THERAPIST_ID = int(_default_therapist_id) if _default_therapist_id else None

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
    },
}
