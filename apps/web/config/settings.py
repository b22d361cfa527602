"""
Django settings for the Storefront.

Secrets come from the environment - never hardcode credentials.
Run with: python manage.py runserver
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    POS_PROVIDER=(str, "moka"),
    POS_SALE_RECORD_METHOD=(str, "checkout"),
    MIDTRANS_IS_PRODUCTION=(bool, False),
    MIDTRANS_VERIFY_CLIENT_RECORD=(bool, True),
    ONLINE_PAYMENT_MIN_PHONE_LENGTH=(int, 10),
    HTTP_TIMEOUT_SECONDS=(float, 30.0),
    LOG_LEVEL=(str, "INFO"),
)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="django-insecure-storefront-dev-key")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # Local apps
    "apps.web.pos",
    "apps.web.orders",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "apps.web.config.urls"

WSGI_APPLICATION = "apps.web.config.wsgi.application"

# Database
# Orders live in the in-memory order store; nothing is persisted.
DATABASES: dict[str, dict[str, str]] = {}

# Cache backing idempotent replays of cashier orders
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "storefront",
    }
}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Asia/Jakarta"
USE_I18N = False
USE_TZ = True

# Public base URL of the storefront, used for payment redirects
APP_URL = env("APP_URL", default="http://localhost:8000")

# Outbound HTTP timeout for every vendor call
HTTP_TIMEOUT_SECONDS = env("HTTP_TIMEOUT_SECONDS")

# =============================================================================
# POS (Moka)
# =============================================================================

POS_PROVIDER = env("POS_PROVIDER")  # moka | mock
POS_SALE_RECORD_METHOD = env("POS_SALE_RECORD_METHOD")  # checkout | advanced_order
MOKA_API_URL = env("MOKA_API_URL", default="https://api.mokapos.com")
MOKA_ACCESS_TOKEN = env("MOKA_ACCESS_TOKEN", default="")
MOKA_TIMEZONE = env("MOKA_TIMEZONE", default="Asia/Jakarta")

# =============================================================================
# Payments (Midtrans)
# =============================================================================

MIDTRANS_SERVER_KEY = env("MIDTRANS_SERVER_KEY", default="")
MIDTRANS_IS_PRODUCTION = env("MIDTRANS_IS_PRODUCTION")
MIDTRANS_VERIFY_CLIENT_RECORD = env("MIDTRANS_VERIFY_CLIENT_RECORD")
ONLINE_PAYMENT_MIN_PHONE_LENGTH = env("ONLINE_PAYMENT_MIN_PHONE_LENGTH")

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = env("LOG_LEVEL")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
    },
}
