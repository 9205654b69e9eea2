"""
Stockflow - Django Settings (Infrastructure Only)
==================================================
Django serves as the HTTP container for the stock movement engine.
The engine does not depend on Django; only adapters/django_api does.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("STOCKFLOW_SECRET_KEY", "stockflow-dev-key")

DEBUG = os.environ.get("STOCKFLOW_DEBUG", "1") == "1"

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# ── Installed Apps ────────────────────────────────────────────
# No models: the catalog and ledger live behind engine protocols.
INSTALLED_APPS = [
    "django.contrib.contenttypes",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL & WSGI ────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Stock Movements ───────────────────────────────────────────
# DEFAULT_EXIT_REASON: stamped on RETURN payloads without an exitReason.
# CATALOG_FIXTURE: catalog snapshot JSON loaded at first request.
STOCK_MOVEMENTS = {
    "DEFAULT_EXIT_REASON": os.environ.get(
        "STOCKFLOW_DEFAULT_EXIT_REASON", "SUPPLIER_RETURN"
    ),
    "CATALOG_FIXTURE": os.environ.get("STOCKFLOW_CATALOG_FIXTURE") or None,
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "stockflow": {
            "handlers": ["console"],
            "level": os.environ.get("STOCKFLOW_LOG_LEVEL", "INFO"),
        },
    },
}
