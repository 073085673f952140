"""Django settings for the EV charging planner project."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = BASE_DIR.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-me-in-production")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [host for host in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "charge_planner",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": PROJECT_ROOT / "db.sqlite3",
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "charge-planner-cache",
    },
    "distances": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "charge-planner-distances",
        "OPTIONS": {
            "MAX_ENTRIES": int(os.getenv("DISTANCE_CACHE_MAX_ENTRIES", "50000")),
        },
    },
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "charge_planner": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
    },
}

ROUTING_PROVIDER = os.getenv("ROUTING_PROVIDER", "google")
ROUTING_TIMEOUT_SECONDS = float(os.getenv("ROUTING_TIMEOUT_SECONDS", "10"))
ROUTING_RETRY_COUNT = int(os.getenv("ROUTING_RETRY_COUNT", "0"))
FALLBACK_AVG_SPEED_KMH = float(os.getenv("FALLBACK_AVG_SPEED_KMH", "80"))

GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
GOOGLE_DIRECTIONS_BASE_URL = os.getenv(
    "GOOGLE_DIRECTIONS_BASE_URL", "https://maps.googleapis.com/maps/api/directions"
)
OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")

DISTANCE_CACHE_ALIAS = "distances"
DISTANCE_CACHE_TTL_SECONDS = int(os.getenv("DISTANCE_CACHE_TTL_SECONDS", "86400"))

PLANNER_MAX_WORKERS = int(os.getenv("PLANNER_MAX_WORKERS", "4"))
STATION_CORRIDOR_DEGREES = float(os.getenv("STATION_CORRIDOR_DEGREES", "0.3"))
MAX_CANDIDATE_STATIONS = int(os.getenv("MAX_CANDIDATE_STATIONS", "5000"))

OPEN_CHARGE_MAP_BASE_URL = os.getenv("OPEN_CHARGE_MAP_BASE_URL", "https://api.openchargemap.io/v3")
OPEN_CHARGE_MAP_API_KEY = os.getenv("OPEN_CHARGE_MAP_API_KEY", "")
OPEN_CHARGE_MAP_USER_AGENT = os.getenv("OPEN_CHARGE_MAP_USER_AGENT", "ev-charge-planner/1.0")
OPEN_CHARGE_MAP_TIMEOUT_SECONDS = float(os.getenv("OPEN_CHARGE_MAP_TIMEOUT_SECONDS", "60"))
