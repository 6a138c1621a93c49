"""
Django settings for the smartmetro bus tracking service.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [host for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "bus_tracking",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "smartmetro.urls"
ASGI_APPLICATION = "smartmetro.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "Africa/Nairobi"

# Simulation tuning; all times in seconds, speed in route points per second.
BUS_SIMULATION = {
    "tick_interval": 0.1,
    "speed_factor": 0.02,
    "smoothing_window": 5,
    "smoothing_horizon": 1.0,
    "resnapshot_interval": 5.0,
    "subscriber_queue_size": 16,
    "route_retry_seconds": 1.0,
}

ROUTE_PROVIDER = {
    "provider": os.environ.get("ROUTE_PROVIDER", "osrm"),
    "ors_api_key": os.environ.get("ORS_API_KEY", ""),
    "osrm_url": os.environ.get("OSRM_URL", "http://router.project-osrm.org"),
    "timeout_seconds": 5,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "bus_tracking": {
            "handlers": ["console"],
            "level": os.environ.get("LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
