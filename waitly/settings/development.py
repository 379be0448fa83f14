"""
Development settings for Waitly.

These settings override the base settings for local development environments.
"""

from .base import *

SECRET_KEY = config("SECRET_KEY", default="django-insecure-development-key-not-for-production")
DEBUG = config("DEBUG", default=True, cast=bool)

ALLOWED_HOSTS = ["*"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": config("POSTGRES_DB", default="waitly"),
        "USER": config("POSTGRES_USER", default="waitly"),
        "PASSWORD": config("POSTGRES_PASSWORD", default="waitly"),
        "HOST": config("POSTGRES_HOST", default="localhost"),
        "PORT": config("POSTGRES_PORT", default="5432"),
        "CONN_MAX_AGE": 300,
        "OPTIONS": {
            "connect_timeout": 5,
            "sslmode": config("POSTGRES_SSL_MODE", default="disable"),
        },
    }
}

if config("USE_SQLITE", default=False, cast=bool):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

# Security in development (no SSL, no secure cookies)
SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# Dev cache: local memory
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Channels: in-memory for dev, Redis not required
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}
