"""
Production settings for Waitly.

These settings override the base settings for production environments.
"""

from .base import *

DEBUG = False

# No default: a missing key fails at startup.
SECRET_KEY = config("SECRET_KEY")

SECURE_HSTS_SECONDS = config("SECURE_HSTS_SECONDS", default=31536000, cast=int)
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = [
    "rest_framework.throttling.AnonRateThrottle",
    "rest_framework.throttling.UserRateThrottle",
]

LOGGING["handlers"]["console"]["filters"] = []
