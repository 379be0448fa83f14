"""
Queue engine tunables.

Values come from ``settings.QUEUE_ENGINE``; anything missing there falls back
to the defaults below so a bare settings module still works.
"""

from django.conf import settings

DEFAULTS = {
    "DEFAULT_STAFF_MINUTES": 5,
    "HISTORY_LIMIT": 10,
    "MIN_HISTORY_SAMPLES": 3,
    "STAFF_WEIGHT": 0.3,
    "MIN_ESTIMATE_MINUTES": 2,
    "OUTLIER_MIN_MINUTES": 0.2,
    "OUTLIER_MAX_MINUTES": 120,
    "OUTLIER_STAFF_MULTIPLIER": 4,
    "EXPIRY_GRACE_MINUTES": 30,
    "SLOT_CALL_AHEAD_MINUTES": 2,
    "FALLBACK_PACE_MINUTES": 10,
    "FALLBACK_DAILY_CAPACITY": 50,
    "LOCK_TIMEOUT_SECONDS": 5,
    "LOCK_EXPIRES_SECONDS": 30,
    "TICKET_CODE_LENGTH": 6,
}


def engine_setting(name):
    """Return the configured value for ``name``, or its default."""
    overrides = getattr(settings, "QUEUE_ENGINE", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
