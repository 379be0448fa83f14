import datetime
import math
import secrets

from django.utils import timezone

# No 0/O or 1/I, so codes can be read out loud at a counter
TICKET_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_ticket_code(length=6):
    """
    Generate a short display code for a ticket, e.g. "K7PX2M".
    Uniqueness is enforced by the caller against the database.
    """
    return "".join(secrets.choice(TICKET_CODE_ALPHABET) for _ in range(length))


def round_half_up(value):
    """Round to the nearest integer with .5 going up (round(4.5) == 5)."""
    # Trim float noise first so 0.3 * 5 + 0.7 * 4 lands on 4.3, not 4.2999...
    return int(math.floor(round(value, 9) + 0.5))


def minutes_between(start_time, end_time=None):
    """
    Calculate the time difference between two timestamps in (fractional) minutes.
    If end_time is not provided, current time is used.
    """
    if end_time is None:
        end_time = timezone.now()

    return (end_time - start_time).total_seconds() / 60


def today_window(now=None):
    """Start and end of the current local day, as aware datetimes."""
    now = timezone.localtime(now or timezone.now())
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + datetime.timedelta(days=1)

