from django.db import models
from django.utils.translation import gettext_lazy as _


class TicketStatus(models.TextChoices):
    """Lifecycle of a ticket; terminal states are never left again"""

    WAITING = "waiting", _("Waiting")
    SERVING = "serving", _("Serving")
    COMPLETED = "completed", _("Completed")
    SKIPPED = "skipped", _("Skipped")
    CANCELLED = "cancelled", _("Cancelled")
    EXPIRED = "expired", _("Expired")

    @property
    def is_terminal(self):
        return not ALLOWED_TRANSITIONS[self]

    @property
    def is_active(self):
        return self in ACTIVE_STATUSES

    def can_transition_to(self, target):
        return TicketStatus(target) in ALLOWED_TRANSITIONS[self]


# Every status must appear here; a missing key fails loudly on lookup.
ALLOWED_TRANSITIONS = {
    TicketStatus.WAITING: frozenset(
        {TicketStatus.SERVING, TicketStatus.CANCELLED, TicketStatus.EXPIRED}
    ),
    TicketStatus.SERVING: frozenset({TicketStatus.COMPLETED, TicketStatus.SKIPPED}),
    TicketStatus.COMPLETED: frozenset(),
    TicketStatus.SKIPPED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
    TicketStatus.EXPIRED: frozenset(),
}

ACTIVE_STATUSES = (TicketStatus.WAITING, TicketStatus.SERVING)


class TicketAction(models.TextChoices):
    """Outcome an operator can record for the ticket being served"""

    COMPLETED = "completed", _("Completed")
    SKIPPED = "skipped", _("Skipped")

    @property
    def status(self):
        return TicketStatus(self.value)


class CrowdLevel(models.TextChoices):
    """Load at a counter relative to what it can serve in a day"""

    LOW = "low", _("Low")
    MODERATE = "moderate", _("Moderate")
    HIGH = "high", _("High")
    CRITICAL = "critical", _("Critical")
    UNKNOWN = "unknown", _("Unknown")
