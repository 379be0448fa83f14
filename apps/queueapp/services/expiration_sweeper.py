import logging
from datetime import timedelta

from django.utils import timezone

from apps.queueapp.conf import engine_setting
from apps.queueapp.enums import TicketStatus
from apps.queueapp.models import Ticket

logger = logging.getLogger(__name__)


class ExpirationSweeper:
    """Expires booked slots nobody showed up for"""

    @staticmethod
    def cutoff(now=None):
        now = now or timezone.now()
        return now - timedelta(minutes=engine_setting("EXPIRY_GRACE_MINUTES"))

    @staticmethod
    def overdue(counter, now=None):
        return Ticket.objects.waiting_for(counter).filter(
            scheduled_time__isnull=False,
            scheduled_time__lt=ExpirationSweeper.cutoff(now),
        )

    @staticmethod
    def sweep(counter, now=None):
        """
        Move every overdue Waiting slot at ``counter`` to Expired.

        A single conditional UPDATE, so running it twice is a no-op the second
        time and a ticket promoted meanwhile is left alone. Returns the number
        of tickets expired.
        """
        now = now or timezone.now()

        # Status stays in the filter so only Waiting rows are ever touched
        expired = ExpirationSweeper.overdue(counter, now).update(
            status=TicketStatus.EXPIRED, completed_at=now
        )

        if expired:
            logger.info(f"Expired {expired} overdue slot ticket(s) at counter {counter.pk}")
        return expired
