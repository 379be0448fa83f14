import logging
from datetime import timedelta

from django.db import IntegrityError
from django.utils import timezone

from apps.queueapp.conf import engine_setting
from apps.queueapp.enums import TicketStatus
from apps.queueapp.models import Ticket
from core.exceptions import ConcurrencyConflictException

from .locking import counter_guard
from .queue_simulator import QueueSimulator

logger = logging.getLogger(__name__)


class NextTicketSelector:
    """
    Decides who a counter serves next and promotes that ticket.

    Priority: a booked slot that is due (within the call-ahead window) beats
    everyone, then the oldest walk-in, then the earliest future slot so the
    counter never idles while a booking exists.
    """

    @staticmethod
    def choose(waiting, now):
        """Pick a ticket from ``waiting`` without touching the database."""
        walk_ins, slotted = QueueSimulator.split_waiting(waiting)
        due_by = now + timedelta(minutes=engine_setting("SLOT_CALL_AHEAD_MINUTES"))

        if slotted and slotted[0].scheduled_time <= due_by:
            return slotted[0]
        if walk_ins:
            return walk_ins[0]
        if slotted:
            return slotted[0]
        return None

    @staticmethod
    def select_next(counter, now=None, staff_user=None):
        """
        Promote the next ticket at ``counter`` to Serving and return it.

        Returns None when nobody is waiting; the ticket being served, if
        any, is left untouched in that case. Otherwise that ticket is closed
        out as Skipped first. Raises ConcurrencyConflictException when a
        conditional update loses a race; the whole step is rolled back.
        """
        now = now or timezone.now()

        with counter_guard(counter) as locked:
            waiting = list(Ticket.objects.waiting_for(locked))
            chosen = NextTicketSelector.choose(waiting, now)
            if chosen is None:
                logger.info(f"Call next at counter {locked.pk}: queue empty")
                return None

            serving = Ticket.objects.serving_for(locked)
            if serving is not None:
                demoted = Ticket.objects.transition(
                    serving.pk, TicketStatus.SERVING, TicketStatus.SKIPPED, completed_at=now
                )
                if not demoted:
                    raise ConcurrencyConflictException(
                        f"Ticket {serving.ticket_code} changed while being closed out."
                    )
                logger.info(
                    f"Demoted abandoned ticket {serving.ticket_code} to skipped "
                    f"at counter {locked.pk}"
                )

            try:
                promoted = Ticket.objects.transition(
                    chosen.pk,
                    TicketStatus.WAITING,
                    TicketStatus.SERVING,
                    serving_started_at=now,
                    served_by=staff_user,
                )
            except IntegrityError as e:
                raise ConcurrencyConflictException(
                    f"Counter {locked.name} already has a ticket being served."
                ) from e

            if not promoted:
                logger.warning(
                    f"Ticket {chosen.ticket_code} left the waiting list before promotion"
                )
                raise ConcurrencyConflictException(
                    f"Ticket {chosen.ticket_code} is no longer waiting."
                )

            logger.info(f"Now serving {chosen.ticket_code} at counter {locked.pk}")
            return Ticket.objects.get(pk=chosen.pk)
