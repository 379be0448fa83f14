"""
Entry point for everything outside the engine (views, admin, shell).

Every call names a counter by place id and counter name. Reads sweep
expired slots before simulating; writes sweep before selecting and
announce the change on the counter's channel group.
"""

import logging

from django.utils import timezone

from apps.queueapp.models import Ticket
from apps.queueapp.signals import queue_changed
from core.exceptions import ConcurrencyConflictException

from .crowd_classifier import CrowdClassifier
from .duration_estimator import DurationEstimator
from .expiration_sweeper import ExpirationSweeper
from .next_ticket_selector import NextTicketSelector
from .queue_simulator import NO_TICKET_SERVING, DurationMemo, QueueMetrics, QueueSimulator
from .ticket_service import TicketService

logger = logging.getLogger(__name__)

DASHBOARD_UPCOMING = 3


class QueueEngine:
    @staticmethod
    def resolve_counter(place_id, counter_name):
        return TicketService.resolve_counter(place_id, counter_name)

    @staticmethod
    def notify(counter, action, ticket=None):
        queue_changed.send(sender=QueueEngine, counter=counter, action=action, ticket=ticket)

    @staticmethod
    def _sweep(counter, now):
        expired = ExpirationSweeper.sweep(counter, now=now)
        if expired:
            QueueEngine.notify(counter, "expired")
        return expired

    # Reads

    @staticmethod
    def estimate(place_id, counter_name, category_id=None):
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        return DurationEstimator.estimate(counter, category_id)

    @staticmethod
    def detailed_estimate(place_id, counter_name, category_id=None):
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        return DurationEstimator.detailed_estimate(counter, category_id)

    @staticmethod
    def crowd_metrics(place_id, counter_name, now=None):
        """Crowd level for a counter; Unknown instead of an error when it cannot be computed."""
        try:
            counter = QueueEngine.resolve_counter(place_id, counter_name)
            QueueEngine._sweep(counter, now or timezone.now())
        except Exception as e:
            logger.warning(
                f"Crowd level unknown for place {place_id} counter {counter_name}: {str(e)}"
            )
            return CrowdClassifier.unknown()
        return CrowdClassifier.classify_counter(counter)

    @staticmethod
    def queue_metrics(place_id, counter_name, target_ticket_id=None, category_id=None, now=None):
        """People ahead and wait for a ticket, or for someone joining right now."""
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)
        return QueueSimulator.simulate(
            counter, target_ticket_id=target_ticket_id, category_id=category_id, now=now
        )

    @staticmethod
    def ticket_metrics(ticket, now=None):
        """
        Metrics for one existing ticket.

        Finished tickets report nobody ahead and no wait, along with the
        current crowd level of their counter.
        """
        now = now or timezone.now()
        QueueEngine._sweep(ticket.counter, now)
        ticket.refresh_from_db(fields=["status"])

        if ticket.status_enum.is_active:
            return QueueSimulator.simulate(ticket.counter, target_ticket_id=ticket.pk, now=now)

        crowd = CrowdClassifier.classify_counter(ticket.counter)
        serving = Ticket.objects.serving_for(ticket.counter)
        return QueueMetrics(
            people_ahead=0,
            estimated_wait=0,
            crowd_level=crowd.level,
            pace=crowd.pace,
            now_serving=serving.ticket_code if serving else NO_TICKET_SERVING,
        )

    @staticmethod
    def counter_stats(place_id, counter_name, category_id=None, now=None):
        """
        Everything someone about to join would see, from one counter lookup.

        Returns the counter with its queue metrics for a hypothetical walk-in,
        its crowd level and the duration breakdown for ``category_id``.
        """
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)

        memo = DurationMemo(counter)
        pace = memo.minutes(counter.default_category_id())
        return {
            "counter": counter,
            "queue": QueueSimulator.simulate(counter, category_id=category_id, now=now, memo=memo),
            "crowd": CrowdClassifier.classify_counter(counter, pace=pace),
            "estimate": DurationEstimator.detailed_estimate(counter, category_id),
        }

    @staticmethod
    def counter_status(place_id, counter_name, now=None):
        """Operator dashboard: who is served, today's counts and who comes next."""
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)

        memo = DurationMemo(counter)
        schedule = QueueSimulator.projected_schedule(counter, now=now, memo=memo)
        return {
            "counter": counter,
            "serving": Ticket.objects.serving_for(counter),
            "counts": TicketService.daily_counts(counter, now=now),
            "upcoming": schedule[:DASHBOARD_UPCOMING],
            "pace": memo.minutes(counter.default_category_id()),
        }

    @staticmethod
    def todays_tickets(place_id, counter_name, now=None):
        """
        Every ticket the counter handled or holds today, in join order.

        Waiting tickets are paired with their projected turn; the others with
        None.
        """
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)

        turns = {
            turn.ticket.pk: turn for turn in QueueSimulator.projected_schedule(counter, now=now)
        }
        return [
            (ticket, turns.get(ticket.pk))
            for ticket in TicketService.todays_tickets(counter, now=now)
        ]

    # Writes

    @staticmethod
    def call_next(place_id, counter_name, staff_user=None, now=None):
        """
        Promote the next ticket to Serving, or return None if nobody waits.

        A selection that loses a race is retried once before the conflict is
        surfaced to the caller.
        """
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)

        try:
            ticket = NextTicketSelector.select_next(counter, now=now, staff_user=staff_user)
        except ConcurrencyConflictException as e:
            logger.warning(f"Call next conflicted at counter {counter.pk}, retrying: {e.message}")
            ticket = NextTicketSelector.select_next(counter, now=now, staff_user=staff_user)

        if ticket is not None:
            QueueEngine.notify(counter, "call_next", ticket)
        return ticket

    @staticmethod
    def sweep_expired(place_id, counter_name, now=None):
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        return QueueEngine._sweep(counter, now or timezone.now())

    @staticmethod
    def join(user, place_id, counter_name, now=None, **options):
        """Join a counter and return ``(ticket, metrics)`` for the new ticket."""
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)

        ticket = TicketService.join_queue(user, counter, now=now, **options)
        QueueEngine.notify(counter, "join", ticket)
        return ticket, QueueSimulator.simulate(counter, target_ticket_id=ticket.pk, now=now)

    @staticmethod
    def cancel(ticket_id, user, now=None):
        now = now or timezone.now()
        ticket = TicketService.get_ticket(ticket_id)
        QueueEngine._sweep(ticket.counter, now)
        ticket.refresh_from_db(fields=["status"])

        ticket = TicketService.cancel_ticket(ticket, user, now=now)
        QueueEngine.notify(ticket.counter, "cancel", ticket)
        return ticket

    @staticmethod
    def record_action(place_id, counter_name, action, now=None):
        now = now or timezone.now()
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        QueueEngine._sweep(counter, now)

        ticket = TicketService.apply_action(counter, action, now=now)
        QueueEngine.notify(counter, ticket.status, ticket)
        return ticket

    @staticmethod
    def report_wait(place_id, counter_name, minutes, now=None):
        counter = QueueEngine.resolve_counter(place_id, counter_name)
        counter.record_wait_report(minutes, now=now)
        return counter

    @staticmethod
    def user_tickets(user, now=None):
        """The caller's current tickets, each paired with its metrics."""
        now = now or timezone.now()
        return [
            (ticket, QueueEngine.ticket_metrics(ticket, now=now))
            for ticket in TicketService.user_tickets(user, now=now)
        ]

    @staticmethod
    def history(user, limit=50):
        return TicketService.ticket_history(user, limit=limit)

