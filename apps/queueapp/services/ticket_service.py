import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.placeapp.models import Counter, Place, ServiceCategory
from apps.queueapp.conf import engine_setting
from apps.queueapp.enums import ACTIVE_STATUSES, TicketAction, TicketStatus
from apps.queueapp.models import Ticket
from apps.queueapp.utils.queue_utils import generate_ticket_code, minutes_between, today_window
from core.exceptions import (
    ConcurrencyConflictException,
    InvalidDataException,
    InvalidOperationException,
    PermissionDeniedException,
    ResourceNotFoundException,
)

from .locking import counter_guard

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


class TicketService:
    """
    Ticket lifecycle outside of "call next": joining, cancelling, recording
    the outcome of a service and the per-user views.
    """

    @staticmethod
    def resolve_counter(place_id, counter_name):
        """Load a counter by place and name, raising NotFound for either."""
        try:
            place = Place.objects.get(pk=place_id)
        except (Place.DoesNotExist, ValidationError, ValueError):
            raise ResourceNotFoundException(f"Place {place_id} not found")

        try:
            return Counter.objects.select_related("place").get(place=place, name=counter_name)
        except Counter.DoesNotExist:
            raise ResourceNotFoundException(
                f"Counter {counter_name} not found at {place.name}"
            )

    @staticmethod
    def get_ticket(ticket_id):
        try:
            return Ticket.objects.select_related("place", "counter").get(pk=ticket_id)
        except (Ticket.DoesNotExist, ValueError):
            raise ResourceNotFoundException(f"Ticket {ticket_id} not found")

    @staticmethod
    def generate_unique_code():
        length = engine_setting("TICKET_CODE_LENGTH")
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_ticket_code(length)
            if not Ticket.objects.filter(ticket_code=code).exists():
                return code
        raise ConcurrencyConflictException("Could not allocate a ticket code, please retry.")

    @staticmethod
    def join_queue(
        user,
        counter,
        category_id=None,
        scheduled_time=None,
        time_slot_label="",
        user_name=None,
        now=None,
    ):
        """
        Create a Waiting ticket at ``counter``.

        Without ``scheduled_time`` the ticket is a walk-in; with it, a booked
        slot. A slot already past the expiry grace period is rejected since
        the sweeper would expire it straight away.
        """
        now = now or timezone.now()
        category_id = category_id or counter.default_category_id()

        if not counter.has_category(category_id):
            raise InvalidDataException(
                f"Counter {counter.name} does not offer category {category_id}"
            )

        if scheduled_time is not None:
            grace = timedelta(minutes=engine_setting("EXPIRY_GRACE_MINUTES"))
            if scheduled_time < now - grace:
                raise InvalidDataException("The requested time slot has already passed.")

        name = user_name or user.get_full_name() or user.get_username()

        # One retry covers two joins drawing the same code at the same moment
        for attempt in range(2):
            try:
                with transaction.atomic():
                    ticket = Ticket.objects.create(
                        place=counter.place,
                        counter=counter,
                        category_id=category_id,
                        user=user,
                        user_name=name,
                        ticket_code=TicketService.generate_unique_code(),
                        status=TicketStatus.WAITING,
                        created_at=now,
                        scheduled_time=scheduled_time,
                        time_slot_label=time_slot_label or "",
                    )
                break
            except IntegrityError:
                if attempt:
                    raise
                logger.warning(f"Ticket code collision at counter {counter.pk}, retrying")

        logger.info(
            f"User {user.pk} joined counter {counter.pk} with ticket {ticket.ticket_code}"
            f" ({'slot' if scheduled_time else 'walk-in'})"
        )
        return ticket

    @staticmethod
    def cancel_ticket(ticket, user, now=None):
        """Cancel a Waiting ticket on behalf of its owner."""
        now = now or timezone.now()

        if ticket.user_id != user.pk:
            raise PermissionDeniedException("You can only cancel your own tickets.")
        if ticket.status != TicketStatus.WAITING:
            raise InvalidOperationException(
                f"Ticket {ticket.ticket_code} is {ticket.status} and can no longer be cancelled."
            )

        with counter_guard(ticket.counter):
            cancelled = Ticket.objects.transition(
                ticket.pk, TicketStatus.WAITING, TicketStatus.CANCELLED, completed_at=now
            )
            if not cancelled:
                raise ConcurrencyConflictException(
                    f"Ticket {ticket.ticket_code} changed while being cancelled."
                )

        logger.info(f"Ticket {ticket.ticket_code} cancelled by its owner")
        ticket.refresh_from_db()
        return ticket

    @staticmethod
    def apply_action(counter, action, now=None):
        """
        Record the outcome of the ticket currently served at ``counter``.

        ``completed`` stores the service duration used by the estimator and
        bumps the category's served count; ``skipped`` only closes the ticket.
        """
        now = now or timezone.now()
        try:
            action = TicketAction(action)
        except ValueError:
            raise InvalidDataException(f"Unknown action: {action}")

        with counter_guard(counter) as locked:
            serving = Ticket.objects.serving_for(locked)
            if serving is None:
                raise InvalidOperationException(f"No ticket is being served at {locked.name}.")

            fields = {"completed_at": now}
            if action == TicketAction.COMPLETED:
                started = serving.serving_started_at or now
                fields["service_duration"] = max(0.0, minutes_between(started, now))

            changed = Ticket.objects.transition(
                serving.pk, TicketStatus.SERVING, action.status, **fields
            )
            if not changed:
                raise ConcurrencyConflictException(
                    f"Ticket {serving.ticket_code} changed while recording {action.value}."
                )

            if action == TicketAction.COMPLETED:
                ServiceCategory.objects.filter(
                    counter=locked, category_id=serving.category_id
                ).update(total_served=F("total_served") + 1)

        logger.info(f"Ticket {serving.ticket_code} marked {action.value} at counter {counter.pk}")
        serving.refresh_from_db()
        return serving

    @staticmethod
    def user_tickets(user, now=None):
        """Active tickets plus the ones finished today, oldest first."""
        start, end = today_window(now)
        return (
            Ticket.objects.select_related("place", "counter")
            .filter(user=user)
            .filter(
                Q(status__in=ACTIVE_STATUSES)
                | Q(
                    status=TicketStatus.COMPLETED,
                    completed_at__gte=start,
                    completed_at__lt=end,
                )
            )
            .order_by("created_at", "id")
        )

    @staticmethod
    def ticket_history(user, limit=50):
        return (
            Ticket.objects.select_related("place", "counter")
            .filter(user=user, status__in=[TicketStatus.COMPLETED, TicketStatus.SKIPPED])
            .order_by("-completed_at", "-id")[:limit]
        )

    @staticmethod
    def todays_tickets(counter, now=None):
        """Waiting and Serving tickets plus those completed or skipped today."""
        start, end = today_window(now)
        return (
            Ticket.objects.for_counter(counter)
            .filter(
                Q(status__in=ACTIVE_STATUSES)
                | Q(
                    status__in=(TicketStatus.COMPLETED, TicketStatus.SKIPPED),
                    completed_at__gte=start,
                    completed_at__lt=end,
                )
            )
            .order_by("created_at", "id")
        )

    @staticmethod
    def daily_counts(counter, now=None):
        """Waiting right now, completed and skipped today."""
        start, end = today_window(now)
        finished_today = Ticket.objects.for_counter(counter).filter(
            completed_at__gte=start, completed_at__lt=end
        )
        return {
            "waiting": Ticket.objects.waiting_for(counter).count(),
            "completed": finished_today.filter(status=TicketStatus.COMPLETED).count(),
            "skipped": finished_today.filter(status=TicketStatus.SKIPPED).count(),
        }
