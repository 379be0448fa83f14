from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.placeapp.models import Counter, Place
from core.exceptions import InvalidOperationException

from .enums import ACTIVE_STATUSES, TicketStatus


class TicketQuerySet(models.QuerySet):
    """Read and conditional-write primitives the queue engine relies on"""

    def for_counter(self, counter):
        return self.filter(counter=counter)

    def waiting_for(self, counter):
        return self.for_counter(counter).filter(status=TicketStatus.WAITING).order_by(
            "created_at", "id"
        )

    def serving_for(self, counter):
        return (
            self.for_counter(counter)
            .filter(status=TicketStatus.SERVING)
            .order_by("serving_started_at", "id")
            .first()
        )

    def active_for(self, counter):
        return self.for_counter(counter).filter(status__in=ACTIVE_STATUSES)

    def recent_completed(self, counter, category_id, limit=10):
        return (
            self.for_counter(counter)
            .filter(
                category_id=category_id,
                status=TicketStatus.COMPLETED,
                service_duration__gt=0,
            )
            .order_by("-completed_at", "-id")[:limit]
        )

    def transition(self, ticket_id, expected, new, **fields):
        """
        Move one ticket from ``expected`` to ``new`` status atomically.

        The update only applies if the row is still in ``expected`` status, so
        a concurrent writer that got there first makes this return False.
        """
        expected = TicketStatus(expected)
        new = TicketStatus(new)
        if not expected.can_transition_to(new):
            raise InvalidOperationException(
                _("A ticket cannot move from %(old)s to %(new)s.")
                % {"old": expected.label, "new": new.label}
            )

        updated = self.filter(pk=ticket_id, status=expected).update(status=new, **fields)
        return updated == 1


class Ticket(models.Model):
    """A customer's place in a counter's line: walk-in or booked slot"""

    place = models.ForeignKey(
        Place, on_delete=models.PROTECT, related_name="tickets", verbose_name=_("Place")
    )
    counter = models.ForeignKey(
        Counter, on_delete=models.PROTECT, related_name="tickets", verbose_name=_("Counter")
    )
    category_id = models.CharField(_("Category ID"), max_length=50)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tickets",
        verbose_name=_("User"),
    )
    user_name = models.CharField(_("Booking Name"), max_length=150)
    ticket_code = models.CharField(_("Ticket Code"), max_length=16, unique=True)
    status = models.CharField(
        _("Status"), max_length=10, choices=TicketStatus.choices, default=TicketStatus.WAITING
    )
    created_at = models.DateTimeField(_("Created At"), default=timezone.now)
    # Present for booked slots, absent for walk-ins. Never changes once set.
    scheduled_time = models.DateTimeField(_("Scheduled Time"), null=True, blank=True)
    time_slot_label = models.CharField(_("Time Slot"), max_length=50, blank=True)
    served_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="served_tickets",
        verbose_name=_("Served By"),
        null=True,
        blank=True,
    )
    serving_started_at = models.DateTimeField(_("Serving Started At"), null=True, blank=True)
    completed_at = models.DateTimeField(_("Completed At"), null=True, blank=True)
    service_duration = models.FloatField(_("Service Duration (minutes)"), null=True, blank=True)

    objects = TicketQuerySet.as_manager()

    class Meta:
        verbose_name = _("Ticket")
        verbose_name_plural = _("Tickets")
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["counter", "status"], name="ticket_counter_status_idx"),
            models.Index(fields=["user", "status"], name="ticket_user_status_idx"),
            models.Index(fields=["scheduled_time"], name="ticket_scheduled_idx"),
            models.Index(fields=["completed_at"], name="ticket_completed_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["counter"],
                condition=Q(status="serving"),
                name="one_serving_ticket_per_counter",
            ),
        ]

    def __str__(self):
        return f"{self.ticket_code} - {self.user_name} at {self.counter}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_scheduled_time = instance.__dict__.get("scheduled_time")
        return instance

    def save(self, *args, **kwargs):
        loaded = getattr(self, "_loaded_scheduled_time", None)
        if loaded is not None and self.scheduled_time != loaded:
            raise InvalidOperationException(_("A booked slot time cannot be changed."))
        super().save(*args, **kwargs)
        self._loaded_scheduled_time = self.scheduled_time

    @property
    def is_walk_in(self):
        return self.scheduled_time is None

    @property
    def status_enum(self):
        return TicketStatus(self.status)
