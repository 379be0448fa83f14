from django.db import IntegrityError, transaction
from django.test import TestCase

from apps.queueapp.enums import TicketAction, TicketStatus
from apps.queueapp.models import Ticket
from core.exceptions import InvalidOperationException

from .fixtures import NOW, make_counter, make_history, make_ticket, make_user, minutes


class TicketStatusTest(TestCase):
    def test_terminal_statuses(self):
        """Only Waiting and Serving can still change"""
        self.assertFalse(TicketStatus.WAITING.is_terminal)
        self.assertFalse(TicketStatus.SERVING.is_terminal)
        for status in (
            TicketStatus.COMPLETED,
            TicketStatus.SKIPPED,
            TicketStatus.CANCELLED,
            TicketStatus.EXPIRED,
        ):
            self.assertTrue(status.is_terminal)
            self.assertFalse(status.is_active)

    def test_allowed_transitions(self):
        self.assertTrue(TicketStatus.WAITING.can_transition_to(TicketStatus.SERVING))
        self.assertTrue(TicketStatus.WAITING.can_transition_to("expired"))
        self.assertTrue(TicketStatus.SERVING.can_transition_to(TicketStatus.SKIPPED))
        self.assertFalse(TicketStatus.WAITING.can_transition_to(TicketStatus.COMPLETED))
        self.assertFalse(TicketStatus.SERVING.can_transition_to(TicketStatus.CANCELLED))
        self.assertFalse(TicketStatus.EXPIRED.can_transition_to(TicketStatus.WAITING))

    def test_action_maps_to_status(self):
        self.assertEqual(TicketAction.COMPLETED.status, TicketStatus.COMPLETED)
        self.assertEqual(TicketAction.SKIPPED.status, TicketStatus.SKIPPED)


class TicketQuerySetTest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.counter = make_counter()
        self.other_counter = make_counter(name="Teller 2", place=self.counter.place)

    def test_waiting_for_orders_by_creation_then_id(self):
        """Tickets created in the same instant keep their insertion order"""
        first = make_ticket(self.counter, self.user, created_at=NOW)
        second = make_ticket(self.counter, self.user, created_at=NOW)
        earlier = make_ticket(self.counter, self.user, created_at=NOW - minutes(1))
        make_ticket(self.other_counter, self.user)
        make_ticket(self.counter, self.user, status=TicketStatus.CANCELLED)

        waiting = list(Ticket.objects.waiting_for(self.counter))

        self.assertEqual(waiting, [earlier, first, second])

    def test_serving_for(self):
        self.assertIsNone(Ticket.objects.serving_for(self.counter))
        serving = make_ticket(self.counter, self.user, status=TicketStatus.SERVING)
        self.assertEqual(Ticket.objects.serving_for(self.counter), serving)

    def test_recent_completed_newest_first_with_positive_duration(self):
        history = make_history(self.counter, self.user, [3, 4, 5])
        make_ticket(
            self.counter,
            self.user,
            status=TicketStatus.COMPLETED,
            completed_at=NOW,
            service_duration=0,
        )
        make_history(self.counter, self.user, [9], category_id="loans")

        recent = list(Ticket.objects.recent_completed(self.counter, "general", limit=2))

        self.assertEqual(recent, history[:2])

    def test_transition_is_conditional(self):
        """A second writer expecting the old status changes nothing"""
        ticket = make_ticket(self.counter, self.user)

        self.assertTrue(
            Ticket.objects.transition(ticket.pk, TicketStatus.WAITING, TicketStatus.CANCELLED)
        )
        self.assertFalse(
            Ticket.objects.transition(ticket.pk, TicketStatus.WAITING, TicketStatus.EXPIRED)
        )
        ticket.refresh_from_db()
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)

    def test_transition_rejects_illegal_move(self):
        ticket = make_ticket(self.counter, self.user, status=TicketStatus.COMPLETED)

        with self.assertRaises(InvalidOperationException):
            Ticket.objects.transition(ticket.pk, TicketStatus.COMPLETED, TicketStatus.WAITING)


class TicketModelTest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.counter = make_counter()

    def test_only_one_serving_ticket_per_counter(self):
        make_ticket(self.counter, self.user, status=TicketStatus.SERVING)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                make_ticket(self.counter, self.user, status=TicketStatus.SERVING)

    def test_scheduled_time_cannot_change(self):
        ticket = make_ticket(self.counter, self.user, scheduled_time=NOW + minutes(30))
        ticket = Ticket.objects.get(pk=ticket.pk)

        ticket.scheduled_time = NOW + minutes(60)
        with self.assertRaises(InvalidOperationException):
            ticket.save()

    def test_other_fields_can_still_be_saved(self):
        ticket = make_ticket(self.counter, self.user, scheduled_time=NOW + minutes(30))
        ticket = Ticket.objects.get(pk=ticket.pk)

        ticket.time_slot_label = "10:30 - 10:45"
        ticket.save()

        self.assertEqual(Ticket.objects.get(pk=ticket.pk).time_slot_label, "10:30 - 10:45")
        self.assertFalse(ticket.is_walk_in)
