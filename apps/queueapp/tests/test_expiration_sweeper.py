from django.test import TestCase

from apps.queueapp.enums import TicketStatus
from apps.queueapp.services.expiration_sweeper import ExpirationSweeper
from apps.queueapp.services.queue_simulator import QueueSimulator

from .fixtures import NOW, make_counter, make_ticket, make_user, minutes


class ExpirationSweeperTest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.counter = make_counter()

    def test_no_show_slot_expires(self):
        """A slot 45 minutes overdue is expired and no longer counted"""
        stale = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))

        self.assertEqual(QueueSimulator.simulate(self.counter, now=NOW).people_ahead, 1)

        self.assertEqual(ExpirationSweeper.sweep(self.counter, now=NOW), 1)

        stale.refresh_from_db()
        self.assertEqual(stale.status, TicketStatus.EXPIRED)
        self.assertEqual(stale.completed_at, NOW)
        self.assertEqual(QueueSimulator.simulate(self.counter, now=NOW).people_ahead, 0)

    def test_sweep_is_idempotent(self):
        make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))
        make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(90))

        self.assertEqual(ExpirationSweeper.sweep(self.counter, now=NOW), 2)
        expired = set(self.counter.tickets.filter(status=TicketStatus.EXPIRED))

        self.assertEqual(ExpirationSweeper.sweep(self.counter, now=NOW), 0)
        self.assertEqual(set(self.counter.tickets.filter(status=TicketStatus.EXPIRED)), expired)

    def test_grace_period(self):
        recent = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(29))
        edge = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(30))

        self.assertEqual(ExpirationSweeper.sweep(self.counter, now=NOW), 0)

        for ticket in (recent, edge):
            ticket.refresh_from_db()
            self.assertEqual(ticket.status, TicketStatus.WAITING)

    def test_only_waiting_slots_expire(self):
        walk_in = make_ticket(self.counter, self.user, created_at=NOW - minutes(120))
        serving = make_ticket(
            self.counter,
            self.user,
            status=TicketStatus.SERVING,
            scheduled_time=NOW - minutes(60),
        )
        other_counter = make_counter(name="Teller 2", place=self.counter.place)
        elsewhere = make_ticket(other_counter, self.user, scheduled_time=NOW - minutes(60))

        self.assertEqual(ExpirationSweeper.sweep(self.counter, now=NOW), 0)

        for ticket in (walk_in, serving, elsewhere):
            ticket.refresh_from_db()
        self.assertEqual(walk_in.status, TicketStatus.WAITING)
        self.assertEqual(serving.status, TicketStatus.SERVING)
        self.assertEqual(elsewhere.status, TicketStatus.WAITING)
