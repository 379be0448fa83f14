import uuid
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase

from apps.queueapp.enums import CrowdLevel, TicketStatus
from apps.queueapp.services.expiration_sweeper import ExpirationSweeper
from apps.queueapp.services.next_ticket_selector import NextTicketSelector
from apps.queueapp.services.queue_engine import QueueEngine
from core.exceptions import (
    ConcurrencyConflictException,
    InvalidOperationException,
    ResourceNotFoundException,
)

from .fixtures import NOW, make_counter, make_history, make_ticket, make_user, minutes


class QueueEngineTest(TestCase):
    def setUp(self):
        cache.clear()
        self.user = make_user()
        self.counter = make_counter()
        self.place_id = self.counter.place_id
        self.name = self.counter.name

    def test_estimate_and_breakdown(self):
        make_history(self.counter, self.user, [4, 4, 4])

        self.assertEqual(QueueEngine.estimate(self.place_id, self.name), 4)
        breakdown = QueueEngine.detailed_estimate(self.place_id, self.name, "general")
        self.assertEqual(breakdown.as_dict(), {"staff": 5, "system": 4, "final": 4, "samples": 3})

    def test_unknown_counter_is_not_found(self):
        with self.assertRaises(ResourceNotFoundException):
            QueueEngine.queue_metrics(self.place_id, "Teller 9", now=NOW)
        with self.assertRaises(ResourceNotFoundException):
            QueueEngine.call_next(uuid.uuid4(), self.name, now=NOW)

    def test_crowd_metrics_never_raise(self):
        metrics = QueueEngine.crowd_metrics(uuid.uuid4(), "Nowhere", now=NOW)
        self.assertEqual(metrics.level, CrowdLevel.UNKNOWN)
        self.assertEqual(metrics.pace, 10)

    def test_queue_metrics_sweeps_first(self):
        """Overdue bookings never show up as people ahead"""
        stale = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))
        make_ticket(self.counter, self.user, created_at=NOW - minutes(1))

        metrics = QueueEngine.queue_metrics(self.place_id, self.name, now=NOW)

        self.assertEqual(metrics.people_ahead, 1)
        stale.refresh_from_db()
        self.assertEqual(stale.status, TicketStatus.EXPIRED)

    def test_call_next_sweeps_before_selecting(self):
        make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))
        walk_in = make_ticket(self.counter, self.user, created_at=NOW - minutes(1))

        self.assertEqual(QueueEngine.call_next(self.place_id, self.name, now=NOW), walk_in)

    def test_call_next_on_empty_queue(self):
        self.assertIsNone(QueueEngine.call_next(self.place_id, self.name, now=NOW))

    @patch.object(NextTicketSelector, "select_next")
    def test_call_next_retries_once(self, mock_select):
        ticket = make_ticket(self.counter, self.user)
        mock_select.side_effect = [ConcurrencyConflictException(), ticket]

        self.assertEqual(QueueEngine.call_next(self.place_id, self.name, now=NOW), ticket)
        self.assertEqual(mock_select.call_count, 2)

    @patch.object(NextTicketSelector, "select_next")
    def test_call_next_gives_up_after_second_conflict(self, mock_select):
        mock_select.side_effect = ConcurrencyConflictException()

        with self.assertRaises(ConcurrencyConflictException):
            QueueEngine.call_next(self.place_id, self.name, now=NOW)
        self.assertEqual(mock_select.call_count, 2)

    @patch("apps.queueapp.signals.send_counter_update")
    def test_mutations_notify_after_commit(self, mock_send):
        with self.captureOnCommitCallbacks(execute=True):
            ticket, _ = QueueEngine.join(self.user, self.place_id, self.name, now=NOW)

        mock_send.assert_called_once()
        counter_id, action, payload = mock_send.call_args[0]
        self.assertEqual(counter_id, self.counter.pk)
        self.assertEqual(action, "join")
        self.assertEqual(payload["ticket_code"], ticket.ticket_code)

    @patch("apps.queueapp.signals.send_counter_update")
    def test_empty_call_next_does_not_notify(self, mock_send):
        with self.captureOnCommitCallbacks(execute=True):
            QueueEngine.call_next(self.place_id, self.name, now=NOW)

        mock_send.assert_not_called()

    def test_join_reports_position(self):
        make_ticket(self.counter, self.user, created_at=NOW - minutes(3))

        ticket, metrics = QueueEngine.join(self.user, self.place_id, self.name, now=NOW)

        self.assertEqual(ticket.status, TicketStatus.WAITING)
        self.assertEqual(metrics.people_ahead, 1)
        self.assertEqual(metrics.estimated_wait, 5)

    def test_full_service_cycle(self):
        ticket, _ = QueueEngine.join(self.user, self.place_id, self.name, now=NOW)

        called = QueueEngine.call_next(self.place_id, self.name, now=NOW + minutes(1))
        self.assertEqual(called, ticket)

        done = QueueEngine.record_action(
            self.place_id, self.name, "completed", now=NOW + minutes(7)
        )
        self.assertEqual(done.status, TicketStatus.COMPLETED)
        self.assertAlmostEqual(done.service_duration, 6.0)

    def test_ticket_metrics_for_finished_ticket(self):
        ticket = make_ticket(self.counter, self.user, status=TicketStatus.CANCELLED)

        metrics = QueueEngine.ticket_metrics(ticket, now=NOW)

        self.assertEqual(metrics.people_ahead, 0)
        self.assertEqual(metrics.estimated_wait, 0)

    def test_ticket_metrics_for_expired_slot(self):
        ticket = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))

        metrics = QueueEngine.ticket_metrics(ticket, now=NOW)

        self.assertEqual(metrics.people_ahead, 0)
        self.assertEqual(ticket.status, TicketStatus.EXPIRED)

    def test_counter_status(self):
        serving = make_ticket(
            self.counter, self.user, status=TicketStatus.SERVING, serving_started_at=NOW
        )
        waiting = [
            make_ticket(self.counter, self.user, created_at=NOW - minutes(i)) for i in range(4)
        ]

        dashboard = QueueEngine.counter_status(self.place_id, self.name, now=NOW)

        self.assertEqual(dashboard["serving"], serving)
        self.assertEqual(dashboard["counts"]["waiting"], 4)
        self.assertEqual(
            [turn.ticket for turn in dashboard["upcoming"]], list(reversed(waiting))[:3]
        )
        self.assertEqual([turn.people_ahead for turn in dashboard["upcoming"]], [1, 2, 3])

    def test_report_wait(self):
        counter = QueueEngine.report_wait(self.place_id, self.name, 12, now=NOW)

        self.assertEqual(counter.reported_wait_minutes, 12)
        self.assertEqual(counter.wait_reports_count, 1)

    def test_operator_action_expires_overdue_slots_first(self):
        make_ticket(
            self.counter, self.user, status=TicketStatus.SERVING, serving_started_at=NOW - minutes(5)
        )
        stale = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))

        QueueEngine.record_action(self.place_id, self.name, "completed", now=NOW)

        stale.refresh_from_db()
        self.assertEqual(stale.status, TicketStatus.EXPIRED)

    def test_cancel_expires_overdue_slots_first(self):
        other = make_user("other")
        stale = make_ticket(self.counter, other, scheduled_time=NOW - minutes(45))
        mine = make_ticket(self.counter, self.user)

        QueueEngine.cancel(mine.pk, self.user, now=NOW)

        stale.refresh_from_db()
        self.assertEqual(stale.status, TicketStatus.EXPIRED)

    def test_cancel_of_an_overdue_slot_is_refused(self):
        """The slot expires before the cancel is looked at"""
        slot = make_ticket(self.counter, self.user, scheduled_time=NOW - minutes(45))

        with self.assertRaises(InvalidOperationException):
            QueueEngine.cancel(slot.pk, self.user, now=NOW)

        slot.refresh_from_db()
        self.assertEqual(slot.status, TicketStatus.EXPIRED)

    def test_counter_stats_looks_up_and_sweeps_once(self):
        make_history(self.counter, self.user, [4, 4, 4])
        make_ticket(self.counter, self.user, created_at=NOW - minutes(2))

        with patch.object(
            QueueEngine, "resolve_counter", wraps=QueueEngine.resolve_counter
        ) as mock_resolve, patch.object(
            ExpirationSweeper, "sweep", wraps=ExpirationSweeper.sweep
        ) as mock_sweep:
            stats = QueueEngine.counter_stats(self.place_id, self.name, now=NOW)

        self.assertEqual(mock_resolve.call_count, 1)
        self.assertEqual(mock_sweep.call_count, 1)
        self.assertEqual(stats["counter"], self.counter)
        self.assertEqual(stats["queue"].people_ahead, 1)
        self.assertEqual(stats["queue"].estimated_wait, 4)
        self.assertEqual(stats["crowd"].active_count, 1)
        self.assertEqual(stats["crowd"].pace, 4)
        self.assertEqual(stats["estimate"].final, 4)

    def test_todays_tickets(self):
        serving = make_ticket(
            self.counter,
            self.user,
            status=TicketStatus.SERVING,
            serving_started_at=NOW,
            created_at=NOW - minutes(20),
        )
        done = make_ticket(
            self.counter,
            self.user,
            status=TicketStatus.COMPLETED,
            created_at=NOW - minutes(60),
            serving_started_at=NOW - minutes(40),
            completed_at=NOW - minutes(35),
            service_duration=5,
        )
        make_ticket(
            self.counter,
            self.user,
            status=TicketStatus.COMPLETED,
            created_at=NOW - minutes(24 * 60 + 60),
            serving_started_at=NOW - minutes(24 * 60 + 40),
            completed_at=NOW - minutes(24 * 60 + 35),
            service_duration=5,
        )
        make_ticket(self.counter, self.user, status=TicketStatus.CANCELLED)
        first = make_ticket(self.counter, self.user, created_at=NOW - minutes(10))
        second = make_ticket(self.counter, self.user, created_at=NOW - minutes(5))

        rows = QueueEngine.todays_tickets(self.place_id, self.name, now=NOW)

        self.assertEqual([ticket for ticket, _ in rows], [done, serving, first, second])
        turns = dict(rows)
        self.assertIsNone(turns[done])
        self.assertIsNone(turns[serving])
        self.assertEqual(turns[first].people_ahead, 1)
        self.assertEqual(turns[first].estimated_wait, 5)
        self.assertEqual(turns[second].people_ahead, 2)
        self.assertEqual(turns[second].estimated_wait, 10)
