import threading
from unittest.mock import patch

from django.core.cache import cache
from django.db import connection
from django.test import TransactionTestCase

from apps.queueapp.enums import TicketStatus
from apps.queueapp.models import Ticket
from apps.queueapp.services.queue_engine import QueueEngine
from core.exceptions import ConcurrencyConflictException

from .fixtures import NOW, make_counter, make_ticket, make_user, minutes

OPERATORS = 4


class ConcurrentCallNextTest(TransactionTestCase):
    """Several operators pressing "call next" on one counter at the same time"""

    def setUp(self):
        cache.clear()
        self.user = make_user()
        self.counter = make_counter()
        for age in range(OPERATORS):
            make_ticket(self.counter, self.user, created_at=NOW - minutes(age))

    @patch("apps.queueapp.signals.send_counter_update")
    def test_one_serving_ticket_under_parallel_calls(self, mock_send):
        errors = []

        def operator(step):
            try:
                QueueEngine.call_next(
                    self.counter.place_id, self.counter.name, now=NOW + minutes(step)
                )
            except ConcurrencyConflictException:
                pass
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=operator, args=(step,)) for step in range(OPERATORS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        tickets = Ticket.objects.filter(counter=self.counter)
        self.assertEqual(tickets.filter(status=TicketStatus.SERVING).count(), 1)
        self.assertEqual(
            tickets.filter(
                status__in=(TicketStatus.WAITING, TicketStatus.SERVING, TicketStatus.SKIPPED)
            ).count(),
            OPERATORS,
        )
