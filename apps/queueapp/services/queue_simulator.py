"""
Virtual-clock projection of a counter's line.

Booked slots and walk-ins share one counter. To tell a customer how many
people are ahead and how long they will wait, the line is replayed on a
virtual clock: a slot whose time has come is served first, otherwise the
oldest walk-in, otherwise the clock jumps forward to the next slot. Each
served candidate pushes the clock by its category's estimated duration.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from django.utils import timezone

from apps.queueapp.models import Ticket
from apps.queueapp.utils.queue_utils import minutes_between, round_half_up
from core.exceptions import ResourceNotFoundException

from .crowd_classifier import CrowdClassifier
from .duration_estimator import DurationEstimator

logger = logging.getLogger(__name__)

NO_TICKET_SERVING = "None"


@dataclass(frozen=True, eq=False)
class RealCandidate:
    """A ticket that is actually waiting at the counter"""

    ticket: Ticket

    @property
    def category_id(self):
        return self.ticket.category_id


@dataclass(frozen=True, eq=False)
class HypotheticalCandidate:
    """A walk-in that would join right now; never persisted"""

    category_id: str


Candidate = Union[RealCandidate, HypotheticalCandidate]


class DurationMemo:
    """Per-simulation cache of category durations; discard after one call"""

    def __init__(self, counter):
        self.counter = counter
        self._minutes = {}

    def minutes(self, category_id):
        if category_id not in self._minutes:
            self._minutes[category_id] = DurationEstimator.estimate(self.counter, category_id)
        return self._minutes[category_id]


@dataclass(frozen=True)
class QueueMetrics:
    people_ahead: int
    estimated_wait: int
    crowd_level: str
    pace: int
    now_serving: str

    def as_dict(self):
        return {
            "people_ahead": self.people_ahead,
            "estimated_wait": self.estimated_wait,
            "crowd_level": self.crowd_level,
            "pace": self.pace,
            "now_serving": self.now_serving,
        }


@dataclass(frozen=True)
class ProjectedTurn:
    """Where one waiting ticket lands in the projected serve order"""

    ticket: Ticket
    people_ahead: int
    estimated_wait: int


class QueueSimulator:
    """Replays the interleaving of slots and walk-ins on a virtual clock"""

    @staticmethod
    def split_waiting(waiting):
        """Split waiting tickets into (walk_ins, slotted), each totally ordered."""
        walk_ins = sorted(
            (t for t in waiting if t.scheduled_time is None),
            key=lambda t: (t.created_at, t.pk),
        )
        slotted = sorted(
            (t for t in waiting if t.scheduled_time is not None),
            key=lambda t: (t.scheduled_time, t.pk),
        )
        return walk_ins, slotted

    @staticmethod
    def serving_offset(serving, now, duration_for):
        """Minutes until the ticket being served is expected to finish (at least 1)."""
        started = serving.serving_started_at or now
        elapsed = max(0.0, minutes_between(started, now))
        return max(1, duration_for(serving.category_id) - elapsed)

    @staticmethod
    def walk(walk_ins, slotted, now, duration_for, serving=None):
        """
        Yield ``(candidate, people_ahead, clock)`` in projected serve order.

        ``walk_ins`` and ``slotted`` are candidate sequences already ordered;
        ``clock`` is the virtual time at which that candidate starts being
        served and ``people_ahead`` counts everyone served before it,
        including the ticket currently at the counter.
        """
        clock = now
        ahead = 0
        if serving is not None:
            clock += timedelta(minutes=QueueSimulator.serving_offset(serving, now, duration_for))
            ahead = 1

        walk_queue = deque(walk_ins)
        slot_queue = deque(slotted)

        while walk_queue or slot_queue:
            next_slot = slot_queue[0] if slot_queue else None

            if next_slot is not None and next_slot.ticket.scheduled_time <= clock:
                candidate = slot_queue.popleft()
            elif walk_queue:
                candidate = walk_queue.popleft()
            else:
                # Counter sits idle until the next booking
                clock = max(clock, next_slot.ticket.scheduled_time)
                candidate = slot_queue.popleft()

            yield candidate, ahead, clock

            ahead += 1
            clock += timedelta(minutes=duration_for(candidate.category_id))

    @staticmethod
    def wait_minutes(clock, now):
        return max(0, round_half_up((clock - now).total_seconds() / 60))

    @staticmethod
    def simulate(
        counter,
        target_ticket_id=None,
        category_id=None,
        now=None,
        memo: Optional[DurationMemo] = None,
    ):
        """
        People ahead and estimated wait for one ticket, or for a new walk-in.

        With ``target_ticket_id`` the ticket must be Waiting or Serving at this
        counter. Without it, a hypothetical walk-in of ``category_id`` (the
        counter's default category when omitted) is placed at the end of the
        walk-in line and the projection stops when it is reached.
        """
        now = now or timezone.now()
        memo = memo or DurationMemo(counter)

        waiting = list(Ticket.objects.waiting_for(counter))
        serving = Ticket.objects.serving_for(counter)

        pace = memo.minutes(counter.default_category_id())
        crowd = CrowdClassifier.classify_counter(counter, pace=pace)
        now_serving = serving.ticket_code if serving else NO_TICKET_SERVING

        walk_ins, slotted = QueueSimulator.split_waiting(waiting)
        walk_candidates = [RealCandidate(t) for t in walk_ins]
        slot_candidates = [RealCandidate(t) for t in slotted]

        if target_ticket_id is None:
            target = HypotheticalCandidate(category_id or counter.default_category_id())
            walk_candidates.append(target)
        else:
            if serving is not None and str(serving.pk) == str(target_ticket_id):
                return QueueMetrics(0, 0, crowd.level, crowd.pace, now_serving)

            target = next(
                (
                    c
                    for c in walk_candidates + slot_candidates
                    if str(c.ticket.pk) == str(target_ticket_id)
                ),
                None,
            )
            if target is None:
                raise ResourceNotFoundException(
                    f"Ticket {target_ticket_id} is not waiting at counter {counter.name}"
                )

        for candidate, ahead, clock in QueueSimulator.walk(
            walk_candidates, slot_candidates, now, memo.minutes, serving=serving
        ):
            if candidate is target:
                return QueueMetrics(
                    people_ahead=ahead,
                    estimated_wait=QueueSimulator.wait_minutes(clock, now),
                    crowd_level=crowd.level,
                    pace=crowd.pace,
                    now_serving=now_serving,
                )

        # The target is always in one of the two lines, so this is unreachable
        raise ResourceNotFoundException(f"Ticket {target_ticket_id} was not reached in the queue")

    @staticmethod
    def projected_schedule(counter, now=None, memo: Optional[DurationMemo] = None):
        """Every waiting ticket in projected serve order, with its position and wait."""
        now = now or timezone.now()
        memo = memo or DurationMemo(counter)

        walk_ins, slotted = QueueSimulator.split_waiting(list(Ticket.objects.waiting_for(counter)))
        serving = Ticket.objects.serving_for(counter)

        return [
            ProjectedTurn(
                ticket=candidate.ticket,
                people_ahead=ahead,
                estimated_wait=QueueSimulator.wait_minutes(clock, now),
            )
            for candidate, ahead, clock in QueueSimulator.walk(
                [RealCandidate(t) for t in walk_ins],
                [RealCandidate(t) for t in slotted],
                now,
                memo.minutes,
                serving=serving,
            )
        ]
