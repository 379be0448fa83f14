import logging
from dataclasses import asdict, dataclass

from apps.queueapp.conf import engine_setting
from apps.queueapp.models import Ticket
from apps.queueapp.utils.queue_utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DurationBreakdown:
    """The pieces behind one duration estimate, in minutes"""

    staff: float
    system: float
    final: int
    samples: int = 0

    def as_dict(self):
        return asdict(self)


class DurationEstimator:
    """
    Blended, self-correcting estimate of how long one transaction takes at a
    counter for a given service category.

    The staff-declared baseline is mixed with the mean of recently completed
    tickets: 30% staff, 70% observed. New counters have no history, so the
    observed part falls back to the staff figure; mature counters converge
    on their real throughput while a single bad staff entry or a single
    abandoned session cannot drag the estimate far.
    """

    @staticmethod
    def estimate(counter, category_id=None):
        """Minutes per transaction (integer, never below the configured floor)."""
        return DurationEstimator.detailed_estimate(counter, category_id).final

    @staticmethod
    def detailed_estimate(counter, category_id=None):
        """Same policy as ``estimate`` but reports staff/system/final parts."""
        floor = engine_setting("MIN_ESTIMATE_MINUTES")
        staff = float(engine_setting("DEFAULT_STAFF_MINUTES"))

        try:
            if category_id is None:
                category_id = counter.default_category_id()
            staff = counter.staff_baseline(category_id)

            # Nothing observed at a closed counter is trusted
            if counter.is_closed:
                return DurationBreakdown(
                    staff=staff, system=staff, final=max(floor, round_half_up(staff))
                )

            recent = Ticket.objects.recent_completed(
                counter, category_id, limit=engine_setting("HISTORY_LIMIT")
            )
            durations = [ticket.service_duration for ticket in recent]
            return DurationEstimator.blend(staff, durations)

        except Exception as e:
            logger.warning(
                f"Falling back to staff baseline for counter {getattr(counter, 'pk', None)} "
                f"category {category_id}: {str(e)}"
            )
            return DurationBreakdown(
                staff=staff, system=staff, final=max(floor, round_half_up(staff))
            )

    @staticmethod
    def valid_samples(durations, staff_minutes):
        """Drop durations that look like mis-clicks or sessions left open."""
        low = engine_setting("OUTLIER_MIN_MINUTES")
        high = max(
            engine_setting("OUTLIER_MAX_MINUTES"),
            engine_setting("OUTLIER_STAFF_MULTIPLIER") * staff_minutes,
        )
        return [d for d in durations if d is not None and low < d < high]

    @staticmethod
    def blend(staff_minutes, durations):
        """
        Combine a staff baseline with observed durations.

        ``durations`` should be the most recent completed service times,
        newest first; outliers are filtered here.
        """
        floor = engine_setting("MIN_ESTIMATE_MINUTES")
        staff_weight = engine_setting("STAFF_WEIGHT")

        samples = DurationEstimator.valid_samples(durations, staff_minutes)
        if len(samples) >= engine_setting("MIN_HISTORY_SAMPLES"):
            system = sum(samples) / len(samples)
        else:
            system = staff_minutes

        blended = staff_weight * staff_minutes + (1 - staff_weight) * system
        return DurationBreakdown(
            staff=staff_minutes,
            system=system,
            final=max(floor, round_half_up(blended)),
            samples=len(samples),
        )
