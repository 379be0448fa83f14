import logging
from dataclasses import dataclass

from apps.placeapp.models import Counter
from apps.queueapp.conf import engine_setting
from apps.queueapp.enums import CrowdLevel
from apps.queueapp.models import Ticket

from .duration_estimator import DurationEstimator

logger = logging.getLogger(__name__)

# Checked top-down; the first threshold the load factor exceeds wins
LOAD_THRESHOLDS = (
    (0.85, CrowdLevel.CRITICAL),
    (0.50, CrowdLevel.HIGH),
    (0.20, CrowdLevel.MODERATE),
)


@dataclass(frozen=True)
class CrowdMetrics:
    level: str
    active_count: int
    daily_capacity: int
    pace: int

    def as_dict(self):
        return {
            "level": self.level,
            "active_count": self.active_count,
            "daily_capacity": self.daily_capacity,
            "pace": self.pace,
        }


class CrowdClassifier:
    """Turns current load at a counter into a Low/Moderate/High/Critical label"""

    @staticmethod
    def level_for(load_factor):
        for threshold, level in LOAD_THRESHOLDS:
            if load_factor > threshold:
                return level
        return CrowdLevel.LOW

    @staticmethod
    def daily_capacity(operating_minutes, pace):
        if operating_minutes <= 0:
            return engine_setting("FALLBACK_DAILY_CAPACITY")
        return max(1, int(operating_minutes // pace))

    @staticmethod
    def unknown():
        return CrowdMetrics(
            level=CrowdLevel.UNKNOWN,
            active_count=0,
            daily_capacity=0,
            pace=engine_setting("FALLBACK_PACE_MINUTES"),
        )

    @staticmethod
    def classify(place_id, counter_name, pace=None):
        """Classify a counter looked up by place and name; never raises."""
        try:
            counter = Counter.objects.select_related("place").get(
                place_id=place_id, name=counter_name
            )
        except Exception as e:
            logger.warning(
                f"Crowd level unknown for place {place_id} counter {counter_name}: {str(e)}"
            )
            return CrowdClassifier.unknown()

        return CrowdClassifier.classify_counter(counter, pace=pace)

    @staticmethod
    def classify_counter(counter, pace=None):
        """
        Classify an already-loaded counter.

        ``pace`` is the estimator's minutes per transaction for the counter's
        default category; it is computed here when the caller has not done so.
        """
        try:
            if pace is None:
                pace = DurationEstimator.estimate(counter, counter.default_category_id())

            active_count = Ticket.objects.active_for(counter).count()
            capacity = CrowdClassifier.daily_capacity(counter.operating_minutes(), pace)

            return CrowdMetrics(
                level=CrowdClassifier.level_for(active_count / capacity),
                active_count=active_count,
                daily_capacity=capacity,
                pace=pace,
            )
        except Exception as e:
            logger.error(f"Error classifying crowd level for counter {counter.pk}: {str(e)}")
            return CrowdClassifier.unknown()
