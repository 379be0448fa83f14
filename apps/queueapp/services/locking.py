import logging
from contextlib import contextmanager

from django.db import transaction

from apps.placeapp.models import Counter
from apps.queueapp.conf import engine_setting
from core.exceptions import ConcurrencyConflictException
from utils.distributed_locks import distributed_lock

logger = logging.getLogger(__name__)


def counter_lock_key(counter):
    return f"queue:counter:{counter.pk}"


@contextmanager
def counter_guard(counter):
    """
    Serialize status changes on one counter.

    Holds the cache lock for the counter, opens a transaction and locks the
    counter row, so two processes can never interleave a demote/promote
    sequence on the same line. Yields the freshly locked counter.
    """
    with distributed_lock(
        counter_lock_key(counter),
        expires=engine_setting("LOCK_EXPIRES_SECONDS"),
        timeout=engine_setting("LOCK_TIMEOUT_SECONDS"),
    ) as acquired:
        if not acquired:
            logger.warning(f"Counter {counter.pk} is busy, lock not acquired")
            raise ConcurrencyConflictException(
                "Another operation is updating this counter, please retry."
            )

        with transaction.atomic():
            locked = Counter.objects.select_for_update().get(pk=counter.pk)
            yield locked
