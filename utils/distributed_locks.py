import logging
import time
import uuid
from contextlib import contextmanager

from django.core.cache import cache

logger = logging.getLogger(__name__)


class DistributedLock:
    """
    Cache-backed mutual exclusion shared by every worker process.

    Serializes read-modify-write sequences on one counter across processes
    and servers. ``cache.add`` is atomic on Redis and on the local-memory
    backend, which is what the lock relies on.

    Args:
        key (str): name of the guarded resource, prefixed with ``lock:``
        expires (int): seconds before a held lock is dropped by the cache
        timeout (float): seconds to keep polling before giving up
        poll_interval (float): seconds between attempts
    """

    def __init__(self, key, expires=30, timeout=5, poll_interval=0.05):
        self.key = f"lock:{key}"
        self.expires = expires
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.owner = str(uuid.uuid4())

    def acquire(self):
        """Poll until the key is ours or ``timeout`` runs out."""
        deadline = time.monotonic() + self.timeout

        while not cache.add(self.key, self.owner, self.expires):
            if time.monotonic() >= deadline:
                logger.warning(f"Gave up waiting for {self.key} after {self.timeout}s")
                return False
            time.sleep(self.poll_interval)

        logger.debug(f"Holding {self.key}")
        return True

    def release(self):
        """Drop the key, only when this instance still owns it."""
        if cache.get(self.key) != self.owner:
            logger.warning(f"Not releasing {self.key}: held by another owner or expired")
            return False

        cache.delete(self.key)
        logger.debug(f"Released {self.key}")
        return True


@contextmanager
def distributed_lock(key, expires=30, timeout=5, poll_interval=0.05):
    """Hold ``key`` for the duration of the block; yields whether it was acquired."""
    lock = DistributedLock(key, expires, timeout, poll_interval)
    acquired = lock.acquire()
    try:
        yield acquired
    finally:
        if acquired:
            lock.release()
