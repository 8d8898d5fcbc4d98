import functools
import inspect
import logging
import time
import uuid
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

from utils.exceptions import LockAcquisitionError

logger = logging.getLogger(__name__)


def _lock_defaults():
    return (
        getattr(settings, "SCHEDULING_LOCK_EXPIRES", 60),
        getattr(settings, "SCHEDULING_LOCK_TIMEOUT", 10),
    )


class DistributedLock:
    """
    A distributed lock implementation using Django's cache backend.

    Used to serialize check-and-insert sequences per resource so that two
    concurrent requests for the same instructor cannot both pass the
    conflict check before either booking is written.
    """

    def __init__(self, key, expires=None, timeout=None, poll_interval=0.1):
        """
        Initialize a distributed lock.

        Args:
            key (str): The unique identifier for the lock
            expires (int): The number of seconds after which the lock expires
            timeout (int): The maximum number of seconds to wait to acquire the lock
            poll_interval (float): The interval in seconds to check if lock can be acquired
        """
        default_expires, default_timeout = _lock_defaults()
        self.key = f"lock:{key}"
        self.expires = default_expires if expires is None else expires
        self.timeout = default_timeout if timeout is None else timeout
        self.poll_interval = poll_interval
        self._lock_id = str(uuid.uuid4())

    def acquire(self):
        """
        Attempt to acquire the lock.

        Returns:
            bool: True if the lock was acquired, False otherwise
        """
        logger.debug(f"Attempting to acquire lock for {self.key}")
        start_time = time.monotonic()

        while True:
            # cache.add only writes when the key is absent
            if cache.add(self.key, self._lock_id, self.expires):
                logger.debug(f"Lock acquired for {self.key}")
                return True

            if time.monotonic() - start_time >= self.timeout:
                break

            time.sleep(self.poll_interval)

        logger.warning(
            f"Failed to acquire lock for {self.key} after {self.timeout} seconds"
        )
        return False

    def release(self):
        """
        Release the lock if it's owned by this instance.

        Returns:
            bool: True if the lock was released, False otherwise
        """
        logger.debug(f"Attempting to release lock for {self.key}")

        if cache.get(self.key) == self._lock_id:
            cache.delete(self.key)
            logger.debug(f"Lock released for {self.key}")
            return True

        logger.warning(
            f"Failed to release lock for {self.key} - lock not owned by this instance"
        )
        return False


@contextmanager
def distributed_lock(key, expires=None, timeout=None, poll_interval=0.1):
    """
    Context manager for acquiring and releasing a distributed lock.

    Yields:
        bool: True if the lock was acquired, False otherwise
    """
    lock = DistributedLock(key, expires, timeout, poll_interval)
    acquired = lock.acquire()
    try:
        yield acquired
    finally:
        if acquired:
            lock.release()


def with_distributed_lock(key_template, expires=None, timeout=None, poll_interval=0.1):
    """
    Decorator for wrapping a function with a distributed lock.

    Args:
        key_template: Either a callable receiving the wrapped function's
            arguments, or a format string filled from its bound arguments,
            e.g. ``"schedule:resource:{resource_id}"``.

    Raises:
        LockAcquisitionError: if the lock cannot be acquired within ``timeout``
    """

    def decorator(func):
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if callable(key_template):
                key = key_template(*args, **kwargs)
            else:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                key = key_template.format(**bound.arguments)

            with distributed_lock(key, expires, timeout, poll_interval) as acquired:
                if not acquired:
                    raise LockAcquisitionError(detail={"lock": key})
                return func(*args, **kwargs)

        return wrapper

    return decorator
