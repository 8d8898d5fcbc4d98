# tests/test_distributed_locks.py
from django.core.cache import cache
from django.test import SimpleTestCase, override_settings

from utils.distributed_locks import DistributedLock, distributed_lock, with_distributed_lock
from utils.exceptions import LockAcquisitionError


class DistributedLockTest(SimpleTestCase):
    """Test cases for the cache-backed scheduling lock"""

    def tearDown(self):
        cache.clear()

    def test_acquire_and_release(self):
        lock = DistributedLock("schedule:resource:inst-1", timeout=0)

        self.assertTrue(lock.acquire())
        self.assertEqual(cache.get("lock:schedule:resource:inst-1"), lock._lock_id)
        self.assertTrue(lock.release())
        self.assertIsNone(cache.get("lock:schedule:resource:inst-1"))

    def test_second_holder_is_refused(self):
        first = DistributedLock("schedule:resource:inst-1", timeout=0)
        second = DistributedLock("schedule:resource:inst-1", timeout=0)

        self.assertTrue(first.acquire())
        self.assertFalse(second.acquire())
        self.assertFalse(second.release())
        first.release()
        self.assertTrue(second.acquire())
        second.release()

    def test_keys_are_per_resource(self):
        first = DistributedLock("schedule:resource:inst-1", timeout=0)
        other = DistributedLock("schedule:resource:inst-2", timeout=0)

        self.assertTrue(first.acquire())
        self.assertTrue(other.acquire())
        first.release()
        other.release()

    @override_settings(SCHEDULING_LOCK_TIMEOUT=3, SCHEDULING_LOCK_EXPIRES=7)
    def test_defaults_come_from_settings(self):
        lock = DistributedLock("anything")

        self.assertEqual(lock.timeout, 3)
        self.assertEqual(lock.expires, 7)

    def test_context_manager_releases(self):
        with distributed_lock("report", timeout=0) as acquired:
            self.assertTrue(acquired)
            with distributed_lock("report", timeout=0) as nested:
                self.assertFalse(nested)

        self.assertIsNone(cache.get("lock:report"))

    def test_decorator_with_format_string(self):
        calls = []

        @with_distributed_lock("schedule:resource:{resource_id}", timeout=0)
        def book(resource_id, title=None):
            calls.append(cache.get(f"lock:schedule:resource:{resource_id}") is not None)
            return title

        self.assertEqual(book("inst-1", title="CPR"), "CPR")
        self.assertEqual(calls, [True])
        self.assertIsNone(cache.get("lock:schedule:resource:inst-1"))

    def test_decorator_raises_when_busy(self):
        @with_distributed_lock(lambda resource_id: f"schedule:resource:{resource_id}", timeout=0)
        def book(resource_id):
            return resource_id

        holder = DistributedLock("schedule:resource:inst-1", timeout=0)
        holder.acquire()
        try:
            with self.assertRaises(LockAcquisitionError):
                book("inst-1")
        finally:
            holder.release()
