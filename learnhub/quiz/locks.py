"""
Per-learner submission locks.

Serializes attempt creation for one (learner, quiz, cohort) inside this
process. Across processes the unique constraint on
``quiz_attempts.attempt_number`` is the guarantee; this lock just keeps
the common double-click/auto-submit race from reaching the database.
"""
from contextlib import contextmanager
import threading


class KeyedLocks:
    """Reference-counted locks, dropped once no caller holds or waits on them."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = [threading.Lock(), 0]
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Shared by every request handled in this process
submission_locks = KeyedLocks()
