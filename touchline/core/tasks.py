"""Thread and task management for Touchline.

Provides a thread pool for recomputing many contacts at once, and the
per-contact locks that keep recomputes for one contact serialized.

Usage:
    from touchline.core.tasks import TaskManager, get_contact_locks

    manager = TaskManager(max_workers=4)
    manager.submit(f"recompute-{contact_id}", recompute, db, contact_id)

    with get_contact_locks().hold(contact_id):
        ...  # read, decide, write
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

from touchline.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TaskResult:
    """Result of a background task.

    Attributes:
        task_name: Name of the task
        success: Whether task completed successfully
        result: Return value if successful
        error: Exception if failed
        started_at: When task started
        completed_at: When task finished
    """

    task_name: str
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class TaskManager:
    """Manages background task execution.

    Wraps every task so it always resolves to a TaskResult; a failing task
    is logged and reported, never raised out of the pool.

    Attributes:
        max_workers: Maximum concurrent tasks
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def _get_executor(self) -> ThreadPoolExecutor:
        """Get or create thread pool executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="touchline"
            )
        return self._executor

    def submit(
        self,
        task_name: str,
        func: Callable[..., Any],
        *args,
        **kwargs,
    ) -> Future:
        """Submit a task for execution.

        Args:
            task_name: Name reported in the TaskResult and the failure log
            func: Function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            Future resolving to a TaskResult
        """
        started_at = datetime.now()

        def wrapper() -> TaskResult:
            try:
                result = func(*args, **kwargs)
                return TaskResult(
                    task_name=task_name,
                    success=True,
                    result=result,
                    started_at=started_at,
                    completed_at=datetime.now(),
                )
            except Exception as e:
                logger.error(f"Task {task_name} failed: {e}", exc_info=True)
                return TaskResult(
                    task_name=task_name,
                    success=False,
                    error=e,
                    started_at=started_at,
                    completed_at=datetime.now(),
                )

        return self._get_executor().submit(wrapper)

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the task manager.

        Args:
            wait: Wait for pending tasks to complete
        """
        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None


class ContactLocks:
    """One lock per contact id.

    Recompute reads the contact's current state and writes a decision back,
    so two overlapping recomputes for the same contact must not interleave.
    Different contacts never block each other.
    """

    def __init__(self) -> None:
        self._locks: dict[int, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, contact_id: int) -> threading.RLock:
        """Return the lock for a contact, creating it on first use."""
        with self._guard:
            lock = self._locks.get(contact_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[contact_id] = lock
            return lock

    @contextmanager
    def hold(self, contact_id: int) -> Iterator[None]:
        """Hold the contact's lock for the duration of the block."""
        lock = self.get(contact_id)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_contact_locks: Optional[ContactLocks] = None
_contact_locks_guard = threading.Lock()


def get_contact_locks() -> ContactLocks:
    """Return the process-wide contact lock registry."""
    global _contact_locks
    with _contact_locks_guard:
        if _contact_locks is None:
            _contact_locks = ContactLocks()
        return _contact_locks
