"""Rate-limited delivery queue for outbound notification tasks.

Tasks run strictly in the order they were enqueued, one at a time, and
each start is spaced at least ``interval`` seconds after the previous one.
Every task keeps a state record: queued → running → completed/failed.
A failing task is logged and the queue moves on; nothing is retried.
"""

import asyncio
import logging
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[object]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DeliveryQueue:
    """Single-lane task queue gated by a minimum start-to-start interval."""

    def __init__(
        self,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        history_limit: int = 500,
    ):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._history_limit = history_limit
        self._pending: Deque[Tuple[str, TaskFactory]] = deque()
        self._jobs: Dict[str, dict] = {}
        self._lock = asyncio.Lock()
        self._last_start: Optional[float] = None

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, task: TaskFactory, label: str = "") -> str:
        """Queue a coroutine factory for later execution. Returns task_id."""
        task_id = str(uuid.uuid4())
        self._jobs[task_id] = {
            "task_id": task_id,
            "label": label,
            "status": "queued",
            "created_at": _now(),
            "started_at": None,
            "completed_at": None,
            "error": None,
        }
        self._pending.append((task_id, task))
        self._prune()
        logger.debug("Task %s queued (%s)", task_id, label)
        return task_id

    async def run(self) -> int:
        """Drain the queue. Returns the number of tasks executed.

        Concurrent callers wait on the same lock, so at most one task is
        ever in flight.
        """
        executed = 0
        async with self._lock:
            while self._pending:
                task_id, task = self._pending.popleft()
                await self._wait_for_slot()
                await self._execute(task_id, task)
                executed += 1
        return executed

    async def _wait_for_slot(self):
        if self._last_start is not None:
            remaining = self.interval - (self._clock() - self._last_start)
            if remaining > 0:
                await self._sleep(remaining)
        self._last_start = self._clock()

    async def _execute(self, task_id: str, task: TaskFactory):
        job = self._jobs[task_id]
        job["status"] = "running"
        job["started_at"] = _now()

        try:
            await task()
            job["status"] = "completed"
        except Exception as e:
            job["status"] = "failed"
            job["error"] = str(e)
            logger.error("Task %s (%s) failed: %s", task_id, job["label"], e, exc_info=True)
        finally:
            job["completed_at"] = _now()

    def _prune(self):
        if len(self._jobs) <= self._history_limit:
            return
        pending_ids = {task_id for task_id, _ in self._pending}
        finished = [j for j in self._jobs.values() if j["task_id"] not in pending_ids and j["status"] in ("completed", "failed")]
        finished.sort(key=lambda j: j["created_at"])
        for job in finished[: len(self._jobs) - self._history_limit]:
            del self._jobs[job["task_id"]]

    def get_status(self, task_id: str) -> Optional[dict]:
        """Get the current state of a task."""
        return self._jobs.get(task_id)

    def list_recent(self, limit: int = 50) -> List[dict]:
        """List the most recently queued tasks."""
        jobs = sorted(self._jobs.values(), key=lambda j: j["created_at"], reverse=True)
        return jobs[:limit]
