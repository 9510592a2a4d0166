"""Owner of detached background job tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class JobTaskSupervisor:
    """Keeps strong references to fire-and-forget tasks until they finish.

    Crashed tasks are logged from the done callback. Shutdown cancels every
    task still running and waits for all of them to settle.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def job_active_count(self) -> int:
        return len(self._tasks)

    def job_submit(self, coroutine: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """Schedule one coroutine as a detached task.

        Args:
            coroutine: Coroutine to run.
            name: Task name used in logs.

        Returns:
            asyncio.Task: Scheduled task.
        """

        task = asyncio.create_task(coroutine, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._job_on_task_done)
        logger.debug("Submitted background task %s", name)
        return task

    async def job_wait_idle(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def job_shutdown(self, timeout: float | None = 10.0) -> None:
        """Cancel running tasks and wait for them to settle.

        Args:
            timeout: Upper bound in seconds for the drain, or None to wait indefinitely.
        """

        pending_tasks = [task for task in self._tasks if not task.done()]
        if not pending_tasks:
            return
        logger.info("Cancelling %d background task(s)", len(pending_tasks))
        for task in pending_tasks:
            task.cancel()
        done, pending = await asyncio.wait(pending_tasks, timeout=timeout)
        if pending:
            logger.warning("%d background task(s) did not stop within %ss", len(pending), timeout)
        logger.debug("Drained %d background task(s)", len(done))

    def _job_on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("Background task %s cancelled", task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error("Background task %s crashed", task.get_name(), exc_info=error)
