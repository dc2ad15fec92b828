"""
Resource scheduler for webgrab.

Runs asynchronous jobs against a fixed pool of reusable resources (browser
sessions), one job per resource at a time, and reports when all work is done.
"""

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from webgrab.utils.logging import CrawlerLogger
from webgrab.utils import metrics

Job = Callable[[Any], Awaitable[Any]]


@dataclass
class TaskCallback:
    """Completion handlers for a task. Either may be sync or async."""

    on_success: Callable[[Any], Any] | None = None
    on_failure: Callable[[BaseException], Any] | None = None


@dataclass
class Task:
    """A job waiting for, or holding, a resource."""

    job: Job
    callback: TaskCallback | None = None
    resource: Any = None


class ResourceScheduler:
    """
    Matches queued jobs to free resources.

    Features:
    - At most one running job per resource
    - FIFO start order among waiting tasks
    - Resource returned to the pool on every exit path
    - drain() to wait until no task is running or queued
    """

    def __init__(self, logger: CrawlerLogger | None = None):
        """
        Initialize the scheduler.

        Args:
            logger: Logger instance.
        """
        self.logger = logger or CrawlerLogger("scheduler")

        self._resources: list[Any] = []
        self._free: deque[Any] = deque()
        self._tasks: deque[Task] = deque()
        self._active_count = 0
        self._drain_waiters: list[asyncio.Future] = []
        # Keep references so running tasks are not garbage collected
        self._running: set[asyncio.Task] = set()

    @property
    def resource_count(self) -> int:
        return len(self._resources)

    @property
    def free_count(self) -> int:
        return len(self._free)

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def queued_count(self) -> int:
        return len(self._tasks)

    @property
    def is_idle(self) -> bool:
        """True when no task is running or waiting."""
        return self._active_count == 0 and not self._tasks

    def add_resource(self, resource: Any) -> None:
        """
        Register a resource and make it available to jobs.

        Args:
            resource: Opaque item handed to jobs, one job at a time.
        """
        self._resources.append(resource)
        self.logger.debug("Resource added", resources=len(self._resources))
        self._free_resource(resource)

    def add_task(self, job: Job, callback: TaskCallback | None = None) -> None:
        """
        Queue a job, starting it at once if a resource is free.

        Args:
            job: Coroutine function taking a resource.
            callback: Optional success/failure handlers.
        """
        self._tasks.append(Task(job=job, callback=callback))
        if self._free:
            self._start_task(self._tasks.popleft(), self._free.popleft())

    async def drain(self) -> None:
        """
        Wait until no task is running or queued.

        Returns at once if the scheduler is already idle. Otherwise returns
        the first time it becomes idle after the call, including work added
        after the call was made.
        """
        if self.is_idle:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._drain_waiters.append(waiter)
        await waiter

    def _free_resource(self, resource: Any) -> None:
        """Return a resource to the pool, handing it to the oldest waiting task."""
        self._free.append(resource)
        if self._tasks:
            self._start_task(self._tasks.popleft(), self._free.popleft())
        metrics.update_scheduler_metrics(self._active_count, len(self._resources))

    def _start_task(self, task: Task, resource: Any) -> None:
        """Run a task's job with the given resource."""
        task.resource = resource
        self._active_count += 1
        metrics.update_scheduler_metrics(self._active_count, len(self._resources))
        running = asyncio.get_running_loop().create_task(self._run_task(task))
        self._running.add(running)
        running.add_done_callback(self._running.discard)

    async def _run_task(self, task: Task) -> None:
        try:
            try:
                result = await task.job(task.resource)
            except Exception as e:
                handler = task.callback.on_failure if task.callback else None
                if handler is None:
                    self.logger.debug(
                        "Task failed without failure handler",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                else:
                    await self._safe_callback(handler, e)
            else:
                handler = task.callback.on_success if task.callback else None
                if handler is not None:
                    await self._safe_callback(handler, result)
        finally:
            self._end_task(task)

    def _end_task(self, task: Task) -> None:
        """Release the task's resource and wake drain waiters if idle."""
        self._active_count -= 1
        resource, task.resource = task.resource, None
        self._free_resource(resource)

        if self.is_idle and self._drain_waiters:
            waiters, self._drain_waiters = self._drain_waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)

    async def _safe_callback(self, callback: Callable, *args: Any) -> None:
        """Execute a completion handler, logging its errors."""
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self.logger.exception("Task callback error", error=str(e))
