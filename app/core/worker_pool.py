"""
Bounded asynchronous worker pool.

A fixed number of worker tasks consume jobs from a bounded queue. When the
queue is full, submissions are rejected with WorkerPoolSaturatedError
instead of growing memory without limit.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from app.core.exceptions import ServiceUnavailableError, WorkerPoolSaturatedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Job = Callable[[], Awaitable[Any]]


class BoundedWorkerPool:
    """
    Fixed-size pool of asyncio workers over a bounded queue.

    Usage:
        pool = BoundedWorkerPool("generation", size=4, queue_capacity=100)
        await pool.start()
        future = pool.submit(lambda: orchestrator.generate(user))
        result = await future
        await pool.shutdown()
    """

    def __init__(self, name: str, size: int = 4, queue_capacity: int = 100) -> None:
        if size < 1:
            raise ValueError("Worker pool size must be at least 1")
        if queue_capacity < 1:
            raise ValueError("Worker pool queue capacity must be at least 1")
        self._name = name
        self._size = size
        self._capacity = queue_capacity
        self._queue: Optional["asyncio.Queue[Optional[Tuple[Job, asyncio.Future]]]"] = None
        self._workers: List["asyncio.Task[None]"] = []
        self._active = 0
        self._completed = 0
        self._failed = 0
        self._rejected = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._queue is not None

    async def start(self) -> None:
        """Spawn the worker tasks on the running event loop."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._capacity)
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"{self._name}-worker-{i}")
            for i in range(self._size)
        ]
        logger.info(
            f"Worker pool '{self._name}' started: size={self._size}, "
            f"queue_capacity={self._capacity}"
        )

    def submit(self, job: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Enqueue a job and return a future for its result.

        Raises:
            WorkerPoolSaturatedError: If the queue is full
            ServiceUnavailableError: If the pool is not running
        """
        if self._queue is None:
            raise ServiceUnavailableError(self._name)

        future: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()
        try:
            self._queue.put_nowait((job, future))
        except asyncio.QueueFull:
            self._rejected += 1
            logger.warning(f"Worker pool '{self._name}' rejected a job: queue full")
            raise WorkerPoolSaturatedError(self._name, self._capacity)
        return future

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            item = await queue.get()
            try:
                if item is None:
                    return
                job, future = item
                if future.cancelled():
                    continue
                self._active += 1
                try:
                    result = await job()
                except Exception as e:
                    self._failed += 1
                    logger.exception(f"Job failed in worker pool '{self._name}': {e}")
                    if not future.done():
                        future.set_exception(e)
                else:
                    self._completed += 1
                    if not future.done():
                        future.set_result(result)
                finally:
                    self._active -= 1
            finally:
                queue.task_done()

    async def shutdown(self, drain: bool = True) -> None:
        """Stop the workers, optionally letting queued jobs finish first."""
        if self._queue is None:
            return
        queue = self._queue
        if drain:
            await queue.join()
        else:
            while not queue.empty():
                item = queue.get_nowait()
                if item is not None and not item[1].done():
                    item[1].cancel()
                queue.task_done()
        for _ in self._workers:
            await queue.put(None)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info(f"Worker pool '{self._name}' stopped")

    def stats(self) -> Dict[str, Any]:
        """Snapshot of pool counters for health reporting."""
        return {
            "name": self._name,
            "running": self.running,
            "size": self._size,
            "queue_capacity": self._capacity,
            "queued": self._queue.qsize() if self._queue is not None else 0,
            "active": self._active,
            "completed": self._completed,
            "failed": self._failed,
            "rejected": self._rejected,
        }
