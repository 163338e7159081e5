"""Asynchronous task-log recorder.

Executors hand finished sub-tasks to ``TaskLogRecorder.record`` without
awaiting anything; a background worker writes them to the TaskLogStore.
Store failures are logged and the entry is dropped.
"""

import asyncio
import contextlib

from loguru import logger

from division.knowledge.catalog import TaskLogEntry, TaskLogStore


class TaskLogRecorder:
    """
    Queue-backed consumer feeding a TaskLogStore.

    Example:
        >>> recorder = TaskLogRecorder(catalog)
        >>> recorder.record(entry)
        >>> await recorder.drain()
    """

    def __init__(self, store: TaskLogStore | None) -> None:
        self.store = store
        self.written = 0
        self.dropped = 0
        self._queue: asyncio.Queue[TaskLogEntry] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    def record(self, entry: TaskLogEntry) -> None:
        """Queue an entry for writing. Never blocks."""
        if self.store is None:
            return
        if self._worker is None:
            self._worker = asyncio.create_task(self._consume())
        self._queue.put_nowait(entry)

    async def _consume(self) -> None:
        while True:
            entry = await self._queue.get()
            try:
                await self.store.log_completed_task(entry)
                self.written += 1
            except Exception as e:
                self.dropped += 1
                logger.warning(f"Failed to write task log for role {entry.role_id}: {e}")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait for queued entries to be written, then stop the worker."""
        if self._worker is None:
            return
        try:
            await self._queue.join()
        finally:
            worker, self._worker = self._worker, None
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
