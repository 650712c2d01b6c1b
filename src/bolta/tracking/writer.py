"""PersistenceWriter: the single writer for the daily record.

Store mutations happen on the sensor callback path, which must never
block on I/O.  Each mutation only *requests* a save; one background
consumer task drains those requests and calls ``DailyStateStore.flush()``,
so saves are strictly serialized and a burst of commits collapses into a
single write of the latest record.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from .daily_store import DailyStateStore

_SENTINEL = object()


class PersistenceWriter:
    """Background consumer that flushes the store when asked.

    ``request_save()`` is thread-safe and non-blocking.  Requests made
    while a save is already pending are coalesced.

    Args:
        store: The store to flush.
        attach: Register :meth:`request_save` as the store's save hook.
    """

    def __init__(self, store: DailyStateStore, *, attach: bool = True):
        self._store = store
        self._queue: asyncio.Queue[object] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._consumer_task: asyncio.Task | None = None
        self.saves_completed = 0
        self.saves_failed = 0
        if attach:
            store.set_save_hook(self.request_save)

    @property
    def running(self) -> bool:
        return self._consumer_task is not None and not self._consumer_task.done()

    def start(self) -> None:
        """Create the consumer task. Must be called from a running event loop."""
        if self.running:
            logger.warning("PersistenceWriter already running")
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=1)
        self._consumer_task = asyncio.create_task(self._consume_loop(), name="bolta-persistence-writer")
        logger.info("PersistenceWriter started")
        if self._store.dirty:
            self.request_save()

    def request_save(self) -> None:
        """Ask for the current record to be written. Safe from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed() or not self.running:
            return
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None
        if running_loop is loop:
            self._enqueue()
        else:
            loop.call_soon_threadsafe(self._enqueue)

    def _enqueue(self) -> None:
        if self._queue is None:
            return
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass  # a save is already pending and will pick up the latest record

    async def stop(self) -> None:
        """Finish pending work, write once more, and stop the consumer."""
        if not self._consumer_task or self._queue is None:
            return
        await self._queue.put(_SENTINEL)
        await self._consumer_task
        self._consumer_task = None
        await self._flush()
        self._loop = None
        logger.info("PersistenceWriter stopped")

    async def _consume_loop(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            try:
                if item is _SENTINEL:
                    break
                await self._flush()
            except Exception:
                logger.exception("Unhandled error in persistence writer")
            finally:
                self._queue.task_done()

    async def _flush(self) -> None:
        if await self._store.flush():
            self.saves_completed += 1
        else:
            self.saves_failed += 1
