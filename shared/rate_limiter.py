"""
Serial request queue — spaces out RPC calls so the upstream never sees two
requests closer than `min_interval` seconds apart.

Tasks run strictly one at a time in submission order. The interval is
measured between dispatch starts, so a slow upstream call does not shorten
the gap before the next one.
"""
import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable
import structlog
from shared.errors import TransportError

logger = structlog.get_logger()

MIN_INTERVAL = 0.5  # seconds between dispatches


class RequestQueue:
    def __init__(
        self,
        min_interval: float = MIN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._queue: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._processing = False
        self._last_dispatch: float | None = None
        self._worker: asyncio.Task | None = None
        self.dispatched = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def processing(self) -> bool:
        return self._processing

    async def enqueue(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Queue a coroutine factory and wait for its result.
        The factory is only called once the task reaches the head of the queue.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.append((factory, future))

        if not self._processing:
            self._processing = True
            self._worker = loop.create_task(self._process())

        return await future

    async def _process(self):
        future = None
        try:
            while self._queue:
                factory, future = self._queue.popleft()

                # Caller gave up before its turn; never started, nothing to abort
                if future.done():
                    continue

                if self._last_dispatch is not None:
                    wait = self.min_interval - (self._clock() - self._last_dispatch)
                    if wait > 0:
                        await self._sleep(wait)

                self._last_dispatch = self._clock()
                self.dispatched += 1

                try:
                    result = await factory()
                except Exception as e:
                    if not future.done():
                        future.set_exception(e)
                    else:
                        logger.debug("queued_task_failed_after_cancel", error=str(e))
                else:
                    if not future.done():
                        future.set_result(result)
        finally:
            self._processing = False
            # Worker stopped early (e.g. cancelled at shutdown): fail the current and queued callers
            stranded = [future] + [f for _, f in self._queue]
            self._queue.clear()
            for f in stranded:
                if f is not None and not f.done():
                    f.set_exception(TransportError("Request queue stopped"))
