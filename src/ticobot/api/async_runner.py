"""Run coroutines from synchronous Flask views on a background event loop."""

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Coroutine, Iterator
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _next(iterator: AsyncIterator[T]) -> T:
    return await iterator.__anext__()


class EventLoopThread:
    """An asyncio event loop running forever in a daemon thread.

    Async vendor clients keep connection pools bound to the loop they first
    ran on, so every request is served by this one loop instead of a fresh
    loop per call.

    Usage:
        runner = EventLoopThread()
        answer = runner.run(pipeline.query("¿Qué propone el PLN?"))
        for event in runner.iterate(pipeline.query_streaming("...")):
            ...
    """

    def __init__(self, name: str = "ticobot-event-loop") -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self.loop.run_forever, name=name, daemon=True)
        self._thread.start()
        logger.debug(f"Event loop thread started: {name}")

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run a coroutine on the background loop and wait for its result.

        Args:
            coro: Coroutine to run
            timeout: Seconds to wait before giving up (default: no limit)

        Returns:
            The coroutine's return value; its exception is re-raised here
        """
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)

    def iterate(self, iterator: AsyncIterator[T]) -> Iterator[T]:
        """Pull items from an async iterator one at a time.

        The async iterator is closed when iteration ends, fails, or the
        returned generator is closed early (e.g. the HTTP client went away).
        """
        try:
            while True:
                try:
                    yield self.run(_next(iterator))
                except StopAsyncIteration:
                    return
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None and not self.loop.is_closed():
                self.run(aclose())

    def close(self) -> None:
        """Stop the loop and wait for its thread to exit."""
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join()
        self.loop.close()
        logger.debug("Event loop thread stopped")
