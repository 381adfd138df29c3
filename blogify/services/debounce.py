"""Asyncio timers used by the editor: a trailing-edge debouncer and a
fixed-interval timer."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

AsyncCallback = Callable[[], Awaitable[object]]


class Debouncer:
    """Run *callback* once, *delay* seconds after the last ``trigger()``.

    Re-triggering while the timer is still sleeping restarts it. Once the
    callback has started it is left to finish; ``cancel()`` only drops a
    pending call.
    """

    def __init__(self, delay: float, callback: AsyncCallback) -> None:
        self.delay = delay
        self._callback = callback
        self._timer: asyncio.Task | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    def cancel(self) -> None:
        if self.pending:
            self._timer.cancel()
        self._timer = None

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach before firing so a later trigger()/cancel() can't kill the call
        task = asyncio.current_task()
        if self._timer is task:
            self._timer = None
        self._running.add(task)
        try:
            await self._callback()
        except Exception:
            logger.exception("Debounced callback failed")
        finally:
            self._running.discard(task)

    async def drain(self) -> None:
        """Wait for callbacks that have already fired."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)


class PeriodicTimer:
    """Call *callback* every *interval* seconds until stopped."""

    def __init__(self, interval: float, callback: AsyncCallback) -> None:
        self.interval = interval
        self._callback = callback
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self.running:
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._callback()
            except Exception:
                logger.exception("Periodic callback failed")
