import asyncio
import traceback
from typing import Awaitable, Callable, Hashable, Optional

from .lock_helper import LockHelper
from .logging_helper import LoggingHelper

PassCallable = Callable[[], Awaitable[None]]


class ScanScheduler:
    """
    Debounces evaluation triggers for one (user, source) pair.

    Triggers arriving while a timer is armed collapse into the pending pass. A pass
    never starts while the previous one holds the pass lock; a trigger that lands
    during a running pass re-arms the timer once that pass has finished.
    """

    def __init__(self, key: Hashable, run_pass: PassCallable, lock_helper: LockHelper, logger: LoggingHelper,
                 delay_seconds: float = 0.075):
        self.key = key
        self.run_pass = run_pass
        self.lock_helper = lock_helper
        self.logger = logger
        self.delay_seconds = delay_seconds
        self._timer: Optional[asyncio.Task] = None
        self._rerun_requested = False
        self.completed_passes = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def schedule(self):
        """Arms the debounce timer unless one is already pending. Must be called on the event loop."""

        if self.pending:
            return
        self._timer = asyncio.get_running_loop().create_task(self._delayed_pass())

    async def _delayed_pass(self):
        await asyncio.sleep(self.delay_seconds)
        self._timer = None
        await self._run_locked()

    async def _run_locked(self):
        if not self.lock_helper.add_lock(self.key, "scan", "Evaluation pass in progress."):
            self._rerun_requested = True
            return

        try:
            await self.run_pass()
            self.completed_passes += 1
        except Exception as e:
            self.logger.log(f"Evaluation pass {self.key} failed: {e}\n{traceback.format_exc()}", "CRITICAL")
        finally:
            self.lock_helper.remove_lock(self.key)

        if self._rerun_requested:
            self._rerun_requested = False
            self.schedule()

    async def run_now(self):
        """Runs a pass immediately, after any pending or running pass has finished."""

        self.cancel()
        while self.lock_helper.is_locked(self.key):
            await asyncio.sleep(self.delay_seconds)
        await self._run_locked()
        await self.flush()

    async def flush(self):
        """Waits until no pass is pending."""

        while self.pending:
            timer = self._timer
            try:
                await asyncio.shield(timer)
            except asyncio.CancelledError:
                if not timer.cancelled():
                    raise

    def cancel(self):
        if self.pending:
            self._timer.cancel()
        self._timer = None
        self._rerun_requested = False
