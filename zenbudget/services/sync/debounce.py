"""
Debounced Writer

Edits arrive in bursts (typing an amount fires one edit per keystroke).
Only the last state of a burst needs to reach the remote store, so each
new edit cancels the pending write and starts a fresh quiet period.

DESIGN DECISION: The writer owns at most one pending asyncio task.
A write that has already started is never cancelled; only the waiting
period is.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from zenbudget.models.budget import BudgetState


WriteFunc = Callable[[str, BudgetState], Awaitable[bool]]


class DebouncedWriter:
    """Coalesces rapid saves into one write after `delay` seconds of quiet."""

    def __init__(self, delay: float, write: WriteFunc):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self._delay = delay
        self._write = write
        self._task: Optional[asyncio.Task] = None
        self._pending: Optional[tuple[str, BudgetState]] = None
        # Writes that have left the quiet period and not returned yet
        self._in_flight = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def has_pending(self) -> bool:
        """True while a write is waiting out its quiet period."""
        return self._pending is not None

    @property
    def is_busy(self) -> bool:
        """True while a write is waiting or running."""
        return self._pending is not None or self._in_flight > 0

    def schedule(self, user_id: str, state: BudgetState) -> asyncio.Task:
        """
        Replace any pending write with this one.

        Must be called from a running event loop. Awaiting the returned
        task yields the write outcome; a superseded task ends cancelled.
        """
        self.cancel()
        self._pending = (user_id, state)
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> bool:
        await asyncio.sleep(self._delay)
        return await self._fire()

    async def _fire(self) -> bool:
        if self._pending is None:
            return False
        user_id, state = self._pending
        self._pending = None
        self._in_flight += 1
        try:
            return await self._write(user_id, state)
        finally:
            self._in_flight -= 1

    async def flush(self) -> Optional[bool]:
        """
        Write the pending state now.

        Returns the write outcome, or None when nothing was pending.
        """
        task = self._task
        if self._pending is None:
            # A write may already be in flight; let it finish
            if task is not None and not task.done():
                return await task
            return None

        if task is not None and not task.done():
            task.cancel()
        self._task = None
        return await self._fire()

    def cancel(self) -> None:
        """Drop the pending write, if it has not started yet."""
        if self._pending is None:
            return
        self._pending = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
