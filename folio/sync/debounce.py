"""
Keyed debounce scheduling for Folio.

Each pending write is keyed by an explicit (scope, entity id) pair. Scheduling
the same key again cancels the waiting timer and restarts the quiet period, so
a burst of edits collapses into one write of the latest snapshot. Writes for
one key never overlap: a write that becomes due while the previous one is
still in flight waits for it.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .policy import Key, WriteResult


Action = Callable[[], Awaitable[WriteResult]]


class _PendingWrite:
    """A scheduled write and everyone waiting on it."""

    def __init__(self, action: Action):
        self.action = action
        self.waiters: List[asyncio.Future] = []
        self.timer: Optional[asyncio.TimerHandle] = None


class DebounceScheduler:
    """
    Per-key cancellable scheduled writes on the running event loop.
    """

    def __init__(self):
        """Initialize the scheduler with nothing pending."""
        self._pending: Dict[Key, _PendingWrite] = {}
        self._in_flight: Dict[Key, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()

    def pending(self, key: Key) -> bool:
        """Return True if a write for ``key`` is waiting for its timer."""
        return key in self._pending

    def in_flight(self, key: Key) -> bool:
        task = self._in_flight.get(key)
        return task is not None and not task.done()

    def pending_keys(self, scope: Optional[str] = None) -> List[Key]:
        return [key for key in self._pending if scope is None or key[0] == scope]

    def schedule(self, key: Key, delay_ms: int, action: Action) -> asyncio.Future:
        """
        Schedule ``action`` to run after ``delay_ms`` of quiet for ``key``.

        A write already waiting for the same key is superseded: its timer is
        cancelled and its waiters receive the result of this write instead.

        Args:
            key: (scope, entity id) the write belongs to
            delay_ms: Quiet period in milliseconds; 0 runs on the next loop iteration
            action: Coroutine factory performing the write

        Returns:
            Future resolved with the WriteResult of the write that finally runs
        """
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()

        entry = self._pending.get(key)
        if entry is not None:
            entry.timer.cancel()
            entry.action = action
            logging.debug(f"Restarted debounce window for {key}")
        else:
            entry = _PendingWrite(action)
            self._pending[key] = entry

        entry.waiters.append(waiter)
        entry.timer = loop.call_later(max(delay_ms, 0) / 1000, self._start, key)
        return waiter

    def _start(self, key: Key) -> Optional[asyncio.Task]:
        entry = self._pending.pop(key, None)
        if entry is None:
            return None

        previous = self._in_flight.get(key)
        task = asyncio.get_running_loop().create_task(self._run(key, entry, previous))
        self._in_flight[key] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, key: Key, entry: _PendingWrite, previous: Optional[asyncio.Task]) -> None:
        result = WriteResult(key=key, ok=False, dropped=True)
        try:
            if previous is not None and not previous.done():
                await asyncio.wait({previous})
            result = await entry.action()
        except Exception as e:
            logging.error(f"Write for {key} failed outside its failure policy: {e}")
            result = WriteResult(key=key, ok=False, error=e)
        finally:
            for waiter in entry.waiters:
                if not waiter.done():
                    waiter.set_result(result)
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def cancel(self, key: Key) -> bool:
        """
        Drop the write waiting for ``key``.

        Its waiters resolve with a dropped result instead of hanging.

        Returns:
            True if a pending write was dropped
        """
        entry = self._pending.pop(key, None)
        if entry is None:
            return False

        entry.timer.cancel()
        for waiter in entry.waiters:
            if not waiter.done():
                waiter.set_result(WriteResult(key=key, ok=False, dropped=True))
        logging.debug(f"Dropped pending write for {key}")
        return True

    def cancel_all(self, scope: Optional[str] = None) -> int:
        """Drop every pending write, or only those of ``scope``."""
        return sum(1 for key in self.pending_keys(scope) if self.cancel(key))

    async def flush(self, key: Optional[Key] = None, scope: Optional[str] = None) -> List[WriteResult]:
        """
        Run pending writes now instead of waiting for their timers.

        Args:
            key: Only flush this key
            scope: Only flush keys of this scope (ignored when ``key`` is given)

        Returns:
            Results of the flushed writes
        """
        keys = [key] if key is not None else self.pending_keys(scope)
        waiters = []
        for pending_key in keys:
            entry = self._pending.get(pending_key)
            if entry is None:
                continue
            entry.timer.cancel()
            # One waiter per write; coalesced callers share its result
            waiters.append(entry.waiters[0])
            self._start(pending_key)

        if not waiters:
            return []
        return list(await asyncio.gather(*waiters))

    async def drain(self) -> None:
        """Wait for every write already in flight."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))
