"""Delay queue for retry timers.

Timers are asyncio tasks keyed by owner (a workflow instance id) and key (a task
id). Callbacks run on the event loop; they are expected to re-check the owner's
state before acting, since the world may have moved on while they slept.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Hashable

import structlog

__all__ = ["DelayQueue"]

logger = structlog.get_logger()


class DelayQueue:
    """Keyed collection of delayed callbacks.

    Scheduling a key that is already pending replaces the old timer.

    Example:
        >>> queue = DelayQueue()
        >>> queue.schedule(instance_id, "extract", 2.0, retry_extract)
        >>> queue.cancel_all(instance_id)
        1
    """

    def __init__(self) -> None:
        self._timers: dict[Hashable, dict[str, asyncio.Task[None]]] = {}

    def schedule(self, owner: Hashable, key: str, delay: float, callback: Callable[[], None]) -> asyncio.Task[None]:
        """Run ``callback`` after ``delay`` seconds.

        Args:
            owner: Group the timer belongs to.
            key: Identifier of the timer within its group.
            delay: Seconds to wait. Zero still yields to the loop once.
            callback: Synchronous callable invoked when the timer fires.

        Returns:
            The asyncio task backing the timer.
        """
        self.cancel(owner, key)
        timer = asyncio.create_task(self._fire(owner, key, delay, callback))
        self._timers.setdefault(owner, {})[key] = timer
        return timer

    async def _fire(self, owner: Hashable, key: str, delay: float, callback: Callable[[], None]) -> None:
        await asyncio.sleep(max(delay, 0.0))
        timers = self._timers.get(owner, {})
        if timers.get(key) is asyncio.current_task():
            del timers[key]
            if not timers:
                self._timers.pop(owner, None)
        logger.debug("delay_queue_fired", owner=str(owner), key=key)
        callback()

    def cancel(self, owner: Hashable, key: str) -> bool:
        """Cancel one pending timer.

        Returns:
            Whether a timer was pending.
        """
        timers = self._timers.get(owner, {})
        timer = timers.pop(key, None)
        if not timers:
            self._timers.pop(owner, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self, owner: Hashable) -> int:
        """Cancel every pending timer of an owner.

        Returns:
            The number of cancelled timers.
        """
        timers = self._timers.pop(owner, {})
        for timer in timers.values():
            timer.cancel()
        return len(timers)

    def pending(self, owner: Hashable) -> list[asyncio.Task[None]]:
        return list(self._timers.get(owner, {}).values())

    def is_pending(self, owner: Hashable, key: str) -> bool:
        return key in self._timers.get(owner, {})

    def __len__(self) -> int:
        return sum(len(timers) for timers in self._timers.values())

    async def shutdown(self) -> None:
        """Cancel every timer and wait for the cancellations to land."""
        timers = [timer for group in self._timers.values() for timer in group.values()]
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
