"""
ProxyState Dispatcher - Batched, Deferred Listener Delivery
===========================================================

Writes through a façade never call listeners directly. They enqueue
``(listener, payload)`` pairs here, and the pairs are delivered together in a
single flush window once the writing code has finished its synchronous work.

Scheduling:
    - The first enqueue of a window schedules exactly one flush. Further
      enqueues in the same window only append.
    - By default the flush is scheduled with ``loop.call_soon`` on the running
      asyncio event loop, so it runs as soon as the current synchronous code
      yields back to the loop.
    - With no running loop there is nothing to defer onto: the batch waits
      for an explicit ``flush()`` or for the outermost ``transaction()`` block
      to exit.
    - ``set_scheduler()`` swaps in any other deferral primitive.

Flushing swaps out the pending batch and resets the scheduled flag *before*
invoking anything, so a listener that writes again starts a new window. Each
listener runs in isolation: an exception is logged and the next listener in
the batch still runs.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Tuple

Listener = Callable[[Any], None]
Scheduler = Callable[[Callable[[], None]], None]


def _call_soon(callback: Callable[[], None]) -> bool:
    """Schedule ``callback`` on the running loop; False when there is none."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return False
    loop.call_soon(callback)
    return True


class Dispatcher:
    """Queues listener calls and flushes them once per synchronous window."""

    def __init__(self, scheduler: Optional[Scheduler] = None):
        self._local = threading.local()
        self._scheduler = scheduler

    def _get_state(self) -> dict:
        """Get thread-local batch state."""
        if not hasattr(self._local, "state"):
            self._local.state = {
                "pending": [],
                "scheduled": False,
                "transactions": 0,
            }
        return self._local.state

    @property
    def scheduler(self) -> Optional[Scheduler]:
        return self._scheduler

    @scheduler.setter
    def scheduler(self, scheduler: Optional[Scheduler]) -> None:
        self._scheduler = scheduler

    @property
    def pending(self) -> int:
        """Number of listener calls waiting for the next flush."""
        return len(self._get_state()["pending"])

    def enqueue(self, listeners: Iterable[Listener], payload: Any) -> None:
        """Queue every listener with the same payload and make sure a flush is due."""
        state = self._get_state()
        batch: List[Tuple[Listener, Any]] = state["pending"]
        for listener in listeners:
            batch.append((listener, payload))

        if not batch or state["scheduled"]:
            return
        state["scheduled"] = True

        # Inside a transaction the outermost exit flushes; no need to defer.
        if state["transactions"]:
            return
        if self._scheduler is not None:
            self._scheduler(self.flush)
        elif not _call_soon(self.flush):
            # No loop to defer onto; the batch waits for an explicit flush.
            state["scheduled"] = False

    def flush(self) -> int:
        """
        Run one flush window.

        Returns:
            Number of listeners invoked.
        """
        state = self._get_state()
        batch = state["pending"]
        state["pending"] = []
        state["scheduled"] = False

        for listener, payload in batch:
            try:
                listener(payload)
            except Exception as e:
                logging.error(
                    f"Error in listener {listener!r} during flush: {e}",
                    exc_info=True,
                )
        return len(batch)

    def drain(self) -> int:
        """Flush windows until nothing is pending; returns total listeners invoked."""
        total = 0
        while self._get_state()["pending"]:
            total += self.flush()
        # Any callback still scheduled will find an empty batch.
        self._get_state()["scheduled"] = False
        return total

    def transaction(self) -> "TransactionContext":
        return TransactionContext(self)

    def _reset_state(self) -> None:
        """Reset the batch state for testing."""
        self._local.__dict__.clear()


class TransactionContext:
    """Holds deliveries until the outermost block exits, then drains them."""

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher
        self._is_outermost = False

    def __enter__(self):
        state = self.dispatcher._get_state()
        self._is_outermost = state["transactions"] == 0
        state["transactions"] += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        state = self.dispatcher._get_state()
        state["transactions"] -= 1
        if self._is_outermost and state["transactions"] == 0:
            self.dispatcher.drain()


_dispatcher: Optional[Dispatcher] = None


def get_dispatcher() -> Dispatcher:
    """
    Get or create the process-wide dispatcher.

    Lazy singleton pattern: creates on first access, reuses thereafter.
    Testing can reset via _reset_dispatcher().
    """
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = Dispatcher()
    return _dispatcher


def _reset_dispatcher() -> None:
    """Reset the dispatcher for testing purposes. Pending calls are dropped."""
    global _dispatcher
    _dispatcher = None


def set_scheduler(scheduler: Optional[Scheduler]) -> None:
    """
    Replace the deferral primitive used to schedule flushes.

    ``scheduler`` receives a zero-argument callback and must arrange for it
    to run later (a timer, a GUI idle hook, a work queue). ``None`` restores
    the asyncio ``call_soon`` default.
    """
    get_dispatcher().scheduler = scheduler


def flush() -> int:
    """Deliver everything pending right now, including follow-up windows."""
    return get_dispatcher().drain()


def transaction() -> TransactionContext:
    """
    Create transaction context for batch operations.

    Writes inside the block are delivered in one flush window when the
    outermost block exits. Supports nested transactions.
    """
    return get_dispatcher().transaction()
