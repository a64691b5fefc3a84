"""
Reactive store holding the current map.

The store is the only place a ``MapState`` is replaced. Every ``set`` does three
things in order:

1. swaps in the new state (whole-state, last writer wins),
2. reschedules a debounced persistence write (a burst of updates such as a
   drag produces a single write once the burst goes quiet),
3. synchronously notifies every subscriber once.

Nothing here is a module-level singleton; the application shell creates the
store and hands it to the controller and the renderer.
"""

import asyncio
import functools
import logging
import threading
from typing import Any, Callable, List, Optional, Protocol, Union

from mindmap.graph import MapState

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.12  # seconds

Updater = Union[MapState, Callable[[MapState], MapState]]


class Cancellable(Protocol):
    def cancel(self) -> Any:
        ...


class Scheduler(Protocol):
    """Runs a callback once after a delay; the returned handle can cancel it."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        ...


class AsyncioScheduler:
    """Schedules on the running event loop (the NiceGUI loop in the app)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        return asyncio.get_running_loop().call_later(delay, callback)


class ThreadingScheduler:
    """Schedules on a daemon ``threading.Timer``; used when no loop is running."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AutoScheduler:
    """Uses the running event loop when there is one, a timer thread otherwise."""

    def __init__(self):
        self._asyncio = AsyncioScheduler()
        self._threading = ThreadingScheduler()

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return self._threading.call_later(delay, callback)
        return self._asyncio.call_later(delay, callback)


class DebouncedTask:
    """
    Cancellable scheduled task.

    Each ``schedule`` cancels whatever is pending and starts the countdown
    again, so only the arguments of the last call before a quiet period reach
    ``action``. A callback that fires after ``flush`` or a newer ``schedule``
    already took its turn is a no-op, so each scheduled write runs at most once
    even when the timer thread races ``flush``.
    """

    def __init__(self, action: Callable[..., None], delay: float,
                 scheduler: Optional[Scheduler] = None):
        self._action = action
        self._delay = delay
        self._scheduler = scheduler or AutoScheduler()
        self._lock = threading.Lock()
        self._handle: Optional[Cancellable] = None
        self._args: tuple = ()
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, *args) -> None:
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            self._args = args
            self._handle = self._scheduler.call_later(
                self._delay, functools.partial(self._run, self._generation))

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def flush(self) -> None:
        """Run the pending action now instead of waiting for the delay."""
        with self._lock:
            if self._handle is None:
                return
            self._cancel_locked()
            args = self._take_args()
        self._action(*args)

    def _cancel_locked(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._generation += 1

    def _take_args(self) -> tuple:
        args, self._args = self._args, ()
        return args

    def _run(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._handle is None:
                return
            self._handle = None
            args = self._take_args()
        self._action(*args)


class MapStore:
    """Holds exactly one ``MapState``; see module docstring for the contract."""

    def __init__(self, initial: MapState,
                 persist: Optional[Callable[[MapState], None]] = None,
                 debounce: float = DEFAULT_DEBOUNCE,
                 scheduler: Optional[Scheduler] = None):
        self._state = initial
        self._listeners: List[Callable[[], None]] = []
        self._saver = DebouncedTask(persist, debounce, scheduler) if persist else None

    def get(self) -> MapState:
        return self._state

    def set(self, update: Updater) -> MapState:
        next_state = update(self._state) if callable(update) else update
        self._state = next_state
        if self._saver is not None:
            self._saver.schedule(next_state)
        self._notify()
        return next_state

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register ``callback`` for change notifications. Subscribing the same
        callback again is a no-op, so it still fires once per ``set`` and one
        ``unsubscribe`` removes it.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def flush(self) -> None:
        """Write any pending state immediately (used on shutdown)."""
        if self._saver is not None:
            self._saver.flush()

    @property
    def has_pending_write(self) -> bool:
        return self._saver is not None and self._saver.pending

    def _notify(self) -> None:
        for callback in list(self._listeners):
            # skip subscribers removed by an earlier callback in this round
            if callback not in self._listeners:
                continue
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in store subscriber {callback!r}: {e}")
