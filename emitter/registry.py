"""Synchronous in-process event emitter with snapshot dispatch."""

from __future__ import annotations

import inspect
import logging
from threading import RLock
from typing import Any, Callable

from emitter.events import Event

logger = logging.getLogger(__name__)


def _same_listener(registered: Callable, candidate: Callable) -> bool:
    """Identity match, treating bound methods of one object/function as the same."""
    if registered is candidate:
        return True
    if inspect.ismethod(registered) and inspect.ismethod(candidate):
        return (
            registered.__self__ is candidate.__self__
            and registered.__func__ is candidate.__func__
        )
    return False


class _OnceListener:
    """Wrapper that removes itself from the emitter before its first call."""

    def __init__(self, emitter: Emitter, event_name: str, listener: Callable) -> None:
        self.emitter = emitter
        self.event_name = event_name
        self.listener = listener
        self.fired = False

    def __call__(self, *args: Any) -> None:
        with self.emitter._lock:
            # A nested emit of the same event may reach us twice.
            if self.fired:
                return
            self.fired = True
            self.emitter.remove_listener(self.event_name, self)
        self.listener(*args)

    def __repr__(self) -> str:
        return f"<once {self.listener!r}>"


class Emitter:
    """Registry of listeners keyed by event name.

    Listeners are called synchronously in registration order. ``emit`` copies
    the listener list before calling anything, so listeners may add or remove
    listeners (or emit again) without affecting the dispatch in progress.

    An exception raised by a listener propagates out of ``emit`` and the
    listeners after it are not called.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {}
        self._lock = RLock()

    def __repr__(self) -> str:
        with self._lock:
            counts = {name: len(items) for name, items in self._listeners.items()}
        return f"{type(self).__name__}({counts})"

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_listener(self, event_name: str, listener: Callable) -> None:
        """Append ``listener`` to the listeners of ``event_name``.

        Non-callables are ignored. The same listener may be added more than
        once and is then called once per registration.
        """
        if not callable(listener):
            return
        with self._lock:
            self._listeners.setdefault(event_name, []).append(listener)
        logger.debug("Added listener %r for event '%s'", listener, event_name)

    on = add_listener

    def once(self, event_name: str, listener: Callable) -> _OnceListener | None:
        """Add a listener that is removed before it is first called.

        Returns the registered wrapper, which can be passed to
        ``remove_listener`` to cancel it before it fires.
        """
        if not callable(listener):
            return None
        wrapper = _OnceListener(self, event_name, listener)
        self.add_listener(event_name, wrapper)
        return wrapper

    def subscribe(self, event_type: type[Event], handler: Callable) -> None:
        """Add ``handler`` for every published instance of ``event_type``."""
        self.add_listener(event_type.event_name(), handler)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_listener(self, event_name: str, listener: Callable) -> None:
        """Remove the first registration of ``listener`` for ``event_name``."""
        if not callable(listener):
            return
        with self._lock:
            listeners = self._listeners.get(event_name)
            if not listeners:
                return
            for index, registered in enumerate(listeners):
                if _same_listener(registered, listener):
                    del listeners[index]
                    break
            else:
                return
        logger.debug("Removed listener %r from event '%s'", listener, event_name)

    def remove_all_listeners(self, event_name: str) -> None:
        """Empty the listener list of ``event_name`` if it has one."""
        with self._lock:
            if event_name not in self._listeners:
                return
            self._listeners[event_name] = []
        logger.debug("Removed all listeners from event '%s'", event_name)

    def clear(self) -> None:
        """Forget every event and listener."""
        with self._lock:
            self._listeners.clear()
        logger.debug("Cleared all events")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def listeners(self, event_name: str) -> list[Callable]:
        """Return a copy of the listeners registered for ``event_name``."""
        with self._lock:
            return list(self._listeners.get(event_name, []))

    def listener_count(self, event_name: str) -> int:
        with self._lock:
            return len(self._listeners.get(event_name, []))

    def event_names(self) -> list[str]:
        """Return the names of events that currently have listeners."""
        with self._lock:
            return [name for name, items in self._listeners.items() if items]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def emit(self, event_name: str, *args: Any) -> None:
        """Call every listener of ``event_name`` with ``args``.

        Only the listeners registered when the call starts are notified.
        """
        with self._lock:
            registered = self._listeners.get(event_name)
            if not registered:
                return
            snapshot = tuple(registered)

        logger.debug("Emitting '%s' to %d listeners", event_name, len(snapshot))
        for listener in snapshot:
            try:
                listener(*args)
            except Exception:
                logger.debug(
                    "Listener %r for event '%s' raised; aborting dispatch",
                    listener,
                    event_name,
                    exc_info=True,
                )
                raise

    def publish(self, event: Event) -> None:
        """Emit ``event`` under its type's event name."""
        if not isinstance(event, Event):
            raise TypeError(
                f"publish() expects an Event instance, got {type(event).__name__}"
            )
        self.emit(type(event).event_name(), event)
