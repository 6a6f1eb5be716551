"""
Module: events.py
Description: Minimal observer interface for poller notifications.

Key Components:
- EventEmitter: on/once/off/emit/listener_count
- Event name constants used by SqsPoller

Listeners are called synchronously in registration order. A listener
that returns an awaitable has it scheduled as a task on the running loop.
"""

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set

EVENT_MESSAGE = "message"
EVENT_BATCH_COMPLETE = "batch-complete"
EVENT_ABORTED = "aborted"
EVENT_ERROR = "error"

Listener = Callable[..., Any]


class EventEmitter:
    """
    Named-event observer registry.

    Example:
        >>> emitter = EventEmitter()
        >>> @emitter.on("error")
        ... def log_error(err):
        ...     print(err)
        >>> emitter.emit("error", ValueError("boom"))
        True
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._listener_tasks: Set[asyncio.Future] = set()

    def on(self, event: str, listener: Optional[Listener] = None):
        """
        Register a listener for an event.

        Usable directly (emitter.on("error", fn)) or as a decorator
        (@emitter.on("error")).

        Returns:
            The listener, or a decorator when no listener was given
        """
        if listener is None:
            def decorator(fn: Listener) -> Listener:
                self._listeners[event].append(fn)
                return fn
            return decorator

        self._listeners[event].append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register a listener that is removed after its first call."""
        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        self._listeners[event].append(wrapper)
        return wrapper

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener; unknown listeners are ignored."""
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener of an event with the given arguments.

        Returns:
            True if the event had listeners, False otherwise
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            result = listener(*args)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._listener_tasks.add(task)
                task.add_done_callback(self._listener_tasks.discard)
        return bool(listeners)
