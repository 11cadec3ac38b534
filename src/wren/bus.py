"""Event dispatcher: ordered, in-process publish/subscribe for kernel events.

Listeners are plain callables (sync or async) taking the event. They run
in descending priority, registration order within one priority, and
mutate the event in place.

Subscribers group listeners on one object::

    class Timing:
        def subscribed_events(self):
            return {
                KernelEvents.REQUEST: ("on_request", 100),
                KernelEvents.RESPONSE: "on_response",
            }

A value may be a method name, a ``(method name, priority)`` pair, or a
list of either.

Free-threading safety:
    - Registration takes a Lock and rebuilds the topic's listener tuple
    - ``publish`` reads the current tuple without locking; tuples are
      never mutated, so a concurrent publish sees a complete snapshot
"""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar

from wren._internal.invoke import invoke
from wren.errors import ConfigurationError

logger = logging.getLogger("wren.kernel")

Listener = Callable[[Any], Any]
E = TypeVar("E")


class Subscriber(Protocol):
    """An object declaring the listeners it wants registered."""

    def subscribed_events(self) -> Mapping[str, Any]: ...


class EventDispatcher:
    """Dispatches kernel events to registered listeners.

    A listener that raises is not caught here; the error reaches whoever
    called ``publish``.
    """

    __slots__ = ("_entries", "_listeners", "_lock", "_sequence")

    def __init__(self) -> None:
        self._entries: dict[str, list[tuple[int, int, Listener]]] = {}
        self._listeners: dict[str, tuple[Listener, ...]] = {}
        self._lock = threading.Lock()
        self._sequence = 0

    def subscribe(self, topic: str, listener: Listener, priority: int = 0) -> None:
        """Register *listener* for *topic*. Higher priority runs earlier."""
        if not callable(listener):
            msg = f"Listener for {topic!r} is not callable: {listener!r}"
            raise TypeError(msg)
        with self._lock:
            entries = self._entries.setdefault(topic, [])
            entries.append((-priority, self._sequence, listener))
            self._sequence += 1
            entries.sort(key=lambda entry: entry[:2])
            self._listeners[topic] = tuple(entry[2] for entry in entries)
        logger.debug("Listener %r subscribed to %s (priority %d)", listener, topic, priority)

    def add_subscriber(self, subscriber: Subscriber) -> None:
        """Register every listener *subscriber* declares."""
        declared = getattr(subscriber, "subscribed_events", None)
        if declared is None:
            msg = f"{type(subscriber).__name__} does not define subscribed_events()"
            raise ConfigurationError(msg)
        for topic, spec in declared().items():
            specs = spec if isinstance(spec, list) else [spec]
            for item in specs:
                method_name, priority = (item, 0) if isinstance(item, str) else item
                listener = getattr(subscriber, method_name, None)
                if listener is None:
                    msg = (
                        f"{type(subscriber).__name__} subscribes {method_name!r} to "
                        f"{topic!r} but has no such method"
                    )
                    raise ConfigurationError(msg)
                self.subscribe(topic, listener, priority)

    def listeners(self, topic: str) -> tuple[Listener, ...]:
        """Listeners for *topic* in the order ``publish`` calls them."""
        return self._listeners.get(topic, ())

    def has_listeners(self, topic: str) -> bool:
        return bool(self._listeners.get(topic))

    async def publish(self, event: E, topic: str) -> E:
        """Call each listener of *topic* with *event* and return the event.

        Stops early once a listener stops the event's propagation.
        """
        for listener in self.listeners(topic):
            if getattr(event, "is_propagation_stopped", False):
                break
            await invoke(listener, event)
        return event
