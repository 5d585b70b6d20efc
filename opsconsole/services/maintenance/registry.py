"""
Consumer Registry

Local fan-out of the latest published value to any number of consumers.
A consumer registered while a value exists is called with it immediately.
Each consumer carries a liveness flag checked before every delivery, so an
unsubscribed consumer is never called again, even mid-publish.
"""

import itertools
from typing import Callable, Generic, TypeVar

from opsconsole.common.logging_setup import get_service_logger

logger = get_service_logger("maintenance.registry")

T = TypeVar("T")


class _Consumer(Generic[T]):
    __slots__ = ("id", "callback", "active")

    def __init__(self, consumer_id: int, callback: Callable[[T], None]):
        self.id = consumer_id
        self.callback = callback
        self.active = True


class ConsumerRegistry(Generic[T]):
    """
    Fan-out point holding the current value and its consumers.

    Not thread-safe: all calls are expected on the event loop thread.
    """

    def __init__(self, name: str = "registry"):
        self.name = name
        self._consumers: dict[int, _Consumer[T]] = {}
        self._ids = itertools.count(1)
        self._current: T | None = None

    @property
    def current(self) -> T | None:
        """Latest published value, or None if nothing was published yet"""
        return self._current

    def __len__(self) -> int:
        return len(self._consumers)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a consumer callback.

        Args:
            callback: Called with every published value

        Returns:
            Function removing the callback; calling it again is a no-op
        """
        consumer = _Consumer(next(self._ids), callback)
        self._consumers[consumer.id] = consumer

        def unsubscribe() -> None:
            if not consumer.active:
                return
            consumer.active = False
            self._consumers.pop(consumer.id, None)

        if self._current is not None:
            self._deliver(consumer, self._current)

        return unsubscribe

    def publish(self, value: T) -> None:
        """Replace the current value and deliver it to every live consumer"""
        self._current = value
        for consumer in list(self._consumers.values()):
            self._deliver(consumer, value)

    def reset(self) -> None:
        """Forget the current value; consumers stay registered"""
        self._current = None

    def clear(self) -> None:
        """Deactivate and drop every consumer"""
        for consumer in self._consumers.values():
            consumer.active = False
        self._consumers.clear()

    def _deliver(self, consumer: _Consumer[T], value: T) -> None:
        if not consumer.active:
            return
        try:
            consumer.callback(value)
        except Exception as e:
            # One failing consumer must not starve the others
            logger.error(
                f"Consumer {consumer.id} of '{self.name}' failed: {e}",
                exc_info=True,
                extra={"consumer_id": consumer.id, "registry": self.name},
            )
