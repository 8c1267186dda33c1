"""Two-way value bindings built from an explicit getter/setter pair."""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Binding(Generic[T]):
    """Read and write a value owned elsewhere, with change notification.

    ::

        settings = {"name": ""}
        name = Binding(lambda: settings["name"],
                       lambda v: settings.__setitem__("name", v))
        name.subscribe(lambda v: print("changed to", v))
        name.set("Ada")

    Setting an equal value neither calls the setter nor notifies.
    """

    def __init__(self, get: Callable[[], T], set: Callable[[T], Any]) -> None:
        self._get = get
        self._set = set
        self._subscribers: list[Callable[[T], Any]] = []

    @property
    def value(self) -> T:
        return self._get()

    def get(self) -> T:
        return self._get()

    def set(self, value: T) -> bool:
        """Write *value*; return ``True`` if it differed and subscribers ran."""
        if self._get() == value:
            logger.debug("binding value unchanged")
            return False
        self._set(value)
        for callback in list(self._subscribers):
            callback(value)
        return True

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[], None]:
        """Call *callback* with each new value; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def map(self, to_view: Callable[[T], Any], from_view: Callable[[Any], T]) -> Binding[Any]:
        """A derived binding that converts values in both directions."""
        return Binding(lambda: to_view(self.get()), lambda v: self.set(from_view(v)))
