# src/tickbus/core/events.py
from __future__ import annotations

from typing import Any, Callable, Generic, List, TypeVar

TArgs = TypeVar("TArgs")

Subscriber = Callable[[Any, TArgs], None]


class EventHandler(Generic[TArgs]):
    """
    Multicast event: ``evt += fn`` subscribes, ``evt -= fn`` removes the most
    recent matching subscription, ``evt.invoke(sender, args)`` calls every
    subscriber in subscription order.

    A raising subscriber stops the invocation; later subscribers do not run.
    """

    def __init__(self, name: str = "event"):
        self.name = name
        self._subs: List[Subscriber] = []

    def __iadd__(self, fn: Subscriber) -> "EventHandler[TArgs]":
        if not callable(fn):
            raise TypeError(f"{self.name}: subscriber must be callable, got {fn!r}")
        self._subs.append(fn)
        return self

    def __isub__(self, fn: Subscriber) -> "EventHandler[TArgs]":
        for i in range(len(self._subs) - 1, -1, -1):
            if self._subs[i] == fn:
                del self._subs[i]
                break
        return self

    def __len__(self) -> int:
        return len(self._subs)

    def invoke(self, sender: Any, args: TArgs) -> None:
        # snapshot so a subscriber may unsubscribe itself mid-invoke
        for fn in list(self._subs):
            fn(sender, args)

    __call__ = invoke
