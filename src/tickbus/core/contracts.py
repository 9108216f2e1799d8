
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "TickbusError",
    "ResolutionError",
    "RegistryFrozenError",
    "FailurePolicy",
    "Notification",
    "TimedNotification",
    "TickerEventArgs",
    "ButtonPressedEventArgs",
    "format_long_time",
]


# --------- Errors ---------
class TickbusError(Exception):
    """Base class for errors raised by tickbus itself."""


class ResolutionError(TickbusError):
    """A service or handler could not be constructed."""


class RegistryFrozenError(TickbusError):
    """Registration attempted after the registry was sealed."""


class FailurePolicy(str, Enum):
    """What a dispatcher does when a subscriber raises.

    PROPAGATE: abort the remaining subscribers and re-raise to the caller.
    ISOLATE: log the failure and keep going.
    """
    PROPAGATE = "propagate"
    ISOLATE = "isolate"


# --------- Notifications ---------
@dataclass(frozen=True, slots=True)
class Notification:
    """Marker base for values broadcast through the mediator."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class TimedNotification(Notification):
    time: _dt.time

    @property
    def second(self) -> int:
        return self.time.second

    @classmethod
    def at(cls, when: _dt.datetime) -> "TimedNotification":
        return cls(time=when.time().replace(microsecond=0))


# --------- Raw event args ---------
@dataclass(frozen=True, slots=True)
class TickerEventArgs:
    time: _dt.time


@dataclass(frozen=True, slots=True)
class ButtonPressedEventArgs:
    key: str


def format_long_time(t: _dt.time) -> str:
    """'14:05:09' -> '2:05:09 PM'."""
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d}:{t.second:02d} {suffix}"
