import dataclasses
import datetime as dt

import pytest

from tickbus.core.contracts import FailurePolicy, TimedNotification, format_long_time


@pytest.mark.parametrize("t, expected", [
    (dt.time(14, 5, 9), "2:05:09 PM"),
    (dt.time(0, 0, 0), "12:00:00 AM"),
    (dt.time(12, 30, 1), "12:30:01 PM"),
    (dt.time(9, 59, 59), "9:59:59 AM"),
])
def test_format_long_time(t, expected):
    assert format_long_time(t) == expected


def test_timed_notification_is_immutable_and_drops_microseconds():
    n = TimedNotification.at(dt.datetime(2024, 1, 1, 14, 0, 5, 123456))
    assert n.time == dt.time(14, 0, 5)
    assert n.second == 5
    assert n.name == "TimedNotification"
    with pytest.raises(dataclasses.FrozenInstanceError):
        n.time = dt.time(1, 2, 3)


def test_failure_policy_accepts_strings():
    assert FailurePolicy("isolate") is FailurePolicy.ISOLATE
    with pytest.raises(ValueError):
        FailurePolicy("retry")
