import pytest

from tickbus.core.events import EventHandler


def test_invoke_calls_subscribers_in_order_with_sender_and_args():
    evt = EventHandler("demo")
    seen = []
    evt += lambda s, a: seen.append(("first", s, a))
    evt += lambda s, a: seen.append(("second", s, a))

    evt.invoke("me", 42)
    assert seen == [("first", "me", 42), ("second", "me", 42)]
    assert len(evt) == 2


def test_invoke_without_subscribers_is_noop():
    EventHandler().invoke(None, None)


def test_unsubscribe_removes_latest_registration_only():
    evt = EventHandler()
    hits = []

    def fn(sender, args):
        hits.append(args)

    evt += fn
    evt += fn
    evt -= fn
    evt(None, "x")
    assert hits == ["x"]

    evt -= fn
    evt -= fn  # not subscribed anymore: ignored
    evt(None, "y")
    assert hits == ["x"]


def test_raising_subscriber_stops_the_rest():
    evt = EventHandler()
    ran = []

    def boom(sender, args):
        raise RuntimeError("boom")

    evt += boom
    evt += lambda s, a: ran.append(a)

    with pytest.raises(RuntimeError, match="boom"):
        evt.invoke(None, 1)
    assert ran == []


def test_subscriber_must_be_callable():
    evt = EventHandler()
    with pytest.raises(TypeError):
        evt += "not callable"
