import io
import json
import logging

from tickbus.core import log, metrics


def test_get_namespaces_under_tickbus():
    assert log.get("mediator").name == "tickbus.mediator"
    assert log.get("tickbus.host").name == "tickbus.host"
    assert log.get("tickbus").name == "tickbus"


def test_set_level_falls_back_to_info_on_garbage():
    root = logging.getLogger()
    old = root.level
    try:
        log.set_level("debug")
        assert root.level == logging.DEBUG
        log.set_level("nonsense")
        assert root.level == logging.INFO
    finally:
        root.setLevel(old)


def test_json_handler_writes_one_object_per_line():
    buf = io.StringIO()
    h = log.JsonHandler(stream=buf)
    rec = logging.LogRecord("tickbus.test", logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    h.emit(rec)
    obj = json.loads(buf.getvalue())
    assert obj["msg"] == "hello world"
    assert obj["lvl"] == "WARNING"
    assert obj["name"] == "tickbus.test"


def test_counters_gauges_and_timer():
    metrics.inc("demo_total", topic="a")
    metrics.inc("demo_total", 2, topic="a")
    metrics.gauge_set("demo_gauge", 3.5)
    with metrics.Timer("demo_ms", stage="x"):
        pass

    assert metrics.counter_value("demo_total", topic="a") == 3
    assert metrics.counter_value("demo_total", topic="b") == 0
    snap = metrics.snapshot_all()
    assert snap["gauges"] == [{"name": "demo_gauge", "labels": {}, "value": 3.5}]
    (hist,) = snap["hists"]
    assert hist["name"] == "demo_ms" and hist["count"] == 1

    metrics.reset()
    assert metrics.snapshot_all() == {"counters": [], "gauges": [], "hists": []}


def test_emit_logs_snapshot(caplog):
    metrics.inc("demo_total")
    with caplog.at_level(logging.INFO, logger="tickbus.metrics"):
        metrics.emit()
    assert "demo_total" in caplog.text
