# src/tickbus/core/metrics.py
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]
MetricKey = Tuple[str, LabelKey]


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(sorted_vals: list, q: float) -> float:
    if not sorted_vals:
        return 0.0
    idx = max(0, min(len(sorted_vals) - 1, int(round((len(sorted_vals) - 1) * q))))
    return sorted_vals[idx]


class _Series:
    """Bounded sample window for a histogram."""
    def __init__(self, maxlen: int = 1024):
        self._values: Deque[float] = deque(maxlen=maxlen)

    def observe(self, v: float) -> None:
        self._values.append(float(v))

    def summary(self) -> Dict[str, float]:
        vals = sorted(self._values)
        if not vals:
            return {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p99": 0.0}
        return {
            "count": len(vals),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p99": _pct(vals, 0.99),
        }


class _Registry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.counters: Dict[MetricKey, float] = {}
        self.gauges: Dict[MetricKey, float] = {}
        self.hists: Dict[MetricKey, _Series] = {}

    def inc(self, name: str, n: float, labels: Dict[str, Any]) -> None:
        key = (name, _labels_key(labels))
        with self._lock:
            self.counters[key] = self.counters.get(key, 0.0) + n

    def set(self, name: str, v: float, labels: Dict[str, Any]) -> None:
        with self._lock:
            self.gauges[(name, _labels_key(labels))] = float(v)

    def observe(self, name: str, v: float, labels: Dict[str, Any]) -> None:
        key = (name, _labels_key(labels))
        with self._lock:
            series = self.hists.get(key)
            if series is None:
                series = self.hists[key] = _Series()
            series.observe(v)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "counters": [{"name": n, "labels": dict(lk), "value": v} for (n, lk), v in self.counters.items()],
                "gauges": [{"name": n, "labels": dict(lk), "value": v} for (n, lk), v in self.gauges.items()],
                "hists": [{"name": n, "labels": dict(lk), **s.summary()} for (n, lk), s in self.hists.items()],
            }

    def clear(self) -> None:
        with self._lock:
            self.counters.clear()
            self.gauges.clear()
            self.hists.clear()


_REG = _Registry()


def inc(name: str, n: float = 1.0, **labels: Any) -> None:
    _REG.inc(name, n, labels)


def gauge_set(name: str, v: float, **labels: Any) -> None:
    _REG.set(name, v, labels)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _REG.observe(name, v, labels)


def counter_value(name: str, **labels: Any) -> float:
    """Current value of one counter series (0.0 if never incremented)."""
    return _REG.counters.get((name, _labels_key(labels)), 0.0)


def snapshot_all() -> dict:
    """Return a snapshot of current metrics (for tests)."""
    return _REG.snapshot()


def reset() -> None:
    _REG.clear()


class Timer:
    """Context manager for measuring latency and reporting into a histogram."""
    def __init__(self, hist_name: str, **labels: Any) -> None:
        self.hist_name = hist_name
        self.labels = labels
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        observe_hist(self.hist_name, (time.perf_counter() - self._t0) * 1000.0, **self.labels)
        return False


# ---------------- Exporter (log every N seconds) ----------------

class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float = 5.0, logger: Optional[logging.Logger] = None):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = float(interval_sec)
        self.log = logger or logging.getLogger("tickbus.metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.wait(max(0.5, self.interval)):
            emit(self.log)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


def emit(logger: Optional[logging.Logger] = None) -> None:
    """Log the current snapshot once."""
    lg = logger or logging.getLogger("tickbus.metrics")
    snap = snapshot_all()
    for c in snap["counters"]:
        lg.info("[ctr] %s %s value=%.0f", c["name"], c["labels"], c["value"])
    for g in snap["gauges"]:
        lg.info("[gauge] %s %s value=%.3f", g["name"], g["labels"], g["value"])
    for h in snap["hists"]:
        lg.info(
            "[hist] %s %s n=%d min=%.3f p50=%.3f p99=%.3f max=%.3f",
            h["name"], h["labels"], h["count"], h["min"], h["p50"], h["p99"], h["max"],
        )


_EXPORTER: Optional[_Exporter] = None


def start_exporter(interval_sec: float = 5.0, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        return
    _EXPORTER = _Exporter(interval_sec=interval_sec, logger=logger)
    _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        _EXPORTER.stop(timeout=timeout)
        _EXPORTER = None
