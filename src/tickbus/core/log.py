# src/tickbus/core/log.py
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Optional

_configured = False

ROOT = "tickbus"
HUMAN_FMT = "[%(asctime)s] %(levelname)s %(name)s | %(message)s"


def load_env() -> None:
    """Load .env from the working directory (or a parent) if python-dotenv is installed.
    Variables already set in the environment win.
    """
    try:
        from dotenv import find_dotenv, load_dotenv
    except ImportError:
        return
    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path)


def _parse_level(level: str) -> int:
    py_level = logging.getLevelName(level.upper())
    return py_level if isinstance(py_level, int) else logging.INFO


class JsonHandler(logging.StreamHandler):
    """One JSON object per line on stderr."""
    def __init__(self, stream=None):
        super().__init__(stream=stream or sys.stderr)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            obj = {
                "ts": record.created,
                "lvl": record.levelname,
                "name": record.name,
                "msg": record.getMessage(),
            }
            for k in ("filename", "lineno", "funcName"):
                obj[k] = getattr(record, k, None)
            if record.exc_info:
                obj["exc"] = logging.Formatter().formatException(record.exc_info)
            self.stream.write(json.dumps(obj, ensure_ascii=False) + "\n")
            self.flush()
        except Exception:  # pragma: no cover
            self.handleError(record)


def setup(level: Optional[str] = None, json_mode: Optional[bool] = None, *, force: bool = False) -> None:
    """Configure root logger.
    - Reads LOG_LEVEL, LOG_JSON from env if args are None
    - If already configured, do nothing unless force=True

    Log records go to stderr so they never interleave with the
    plain-text lines handlers print on stdout.
    """
    global _configured
    if _configured and not force:
        return

    load_env()

    py_level = _parse_level(level or os.getenv("LOG_LEVEL", "INFO"))
    json_flag = json_mode if json_mode is not None else (os.getenv("LOG_JSON", "0") == "1")

    root = logging.getLogger()
    # reset handlers to avoid duplicate logs across pytest re-runs
    root.handlers.clear()
    root.setLevel(py_level)

    if json_flag:
        handler: logging.Handler = JsonHandler()
    else:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=HUMAN_FMT))
    root.addHandler(handler)

    _configured = True


def get(name: str) -> logging.Logger:
    """Namespaced logger under ``tickbus.``."""
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)


def set_level(level: str) -> None:
    """Dynamically adjust root log level (e.g., during tests)."""
    logging.getLogger().setLevel(_parse_level(level))
