# src/tickbus/wire_config.py
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tickbus.console import Console
from tickbus.core.container import Lifetime
from tickbus.core.contracts import FailurePolicy, TickbusError
from tickbus.core.mediator import Mediator


class WiringError(TickbusError):
    """The wiring file is malformed or names something that cannot be imported."""


def _imp(module: str, cls: str):
    try:
        mod = importlib.import_module(module)
        return getattr(mod, cls)
    except (ImportError, AttributeError) as e:
        raise WiringError(f"cannot import {module}.{cls}: {e}") from e


def _ref(entry: Dict[str, Any], what: str):
    try:
        return _imp(entry["module"], entry["class"])
    except (KeyError, TypeError) as e:
        raise WiringError(f"{what} entry needs 'module' and 'class': {entry!r}") from e


def build_from_dict(data: Dict[str, Any], console: Optional[Console] = None) -> Mediator:
    """Assemble a Mediator from parsed wiring data."""
    data = data or {}
    try:
        policy = FailurePolicy(data.get("policy", FailurePolicy.PROPAGATE.value))
    except ValueError as e:
        raise WiringError(str(e)) from e

    mediator = Mediator(policy=policy)
    mediator.services.add_instance(Console, console or Console())

    for s in data.get("services", []) or []:
        svc = _ref(s, "service")
        try:
            lifetime = Lifetime(s.get("lifetime", Lifetime.TRANSIENT.value))
        except ValueError as e:
            raise WiringError(f"{svc.__name__}: {e}") from e
        impl = _ref(s["impl"], "impl") if s.get("impl") else None
        mediator.services.add(svc, impl, lifetime)

    for h in data.get("handlers", []) or []:
        if "notification" not in h:
            raise WiringError(f"handler entry needs 'notification': {h!r}")
        notification = _ref(h["notification"], "notification")
        try:
            mediator.add_notification_handler(notification, _ref(h, "handler"))
        except TypeError as e:
            raise WiringError(str(e)) from e

    return mediator


def build_from_yaml(yaml_path: str | Path, console: Optional[Console] = None) -> Mediator:
    """Read a wiring file (services + handlers) and build a ready Mediator."""
    data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8"))
    if data is not None and not isinstance(data, dict):
        raise WiringError(f"{yaml_path}: top level must be a mapping")
    return build_from_dict(data or {}, console=console)
