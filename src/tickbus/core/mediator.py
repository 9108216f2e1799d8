# src/tickbus/core/mediator.py
from __future__ import annotations

import inspect
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple, Type, runtime_checkable

from tickbus.core import log
from tickbus.core.container import Lifetime, ServiceCollection, ServiceProvider
from tickbus.core.contracts import FailurePolicy, Notification, RegistryFrozenError
from tickbus.core.metrics import inc, observe_hist


@runtime_checkable
class NotificationHandler(Protocol):
    """Anything with handle(notification); the method may be async."""

    def handle(self, notification: Any) -> Any:
        ...


class Mediator:
    """
    Notification bus with per-publish dependency resolution.

    Handlers are registered as classes, never instances. Every publish opens a
    new scope on the provider and builds each handler from it, so transient
    dependencies are fresh on every tick and scoped ones live for one publish.

    Lookup is by exact notification type. Handlers run one at a time in
    registration order; with FailurePolicy.PROPAGATE the first error aborts the
    rest and is re-raised, with FailurePolicy.ISOLATE it is logged and the next
    handler runs.
    """

    def __init__(
        self,
        services: Optional[ServiceCollection] = None,
        *,
        policy: FailurePolicy | str = FailurePolicy.PROPAGATE,
        name: str = "mediator",
    ):
        self.services = services if services is not None else ServiceCollection()
        self.policy = FailurePolicy(policy)
        self.name = name
        self.l = log.get(name)
        self._routes: Dict[type, List[type]] = {}
        self._provider: Optional[ServiceProvider] = None

    # -------------------- registration --------------------
    def add_notification_handler(self, notification_type: type, handler_type: Type[NotificationHandler]) -> "Mediator":
        if self._provider is not None:
            raise RegistryFrozenError(f"{self.name}: cannot add {handler_type.__name__} after first publish")
        if not inspect.isclass(handler_type) or not callable(getattr(handler_type, "handle", None)):
            raise TypeError(f"{handler_type!r} must be a class with a handle() method")
        lifetime = self.services.lifetime_of(handler_type)
        if lifetime is None:
            self.services.add_transient(handler_type)
        elif lifetime is not Lifetime.TRANSIENT:
            raise TypeError(f"{handler_type.__name__} is registered as {lifetime.value}; handlers must be transient")
        self._routes.setdefault(notification_type, []).append(handler_type)
        self.l.info("handler registered notification=%s handler=%s", notification_type.__name__, handler_type.__name__)
        return self

    def register_handlers(self, mapping: Mapping[type, Iterable[type]]) -> "Mediator":
        for notification_type, handler_types in mapping.items():
            for handler_type in handler_types:
                self.add_notification_handler(notification_type, handler_type)
        return self

    def handlers_for(self, notification_type: type) -> Tuple[Type[NotificationHandler], ...]:
        return tuple(self._routes.get(notification_type, ()))

    def freeze(self) -> ServiceProvider:
        """Seal the registry and the service collection. Idempotent."""
        if self._provider is None:
            self._provider = self.services.build_provider()
            self.l.debug("registry frozen routes=%d", len(self._routes))
        return self._provider

    @property
    def provider(self) -> ServiceProvider:
        return self.freeze()

    # -------------------- dispatch --------------------
    async def publish(self, notification: Notification) -> None:
        provider = self.freeze()
        ntype = type(notification)
        nname = ntype.__name__
        handler_types = self._routes.get(ntype)
        inc("mediator_publish_total", 1, notification=nname)
        if not handler_types:
            self.l.debug("no handlers for %s", nname)
            return

        with provider.create_scope() as scope:
            for handler_type in handler_types:
                hname = handler_type.__name__
                t0 = time.perf_counter()
                try:
                    handler = scope.resolve(handler_type)
                    result = handler.handle(notification)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    inc("mediator_handler_errors_total", 1, notification=nname, handler=hname)
                    if self.policy is FailurePolicy.PROPAGATE:
                        self.l.debug("handler failed notification=%s handler=%s err=%s; aborting publish", nname, hname, e)
                        raise
                    self.l.error("handler failed notification=%s handler=%s err=%s", nname, hname, e, exc_info=True)
                    continue
                finally:
                    observe_hist("mediator_handler_ms", (time.perf_counter() - t0) * 1000.0, handler=hname)
                inc("mediator_handler_total", 1, notification=nname, handler=hname)
