# src/tickbus/core/container.py
from __future__ import annotations

import inspect
import threading
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from tickbus.core import log
from tickbus.core.contracts import RegistryFrozenError, ResolutionError

T = TypeVar("T")

l = log.get("container")


class Lifetime(str, Enum):
    SINGLETON = "singleton"   # one instance per provider
    SCOPED = "scoped"         # one instance per scope
    TRANSIENT = "transient"   # new instance per resolution


@dataclass(frozen=True)
class ServiceDescriptor:
    service_type: type
    factory: Callable[["Resolver"], Any]
    lifetime: Lifetime


def _constructor_hints(cls: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(cls.__init__)
    except Exception as e:
        raise ResolutionError(f"cannot read constructor annotations of {cls.__qualname__}: {e}") from e


def construct(cls: Type[T], resolver: "Resolver") -> T:
    """Build ``cls`` by resolving each annotated ``__init__`` parameter.

    Parameters without an annotation, or whose type is not registered, fall
    back to their default; with no default that is a ResolutionError.
    """
    if cls.__init__ is object.__init__:
        return cls()
    hints = _constructor_hints(cls)
    kwargs: Dict[str, Any] = {}
    for name, p in inspect.signature(cls.__init__).parameters.items():
        if name == "self" or p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue
        dep = hints.get(name)
        if dep is not None and resolver.can_resolve(dep):
            kwargs[name] = resolver.resolve(dep)
        elif p.default is p.empty:
            raise ResolutionError(
                f"{cls.__qualname__}: no registration for parameter {name!r} ({getattr(dep, '__name__', dep)})"
            )
    return cls(**kwargs)


def _as_factory(impl: Any) -> Callable[["Resolver"], Any]:
    if inspect.isclass(impl):
        return lambda r: construct(impl, r)
    if callable(impl):
        return impl
    raise TypeError(f"implementation must be a class or a callable, got {impl!r}")


class ServiceCollection:
    """Registration side of the container. Sealed by build_provider()."""

    def __init__(self) -> None:
        self._descriptors: Dict[type, ServiceDescriptor] = {}
        self._frozen = False

    def add(self, service_type: type, impl: Any = None, lifetime: Lifetime = Lifetime.TRANSIENT) -> "ServiceCollection":
        if self._frozen:
            raise RegistryFrozenError(f"cannot register {service_type.__name__}: provider already built")
        factory = _as_factory(service_type if impl is None else impl)
        self._descriptors[service_type] = ServiceDescriptor(service_type, factory, Lifetime(lifetime))
        l.debug("registered %s lifetime=%s", service_type.__name__, Lifetime(lifetime).value)
        return self

    def add_singleton(self, service_type: type, impl: Any = None) -> "ServiceCollection":
        return self.add(service_type, impl, Lifetime.SINGLETON)

    def add_scoped(self, service_type: type, impl: Any = None) -> "ServiceCollection":
        return self.add(service_type, impl, Lifetime.SCOPED)

    def add_transient(self, service_type: type, impl: Any = None) -> "ServiceCollection":
        return self.add(service_type, impl, Lifetime.TRANSIENT)

    def add_instance(self, service_type: type, instance: Any) -> "ServiceCollection":
        return self.add(service_type, lambda _r: instance, Lifetime.SINGLETON)

    def __contains__(self, service_type: object) -> bool:
        return service_type in self._descriptors

    def lifetime_of(self, service_type: type) -> Optional[Lifetime]:
        d = self._descriptors.get(service_type)
        return None if d is None else d.lifetime

    def __len__(self) -> int:
        return len(self._descriptors)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def build_provider(self) -> "ServiceProvider":
        self._frozen = True
        return ServiceProvider(dict(self._descriptors))


class Resolver:
    """Shared resolution logic for the root provider and its scopes."""

    def __init__(self, descriptors: Dict[type, ServiceDescriptor]):
        self._descriptors = descriptors
        self._resolving: List[type] = []

    def can_resolve(self, service_type: object) -> bool:
        return service_type in self._descriptors

    def _descriptor(self, service_type: type) -> ServiceDescriptor:
        d = self._descriptors.get(service_type)
        if d is None:
            raise ResolutionError(f"no registration for {getattr(service_type, '__name__', service_type)}")
        return d

    def _build(self, d: ServiceDescriptor) -> Any:
        if d.service_type in self._resolving:
            chain = " -> ".join(t.__name__ for t in [*self._resolving, d.service_type])
            raise ResolutionError(f"dependency cycle: {chain}")
        self._resolving.append(d.service_type)
        try:
            return d.factory(self)
        except ResolutionError:
            raise
        except Exception as e:
            raise ResolutionError(f"factory for {d.service_type.__name__} failed: {e}") from e
        finally:
            self._resolving.pop()

    def resolve(self, service_type: Type[T]) -> T:  # pragma: no cover - overridden
        raise NotImplementedError

    def get(self, service_type: Type[T], default: Optional[T] = None) -> Optional[T]:
        if not self.can_resolve(service_type):
            return default
        return self.resolve(service_type)


class ServiceProvider(Resolver):
    """Root provider: owns singletons, hands out scopes."""

    def __init__(self, descriptors: Dict[type, ServiceDescriptor]):
        super().__init__(descriptors)
        self._singletons: Dict[type, Any] = {}
        self._lock = threading.RLock()

    def resolve(self, service_type: Type[T]) -> T:
        d = self._descriptor(service_type)
        if d.lifetime is Lifetime.SINGLETON:
            return self._singleton(d)
        if d.lifetime is Lifetime.SCOPED:
            raise ResolutionError(f"{service_type.__name__} is scoped; resolve it from a scope, not the root provider")
        return self._build(d)

    def _singleton(self, d: ServiceDescriptor) -> Any:
        with self._lock:
            if d.service_type not in self._singletons:
                self._singletons[d.service_type] = self._build(d)
            return self._singletons[d.service_type]

    def create_scope(self) -> "Scope":
        return Scope(self)


class Scope(Resolver):
    """
    Resolution scope. Scoped services are cached for the life of the scope;
    transients are built fresh on each resolve; singletons come from the root.
    Objects the scope built that expose close() are closed on exit, newest first.
    """

    def __init__(self, root: ServiceProvider):
        super().__init__(root._descriptors)
        self.root = root
        self._scoped: Dict[type, Any] = {}
        self._owned: List[Any] = []
        self.closed = False

    def resolve(self, service_type: Type[T]) -> T:
        if self.closed:
            raise ResolutionError("scope is closed")
        d = self._descriptor(service_type)
        if d.lifetime is Lifetime.SINGLETON:
            return self.root._singleton(d)
        if d.lifetime is Lifetime.SCOPED:
            if service_type not in self._scoped:
                self._scoped[service_type] = self._track(self._build(d))
            return self._scoped[service_type]
        return self._track(self._build(d))

    def _track(self, obj: Any) -> Any:
        if callable(getattr(obj, "close", None)):
            self._owned.append(obj)
        return obj

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        owned, self._owned = self._owned, []
        self._scoped.clear()
        first_err: Optional[BaseException] = None
        for obj in reversed(owned):
            try:
                obj.close()
            except Exception as e:
                l.debug("close failed for %s: %s", type(obj).__name__, e)
                if first_err is None:
                    first_err = e
        if first_err is not None:
            raise first_err

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
