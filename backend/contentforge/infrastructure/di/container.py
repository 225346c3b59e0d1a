"""Simple dependency injection container."""
from __future__ import annotations

import inspect
import threading
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from .scopes import Scope

T = TypeVar("T")


class Registration:
    def __init__(self, factory: Callable[["Container"], Any], scope: Scope) -> None:
        self.factory = factory
        self.scope = scope


class Container:
    _instance: Optional["Container"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._registrations: Dict[Type, Registration] = {}
        self._singletons: Dict[Type, Any] = {}

    @classmethod
    def get_instance(cls) -> "Container":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance (tests only)."""
        cls._instance = None

    def register(
        self,
        interface: Type[T],
        factory: Callable[["Container"], T],
        scope: Scope = Scope.SINGLETON,
    ) -> None:
        self._registrations[interface] = Registration(factory, scope)
        self._singletons.pop(interface, None)

    def register_instance(self, interface: Type[T], instance: T) -> None:
        """Register an already-built object, e.g. a fake in tests."""
        self._registrations[interface] = Registration(lambda _c: instance, Scope.SINGLETON)
        self._singletons[interface] = instance

    def resolve(self, interface: Type[T]) -> T:
        if interface not in self._registrations:
            raise KeyError(f"No registration found for {interface.__name__}")

        registration = self._registrations[interface]
        if registration.scope == Scope.SINGLETON:
            if interface not in self._singletons:
                self._singletons[interface] = registration.factory(self)
            return self._singletons[interface]
        return registration.factory(self)

    def is_registered(self, interface: Type) -> bool:
        return interface in self._registrations

    async def aclose(self) -> None:
        """Close built singletons that expose ``aclose``."""
        for instance in list(self._singletons.values()):
            close = getattr(instance, "aclose", None)
            if close is not None and inspect.iscoroutinefunction(close):
                await close()
        self._singletons = {}
