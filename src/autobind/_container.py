from __future__ import annotations

import inspect
import logging
import threading
import typing
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, cast, overload

from ._descriptors import (
    Dependency,
    describe,
    identify,
    is_builtin,
    is_factory,
    label,
    locate,
    unwrap_optional,
)
from ._errors import (
    CircularDependencyError,
    NonInstantiableBindingError,
    NotFoundError,
    UnresolvableBindingError,
    UnresolvableBuiltInTypeError,
    UnresolvableMissingTypeError,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    Token = type | str
    Factory = Callable[..., Any]
    Concrete = type | str | Factory


@dataclass
class Binding:
    concrete: Concrete
    singleton: bool = False

    @property
    def is_factory(self) -> bool:
        return is_factory(self.concrete)


class Container:
    """Dependency injection container.

    - bind abstract identifiers (classes or strings) to classes or factories
    - singleton / transient bindings
    - auto-wiring of constructor, method and function parameters by type hint
    - ``get`` for strict lookups, ``make`` for implicit self-binding.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}
        self._singletons: dict[str, object] = {}
        # most recent transient instance per key, only read by the eager-reuse shortcut
        self._last_transient: dict[str, object] = {}
        self._types: dict[str, type] = {}
        self._descriptors: dict[Any, tuple[Dependency, ...]] = {}
        self._building: list[str] = []
        self._lock = threading.RLock()

    # -- registry -----------------------------------------------------------

    def bind(self, abstract: Token, concrete: Concrete | None = None, singleton: bool = False) -> Container:  # noqa: FBT001, FBT002
        """Bind an abstract identifier to a concrete class, dotted class path or factory.

        Example:
          container.bind(Cache, RedisCache)
          container.bind("clock", lambda: FrozenClock(0))
          container.bind(Settings)  # self-binding

        Re-binding an identifier replaces the previous binding.
        """
        with self._lock:
            key = self._key(abstract)
            if concrete is None:
                concrete = abstract
            elif inspect.isclass(concrete):
                self._key(concrete)

            self._bindings[key] = Binding(concrete=concrete, singleton=singleton)

        logger.debug("Bound %s -> %s (singleton=%s)", key, label(concrete), singleton)
        return self

    def singleton(self, abstract: Token, concrete: Concrete | None = None) -> Container:
        """Bind an identifier so that only a single instance is ever built."""
        return self.bind(abstract, concrete, singleton=True)

    def instance(self, abstract: Token, value: object) -> Container:
        """Register a pre-built object (always singleton)."""
        with self._lock:
            key = self._key(abstract)
            self._bindings[key] = Binding(concrete=type(value), singleton=True)
            self._singletons[key] = value

        return self

    def has(self, id: Token) -> bool:  # noqa: A002
        """Checks if an identifier was explicitly bound, not whether it can be resolved."""
        with self._lock:
            return self._key(id) in self._bindings

    @overload
    def get_bindings(self) -> dict[str, Binding]: ...

    @overload
    def get_bindings(self, id: Token) -> Binding | None: ...  # noqa: A002

    def get_bindings(self, id: Token | None = None) -> Binding | dict[str, Binding] | None:  # noqa: A002
        with self._lock:
            if id is None:
                return dict(self._bindings)
            return self._bindings.get(self._key(id))

    def get_concrete_binding(self, id: Token) -> Concrete | None:  # noqa: A002
        binding = self.get_bindings(id)
        return binding.concrete if binding is not None else None

    # -- resolved instances -------------------------------------------------

    def set_resolved(self, key: Token, instance: object) -> None:
        with self._lock:
            key = self._key(key)
            binding = self._bindings.get(key)
            if binding is not None and binding.singleton:
                self._singletons[key] = instance
            else:
                self._last_transient[key] = instance

    def get_resolved(self, key: Token | None = None) -> Any:
        """Get one resolved instance, or a mapping of all of them when ``key`` is omitted.

        A singleton instance shadows a transient one stored under the same key.
        """
        with self._lock:
            if key is None:
                return {**self._last_transient, **self._singletons}

            key = self._key(key)
            if key in self._singletons:
                return self._singletons[key]
            return self._last_transient.get(key)

    def has_resolved(self, key: Token) -> bool:
        with self._lock:
            return self._is_cached(self._key(key))

    # -- resolution ---------------------------------------------------------

    def get(self, id: Token) -> Any:  # noqa: A002
        """Resolve an identifier that must have been bound beforehand."""
        with self._lock:
            if not self.has(id):
                msg = f"`{identify(id)}` does not exist."
                raise NotFoundError(msg)

            return self.resolve(id)

    def make(self, abstract: Token, concrete: Concrete | None = None) -> Any:
        """Make an instance of ``abstract``, binding it to itself (or ``concrete``) first if unbound.

        A singleton binding keeps returning the same instance.
        """
        with self._lock:
            if not self.has(abstract):
                self.bind(abstract, concrete)

            return self.resolve(abstract)

    def resolve(self, target: Token | Factory, method: str | None = None, singleton: bool = False) -> Any:  # noqa: FBT001, FBT002
        """Resolve an identifier or a factory and all of its dependencies.

        - A factory is called with its parameters injected; the result is returned as is.
        - An identifier is built on the singleton path when ``singleton`` is set or its
          binding is a singleton, otherwise a fresh transient instance is built.
        - When ``method`` is given, that method is called on the instance with its own
          parameters injected and its return value is returned instead.
        """
        with self._lock:
            if is_factory(target):
                return self._call(cast("Factory", target))

            key = self._key(cast("Token", target))
            binding = self._bindings.get(key)

            if singleton or (binding is not None and binding.singleton):
                instance = self._resolve_singleton(key)
            else:
                instance = self._resolve_regular(key)

            if method is not None:
                return self._call_method(instance, method)

            return instance

    def _resolve_regular(self, key: str) -> object:
        instance = self._resolve_class(key)
        self._last_transient[key] = instance
        return instance

    def _resolve_singleton(self, key: str) -> object:
        if key in self._singletons:
            return self._singletons[key]

        instance = self._resolve_class(key)
        return self._singletons.setdefault(key, instance)

    def _resolve_class(self, key: str) -> object:
        binding = self._bindings.get(key)
        concrete = binding.concrete if binding is not None else key

        with self._guard(key):
            if is_factory(concrete):
                instance = self._call(cast("Factory", concrete))
                self._remember(key, instance)
                return instance

            concrete_key = self._key(cast("Token", concrete))
            if self._is_cached(concrete_key):
                instance = self._try_fast_construct(self._cached(concrete_key))
                if instance is not None:
                    logger.debug("Reused cached %s to build a new instance", concrete_key)
                    return instance

            cls = self._locate(cast("Token", concrete), concrete_key)
            args, kwargs = self._resolve_dependencies(self._describe(cls), cls.__qualname__)
            self._check_arguments(cls, args, kwargs)

            instance = cls(*args, **kwargs)
            self._last_transient[concrete_key] = instance

        logger.debug("Resolved %s -> %s", key, cls.__qualname__)
        return instance

    def _call_method(self, instance: object, method: str) -> Any:
        func = getattr(instance, method, None)
        if func is None or not callable(func):
            msg = f"Unable to resolve method `{method}` of `{type(instance).__qualname__}`"
            raise UnresolvableBindingError(msg)

        return self._call(func)

    def _call(self, function: Factory) -> Any:
        args, kwargs = self._resolve_dependencies(self._describe(function), label(function))
        self._check_arguments(function, args, kwargs)
        return function(*args, **kwargs)

    def _resolve_dependencies(
        self, dependencies: Sequence[Dependency], owner: str
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for dependency in dependencies:
            # variadic parameters are never injected
            if dependency.is_variadic:
                continue

            value = self._resolve_dependency(dependency, owner)
            if dependency.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[dependency.name] = value

        return args, kwargs

    def _resolve_dependency(self, dependency: Dependency, owner: str) -> Any:  # noqa: C901, PLR0911
        """Resolving one parameter.

        Resolution order:
        1. unannotated or built-in typed parameter: default, else error
        2. unbound type with a default: default
        3. factory binding: cached singleton, else call the factory
        4. singleton binding already built: cached instance
        5. transient binding already built: new instance from the cached one
        6. recursive resolution.
        """
        annotation = unwrap_optional(dependency.annotation)

        if not dependency.has_type or is_builtin(annotation):
            if dependency.has_default:
                return dependency.default

            if not dependency.has_type:
                msg = f"Unable to resolve missing type of `{dependency.name}` in `{owner}`"
                raise UnresolvableMissingTypeError(msg)

            msg = f"Unable to resolve built in type `{label(annotation)}` of `{dependency.name}` in `{owner}`"
            raise UnresolvableBuiltInTypeError(msg)

        if not (inspect.isclass(annotation) or isinstance(annotation, str)):
            if dependency.has_default:
                return dependency.default

            msg = f"Unable to resolve annotation `{annotation!r}` of `{dependency.name}` in `{owner}`"
            raise UnresolvableBindingError(msg)

        name = self._key(annotation)
        binding = self._bindings.get(name)

        if binding is None and dependency.has_default:
            return dependency.default

        if binding is not None and binding.is_factory:
            if binding.singleton and name in self._singletons:
                return self._singletons[name]

            with self._guard(name):
                value = self._call(cast("Factory", binding.concrete))
            return self._remember(name, value)

        if binding is not None and binding.singleton and name in self._singletons:
            return self._singletons[name]

        if binding is not None and not binding.singleton and self._is_cached(name):
            value = self._try_fast_construct(self._cached(name))
            if value is not None:
                return value

        return self._remember(name, self.resolve(annotation))

    def _try_fast_construct(self, instance: object) -> object | None:
        """Build a new object of the same class as ``instance`` using only default arguments.

        Returns None unless the class was already built by this container and every
        dependency it declares has a default, or when that constructor call fails; the
        caller then falls back to full construction.
        """
        cls = type(instance)
        dependencies = self._descriptors.get(cls)
        if dependencies is None or any(not d.has_default for d in dependencies if not d.is_variadic):
            return None

        args = [d.default for d in dependencies if d.kind is inspect.Parameter.POSITIONAL_ONLY]
        kwargs = {
            d.name: d.default
            for d in dependencies
            if not d.is_variadic and d.kind is not inspect.Parameter.POSITIONAL_ONLY
        }
        try:
            return cls(*args, **kwargs)
        except Exception as e:  # noqa: BLE001
            logger.debug("Could not rebuild %s from defaults (%s), constructing it again", cls.__qualname__, e)
            return None

    # -- helpers ------------------------------------------------------------

    def _key(self, token: Token) -> str:
        key = identify(token)
        if inspect.isclass(token):
            self._types[key] = token
        return key

    def _is_cached(self, key: str) -> bool:
        return key in self._singletons or key in self._last_transient

    def _cached(self, key: str) -> object:
        if key in self._singletons:
            return self._singletons[key]
        return self._last_transient[key]

    def _remember(self, key: str, instance: object) -> object:
        """Cache an instance built for ``key``; an existing singleton is never replaced."""
        binding = self._bindings.get(key)
        if binding is not None and binding.singleton:
            return self._singletons.setdefault(key, instance)

        self._last_transient[key] = instance
        return instance

    def _describe(self, target: Callable[..., object]) -> tuple[Dependency, ...]:
        if not (inspect.isclass(target) or inspect.isfunction(target)):
            return describe(target)

        dependencies = self._descriptors.get(target)
        if dependencies is None:
            dependencies = self._descriptors[target] = describe(target)
        return dependencies

    def _locate(self, concrete: Token, key: str) -> type:
        cls: object | None = concrete if inspect.isclass(concrete) else self._types.get(key)
        if cls is None:
            cls = locate(key)

        if cls is None:
            msg = f"Unable to resolve binding `{key}`"
            raise UnresolvableBindingError(msg)

        if not inspect.isclass(cls) or inspect.isabstract(cls) or _is_protocol(cls):
            msg = f"Unable to create an instance of non-instantiable `{key}`"
            raise NonInstantiableBindingError(msg)

        self._types[key] = cls
        return cls

    def _check_arguments(self, target: Callable[..., object], args: list[Any], kwargs: dict[str, Any]) -> None:
        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError):
            return

        try:
            signature.bind(*args, **kwargs)
        except TypeError as e:
            msg = f"Unable to resolve binding `{label(target)}`: {e}"
            raise UnresolvableBindingError(msg) from e

    @contextmanager
    def _guard(self, key: str) -> Iterator[None]:
        if key in self._building:
            chain = [*self._building[self._building.index(key) :], key]
            raise CircularDependencyError(chain)

        self._building.append(key)
        try:
            yield
        finally:
            self._building.pop()


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return issubclass(tp, cast("type", Protocol)) and bool(getattr(tp, "_is_protocol", False))
