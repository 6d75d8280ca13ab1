from __future__ import annotations

import builtins
import importlib
import inspect
import logging
import types
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin, get_type_hints

from ._errors import UnresolvableBindingError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

MISSING: Any = inspect.Parameter.empty

_UNION_TYPES: tuple[Any, ...] = (Union, getattr(types, "UnionType", Union))


@dataclass(frozen=True)
class Dependency:
    """One parameter of a constructor, method or function.

    A class can skip signature introspection entirely by declaring its
    constructor dependencies up front::

        class Mailer:
            __dependencies__ = (
                Dependency("transport", Transport),
                Dependency("sender", str, default="noreply@example.com"),
            )
    """

    name: str
    annotation: Any = MISSING
    default: Any = MISSING
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def has_type(self) -> bool:
        return self.annotation is not MISSING

    @property
    def is_variadic(self) -> bool:
        return self.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def identify(token: type | str) -> str:
    """Return the registry key for a class or string identifier."""
    if isinstance(token, str):
        return token
    if inspect.isclass(token):
        return f"{token.__module__}.{token.__qualname__}"
    msg = f"Identifiers must be classes or strings, got {token!r}"
    raise TypeError(msg)


def is_factory(obj: object) -> bool:
    return callable(obj) and not inspect.isclass(obj)


def unwrap_optional(annotation: Any) -> Any:
    """``Optional[X]`` and ``X | None`` wire like ``X``."""
    if get_origin(annotation) in _UNION_TYPES:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def is_builtin(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return inspect.isclass(getattr(builtins, annotation, None))
    target = get_origin(annotation) or annotation
    return inspect.isclass(target) and target.__module__ == "builtins"


def locate(path: str) -> object | None:
    """Import the object named by a dotted path, or return None."""
    parts = [part for part in path.split(".") if part]
    for i in range(len(parts), 0, -1):
        try:
            obj: object = importlib.import_module(".".join(parts[:i]))
        except ImportError:
            continue

        for attr in parts[i:]:
            obj = getattr(obj, attr, MISSING)
            if obj is MISSING:
                return None
        return obj
    return None


def describe(target: Callable[..., object]) -> tuple[Dependency, ...]:
    """Build the dependency descriptor of a class or callable.

    Classes may provide a static ``__dependencies__`` sequence; everything else
    is derived from the signature, preferring evaluated type hints over raw
    annotations.
    """
    if inspect.isclass(target):
        declared = getattr(target, "__dependencies__", None)
        if declared is not None:
            return tuple(declared)
        if target.__init__ is object.__init__:
            return ()
        hints = _get_type_hints(target.__init__, target)
    elif inspect.isfunction(target) or inspect.ismethod(target):
        hints = _get_type_hints(target, target)
    else:
        hints = _get_type_hints(getattr(type(target), "__call__", None), target)

    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError) as e:
        msg = f"Unable to inspect the signature of `{label(target)}`: {e}"
        raise UnresolvableBindingError(msg) from e

    return tuple(
        Dependency(
            name=name,
            annotation=hints.get(name, p.annotation),
            default=p.default,
            kind=p.kind,
        )
        for name, p in signature.parameters.items()
    )


def label(target: object) -> str:
    return getattr(target, "__qualname__", None) or repr(target)


def _get_type_hints(obj: object, owner: object) -> dict[str, Any]:
    try:
        hints = get_type_hints(obj)
    except TypeError:
        hints = {}
    except NameError:
        hints = _evaluate_each(obj, owner)

    return hints


def _evaluate_each(obj: object, owner: object) -> dict[str, Any]:
    """Evaluate string annotations one by one; those that fail stay raw strings."""
    globalns = getattr(inspect.unwrap(obj), "__globals__", {})
    hints: dict[str, Any] = {}

    for name, annotation in getattr(obj, "__annotations__", {}).items():
        if isinstance(annotation, str):
            try:
                annotation = eval(annotation, globalns)  # noqa: S307, PLW2901
            except (NameError, AttributeError, SyntaxError) as exc:
                logger.warning(
                    "'%s' name error retrieving %s type hints (%s), using raw annotation",
                    annotation,
                    label(owner),
                    exc,
                )
        hints[name] = annotation

    return hints
