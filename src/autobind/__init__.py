"""Runtime dependency injection container.

This package maps abstract identifiers (classes or strings) to concrete classes
or factories and builds object graphs on demand by auto-wiring constructor,
method and function parameters from their type hints.

Exports:
- `Container`: binding registry, resolved-instance cache and resolver.
- `ContainerInterface`: protocol for anything offering `has`/`get`.
- `Dependency`: static descriptor of one injectable parameter, usable via a
  class-level `__dependencies__` declaration.
- The error hierarchy rooted at `ContainerError`.
"""

from ._container import Binding, Container
from ._descriptors import Dependency
from ._errors import (
    CircularDependencyError,
    ContainerError,
    NonInstantiableBindingError,
    NotFoundError,
    ResolutionError,
    UnresolvableBindingError,
    UnresolvableBuiltInTypeError,
    UnresolvableMissingTypeError,
)
from ._interfaces import ContainerInterface


__all__ = [
    "Binding",
    "CircularDependencyError",
    "Container",
    "ContainerError",
    "ContainerInterface",
    "Dependency",
    "NonInstantiableBindingError",
    "NotFoundError",
    "ResolutionError",
    "UnresolvableBindingError",
    "UnresolvableBuiltInTypeError",
    "UnresolvableMissingTypeError",
]
