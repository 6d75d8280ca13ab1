class ContainerError(RuntimeError):
    """Base class for every failure raised by the container.

    Catch this type to handle any container error without matching each
    concrete exception class individually.
    """


class NotFoundError(ContainerError, LookupError):
    """Raised by ``Container.get`` for an identifier that was never bound.

    ``get`` is the strict entry point. Use ``Container.make`` to resolve a
    concrete class without registering it first.
    """


class ResolutionError(ContainerError):
    """Base class for failures while building an object graph."""


class NonInstantiableBindingError(ResolutionError):
    """The resolution target cannot be constructed.

    Raised for abstract base classes, protocols and anything that is not a
    class. Bind the abstract identifier to a concrete class or a factory.
    """


class UnresolvableBindingError(ResolutionError):
    """Introspection or construction of a class, method or function failed.

    Typical triggers are an identifier that names no importable class, an
    annotation the container cannot wire (e.g. ``A | B``), or a method name the
    resolved instance does not have.
    """


class UnresolvableBuiltInTypeError(ResolutionError):
    """A required parameter is annotated with a built-in type such as ``int``.

    Only object dependencies are auto-wired. Give the parameter a default value
    or construct the object with a factory.
    """


class UnresolvableMissingTypeError(ResolutionError):
    """A required parameter has no type annotation at all."""


class CircularDependencyError(ResolutionError):
    """An identifier was requested again while it was still being built."""

    def __init__(self, chain: list[str]) -> None:
        self.chain = chain
        super().__init__(f"Circular dependency detected: {' -> '.join(chain)}")
