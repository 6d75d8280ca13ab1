import abc
import unittest
from typing import Optional, Protocol

import pytest

from autobind import (
    CircularDependencyError,
    Container,
    ContainerError,
    Dependency,
    NonInstantiableBindingError,
    ResolutionError,
    UnresolvableBindingError,
    UnresolvableBuiltInTypeError,
    UnresolvableMissingTypeError,
)


class Chicken:
    def __init__(self, egg: "Egg"):
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken):
        self.chicken = chicken


class Node:
    def __init__(self, parent: "Node"):
        self.parent = parent


class TestParameterTypes(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_builtin_typed_parameter_raises(self):
        class Server:
            def __init__(self, port: int):
                self.port = port

        with pytest.raises(UnresolvableBuiltInTypeError) as ctx:
            self.cont.resolve(Server)
        assert "`port`" in str(ctx.value)

    def test_builtin_typed_parameter_with_default_uses_default(self):
        class Server:
            def __init__(self, port: int = 5555):
                self.port = port

        assert self.cont.resolve(Server).port == 5555

    def test_builtin_generic_parameter_raises(self):
        class Batch:
            def __init__(self, items: list[str]):
                self.items = items

        with pytest.raises(UnresolvableBuiltInTypeError):
            self.cont.resolve(Batch)

    def test_missing_type_raises(self):
        class Repo:
            def __init__(self, db):
                self.db = db

        with pytest.raises(UnresolvableMissingTypeError) as ctx:
            self.cont.resolve(Repo)
        assert "missing type of `db`" in str(ctx.value)

    def test_missing_type_with_default_uses_default(self):
        class Repo:
            def __init__(self, db="sqlite://"):
                self.db = db

        assert self.cont.resolve(Repo).db == "sqlite://"

    def test_optional_annotation_wires_inner_type(self):
        class DB: ...

        class Repo:
            def __init__(self, db: Optional[DB]):  # noqa: UP045
                self.db = db

        assert isinstance(self.cont.resolve(Repo).db, DB)

    def test_union_of_services_raises(self):
        class A: ...

        class B: ...

        class Repo:
            def __init__(self, source: A | B):
                self.source = source

        with pytest.raises(UnresolvableBindingError):
            self.cont.resolve(Repo)

    def test_missing_type_in_factory_raises(self):
        with pytest.raises(UnresolvableMissingTypeError):
            self.cont.resolve(lambda db: db)


class TestInstantiability(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_unbound_abstract_class_raises(self):
        class Store(abc.ABC):
            @abc.abstractmethod
            def save(self) -> None: ...

        with pytest.raises(NonInstantiableBindingError):
            self.cont.make(Store)

    def test_unbound_protocol_raises(self):
        class Store(Protocol):
            def save(self) -> None: ...

        class Service:
            def __init__(self, store: Store):
                self.store = store

        with pytest.raises(NonInstantiableBindingError):
            self.cont.resolve(Service)

    def test_abstract_class_bound_to_implementation_resolves(self):
        class Store(abc.ABC):
            @abc.abstractmethod
            def save(self) -> None: ...

        class MemoryStore(Store):
            def save(self) -> None:
                pass

        self.cont.bind(Store, MemoryStore)
        assert isinstance(self.cont.make(Store), MemoryStore)

    def test_dotted_name_of_non_class_raises(self):
        with pytest.raises(NonInstantiableBindingError):
            self.cont.make("os.path.join")

    def test_constructor_error_propagates_unmodified(self):
        class Broken:
            def __init__(self):
                msg = "boom"
                raise ValueError(msg)

        with pytest.raises(ValueError, match="boom"):
            self.cont.resolve(Broken)

    def test_declared_dependencies_not_matching_signature_raise(self):
        class Mailer:
            __dependencies__ = (Dependency("sender", str, default="a@b.c"),)

            def __init__(self):
                pass

        with pytest.raises(UnresolvableBindingError):
            self.cont.resolve(Mailer)

    def test_unknown_method_raises(self):
        class Controller: ...

        with pytest.raises(UnresolvableBindingError):
            self.cont.resolve(Controller, method="handle")


class TestCircularDependencies(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_two_class_cycle_is_detected(self):
        with pytest.raises(CircularDependencyError) as ctx:
            self.cont.resolve(Chicken)

        chain = ctx.value.chain
        assert len(chain) == 3
        assert chain[0] == chain[-1]
        assert chain[1].endswith("Egg")

    def test_self_dependency_is_detected(self):
        with pytest.raises(CircularDependencyError):
            self.cont.make(Node)

    def test_cycle_through_factory_is_detected(self):
        self.cont.bind(Egg, _lay)
        self.cont.bind(Chicken, _grow)

        def hatch(egg: Egg) -> Egg:
            return egg

        with pytest.raises(CircularDependencyError) as ctx:
            self.cont.resolve(hatch)
        assert ctx.value.chain[0].endswith("Egg")

    def test_container_recovers_after_cycle_error(self):
        with pytest.raises(CircularDependencyError):
            self.cont.resolve(Chicken)

        class Leaf: ...

        assert isinstance(self.cont.make(Leaf), Leaf)


def _lay(chicken: Chicken) -> Egg:
    return Egg(chicken)


def _grow(egg: Egg) -> Chicken:
    return Chicken(egg)


def test_error_hierarchy():
    for error in (
        NonInstantiableBindingError,
        UnresolvableBindingError,
        UnresolvableBuiltInTypeError,
        UnresolvableMissingTypeError,
        CircularDependencyError,
    ):
        assert issubclass(error, ResolutionError)
        assert issubclass(error, ContainerError)
        assert issubclass(error, RuntimeError)
