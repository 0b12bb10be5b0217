"""Integration tests for edge cases and unusual scenarios."""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from enum import Enum
from typing import NamedTuple, Optional, Union

import pytest

from trellis_di import (
    Callback,
    CircularDependencyError,
    Container,
    DefaultReference,
    MissingArgumentError,
    NotFoundError,
    Reference,
    TypeMismatchError,
)


class Storage(ABC):
    @abstractmethod
    def save(self, item):
        pass


class DiskStorage(Storage):
    def __init__(self):
        self.items = []

    def save(self, item):
        self.items.append(item)


class Cache:
    pass


class LateBound:
    def __init__(self, storage: "DiskStorage"):
        self.storage = storage


class Node:
    def __init__(self, parent):
        self.parent = parent


class Marked:
    def __init__(self):
        self.marks = []

    def mark(self, tag="default"):
        self.marks.append(tag)


class Leaf:
    pass


class Branch:
    def __init__(self, leaf: Leaf):
        self.leaf = leaf


class Trunk:
    def __init__(self, branch: Branch, leaf: Leaf):
        self.branch = branch
        self.leaf = leaf


class Choosy:
    def __init__(self, backend: Union[DiskStorage, Cache, None] = None, fallback: Optional[Storage] = None):
        self.backend = backend
        self.fallback = fallback


class Exporter:
    def __init__(self, storage: Storage):
        self.storage = storage
        self.formats = []

    def add_format(self, name, storage: Storage):
        self.formats.append((name, storage))


class Mode(Enum):
    FAST = "fast"
    SAFE = "safe"


class Worker:
    def __init__(self, mode: Mode = Mode.FAST):
        self.mode = mode


class Poller:
    def __init__(self, interval: timedelta = timedelta(seconds=5)):
        self.interval = interval


class Point(NamedTuple):
    x: int
    y: int


class TestTypeHints:
    """Test scenarios with unusual type hints."""

    def test_string_annotation_is_resolved(self):
        """Test that forward references in annotations are auto-wired."""
        storage = Container().get(LateBound).storage

        assert isinstance(storage, DiskStorage)

    def test_ambiguous_union_is_not_auto_wired(self):
        """Test that unions of several classes fall back to the default."""
        choosy = Container().get(Choosy)

        assert choosy.backend is None

    def test_optional_abstract_without_rule_uses_default(self):
        assert Container().get(Choosy).fallback is None

    def test_optional_abstract_with_rule_is_auto_wired(self):
        container = Container()
        container.rule(Storage).set_class(DiskStorage)

        assert isinstance(container.get(Choosy).fallback, DiskStorage)

    def test_untyped_parameter_is_required(self):
        with pytest.raises(MissingArgumentError) as exc_info:
            Container().get(Node)

        assert exc_info.value.parameter == "parent"


class TestDefaultRule:
    """Test scenarios for the rule applied to every identifier."""

    def test_default_rule_shares_everything(self):
        container = Container()
        container.default_rule().set_shared(True)

        assert container.get(Leaf) is container.get(Leaf)

    def test_exact_rule_overrides_default_sharing(self):
        container = Container()
        container.default_rule().set_shared(True)
        container.rule(Leaf).set_shared(False)

        assert container.get(Leaf) is not container.get(Leaf)

    def test_no_inherit_ignores_default_rule(self):
        container = Container()
        container.default_rule().set_shared(True)
        container.rule(Leaf).set_inherit(False)

        assert container.get(Leaf) is not container.get(Leaf)

    def test_default_rule_calls_run_first(self):
        container = Container()
        container.default_rule().add_call("mark", ["from default"])
        container.rule(Marked).add_call("mark", ["from rule"])

        assert container.get(Marked).marks == ["from default", "from rule"]

    def test_container_shared_default(self):
        container = Container(shared=True)

        assert container.get(Leaf) is container.get(Leaf)
        assert container.get(Trunk).leaf is container.get(Trunk).branch.leaf


class TestDependencyGraphs:
    """Test deeper and shared dependency graphs."""

    def test_unshared_graph_builds_fresh_leaves(self):
        trunk = Container().get(Trunk)

        assert trunk.leaf is not trunk.branch.leaf

    def test_shared_leaf_is_reused_across_graph(self):
        container = Container()
        container.rule(Leaf).set_shared(True)

        trunk = container.get(Trunk)

        assert trunk.leaf is trunk.branch.leaf

    def test_self_reference_is_circular(self):
        """Test that a rule referencing its own identifier is detected."""
        container = Container()
        container.rule(Node).set_constructor_args({"parent": Reference(Node)})

        with pytest.raises(CircularDependencyError) as exc_info:
            container.get(Node)

        assert len(exc_info.value.dependency_chain) == 2

    def test_container_usable_after_circular_error(self):
        container = Container()
        container.rule(Node).set_constructor_args({"parent": Reference(Node)})

        with pytest.raises(CircularDependencyError):
            container.get(Node)

        container.rule(Node).set_constructor_args({"parent": None})
        assert container.get(Node).parent is None

    def test_reference_to_label_in_constructor_args(self):
        container = Container().set_instance("root", "tree")
        container.rule(Node).set_constructor_args([Reference("root")])

        assert container.get(Node).parent == "tree"


class TestMethodCalls:
    """Test post-construction calls with injected arguments."""

    def test_call_arguments_are_auto_wired(self):
        container = Container()
        container.rule(Storage).set_class(DiskStorage).set_shared(True)
        container.rule(Exporter).add_call("add_format", ["csv"])

        exporter = container.get(Exporter)

        assert exporter.formats == [("csv", exporter.storage)]

    def test_call_arguments_use_callbacks_per_call(self):
        container = Container()
        counter = iter(range(10))
        container.rule(Marked).add_call("mark", [Callback(lambda: next(counter))]).add_call(
            "mark", [Callback(lambda: next(counter))]
        )

        assert container.get(Marked).marks == [0, 1]

    def test_call_to_missing_method(self):
        container = Container()
        container.rule(Leaf).add_call("grow")

        with pytest.raises(TypeMismatchError):
            container.get(Leaf)


class TestIdentifiers:
    """Test unusual identifiers."""

    def test_invalid_identifier(self):
        with pytest.raises(TypeMismatchError):
            Container().get(42)

    def test_abstract_class_by_name(self):
        container = Container()

        with pytest.raises(NotFoundError) as exc_info:
            container.get(f"{Storage.__module__}.{Storage.__qualname__}")

        assert "abstract" in str(exc_info.value)

    def test_rule_class_given_as_name(self):
        container = Container()
        container.rule(Storage).set_class(f"{DiskStorage.__module__}.{DiskStorage.__qualname__}".upper())

        assert isinstance(container.get(Storage), DiskStorage)

    def test_label_with_factory_and_caller_args(self):
        container = Container()
        container.rule("greeting").set_factory(lambda name, punctuation="!": f"hello {name}{punctuation}")

        assert container.get_args("greeting", ["world"]) == "hello world!"
        assert container.get_args("greeting", {"name": "you", "punctuation": "?"}) == "hello you?"


class TestValueParameters:
    """Test constructors taking values rather than services."""

    def test_enum_default(self):
        assert Container().get(Worker).mode is Mode.FAST

    def test_enum_argument(self):
        assert Container().get_args(Worker, [Mode.SAFE]).mode is Mode.SAFE

    def test_value_type_default(self):
        assert Container().get(Poller).interval == timedelta(seconds=5)

    def test_value_type_from_rule(self):
        container = Container()
        container.rule(Poller).set_constructor_args({"interval": timedelta(minutes=1)})

        assert container.get(Poller).interval == timedelta(minutes=1)


class TestNewBasedConstructors:
    """Test classes whose arguments are taken by __new__."""

    def test_named_tuple_rule_args(self):
        container = Container()
        container.rule(Point).set_constructor_args([1, 2])

        assert container.get(Point) == Point(1, 2)

    def test_named_tuple_caller_args(self):
        assert Container().get_args(Point, {"x": 3, "y": 4}) == Point(3, 4)

    def test_builtin_class_with_positional_args(self):
        assert Container().get_args(date, [2020, 1, 2]) == date(2020, 1, 2)


class TestDefaultReferences:
    """Test references with a fallback value."""

    def test_default_used_when_missing(self):
        container = Container()
        container.rule(Node).set_constructor_args([DefaultReference("root", default="orphan")])

        assert container.get(Node).parent == "orphan"

    def test_value_used_when_present(self):
        container = Container().set_instance("root", "tree")
        container.rule(Node).set_constructor_args([DefaultReference("root", default="orphan")])

        assert container.get(Node).parent == "tree"
