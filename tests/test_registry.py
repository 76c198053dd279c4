from typing import Callable

import pytest

from autowire.errors import DependencyError
from autowire.markers import order, primary
from autowire.registry import ComponentRegistry


class Greeter:
    def greet(self, name: str) -> str:
        return "Hello %s" % name


class UppercaseGreeter(Greeter):
    def greet(self, name: str) -> str:
        return super().greet(name).upper()


@primary
class PreferredGreeter(Greeter):
    pass


@order(3)
class OrderedGreeter(Greeter):
    pass


class SelfOrderedGreeter(Greeter):
    def get_order(self) -> int:
        return 7


class Context:
    pass


class SpecialContext(Context):
    pass


@pytest.fixture
def registry():
    return ComponentRegistry()


@pytest.fixture
def greeter(registry):
    @registry.provides(qualifiers=["friendly"])
    def make_greeter() -> Greeter:
        return Greeter()

    return registry.find_by_name("greeter")


def test_provider_is_registered(registry, greeter):
    assert greeter.declared_type is Greeter
    assert greeter.qualifiers == frozenset({"friendly"})
    assert registry.get_component(greeter).greet("Dominic") == "Hello Dominic"


def test_name_resolution_from_declaring_function_name(registry):
    @registry.provides()
    def uppercase_greeter() -> Greeter:
        return UppercaseGreeter()

    @registry.provides(name="shouty")
    def make_shouty() -> Callable[[str], str]:
        return str.upper

    assert registry.names() == ["uppercase_greeter", "shouty"]


def test_provided_components_are_built_once(registry):
    built = []

    @registry.provides()
    def make_greeter() -> Greeter:
        built.append(1)
        return Greeter()

    descriptor = registry.find_by_name("greeter")
    assert registry.get_component(descriptor) is registry.get_component(descriptor)
    assert built == [1]


def test_classes_can_be_provided(registry):
    registry.provides()(UppercaseGreeter)

    descriptor = registry.find_by_name("UppercaseGreeter")
    assert descriptor.declared_type is UppercaseGreeter
    assert isinstance(registry.get_component(descriptor), UppercaseGreeter)


def test_throws_dependency_error_on_provider_without_return_type(registry):
    with pytest.raises(DependencyError, match="Provider <make_foo> declares no return type"):

        @registry.provides()
        def make_foo():
            pass


def test_throws_dependency_error_on_duplicate_name(registry, greeter):
    with pytest.raises(DependencyError, match="Component <greeter> is already registered"):
        registry.register("greeter", Greeter())


def test_priority_and_primary_metadata(registry):
    registry.register("preferred", PreferredGreeter())
    registry.register("ordered", OrderedGreeter())
    registry.register("selfOrdered", SelfOrderedGreeter())
    registry.register("explicit", SelfOrderedGreeter(), priority=1)

    def descriptor(name):
        return registry.find_by_name(name)

    assert registry.is_primary(descriptor("preferred"))
    assert not registry.is_primary(descriptor("ordered"))
    assert registry.priority_of(descriptor("preferred")) is None
    assert registry.priority_of(descriptor("ordered")) == 3
    assert registry.priority_of(descriptor("selfOrdered")) == 7
    assert registry.priority_of(descriptor("explicit")) == 1


def test_registered_classes_are_not_asked_for_their_order(registry):
    candidate = registry.register("greeterType", SelfOrderedGreeter, declared_type=type)

    assert registry.priority_of(candidate) is None
    assert registry.get_component(candidate) is SelfOrderedGreeter


def test_eligible_candidates_are_assignable_and_in_registration_order(registry):
    registry.register("uppercase", UppercaseGreeter())
    registry.register("context", Context())
    registry.register("plain", Greeter())
    registry.register("hidden", Greeter(), autowire_candidate=False)

    assert [c.name for c in registry.find_eligible_candidates(Greeter)] == ["uppercase", "plain"]
    assert [c.name for c in registry.find_eligible_candidates(UppercaseGreeter)] == ["uppercase"]


def test_resolvable_dependencies(registry):
    special = SpecialContext()
    registry.register_resolvable_dependency(Context, special)

    assert [c.resolvable for c in registry.find_eligible_candidates(Context)] == [True]
    assert [c.resolvable for c in registry.find_eligible_candidates(SpecialContext)] == [True]
    assert registry.find_eligible_candidates(Greeter) == []
    assert registry.names() == []


def test_dependents_are_recorded_once_in_order(registry):
    registry.register_dependent("clock", "service")
    registry.register_dependent("repository", "service")
    registry.register_dependent("clock", "service")

    assert registry.dependencies_for("service") == ["clock", "repository"]
    assert registry.dependencies_for("unknown") == []
