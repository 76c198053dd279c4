from typing import Annotated, Any, Generic, Optional, Protocol, Sequence, TypeVar, runtime_checkable

import pytest

from autowire.domain import Cardinality
from autowire.markers import ObjectFactory, Qualifier
from autowire.type_matching import (
    TypeDescription,
    TypeMatcher,
    describe_type,
    find_generic_arguments,
    type_variable_map,
)

T = TypeVar("T")
K = TypeVar("K")


class Repository(Generic[T]):
    pass


class GenericRepository(Repository[T]):
    pass


class StringRepository(GenericRepository[str]):
    pass


class IntegerRepository(Repository[int]):
    pass


class BooleanRepository(Repository[bool]):
    pass


class RawRepository(GenericRepository):
    pass


class ListRepository(Repository[list[str]]):
    pass


class Pair(Generic[K, T]):
    pass


class StringKeyed(Pair[str, T]):
    pass


class StringToInteger(StringKeyed[int]):
    pass


class Greeter(Protocol):
    def greet(self) -> str: ...


@runtime_checkable
class CheckedGreeter(Protocol):
    def greet(self) -> str: ...


class EnglishGreeter:
    def greet(self) -> str:
        return "Hello"


class Service:
    pass


@pytest.fixture
def matcher():
    return TypeMatcher()


def test_generic_arguments_are_found_through_intermediate_bases():
    assert find_generic_arguments(StringRepository, Repository) == (str,)
    assert find_generic_arguments(StringToInteger, Pair) == (str, int)


def test_parameterized_candidate_supplies_its_own_arguments():
    assert find_generic_arguments(GenericRepository[int], Repository) == (int,)
    assert find_generic_arguments(Repository[str], Repository) == (str,)


def test_unrelated_class_has_no_generic_arguments():
    assert find_generic_arguments(Service, Repository) is None


def test_type_variable_map_binds_ancestor_variables():
    assert type_variable_map(StringRepository, Repository) == {T: str}
    assert type_variable_map(RawRepository, Repository) == {}


def test_matches_on_generic_arguments(matcher):
    assert matcher.matches(StringRepository, Repository[str])
    assert not matcher.matches(StringRepository, Repository[int])
    assert matcher.matches(IntegerRepository, Repository[int])
    assert not matcher.matches(IntegerRepository, Repository[str])


def test_generic_arguments_are_invariant(matcher):
    assert not matcher.matches(BooleanRepository, Repository[int])


def test_nested_generic_arguments(matcher):
    assert matcher.matches(ListRepository, Repository[list[str]])
    assert not matcher.matches(ListRepository, Repository[list[int]])
    assert matcher.matches(ListRepository, Repository[list])


def test_raw_and_wildcard_requirements_accept_any_parameterization(matcher):
    assert matcher.matches(StringRepository, Repository)
    assert matcher.matches(StringRepository, Repository[Any])
    assert matcher.matches(StringRepository, Repository[T])


def test_raw_candidate_only_matches_in_fallback(matcher):
    assert not matcher.matches(RawRepository, Repository[str])
    assert matcher.matches(RawRepository, Repository[str], fallback=True)
    assert not matcher.matches(StringRepository, Repository[int], fallback=True)


def test_object_and_any_accept_everything(matcher):
    assert matcher.matches(Service, object)
    assert matcher.matches(Service, Any)


def test_protocols(matcher):
    assert matcher.matches(EnglishGreeter, CheckedGreeter)
    assert not matcher.matches(EnglishGreeter, Greeter)


def test_describe_single_and_optional():
    description = describe_type(Optional[Service])
    assert description.element_type is Service
    assert description.cardinality is Cardinality.SINGLE
    assert description.nullable

    assert describe_type(Service | None).nullable
    assert not describe_type(Service).nullable


@pytest.mark.parametrize(
    "hint, cardinality",
    [
        (list[Service], Cardinality.ORDERED_LIST),
        (Sequence[Service], Cardinality.ORDERED_LIST),
        (tuple[Service, ...], Cardinality.ARRAY),
        (dict[str, Service], Cardinality.NAME_KEYED_MAP),
        (ObjectFactory[Service], Cardinality.FACTORY),
    ],
)
def test_describe_containers(hint, cardinality):
    description = describe_type(hint)
    assert description.cardinality is cardinality
    assert description.element_type is Service


def test_describe_reads_qualifiers_from_annotated():
    assert describe_type(Annotated[Service, Qualifier("fast")]).qualifier == "fast"
    assert describe_type(Annotated[Service, "slow"]).qualifier == "slow"
    assert describe_type(Annotated[list[Service], "fast"]).cardinality is Cardinality.ORDERED_LIST


def test_descriptions_compare_by_value():
    assert describe_type(Annotated[Optional[Service], "fast"]) == TypeDescription(
        Service, Cardinality.SINGLE, "fast", True
    )
    assert describe_type(list[Service]) == TypeDescription(Service, Cardinality.ORDERED_LIST)
