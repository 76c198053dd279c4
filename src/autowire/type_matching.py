"""Generic-aware type matching between candidates and required types.

Required types are ordinary type hints: plain classes, parameterized generics such as
``Repository[str]`` and protocol types. Candidates declare either a class (the class of
a registered object) or a type hint (the return annotation of a factory).

Matching a parameterized requirement walks the candidate's ``__orig_bases__`` to find how
it instantiates the required generic origin, substituting type variables on the way:

    >>> class Repository(Generic[T]): ...
    >>> class GenericRepository(Repository[T]): ...
    >>> class StringRepository(GenericRepository[str]): ...
    >>> find_generic_arguments(StringRepository, Repository)
    (<class 'str'>,)

A candidate that reaches the required origin only as a raw class, or with unresolved type
variables, has no usable arguments. Such candidates match any parameterization, but only
in fallback mode.
"""

import collections.abc
import types
from dataclasses import dataclass
from typing import Annotated, Any, Generic, Optional, Protocol, TypeVar, Union, get_args, get_origin

from autowire.domain import Cardinality
from autowire.markers import ObjectFactory, Qualifier

__all__ = [
    "TypeMatcher",
    "TypeDescription",
    "describe_type",
    "find_generic_arguments",
    "is_subclass",
    "raw_type",
    "substitute",
    "type_variable_map",
]

_LIST_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Collection,
    collections.abc.Iterable,
)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_NONE_TYPE = type(None)


def raw_type(hint: Any) -> Any:
    """Return the class behind a type hint, or the hint itself if it has no origin.

    A type variable erases to its bound, or ``object`` when unbounded.
    """
    if isinstance(hint, TypeVar):
        return hint.__bound__ or object
    origin = get_origin(hint)
    if origin is Annotated:
        return raw_type(get_args(hint)[0])
    return origin or hint


def is_subclass(candidate: Any, required: Any) -> bool:
    """``issubclass`` that tolerates non-classes and non-runtime protocols."""
    if required is Any or required is object:
        return True
    if not isinstance(candidate, type) or not isinstance(required, type):
        return candidate == required
    try:
        return issubclass(candidate, required)
    except TypeError:
        return required in candidate.__mro__


def substitute(hint: Any, mapping: dict) -> Any:
    """Replace type variables in ``hint`` using ``mapping``.

    Type variables absent from the mapping are left in place.
    """
    if isinstance(hint, TypeVar):
        return mapping.get(hint, hint)
    if isinstance(hint, list):
        return [substitute(item, mapping) for item in hint]
    if not mapping or get_origin(hint) is None:
        return hint
    parameters = getattr(hint, "__parameters__", ())
    if not parameters:
        return hint
    return hint[tuple(mapping.get(p, p) for p in parameters)]


def _declared_bases(cls: type) -> tuple:
    # __orig_bases__ is inherited through getattr; only the class's own entry counts
    return cls.__dict__.get("__orig_bases__", cls.__bases__)


def _search_generic_arguments(cls: type, target: type, mapping: dict) -> Optional[tuple]:
    if cls is target:
        return tuple(mapping.get(p, p) for p in getattr(cls, "__parameters__", ()))

    for base in _declared_bases(cls):
        base_origin = get_origin(base) or base
        if base_origin in (Generic, Protocol) or not isinstance(base_origin, type):
            continue
        if target not in base_origin.__mro__:
            continue
        base_arguments = get_args(base) if get_origin(base) is not None else ()
        base_parameters = getattr(base_origin, "__parameters__", ())
        base_mapping = {
            parameter: substitute(argument, mapping)
            for parameter, argument in zip(base_parameters, base_arguments)
        }
        found = _search_generic_arguments(base_origin, target, base_mapping)
        if found is not None:
            return found
    return None


def find_generic_arguments(hint: Any, target: type) -> Optional[tuple]:
    """Return the type arguments ``hint`` supplies to the generic class ``target``.

    Returns:
        A tuple of arguments, possibly holding unresolved type variables, or None if
        ``target`` is not a nominal base of ``hint``.
    """
    origin = get_origin(hint)
    if origin is Annotated:
        return find_generic_arguments(get_args(hint)[0], target)

    cls = origin or hint
    if not isinstance(cls, type):
        return None

    if origin is not None and cls is target:
        return get_args(hint)

    mapping = {}
    if origin is not None:
        mapping = dict(zip(getattr(cls, "__parameters__", ()), get_args(hint)))
    if target not in cls.__mro__:
        return None
    return _search_generic_arguments(cls, target, mapping)


def type_variable_map(cls: type, owner: type) -> dict:
    """Map the type variables declared by ``owner`` to what ``cls`` binds them to."""
    parameters = getattr(owner, "__parameters__", ())
    if not parameters or cls is owner:
        return {}
    arguments = find_generic_arguments(cls, owner) or ()
    return {
        parameter: argument
        for parameter, argument in zip(parameters, arguments)
        if not isinstance(argument, TypeVar)
    }


def _is_wildcard(argument: Any) -> bool:
    return argument is Any or isinstance(argument, TypeVar)


def _is_unresolved(argument: Any) -> bool:
    return isinstance(argument, TypeVar)


@dataclass(frozen=True)
class TypeDescription:
    """A declared type split into element type, cardinality and qualifier."""

    element_type: Any
    cardinality: Cardinality
    qualifier: Optional[str] = None
    nullable: bool = False


def _qualifier_from(metadata) -> Optional[str]:
    for item in metadata:
        if isinstance(item, Qualifier):
            return item.name
        if isinstance(item, str):
            return item
    return None


def describe_type(hint: Any) -> TypeDescription:
    """Split a field or parameter annotation into what the resolver needs.

    ``Annotated`` metadata supplies the qualifier, ``Optional[...]`` makes the point
    nullable, and container types select the cardinality:

    * ``list[T]``, ``Sequence[T]``, ``Collection[T]``, ``Iterable[T]``: ordered list
    * ``tuple[T, ...]``: array
    * ``dict[str, T]``, ``Mapping[str, T]``: name-keyed map
    * ``ObjectFactory[T]``: lazy factory
    """
    qualifier = None
    nullable = False

    if get_origin(hint) is Annotated:
        hint, *metadata = get_args(hint)
        qualifier = _qualifier_from(metadata)

    if get_origin(hint) in (Union, types.UnionType):
        members = [member for member in get_args(hint) if member is not _NONE_TYPE]
        if len(members) == 1 and len(members) < len(get_args(hint)):
            hint = members[0]
            nullable = True

    origin = get_origin(hint)
    arguments = get_args(hint)

    if origin in _LIST_ORIGINS and len(arguments) == 1:
        return TypeDescription(arguments[0], Cardinality.ORDERED_LIST, qualifier, nullable)
    if origin is tuple and len(arguments) == 2 and arguments[1] is Ellipsis:
        return TypeDescription(arguments[0], Cardinality.ARRAY, qualifier, nullable)
    if origin in _MAP_ORIGINS and len(arguments) == 2 and arguments[0] is str:
        return TypeDescription(arguments[1], Cardinality.NAME_KEYED_MAP, qualifier, nullable)
    if hint is ObjectFactory or origin is ObjectFactory:
        element = arguments[0] if arguments else Any
        return TypeDescription(element, Cardinality.FACTORY, qualifier, nullable)
    return TypeDescription(hint, Cardinality.SINGLE, qualifier, nullable)


class TypeMatcher:
    """Decides whether a candidate's declared type satisfies a required type."""

    def is_assignable(self, candidate_type: Any, required_type: Any) -> bool:
        """Raw assignability: the candidate's class is the required class or a subclass."""
        if isinstance(candidate_type, TypeVar):
            return True
        return is_subclass(raw_type(candidate_type), raw_type(required_type))

    def matches(self, candidate_type: Any, required_type: Any, fallback: bool = False) -> bool:
        """Check a candidate type against a possibly parameterized required type.

        Args:
            candidate_type: The type declared by the candidate.
            required_type: The element type requested.
            fallback: Accept candidates whose generic arguments are raw or unresolved.
        """
        if isinstance(candidate_type, TypeVar):
            return fallback
        if not self.is_assignable(candidate_type, required_type):
            return False

        required_origin = raw_type(required_type)
        required_arguments = (
            get_args(required_type) if get_origin(required_type) is not None else ()
        )
        if not required_arguments or all(_is_wildcard(a) for a in required_arguments):
            return True

        candidate_arguments = find_generic_arguments(candidate_type, required_origin)
        if candidate_arguments is None or len(candidate_arguments) != len(required_arguments):
            return fallback
        return all(
            self._argument_matches(candidate, required, fallback)
            for candidate, required in zip(candidate_arguments, required_arguments)
        )

    def _argument_matches(self, candidate: Any, required: Any, fallback: bool) -> bool:
        if _is_wildcard(required):
            return True
        if _is_unresolved(candidate):
            return fallback
        if isinstance(required, list):
            return (
                isinstance(candidate, list)
                and len(candidate) == len(required)
                and all(self._argument_matches(c, r, fallback) for c, r in zip(candidate, required))
            )

        required_arguments = get_args(required) if get_origin(required) is not None else ()
        if not required_arguments:
            return candidate == required or raw_type(candidate) == required

        if raw_type(candidate) != raw_type(required):
            return False
        candidate_arguments = get_args(candidate) if get_origin(candidate) is not None else ()
        if len(candidate_arguments) != len(required_arguments):
            return fallback
        return all(
            self._argument_matches(c, r, fallback)
            for c, r in zip(candidate_arguments, required_arguments)
        )
