"""Domain models used throughout the framework."""

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union, get_origin

__all__ = [
    "Cardinality",
    "FailureReason",
    "PointKind",
    "CandidateDescriptor",
    "ResolutionRequest",
    "Value",
    "Values",
    "Empty",
    "Failure",
    "ResolutionResult",
    "InjectionPoint",
    "ClassInjectionMetadata",
    "ConstructorCandidate",
    "ConstructorSelection",
]


class Cardinality(Enum):
    """How many candidates a request accepts, and in what container."""

    SINGLE = "single"
    ARRAY = "array"
    ORDERED_LIST = "ordered-list"
    NAME_KEYED_MAP = "name-keyed-map"
    FACTORY = "factory"

    @property
    def is_multiple(self) -> bool:
        return self in (
            Cardinality.ARRAY,
            Cardinality.ORDERED_LIST,
            Cardinality.NAME_KEYED_MAP,
        )


class FailureReason(Enum):
    NOT_FOUND = "not-found"
    AMBIGUOUS = "ambiguous"


class PointKind(Enum):
    FIELD = "field"
    METHOD = "method"


@dataclass(frozen=True)
class CandidateDescriptor:
    """A registry entry that may satisfy a dependency.

    Attributes:
        name: Unique registry name of the entry.
        declared_type: The type the entry provides; may be a parameterized generic
            such as ``Repository[str]``.
        qualifiers: Tags narrowing selection beyond type compatibility.
        priority: Explicit priority; lower values sort first.
        primary: Whether the entry wins single-valued ties.
        autowire_candidate: False if the entry must never be injected by type.
        index: Registration order within the registry.
        resolvable: True for objects registered as resolvable dependencies; these are
            never recorded as named dependencies of a component.
    """

    name: str
    declared_type: Any
    qualifiers: frozenset = frozenset()
    priority: Optional[int] = None
    primary: bool = False
    autowire_candidate: bool = True
    index: int = 0
    resolvable: bool = False

    @property
    def raw_type(self) -> Any:
        return get_origin(self.declared_type) or self.declared_type


@dataclass(frozen=True)
class ResolutionRequest:
    """Describes what a single parameter or field needs.

    Attributes:
        required_type: The type to match; for containers this is the element type
            (the value type for maps).
        cardinality: Whether one value, a tuple, a list, a name-keyed dict or a lazy
            factory is wanted.
        qualifier: Optional qualifier tag or registry name narrowing candidates.
        required: Whether zero candidates is a failure.
        name: The field or parameter name, used to break single-valued ties.
        default: Value to fall back on when nothing is found; ``inspect.Parameter.empty``
            when the declaration has none.
        positional_only: Whether the value must be passed positionally.
    """

    required_type: Any
    cardinality: Cardinality = Cardinality.SINGLE
    qualifier: Optional[str] = None
    required: bool = True
    name: Optional[str] = None
    default: Any = inspect.Parameter.empty
    positional_only: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    def describe(self) -> str:
        type_name = getattr(self.required_type, "__name__", repr(self.required_type))
        if self.qualifier:
            return f"{type_name} qualified by '{self.qualifier}' ({self.cardinality.value})"
        return f"{type_name} ({self.cardinality.value})"


@dataclass(frozen=True)
class Value:
    candidate: CandidateDescriptor


@dataclass(frozen=True)
class Values:
    candidates: tuple


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    request: ResolutionRequest
    candidates: tuple = ()


ResolutionResult = Union[Value, Values, Empty, Failure]


@dataclass(frozen=True)
class InjectionPoint:
    """A field or method that receives resolved values after construction.

    Attributes:
        kind: Whether the point is a field or a method.
        name: Attribute or method name as looked up on instances.
        declaring_class: The class whose body declares the point.
        requests: One request per field, or one per method parameter.
        required: Whether the marking declared the point required.
    """

    kind: PointKind
    name: str
    declaring_class: type
    requests: tuple
    required: bool = True

    @property
    def property_name(self) -> str:
        """Name used to match caller-supplied explicit values."""
        if self.kind is PointKind.METHOD and self.name.startswith("set_"):
            return self.name[4:]
        return self.name

    def describe(self) -> str:
        if self.kind is PointKind.FIELD:
            return f"field '{self.name}'"
        parameters = ", ".join(request.name for request in self.requests)
        return f"method '{self.name}({parameters})'"


@dataclass(frozen=True)
class ClassInjectionMetadata:
    """Ordered injection points of one class, superclass points first."""

    target: type
    points: tuple = ()

    def __iter__(self):
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class ConstructorCandidate:
    """A way of constructing a class together with the requests for its parameters.

    Attributes:
        name: ``"__init__"`` or the name of an alternate classmethod constructor.
        requests: One request per parameter, in signature order.
        marked: Whether the constructor was explicitly marked for injection.
        required: Whether the marking declared itself required.
    """

    name: str
    requests: tuple = ()
    marked: bool = False
    required: bool = False

    @property
    def parameter_count(self) -> int:
        return len(self.requests)

    def factory_for(self, cls: type) -> Callable:
        if self.name == "__init__":
            return cls
        return getattr(cls, self.name)


@dataclass(frozen=True)
class ConstructorSelection:
    """The constructor chosen for a class.

    ``results`` holds the resolution outcome computed while selecting, if any; it is
    consumed by the instantiation that triggered the selection only.
    """

    constructor: ConstructorCandidate
    results: Optional[tuple] = field(default=None, compare=False)
