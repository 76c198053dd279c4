"""Markers and decorators used to declare injection points on components.

Fields are declared with a marker instance as the class attribute, methods and
constructors by decorating them::

    class OrderService:
        repository: Repository[Order] = Autowired()
        cache: Annotated[Cache, Qualifier("redis")] = Autowired(required=False)

        @autowired
        def set_clock(self, clock: Clock):
            self.clock = clock

        @constructor
        @classmethod
        def for_testing(cls, repository: Repository[Order]) -> "OrderService":
            ...
"""

from typing import Any, Callable, Generic, Optional, Protocol, TypeVar, runtime_checkable

__all__ = [
    "Marker",
    "Autowired",
    "autowired",
    "constructor",
    "mark",
    "markers_of",
    "is_alternate_constructor",
    "Qualifier",
    "primary",
    "order",
    "Ordered",
    "ObjectFactory",
]

T = TypeVar("T")

_MARKERS_ATTRIBUTE = "__autowire_markers__"
_CONSTRUCTOR_ATTRIBUTE = "__autowire_constructor__"


class Marker:
    """Base class for injection markers.

    A marker instance can be used as a class attribute to mark a field, or called on a
    function to mark a method or constructor. As a class attribute it behaves as a
    non-data descriptor: reading an attribute that was never injected returns ``None``
    rather than the marker itself.

    Subclass this to define custom markers, then list the subclass in
    ``AutowireSettings.marker_types``.
    """

    qualifier: Optional[str] = None

    def __set_name__(self, owner: type, name: str):
        self.attribute_name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return None

    def __call__(self, target):
        return mark(target, self)


class Autowired(Marker):
    """Marks a field, method or constructor for injection.

    Args:
        required: If ``False``, a point with no candidate is left untouched instead of
            failing. Ambiguity is always an error.
        qualifier: Restrict a field to candidates carrying this qualifier tag or name.
    """

    def __init__(self, *, required: bool = True, qualifier: Optional[str] = None):
        self.required = required
        self.qualifier = qualifier

    def __repr__(self) -> str:
        parts: list[str] = []
        if self.qualifier:
            parts.append(f"qualifier={self.qualifier!r}")
        if not self.required:
            parts.append("required=False")
        return f"Autowired({', '.join(parts)})"


def mark(target: Any, marker: Marker) -> Any:
    """Attach ``marker`` to a function, classmethod or staticmethod and return it."""
    function = target.__func__ if isinstance(target, (classmethod, staticmethod)) else target
    markers = list(getattr(function, _MARKERS_ATTRIBUTE, ()))
    markers.append(marker)
    setattr(function, _MARKERS_ATTRIBUTE, tuple(markers))
    return target


def markers_of(target: Any) -> tuple:
    function = target.__func__ if isinstance(target, (classmethod, staticmethod)) else target
    return getattr(function, _MARKERS_ATTRIBUTE, ())


def autowired(func: Optional[Callable] = None, *, required: bool = True) -> Any:
    """Mark a method or constructor for injection.

    Usable bare (``@autowired``) or with arguments (``@autowired(required=False)``).
    """
    marker = Autowired(required=required)
    if func is not None:
        return mark(func, marker)
    return marker


def constructor(target: Any) -> Any:
    """Declare a classmethod as an alternate constructor without marking it for injection."""
    function = target.__func__ if isinstance(target, classmethod) else target
    setattr(function, _CONSTRUCTOR_ATTRIBUTE, True)
    return target


def is_alternate_constructor(target: Any) -> bool:
    return isinstance(target, classmethod) and getattr(
        target.__func__, _CONSTRUCTOR_ATTRIBUTE, False
    )


class Qualifier:
    """Used with typing.Annotated to select a specific candidate.

    Usage::

        def __init__(self, db: Annotated[DataSource, Qualifier("primary_db")]):
            ...

    A plain string in the ``Annotated`` metadata is accepted as well.
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Qualifier({self.name!r})"


def primary(cls: type) -> type:
    """Mark a class as the primary candidate when several candidates of a type exist."""
    cls.__autowire_primary__ = True
    return cls


def order(value: int) -> Callable[[type], type]:
    """Give every instance of a class a fixed priority; lower values sort first."""

    def decorator(cls: type) -> type:
        cls.__autowire_order__ = value
        return cls

    return decorator


@runtime_checkable
class Ordered(Protocol):
    """Components whose priority is decided per instance."""

    def get_order(self) -> int: ...


class ObjectFactory(Generic[T]):
    """Lazy handle on a dependency, resolved each time :meth:`get_object` is called."""

    def __init__(self, lookup: Callable[[], T]):
        self._lookup = lookup

    def get_object(self) -> T:
        return self._lookup()
