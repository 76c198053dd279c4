"""Reflection facade reading injection declarations off Python classes.

Everything the scanner and the constructor selector know about a class comes from
here. :func:`declare` reports what one class body declares, never what it inherits;
:func:`declare_constructors` reports the constructors a class can be built with,
inherited ``__init__`` included.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, get_type_hints

from autowire.errors import UnsupportedPointShapeError
from autowire.markers import is_alternate_constructor, markers_of
from autowire.settings import AutowireSettings

__all__ = [
    "ParameterDeclaration",
    "FieldDeclaration",
    "MethodDeclaration",
    "ConstructorDeclaration",
    "ClassDeclarations",
    "declare",
    "declare_constructors",
]

_DEFAULT_SETTINGS = AutowireSettings()
_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class ParameterDeclaration:
    """A parameter of a method or constructor.

    Attributes:
        name: The parameter name.
        annotation: The full annotation, ``Annotated`` metadata included, or
            ``inspect.Parameter.empty`` when the parameter is not annotated.
        default: The declared default, or ``inspect.Parameter.empty``.
        positional_only: Whether the parameter can only be passed positionally.
    """

    name: str
    annotation: Any = inspect.Parameter.empty
    default: Any = inspect.Parameter.empty
    positional_only: bool = False

    @property
    def is_annotated(self) -> bool:
        return self.annotation is not inspect.Parameter.empty


@dataclass(frozen=True)
class FieldDeclaration:
    name: str
    annotation: Any
    marker: Any


@dataclass(frozen=True)
class MethodDeclaration:
    name: str
    parameters: tuple
    marker: Any


@dataclass(frozen=True)
class ConstructorDeclaration:
    """A way to construct a class.

    Attributes:
        name: ``"__init__"`` or the name of a classmethod.
        owner: The class whose body defines the constructor.
        parameters: Parameters after ``self``/``cls``, variadic ones excluded.
        marker: The injection marker on the constructor, if any.
    """

    name: str
    owner: type
    parameters: tuple
    marker: Optional[Any] = None


@dataclass(frozen=True)
class ClassDeclarations:
    """What a single class body declares.

    Attributes:
        owner: The declaring class.
        fields: Marked fields in declaration order.
        methods: Marked methods in declaration order.
        members: Names of every attribute the class body defines, marked or not.
    """

    owner: type
    fields: tuple = ()
    methods: tuple = ()
    members: frozenset = frozenset()


def declare(cls: type, settings: AutowireSettings = _DEFAULT_SETTINGS) -> ClassDeclarations:
    """Read the marked fields and methods declared directly by ``cls``.

    Raises:
        UnsupportedPointShapeError: If a marked field is not annotated, or a static
            method is marked.
    """
    namespace = vars(cls)
    marked_fields = [
        (name, value) for name, value in namespace.items() if settings.is_marker(value)
    ]

    fields = []
    if marked_fields:
        annotations = inspect.get_annotations(cls, eval_str=True)
        for name, marker in marked_fields:
            if name not in annotations:
                raise UnsupportedPointShapeError(
                    f"Field <{name}> of <{cls.__qualname__}> is marked but not annotated"
                )
            fields.append(FieldDeclaration(name, annotations[name], marker))

    methods = []
    for name, value in namespace.items():
        if isinstance(value, staticmethod):
            if settings.find_marker(markers_of(value)) is not None:
                raise UnsupportedPointShapeError(
                    f"Static method <{cls.__qualname__}.{name}> cannot be marked for injection"
                )
            continue
        if name == "__init__" or not inspect.isfunction(value):
            continue
        marker = settings.find_marker(markers_of(value))
        if marker is not None:
            methods.append(MethodDeclaration(name, _parameters_of(value, cls), marker))

    return ClassDeclarations(cls, tuple(fields), tuple(methods), frozenset(namespace))


def declare_constructors(
    cls: type, settings: AutowireSettings = _DEFAULT_SETTINGS
) -> list[ConstructorDeclaration]:
    """List the constructors of ``cls``: ``__init__`` first, then alternate constructors.

    Alternate constructors are classmethods decorated with ``@constructor`` or marked
    for injection. They are inherited like any other attribute, so a subclass
    redefining one by name hides the ancestor's version.
    """
    result = [_init_declaration(cls, settings)]

    seen = set()
    for klass in cls.__mro__:
        for name, value in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if not isinstance(value, classmethod):
                continue
            marker = settings.find_marker(markers_of(value))
            if marker is None and not is_alternate_constructor(value):
                continue
            result.append(
                ConstructorDeclaration(
                    name, klass, _parameters_of(value.__func__, klass), marker
                )
            )
    return result


def _init_declaration(cls: type, settings: AutowireSettings) -> ConstructorDeclaration:
    owner = next(klass for klass in cls.__mro__ if "__init__" in vars(klass))
    init = vars(owner)["__init__"]
    # object.__init__ and the placeholders typing installs take no arguments
    if owner is object or not inspect.isfunction(init) or init.__module__ == "typing":
        return ConstructorDeclaration("__init__", owner, ())
    return ConstructorDeclaration(
        "__init__", owner, _parameters_of(init, owner), settings.find_marker(markers_of(init))
    )


def _parameters_of(func: Callable, owner: type) -> tuple:
    signature = inspect.signature(func)
    hints = get_type_hints(func, localns={owner.__name__: owner}, include_extras=True)

    parameters = list(signature.parameters.values())[1:]
    return tuple(
        ParameterDeclaration(
            parameter.name,
            hints.get(parameter.name, inspect.Parameter.empty),
            parameter.default,
            parameter.kind is inspect.Parameter.POSITIONAL_ONLY,
        )
        for parameter in parameters
        if parameter.kind not in _SKIPPED_KINDS
    )
