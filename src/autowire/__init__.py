"""Annotation-driven autowiring of components.

Autowire decides, for every injection point of a component, which objects from a
registry are supplied: single values, optional values, tuples, lists and name-keyed
dicts. Candidates are matched on their full generic type, so a ``Repository[str]``
point never receives a ``Repository[int]``.

Key Features:
    - Field, method and constructor injection declared with plain markers
    - Generic-aware matching through inherited generic bases
    - Qualifiers via ``typing.Annotated``, primary candidates and priority ordering
    - Per-class metadata and constructor caches safe for concurrent use

Basic Usage:
    >>> from autowire import Autowired, Autowirer, ComponentRegistry
    >>>
    >>> class OrderService:
    ...     repository: Repository[Order] = Autowired()
    >>>
    >>> registry = ComponentRegistry()
    >>> registry.register("orderRepository", OrderRepository())
    >>> service = Autowirer().create(OrderService, registry)

The package consists of several modules:
    - markers: Markers and decorators declaring injection points
    - registry: The registry protocol and an in-memory implementation
    - builders: The ``Autowirer`` facade
    - resolver, type_matching: Candidate selection
    - scanner, constructors, injector: Metadata building and injection
    - errors: Framework-specific exceptions

Logging goes through loguru and is disabled by default; enable it with
``logger.enable("autowire")``.
"""

from loguru import logger

from autowire.builders import Autowirer
from autowire.errors import (
    AmbiguousDependencyError,
    DependencyError,
    InjectionError,
    MultipleRequiredConstructorsError,
    NoSuchCandidateError,
    UnsupportedPointShapeError,
)
from autowire.markers import (
    Autowired,
    Marker,
    ObjectFactory,
    Ordered,
    Qualifier,
    autowired,
    constructor,
    order,
    primary,
)
from autowire.registry import ComponentRegistry, Registry
from autowire.settings import AutowireSettings

logger.disable("autowire")

__all__ = [
    "Autowirer",
    "AutowireSettings",
    "ComponentRegistry",
    "Registry",
    "Marker",
    "Autowired",
    "autowired",
    "constructor",
    "Qualifier",
    "primary",
    "order",
    "Ordered",
    "ObjectFactory",
    "DependencyError",
    "NoSuchCandidateError",
    "AmbiguousDependencyError",
    "MultipleRequiredConstructorsError",
    "UnsupportedPointShapeError",
    "InjectionError",
]
