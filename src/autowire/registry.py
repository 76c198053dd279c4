"""Component registry consulted by the resolver.

The resolver only relies on the :class:`Registry` protocol. :class:`ComponentRegistry`
is an in-memory implementation holding ready-made components, lazily built ones and
resolvable dependencies.
"""

import threading
from typing import Any, Callable, Iterable, Optional, Protocol, get_type_hints

from loguru import logger

from autowire.domain import CandidateDescriptor
from autowire.errors import DependencyError, NoSuchCandidateError
from autowire.markers import Ordered
from autowire.type_matching import TypeMatcher, is_subclass, raw_type

__all__ = ["Registry", "ComponentRegistry"]


class Registry(Protocol):
    """What the resolver and injector need from a registry."""

    def find_eligible_candidates(self, required_type: Any) -> list[CandidateDescriptor]:
        """Candidates whose raw type is assignable to ``required_type``, in registration order."""
        ...

    def find_by_name(self, name: str) -> Optional[CandidateDescriptor]: ...

    def priority_of(self, candidate: CandidateDescriptor) -> Optional[int]: ...

    def is_primary(self, candidate: CandidateDescriptor) -> bool: ...

    def get_component(self, candidate: CandidateDescriptor) -> Any: ...

    def register_dependent(self, dependency_name: str, dependent_name: str) -> None: ...


class ComponentRegistry:
    """Registry of named components, safe to query from several threads.

    Example:
        >>> registry = ComponentRegistry()
        >>> registry.register("clock", SystemClock())
        >>> @registry.provides()
        ... def make_repository() -> Repository[str]:
        ...     return StringRepository()
    """

    def __init__(self, type_matcher: Optional[TypeMatcher] = None):
        self._type_matcher = type_matcher or TypeMatcher()
        self._lock = threading.RLock()
        self._descriptors: dict[str, CandidateDescriptor] = {}
        self._instances: dict[str, Any] = {}
        self._factories: dict[str, Callable[[], Any]] = {}
        self._resolvable: list[tuple[CandidateDescriptor, Any]] = []
        self._dependents: dict[str, list[str]] = {}

    def register(
        self,
        name: str,
        component: Any,
        *,
        declared_type: Any = None,
        qualifiers: Iterable[str] = (),
        priority: Optional[int] = None,
        primary: bool = False,
        autowire_candidate: bool = True,
    ) -> CandidateDescriptor:
        """Register a ready-made component.

        Args:
            name: Unique name of the component.
            component: The object to inject.
            declared_type: Type the component provides; defaults to its class. Pass a
                parameterized type such as ``Repository[int]`` to declare generics the
                class does not fix itself.
            qualifiers: Tags usable as qualifiers at injection points.
            priority: Explicit priority, lower first. Defaults to the component's
                ``get_order()`` or its class's ``@order``.
            primary: Whether the component wins single-valued ties. Classes marked
                ``@primary`` are primary as well.
            autowire_candidate: False to hide the component from injection by type.

        Raises:
            DependencyError: If the name is already registered.
        """
        if priority is None:
            # a registered class object would only expose an unbound get_order
            if isinstance(component, Ordered) and not isinstance(component, type):
                priority = component.get_order()
            else:
                priority = getattr(type(component), "__autowire_order__", None)
        primary = primary or getattr(type(component), "__autowire_primary__", False)

        with self._lock:
            descriptor = self._add(
                name,
                declared_type if declared_type is not None else type(component),
                qualifiers,
                priority,
                primary,
                autowire_candidate,
            )
            self._instances[name] = component
        return descriptor

    def register_factory(
        self,
        name: str,
        factory: Callable[[], Any],
        *,
        declared_type: Any = None,
        qualifiers: Iterable[str] = (),
        priority: Optional[int] = None,
        primary: bool = False,
        autowire_candidate: bool = True,
    ) -> CandidateDescriptor:
        """Register a component built on first use by calling ``factory``.

        The declared type defaults to the factory's return annotation, or the factory
        itself when it is a class. Priority and primary markers are read from that type
        when not given explicitly.
        """
        if declared_type is None:
            declared_type = _provided_type(factory)
        provided_class = raw_type(declared_type)
        if priority is None:
            priority = getattr(provided_class, "__autowire_order__", None)
        primary = primary or getattr(provided_class, "__autowire_primary__", False)

        with self._lock:
            descriptor = self._add(
                name, declared_type, qualifiers, priority, primary, autowire_candidate
            )
            self._factories[name] = factory
        return descriptor

    def provides(
        self,
        name: Optional[str] = None,
        *,
        qualifiers: Iterable[str] = (),
        priority: Optional[int] = None,
        primary: bool = False,
    ) -> Callable:
        """Decorator to register a zero-argument function or class as a lazy component.

        Args:
            name: Optional name; defaults to the function name with any ``make_`` prefix
                removed.

        Example:
            @registry.provides(qualifiers=["fast"])
            def make_cache() -> Cache:
                return InMemoryCache()
        """

        def decorator(func: Callable) -> Callable:
            self.register_factory(
                name or _infer_name_from(func.__name__),
                func,
                qualifiers=qualifiers,
                priority=priority,
                primary=primary,
            )
            return func

        return decorator

    def register_resolvable_dependency(self, dependency_type: type, value: Any):
        """Make ``value`` injectable for ``dependency_type`` without registering it by name.

        Requests for ``dependency_type`` or one of its superclasses receive ``value``, as
        do requests for a subclass that ``value`` is an instance of. Such values are never
        recorded as dependencies of the components they are injected into.
        """
        with self._lock:
            descriptor = CandidateDescriptor(
                f"{dependency_type.__qualname__}@resolvable",
                type(value),
                index=len(self._descriptors) + len(self._resolvable),
                resolvable=True,
            )
            self._resolvable.append((descriptor, dependency_type))
            self._instances[descriptor.name] = value

    def find_eligible_candidates(self, required_type: Any) -> list[CandidateDescriptor]:
        required_class = raw_type(required_type)
        with self._lock:
            descriptors = list(self._descriptors.values())
            resolvable = list(self._resolvable)
            instances = dict(self._instances)

        result = [
            descriptor
            for descriptor in descriptors
            if descriptor.autowire_candidate
            and self._type_matcher.is_assignable(descriptor.declared_type, required_class)
        ]
        for descriptor, registered_type in resolvable:
            if is_subclass(registered_type, required_class) or (
                is_subclass(required_class, registered_type)
                and isinstance(instances[descriptor.name], required_class)
            ):
                result.append(descriptor)
        return sorted(result, key=lambda descriptor: descriptor.index)

    def find_by_name(self, name: str) -> Optional[CandidateDescriptor]:
        with self._lock:
            return self._descriptors.get(name)

    def priority_of(self, candidate: CandidateDescriptor) -> Optional[int]:
        return candidate.priority

    def is_primary(self, candidate: CandidateDescriptor) -> bool:
        return candidate.primary

    def get_component(self, candidate: CandidateDescriptor) -> Any:
        """Return the object behind ``candidate``, building it first if registered lazily.

        Raises:
            NoSuchCandidateError: If nothing is registered under the candidate's name.
        """
        with self._lock:
            if candidate.name in self._instances:
                return self._instances[candidate.name]
            try:
                factory = self._factories[candidate.name]
            except KeyError:
                raise NoSuchCandidateError(
                    candidate.declared_type,
                    f"No component registered under name <{candidate.name}>",
                )
            logger.debug(f"Building component <{candidate.name}>")
            component = factory()
            self._instances[candidate.name] = component
            return component

    def register_dependent(self, dependency_name: str, dependent_name: str) -> None:
        with self._lock:
            dependencies = self._dependents.setdefault(dependent_name, [])
            if dependency_name not in dependencies:
                dependencies.append(dependency_name)

    def dependencies_for(self, name: str) -> list[str]:
        """Names of the components injected into ``name``, in injection order."""
        with self._lock:
            return list(self._dependents.get(name, ()))

    def names(self) -> list[str]:
        with self._lock:
            return list(self._descriptors)

    def _add(
        self, name, declared_type, qualifiers, priority, primary, autowire_candidate
    ) -> CandidateDescriptor:
        if name in self._descriptors:
            raise DependencyError(f"Component <{name}> is already registered")
        descriptor = CandidateDescriptor(
            name,
            declared_type,
            frozenset(qualifiers),
            priority,
            bool(primary),
            autowire_candidate,
            len(self._descriptors) + len(self._resolvable),
        )
        self._descriptors[name] = descriptor
        logger.debug(f"Registered component <{name}> of type {declared_type!r}")
        return descriptor


def _infer_name_from(name: str) -> str:
    if name.startswith("make_"):
        return name[5:]
    else:
        return name


def _provided_type(factory: Callable) -> Any:
    if isinstance(factory, type):
        return factory
    provided = get_type_hints(factory, include_extras=True).get("return")
    if provided is None:
        raise DependencyError(
            f"Provider <{factory.__name__}> declares no return type; pass declared_type"
        )
    return provided
