"""Applies resolved dependencies to components."""

import dataclasses
from typing import Any, Optional

from loguru import logger

from autowire.domain import (
    Cardinality,
    ClassInjectionMetadata,
    ConstructorSelection,
    Empty,
    Failure,
    FailureReason,
    InjectionPoint,
    PointKind,
    ResolutionRequest,
    ResolutionResult,
    Value,
)
from autowire.errors import InjectionError
from autowire.markers import ObjectFactory
from autowire.registry import Registry
from autowire.resolver import CandidateResolver, error_for
from autowire.settings import AutowireSettings

__all__ = ["Injector"]

_UNSET = object()


class Injector:
    """Resolves the injection points of a component and applies the values.

    All points are resolved before any is applied, so a point that cannot be resolved
    leaves the instance untouched. When applying a value fails, fields assigned so far
    are put back the way they were; side effects of setter methods already called are
    not undone.
    """

    def __init__(
        self,
        resolver: Optional[CandidateResolver] = None,
        settings: Optional[AutowireSettings] = None,
    ):
        self._resolver = resolver or CandidateResolver(settings)

    def inject(
        self,
        instance: Any,
        metadata: ClassInjectionMetadata,
        registry: Registry,
        component_name: str,
        explicit_values: Optional[dict] = None,
    ) -> Any:
        """Inject fields and methods of ``instance`` following ``metadata``.

        Args:
            instance: The component to populate.
            metadata: Injection points of the component's class.
            registry: Where candidates come from.
            component_name: Name used in errors and when recording dependents.
            explicit_values: Values supplied by the caller, keyed by property name. A
                point whose property name appears here is not autowired; the value is
                assigned instead, through the setter when the point is one.

        Returns:
            The populated instance.

        Raises:
            InjectionError: If a required point cannot be satisfied, any point is
                ambiguous, or assigning a value or calling a setter raises.
        """
        explicit_values = explicit_values or {}
        actions = []
        injected: list = []

        for point in metadata:
            if point.property_name in explicit_values:
                continue
            if point.kind is PointKind.FIELD:
                action = self._field_action(point, registry, component_name, injected)
            else:
                action = self._method_action(point, registry, component_name, injected)
            if action is not None:
                actions.append((point.describe(), action))
        actions.extend(_explicit_actions(metadata, explicit_values))

        assigned: list = []
        for description, action in actions:
            try:
                action(instance, assigned)
            except Exception as error:
                _restore(instance, assigned)
                raise InjectionError(component_name, description, str(error)) from error
        self._record(injected, registry, component_name)
        return instance

    def construct(
        self,
        cls: type,
        selection: ConstructorSelection,
        registry: Registry,
        component_name: str,
    ) -> Any:
        """Create an instance of ``cls`` through the selected constructor.

        Results attached to the selection are used as they are; otherwise the
        parameters are resolved now.
        """
        constructor = selection.constructor
        results = selection.results
        if results is None:
            results = tuple(
                Empty() if request.cardinality is Cardinality.FACTORY
                else self._resolver.resolve(request, registry)
                for request in constructor.requests
            )

        injected: list = []
        arguments = {}
        for request, result in zip(constructor.requests, results):
            if isinstance(result, Failure):
                point_name = f"constructor parameter '{request.name}'"
                cause = error_for(result, point_name)
                raise InjectionError(component_name, point_name, str(cause)) from cause
            arguments[request.name] = self._materialise(request, result, registry, injected)

        logger.debug(
            f"Creating <{component_name}> with {cls.__qualname__}.{constructor.name}"
            f"({', '.join(arguments)})"
        )
        args, kwargs = _call_arguments(constructor.requests, arguments)
        instance = constructor.factory_for(cls)(*args, **kwargs)
        self._record(injected, registry, component_name)
        return instance

    def _field_action(self, point: InjectionPoint, registry, component_name, injected):
        request = point.requests[0]
        if request.cardinality is Cardinality.FACTORY:
            result: ResolutionResult = Empty()
        else:
            result = self._resolver.resolve(request, registry)

        if isinstance(result, Failure):
            cause = error_for(result, point.describe())
            raise InjectionError(component_name, point.describe(), str(cause)) from cause
        if isinstance(result, Empty) and request.cardinality is not Cardinality.FACTORY:
            logger.trace(f"Leaving {point.describe()} of <{component_name}> unset")
            return None

        value = self._materialise(request, result, registry, injected)
        return lambda instance, assigned: _assign(instance, point.name, value, assigned)

    def _method_action(self, point: InjectionPoint, registry, component_name, injected):
        arguments = {}
        names = []
        for request in point.requests:
            if request.cardinality is Cardinality.FACTORY:
                arguments[request.name] = self._materialise(request, Empty(), registry, names)
                continue
            result = self._resolver.resolve(request, registry)
            if isinstance(result, Failure):
                if result.reason is FailureReason.NOT_FOUND and not point.required:
                    logger.trace(
                        f"Skipping optional {point.describe()} of <{component_name}>: "
                        f"nothing found for '{request.name}'"
                    )
                    return None
                cause = error_for(result, point.describe())
                raise InjectionError(component_name, point.describe(), str(cause)) from cause
            arguments[request.name] = self._materialise(request, result, registry, names)

        injected.extend(names)
        args, kwargs = _call_arguments(point.requests, arguments)
        return lambda instance, assigned: getattr(instance, point.name)(*args, **kwargs)

    def _materialise(
        self,
        request: ResolutionRequest,
        result: ResolutionResult,
        registry: Registry,
        injected: list,
    ) -> Any:
        if request.cardinality is Cardinality.FACTORY:
            return ObjectFactory(lambda: self._lookup(request, registry))
        if isinstance(result, Empty):
            return request.default if request.has_default else None
        if isinstance(result, Value):
            injected.append(result.candidate)
            return registry.get_component(result.candidate)

        injected.extend(result.candidates)
        components = [registry.get_component(c) for c in result.candidates]
        if request.cardinality is Cardinality.ARRAY:
            return tuple(components)
        if request.cardinality is Cardinality.NAME_KEYED_MAP:
            return {c.name: component for c, component in zip(result.candidates, components)}
        return components

    def _lookup(self, request: ResolutionRequest, registry: Registry) -> Any:
        single = dataclasses.replace(request, cardinality=Cardinality.SINGLE, required=True)
        result = self._resolver.resolve(single, registry)
        if isinstance(result, Failure):
            raise error_for(result)
        return registry.get_component(result.candidate)

    def _record(self, injected: list, registry: Registry, component_name: str):
        for candidate in injected:
            if not candidate.resolvable:
                registry.register_dependent(candidate.name, component_name)
        if injected:
            logger.debug(
                f"Injected {[candidate.name for candidate in injected]} into <{component_name}>"
            )


def _explicit_actions(metadata: ClassInjectionMetadata, explicit_values: dict) -> list:
    setters = {
        point.property_name: point.name
        for point in metadata
        if point.kind is PointKind.METHOD
    }
    return [
        (f"explicit value '{name}'", _explicit_action(name, value, setters.get(name)))
        for name, value in explicit_values.items()
    ]


def _explicit_action(name: str, value: Any, setter: Optional[str]):
    if setter is not None:
        return lambda instance, assigned: getattr(instance, setter)(value)
    return lambda instance, assigned: _assign(instance, name, value, assigned)


def _call_arguments(requests: tuple, arguments: dict) -> tuple[list, dict]:
    """Split resolved arguments into positional-only values and keyword arguments."""
    args = []
    kwargs = {}
    for request in requests:
        if request.name not in arguments:
            continue
        if request.positional_only:
            args.append(arguments[request.name])
        else:
            kwargs[request.name] = arguments[request.name]
    return args, kwargs


def _assign(instance: Any, name: str, value: Any, assigned: list):
    namespace = getattr(instance, "__dict__", None)
    if namespace is not None:
        previous = namespace.get(name, _UNSET)
    else:
        previous = getattr(instance, name, _UNSET)
    setattr(instance, name, value)
    assigned.append((name, previous))


def _restore(instance: Any, assigned: list):
    for name, previous in reversed(assigned):
        if previous is _UNSET:
            delattr(instance, name)
        else:
            setattr(instance, name, previous)
    if assigned:
        logger.trace(f"Restored fields {[name for name, _ in assigned]} after a failed injection")
