"""Builds the injection metadata of a class from its own and its ancestors' declarations."""

import inspect
from typing import Any, Optional

from loguru import logger

from autowire.declarations import ParameterDeclaration, declare
from autowire.domain import ClassInjectionMetadata, InjectionPoint, PointKind, ResolutionRequest
from autowire.errors import UnsupportedPointShapeError
from autowire.settings import AutowireSettings
from autowire.type_matching import describe_type, substitute, type_variable_map

__all__ = ["InjectionPointScanner", "request_for_parameter"]


class InjectionPointScanner:
    """Collects the injection points of a class hierarchy.

    Superclass points come first; within one class, fields precede methods. A member
    is only injected through the most-derived class that defines it, which suppresses
    marked methods overridden without the marking and de-duplicates members reached
    through several bases.
    """

    def __init__(self, settings: Optional[AutowireSettings] = None):
        self._settings = settings or AutowireSettings()

    def scan(self, cls: type) -> ClassInjectionMetadata:
        """Build the metadata of ``cls``.

        Raises:
            UnsupportedPointShapeError: If a marked member cannot be injected.
        """
        hierarchy = [klass for klass in cls.__mro__ if klass is not object]
        declarations = {klass: declare(klass, self._settings) for klass in hierarchy}

        points: list[InjectionPoint] = []
        for klass in hierarchy:
            own = declarations[klass]
            mapping = type_variable_map(cls, klass)
            class_points = [
                self._field_point(klass, field.name, field.annotation, field.marker, mapping)
                for field in own.fields
                if _defining_class(field.name, hierarchy, declarations) is klass
            ]
            class_points.extend(
                self._method_point(klass, method.name, method.parameters, method.marker, mapping)
                for method in own.methods
                if _defining_class(method.name, hierarchy, declarations) is klass
            )
            points[0:0] = class_points

        logger.debug(
            f"Found {len(points)} injection point(s) on {cls.__qualname__}: "
            f"{[point.describe() for point in points]}"
        )
        return ClassInjectionMetadata(cls, tuple(points))

    def _field_point(
        self, owner: type, name: str, annotation: Any, marker: Any, mapping: dict
    ) -> InjectionPoint:
        description = describe_type(substitute(annotation, mapping))
        required = self._settings.is_required(marker)
        request = ResolutionRequest(
            description.element_type,
            description.cardinality,
            getattr(marker, "qualifier", None) or description.qualifier,
            required and not description.nullable,
            name,
        )
        return InjectionPoint(PointKind.FIELD, name, owner, (request,), required)

    def _method_point(
        self, owner: type, name: str, parameters: tuple, marker: Any, mapping: dict
    ) -> InjectionPoint:
        if not parameters:
            raise UnsupportedPointShapeError(
                f"Method <{owner.__qualname__}.{name}> is marked for injection "
                f"but takes no parameters"
            )
        requests = []
        for parameter in parameters:
            if not parameter.is_annotated:
                raise UnsupportedPointShapeError(
                    f"Parameter <{parameter.name}> of <{owner.__qualname__}.{name}> "
                    f"is not annotated"
                )
            requests.append(request_for_parameter(parameter, mapping))
        return InjectionPoint(
            PointKind.METHOD,
            name,
            owner,
            tuple(requests),
            self._settings.is_required(marker),
        )


def request_for_parameter(parameter: ParameterDeclaration, mapping: dict) -> ResolutionRequest:
    """Build the request for a method or constructor parameter.

    The request is required unless the parameter has a default or is ``Optional``. A
    nullable parameter without a default falls back to ``None``.
    """
    description = describe_type(substitute(parameter.annotation, mapping))
    default = parameter.default
    if default is inspect.Parameter.empty and description.nullable:
        default = None
    return ResolutionRequest(
        description.element_type,
        description.cardinality,
        description.qualifier,
        default is inspect.Parameter.empty,
        parameter.name,
        default,
        parameter.positional_only,
    )


def _defining_class(name: str, hierarchy: list, declarations: dict) -> Optional[type]:
    return next(
        (klass for klass in hierarchy if name in declarations[klass].members), None
    )
