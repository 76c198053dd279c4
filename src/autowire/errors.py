"""Exceptions raised while building metadata, resolving or injecting dependencies."""

from typing import Optional, Sequence

__all__ = [
    "DependencyError",
    "NoSuchCandidateError",
    "AmbiguousDependencyError",
    "MultipleRequiredConstructorsError",
    "UnsupportedPointShapeError",
    "InjectionError",
]


class DependencyError(Exception):
    """Raised when a component's dependency cannot be resolved or is misannotated."""

    pass


class NoSuchCandidateError(DependencyError):
    """Raised when no eligible candidate exists for a required point.

    Attributes:
        required_type: The type that was requested.
        point_name: The field, method or parameter being resolved, if known.
    """

    def __init__(
        self,
        required_type,
        description: Optional[str] = None,
        point_name: Optional[str] = None,
    ):
        self.required_type = required_type
        self.point_name = point_name
        super().__init__(
            description or f"No eligible candidate found for required type {required_type!r}"
        )


class AmbiguousDependencyError(DependencyError):
    """Raised when several candidates tie for a single-valued point.

    Attributes:
        required_type: The type that was requested.
        candidate_names: Names of the tied candidates, in registration order.
        point_name: The field, method or parameter being resolved, if known.
    """

    def __init__(
        self,
        required_type,
        candidate_names: Sequence[str],
        point_name: Optional[str] = None,
    ):
        self.required_type = required_type
        self.candidate_names = list(candidate_names)
        self.point_name = point_name
        super().__init__(
            f"Expected a single candidate for type {required_type!r} "
            f"but found {len(self.candidate_names)}: {self.candidate_names}"
        )


class MultipleRequiredConstructorsError(DependencyError):
    """Raised when more than one constructor of a class is marked as required."""

    pass


class UnsupportedPointShapeError(DependencyError):
    """Raised when a marked field or method cannot be turned into an injection point."""

    pass


class InjectionError(DependencyError):
    """Raised when constructing or injecting a component fails.

    Attributes:
        component_name: Name of the component being created.
        point_name: Name of the field, method or constructor that failed, if known.
    """

    def __init__(self, component_name: str, point_name: Optional[str], reason: str):
        self.component_name = component_name
        self.point_name = point_name
        location = f" at <{point_name}>" if point_name else ""
        super().__init__(
            f"Error creating component <{component_name}>{location}: {reason}"
        )
