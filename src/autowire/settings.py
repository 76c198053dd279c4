"""Configuration for the autowiring engine."""

from dataclasses import dataclass
from typing import Any

from autowire.markers import Autowired, Marker

__all__ = ["AutowireSettings"]


@dataclass(frozen=True)
class AutowireSettings:
    """Settings shared by the scanner, resolver and constructor selector.

    Attributes:
        order_by_priority: Sort multi-valued results by candidate priority. When False,
            results keep registration order.
        marker_types: Marker classes recognised on fields, methods and constructors.
        required_attribute: Name of the marker attribute that decides requiredness.
        required_value: Value of ``required_attribute`` meaning "required". A marker
            without the attribute is treated as required.

    Example:
        >>> class MyAutowired(Marker):
        ...     def __init__(self, optional=False):
        ...         self.optional = optional
        >>> settings = AutowireSettings(
        ...     marker_types=(MyAutowired,),
        ...     required_attribute="optional",
        ...     required_value=False,
        ... )
    """

    order_by_priority: bool = True
    marker_types: tuple = (Autowired,)
    required_attribute: str = "required"
    required_value: Any = True

    def is_marker(self, obj: Any) -> bool:
        return isinstance(obj, Marker) and isinstance(obj, self.marker_types)

    def find_marker(self, markers) -> Any:
        return next((m for m in markers if self.is_marker(m)), None)

    def is_required(self, marker: Any) -> bool:
        if not hasattr(marker, self.required_attribute):
            return True
        return getattr(marker, self.required_attribute) == self.required_value
