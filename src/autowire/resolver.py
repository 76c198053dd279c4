"""Turns a resolution request into a resolution result using a registry."""

from typing import Optional

from loguru import logger

from autowire.domain import (
    CandidateDescriptor,
    Empty,
    Failure,
    FailureReason,
    ResolutionRequest,
    ResolutionResult,
    Value,
    Values,
)
from autowire.errors import AmbiguousDependencyError, DependencyError, NoSuchCandidateError
from autowire.registry import Registry
from autowire.settings import AutowireSettings
from autowire.type_matching import TypeMatcher

__all__ = ["CandidateResolver", "error_for"]


class CandidateResolver:
    """Selects the candidates satisfying a request.

    Candidates are matched strictly on their generic arguments first. Only when that
    leaves nothing are candidates with raw or unresolved arguments considered.

    Args:
        settings: Decides whether multi-valued results are ordered by priority.
        type_matcher: Matcher used to compare candidate and required types.
    """

    def __init__(
        self,
        settings: Optional[AutowireSettings] = None,
        type_matcher: Optional[TypeMatcher] = None,
    ):
        self._settings = settings or AutowireSettings()
        self._type_matcher = type_matcher or TypeMatcher()

    def resolve(self, request: ResolutionRequest, registry: Registry) -> ResolutionResult:
        candidates = self.matching_candidates(request, registry)
        logger.trace(
            f"Resolving {request.describe()}: {[c.name for c in candidates]}"
        )

        if request.cardinality.is_multiple:
            return self._resolve_multiple(request, candidates, registry)
        return self._resolve_single(request, candidates, registry)

    def matching_candidates(
        self, request: ResolutionRequest, registry: Registry
    ) -> list[CandidateDescriptor]:
        """Eligible candidates surviving type matching and qualifier narrowing."""
        eligible = registry.find_eligible_candidates(request.required_type)

        matched = self._filter(request, eligible, fallback=False)
        if not matched:
            matched = self._filter(request, eligible, fallback=True)
        return matched

    def _filter(
        self, request: ResolutionRequest, eligible: list, fallback: bool
    ) -> list[CandidateDescriptor]:
        return [
            candidate
            for candidate in eligible
            if self._type_matcher.matches(
                candidate.declared_type, request.required_type, fallback
            )
            and _satisfies_qualifier(candidate, request.qualifier)
        ]

    def _resolve_single(
        self, request: ResolutionRequest, candidates: list, registry: Registry
    ) -> ResolutionResult:
        if not candidates:
            return _not_found(request)
        if len(candidates) == 1:
            return Value(candidates[0])

        by_name = [c for c in candidates if c.name == request.name]
        if len(by_name) == 1:
            return Value(by_name[0])

        primaries = [c for c in candidates if registry.is_primary(c)]
        if len(primaries) == 1:
            return Value(primaries[0])

        return Failure(FailureReason.AMBIGUOUS, request, tuple(candidates))

    def _resolve_multiple(
        self, request: ResolutionRequest, candidates: list, registry: Registry
    ) -> ResolutionResult:
        if not candidates:
            return _not_found(request)
        if self._settings.order_by_priority:
            candidates = _by_priority(candidates, registry)
        return Values(tuple(candidates))


def _satisfies_qualifier(candidate: CandidateDescriptor, qualifier: Optional[str]) -> bool:
    return qualifier is None or qualifier in candidate.qualifiers or qualifier == candidate.name


def _not_found(request: ResolutionRequest) -> ResolutionResult:
    if request.required:
        return Failure(FailureReason.NOT_FOUND, request)
    return Empty()


def _by_priority(candidates: list, registry: Registry) -> list:
    def key(candidate: CandidateDescriptor):
        priority = registry.priority_of(candidate)
        return (priority is None, priority if priority is not None else 0)

    # sorted is stable, so ties keep registration order
    return sorted(candidates, key=key)


def error_for(failure: Failure, point_name: Optional[str] = None) -> DependencyError:
    """The exception describing a failed resolution, ambiguity kept distinct from absence."""
    request = failure.request
    if failure.reason is FailureReason.AMBIGUOUS:
        return AmbiguousDependencyError(
            request.required_type,
            [candidate.name for candidate in failure.candidates],
            point_name,
        )
    return NoSuchCandidateError(
        request.required_type,
        f"No eligible candidate found for {request.describe()}",
        point_name,
    )
