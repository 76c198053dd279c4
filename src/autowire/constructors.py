"""Chooses the constructor used to create a component.

A class can be built through ``__init__`` or through a classmethod declared as an
alternate constructor. When nothing is explicitly required, the constructor with the
most parameters that the registry can satisfy is chosen.
"""

import inspect
from typing import Optional

from loguru import logger

from autowire.declarations import ConstructorDeclaration, declare_constructors
from autowire.domain import (
    Cardinality,
    ConstructorCandidate,
    ConstructorSelection,
    Empty,
    Failure,
)
from autowire.errors import (
    MultipleRequiredConstructorsError,
    NoSuchCandidateError,
    UnsupportedPointShapeError,
)
from autowire.registry import Registry
from autowire.resolver import CandidateResolver, error_for
from autowire.scanner import request_for_parameter
from autowire.settings import AutowireSettings
from autowire.type_matching import type_variable_map

__all__ = ["ConstructorSelector"]


class ConstructorSelector:
    def __init__(
        self,
        resolver: Optional[CandidateResolver] = None,
        settings: Optional[AutowireSettings] = None,
    ):
        self._settings = settings or AutowireSettings()
        self._resolver = resolver or CandidateResolver(self._settings)

    def candidates(self, cls: type) -> list[ConstructorCandidate]:
        """The constructors of ``cls`` usable for injection, ``__init__`` first.

        Unmarked constructors with an unannotated parameter that has no default are left
        out, since nothing can be injected into them.

        Raises:
            MultipleRequiredConstructorsError: If a required marked constructor is
                accompanied by other marked constructors.
            UnsupportedPointShapeError: If a marked constructor has an unannotated
                parameter without a default.
        """
        result = []
        for declaration in declare_constructors(cls, self._settings):
            candidate = self._candidate_for(cls, declaration)
            if candidate is not None:
                result.append(candidate)

        marked = [candidate for candidate in result if candidate.marked]
        if len(marked) > 1 and any(candidate.required for candidate in marked):
            raise MultipleRequiredConstructorsError(
                f"Class <{cls.__qualname__}> marks {len(marked)} constructors for injection "
                f"while {[c.name for c in marked if c.required]} is required"
            )
        return result

    def select(self, cls: type, registry: Registry) -> ConstructorSelection:
        """Choose the constructor for ``cls``.

        Returns:
            The selection. When the choice required resolving the parameters, the
            results are attached so the caller can build the first instance with them.

        Raises:
            MultipleRequiredConstructorsError: See :meth:`candidates`.
            NoSuchCandidateError: If no constructor can be satisfied and there is no
                constructor without parameters. The error describes the first failing
                parameter of the greediest constructor.
            AmbiguousDependencyError: As above, when that parameter is ambiguous.
        """
        candidates = self.candidates(cls)
        default = next((c for c in candidates if c.parameter_count == 0), None)

        if default is not None and len(candidates) == 1:
            return ConstructorSelection(default)

        marked = [candidate for candidate in candidates if candidate.marked]
        required = [candidate for candidate in marked if candidate.required]
        if required:
            logger.debug(f"Using required constructor {cls.__qualname__}.{required[0].name}")
            return ConstructorSelection(required[0])

        pool = candidates
        if marked:
            pool = list(marked)
            if default is not None and default not in marked:
                pool.append(default)

        first_failure = None
        for candidate in sorted(pool, key=lambda c: -c.parameter_count):
            results = self.resolve_arguments(candidate, registry)
            failure = next((r for r in results if isinstance(r, Failure)), None)
            if failure is None:
                logger.debug(f"Selected constructor {cls.__qualname__}.{candidate.name}")
                return ConstructorSelection(candidate, results)
            if first_failure is None:
                first_failure = failure

        if first_failure is None:
            raise NoSuchCandidateError(
                cls, f"Class <{cls.__qualname__}> has no constructor usable for injection"
            )
        raise error_for(first_failure, f"constructor parameter '{first_failure.request.name}'")

    def resolve_arguments(
        self, candidate: ConstructorCandidate, registry: Registry
    ) -> tuple:
        """Resolve the parameters of ``candidate`` in order, stopping after the first failure."""
        results = []
        for request in candidate.requests:
            if request.cardinality is Cardinality.FACTORY:
                results.append(Empty())
                continue
            result = self._resolver.resolve(request, registry)
            if isinstance(result, Failure):
                logger.trace(
                    f"Constructor {candidate.name} rejected: {result.reason.value} "
                    f"for parameter '{request.name}'"
                )
                results.append(result)
                break
            results.append(result)
        return tuple(results)

    def _candidate_for(
        self, cls: type, declaration: ConstructorDeclaration
    ) -> Optional[ConstructorCandidate]:
        mapping = type_variable_map(cls, declaration.owner)
        marked = declaration.marker is not None

        requests = []
        skipped_positional = False
        for parameter in declaration.parameters:
            # positional-only parameters after a left-out one keep their defaults
            if parameter.positional_only and skipped_positional:
                continue
            if parameter.is_annotated:
                requests.append(request_for_parameter(parameter, mapping))
            elif parameter.default is not inspect.Parameter.empty:
                skipped_positional = parameter.positional_only
                continue
            elif marked:
                raise UnsupportedPointShapeError(
                    f"Parameter <{parameter.name}> of constructor "
                    f"<{cls.__qualname__}.{declaration.name}> is not annotated"
                )
            else:
                return None

        return ConstructorCandidate(
            declaration.name,
            tuple(requests),
            marked,
            marked and self._settings.is_required(declaration.marker),
        )
