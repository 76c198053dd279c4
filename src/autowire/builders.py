"""High level entry points for creating and injecting components."""

import dataclasses
import threading
from typing import Any, Optional

from loguru import logger

from autowire.constructors import ConstructorSelector
from autowire.domain import ClassInjectionMetadata, ConstructorSelection
from autowire.errors import AmbiguousDependencyError, InjectionError, NoSuchCandidateError
from autowire.injector import Injector
from autowire.registry import Registry
from autowire.resolver import CandidateResolver
from autowire.scanner import InjectionPointScanner
from autowire.settings import AutowireSettings
from autowire.type_matching import TypeMatcher

__all__ = ["Autowirer"]


class Autowirer:
    """Entry point for building and injecting components.

    Injection metadata and constructor choices are computed once per class and kept
    for the lifetime of the autowirer. Both caches may be filled from several threads;
    each entry is built at most once.

    Args:
        settings: Shared settings; defaults to :class:`AutowireSettings` defaults.

    Example:
        >>> autowirer = Autowirer()
        >>> service = autowirer.create(OrderService, registry)
    """

    def __init__(self, settings: Optional[AutowireSettings] = None):
        self.settings = settings or AutowireSettings()
        resolver = CandidateResolver(self.settings, TypeMatcher())
        self._scanner = InjectionPointScanner(self.settings)
        self._selector = ConstructorSelector(resolver, self.settings)
        self._injector = Injector(resolver)

        self._metadata: dict[type, ClassInjectionMetadata] = {}
        self._constructors: dict[type, ConstructorSelection] = {}
        self._locks: dict[type, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def build_metadata(self, cls: type) -> ClassInjectionMetadata:
        """Return the injection metadata of ``cls``, building it on first use.

        Constructor declarations are validated at the same time.

        Raises:
            UnsupportedPointShapeError: If a marked member cannot be injected.
            MultipleRequiredConstructorsError: If a required constructor is marked
                alongside others.
        """
        metadata = self._metadata.get(cls)
        if metadata is not None:
            return metadata

        with self._lock_for(cls):
            metadata = self._metadata.get(cls)
            if metadata is None:
                self._selector.candidates(cls)
                metadata = self._scanner.scan(cls)
                self._metadata[cls] = metadata
        return metadata

    def select_constructor(self, cls: type, registry: Registry) -> ConstructorSelection:
        """Return the constructor used for ``cls``, choosing it on first use.

        The selection returned to the call that made the choice carries the resolved
        arguments; later calls get the cached choice without them.
        """
        selection = self._constructors.get(cls)
        if selection is not None:
            return selection

        with self._lock_for(cls):
            selection = self._constructors.get(cls)
            if selection is not None:
                return selection
            selection = self._selector.select(cls, registry)
            self._constructors[cls] = dataclasses.replace(selection, results=None)
            return selection

    def inject_into(
        self,
        instance: Any,
        registry: Registry,
        name: Optional[str] = None,
        explicit_values: Optional[dict] = None,
    ) -> Any:
        """Inject the fields and methods of an existing instance.

        Args:
            instance: The object to populate.
            registry: Where dependencies come from.
            name: Component name used in errors and dependency records; defaults to
                the class name with a lowercase first letter.
            explicit_values: Values to assign instead of autowiring, by property name.
        """
        cls = type(instance)
        metadata = self.build_metadata(cls)
        return self._injector.inject(
            instance, metadata, registry, name or _default_name(cls), explicit_values
        )

    def create(
        self,
        cls: type,
        registry: Registry,
        name: Optional[str] = None,
        explicit_values: Optional[dict] = None,
    ) -> Any:
        """Construct an instance of ``cls`` and inject it.

        Raises:
            InjectionError: If no constructor can be satisfied, or a constructor
                argument or an injection point fails. The cause tells a missing
                dependency from an ambiguous one.
        """
        name = name or _default_name(cls)
        metadata = self.build_metadata(cls)
        try:
            selection = self.select_constructor(cls, registry)
        except (NoSuchCandidateError, AmbiguousDependencyError) as error:
            raise InjectionError(name, error.point_name or "constructor", str(error)) from error

        logger.debug(f"Creating component <{name}> of type {cls.__qualname__}")
        instance = self._injector.construct(cls, selection, registry, name)
        return self._injector.inject(instance, metadata, registry, name, explicit_values)

    def _lock_for(self, cls: type) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(cls, threading.Lock())


def _default_name(cls: type) -> str:
    return cls.__name__[:1].lower() + cls.__name__[1:]
