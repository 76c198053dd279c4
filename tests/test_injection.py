from typing import Annotated, Optional

import pytest

from autowire.builders import Autowirer
from autowire.errors import (
    AmbiguousDependencyError,
    InjectionError,
    MultipleRequiredConstructorsError,
    NoSuchCandidateError,
)
from autowire.markers import Autowired, ObjectFactory, autowired, order
from autowire.registry import ComponentRegistry


class Clock:
    pass


class Service:
    pass


class Plugin:
    pass


@order(2)
class AuditPlugin(Plugin):
    pass


@order(1)
class MetricsPlugin(Plugin):
    pass


class ApplicationContext:
    pass


class OrderService:
    clock: Clock = Autowired()
    plugins: list[Plugin] = Autowired()
    plugin_array: tuple[Plugin, ...] = Autowired()
    plugin_map: dict[str, Plugin] = Autowired()
    audit: Annotated[Plugin, "audit"] = Autowired()

    def __init__(self, service: Service):
        self.service = service

    @autowired
    def set_context(self, context: ApplicationContext):
        self.context = context


class OptionalPoints:
    clock: Optional[Clock] = Autowired()
    service: Service = Autowired(required=False)

    @autowired(required=False)
    def configure(self, clock: Clock, service: Service, label: str = "default"):
        self.configured = (clock, service, label)


class PartiallySatisfiable:
    clock: Clock = Autowired()
    service: Service = Autowired()


class AmbiguousOptional:
    plugin: Plugin = Autowired(required=False)


class Lazy:
    service: ObjectFactory[Service] = Autowired()


class Configurable:
    clock: Clock = Autowired()
    timeout: int = Autowired()

    @autowired
    def set_service(self, service: Service):
        self.service = ("autowired", service)


class RequiresClock:
    @autowired
    def __init__(self, clock: Clock):
        self.clock = clock


class ClockUser:
    def __init__(self, clock: Clock):
        self.clock = clock


class BadConstructors:
    @autowired
    def __init__(self, clock: Clock):
        self.clock = clock

    @autowired(required=False)
    @classmethod
    def other(cls, service: Service) -> "BadConstructors":
        return cls(None)


class PositionalOnly:
    def __init__(self, clock: Clock, /, service: Service):
        self.clock = clock
        self.service = service

    @autowired
    def set_plugins(self, plugins: list[Plugin], /):
        self.plugins = plugins


class FailingSetter:
    clock: Clock = Autowired()

    @autowired
    def set_service(self, service: Service):
        raise RuntimeError("service rejected")


@pytest.fixture
def autowirer():
    return Autowirer()


@pytest.fixture
def registry():
    registry = ComponentRegistry()
    registry.register("clock", Clock())
    registry.register("service", Service())
    registry.register("audit", AuditPlugin())
    registry.register("metrics", MetricsPlugin())
    registry.register_resolvable_dependency(ApplicationContext, ApplicationContext())
    return registry


def component(registry: ComponentRegistry, name: str):
    return registry.get_component(registry.find_by_name(name))


def test_create_constructs_then_injects(autowirer, registry):
    service = autowirer.create(OrderService, registry)

    assert service.service is component(registry, "service")
    assert service.clock is component(registry, "clock")
    assert service.plugins == [component(registry, "metrics"), component(registry, "audit")]
    assert service.plugin_array == (component(registry, "metrics"), component(registry, "audit"))
    assert service.plugin_map == {
        "metrics": component(registry, "metrics"),
        "audit": component(registry, "audit"),
    }
    assert list(service.plugin_map) == ["metrics", "audit"]
    assert service.audit is component(registry, "audit")
    assert isinstance(service.context, ApplicationContext)


def test_injected_dependencies_are_recorded(autowirer, registry):
    autowirer.create(OrderService, registry, name="orders")

    assert registry.dependencies_for("orders") == ["service", "clock", "metrics", "audit"]


def test_optional_points_are_left_alone():
    registry = ComponentRegistry()
    registry.register("clock", Clock())
    instance = Autowirer().create(OptionalPoints, registry)

    assert instance.clock is component(registry, "clock")
    assert instance.service is None
    assert not hasattr(instance, "configured")


def test_optional_method_uses_defaults_when_satisfiable(autowirer, registry):
    instance = autowirer.create(OptionalPoints, registry)
    assert instance.configured == (
        component(registry, "clock"),
        component(registry, "service"),
        "default",
    )


def test_missing_required_field_names_component_and_point(autowirer):
    registry = ComponentRegistry()
    registry.register("service", Service())

    with pytest.raises(InjectionError, match="Error creating component <orderService>") as error:
        autowirer.create(OrderService, registry)

    assert error.value.point_name == "field 'clock'"
    assert isinstance(error.value.__cause__, NoSuchCandidateError)


def test_ambiguity_is_fatal_for_optional_points(autowirer, registry):
    with pytest.raises(InjectionError) as error:
        autowirer.create(AmbiguousOptional, registry)

    assert isinstance(error.value.__cause__, AmbiguousDependencyError)
    assert error.value.__cause__.candidate_names == ["audit", "metrics"]


def test_no_partial_injection(autowirer):
    registry = ComponentRegistry()
    registry.register("clock", Clock())
    instance = PartiallySatisfiable()

    with pytest.raises(InjectionError):
        autowirer.inject_into(instance, registry)

    assert "clock" not in vars(instance)
    assert registry.dependencies_for("partiallySatisfiable") == []


def test_factory_resolves_lazily(autowirer):
    registry = ComponentRegistry()
    instance = autowirer.create(Lazy, registry)

    with pytest.raises(NoSuchCandidateError):
        instance.service.get_object()

    registry.register("service", Service())
    assert instance.service.get_object() is component(registry, "service")


def test_explicit_values_replace_autowiring(autowirer):
    registry = ComponentRegistry()
    registry.register("clock", Clock())
    explicit_service = Service()

    instance = autowirer.create(
        Configurable,
        registry,
        explicit_values={"timeout": 30, "service": explicit_service},
    )

    assert instance.clock is component(registry, "clock")
    assert instance.timeout == 30
    assert instance.service == ("autowired", explicit_service)


def test_required_constructor_failure_is_fatal(autowirer):
    with pytest.raises(InjectionError, match="constructor parameter 'clock'"):
        autowirer.create(RequiresClock, ComponentRegistry())


def test_constructor_configuration_errors_are_raised_when_building_metadata(autowirer):
    with pytest.raises(MultipleRequiredConstructorsError):
        autowirer.build_metadata(BadConstructors)


def test_constructor_choice_is_cached_but_values_are_resolved_per_instance(autowirer):
    registry = ComponentRegistry()
    registry.register("clock", Clock())

    first = autowirer.create(ClockUser, registry)
    selection = autowirer.select_constructor(ClockUser, registry)
    second = autowirer.create(ClockUser, registry)

    assert selection.results is None
    assert first is not second
    assert first.clock is second.clock


def test_ambiguous_constructor_parameter_names_component_and_parameter(autowirer):
    registry = ComponentRegistry()
    registry.register("first_clock", Clock())
    registry.register("second_clock", Clock())

    with pytest.raises(InjectionError, match="Error creating component <myService>") as error:
        autowirer.create(ClockUser, registry, name="myService")

    assert error.value.point_name == "constructor parameter 'clock'"
    assert isinstance(error.value.__cause__, AmbiguousDependencyError)
    assert error.value.__cause__.candidate_names == ["first_clock", "second_clock"]


def test_missing_constructor_parameter_is_wrapped(autowirer):
    with pytest.raises(InjectionError, match="constructor parameter 'clock'") as error:
        autowirer.create(ClockUser, ComponentRegistry())

    assert error.value.component_name == "clockUser"
    assert isinstance(error.value.__cause__, NoSuchCandidateError)


def test_positional_only_parameters_are_passed_positionally(autowirer, registry):
    instance = autowirer.create(PositionalOnly, registry)

    assert instance.clock is component(registry, "clock")
    assert instance.service is component(registry, "service")
    assert instance.plugins == [component(registry, "metrics"), component(registry, "audit")]


def test_failing_setter_rolls_back_assigned_fields(autowirer, registry):
    instance = FailingSetter()

    with pytest.raises(InjectionError, match="service rejected") as error:
        autowirer.inject_into(instance, registry)

    assert error.value.point_name == "method 'set_service(service)'"
    assert isinstance(error.value.__cause__, RuntimeError)
    assert "clock" not in vars(instance)
    assert registry.dependencies_for("failingSetter") == []


def test_failing_setter_restores_previous_field_values(autowirer, registry):
    instance = FailingSetter()
    previous = Clock()
    instance.clock = previous

    with pytest.raises(InjectionError):
        autowirer.inject_into(instance, registry)

    assert instance.clock is previous
