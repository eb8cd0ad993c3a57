from __future__ import annotations

import inspect
import logging
import re
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Protocol

log = logging.getLogger(__name__)

DEFAULT_SERVICE_NAMESPACE = "script"

_CAMEL_GETTER_RE = re.compile(r"^(?:get|is)([A-Z]\w*)$")
_SNAKE_GETTER_RE = re.compile(r"^(?:get|is)_([A-Za-z]\w*)$")


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    parameter_count: int
    return_type: Any = None
    is_property: bool = False

    @property
    def return_type_name(self) -> str | None:
        return simple_type_name(self.return_type)


class MethodFinder(Protocol):
    def find_methods(self, value_type: type, prefix: str) -> List[MethodDescriptor]: ...


FinderFactory = Callable[[Any], MethodFinder]


def getter_property_name(method_name: str) -> str | None:
    """Return the property a ``getFoo``/``isFoo``/``get_foo`` method exposes."""
    match = _CAMEL_GETTER_RE.match(method_name)
    if match:
        tail = match.group(1)
        return tail[0].lower() + tail[1:]
    match = _SNAKE_GETTER_RE.match(method_name)
    if match:
        return match.group(1)
    return None


def simple_type_name(annotation: Any) -> str | None:
    if annotation is None or annotation is type(None) or annotation is inspect.Signature.empty:
        return None
    if isinstance(annotation, str):
        cleaned = annotation.strip().strip("'\"")
        if not cleaned or cleaned == "None":
            return None
        return cleaned.split("[", 1)[0].rsplit(".", 1)[-1]
    origin = typing.get_origin(annotation)
    if origin is not None:
        return simple_type_name(origin)
    return getattr(annotation, "__name__", None) or str(annotation)


class IntrospectingMethodFinder:
    """Lists the public methods and properties a Python type declares."""

    def find_methods(self, value_type: type, prefix: str) -> List[MethodDescriptor]:
        matches = [desc for desc in describe_type(value_type) if _matches(desc, prefix)]
        log.debug("Found %d members of %s for prefix %r", len(matches), value_type.__name__, prefix)
        return matches


def _matches(desc: MethodDescriptor, prefix: str) -> bool:
    if desc.name.startswith(prefix):
        return True
    if desc.is_property or desc.parameter_count != 0:
        return False
    prop = getter_property_name(desc.name)
    return prop is not None and prop.startswith(prefix)


@lru_cache(maxsize=256)
def describe_type(value_type: type) -> tuple[MethodDescriptor, ...]:
    descriptors: list[MethodDescriptor] = []
    for name in dir(value_type):
        if name.startswith("_"):
            continue
        try:
            raw = inspect.getattr_static(value_type, name)
        except AttributeError:
            continue
        desc = _describe_member(value_type, name, raw)
        if desc is not None:
            descriptors.append(desc)

    declared = {desc.name for desc in descriptors}
    for name, annotation in _class_annotations(value_type).items():
        if name.startswith("_") or name in declared:
            continue
        if typing.get_origin(annotation) is typing.ClassVar:
            continue
        descriptors.append(MethodDescriptor(name=name, parameter_count=0, return_type=annotation, is_property=True))
    return tuple(descriptors)


def _describe_member(owner: type, name: str, raw: Any) -> MethodDescriptor | None:
    if isinstance(raw, property):
        return_type = _return_annotation(raw.fget, owner) if raw.fget else None
        return MethodDescriptor(name=name, parameter_count=0, return_type=return_type, is_property=True)
    if isinstance(raw, staticmethod):
        func = raw.__func__
        return MethodDescriptor(name, _parameter_count(func, bound=False), _return_annotation(func, owner))
    if isinstance(raw, classmethod):
        func = raw.__func__
        return MethodDescriptor(name, _parameter_count(func, bound=True), _return_annotation(func, owner))
    if inspect.isfunction(raw):
        return MethodDescriptor(name, _parameter_count(raw, bound=True), _return_annotation(raw, owner))
    if inspect.ismethoddescriptor(raw) or inspect.isbuiltin(raw):
        return MethodDescriptor(name, _parameter_count(raw, bound=True), None)
    return None


def _parameter_count(func: Any, bound: bool) -> int:
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return -1
    params = list(sig.parameters.values())
    if bound and params:
        params = params[1:]
    return len(params)


def _return_annotation(func: Any, owner: type) -> Any:
    try:
        module = inspect.getmodule(func) or inspect.getmodule(owner)
        globalns = module.__dict__ if module else None
        hints = typing.get_type_hints(func, globalns=globalns)
        annotation = hints.get("return")
        return None if annotation is type(None) else annotation
    except Exception:
        return getattr(func, "__annotations__", {}).get("return")


def _class_annotations(cls: type) -> Dict[str, Any]:
    try:
        module = inspect.getmodule(cls)
        globalns = module.__dict__ if module else None
        return typing.get_type_hints(cls, globalns=globalns)
    except Exception:
        annotations: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            annotations.update(getattr(klass, "__annotations__", {}) or {})
        return annotations


class ServiceRegistry:
    """Named services grouped by namespace, exposed to templates as one binding.

    Templates reach a service with ``$services.<name>``; only the services
    of the designated namespace are visible to completion.
    Names that clash with the registry's own attributes are refused.
    """

    def __init__(self, namespace: str = DEFAULT_SERVICE_NAMESPACE):
        self._namespace = namespace
        self._services: Dict[str, Dict[str, Any]] = {}

    @property
    def namespace(self) -> str:
        return self._namespace

    def register(self, name: str, service: Any, namespace: str | None = None) -> None:
        if name in RESERVED_SERVICE_NAMES:
            raise ValueError(f"service name {name!r} is reserved by the registry")
        self._services.setdefault(namespace or self._namespace, {})[str(name)] = service

    def get(self, name: str, default: Any = None) -> Any:
        return self._services.get(self._namespace, {}).get(name, default)

    def names(self, namespace: str | None = None) -> List[str]:
        return list(self._services.get(namespace or self._namespace, {}))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        service = self.get(name)
        if service is None:
            raise AttributeError(name)
        return service

    def __contains__(self, name: object) -> bool:
        return name in self._services.get(self._namespace, {})


RESERVED_SERVICE_NAMES = frozenset(name for name in vars(ServiceRegistry) if not name.startswith("_"))


class ServiceRegistryMethodFinder:
    """Lists service names of the bound registry instead of the registry's methods."""

    def __init__(self, registry: ServiceRegistry, namespace: str | None = None):
        self._registry = registry
        self._namespace = namespace or registry.namespace

    def find_methods(self, value_type: type, prefix: str) -> List[MethodDescriptor]:
        names = [name for name in self._registry.names(self._namespace) if name.startswith(prefix)]
        log.debug("Registry namespace %r has %d services for prefix %r", self._namespace, len(names), prefix)
        return [MethodDescriptor(name=name, parameter_count=0, is_property=True) for name in names]


class ConfiguredService:
    """Placeholder for a service known only by name from configuration."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<service {self.name}>"


def register_services(registry: ServiceRegistry, names: Iterable[str]) -> ServiceRegistry:
    for name in names:
        if name in RESERVED_SERVICE_NAMES:
            log.warning("Skipping service %r: the name is reserved by the registry", name)
            continue
        registry.register(name, ConfiguredService(name))
    return registry


def finder_for(value: Any, factories: Iterable[tuple[type, FinderFactory]], default: MethodFinder) -> MethodFinder:
    for value_type, factory in factories:
        if isinstance(value, value_type):
            return factory(value)
    return default