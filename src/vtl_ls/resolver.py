from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from .hints import Hint, Hints
from .methods import (
    FinderFactory,
    IntrospectingMethodFinder,
    MethodDescriptor,
    MethodFinder,
    ServiceRegistry,
    ServiceRegistryMethodFinder,
    finder_for,
    getter_property_name,
)

log = logging.getLogger(__name__)

DEFAULT_FINDERS: tuple[tuple[type, FinderFactory], ...] = ((ServiceRegistry, ServiceRegistryMethodFinder),)


class MemberResolver:
    """Turns a completion context into hints.

    ``finders`` pairs value types with a factory that builds the finder from
    the bound value itself; anything else goes through ``default_finder``.
    """

    def __init__(
        self,
        default_finder: MethodFinder | None = None,
        finders: Sequence[tuple[type, FinderFactory]] | None = None,
    ):
        self._default_finder = default_finder or IntrospectingMethodFinder()
        self._finders = DEFAULT_FINDERS if finders is None else tuple(finders)

    def binding_names(self, env: Mapping[str, Any], prefix: str) -> Hints:
        names = [name for name in env.keys() if isinstance(name, str) and name.startswith(prefix)]
        log.debug("Matched %d bindings for prefix %r", len(names), prefix)
        return Hints(Hint.variable(name) for name in names)

    def members(self, value: Any, member_prefix: str) -> Hints:
        if value is None:
            return Hints()
        finder = finder_for(value, self._finders, self._default_finder)
        methods = finder.find_methods(type(value), member_prefix)
        return Hints(format_members(methods, member_prefix))


def format_members(methods: Iterable[MethodDescriptor], prefix: str) -> list[Hint]:
    hints: list[Hint] = []
    seen_methods: set[str] = set()
    seen_properties: set[str] = set()
    for method in methods:
        type_name = method.return_type_name
        if method.is_property:
            if method.name.startswith(prefix) and method.name not in seen_properties:
                seen_properties.add(method.name)
                hints.append(Hint.prop(method.name, type_name))
            continue

        if method.name.startswith(prefix) and method.name not in seen_methods:
            seen_methods.add(method.name)
            hints.append(Hint.method(method.name, type_name))

        if method.parameter_count != 0:
            continue
        prop = getter_property_name(method.name)
        if prop and prop.startswith(prefix) and prop not in seen_properties:
            seen_properties.add(prop)
            hints.append(Hint.prop(prop, type_name))
    return hints
