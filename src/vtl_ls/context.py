from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterator

from .config import VtlLSConfig
from .methods import ServiceRegistry, register_services

log = logging.getLogger(__name__)


class BindingEnvironment(Mapping):
    """Names visible to a template, optionally chained to a parent scope.

    Local entries shadow the parent; iteration lists every visible name once.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, parent: Mapping[str, Any] | None = None):
        self._values: Dict[str, Any] = dict(values or {})
        self._parent = parent

    @property
    def parent(self) -> Mapping[str, Any] | None:
        return self._parent

    def put(self, name: str, value: Any) -> None:
        self._values[str(name)] = value

    def __getitem__(self, name: str) -> Any:
        if name in self._values:
            return self._values[name]
        if self._parent is not None:
            return self._parent[name]
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        if name in self._values:
            return True
        return self._parent is not None and name in self._parent

    def __iter__(self) -> Iterator[str]:
        yield from self._values
        if self._parent is not None:
            for name in self._parent:
                if name not in self._values:
                    yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"BindingEnvironment({self._values!r}, parent={self._parent!r})"


class ContextBuilder:
    def __init__(self, config: VtlLSConfig):
        self._config = config
        self._registry = ServiceRegistry(config.completion.service_namespace)

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    def build(self) -> BindingEnvironment:
        tools = BindingEnvironment(self._load_tools())
        env = BindingEnvironment(self._config.bindings, parent=tools)
        register_services(self._registry, self._config.services)
        env.put(self._config.completion.services_binding, self._registry)
        log.debug("Built binding environment with %d names", len(env))
        return env

    def _load_tools(self) -> Dict[str, Any]:
        merged: dict[str, Any] = dict(self._config.tools)
        for path in self._config.binding_files:
            data = _read_json_file(path)
            if data is None:
                continue
            if not isinstance(data, dict):
                log.warning("Binding file %s must contain a JSON object", path)
                continue
            merged.update(data)
        return merged


def _read_json_file(path: Path) -> Any:
    try:
        text = path.read_text()
    except FileNotFoundError:
        log.debug("Binding file not found: %s", path)
        return None
    except OSError as exc:
        log.warning("Failed to read binding file %s: %s", path, exc)
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        log.warning("Failed to parse binding file %s: %s", path, exc)
        return None
