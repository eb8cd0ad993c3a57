from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .methods import DEFAULT_SERVICE_NAMESPACE
from .parser import DEFAULT_WIKI_SYNTAXES

log = logging.getLogger(__name__)

CONFIG_FILENAME = ".vtlls.json"

_ENV_RE = re.compile(r"\$\{(\w+)\}|\$(\w+)")


@dataclass
class CompletionSettings:
    syntaxes: Tuple[str, ...] = DEFAULT_WIKI_SYNTAXES
    default_syntax: str = "xwiki/2.1"
    services_binding: str = "services"
    service_namespace: str = DEFAULT_SERVICE_NAMESPACE


@dataclass
class VtlLSConfig:
    workspace_root: Path
    completion: CompletionSettings = field(default_factory=CompletionSettings)
    bindings: Dict[str, Any] = field(default_factory=dict)
    tools: Dict[str, Any] = field(default_factory=dict)
    binding_files: Tuple[Path, ...] = ()
    services: Tuple[str, ...] = ()

    @classmethod
    def default(cls, workspace_root: Path) -> "VtlLSConfig":
        return cls(workspace_root=workspace_root)


_COMPLETION_KEYS = {
    "syntaxes": "syntaxes",
    "defaultSyntax": "default_syntax",
    "servicesBinding": "services_binding",
    "serviceNamespace": "service_namespace",
}


def load_config(workspace_root: Path) -> tuple[VtlLSConfig, List[str]]:
    """Read ``.vtlls.json`` from the workspace root.

    Problems never raise: they fall back to defaults and are reported as
    warnings for the caller to surface.
    """
    cfg = VtlLSConfig.default(workspace_root)
    warnings: list[str] = []
    path = workspace_root / CONFIG_FILENAME
    if not path.exists():
        return cfg, warnings

    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        warnings.append(f"Failed to read {path}: {exc}")
        return cfg, warnings
    if not isinstance(raw, dict):
        warnings.append(f"{path} must contain a JSON object")
        return cfg, warnings

    subst = _Substituter(workspace_root, warnings)

    completion = raw.get("completion") or {}
    if isinstance(completion, dict):
        defaults = CompletionSettings()
        values: dict[str, Any] = {}
        for key, attr in _COMPLETION_KEYS.items():
            if key not in completion:
                continue
            value = subst.apply(completion[key])
            if value is None:
                continue
            if attr == "syntaxes":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    warnings.append("completion.syntaxes must be a list of strings")
                    continue
                value = tuple(value)
            elif not isinstance(value, str):
                warnings.append(f"completion.{key} must be a string")
                continue
            values[attr] = value
        cfg.completion = CompletionSettings(**{f.name: values.get(f.name, getattr(defaults, f.name)) for f in fields(defaults)})
    else:
        warnings.append("completion must be an object")

    for key, attr in (("bindings", "bindings"), ("tools", "tools")):
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, dict):
            setattr(cfg, attr, dict(value))
        else:
            warnings.append(f"{key} must be an object")

    files = raw.get("bindingFiles") or []
    if isinstance(files, list):
        paths: list[Path] = []
        for entry in files:
            resolved = subst.apply(entry)
            if not isinstance(resolved, str):
                continue
            candidate = Path(resolved)
            paths.append(candidate if candidate.is_absolute() else workspace_root / candidate)
        cfg.binding_files = tuple(paths)
    else:
        warnings.append("bindingFiles must be a list")

    services = raw.get("services") or []
    if isinstance(services, list):
        cfg.services = tuple(name for name in (subst.apply(s) for s in services) if isinstance(name, str) and name)
    else:
        warnings.append("services must be a list")

    return cfg, warnings


class _Substituter:
    def __init__(self, workspace_root: Path, warnings: List[str]):
        self._root = workspace_root
        self._warnings = warnings

    def apply(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self.apply(v) for v in value]
        if not isinstance(value, str):
            return value
        missing: list[str] = []

        def _replace(match: re.Match) -> str:
            name = match.group(1) or match.group(2)
            if name == "workspaceRoot":
                return str(self._root)
            env_value = os.environ.get(name)
            if env_value is None:
                missing.append(name)
                return ""
            return env_value

        result = _ENV_RE.sub(_replace, value)
        if missing:
            for name in missing:
                self._warnings.append(f"Environment variable {name} is not set (in {value!r})")
            return None
        return result
