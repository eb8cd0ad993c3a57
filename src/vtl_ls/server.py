from __future__ import annotations

import logging
from pathlib import Path

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from . import __version__
from .completions import CompletionEngine, completion_items
from .config import VtlLSConfig, load_config
from .context import ContextBuilder
from .methods import ServiceRegistry, ServiceRegistryMethodFinder
from .parser import VELOCITY_SYNTAX, VelocityContentLocator
from .resolver import MemberResolver

log = logging.getLogger(__name__)

TRIGGER_CHARACTERS = ["$", "!", "{", "."]


class VtlLanguageServer(LanguageServer):
    def __init__(self) -> None:
        super().__init__("vtl-ls", __version__)
        self._config = VtlLSConfig.default(Path.cwd())
        self._engine = build_engine(self._config)

    @property
    def config(self) -> VtlLSConfig:
        return self._config

    @property
    def engine(self) -> CompletionEngine:
        return self._engine

    def load_workspace(self, workspace_root: Path) -> None:
        config, warnings = load_config(workspace_root)
        for warning in warnings:
            log.warning(warning)
        self._config = config
        self._engine = build_engine(config)
        log.info("Loaded workspace %s", workspace_root)

    def syntax_for(self, language_id: str | None) -> str:
        if language_id == VELOCITY_SYNTAX:
            return VELOCITY_SYNTAX
        return self._config.completion.default_syntax


def build_engine(config: VtlLSConfig) -> CompletionEngine:
    builder = ContextBuilder(config)
    environment = builder.build()
    resolver = MemberResolver(finders=[(ServiceRegistry, ServiceRegistryMethodFinder)])
    locator = VelocityContentLocator(config.completion.syntaxes)
    return CompletionEngine(locator=locator, environment=environment, resolver=resolver)


def on_initialized(ls: VtlLanguageServer, params: types.InitializedParams) -> None:
    root = ls.workspace.root_path
    ls.load_workspace(Path(root) if root else Path.cwd())


def on_completion(ls: VtlLanguageServer, params: types.CompletionParams) -> types.CompletionList:
    document = ls.workspace.get_text_document(params.text_document.uri)
    offset = document.offset_at_position(params.position)
    syntax = ls.syntax_for(document.language_id)
    hints = ls.engine.get_hints(offset, syntax, document.source)
    return types.CompletionList(is_incomplete=False, items=completion_items(hints))


def create_server() -> VtlLanguageServer:
    server = VtlLanguageServer()
    server.feature(types.INITIALIZED)(on_initialized)
    server.feature(
        types.TEXT_DOCUMENT_COMPLETION,
        types.CompletionOptions(trigger_characters=TRIGGER_CHARACTERS),
    )(on_completion)
    return server
