from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping

from lsprotocol import types

from .hints import Hint, Hints
from .parser import ContentLocator, TargetContentType, VelocityContentLocator
from .resolver import MemberResolver
from .scanner import BindingReference, MemberReference, classify

log = logging.getLogger(__name__)


class InvalidOffset(ValueError):
    pass


class CompletionEngine:
    """Computes reference completions for a cursor position in a document.

    The engine only reads ``environment``; the locator and the resolver's
    finders are shared by every request.
    """

    def __init__(
        self,
        locator: ContentLocator | None = None,
        environment: Mapping[str, Any] | None = None,
        resolver: MemberResolver | None = None,
    ):
        self._locator = locator or VelocityContentLocator()
        self._environment: Mapping[str, Any] = environment if environment is not None else {}
        self._resolver = resolver or MemberResolver()

    @property
    def environment(self) -> Mapping[str, Any]:
        return self._environment

    def get_hints(
        self,
        cursor_offset: int,
        syntax: str,
        text: str,
        environment: Mapping[str, Any] | None = None,
    ) -> Hints:
        if cursor_offset < 0 or cursor_offset > len(text):
            raise InvalidOffset(f"offset {cursor_offset} is outside the document (length {len(text)})")
        env = environment if environment is not None else self._environment

        target = self._locator.locate(text, syntax, cursor_offset)
        if target.type is not TargetContentType.SCRIPT:
            log.debug("Offset %s is not inside script content", cursor_offset)
            return Hints()

        context = classify(target.content, target.local_offset)
        log.debug("Classified offset %s as %s", cursor_offset, context)
        if isinstance(context, BindingReference):
            return self._resolver.binding_names(env, context.prefix)
        if isinstance(context, MemberReference):
            value = env.get(context.root_name)
            if value is None:
                log.debug("Reference %s is not bound", context.root_name)
                return Hints()
            return self._resolver.members(value, context.member_prefix)
        return Hints()


def completion_items(hints: Iterable[Hint]) -> List[types.CompletionItem]:
    return [
        types.CompletionItem(
            label=hint.name,
            kind=hint.kind.completion_kind,
            detail=hint.signature,
            sort_text=f"{index:05d}",
        )
        for index, hint in enumerate(hints)
    ]
