from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Protocol

log = logging.getLogger(__name__)

VELOCITY_SYNTAX = "velocity"
DEFAULT_WIKI_SYNTAXES = ("xwiki/2.0", "xwiki/2.1")

VELOCITY_OPEN_RE = re.compile(r"\{\{velocity(?:\s[^}]*)?\}\}", re.IGNORECASE)
VELOCITY_CLOSE_RE = re.compile(r"\{\{/velocity\s*\}\}", re.IGNORECASE)


class TargetContentType(enum.Enum):
    SCRIPT = "script"
    OTHER = "other"


@dataclass(frozen=True)
class TargetContent:
    content: str
    local_offset: int
    type: TargetContentType


@dataclass
class VelocityBlock:
    content: str
    start: int
    end: int
    closed: bool = True

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


class ContentLocator(Protocol):
    def locate(self, text: str, syntax: str, offset: int) -> TargetContent: ...


def find_velocity_blocks(source: str) -> List[VelocityBlock]:
    blocks: list[VelocityBlock] = []
    pos = 0
    while True:
        opening = VELOCITY_OPEN_RE.search(source, pos)
        if opening is None:
            break
        start = opening.end()
        closing = VELOCITY_CLOSE_RE.search(source, start)
        if closing is None:
            # An unterminated macro runs to the end of the document
            blocks.append(VelocityBlock(content=source[start:], start=start, end=len(source), closed=False))
            break
        blocks.append(VelocityBlock(content=source[start : closing.start()], start=start, end=closing.start()))
        pos = closing.end()
    return blocks


class VelocityContentLocator:
    """Finds the Velocity script surrounding an offset of a wiki document."""

    def __init__(self, syntaxes: Iterable[str] = DEFAULT_WIKI_SYNTAXES):
        self._syntaxes = frozenset(syntaxes)

    @property
    def syntaxes(self) -> frozenset[str]:
        return self._syntaxes

    def locate(self, text: str, syntax: str, offset: int) -> TargetContent:
        if syntax == VELOCITY_SYNTAX:
            return TargetContent(text, offset, TargetContentType.SCRIPT)
        if syntax not in self._syntaxes:
            log.debug("Syntax %s holds no Velocity content", syntax)
            return TargetContent(text, offset, TargetContentType.OTHER)

        for block in find_velocity_blocks(text):
            if block.contains(offset):
                return TargetContent(block.content, offset - block.start, TargetContentType.SCRIPT)
        return TargetContent(text, offset, TargetContentType.OTHER)
