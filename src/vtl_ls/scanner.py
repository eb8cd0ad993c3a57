from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

log = logging.getLogger(__name__)

IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class BindingReference:
    prefix: str


@dataclass(frozen=True)
class MemberReference:
    root_name: str
    member_prefix: str


CompletionContext = Union[NoMatch, BindingReference, MemberReference]

NO_MATCH = NoMatch()


def classify(text: str, cursor_offset: int) -> CompletionContext:
    """Classify the reference ending at ``cursor_offset``.

    Recognised forms are ``$name``, ``$!name``, ``${name`` and ``$!{name``,
    each optionally followed by one ``.member`` hop. Text after the cursor
    is never looked at.
    """
    if cursor_offset < 0 or cursor_offset > len(text):
        raise ValueError(f"cursor offset {cursor_offset} outside text of length {len(text)}")

    start = cursor_offset
    while start > 0 and _is_fragment_char(text[start - 1]):
        start -= 1
    fragment = text[start:cursor_offset]

    sigil_start = _sigil_start(text, start)
    if sigil_start is None:
        log.debug("No reference sigil before offset %s", cursor_offset)
        return NO_MATCH

    parts = fragment.split(".")
    if len(parts) == 1:
        if fragment and not IDENT_RE.fullmatch(fragment):
            return NO_MATCH
        return BindingReference(prefix=fragment)
    if len(parts) == 2:
        root, member = parts
        if not IDENT_RE.fullmatch(root):
            return NO_MATCH
        if member and not IDENT_RE.fullmatch(member):
            return NO_MATCH
        return MemberReference(root_name=root, member_prefix=member)
    log.debug("Chained reference %r is not completed", fragment)
    return NO_MATCH


def _is_fragment_char(ch: str) -> bool:
    return _is_ident_char(ch) or ch == "."


def _is_ident_char(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalnum())


def _sigil_start(text: str, fragment_start: int) -> int | None:
    pos = fragment_start
    if pos > 0 and text[pos - 1] == "{":
        pos -= 1
    if pos > 0 and text[pos - 1] == "!":
        pos -= 1
    if pos == 0 or text[pos - 1] != "$":
        return None
    pos -= 1
    # "a$b" is plain text, not a reference
    if pos > 0 and _is_ident_char(text[pos - 1]):
        return None
    return pos
