from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List

from lsprotocol import types


class HintKind(enum.Enum):
    VARIABLE = "variable"
    PROPERTY = "property"
    METHOD = "method"

    @property
    def completion_kind(self) -> types.CompletionItemKind:
        return _COMPLETION_KINDS[self]


_COMPLETION_KINDS = {
    HintKind.VARIABLE: types.CompletionItemKind.Variable,
    HintKind.PROPERTY: types.CompletionItemKind.Property,
    HintKind.METHOD: types.CompletionItemKind.Method,
}


@dataclass(frozen=True)
class Hint:
    name: str
    signature: str
    kind: HintKind = field(default=HintKind.VARIABLE, compare=False)

    @classmethod
    def variable(cls, name: str) -> "Hint":
        return cls(name=name, signature=name, kind=HintKind.VARIABLE)

    @classmethod
    def prop(cls, name: str, type_name: str | None = None) -> "Hint":
        signature = f"{name} {type_name}" if type_name else name
        return cls(name=name, signature=signature, kind=HintKind.PROPERTY)

    @classmethod
    def method(cls, name: str, type_name: str | None = None) -> "Hint":
        signature = f"{name}(...) {type_name}" if type_name else f"{name}(...)"
        return cls(name=name, signature=signature, kind=HintKind.METHOD)

    def to_json(self) -> Dict[str, str]:
        return {"name": self.name, "signature": self.signature}


class Hints:
    """Sorted, duplicate-free collection of completion hints.

    Instances never change; ``with_hints`` returns a new collection.
    """

    __slots__ = ("_hints",)

    def __init__(self, hints: Iterable[Hint] = ()):
        self._hints = tuple(sorted(set(hints), key=_sort_key))

    def with_hints(self, *hints: Hint) -> "Hints":
        return Hints((*self._hints, *hints))

    def merge(self, other: "Hints") -> "Hints":
        return Hints((*self._hints, *other.hints))

    @property
    def hints(self) -> tuple[Hint, ...]:
        return self._hints

    @property
    def names(self) -> List[str]:
        return [hint.name for hint in self._hints]

    def to_json(self) -> List[Dict[str, str]]:
        return [hint.to_json() for hint in self._hints]

    def __iter__(self) -> Iterator[Hint]:
        return iter(self._hints)

    def __len__(self) -> int:
        return len(self._hints)

    def __bool__(self) -> bool:
        return bool(self._hints)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Hints):
            return self._hints == other._hints
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._hints)

    def __repr__(self) -> str:
        return f"Hints({list(self._hints)!r})"


def _sort_key(hint: Hint) -> tuple[str, str]:
    return hint.name, hint.signature
