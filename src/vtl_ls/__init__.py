"""Velocity reference completion engine and language server."""

__version__ = "0.1.0"

from .completions import CompletionEngine, InvalidOffset  # noqa: E402
from .hints import Hint, HintKind, Hints  # noqa: E402

__all__ = [
    "CompletionEngine",
    "Hint",
    "HintKind",
    "Hints",
    "InvalidOffset",
    "__version__",
]
