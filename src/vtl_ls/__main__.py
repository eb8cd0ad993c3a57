from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .completions import InvalidOffset
from .config import CONFIG_FILENAME, load_config
from .hints import Hints
from .server import build_engine, create_server


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Velocity reference completion language server")
    parser.add_argument("--tcp", action="store_true", help="Run in TCP mode instead of stdio")
    parser.add_argument("--host", default="127.0.0.1", help="TCP host (when --tcp is set)")
    parser.add_argument("--port", type=int, default=2087, help="TCP port (when --tcp is set)")
    parser.add_argument("--stdio", action="store_true", help="Accept stdio flag for VS Code clients (ignored)")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--hints", metavar="FILE", help="Print completion hints for a file and exit")
    parser.add_argument("--offset", type=int, help="Cursor offset for --hints (defaults to end of file)")
    parser.add_argument("--syntax", help="Document syntax for --hints (defaults to the configured syntax)")
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    if args.hints:
        if args.tcp:
            parser.error("--hints cannot be combined with --tcp")
        sys.exit(_run_hints(Path(args.hints), args.offset, args.syntax))

    server = create_server()
    if args.tcp:
        server.start_tcp(args.host, args.port)
    else:
        server.start_io()


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _run_hints(path: Path, offset: int | None, syntax: str | None) -> int:
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return 2

    workspace_root = _discover_workspace_root(path)
    log = logging.getLogger(__name__)
    log.info("Completing %s (workspace root: %s)", path, workspace_root)

    config, warnings = load_config(workspace_root)
    for warning in warnings:
        log.warning(warning)

    engine = build_engine(config)
    source = path.read_text()
    cursor = len(source) if offset is None else offset
    try:
        hints = engine.get_hints(cursor, syntax or config.completion.default_syntax, source)
    except InvalidOffset as exc:
        print(f"{path}: {exc}", file=sys.stderr)
        return 2
    _print_hints(path, hints)
    return 0 if hints else 1


def _discover_workspace_root(target: Path) -> Path:
    current = target if target.is_dir() else target.parent
    for folder in [current, *current.parents]:
        if (folder / CONFIG_FILENAME).exists():
            return folder
    return current


def _print_hints(path: Path, hints: Hints) -> None:
    if not hints:
        print(f"{path}: no hints")
        return
    for hint in hints:
        print(f"{hint.name}\t{hint.signature}")


if __name__ == "__main__":
    main()
