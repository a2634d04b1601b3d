"""Command-line entry point for inspecting and writing stored view state."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Sequence, TextIO

from .codec import decode_state
from .commands import CommandOutcome, save_current_position
from .errors import CursorMarkError
from .frontmatter import FrontmatterStore
from .settings import Settings, SettingsStore, SettingsTab
from .state import CursorPosition, CursorRange
from .utils import logging as logging_utils
from .workspace import Workspace

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


def configure_logging(debug: bool, *, settings_path: Path) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging_utils.setup_logging(level, log_dir=logging_utils.log_dir_for(settings_path))
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def main(argv: Sequence[str] | None = None, *, stdout: TextIO | None = None) -> int:
    """Entry point invoked by the ``cursormark`` console script."""

    out = stdout or sys.stdout
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings_path = args.settings_path or os.environ.get("CURSORMARK_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    debug = args.debug or _env_flag("CURSORMARK_DEBUG")
    configure_logging(debug, settings_path=store.path)
    if store.load().debug_logging and not debug:
        configure_logging(True, settings_path=store.path)

    try:
        if args.command == "inspect":
            return _run_inspect(args, out)
        if args.command == "save":
            return _run_save(args, out)
        if args.command == "settings":
            return _run_settings(args, store, out)
    except CursorMarkError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    parser.print_help(out)
    return 2


def _run_inspect(args: argparse.Namespace, out: TextIO) -> int:
    store = FrontmatterStore(args.vault)
    metadata = store.read(args.path)
    state = decode_state(metadata.fields, metadata.block_line_count)
    payload: Dict[str, Any] = {
        "path": str(store.resolve(args.path)),
        "block_line_count": metadata.block_line_count,
        "state": state.as_dict() if state is not None else None,
    }
    json.dump(payload, out, indent=2)
    out.write("\n")
    return 0 if state is not None else 1


def _run_save(args: argparse.Namespace, out: TextIO) -> int:
    workspace = Workspace(FrontmatterStore(args.vault))
    pane = workspace.open_file(args.path)
    anchor = CursorPosition(line=args.line, ch=args.ch)
    if args.to_line is None and args.to_ch is None:
        cursor = CursorRange.collapsed(anchor)
    else:
        head = CursorPosition(
            line=args.to_line if args.to_line is not None else args.line,
            ch=args.to_ch if args.to_ch is not None else args.ch,
        )
        cursor = CursorRange(from_=anchor, to=head)
    pane.editor.selection = (cursor.from_, cursor.to)
    pane.editor.scroll = args.scroll
    outcome = asyncio.run(save_current_position(workspace))
    for notice in workspace.notices:
        out.write(f"{notice}\n")
    return 0 if outcome is CommandOutcome.SAVED else 1


def _run_settings(args: argparse.Namespace, store: SettingsStore, out: TextIO) -> int:
    try:
        overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2
    settings = store.load(overrides=overrides or None)
    if args.delay is not None:
        SettingsTab(settings, store).change("delay_after_file_opening", args.delay)
    payload = {"settings": asdict(settings), "path": str(store.path)}
    json.dump(payload, out, indent=2, sort_keys=True)
    out.write("\n")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cursormark",
        description="Inspect or write cursor/scroll state stored in Markdown front matter.",
    )
    parser.add_argument("--settings-path", metavar="PATH", help="Override ~/.cursormark/settings.json.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command")

    inspect_parser = sub.add_parser("inspect", help="Print the stored state of a document as JSON.")
    inspect_parser.add_argument("path")
    inspect_parser.add_argument("--vault", metavar="DIR", help="Resolve PATH relative to DIR.")

    save_parser = sub.add_parser("save", help="Store a selection and scroll offset (absolute lines).")
    save_parser.add_argument("path")
    save_parser.add_argument("--vault", metavar="DIR", help="Resolve PATH relative to DIR.")
    save_parser.add_argument("--line", type=_non_negative_int, required=True)
    save_parser.add_argument("--ch", type=_non_negative_int, default=0)
    save_parser.add_argument("--to-line", type=_non_negative_int)
    save_parser.add_argument("--to-ch", type=_non_negative_int)
    save_parser.add_argument("--scroll", type=float, default=0.0)

    settings_parser = sub.add_parser("settings", help="Show (and optionally change) plugin settings.")
    settings_parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a setting for this invocation only (repeatable).",
    )
    settings_parser.add_argument("--delay", type=int, help="Persist a new delay after file opening (ms).")
    return parser


def _non_negative_int(raw: str) -> int:
    value = int(raw, 10)
    if value < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return value


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _coerce_cli_overrides(pairs: Sequence[str]) -> Dict[str, Any]:
    known = {name: type(value) for name, value in asdict(Settings()).items()}
    overrides: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected KEY=VALUE, got {pair!r}")
        if key not in known:
            raise ValueError(f"unknown setting {key!r}")
        expected = known[key]
        text = raw.strip()
        if expected is bool:
            lowered = text.lower()
            if lowered in _TRUE_VALUES:
                overrides[key] = True
            elif lowered in _FALSE_VALUES:
                overrides[key] = False
            else:
                raise ValueError(f"{key} expects a boolean, got {raw!r}")
        else:
            try:
                overrides[key] = expected(text)
            except ValueError as exc:
                raise ValueError(f"{key} expects {expected.__name__}, got {raw!r}") from exc
    return overrides


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
