"""ChantGlass command-line interface.

Argparse-based CLI that initializes structured logging early and then
dispatches to the GUI or to headless puzzle tools. Exposed via
``python -m chantglass`` and the ``chantglass`` console script.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import random
from pathlib import Path
from typing import Optional

from .logging_utils import setup_logging, get_default_log_path, LogMode
from .puzzle import (
    PatternCatalog,
    PuzzleEngine,
    PuzzleEventEmitter,
    PuzzleEventType,
    load_default_catalog,
)


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set log level (default: INFO)",
    )
    parser.add_argument(
        "--log-mode",
        choices=[mode.value for mode in LogMode],
        default=LogMode.NORMAL.value,
        help="Logging preset: quiet suppresses console info, perf forces DEBUG",
    )
    parser.add_argument(
        "--log-file",
        default=str(get_default_log_path()),
        help="Path to log file (default: per-user ChantGlass directory)",
    )
    parser.add_argument(
        "--log-format",
        choices=["plain", "json"],
        default="plain",
        help="Log format (plain or json)",
    )


def _build_logging_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    _add_logging_args(parent)
    return parent


def _load_catalog(path: Optional[str]) -> PatternCatalog:
    if path:
        return PatternCatalog.load(Path(path).expanduser())
    return load_default_catalog()


def selftest() -> int:
    """Fast import-and-init smoke test. Returns exit code."""
    try:
        import PyQt6  # noqa: F401  # Ensure UI deps import
        from .engine import video  # noqa: F401
        from .ui.puzzle_window import PuzzleWindow  # noqa: F401

        catalog = load_default_catalog()
        engine = PuzzleEngine(catalog, rng=random.Random(0))
        for segment in engine.pattern.segments:
            engine.select_segment(segment.sequence_number)
        if not engine.evaluate() or engine.outcome.value != "success":
            raise RuntimeError("canonical order did not solve the bundled pattern")

        msg = f"Selftest OK: imports + {len(catalog)} bundled pattern(s) solvable"
        logging.getLogger(__name__).info(msg)
        print(msg)
        return 0
    except Exception as e:
        logging.getLogger(__name__).error("Selftest failed: %s", e)
        return 1


def cmd_catalog(args) -> int:
    """Inspect or validate a pattern catalog without launching the UI."""
    log = logging.getLogger(__name__)
    source = args.load or "<bundled>"

    if args.load and not Path(args.load).expanduser().exists():
        print(f"Error: catalog file not found: {args.load}")
        return 1

    try:
        catalog = _load_catalog(args.load)
    except ValueError as exc:
        # Validation failures are a result, not a crash, for --validate
        if args.validate:
            print(json.dumps({"valid": False, "source": source, "error": str(exc)}, indent=2))
            return 1
        log.error("Failed to load catalog %s: %s", source, exc)
        print(f"Error: failed to load catalog: {exc}")
        return 1
    except Exception as exc:
        log.error("Failed to load catalog %s: %s", source, exc)
        print(f"Error: failed to load catalog: {exc}")
        return 1

    if args.validate:
        missing = []
        for cue_id in catalog.videos:
            path = catalog.resolve_video(cue_id)
            if path is None or not path.exists():
                missing.append(cue_id)
        summary = {
            "valid": True,
            "source": source,
            "name": catalog.name,
            "patterns": len(catalog),
            # Missing cue videos are allowed; playback is skipped for them
            "missing_videos": missing,
        }
        print(json.dumps(summary, indent=2))
        return 0

    if args.print:
        print(json.dumps(catalog.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"{catalog.name} (v{catalog.version}) - {len(catalog)} pattern(s)")
    for index, pattern in enumerate(catalog.patterns):
        print(
            f"  [{index}] {pattern.name or '<unnamed>'}: {len(pattern)} segments, "
            f"cue {pattern.cue.start_offset:.1f}s-{pattern.cue.end_offset:.1f}s"
        )
    return 0


def _parse_picks(raw: Optional[str]) -> list[int]:
    if not raw:
        return []
    picks: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if token:
            picks.append(int(token))
    return picks


def cmd_session(args) -> int:
    """Play one scripted session headlessly and print its final state as JSON."""
    try:
        catalog = _load_catalog(args.catalog)
        picks = _parse_picks(args.pick)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    emitter = PuzzleEventEmitter()
    ignored: list[dict] = []
    emitter.subscribe(PuzzleEventType.ACTION_IGNORED, lambda event: ignored.append(dict(event.data)))

    rng = random.Random(args.seed) if args.seed is not None else None
    engine = PuzzleEngine(catalog, event_emitter=emitter, rng=rng)

    if args.solve:
        picks = [segment.sequence_number for segment in engine.pattern.segments]

    hints_used: list[int] = []
    for index, number in enumerate(picks):
        # A hint before each of the first N picks
        if index < args.hints and engine.request_hint():
            hints_used.append(engine.highlighted)
        engine.select_segment(number)

    if args.evaluate:
        engine.evaluate()

    payload = engine.session.snapshot()
    payload["hints_revealed"] = hints_used
    payload["ignored"] = ignored
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    logging_parent = _build_logging_parent()
    parser = argparse.ArgumentParser(
        description="ChantGlass CLI",
        parents=[logging_parent],
    )
    sub = parser.add_subparsers(dest="command", required=False)

    def add_subparser(name: str, **kwargs: object) -> argparse.ArgumentParser:
        parents = list(kwargs.pop("parents", []))
        parents.insert(0, logging_parent)
        return sub.add_parser(name, parents=parents, **kwargs)

    # GUI launcher
    p_run = add_subparser("run", help="Start the GUI (default)")
    p_run.add_argument("--catalog", type=str, default=None, help="Path to a pattern catalog JSON (default: bundled)")
    p_run.add_argument("--auto-evaluate", action="store_true", help="Decide the outcome as soon as the last segment is chosen")

    p_cat = add_subparser("catalog", help="Inspect or validate a pattern catalog")
    p_cat.add_argument("--load", type=str, default=None, help="Catalog JSON to inspect (default: bundled)")
    cat_mode = p_cat.add_mutually_exclusive_group()
    cat_mode.add_argument("--list", action="store_true", help="List patterns (default)")
    cat_mode.add_argument("--print", action="store_true", help="Print the catalog as JSON")
    cat_mode.add_argument("--validate", action="store_true", help="Validate and print a JSON summary")

    p_sess = add_subparser("session", help="Play a scripted session headlessly and print its state")
    p_sess.add_argument("--catalog", type=str, default=None, help="Catalog JSON (default: bundled)")
    p_sess.add_argument("--seed", type=int, default=None, help="Seed for pattern choice and shuffle")
    pick_mode = p_sess.add_mutually_exclusive_group()
    pick_mode.add_argument("--pick", type=str, default=None, help="Comma-separated sequence numbers to choose, in order")
    pick_mode.add_argument("--solve", action="store_true", help="Choose every segment in canonical order")
    p_sess.add_argument("--hints", type=int, default=0, metavar="N", help="Request a hint before each of the first N picks")
    p_sess.add_argument("--evaluate", action="store_true", help="Evaluate after the picks")

    add_subparser("selftest", help="Quick environment/import check")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging before doing any work
    if getattr(args, "log_mode", None):
        os.environ["CHANTGLASS_LOG_MODE"] = args.log_mode
    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=(args.log_format == "json"),
        log_mode=args.log_mode,
        add_console=True,
    )

    cmd = args.command or "run"
    if cmd == "run":
        catalog = getattr(args, "catalog", None)
        if catalog:
            os.environ["CHANTGLASS_CATALOG"] = str(Path(catalog).expanduser().resolve())
        if getattr(args, "auto_evaluate", False):
            os.environ["CHANTGLASS_AUTO_EVALUATE"] = "1"
        # Import app lazily so headless commands never touch Qt or OpenCV
        from .app import run as run_gui  # local import
        return run_gui()
    if cmd == "selftest":
        return selftest()
    if cmd == "catalog":
        return cmd_catalog(args)
    if cmd == "session":
        return cmd_session(args)

    parser.print_help()
    return 2


if __name__ == "__main__":  # Allow direct module execution
    raise SystemExit(main())
