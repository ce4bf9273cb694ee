"""Timeline CLI — every command outputs JSON to stdout."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from timelinekit import __version__
from timelinekit.errors import (
    TimelineError,
    EXIT_SUCCESS,
    EXIT_VALIDATION,
    EXIT_EXECUTION,
    EXIT_SYSTEM,
    INVALID_CONFIG,
    INVALID_JSON,
    INVALID_TIMELINE,
    MISSING_FIELD,
    NO_TIMELINE_IN_RESPONSE,
    UNKNOWN_OPERATION,
)

# Errors caused by the input document rather than by applying an edit
_INPUT_ERROR_CODES = frozenset({
    INVALID_JSON, INVALID_TIMELINE, MISSING_FIELD, NO_TIMELINE_IN_RESPONSE, UNKNOWN_OPERATION, INVALID_CONFIG,
})


def _json_out(data: dict, exit_code: int = EXIT_SUCCESS) -> int:
    """Print JSON to stdout and return exit code."""
    print(json.dumps(data, indent=2))
    return exit_code


def _json_error(exc: TimelineError, exit_code: int = EXIT_EXECUTION) -> int:
    """Print a TimelineError as JSON and return the appropriate exit code."""
    return _json_out(exc.to_dict(), exit_code)


def _exit_code_for(exc: TimelineError) -> int:
    return EXIT_VALIDATION if exc.code in _INPUT_ERROR_CODES else EXIT_EXECUTION


def _not_found(path: str) -> int:
    return _json_out({
        "error": True, "code": "INPUT_NOT_FOUND",
        "message": f"File not found: {path}",
        "recovery": ["Check the file path, or use '-' to read from stdin"],
    }, EXIT_VALIDATION)


def _read_input(arg: Optional[str], inline: Optional[str] = None) -> str:
    """Read a document from inline JSON, stdin (if '-'), or a file path."""
    if inline:
        return inline
    if arg is None:
        raise TimelineError(
            code=MISSING_FIELD,
            message="No input provided — pass a file path, use '-' for stdin, or use --json",
            recovery=["Provide a file path", "Use '-' to read from stdin", "Use --json '{...}'"],
        )
    if arg == "-":
        return sys.stdin.read()
    return Path(arg).read_text()


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def cmd_capabilities(_args) -> int:
    """Output machine-readable schema of all edit operations."""
    from timelinekit.config import ENV_VARS, load_thresholds, thresholds_dict
    from timelinekit.models import CLIP_TYPES, EFFECT_TYPES, SLIDE_DIRECTIONS, ANCHORS

    caps = {
        "version": __version__,
        "operations": {
            "split": {
                "description": "Cut a clip in two at a timeline frame (start < at < end)",
                "fields": {"op": "'split'", "clip": "str", "at": "frames"},
            },
            "trim_start": {
                "description": "Move a clip's start edge, keeping its end",
                "fields": {"op": "'trim_start'", "clip": "str", "start": "frames"},
            },
            "trim_end": {
                "description": "Move a clip's end edge, keeping its start",
                "fields": {"op": "'trim_end'", "clip": "str", "end": "frames"},
            },
            "extract": {
                "description": "Keep only [start, end) of a clip",
                "fields": {"op": "'extract'", "clip": "str", "start": "frames", "end": "frames"},
            },
            "remove_segment": {
                "description": "Cut [start, end) out of a clip, leaving up to two pieces",
                "fields": {"op": "'remove_segment'", "clip": "str", "start": "frames", "end": "frames"},
            },
            "join": {
                "description": "Join clips on one track into one clip spanning all of them",
                "fields": {"op": "'join'", "clips": "list[str] (>= 2)"},
            },
            "merge": {
                "description": "Merge media clips on video tracks with a crossfade overlap",
                "fields": {"op": "'merge'", "clips": "list[str] (>= 2)", "crossfade": "frames (default 30)"},
            },
            "concat": {
                "description": "Lay clips on one track end to end and combine them",
                "fields": {"op": "'concat'", "clips": "list[str] (>= 2)"},
            },
            "move": {
                "description": "Move a clip to a new start, optionally onto another track",
                "fields": {"op": "'move'", "clip": "str", "start": "frames", "track": "str (optional)"},
            },
            "duplicate": {
                "description": "Copy a clip to a new start on the same track",
                "fields": {"op": "'duplicate'", "clip": "str", "start": "frames"},
            },
            "fade": {
                "description": "Attach fade-in and/or fade-out effects",
                "fields": {"op": "'fade'", "clip": "str", "fade_in": "frames", "fade_out": "frames"},
            },
            "remove": {
                "description": "Delete a clip",
                "fields": {"op": "'remove'", "clip": "str"},
            },
            "change_text": {
                "description": "Replace the text of clips containing 'old' (case-insensitive)",
                "fields": {"op": "'change_text'", "old": "str", "new": "str"},
            },
            "text_color": {
                "description": "Recolour every styled text clip",
                "fields": {"op": "'text_color'", "color": "str"},
            },
            "add_text": {
                "description": "Add a text overlay with a 15-frame fade-in",
                "fields": {"op": "'add_text'", "text": "str", "placement": "'beginning' | 'middle' | 'end'"},
            },
        },
        "frames": "int (frames) or time string converted with the project fps",
        "time_formats": ["HH:MM:SS", "HH:MM:SS.mmm", "MM:SS", "seconds"],
        "script_format": {
            "version": "1.0",
            "timeline": "{project, timeline} — the starting timeline",
            "operations": "list[op] — applied in order",
        },
        "clip_types": list(CLIP_TYPES),
        "effect_types": list(EFFECT_TYPES),
        "slide_directions": list(SLIDE_DIRECTIONS),
        "anchors": list(ANCHORS),
        "thresholds": thresholds_dict(load_thresholds()),
        "env_vars": sorted(ENV_VARS),
        "exit_codes": {"0": "success", "1": "validation_error", "2": "execution_error", "3": "system_error"},
        "progress_output": {
            "description": "During 'apply', progress is emitted as JSONL on stderr",
            "format": {"progress": {"step": "int", "total": "int", "op": "str", "status": "'running' | 'done'"}},
            "suppress": "Use --quiet / -q to suppress progress output",
        },
    }
    return _json_out(caps)


def cmd_validate(args) -> int:
    """Validate a timeline document."""
    from timelinekit.validation import validate_timeline
    try:
        text = _read_input(args.file, getattr(args, "json", None))
        result = validate_timeline(text)
        code = EXIT_SUCCESS if result.valid else EXIT_VALIDATION
        return _json_out(result.to_dict(), code)
    except TimelineError as exc:
        return _json_error(exc, EXIT_VALIDATION)
    except FileNotFoundError:
        return _not_found(args.file)


def cmd_doctor(args) -> int:
    """Health-check a timeline document."""
    from timelinekit.doctor import health_check
    try:
        text = _read_input(args.file, getattr(args, "json", None))
        report = health_check(text)
        code = EXIT_SUCCESS if report.is_healthy else EXIT_VALIDATION
        return _json_out(report.to_dict(), code)
    except TimelineError as exc:
        return _json_error(exc, EXIT_VALIDATION)
    except FileNotFoundError:
        return _not_found(args.file)


def _make_progress_callback(quiet: bool):
    """Return a progress callback that writes JSONL to stderr, or None if quiet."""
    if quiet:
        return None

    def _progress(step: int, total: int, op_name: str, status: str) -> None:
        line = json.dumps({"progress": {"step": step, "total": total, "op": op_name, "status": status}})
        print(line, file=sys.stderr, flush=True)

    return _progress


def cmd_apply(args) -> int:
    """Run an edit script and print the resulting timeline."""
    from timelinekit.engine import execute_script
    try:
        text = _read_input(args.script, getattr(args, "json", None))
        callback = _make_progress_callback(getattr(args, "quiet", False))
        result = execute_script(text, progress_callback=callback)
        return _json_out(result.to_dict())
    except TimelineError as exc:
        return _json_error(exc, _exit_code_for(exc))
    except FileNotFoundError:
        return _not_found(args.script)


def cmd_accept(args) -> int:
    """Extract the timeline from assistant output and commit it if it validates."""
    from timelinekit.engine import clean_response_text, parse_timeline_response
    from timelinekit.validation import commit_timeline, validate_timeline
    try:
        text = _read_input(args.file)
        source = "stdin" if args.file == "-" else args.file
        untrusted = parse_timeline_response(text, source=source)
        timeline = commit_timeline(untrusted)
        return _json_out({
            "accepted": True,
            "timeline": timeline.to_dict(),
            "warnings": validate_timeline(timeline).warnings,
            "message": clean_response_text(text),
        })
    except TimelineError as exc:
        return _json_error(exc, _exit_code_for(exc))
    except FileNotFoundError:
        return _not_found(args.file)


def cmd_frame(args) -> int:
    """Print the per-clip render state at one frame."""
    from timelinekit.animation import frame_state
    from timelinekit.models import UntrustedTimeline, to_frames
    from timelinekit.validation import commit_timeline
    try:
        text = _read_input(args.file, getattr(args, "json", None))
        timeline = commit_timeline(UntrustedTimeline.from_json(text, source=args.file or "inline"))
        at = int(args.at) if args.at.isdigit() else args.at
        try:
            frame = to_frames(at, timeline.project.fps)
        except ValueError as exc:
            return _json_out({
                "error": True, "code": "INVALID_PARAMETER",
                "message": str(exc),
                "recovery": ["Give --at as a frame number or a time like 00:00:03.5"],
            }, EXIT_VALIDATION)
        return _json_out({
            "frame": frame,
            "clips": [s.to_dict() for s in frame_state(timeline, frame)],
        })
    except TimelineError as exc:
        return _json_error(exc, _exit_code_for(exc))
    except FileNotFoundError:
        return _not_found(args.file)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="timelinekit",
        description="Frame-accurate video timeline editing — all output is JSON",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Log debug output to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    # capabilities
    sub.add_parser("capabilities", help="List all edit operations and their schemas")

    # validate
    p = sub.add_parser("validate", help="Validate a timeline document")
    p.add_argument("file", nargs="?", default=None,
                   help="Path to the timeline JSON file (or '-' for stdin)")
    p.add_argument("--json", default=None, help="Inline timeline JSON string")

    # doctor
    p = sub.add_parser("doctor", help="Health-check a timeline: validation, stats, recommendations")
    p.add_argument("file", nargs="?", default=None,
                   help="Path to the timeline JSON file (or '-' for stdin)")
    p.add_argument("--json", default=None, help="Inline timeline JSON string")

    # apply
    p = sub.add_parser("apply", help="Run an edit script")
    p.add_argument("script", nargs="?", default=None,
                   help="Path to the edit script JSON file (or '-' for stdin)")
    p.add_argument("--json", default=None, help="Inline edit script JSON string")
    p.add_argument("-q", "--quiet", action="store_true", default=False,
                   help="Suppress progress output on stderr")

    # accept
    p = sub.add_parser("accept", help="Commit the timeline found in assistant output")
    p.add_argument("file", help="Path to the response text (or '-' for stdin)")

    # frame
    p = sub.add_parser("frame", help="Show per-clip render state at a frame")
    p.add_argument("file", nargs="?", default=None,
                   help="Path to the timeline JSON file (or '-' for stdin)")
    p.add_argument("--json", default=None, help="Inline timeline JSON string")
    p.add_argument("--at", required=True, help="Frame number or time (e.g. 90 or 00:00:03)")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_VALIDATION)

    handlers = {
        "capabilities": cmd_capabilities,
        "validate": cmd_validate,
        "doctor": cmd_doctor,
        "apply": cmd_apply,
        "accept": cmd_accept,
        "frame": cmd_frame,
    }

    try:
        exit_code = handlers[args.command](args)
    except TimelineError as exc:
        exit_code = _json_error(exc, EXIT_SYSTEM)
    except Exception as exc:
        exit_code = _json_out({
            "error": True,
            "code": "UNEXPECTED_ERROR",
            "message": str(exc),
            "recovery": ["This is an unexpected error — please report it"],
        }, EXIT_SYSTEM)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
