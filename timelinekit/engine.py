"""Edit-script parser and replay engine, plus assistant-response timeline intake."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Union

from timelinekit.config import Thresholds
from timelinekit.errors import (
    TimelineError,
    INVALID_JSON,
    INVALID_PARAMETER,
    MISSING_FIELD,
    NO_TIMELINE_IN_RESPONSE,
    UNKNOWN_OPERATION,
    recovery_hints,
)
from timelinekit.models import (
    EditScript,
    Frames,
    Timeline,
    UntrustedTimeline,
    SplitOp,
    TrimStartOp,
    TrimEndOp,
    ExtractOp,
    RemoveSegmentOp,
    JoinOp,
    MergeOp,
    ConcatOp,
    MoveOp,
    DuplicateOp,
    FadeOp,
    RemoveOp,
    ChangeTextOp,
    TextColorOp,
    AddTextOp,
    to_frames,
)
from timelinekit.operations import (
    split_at,
    trim_start,
    trim_end,
    extract_range,
    remove_segment,
    join,
    merge_with_crossfade,
    concatenate,
    move_to,
    duplicate_at,
    remove_clip,
    add_fade_in,
    add_fade_out,
)
from timelinekit.text_ops import add_text_overlay, change_text, change_text_color
from timelinekit.validation import ValidationResult, commit_timeline, validate_timeline

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str, str], None]


# ---------------------------------------------------------------------------
# Script parsing
# ---------------------------------------------------------------------------

def _load_json(raw: Union[str, dict], what: str) -> dict:
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TimelineError(
                code=INVALID_JSON,
                message=f"Invalid JSON: {exc}",
                recovery=recovery_hints(INVALID_JSON),
                context={"parse_error": str(exc)},
            ) from exc
    else:
        data = raw
    if not isinstance(data, dict):
        raise TimelineError(
            code=INVALID_JSON,
            message=f"{what} must be a JSON object, got {type(data).__name__}",
            recovery=recovery_hints(INVALID_JSON),
        )
    return data


def parse_script(raw: Union[str, dict]) -> EditScript:
    """Parse a JSON string or dict into an EditScript.

    The embedded timeline is left untrusted; ``execute_script`` commits it.

    Raises:
        TimelineError: If the script is malformed or names an unknown operation.
    """
    data = _load_json(raw, "Edit script")

    for required in ("version", "timeline", "operations"):
        if required not in data:
            raise TimelineError(
                code=MISSING_FIELD,
                message=f"Edit script missing required field: '{required}'",
                recovery=[f"Add '{required}' to the top-level edit script object"],
                context={"missing_field": required},
            )
    if not isinstance(data["timeline"], dict):
        raise TimelineError(
            code=INVALID_JSON,
            message="Edit script 'timeline' must be an object with 'project' and 'timeline' keys",
            recovery=recovery_hints(INVALID_JSON),
        )
    if not isinstance(data["operations"], list):
        raise TimelineError(
            code=INVALID_JSON,
            message="Edit script 'operations' must be an array",
            recovery=recovery_hints(INVALID_JSON),
        )
    for idx, op in enumerate(data["operations"]):
        if not isinstance(op, dict):
            raise TimelineError(
                code=INVALID_JSON,
                message=f"Operation {idx} must be an object with an 'op' field, got {type(op).__name__}",
                recovery=recovery_hints(INVALID_JSON),
                context={"operation_index": idx},
            )

    return EditScript.from_dict(data)


# ---------------------------------------------------------------------------
# Operation dispatch
# ---------------------------------------------------------------------------

def _frames(value: Frames, fps: int, field_name: str) -> int:
    """Resolve a frame-or-time field against the project frame rate."""
    try:
        return to_frames(value, fps)
    except ValueError as exc:
        raise TimelineError(
            code=INVALID_PARAMETER,
            message=f"'{field_name}': {exc}",
            recovery=["Give frames as an integer or a time as HH:MM:SS.ms, MM:SS or seconds"],
            context={"field": field_name, "value": value},
        ) from exc


def apply_operation(timeline: Timeline, op) -> Timeline:
    """Apply one typed operation record to a timeline."""
    fps = timeline.project.fps

    if isinstance(op, SplitOp):
        return split_at(timeline, op.clip, _frames(op.at, fps, "at"))

    if isinstance(op, TrimStartOp):
        return trim_start(timeline, op.clip, _frames(op.start, fps, "start"))

    if isinstance(op, TrimEndOp):
        return trim_end(timeline, op.clip, _frames(op.end, fps, "end"))

    if isinstance(op, ExtractOp):
        return extract_range(timeline, op.clip, _frames(op.start, fps, "start"), _frames(op.end, fps, "end"))

    if isinstance(op, RemoveSegmentOp):
        return remove_segment(timeline, op.clip, _frames(op.start, fps, "start"), _frames(op.end, fps, "end"))

    if isinstance(op, JoinOp):
        return join(timeline, op.clips)

    if isinstance(op, MergeOp):
        return merge_with_crossfade(timeline, op.clips, _frames(op.crossfade, fps, "crossfade"))

    if isinstance(op, ConcatOp):
        return concatenate(timeline, op.clips)

    if isinstance(op, MoveOp):
        return move_to(timeline, op.clip, _frames(op.start, fps, "start"), op.track)

    if isinstance(op, DuplicateOp):
        return duplicate_at(timeline, op.clip, _frames(op.start, fps, "start"))

    if isinstance(op, FadeOp):
        fade_in = _frames(op.fade_in, fps, "fade_in")
        fade_out = _frames(op.fade_out, fps, "fade_out")
        if fade_in:
            timeline = add_fade_in(timeline, op.clip, fade_in)
        if fade_out:
            timeline = add_fade_out(timeline, op.clip, fade_out)
        return timeline

    if isinstance(op, RemoveOp):
        return remove_clip(timeline, op.clip)

    if isinstance(op, ChangeTextOp):
        return change_text(timeline, op.old, op.new)

    if isinstance(op, TextColorOp):
        return change_text_color(timeline, op.color)

    if isinstance(op, AddTextOp):
        return add_text_overlay(timeline, op.text, op.placement)

    raise TimelineError(
        code=UNKNOWN_OPERATION,
        message=f"Unknown operation type: {type(op).__name__}",
        recovery=recovery_hints(UNKNOWN_OPERATION),
    )


def apply_operations(
    timeline: Timeline,
    operations: list,
    progress_callback: Optional[ProgressCallback] = None,
) -> Timeline:
    """Replay operations in order; each one sees the previous one's output.

    Args:
        timeline: Starting snapshot.
        operations: Typed operation records.
        progress_callback: Optional callable(step, total, op_name, status)
            called before ("running") and after ("done") each operation.

    Returns:
        The final timeline. The first failing operation raises and nothing
        after it runs.
    """
    total = len(operations)
    for idx, op in enumerate(operations):
        op_name = getattr(op, "op", type(op).__name__)
        if progress_callback:
            progress_callback(idx + 1, total, op_name, "running")

        try:
            timeline = apply_operation(timeline, op)
        except TimelineError as exc:
            exc.context.setdefault("operation_index", idx)
            exc.context.setdefault("operation", op_name)
            logger.warning("Operation %d (%s) failed: %s", idx, op_name, exc)
            raise
        logger.debug("Applied operation %d/%d: %s", idx + 1, total, op_name)

        if progress_callback:
            progress_callback(idx + 1, total, op_name, "done")
    return timeline


# ---------------------------------------------------------------------------
# Script execution
# ---------------------------------------------------------------------------

@dataclass
class ScriptResult:
    """Final timeline of an edit script plus its validation report."""
    timeline: Timeline
    validation: ValidationResult

    def to_dict(self) -> dict:
        return {
            "success": True,
            "timeline": self.timeline.to_dict(),
            "validation": self.validation.to_dict(),
        }


def execute_script(
    raw: Union[str, dict],
    progress_callback: Optional[ProgressCallback] = None,
    thresholds: Optional[Thresholds] = None,
) -> ScriptResult:
    """Parse an edit script, commit its timeline and replay its operations.

    The starting timeline must pass validation. The resulting timeline is
    validated again and returned with its report; overlaps introduced by
    moves or duplicates show up there as warnings.
    """
    script = parse_script(raw)
    timeline = commit_timeline(script.timeline, thresholds)
    timeline = apply_operations(timeline, script.operations, progress_callback)
    validation = validate_timeline(timeline, thresholds)
    logger.info(
        "Executed edit script: %d operation(s), %d frame(s), %d warning(s)",
        len(script.operations), timeline.duration_in_frames, len(validation.warnings),
    )
    return ScriptResult(timeline=timeline, validation=validation)


# ---------------------------------------------------------------------------
# Assistant response intake
# ---------------------------------------------------------------------------

_JSON_BLOCK_RE = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
_ANY_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)


def _is_timeline_document(data) -> bool:
    return isinstance(data, dict) and "timeline" in data


def extract_timeline_json(text: str) -> dict:
    """Pull a timeline document out of free-form assistant output.

    A ```json fenced block is tried first; failing that, the first balanced
    JSON object in the text that has a "timeline" key.

    Raises:
        TimelineError: NO_TIMELINE_IN_RESPONSE when nothing usable is found.
    """
    for match in _JSON_BLOCK_RE.finditer(text):
        try:
            data = json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            continue
        if _is_timeline_document(data):
            return data

    decoder = json.JSONDecoder()
    idx = text.find("{")
    while idx != -1:
        try:
            data, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            data = None
        if _is_timeline_document(data):
            return data
        idx = text.find("{", idx + 1)

    raise TimelineError(
        code=NO_TIMELINE_IN_RESPONSE,
        message="No timeline JSON found in the response",
        recovery=recovery_hints(NO_TIMELINE_IN_RESPONSE),
        context={"response_length": len(text)},
    )


def parse_timeline_response(text: str, source: str = "assistant") -> UntrustedTimeline:
    """Extract the assistant's timeline as an untrusted document."""
    return UntrustedTimeline(raw=extract_timeline_json(text), source=source)


def clean_response_text(text: str) -> str:
    """Strip fenced code blocks, leaving the assistant's prose."""
    return _ANY_BLOCK_RE.sub("", text).strip()
