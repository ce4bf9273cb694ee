"""Structured error handling with error codes and recovery suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

# Not found
CLIP_NOT_FOUND = "CLIP_NOT_FOUND"
TRACK_NOT_FOUND = "TRACK_NOT_FOUND"

# Range / precondition
CUT_OUTSIDE_CLIP = "CUT_OUTSIDE_CLIP"
WOULD_ELIMINATE_CLIP = "WOULD_ELIMINATE_CLIP"
INVALID_RANGE = "INVALID_RANGE"
NEGATIVE_POSITION = "NEGATIVE_POSITION"
INVALID_PARAMETER = "INVALID_PARAMETER"

# Compatibility
TOO_FEW_CLIPS = "TOO_FEW_CLIPS"
CLIPS_ON_DIFFERENT_TRACKS = "CLIPS_ON_DIFFERENT_TRACKS"
INCOMPATIBLE_CLIP = "INCOMPATIBLE_CLIP"

# Input
INVALID_JSON = "INVALID_JSON"
MISSING_FIELD = "MISSING_FIELD"
INVALID_CLIP_TYPE = "INVALID_CLIP_TYPE"
UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
DUPLICATE_TRACK_ID = "DUPLICATE_TRACK_ID"
DUPLICATE_CLIP_ID = "DUPLICATE_CLIP_ID"
NO_TIMELINE_IN_RESPONSE = "NO_TIMELINE_IN_RESPONSE"
INVALID_CONFIG = "INVALID_CONFIG"

# Structural validation
INVALID_TIMELINE = "INVALID_TIMELINE"

# Session
NOTHING_TO_UNDO = "NOTHING_TO_UNDO"
NOTHING_TO_REDO = "NOTHING_TO_REDO"

# Exit codes for CLI
EXIT_SUCCESS = 0
EXIT_VALIDATION = 1
EXIT_EXECUTION = 2
EXIT_SYSTEM = 3


# ---------------------------------------------------------------------------
# TimelineError exception
# ---------------------------------------------------------------------------

@dataclass
class TimelineError(Exception):
    """Structured error with code, message, recovery hints, and context."""
    code: str
    message: str
    recovery: list[str] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "recovery": self.recovery,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Recovery hint factory
# ---------------------------------------------------------------------------

_RECOVERY_MAP: dict[str, list[str]] = {
    CLIP_NOT_FOUND: [
        "Check the clip id for typos",
        "Clip ids change after split, join, merge and concatenate — re-read the timeline",
    ],
    TRACK_NOT_FOUND: [
        "Check the track id for typos",
        "Add the track first with add_track",
    ],
    CUT_OUTSIDE_CLIP: [
        "The cut frame must lie strictly between the clip's start and end frames",
    ],
    WOULD_ELIMINATE_CLIP: [
        "The edit would leave the clip with zero or negative duration",
        "Use remove_clip to delete a clip entirely",
    ],
    INVALID_RANGE: [
        "Ranges are [start, end) in timeline frames and must lie within the clip",
        "Ensure range start is before range end",
    ],
    NEGATIVE_POSITION: [
        "Timeline positions start at frame 0",
    ],
    TOO_FEW_CLIPS: [
        "Pass at least two clip ids",
    ],
    CLIPS_ON_DIFFERENT_TRACKS: [
        "Move the clips onto one track first with move_to",
    ],
    INCOMPATIBLE_CLIP: [
        "Text clips need non-empty text; media clips need an assetUrl or assetId",
        "merge_with_crossfade only accepts media clips on video tracks",
    ],
    INVALID_JSON: [
        "Check JSON syntax — missing commas, brackets, or quotes",
    ],
    UNKNOWN_OPERATION: [
        "Use one of: split, trim_start, trim_end, extract, remove_segment, join, merge, "
        "concat, move, duplicate, fade, remove, change_text, text_color, add_text",
        "Run 'timelinekit capabilities' to see all supported operations",
    ],
    INVALID_CLIP_TYPE: [
        "Clip type must be one of: video, audio, image, text",
    ],
    DUPLICATE_TRACK_ID: [
        "Use next_track_id() to pick a free track id",
    ],
    DUPLICATE_CLIP_ID: [
        "Use generate_id() to mint a fresh clip id",
    ],
    NO_TIMELINE_IN_RESPONSE: [
        "The response must contain the full timeline in a ```json fenced block",
        "The JSON object needs top-level 'project' and 'timeline' keys",
    ],
    INVALID_TIMELINE: [
        "Run 'timelinekit validate' to list the blocking errors",
        "Fix or drop the offending clips before committing the timeline",
    ],
    INVALID_CONFIG: [
        "TIMELINEKIT_* threshold variables must be integers",
    ],
    NOTHING_TO_UNDO: [
        "No edits have been applied in this session",
    ],
    NOTHING_TO_REDO: [
        "Redo is only available directly after an undo",
    ],
}


def recovery_hints(code: str, context: dict[str, Any] | None = None) -> list[str]:
    """Return recovery suggestions for a given error code."""
    hints = list(_RECOVERY_MAP.get(code, []))
    context = context or {}

    # Add context-specific hints
    if code in (CUT_OUTSIDE_CLIP, INVALID_RANGE) and "clip_start" in context and "clip_end" in context:
        hints.insert(0, f"Clip spans frames [{context['clip_start']}, {context['clip_end']})")

    if code == CLIP_NOT_FOUND and "clip_id" in context:
        hints.insert(0, f"No clip with id {context['clip_id']!r} in any track")

    if code == TRACK_NOT_FOUND and "available" in context:
        hints.insert(0, f"Existing tracks: {', '.join(context['available']) or '(none)'}")

    return hints
