"""timelinekit — frame-accurate editable video timelines.

Public API:
    Timeline, Track, Clip, Effect, ProjectSettings          — data model
    seconds_to_frames, frames_to_seconds                    — time conversion
    split_at, trim_start, trim_end, extract_range,
    remove_segment, join, merge_with_crossfade,
    concatenate, move_to, duplicate_at                      — clip algebra
    change_text, change_text_color, add_text_overlay        — text edits
    validate_timeline, commit_timeline                      — validation
    health_check                                            — health report
    evaluate_effect, clip_opacity, slide_offset, frame_state — effect evaluator
    parse_script, execute_script, parse_timeline_response    — edit scripts / assistant intake
    EditSession                                             — undo/redo
    TimelineError                                           — structured errors
"""

from timelinekit.models import (
    Clip,
    Effect,
    EditScript,
    Layout,
    MediaAsset,
    Position,
    ProjectSettings,
    TextStyle,
    Timeline,
    Track,
    UntrustedTimeline,
    create_media_clip,
    create_text_clip,
    create_track,
    frames_to_seconds,
    generate_id,
    next_track_id,
    parse_operation,
    seconds_to_frames,
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
    pack_sequential,
    add_track,
    remove_track,
    add_clip,
    remove_clip,
    add_effect,
    add_fade_in,
    add_fade_out,
)
from timelinekit.text_ops import change_text, change_text_color, add_text_overlay
from timelinekit.validation import ValidationResult, validate_timeline, commit_timeline
from timelinekit.doctor import HealthReport, health_check
from timelinekit.animation import (
    EffectState,
    ClipFrameState,
    evaluate_effect,
    clip_opacity,
    slide_offset,
    frame_state,
)
from timelinekit.engine import (
    ScriptResult,
    apply_operations,
    execute_script,
    parse_script,
    parse_timeline_response,
)
from timelinekit.session import EditSession
from timelinekit.errors import TimelineError

__version__ = "0.1.0"

__all__ = [
    # Data model
    "Clip",
    "Effect",
    "EditScript",
    "Layout",
    "MediaAsset",
    "Position",
    "ProjectSettings",
    "TextStyle",
    "Timeline",
    "Track",
    "UntrustedTimeline",
    "create_media_clip",
    "create_text_clip",
    "create_track",
    "generate_id",
    "next_track_id",
    "parse_operation",
    # Time conversion
    "seconds_to_frames",
    "frames_to_seconds",
    # Clip algebra
    "split_at",
    "trim_start",
    "trim_end",
    "extract_range",
    "remove_segment",
    "join",
    "merge_with_crossfade",
    "concatenate",
    "move_to",
    "duplicate_at",
    "pack_sequential",
    "add_track",
    "remove_track",
    "add_clip",
    "remove_clip",
    "add_effect",
    "add_fade_in",
    "add_fade_out",
    # Text edits
    "change_text",
    "change_text_color",
    "add_text_overlay",
    # Validation
    "ValidationResult",
    "validate_timeline",
    "commit_timeline",
    "HealthReport",
    "health_check",
    # Effect evaluator
    "EffectState",
    "ClipFrameState",
    "evaluate_effect",
    "clip_opacity",
    "slide_offset",
    "frame_state",
    # Edit scripts
    "ScriptResult",
    "apply_operations",
    "execute_script",
    "parse_script",
    "parse_timeline_response",
    # Session
    "EditSession",
    "TimelineError",
]
