"""Timeline validation — structural errors, advisory warnings, and the commit boundary."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

from timelinekit.config import Thresholds, load_thresholds
from timelinekit.errors import TimelineError, INVALID_TIMELINE, recovery_hints
from timelinekit.models import (
    CLIP_TYPES,
    EFFECT_TYPES,
    MEDIA_CLIP_TYPES,
    SLIDE_DIRECTIONS,
    TRACK_TYPES,
    Timeline,
    UntrustedTimeline,
    _clip_type_for_track,
    frames_to_seconds,
    format_time,
)

logger = logging.getLogger(__name__)

# Track kinds whose clips may not overlap each other
EXCLUSIVE_TRACK_TYPES = frozenset({"video", "image"})

# Style keys a text clip is expected to carry
TEXT_STYLE_KEYS = ("fontFamily", "fontSize", "color")


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult:
    """Collects errors and warnings from a timeline validation."""

    def __init__(self) -> None:
        self.errors: list[dict] = []
        self.warnings: list[dict] = []
        self.duration_in_frames: Optional[int] = None
        self.fps: Optional[int] = None

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, code: str, message: str, **context) -> None:
        self.errors.append({"code": code, "message": message, **context})

    def add_warning(self, code: str, message: str, **context) -> None:
        self.warnings.append({"code": code, "message": message, **context})

    def codes(self) -> set[str]:
        """Codes of every error and warning collected."""
        return {e["code"] for e in self.errors} | {w["code"] for w in self.warnings}

    def to_dict(self) -> dict:
        d = {
            "valid": self.valid,
            "errors": self.errors,
            "warnings": self.warnings,
        }
        if self.duration_in_frames is not None:
            d["duration_in_frames"] = self.duration_in_frames
            if self.fps:
                d["duration_formatted"] = format_time(frames_to_seconds(self.duration_in_frames, self.fps))
        return d


# ---------------------------------------------------------------------------
# Input normalisation
# ---------------------------------------------------------------------------

TimelineInput = Union[str, dict, Timeline, UntrustedTimeline]


def _as_document(raw: TimelineInput, result: ValidationResult) -> Optional[dict]:
    """Reduce any accepted input to the canonical dict, recording parse failures."""
    if isinstance(raw, Timeline):
        return raw.to_dict()
    if isinstance(raw, UntrustedTimeline):
        raw = raw.raw
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            result.add_error("INVALID_JSON", f"Invalid JSON: {exc}")
            return None
    if not isinstance(raw, dict):
        result.add_error(
            "INVALID_JSON",
            f"Timeline document must be an object, got {type(raw).__name__}",
        )
        return None
    return raw


def _is_whole(value: Any) -> bool:
    """True for ints and integral floats (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_name(value: Any) -> bool:
    """True for a non-blank string id."""
    return isinstance(value, str) and bool(value.strip())


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

def validate_timeline(raw: TimelineInput, thresholds: Optional[Thresholds] = None) -> ValidationResult:
    """Validate a timeline document without building it.

    Checks:
        - project settings are present and well-formed
        - track and clip ids are present and unique
        - clip timing is whole, non-negative and non-empty
        - text clips carry text, media clips carry an asset reference
        - effects are typed and have a positive duration

    and warns about unusual fps, incomplete text styles, small fonts,
    overlaps on exclusive tracks, large gaps, unknown effects, effects longer
    than their clip, and very long media clips.

    Args:
        raw: JSON string, canonical dict, Timeline or UntrustedTimeline.
        thresholds: Limits to check against; defaults to ``load_thresholds()``.

    Returns:
        ValidationResult with errors, warnings and the derived duration.
    """
    limits = thresholds or load_thresholds()
    result = ValidationResult()

    doc = _as_document(raw, result)
    if doc is None:
        return result

    _validate_project(doc.get("project"), result, limits)

    tracks = doc.get("timeline")
    if not isinstance(tracks, list):
        result.add_error("MISSING_TRACKS", "Timeline is missing its track list ('timeline' array)")
        return result

    seen_tracks: set[str] = set()
    clip_homes: dict[str, str] = {}
    extent = 0
    for t_idx, track in enumerate(tracks):
        extent = max(extent, _validate_track(track, t_idx, seen_tracks, clip_homes, result, limits))

    result.duration_in_frames = extent
    return result


def _validate_project(project: Any, result: ValidationResult, limits: Thresholds) -> None:
    if not isinstance(project, dict):
        result.add_error("MISSING_PROJECT", "Timeline is missing project settings")
        return

    for key in ("width", "height", "fps"):
        value = project.get(key)
        if not _is_whole(value) or value <= 0:
            result.add_error(
                "INVALID_PROJECT_SETTING",
                f"project.{key} must be a positive integer, got {value!r}",
                field=key,
                value=value,
            )

    fps = project.get("fps")
    if _is_number(fps):
        if fps <= 0 or fps > limits.max_fps:
            result.add_warning(
                "UNUSUAL_FPS",
                f"Unusual frame rate {fps} (expected 1-{limits.max_fps})",
                fps=fps,
            )
        elif _is_whole(fps):
            result.fps = int(fps)


def _validate_track(
    track: Any,
    t_idx: int,
    seen_tracks: set[str],
    clip_homes: dict[str, str],
    result: ValidationResult,
    limits: Thresholds,
) -> int:
    """Validate one track and its clips; returns the furthest valid clip end."""
    if not isinstance(track, dict):
        result.add_error("INVALID_TRACK", f"Track {t_idx}: must be an object", track_index=t_idx)
        return 0

    track_id = track.get("id")
    if not _is_name(track_id):
        track_id = None
    label = f"Track {track_id!r}" if track_id else f"Track {t_idx}"
    if track_id is None:
        result.add_error("MISSING_TRACK_ID", f"Track {t_idx}: missing id", track_index=t_idx)
    elif track_id in seen_tracks:
        result.add_error("DUPLICATE_TRACK_ID", f"Duplicate track id: {track_id!r}", track_id=track_id)
    else:
        seen_tracks.add(track_id)

    track_type = track.get("type")
    if not track_type:
        result.add_error("MISSING_TRACK_TYPE", f"{label}: missing type", track_index=t_idx)
    elif not isinstance(track_type, str):
        result.add_error("INVALID_TRACK", f"{label}: type must be a string, got {track_type!r}",
                         track_id=track_id)
        track_type = None
    elif track_type not in TRACK_TYPES:
        result.add_warning(
            "UNKNOWN_TRACK_TYPE",
            f"{label}: unknown type {track_type!r}, clips default to video",
            track_id=track_id,
            type=track_type,
        )

    clips = track.get("clips", [])
    if not isinstance(clips, list):
        result.add_error("INVALID_TRACK", f"{label}: 'clips' must be an array", track_id=track_id)
        return 0

    seen_clips: set[str] = set()
    spans: list[tuple[int, int, str]] = []
    for c_idx, clip in enumerate(clips):
        span = _validate_clip(clip, c_idx, label, track_id, track_type, seen_clips, clip_homes, result, limits)
        if span is not None:
            spans.append(span)

    _check_spacing(spans, label, track_id, track_type, result, limits)
    return max((end for _, end, _ in spans), default=0)


def _validate_clip(
    clip: Any,
    c_idx: int,
    label: str,
    track_id: Optional[str],
    track_type: Optional[str],
    seen_clips: set[str],
    clip_homes: dict[str, str],
    result: ValidationResult,
    limits: Thresholds,
) -> Optional[tuple[int, int, str]]:
    """Validate one clip; returns (start, end, id) when its timing is usable."""
    if not isinstance(clip, dict):
        result.add_error("INVALID_CLIP", f"{label} clip {c_idx}: must be an object", track_id=track_id)
        return None

    clip_id = clip.get("id")
    if not _is_name(clip_id):
        clip_id = None
    where = f"{label} clip {clip_id!r}" if clip_id else f"{label} clip {c_idx}"
    if clip_id is None:
        result.add_error("MISSING_CLIP_ID", f"{where}: missing id", track_id=track_id, clip_index=c_idx)
    elif clip_id in seen_clips:
        result.add_error(
            "DUPLICATE_CLIP_ID",
            f"{label}: duplicate clip id {clip_id!r}",
            track_id=track_id,
            clip_id=clip_id,
        )
    else:
        seen_clips.add(clip_id)
        if clip_id in clip_homes:
            result.add_warning(
                "DUPLICATE_CLIP_ID_ACROSS_TRACKS",
                f"Clip id {clip_id!r} is used on tracks {clip_homes[clip_id]!r} and {track_id!r}",
                clip_id=clip_id,
            )
        else:
            clip_homes[clip_id] = track_id

    start = clip.get("startInFrames")
    duration = clip.get("durationInFrames")
    timing_ok = True
    if not _is_whole(start):
        result.add_error("INVALID_START", f"{where}: startInFrames must be an integer, got {start!r}",
                         clip_id=clip_id)
        timing_ok = False
    elif start < 0:
        result.add_error("NEGATIVE_START", f"{where}: startInFrames must be >= 0, got {start}",
                         clip_id=clip_id)
        timing_ok = False
    if not _is_whole(duration):
        result.add_error("INVALID_DURATION", f"{where}: durationInFrames must be an integer, got {duration!r}",
                         clip_id=clip_id)
        timing_ok = False
    elif duration <= 0:
        result.add_error("NON_POSITIVE_DURATION", f"{where}: durationInFrames must be > 0, got {duration}",
                         clip_id=clip_id)
        timing_ok = False

    clip_type = clip.get("type") or _clip_type_for_track(track_type)
    if not isinstance(clip_type, str) or clip_type not in CLIP_TYPES:
        result.add_error("INVALID_CLIP_TYPE", f"{where}: unknown clip type {clip_type!r}",
                         clip_id=clip_id, type=clip_type)
    elif clip_type == "text":
        _validate_text_clip(clip, where, clip_id, result, limits)
    else:
        _validate_media_clip(clip, where, clip_id, duration if timing_ok else None, result, limits)

    _validate_clip_fields(clip, where, clip_id, result)

    if track_type in TRACK_TYPES and clip_type in CLIP_TYPES:
        if (clip_type == "text") != (track_type == "text"):
            result.add_warning(
                "CLIP_TRACK_MISMATCH",
                f"{where}: {clip_type} clip on a {track_type} track",
                clip_id=clip_id,
                track_id=track_id,
            )

    _validate_effects(clip.get("effects"), where, clip_id, duration if timing_ok else None, result)

    if not timing_ok:
        return None
    return int(start), int(start) + int(duration), clip_id or f"#{c_idx}"


# Optional clip fields and the JSON kinds they must have when present
_OBJECT_FIELDS = ("style", "position", "layout")
_WHOLE_FIELDS = ("sourceIn", "sourceOut")
_NUMBER_FIELDS = ("volume", "scale", "rotation", "opacity")


def _validate_clip_fields(clip: dict, where: str, clip_id, result: ValidationResult) -> None:
    """Report optional fields whose JSON kind the model cannot build from."""
    for key in _OBJECT_FIELDS:
        value = clip.get(key)
        if value is not None and not isinstance(value, dict):
            result.add_error("INVALID_CLIP_FIELD", f"{where}: {key} must be an object, got {value!r}",
                             clip_id=clip_id, field=key)
    for key in _WHOLE_FIELDS:
        value = clip.get(key)
        if value is not None and (not _is_whole(value) or value < 0):
            result.add_error("INVALID_CLIP_FIELD", f"{where}: {key} must be a non-negative integer, got {value!r}",
                             clip_id=clip_id, field=key)
    for key in _NUMBER_FIELDS:
        value = clip.get(key)
        if value is not None and not _is_number(value):
            result.add_error("INVALID_CLIP_FIELD", f"{where}: {key} must be a number, got {value!r}",
                             clip_id=clip_id, field=key)
    position = clip.get("position")
    if isinstance(position, dict) and position.get("anchor") is not None \
            and not isinstance(position["anchor"], str):
        result.add_error("INVALID_CLIP_FIELD", f"{where}: position.anchor must be a string",
                         clip_id=clip_id, field="position.anchor")


def _validate_text_clip(clip: dict, where: str, clip_id, result: ValidationResult, limits: Thresholds) -> None:
    text = clip.get("text")
    if not isinstance(text, str) or not text.strip():
        result.add_error("MISSING_TEXT", f"{where}: text clip has no text", clip_id=clip_id)

    style = clip.get("style")
    if style is not None and not isinstance(style, dict):
        return
    if not style:
        result.add_warning(
            "INCOMPLETE_TEXT_STYLE",
            f"{where}: text clip has no style, renderer defaults will apply",
            clip_id=clip_id,
            missing=list(TEXT_STYLE_KEYS),
        )
        return
    missing = [k for k in TEXT_STYLE_KEYS if k not in style]
    if missing:
        result.add_warning(
            "INCOMPLETE_TEXT_STYLE",
            f"{where}: style is missing {', '.join(missing)}",
            clip_id=clip_id,
            missing=missing,
        )
    font_size = style.get("fontSize")
    if _is_number(font_size) and font_size < limits.min_font_size:
        result.add_warning(
            "SMALL_FONT_SIZE",
            f"{where}: font size {font_size} is below {limits.min_font_size} and may be unreadable",
            clip_id=clip_id,
            font_size=font_size,
        )


def _validate_media_clip(
    clip: dict, where: str, clip_id, duration, result: ValidationResult, limits: Thresholds,
) -> None:
    if not (clip.get("assetUrl") or clip.get("assetId")):
        result.add_error("MISSING_ASSET", f"{where}: media clip has no assetUrl or assetId", clip_id=clip_id)
    if duration is not None and duration > limits.long_clip_frames:
        result.add_warning(
            "LONG_MEDIA_CLIP",
            f"{where}: {int(duration)} frames is unusually long (> {limits.long_clip_frames})",
            clip_id=clip_id,
            duration_in_frames=int(duration),
        )


def _validate_effects(effects: Any, where: str, clip_id, duration, result: ValidationResult) -> None:
    if effects is None:
        return
    if not isinstance(effects, list):
        result.add_error("MISSING_EFFECT_TYPE", f"{where}: 'effects' must be an array", clip_id=clip_id)
        return

    for e_idx, effect in enumerate(effects):
        if not isinstance(effect, dict) or not effect.get("type"):
            result.add_error("MISSING_EFFECT_TYPE", f"{where} effect {e_idx}: missing type",
                             clip_id=clip_id, effect_index=e_idx)
            continue
        effect_type = effect["type"]
        if effect_type not in EFFECT_TYPES:
            result.add_warning(
                "UNKNOWN_EFFECT_TYPE",
                f"{where} effect {e_idx}: unknown type {effect_type!r}, it will be ignored",
                clip_id=clip_id,
                type=effect_type,
            )

        effect_duration = effect.get("durationInFrames")
        if not _is_whole(effect_duration) or effect_duration <= 0:
            result.add_error(
                "INVALID_EFFECT_DURATION",
                f"{where} effect {e_idx}: durationInFrames must be a positive integer, got {effect_duration!r}",
                clip_id=clip_id,
                effect_index=e_idx,
            )
        elif duration is not None and effect_duration > duration:
            result.add_warning(
                "EFFECT_LONGER_THAN_CLIP",
                f"{where} effect {e_idx}: {effect_type} lasts {int(effect_duration)} frames "
                f"but the clip lasts {int(duration)}",
                clip_id=clip_id,
                effect_index=e_idx,
            )

        direction = effect.get("direction")
        if direction is not None and not isinstance(direction, str):
            result.add_error(
                "INVALID_CLIP_FIELD",
                f"{where} effect {e_idx}: direction must be a string, got {direction!r}",
                clip_id=clip_id,
                field="direction",
            )
        elif effect_type == "slide-in" and direction is not None and direction not in SLIDE_DIRECTIONS:
            result.add_warning(
                "INVALID_SLIDE_DIRECTION",
                f"{where} effect {e_idx}: unknown slide direction {direction!r}, from-bottom will be used",
                clip_id=clip_id,
                direction=direction,
            )


def _check_spacing(
    spans: list[tuple[int, int, str]],
    label: str,
    track_id: Optional[str],
    track_type: Optional[str],
    result: ValidationResult,
    limits: Thresholds,
) -> None:
    """Flag overlaps on exclusive tracks and large gaps between sequential clips."""
    ordered = sorted(spans, key=lambda s: s[0])
    running_end: Optional[int] = None
    last_id: Optional[str] = None
    for start, end, clip_id in ordered:
        if running_end is not None:
            if start < running_end and track_type in EXCLUSIVE_TRACK_TYPES:
                result.add_warning(
                    "OVERLAPPING_CLIPS",
                    f"{label}: clip {clip_id!r} starts at {start}, before {last_id!r} ends at {running_end}",
                    track_id=track_id,
                    clips=[last_id, clip_id],
                )
            gap = start - running_end
            if gap > limits.max_gap_frames:
                result.add_warning(
                    "LARGE_GAP",
                    f"{label}: {gap}-frame gap between {last_id!r} and {clip_id!r}",
                    track_id=track_id,
                    gap_in_frames=gap,
                    clips=[last_id, clip_id],
                )
        if running_end is None or end > running_end:
            running_end = end
            last_id = clip_id


# ---------------------------------------------------------------------------
# Commit boundary
# ---------------------------------------------------------------------------

def commit_timeline(untrusted: UntrustedTimeline, thresholds: Optional[Thresholds] = None) -> Timeline:
    """Turn an untrusted timeline into a committed one, or refuse.

    Raises:
        TimelineError: INVALID_TIMELINE when the validator reports any error,
            or when the document still cannot be built into a Timeline.
    """
    result = validate_timeline(untrusted, thresholds)
    if not result.valid:
        logger.warning(
            "Rejected timeline from %s: %d error(s), first: %s",
            untrusted.source, len(result.errors), result.errors[0]["message"],
        )
        raise TimelineError(
            code=INVALID_TIMELINE,
            message=f"Timeline from {untrusted.source} failed validation with {len(result.errors)} error(s)",
            recovery=recovery_hints(INVALID_TIMELINE),
            context={"errors": result.errors, "warnings": result.warnings, "source": untrusted.source},
        )
    try:
        timeline = Timeline.from_dict(untrusted.raw)
    except (TimelineError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Rejected timeline from %s: %s", untrusted.source, exc)
        raise TimelineError(
            code=INVALID_TIMELINE,
            message=f"Timeline from {untrusted.source} could not be built: {exc}",
            recovery=recovery_hints(INVALID_TIMELINE),
            context={"errors": [], "warnings": result.warnings, "source": untrusted.source,
                     "build_error": str(exc)},
        ) from exc
    logger.info(
        "Committed timeline from %s: %d track(s), %d frame(s), %d warning(s)",
        untrusted.source, len(timeline.tracks), timeline.duration_in_frames, len(result.warnings),
    )
    return timeline
