"""Timeline health check — validation plus statistics and advisory recommendations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from timelinekit.config import Thresholds, load_thresholds
from timelinekit.models import CLIP_TYPES, _clip_type_for_track, frames_to_seconds
from timelinekit.validation import (
    TimelineInput,
    ValidationResult,
    validate_timeline,
    _as_document,
    _is_whole,
)

# Warning code -> recommendation shown when that warning is present
_WARNING_ADVICE: dict[str, str] = {
    "OVERLAPPING_CLIPS": "Some clips overlap on the same video track; move or trim them so only one plays at a time",
    "LARGE_GAP": "There are long gaps between clips; close them or fill them with media",
    "SMALL_FONT_SIZE": "Some text uses a very small font; increase it so it stays readable",
    "EFFECT_LONGER_THAN_CLIP": "Some effects last longer than their clip; shorten them to fit",
}

# Warning code -> health check name
_CHECK_GROUPS: dict[str, tuple[str, ...]] = {
    "spacing": ("OVERLAPPING_CLIPS", "LARGE_GAP"),
    "text": ("INCOMPLETE_TEXT_STYLE", "SMALL_FONT_SIZE"),
    "effects": ("UNKNOWN_EFFECT_TYPE", "EFFECT_LONGER_THAN_CLIP", "INVALID_SLIDE_DIRECTION"),
    "media": ("LONG_MEDIA_CLIP",),
    "consistency": (
        "UNUSUAL_FPS", "UNKNOWN_TRACK_TYPE", "CLIP_TRACK_MISMATCH", "DUPLICATE_CLIP_ID_ACROSS_TRACKS",
    ),
}


@dataclass
class HealthReport:
    """Validation outcome, aggregate stats and advice for one timeline."""
    validation: ValidationResult
    stats: dict
    recommendations: list[str] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return self.validation.valid

    def checks(self) -> list[dict]:
        """Group findings into named pass/fail checks."""
        result = [{
            "name": "structure",
            "ok": self.validation.valid,
            "detail": {"errors": len(self.validation.errors)},
        }]
        for name, codes in _CHECK_GROUPS.items():
            found = [w for w in self.validation.warnings if w["code"] in codes]
            result.append({
                "name": name,
                "ok": not found,
                "detail": {"warnings": len(found), "codes": sorted({w["code"] for w in found})},
            })
        return result

    def to_dict(self) -> dict:
        return {
            "healthy": self.is_healthy,
            "checks": self.checks(),
            "validation": self.validation.to_dict(),
            "stats": self.stats,
            "recommendations": self.recommendations,
        }


def _collect_stats(doc: Optional[dict], validation: ValidationResult) -> dict:
    tracks = doc.get("timeline") if doc else None
    tracks = [t for t in tracks if isinstance(t, dict)] if isinstance(tracks, list) else []

    clips_by_type = {t: 0 for t in CLIP_TYPES}
    durations: list[int] = []
    clip_count = 0
    for track in tracks:
        clips = track.get("clips") or []
        if not isinstance(clips, list):
            continue
        for clip in clips:
            if not isinstance(clip, dict):
                continue
            clip_count += 1
            clip_type = clip.get("type") or _clip_type_for_track(track.get("type"))
            if isinstance(clip_type, str) and clip_type in clips_by_type:
                clips_by_type[clip_type] += 1
            duration = clip.get("durationInFrames")
            if _is_whole(duration) and duration > 0:
                durations.append(int(duration))

    total = validation.duration_in_frames or 0
    fps = validation.fps or 30
    return {
        "track_count": len(tracks),
        "clip_count": clip_count,
        "clips_by_type": clips_by_type,
        "total_duration_in_frames": total,
        "total_duration_seconds": round(frames_to_seconds(total, fps), 3),
        "average_clip_duration_in_frames": round(sum(durations) / len(durations), 2) if durations else 0.0,
    }


def _recommend(stats: dict, validation: ValidationResult, limits: Thresholds) -> list[str]:
    advice: list[str] = []
    by_type = stats["clips_by_type"]

    if not validation.valid:
        advice.append(f"Fix the {len(validation.errors)} blocking error(s) before using this timeline")

    if stats["clip_count"] == 0:
        advice.append("The timeline is empty; add media or text clips to get started")
    else:
        if by_type["text"] == stats["clip_count"]:
            advice.append("The timeline only has text; add background video or images")
        avg = stats["average_clip_duration_in_frames"]
        if 0 < avg < limits.short_clip_frames:
            advice.append(
                f"Clips average {avg:g} frames; consider longer clips "
                f"(at least {limits.short_clip_frames} frames) for better pacing"
            )

    present = {w["code"] for w in validation.warnings}
    for code, text in _WARNING_ADVICE.items():
        if code in present:
            advice.append(text)
    return advice


def health_check(raw: TimelineInput, thresholds: Optional[Thresholds] = None) -> HealthReport:
    """Validate a timeline and summarise it.

    The report is healthy when validation found no errors; warnings only
    feed the recommendations.
    """
    limits = thresholds or load_thresholds()
    validation = validate_timeline(raw, limits)
    stats = _collect_stats(_as_document(raw, ValidationResult()), validation)
    return HealthReport(
        validation=validation,
        stats=stats,
        recommendations=_recommend(stats, validation, limits),
    )
