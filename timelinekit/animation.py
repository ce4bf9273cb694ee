"""Effect evaluator — per-frame effect progress, opacity and slide offsets.

Everything here is a pure function of a clip (or timeline) and a frame
number, so a rendering driver can call it for any frame in any order.

Supported effects:
    fade-in, fade-out, slide-in (from-bottom, from-top, from-left, from-right)
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Optional

from timelinekit.config import Thresholds, load_thresholds
from timelinekit.models import Clip, Effect, Timeline, Track

# ---------------------------------------------------------------------------
# Slide directions → unit vector (screen coordinates, +y is down)
# ---------------------------------------------------------------------------

_SLIDE_VECTORS: dict[str, tuple[int, int]] = {
    "from-bottom": (0, 1),
    "from-top": (0, -1),
    "from-left": (-1, 0),
    "from-right": (1, 0),
}

DEFAULT_SLIDE_DIRECTION = "from-bottom"

# ---------------------------------------------------------------------------
# Anchor → CSS-style percent translation of the element box
# ---------------------------------------------------------------------------

_ANCHOR_TRANSLATE: dict[str, tuple[int, int]] = {
    "top-left": (0, 0),
    "top-center": (-50, 0),
    "top-right": (-100, 0),
    "center-left": (0, -50),
    "center": (-50, -50),
    "center-right": (-100, -50),
    "bottom-left": (0, -100),
    "bottom-center": (-50, -100),
    "bottom-right": (-100, -100),
}


@dataclass(frozen=True)
class EffectState:
    active: bool
    progress: float


@dataclass(frozen=True)
class ClipFrameState:
    """What the renderer needs to draw one clip on one frame."""
    track_id: str
    clip_id: str
    local_frame: int
    opacity: float
    offset_x: float
    offset_y: float
    anchor_x: int
    anchor_y: int

    def to_dict(self) -> dict:
        return asdict(self)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def local_frame(clip: Clip, global_frame: int) -> int:
    """Frame number relative to the clip's start."""
    return global_frame - clip.start_in_frames


def evaluate_effect(effect: Effect, frame: int, clip_duration: int) -> EffectState:
    """Evaluate one effect at a clip-local frame.

    Args:
        effect: The effect to evaluate.
        frame: Clip-local frame (see ``local_frame``).
        clip_duration: Owning clip's duration in frames.

    Returns:
        EffectState. fade-in and slide-in run over ``[0, d)``; fade-out runs
        over ``[clip_duration - d, clip_duration)``. Progress is clamped to
        [0, 1]. Unknown effects and non-positive durations are inactive with
        progress 1.
    """
    d = effect.duration_in_frames
    if d <= 0:
        return EffectState(active=False, progress=1.0)

    if effect.type in ("fade-in", "slide-in"):
        return EffectState(active=frame < d, progress=_clamp01(frame / d))

    if effect.type == "fade-out":
        window_start = clip_duration - d
        return EffectState(
            active=frame >= window_start,
            progress=_clamp01((frame - window_start) / d),
        )

    return EffectState(active=False, progress=1.0)


def clip_opacity(clip: Clip, global_frame: int) -> float:
    """Opacity from the clip's active fades; the most restrictive fade wins."""
    frame = local_frame(clip, global_frame)
    opacity = 1.0
    for effect in clip.effects:
        if effect.type not in ("fade-in", "fade-out"):
            continue
        state = evaluate_effect(effect, frame, clip.duration_in_frames)
        if not state.active:
            continue
        contribution = state.progress if effect.type == "fade-in" else 1.0 - state.progress
        opacity = min(opacity, contribution)
    return opacity


def slide_offset(clip: Clip, global_frame: int, distance: Optional[float] = None) -> tuple[float, float]:
    """Pixel offset (dx, dy) from the clip's active slide-in effects.

    The offset is ``(1 - progress) * distance`` toward the edge the clip
    slides in from, so it reaches zero when the slide completes.
    """
    if distance is None:
        distance = load_thresholds().slide_distance_px
    frame = local_frame(clip, global_frame)
    dx = dy = 0.0
    for effect in clip.effects:
        if effect.type != "slide-in":
            continue
        state = evaluate_effect(effect, frame, clip.duration_in_frames)
        if not state.active:
            continue
        vx, vy = _SLIDE_VECTORS.get(effect.direction or DEFAULT_SLIDE_DIRECTION,
                                    _SLIDE_VECTORS[DEFAULT_SLIDE_DIRECTION])
        remaining = (1.0 - state.progress) * distance
        dx += vx * remaining
        dy += vy * remaining
    return dx, dy


def anchor_translate(anchor: Optional[str]) -> tuple[int, int]:
    """Percent translation that puts the anchor point on the clip's position."""
    return _ANCHOR_TRANSLATE.get(anchor or "center", _ANCHOR_TRANSLATE["center"])


def active_clips_at_frame(timeline: Timeline, frame: int) -> list[tuple[Track, Clip]]:
    """Clips covering ``frame``, bottom track first."""
    return [
        (track, clip)
        for track, clip in timeline.all_clips()
        if clip.start_in_frames <= frame < clip.end_in_frames
    ]


def frame_state(timeline: Timeline, frame: int, thresholds: Optional[Thresholds] = None) -> list[ClipFrameState]:
    """Render state of every clip visible at ``frame``, in compositing order."""
    distance = (thresholds or load_thresholds()).slide_distance_px
    states = []
    for track, clip in active_clips_at_frame(timeline, frame):
        dx, dy = slide_offset(clip, frame, distance)
        ax, ay = anchor_translate(clip.position.anchor if clip.position else None)
        states.append(ClipFrameState(
            track_id=track.id,
            clip_id=clip.id,
            local_frame=local_frame(clip, frame),
            opacity=round(clip_opacity(clip, frame), 6),
            offset_x=dx,
            offset_y=dy,
            anchor_x=ax,
            anchor_y=ay,
        ))
    return states
