"""Text operations — bulk text edits and quick overlays across a timeline."""

from __future__ import annotations

from dataclasses import replace

from timelinekit.errors import TimelineError, INVALID_PARAMETER
from timelinekit.models import (
    Effect,
    Timeline,
    Track,
    create_text_clip,
    create_track,
    generate_id,
    next_track_id,
)
from timelinekit.operations import add_clip, add_track


# ---------------------------------------------------------------------------
# Overlay placement presets → start frame
# ---------------------------------------------------------------------------

_PLACEMENT_FRAMES: dict[str, int] = {
    "beginning": 0,
    "middle": 150,
    "end": 300,
}

# Fade-in applied to overlays added by add_text_overlay
OVERLAY_FADE_FRAMES = 15


def _rewrite_text_clips(timeline: Timeline, rewrite) -> Timeline:
    """Apply ``rewrite(clip)`` to each text clip; tracks with no change are shared."""
    tracks: list[Track] = []
    for track in timeline.tracks:
        clips = []
        changed = False
        for clip in track.clips:
            new = rewrite(clip) if clip.is_text else clip
            changed = changed or new is not clip
            clips.append(new)
        tracks.append(track.with_clips(clips) if changed else track)
    return replace(timeline, tracks=tuple(tracks))


def change_text(timeline: Timeline, old_text: str, new_text: str) -> Timeline:
    """Replace the text of every text clip whose text contains ``old_text``.

    Matching is a case-insensitive substring test; the whole text is replaced.
    """
    needle = old_text.lower()

    def rewrite(clip):
        if clip.text and needle in clip.text.lower():
            return replace(clip, text=new_text)
        return clip

    return _rewrite_text_clips(timeline, rewrite)


def change_text_color(timeline: Timeline, color: str) -> Timeline:
    """Set the colour on every styled text clip."""
    def rewrite(clip):
        if clip.style is None or clip.style.color == color:
            return clip
        return replace(clip, style=replace(clip.style, color=color))

    return _rewrite_text_clips(timeline, rewrite)


def add_text_overlay(timeline: Timeline, text: str, placement: str = "beginning") -> Timeline:
    """Add a default-styled text clip with a short fade-in.

    The clip goes on the first text track, which is created (``track-<n>``)
    when the timeline has none.

    Args:
        timeline: Source snapshot.
        text: Overlay text.
        placement: "beginning", "middle" or "end" (frames 0, 150, 300).

    Returns:
        New timeline holding the overlay.
    """
    if placement not in _PLACEMENT_FRAMES:
        raise TimelineError(
            code=INVALID_PARAMETER,
            message=f"Unknown overlay placement: {placement!r}",
            recovery=[f"Use one of: {', '.join(_PLACEMENT_FRAMES)}"],
            context={"placement": placement, "valid": list(_PLACEMENT_FRAMES)},
        )

    text_track = next((t for t in timeline.tracks if t.type == "text"), None)
    if text_track is None:
        text_track = create_track("text", track_id=next_track_id(timeline))
        timeline = add_track(timeline, text_track)

    clip = create_text_clip(text, start_in_frames=_PLACEMENT_FRAMES[placement])
    clip = replace(
        clip,
        id=generate_id("text", timeline.clip_ids()),
        effects=(Effect(type="fade-in", duration_in_frames=OVERLAY_FADE_FRAMES),),
    )
    return add_clip(timeline, text_track.id, clip)
