"""Clip algebra — split, trim, extract, remove-segment, join, merge, concat, move, duplicate.

Every operation takes a Timeline and returns a new Timeline; the input is
never modified. Tracks and clips an operation does not touch are shared with
the input snapshot. Precondition failures raise TimelineError.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional, Sequence

from timelinekit.errors import (
    TimelineError,
    CLIP_NOT_FOUND,
    TRACK_NOT_FOUND,
    CUT_OUTSIDE_CLIP,
    WOULD_ELIMINATE_CLIP,
    INVALID_RANGE,
    NEGATIVE_POSITION,
    INVALID_PARAMETER,
    TOO_FEW_CLIPS,
    CLIPS_ON_DIFFERENT_TRACKS,
    INCOMPATIBLE_CLIP,
    DUPLICATE_TRACK_ID,
    DUPLICATE_CLIP_ID,
    recovery_hints,
)
from timelinekit.models import Clip, Effect, Timeline, Track, generate_id

# Fade windows appended by merge_with_crossfade
MERGE_FADE_FRAMES = 15


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------

def _locate(timeline: Timeline, clip_id: str) -> tuple[Track, int, Clip]:
    """Find a clip on any track or raise CLIP_NOT_FOUND."""
    found = timeline.find_clip(clip_id)
    if found is None:
        ctx = {"clip_id": clip_id}
        raise TimelineError(
            code=CLIP_NOT_FOUND,
            message=f"Clip not found: {clip_id!r}",
            recovery=recovery_hints(CLIP_NOT_FOUND, ctx),
            context=ctx,
        )
    return found


def _require_track(timeline: Timeline, track_id: str) -> Track:
    track = timeline.find_track(track_id)
    if track is None:
        ctx = {"track_id": track_id, "available": timeline.track_ids()}
        raise TimelineError(
            code=TRACK_NOT_FOUND,
            message=f"Track not found: {track_id!r}",
            recovery=recovery_hints(TRACK_NOT_FOUND, ctx),
            context=ctx,
        )
    return track


def _range_error(code: str, message: str, clip: Clip, **extra) -> TimelineError:
    ctx = {
        "clip_id": clip.id,
        "clip_start": clip.start_in_frames,
        "clip_end": clip.end_in_frames,
        **extra,
    }
    return TimelineError(code=code, message=message, recovery=recovery_hints(code, ctx), context=ctx)


def _check_position(frame: int, what: str) -> None:
    if frame < 0:
        raise TimelineError(
            code=NEGATIVE_POSITION,
            message=f"{what} must be >= 0, got {frame}",
            recovery=recovery_hints(NEGATIVE_POSITION),
            context={"frame": frame},
        )


# ---------------------------------------------------------------------------
# Track rebuilding helpers
# ---------------------------------------------------------------------------

def _replace_at(track: Track, index: int, new_clips: Iterable[Clip]) -> Track:
    """Swap the clip at ``index`` for zero or more clips, in place."""
    clips = track.clips[:index] + tuple(new_clips) + track.clips[index + 1:]
    return track.with_clips(clips)


def _collapse(track: Track, remove_ids: set[str], anchor_id: str, new_clip: Clip) -> Track:
    """Drop ``remove_ids`` from a track, putting ``new_clip`` where ``anchor_id`` was."""
    clips: list[Clip] = []
    for clip in track.clips:
        if clip.id == anchor_id:
            clips.append(new_clip)
        elif clip.id not in remove_ids:
            clips.append(clip)
    return track.with_clips(clips)


def _retime(clip: Clip, start: int, end: int, **changes) -> Clip:
    """Move a clip's edges to [start, end), keeping its source window aligned."""
    left_delta = start - clip.start_in_frames
    right_delta = end - clip.end_in_frames
    if clip.source_in is not None and left_delta:
        changes.setdefault("source_in", max(0, clip.source_in + left_delta))
    if clip.source_out is not None and right_delta:
        changes.setdefault("source_out", clip.source_out + right_delta)
    return replace(clip, start_in_frames=start, duration_in_frames=end - start, **changes)


def _by_start(clips: Iterable[Clip]) -> list[Clip]:
    """Sort by start frame; ties keep discovery order."""
    return sorted(clips, key=lambda c: c.start_in_frames)


# ---------------------------------------------------------------------------
# Split / trim / extract / remove-segment
# ---------------------------------------------------------------------------

def split_at(timeline: Timeline, clip_id: str, at_frame: int) -> Timeline:
    """Cut a clip in two at a timeline frame.

    Args:
        timeline: Source snapshot.
        clip_id: Clip to cut.
        at_frame: Cut position; must satisfy start < at_frame < end.

    Returns:
        New timeline where the clip is replaced, at the same track position,
        by two fresh-id clips spanning [start, at_frame) and [at_frame, end).
    """
    track, idx, clip = _locate(timeline, clip_id)
    if not clip.start_in_frames < at_frame < clip.end_in_frames:
        raise _range_error(
            CUT_OUTSIDE_CLIP,
            f"Cut position {at_frame} is outside clip {clip_id!r} "
            f"[{clip.start_in_frames}, {clip.end_in_frames})",
            clip,
            at_frame=at_frame,
        )

    taken = timeline.clip_ids()
    first_id = generate_id(clip.type, taken)
    second_id = generate_id(clip.type, taken | {first_id})
    first = _retime(clip, clip.start_in_frames, at_frame, id=first_id)
    second = _retime(clip, at_frame, clip.end_in_frames, id=second_id)
    return timeline.with_track(_replace_at(track, idx, (first, second)))


def trim_start(timeline: Timeline, clip_id: str, new_start: int) -> Timeline:
    """Move a clip's start edge, keeping its end fixed."""
    track, idx, clip = _locate(timeline, clip_id)
    _check_position(new_start, "New start")
    if new_start >= clip.end_in_frames:
        raise _range_error(
            WOULD_ELIMINATE_CLIP,
            f"Trimming start of {clip_id!r} to {new_start} would eliminate the clip "
            f"(it ends at {clip.end_in_frames})",
            clip,
            new_start=new_start,
        )
    trimmed = _retime(clip, new_start, clip.end_in_frames)
    return timeline.with_track(_replace_at(track, idx, (trimmed,)))


def trim_end(timeline: Timeline, clip_id: str, new_end: int) -> Timeline:
    """Move a clip's end edge, keeping its start fixed."""
    track, idx, clip = _locate(timeline, clip_id)
    if new_end <= clip.start_in_frames:
        raise _range_error(
            WOULD_ELIMINATE_CLIP,
            f"Trimming end of {clip_id!r} to {new_end} would eliminate the clip "
            f"(it starts at {clip.start_in_frames})",
            clip,
            new_end=new_end,
        )
    trimmed = _retime(clip, clip.start_in_frames, new_end)
    return timeline.with_track(_replace_at(track, idx, (trimmed,)))


def extract_range(timeline: Timeline, clip_id: str, range_start: int, range_end: int) -> Timeline:
    """Keep only [range_start, range_end) of a clip (trim-start plus trim-end)."""
    track, idx, clip = _locate(timeline, clip_id)
    if not clip.start_in_frames <= range_start < range_end <= clip.end_in_frames:
        raise _range_error(
            INVALID_RANGE,
            f"Invalid range [{range_start}, {range_end}) for clip {clip_id!r} "
            f"[{clip.start_in_frames}, {clip.end_in_frames})",
            clip,
            range_start=range_start,
            range_end=range_end,
        )
    kept = _retime(clip, range_start, range_end)
    return timeline.with_track(_replace_at(track, idx, (kept,)))


def remove_segment(timeline: Timeline, clip_id: str, remove_start: int, remove_end: int) -> Timeline:
    """Cut [remove_start, remove_end) out of a clip.

    A segment touching the clip's start degrades to ``trim_start`` and one
    touching its end degrades to ``trim_end``. Otherwise the clip is replaced
    by two fresh-id clips either side of the hole.
    """
    track, idx, clip = _locate(timeline, clip_id)
    start, end = clip.start_in_frames, clip.end_in_frames
    if not start <= remove_start < remove_end <= end:
        raise _range_error(
            INVALID_RANGE,
            f"Segment [{remove_start}, {remove_end}) does not lie within clip {clip_id!r} [{start}, {end})",
            clip,
            remove_start=remove_start,
            remove_end=remove_end,
        )
    if remove_start == start and remove_end == end:
        raise _range_error(
            WOULD_ELIMINATE_CLIP,
            f"Removing [{remove_start}, {remove_end}) would eliminate clip {clip_id!r}",
            clip,
            remove_start=remove_start,
            remove_end=remove_end,
        )
    if remove_start == start:
        return trim_start(timeline, clip_id, remove_end)
    if remove_end == end:
        return trim_end(timeline, clip_id, remove_start)

    taken = timeline.clip_ids()
    before_id = generate_id(clip.type, taken)
    after_id = generate_id(clip.type, taken | {before_id})
    before = _retime(clip, start, remove_start, id=before_id)
    after = _retime(clip, remove_end, end, id=after_id)
    return timeline.with_track(_replace_at(track, idx, (before, after)))


# ---------------------------------------------------------------------------
# Multi-clip operations
# ---------------------------------------------------------------------------

def _gather(timeline: Timeline, clip_ids: Sequence[str]) -> list[tuple[Track, int, Clip]]:
    """Locate two or more distinct clips."""
    ids = list(dict.fromkeys(clip_ids))
    if len(ids) < 2:
        raise TimelineError(
            code=TOO_FEW_CLIPS,
            message=f"At least two distinct clip ids are required, got {len(ids)}",
            recovery=recovery_hints(TOO_FEW_CLIPS),
            context={"clip_ids": list(clip_ids)},
        )
    return [_locate(timeline, clip_id) for clip_id in ids]


def _same_track(found: list[tuple[Track, int, Clip]]) -> Track:
    track_ids = list(dict.fromkeys(track.id for track, _, _ in found))
    if len(track_ids) > 1:
        raise TimelineError(
            code=CLIPS_ON_DIFFERENT_TRACKS,
            message=f"Clips must share one track, found them on: {', '.join(track_ids)}",
            recovery=recovery_hints(CLIPS_ON_DIFFERENT_TRACKS),
            context={"track_ids": track_ids},
        )
    return found[0][0]


def _incompatible(clip: Clip, reason: str, **extra) -> TimelineError:
    return TimelineError(
        code=INCOMPATIBLE_CLIP,
        message=f"Clip {clip.id!r} {reason}",
        recovery=recovery_hints(INCOMPATIBLE_CLIP),
        context={"clip_id": clip.id, "clip_type": clip.type, **extra},
    )


def _check_compatible(track: Track, clips: Iterable[Clip]) -> None:
    """Text tracks take text clips with text; other tracks take media clips with an asset."""
    for clip in clips:
        if track.type == "text":
            if not clip.is_text:
                raise _incompatible(clip, f"is {clip.type}, but track {track.id!r} is a text track",
                                    track_id=track.id)
            if not (clip.text or "").strip():
                raise _incompatible(clip, "has no text", track_id=track.id)
        else:
            if not clip.is_media:
                raise _incompatible(clip, f"is text, but track {track.id!r} is a {track.type} track",
                                    track_id=track.id)
            if not clip.has_asset:
                raise _incompatible(clip, "has no asset reference", track_id=track.id)


def _joined_text(clips: Sequence[Clip]) -> dict:
    if clips[0].is_text:
        return {"text": " ".join(c.text or "" for c in clips)}
    return {}


def join(timeline: Timeline, clip_ids: Sequence[str]) -> Timeline:
    """Join clips on one track into a single clip.

    The result spans from the earliest start to the latest end; gaps between
    the inputs are absorbed into the joined clip. Text clips get their text
    space-joined in start order. Other attributes come from the earliest clip.

    Args:
        timeline: Source snapshot.
        clip_ids: Two or more clip ids on the same track.

    Returns:
        New timeline with the originals replaced by one fresh-id clip.
    """
    found = _gather(timeline, clip_ids)
    track = _same_track(found)
    clips = _by_start(clip for _, _, clip in found)
    _check_compatible(track, clips)

    first = clips[0]
    start = first.start_in_frames
    end = max(c.end_in_frames for c in clips)
    joined = replace(
        first,
        id=generate_id(first.type, timeline.clip_ids()),
        start_in_frames=start,
        duration_in_frames=end - start,
        **_joined_text(clips),
    )
    remove_ids = {c.id for c in clips}
    return timeline.with_track(_collapse(track, remove_ids, first.id, joined))


def merge_with_crossfade(timeline: Timeline, clip_ids: Sequence[str], crossfade_frames: int = 30) -> Timeline:
    """Merge media clips from video tracks into one clip with a crossfade overlap.

    Duration is ``(latest_end - earliest_start) - (n - 1) * crossfade_frames``.
    The overlap is subtracted as-is; it is not checked against how much the
    clips actually overlap. The merged clip carries the earliest clip's
    attributes plus a 15-frame fade-in and fade-out, and takes the earliest
    clip's place on its track; the other inputs are removed from their tracks.

    Args:
        timeline: Source snapshot.
        clip_ids: Two or more media clip ids on video tracks.
        crossfade_frames: Overlap per transition, in frames (>= 0).

    Returns:
        New timeline with the merged clip.
    """
    if crossfade_frames < 0:
        raise TimelineError(
            code=INVALID_PARAMETER,
            message=f"crossfade_frames must be >= 0, got {crossfade_frames}",
            context={"crossfade_frames": crossfade_frames},
        )
    found = _gather(timeline, clip_ids)
    for track, _, clip in found:
        if track.type != "video":
            raise _incompatible(clip, f"is on {track.type} track {track.id!r}; merge needs video tracks",
                                track_id=track.id)
        if not clip.is_media:
            raise _incompatible(clip, "is a text clip; merge only accepts media clips")
        if not clip.has_asset:
            raise _incompatible(clip, "has no asset reference")

    clips = _by_start(clip for _, _, clip in found)
    first = clips[0]
    start = first.start_in_frames
    span = max(c.end_in_frames for c in clips) - start
    duration = span - (len(clips) - 1) * crossfade_frames
    if duration <= 0:
        raise TimelineError(
            code=WOULD_ELIMINATE_CLIP,
            message=f"Crossfade of {crossfade_frames} frames over {len(clips)} clips "
                    f"leaves no duration (span {span} frames)",
            recovery=recovery_hints(WOULD_ELIMINATE_CLIP),
            context={"span": span, "crossfade_frames": crossfade_frames, "clip_count": len(clips)},
        )

    merged = replace(
        first,
        id=generate_id(first.type, timeline.clip_ids()),
        start_in_frames=start,
        duration_in_frames=duration,
        effects=first.effects + (
            Effect(type="fade-in", duration_in_frames=MERGE_FADE_FRAMES),
            Effect(type="fade-out", duration_in_frames=MERGE_FADE_FRAMES),
        ),
    )

    remove_ids = {c.id for c in clips}
    home_id = next(track.id for track, _, clip in found if clip.id == first.id)
    tracks = []
    for track in timeline.tracks:
        if track.id == home_id:
            tracks.append(_collapse(track, remove_ids, first.id, merged))
        elif any(c.id in remove_ids for c in track.clips):
            tracks.append(track.with_clips(c for c in track.clips if c.id not in remove_ids))
        else:
            tracks.append(track)
    return replace(timeline, tracks=tuple(tracks))


def pack_sequential(clips: Iterable[Clip]) -> list[Clip]:
    """Order clips by start and lay them back to back from the first start.

    ``next.start == prev.start + prev.duration`` for every consecutive pair.
    """
    ordered = _by_start(clips)
    if not ordered:
        return []
    packed: list[Clip] = []
    cursor = ordered[0].start_in_frames
    for clip in ordered:
        packed.append(replace(clip, start_in_frames=cursor))
        cursor += clip.duration_in_frames
    return packed


def concatenate(timeline: Timeline, clip_ids: Sequence[str]) -> Timeline:
    """Lay clips on one track end to end and replace them with one clip.

    The clips are repositioned back to back from the earliest start (see
    ``pack_sequential``) and collapsed into one fresh-id clip whose duration
    is the sum of their durations. Text is space-joined in start order.
    """
    found = _gather(timeline, clip_ids)
    track = _same_track(found)
    packed = pack_sequential(clip for _, _, clip in found)
    _check_compatible(track, packed)

    first = packed[0]
    total = sum(c.duration_in_frames for c in packed)
    combined = replace(
        first,
        id=generate_id(first.type, timeline.clip_ids()),
        duration_in_frames=total,
        **_joined_text(packed),
    )
    remove_ids = {c.id for c in packed}
    return timeline.with_track(_collapse(track, remove_ids, first.id, combined))


# ---------------------------------------------------------------------------
# Move / duplicate
# ---------------------------------------------------------------------------

def move_to(timeline: Timeline, clip_id: str, new_start: int, track_id: Optional[str] = None) -> Timeline:
    """Detach a clip and re-attach it at ``new_start``, optionally on another track.

    No collision checks are made; overlaps are left for the validator to flag.
    """
    _check_position(new_start, "New start")
    source, idx, clip = _locate(timeline, clip_id)
    target = _require_track(timeline, track_id) if track_id else source
    moved = replace(clip, start_in_frames=new_start)

    detached = _replace_at(source, idx, ())
    if target.id == source.id:
        return timeline.with_track(detached.with_clips(detached.clips + (moved,)))
    attached = target.with_clips(target.clips + (moved,))
    return timeline.with_track(detached).with_track(attached)


def duplicate_at(timeline: Timeline, clip_id: str, new_start: int) -> Timeline:
    """Copy a clip verbatim (fresh id) onto its own track at ``new_start``."""
    track, idx, clip = _locate(timeline, clip_id)
    copy = replace(
        clip,
        id=generate_id(clip.type, timeline.clip_ids()),
        start_in_frames=new_start,
    )
    return timeline.with_track(_replace_at(track, idx, (clip, copy)))


# ---------------------------------------------------------------------------
# Structural helpers
# ---------------------------------------------------------------------------

def add_track(timeline: Timeline, track: Track, index: Optional[int] = None) -> Timeline:
    """Insert a track (appended on top by default)."""
    if track.id in timeline.track_ids():
        raise TimelineError(
            code=DUPLICATE_TRACK_ID,
            message=f"Track id already in use: {track.id!r}",
            recovery=recovery_hints(DUPLICATE_TRACK_ID),
            context={"track_id": track.id},
        )
    tracks = list(timeline.tracks)
    if index is None or index >= len(tracks):
        tracks.append(track)
    else:
        tracks.insert(max(0, index), track)
    return replace(timeline, tracks=tuple(tracks))


def remove_track(timeline: Timeline, track_id: str) -> Timeline:
    _require_track(timeline, track_id)
    return replace(timeline, tracks=tuple(t for t in timeline.tracks if t.id != track_id))


def add_clip(timeline: Timeline, track_id: str, clip: Clip) -> Timeline:
    """Append a clip to a track."""
    track = _require_track(timeline, track_id)
    if clip.id in timeline.clip_ids():
        raise TimelineError(
            code=DUPLICATE_CLIP_ID,
            message=f"Clip id already in use: {clip.id!r}",
            recovery=recovery_hints(DUPLICATE_CLIP_ID),
            context={"clip_id": clip.id},
        )
    return timeline.with_track(track.with_clips(track.clips + (clip,)))


def remove_clip(timeline: Timeline, clip_id: str) -> Timeline:
    track, idx, _ = _locate(timeline, clip_id)
    return timeline.with_track(_replace_at(track, idx, ()))


def add_effect(timeline: Timeline, clip_id: str, effect: Effect) -> Timeline:
    track, idx, clip = _locate(timeline, clip_id)
    updated = replace(clip, effects=clip.effects + (effect,))
    return timeline.with_track(_replace_at(track, idx, (updated,)))


def _add_fade(timeline: Timeline, clip_id: str, fade_type: str, duration_in_frames: int) -> Timeline:
    if duration_in_frames <= 0:
        raise TimelineError(
            code=INVALID_PARAMETER,
            message=f"{fade_type} duration must be > 0, got {duration_in_frames}",
            context={"duration_in_frames": duration_in_frames},
        )
    _, _, clip = _locate(timeline, clip_id)
    if any(e.type == fade_type for e in clip.effects):
        return timeline
    return add_effect(timeline, clip_id, Effect(type=fade_type, duration_in_frames=duration_in_frames))


def add_fade_in(timeline: Timeline, clip_id: str, duration_in_frames: int = 30) -> Timeline:
    """Attach a fade-in unless the clip already has one."""
    return _add_fade(timeline, clip_id, "fade-in", duration_in_frames)


def add_fade_out(timeline: Timeline, clip_id: str, duration_in_frames: int = 30) -> Timeline:
    """Attach a fade-out unless the clip already has one."""
    return _add_fade(timeline, clip_id, "fade-out", duration_in_frames)
