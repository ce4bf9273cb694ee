"""Data models for timelinekit — all JSON-serializable via to_dict / from_dict.

Timeline values (``Timeline``, ``Track``, ``Clip`` and their parts) are frozen
dataclasses holding tuples, so a snapshot can be kept around safely while
editing operations build the next one with ``dataclasses.replace``.
"""

from __future__ import annotations

import json
import math
import random
import re
import string
import time
from dataclasses import dataclass, field, asdict, replace
from typing import Any, Iterable, Iterator, Optional, Union

from timelinekit.errors import (
    TimelineError,
    INVALID_CLIP_TYPE,
    INVALID_JSON,
    MISSING_FIELD,
    UNKNOWN_OPERATION,
    recovery_hints,
)


# ---------------------------------------------------------------------------
# Time conversion
# ---------------------------------------------------------------------------

_TIME_RE = re.compile(
    r"^(?:(\d+):)?(\d{1,2}):(\d{2})(?:\.(\d+))?$"
)


def seconds_to_frames(seconds: float, fps: int) -> int:
    """Convert seconds to the nearest whole frame (halves round up)."""
    return int(math.floor(seconds * fps + 0.5))


def frames_to_seconds(frames: int, fps: int) -> float:
    """Convert a frame count to seconds."""
    return frames / fps


def parse_time(value: str) -> float:
    """Parse HH:MM:SS.ms or plain seconds into a float of seconds."""
    try:
        return float(value)
    except ValueError:
        pass
    m = _TIME_RE.match(value)
    if not m:
        raise ValueError(f"Invalid time format: {value!r} — use HH:MM:SS, MM:SS, or seconds")
    hours = int(m.group(1) or 0)
    minutes = int(m.group(2))
    seconds = int(m.group(3))
    frac = float(f"0.{m.group(4)}") if m.group(4) else 0.0
    return hours * 3600 + minutes * 60 + seconds + frac


def format_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS.mmm."""
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:06.3f}"


def to_frames(value: Union[int, str], fps: int) -> int:
    """Resolve a frame field: ints are frames, strings are times.

    Raises:
        ValueError: If the value is neither an int nor a parseable time string.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected frames (int) or a time string, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return seconds_to_frames(parse_time(value), fps)
    raise ValueError(f"Expected frames (int) or a time string, got {value!r}")


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

CLIP_TYPES = ("video", "audio", "image", "text")
MEDIA_CLIP_TYPES = frozenset({"video", "audio", "image"})
TRACK_TYPES = CLIP_TYPES

EFFECT_TYPES = ("fade-in", "fade-out", "slide-in")
SLIDE_DIRECTIONS = ("from-bottom", "from-top", "from-left", "from-right")
POSITION_UNITS = ("px", "%", "vw", "vh")
ANCHORS = (
    "top-left", "top-center", "top-right",
    "center-left", "center", "center-right",
    "bottom-left", "bottom-center", "bottom-right",
)

# Durations in frames (at 30fps)
COMMON_DURATIONS = {
    "brief": 30,
    "short": 60,
    "medium": 90,
    "long": 150,
}

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(prefix: str = "clip", taken: Iterable[str] = ()) -> str:
    """Mint an id of the form ``<prefix>-<epoch ms>-<4 base36 chars>``.

    Candidates already present in ``taken`` are re-rolled.
    """
    taken = set(taken)
    while True:
        suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(4))
        candidate = f"{prefix}-{int(time.time() * 1000)}-{suffix}"
        if candidate not in taken:
            return candidate


def _require(data: dict, key: str, where: str) -> Any:
    """Fetch a required key or raise MISSING_FIELD."""
    try:
        return data[key]
    except KeyError as exc:
        raise TimelineError(
            code=MISSING_FIELD,
            message=f"{where} missing required field: '{key}'",
            recovery=[f"Add '{key}' to the {where} object"],
            context={"missing_field": key, "where": where},
        ) from exc


def _clip_type_for_track(track_type: Optional[str]) -> str:
    if track_type in CLIP_TYPES:
        return track_type
    return "video"


def _compact(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


# ---------------------------------------------------------------------------
# Project settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectSettings:
    """Output canvas and frame rate for a timeline."""
    width: int = 1920
    height: int = 1080
    fps: int = 30

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ProjectSettings:
        return cls(
            width=int(_require(data, "width", "project")),
            height=int(_require(data, "height", "project")),
            fps=int(_require(data, "fps", "project")),
        )


# ---------------------------------------------------------------------------
# Visual properties
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Position:
    """Clip placement on the canvas; ``anchor`` picks the reference point."""
    x: float
    y: float
    unit: str = "%"
    anchor: str = "center"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Position:
        return cls(
            x=data.get("x", 50),
            y=data.get("y", 50),
            unit=data.get("unit", "%"),
            anchor=data.get("anchor", "center"),
        )


@dataclass(frozen=True)
class Layout:
    """Text box layout."""
    text_align: Optional[str] = None
    max_width: Optional[float] = None
    max_width_unit: Optional[str] = None
    word_wrap: Optional[str] = None
    line_height: Optional[float] = None

    def to_dict(self) -> dict:
        return _compact({
            "textAlign": self.text_align,
            "maxWidth": self.max_width,
            "maxWidthUnit": self.max_width_unit,
            "wordWrap": self.word_wrap,
            "lineHeight": self.line_height,
        })

    @classmethod
    def from_dict(cls, data: dict) -> Layout:
        return cls(
            text_align=data.get("textAlign"),
            max_width=data.get("maxWidth"),
            max_width_unit=data.get("maxWidthUnit"),
            word_wrap=data.get("wordWrap"),
            line_height=data.get("lineHeight"),
        )


@dataclass(frozen=True)
class TextStyle:
    """Font and colour for a text clip. Defaults are Arial 64px bold white."""
    font_family: str = "Arial, sans-serif"
    font_size: int = 64
    font_weight: str = "bold"
    color: str = "#FFFFFF"
    text_shadow: Optional[str] = None
    letter_spacing: Optional[float] = None
    text_transform: Optional[str] = None

    def to_dict(self) -> dict:
        return _compact({
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "fontWeight": self.font_weight,
            "color": self.color,
            "textShadow": self.text_shadow,
            "letterSpacing": self.letter_spacing,
            "textTransform": self.text_transform,
        })

    @classmethod
    def from_dict(cls, data: dict) -> TextStyle:
        default = cls()
        return cls(
            font_family=data.get("fontFamily", default.font_family),
            font_size=data.get("fontSize", default.font_size),
            font_weight=data.get("fontWeight", default.font_weight),
            color=data.get("color", default.color),
            text_shadow=data.get("textShadow"),
            letter_spacing=data.get("letterSpacing"),
            text_transform=data.get("textTransform"),
        )


DEFAULT_TEXT_STYLE = TextStyle()


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Effect:
    """A time-bounded animation attached to a clip."""
    type: str  # "fade-in", "fade-out" or "slide-in"
    duration_in_frames: int
    direction: Optional[str] = None  # slide-in only

    def to_dict(self) -> dict:
        return _compact({
            "type": self.type,
            "durationInFrames": self.duration_in_frames,
            "direction": self.direction,
        })

    @classmethod
    def from_dict(cls, data: dict) -> Effect:
        return cls(
            type=_require(data, "type", "effect"),
            duration_in_frames=int(_require(data, "durationInFrames", "effect")),
            direction=data.get("direction"),
        )


# ---------------------------------------------------------------------------
# Clip / Track / Timeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Clip:
    """A single timed element on a track.

    ``type`` is the explicit kind tag; media fields are only meaningful for
    video/audio/image clips and text fields only for text clips.
    """
    id: str
    type: str
    start_in_frames: int
    duration_in_frames: int
    track_id: Optional[str] = None
    # Media
    asset_id: Optional[str] = None
    asset_url: Optional[str] = None
    source_in: Optional[int] = None
    source_out: Optional[int] = None
    volume: Optional[float] = None
    muted: Optional[bool] = None
    # Text
    text: Optional[str] = None
    style: Optional[TextStyle] = None
    layout: Optional[Layout] = None
    # Visual
    position: Optional[Position] = None
    scale: Optional[float] = None
    rotation: Optional[float] = None
    opacity: Optional[float] = None
    effects: tuple[Effect, ...] = ()
    name: Optional[str] = None

    @property
    def end_in_frames(self) -> int:
        """Exclusive end frame."""
        return self.start_in_frames + self.duration_in_frames

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    @property
    def is_media(self) -> bool:
        return self.type in MEDIA_CLIP_TYPES

    @property
    def has_asset(self) -> bool:
        return bool(self.asset_url or self.asset_id)

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.id,
            "type": self.type,
            "startInFrames": self.start_in_frames,
            "durationInFrames": self.duration_in_frames,
        }
        d.update(_compact({
            "assetId": self.asset_id,
            "assetUrl": self.asset_url,
            "sourceIn": self.source_in,
            "sourceOut": self.source_out,
            "volume": self.volume,
            "muted": self.muted,
            "text": self.text,
            "style": self.style.to_dict() if self.style else None,
            "layout": self.layout.to_dict() if self.layout else None,
            "position": self.position.to_dict() if self.position else None,
            "scale": self.scale,
            "rotation": self.rotation,
            "opacity": self.opacity,
            "name": self.name,
        }))
        if self.effects:
            d["effects"] = [e.to_dict() for e in self.effects]
        return d

    @classmethod
    def from_dict(cls, data: dict, track_id: Optional[str] = None,
                  track_type: Optional[str] = None) -> Clip:
        """Build a clip; a missing ``type`` is inherited from the owning track."""
        clip_type = data.get("type") or _clip_type_for_track(track_type)
        if clip_type not in CLIP_TYPES:
            raise TimelineError(
                code=INVALID_CLIP_TYPE,
                message=f"Clip {data.get('id')!r} has unknown type {clip_type!r}",
                recovery=recovery_hints(INVALID_CLIP_TYPE),
                context={"clip_id": data.get("id"), "type": clip_type},
            )
        style = data.get("style")
        layout = data.get("layout")
        position = data.get("position")
        return cls(
            id=_require(data, "id", "clip"),
            type=clip_type,
            start_in_frames=int(_require(data, "startInFrames", "clip")),
            duration_in_frames=int(_require(data, "durationInFrames", "clip")),
            track_id=track_id,
            asset_id=data.get("assetId"),
            asset_url=data.get("assetUrl"),
            source_in=data.get("sourceIn"),
            source_out=data.get("sourceOut"),
            volume=data.get("volume"),
            muted=data.get("muted"),
            text=data.get("text"),
            style=TextStyle.from_dict(style) if style else None,
            layout=Layout.from_dict(layout) if layout else None,
            position=Position.from_dict(position) if position else None,
            scale=data.get("scale"),
            rotation=data.get("rotation"),
            opacity=data.get("opacity"),
            effects=tuple(Effect.from_dict(e) for e in data.get("effects") or []),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class Track:
    """An ordered lane of clips. Clip order is insertion order, not time order."""
    id: str
    type: str = "video"
    name: Optional[str] = None
    muted: bool = False
    locked: bool = False
    clips: tuple[Clip, ...] = ()

    def with_clips(self, clips: Iterable[Clip]) -> Track:
        """Return a copy holding ``clips``, each re-pointed at this track."""
        owned = tuple(
            c if c.track_id == self.id else replace(c, track_id=self.id)
            for c in clips
        )
        return replace(self, clips=owned)

    def clip_index(self, clip_id: str) -> Optional[int]:
        for idx, clip in enumerate(self.clips):
            if clip.id == clip_id:
                return idx
        return None

    def to_dict(self) -> dict:
        d: dict = {"id": self.id, "type": self.type}
        if self.name is not None:
            d["name"] = self.name
        if self.muted:
            d["muted"] = True
        if self.locked:
            d["locked"] = True
        d["clips"] = [c.to_dict() for c in self.clips]
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Track:
        track_id = _require(data, "id", "track")
        track_type = _require(data, "type", "track")
        clips = tuple(
            Clip.from_dict(c, track_id=track_id, track_type=track_type)
            for c in data.get("clips") or []
        )
        return cls(
            id=track_id,
            type=track_type,
            name=data.get("name"),
            muted=bool(data.get("muted", False)),
            locked=bool(data.get("locked", False)),
            clips=clips,
        )


@dataclass(frozen=True)
class Timeline:
    """Project settings plus tracks, in compositing order (last is on top)."""
    project: ProjectSettings = field(default_factory=ProjectSettings)
    tracks: tuple[Track, ...] = ()

    @property
    def duration_in_frames(self) -> int:
        """Derived extent: the furthest clip end, or 0 for an empty timeline."""
        return max((c.end_in_frames for _, c in self.all_clips()), default=0)

    @property
    def duration_seconds(self) -> float:
        return frames_to_seconds(self.duration_in_frames, self.project.fps)

    def all_clips(self) -> Iterator[tuple[Track, Clip]]:
        for track in self.tracks:
            for clip in track.clips:
                yield track, clip

    def clip_ids(self) -> set[str]:
        return {c.id for _, c in self.all_clips()}

    def track_ids(self) -> list[str]:
        return [t.id for t in self.tracks]

    def find_track(self, track_id: str) -> Optional[Track]:
        return next((t for t in self.tracks if t.id == track_id), None)

    def find_clip(self, clip_id: str) -> Optional[tuple[Track, int, Clip]]:
        """Locate a clip by scanning all tracks; returns (track, index, clip)."""
        for track in self.tracks:
            idx = track.clip_index(clip_id)
            if idx is not None:
                return track, idx, track.clips[idx]
        return None

    def with_track(self, track: Track) -> Timeline:
        """Return a copy with the same-id track swapped for ``track``."""
        return replace(
            self,
            tracks=tuple(track if t.id == track.id else t for t in self.tracks),
        )

    def to_dict(self) -> dict:
        return {
            "project": self.project.to_dict(),
            "timeline": [t.to_dict() for t in self.tracks],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> Timeline:
        return cls(
            project=ProjectSettings.from_dict(_require(data, "project", "timeline document")),
            tracks=tuple(Track.from_dict(t) for t in _require(data, "timeline", "timeline document")),
        )


@dataclass(frozen=True)
class MediaAsset:
    """Catalog entry a clip can point at; never dereferenced here."""
    id: str
    url: str
    type: str  # "video", "audio" or "image"
    duration: float  # seconds
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> dict:
        return _compact(asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> MediaAsset:
        return cls(
            id=_require(data, "id", "asset"),
            url=_require(data, "url", "asset"),
            type=_require(data, "type", "asset"),
            duration=float(_require(data, "duration", "asset")),
            width=data.get("width"),
            height=data.get("height"),
        )


@dataclass(frozen=True)
class UntrustedTimeline:
    """A timeline document that has not been through the validator yet.

    Use ``timelinekit.validation.commit_timeline`` to turn it into a Timeline.
    """
    raw: dict
    source: str = "unknown"

    @classmethod
    def from_json(cls, text: str, source: str = "unknown") -> UntrustedTimeline:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TimelineError(
                code=INVALID_JSON,
                message=f"Invalid JSON: {exc}",
                recovery=recovery_hints(INVALID_JSON),
                context={"parse_error": str(exc), "source": source},
            ) from exc
        if not isinstance(data, dict):
            raise TimelineError(
                code=INVALID_JSON,
                message=f"Timeline document must be a JSON object, got {type(data).__name__}",
                recovery=recovery_hints(INVALID_JSON),
                context={"source": source},
            )
        return cls(raw=data, source=source)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def next_track_id(timeline: Timeline) -> str:
    """Return ``track-<n>`` one past the highest numbered track id."""
    numbers = [
        int(m.group(1))
        for m in (re.fullmatch(r"track-(\d+)", t.id) for t in timeline.tracks)
        if m
    ]
    return f"track-{max(numbers, default=0) + 1}"


def create_track(track_type: str, track_id: Optional[str] = None,
                 name: Optional[str] = None) -> Track:
    """Create an empty track."""
    if track_type not in TRACK_TYPES:
        raise TimelineError(
            code=INVALID_CLIP_TYPE,
            message=f"Unknown track type: {track_type!r}",
            recovery=recovery_hints(INVALID_CLIP_TYPE),
            context={"type": track_type},
        )
    return Track(id=track_id or generate_id("track"), type=track_type, name=name)


def create_text_clip(
    text: str,
    start_in_frames: int = 0,
    duration_in_frames: int = COMMON_DURATIONS["medium"],
    style: Optional[dict] = None,
) -> Clip:
    """Create a text clip; ``style`` keys (canonical names) override the defaults."""
    merged = {**DEFAULT_TEXT_STYLE.to_dict(), **(style or {})}
    return Clip(
        id=generate_id("text"),
        type="text",
        start_in_frames=start_in_frames,
        duration_in_frames=duration_in_frames,
        text=text,
        style=TextStyle.from_dict(merged),
    )


def create_media_clip(
    asset_url: str,
    start_in_frames: int = 0,
    duration_in_frames: int = 300,
    clip_type: str = "video",
    asset_id: Optional[str] = None,
) -> Clip:
    """Create a video/audio/image clip pointing at an asset."""
    if clip_type not in MEDIA_CLIP_TYPES:
        raise TimelineError(
            code=INVALID_CLIP_TYPE,
            message=f"Media clip type must be video, audio or image, got {clip_type!r}",
            recovery=recovery_hints(INVALID_CLIP_TYPE),
            context={"type": clip_type},
        )
    return Clip(
        id=generate_id(clip_type),
        type=clip_type,
        start_in_frames=start_in_frames,
        duration_in_frames=duration_in_frames,
        asset_url=asset_url,
        asset_id=asset_id,
    )


# ---------------------------------------------------------------------------
# Edit operation records
# ---------------------------------------------------------------------------

Frames = Union[int, str]


@dataclass
class SplitOp:
    clip: str
    at: Frames
    op: str = "split"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> SplitOp:
        return cls(clip=data["clip"], at=data["at"])


@dataclass
class TrimStartOp:
    clip: str
    start: Frames
    op: str = "trim_start"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> TrimStartOp:
        return cls(clip=data["clip"], start=data["start"])


@dataclass
class TrimEndOp:
    clip: str
    end: Frames
    op: str = "trim_end"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> TrimEndOp:
        return cls(clip=data["clip"], end=data["end"])


@dataclass
class ExtractOp:
    """Keep only [start, end) of a clip."""
    clip: str
    start: Frames
    end: Frames
    op: str = "extract"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ExtractOp:
        return cls(clip=data["clip"], start=data["start"], end=data["end"])


@dataclass
class RemoveSegmentOp:
    """Cut [start, end) out of a clip."""
    clip: str
    start: Frames
    end: Frames
    op: str = "remove_segment"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> RemoveSegmentOp:
        return cls(clip=data["clip"], start=data["start"], end=data["end"])


@dataclass
class JoinOp:
    clips: list[str]
    op: str = "join"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> JoinOp:
        return cls(clips=list(data["clips"]))


@dataclass
class MergeOp:
    """Merge media clips with a crossfade overlap (default 1 s at 30fps)."""
    clips: list[str]
    crossfade: Frames = 30
    op: str = "merge"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> MergeOp:
        return cls(clips=list(data["clips"]), crossfade=data.get("crossfade", 30))


@dataclass
class ConcatOp:
    clips: list[str]
    op: str = "concat"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ConcatOp:
        return cls(clips=list(data["clips"]))


@dataclass
class MoveOp:
    clip: str
    start: Frames
    track: Optional[str] = None
    op: str = "move"

    def to_dict(self) -> dict:
        return _compact(asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> MoveOp:
        return cls(clip=data["clip"], start=data["start"], track=data.get("track"))


@dataclass
class DuplicateOp:
    clip: str
    start: Frames
    op: str = "duplicate"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> DuplicateOp:
        return cls(clip=data["clip"], start=data["start"])


@dataclass
class FadeOp:
    """Attach fade-in and/or fade-out effects; 0 skips that side."""
    clip: str
    fade_in: Frames = 0
    fade_out: Frames = 0
    op: str = "fade"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> FadeOp:
        return cls(
            clip=data["clip"],
            fade_in=data.get("fade_in", 0),
            fade_out=data.get("fade_out", 0),
        )


@dataclass
class RemoveOp:
    clip: str
    op: str = "remove"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> RemoveOp:
        return cls(clip=data["clip"])


@dataclass
class ChangeTextOp:
    old: str
    new: str
    op: str = "change_text"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ChangeTextOp:
        return cls(old=data["old"], new=data["new"])


@dataclass
class TextColorOp:
    color: str
    op: str = "text_color"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> TextColorOp:
        return cls(color=data["color"])


@dataclass
class AddTextOp:
    text: str
    placement: str = "beginning"
    op: str = "add_text"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AddTextOp:
        return cls(text=data["text"], placement=data.get("placement", "beginning"))


# Registry for parsing operation dicts into typed objects
OPERATION_TYPES: dict[str, type] = {
    "split": SplitOp,
    "trim_start": TrimStartOp,
    "trim_end": TrimEndOp,
    "extract": ExtractOp,
    "remove_segment": RemoveSegmentOp,
    "join": JoinOp,
    "merge": MergeOp,
    "concat": ConcatOp,
    "move": MoveOp,
    "duplicate": DuplicateOp,
    "fade": FadeOp,
    "remove": RemoveOp,
    "change_text": ChangeTextOp,
    "text_color": TextColorOp,
    "add_text": AddTextOp,
}


def parse_operation(data: dict):
    """Parse a raw operation dict into a typed operation dataclass.

    Raises:
        TimelineError: If the operation type is unknown or required fields are missing.
    """
    if not isinstance(data, dict):
        raise TimelineError(
            code=INVALID_JSON,
            message=f"Operation must be an object with an 'op' field, got {type(data).__name__}",
            recovery=recovery_hints(INVALID_JSON),
        )
    op_type = data.get("op")
    if not isinstance(op_type, str) or op_type not in OPERATION_TYPES:
        raise TimelineError(
            code=UNKNOWN_OPERATION,
            message=f"Unknown operation type: {op_type!r}",
            recovery=recovery_hints(UNKNOWN_OPERATION),
            context={"operation": op_type, "supported": list(OPERATION_TYPES.keys())},
        )
    try:
        return OPERATION_TYPES[op_type].from_dict(data)
    except KeyError as exc:
        raise TimelineError(
            code=MISSING_FIELD,
            message=f"Operation '{op_type}' missing required field: {exc}",
            recovery=[
                f"Check the '{op_type}' operation schema in 'timelinekit capabilities'",
            ],
            context={"operation": op_type, "missing_field": str(exc).strip("'")},
        ) from exc


# ---------------------------------------------------------------------------
# Edit script
# ---------------------------------------------------------------------------

@dataclass
class EditScript:
    """A starting timeline plus operations to replay against it, in order."""
    version: str
    timeline: UntrustedTimeline
    operations: list  # list of typed operation dataclasses

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "timeline": self.timeline.raw,
            "operations": [op.to_dict() for op in self.operations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> EditScript:
        ops = [parse_operation(op) for op in data["operations"]]
        return cls(
            version=data["version"],
            timeline=UntrustedTimeline(raw=data["timeline"], source="edit-script"),
            operations=ops,
        )
