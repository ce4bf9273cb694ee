"""Validation and evaluation thresholds, overridable from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

from timelinekit.errors import TimelineError, INVALID_CONFIG, recovery_hints


@dataclass(frozen=True)
class Thresholds:
    """Tunable limits used by the validator, health check and evaluator.

    Defaults are expressed in frames at 30 fps.
    """
    max_gap_frames: int = 90            # 3 s
    long_clip_frames: int = 54000       # 30 min
    min_font_size: int = 12
    max_fps: int = 120
    short_clip_frames: int = 60         # 2 s
    slide_distance_px: int = 100


# Environment variable -> Thresholds field
ENV_VARS: dict[str, str] = {
    "TIMELINEKIT_MAX_GAP_FRAMES": "max_gap_frames",
    "TIMELINEKIT_LONG_CLIP_FRAMES": "long_clip_frames",
    "TIMELINEKIT_MIN_FONT_SIZE": "min_font_size",
    "TIMELINEKIT_MAX_FPS": "max_fps",
    "TIMELINEKIT_SHORT_CLIP_FRAMES": "short_clip_frames",
    "TIMELINEKIT_SLIDE_DISTANCE": "slide_distance_px",
}


def _read_int_env(env_var: str) -> int | None:
    """Read an integer env var; unset or empty returns None."""
    value = os.environ.get(env_var)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise TimelineError(
            code=INVALID_CONFIG,
            message=f"{env_var} must be an integer, got {value!r}",
            recovery=recovery_hints(INVALID_CONFIG),
            context={"variable": env_var, "value": value},
        ) from exc


def load_thresholds() -> Thresholds:
    """Build Thresholds from defaults plus any TIMELINEKIT_* overrides."""
    overrides: dict[str, int] = {}
    for env_var, field_name in ENV_VARS.items():
        value = _read_int_env(env_var)
        if value is not None:
            overrides[field_name] = value
    return Thresholds(**overrides)


def env_report() -> dict[str, str | None]:
    """Report timelinekit-related environment variables."""
    return {k: os.environ.get(k) for k in ENV_VARS}


def thresholds_dict(thresholds: Thresholds) -> dict[str, int]:
    return {f.name: getattr(thresholds, f.name) for f in fields(thresholds)}
