"""Shared test fixtures — small canonical timelines."""

import copy

import pytest

from timelinekit.models import Timeline

_STYLE = {"fontFamily": "Arial, sans-serif", "fontSize": 64, "fontWeight": "bold", "color": "#FFFFFF"}

_BASIC_DOC = {
    "project": {"width": 1920, "height": 1080, "fps": 30},
    "timeline": [
        {
            "id": "track-1",
            "type": "video",
            "name": "Main",
            "clips": [
                {"id": "v1", "type": "video", "startInFrames": 0, "durationInFrames": 300,
                 "assetUrl": "/media/a.mp4", "sourceIn": 0, "sourceOut": 300},
                {"id": "v2", "type": "video", "startInFrames": 300, "durationInFrames": 300,
                 "assetUrl": "/media/b.mp4"},
            ],
        },
        {
            "id": "track-2",
            "type": "text",
            "clips": [
                {"id": "t1", "type": "text", "startInFrames": 0, "durationInFrames": 90,
                 "text": "Hello", "style": dict(_STYLE)},
                {"id": "t2", "type": "text", "startInFrames": 90, "durationInFrames": 90,
                 "text": "World", "style": dict(_STYLE)},
            ],
        },
        {
            "id": "track-3",
            "type": "audio",
            "clips": [
                {"id": "a1", "type": "audio", "startInFrames": 0, "durationInFrames": 900,
                 "assetUrl": "/media/music.mp3", "volume": 0.5},
            ],
        },
    ],
}


@pytest.fixture
def basic_doc() -> dict:
    """Canonical dict: a video, a text and an audio track."""
    return copy.deepcopy(_BASIC_DOC)


@pytest.fixture
def timeline(basic_doc) -> Timeline:
    return Timeline.from_dict(basic_doc)


@pytest.fixture
def text_style() -> dict:
    return dict(_STYLE)


@pytest.fixture
def make_doc():
    """Build a one-track document from clip dicts."""
    def _make(clips, track_type="video", fps=30):
        return {
            "project": {"width": 1920, "height": 1080, "fps": fps},
            "timeline": [{"id": "track-1", "type": track_type, "clips": clips}],
        }
    return _make
