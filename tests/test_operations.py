"""Tests for timelinekit.operations — the clip algebra."""

import pytest
from timelinekit.errors import TimelineError
from timelinekit.models import Clip, Effect, Timeline, Track, create_text_clip, create_track
from timelinekit.operations import (
    MERGE_FADE_FRAMES,
    add_clip,
    add_effect,
    add_fade_in,
    add_fade_out,
    add_track,
    concatenate,
    duplicate_at,
    extract_range,
    join,
    merge_with_crossfade,
    move_to,
    pack_sequential,
    remove_clip,
    remove_segment,
    remove_track,
    split_at,
    trim_end,
    trim_start,
)


def _video(clip_id, start, duration, **extra):
    return Clip(id=clip_id, type="video", start_in_frames=start, duration_in_frames=duration,
                asset_url=f"/media/{clip_id}.mp4", **extra)


def _single_track(*clips, track_type="video"):
    return Timeline(tracks=(Track(id="track-1", type=track_type).with_clips(clips),))


def _spans(timeline, track_id="track-1"):
    return [(c.start_in_frames, c.duration_in_frames) for c in timeline.find_track(track_id).clips]


def _code(exc_info):
    return exc_info.value.code


# ---------------------------------------------------------------------------
# split_at
# ---------------------------------------------------------------------------

class TestSplitAt:
    def test_split_in_two(self):
        tl = _single_track(_video("a", 0, 300))
        result = split_at(tl, "a", 90)
        assert _spans(result) == [(0, 90), (90, 210)]

    def test_fresh_ids_and_attributes_copied(self):
        tl = _single_track(_video("a", 0, 300, volume=0.8))
        first, second = split_at(tl, "a", 100).find_track("track-1").clips
        assert "a" not in (first.id, second.id)
        assert first.id != second.id
        assert first.asset_url == second.asset_url == "/media/a.mp4"
        assert first.volume == second.volume == 0.8

    def test_keeps_position_in_track(self):
        tl = _single_track(_video("x", 0, 50), _video("a", 50, 100), _video("z", 150, 50))
        clips = split_at(tl, "a", 75).find_track("track-1").clips
        assert clips[0].id == "x"
        assert clips[3].id == "z"
        assert [c.start_in_frames for c in clips[1:3]] == [50, 75]

    @pytest.mark.parametrize("at", [0, 300, -5, 400])
    def test_cut_outside_clip(self, at):
        tl = _single_track(_video("a", 0, 300))
        with pytest.raises(TimelineError) as exc_info:
            split_at(tl, "a", at)
        assert _code(exc_info) == "CUT_OUTSIDE_CLIP"
        assert exc_info.value.context["clip_end"] == 300

    def test_input_unchanged(self):
        tl = _single_track(_video("a", 0, 300))
        before = tl.to_dict()
        split_at(tl, "a", 90)
        assert tl.to_dict() == before

    def test_untouched_tracks_shared(self, timeline):
        result = split_at(timeline, "v1", 100)
        assert result.find_track("track-2") is timeline.find_track("track-2")
        assert result.find_track("track-3") is timeline.find_track("track-3")

    def test_durations_sum_for_every_cut(self):
        tl = _single_track(_video("a", 10, 37))
        for at in range(11, 47):
            first, second = split_at(tl, "a", at).find_track("track-1").clips
            assert first.duration_in_frames + second.duration_in_frames == 37
            assert first.end_in_frames == second.start_in_frames

    def test_source_window_follows_cut(self, timeline):
        first, second = split_at(timeline, "v1", 120).find_track("track-1").clips[:2]
        assert (first.source_in, first.source_out) == (0, 120)
        assert (second.source_in, second.source_out) == (120, 300)

    def test_clip_not_found(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            split_at(timeline, "ghost", 10)
        assert _code(exc_info) == "CLIP_NOT_FOUND"


# ---------------------------------------------------------------------------
# trim_start / trim_end / extract_range
# ---------------------------------------------------------------------------

class TestTrim:
    def test_trim_start(self):
        result = trim_start(_single_track(_video("a", 100, 200)), "a", 150)
        assert _spans(result) == [(150, 150)]

    def test_trim_start_can_extend_left(self):
        result = trim_start(_single_track(_video("a", 100, 200)), "a", 40)
        assert _spans(result) == [(40, 260)]

    def test_trim_start_shifts_source_in(self, timeline):
        clip = trim_start(timeline, "v1", 30).find_clip("v1")[2]
        assert (clip.source_in, clip.source_out) == (30, 300)

    def test_trim_start_would_eliminate(self):
        with pytest.raises(TimelineError) as exc_info:
            trim_start(_single_track(_video("a", 100, 200)), "a", 300)
        assert _code(exc_info) == "WOULD_ELIMINATE_CLIP"

    def test_trim_start_negative(self):
        with pytest.raises(TimelineError) as exc_info:
            trim_start(_single_track(_video("a", 100, 200)), "a", -1)
        assert _code(exc_info) == "NEGATIVE_POSITION"

    def test_trim_end(self):
        result = trim_end(_single_track(_video("a", 100, 200)), "a", 250)
        assert _spans(result) == [(100, 150)]

    def test_trim_end_shifts_source_out(self, timeline):
        clip = trim_end(timeline, "v1", 200).find_clip("v1")[2]
        assert (clip.source_in, clip.source_out) == (0, 200)

    def test_trim_end_would_eliminate(self):
        with pytest.raises(TimelineError) as exc_info:
            trim_end(_single_track(_video("a", 100, 200)), "a", 100)
        assert _code(exc_info) == "WOULD_ELIMINATE_CLIP"

    def test_trim_keeps_id(self):
        result = trim_end(_single_track(_video("a", 0, 200)), "a", 50)
        assert result.find_clip("a") is not None


class TestExtractRange:
    def test_extract(self):
        result = extract_range(_single_track(_video("a", 0, 900)), "a", 300, 600)
        assert _spans(result) == [(300, 300)]

    def test_whole_clip_is_allowed(self):
        result = extract_range(_single_track(_video("a", 0, 900)), "a", 0, 900)
        assert _spans(result) == [(0, 900)]

    @pytest.mark.parametrize("start,end", [(600, 300), (300, 300), (-1, 10), (10, 901)])
    def test_invalid_range(self, start, end):
        with pytest.raises(TimelineError) as exc_info:
            extract_range(_single_track(_video("a", 0, 900)), "a", start, end)
        assert _code(exc_info) == "INVALID_RANGE"


# ---------------------------------------------------------------------------
# remove_segment
# ---------------------------------------------------------------------------

class TestRemoveSegment:
    def test_middle_segment_leaves_two_pieces(self):
        result = remove_segment(_single_track(_video("a", 0, 900)), "a", 450, 600)
        assert _spans(result) == [(0, 450), (600, 300)]
        ids = [c.id for c in result.find_track("track-1").clips]
        assert "a" not in ids and len(set(ids)) == 2

    def test_touching_start_trims(self):
        result = remove_segment(_single_track(_video("a", 0, 900)), "a", 0, 300)
        assert _spans(result) == [(300, 600)]
        assert result.find_clip("a") is not None

    def test_touching_end_trims(self):
        result = remove_segment(_single_track(_video("a", 0, 900)), "a", 600, 900)
        assert _spans(result) == [(0, 600)]

    def test_whole_clip(self):
        with pytest.raises(TimelineError) as exc_info:
            remove_segment(_single_track(_video("a", 0, 900)), "a", 0, 900)
        assert _code(exc_info) == "WOULD_ELIMINATE_CLIP"

    @pytest.mark.parametrize("start,end", [(500, 400), (100, 100), (800, 1000)])
    def test_invalid_range(self, start, end):
        with pytest.raises(TimelineError) as exc_info:
            remove_segment(_single_track(_video("a", 0, 900)), "a", start, end)
        assert _code(exc_info) == "INVALID_RANGE"


# ---------------------------------------------------------------------------
# join
# ---------------------------------------------------------------------------

class TestJoin:
    def test_join_text(self, timeline):
        result = join(timeline, ["t2", "t1"])
        clips = result.find_track("track-2").clips
        assert len(clips) == 1
        joined = clips[0]
        assert joined.text == "Hello World"
        assert (joined.start_in_frames, joined.duration_in_frames) == (0, 180)
        assert joined.id not in ("t1", "t2")
        assert joined.style == timeline.find_clip("t1")[2].style

    def test_gap_is_absorbed(self):
        tl = _single_track(_video("a", 0, 100), _video("b", 400, 100))
        result = join(tl, ["a", "b"])
        assert _spans(result) == [(0, 500)]

    def test_takes_earliest_clip_slot(self):
        tl = _single_track(_video("z", 900, 10), _video("b", 100, 50), _video("a", 0, 100))
        clips = join(tl, ["a", "b"]).find_track("track-1").clips
        assert clips[0].id == "z"
        assert clips[1].asset_url == "/media/a.mp4"

    def test_too_few(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            join(timeline, ["t1", "t1"])
        assert _code(exc_info) == "TOO_FEW_CLIPS"

    def test_different_tracks(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            join(timeline, ["v1", "t1"])
        assert _code(exc_info) == "CLIPS_ON_DIFFERENT_TRACKS"

    def test_missing_clip(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            join(timeline, ["v1", "ghost"])
        assert _code(exc_info) == "CLIP_NOT_FOUND"

    def test_text_without_text_is_incompatible(self):
        empty = Clip(id="e", type="text", start_in_frames=90, duration_in_frames=30, text="")
        tl = _single_track(create_text_clip("Hi"), empty, track_type="text")
        first_id = tl.tracks[0].clips[0].id
        with pytest.raises(TimelineError) as exc_info:
            join(tl, [first_id, "e"])
        assert _code(exc_info) == "INCOMPATIBLE_CLIP"

    def test_whitespace_text_is_incompatible(self):
        blank = Clip(id="w", type="text", start_in_frames=90, duration_in_frames=30, text="   ")
        tl = _single_track(create_text_clip("Hi"), blank, track_type="text")
        first_id = tl.tracks[0].clips[0].id
        with pytest.raises(TimelineError) as exc_info:
            concatenate(tl, [first_id, "w"])
        assert _code(exc_info) == "INCOMPATIBLE_CLIP"

    def test_media_without_asset_is_incompatible(self):
        bare = Clip(id="b", type="video", start_in_frames=100, duration_in_frames=30)
        tl = _single_track(_video("a", 0, 100), bare)
        with pytest.raises(TimelineError) as exc_info:
            join(tl, ["a", "b"])
        assert _code(exc_info) == "INCOMPATIBLE_CLIP"


# ---------------------------------------------------------------------------
# merge_with_crossfade
# ---------------------------------------------------------------------------

class TestMergeWithCrossfade:
    def test_adjacent_clips(self):
        tl = _single_track(_video("a", 0, 150), _video("b", 150, 150))
        merged = merge_with_crossfade(tl, ["a", "b"], 30).find_track("track-1").clips
        assert len(merged) == 1
        clip = merged[0]
        assert (clip.start_in_frames, clip.duration_in_frames) == (0, 270)
        assert clip.effects == (
            Effect("fade-in", MERGE_FADE_FRAMES),
            Effect("fade-out", MERGE_FADE_FRAMES),
        )

    def test_keeps_first_clip_effects(self):
        tl = _single_track(_video("a", 0, 150, effects=(Effect("slide-in", 10),)), _video("b", 150, 150))
        clip = merge_with_crossfade(tl, ["b", "a"], 30).find_track("track-1").clips[0]
        assert [e.type for e in clip.effects] == ["slide-in", "fade-in", "fade-out"]
        assert clip.asset_url == "/media/a.mp4"

    def test_overlap_subtracted_without_checking_positions(self):
        tl = _single_track(_video("a", 0, 100), _video("b", 500, 100))
        clip = merge_with_crossfade(tl, ["a", "b"], 30).find_track("track-1").clips[0]
        assert clip.duration_in_frames == 570

    def test_across_video_tracks(self):
        tl = Timeline(tracks=(
            Track(id="track-1", type="video").with_clips([_video("a", 0, 150)]),
            Track(id="track-2", type="video").with_clips([_video("b", 150, 150)]),
        ))
        result = merge_with_crossfade(tl, ["a", "b"], 0)
        assert _spans(result, "track-1") == [(0, 300)]
        assert result.find_track("track-2").clips == ()

    def test_audio_track_rejected(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            merge_with_crossfade(timeline, ["v1", "a1"], 30)
        assert _code(exc_info) == "INCOMPATIBLE_CLIP"

    def test_text_rejected(self):
        text = Clip(id="t", type="text", start_in_frames=0, duration_in_frames=30, text="x")
        tl = _single_track(_video("a", 0, 150), text)
        with pytest.raises(TimelineError) as exc_info:
            merge_with_crossfade(tl, ["a", "t"], 30)
        assert _code(exc_info) == "INCOMPATIBLE_CLIP"

    def test_negative_crossfade(self):
        tl = _single_track(_video("a", 0, 150), _video("b", 150, 150))
        with pytest.raises(TimelineError) as exc_info:
            merge_with_crossfade(tl, ["a", "b"], -1)
        assert _code(exc_info) == "INVALID_PARAMETER"

    def test_crossfade_eats_everything(self):
        tl = _single_track(_video("a", 0, 20), _video("b", 20, 20))
        with pytest.raises(TimelineError) as exc_info:
            merge_with_crossfade(tl, ["a", "b"], 40)
        assert _code(exc_info) == "WOULD_ELIMINATE_CLIP"

    def test_too_few(self):
        tl = _single_track(_video("a", 0, 150))
        with pytest.raises(TimelineError) as exc_info:
            merge_with_crossfade(tl, ["a"], 30)
        assert _code(exc_info) == "TOO_FEW_CLIPS"


# ---------------------------------------------------------------------------
# concatenate / pack_sequential
# ---------------------------------------------------------------------------

class TestConcatenate:
    def test_pack_sequential(self):
        packed = pack_sequential([_video("b", 500, 40), _video("a", 100, 60), _video("c", 900, 10)])
        assert [(c.id, c.start_in_frames) for c in packed] == [("a", 100), ("b", 160), ("c", 200)]
        for prev, nxt in zip(packed, packed[1:]):
            assert nxt.start_in_frames == prev.start_in_frames + prev.duration_in_frames

    def test_pack_sequential_stable_on_ties(self):
        packed = pack_sequential([_video("x", 0, 10), _video("y", 0, 20)])
        assert [c.id for c in packed] == ["x", "y"]

    def test_pack_empty(self):
        assert pack_sequential([]) == []

    def test_concatenate_sums_durations(self):
        tl = _single_track(_video("a", 100, 60), _video("b", 500, 40))
        result = concatenate(tl, ["b", "a"])
        assert _spans(result) == [(100, 100)]
        assert result.find_track("track-1").clips[0].asset_url == "/media/a.mp4"

    def test_concatenate_text(self, timeline):
        clip = concatenate(timeline, ["t1", "t2"]).find_track("track-2").clips[0]
        assert clip.text == "Hello World"
        assert clip.duration_in_frames == 180

    def test_different_tracks(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            concatenate(timeline, ["v1", "a1"])
        assert _code(exc_info) == "CLIPS_ON_DIFFERENT_TRACKS"


# ---------------------------------------------------------------------------
# move_to / duplicate_at
# ---------------------------------------------------------------------------

class TestMoveTo:
    def test_move_within_track(self, timeline):
        result = move_to(timeline, "v1", 900)
        clips = result.find_track("track-1").clips
        assert [c.id for c in clips] == ["v2", "v1"]
        assert clips[1].start_in_frames == 900

    def test_move_to_other_track(self, timeline):
        result = move_to(timeline, "v2", 0, "track-3")
        assert [c.id for c in result.find_track("track-1").clips] == ["v1"]
        moved = result.find_clip("v2")
        assert moved[0].id == "track-3"
        assert moved[2].track_id == "track-3"

    def test_overlap_allowed(self, timeline):
        result = move_to(timeline, "v2", 0)
        assert [c.start_in_frames for c in result.find_track("track-1").clips] == [0, 0]

    def test_negative_start(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            move_to(timeline, "v1", -10)
        assert _code(exc_info) == "NEGATIVE_POSITION"

    def test_unknown_track(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            move_to(timeline, "v1", 0, "track-9")
        assert _code(exc_info) == "TRACK_NOT_FOUND"
        assert exc_info.value.context["available"] == ["track-1", "track-2", "track-3"]


class TestDuplicateAt:
    def test_duplicate(self, timeline):
        result = duplicate_at(timeline, "v1", 600)
        clips = result.find_track("track-1").clips
        assert len(clips) == 3
        original, copy = clips[0], clips[1]
        assert original.id == "v1"
        assert copy.id != "v1"
        assert copy.start_in_frames == 600
        assert copy.duration_in_frames == original.duration_in_frames
        assert copy.asset_url == original.asset_url

    def test_missing_clip(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            duplicate_at(timeline, "ghost", 0)
        assert _code(exc_info) == "CLIP_NOT_FOUND"


# ---------------------------------------------------------------------------
# Structural helpers
# ---------------------------------------------------------------------------

class TestStructuralHelpers:
    def test_add_and_remove_track(self, timeline):
        result = add_track(timeline, create_track("image", "track-9"), index=0)
        assert result.track_ids()[0] == "track-9"
        assert remove_track(result, "track-9").track_ids() == timeline.track_ids()

    def test_duplicate_track(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            add_track(timeline, create_track("video", "track-1"))
        assert _code(exc_info) == "DUPLICATE_TRACK_ID"

    def test_add_clip(self, timeline):
        clip = create_text_clip("New", 300)
        result = add_clip(timeline, "track-2", clip)
        assert result.find_clip(clip.id)[2].track_id == "track-2"

    def test_add_clip_duplicate_id(self, timeline):
        with pytest.raises(TimelineError) as exc_info:
            add_clip(timeline, "track-1", _video("v1", 0, 10))
        assert _code(exc_info) == "DUPLICATE_CLIP_ID"

    def test_remove_clip(self, timeline):
        assert remove_clip(timeline, "v1").find_clip("v1") is None

    def test_fades(self, timeline):
        result = add_fade_out(add_fade_in(timeline, "v1"), "v1", 45)
        effects = result.find_clip("v1")[2].effects
        assert effects == (Effect("fade-in", 30), Effect("fade-out", 45))

    def test_fade_not_doubled(self, timeline):
        once = add_fade_in(timeline, "v1", 20)
        assert add_fade_in(once, "v1", 40) is once

    def test_add_effect(self, timeline):
        result = add_effect(timeline, "t1", Effect("slide-in", 15, "from-top"))
        assert result.find_clip("t1")[2].effects[-1].direction == "from-top"
