"""Tests for assembly module."""

import pytest

from voicecast.assembly import (
    calculate_pause,
    estimate_byte_size,
    estimate_segment_duration,
    silence,
    stitch,
)
from voicecast.errors import ErrorCode, NoAudioError
from voicecast.models import Segment

FRAME = 4  # 16-bit stereo


def _seg(index, speaker="Narrator", emotion=None, text="word", audio=b"\x01\x00\x01\x00"):
    seg = Segment(id=f"seg_{index + 1:04d}", index=index, speaker=speaker, text=text, emotion=emotion)
    seg.mark_done(audio)
    return seg


# --- Pauses ---

def test_pause_narration_to_dialogue():
    assert calculate_pause(_seg(0), _seg(1, "Mira")) == 0.3


def test_pause_dialogue_to_narration():
    assert calculate_pause(_seg(0, "Mira"), _seg(1)) == 0.5


def test_pause_speaker_change():
    assert calculate_pause(_seg(0, "Mira"), _seg(1, "Orlok")) == 0.7


def test_pause_same_speaker():
    assert calculate_pause(_seg(0, "Mira"), _seg(1, "Mira")) == 0.5


def test_pause_after_intense_emotion():
    """High-intensity negative emotion overrides the structural gap."""
    assert calculate_pause(_seg(0, "Orlok", "angry"), _seg(1, "Mira")) == 0.8
    assert calculate_pause(_seg(0, "Orlok", "menacing"), _seg(1)) == 0.8


def test_pause_before_gentle_emotion():
    assert calculate_pause(_seg(0, "Orlok"), _seg(1, "Mira", "tender")) == 0.6
    assert calculate_pause(_seg(0, "Orlok"), _seg(1, "Mira", "fearful")) == 0.6


def test_pause_intense_wins_over_gentle():
    assert calculate_pause(_seg(0, "Orlok", "angry"), _seg(1, "Mira", "fearful")) == 0.8


# --- Estimates ---

def test_segment_duration_estimate():
    assert estimate_segment_duration("one") == 1
    assert estimate_segment_duration("one two three four five") == 3   # 5 / 2.2 → 2.27
    assert estimate_segment_duration("") == 1


def test_byte_size_by_format():
    assert estimate_byte_size(2, "wav") == 352800
    assert estimate_byte_size(2, "mp3") == 32000
    assert estimate_byte_size(2, "aac") == 24000
    assert estimate_byte_size(2, "flac") == 32000


def test_silence_is_zero_pcm():
    pause = silence(0.5)
    assert pause.raw_data == bytes(22050 * FRAME)
    assert pause.channels == 2
    assert pause.frame_rate == 44100


# --- Stitching ---

def test_stitch_empty_raises():
    with pytest.raises(NoAudioError) as exc_info:
        stitch([])
    assert exc_info.value.code == ErrorCode.NO_AUDIO


def test_stitch_out_of_order_raises():
    with pytest.raises(AssertionError):
        stitch([_seg(1), _seg(0)])


def test_stitch_duplicate_index_raises():
    with pytest.raises(AssertionError):
        stitch([_seg(0), _seg(0)])


def test_stitch_single_segment():
    seg = _seg(0, text="Hello there.")
    result = stitch([seg])
    assert result.audio == seg.audio
    assert result.duration_seconds == 1
    assert len(result.timeline) == 1


def test_stitch_inserts_pauses(pcm_segments):
    """Audio, then 0.6s gap before fearful, then 0.7s speaker change gap."""
    result = stitch(pcm_segments)
    clip = pcm_segments[0].audio
    gap_fearful = bytes(int(0.6 * 44100) * FRAME)
    gap_speaker = bytes(int(0.7 * 44100) * FRAME)
    assert result.audio == clip + gap_fearful + clip + gap_speaker + clip


def test_stitch_duration_and_size(pcm_segments):
    """Sum of word estimates plus pauses, rounded up."""
    result = stitch(pcm_segments, output_format="mp3")
    # 2 + 2 + 1 seconds of speech, 0.6 + 0.7 of pauses
    assert result.duration_seconds == 7
    assert result.byte_size == 7 * 16000


def test_stitch_timeline(pcm_segments):
    result = stitch(pcm_segments)
    assert [e.segment_id for e in result.timeline] == ["seg_0001", "seg_0002", "seg_0003"]
    assert [e.speaker for e in result.timeline] == ["Narrator", "Lady Mira", "Count Orlok"]
    assert result.timeline[0].start == 0.0
    assert result.timeline[1].start == pytest.approx(0.7)
    assert result.timeline[2].start == pytest.approx(1.5)
    assert result.timeline[0].duration == pytest.approx(0.1)


def test_stitch_pads_partial_frames():
    """Buffers ending mid-frame are padded to a whole frame."""
    result = stitch([_seg(0, audio=b"\x01\x02\x03")])
    assert result.audio == b"\x01\x02\x03\x00"


def test_stitch_skips_gaps_in_index():
    """Missing (failed) segments leave no hole beyond the normal pause."""
    first, third = _seg(0, "Mira"), _seg(2, "Mira")
    result = stitch([first, third])
    assert result.audio == first.audio + bytes(int(0.5 * 44100) * FRAME) + third.audio
