"""Stitch synthesized segments into one track with context-aware pauses."""

import math
from dataclasses import dataclass, field

from pydub import AudioSegment

from voicecast.constants import (
    BYTES_PER_SECOND,
    CHANNELS,
    DEFAULT_OUTPUT_FORMAT,
    EMOTIONAL_WORDS_PER_SECOND,
    MIN_SEGMENT_SECONDS,
    PAUSE_AFTER_INTENSE,
    PAUSE_BEFORE_GENTLE,
    PAUSE_DEFAULT,
    PAUSE_DIALOGUE_TO_NARRATION,
    PAUSE_NARRATION_TO_DIALOGUE,
    PAUSE_SPEAKER_CHANGE,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
)
from voicecast.errors import NoAudioError
from voicecast.models import Segment, TimelineEntry

INTENSE_EMOTIONS = frozenset({
    "angry", "anger", "menacing", "furious", "rage", "vengeful",
    "bloodthirsty", "shouting",
})
GENTLE_EMOTIONS = frozenset({
    "tender", "fearful", "fear", "gentle", "loving", "vulnerable",
})

FRAME_WIDTH = CHANNELS * SAMPLE_WIDTH


@dataclass
class StitchResult:
    audio: bytes
    duration_seconds: int
    byte_size: int
    timeline: list[TimelineEntry] = field(default_factory=list)


def calculate_pause(prev: Segment, curr: Segment) -> float:
    """Pause in seconds between two adjacent segments.

    Structural rules pick a base gap; emotion rules then override it.
    """
    if prev.type == "narration" and curr.type == "dialogue":
        pause = PAUSE_NARRATION_TO_DIALOGUE
    elif prev.type == "dialogue" and curr.type == "narration":
        pause = PAUSE_DIALOGUE_TO_NARRATION
    elif prev.speaker != curr.speaker:
        pause = PAUSE_SPEAKER_CHANGE
    else:
        pause = PAUSE_DEFAULT

    if prev.emotion in INTENSE_EMOTIONS:
        pause = PAUSE_AFTER_INTENSE
    elif curr.emotion in GENTLE_EMOTIONS:
        pause = PAUSE_BEFORE_GENTLE

    return pause


def estimate_segment_duration(text: str) -> int:
    """Spoken duration in whole seconds at the emotional dialogue pace."""
    words = len(text.split())
    return max(MIN_SEGMENT_SECONDS, math.ceil(words / EMOTIONAL_WORDS_PER_SECOND))


def estimate_byte_size(duration_seconds: float, output_format: str) -> int:
    rate = BYTES_PER_SECOND.get(output_format, BYTES_PER_SECOND["mp3"])
    return math.ceil(duration_seconds * rate)


def silence(seconds: float) -> AudioSegment:
    """Zero-valued PCM at the pipeline layout."""
    frames = int(seconds * SAMPLE_RATE)
    return _pcm_segment(bytes(frames * FRAME_WIDTH))


def _pcm_segment(data: bytes) -> AudioSegment:
    # pydub rejects buffers that end mid-frame
    remainder = len(data) % FRAME_WIDTH
    if remainder:
        data = data + bytes(FRAME_WIDTH - remainder)
    return AudioSegment(
        data=data,
        sample_width=SAMPLE_WIDTH,
        frame_rate=SAMPLE_RATE,
        channels=CHANNELS,
    )


def stitch(segments: list[Segment], output_format: str = DEFAULT_OUTPUT_FORMAT) -> StitchResult:
    """Concatenate segment audio in script order with pauses between them.

    Raises NoAudioError on empty input and AssertionError when segments are
    not in strictly increasing script order.
    """
    if not segments:
        raise NoAudioError()
    for prev, curr in zip(segments, segments[1:]):
        if curr.index <= prev.index:
            raise AssertionError(
                f"Segments out of order: {prev.id} (index {prev.index}) "
                f"before {curr.id} (index {curr.index})"
            )

    result = None
    timeline = []
    estimated = 0.0
    for i, seg in enumerate(segments):
        if i > 0:
            pause = calculate_pause(segments[i - 1], seg)
            result += silence(pause)
            estimated += pause
        clip = _pcm_segment(seg.audio or b"")
        start = len(result) if result is not None else 0
        timeline.append(TimelineEntry(
            segment_id=seg.id,
            speaker=seg.speaker,
            start=round(start / 1000, 3),
            duration=round(len(clip) / 1000, 3),
        ))
        result = clip if result is None else result + clip
        estimated += estimate_segment_duration(seg.text)

    duration = math.ceil(estimated)
    return StitchResult(
        audio=result.raw_data,
        duration_seconds=duration,
        byte_size=estimate_byte_size(duration, output_format),
        timeline=timeline,
    )
