"""Data models for multi-voice script synthesis."""

import time
from dataclasses import dataclass, field
from enum import Enum


class Archetype(str, Enum):
    NARRATOR = "narrator"
    HUMAN = "human"
    VAMPIRE = "vampire"
    WEREWOLF = "werewolf"
    FAIRY = "fairy"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class VoiceType(str, Enum):
    NARRATOR = "narrator"
    HUMAN_MALE = "human_male"
    HUMAN_FEMALE = "human_female"
    VAMPIRE_MALE = "vampire_male"
    VAMPIRE_FEMALE = "vampire_female"
    WEREWOLF_MALE = "werewolf_male"
    WEREWOLF_FEMALE = "werewolf_female"
    FAIRY_MALE = "fairy_male"
    FAIRY_FEMALE = "fairy_female"

    @classmethod
    def for_character(cls, archetype: Archetype, gender: Gender | None) -> "VoiceType":
        if archetype is Archetype.NARRATOR or gender is None:
            return cls.NARRATOR
        return cls(f"{archetype.value}_{gender.value}")


class EmotionCategory(str, Enum):
    PRIMARY = "primary"
    ROMANTIC = "romantic"
    POWER = "power"
    FEAR = "fear"
    SUPERNATURAL = "supernatural"
    DARK = "dark"
    COMPLEX = "complex"
    SOCIAL = "social"
    ENERGY = "energy"
    EXPRESSION = "expression"
    NEUTRAL = "neutral"


class SegmentStatus(str, Enum):
    PENDING = "pending"
    INFLIGHT = "inflight"
    DONE = "done"
    FAILED = "failed"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True)
class VoiceIdentity:
    archetype: Archetype
    gender: Gender | None      # None for the narrator
    voice_type: VoiceType
    voice_ref: str             # opaque handle understood by the synthesis client


@dataclass(frozen=True)
class EmotionParameters:
    stability: float
    similarity_boost: float
    style: float
    use_speaker_boost: bool


@dataclass
class Segment:
    id: str
    index: int                 # position in the script
    speaker: str               # name as written, or "Narrator"
    text: str
    emotion: str | None = None  # trimmed, lower-cased label
    voice: VoiceIdentity | None = None
    params: EmotionParameters | None = None
    status: SegmentStatus = SegmentStatus.PENDING
    audio: bytes | None = None
    error: str | None = None

    @property
    def type(self) -> str:
        """"narration" for narrator speakers, "dialogue" for characters."""
        if "narrator" in self.speaker.lower():
            return "narration"
        return "dialogue"

    def annotate(self, voice: VoiceIdentity, params: EmotionParameters) -> None:
        """Attach voice and parameters; both are fixed once set."""
        if self.voice is not None or self.params is not None:
            raise RuntimeError(f"Segment {self.id} is already annotated")
        self.voice = voice
        self.params = params

    def mark_done(self, audio: bytes) -> None:
        self.status = SegmentStatus.DONE
        self.audio = audio
        self.error = None

    def mark_failed(self, error: str) -> None:
        self.status = SegmentStatus.FAILED
        self.audio = None
        self.error = error


@dataclass
class Progress:
    percentage: int = 0
    message: str = ""
    eta_seconds: int | None = None


@dataclass(frozen=True)
class TimelineEntry:
    segment_id: str
    speaker: str
    start: float               # seconds from track start
    duration: float


@dataclass
class JobResult:
    audio: bytes
    duration_seconds: int
    byte_size: int
    output_format: str
    timeline: list[TimelineEntry] = field(default_factory=list)
    audio_url: str | None = None


@dataclass
class Job:
    job_id: str
    segments: list[Segment]
    status: JobStatus = JobStatus.QUEUED
    completed_count: int = 0
    progress: Progress = field(default_factory=Progress)
    created_at: float = field(default_factory=time.time)
    started_at: float | None = None
    finished_at: float | None = None
    intensity: float = 1.0
    output_format: str = "wav"
    error_code: str | None = None
    error_message: str | None = None
    result: JobResult | None = None
    cancelled: bool = False

    @property
    def total_segments(self) -> int:
        return len(self.segments)

    @property
    def succeeded(self) -> list[Segment]:
        """Successfully synthesized segments, in script order."""
        return [s for s in self.segments if s.status is SegmentStatus.DONE]


@dataclass(frozen=True)
class ProgressEvent:
    job_id: str
    status: JobStatus
    progress: Progress
    terminal: bool = False
