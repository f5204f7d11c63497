"""Stable error codes and exception types for job-level failures."""


class ErrorCode:
    NO_AUDIO = "NO_AUDIO"
    EMPTY_SCRIPT = "EMPTY_SCRIPT"
    NO_SEGMENTS_SYNTHESIZED = "NO_SEGMENTS_SYNTHESIZED"
    JOB_CANCELLED = "JOB_CANCELLED"
    SHUTDOWN = "SHUTDOWN"
    STITCH_FAILED = "STITCH_FAILED"
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"


class VoicecastError(RuntimeError):
    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


class NoAudioError(VoicecastError):
    """Stitching was asked to merge zero segments."""

    def __init__(self, message: str = "No audio segments to stitch") -> None:
        super().__init__(message, code=ErrorCode.NO_AUDIO)


class SynthesisError(VoicecastError):
    """A provider call failed or returned no audio."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.SYNTHESIS_FAILED)
