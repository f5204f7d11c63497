"""Shared fixtures for voicecast tests."""

import asyncio

import pytest

from voicecast.models import Segment, VoiceType

VAMPIRE_SCRIPT = '[Vampire Lord, seductive]: "Come closer." [Human Girl, fearful]: "Stay back!"'


class FakeClient:
    """Scriptable synthesis client.

    Audio for a line is the line's own bytes padded to a whole frame, so
    stitched output can be searched for each line in order.
    """

    def __init__(self, fail_texts=(), empty_texts=(), delays=None):
        self.fail_texts = set(fail_texts)
        self.empty_texts = set(empty_texts)
        self.delays = delays or {}
        self.gate: asyncio.Event | None = None
        self.calls = []
        self.active = 0
        self.max_active = 0

    def default_voices(self):
        return {vt: f"fake-{vt.value}" for vt in VoiceType}

    @staticmethod
    def audio_for(text: str) -> bytes:
        data = text.encode()
        return data + bytes(-len(data) % 4)

    async def synthesize(self, text, voice_ref, params):
        self.calls.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delays.get(text, 0))
            if text in self.fail_texts:
                raise RuntimeError(f"upstream error for {text!r}")
            if text in self.empty_texts:
                return b""
            return self.audio_for(text)
        finally:
            self.active -= 1


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def vampire_script():
    return VAMPIRE_SCRIPT


@pytest.fixture
def numbered_script():
    """Script factory: n tagged lines alternating two speakers."""
    def make(n):
        speakers = ["Lady Mira", "Count Orlok"]
        return "\n".join(f"[{speakers[i % 2]}]: Line {i + 1}." for i in range(n))
    return make


@pytest.fixture
def pcm_segments():
    """Narration then dialogue segments carrying 0.1s of PCM each."""
    clip = b"\x01\x00" * 2 * 4410
    segments = [
        Segment(id="seg_0001", index=0, speaker="Narrator", text="It was dark."),
        Segment(id="seg_0002", index=1, speaker="Lady Mira", text="Who is there?", emotion="fearful"),
        Segment(id="seg_0003", index=2, speaker="Count Orlok", text="Only me.", emotion="menacing"),
    ]
    for seg in segments:
        seg.mark_done(clip)
    return segments
