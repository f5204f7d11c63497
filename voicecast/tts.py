"""Speech synthesis clients: mock, edge-tts and ElevenLabs.

Every client returns raw PCM in the pipeline layout (44.1 kHz, 16-bit,
stereo) so the stitcher can concatenate buffers without resampling.
"""

import asyncio
import hashlib
import io
import logging
import math
import os
from typing import Protocol

import edge_tts
import numpy as np
from elevenlabs import VoiceSettings
from elevenlabs.client import ElevenLabs
from pydub import AudioSegment

from voicecast.constants import (
    CHANNELS,
    ELEVENLABS_MODEL,
    ELEVENLABS_OUTPUT_FORMAT,
    MIN_SEGMENT_SECONDS,
    MOCK_TONE_AMPLITUDE,
    MOCK_TONE_HZ,
    NARRATION_WORDS_PER_SECOND,
    PROVIDER,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    TTS_RATE,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
)
from voicecast.errors import SynthesisError
from voicecast.models import EmotionParameters, VoiceType

logger = logging.getLogger(__name__)

# Hardcoded English voices per type (avoids a voice-list call at startup)
EDGE_VOICES = {
    VoiceType.NARRATOR: "en-US-GuyNeural",
    VoiceType.HUMAN_MALE: "en-US-DavisNeural",
    VoiceType.HUMAN_FEMALE: "en-US-JennyNeural",
    VoiceType.VAMPIRE_MALE: "en-GB-ThomasNeural",
    VoiceType.VAMPIRE_FEMALE: "en-GB-SoniaNeural",
    VoiceType.WEREWOLF_MALE: "en-US-TonyNeural",
    VoiceType.WEREWOLF_FEMALE: "en-AU-NatashaNeural",
    VoiceType.FAIRY_MALE: "en-IE-ConnorNeural",
    VoiceType.FAIRY_FEMALE: "en-US-AriaNeural",
}

# Stock ElevenLabs voices, overridable per type via ELEVENLABS_VOICE_<TYPE>
ELEVENLABS_VOICES = {
    VoiceType.NARRATOR: "21m00Tcm4TlvDq8ikWAM",
    VoiceType.HUMAN_MALE: "pNInz6obpgDQGcFmaJgB",
    VoiceType.HUMAN_FEMALE: "EXAVITQu4vr4xnSDxMaL",
    VoiceType.VAMPIRE_MALE: "EXAVITQu4vr4xnSDxMaL",
    VoiceType.VAMPIRE_FEMALE: "21m00Tcm4TlvDq8ikWAM",
    VoiceType.WEREWOLF_MALE: "pNInz6obpgDQGcFmaJgB",
    VoiceType.WEREWOLF_FEMALE: "EXAVITQu4vr4xnSDxMaL",
    VoiceType.FAIRY_MALE: "21m00Tcm4TlvDq8ikWAM",
    VoiceType.FAIRY_FEMALE: "pNInz6obpgDQGcFmaJgB",
}


class SynthesisClient(Protocol):
    async def synthesize(self, text: str, voice_ref: str, params: EmotionParameters) -> bytes:
        ...

    def default_voices(self) -> dict[VoiceType, str]:
        ...


def to_pipeline_pcm(audio: AudioSegment) -> bytes:
    """Convert decoded audio to the pipeline PCM layout."""
    audio = (
        audio.set_frame_rate(SAMPLE_RATE)
        .set_channels(CHANNELS)
        .set_sample_width(SAMPLE_WIDTH)
    )
    return audio.raw_data


async def _with_retry(call, label: str, retries: int, base_delay: float) -> bytes:
    """Await call() until it returns non-empty audio, backing off between tries.

    Empty output counts as a failure. Raises SynthesisError after the last try.
    """
    last_error = None
    for attempt in range(retries):
        try:
            data = await call()
            if data:
                return data
            last_error = SynthesisError(f"{label} produced no audio")
        except Exception as e:
            last_error = e

        # Exponential backoff
        if attempt < retries - 1:
            delay = base_delay * (2 ** attempt)
            logger.debug("%s attempt %d failed (%s), retrying in %.1fs",
                         label, attempt + 1, last_error, delay)
            await asyncio.sleep(delay)

    if isinstance(last_error, SynthesisError):
        raise last_error
    raise SynthesisError(f"{label} failed after {retries} attempts: {last_error}") from last_error


class MockSynthesisClient:
    """Deterministic placeholder audio: a quiet tone per voice.

    Clip length follows the plain narration pace so stitched output has
    plausible timing without any network access.
    """

    def default_voices(self) -> dict[VoiceType, str]:
        return {vt: f"mock-{vt.value}" for vt in VoiceType}

    def estimate_seconds(self, text: str) -> float:
        words = len(text.split())
        return max(MIN_SEGMENT_SECONDS, words / NARRATION_WORDS_PER_SECOND)

    def render(self, text: str, voice_ref: str) -> bytes:
        frames = math.ceil(self.estimate_seconds(text) * SAMPLE_RATE)
        # Same voice, same pitch
        step = int(hashlib.sha256(voice_ref.encode()).hexdigest(), 16) % 8
        freq = MOCK_TONE_HZ * (1 + step / 8)
        t = np.arange(frames) / SAMPLE_RATE
        wave = MOCK_TONE_AMPLITUDE * 32767 * np.sin(2 * np.pi * freq * t)
        samples = wave.astype("<i2")
        return np.repeat(samples, CHANNELS).tobytes()

    async def synthesize(self, text: str, voice_ref: str, params: EmotionParameters) -> bytes:
        return self.render(text, voice_ref)


def edge_prosody(params: EmotionParameters) -> dict[str, str]:
    """Map emotion parameters onto edge-tts rate, pitch and volume strings."""
    base_rate = int(TTS_RATE.rstrip("%"))
    rate = base_rate + round((params.style - 0.5) * 20)
    pitch = round((0.5 - params.stability) * 20)
    volume = 10 if params.use_speaker_boost else 0
    return {
        "rate": f"{rate:+d}%",
        "pitch": f"{pitch:+d}Hz",
        "volume": f"{volume:+d}%",
    }


class EdgeTTSClient:
    """Free Microsoft voices via edge-tts; MP3 is decoded with pydub."""

    def __init__(self, retries: int = TTS_RETRY_COUNT, retry_base_delay: float = TTS_RETRY_BASE_DELAY):
        self.retries = retries
        self.retry_base_delay = retry_base_delay

    def default_voices(self) -> dict[VoiceType, str]:
        return dict(EDGE_VOICES)

    async def synthesize(self, text: str, voice_ref: str, params: EmotionParameters) -> bytes:
        prosody = edge_prosody(params)

        async def call() -> bytes:
            communicate = edge_tts.Communicate(text, voice_ref, **prosody)
            chunks = []
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    chunks.append(chunk["data"])
            return b"".join(chunks)

        mp3 = await _with_retry(call, f"edge-tts ({voice_ref})", self.retries, self.retry_base_delay)
        return await asyncio.to_thread(_decode_mp3, mp3)


def _decode_mp3(data: bytes) -> bytes:
    return to_pipeline_pcm(AudioSegment.from_file(io.BytesIO(data), format="mp3"))


def _decode_elevenlabs_pcm(data: bytes) -> bytes:
    # pcm_44100 is mono 16-bit; drop a trailing half sample if present
    data = data[: len(data) - len(data) % SAMPLE_WIDTH]
    mono = AudioSegment(data=data, sample_width=SAMPLE_WIDTH, frame_rate=SAMPLE_RATE, channels=1)
    return to_pipeline_pcm(mono)


def elevenlabs_voices() -> dict[VoiceType, str]:
    """Stock voices, overridden by ELEVENLABS_VOICE_<TYPE> env vars."""
    voices = {}
    for vt, default in ELEVENLABS_VOICES.items():
        voices[vt] = os.environ.get(f"ELEVENLABS_VOICE_{vt.value.upper()}") or default
    return voices


class ElevenLabsClient:
    """ElevenLabs text-to-speech; the sync SDK runs in a worker thread."""

    def __init__(
        self,
        api_key: str,
        model_id: str = ELEVENLABS_MODEL,
        retries: int = TTS_RETRY_COUNT,
        retry_base_delay: float = TTS_RETRY_BASE_DELAY,
    ):
        self.client = ElevenLabs(api_key=api_key)
        self.model_id = model_id
        self.retries = retries
        self.retry_base_delay = retry_base_delay

    def default_voices(self) -> dict[VoiceType, str]:
        return elevenlabs_voices()

    def _convert(self, text: str, voice_ref: str, params: EmotionParameters) -> bytes:
        audio = self.client.text_to_speech.convert(
            voice_id=voice_ref,
            text=text,
            model_id=self.model_id,
            output_format=ELEVENLABS_OUTPUT_FORMAT,
            voice_settings=VoiceSettings(
                stability=params.stability,
                similarity_boost=params.similarity_boost,
                style=params.style,
                use_speaker_boost=params.use_speaker_boost,
            ),
        )
        # SDK yields chunks
        return b"".join(audio)

    async def synthesize(self, text: str, voice_ref: str, params: EmotionParameters) -> bytes:
        async def call() -> bytes:
            return await asyncio.to_thread(self._convert, text, voice_ref, params)

        pcm = await _with_retry(call, f"ElevenLabs ({voice_ref})", self.retries, self.retry_base_delay)
        return _decode_elevenlabs_pcm(pcm)


def create_client(provider: str | None = None) -> SynthesisClient:
    """Pick a synthesis client from the argument or VOICECAST_PROVIDER.

    "elevenlabs" needs ELEVENLABS_API_KEY; without it, and for unknown
    providers, the mock client is used.
    """
    provider = (provider or PROVIDER or "").strip().lower()
    api_key = os.environ.get("ELEVENLABS_API_KEY", "").strip()

    if provider == "elevenlabs":
        if api_key:
            return ElevenLabsClient(api_key)
        logger.warning("ELEVENLABS_API_KEY not set, falling back to mock audio")
        return MockSynthesisClient()
    if provider == "edge":
        return EdgeTTSClient()
    if provider == "mock":
        return MockSynthesisClient()
    if provider:
        logger.warning("Unknown synthesis provider %r, falling back to mock audio", provider)
        return MockSynthesisClient()
    if api_key:
        return ElevenLabsClient(api_key)
    logger.info("No synthesis provider configured, using mock audio")
    return MockSynthesisClient()
