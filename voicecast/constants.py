"""All magic numbers and configuration constants."""

import os

# Script parsing
NARRATOR_SPEAKER = "Narrator"            # speaker for untagged text

# Job orchestration
MAX_CONCURRENT_JOBS = 3                  # jobs processing at once; the rest stay queued
BATCH_SIZE = 3                           # segments synthesized in parallel per batch
SCHEDULER_TICK_SECONDS = 1.0             # queue polling interval
BATCH_DELAY_SECONDS = 0.5                # pause between batches (upstream rate limits)
JOB_RETENTION_SECONDS = 60 * 60          # terminal jobs stay pollable this long
SECONDS_PER_SEGMENT_ESTIMATE = 3         # initial ETA before any batch has finished
PROGRESS_SYNTHESIS_SHARE = 90            # % of progress bar owned by synthesis
PROGRESS_MERGE_PERCENT = 95              # % shown while stitching

# Duration estimates
NARRATION_WORDS_PER_SECOND = 2.5         # plain narration (placeholder audio)
EMOTIONAL_WORDS_PER_SECOND = 2.2         # stitched dialogue, slightly slower
MIN_SEGMENT_SECONDS = 1

# Pipeline PCM layout: every buffer handed to the stitcher uses this
SAMPLE_RATE = 44100
CHANNELS = 2
SAMPLE_WIDTH = 2                         # bytes, 16-bit signed little-endian

# Pauses between adjacent segments (seconds)
PAUSE_DEFAULT = 0.5
PAUSE_NARRATION_TO_DIALOGUE = 0.3
PAUSE_DIALOGUE_TO_NARRATION = 0.5
PAUSE_SPEAKER_CHANGE = 0.7
PAUSE_AFTER_INTENSE = 0.8                # after high-intensity negative emotions
PAUSE_BEFORE_GENTLE = 0.6                # before tender / fearful emotions

# Output size estimate per format (bytes per second)
BYTES_PER_SECOND = {
    "mp3": 16000,                        # 128 kbps
    "wav": 176400,                       # 16-bit, 44.1 kHz, stereo
    "aac": 12000,                        # 96 kbps
}
DEFAULT_OUTPUT_FORMAT = "wav"

# Emotion mapping
MAX_INTENSITY = 2.0
BOOST_INTENSITY_THRESHOLD = 1.2          # above this, speaker boost is forced on

# Voice assignment
DEFAULT_GENDER = os.environ.get("VOICECAST_DEFAULT_GENDER", "male").strip().lower()
DEFAULT_VOICE_REF = "21m00Tcm4TlvDq8ikWAM"   # hard fallback when a voice lookup fails

# Synthesis providers
PROVIDER = os.environ.get("VOICECAST_PROVIDER", "").strip().lower()
TTS_RETRY_COUNT = 3                      # max attempts per live TTS call
TTS_RETRY_BASE_DELAY = 1.0               # seconds, base for exponential backoff
TTS_RATE = "-10%"                        # edge-tts speech rate at neutral style
ELEVENLABS_MODEL = os.environ.get("ELEVENLABS_MODEL", "eleven_multilingual_v2")
ELEVENLABS_OUTPUT_FORMAT = "pcm_44100"   # mono 16-bit PCM
MOCK_TONE_HZ = 220.0
MOCK_TONE_AMPLITUDE = 0.05

# Export
OUTPUT_DIR = "output"
EXPORT_CONTAINERS = {"wav": "wav", "mp3": "mp3", "aac": "adts"}
OUTPUT_BITRATE = "192k"
VERSION = "0.1.0"
