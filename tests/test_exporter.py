"""Tests for exporter module."""

import json

from pydub import AudioSegment

from voicecast.exporter import export
from voicecast.models import JobResult, TimelineEntry


def _result(output_format="wav"):
    return JobResult(
        audio=b"\x01\x00\x01\x00" * 4410,
        duration_seconds=1,
        byte_size=176400,
        output_format=output_format,
        timeline=[TimelineEntry("seg_0001", "Narrator", 0.0, 0.1)],
    )


def test_export_wav(tmp_path):
    """Track written as 44.1 kHz stereo WAV."""
    path = export(_result(), str(tmp_path), "scene", {"job_id": "job_1"})
    assert path == str(tmp_path / "scene" / "scene.wav")
    audio = AudioSegment.from_wav(path)
    assert audio.channels == 2
    assert audio.frame_rate == 44100
    assert len(audio) == 100


def test_export_manifest(tmp_path):
    """output.json carries provenance, timeline and caller fields."""
    export(_result(), str(tmp_path), "scene", {"job_id": "job_1", "intensity": 1.5})
    with open(tmp_path / "scene" / "output.json") as f:
        manifest = json.load(f)
    assert manifest["project"] == "scene"
    assert manifest["format"] == "wav"
    assert manifest["duration_seconds"] == 1
    assert manifest["job_id"] == "job_1"
    assert manifest["intensity"] == 1.5
    assert manifest["timeline"][0]["segment_id"] == "seg_0001"
    assert "generated_at" in manifest
    assert "producer_version" in manifest


def test_export_unknown_format_falls_back_to_wav(tmp_path):
    path = export(_result("ogg"), str(tmp_path), "scene", {})
    assert path.endswith("scene.wav")
