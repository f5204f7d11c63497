"""Export a stitched track to disk with a provenance manifest."""

import json
import os
from dataclasses import asdict
from datetime import datetime, timezone

from pydub import AudioSegment

from voicecast.constants import (
    CHANNELS,
    EXPORT_CONTAINERS,
    OUTPUT_BITRATE,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    VERSION,
)
from voicecast.models import JobResult


def export(result: JobResult, output_dir: str, slug: str, manifest: dict) -> str:
    """Write the merged audio and its manifest.

    Creates:
      - <output_dir>/<slug>/<slug>.<format> (the track)
      - <output_dir>/<slug>/output.json (provenance manifest)

    Returns path to the audio file.
    """
    fmt = result.output_format if result.output_format in EXPORT_CONTAINERS else "wav"
    job_dir = os.path.join(output_dir, slug)
    os.makedirs(job_dir, exist_ok=True)

    output_path = os.path.join(job_dir, f"{slug}.{fmt}")
    audio = AudioSegment(
        data=result.audio,
        sample_width=SAMPLE_WIDTH,
        frame_rate=SAMPLE_RATE,
        channels=CHANNELS,
    )
    params = {"format": EXPORT_CONTAINERS[fmt]}
    if fmt != "wav":
        params["bitrate"] = OUTPUT_BITRATE
    audio.export(output_path, **params)

    full_manifest = {
        "project": slug,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "format": fmt,
        "duration_seconds": result.duration_seconds,
        "estimated_bytes": result.byte_size,
        "timeline": [asdict(entry) for entry in result.timeline],
        **manifest,
    }

    manifest_path = os.path.join(job_dir, "output.json")
    with open(manifest_path, "w") as f:
        json.dump(full_manifest, f, indent=2)

    return output_path
