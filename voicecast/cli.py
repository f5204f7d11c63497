"""CLI interface with subcommand routing."""

import argparse
import asyncio
import logging
import os
import shutil
import sys

from voicecast.constants import DEFAULT_OUTPUT_FORMAT, EXPORT_CONTAINERS, OUTPUT_DIR, VERSION
from voicecast.emotions import EMOTIONS, available_emotions, emotion_info
from voicecast.models import EmotionCategory, JobStatus
from voicecast.orchestrator import JobOrchestrator
from voicecast.parser import parse_script, speakers
from voicecast.tts import EdgeTTSClient, create_client
from voicecast.voices import VoiceRegistry, load_cast


def _check_ffmpeg():
    """Verify ffmpeg is installed."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _read_script(file_path: str) -> str:
    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    with open(file_path) as f:
        text = f.read()
    if not text.strip():
        print(f"Error: File is empty: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return text


def cmd_parse(args):
    """Show the segments parsed from a script."""
    segments = parse_script(_read_script(args.file))
    for seg in segments:
        emotion = seg.emotion or "-"
        preview = seg.text if len(seg.text) <= 60 else seg.text[:57] + "..."
        print(f"  {seg.id}  {seg.type:<9} {seg.speaker:<20} {emotion:<12} {preview}")
    narration = sum(1 for s in segments if s.type == "narration")
    print(f"Parsed {len(segments)} segments ({narration} narration, "
          f"{len(segments) - narration} dialogue)")


def cmd_voices(args):
    """Show the voice each speaker in a script would get."""
    segments = parse_script(_read_script(args.file))
    client = create_client(args.provider)
    registry = VoiceRegistry(client.default_voices(), cast=load_cast(args.file))
    print("Cast:")
    for name in speakers(segments):
        identity = registry.assign(name)
        print(f"  {name:<20} → {identity.voice_type.value:<16} {identity.voice_ref}")


def cmd_emotions(args):
    """List known emotion labels."""
    if args.category:
        try:
            category = EmotionCategory(args.category.lower())
        except ValueError:
            valid = ", ".join(c.value for c in EmotionCategory)
            print(f"Error: Unknown category: {args.category}", file=sys.stderr)
            print(f"Valid categories: {valid}", file=sys.stderr)
            raise SystemExit(1)
        labels = [e for e in available_emotions() if EMOTIONS[e][0] is category]
        print(f"{category.value}: {', '.join(labels)}")
        return

    info = emotion_info()
    print(f"{info['total_emotions']} emotions:")
    for category, labels in info["categories"].items():
        print(f"  {category:<13} {', '.join(labels)}")


def _print_progress(event):
    progress = event.progress
    eta = f" (eta {progress.eta_seconds}s)" if progress.eta_seconds else ""
    print(f"  [{progress.percentage:3d}%] {progress.message}{eta}")


async def _run_job(client, text: str, cast: dict, args):
    async with JobOrchestrator(client, cast=cast, output_dir=args.output) as orch:
        job_id = orch.submit(
            text,
            intensity=args.intensity,
            output_format=args.format,
            on_progress=_print_progress,
        )
        try:
            return await orch.wait(job_id)
        except asyncio.CancelledError:
            orch.cancel(job_id)
            raise


def cmd_run(args):
    """Synthesize a script into one audio file."""
    text = _read_script(args.file)
    client = create_client(args.provider)
    if args.format != "wav" or isinstance(client, EdgeTTSClient):
        _check_ffmpeg()

    print(f"Synthesizing {args.file} with {type(client).__name__}...")
    try:
        job = asyncio.run(_run_job(client, text, load_cast(args.file), args))
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        raise SystemExit(1)

    if job.status is not JobStatus.COMPLETED:
        print(f"Error: {job.error_message} [{job.error_code}]", file=sys.stderr)
        raise SystemExit(1)

    failed = job.total_segments - len(job.succeeded)
    if failed:
        print(f"Warning: {failed} of {job.total_segments} segments failed and were skipped",
              file=sys.stderr)
    print(f"Done: {job.result.audio_url} ({job.result.duration_seconds}s)")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="voicecast",
        description="voicecast: turn tagged scripts into multi-voice audio",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse
    parse_parser = subparsers.add_parser("parse", help="Show the segments of a script")
    parse_parser.add_argument("file", help="Path to the script file")
    parse_parser.set_defaults(func=cmd_parse)

    # voices
    voices_parser = subparsers.add_parser("voices", help="Show voice assignments for a script")
    voices_parser.add_argument("file", help="Path to the script file")
    voices_parser.add_argument("--provider", help="Synthesis provider (elevenlabs, edge, mock)")
    voices_parser.set_defaults(func=cmd_voices)

    # emotions
    emotions_parser = subparsers.add_parser("emotions", help="List known emotion labels")
    emotions_parser.add_argument("--category", help="Only list one category")
    emotions_parser.set_defaults(func=cmd_emotions)

    # run
    run_parser = subparsers.add_parser("run", help="Synthesize a script to audio")
    run_parser.add_argument("file", help="Path to the script file")
    run_parser.add_argument("-o", "--output", default=OUTPUT_DIR, help="Output directory")
    run_parser.add_argument("--format", default=DEFAULT_OUTPUT_FORMAT,
                            choices=sorted(EXPORT_CONTAINERS), help="Output audio format")
    run_parser.add_argument("--intensity", type=float, default=1.0,
                            help="Emotional intensity, 0.0 to 2.0")
    run_parser.add_argument("--provider", help="Synthesis provider (elevenlabs, edge, mock)")
    run_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
