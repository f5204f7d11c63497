"""Asynchronous job orchestration for multi-voice synthesis.

A job is one script. Submitting parses and annotates it, then queues it; a
scheduler task admits queued jobs up to a concurrency cap. Each admitted job
synthesizes its segments in fixed-size batches (segments within a batch run
concurrently, batches run one after another) and finally stitches the
successful segments into one track.

Observers receive a ProgressEvent after every state change: zero or more
non-terminal events with non-decreasing percentage, then exactly one terminal
event. Terminal jobs are forgotten after the retention period.
"""

import asyncio
import logging
import math
import os
import shutil
import threading
import time
import uuid
from collections import deque
from dataclasses import replace

from voicecast.assembly import stitch
from voicecast.constants import (
    BATCH_DELAY_SECONDS,
    BATCH_SIZE,
    DEFAULT_OUTPUT_FORMAT,
    JOB_RETENTION_SECONDS,
    MAX_CONCURRENT_JOBS,
    PROGRESS_MERGE_PERCENT,
    PROGRESS_SYNTHESIS_SHARE,
    SCHEDULER_TICK_SECONDS,
    SECONDS_PER_SEGMENT_ESTIMATE,
)
from voicecast.emotions import emotion_parameters
from voicecast.errors import ErrorCode, SynthesisError, VoicecastError
from voicecast.exporter import export
from voicecast.models import (
    Job,
    JobResult,
    JobStatus,
    Progress,
    ProgressEvent,
    Segment,
    SegmentStatus,
)
from voicecast.parser import parse_script
from voicecast.voices import VoiceRegistry

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Job cancelled by user"
SHUTDOWN_MESSAGE = "Orchestrator stopped before the job finished"


class JobOrchestrator:
    """Queue, run and track synthesis jobs against one synthesis client.

    Use as an async context manager; the scheduler runs while the block is
    active:

        async with JobOrchestrator(MockSynthesisClient()) as orch:
            job_id = orch.submit(script)
            job = await orch.wait(job_id)
    """

    def __init__(
        self,
        client,
        voice_map: dict | None = None,
        cast: dict | None = None,
        max_concurrent_jobs: int = MAX_CONCURRENT_JOBS,
        batch_size: int = BATCH_SIZE,
        tick_seconds: float = SCHEDULER_TICK_SECONDS,
        batch_delay: float = BATCH_DELAY_SECONDS,
        retention_seconds: float = JOB_RETENTION_SECONDS,
        output_dir: str | None = None,
    ):
        if max_concurrent_jobs < 1 or batch_size < 1:
            raise ValueError("max_concurrent_jobs and batch_size must be at least 1")
        self.client = client
        self.voice_map = voice_map if voice_map is not None else client.default_voices()
        self.cast = cast or {}
        self.max_concurrent_jobs = max_concurrent_jobs
        self.batch_size = batch_size
        self.tick_seconds = tick_seconds
        self.batch_delay = batch_delay
        self.retention_seconds = retention_seconds
        self.output_dir = output_dir

        self._lock = threading.RLock()
        self._jobs: dict[str, Job] = {}
        self._queue: deque[str] = deque()
        self._processing: set[str] = set()
        self._observers: dict[str, list] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._cleanups: dict[str, asyncio.TimerHandle] = {}
        self._pending_cleanups: list[str] = []
        self._delivery: dict[str, threading.RLock] = {}
        self._terminal_sent: set[str] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._scheduler: asyncio.Task | None = None

    # -- lifecycle ---------------------------------------------------------

    async def __aenter__(self) -> "JobOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._scheduler = asyncio.create_task(self._run_scheduler())
        with self._lock:
            pending, self._pending_cleanups = self._pending_cleanups, []
        for job_id in pending:
            self._schedule_cleanup(job_id)

    async def stop(self) -> None:
        """Fail every unfinished job, then cancel the scheduler and job tasks."""
        with self._lock:
            unfinished = [job for job in self._jobs.values() if not job.status.is_terminal]
            self._queue.clear()
            for job in unfinished:
                job.cancelled = True
        for job in unfinished:
            self._finish(job, JobStatus.FAILED, code=ErrorCode.SHUTDOWN,
                         message=SHUTDOWN_MESSAGE)

        tasks = list(self._tasks.values())
        if self._scheduler is not None:
            tasks.append(self._scheduler)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for handle in self._cleanups.values():
            handle.cancel()
        self._cleanups.clear()
        self._scheduler = None

    # -- job control -------------------------------------------------------

    def submit(
        self,
        script_text: str,
        intensity: float = 1.0,
        output_format: str = DEFAULT_OUTPUT_FORMAT,
        on_progress=None,
    ) -> str:
        """Parse, annotate and queue a script. Returns the new job id."""
        segments = parse_script(script_text)
        registry = VoiceRegistry(self.voice_map, self.cast)
        for seg in segments:
            voice = registry.assign(seg.speaker)
            seg.annotate(voice, emotion_parameters(voice.archetype, seg.emotion, intensity))

        job = Job(
            job_id=f"job_{uuid.uuid4().hex[:12]}",
            segments=segments,
            intensity=intensity,
            output_format=output_format,
        )
        job.progress = Progress(
            percentage=0,
            message="Queued",
            eta_seconds=job.total_segments * SECONDS_PER_SEGMENT_ESTIMATE,
        )
        with self._lock:
            self._jobs[job.job_id] = job
            self._observers[job.job_id] = []
            self._delivery[job.job_id] = threading.RLock()
            self._done[job.job_id] = asyncio.Event()
        if on_progress is not None:
            self.subscribe(job.job_id, on_progress)

        if not segments:
            logger.warning("Job %s has an empty script", job.job_id)
            self._finish(job, JobStatus.FAILED, code=ErrorCode.EMPTY_SCRIPT,
                         message="Script contains no speakable text")
            return job.job_id

        with self._lock:
            self._queue.append(job.job_id)
        logger.info("Submitted job %s (%d segments)", job.job_id, job.total_segments)
        self._notify(job)
        return job.job_id

    def status(self, job_id: str) -> Job | None:
        with self._lock:
            return self._jobs.get(job_id)

    def result(self, job_id: str) -> JobResult | None:
        """Stitched result, only for completed jobs."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status is not JobStatus.COMPLETED:
                return None
            return job.result

    def cancel(self, job_id: str) -> bool:
        """Cancel a queued or processing job.

        Returns False for unknown or already finished jobs. In-flight
        synthesis calls run to completion but their audio is discarded.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status.is_terminal:
                return False
            job.cancelled = True
            if job_id in self._queue:
                self._queue.remove(job_id)
        logger.info("Cancelled job %s", job_id)
        return self._finish(job, JobStatus.FAILED, code=ErrorCode.JOB_CANCELLED,
                            message=CANCELLED_MESSAGE)

    def subscribe(self, job_id: str, callback) -> bool:
        with self._lock:
            observers = self._observers.get(job_id)
            if observers is None:
                return False
            observers.append(callback)
            return True

    def unsubscribe(self, job_id: str, callback) -> bool:
        with self._lock:
            observers = self._observers.get(job_id, [])
            if callback not in observers:
                return False
            observers.remove(callback)
            return True

    async def wait(self, job_id: str, timeout: float | None = None) -> Job | None:
        """Wait until a job is terminal and return it (None if unknown)."""
        with self._lock:
            job = self._jobs.get(job_id)
            event = self._done.get(job_id)
        if job is None or event is None:
            return job
        await asyncio.wait_for(event.wait(), timeout)
        return job

    # -- scheduling --------------------------------------------------------

    async def _run_scheduler(self) -> None:
        while True:
            self._admit()
            await asyncio.sleep(self.tick_seconds)

    def _admit(self) -> None:
        admitted = []
        with self._lock:
            while self._queue and len(self._processing) < self.max_concurrent_jobs:
                job = self._jobs[self._queue.popleft()]
                job.status = JobStatus.PROCESSING
                job.started_at = time.time()
                job.progress = replace(job.progress, message="Synthesizing segments")
                self._processing.add(job.job_id)
                self._tasks[job.job_id] = asyncio.create_task(self._process(job))
                admitted.append(job)
        for job in admitted:
            logger.info("Started job %s", job.job_id)
            self._notify(job)

    async def _process(self, job: Job) -> None:
        try:
            await self._synthesize_batches(job)
            if job.cancelled:
                return
            if not job.succeeded:
                self._finish(job, JobStatus.FAILED, code=ErrorCode.NO_SEGMENTS_SYNTHESIZED,
                             message="No segments were synthesized successfully")
                return
            result = await self._assemble(job)
            if result is not None and not job.cancelled:
                self._finish(job, JobStatus.COMPLETED, result=result)
        finally:
            with self._lock:
                self._processing.discard(job.job_id)
                self._tasks.pop(job.job_id, None)

    async def _synthesize_batches(self, job: Job) -> None:
        for start in range(0, job.total_segments, self.batch_size):
            if start > 0:
                await asyncio.sleep(self.batch_delay)
            if job.cancelled:
                return
            batch = job.segments[start:start + self.batch_size]
            await asyncio.gather(*(self._synthesize_segment(job, seg) for seg in batch))
            if job.cancelled:
                return
            self._report_batch(job)

    async def _synthesize_segment(self, job: Job, seg: Segment) -> None:
        seg.status = SegmentStatus.INFLIGHT
        try:
            audio = await self.client.synthesize(seg.text, seg.voice.voice_ref, seg.params)
            if not audio:
                raise SynthesisError(f"Provider returned no audio for {seg.id}")
        except Exception as e:
            logger.warning("Job %s: segment %s (%s) failed: %s",
                           job.job_id, seg.id, seg.speaker, e)
            seg.mark_failed(str(e))
            return
        seg.mark_done(audio)

    def _report_batch(self, job: Job) -> None:
        processed = sum(
            1 for s in job.segments
            if s.status in (SegmentStatus.DONE, SegmentStatus.FAILED)
        )
        elapsed = time.time() - (job.started_at or time.time())
        remaining = job.total_segments - processed
        eta = math.ceil(elapsed / processed * remaining) if processed else None
        with self._lock:
            job.completed_count = processed
            percentage = processed * PROGRESS_SYNTHESIS_SHARE // job.total_segments
            job.progress = Progress(
                percentage=max(job.progress.percentage, percentage),
                message=f"Synthesized {processed}/{job.total_segments} segments",
                eta_seconds=eta,
            )
        self._notify(job)

    async def _assemble(self, job: Job) -> JobResult | None:
        with self._lock:
            job.progress = Progress(percentage=PROGRESS_MERGE_PERCENT,
                                    message="Merging audio segments...", eta_seconds=None)
        self._notify(job)

        segments = job.succeeded
        try:
            stitched = await asyncio.to_thread(stitch, segments, job.output_format)
            result = JobResult(
                audio=stitched.audio,
                duration_seconds=stitched.duration_seconds,
                byte_size=stitched.byte_size,
                output_format=job.output_format,
                timeline=stitched.timeline,
            )
            if self.output_dir and not job.cancelled:
                result.audio_url = await asyncio.to_thread(
                    export, result, self.output_dir, job.job_id, self._manifest(job),
                )
                if job.cancelled:
                    await asyncio.to_thread(self._discard_export, job, result.audio_url)
        except VoicecastError as e:
            self._finish(job, JobStatus.FAILED, code=e.code, message=str(e))
            return None
        except Exception as e:
            logger.exception("Job %s: stitching failed", job.job_id)
            self._finish(job, JobStatus.FAILED, code=ErrorCode.STITCH_FAILED, message=str(e))
            return None
        return result

    @staticmethod
    def _discard_export(job: Job, audio_path: str) -> None:
        """Remove files exported for a job that was cancelled meanwhile."""
        shutil.rmtree(os.path.dirname(audio_path), ignore_errors=True)
        logger.info("Job %s: removed export of cancelled job", job.job_id)

    def _manifest(self, job: Job) -> dict:
        voices = {}
        for seg in job.segments:
            voices.setdefault(seg.speaker, {
                "voice_type": seg.voice.voice_type.value,
                "voice_ref": seg.voice.voice_ref,
            })
        return {
            "job_id": job.job_id,
            "intensity": job.intensity,
            "voices": voices,
            "stats": {
                "segments": job.total_segments,
                "synthesized": len(job.succeeded),
                "failed": [s.id for s in job.segments if s.status is SegmentStatus.FAILED],
            },
        }

    # -- terminal states, notification, cleanup -----------------------------

    def _finish(
        self,
        job: Job,
        status: JobStatus,
        code: str | None = None,
        message: str | None = None,
        result: JobResult | None = None,
    ) -> bool:
        """Move a job to its terminal state once; later calls are no-ops."""
        with self._lock:
            if job.status.is_terminal:
                return False
            job.status = status
            job.finished_at = time.time()
            if status is JobStatus.COMPLETED:
                job.result = result
                job.progress = Progress(percentage=100, message="Completed", eta_seconds=0)
            else:
                job.error_code = code
                job.error_message = message
                job.progress = replace(job.progress, message=message, eta_seconds=None)

        if status is JobStatus.COMPLETED:
            logger.info("Completed job %s (%ds of audio)", job.job_id, result.duration_seconds)
        elif code != ErrorCode.JOB_CANCELLED:
            logger.warning("Job %s failed [%s]: %s", job.job_id, code, message)

        self._notify(job, terminal=True)
        event = self._done.get(job.job_id)
        if event is not None:
            self._call_soon(event.set)
        self._schedule_cleanup(job.job_id)
        return True

    def _notify(self, job: Job, terminal: bool = False) -> None:
        """Deliver a snapshot event to the job's observers.

        Delivery for one job is serialised; once a terminal event has been
        issued, older non-terminal events are dropped, even mid-delivery.
        """
        with self._lock:
            if job.status.is_terminal and not terminal:
                return
            if terminal:
                self._terminal_sent.add(job.job_id)
            event = ProgressEvent(job.job_id, job.status, replace(job.progress), terminal)
            delivery = self._delivery.get(job.job_id)
        if delivery is None:
            return
        with delivery:
            with self._lock:
                observers = list(self._observers.get(job.job_id, []))
            for callback in observers:
                if not terminal and self._terminal_issued(job.job_id):
                    return
                try:
                    callback(event)
                except Exception:
                    logger.exception("Progress observer for job %s raised", job.job_id)

    def _terminal_issued(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._terminal_sent

    def _call_soon(self, fn, *args) -> None:
        """Run fn on the orchestrator loop, from any thread."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is not None and running is not self._loop:
            self._loop.call_soon_threadsafe(fn, *args)
        else:
            fn(*args)

    def _schedule_cleanup(self, job_id: str) -> None:
        if self._loop is None:
            with self._lock:
                self._pending_cleanups.append(job_id)
            return

        def arm() -> None:
            self._cleanups[job_id] = self._loop.call_later(
                self.retention_seconds, self._cleanup, job_id)

        self._call_soon(arm)

    def _cleanup(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)
            self._observers.pop(job_id, None)
            self._done.pop(job_id, None)
            self._delivery.pop(job_id, None)
            self._terminal_sent.discard(job_id)
            self._cleanups.pop(job_id, None)
        logger.info("Cleaned up job %s", job_id)
