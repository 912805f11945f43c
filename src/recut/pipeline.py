"""Per-job remap-and-assemble state machine.

    NORMALIZING -> DERIVING -> ASSEMBLING -> RETIMING -> VALIDATING -> DONE
         |             |            \\            \\            \\
         +-> FALLBACK <+             +------------+------------+-> FAILED

Each non-terminal state has one step function that does its work and
returns the next state; :class:`JobRun` rejects any transition not in
``TRANSITIONS``.  A typed error raised by any step moves the job to FAILED
and is re-raised to the caller; a stray ``OSError`` is first translated to
:class:`~recut.errors.OutputError`.  The FALLBACK entry action publishes a
verbatim copy of the source.  The edited video and subtitle files are only
published at the end of VALIDATING, so a failed job never leaves a
half-written output behind.
"""

from __future__ import annotations

import logging
import re
from contextlib import ExitStack
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from recut.config import RecutConfig
from recut.errors import MediaProbeError, OutputError, PlanUnavailableError, RecutError
from recut.ingestion.transcript import load_transcript
from recut.manifest.schema import EditSummary, LogEntry, SubtitleEntry, utc_now
from recut.manifest.store import ManifestStore
from recut.models import AssemblyResult, FallbackReason, KeepSegment, RetimedTranscript, Transcript
from recut.plan.loader import CutPlan, load_cut_plan
from recut.render.assemble import VideoAssembler
from recut.render.probe import MediaInfo, probe_media
from recut.render.publish import copy_original, job_workspace, publish_file
from recut.render.runner import CommandRunner, SubprocessRunner
from recut.subtitles import write_subtitles
from recut.timeline.keep import KeepDerivation, derive_keep_segments
from recut.timeline.retime import retime_transcript
from recut.timeline.validate import safety_decision, validate_outputs

_logger = logging.getLogger("recut")

_UNSAFE_REF_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class JobState(str, Enum):
    NORMALIZING = "normalizing"
    DERIVING = "deriving"
    ASSEMBLING = "assembling"
    RETIMING = "retiming"
    VALIDATING = "validating"
    DONE = "done"
    FALLBACK = "fallback"
    FAILED = "failed"


TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.NORMALIZING: frozenset({JobState.DERIVING, JobState.FALLBACK, JobState.FAILED}),
    JobState.DERIVING: frozenset({JobState.ASSEMBLING, JobState.FALLBACK, JobState.FAILED}),
    JobState.ASSEMBLING: frozenset({JobState.RETIMING, JobState.FAILED}),
    JobState.RETIMING: frozenset({JobState.VALIDATING, JobState.FAILED}),
    JobState.VALIDATING: frozenset({JobState.DONE, JobState.FAILED}),
    JobState.DONE: frozenset(),
    JobState.FALLBACK: frozenset(),
    JobState.FAILED: frozenset(),
}


class IllegalTransition(RuntimeError):
    pass


@dataclass
class JobRun:
    state: JobState = JobState.NORMALIZING
    history: list[JobState] = field(default_factory=lambda: [JobState.NORMALIZING])

    @property
    def terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    def advance(self, to: JobState) -> None:
        if to not in TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state.value} -> {to.value}")
        _logger.debug("Job state %s -> %s", self.state.value, to.value)
        self.state = to
        self.history.append(to)


@dataclass
class JobRequest:
    plan_path: Path
    transcript_path: Optional[Path] = None
    source: Optional[Path] = None       # overrides the plan's source
    output: Optional[Path] = None       # overrides the plan's output
    job_ref: Optional[str] = None


@dataclass
class JobOutcome:
    state: JobState
    assembly: AssemblyResult
    keep_segments: list[KeepSegment]
    cut_count: int
    source_duration_sec: float
    retimed: Optional[RetimedTranscript] = None
    subtitle_paths: dict[str, Path] = field(default_factory=dict)
    history: list[JobState] = field(default_factory=list)


@dataclass
class _JobContext:
    request: JobRequest
    config: RecutConfig
    runner: CommandRunner
    stack: ExitStack
    plan: Optional[CutPlan] = None
    source: Optional[Path] = None
    output: Optional[Path] = None
    transcript: Optional[Transcript] = None
    source_info: Optional[MediaInfo] = None
    derivation: Optional[KeepDerivation] = None
    work_dir: Optional[Path] = None
    assembly: Optional[AssemblyResult] = None
    retimed: Optional[RetimedTranscript] = None
    subtitle_paths: dict[str, Path] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Step functions
# ---------------------------------------------------------------------------

def _normalizing(ctx: _JobContext) -> JobState:
    req = ctx.request
    try:
        ctx.plan = load_cut_plan(req.plan_path, min_cut_duration=ctx.config.min_cut_duration)
    except PlanUnavailableError as exc:
        if req.source is None or req.output is None:
            raise
        _logger.warning("Cut plan unavailable (%s); falling back to the original", exc.detail)
        ctx.source, ctx.output = req.source, req.output
        return _enter_fallback(ctx, FallbackReason.PLAN_UNAVAILABLE)

    ctx.source = req.source or ctx.plan.source
    ctx.output = req.output or ctx.plan.output
    if req.transcript_path is not None:
        ctx.transcript = load_transcript(req.transcript_path)
    _logger.info(
        "Loaded plan '%s': %d cut(s)%s",
        req.plan_path.name,
        ctx.plan.cut_count,
        f", {len(ctx.transcript.segments)} transcript segment(s)" if ctx.transcript else "",
    )
    return JobState.DERIVING


def _deriving(ctx: _JobContext) -> JobState:
    ctx.source_info = probe_media(ctx.source, ctx.runner, ctx.config.probe_timeout_s)
    if ctx.source_info.duration_s <= 0:
        raise MediaProbeError(ctx.source, "Source reports zero duration.")
    if not ctx.source_info.has_video:
        raise MediaProbeError(ctx.source, "Source has no video stream.")
    ctx.derivation = derive_keep_segments(ctx.plan.cuts, ctx.source_info.duration_s, ctx.config)
    reason = safety_decision(ctx.derivation)
    if reason is not None:
        return _enter_fallback(ctx, reason)
    return JobState.ASSEMBLING


def _assembling(ctx: _JobContext) -> JobState:
    ctx.work_dir = ctx.stack.enter_context(job_workspace(ctx.output))
    assembler = VideoAssembler(ctx.config, ctx.runner)
    ctx.assembly = assembler.assemble(
        ctx.source, ctx.derivation.segments, ctx.work_dir, source_info=ctx.source_info
    )
    return JobState.RETIMING


def _retiming(ctx: _JobContext) -> JobState:
    ctx.retimed = retime_transcript(
        ctx.transcript or Transcript(), ctx.derivation.segments, ctx.config.target_fps
    )
    return JobState.VALIDATING


def _validating(ctx: _JobContext) -> JobState:
    validate_outputs(ctx.retimed, ctx.assembly, ctx.config)

    # Subtitles are staged beside the video and published after it
    staged_subtitles: dict[str, Path] = {}
    if ctx.transcript is not None:
        staged = ctx.work_dir / ctx.output.name
        staged_subtitles = write_subtitles(
            ctx.retimed,
            srt_path=staged.with_suffix(".srt") if ctx.config.write_srt else None,
            vtt_path=staged.with_suffix(".vtt") if ctx.config.write_vtt else None,
        )

    publish_file(ctx.assembly.output_path, ctx.output)
    ctx.assembly = replace(ctx.assembly, output_path=ctx.output)
    for fmt, path in staged_subtitles.items():
        ctx.subtitle_paths[fmt] = publish_file(path, ctx.output.with_suffix(path.suffix))
    _logger.info("Published edited video '%s'", ctx.output)
    return JobState.DONE


def _enter_fallback(ctx: _JobContext, reason: FallbackReason) -> JobState:
    if ctx.source_info is None:
        ctx.source_info = probe_media(ctx.source, ctx.runner, ctx.config.probe_timeout_s)
    copy_original(ctx.source, ctx.output)
    ctx.assembly = AssemblyResult(
        output_path=ctx.output,
        final_duration_sec=ctx.source_info.duration_s,
        segment_count=1,
        fallback_reason=reason,
    )
    return JobState.FALLBACK


_STEPS: dict[JobState, Callable[[_JobContext], JobState]] = {
    JobState.NORMALIZING: _normalizing,
    JobState.DERIVING: _deriving,
    JobState.ASSEMBLING: _assembling,
    JobState.RETIMING: _retiming,
    JobState.VALIDATING: _validating,
}


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

def run_job(
    request: JobRequest,
    config: RecutConfig,
    runner: Optional[CommandRunner] = None,
    store: Optional[ManifestStore] = None,
) -> JobOutcome:
    """Run one remap-and-assemble job to a terminal state.

    Returns a :class:`JobOutcome` in state DONE or FALLBACK.  Any
    :class:`~recut.errors.RecutError` moves the job to FAILED, is recorded in
    *store* (when given) and re-raised.  ``OSError`` is raised as
    :class:`~recut.errors.OutputError`.
    """
    run = JobRun()
    with ExitStack() as stack:
        ctx = _JobContext(
            request=request,
            config=config,
            runner=runner if runner is not None else SubprocessRunner(),
            stack=stack,
        )
        try:
            while not run.terminal:
                run.advance(_STEPS[run.state](ctx))
        except RecutError as exc:
            _fail(run, request, store, exc)
            raise
        except OSError as exc:
            error = OutputError(Path(exc.filename) if exc.filename else ctx.output, exc.strerror or str(exc))
            _fail(run, request, store, error)
            raise error from exc

    outcome = JobOutcome(
        state=run.state,
        assembly=ctx.assembly,
        keep_segments=list(ctx.derivation.segments) if ctx.derivation else [],
        cut_count=ctx.plan.cut_count if ctx.plan else 0,
        source_duration_sec=ctx.source_info.duration_s,
        retimed=ctx.retimed,
        subtitle_paths=ctx.subtitle_paths,
        history=list(run.history),
    )
    if store is not None:
        _record_outcome(store, _job_ref(request), outcome, config)
    return outcome


def _fail(run: JobRun, request: JobRequest, store: Optional[ManifestStore], exc: RecutError) -> None:
    run.advance(JobState.FAILED)
    _logger.error("Job failed [%s]: %s", exc.code, exc)
    if store is not None:
        _record_failure(store, _job_ref(request), exc)


def _job_ref(request: JobRequest) -> str:
    if request.job_ref:
        return request.job_ref
    return _UNSAFE_REF_CHARS.sub("_", request.plan_path.stem).lstrip("._-") or "job"


def _record_outcome(store: ManifestStore, job_ref: str, outcome: JobOutcome, config: RecutConfig) -> None:
    manifest = store.load(job_ref)
    retimed = outcome.retimed
    assembly = outcome.assembly

    manifest.status = "fallback" if assembly.is_fallback else "done"
    manifest.output_path = str(assembly.output_path)
    manifest.edit = EditSummary(
        original_duration_sec=outcome.source_duration_sec,
        final_duration_sec=assembly.final_duration_sec,
        cuts_applied=0 if assembly.is_fallback else outcome.cut_count,
        keep_segment_count=len(outcome.keep_segments),
        subtitle_segment_count=len(retimed.segments) if retimed else 0,
        dropped_transcript_segments=retimed.dropped_segment_count if retimed else 0,
        target_fps=config.target_fps,
        fallback_reason=assembly.fallback_reason.value if assembly.fallback_reason else None,
    )

    # Replace earlier final subtitle entries so re-runs stay idempotent
    manifest.subtitles = [s for s in manifest.subtitles if s.type != "final"]
    for fmt, path in outcome.subtitle_paths.items():
        manifest.subtitles.append(SubtitleEntry(
            key=str(path),
            format=fmt,
            duration_sec=retimed.final_duration,
            word_count=retimed.word_count,
        ))

    if assembly.is_fallback:
        message = f"Safety fallback ({assembly.fallback_reason.value}): original copied unedited"
    else:
        message = (
            f"Edited video: {assembly.segment_count} segment(s), "
            f"{assembly.final_duration_sec:.2f}s; {len(outcome.subtitle_paths)} subtitle file(s)"
        )
    manifest.logs.append(LogEntry(message=message))
    manifest.updated_at = utc_now()
    store.save(job_ref, manifest)


def _record_failure(store: ManifestStore, job_ref: str, exc: RecutError) -> None:
    try:
        manifest = store.load(job_ref)
        manifest.status = "failed"
        manifest.logs.append(LogEntry(type="error", message=f"[{exc.code}] {exc.args[0].splitlines()[0]}"))
        manifest.updated_at = utc_now()
        store.save(job_ref, manifest)
    except (RecutError, OSError) as manifest_exc:
        _logger.error("Failed to record job failure in manifest: %s", manifest_exc)
