"""Cross-artifact consistency checks and the whole-job safety decision."""

from __future__ import annotations

import logging
import math
from typing import Optional

from recut.config import RecutConfig
from recut.errors import FrameAccuracyError, SyncDriftError, TimingMismatchError
from recut.models import AssemblyResult, FallbackReason, RetimedTranscript
from recut.timeline.keep import KeepDerivation
from recut.timeline.mapping import to_frame_time

_logger = logging.getLogger("recut")

# Float slack so values that sit exactly on a tolerance boundary pass
_EPSILON = 1e-9


def safety_decision(derivation: Optional[KeepDerivation]) -> Optional[FallbackReason]:
    """Return the fallback to apply, or None when the edit is safe to render.

    ``None`` for *derivation* means no usable cut plan was available.
    """
    if derivation is None:
        return FallbackReason.PLAN_UNAVAILABLE
    if derivation.fallback_reason is not None:
        _logger.warning(
            "Edit rejected (%s): would keep %.1f%% of %.2fs source; copying original",
            derivation.fallback_reason.value,
            (derivation.keep_ratio if derivation.segments else 0.0) * 100,
            derivation.source_duration,
        )
    return derivation.fallback_reason


def validate_frame_accuracy(retimed: RetimedTranscript, fps: float) -> None:
    """Every retimed start/end must lie within one frame of the frame grid.

    Fragments must also be finite and end after they start; rounding never
    produces anything else, so either failure is an arithmetic defect.

    Raises:
        FrameAccuracyError: On the first violating segment.
    """
    tolerance = 1.0 / fps
    for seg in retimed.segments:
        if not (math.isfinite(seg.start) and math.isfinite(seg.end)):
            raise FrameAccuracyError(math.inf, math.inf, tolerance, fps)
        start_error = abs(seg.start - to_frame_time(seg.start, fps))
        end_error = abs(seg.end - to_frame_time(seg.end, fps))
        if start_error > tolerance + _EPSILON or end_error > tolerance + _EPSILON or seg.end <= seg.start:
            raise FrameAccuracyError(start_error, end_error, tolerance, fps)


def validate_duration(retimed: RetimedTranscript, assembly: AssemblyResult, fps: float) -> None:
    """Video and transcript durations must agree within two frames.

    Raises:
        TimingMismatchError: If they drift further apart.
    """
    tolerance = 2.0 / fps
    if abs(retimed.final_duration - assembly.final_duration_sec) > tolerance + _EPSILON:
        raise TimingMismatchError(assembly.final_duration_sec, retimed.final_duration, tolerance)


def validate_sync_drift(assembly: AssemblyResult, threshold_s: float) -> None:
    """Audio and video in the edited file must start and end together.

    Skipped when the file has no audio stream.

    Raises:
        SyncDriftError: If the measured drift exceeds *threshold_s*.
    """
    drift = assembly.sync_drift_sec
    if drift is None:
        return
    if drift > threshold_s + _EPSILON:
        raise SyncDriftError(drift, threshold_s)
    _logger.debug("A/V sync drift %.1fms within %.0fms", drift * 1000, threshold_s * 1000)


def validate_outputs(retimed: RetimedTranscript, assembly: AssemblyResult, config: RecutConfig) -> None:
    validate_frame_accuracy(retimed, config.target_fps)
    validate_duration(retimed, assembly, config.target_fps)
    validate_sync_drift(assembly, config.max_sync_drift_ms / 1000.0)
    _logger.info(
        "Consistency checks passed: video=%.3fs transcript=%.3fs (%d cue(s))",
        assembly.final_duration_sec,
        retimed.final_duration,
        len(retimed.segments),
    )
