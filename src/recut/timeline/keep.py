"""Keep-segment derivation: the complement of a cut list.

Steps, in order:

1. Walk the sorted ``type="cut"`` entries and collect the uncut ranges
   between them (overlapping cuts collapse; cuts are clamped to the source).
2. Pad each range by ``pad_seconds`` on every side that borders a cut,
   clamped so it never re-enters the previous kept range.
3. Snap both bounds to the ``target_fps`` frame grid, so every extracted
   segment is a whole number of frames and every cumulative offset on the
   edited timeline is a frame boundary.  Ends never pass the last whole
   frame of the source.
4. Frame-gap safeguard: a segment starting less than one frame after its
   predecessor ends is shifted forward, and dropped if that empties it.
5. Merge neighbours separated by less than ``merge_gap_seconds``.

A plan that keeps nothing is reported as ``FallbackReason.NOTHING_TO_KEEP``,
one that keeps less than ``min_keep_ratio`` of the source as
``FallbackReason.KEEP_RATIO_TOO_LOW``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from recut.config import RecutConfig
from recut.models import Cut, FallbackReason, KeepSegment
from recut.timeline.mapping import frame_index

logger = logging.getLogger(__name__)


@dataclass
class KeepDerivation:
    segments: list[KeepSegment]
    source_duration: float
    fallback_reason: Optional[FallbackReason] = None

    @property
    def total_keep_duration(self) -> float:
        return sum(s.duration for s in self.segments)

    @property
    def keep_ratio(self) -> float:
        return self.total_keep_duration / self.source_duration

    @property
    def nothing_to_keep(self) -> bool:
        return not self.segments


def uncut_ranges(cuts: Sequence[Cut], source_duration: float) -> list[tuple[float, float]]:
    """Return the ``(start, end)`` ranges not covered by any cut."""
    ranges: list[tuple[float, float]] = []
    cursor = 0.0
    for cut in sorted((c for c in cuts if c.type == "cut"), key=lambda c: c.start):
        start = min(max(cut.start, 0.0), source_duration)
        end = min(max(cut.end, 0.0), source_duration)
        if start > cursor:
            ranges.append((cursor, start))
        cursor = max(cursor, end)
    if cursor < source_duration:
        ranges.append((cursor, source_duration))
    return ranges


def pad_ranges(
    ranges: Sequence[tuple[float, float]],
    pad_seconds: float,
    source_duration: float,
) -> list[KeepSegment]:
    """Grow each range into its neighbouring cuts without overlapping the previous keep."""
    segments: list[KeepSegment] = []
    for start, end in ranges:
        if start > 0.0:
            start = max(0.0, start - pad_seconds)
        if end < source_duration:
            end = min(source_duration, end + pad_seconds)
        if segments:
            start = max(start, segments[-1].end_sec)
        if end > start:
            segments.append(KeepSegment(start_sec=start, end_sec=end))
    return segments


def snap_to_frames(segments: Sequence[KeepSegment], fps: float, source_duration: float) -> list[KeepSegment]:
    """Round both bounds to the nearest frame; drop segments that collapse."""
    last_frame = math.floor(source_duration * fps + 1e-9)
    out: list[KeepSegment] = []
    for seg in segments:
        start = frame_index(seg.start_sec, fps)
        end = min(frame_index(seg.end_sec, fps), last_frame)
        if end <= start:
            logger.warning(
                "Dropping keep segment %.3fs-%.3fs shorter than one frame at %g fps",
                seg.start_sec, seg.end_sec, fps,
            )
            continue
        out.append(KeepSegment(start_sec=start / fps, end_sec=end / fps))
    return out


def enforce_frame_gap(segments: Sequence[KeepSegment], fps: float) -> list[KeepSegment]:
    """Keep at least one frame between consecutive segments."""
    out: list[KeepSegment] = []
    for seg in segments:
        if out and frame_index(seg.start_sec, fps) <= frame_index(out[-1].end_sec, fps):
            shifted = (frame_index(out[-1].end_sec, fps) + 1) / fps
            if shifted >= seg.end_sec:
                logger.warning(
                    "Dropping zero/negative-length keep segment at %.3fs after frame-gap shift",
                    shifted,
                )
                continue
            seg = replace(seg, start_sec=shifted)
        out.append(seg)
    return out


def merge_close_segments(segments: Sequence[KeepSegment], merge_gap_seconds: float) -> list[KeepSegment]:
    """Join neighbours whose gap is below *merge_gap_seconds* to avoid micro-cuts."""
    merged: list[KeepSegment] = []
    for seg in segments:
        if merged and seg.start_sec - merged[-1].end_sec < merge_gap_seconds:
            merged[-1] = replace(merged[-1], end_sec=max(merged[-1].end_sec, seg.end_sec))
        else:
            merged.append(seg)
    return merged


def derive_keep_segments(
    cuts: Sequence[Cut],
    source_duration: float,
    config: RecutConfig,
) -> KeepDerivation:
    """Convert *cuts* into the final keep segments for a source of *source_duration* seconds.

    Raises:
        ValueError: If *source_duration* is not positive.
    """
    if source_duration <= 0:
        raise ValueError(f"source_duration must be > 0, got {source_duration}")

    ranges = uncut_ranges(cuts, source_duration)
    segments = pad_ranges(ranges, config.pad_seconds, source_duration)
    segments = snap_to_frames(segments, config.target_fps, source_duration)
    segments = enforce_frame_gap(segments, config.target_fps)
    segments = merge_close_segments(segments, config.merge_gap_seconds)

    derivation = KeepDerivation(segments=segments, source_duration=source_duration)
    if derivation.nothing_to_keep:
        derivation.fallback_reason = FallbackReason.NOTHING_TO_KEEP
    elif derivation.keep_ratio < config.min_keep_ratio:
        derivation.fallback_reason = FallbackReason.KEEP_RATIO_TOO_LOW

    logger.info(
        "Derived %d keep segment(s): %.3fs of %.3fs kept (%.1f%%)",
        len(segments),
        derivation.total_keep_duration,
        source_duration,
        derivation.keep_ratio * 100,
    )
    return derivation
