"""Transcript retiming onto the edited timeline.

A transcript segment that straddles a cut becomes one fragment per keep
segment it overlaps; each fragment is clipped to its keep segment, mapped
through :class:`~recut.timeline.mapping.EditedTimelineMap` and rounded to
the frame grid.  Segments overlapping no keep segment are dropped and
counted.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from recut.models import (
    KeepSegment,
    RetimedSegment,
    RetimedTranscript,
    Transcript,
    TranscriptSegment,
    TranscriptWord,
)
from recut.timeline.mapping import EditedTimelineMap, TimelineEntry, frame_index

logger = logging.getLogger(__name__)


def filter_to_kept(transcript: Transcript, keep_segments: Sequence[KeepSegment]) -> list[TranscriptSegment]:
    """Segments overlapping at least one keep segment, in input order."""
    return [
        seg for seg in transcript.segments
        if any(k.overlaps(seg.start, seg.end) for k in keep_segments)
    ]


def _map_span(entry: TimelineEntry, start: float, end: float, fps: float) -> tuple[float, float]:
    """Map and frame-round ``[start, end]``; never shorter than one frame."""
    start_frame = frame_index(entry.to_edited(start), fps)
    end_frame = frame_index(entry.to_edited(end), fps)
    if end_frame <= start_frame:
        end_frame = start_frame + 1
    return start_frame / fps, end_frame / fps


def _retime_words(
    words: Optional[list[TranscriptWord]],
    entry: TimelineEntry,
    fps: float,
) -> Optional[list[TranscriptWord]]:
    if words is None:
        return None
    out: list[TranscriptWord] = []
    for w in words:
        if not entry.segment.overlaps(w.start, w.end):
            continue
        start, end = _map_span(entry, w.start, w.end, fps)
        out.append(TranscriptWord(start=start, end=end, word=w.word))
    return out


def retime_transcript(
    transcript: Transcript,
    keep_segments: Sequence[KeepSegment],
    fps: float,
) -> RetimedTranscript:
    """Filter, clip and map *transcript* onto the timeline formed by *keep_segments*."""
    timeline = EditedTimelineMap(keep_segments)
    kept = filter_to_kept(transcript, keep_segments)
    dropped = len(transcript.segments) - len(kept)
    if dropped:
        logger.warning("Dropped %d transcript segment(s) that fall entirely inside cuts", dropped)

    retimed: list[RetimedSegment] = []
    for seg in kept:
        for entry in timeline.overlapping(seg.start, seg.end):
            clipped_start = max(seg.start, entry.segment.start_sec)
            clipped_end = min(seg.end, entry.segment.end_sec)
            start, end = _map_span(entry, clipped_start, clipped_end, fps)
            retimed.append(RetimedSegment(
                start=start,
                end=end,
                text=seg.text,
                original_start=clipped_start,
                original_end=clipped_end,
                keep_index=entry.index,
                words=_retime_words(seg.words, entry, fps),
            ))

    original_duration = max((s.end for s in transcript.segments), default=0.0)
    return RetimedTranscript(
        segments=retimed,
        original_duration=original_duration,
        final_duration=timeline.total_duration,
        fps=fps,
        dropped_segment_count=dropped,
    )
