"""Original-timeline -> edited-timeline mapping.

``EditedTimelineMap`` is the one place that converts an instant inside a keep
segment to the edited timeline::

    edited = original - segment.start_sec + cumulative_offset

where ``cumulative_offset`` is the summed duration of every earlier keep
segment.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

from recut.models import KeepSegment


def to_frame_time(seconds: float, fps: float) -> float:
    """Round *seconds* to the nearest frame boundary (halves round up)."""
    return math.floor(seconds * fps + 0.5) / fps


def frame_index(seconds: float, fps: float) -> int:
    return math.floor(seconds * fps + 0.5)


@dataclass(frozen=True)
class TimelineEntry:
    index: int
    segment: KeepSegment
    offset: float   # edited-timeline start of this segment

    def to_edited(self, original: float) -> float:
        """Map *original*, clamped into this segment, onto the edited timeline."""
        clamped = min(max(original, self.segment.start_sec), self.segment.end_sec)
        return clamped - self.segment.start_sec + self.offset


class EditedTimelineMap:
    """Ordered ``(keep segment, cumulative offset)`` pairs."""

    def __init__(self, segments: Sequence[KeepSegment]) -> None:
        entries: list[TimelineEntry] = []
        offset = 0.0
        for i, seg in enumerate(segments):
            entries.append(TimelineEntry(index=i, segment=seg, offset=offset))
            offset += seg.duration
        self._entries = entries
        self._total = offset

    def __iter__(self) -> Iterator[TimelineEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_duration(self) -> float:
        return self._total

    def overlapping(self, start: float, end: float) -> list[TimelineEntry]:
        """Entries whose keep segment overlaps the open range ``(start, end)``."""
        return [e for e in self._entries if e.segment.overlaps(start, end)]
