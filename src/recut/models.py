from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal, Optional


class FallbackReason(str, Enum):
    """Why a job shipped a verbatim copy of the source instead of an edit."""

    KEEP_RATIO_TOO_LOW = "KEEP_RATIO_TOO_LOW"
    NOTHING_TO_KEEP = "NOTHING_TO_KEEP"
    PLAN_UNAVAILABLE = "PLAN_UNAVAILABLE"


@dataclass(frozen=True)
class Cut:
    """A normalized cut-plan entry on the original timeline."""

    start: float        # seconds
    end: float
    type: Literal["keep", "cut"] = "cut"
    reason: str = ""
    confidence: float = 1.0

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class KeepSegment:
    """A contiguous original-timeline range retained in the output."""

    start_sec: float
    end_sec: float

    @property
    def duration(self) -> float:
        return self.end_sec - self.start_sec

    def overlaps(self, start: float, end: float) -> bool:
        return start < self.end_sec and end > self.start_sec


@dataclass
class TranscriptWord:
    start: float
    end: float
    word: str


@dataclass
class TranscriptSegment:
    start: float
    end: float
    text: str
    words: Optional[list[TranscriptWord]] = None


@dataclass
class Transcript:
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass
class RetimedSegment:
    """One output fragment of a transcript segment, on the edited timeline."""

    start: float
    end: float
    text: str
    original_start: float   # clamped bounds on the original timeline
    original_end: float
    keep_index: int
    words: Optional[list[TranscriptWord]] = None


@dataclass
class RetimedTranscript:
    segments: list[RetimedSegment]
    original_duration: float
    final_duration: float
    fps: float
    dropped_segment_count: int = 0

    @property
    def word_count(self) -> int:
        return sum(len(seg.text.split()) for seg in self.segments)


@dataclass
class AssemblyResult:
    """Outcome of the media stage: an edited video or the verbatim-copy fallback."""

    output_path: Path
    final_duration_sec: float
    segment_count: int
    fallback_reason: Optional[FallbackReason] = None
    # Audio/video offset measured on the assembled file; None when it has no audio
    sync_drift_sec: Optional[float] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None
