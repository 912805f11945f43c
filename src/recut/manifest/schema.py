from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubtitleEntry(BaseModel):
    key: str                            # path of the written file
    format: Literal["srt", "vtt"]
    type: Literal["final"] = "final"
    duration_sec: float = Field(ge=0.0)
    word_count: int = Field(ge=0)
    generated_at: datetime = Field(default_factory=utc_now)


class EditSummary(BaseModel):
    """What the remap-and-assemble job produced."""
    original_duration_sec: Optional[float] = Field(default=None, ge=0.0)
    final_duration_sec: Optional[float] = Field(default=None, ge=0.0)
    cuts_applied: int = Field(default=0, ge=0)
    keep_segment_count: int = Field(default=0, ge=0)
    subtitle_segment_count: int = Field(default=0, ge=0)
    dropped_transcript_segments: int = Field(default=0, ge=0)
    target_fps: Optional[float] = Field(default=None, gt=0.0)
    fallback_reason: Optional[str] = None


class LogEntry(BaseModel):
    type: Literal["pipeline", "error", "debug"] = "pipeline"
    message: str
    created_at: datetime = Field(default_factory=utc_now)


class JobManifest(BaseModel):
    schema_version: str = "1.0"
    job_ref: str
    status: Literal["pending", "done", "fallback", "failed"] = "pending"
    output_path: Optional[str] = None
    edit: EditSummary = Field(default_factory=EditSummary)
    subtitles: list[SubtitleEntry] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)
