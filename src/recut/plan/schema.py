from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

# Timestamps stay raw here; recut.plan.normalize owns the parsing so that a
# bad value is reported with its cut index rather than as a schema error.
RawTimestamp = Union[float, int, str]


class RawCut(BaseModel):
    start: RawTimestamp
    end: RawTimestamp
    type: Literal["keep", "cut"] = "cut"
    reason: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def reject_bool(cls, v: object) -> object:
        # bool is an int subclass; True would silently become 1.0s
        if isinstance(v, bool):
            raise ValueError("timestamp must be a number or a time string, not a boolean")
        return v


class CutPlanFile(BaseModel):
    schema_version: Optional[str] = Field(default=None, alias="schemaVersion")
    source: str
    output: str
    cuts: list[RawCut]

    model_config = {"populate_by_name": True}


class WordIn(BaseModel):
    start: float = Field(ge=0.0)
    end: float = Field(ge=0.0)
    word: str = ""


class SegmentIn(BaseModel):
    start: float = Field(ge=0.0)
    end: float = Field(ge=0.0)
    text: str = ""
    words: Optional[list[WordIn]] = None

    @model_validator(mode="after")
    def end_not_before_start(self) -> "SegmentIn":
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must be >= start ({self.start})")
        return self


class TranscriptFile(BaseModel):
    segments: list[SegmentIn]
