"""Timeline package: keep-segment derivation, edited-timeline mapping, retiming, validation."""
from recut.timeline.keep import KeepDerivation, derive_keep_segments
from recut.timeline.mapping import EditedTimelineMap, to_frame_time
from recut.timeline.retime import retime_transcript
from recut.timeline.validate import safety_decision, validate_outputs

__all__ = [
    "EditedTimelineMap",
    "KeepDerivation",
    "derive_keep_segments",
    "retime_transcript",
    "safety_decision",
    "to_frame_time",
    "validate_outputs",
]
