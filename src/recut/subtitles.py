"""SubRip and WebVTT output for a retimed transcript via pysubs2.

SRT cues are numbered from 1 with ``HH:MM:SS,mmm`` timestamps; VTT starts
with the ``WEBVTT`` header and uses ``HH:MM:SS.mmm``.  Cues with empty text
are skipped.  Times are converted to whole milliseconds, pysubs2's native
unit.
"""

from __future__ import annotations

from pathlib import Path

import pysubs2

from recut.models import RetimedTranscript
from recut.render.publish import write_text_atomic


def to_ssa_file(retimed: RetimedTranscript) -> pysubs2.SSAFile:
    subs = pysubs2.SSAFile()
    for seg in retimed.segments:
        text = seg.text.strip()
        if not text:
            continue
        subs.append(pysubs2.SSAEvent(
            start=pysubs2.make_time(s=seg.start),
            end=pysubs2.make_time(s=seg.end),
            # \N is the pysubs2 hard line break
            text=text.replace("\r\n", "\n").replace("\n", r"\N"),
        ))
    return subs


def render_srt(retimed: RetimedTranscript) -> str:
    return to_ssa_file(retimed).to_string("srt")


def render_vtt(retimed: RetimedTranscript) -> str:
    return to_ssa_file(retimed).to_string("vtt")


def write_subtitles(
    retimed: RetimedTranscript,
    srt_path: Path | None = None,
    vtt_path: Path | None = None,
) -> dict[str, Path]:
    """Write the requested formats atomically; returns ``{format: path}``."""
    written: dict[str, Path] = {}
    if srt_path is not None:
        written["srt"] = write_text_atomic(srt_path, render_srt(retimed))
    if vtt_path is not None:
        written["vtt"] = write_text_atomic(vtt_path, render_vtt(retimed))
    return written
