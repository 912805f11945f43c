"""Typed FFmpeg/ffprobe command construction.

Each :class:`MediaOp` maps to one builder that returns an argument vector;
paths and timestamps are passed as discrete argv items, never interpolated
into a shell string.  Encoding parameters are fixed module constants so that
every extracted segment shares codec, pixel format and audio layout, which
is what lets the concat demuxer join them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence

FFMPEG = "ffmpeg"
FFPROBE = "ffprobe"

VIDEO_CODEC_ARGS: tuple[str, ...] = (
    "-c:v", "libx264",
    "-crf", "18",
    "-preset", "veryfast",
    "-pix_fmt", "yuv420p",
)
AUDIO_CODEC_ARGS: tuple[str, ...] = (
    "-c:a", "aac",
    "-b:a", "192k",
    "-ar", "48000",
)


class MediaOp(str, Enum):
    EXTRACT = "extract"
    EXTRACT_REENCODE = "extract_reencode"
    CONCAT_COPY = "concat_copy"
    CONCAT_REENCODE = "concat_reencode"
    PROBE = "probe"


@dataclass(frozen=True)
class MediaCommand:
    op: MediaOp
    argv: tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(self.argv)


def _ts(seconds: float) -> str:
    return f"{seconds:.6f}"


def extract_command(source: Path, start_s: float, end_s: float, output: Path, fps: float) -> MediaCommand:
    """Input-seeking extraction (-ss before -i), re-encoded for frame-accurate cut points."""
    return MediaCommand(MediaOp.EXTRACT, (
        FFMPEG, "-y", "-v", "error",
        "-ss", _ts(start_s),
        "-i", str(source),
        "-t", _ts(end_s - start_s),
        "-r", f"{fps:g}",
        *VIDEO_CODEC_ARGS,
        *AUDIO_CODEC_ARGS,
        "-avoid_negative_ts", "make_zero",
        "-movflags", "+faststart",
        str(output),
    ))


def extract_reencode_command(source: Path, start_s: float, end_s: float, output: Path, fps: float) -> MediaCommand:
    """Retry variant: output seeking (-ss after -i) decodes from the start of the file.

    Slower, but immune to broken keyframe indexes and timestamp gaps that
    defeat input seeking.
    """
    return MediaCommand(MediaOp.EXTRACT_REENCODE, (
        FFMPEG, "-y", "-v", "error",
        "-fflags", "+genpts",
        "-i", str(source),
        "-ss", _ts(start_s),
        "-t", _ts(end_s - start_s),
        "-r", f"{fps:g}",
        *VIDEO_CODEC_ARGS,
        *AUDIO_CODEC_ARGS,
        "-movflags", "+faststart",
        str(output),
    ))


def concat_copy_command(concat_list: Path, output: Path) -> MediaCommand:
    return MediaCommand(MediaOp.CONCAT_COPY, (
        FFMPEG, "-y", "-v", "error",
        "-f", "concat",
        "-safe", "0",
        "-i", str(concat_list),
        "-c", "copy",
        "-movflags", "+faststart",
        str(output),
    ))


def concat_reencode_command(concat_list: Path, output: Path, fps: float) -> MediaCommand:
    return MediaCommand(MediaOp.CONCAT_REENCODE, (
        FFMPEG, "-y", "-v", "error",
        "-f", "concat",
        "-safe", "0",
        "-i", str(concat_list),
        "-r", f"{fps:g}",
        *VIDEO_CODEC_ARGS,
        *AUDIO_CODEC_ARGS,
        "-movflags", "+faststart",
        str(output),
    ))


def probe_command(path: Path) -> MediaCommand:
    return MediaCommand(MediaOp.PROBE, (
        FFPROBE,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ))


def concat_list_text(segment_paths: Sequence[Path]) -> str:
    """Concat-demuxer list body, one ``file '...'`` line per segment, in order."""
    lines = []
    for p in segment_paths:
        # Escape single quotes for the concat list format
        escaped = str(p).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"
