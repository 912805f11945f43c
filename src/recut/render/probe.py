"""ffprobe metadata: duration, stream inventory and per-stream timing."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from recut.errors import MediaProbeError
from recut.render.commands import probe_command
from recut.render.runner import CommandRunner


@dataclass(frozen=True)
class StreamTiming:
    codec_type: str
    start_s: float
    duration_s: Optional[float]

    @property
    def end_s(self) -> Optional[float]:
        return None if self.duration_s is None else self.start_s + self.duration_s


@dataclass(frozen=True)
class MediaInfo:
    duration_s: float
    codec_types: frozenset[str]     # e.g. {"video", "audio"}
    streams: tuple[StreamTiming, ...] = ()

    @property
    def has_video(self) -> bool:
        return "video" in self.codec_types

    @property
    def has_audio(self) -> bool:
        return "audio" in self.codec_types

    def first_stream(self, codec_type: str) -> Optional[StreamTiming]:
        return next((s for s in self.streams if s.codec_type == codec_type), None)

    @property
    def sync_drift_s(self) -> Optional[float]:
        """Largest start or end offset between the first video and audio streams.

        None when either stream is missing.  The end offset is only counted
        when ffprobe reports a duration for both streams.
        """
        video = self.first_stream("video")
        audio = self.first_stream("audio")
        if video is None or audio is None:
            return None
        drift = abs(video.start_s - audio.start_s)
        if video.end_s is not None and audio.end_s is not None:
            drift = max(drift, abs(video.end_s - audio.end_s))
        return drift


def _optional_float(value) -> Optional[float]:
    if value is None or value == "N/A":
        return None
    return float(value)


def probe_media(path: Path, runner: CommandRunner, timeout_s: float) -> MediaInfo:
    """Return duration, stream types and stream timing for *path*.

    Raises
    ------
    MediaProbeError
        If the file is missing, ffprobe fails, or its JSON cannot be parsed.
    MediaTimeoutError
        If ffprobe exceeds *timeout_s*.
    """
    if not path.exists():
        raise MediaProbeError(path, "File not found.")

    result = runner.run(probe_command(path), timeout_s)
    if not result.ok:
        raise MediaProbeError(path, f"ffprobe failed: {result.stderr.strip()[-500:]}")

    try:
        data = json.loads(result.stdout)
        streams = data.get("streams", [])
        codec_types = frozenset(s.get("codec_type", "") for s in streams) - {""}
        timings = tuple(
            StreamTiming(
                codec_type=s["codec_type"],
                start_s=_optional_float(s.get("start_time")) or 0.0,
                duration_s=_optional_float(s.get("duration")),
            )
            for s in streams
            if s.get("codec_type")
        )
        duration = data.get("format", {}).get("duration")
        if duration is None:
            # Some containers only report duration per stream
            duration = max(float(s.get("duration", 0)) for s in streams) if streams else 0
        duration_s = float(duration)
    except (AttributeError, ValueError, TypeError, json.JSONDecodeError) as exc:
        raise MediaProbeError(path, f"Could not parse ffprobe output: {exc}") from exc

    return MediaInfo(duration_s=duration_s, codec_types=codec_types, streams=timings)
