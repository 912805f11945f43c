"""Shared fixtures: an in-process stand-in for ffmpeg/ffprobe.

``FakeMediaRunner`` implements the ``CommandRunner`` protocol.  Extraction
writes a small placeholder file and remembers its ``-t`` duration; concat
sums the durations of the files named in the concat list; probe reports the
remembered duration plus the configured stream types.  With
``whole_frame_fps`` set, extraction rounds each duration up to whole frames
the way an encoder running at ``-r fps`` does.  ``audio_skew`` shifts the
audio start of joined files.  No real process is ever spawned.
"""

from __future__ import annotations

import json
import math
import threading
from pathlib import Path

import pytest

from recut.render.commands import MediaCommand, MediaOp
from recut.render.runner import RunResult


class FakeMediaRunner:
    def __init__(self, streams: tuple[str, ...] = ("video", "audio")) -> None:
        self.streams = streams
        self.calls: list[MediaCommand] = []
        self.durations: dict[str, float] = {}
        self.stream_overrides: dict[str, tuple[str, ...]] = {}
        # op -> number of upcoming calls of that op that should fail
        self.failures: dict[MediaOp, int] = {}
        # streams reported for files produced by CONCAT_COPY (None = same as source)
        self.copy_concat_streams: tuple[str, ...] | None = None
        self.whole_frame_fps: float | None = None
        self.audio_skew = 0.0
        self.audio_starts: dict[str, float] = {}
        self._lock = threading.Lock()

    def add_source(self, path: Path, duration: float) -> Path:
        path.write_bytes(b"source-bytes")
        self.durations[str(path)] = duration
        return path

    @property
    def ops(self) -> list[MediaOp]:
        return [c.op for c in self.calls]

    def run(self, command: MediaCommand, timeout_s: float) -> RunResult:
        with self._lock:
            self.calls.append(command)
            if self.failures.get(command.op, 0) > 0:
                self.failures[command.op] -= 1
                return RunResult(exit_code=1, stdout="", stderr=f"simulated {command.op.value} failure")

        argv = command.argv
        if command.op is MediaOp.PROBE:
            return self._probe(argv[-1])

        output = Path(argv[-1])
        if command.op in (MediaOp.EXTRACT, MediaOp.EXTRACT_REENCODE):
            duration = float(argv[argv.index("-t") + 1])
            if self.whole_frame_fps is not None:
                duration = math.ceil(duration * self.whole_frame_fps - 1e-3) / self.whole_frame_fps
        else:
            concat_list = Path(argv[argv.index("-i") + 1])
            duration = sum(self.durations[p] for p in _list_entries(concat_list))
        output.write_bytes(b"media")
        with self._lock:
            self.durations[str(output)] = duration
            if command.op in (MediaOp.CONCAT_COPY, MediaOp.CONCAT_REENCODE):
                self.audio_starts[str(output)] = self.audio_skew
            if command.op is MediaOp.CONCAT_COPY and self.copy_concat_streams is not None:
                self.stream_overrides[str(output)] = self.copy_concat_streams
            else:
                self.stream_overrides.pop(str(output), None)
        return RunResult(exit_code=0, stdout="", stderr="")

    def _probe(self, path: str) -> RunResult:
        streams = self.stream_overrides.get(path, self.streams)
        duration = self.durations.get(path, 0.0)
        audio_start = self.audio_starts.get(path, 0.0)
        payload = {
            "format": {"duration": str(duration)},
            "streams": [
                {
                    "codec_type": t,
                    "start_time": f"{audio_start if t == 'audio' else 0.0:.6f}",
                    "duration": f"{duration:.6f}",
                }
                for t in streams
            ],
        }
        return RunResult(exit_code=0, stdout=json.dumps(payload), stderr="")


def _list_entries(concat_list: Path) -> list[str]:
    entries = []
    for line in concat_list.read_text(encoding="utf-8").splitlines():
        if line.startswith("file '"):
            entries.append(line[len("file '"):-1].replace("'\\''", "'"))
    return entries


@pytest.fixture
def fake_runner() -> FakeMediaRunner:
    return FakeMediaRunner()
