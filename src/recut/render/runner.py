"""Subprocess runner used for every FFmpeg/ffprobe invocation."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from recut.errors import MediaTimeoutError
from recut.render.commands import MediaCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    def run(self, command: MediaCommand, timeout_s: float) -> RunResult: ...


class SubprocessRunner:
    """Blocking runner; the child is killed when *timeout_s* elapses."""

    def run(self, command: MediaCommand, timeout_s: float) -> RunResult:
        logger.debug("%s: %s", command.op.value, command)
        try:
            proc = subprocess.run(
                list(command.argv),
                capture_output=True,
                text=True,
                timeout=timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            # subprocess.run kills the child before re-raising
            raise MediaTimeoutError(command.op.value, timeout_s) from exc
        except FileNotFoundError:
            return RunResult(
                exit_code=127,
                stdout="",
                stderr=f"{command.argv[0]} not found. Is FFmpeg installed and in PATH?",
            )
        return RunResult(exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
