"""Keep-segment extraction and concatenation into a single edited video.

Implements:
- parallel per-segment extraction over a bounded thread pool, each a
  re-encoding FFmpeg call with one retry using output seeking
- concat-demuxer join in keep-segment order, first as a stream copy, then
  (if the result fails stream verification) as a forced re-encode
- unconditional removal of per-segment temporaries and the concat list
- audio/video drift measured on the joined file for the consistency checks
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Sequence

from recut.config import RecutConfig
from recut.errors import ConcatVerificationError, MediaProbeError, SegmentExtractionError
from recut.models import AssemblyResult, KeepSegment
from recut.render.commands import (
    concat_copy_command,
    concat_list_text,
    concat_reencode_command,
    extract_command,
    extract_reencode_command,
)
from recut.render.probe import MediaInfo, probe_media
from recut.render.runner import CommandRunner, RunResult, SubprocessRunner

logger = logging.getLogger(__name__)

ASSEMBLED_NAME = "assembled.mp4"
CONCAT_LIST_NAME = "concat_list.txt"


def segment_path(work_dir: Path, index: int) -> Path:
    return work_dir / f"segment_{index:04d}.mp4"


class VideoAssembler:
    """Cuts *segments* out of a source and joins them into one staged file."""

    def __init__(self, config: RecutConfig, runner: Optional[CommandRunner] = None) -> None:
        self.config = config
        self.runner = runner if runner is not None else SubprocessRunner()

    def assemble(
        self,
        source: Path,
        segments: Sequence[KeepSegment],
        work_dir: Path,
        source_info: Optional[MediaInfo] = None,
    ) -> AssemblyResult:
        """Extract and concatenate *segments* into ``work_dir/assembled.mp4``.

        The staged file is not published; the caller moves it into place once
        the edit has been validated.

        Raises:
            SegmentExtractionError: A segment failed twice.
            ConcatVerificationError: The re-encoded concat still failed verification.
            MediaTimeoutError: Any FFmpeg call exceeded its timeout.
            MediaProbeError: The source could not be probed.
        """
        if not segments:
            raise ValueError("assemble() requires at least one keep segment")
        if source_info is None:
            source_info = probe_media(source, self.runner, self.config.probe_timeout_s)
        required = {"video"} | ({"audio"} if source_info.has_audio else set())

        paths = [segment_path(work_dir, i) for i in range(len(segments))]
        concat_list = work_dir / CONCAT_LIST_NAME
        staged = work_dir / ASSEMBLED_NAME
        try:
            self._extract_all(source, segments, paths)
            concat_list.write_text(concat_list_text(paths), encoding="utf-8")
            info = self._concatenate(concat_list, staged, required)
        finally:
            for p in [*paths, concat_list]:
                p.unlink(missing_ok=True)

        logger.info(
            "Assembled %d segment(s) into %s (%.3fs)",
            len(segments), staged.name, info.duration_s,
        )
        return AssemblyResult(
            output_path=staged,
            final_duration_sec=info.duration_s,
            segment_count=len(segments),
            sync_drift_sec=info.sync_drift_s,
        )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def _extract_all(self, source: Path, segments: Sequence[KeepSegment], paths: Sequence[Path]) -> None:
        workers = min(self.config.extraction_concurrency, len(segments))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="recut-extract") as pool:
            futures = [
                pool.submit(self.extract_segment, i, source, seg, path)
                for i, (seg, path) in enumerate(zip(segments, paths))
            ]
            try:
                for future in futures:
                    future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

    def extract_segment(self, index: int, source: Path, segment: KeepSegment, output: Path) -> Path:
        """Extract one segment, retrying once with the output-seeking command."""
        fps = self.config.target_fps
        timeout = self.config.extract_timeout_s

        result = self.runner.run(
            extract_command(source, segment.start_sec, segment.end_sec, output, fps), timeout
        )
        if _produced(result, output):
            return output

        logger.warning(
            "Extraction failed for segment #%d (rc=%d); retrying with full re-encode. stderr: %s",
            index, result.exit_code, result.stderr[-400:],
        )
        output.unlink(missing_ok=True)
        result = self.runner.run(
            extract_reencode_command(source, segment.start_sec, segment.end_sec, output, fps), timeout
        )
        if _produced(result, output):
            return output

        raise SegmentExtractionError(
            index,
            segment.start_sec,
            segment.end_sec,
            result.stderr.strip()[-500:] or f"ffmpeg exited {result.exit_code} without output",
        )

    # ------------------------------------------------------------------
    # Concatenation
    # ------------------------------------------------------------------

    def _concatenate(self, concat_list: Path, staged: Path, required: set[str]) -> MediaInfo:
        result = self.runner.run(concat_copy_command(concat_list, staged), self.config.concat_timeout_s)
        info, problem = self._verify(result, staged, required)
        if info is not None:
            return info

        logger.warning("Stream-copy concat failed verification (%s); re-encoding", problem)
        staged.unlink(missing_ok=True)
        result = self.runner.run(
            concat_reencode_command(concat_list, staged, self.config.target_fps),
            self.config.concat_timeout_s,
        )
        info, problem = self._verify(result, staged, required)
        if info is not None:
            return info
        raise ConcatVerificationError(staged, problem or "unknown failure")

    def _verify(
        self, result: RunResult, staged: Path, required: set[str]
    ) -> tuple[Optional[MediaInfo], Optional[str]]:
        if not result.ok:
            return None, f"ffmpeg exited {result.exit_code}: {result.stderr.strip()[-300:]}"
        try:
            info = probe_media(staged, self.runner, self.config.probe_timeout_s)
        except MediaProbeError as exc:
            return None, exc.detail
        missing = required - info.codec_types
        if missing:
            return None, f"missing {', '.join(sorted(missing))} stream(s)"
        if info.duration_s <= 0:
            return None, "zero duration"
        return info, None


def _produced(result: RunResult, output: Path) -> bool:
    return result.ok and output.exists() and output.stat().st_size > 0
