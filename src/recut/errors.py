from pathlib import Path


class RecutError(Exception):
    """Base class for all recut errors."""

    code: str = "RECUT_ERROR"


class InvalidPlanError(RecutError):
    code = "INVALID_PLAN"

    def __init__(self, path: Path | None, detail: str) -> None:
        name = path.name if path is not None else "<cut plan>"
        super().__init__(
            f"Cut plan '{name}' is invalid.\n"
            f"  Cause: {detail}\n"
            f"  Check: Does the plan have a 'cuts' array whose start/end values are seconds, mm:ss or hh:mm:ss?"
        )
        self.path = path
        self.detail = detail


class PlanUnavailableError(InvalidPlanError):
    """The plan file is missing or cannot be read at all (eligible for the safety fallback)."""


class InvalidTranscriptError(RecutError):
    code = "INVALID_TRANSCRIPT"

    def __init__(self, path: Path | None, detail: str) -> None:
        name = path.name if path is not None else "<transcript>"
        super().__init__(
            f"Transcript '{name}' is invalid.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file JSON with a 'segments' array, or a valid SRT/VTT/ASS file?\n"
            f"  Tip: Try re-saving the file as UTF-8 in a text editor."
        )
        self.path = path
        self.detail = detail


class FrameAccuracyError(RecutError):
    code = "FRAME_ACCURACY"

    def __init__(self, start_error: float, end_error: float, tolerance: float, fps: float) -> None:
        super().__init__(
            f"Retimed subtitle is not frame-accurate at {fps:g} fps.\n"
            f"  Cause: start error={start_error:.6f}s, end error={end_error:.6f}s "
            f"(tolerance={tolerance:.6f}s)\n"
            f"  Check: This is an internal arithmetic defect, not bad input. Please report it."
        )
        self.start_error = start_error
        self.end_error = end_error
        self.tolerance = tolerance
        self.fps = fps


class TimingMismatchError(RecutError):
    code = "TIMING_MISMATCH"

    def __init__(self, video_duration_s: float, transcript_duration_s: float, tolerance: float) -> None:
        super().__init__(
            f"Edited video and retimed transcript disagree on duration.\n"
            f"  Cause: video={video_duration_s:.3f}s, transcript={transcript_duration_s:.3f}s "
            f"(diff={abs(video_duration_s - transcript_duration_s):.3f}s, tolerance=±{tolerance:.3f}s)\n"
            f"  Check: Does the source have a constant frame rate? Is --fps set to the intended output rate?"
        )
        self.video_duration_s = video_duration_s
        self.transcript_duration_s = transcript_duration_s
        self.tolerance = tolerance


class SegmentExtractionError(RecutError):
    code = "SEGMENT_EXTRACTION_FAILED"

    def __init__(self, index: int, start_s: float, end_s: float, detail: str) -> None:
        super().__init__(
            f"Failed to extract keep segment #{index} ({start_s:.3f}s -> {end_s:.3f}s) after retry.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is FFmpeg installed and in PATH? Is the source file complete?\n"
            f"  Tip: Run the FFmpeg command manually with the same arguments to see full output."
        )
        self.index = index
        self.start_s = start_s
        self.end_s = end_s
        self.detail = detail


class ConcatVerificationError(RecutError):
    code = "CONCAT_VERIFICATION_FAILED"

    def __init__(self, output_path: Path, detail: str) -> None:
        super().__init__(
            f"Concatenated output '{output_path.name}' failed verification after forced re-encode.\n"
            f"  Cause: {detail}\n"
            f"  Check: Was there sufficient disk space during encoding? Do all segments share codecs?"
        )
        self.output_path = output_path
        self.detail = detail


class MediaProbeError(RecutError):
    code = "PROBE_FAILED"

    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot probe media file '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is FFmpeg installed and in PATH? Is '{path.name}' a valid video file?\n"
            f"  Tip: Run `ffprobe '{path}' -v quiet -show_streams` to verify the file is readable."
        )
        self.path = path
        self.detail = detail


class MediaTimeoutError(RecutError):
    code = "SUBPROCESS_TIMEOUT"

    def __init__(self, operation: str, timeout_s: float) -> None:
        super().__init__(
            f"Media operation '{operation}' did not finish within {timeout_s:g}s and was killed.\n"
            f"  Check: Raise the RECUT_*_TIMEOUT_S setting for very long sources."
        )
        self.operation = operation
        self.timeout_s = timeout_s


class ManifestError(RecutError):
    code = "MANIFEST_INVALID"

    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot load job manifest '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file valid JSON matching the JobManifest schema?"
        )
        self.path = path
        self.detail = detail


class ConfigError(RecutError):
    code = "INVALID_CONFIG"

    def __init__(self, detail: str) -> None:
        super().__init__(
            f"Invalid configuration.\n"
            f"  Cause: {detail}\n"
            f"  Check: RECUT_* environment variables and command-line options."
        )
        self.detail = detail


class SyncDriftError(RecutError):
    code = "SYNC_DRIFT_EXCEEDED"

    def __init__(self, drift_s: float, threshold_s: float) -> None:
        super().__init__(
            f"Edited video has audio/video drift of {drift_s * 1000:.1f}ms.\n"
            f"  Cause: stream start or end times differ by more than {threshold_s * 1000:.0f}ms\n"
            f"  Check: Does the source have a constant frame rate and gap-free audio?\n"
            f"  Tip: Raise RECUT_MAX_SYNC_DRIFT_MS only if the drift is known to be harmless."
        )
        self.drift_s = drift_s
        self.threshold_s = threshold_s


class OutputError(RecutError):
    code = "OUTPUT_FAILED"

    def __init__(self, path: Path | None, detail: str) -> None:
        name = path.name if path is not None else "<output>"
        super().__init__(
            f"Cannot write output '{name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the output directory writable, with enough free space, and not blocked by a file?"
        )
        self.path = path
        self.detail = detail


def validation_detail(exc) -> str:
    """Join a pydantic ``ValidationError`` into ``loc -> path: msg; ...``."""
    return "; ".join(
        f"{' -> '.join(str(x) for x in err['loc']) or 'root'}: {err['msg']}"
        for err in exc.errors()
    )
