"""Transcript loading.

The native input is the JSON transcript (``{"segments": [...]}``) produced
by the speech-to-text stage.  SRT, WebVTT and ASS/SSA files are accepted as
well via pysubs2; non-UTF-8 subtitle files are detected with
charset-normalizer before a second parse attempt.  Subtitle files carry no
word timings, so their segments have ``words=None``.
"""

from __future__ import annotations

from pathlib import Path

import pysubs2
from charset_normalizer import from_path
from pydantic import ValidationError

from recut.errors import InvalidTranscriptError, validation_detail
from recut.models import Transcript, TranscriptSegment, TranscriptWord
from recut.plan.schema import TranscriptFile

_SUBTITLE_EXTS = {".srt", ".vtt", ".ass", ".ssa"}


def load_transcript(path: Path) -> Transcript:
    """Load a JSON or subtitle-file transcript.

    Raises
    ------
    InvalidTranscriptError
        If the file is missing, unreadable, or fails validation.
    """
    if path.suffix.lower() in _SUBTITLE_EXTS:
        return _from_subtitle_file(path)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidTranscriptError(path, str(e)) from e
    return parse_transcript_json(text, path)


def parse_transcript_json(text: str, path: Path | None = None) -> Transcript:
    try:
        data = TranscriptFile.model_validate_json(text)
    except ValidationError as e:
        raise InvalidTranscriptError(path, f"Schema validation failed: {validation_detail(e)}") from e

    segments: list[TranscriptSegment] = []
    for seg in data.segments:
        words = None
        if seg.words is not None:
            words = sorted(
                (TranscriptWord(start=w.start, end=w.end, word=w.word) for w in seg.words),
                key=lambda w: (w.start, w.end),
            )
        segments.append(TranscriptSegment(start=seg.start, end=seg.end, text=seg.text, words=words))
    return Transcript(segments=segments)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _from_subtitle_file(path: Path) -> Transcript:
    subs = _load_with_encoding_fallback(path)
    segments = [
        TranscriptSegment(
            start=event.start / 1000.0,
            end=event.end / 1000.0,
            text=event.plaintext.strip(),
        )
        for event in subs
        if not event.is_comment and event.plaintext.strip()
    ]
    segments.sort(key=lambda s: (s.start, s.end))
    return Transcript(segments=segments)


def _load_with_encoding_fallback(path: Path) -> pysubs2.SSAFile:
    """Load *path* with UTF-8, falling back to charset-normalizer."""
    try:
        return pysubs2.load(str(path), encoding="utf-8")
    except UnicodeDecodeError:
        pass
    except Exception as exc:
        raise InvalidTranscriptError(path, str(exc)) from exc

    best = from_path(path).best()
    if best is None:
        raise InvalidTranscriptError(path, "Could not determine file encoding. Re-save as UTF-8.")
    try:
        return pysubs2.load(str(path), encoding=best.encoding)
    except Exception as exc:
        raise InvalidTranscriptError(path, str(exc)) from exc
