"""Cut-plan normalization: timestamp parsing, sorting and degenerate-cut filtering.

Accepted timestamp forms are plain seconds (``12``, ``12.5`` or a number),
``mm:ss[.sss]`` and ``hh:mm:ss[.sss]``.  A value that matches none of them
fails the whole plan with :class:`~recut.errors.InvalidPlanError`; cuts are
only ever dropped for being shorter than the minimum duration.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Iterable, Optional

from recut.errors import InvalidPlanError
from recut.models import Cut
from recut.plan.schema import RawCut, RawTimestamp

_logger = logging.getLogger("recut")

DEFAULT_MIN_CUT_DURATION_S = 0.05

_SECONDS_RE = re.compile(r"^\d+(?:\.\d+)?$")
_MM_SS_RE = re.compile(r"^(\d+):([0-5]\d(?:\.\d+)?)$")
_HH_MM_SS_RE = re.compile(r"^(\d+):([0-5]\d):([0-5]\d(?:\.\d+)?)$")


def parse_timestamp(value: RawTimestamp, path: Optional[Path] = None) -> float:
    """Return *value* as seconds.

    Raises:
        InvalidPlanError: If *value* is negative, non-finite or in no
            recognised format.
    """
    if isinstance(value, bool):
        raise InvalidPlanError(path, f"Invalid timestamp type: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
        if not math.isfinite(seconds) or seconds < 0:
            raise InvalidPlanError(path, f"Timestamp out of range: {value!r}")
        return seconds
    if not isinstance(value, str):
        raise InvalidPlanError(path, f"Invalid timestamp type: {type(value).__name__}")

    text = value.strip()
    if _SECONDS_RE.match(text):
        return float(text)
    match = _MM_SS_RE.match(text)
    if match:
        return int(match.group(1)) * 60 + float(match.group(2))
    match = _HH_MM_SS_RE.match(text)
    if match:
        return int(match.group(1)) * 3600 + int(match.group(2)) * 60 + float(match.group(3))
    raise InvalidPlanError(path, f"Unable to parse timestamp: {value!r}")


def normalize_cuts(
    raw_cuts: Iterable[RawCut],
    min_cut_duration: float = DEFAULT_MIN_CUT_DURATION_S,
    path: Optional[Path] = None,
) -> list[Cut]:
    """Parse, filter and sort a raw cut list.

    Cuts with ``end - start < min_cut_duration`` (including inverted cuts)
    are dropped with a warning.  The result is sorted by start, then end.
    """
    cuts: list[Cut] = []
    for i, raw in enumerate(raw_cuts):
        try:
            start = parse_timestamp(raw.start, path)
            end = parse_timestamp(raw.end, path)
        except InvalidPlanError as exc:
            raise InvalidPlanError(path, f"cuts[{i}]: {exc.detail}") from exc

        if end - start < min_cut_duration:
            _logger.warning(
                "Skipping degenerate cut #%d: %s -> %s (%s)",
                i, raw.start, raw.end, raw.reason or "no reason",
            )
            continue
        cuts.append(Cut(
            start=start,
            end=end,
            type=raw.type,
            reason=raw.reason,
            confidence=raw.confidence,
        ))

    cuts.sort(key=lambda c: (c.start, c.end))
    return cuts
