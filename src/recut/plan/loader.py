from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from recut.errors import InvalidPlanError, PlanUnavailableError, validation_detail
from recut.models import Cut
from recut.plan.normalize import DEFAULT_MIN_CUT_DURATION_S, normalize_cuts
from recut.plan.schema import CutPlanFile


@dataclass
class CutPlan:
    """A loaded and normalized cut plan with resolved media paths."""

    path: Path
    source: Path
    output: Path
    cuts: list[Cut]         # sorted, degenerate cuts removed

    @property
    def cut_count(self) -> int:
        return sum(1 for c in self.cuts if c.type == "cut")


def load_cut_plan(path: Path, min_cut_duration: float = DEFAULT_MIN_CUT_DURATION_S) -> CutPlan:
    """Load, validate and normalize a cut plan. Raises InvalidPlanError on failure.

    A missing or unreadable file raises the :class:`PlanUnavailableError`
    subclass so callers can apply the safety fallback.  Relative ``source``
    and ``output`` paths are resolved against the plan's directory.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PlanUnavailableError(path, str(e)) from e

    try:
        plan_file = CutPlanFile.model_validate_json(text)
    except ValidationError as e:
        raise InvalidPlanError(path, f"Schema validation failed: {validation_detail(e)}") from e

    cuts = normalize_cuts(plan_file.cuts, min_cut_duration=min_cut_duration, path=path)
    return CutPlan(
        path=path,
        source=_resolve(path, plan_file.source),
        output=_resolve(path, plan_file.output),
        cuts=cuts,
    )


def _resolve(plan_path: Path, value: str) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else (plan_path.parent / p).resolve()
