"""Unit tests for cut-plan parsing, normalization and loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from recut.errors import InvalidPlanError, PlanUnavailableError
from recut.plan.loader import load_cut_plan
from recut.plan.normalize import normalize_cuts, parse_timestamp
from recut.plan.schema import RawCut


def _write_plan(tmp_path: Path, cuts, **extra) -> Path:
    data = {"source": "in.mp4", "output": "out/edited.mp4", "cuts": cuts, **extra}
    path = tmp_path / "talk.cutplan.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestParseTimestamp:
    @pytest.mark.parametrize("value, expected", [
        (12, 12.0),
        (12.5, 12.5),
        ("12", 12.0),
        ("12.25", 12.25),
        ("01:30", 90.0),
        ("1:05.5", 65.5),
        ("01:02:03", 3723.0),
        ("00:00:01.250", 1.25),
    ])
    def test_accepted_forms(self, value, expected):
        assert parse_timestamp(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["abc", "1:2:3:4", "01:75", "-3", "", "1e3"])
    def test_rejects_unparsable_strings(self, value):
        with pytest.raises(InvalidPlanError) as exc_info:
            parse_timestamp(value)
        assert exc_info.value.code == "INVALID_PLAN"

    def test_rejects_negative_number(self):
        with pytest.raises(InvalidPlanError, match="out of range"):
            parse_timestamp(-1.0)

    def test_rejects_non_finite(self):
        with pytest.raises(InvalidPlanError):
            parse_timestamp(float("inf"))

    def test_rejects_bool(self):
        with pytest.raises(InvalidPlanError):
            parse_timestamp(True)


class TestNormalizeCuts:
    def test_sorts_by_start_then_end(self):
        cuts = normalize_cuts([
            RawCut(start=30, end=40),
            RawCut(start="00:10", end="00:20"),
            RawCut(start=10, end=15),
        ])
        assert [(c.start, c.end) for c in cuts] == [(10.0, 15.0), (10.0, 20.0), (30.0, 40.0)]

    def test_drops_degenerate_and_inverted_cuts(self, caplog):
        cuts = normalize_cuts([
            RawCut(start=5.0, end=5.01, reason="blip"),
            RawCut(start=9.0, end=8.0),
            RawCut(start=1.0, end=2.0),
        ])
        assert [(c.start, c.end) for c in cuts] == [(1.0, 2.0)]
        assert "degenerate" in caplog.text

    def test_cut_at_exact_minimum_is_kept(self):
        cuts = normalize_cuts([RawCut(start=1.0, end=1.5)], min_cut_duration=0.5)
        assert len(cuts) == 1

    def test_bad_timestamp_reports_index(self):
        with pytest.raises(InvalidPlanError, match=r"cuts\[1\]"):
            normalize_cuts([RawCut(start=1, end=2), RawCut(start="soon", end=3)])

    def test_metadata_carried_through(self):
        (cut,) = normalize_cuts([RawCut(start=1, end=2, type="cut", reason="filler", confidence=0.7)])
        assert cut.reason == "filler"
        assert cut.confidence == pytest.approx(0.7)
        assert cut.duration == pytest.approx(1.0)


class TestLoadCutPlan:
    def test_loads_and_resolves_relative_paths(self, tmp_path):
        path = _write_plan(tmp_path, [{"start": "0:10", "end": "0:20", "reason": "um"}])
        plan = load_cut_plan(path)
        assert plan.source == (tmp_path / "in.mp4").resolve()
        assert plan.output == (tmp_path / "out" / "edited.mp4").resolve()
        assert plan.cut_count == 1
        assert plan.cuts[0].start == pytest.approx(10.0)

    def test_absolute_paths_kept(self, tmp_path):
        src = tmp_path / "media" / "a.mp4"
        path = _write_plan(tmp_path, [], source=str(src))
        assert load_cut_plan(path).source == src

    def test_schema_version_alias(self, tmp_path):
        path = _write_plan(tmp_path, [], schemaVersion="2")
        assert load_cut_plan(path).cuts == []

    def test_keep_entries_not_counted_as_cuts(self, tmp_path):
        path = _write_plan(tmp_path, [
            {"start": 1, "end": 2, "type": "keep"},
            {"start": 3, "end": 4},
        ])
        assert load_cut_plan(path).cut_count == 1

    def test_missing_file_is_unavailable(self, tmp_path):
        with pytest.raises(PlanUnavailableError):
            load_cut_plan(tmp_path / "nope.json")

    def test_missing_cuts_array_is_invalid(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps({"source": "a.mp4", "output": "b.mp4"}), encoding="utf-8")
        with pytest.raises(InvalidPlanError, match="cuts") as exc_info:
            load_cut_plan(path)
        assert not isinstance(exc_info.value, PlanUnavailableError)

    def test_malformed_json_is_invalid(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidPlanError) as exc_info:
            load_cut_plan(path)
        assert not isinstance(exc_info.value, PlanUnavailableError)

    def test_bool_timestamp_rejected(self, tmp_path):
        path = _write_plan(tmp_path, [{"start": True, "end": 3}])
        with pytest.raises(InvalidPlanError, match="boolean"):
            load_cut_plan(path)

    def test_unparsable_timestamp_fails_whole_plan(self, tmp_path):
        path = _write_plan(tmp_path, [{"start": 1, "end": 2}, {"start": "later", "end": 9}])
        with pytest.raises(InvalidPlanError, match="later"):
            load_cut_plan(path)
