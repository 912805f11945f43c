"""Unit tests for RecutConfig loading and the JSON manifest store."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from recut.config import RecutConfig, config_from_env
from recut.errors import ConfigError, ManifestError, validation_detail
from recut.manifest.schema import JobManifest, LogEntry, SubtitleEntry
from recut.manifest.store import JsonManifestStore


class TestConfig:
    def test_defaults(self):
        config = config_from_env(environ={})
        assert config.target_fps == 30.0
        assert config.pad_seconds == pytest.approx(0.3)
        assert config.merge_gap_seconds == pytest.approx(0.5)
        assert config.min_keep_ratio == pytest.approx(0.2)
        assert config.extraction_concurrency == 4
        assert config.min_cut_duration == pytest.approx(0.05)
        assert config.max_sync_drift_ms == pytest.approx(50.0)

    def test_environment_values(self):
        config = config_from_env(environ={
            "RECUT_TARGET_FPS": "25",
            "RECUT_EXTRACTION_CONCURRENCY": "2",
            "RECUT_WRITE_VTT": "false",
            "RECUT_PAD_SECONDS": "  ",
        })
        assert config.target_fps == 25.0
        assert config.extraction_concurrency == 2
        assert config.write_vtt is False
        assert config.pad_seconds == pytest.approx(0.3)

    def test_overrides_beat_environment_and_none_is_ignored(self):
        config = config_from_env(
            environ={"RECUT_TARGET_FPS": "25", "RECUT_PAD_SECONDS": "0.1"},
            target_fps=24.0,
            pad_seconds=None,
        )
        assert config.target_fps == 24.0
        assert config.pad_seconds == pytest.approx(0.1)

    @pytest.mark.parametrize("overrides", [
        {"target_fps": 0},
        {"min_keep_ratio": 1.5},
        {"extraction_concurrency": 0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigError) as exc_info:
            config_from_env(environ={}, **overrides)
        assert exc_info.value.code == "INVALID_CONFIG"

    def test_invalid_environment_value(self):
        with pytest.raises(ConfigError, match="target_fps"):
            config_from_env(environ={"RECUT_TARGET_FPS": "fast"})

    def test_unknown_override(self):
        with pytest.raises(ConfigError, match="Unknown option"):
            config_from_env(environ={}, frames_per_second=30)

    def test_config_is_frozen(self):
        config = RecutConfig()
        with pytest.raises(ValidationError):
            config.target_fps = 60.0


class TestValidationDetail:
    def test_one_entry_per_field(self):
        with pytest.raises(ValidationError) as exc_info:
            RecutConfig.model_validate({"target_fps": 0, "min_keep_ratio": 2})
        detail = validation_detail(exc_info.value)
        assert detail.startswith("target_fps: Input should be greater than")
        assert detail.count("; ") == 1
        assert "min_keep_ratio: " in detail

    def test_document_level_error_is_root(self):
        with pytest.raises(ValidationError) as exc_info:
            RecutConfig.model_validate("not a mapping")
        assert validation_detail(exc_info.value).startswith("root: ")


class TestJsonManifestStore:
    def test_fresh_manifest_when_absent(self, tmp_path):
        manifest = JsonManifestStore(tmp_path).load("job-1")
        assert manifest.job_ref == "job-1"
        assert manifest.status == "pending"
        assert manifest.subtitles == []

    def test_save_then_load(self, tmp_path):
        store = JsonManifestStore(tmp_path)
        manifest = JobManifest(job_ref="job-1", status="done", output_path="/out/x.mp4")
        manifest.subtitles.append(SubtitleEntry(key="/out/x.srt", format="srt", duration_sec=12.5, word_count=40))
        manifest.logs.append(LogEntry(message="ok"))
        store.save("job-1", manifest)

        assert store.path_for("job-1") == tmp_path / "job-1.manifest.json"
        loaded = store.load("job-1")
        assert loaded.status == "done"
        assert loaded.subtitles[0].type == "final"
        assert loaded.subtitles[0].word_count == 40
        assert loaded.logs[0].message == "ok"

    def test_corrupt_manifest(self, tmp_path):
        store = JsonManifestStore(tmp_path)
        store.path_for("job-1").write_text('{"job_ref": "job-1", "status": "exploded"}', encoding="utf-8")
        with pytest.raises(ManifestError, match="status") as exc_info:
            store.load("job-1")
        assert exc_info.value.code == "MANIFEST_INVALID"

    @pytest.mark.parametrize("job_ref", ["../escape", "", ".hidden", "a/b"])
    def test_rejects_unsafe_job_refs(self, tmp_path, job_ref):
        with pytest.raises(ValueError):
            JsonManifestStore(tmp_path).path_for(job_ref)
