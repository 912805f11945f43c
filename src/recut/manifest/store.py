"""Job manifest persistence.

The pipeline only talks to the :class:`ManifestStore` protocol; callers pass
a store in explicitly.  :class:`JsonManifestStore` keeps one
``<job_ref>.manifest.json`` per job under a base directory, written
atomically (tempfile + os.replace) so a crash never leaves a torn manifest.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from recut.errors import ManifestError, validation_detail
from recut.manifest.schema import JobManifest
from recut.render.publish import write_text_atomic

MANIFEST_SUFFIX = ".manifest.json"
_JOB_REF_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ManifestStore(Protocol):
    def load(self, job_ref: str) -> JobManifest: ...

    def save(self, job_ref: str, manifest: JobManifest) -> None: ...


class JsonManifestStore:
    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir

    def path_for(self, job_ref: str) -> Path:
        if not _JOB_REF_RE.match(job_ref):
            raise ValueError(f"Invalid job reference: {job_ref!r}")
        return self.base_dir / f"{job_ref}{MANIFEST_SUFFIX}"

    def load(self, job_ref: str) -> JobManifest:
        """Return the stored manifest, or a fresh pending one if none exists yet."""
        path = self.path_for(job_ref)
        if not path.exists():
            return JobManifest(job_ref=job_ref)
        try:
            return JobManifest.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise ManifestError(path, f"Schema validation failed: {validation_detail(e)}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(path, str(e)) from e

    def save(self, job_ref: str, manifest: JobManifest) -> None:
        write_text_atomic(self.path_for(job_ref), manifest.model_dump_json(indent=2))
