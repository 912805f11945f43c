"""Job work directories, atomic publication and the verbatim-copy fallback.

Final artifacts are always produced in a sibling work directory and moved
into place with ``os.replace()``.  The work directory lives next to the
destination so the replace stays on one filesystem and is atomic: the
destination is either absent, the previous file, or the complete new file.
Filesystem failures surface as :class:`~recut.errors.OutputError`.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from recut.errors import OutputError

_logger = logging.getLogger("recut")


def _output_error(path: Path, exc: OSError) -> OutputError:
    return OutputError(path, exc.strerror or str(exc))


@contextmanager
def job_workspace(output_path: Path) -> Iterator[Path]:
    """Yield a fresh hidden directory beside *output_path*; always removed on exit."""
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix=f".{output_path.stem}.recut-", dir=output_path.parent))
    except OSError as e:
        raise _output_error(output_path, e) from e
    try:
        yield work_dir
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)


def publish_file(staged: Path, destination: Path) -> Path:
    """Atomically move *staged* onto *destination*."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.replace(staged, destination)
    except OSError as e:
        raise _output_error(destination, e) from e
    return destination


def write_text_atomic(destination: Path, content: str) -> Path:
    """Write *content* to *destination* via tempfile + fsync + os.replace()."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=destination.parent, suffix=".tmp", prefix=f".{destination.name}.")
    except OSError as e:
        raise _output_error(destination, e) from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, destination)
    except OSError as e:
        Path(tmp_path).unlink(missing_ok=True)
        raise _output_error(destination, e) from e
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise
    return destination


def copy_original(source: Path, destination: Path) -> Path:
    """Publish a byte-for-byte copy of *source* at *destination*."""
    with job_workspace(destination) as work_dir:
        staged = work_dir / destination.name
        try:
            shutil.copyfile(source, staged)
        except OSError as e:
            raise _output_error(destination, e) from e
        publish_file(staged, destination)
    _logger.info("Copied original '%s' to '%s' unedited", source.name, destination)
    return destination
