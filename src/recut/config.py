"""Job-level configuration for recut.

Every frame computation in the package reads ``target_fps`` from a
:class:`RecutConfig`; there is no other frame-rate constant.  Values come
from, in increasing priority: field defaults, ``RECUT_*`` environment
variables, explicit overrides (CLI flags).
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from recut.errors import ConfigError, validation_detail

ENV_PREFIX = "RECUT_"


class RecutConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_fps: float = Field(default=30.0, gt=0.0)
    pad_seconds: float = Field(default=0.3, ge=0.0)
    merge_gap_seconds: float = Field(default=0.5, ge=0.0)
    min_keep_ratio: float = Field(default=0.20, ge=0.0, le=1.0)
    extraction_concurrency: int = Field(default=4, ge=1)
    min_cut_duration: float = Field(default=0.05, ge=0.0)
    # Largest tolerated audio/video start or end offset in the edited file
    max_sync_drift_ms: float = Field(default=50.0, ge=0.0)

    # Per-operation subprocess timeouts (seconds)
    extract_timeout_s: float = Field(default=600.0, gt=0.0)
    concat_timeout_s: float = Field(default=1800.0, gt=0.0)
    probe_timeout_s: float = Field(default=30.0, gt=0.0)

    write_srt: bool = True
    write_vtt: bool = True


def config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    **overrides: object,
) -> RecutConfig:
    """Build a :class:`RecutConfig` from ``RECUT_*`` variables plus overrides.

    ``None`` overrides are ignored so CLI options left unset fall through to
    the environment and then to the defaults.

    Raises:
        ConfigError: If any value fails validation.
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}
    for name in RecutConfig.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - set(RecutConfig.model_fields)
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}")
    try:
        return RecutConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(validation_detail(e)) from e
