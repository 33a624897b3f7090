"""
Engine configuration for the assessment shell.

Sources, later wins:
- dataclass defaults (protocol constants),
- an optional YAML file (a flat mapping; unknown keys are rejected),
- `LIQRISK_*` environment variables.

Environment parsing is lenient in the same way as the rest of the shell: an
unparsable value falls back to the default and out-of-range values are
clamped. File values are strict and raise `MarginConfigError`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..core.margin.errors import MarginConfigError
from ..core.margin.types import SPOT_INITIAL_MARGIN_REQ, SPOT_MAINT_MARGIN_REQ, RiskParams

logger = logging.getLogger(__name__)

ENV_PREFIX = "LIQRISK_"
MAX_REQ = 10_000_000
MAX_RETRIES = 100
MAX_FUDGE_PERMILLE = 10_000


def _env_int(env: Mapping[str, str], name: str, default: int, *, lo: int, hi: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        logger.warning("ignoring non-integer %s=%r", name, raw)
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineConfig:
    spot_initial_margin_req: int = SPOT_INITIAL_MARGIN_REQ
    spot_maint_margin_req: int = SPOT_MAINT_MARGIN_REQ
    submit_retries: int = 5
    liquidation_fudge_permille: int | None = None
    validate_snapshots: bool = True

    def __post_init__(self) -> None:
        if not 0 < self.spot_maint_margin_req <= self.spot_initial_margin_req <= MAX_REQ:
            raise MarginConfigError(
                "spot margin requirements must satisfy 0 < maint <= initial <= "
                f"{MAX_REQ}: maint={self.spot_maint_margin_req} initial={self.spot_initial_margin_req}"
            )
        if not 1 <= self.submit_retries <= MAX_RETRIES:
            raise MarginConfigError(f"submit_retries must be in [1, {MAX_RETRIES}]: {self.submit_retries}")
        fudge = self.liquidation_fudge_permille
        if fudge is not None and not 0 < fudge <= MAX_FUDGE_PERMILLE:
            raise MarginConfigError(
                f"liquidation_fudge_permille must be in (0, {MAX_FUDGE_PERMILLE}]: {fudge}"
            )

    def risk_params(self) -> RiskParams:
        return RiskParams(
            spot_initial_margin_req=self.spot_initial_margin_req,
            spot_maint_margin_req=self.spot_maint_margin_req,
        )


_FIELD_NAMES: frozenset[str] = frozenset(f.name for f in fields(EngineConfig))


def config_from_mapping(d: Mapping[str, Any], base: EngineConfig | None = None) -> EngineConfig:
    """Overlay a flat mapping onto *base* (defaults when None)."""
    unknown = sorted(set(d) - _FIELD_NAMES)
    if unknown:
        raise MarginConfigError(f"unknown config keys: {', '.join(unknown)}", unknown)
    for key, value in d.items():
        if key == "validate_snapshots":
            if not isinstance(value, bool):
                raise MarginConfigError(f"{key} must be a bool")
        elif key == "liquidation_fudge_permille" and value is None:
            continue
        elif not isinstance(value, int) or isinstance(value, bool):
            raise MarginConfigError(f"{key} must be an int")
    return replace(base or EngineConfig(), **dict(d))


def config_from_env(env: Mapping[str, str], base: EngineConfig) -> EngineConfig:
    """Overlay `LIQRISK_*` variables onto *base*."""
    fudge = base.liquidation_fudge_permille
    raw_fudge = env.get(ENV_PREFIX + "LIQUIDATION_FUDGE_PERMILLE")
    if raw_fudge is not None and raw_fudge.strip():
        fudge = _env_int(
            env, ENV_PREFIX + "LIQUIDATION_FUDGE_PERMILLE", fudge or 1000, lo=1, hi=MAX_FUDGE_PERMILLE,
        )
    return replace(
        base,
        spot_initial_margin_req=_env_int(
            env, ENV_PREFIX + "SPOT_INITIAL_MARGIN_REQ", base.spot_initial_margin_req, lo=1, hi=MAX_REQ,
        ),
        spot_maint_margin_req=_env_int(
            env, ENV_PREFIX + "SPOT_MAINT_MARGIN_REQ", base.spot_maint_margin_req, lo=1, hi=MAX_REQ,
        ),
        submit_retries=_env_int(
            env, ENV_PREFIX + "SUBMIT_RETRIES", base.submit_retries, lo=1, hi=MAX_RETRIES,
        ),
        liquidation_fudge_permille=fudge,
        validate_snapshots=_env_bool(env, ENV_PREFIX + "VALIDATE_SNAPSHOTS", base.validate_snapshots),
    )


def load_config(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> EngineConfig:
    """Defaults, then the YAML file at *path* (if any), then the environment."""
    config = EngineConfig()
    if path is not None:
        obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if obj is None:
            obj = {}
        if not isinstance(obj, Mapping):
            raise MarginConfigError(f"config file {path} must be a mapping")
        config = config_from_mapping(obj, config)
        logger.debug("loaded config file %s", path)
    return config_from_env(os.environ if env is None else env, config)
