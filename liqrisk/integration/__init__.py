"""Assessment shell: configuration, multi-account sweeps, submission retry, CLI."""

from .assess import (
    AccountAssessment,
    AssessmentFailure,
    SweepReport,
    assess_account,
    assess_accounts,
    estimate_liquidation,
    retry_send,
    submit,
)
from .config import EngineConfig, load_config

__all__ = [
    "AccountAssessment",
    "AssessmentFailure",
    "EngineConfig",
    "SweepReport",
    "assess_account",
    "assess_accounts",
    "estimate_liquidation",
    "load_config",
    "retry_send",
    "submit",
]
