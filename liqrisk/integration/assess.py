"""
Multi-account assessment shell around the margin core.

The core is pure and raises on the first problem; this module is where those
failures are contained. One account failing to evaluate (bad config, missing
price, overflow) is logged and recorded, and the sweep moves on.

`retry_send()` is the retrying submit primitive used by callers that act on an
assessment (e.g. sending a liquidation). Building what gets sent is not part
of this package.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol, TypeVar

from ..core.margin.collateral import collateral_value, weighted_collateral
from ..core.margin.errors import MarginError, SubmitTimeoutError
from ..core.margin.fraction import evaluate_fraction
from ..core.margin.invariants import validate_snapshot
from ..core.margin.liquidation import estimate_spot_liquidation_size
from ..core.margin.orders import largest_open_order
from ..core.margin.types import (
    DEFAULT_RISK_PARAMS,
    FractionCheck,
    FractionType,
    LiquidationEstimate,
    RiskParams,
    Snapshot,
)
from .config import EngineConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AccountAssessment:
    label: str
    collateral_value_e12: int
    weighted_collateral: int
    maintenance: FractionCheck
    initial: FractionCheck
    cancel: FractionCheck
    has_positions: bool
    largest_open_order: int | None

    @property
    def liquidatable(self) -> bool:
        return not self.maintenance.passed

    @property
    def should_cancel_orders(self) -> bool:
        return not self.cancel.passed and self.largest_open_order is not None


@dataclass(frozen=True)
class AssessmentFailure:
    label: str
    code: str
    message: str


@dataclass(frozen=True)
class SweepReport:
    assessments: tuple[AccountAssessment, ...] = ()
    failures: tuple[AssessmentFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def liquidatable(self) -> tuple[str, ...]:
        return tuple(a.label for a in self.assessments if a.liquidatable)


def assess_account(
    snapshot: Snapshot,
    *,
    label: str = "",
    params: RiskParams = DEFAULT_RISK_PARAMS,
    validate: bool = True,
) -> AccountAssessment:
    """Evaluate every margin fraction and the open-order ranking for one account."""
    if validate:
        validate_snapshot(snapshot)
    col = weighted_collateral(snapshot)
    checks = {
        fraction_type: evaluate_fraction(fraction_type, col, snapshot, params=params)
        for fraction_type in FractionType
    }
    has_positions = any(True for _ in snapshot.active_positions())
    return AccountAssessment(
        label=label,
        collateral_value_e12=collateral_value(snapshot, weighted=False),
        weighted_collateral=col,
        maintenance=checks[FractionType.MAINTENANCE],
        initial=checks[FractionType.INITIAL],
        cancel=checks[FractionType.CANCEL],
        has_positions=has_positions,
        largest_open_order=largest_open_order(snapshot) if has_positions else None,
    )


def assess_accounts(
    accounts: Iterable[tuple[str, Snapshot]],
    *,
    config: EngineConfig | None = None,
) -> SweepReport:
    """Assess each ``(label, snapshot)``; failures never stop the sweep."""
    config = config or EngineConfig()
    params = config.risk_params()
    assessments: list[AccountAssessment] = []
    failures: list[AssessmentFailure] = []
    for label, snapshot in accounts:
        try:
            assessments.append(
                assess_account(snapshot, label=label, params=params, validate=config.validate_snapshots)
            )
        except MarginError as exc:
            logger.warning("account %s failed to evaluate: %s: %s", label, exc.code, exc)
            failures.append(AssessmentFailure(label=label, code=exc.code, message=str(exc)))

    report = SweepReport(assessments=tuple(assessments), failures=tuple(failures))
    logger.info(
        "assessed %d accounts: %d liquidatable, %d failed",
        len(report.assessments), len(report.liquidatable), len(report.failures),
    )
    return report


def estimate_liquidation(
    snapshot: Snapshot,
    asset_index: int,
    quote_index: int,
    *,
    config: EngineConfig | None = None,
) -> LiquidationEstimate:
    """Spot liquidation sizing with the configured requirement ratios and fudge."""
    config = config or EngineConfig()
    estimate = estimate_spot_liquidation_size(
        snapshot,
        asset_index,
        quote_index,
        config.liquidation_fudge_permille,
        params=config.risk_params(),
    )
    logger.debug(
        "liquidation estimate asset=%d quote=%d: qty=%d value=%d",
        asset_index, quote_index, estimate.asset_qty, estimate.quote_value,
    )
    return estimate


def _check_to_dict(check: FractionCheck) -> dict[str, Any]:
    return {
        "passed": check.passed,
        "has_open_pos_notional": check.has_open_pos_notional,
        "budget": check.budget,
        "requirement": check.requirement,
    }


def assessment_to_dict(a: AccountAssessment) -> dict[str, Any]:
    return {
        "label": a.label,
        "collateral_value_e12": a.collateral_value_e12,
        "weighted_collateral": a.weighted_collateral,
        "maintenance": _check_to_dict(a.maintenance),
        "initial": _check_to_dict(a.initial),
        "cancel": _check_to_dict(a.cancel),
        "has_positions": a.has_positions,
        "largest_open_order": a.largest_open_order,
        "liquidatable": a.liquidatable,
        "should_cancel_orders": a.should_cancel_orders,
    }


def report_to_dict(report: SweepReport) -> dict[str, Any]:
    return {
        "assessments": [assessment_to_dict(a) for a in report.assessments],
        "failures": [
            {"label": f.label, "code": f.code, "message": f.message}
            for f in report.failures
        ],
    }


# -- Submission ---------------------------------------------------------------

class Sendable(Protocol[T]):
    def send(self) -> T: ...


def retry_send(make_request: Callable[[], Sendable[T]], retries: int) -> T:
    """
    Send a freshly built request up to *retries* times.

    A new request is built for every attempt. Returns the first successful
    response; raises `SubmitTimeoutError` (chained to the last failure) once
    every attempt has failed.
    """
    if retries < 1:
        raise ValueError(f"retries must be positive: {retries}")
    last_error: Exception | None = None
    for attempt in range(1, retries + 1):
        try:
            return make_request().send()
        except Exception as exc:
            logger.debug("send attempt %d/%d failed: %s", attempt, retries, exc)
            last_error = exc
    logger.error("failed to send request after %d attempts: %s", retries, last_error)
    raise SubmitTimeoutError(f"request not accepted after {retries} attempts") from last_error


def submit(make_request: Callable[[], Sendable[T]], *, config: EngineConfig | None = None) -> T:
    """`retry_send` with the configured number of attempts."""
    return retry_send(make_request, (config or EngineConfig()).submit_retries)
