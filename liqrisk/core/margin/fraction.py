"""Dispatch-table margin fraction check.

``evaluate_fraction(fraction_type, weighted_collateral, snapshot)``:

1. Runs the perp and spot aggregations for the fraction's factor mode.
2. Concatenates their vectors (perp entries first, spot appended).
3. Without open exposure the account passes trivially.
4. Otherwise compares the margin budget against ``sum(factor * notional)``.

The comparison is strict: ``budget == requirement`` fails.
"""

from __future__ import annotations

from typing import Callable

from .collateral import weighted_collateral
from .math import PERMILLE, checked_add, checked_mul, weighted_sum
from .perp import get_perp_acc_params
from .spot import get_spot_borrows
from .types import (
    DEFAULT_RISK_PARAMS,
    FactorMode,
    FractionCheck,
    FractionType,
    PerpAccParams,
    RiskParams,
    Snapshot,
    SpotBorrows,
)

TermsFn = Callable[[PerpAccParams, SpotBorrows], tuple[tuple[int, ...], tuple[int, ...]]]
BudgetFn = Callable[[PerpAccParams, int], int]


def _initial_terms(perp: PerpAccParams, spot: SpotBorrows) -> tuple[tuple[int, ...], tuple[int, ...]]:
    return perp.imf + spot.imf, perp.pos_open_notional + spot.pos_notional


def _maintenance_terms(perp: PerpAccParams, spot: SpotBorrows) -> tuple[tuple[int, ...], tuple[int, ...]]:
    # Current risk only: raw notional, not worst-case order fills.
    return perp.mmf + spot.mmf, perp.pos_notional + spot.pos_notional


def _cancel_terms(perp: PerpAccParams, spot: SpotBorrows) -> tuple[tuple[int, ...], tuple[int, ...]]:
    # Spot borrows use the initial ratio under the cancel check.
    return perp.cmf + spot.imf, perp.pos_open_notional + spot.pos_notional


def _open_budget(perp: PerpAccParams, collateral: int) -> int:
    realized = checked_add(collateral, perp.total_realized_pnl)
    return checked_mul(min(perp.total_acc_value, realized), PERMILLE)


def _maintenance_budget(perp: PerpAccParams, collateral: int) -> int:
    return checked_mul(perp.total_acc_value, PERMILLE)


_DISPATCH: dict[FractionType, tuple[TermsFn, BudgetFn]] = {
    FractionType.INITIAL: (_initial_terms, _open_budget),
    FractionType.MAINTENANCE: (_maintenance_terms, _maintenance_budget),
    FractionType.CANCEL: (_cancel_terms, _open_budget),
}


def evaluate_fraction(
    fraction_type: FractionType,
    weighted_collateral: int,
    snapshot: Snapshot,
    *,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> FractionCheck:
    """Evaluate one margin fraction, keeping the budget and requirement."""
    terms_fn, budget_fn = _DISPATCH[fraction_type]
    mode = FactorMode.for_fraction(fraction_type)

    perp = get_perp_acc_params(snapshot, weighted_collateral, mode)
    spot = get_spot_borrows(snapshot, perp.total_realized_pnl, mode, params)

    has_open = perp.has_open_pos_notional or spot.has_open_pos_notional
    if not has_open:
        return FractionCheck(fraction_type=fraction_type, passed=True)

    factors, notionals = terms_fn(perp, spot)
    requirement = weighted_sum(factors, notionals)
    budget = budget_fn(perp, weighted_collateral)
    return FractionCheck(
        fraction_type=fraction_type,
        passed=budget > requirement,
        has_open_pos_notional=True,
        budget=budget,
        requirement=requirement,
    )


def check_fraction_requirement(
    fraction_type: FractionType,
    weighted_collateral: int,
    snapshot: Snapshot,
    *,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> bool:
    """True iff the account satisfies *fraction_type* given its weighted collateral."""
    return evaluate_fraction(fraction_type, weighted_collateral, snapshot, params=params).passed


def check_account_fraction(
    snapshot: Snapshot,
    fraction_type: FractionType,
    *,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> bool:
    """`check_fraction_requirement` with the account's own weighted collateral."""
    return check_fraction_requirement(
        fraction_type, weighted_collateral(snapshot), snapshot, params=params,
    )
