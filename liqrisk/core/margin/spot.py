"""Spot borrow aggregation.

Only negative balances (borrows) contribute here; deposits are already part
of the collateral value. Realized perp P&L settles in the quote collateral,
so it offsets the quote borrow before pricing.
"""

from __future__ import annotations

from .collateral import actual_collateral
from .math import I128, ceil_to_int, checked_add, fixed_mul_ceil, from_int, spot_margin_factor
from .oracle import require_price
from .types import (
    DEFAULT_RISK_PARAMS,
    QUOTE_COLLATERAL_INDEX,
    FactorMode,
    RiskParams,
    Snapshot,
    SpotBorrows,
)


def spot_factors(mode: FactorMode, weight: int, params: RiskParams = DEFAULT_RISK_PARAMS) -> tuple[int | None, int | None]:
    """``(imf, mmf)`` for a borrowed asset; the cancel check reuses the initial ratio."""
    imf = mmf = None
    if mode in (FactorMode.IMF, FactorMode.CANCEL, FactorMode.BOTH):
        imf = spot_margin_factor(params.spot_initial_margin_req, weight)
    if mode in (FactorMode.MMF, FactorMode.BOTH):
        mmf = spot_margin_factor(params.spot_maint_margin_req, weight)
    return imf, mmf


def get_spot_borrows(
    snapshot: Snapshot,
    total_realized_pnl: int,
    mode: FactorMode,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> SpotBorrows:
    """Notional and factor vectors for every active borrow, in collateral index order."""
    balances = snapshot.account.collateral
    has_open = False
    imf_vec: list[int] = []
    mmf_vec: list[int] = []
    notionals: list[int] = []

    for index in range(min(snapshot.total_collaterals, len(balances))):
        raw = balances[index]
        if raw >= 0:
            continue
        info, accrual = snapshot.collateral_slot(index)
        debt = actual_collateral(raw, accrual.supply_multiplier_e12, accrual.borrow_multiplier_e12)
        if index == QUOTE_COLLATERAL_INDEX:
            debt = checked_add(debt, from_int(total_realized_pnl), I128)

        price = require_price(snapshot, info.oracle_symbol)
        # P&L can more than cover the quote borrow; a covered borrow carries no exposure.
        notional = max(0, ceil_to_int(fixed_mul_ceil(price, -debt)))
        if notional > 0:
            has_open = True

        imf, mmf = spot_factors(mode, info.weight, params)
        if imf is not None:
            imf_vec.append(imf)
        if mmf is not None:
            mmf_vec.append(mmf)
        notionals.append(notional)

    return SpotBorrows(
        has_open_pos_notional=has_open,
        imf=tuple(imf_vec),
        mmf=tuple(mmf_vec),
        pos_notional=tuple(notionals),
    )
