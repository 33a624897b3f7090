"""Perpetual exposure aggregation.

The account walk is an explicit fold: `fold_position()` takes the running
`PerpAccParams` and one position and returns the next `PerpAccParams`
(via `dataclasses.replace()` on frozen dataclasses). `get_perp_acc_params()`
threads the fold through the active positions in ascending market index.

Rounding policy:
- unrealized P&L uses `floor_to_int` (value is understated),
- notionals use `ceil_to_int` (exposure is overstated).
"""

from __future__ import annotations

from dataclasses import replace

from .math import (
    I64,
    I128,
    U16,
    cancel_factor,
    ceil_to_int,
    checked,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    checked_sum,
    fixed_mul,
    floor_to_int,
    from_int,
    maintenance_factor,
)
from .types import FactorMode, PerpAccParams, PerpMarketConfig, Position, Snapshot


def unrealized_funding(pos_size: int, position_funding_index: int, market_funding_index: int, asset_decimals: int) -> int:
    """Funding accrued since the position last settled, floored to native quote units."""
    funding_diff = checked_sub(market_funding_index, position_funding_index, I128)
    owed = checked_mul(pos_size, -funding_diff, I128)
    return checked(checked_div(owed, 10 ** asset_decimals, I128), I64)


def unrealized_pnl(pos_size: int, native_pc_total: int, mark_price_e12: int) -> int:
    """Mark-to-market P&L of an open position against its quote balance."""
    if pos_size > 0:
        value = floor_to_int(fixed_mul(from_int(pos_size), mark_price_e12))
        return checked_sub(value, -native_pc_total)
    owed = floor_to_int(fixed_mul(from_int(-pos_size), mark_price_e12))
    return checked_sub(native_pc_total, owed)


def calc_acc_val(
    collateral: int,
    mark_price_e12: int,
    pos_size: int,
    native_pc_total: int,
    realized_pnl: int,
    position_funding_index: int,
    market_funding_index: int,
    asset_decimals: int,
) -> int:
    """Account value after folding in one position."""
    if pos_size == 0:
        return checked_add(collateral, realized_pnl)
    funding = unrealized_funding(pos_size, position_funding_index, market_funding_index, asset_decimals)
    pnl = unrealized_pnl(pos_size, native_pc_total, mark_price_e12)
    return checked_sum((collateral, realized_pnl, pnl, funding))


def position_notional(pos_size: int, mark_price_e12: int) -> int:
    """``ceil(|pos_size| * mark)``."""
    return ceil_to_int(fixed_mul(from_int(abs(pos_size)), mark_price_e12))


def position_open_notional(pos_size: int, coin_on_bids: int, coin_on_asks: int, mark_price_e12: int) -> int:
    """Worst-case notional if every resting order on the riskier side fills."""
    worst = max(
        abs(checked_add(pos_size, coin_on_bids)),
        abs(checked_sub(pos_size, coin_on_asks)),
    )
    return ceil_to_int(fixed_mul(from_int(worst), mark_price_e12))


def fold_position(
    acc: PerpAccParams,
    position: Position,
    market: PerpMarketConfig,
    mark_price_e12: int,
    market_funding_index: int,
    mode: FactorMode,
) -> PerpAccParams:
    """One step of the perp aggregation."""
    acc_value = calc_acc_val(
        acc.total_acc_value,
        mark_price_e12,
        position.pos_size,
        position.native_pc_total,
        position.realized_pnl,
        position.funding_index,
        market_funding_index,
        market.asset_decimals,
    )
    notional = position_notional(position.pos_size, mark_price_e12)
    open_notional = position_open_notional(
        position.pos_size, position.coin_on_bids, position.coin_on_asks, mark_price_e12,
    )

    base_imf = checked(market.base_imf, U16)
    imf, mmf, cmf = acc.imf, acc.mmf, acc.cmf
    if mode in (FactorMode.IMF, FactorMode.BOTH):
        imf = imf + (base_imf,)
    if mode in (FactorMode.MMF, FactorMode.BOTH):
        mmf = mmf + (maintenance_factor(base_imf),)
    if mode is FactorMode.CANCEL:
        cmf = cmf + (cancel_factor(base_imf),)

    return replace(
        acc,
        total_acc_value=acc_value,
        has_open_pos_notional=acc.has_open_pos_notional or open_notional > 0,
        total_realized_pnl=checked_add(acc.total_realized_pnl, position.realized_pnl),
        imf=imf,
        mmf=mmf,
        cmf=cmf,
        pos_open_notional=acc.pos_open_notional + (open_notional,),
        pos_notional=acc.pos_notional + (notional,),
    )


def get_perp_acc_params(snapshot: Snapshot, collateral: int, mode: FactorMode) -> PerpAccParams:
    """Fold every active position, starting from *collateral* as account value."""
    acc = PerpAccParams(total_acc_value=checked(collateral, I64))
    for index, position in snapshot.active_positions():
        market, mark_price, funding_index = snapshot.market_slot(index)
        acc = fold_position(acc, position, market, mark_price, funding_index, mode)
    return acc
