"""Spot liquidation sizing.

Estimates how many units of a target collateral must be seized (crediting a
quote collateral) to bring the account back above its initial margin:

    imf       = ceil(SPOT_INITIAL_MARGIN_REQ / weight_target) - 1000
    num_lf    = weight_quote * (1000 + liq_fee_target) / (1000 - liq_fee_quote) - 1000
    numerator = sum(open_notional_i * imf_i) - 1000 * min(max(col, 0), acc_value)
    qty       = ceil(numerator / (price_target * (imf - num_lf)))

`num_lf` is fixed point and rounded up, so the denominator is never
overstated and the quantity never understated.
"""

from __future__ import annotations

from .collateral import weighted_collateral
from .errors import MarginConfigError, MarginDivisionByZeroError
from .math import (
    FIXED_SCALE,
    I64,
    I128,
    PERMILLE,
    ceil_div,
    ceil_to_int,
    checked_add,
    checked_mul,
    checked_sub,
    fixed_mul,
    from_int,
    spot_margin_factor,
    weighted_sum,
)
from .oracle import require_price
from .perp import get_perp_acc_params
from .spot import get_spot_borrows
from .types import (
    DEFAULT_RISK_PARAMS,
    CollateralConfig,
    FactorMode,
    LiquidationEstimate,
    RiskParams,
    Snapshot,
)


def liquidation_fee_factor(target: CollateralConfig, quote: CollateralConfig) -> int:
    """Fee-adjusted quote factor ``num_lf`` (e12)."""
    gross = checked_mul(from_int(quote.weight), checked_add(PERMILLE, target.liq_fee), I128)
    adjusted = ceil_div(gross, checked_sub(PERMILLE, quote.liq_fee), I128)
    return checked_sub(adjusted, from_int(PERMILLE), I128)


def calc_max_reducible(
    weighted_sum_imf: int,
    weighted_col: int,
    total_acc_value: int,
    imf: int,
    price_e12: int,
    num_lf_e12: int,
) -> int:
    """Minimum target quantity whose seizure restores initial margin (never negative)."""
    weighted_col = max(weighted_col, 0)
    numerator = checked_sub(
        weighted_sum_imf, checked_mul(min(weighted_col, total_acc_value), PERMILLE),
    )
    denominator = fixed_mul(price_e12, checked_sub(from_int(imf), num_lf_e12, I128))
    if denominator == 0:
        raise MarginDivisionByZeroError("liquidation denominator is zero")
    if denominator < 0:
        raise MarginConfigError(
            f"liquidation fee factor {num_lf_e12} exceeds target margin factor {imf}",
        )
    qty = ceil_div(checked_mul(numerator, FIXED_SCALE, I128), denominator, I64)
    return max(qty, 0)


def max_reducible_assets(
    snapshot: Snapshot,
    imf: int,
    num_lf_e12: int,
    price_e12: int,
    weighted_col: int,
    *,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> int:
    """Run both aggregations in combined mode and size the seizure."""
    perp = get_perp_acc_params(snapshot, weighted_col, FactorMode.BOTH)
    spot = get_spot_borrows(snapshot, perp.total_realized_pnl, FactorMode.BOTH, params)

    factors = perp.imf + spot.imf
    notionals = perp.pos_open_notional + spot.pos_notional
    return calc_max_reducible(
        weighted_sum(factors, notionals),
        weighted_col,
        perp.total_acc_value,
        imf,
        price_e12,
        num_lf_e12,
    )


def _collateral_info(snapshot: Snapshot, index: int) -> CollateralConfig:
    if not 0 <= index < min(snapshot.total_collaterals, len(snapshot.collaterals)):
        raise MarginConfigError(f"collateral index {index} is not active")
    info = snapshot.collaterals[index]
    if info is None:
        raise MarginConfigError(f"collateral slot {index} is empty")
    return info


def estimate_spot_liquidation_size(
    snapshot: Snapshot,
    asset_index: int,
    quote_index: int,
    fudge_permille: int | None = None,
    *,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> LiquidationEstimate:
    """Seizure size in target units and its quote value.

    *fudge_permille* inflates the quote value for execution slippage
    (e.g. 1050 adds 5%); it is a caller safety margin, not part of sizing.
    """
    target = _collateral_info(snapshot, asset_index)
    quote = _collateral_info(snapshot, quote_index)

    imf = spot_margin_factor(params.spot_initial_margin_req, target.weight)
    num_lf = liquidation_fee_factor(target, quote)
    price = require_price(snapshot, target.oracle_symbol)

    qty = max_reducible_assets(
        snapshot, imf, num_lf, price, weighted_collateral(snapshot), params=params,
    )
    quote_value = ceil_to_int(fixed_mul(from_int(qty), price))
    if fudge_permille is not None:
        quote_value = ceil_div(checked_mul(quote_value, fudge_permille), PERMILLE)
    return LiquidationEstimate(asset_qty=qty, quote_value=quote_value)
