"""Snapshot invariant checkers.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass). `validate_snapshot()`
raises `MarginConfigError` carrying those IDs.

These are configuration invariants of the protocol data; they are checked once
at the snapshot boundary, not inside every computation.
"""

from __future__ import annotations

from typing import Callable

from .errors import MarginConfigError
from .math import I64, PERMILLE, U16
from .types import ACCOUNT_KEY_LEN, EMPTY_KEY, MAX_COLLATERALS, MAX_MARKETS, Snapshot


def _active_collaterals(s: Snapshot):
    return [c for c in s.collaterals[: s.total_collaterals] if c is not None]


def _active_markets(s: Snapshot):
    return [m for m in s.perp_markets[: s.total_markets] if m is not None]


def inv_active_counts_within_capacity(s: Snapshot) -> bool:
    return 0 <= s.total_collaterals <= MAX_COLLATERALS and 0 <= s.total_markets <= MAX_MARKETS


def inv_collateral_vectors_cover_active(s: Snapshot) -> bool:
    n = s.total_collaterals
    return (
        len(s.collaterals) >= n
        and len(s.borrows) >= n
        and len(s.account.collateral) >= n
    )


def inv_market_vectors_cover_active(s: Snapshot) -> bool:
    n = s.total_markets
    return (
        len(s.perp_markets) >= n
        and len(s.mark_prices_e12) >= n
        and len(s.funding_indices) >= n
        and len(s.account.positions) >= n
    )


def inv_weights_in_range(s: Snapshot) -> bool:
    return all(0 < c.weight <= PERMILLE for c in _active_collaterals(s))


def inv_liq_fees_in_range(s: Snapshot) -> bool:
    return all(0 <= c.liq_fee < PERMILLE for c in _active_collaterals(s))


def inv_multipliers_nonneg(s: Snapshot) -> bool:
    return all(
        b.supply_multiplier_e12 >= 0 and b.borrow_multiplier_e12 >= 0
        for b in s.borrows[: s.total_collaterals]
    )


def inv_base_imf_in_range(s: Snapshot) -> bool:
    return all(U16.contains(m.base_imf) for m in _active_markets(s))


def inv_asset_decimals_nonneg(s: Snapshot) -> bool:
    return all(m.asset_decimals >= 0 for m in _active_markets(s))


def inv_oracle_prices_positive(s: Snapshot) -> bool:
    return all(e.price_e12 > 0 for e in s.oracles.entries)


def inv_oracle_table_sorted_unique(s: Snapshot) -> bool:
    symbols = s.oracles.symbols
    return all(a < b for a, b in zip(symbols, symbols[1:]))


def inv_position_keys_valid(s: Snapshot) -> bool:
    return all(
        len(p.key) == ACCOUNT_KEY_LEN and p.key != EMPTY_KEY
        for p in s.account.positions
        if p is not None
    )


def inv_resting_orders_nonneg(s: Snapshot) -> bool:
    return all(
        0 <= p.coin_on_bids <= I64.hi and 0 <= p.coin_on_asks <= I64.hi
        for p in s.account.positions
        if p is not None
    )


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[Snapshot], bool]] = {
    "inv_active_counts_within_capacity": inv_active_counts_within_capacity,
    "inv_collateral_vectors_cover_active": inv_collateral_vectors_cover_active,
    "inv_market_vectors_cover_active": inv_market_vectors_cover_active,
    "inv_weights_in_range": inv_weights_in_range,
    "inv_liq_fees_in_range": inv_liq_fees_in_range,
    "inv_multipliers_nonneg": inv_multipliers_nonneg,
    "inv_base_imf_in_range": inv_base_imf_in_range,
    "inv_asset_decimals_nonneg": inv_asset_decimals_nonneg,
    "inv_oracle_prices_positive": inv_oracle_prices_positive,
    "inv_oracle_table_sorted_unique": inv_oracle_table_sorted_unique,
    "inv_position_keys_valid": inv_position_keys_valid,
    "inv_resting_orders_nonneg": inv_resting_orders_nonneg,
}


def check_all(snapshot: Snapshot) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(snapshot)
    ]


def validate_snapshot(snapshot: Snapshot) -> Snapshot:
    """Return *snapshot* unchanged, or raise `MarginConfigError` listing violations."""
    violations = check_all(snapshot)
    if violations:
        raise MarginConfigError(f"invalid snapshot: {', '.join(violations)}", violations)
    return snapshot
