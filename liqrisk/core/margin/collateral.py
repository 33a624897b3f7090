"""Collateral valuation.

`actual_collateral` applies accrued interest to a raw balance;
`collateral_values` prices every active, non-zero balance in quote units.
Negative (borrowed) values are never weighted: full debt counts against the
account.
"""

from __future__ import annotations

from .math import (
    I128,
    PERMILLE,
    checked_div,
    checked_mul,
    checked_sum,
    fixed_mul,
    floor_to_int,
)
from .oracle import require_price
from .types import Snapshot


def actual_collateral(raw_e12: int, supply_multiplier_e12: int, borrow_multiplier_e12: int) -> int:
    """Interest-accrued balance: deposits use the supply multiplier, borrows the borrow one."""
    if raw_e12 > 0:
        return fixed_mul(raw_e12, supply_multiplier_e12)
    return fixed_mul(raw_e12, borrow_multiplier_e12)


def collateral_values(snapshot: Snapshot, weighted: bool) -> dict[int, int]:
    """Per-asset quote value (e12), keyed by collateral index in ascending order.

    Zero balances are skipped and never need a price. Any other active balance
    without an oracle price raises `PriceUnavailableError`.
    """
    balances = snapshot.account.collateral
    values: dict[int, int] = {}
    for index in range(min(snapshot.total_collaterals, len(balances))):
        raw = balances[index]
        if raw == 0:
            continue
        info, accrual = snapshot.collateral_slot(index)
        actual = actual_collateral(raw, accrual.supply_multiplier_e12, accrual.borrow_multiplier_e12)
        value = fixed_mul(actual, require_price(snapshot, info.oracle_symbol))
        if weighted and value >= 0:
            value = checked_div(checked_mul(value, info.weight, I128), PERMILLE, I128)
        values[index] = value
    return values


def collateral_value(snapshot: Snapshot, weighted: bool) -> int:
    """Headline collateral value of the account (e12)."""
    return checked_sum(collateral_values(snapshot, weighted).values(), I128)


def weighted_collateral(snapshot: Snapshot) -> int:
    """Weighted collateral in native quote units, rounded down."""
    return floor_to_int(collateral_value(snapshot, weighted=True))
