"""Open-order ranking.

Finds the market whose resting orders carry the largest notional,
``max(coin_on_bids, coin_on_asks) * mark``. Only the first `total_markets`
slots are considered.
"""

from __future__ import annotations

from .errors import NoPositionsError
from .math import fixed_mul, from_int
from .types import Snapshot


def open_order_exposure(coin_on_bids: int, coin_on_asks: int, mark_price_e12: int) -> int:
    """Resting-order exposure (e12) on the larger side."""
    return fixed_mul(from_int(max(coin_on_bids, coin_on_asks)), mark_price_e12)


def largest_open_order(snapshot: Snapshot) -> int | None:
    """Market index with the largest resting-order exposure.

    Returns None when every exposure is exactly zero. Raises
    `NoPositionsError` when the account has no active position at all. Ties go
    to the highest index.
    """
    best_index: int | None = None
    best_exposure = 0
    for index, position in snapshot.active_positions():
        exposure = open_order_exposure(
            position.coin_on_bids, position.coin_on_asks, snapshot.market_slot(index)[1],
        )
        if best_index is None or exposure >= best_exposure:
            best_index, best_exposure = index, exposure

    if best_index is None:
        raise NoPositionsError("account has no active positions")
    if best_exposure == 0:
        return None
    return best_index


def has_open_orders(snapshot: Snapshot) -> bool:
    return largest_open_order(snapshot) is not None
