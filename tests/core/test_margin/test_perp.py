"""Tests for liqrisk/core/margin/perp.py — funding, P&L and the position fold."""

import pytest

from liqrisk.core.margin.errors import MarginConfigError
from liqrisk.core.margin.perp import (
    calc_acc_val,
    fold_position,
    get_perp_acc_params,
    position_notional,
    position_open_notional,
    unrealized_funding,
    unrealized_pnl,
)
from liqrisk.core.margin.types import (
    AccountSnapshot,
    FactorMode,
    PerpAccParams,
    PerpMarketConfig,
    Position,
    Snapshot,
)

E12 = 10**12
HALF = E12 // 2

SOL_PERP = PerpMarketConfig(symbol="SOL-PERP", asset_decimals=0, base_imf=100)
BTC_PERP = PerpMarketConfig(symbol="BTC-PERP", asset_decimals=0, base_imf=200)


def _key(n: int) -> bytes:
    return bytes([n]) * 32


def _snapshot(positions, markets=(SOL_PERP, BTC_PERP), marks=(100, 1000), funding=(0, 0), total=None) -> Snapshot:
    return Snapshot(
        account=AccountSnapshot(positions=tuple(positions)),
        perp_markets=tuple(markets),
        mark_prices_e12=tuple(m * E12 for m in marks),
        funding_indices=tuple(funding),
        total_markets=len(markets) if total is None else total,
    )


# ---------------------------------------------------------------------------
# Funding
# ---------------------------------------------------------------------------

class TestUnrealizedFunding:
    def test_long_pays_positive_funding(self):
        assert unrealized_funding(10, 0, 5, 0) == -50

    def test_short_receives_positive_funding(self):
        assert unrealized_funding(-10, 0, 5, 0) == 50

    def test_scaled_by_decimals(self):
        assert unrealized_funding(10, 0, 5, 1) == -5

    def test_floors(self):
        # -15 / 10 = -1.5 -> -2; 15 / 10 = 1.5 -> 1
        assert unrealized_funding(3, 0, 5, 1) == -2
        assert unrealized_funding(-3, 0, 5, 1) == 1

    def test_settled_position(self):
        assert unrealized_funding(10, 7, 7, 6) == 0


# ---------------------------------------------------------------------------
# P&L and notionals
# ---------------------------------------------------------------------------

class TestUnrealizedPnl:
    def test_long_flat(self):
        assert unrealized_pnl(10, -1000, 100 * E12) == 0

    def test_long_profit(self):
        assert unrealized_pnl(10, -1000, 110 * E12) == 100

    def test_short_profit(self):
        assert unrealized_pnl(-10, 1200, 100 * E12) == 200

    def test_short_loss(self):
        assert unrealized_pnl(-10, 900, 100 * E12) == -100

    def test_long_value_floors(self):
        # 3 * 0.5 = 1.5 -> 1
        assert unrealized_pnl(3, -1, HALF) == 0

    def test_short_debt_floors(self):
        # owed 3 * 0.5 = 1.5 -> 1
        assert unrealized_pnl(-3, 2, HALF) == 1


class TestCalcAccVal:
    def test_flat_position_adds_realized(self):
        assert calc_acc_val(500, 100 * E12, 0, 0, 25, 0, 99, 0) == 525

    def test_open_position(self):
        # collateral 500 + realized 10 + pnl 100 + funding -50
        assert calc_acc_val(500, 110 * E12, 10, -1000, 10, 0, 5, 0) == 560


class TestNotionals:
    def test_position_notional_ceils(self):
        assert position_notional(3, HALF) == 2
        assert position_notional(-3, HALF) == 2

    def test_position_notional_exact(self):
        assert position_notional(10, 100 * E12) == 1000

    def test_open_notional_bid_side(self):
        assert position_open_notional(2, 5, 1, E12) == 7

    def test_open_notional_ask_side(self):
        assert position_open_notional(-2, 1, 5, E12) == 7

    def test_open_notional_orders_reduce_position(self):
        # long 10 with 4 asks resting: worst case is still the long side
        assert position_open_notional(10, 0, 4, E12) == 10

    def test_open_notional_ceils(self):
        assert position_open_notional(0, 3, 0, HALF) == 2


# ---------------------------------------------------------------------------
# Fold
# ---------------------------------------------------------------------------

class TestFoldPosition:
    def test_appends_one_entry(self):
        acc = PerpAccParams(total_acc_value=1000)
        pos = Position(key=_key(1), pos_size=10, native_pc_total=-1000, realized_pnl=7)
        out = fold_position(acc, pos, SOL_PERP, 100 * E12, 0, FactorMode.IMF)
        assert out.total_acc_value == 1007
        assert out.total_realized_pnl == 7
        assert out.has_open_pos_notional is True
        assert out.imf == (100,)
        assert out.mmf == ()
        assert out.cmf == ()
        assert out.pos_notional == (1000,)
        assert out.pos_open_notional == (1000,)

    def test_input_unchanged(self):
        acc = PerpAccParams(total_acc_value=1000)
        pos = Position(key=_key(1), pos_size=10, native_pc_total=-1000)
        fold_position(acc, pos, SOL_PERP, 100 * E12, 0, FactorMode.IMF)
        assert acc == PerpAccParams(total_acc_value=1000)

    def test_no_exposure(self):
        acc = PerpAccParams(total_acc_value=1000)
        pos = Position(key=_key(1), realized_pnl=-3)
        out = fold_position(acc, pos, SOL_PERP, 100 * E12, 0, FactorMode.MMF)
        assert out.has_open_pos_notional is False
        assert out.total_acc_value == 997
        assert out.pos_open_notional == (0,)


class TestGetPerpAccParams:
    def _positions(self):
        return (
            Position(key=_key(1), pos_size=10, native_pc_total=-1000, realized_pnl=5),
            Position(key=_key(2), pos_size=-1, native_pc_total=1000, coin_on_bids=2),
        )

    def test_imf_mode(self):
        out = get_perp_acc_params(_snapshot(self._positions()), 500, FactorMode.IMF)
        assert out.imf == (100, 200)
        assert out.mmf == ()
        assert out.cmf == ()
        assert out.pos_notional == (1000, 1000)
        assert out.pos_open_notional == (1000, 1000)
        assert out.total_acc_value == 505
        assert out.total_realized_pnl == 5

    def test_mmf_mode(self):
        out = get_perp_acc_params(_snapshot(self._positions()), 500, FactorMode.MMF)
        assert out.imf == ()
        assert out.mmf == (50, 100)

    def test_cancel_mode(self):
        out = get_perp_acc_params(_snapshot(self._positions()), 500, FactorMode.CANCEL)
        assert out.cmf == (62, 125)
        assert out.imf == ()
        assert out.mmf == ()

    def test_both_mode(self):
        out = get_perp_acc_params(_snapshot(self._positions()), 500, FactorMode.BOTH)
        assert out.imf == (100, 200)
        assert out.mmf == (50, 100)
        assert out.cmf == ()

    def test_empty_slots_skipped(self):
        positions = (None, Position(key=_key(2), pos_size=1, native_pc_total=-1000))
        out = get_perp_acc_params(_snapshot(positions), 500, FactorMode.IMF)
        assert out.imf == (200,)
        assert out.pos_notional == (1000,)

    def test_inactive_markets_ignored(self):
        out = get_perp_acc_params(_snapshot(self._positions(), total=1), 500, FactorMode.IMF)
        assert out.imf == (100,)

    def test_no_positions(self):
        out = get_perp_acc_params(_snapshot(()), 500, FactorMode.IMF)
        assert out == PerpAccParams(total_acc_value=500)

    def test_position_in_unconfigured_market(self):
        s = _snapshot(self._positions(), markets=(SOL_PERP, None))
        with pytest.raises(MarginConfigError):
            get_perp_acc_params(s, 500, FactorMode.IMF)

    def test_short_mark_vector(self):
        s = _snapshot(self._positions(), marks=(100,))
        with pytest.raises(MarginConfigError):
            get_perp_acc_params(s, 500, FactorMode.IMF)

    def test_funding_folds_into_value(self):
        s = _snapshot(self._positions()[:1], markets=(SOL_PERP,), marks=(100,), funding=(3,))
        out = get_perp_acc_params(s, 500, FactorMode.IMF)
        # 500 + realized 5 - funding 30
        assert out.total_acc_value == 475
