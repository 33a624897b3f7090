"""Tests for liqrisk/core/margin/collateral.py — interest accrual and collateral valuation."""

from __future__ import annotations

import pytest

from liqrisk.core.margin.collateral import (
    actual_collateral,
    collateral_value,
    collateral_values,
    weighted_collateral,
)
from liqrisk.core.margin.errors import MarginConfigError, PriceUnavailableError
from liqrisk.core.margin.oracle import OracleEntry, OracleTable
from liqrisk.core.margin.types import (
    AccountSnapshot,
    BorrowAccrual,
    CollateralConfig,
    Snapshot,
)

E12 = 10**12

USDC = CollateralConfig(mint="usdc", oracle_symbol="USDC/USD", weight=1000)
SOL = CollateralConfig(mint="sol", oracle_symbol="SOL/USD", weight=800)
ETH = CollateralConfig(mint="eth", oracle_symbol="ETH/USD", weight=500)
UNPRICED = CollateralConfig(mint="xyz", oracle_symbol="XYZ/USD", weight=500)

ORACLES = OracleTable.from_entries([
    OracleEntry("USDC/USD", E12),
    OracleEntry("SOL/USD", 20 * E12),
    OracleEntry("ETH/USD", 10 * E12),
])


def _snapshot(balances, configs=(USDC, SOL, ETH), borrows=None, total=None) -> Snapshot:
    return Snapshot(
        account=AccountSnapshot(collateral=tuple(b * E12 for b in balances)),
        collaterals=tuple(configs),
        borrows=tuple(borrows) if borrows is not None else tuple(BorrowAccrual() for _ in configs),
        oracles=ORACLES,
        total_collaterals=len(configs) if total is None else total,
    )


# ---------------------------------------------------------------------------
# actual_collateral
# ---------------------------------------------------------------------------

class TestActualCollateral:
    def test_deposit_uses_supply_multiplier(self):
        assert actual_collateral(100 * E12, 1_100_000_000_000, 2 * E12) == 110 * E12

    def test_borrow_uses_borrow_multiplier(self):
        assert actual_collateral(-100 * E12, 2 * E12, 1_200_000_000_000) == -120 * E12

    def test_zero(self):
        assert actual_collateral(0, 2 * E12, 3 * E12) == 0

    def test_borrow_rounds_away_from_zero(self):
        # -1e-12 * 1.5 = -1.5e-12, floored to -2e-12
        assert actual_collateral(-1, E12, 1_500_000_000_000) == -2


# ---------------------------------------------------------------------------
# collateral_values / collateral_value
# ---------------------------------------------------------------------------

class TestCollateralValues:
    def test_unweighted(self):
        s = _snapshot((300, -10, 4))
        assert collateral_values(s, weighted=False) == {0: 300 * E12, 1: -200 * E12, 2: 40 * E12}

    def test_weighted_deposits_only(self):
        s = _snapshot((300, -10, 4))
        # ETH deposit weighted at 50%; the SOL borrow counts in full
        assert collateral_values(s, weighted=True) == {0: 300 * E12, 1: -200 * E12, 2: 20 * E12}

    def test_headline_value(self):
        s = _snapshot((300, -10, 4))
        assert collateral_value(s, weighted=False) == 140 * E12
        assert collateral_value(s, weighted=True) == 120 * E12

    def test_weighted_collateral_is_native_units(self):
        s = _snapshot((300, -10, 4))
        assert weighted_collateral(s) == 120

    def test_weighted_collateral_floors(self):
        s = Snapshot(
            account=AccountSnapshot(collateral=(101 * E12,)),
            collaterals=(CollateralConfig("usdc", "USDC/USD", weight=900),),
            borrows=(BorrowAccrual(),),
            oracles=ORACLES,
            total_collaterals=1,
        )
        # 101 * 0.9 = 90.9
        assert weighted_collateral(s) == 90

    def test_interest_applied(self):
        s = _snapshot(
            (100, -10, 0),
            borrows=(
                BorrowAccrual(supply_multiplier_e12=1_050_000_000_000),
                BorrowAccrual(borrow_multiplier_e12=1_100_000_000_000),
                BorrowAccrual(),
            ),
        )
        assert collateral_values(s, weighted=False) == {0: 105 * E12, 1: -220 * E12}

    def test_empty_account(self):
        s = _snapshot((0, 0, 0))
        assert collateral_values(s, weighted=True) == {}
        assert collateral_value(s, weighted=True) == 0

    def test_inactive_slots_ignored(self):
        s = _snapshot((300, -10, 4), total=1)
        assert collateral_values(s, weighted=False) == {0: 300 * E12}


class TestMissingData:
    def test_zero_balance_needs_no_price(self):
        s = _snapshot((300, 0), configs=(USDC, UNPRICED))
        assert collateral_value(s, weighted=True) == 300 * E12

    def test_nonzero_balance_needs_price(self):
        s = _snapshot((300, 1), configs=(USDC, UNPRICED))
        with pytest.raises(PriceUnavailableError) as excinfo:
            collateral_value(s, weighted=True)
        assert excinfo.value.symbol == "XYZ/USD"

    def test_balance_in_empty_slot(self):
        s = _snapshot((300, 5), configs=(USDC, None))
        with pytest.raises(MarginConfigError):
            collateral_value(s, weighted=False)

    def test_short_accrual_vector(self):
        s = _snapshot((300, 5), borrows=(BorrowAccrual(),))
        with pytest.raises(MarginConfigError):
            collateral_value(s, weighted=False)

    def test_empty_slot_with_zero_balance(self):
        s = _snapshot((300, 0), configs=(USDC, None))
        assert collateral_value(s, weighted=False) == 300 * E12

