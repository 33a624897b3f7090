"""Data types for the margin engine.

All types are frozen dataclasses (immutable). A `Snapshot` is a single
point-in-time view of one account plus the protocol data needed to price it;
no function in the core mutates it.

Units/conventions:
- `*_e12` values are fixed point scaled by 1e12 (prices, interest
  multipliers, raw collateral balances).
- `weight`, `liq_fee` and margin factors are permille (1000 = 100%).
- `pos_size` is signed native asset units (long > 0, short < 0).
- `native_pc_total`, `realized_pnl` and notionals are native quote units.
- Slot vectors are sized to protocol capacity; only the first
  `total_markets` / `total_collaterals` entries are read. `None` marks an
  empty slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .errors import MarginConfigError
from .math import FIXED_SCALE
from .oracle import OracleTable

MAX_MARKETS: int = 50
MAX_COLLATERALS: int = 25
ACCOUNT_KEY_LEN: int = 32
EMPTY_KEY: bytes = bytes(ACCOUNT_KEY_LEN)

# Spot requirement ratios, pre-multiplied by 1000 (110% and 103%).
SPOT_INITIAL_MARGIN_REQ: int = 1_100_000
SPOT_MAINT_MARGIN_REQ: int = 1_030_000

# Collateral index whose balance settles realized perp P&L.
QUOTE_COLLATERAL_INDEX: int = 0


@unique
class FractionType(Enum):
    """Margin requirement being checked."""
    INITIAL = "initial"
    MAINTENANCE = "maintenance"
    CANCEL = "cancel"


@unique
class FactorMode(Enum):
    """Which margin-factor vectors an aggregation pass produces."""
    IMF = "imf"
    MMF = "mmf"
    CANCEL = "cancel"
    BOTH = "both"

    @classmethod
    def for_fraction(cls, fraction_type: FractionType) -> "FactorMode":
        return _FACTOR_MODE_BY_FRACTION[fraction_type]


_FACTOR_MODE_BY_FRACTION: dict[FractionType, FactorMode] = {
    FractionType.INITIAL: FactorMode.IMF,
    FractionType.MAINTENANCE: FactorMode.MMF,
    FractionType.CANCEL: FactorMode.CANCEL,
}


@dataclass(frozen=True)
class RiskParams:
    """Protocol-wide spot requirement constants."""

    spot_initial_margin_req: int = SPOT_INITIAL_MARGIN_REQ
    spot_maint_margin_req: int = SPOT_MAINT_MARGIN_REQ


DEFAULT_RISK_PARAMS = RiskParams()


@dataclass(frozen=True)
class CollateralConfig:
    """Per-asset collateral configuration."""

    mint: str
    oracle_symbol: str
    weight: int
    liq_fee: int = 0


@dataclass(frozen=True)
class PerpMarketConfig:
    """Per-market perpetual configuration."""

    symbol: str
    asset_decimals: int
    base_imf: int


@dataclass(frozen=True)
class BorrowAccrual:
    """Accrued-interest multipliers for one collateral asset."""

    supply_multiplier_e12: int = FIXED_SCALE
    borrow_multiplier_e12: int = FIXED_SCALE


@dataclass(frozen=True)
class Position:
    """Aggregated open-orders state of one account in one market."""

    key: bytes
    pos_size: int = 0
    native_pc_total: int = 0
    realized_pnl: int = 0
    coin_on_bids: int = 0
    coin_on_asks: int = 0
    funding_index: int = 0


@dataclass(frozen=True)
class AccountSnapshot:
    """Balances (`collateral`, raw e12) and per-market positions of one account."""

    collateral: tuple[int, ...] = ()
    positions: tuple[Position | None, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    """Everything one account evaluation reads."""

    account: AccountSnapshot
    collaterals: tuple[CollateralConfig | None, ...] = ()
    perp_markets: tuple[PerpMarketConfig | None, ...] = ()
    borrows: tuple[BorrowAccrual, ...] = ()
    oracles: OracleTable = OracleTable()
    mark_prices_e12: tuple[int, ...] = ()
    funding_indices: tuple[int, ...] = ()
    total_collaterals: int = 0
    total_markets: int = 0

    def active_positions(self):
        """Yield ``(index, position)`` for non-empty active market slots."""
        positions = self.account.positions
        for index in range(min(self.total_markets, len(positions))):
            position = positions[index]
            if position is not None:
                yield index, position

    def collateral_slot(self, index: int) -> tuple[CollateralConfig, BorrowAccrual]:
        """Config and interest accrual for a collateral slot that holds a balance."""
        if index >= len(self.collaterals) or index >= len(self.borrows):
            raise MarginConfigError(f"collateral slot {index} has no config or accrual entry")
        info = self.collaterals[index]
        if info is None:
            raise MarginConfigError(f"balance held in empty collateral slot {index}")
        return info, self.borrows[index]

    def market_slot(self, index: int) -> tuple[PerpMarketConfig, int, int]:
        """``(market, mark_price_e12, funding_index)`` for a market with an open position."""
        if index >= min(len(self.perp_markets), len(self.mark_prices_e12), len(self.funding_indices)):
            raise MarginConfigError(f"market slot {index} has no config, mark price or funding index")
        market = self.perp_markets[index]
        if market is None:
            raise MarginConfigError(f"position open in unconfigured market {index}")
        return market, self.mark_prices_e12[index], self.funding_indices[index]


@dataclass(frozen=True)
class PerpAccParams:
    """Running totals and per-position vectors of the perp aggregation."""

    total_acc_value: int = 0
    has_open_pos_notional: bool = False
    total_realized_pnl: int = 0
    imf: tuple[int, ...] = ()
    mmf: tuple[int, ...] = ()
    cmf: tuple[int, ...] = ()
    pos_open_notional: tuple[int, ...] = ()
    pos_notional: tuple[int, ...] = ()


@dataclass(frozen=True)
class SpotBorrows:
    """Per-borrow vectors of the spot aggregation."""

    has_open_pos_notional: bool = False
    imf: tuple[int, ...] = ()
    mmf: tuple[int, ...] = ()
    pos_notional: tuple[int, ...] = ()


@dataclass(frozen=True)
class LiquidationEstimate:
    """Result of spot liquidation sizing."""

    asset_qty: int
    quote_value: int


@dataclass(frozen=True)
class FractionCheck:
    """Outcome of one margin-fraction evaluation.

    `budget` and `requirement` are permille-scaled quote units. With no open
    exposure both are 0 and the check passes trivially.
    """

    fraction_type: FractionType
    passed: bool
    has_open_pos_notional: bool = False
    budget: int = 0
    requirement: int = 0
