"""`margin`: pure valuation and margin-fraction engine.

Everything here is a deterministic function of one immutable `Snapshot`:
- integer-only arithmetic with explicit range checks and rounding,
- frozen dataclasses for inputs and results,
- failures raise `MarginError` subclasses; nothing is retried or logged.

Public API:
- `collateral_value(snapshot, weighted) -> int`
- `check_fraction_requirement(fraction_type, weighted_collateral, snapshot) -> bool`
- `largest_open_order(snapshot) -> int | None`
- `estimate_spot_liquidation_size(snapshot, asset_index, quote_index) -> LiquidationEstimate`
"""

from .collateral import actual_collateral, collateral_value, collateral_values, weighted_collateral
from .errors import (
    MarginConfigError,
    MarginDivisionByZeroError,
    MarginError,
    MarginOverflowError,
    NoPositionsError,
    PriceUnavailableError,
    SubmitTimeoutError,
)
from .fraction import check_account_fraction, check_fraction_requirement, evaluate_fraction
from .invariants import check_all, validate_snapshot
from .liquidation import estimate_spot_liquidation_size, max_reducible_assets
from .oracle import OracleEntry, OracleTable, lookup_oracle
from .orders import has_open_orders, largest_open_order
from .perp import get_perp_acc_params
from .spot import get_spot_borrows
from .types import (
    DEFAULT_RISK_PARAMS,
    EMPTY_KEY,
    MAX_COLLATERALS,
    MAX_MARKETS,
    AccountSnapshot,
    BorrowAccrual,
    CollateralConfig,
    FactorMode,
    FractionCheck,
    FractionType,
    LiquidationEstimate,
    PerpAccParams,
    PerpMarketConfig,
    Position,
    RiskParams,
    Snapshot,
    SpotBorrows,
)

__all__ = [
    "actual_collateral",
    "collateral_value",
    "collateral_values",
    "weighted_collateral",
    "check_account_fraction",
    "check_fraction_requirement",
    "evaluate_fraction",
    "check_all",
    "validate_snapshot",
    "estimate_spot_liquidation_size",
    "max_reducible_assets",
    "OracleEntry",
    "OracleTable",
    "lookup_oracle",
    "has_open_orders",
    "largest_open_order",
    "get_perp_acc_params",
    "get_spot_borrows",
    "DEFAULT_RISK_PARAMS",
    "EMPTY_KEY",
    "MAX_COLLATERALS",
    "MAX_MARKETS",
    "AccountSnapshot",
    "BorrowAccrual",
    "CollateralConfig",
    "FactorMode",
    "FractionCheck",
    "FractionType",
    "LiquidationEstimate",
    "PerpAccParams",
    "PerpMarketConfig",
    "Position",
    "RiskParams",
    "Snapshot",
    "SpotBorrows",
    "MarginError",
    "MarginOverflowError",
    "MarginDivisionByZeroError",
    "PriceUnavailableError",
    "NoPositionsError",
    "MarginConfigError",
    "SubmitTimeoutError",
]
