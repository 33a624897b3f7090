"""Snapshot construction and serialization.

`snapshot_from_dict()` builds a `Snapshot` from the plain-dict form used by
fixtures and the CLI; `snapshot_to_dict()` is its inverse.

Dict conventions:
- fixed-point fields (`price`, `mark_prices`, multipliers, `collateral`) are
  ints (whole units) or exact decimal strings,
- account keys are 32-byte hex strings; an all-zero key or `null` is an
  empty position slot, `null` is an empty collateral/market slot,
- floats are rejected.

Round-trip property (tested): `snapshot_to_dict(snapshot_from_dict(d))` is
canonical, i.e. feeding it back yields the same dict.

A file may also hold many accounts priced against one shared protocol view:
an `accounts` mapping of label -> account dict next to the shared fields.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..core.margin.oracle import OracleEntry, OracleTable
from ..core.margin.types import (
    ACCOUNT_KEY_LEN,
    EMPTY_KEY,
    AccountSnapshot,
    BorrowAccrual,
    CollateralConfig,
    PerpMarketConfig,
    Position,
    Snapshot,
)
from .canonical import (
    format_fixed,
    key_from_hex,
    key_to_hex,
    parse_fixed,
    parse_int,
    reject_floats,
)

POSITION_INT_FIELDS: tuple[str, ...] = (
    "pos_size",
    "native_pc_total",
    "realized_pnl",
    "coin_on_bids",
    "coin_on_asks",
    "funding_index",
)
SHARED_KEYS: tuple[str, ...] = (
    "total_collaterals",
    "total_markets",
    "collaterals",
    "perp_markets",
    "borrows",
    "oracles",
    "mark_prices",
    "funding_indices",
)


def _require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{name} must be a mapping")
    return value


def _require_list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list")
    return list(value)


def _collateral_from_dict(d: Any, i: int) -> CollateralConfig | None:
    if d is None:
        return None
    d = _require_mapping(d, f"collaterals[{i}]")
    return CollateralConfig(
        mint=str(d["mint"]),
        oracle_symbol=str(d["oracle_symbol"]),
        weight=parse_int(d["weight"], name=f"collaterals[{i}].weight"),
        liq_fee=parse_int(d.get("liq_fee", 0), name=f"collaterals[{i}].liq_fee"),
    )


def _market_from_dict(d: Any, i: int) -> PerpMarketConfig | None:
    if d is None:
        return None
    d = _require_mapping(d, f"perp_markets[{i}]")
    return PerpMarketConfig(
        symbol=str(d["symbol"]),
        asset_decimals=parse_int(d["asset_decimals"], name=f"perp_markets[{i}].asset_decimals"),
        base_imf=parse_int(d["base_imf"], name=f"perp_markets[{i}].base_imf"),
    )


def _borrow_from_dict(d: Any, i: int) -> BorrowAccrual:
    d = _require_mapping(d, f"borrows[{i}]")
    return BorrowAccrual(
        supply_multiplier_e12=parse_fixed(d.get("supply_multiplier", 1), name=f"borrows[{i}].supply_multiplier"),
        borrow_multiplier_e12=parse_fixed(d.get("borrow_multiplier", 1), name=f"borrows[{i}].borrow_multiplier"),
    )


def _oracle_from_dict(d: Any, i: int) -> OracleEntry:
    d = _require_mapping(d, f"oracles[{i}]")
    return OracleEntry(
        symbol=str(d["symbol"]),
        price_e12=parse_fixed(d["price"], name=f"oracles[{i}].price"),
    )


def _position_from_dict(d: Any, i: int) -> Position | None:
    if d is None:
        return None
    d = _require_mapping(d, f"positions[{i}]")
    key = key_from_hex(d["key"], nbytes=ACCOUNT_KEY_LEN, name=f"positions[{i}].key")
    if key == EMPTY_KEY:
        return None
    kwargs = {
        name: parse_int(d.get(name, 0), name=f"positions[{i}].{name}")
        for name in POSITION_INT_FIELDS
    }
    return Position(key=key, **kwargs)


def account_from_dict(d: Mapping[str, Any]) -> AccountSnapshot:
    d = _require_mapping(d, "account")
    return AccountSnapshot(
        collateral=tuple(
            parse_fixed(v, name=f"collateral[{i}]")
            for i, v in enumerate(_require_list(d.get("collateral"), "collateral"))
        ),
        positions=tuple(
            _position_from_dict(p, i)
            for i, p in enumerate(_require_list(d.get("positions"), "positions"))
        ),
    )


def snapshot_from_dict(d: Mapping[str, Any], account: Mapping[str, Any] | None = None) -> Snapshot:
    """Build a Snapshot. *account* overrides ``d["account"]`` (multi-account files)."""
    d = _require_mapping(d, "snapshot")
    reject_floats(dict(d))
    if account is None:
        account = d["account"]
    else:
        reject_floats(dict(account))
    return Snapshot(
        account=account_from_dict(account),
        collaterals=tuple(
            _collateral_from_dict(c, i)
            for i, c in enumerate(_require_list(d.get("collaterals"), "collaterals"))
        ),
        perp_markets=tuple(
            _market_from_dict(m, i)
            for i, m in enumerate(_require_list(d.get("perp_markets"), "perp_markets"))
        ),
        borrows=tuple(
            _borrow_from_dict(b, i)
            for i, b in enumerate(_require_list(d.get("borrows"), "borrows"))
        ),
        oracles=OracleTable.from_entries(
            _oracle_from_dict(o, i)
            for i, o in enumerate(_require_list(d.get("oracles"), "oracles"))
        ),
        mark_prices_e12=tuple(
            parse_fixed(v, name=f"mark_prices[{i}]")
            for i, v in enumerate(_require_list(d.get("mark_prices"), "mark_prices"))
        ),
        funding_indices=tuple(
            parse_int(v, name=f"funding_indices[{i}]")
            for i, v in enumerate(_require_list(d.get("funding_indices"), "funding_indices"))
        ),
        total_collaterals=parse_int(d.get("total_collaterals", 0), name="total_collaterals"),
        total_markets=parse_int(d.get("total_markets", 0), name="total_markets"),
    )


def account_to_dict(account: AccountSnapshot) -> dict[str, Any]:
    return {
        "collateral": [format_fixed(v) for v in account.collateral],
        "positions": [
            None if p is None else {
                "key": key_to_hex(p.key),
                **{name: getattr(p, name) for name in POSITION_INT_FIELDS},
            }
            for p in account.positions
        ],
    }


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Serialize a Snapshot to its canonical plain-dict form."""
    return {
        "account": account_to_dict(snapshot.account),
        "total_collaterals": snapshot.total_collaterals,
        "total_markets": snapshot.total_markets,
        "collaterals": [
            None if c is None else {
                "mint": c.mint,
                "oracle_symbol": c.oracle_symbol,
                "weight": c.weight,
                "liq_fee": c.liq_fee,
            }
            for c in snapshot.collaterals
        ],
        "perp_markets": [
            None if m is None else {
                "symbol": m.symbol,
                "asset_decimals": m.asset_decimals,
                "base_imf": m.base_imf,
            }
            for m in snapshot.perp_markets
        ],
        "borrows": [
            {
                "supply_multiplier": format_fixed(b.supply_multiplier_e12),
                "borrow_multiplier": format_fixed(b.borrow_multiplier_e12),
            }
            for b in snapshot.borrows
        ],
        "oracles": [
            {"symbol": e.symbol, "price": format_fixed(e.price_e12)}
            for e in snapshot.oracles.entries
        ],
        "mark_prices": [format_fixed(v) for v in snapshot.mark_prices_e12],
        "funding_indices": list(snapshot.funding_indices),
    }


def _read_document(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        obj = yaml.safe_load(text)
    elif path.suffix.lower() == ".json":
        obj = json.loads(text)
    else:
        raise ValueError(f"unsupported snapshot format: {path.suffix!r} (expected .yaml, .yml or .json)")
    return _require_mapping(obj, f"snapshot file {path}")


def load_snapshots(path: str | Path) -> list[tuple[str, Snapshot]]:
    """Load ``(label, snapshot)`` pairs from a YAML or JSON file.

    A file with an `accounts` mapping yields one snapshot per account, all
    sharing the file's protocol data. Otherwise the file is a single snapshot
    labelled with the file stem.
    """
    path = Path(path)
    doc = _read_document(path)
    accounts = doc.get("accounts")
    if accounts is None:
        return [(path.stem, snapshot_from_dict(doc))]
    accounts = _require_mapping(accounts, "accounts")
    shared = {k: doc[k] for k in SHARED_KEYS if k in doc}
    return [
        (str(label), snapshot_from_dict(shared, account))
        for label, account in accounts.items()
    ]


def load_snapshot(path: str | Path) -> Snapshot:
    """Load a single-account snapshot file."""
    loaded = load_snapshots(path)
    if len(loaded) != 1:
        raise ValueError(f"{path} holds {len(loaded)} accounts; use load_snapshots()")
    return loaded[0][1]
