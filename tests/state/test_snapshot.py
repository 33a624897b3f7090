from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from liqrisk.core.margin.types import EMPTY_KEY, Position
from liqrisk.state.snapshot import (
    load_snapshot,
    load_snapshots,
    snapshot_from_dict,
    snapshot_to_dict,
)

E12 = 10**12
KEY = "0x" + "01" * 32


def _snapshot_dict() -> dict[str, Any]:
    return {
        "account": {
            "collateral": ["300", "-10"],
            "positions": [
                {"key": KEY, "pos_size": 10, "native_pc_total": -1000, "coin_on_bids": 2},
                None,
            ],
        },
        "total_collaterals": 2,
        "total_markets": 2,
        "collaterals": [
            {"mint": "usdc", "oracle_symbol": "USDC/USD", "weight": 1000, "liq_fee": 0},
            {"mint": "sol", "oracle_symbol": "SOL/USD", "weight": 800, "liq_fee": 20},
        ],
        "perp_markets": [
            {"symbol": "SOL-PERP", "asset_decimals": 9, "base_imf": 100},
            None,
        ],
        "borrows": [
            {"supply_multiplier": "1", "borrow_multiplier": "1"},
            {"supply_multiplier": "1.01", "borrow_multiplier": "1.05"},
        ],
        "oracles": [
            {"symbol": "USDC/USD", "price": "1"},
            {"symbol": "SOL/USD", "price": "20.5"},
        ],
        "mark_prices": ["100", "0"],
        "funding_indices": [0, 0],
    }


def test_snapshot_from_dict_fields() -> None:
    s = snapshot_from_dict(_snapshot_dict())
    assert s.account.collateral == (300 * E12, -10 * E12)
    assert s.account.positions[0] == Position(
        key=b"\x01" * 32, pos_size=10, native_pc_total=-1000, coin_on_bids=2,
    )
    assert s.account.positions[1] is None
    assert s.collaterals[1].liq_fee == 20
    assert s.perp_markets[1] is None
    assert s.borrows[1].borrow_multiplier_e12 == 1_050_000_000_000
    assert s.oracles.get("SOL/USD").price_e12 == 20_500_000_000_000
    assert s.mark_prices_e12 == (100 * E12, 0)
    assert s.total_markets == 2


def test_oracles_sorted_on_load() -> None:
    s = snapshot_from_dict(_snapshot_dict())
    assert s.oracles.symbols == ("SOL/USD", "USDC/USD")


def test_empty_key_is_empty_slot() -> None:
    d = _snapshot_dict()
    d["account"]["positions"][0]["key"] = "0x" + "00" * 32
    s = snapshot_from_dict(d)
    assert s.account.positions[0] is None
    assert EMPTY_KEY == bytes(32)


def test_roundtrip_is_canonical() -> None:
    once = snapshot_to_dict(snapshot_from_dict(_snapshot_dict()))
    twice = snapshot_to_dict(snapshot_from_dict(once))
    assert once == twice
    assert once["oracles"][0] == {"symbol": "SOL/USD", "price": "20.5"}
    assert once["account"]["positions"][0]["key"] == KEY


def test_rejects_floats() -> None:
    d = _snapshot_dict()
    d["oracles"][0]["price"] = 1.0
    with pytest.raises(TypeError):
        snapshot_from_dict(d)


def test_rejects_bad_weight_type() -> None:
    d = _snapshot_dict()
    d["collaterals"][0]["weight"] = "heavy"
    with pytest.raises(TypeError):
        snapshot_from_dict(d)


def test_missing_required_field() -> None:
    d = _snapshot_dict()
    del d["collaterals"][0]["oracle_symbol"]
    with pytest.raises(KeyError):
        snapshot_from_dict(d)


def test_load_yaml_single(tmp_path: Path) -> None:
    path = tmp_path / "acct.yaml"
    path.write_text(yaml.safe_dump(_snapshot_dict()), encoding="utf-8")
    loaded = load_snapshots(path)
    assert [label for label, _ in loaded] == ["acct"]
    assert load_snapshot(path) == snapshot_from_dict(_snapshot_dict())


def test_load_json_single(tmp_path: Path) -> None:
    path = tmp_path / "acct.json"
    path.write_text(json.dumps(_snapshot_dict()), encoding="utf-8")
    assert load_snapshot(path).total_collaterals == 2


def test_load_multi_account(tmp_path: Path) -> None:
    d = _snapshot_dict()
    account = d.pop("account")
    d["accounts"] = {
        "alice": account,
        "bob": {"collateral": ["5", "0"], "positions": [None, None]},
    }
    path = tmp_path / "book.yml"
    path.write_text(yaml.safe_dump(d), encoding="utf-8")

    loaded = dict(load_snapshots(path))
    assert sorted(loaded) == ["alice", "bob"]
    assert loaded["bob"].account.collateral == (5 * E12, 0)
    assert loaded["bob"].oracles == loaded["alice"].oracles
    with pytest.raises(ValueError, match="2 accounts"):
        load_snapshot(path)


def test_unsupported_suffix(tmp_path: Path) -> None:
    path = tmp_path / "acct.toml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError, match="unsupported snapshot format"):
        load_snapshots(path)


def test_document_must_be_mapping(tmp_path: Path) -> None:
    path = tmp_path / "acct.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(TypeError):
        load_snapshots(path)
