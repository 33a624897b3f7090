"""Oracle price table.

Entries are kept sorted by symbol so lookups are a binary search with an exact
match. A missing symbol is a normal outcome (the market has no live price);
callers that must price something turn it into `PriceUnavailableError`.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from .errors import PriceUnavailableError

if TYPE_CHECKING:
    from .types import Snapshot


@dataclass(frozen=True)
class OracleEntry:
    """One oracle price; `price_e12` is quote per native unit, scaled by 1e12."""

    symbol: str
    price_e12: int


def _symbol_of(entry: OracleEntry) -> str:
    return entry.symbol


@dataclass(frozen=True)
class OracleTable:
    """Immutable, symbol-sorted oracle entries."""

    entries: tuple[OracleEntry, ...] = ()

    @classmethod
    def from_entries(cls, entries: Iterable[OracleEntry]) -> "OracleTable":
        return cls(tuple(sorted(entries, key=_symbol_of)))

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(e.symbol for e in self.entries)

    def get(self, symbol: str) -> OracleEntry | None:
        if not symbol:
            return None
        i = bisect_left(self.entries, symbol, key=_symbol_of)
        if i < len(self.entries) and self.entries[i].symbol == symbol:
            return self.entries[i]
        return None

    def __len__(self) -> int:
        return len(self.entries)


def lookup_oracle(snapshot: "Snapshot", symbol: str) -> OracleEntry | None:
    """Exact-match oracle lookup on the snapshot's table."""
    return snapshot.oracles.get(symbol)


def require_price(snapshot: "Snapshot", symbol: str) -> int:
    """Price (e12) for *symbol*, or `PriceUnavailableError`."""
    entry = lookup_oracle(snapshot, symbol)
    if entry is None:
        raise PriceUnavailableError(symbol)
    return entry.price_e12
