"""Checked integer and fixed-point arithmetic for the margin engine.

Every function is stateless and operates on plain Python ints.

Python ints never wrap, so "checked" here means: compute the exact result,
then fail with `MarginOverflowError` if it leaves the storage range the
protocol uses for that quantity (`I64`, `I128` or `U16`).

Rounding is explicit: `//` is floor division (toward -inf) everywhere, and the
two directed conversions `ceil_to_int` / `floor_to_int` are chosen per call
site. Exposure rounds up, unrealized value rounds down.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import MarginDivisionByZeroError, MarginOverflowError

# Fixed-point scale for prices, multipliers and collateral balances (`*_e12`).
FIXED_SCALE: int = 1_000_000_000_000
# Permille scale for weights, fees and margin factors.
PERMILLE: int = 1000


@dataclass(frozen=True)
class IntRange:
    """Inclusive storage range of an integer kind."""

    name: str
    lo: int
    hi: int

    def contains(self, value: int) -> bool:
        return self.lo <= value <= self.hi


I64 = IntRange("i64", -(1 << 63), (1 << 63) - 1)
I128 = IntRange("i128", -(1 << 127), (1 << 127) - 1)
U16 = IntRange("u16", 0, (1 << 16) - 1)


def checked(value: int, kind: IntRange = I64) -> int:
    """Return *value* unchanged, or raise if it does not fit *kind*."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"expected int, got {type(value).__name__}")
    if not kind.contains(value):
        raise MarginOverflowError(f"{kind.name} overflow: {value}")
    return value


def checked_add(a: int, b: int, kind: IntRange = I64) -> int:
    return checked(a + b, kind)


def checked_sub(a: int, b: int, kind: IntRange = I64) -> int:
    return checked(a - b, kind)


def checked_mul(a: int, b: int, kind: IntRange = I64) -> int:
    return checked(a * b, kind)


def checked_div(a: int, b: int, kind: IntRange = I64) -> int:
    """Floor division ``a // b``; raises on a zero divisor."""
    if b == 0:
        raise MarginDivisionByZeroError(f"{kind.name} division by zero: {a} / 0")
    return checked(a // b, kind)


def ceil_div(a: int, b: int, kind: IntRange = I64) -> int:
    """Ceiling division ``ceil(a / b)``; raises on a zero divisor."""
    if b == 0:
        raise MarginDivisionByZeroError(f"{kind.name} division by zero: {a} / 0")
    return checked(-((-a) // b), kind)


def checked_sum(xs, kind: IntRange = I64) -> int:
    """Left-to-right sum, range-checked after every addition."""
    total = 0
    for x in xs:
        total = checked_add(total, x, kind)
    return total


# -- Fixed point -------------------------------------------------------------

def from_int(n: int) -> int:
    """Lift a native integer into fixed point."""
    return checked_mul(n, FIXED_SCALE, I128)


def fixed_mul(a: int, b: int) -> int:
    """Fixed-point product, rounded toward -inf."""
    return checked((a * b) // FIXED_SCALE, I128)


def fixed_mul_ceil(a: int, b: int) -> int:
    """Fixed-point product, rounded toward +inf."""
    return checked(-((-(a * b)) // FIXED_SCALE), I128)


def fixed_div(a: int, b: int) -> int:
    """Fixed-point quotient, rounded toward -inf."""
    if b == 0:
        raise MarginDivisionByZeroError(f"fixed division by zero: {a} / 0")
    return checked((a * FIXED_SCALE) // b, I128)


def ceil_to_int(x: int) -> int:
    """Round a fixed-point value toward +inf into an `I64`."""
    return checked(-((-x) // FIXED_SCALE), I64)


def floor_to_int(x: int) -> int:
    """Round a fixed-point value toward -inf into an `I64`."""
    return checked(x // FIXED_SCALE, I64)


# -- Margin factors ----------------------------------------------------------

def maintenance_factor(base_imf: int) -> int:
    """``base_imf / 2`` in `U16`."""
    return checked_div(checked(base_imf, U16), 2, U16)


def cancel_factor(base_imf: int) -> int:
    """``base_imf * 5 / 8`` in `U16`."""
    return checked_div(checked_mul(base_imf, 5, U16), 8, U16)


def spot_margin_factor(required_ratio: int, weight: int) -> int:
    """Spot borrow factor: ``ceil(required_ratio / weight) - 1000``.

    *required_ratio* is already scaled by 1000 (e.g. ``1_100_000`` for a 110%
    requirement). A zero weight raises `MarginDivisionByZeroError`; a weight
    above the requirement underflows `U16`.
    """
    return checked_sub(ceil_div(required_ratio, weight, I64), PERMILLE, U16)


def weighted_sum(factors, notionals) -> int:
    """Dot product ``sum(factor_i * notional_i)`` in `I64`."""
    if len(factors) != len(notionals):
        raise ValueError(
            f"factor/notional length mismatch: {len(factors)} != {len(notionals)}"
        )
    total = 0
    for factor, notional in zip(factors, notionals):
        total = checked_add(total, checked_mul(factor, notional))
    return total
