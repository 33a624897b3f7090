"""
Deterministic canonical encoding primitives.

These helpers sit at the snapshot boundary: they turn external text (hex keys,
decimal strings) into the exact integers the margin core works with, and back.
Floats are rejected everywhere so no value depends on binary rounding.
"""

from __future__ import annotations

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from ..core.margin.math import FIXED_SCALE

FIXED_DECIMALS = 12

_KEY_RE = re.compile(r"(?:0[xX])?([0-9a-fA-F]+)")
_INT_RE = re.compile(r"-?[0-9]+")
_DECIMAL_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?")
_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def reject_floats(value: Any, *, path: str = "$") -> None:
    """
    Walk a decoded document and fail on anything the canonical form cannot hold.

    Floats, non-str mapping keys and lone surrogate code points raise
    `TypeError` naming the offending path (``$.oracles[0].price``).
    """
    if isinstance(value, float):
        raise TypeError(f"{path}: float {value!r} is not allowed, use a decimal string")
    if isinstance(value, str):
        if _SURROGATE_RE.search(value):
            raise TypeError(f"{path}: surrogate code points are not allowed")
    elif isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"{path}: mapping key {k!r} is not a str")
            reject_floats(k, path=path)
            reject_floats(v, path=f"{path}.{k}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            reject_floats(item, path=f"{path}[{i}]")


def canonical_json_bytes(value: Any) -> bytes:
    """Sorted-key compact UTF-8 JSON; two equal reports always encode identically."""
    reject_floats(value)
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False,
    ).encode("utf-8")


def key_from_hex(hex_str: str, *, nbytes: int, name: str) -> bytes:
    """Decode a position key, with or without a ``0x`` prefix, of exactly `nbytes` bytes."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a hex string, got {type(hex_str).__name__}")
    if isinstance(nbytes, bool) or not isinstance(nbytes, int) or nbytes < 1:
        raise ValueError(f"nbytes must be a positive int, got {nbytes!r}")
    m = _KEY_RE.fullmatch(hex_str.strip())
    if m is None:
        raise ValueError(f"{name} must be hex: {hex_str!r}")
    digits = m.group(1)
    if len(digits) != 2 * nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes, got {len(digits)} hex digits")
    return bytes.fromhex(digits)


def key_to_hex(key: bytes) -> str:
    return "0x" + key.hex()


def parse_int(value: Any, *, name: str) -> int:
    """Accept an int (not bool) or a base-10 integer string."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    raise TypeError(f"{name} must be an int, got {value!r}")


def parse_fixed(value: Any, *, name: str) -> int:
    """
    Parse a decimal amount into its e12 fixed-point integer.

    Ints are whole units; strings are exact decimals with at most
    `FIXED_DECIMALS` fractional digits. Anything finer is rejected rather
    than rounded.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"{name} must be an int or decimal string")
    if isinstance(value, int):
        return value * FIXED_SCALE
    if not isinstance(value, str):
        raise TypeError(f"{name} must be an int or decimal string")

    s = value.strip()
    if not _DECIMAL_RE.fullmatch(s):
        raise ValueError(f"{name} must be a decimal string: {value!r}")
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal string: {value!r}") from exc
    scaled = d.scaleb(FIXED_DECIMALS)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{name} has more than {FIXED_DECIMALS} decimal places: {value!r}")
    return int(scaled)


def format_fixed(raw: int) -> str:
    """Shortest exact decimal string for an e12 fixed-point integer."""
    sign = "-" if raw < 0 else ""
    whole, frac = divmod(abs(raw), FIXED_SCALE)
    if frac == 0:
        return f"{sign}{whole}"
    digits = f"{frac:0{FIXED_DECIMALS}d}".rstrip("0")
    return f"{sign}{whole}.{digits}"
