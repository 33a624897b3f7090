"""Exception types for the margin engine.

Every failure inside the core is terminal for the call that raised it. The
`code` attribute is a stable identifier used in sweep reports.
"""

from __future__ import annotations


class MarginError(Exception):
    """Base class for margin-engine failures."""

    code: str = "margin_error"


class MarginOverflowError(MarginError, ArithmeticError):
    """Raised when a checked arithmetic step leaves its integer range."""

    code = "overflow"


class MarginDivisionByZeroError(MarginError, ZeroDivisionError):
    """Raised on a zero weight or a zero denominator."""

    code = "division_by_zero"


class PriceUnavailableError(MarginError, LookupError):
    """Raised when a priced, non-zero asset has no oracle entry."""

    code = "price_unavailable"

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"no oracle price for {symbol!r}")


class NoPositionsError(MarginError):
    """Raised when open-order ranking sees no active position at all."""

    code = "no_positions"


class MarginConfigError(MarginError, ValueError):
    """Raised when snapshot or protocol configuration is unusable."""

    code = "config"

    def __init__(self, message: str, violations: list[str] | None = None) -> None:
        self.violations = list(violations or [])
        super().__init__(message)


class SubmitTimeoutError(MarginError):
    """Raised when a retrying submit exhausts its attempts."""

    code = "timeout_exceeded"
