"""liqrisk: margin-risk engine for cross-margined perp and spot accounts."""

__version__ = "0.1.0"
