"""`liqrisk-assess`: assess account snapshots from the command line.

Exit codes: 0 when every account evaluated, 1 when at least one account
failed to evaluate, 2 on unreadable input or configuration.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from ..state.canonical import canonical_json_bytes
from ..state.snapshot import load_snapshots
from .assess import assess_accounts, report_to_dict
from .config import load_config


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Evaluate margin fractions for account snapshots.")
    p.add_argument("snapshots", nargs="+", type=Path, help="Snapshot files (.yaml, .yml or .json)")
    p.add_argument("--config", type=Path, default=None, help="Optional YAML engine config")
    p.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
        accounts = []
        for path in args.snapshots:
            for label, snapshot in load_snapshots(path):
                accounts.append((f"{path.stem}:{label}" if label != path.stem else label, snapshot))
    except (OSError, KeyError, TypeError, ValueError, yaml.YAMLError) as exc:
        print(f"liqrisk-assess error: {exc}", file=sys.stderr)
        return 2

    report = assess_accounts(accounts, config=config)
    sys.stdout.write(canonical_json_bytes(report_to_dict(report)).decode("utf-8") + "\n")
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
