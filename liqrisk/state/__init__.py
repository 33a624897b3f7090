"""
Snapshot state: construction, serialization and canonical encoding
"""

from .snapshot import load_snapshot, load_snapshots, snapshot_from_dict, snapshot_to_dict

__all__ = [
    "load_snapshot",
    "load_snapshots",
    "snapshot_from_dict",
    "snapshot_to_dict",
]
