"""Configuration entries and run orchestration."""

from entrasync.sync.entries import DeviceGroupEntry, GroupCopyEntry, RunEntry, load_records
from entrasync.sync.runner import RunResult, SyncRunner, run_sync

__all__ = [
    "DeviceGroupEntry",
    "GroupCopyEntry",
    "RunEntry",
    "RunResult",
    "SyncRunner",
    "load_records",
    "run_sync",
]
