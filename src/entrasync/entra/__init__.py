"""Entra ID directory access and membership reconciliation."""

from entrasync.entra.client import DirectoryClient
from entrasync.entra.filters import DeviceFilter, TriState
from entrasync.entra.models import DeviceRecord, DirectoryGroup, GroupMember
from entrasync.entra.reconcile import ReconcilePolicy, ReconciliationPlan, diff
from entrasync.entra.resolver import MembershipResolver
from entrasync.entra.validator import GroupValidator

__all__ = [
    "DeviceFilter",
    "DeviceRecord",
    "DirectoryClient",
    "DirectoryGroup",
    "GroupMember",
    "GroupValidator",
    "MembershipResolver",
    "ReconcilePolicy",
    "ReconciliationPlan",
    "TriState",
    "diff",
]
