"""Membership set reconciliation.

Two policies are supported:

- full reconcile: the destination ends up with exactly the desired members
- additive: missing members are added, nothing is ever removed
"""

import logging
from collections.abc import Set
from dataclasses import dataclass, field
from enum import Enum

from entrasync.entra.client import DirectoryClient

logger = logging.getLogger(__name__)


class ReconcilePolicy(Enum):
    """How a destination group is brought in line with the desired set."""

    FULL = "full"
    ADDITIVE = "additive"


@dataclass(frozen=True)
class ReconciliationPlan:
    """Members to add to and remove from a group."""

    to_add: frozenset[str] = frozenset()
    to_remove: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        """True when the group is already in the desired state."""
        return not self.to_add and not self.to_remove


@dataclass
class ApplyResult:
    """What actually changed when a plan was applied."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    not_removed: list[str] = field(default_factory=list)


def diff(desired: Set[str], current: Set[str]) -> ReconciliationPlan:
    """Compare desired and current membership by object ID."""
    return ReconciliationPlan(
        to_add=frozenset(desired - current),
        to_remove=frozenset(current - desired),
    )


def plan_full_reconcile(desired: Set[str], current: Set[str]) -> ReconciliationPlan:
    """Plan adds and removes so the group ends up with exactly ``desired``.

    An empty desired set is valid and removes every current member.
    """
    if not current:
        return ReconciliationPlan(to_add=frozenset(desired))
    return diff(desired, current)


def plan_additive(desired: Set[str], current: Set[str]) -> ReconciliationPlan:
    """Plan adds only; existing members are never removed."""
    return ReconciliationPlan(to_add=frozenset(desired - current))


def build_plan(
    policy: ReconcilePolicy, desired: Set[str], current: Set[str]
) -> ReconciliationPlan:
    """Build the plan for a policy."""
    if policy is ReconcilePolicy.ADDITIVE:
        return plan_additive(desired, current)
    return plan_full_reconcile(desired, current)


def apply_plan(client: DirectoryClient, group_id: str, plan: ReconciliationPlan) -> ApplyResult:
    """Apply a plan: batched adds first, then single removals.

    Raises:
        BatchApplyError: If an add batch fails (removals are not attempted)
        ApiError: If a removal fails
    """
    result = ApplyResult()

    if plan.to_add:
        to_add = sorted(plan.to_add)
        client.add_members(group_id, to_add)
        result.added.extend(to_add)

    for object_id in sorted(plan.to_remove):
        if client.remove_member(group_id, object_id):
            result.removed.append(object_id)
        else:
            result.not_removed.append(object_id)

    return result
