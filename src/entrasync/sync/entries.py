"""Sync configuration records.

The configuration is a JSON array fetched from a URL (or read from a local
file). Each record describes one unit of work; its shape depends on which
sync is being run.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import httpx

from entrasync.core.errors import ConfigFetchError, InvalidEntryError
from entrasync.entra.filters import DeviceFilter
from entrasync.entra.models import DirectoryGroup
from entrasync.entra.reconcile import ReconcilePolicy
from entrasync.entra.resolver import MembershipResolver

logger = logging.getLogger(__name__)


def load_records(source: str, timeout: float = 30.0) -> list[dict]:
    """Load configuration records from a URL or a local JSON file.

    A single JSON object is treated as a one-record list.

    Raises:
        ConfigFetchError: If the source cannot be read or is not a list of objects
    """
    if source.startswith("https://") or source.startswith("http://"):
        logger.info(f"Fetching configuration from {source}")
        try:
            response = httpx.get(source, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch configuration from {source}: {e}")
            raise ConfigFetchError(f"Failed to fetch configuration from {source}: {e}") from e
    else:
        path = Path(source)
        logger.info(f"Reading configuration from {path}")
        try:
            with path.open() as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read configuration from {path}: {e}")
            raise ConfigFetchError(f"Failed to read configuration from {path}: {e}") from e

    if isinstance(data, dict):
        data = [data]

    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise ConfigFetchError(f"Configuration from {source} is not a list of objects")

    logger.info(f"Loaded {len(data)} configuration records")
    return data


def _require(record: dict, key: str) -> str:
    """Get a required string field from a record."""
    value = record.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidEntryError(f"Missing required field {key}")
    return value.strip()


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class RunEntry(ABC):
    """One unit of reconciliation work.

    Each entry type defines:
    - which groups must be validated before anything changes
    - how desired and current membership are resolved
    - the reconcile policy for the destination group
    """

    policy: ReconcilePolicy

    @classmethod
    @abstractmethod
    def from_record(cls, record: dict) -> RunEntry:
        """Parse a configuration record.

        Raises:
            InvalidEntryError: If the record is incomplete or invalid
        """

    @property
    @abstractmethod
    def destination(self) -> DirectoryGroup:
        """The group whose membership is changed."""

    @property
    @abstractmethod
    def groups(self) -> tuple[DirectoryGroup, ...]:
        """Every group referenced by the entry, in validation order."""

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-readable name for logs and reports."""

    @abstractmethod
    def resolve_desired(self, resolver: MembershipResolver) -> frozenset[str]:
        """Compute the members the destination should have."""

    def resolve_current(self, resolver: MembershipResolver) -> frozenset[str]:
        """Get the members the destination has now."""
        return resolver.resolve_group_members(self.destination.id)


@dataclass(frozen=True)
class DeviceGroupEntry(RunEntry):
    """Device group derived from the devices owned by a user group's members."""

    user_group: DirectoryGroup
    device_group: DirectoryGroup
    device_filter: DeviceFilter = DeviceFilter()

    policy = ReconcilePolicy.FULL

    @classmethod
    def from_record(cls, record: dict) -> DeviceGroupEntry:
        """Parse a device group record."""
        return cls(
            user_group=DirectoryGroup(
                id=_require(record, "UserAzureADGroupId"),
                name=_require(record, "UserAzureADGroupName"),
            ),
            device_group=DirectoryGroup(
                id=_require(record, "DeviceAzureADGroupId"),
                name=_require(record, "DeviceAzureADGroupName"),
            ),
            device_filter=DeviceFilter.from_config(
                os_list=record.get("OSList"),
                trust_type_list=record.get("TrustTypeList"),
                is_compliant=record.get("isCompliant"),
                account_enabled=record.get("accountEnabled"),
            ),
        )

    @property
    def destination(self) -> DirectoryGroup:
        return self.device_group

    @property
    def groups(self) -> tuple[DirectoryGroup, ...]:
        return (self.user_group, self.device_group)

    @property
    def label(self) -> str:
        return f"{self.user_group.name} -> {self.device_group.name}"

    def resolve_desired(self, resolver: MembershipResolver) -> frozenset[str]:
        return resolver.resolve_user_devices(self.user_group.id, self.device_filter)

    def resolve_current(self, resolver: MembershipResolver) -> frozenset[str]:
        return resolver.resolve_device_group_members(self.device_group.id)


@dataclass(frozen=True)
class GroupCopyEntry(RunEntry):
    """Destination group fed by the members of one or more source groups."""

    sources: tuple[DirectoryGroup, ...]
    destination_group: DirectoryGroup

    policy = ReconcilePolicy.ADDITIVE

    @classmethod
    def from_record(cls, record: dict) -> GroupCopyEntry:
        """Parse a group copy record.

        Source IDs and names are comma-separated and paired by position.
        """
        ids = _split_csv(_require(record, "SourceAzureADGroupIds"))
        names = _split_csv(_require(record, "SourceAzureADGroupNames"))
        if len(ids) != len(names):
            raise InvalidEntryError(
                f"SourceAzureADGroupIds has {len(ids)} values "
                f"but SourceAzureADGroupNames has {len(names)}"
            )

        return cls(
            sources=tuple(DirectoryGroup(id=i, name=n) for i, n in zip(ids, names, strict=True)),
            destination_group=DirectoryGroup(
                id=_require(record, "DestinationAzureADGroupId"),
                name=_require(record, "DestinationAzureADGroupName"),
            ),
        )

    @property
    def destination(self) -> DirectoryGroup:
        return self.destination_group

    @property
    def groups(self) -> tuple[DirectoryGroup, ...]:
        return (*self.sources, self.destination_group)

    @property
    def label(self) -> str:
        return f"{', '.join(s.name for s in self.sources)} -> {self.destination_group.name}"

    def resolve_desired(self, resolver: MembershipResolver) -> frozenset[str]:
        desired: set[str] = set()
        for source in self.sources:
            members = resolver.resolve_group_members(source.id)
            logger.info(f"Source {source.name} has {len(members)} members")
            desired |= members
        return frozenset(desired)
