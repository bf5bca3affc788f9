"""Data models for Entra ID directory objects."""

from __future__ import annotations

from dataclasses import dataclass

ODATA_TYPE_PREFIX = "#microsoft.graph."


def member_type_from_odata(odata_type: str | None) -> str:
    """Map an ``@odata.type`` value like ``#microsoft.graph.user`` to ``user``."""
    if not odata_type:
        return "unknown"
    if odata_type.startswith(ODATA_TYPE_PREFIX):
        return odata_type[len(ODATA_TYPE_PREFIX) :]
    return odata_type


@dataclass(frozen=True)
class DirectoryGroup:
    """A group referenced by configuration: its object ID and expected display name."""

    id: str
    name: str


@dataclass
class GroupMember:
    """A member returned by an unfiltered group member listing."""

    type: str
    id: str
    display_name: str | None = None
    device_id: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> GroupMember:
        """Create from a Graph directoryObject."""
        return cls(
            type=member_type_from_odata(data.get("@odata.type")),
            id=data.get("id", ""),
            display_name=data.get("displayName"),
            device_id=data.get("deviceId"),
        )


@dataclass
class DeviceRecord:
    """An Entra ID device as returned by a user's owned devices."""

    id: str
    display_name: str | None = None
    operating_system: str | None = None
    device_id: str | None = None
    trust_type: str | None = None
    profile_type: str | None = None
    management_type: str | None = None
    enrollment_type: str | None = None
    is_compliant: bool | None = None
    account_enabled: bool | None = None

    @classmethod
    def from_api(cls, data: dict) -> DeviceRecord:
        """Create from a Graph device object."""
        return cls(
            id=data.get("id", ""),
            display_name=data.get("displayName"),
            operating_system=data.get("operatingSystem"),
            device_id=data.get("deviceId"),
            trust_type=data.get("trustType"),
            profile_type=data.get("profileType"),
            management_type=data.get("managementType"),
            enrollment_type=data.get("enrollmentType"),
            is_compliant=data.get("isCompliant"),
            account_enabled=data.get("accountEnabled"),
        )
