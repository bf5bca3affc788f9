"""Compute current and desired group membership from the directory."""

import logging

from entrasync.entra.client import DirectoryClient
from entrasync.entra.filters import DeviceFilter

logger = logging.getLogger(__name__)

# Member types copied between groups; nested group objects are skipped
# because their members already appear in the transitive listing.
COPYABLE_MEMBER_TYPES = frozenset({"user", "device"})


class MembershipResolver:
    """Resolve membership sets through the directory client."""

    def __init__(self, client: DirectoryClient) -> None:
        """Initialize the resolver.

        Args:
            client: Open directory client
        """
        self.client = client

    def resolve_user_devices(
        self, user_group_id: str, device_filter: DeviceFilter
    ) -> frozenset[str]:
        """Get the devices owned by a group's users that pass the filter.

        Args:
            user_group_id: Group whose transitive user members are considered
            device_filter: Device constraints for this entry

        Returns:
            Set of device object IDs
        """
        user_ids = self.client.list_transitive_members(user_group_id, "user")
        logger.info(
            f"Resolving owned devices for {len(user_ids)} users ({device_filter.describe()})"
        )

        devices: set[str] = set()
        excluded = 0
        # Sorted for deterministic request order
        for user_id in sorted(user_ids):
            for device in self.client.list_user_owned_devices(user_id):
                if device_filter.matches(device):
                    devices.add(device.id)
                else:
                    excluded += 1
                    logger.debug(
                        f"Excluded device {device.display_name} ({device.id}) "
                        f"os={device.operating_system} trustType={device.trust_type} "
                        f"compliant={device.is_compliant} enabled={device.account_enabled}"
                    )

        logger.info(f"{len(devices)} eligible devices, {excluded} excluded by filter")
        return frozenset(devices)

    def resolve_device_group_members(self, device_group_id: str) -> frozenset[str]:
        """Get the current transitive device members of a group."""
        return self.client.list_transitive_members(device_group_id, "device")

    def resolve_group_members(self, group_id: str) -> frozenset[str]:
        """Get the user and device members of a group, including nested ones."""
        members = set()
        for member in self.client.list_group_members_all(group_id):
            if member.type in COPYABLE_MEMBER_TYPES:
                members.add(member.id)
            else:
                logger.debug(f"Skipping {member.type} member {member.display_name} ({member.id})")
        return frozenset(members)
