"""Confirm configured group IDs point at the groups operators named."""

import logging

from entrasync.entra.client import DirectoryClient
from entrasync.entra.models import DirectoryGroup

logger = logging.getLogger(__name__)


class GroupValidator:
    """Check group display names before any group is modified.

    Each group ID is looked up at most once per validator.
    """

    def __init__(self, client: DirectoryClient) -> None:
        """Initialize the validator.

        Args:
            client: Open directory client
        """
        self.client = client
        self._cache: dict[str, DirectoryGroup | None] = {}

    def validate(self, group: DirectoryGroup) -> bool:
        """Return True if the group exists and its display name matches exactly.

        Raises:
            ApiError: If the lookup fails for a reason other than not found
            AuthExhausted: If the token refresh budget runs out
        """
        if group.id not in self._cache:
            self._cache[group.id] = self.client.get_group(group.id)
        actual = self._cache[group.id]

        if actual is None:
            logger.warning(f"Group {group.id} ({group.name}) not found")
            return False

        if actual.name != group.name:
            logger.warning(
                f"Group {group.id} is named '{actual.name}', expected '{group.name}'"
            )
            return False

        logger.debug(f"Validated group {group.name} ({group.id})")
        return True
