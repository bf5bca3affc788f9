"""Device attribute filters applied to a user's owned devices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from entrasync.core.constants import ALLOWED_OPERATING_SYSTEMS, ALLOWED_TRUST_TYPES
from entrasync.core.errors import InvalidFilterError
from entrasync.entra.models import DeviceRecord


class TriState(Enum):
    """A yes/no constraint that may also be left open."""

    YES = "Yes"
    NO = "No"
    ANY = "Any"

    @classmethod
    def parse(cls, value: str | bool | None, option: str) -> TriState:
        """Parse a configuration value; absent or empty means ANY.

        Raises:
            InvalidFilterError: For anything other than yes/no/empty
        """
        if value is None:
            return cls.ANY
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if not isinstance(value, str):
            raise InvalidFilterError(f"{option} must be 'Yes', 'No' or empty, got {value!r}")

        text = value.strip().lower()
        if not text:
            return cls.ANY
        if text in ("yes", "true"):
            return cls.YES
        if text in ("no", "false"):
            return cls.NO
        raise InvalidFilterError(f"{option} must be 'Yes', 'No' or empty, got {value!r}")

    def allows(self, actual: bool | None) -> bool:
        """Check a device attribute against this constraint."""
        if self is TriState.ANY:
            return True
        if self is TriState.YES:
            return actual is True
        return actual is False


def _split_list(value: str | list[str] | None, option: str) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items.

    Raises:
        InvalidFilterError: If the option is not a string or a list of strings
    """
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list) and all(isinstance(item, str) for item in value):
        items = value
    else:
        raise InvalidFilterError(
            f"{option} must be a comma-separated string or a list of strings, got {value!r}"
        )
    return [item.strip() for item in items if item.strip()]


def _validate_vocabulary(
    values: list[str], allowed: tuple[str, ...], option: str
) -> frozenset[str]:
    """Normalize values to their canonical spelling, rejecting unknown ones."""
    canonical = {a.lower(): a for a in allowed}
    unknown = [v for v in values if v.lower() not in canonical]
    if unknown:
        raise InvalidFilterError(
            f"{option} contains unsupported value(s) {', '.join(unknown)}; "
            f"allowed: {', '.join(allowed)}"
        )
    return frozenset(canonical[v.lower()] for v in values)


@dataclass(frozen=True)
class DeviceFilter:
    """Which owned devices qualify for a device group.

    An empty operating system set allows every OS. The trust type set is only
    applied when it names one or two of the three trust types.
    """

    operating_systems: frozenset[str] = frozenset()
    trust_types: frozenset[str] = frozenset()
    is_compliant: TriState = TriState.ANY
    account_enabled: TriState = TriState.ANY

    @classmethod
    def from_config(
        cls,
        os_list: str | list[str] | None = None,
        trust_type_list: str | list[str] | None = None,
        is_compliant: str | bool | None = None,
        account_enabled: str | bool | None = None,
    ) -> DeviceFilter:
        """Build a filter from raw configuration options.

        Raises:
            InvalidFilterError: If any option fails validation
        """
        return cls(
            operating_systems=_validate_vocabulary(
                _split_list(os_list, "OSList"), ALLOWED_OPERATING_SYSTEMS, "OSList"
            ),
            trust_types=_validate_vocabulary(
                _split_list(trust_type_list, "TrustTypeList"),
                ALLOWED_TRUST_TYPES,
                "TrustTypeList",
            ),
            is_compliant=TriState.parse(is_compliant, "isCompliant"),
            account_enabled=TriState.parse(account_enabled, "accountEnabled"),
        )

    @property
    def filters_trust_type(self) -> bool:
        """Whether the trust type constraint is in effect."""
        return 1 <= len(self.trust_types) <= 2

    def matches(self, device: DeviceRecord) -> bool:
        """Return True if the device passes every configured constraint."""
        if self.operating_systems:
            allowed = {os_name.lower() for os_name in self.operating_systems}
            if (device.operating_system or "").lower() not in allowed:
                return False

        if self.filters_trust_type:
            allowed = {t.lower() for t in self.trust_types}
            if (device.trust_type or "").lower() not in allowed:
                return False

        return self.account_enabled.allows(device.account_enabled) and self.is_compliant.allows(
            device.is_compliant
        )

    def describe(self) -> str:
        """Short human-readable summary for logs."""
        parts = [
            f"OS={','.join(sorted(self.operating_systems)) or 'any'}",
            f"trustType={','.join(sorted(self.trust_types)) if self.filters_trust_type else 'any'}",
            f"isCompliant={self.is_compliant.value}",
            f"accountEnabled={self.account_enabled.value}",
        ]
        return " ".join(parts)
