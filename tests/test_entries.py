"""Tests for entrasync.sync.entries."""

import json
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from entrasync.core.errors import ConfigFetchError, InvalidEntryError, InvalidFilterError
from entrasync.entra.filters import TriState
from entrasync.entra.models import DirectoryGroup
from entrasync.entra.reconcile import ReconcilePolicy
from entrasync.sync.entries import DeviceGroupEntry, GroupCopyEntry, load_records

CONFIG_URL = "https://config.example.com/entrasync/devices.json"


@pytest.fixture
def device_record():
    """Device group configuration record."""
    return {
        "UserAzureADGroupId": "ug-1",
        "UserAzureADGroupName": "Sales Users",
        "DeviceAzureADGroupId": "dg-1",
        "DeviceAzureADGroupName": "Sales Devices",
        "OSList": "Windows,MacOS",
        "TrustTypeList": "AzureAd",
        "isCompliant": "Yes",
        "accountEnabled": "",
    }


@pytest.fixture
def copy_record():
    """Group copy configuration record."""
    return {
        "SourceAzureADGroupIds": "sg-1, sg-2",
        "SourceAzureADGroupNames": "Team A, Team B",
        "DestinationAzureADGroupId": "dest-1",
        "DestinationAzureADGroupName": "All Teams",
    }


class TestLoadRecords:
    """Tests for load_records."""

    @respx.mock
    def test_fetches_from_url(self, device_record):
        respx.get(CONFIG_URL).mock(return_value=httpx.Response(200, json=[device_record]))

        assert load_records(CONFIG_URL) == [device_record]

    @respx.mock
    def test_single_object_becomes_list(self, device_record):
        respx.get(CONFIG_URL).mock(return_value=httpx.Response(200, json=device_record))

        assert load_records(CONFIG_URL) == [device_record]

    @respx.mock
    def test_http_error_raises(self):
        respx.get(CONFIG_URL).mock(return_value=httpx.Response(500))

        with pytest.raises(ConfigFetchError):
            load_records(CONFIG_URL)

    @respx.mock
    def test_invalid_json_raises(self):
        respx.get(CONFIG_URL).mock(return_value=httpx.Response(200, text="<html>"))

        with pytest.raises(ConfigFetchError):
            load_records(CONFIG_URL)

    def test_reads_local_file(self, tmp_path, copy_record):
        path = tmp_path / "config.json"
        path.write_text(json.dumps([copy_record]))

        assert load_records(str(path)) == [copy_record]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigFetchError):
            load_records(str(tmp_path / "missing.json"))

    def test_non_object_records_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(["not", "records"]))

        with pytest.raises(ConfigFetchError, match="list of objects"):
            load_records(str(path))


class TestDeviceGroupEntry:
    """Tests for DeviceGroupEntry."""

    def test_from_record(self, device_record):
        entry = DeviceGroupEntry.from_record(device_record)

        assert entry.user_group == DirectoryGroup(id="ug-1", name="Sales Users")
        assert entry.device_group == DirectoryGroup(id="dg-1", name="Sales Devices")
        assert entry.device_filter.operating_systems == frozenset({"Windows", "MacOS"})
        assert entry.device_filter.is_compliant is TriState.YES
        assert entry.device_filter.account_enabled is TriState.ANY
        assert entry.policy is ReconcilePolicy.FULL

    def test_groups_and_label(self, device_record):
        entry = DeviceGroupEntry.from_record(device_record)

        assert entry.groups == (entry.user_group, entry.device_group)
        assert entry.destination == entry.device_group
        assert entry.label == "Sales Users -> Sales Devices"

    def test_missing_field_raises(self, device_record):
        del device_record["DeviceAzureADGroupId"]

        with pytest.raises(InvalidEntryError, match="DeviceAzureADGroupId"):
            DeviceGroupEntry.from_record(device_record)

    def test_invalid_filter_raises(self, device_record):
        device_record["OSList"] = "Windows,BeOS"

        with pytest.raises(InvalidFilterError):
            DeviceGroupEntry.from_record(device_record)

    def test_resolves_through_resolver(self, device_record):
        entry = DeviceGroupEntry.from_record(device_record)
        resolver = MagicMock()

        entry.resolve_desired(resolver)
        entry.resolve_current(resolver)

        resolver.resolve_user_devices.assert_called_once_with("ug-1", entry.device_filter)
        resolver.resolve_device_group_members.assert_called_once_with("dg-1")


class TestGroupCopyEntry:
    """Tests for GroupCopyEntry."""

    def test_from_record(self, copy_record):
        entry = GroupCopyEntry.from_record(copy_record)

        assert entry.sources == (
            DirectoryGroup(id="sg-1", name="Team A"),
            DirectoryGroup(id="sg-2", name="Team B"),
        )
        assert entry.destination == DirectoryGroup(id="dest-1", name="All Teams")
        assert entry.policy is ReconcilePolicy.ADDITIVE
        assert entry.label == "Team A, Team B -> All Teams"

    def test_validates_sources_then_destination(self, copy_record):
        entry = GroupCopyEntry.from_record(copy_record)

        assert [g.id for g in entry.groups] == ["sg-1", "sg-2", "dest-1"]

    def test_mismatched_counts_raise(self, copy_record):
        copy_record["SourceAzureADGroupNames"] = "Team A"

        with pytest.raises(InvalidEntryError, match="has 2 values"):
            GroupCopyEntry.from_record(copy_record)

    def test_desired_is_union_of_sources(self, copy_record):
        entry = GroupCopyEntry.from_record(copy_record)
        resolver = MagicMock()
        resolver.resolve_group_members.side_effect = lambda group_id: {
            "sg-1": frozenset({"u1", "u2"}),
            "sg-2": frozenset({"u2", "d1"}),
        }[group_id]

        assert entry.resolve_desired(resolver) == frozenset({"u1", "u2", "d1"})
