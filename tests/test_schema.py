"""Tests for the declared configuration records."""
import json

import pytest

from edgelan.config.schema import (
    DhcpSettings,
    SiteConfig,
    canonical_connection_type,
    default_slot_for,
    is_lag_master,
    normalize_slot_index,
)


class TestSlotTables:
    """Tests for connection type and slot helpers."""

    def test_virtual_alias(self):
        assert canonical_connection_type("VSOCKET_VGX_ESX") == "SOCKET_ESX1500"
        assert canonical_connection_type("SOCKET_X1700") == "SOCKET_X1700"
        assert canonical_connection_type(None) is None

    def test_default_slots(self):
        assert default_slot_for("SOCKET_X1500") == "LAN1"
        assert default_slot_for("SOCKET_X1600_LTE") == "INT_5"
        assert default_slot_for("SOCKET_X1700") == "INT_3"
        assert default_slot_for("VSOCKET_VGX_AWS") == "LAN1"
        assert default_slot_for("UNKNOWN") is None

    def test_normalize_slot_index(self):
        """Bare numbers and INT_n denote the same slot."""
        assert normalize_slot_index("5") == "INT_5"
        assert normalize_slot_index(5) == "INT_5"
        assert normalize_slot_index("INT_5") == "INT_5"
        assert normalize_slot_index("LAN1") == "LAN1"
        assert normalize_slot_index("") is None
        assert normalize_slot_index(None) is None

    def test_is_lag_master(self):
        assert is_lag_master("LAN_LAG_MASTER")
        assert is_lag_master("LAN_LAG_MASTER_AND_VRRP")
        assert not is_lag_master("LAN")
        assert not is_lag_master(None)


class TestSiteConfig:
    """Tests for SiteConfig parsing and rendering."""

    def test_from_dict(self):
        site = SiteConfig.from_dict({
            "name": "Berlin",
            "connection_type": "SOCKET_X1600",
            "native_range": {
                "native_network_range": "10.20.0.0/24",
                "local_ip": "10.20.0.1",
                "interface_index": 7,
                "vlan": "120",
                "dhcp_settings": {"dhcp_type": "DHCP_RELAY", "relay_group_name": "relays-eu"},
            },
            "site_location": {"country_code": "DE", "city": "Berlin"},
        })

        assert site.site_id is None
        assert site.native_range.interface_index == "INT_7"
        assert site.native_range.vlan == 120
        assert site.native_range.interface_dest_type == "LAN"
        assert site.native_range.dhcp_settings == DhcpSettings(
            dhcp_type="DHCP_RELAY", relay_group_name="relays-eu"
        )
        assert site.site_location.city == "Berlin"

    def test_missing_name(self):
        with pytest.raises(ValueError, match="name"):
            SiteConfig.from_dict({"connection_type": "SOCKET_X1600"})

    def test_missing_connection_type(self):
        with pytest.raises(ValueError, match="connection_type"):
            SiteConfig.from_dict({"name": "Berlin"})

    def test_json_round_trip(self):
        site = SiteConfig.from_dict({
            "name": "Berlin",
            "connection_type": "SOCKET_X1600",
            "site_id": "1001",
            "native_range": {"native_network_range": "10.20.0.0/24"},
        })

        assert SiteConfig.from_dict(json.loads(site.to_json())) == site

    def test_json_is_deterministic(self):
        site = SiteConfig(name="Berlin", connection_type="SOCKET_X1600")
        assert site.to_json() == SiteConfig(name="Berlin", connection_type="SOCKET_X1600").to_json()
        assert site.canonical_connection_type == "SOCKET_X1600"
