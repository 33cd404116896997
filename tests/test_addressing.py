"""Tests for address and subnet checks."""
import pytest

from edgelan.engine.addressing import (
    check_local_ip,
    derive_local_ip,
    ip_in_subnet,
    parse_network,
    subnets_equal,
)
from edgelan.engine.errors import (
    AddressError,
    AddressNotInSubnetError,
    InvalidAddressError,
    InvalidCIDRError,
)


class TestCheckLocalIp:
    """Tests for local IP containment."""

    def test_inside_subnet(self):
        check_local_ip("10.20.0.1", "10.20.0.0/24")

    def test_host_bits_allowed_in_cidr(self):
        """A CIDR written with host bits still denotes its network."""
        check_local_ip("10.20.0.77", "10.20.0.1/24")

    def test_outside_subnet(self):
        with pytest.raises(AddressNotInSubnetError) as exc_info:
            check_local_ip("10.30.0.1", "10.20.0.0/24")
        assert "10.30.0.1" in str(exc_info.value)
        assert "10.20.0.0/24" in str(exc_info.value)

    def test_invalid_address(self):
        with pytest.raises(InvalidAddressError):
            check_local_ip("10.20.0.300", "10.20.0.0/24")

    def test_invalid_cidr(self):
        with pytest.raises(InvalidCIDRError):
            check_local_ip("10.20.0.1", "10.20.0.0")

    def test_mixed_versions_not_contained(self):
        with pytest.raises(AddressNotInSubnetError):
            check_local_ip("fd00::1", "10.20.0.0/24")

    def test_errors_are_value_errors(self):
        assert issubclass(AddressError, ValueError)

    def test_ip_in_subnet(self):
        assert ip_in_subnet("10.20.0.254", "10.20.0.0/24")
        assert not ip_in_subnet("10.20.1.1", "10.20.0.0/24")
        assert not ip_in_subnet("garbage", "10.20.0.0/24")


class TestSubnetHelpers:
    """Tests for subnet parsing and comparison."""

    def test_parse_ipv6(self):
        assert parse_network("fd00:1::/64").version == 6

    def test_subnets_equal(self):
        assert subnets_equal("10.20.0.0/24", " 10.20.0.0/24")
        assert not subnets_equal("10.20.0.0/24", "10.21.0.0/24")
        assert not subnets_equal(None, "10.20.0.0/24")
        assert not subnets_equal("", "")


class TestDeriveLocalIp:
    """Tests for the default local IP of a subnet."""

    def test_physical_appliance_uses_first_host(self):
        assert derive_local_ip("10.20.0.0/24", "SOCKET_X1600") == "10.20.0.1"

    def test_cloud_appliance_skips_reserved(self):
        assert derive_local_ip("10.20.0.0/24", "SOCKET_AWS1500") == "10.20.0.4"

    def test_virtual_alias_uses_physical_offset(self):
        assert derive_local_ip("10.20.0.0/24", "VSOCKET_VGX_AZURE") == "10.20.0.4"

    def test_missing_or_invalid_subnet(self):
        assert derive_local_ip(None, "SOCKET_X1600") is None
        assert derive_local_ip("not-a-subnet", "SOCKET_X1600") is None
        assert derive_local_ip("fd00::/64", "SOCKET_X1600") is None
