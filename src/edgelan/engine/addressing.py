"""Address and subnet checks."""
import ipaddress
from typing import Optional, Union

from ..config.schema import canonical_connection_type
from .errors import AddressNotInSubnetError, InvalidAddressError, InvalidCIDRError

# Cloud appliances reserve the first addresses of the subnet
LOCAL_IP_OFFSETS = {
    "SOCKET_AWS1500": 4,
    "SOCKET_AZ1500": 4,
    "SOCKET_GCP1500": 4,
}
DEFAULT_LOCAL_IP_OFFSET = 1


def parse_address(address: str) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address]:
    try:
        return ipaddress.ip_address(str(address).strip())
    except ValueError:
        raise InvalidAddressError(address) from None


def parse_network(cidr: str) -> Union[ipaddress.IPv4Network, ipaddress.IPv6Network]:
    """Parse a CIDR, allowing host bits to be set (10.0.0.1/24)."""
    text = str(cidr).strip()
    if "/" not in text:
        raise InvalidCIDRError(cidr)
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError:
        raise InvalidCIDRError(cidr) from None


def check_local_ip(address: str, cidr: str) -> None:
    """Raise unless ``address`` is a valid IP inside ``cidr``."""
    ip = parse_address(address)
    network = parse_network(cidr)
    if ip.version != network.version or ip not in network:
        raise AddressNotInSubnetError(address, cidr)


def ip_in_subnet(address: str, cidr: str) -> bool:
    try:
        check_local_ip(address, cidr)
    except (InvalidAddressError, InvalidCIDRError, AddressNotInSubnetError):
        return False
    return True


def subnets_equal(first: Optional[str], second: Optional[str]) -> bool:
    """Compare two subnets textually."""
    if not first or not second:
        return False
    return first.strip() == second.strip()


def derive_local_ip(subnet: Optional[str], connection_type: Optional[str]) -> Optional[str]:
    """Local IP the control-plane assigns by default for a subnet.

    Returns None when the subnet is missing or not IPv4.
    """
    if not subnet:
        return None
    try:
        network = parse_network(subnet)
    except InvalidCIDRError:
        return None
    if network.version != 4:
        return None
    offset = LOCAL_IP_OFFSETS.get(
        canonical_connection_type(connection_type) or "", DEFAULT_LOCAL_IP_OFFSET
    )
    return str(network.network_address + offset)
