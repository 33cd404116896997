"""Control-plane abstraction used by the convergence engine."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


class ControlPlaneError(Exception):
    """The control-plane rejected a request or answered with errors."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)


def _compact(values: dict) -> dict:
    """Drop unset fields from an outbound request."""
    return {k: v for k, v in values.items() if v is not None}


@dataclass
class InterfaceSlot:
    """One physical or logical port of a site."""
    interface_id: str
    index: str
    site_id: Optional[str] = None
    name: Optional[str] = None
    subnet: Optional[str] = None
    dest_type: Optional[str] = None
    # None when the control-plane does not report the flag at all
    is_default: Optional[bool] = None


@dataclass
class NetworkRangeRecord:
    """A network range bound to a site."""
    range_id: str
    subnet: Optional[str] = None
    name: Optional[str] = None
    site_id: Optional[str] = None
    vlan: Optional[int] = None
    mdns_reflector: bool = False
    microsegmentation: Optional[bool] = None
    gateway: Optional[str] = None
    range_type: Optional[str] = None
    translated_subnet: Optional[str] = None
    dhcp_type: Optional[str] = None
    ip_range: Optional[str] = None
    relay_group_id: Optional[str] = None
    relay_group_name: Optional[str] = None


@dataclass
class SiteSnapshot:
    """Site-level attributes as reported by the account snapshot."""
    site_id: str
    name: Optional[str] = None
    connection_type: Optional[str] = None
    site_type: Optional[str] = None
    description: Optional[str] = None
    country_code: Optional[str] = None
    country_state_name: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None


@dataclass
class LocationRecord:
    """One entry of the control-plane's location catalogue."""
    country_code: str
    country_name: Optional[str] = None
    state_code: Optional[str] = None
    state_name: Optional[str] = None
    city: Optional[str] = None
    # First entry is the primary timezone
    timezones: list[str] = field(default_factory=list)


@dataclass
class SlotUpdate:
    """Outbound change for a single interface slot."""
    dest_type: str
    name: Optional[str] = None
    subnet: Optional[str] = None
    local_ip: Optional[str] = None
    translated_subnet: Optional[str] = None
    lag_min_links: Optional[int] = None

    def to_input(self) -> dict:
        lan: dict[str, Any] = _compact({
            "subnet": self.subnet,
            "localIp": self.local_ip,
            "translatedSubnet": self.translated_subnet,
        })
        payload: dict[str, Any] = {"destType": self.dest_type}
        if self.name is not None:
            payload["name"] = self.name
        if lan:
            payload["lan"] = lan
        if self.lag_min_links is not None:
            payload["lag"] = {"minLinks": self.lag_min_links}
        return payload


@dataclass
class DhcpUpdate:
    """DHCP block of a range update. Only fields set here are sent."""
    dhcp_type: str
    ip_range: Optional[str] = None
    relay_group_id: Optional[str] = None
    microsegmentation: Optional[bool] = None

    def to_input(self) -> dict:
        return _compact({
            "dhcpType": self.dhcp_type,
            "ipRange": self.ip_range,
            "relayGroupId": self.relay_group_id,
            "dhcpMicrosegmentation": self.microsegmentation,
        })


@dataclass
class RangeUpdate:
    """Outbound change for the native network range."""
    subnet: Optional[str] = None
    local_ip: Optional[str] = None
    translated_subnet: Optional[str] = None
    vlan: Optional[int] = None
    mdns_reflector: Optional[bool] = None
    dhcp: Optional[DhcpUpdate] = None

    def to_input(self) -> dict:
        payload = _compact({
            "subnet": self.subnet,
            "localIp": self.local_ip,
            "translatedSubnet": self.translated_subnet,
            "vlan": self.vlan,
            "mdnsReflector": self.mdns_reflector,
        })
        if self.dhcp is not None:
            payload["dhcpSettings"] = self.dhcp.to_input()
        return payload


@dataclass
class LocationInput:
    """Site location as submitted; unset fields are left untouched remotely."""
    country_code: Optional[str] = None
    state_code: Optional[str] = None
    timezone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None

    def to_input(self) -> dict:
        return _compact({
            "countryCode": self.country_code,
            "stateCode": self.state_code,
            "timezone": self.timezone,
            "address": self.address,
            "city": self.city,
        })


@dataclass
class SiteCreate:
    """Request to create a socket site."""
    name: str
    connection_type: str
    site_type: Optional[str] = None
    description: Optional[str] = None
    native_network_range: Optional[str] = None
    translated_subnet: Optional[str] = None
    location: LocationInput = field(default_factory=LocationInput)

    def to_input(self) -> dict:
        payload = _compact({
            "name": self.name,
            "connectionType": self.connection_type,
            "siteType": self.site_type,
            "description": self.description,
            "nativeNetworkRange": self.native_network_range,
            "translatedSubnet": self.translated_subnet,
        })
        payload["siteLocation"] = self.location.to_input()
        return payload


@dataclass
class SiteGeneralUpdate:
    """Request to update name, type, description and location of a site."""
    name: Optional[str] = None
    site_type: Optional[str] = None
    description: Optional[str] = None
    location: Optional[LocationInput] = None

    def to_input(self) -> dict:
        payload = _compact({
            "name": self.name,
            "siteType": self.site_type,
            "description": self.description,
        })
        if self.location is not None:
            payload["siteLocation"] = self.location.to_input()
        return payload


class ControlPlane(ABC):
    """Abstract remote management service holding authoritative site state.

    Every method is a single request. Implementations raise
    ControlPlaneError for rejected requests and let transport errors
    propagate.
    """

    # Slot queries
    @abstractmethod
    async def list_interface_slots(self, site_id: str) -> list[InterfaceSlot]:
        """All interface slots of a site."""
        pass

    @abstractmethod
    async def list_lag_members(self, site_id: str) -> list[InterfaceSlot]:
        """Slots of a site currently in the LAN_LAG_MEMBER role."""
        pass

    @abstractmethod
    async def update_interface_slot(
        self, site_id: str, slot_index: str, update: SlotUpdate
    ) -> None:
        pass

    # Ranges
    @abstractmethod
    async def list_site_ranges(self, site_id: str) -> list[NetworkRangeRecord]:
        pass

    @abstractmethod
    async def update_native_range(self, range_id: str, update: RangeUpdate) -> None:
        pass

    @abstractmethod
    async def lookup_relay_group(
        self, name: Optional[str] = None, relay_id: Optional[str] = None
    ) -> str:
        """Resolve a DHCP relay group to its id.

        Exactly one of ``name`` or ``relay_id`` must be given. Raises
        LookupError when no group matches.
        """
        pass

    # Sites
    @abstractmethod
    async def site_exists(self, site_id: str) -> bool:
        pass

    @abstractmethod
    async def read_site_snapshot(self, site_id: str) -> Optional[SiteSnapshot]:
        pass

    @abstractmethod
    async def list_locations(
        self, country_code: str, city: Optional[str] = None
    ) -> list[LocationRecord]:
        """Catalogue entries of a country, narrowed to a city when given."""
        pass

    @abstractmethod
    async def add_site(self, request: SiteCreate) -> str:
        """Create a site and return its id."""
        pass

    @abstractmethod
    async def update_site_general(self, site_id: str, update: SiteGeneralUpdate) -> None:
        pass

    @abstractmethod
    async def remove_site(self, site_id: str) -> None:
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
