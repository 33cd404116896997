"""Declared and observed site configuration records.

Both the caller's intent and the hydrated remote state use the same
records, so a converged snapshot can be fed straight back in as the prior
state of the next pass.
"""
import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class ConnectionType(str, Enum):
    """Hardware or virtual appliance family of a site."""
    SOCKET_AWS1500 = "SOCKET_AWS1500"
    SOCKET_AZ1500 = "SOCKET_AZ1500"
    SOCKET_ESX1500 = "SOCKET_ESX1500"
    SOCKET_GCP1500 = "SOCKET_GCP1500"
    SOCKET_X1500 = "SOCKET_X1500"
    SOCKET_X1600 = "SOCKET_X1600"
    SOCKET_X1600_LTE = "SOCKET_X1600_LTE"
    SOCKET_X1700 = "SOCKET_X1700"
    VSOCKET_VGX_AWS = "VSOCKET_VGX_AWS"
    VSOCKET_VGX_AZURE = "VSOCKET_VGX_AZURE"
    VSOCKET_VGX_ESX = "VSOCKET_VGX_ESX"


class DestType(str, Enum):
    """Destination role of an interface slot."""
    LAN = "LAN"
    LAN_LAG_MASTER = "LAN_LAG_MASTER"
    LAN_LAG_MASTER_AND_VRRP = "LAN_LAG_MASTER_AND_VRRP"
    LAN_AND_HA = "LAN_AND_HA"
    VRRP = "VRRP"
    VRRP_AND_LAN = "VRRP_AND_LAN"
    INTERFACE_DISABLED = "INTERFACE_DISABLED"
    LAN_LAG_MEMBER = "LAN_LAG_MEMBER"


class DhcpType(str, Enum):
    """DHCP mode of a network range."""
    DHCP_DISABLED = "DHCP_DISABLED"
    DHCP_RANGE = "DHCP_RANGE"
    DHCP_RELAY = "DHCP_RELAY"
    ACCOUNT_DEFAULT = "ACCOUNT_DEFAULT"


# Virtual appliances share the slot layout of their physical twin
CONNECTION_TYPE_ALIASES: Mapping[str, str] = MappingProxyType({
    "VSOCKET_VGX_AWS": "SOCKET_AWS1500",
    "VSOCKET_VGX_AZURE": "SOCKET_AZ1500",
    "VSOCKET_VGX_ESX": "SOCKET_ESX1500",
})

DEFAULT_SLOT_BY_CONNECTION_TYPE: Mapping[str, str] = MappingProxyType({
    "SOCKET_AWS1500": "LAN1",
    "SOCKET_AZ1500": "LAN1",
    "SOCKET_ESX1500": "LAN1",
    "SOCKET_GCP1500": "LAN1",
    "SOCKET_X1500": "LAN1",
    "SOCKET_X1600": "INT_5",
    "SOCKET_X1600_LTE": "INT_5",
    "SOCKET_X1700": "INT_3",
})

# Only these families expose selectable slots for the native range
SELECTABLE_SLOT_CONNECTION_TYPES = frozenset({
    "SOCKET_X1500",
    "SOCKET_X1600",
    "SOCKET_X1600_LTE",
    "SOCKET_X1700",
})

SLOT_INDEXES = ("LAN1", "LAN2") + tuple(f"INT_{n}" for n in range(1, 13))

DECLARABLE_DEST_TYPES = frozenset({
    DestType.LAN,
    DestType.LAN_LAG_MASTER,
    DestType.LAN_LAG_MASTER_AND_VRRP,
    DestType.LAN_AND_HA,
    DestType.VRRP,
    DestType.VRRP_AND_LAN,
})

LAG_MASTER_DEST_TYPES = frozenset({
    DestType.LAN_LAG_MASTER,
    DestType.LAN_LAG_MASTER_AND_VRRP,
})

DEFAULT_RANGE_NAME = "Native Range"


def canonical_connection_type(connection_type: Optional[str]) -> Optional[str]:
    """Map a virtual appliance family onto the physical one it aliases."""
    if connection_type is None:
        return None
    value = connection_type.value if isinstance(connection_type, Enum) else connection_type
    return CONNECTION_TYPE_ALIASES.get(value, value)


def default_slot_for(connection_type: Optional[str]) -> Optional[str]:
    """Documented default slot for a connection type, or None if unknown."""
    return DEFAULT_SLOT_BY_CONNECTION_TYPE.get(
        canonical_connection_type(connection_type) or ""
    )


def normalize_slot_index(value: Any) -> Optional[str]:
    """Render a slot identifier in its textual form.

    The control-plane reports numbered slots as bare integers ("5" or 5)
    while declared configuration uses "INT_5"; named lanes pass through.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return f"INT_{int(text)}"
    except ValueError:
        return text


def is_lag_master(dest_type: Optional[str]) -> bool:
    return dest_type in {d.value for d in LAG_MASTER_DEST_TYPES}


@dataclass
class DhcpSettings:
    """DHCP settings of a native range."""
    dhcp_type: str = DhcpType.DHCP_DISABLED.value
    ip_range: Optional[str] = None
    relay_group_id: Optional[str] = None
    relay_group_name: Optional[str] = None
    dhcp_microsegmentation: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["DhcpSettings"]:
        if data is None:
            return None
        return cls(
            dhcp_type=str(data.get("dhcp_type") or DhcpType.DHCP_DISABLED.value),
            ip_range=data.get("ip_range"),
            relay_group_id=data.get("relay_group_id"),
            relay_group_name=data.get("relay_group_name"),
            dhcp_microsegmentation=data.get("dhcp_microsegmentation"),
        )


@dataclass
class SiteLocation:
    """Physical location of a site."""
    country_code: Optional[str] = None
    state_code: Optional[str] = None
    timezone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["SiteLocation"]:
        if data is None:
            return None
        return cls(
            country_code=data.get("country_code"),
            state_code=data.get("state_code"),
            timezone=data.get("timezone"),
            address=data.get("address"),
            city=data.get("city"),
        )


@dataclass
class NativeRangeConfig:
    """Native range and the interface slot backing it."""
    native_network_range: Optional[str] = None
    local_ip: Optional[str] = None
    interface_index: Optional[str] = None
    interface_name: Optional[str] = None
    interface_dest_type: str = DestType.LAN.value
    translated_subnet: Optional[str] = None
    vlan: Optional[int] = None
    mdns_reflector: bool = False
    lag_min_links: Optional[int] = None
    dhcp_settings: Optional[DhcpSettings] = None
    # Reported by the control-plane
    interface_id: Optional[str] = None
    native_network_range_id: Optional[str] = None
    range_name: Optional[str] = None
    gateway: Optional[str] = None
    range_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["NativeRangeConfig"]:
        if data is None:
            return None
        vlan = data.get("vlan")
        lag_min_links = data.get("lag_min_links")
        return cls(
            native_network_range=data.get("native_network_range"),
            local_ip=data.get("local_ip"),
            interface_index=normalize_slot_index(data.get("interface_index")),
            interface_name=data.get("interface_name"),
            interface_dest_type=str(data.get("interface_dest_type") or DestType.LAN.value),
            translated_subnet=data.get("translated_subnet"),
            vlan=int(vlan) if vlan is not None else None,
            mdns_reflector=bool(data.get("mdns_reflector", False)),
            lag_min_links=int(lag_min_links) if lag_min_links is not None else None,
            dhcp_settings=DhcpSettings.from_dict(data.get("dhcp_settings")),
            interface_id=data.get("interface_id"),
            native_network_range_id=data.get("native_network_range_id"),
            range_name=data.get("range_name"),
            gateway=data.get("gateway"),
            range_type=data.get("range_type"),
        )


@dataclass
class SiteConfig:
    """Complete declared or observed configuration of one site."""
    name: str
    connection_type: str
    site_id: Optional[str] = None
    site_type: Optional[str] = None
    description: Optional[str] = None
    native_range: NativeRangeConfig = field(default_factory=NativeRangeConfig)
    site_location: Optional[SiteLocation] = None

    @property
    def canonical_connection_type(self) -> str:
        return canonical_connection_type(self.connection_type) or ""

    @classmethod
    def from_dict(cls, data: dict) -> "SiteConfig":
        if not data.get("name"):
            raise ValueError("Missing required field: name")
        if not data.get("connection_type"):
            raise ValueError("Missing required field: connection_type")
        return cls(
            name=data["name"],
            connection_type=str(data["connection_type"]),
            site_id=data.get("site_id") or data.get("id"),
            site_type=data.get("site_type"),
            description=data.get("description"),
            native_range=NativeRangeConfig.from_dict(data.get("native_range")) or NativeRangeConfig(),
            site_location=SiteLocation.from_dict(data.get("site_location")),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Deterministic JSON rendering; equal snapshots give equal text."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)
