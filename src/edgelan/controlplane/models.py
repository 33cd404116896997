"""Boundary models for control-plane responses.

Entity lookups return loosely typed ``helperFields`` maps: the same field
can arrive as a string, number or boolean, or be missing entirely. These
models coerce them once, at the edge, into the records the engine uses.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config.schema import normalize_slot_index
from .base import InterfaceSlot, LocationRecord, NetworkRangeRecord, SiteSnapshot


class _Lenient(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LookupEntity(_Lenient):
    id: str
    name: Optional[str] = None
    type: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)


class LookupItem(_Lenient):
    """One entry of an entityLookup response."""

    entity: LookupEntity
    helper_fields: dict[str, Any] = Field(default_factory=dict, alias="helperFields")

    @field_validator("helper_fields", mode="before")
    @classmethod
    def default_helper_fields(cls, v: Any) -> dict:
        return v or {}


class EntityLookupResponse(_Lenient):
    items: list[LookupItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, v: Any) -> list:
        return v or []


def _optional_text(v: Any) -> Optional[str]:
    if v is None:
        return None
    return str(v)


class InterfaceHelperFields(_Lenient):
    """helperFields of a networkInterface entity."""

    site_id: Optional[str] = Field(None, alias="siteId")
    interface_id: Optional[str] = Field(None, alias="interfaceId")
    interface_name: Optional[str] = Field(None, alias="interfaceName")
    subnet: Optional[str] = None
    dest_type: Optional[str] = Field(None, alias="destType")
    is_default: Optional[bool] = Field(None, alias="isDefault")

    @field_validator("site_id", "interface_name", "subnet", "dest_type", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _optional_text(v)

    @field_validator("interface_id", mode="before")
    @classmethod
    def coerce_index(cls, v: Any) -> Optional[str]:
        return normalize_slot_index(v)

    @field_validator("is_default", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> Optional[bool]:
        if v is None or v == "":
            return None
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes")
        return bool(v)


class RangeHelperFields(_Lenient):
    """helperFields of a siteRange entity."""

    site_id: Optional[str] = Field(None, alias="siteId")
    subnet: Optional[str] = None
    vlan_tag: Optional[int] = Field(None, alias="vlanTag")
    gateway: Optional[str] = None
    range_type: Optional[str] = Field(None, alias="rangeType")
    mdns_reflector: bool = Field(False, alias="mdnsReflector")
    microsegmentation: Optional[bool] = None
    translated_subnet: Optional[str] = Field(None, alias="translatedSubnet")
    dhcp_type: Optional[str] = Field(None, alias="dhcpType")
    dhcp_range: Optional[str] = Field(None, alias="dhcpRange")
    relay_group_id: Optional[str] = Field(None, alias="dhcpRelayGroupId")
    relay_group_name: Optional[str] = Field(None, alias="dhcpRelayGroupName")

    @field_validator(
        "site_id", "subnet", "gateway", "range_type", "translated_subnet",
        "dhcp_type", "dhcp_range", "relay_group_id", "relay_group_name",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        text = _optional_text(v)
        return text if text else None

    @field_validator("vlan_tag", mode="before")
    @classmethod
    def coerce_vlan(cls, v: Any) -> Optional[int]:
        # Unparseable tags read as "no VLAN"
        if v is None or v == "":
            return None
        try:
            return int(float(v))
        except (TypeError, ValueError):
            return None

    @field_validator("mdns_reflector", mode="before")
    @classmethod
    def coerce_mdns(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return bool(v)


class LocationHelperFields(_Lenient):
    """helperFields of a siteLocation entity."""

    country_code: Optional[str] = Field(None, alias="countryCode")
    country_name: Optional[str] = Field(None, alias="countryName")
    state_code: Optional[str] = Field(None, alias="stateCode")
    state_name: Optional[str] = Field(None, alias="stateName")
    city: Optional[str] = None
    timezone: list[str] = Field(default_factory=list)

    @field_validator("country_code", "country_name", "state_code", "state_name", "city", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        text = _optional_text(v)
        return text.strip() if text and text.strip() else None

    @field_validator("timezone", mode="before")
    @classmethod
    def coerce_timezones(cls, v: Any) -> list:
        # A single zone may arrive as a bare string
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [v]
        return [str(zone) for zone in v if zone]


class SiteInfoSnapshot(_Lenient):
    name: Optional[str] = None
    conn_type: Optional[str] = Field(None, alias="connType")
    type: Optional[str] = None
    description: Optional[str] = None
    country_code: Optional[str] = Field(None, alias="countryCode")
    country_state_name: Optional[str] = Field(None, alias="countryStateName")
    city_name: Optional[str] = Field(None, alias="cityName")
    address: Optional[str] = None


class AccountSnapshotSite(_Lenient):
    id: str
    info: SiteInfoSnapshot = Field(default_factory=SiteInfoSnapshot, alias="infoSiteSnapshot")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("info", mode="before")
    @classmethod
    def default_info(cls, v: Any) -> Any:
        return v or {}


def to_interface_slot(item: LookupItem) -> Optional[InterfaceSlot]:
    """Build an InterfaceSlot, or None when the entry carries no slot id."""
    fields = InterfaceHelperFields.model_validate(item.helper_fields)
    if fields.interface_id is None:
        return None
    return InterfaceSlot(
        interface_id=item.entity.id,
        index=fields.interface_id,
        site_id=fields.site_id,
        name=fields.interface_name,
        subnet=fields.subnet,
        dest_type=fields.dest_type,
        is_default=fields.is_default,
    )


def to_range_record(item: LookupItem) -> NetworkRangeRecord:
    fields = RangeHelperFields.model_validate(item.helper_fields)
    return NetworkRangeRecord(
        range_id=item.entity.id,
        subnet=fields.subnet,
        name=item.entity.name,
        site_id=fields.site_id,
        vlan=fields.vlan_tag,
        mdns_reflector=fields.mdns_reflector,
        microsegmentation=fields.microsegmentation,
        gateway=fields.gateway,
        range_type=fields.range_type,
        translated_subnet=fields.translated_subnet,
        dhcp_type=fields.dhcp_type,
        ip_range=fields.dhcp_range,
        relay_group_id=fields.relay_group_id,
        relay_group_name=fields.relay_group_name,
    )


def to_location_record(item: LookupItem) -> Optional[LocationRecord]:
    """Build a LocationRecord, or None when the entry names no country."""
    fields = LocationHelperFields.model_validate(item.helper_fields)
    if fields.country_code is None:
        return None
    return LocationRecord(
        country_code=fields.country_code,
        country_name=fields.country_name,
        state_code=fields.state_code,
        state_name=fields.state_name,
        city=fields.city,
        timezones=fields.timezone,
    )


def to_site_snapshot(site: AccountSnapshotSite) -> SiteSnapshot:
    info = site.info
    return SiteSnapshot(
        site_id=site.id,
        name=info.name,
        connection_type=info.conn_type,
        site_type=info.type,
        description=info.description,
        country_code=info.country_code,
        country_state_name=info.country_state_name,
        city=info.city_name,
        address=info.address,
    )
