"""Read the remote site back into a normalized observed configuration.

The control-plane encodes absence differently from the declared side
(empty strings, echoed stale DHCP fields, translated subnets equal to the
native one, fields it never reports). Each field therefore goes through a
named rule in ``NORMALIZATION_POLICY`` so a converged site hydrates to the
same snapshot on every pass.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..config.schema import (
    DEFAULT_RANGE_NAME,
    DestType,
    DhcpSettings,
    DhcpType,
    NativeRangeConfig,
    SiteConfig,
    SiteLocation,
    canonical_connection_type,
)
from ..controlplane.base import (
    ControlPlane,
    LocationInput,
    LocationRecord,
    NetworkRangeRecord,
    SiteSnapshot,
)
from .addressing import derive_local_ip, subnets_equal
from .resolver import SlotResolver
from .schema import ResolvedSlot

logger = logging.getLogger(__name__)

RANGE_NAME_SEPARATOR = " \\ "

# Values the control-plane accepts as "clear this field"
CITY_CLEAR_SENTINEL = " "
ADDRESS_CLEAR_SENTINEL = ""


@dataclass
class HydrationContext:
    """Everything one hydration pass has read."""
    snapshot: SiteSnapshot
    connection_type: Optional[str]
    slot: ResolvedSlot
    range: Optional[NetworkRangeRecord]
    prior: Optional[SiteConfig] = None
    # Timezone and state code looked up from the location catalogue
    location_hint: Optional[SiteLocation] = None

    @property
    def prior_native(self) -> NativeRangeConfig:
        return self.prior.native_range if self.prior else NativeRangeConfig()

    @property
    def prior_location(self) -> SiteLocation:
        if self.prior and self.prior.site_location:
            return self.prior.site_location
        return SiteLocation()


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _text_or_none(value: Optional[str]) -> Optional[str]:
    return None if _blank(value) else value


# --- native range rules ---

def _range_name(ctx: HydrationContext) -> str:
    if ctx.range and ctx.range.name:
        return ctx.range.name.split(RANGE_NAME_SEPARATOR)[-1]
    return DEFAULT_RANGE_NAME


def _gateway(ctx: HydrationContext) -> Optional[str]:
    if ctx.range and ctx.range.gateway:
        return ctx.range.gateway
    return ctx.prior_native.gateway


def _range_type(ctx: HydrationContext) -> Optional[str]:
    if ctx.range and ctx.range.range_type:
        return ctx.range.range_type
    return ctx.prior_native.range_type


def _local_ip(ctx: HydrationContext) -> Optional[str]:
    """Remote gateway, else prior value, else derived from the subnet."""
    if ctx.range and ctx.range.gateway:
        return ctx.range.gateway
    if ctx.prior_native.local_ip:
        return ctx.prior_native.local_ip
    return derive_local_ip(ctx.slot.subnet, ctx.connection_type)


def _translated_subnet(ctx: HydrationContext) -> Optional[str]:
    """Prior value wins over the echoed one; equal to native reads as absent."""
    candidate = ctx.prior_native.translated_subnet
    if _blank(candidate) and ctx.range:
        candidate = ctx.range.translated_subnet
    if _blank(candidate):
        return None
    if subnets_equal(candidate, ctx.slot.subnet):
        return None
    if subnets_equal(candidate, ctx.prior_native.native_network_range):
        return None
    return candidate


def _dest_type(ctx: HydrationContext) -> str:
    return ctx.slot.dest_type or DestType.LAN.value


def _lag_min_links(ctx: HydrationContext) -> Optional[int]:
    # Not reported by the control-plane
    return ctx.prior_native.lag_min_links


def _dhcp_settings(ctx: HydrationContext) -> Optional[DhcpSettings]:
    """
    DHCP block, present only when the prior had one or DHCP is enabled.

    Sub-fields that do not belong to the active type are dropped. Relay
    references mirror the form (id or name) the prior used.
    """
    prior = ctx.prior_native.dhcp_settings
    remote = ctx.range or NetworkRangeRecord(range_id="")
    dhcp_type = remote.dhcp_type or (prior.dhcp_type if prior else None) or DhcpType.DHCP_DISABLED.value

    if prior is None and dhcp_type == DhcpType.DHCP_DISABLED.value:
        return None

    settings = DhcpSettings(dhcp_type=dhcp_type)
    if dhcp_type == DhcpType.DHCP_RANGE.value:
        settings.ip_range = remote.ip_range or (prior.ip_range if prior else None)
        if remote.microsegmentation is not None:
            settings.dhcp_microsegmentation = remote.microsegmentation
        elif prior is not None:
            settings.dhcp_microsegmentation = prior.dhcp_microsegmentation
    elif dhcp_type == DhcpType.DHCP_RELAY.value:
        if prior and (prior.relay_group_id or prior.relay_group_name):
            if prior.relay_group_id:
                settings.relay_group_id = remote.relay_group_id or prior.relay_group_id
            if prior.relay_group_name:
                settings.relay_group_name = remote.relay_group_name or prior.relay_group_name
        else:
            settings.relay_group_id = remote.relay_group_id
            settings.relay_group_name = remote.relay_group_name
    return settings


NORMALIZATION_POLICY: dict[str, Callable[[HydrationContext], Any]] = {
    "interface_index": lambda ctx: ctx.slot.index,
    "interface_id": lambda ctx: ctx.slot.interface_id,
    "interface_name": lambda ctx: _text_or_none(ctx.slot.name),
    "native_network_range": lambda ctx: ctx.slot.subnet,
    "native_network_range_id": lambda ctx: ctx.range.range_id if ctx.range else None,
    "range_name": _range_name,
    "local_ip": _local_ip,
    "gateway": _gateway,
    "range_type": _range_type,
    "translated_subnet": _translated_subnet,
    "vlan": lambda ctx: ctx.range.vlan if ctx.range else None,
    "mdns_reflector": lambda ctx: ctx.range.mdns_reflector if ctx.range else False,
    "lag_min_links": _lag_min_links,
    "interface_dest_type": _dest_type,
    "dhcp_settings": _dhcp_settings,
}


# --- site-level rules ---

def _site_location(ctx: HydrationContext) -> Optional[SiteLocation]:
    """
    Country, city and address from the snapshot.

    The snapshot carries no timezone or state code. Prior values are kept;
    missing ones come from the location catalogue.
    """
    prior = ctx.prior_location
    hint = ctx.location_hint or SiteLocation()
    location = SiteLocation(
        country_code=ctx.snapshot.country_code or prior.country_code,
        state_code=prior.state_code or hint.state_code,
        timezone=prior.timezone or hint.timezone,
        address=_text_or_none(ctx.snapshot.address),
        city=_text_or_none(ctx.snapshot.city),
    )
    if all(v is None for v in vars(location).values()):
        return None
    return location


SITE_POLICY: dict[str, Callable[[HydrationContext], Any]] = {
    "site_id": lambda ctx: ctx.snapshot.site_id,
    "name": lambda ctx: ctx.snapshot.name or (ctx.prior.name if ctx.prior else ""),
    "connection_type": lambda ctx: ctx.connection_type or "",
    "site_type": lambda ctx: ctx.snapshot.site_type or (ctx.prior.site_type if ctx.prior else None),
    "description": lambda ctx: _text_or_none(ctx.snapshot.description),
    "site_location": _site_location,
}


def location_hint(
    candidates: list[LocationRecord],
    state_name: Optional[str] = None,
    city: Optional[str] = None,
) -> Optional[SiteLocation]:
    """
    Timezone and state code for a site from catalogue entries of its country.

    An entry for the same city wins, preferring one in the same state.
    Otherwise the first entry of the country supplies the timezone only.
    """
    if not candidates:
        return None
    match = None
    if not _blank(city):
        same_city = [c for c in candidates if c.city == city]
        in_state = [c for c in same_city if _blank(state_name) or c.state_name == state_name]
        match = (in_state or same_city or [None])[0]
    if match is not None:
        return SiteLocation(
            state_code=match.state_code,
            timezone=match.timezones[0] if match.timezones else None,
        )
    fallback = candidates[0]
    return SiteLocation(timezone=fallback.timezones[0] if fallback.timezones else None)


def location_update_fields(
    declared: Optional[SiteLocation],
    prior: Optional[SiteLocation],
) -> LocationInput:
    """
    Location fields to submit.

    The control-plane ignores omitted fields, so clearing a city or address
    that was set before needs an explicit sentinel. A blank field that was
    never set is simply omitted.
    """
    declared = declared or SiteLocation()
    prior = prior or SiteLocation()

    if not _blank(declared.city):
        city = declared.city
    elif not _blank(prior.city):
        city = CITY_CLEAR_SENTINEL
    else:
        city = None

    if not _blank(declared.address):
        address = declared.address
    elif not _blank(prior.address):
        address = ADDRESS_CLEAR_SENTINEL
    else:
        address = None

    return LocationInput(
        country_code=declared.country_code,
        state_code=declared.state_code,
        timezone=declared.timezone,
        address=address,
        city=city,
    )


class StateHydrator:
    """Produces the observed configuration of a site."""

    def __init__(self, control_plane: ControlPlane, resolver: Optional[SlotResolver] = None):
        self.control_plane = control_plane
        self.resolver = resolver or SlotResolver(control_plane)

    async def hydrate(
        self,
        site_id: str,
        prior: Optional[SiteConfig] = None,
    ) -> Optional[SiteConfig]:
        """
        Read a site back from the control-plane.

        Args:
            site_id: Site to read
            prior: Declared or previously observed configuration; supplies
                values the control-plane does not report

        Returns:
            Normalized SiteConfig, or None when the site no longer exists
        """
        if not await self.control_plane.site_exists(site_id):
            logger.info(f"Site {site_id} no longer exists")
            return None

        snapshot = await self.control_plane.read_site_snapshot(site_id)
        if snapshot is None:
            logger.info(f"Site {site_id} missing from account snapshot")
            return None

        connection_type = canonical_connection_type(
            snapshot.connection_type or (prior.connection_type if prior else None)
        )
        slot = await self.resolver.resolve(site_id, connection_type)
        native_range = await self.resolver.resolve_native_range(site_id, slot.subnet)
        if native_range is None:
            logger.warning(f"Site {site_id}: no range matches default subnet {slot.subnet}")

        ctx = HydrationContext(
            snapshot=snapshot,
            connection_type=connection_type,
            slot=slot,
            range=native_range,
            prior=prior,
            location_hint=await self._lookup_location(snapshot, prior),
        )
        observed = SiteConfig(
            native_range=NativeRangeConfig(
                **{name: rule(ctx) for name, rule in NORMALIZATION_POLICY.items()}
            ),
            **{name: rule(ctx) for name, rule in SITE_POLICY.items()},
        )
        logger.debug(f"Hydrated site {site_id}: {observed.to_json(indent=None)}")
        return observed

    async def _lookup_location(
        self,
        snapshot: SiteSnapshot,
        prior: Optional[SiteConfig],
    ) -> Optional[SiteLocation]:
        """Consult the location catalogue when the prior lacks timezone or state code."""
        known = prior.site_location if prior and prior.site_location else SiteLocation()
        if _blank(snapshot.country_code) or (known.timezone and known.state_code):
            return None

        city = _text_or_none(snapshot.city)
        candidates = await self.control_plane.list_locations(snapshot.country_code, city=city)
        if not candidates and city:
            candidates = await self.control_plane.list_locations(snapshot.country_code)
        hint = location_hint(candidates, _text_or_none(snapshot.country_state_name), city)
        logger.debug(f"Location hint for {snapshot.country_code}/{city}: {hint}")
        return hint
