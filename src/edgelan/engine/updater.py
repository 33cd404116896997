"""Push declared range and interface settings to the control-plane."""
import logging
from typing import Optional

import httpx

from ..config.schema import (
    DestType,
    DhcpSettings,
    DhcpType,
    SiteConfig,
    is_lag_master,
)
from ..controlplane.base import (
    ControlPlane,
    ControlPlaneError,
    DhcpUpdate,
    RangeUpdate,
    SlotUpdate,
)
from .errors import RelayGroupError, RemoteCallError

logger = logging.getLogger(__name__)


def slot_display_name(
    declared: SiteConfig,
    prior: Optional[SiteConfig],
    index: str,
    establishing: bool = False,
) -> Optional[str]:
    """
    Display name to submit for the default slot.

    A new site without a declared name gets the slot index, and so does a
    name dropped from the declared configuration. Converging with no name
    on either side sends nothing.
    """
    name = declared.native_range.interface_name
    if name:
        return name
    if establishing:
        return index
    prior_name = prior.native_range.interface_name if prior else None
    if prior_name:
        return index
    return None


class RangeInterfaceUpdater:
    """Builds and applies the range-level and interface-level updates."""

    def __init__(self, control_plane: ControlPlane):
        self.control_plane = control_plane

    async def resolve_relay_group(self, dhcp: DhcpSettings) -> str:
        """Relay group id for a DHCP_RELAY block, verified against the control-plane."""
        try:
            return await self.control_plane.lookup_relay_group(
                name=dhcp.relay_group_name or None,
                relay_id=dhcp.relay_group_id or None,
            )
        except (LookupError, ValueError) as e:
            raise RelayGroupError(str(e)) from e
        except (ControlPlaneError, httpx.HTTPError) as e:
            raise RemoteCallError("lookup_relay_group", str(e)) from e

    async def build_dhcp_update(
        self,
        dhcp: Optional[DhcpSettings],
        disable_when_absent: bool = False,
    ) -> Optional[DhcpUpdate]:
        """Only the fields applicable to the DHCP type are carried."""
        if dhcp is None:
            if disable_when_absent:
                return DhcpUpdate(dhcp_type=DhcpType.DHCP_DISABLED.value)
            return None

        update = DhcpUpdate(dhcp_type=dhcp.dhcp_type)
        if dhcp.dhcp_type == DhcpType.DHCP_RANGE.value:
            update.ip_range = dhcp.ip_range or None
            update.microsegmentation = dhcp.dhcp_microsegmentation
        elif dhcp.dhcp_type == DhcpType.DHCP_RELAY.value:
            update.relay_group_id = await self.resolve_relay_group(dhcp)
        return update

    async def build_range_update(
        self,
        declared: SiteConfig,
        disable_dhcp_when_absent: bool = False,
    ) -> RangeUpdate:
        native = declared.native_range
        return RangeUpdate(
            subnet=native.native_network_range,
            local_ip=native.local_ip,
            translated_subnet=native.translated_subnet or None,
            vlan=native.vlan,
            mdns_reflector=native.mdns_reflector,
            dhcp=await self.build_dhcp_update(native.dhcp_settings, disable_dhcp_when_absent),
        )

    def build_slot_update(
        self,
        declared: SiteConfig,
        slot_index: str,
        prior: Optional[SiteConfig] = None,
        establishing: bool = False,
    ) -> SlotUpdate:
        native = declared.native_range
        dest_type = native.interface_dest_type or DestType.LAN.value
        return SlotUpdate(
            dest_type=dest_type,
            name=slot_display_name(declared, prior, slot_index, establishing),
            subnet=native.native_network_range,
            local_ip=native.local_ip,
            translated_subnet=native.translated_subnet or None,
            lag_min_links=native.lag_min_links if is_lag_master(dest_type) else None,
        )

    async def apply_range(
        self,
        site_id: str,
        range_id: str,
        declared: SiteConfig,
        disable_dhcp_when_absent: bool = False,
    ) -> RangeUpdate:
        update = await self.build_range_update(declared, disable_dhcp_when_absent)
        try:
            await self.control_plane.update_native_range(range_id, update)
        except (ControlPlaneError, httpx.HTTPError) as e:
            raise RemoteCallError(f"update native range {range_id}", str(e), site_id=site_id) from e
        return update

    async def apply_slot(
        self,
        site_id: str,
        slot_index: str,
        declared: SiteConfig,
        prior: Optional[SiteConfig] = None,
        establishing: bool = False,
    ) -> SlotUpdate:
        update = self.build_slot_update(declared, slot_index, prior, establishing)
        try:
            await self.control_plane.update_interface_slot(site_id, slot_index, update)
        except (ControlPlaneError, httpx.HTTPError) as e:
            raise RemoteCallError("update interface", str(e), site_id=site_id, slot=slot_index) from e
        return update

    async def apply(
        self,
        site_id: str,
        range_id: str,
        slot_index: str,
        declared: SiteConfig,
        prior: Optional[SiteConfig] = None,
        establishing: bool = False,
    ) -> None:
        """Range first, then the interface of the default slot.

        A converge pass disables DHCP when the declared block is absent; a
        new site keeps the control-plane default.
        """
        logger.info(f"Site {site_id}: updating native range {range_id} and interface {slot_index}")
        await self.apply_range(site_id, range_id, declared, disable_dhcp_when_absent=not establishing)
        await self.apply_slot(site_id, slot_index, declared, prior, establishing)
