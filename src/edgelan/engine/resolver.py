"""Locate the interface slot and range currently backing a site's native range."""
import logging
from typing import Optional

from ..config.schema import canonical_connection_type, default_slot_for, normalize_slot_index
from ..controlplane.base import ControlPlane, NetworkRangeRecord
from .addressing import subnets_equal
from .errors import SlotResolutionError
from .schema import ResolvedSlot

logger = logging.getLogger(__name__)


class SlotResolver:
    """Find the current default slot of a site.

    The is-default flag is authoritative. Control-planes that do not yet
    report the flag are handled through the documented default slot of the
    connection type.
    """

    def __init__(self, control_plane: ControlPlane):
        self.control_plane = control_plane

    async def resolve(self, site_id: str, connection_type: Optional[str]) -> ResolvedSlot:
        """
        Resolve the current default slot.

        Args:
            site_id: Site to inspect
            connection_type: Connection type, used for the fallback lookup

        Returns:
            ResolvedSlot; ``flagged`` tells whether the is-default flag was seen

        Raises:
            SlotResolutionError: Neither the flag nor the fallback matched
        """
        slots = await self.control_plane.list_interface_slots(site_id)

        for slot in slots:
            if slot.is_default:
                logger.debug(f"Site {site_id}: default slot {slot.index} (flagged)")
                return ResolvedSlot(
                    index=slot.index,
                    interface_id=slot.interface_id,
                    name=slot.name,
                    subnet=slot.subnet,
                    dest_type=slot.dest_type,
                    flagged=True,
                )

        expected = default_slot_for(connection_type)
        if expected is not None:
            for slot in slots:
                if normalize_slot_index(slot.index) == expected:
                    logger.debug(
                        f"Site {site_id}: no slot flagged default, using {expected} "
                        f"for {connection_type}"
                    )
                    return ResolvedSlot(
                        index=expected,
                        interface_id=slot.interface_id,
                        name=slot.name,
                        subnet=slot.subnet,
                        dest_type=slot.dest_type,
                        flagged=False,
                    )

        raise SlotResolutionError(
            site_id, canonical_connection_type(connection_type), expected
        )

    async def resolve_native_range(
        self, site_id: str, subnet: Optional[str]
    ) -> Optional[NetworkRangeRecord]:
        """Range of the site whose subnet equals the default slot's subnet."""
        if not subnet:
            return None
        for record in await self.control_plane.list_site_ranges(site_id):
            if subnets_equal(record.subnet, subnet):
                return record
        return None
