"""Shared fixtures: an in-memory control-plane and declared sites."""
from dataclasses import replace
from typing import Optional

import pytest

from edgelan.config.schema import (
    DestType,
    DhcpType,
    NativeRangeConfig,
    SiteConfig,
    default_slot_for,
)
from edgelan.controlplane.base import (
    ControlPlane,
    ControlPlaneError,
    InterfaceSlot,
    LocationRecord,
    NetworkRangeRecord,
    RangeUpdate,
    SiteCreate,
    SiteGeneralUpdate,
    SiteSnapshot,
    SlotUpdate,
)

SPARE_SLOTS = {
    "LAN1": ["LAN2"],
    "INT_5": ["INT_1", "INT_2", "INT_6", "INT_7"],
    "INT_3": ["INT_1", "INT_2", "INT_4"],
}


class FakeControlPlane(ControlPlane):
    """Control-plane kept in memory.

    Disabling the current default and then giving another slot a subnet
    moves the default flag there, the way the real service does.

    Args:
        flag_supported: Report the is-default flag on slots
        moves_default: Let the flag follow the native range on a move
    """

    def __init__(self, flag_supported: bool = True, moves_default: bool = True):
        self.flag_supported = flag_supported
        self.moves_default = moves_default
        self.sites: dict[str, SiteSnapshot] = {}
        self.slots: dict[str, dict[str, InterfaceSlot]] = {}
        self.ranges: dict[str, NetworkRangeRecord] = {}
        self.relay_groups: dict[str, str] = {}
        self.locations: list[LocationRecord] = []
        self.calls: list[tuple] = []
        self._failures: dict[str, list] = {}
        self._counter = 0

    # --- test helpers ---

    def fail(self, method: str, error: Exception, after: int = 0) -> None:
        """Make ``method`` raise ``error`` after ``after`` more successful calls."""
        self._failures[method] = [after, error]

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        pending = self._failures.get(method)
        if pending is None:
            return
        if pending[0] > 0:
            pending[0] -= 1
            return
        del self._failures[method]
        raise pending[1]

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    def slot_updates(self) -> list[tuple[str, SlotUpdate]]:
        return [(c[2], c[3]) for c in self.calls_to("update_interface_slot")]

    def add_existing_site(
        self,
        site_id: str,
        name: str,
        connection_type: str,
        subnet: str,
        site_type: str = "BRANCH",
    ) -> None:
        self.sites[site_id] = SiteSnapshot(
            site_id=site_id,
            name=name,
            connection_type=connection_type,
            site_type=site_type,
        )
        default = default_slot_for(connection_type)
        slots = {
            default: InterfaceSlot(
                interface_id=f"if-{site_id}-{default}",
                index=default,
                site_id=site_id,
                name=default,
                subnet=subnet,
                dest_type=DestType.LAN.value,
                is_default=True,
            )
        }
        for index in SPARE_SLOTS[default]:
            slots[index] = InterfaceSlot(
                interface_id=f"if-{site_id}-{index}",
                index=index,
                site_id=site_id,
                name=index,
                dest_type=DestType.INTERFACE_DISABLED.value,
                is_default=False,
            )
        self.slots[site_id] = slots
        self.ranges[f"range-{site_id}"] = NetworkRangeRecord(
            range_id=f"range-{site_id}",
            subnet=subnet,
            name=f"{name} \\ Native Range",
            site_id=site_id,
            range_type="Native",
            dhcp_type=DhcpType.DHCP_DISABLED.value,
        )

    def set_slot(self, site_id: str, index: str, **fields) -> None:
        slot = self.slots[site_id][index]
        for key, value in fields.items():
            setattr(slot, key, value)

    def default_index(self, site_id: str) -> Optional[str]:
        for slot in self.slots[site_id].values():
            if slot.is_default:
                return slot.index
        return None

    def native_range(self, site_id: str) -> NetworkRangeRecord:
        return self.ranges[f"range-{site_id}"]

    # --- ControlPlane ---

    async def list_interface_slots(self, site_id: str) -> list[InterfaceSlot]:
        self._record("list_interface_slots", site_id)
        result = []
        for slot in self.slots.get(site_id, {}).values():
            copy = replace(slot)
            if not self.flag_supported:
                copy.is_default = None
            result.append(copy)
        return result

    async def list_lag_members(self, site_id: str) -> list[InterfaceSlot]:
        self._record("list_lag_members", site_id)
        return [
            replace(s) for s in self.slots.get(site_id, {}).values()
            if s.dest_type == DestType.LAN_LAG_MEMBER.value
        ]

    async def update_interface_slot(self, site_id: str, slot_index: str, update: SlotUpdate) -> None:
        self._record("update_interface_slot", site_id, slot_index, update)
        slots = self.slots[site_id]
        slot = slots[slot_index]
        slot.dest_type = update.dest_type
        if update.name is not None:
            slot.name = update.name
        if update.subnet is not None:
            slot.subnet = update.subnet

        if update.dest_type == DestType.INTERFACE_DISABLED.value:
            slot.is_default = False
            slot.subnet = None
            return

        vacant = not any(s.is_default for s in slots.values())
        native = self.native_range(site_id)
        if vacant and self.moves_default and update.subnet == native.subnet:
            slot.is_default = True

    async def list_site_ranges(self, site_id: str) -> list[NetworkRangeRecord]:
        self._record("list_site_ranges", site_id)
        return [replace(r) for r in self.ranges.values() if r.site_id == site_id]

    async def update_native_range(self, range_id: str, update: RangeUpdate) -> None:
        self._record("update_native_range", range_id, update)
        record = self.ranges[range_id]
        if update.subnet is not None:
            for slot in self.slots[record.site_id].values():
                if slot.is_default:
                    slot.subnet = update.subnet
            record.subnet = update.subnet
        if update.local_ip is not None:
            record.gateway = update.local_ip
        if update.vlan is not None:
            record.vlan = update.vlan
        if update.mdns_reflector is not None:
            record.mdns_reflector = update.mdns_reflector
        record.translated_subnet = update.translated_subnet or record.subnet
        if update.dhcp is not None:
            record.dhcp_type = update.dhcp.dhcp_type
            if update.dhcp.ip_range is not None:
                record.ip_range = update.dhcp.ip_range
            if update.dhcp.microsegmentation is not None:
                record.microsegmentation = update.dhcp.microsegmentation
            if update.dhcp.relay_group_id is not None:
                record.relay_group_id = update.dhcp.relay_group_id
                record.relay_group_name = self.relay_groups.get(update.dhcp.relay_group_id)

    async def lookup_relay_group(self, name: Optional[str] = None, relay_id: Optional[str] = None) -> str:
        self._record("lookup_relay_group", name, relay_id)
        if bool(name) == bool(relay_id):
            raise ValueError("Specify exactly one of name or relay_id")
        for group_id, group_name in self.relay_groups.items():
            if group_id == relay_id or group_name == name:
                return group_id
        raise LookupError(f"DHCP relay group '{name or relay_id}' not found")

    async def site_exists(self, site_id: str) -> bool:
        self._record("site_exists", site_id)
        return site_id in self.sites

    async def read_site_snapshot(self, site_id: str) -> Optional[SiteSnapshot]:
        self._record("read_site_snapshot", site_id)
        snapshot = self.sites.get(site_id)
        return replace(snapshot) if snapshot else None

    async def list_locations(self, country_code: str, city: Optional[str] = None) -> list[LocationRecord]:
        self._record("list_locations", country_code, city)
        return [
            loc for loc in self.locations
            if loc.country_code == country_code and (city is None or loc.city == city)
        ]

    async def add_site(self, request: SiteCreate) -> str:
        self._record("add_site", request)
        self._counter += 1
        site_id = f"site-{self._counter}"
        self.add_existing_site(
            site_id,
            request.name,
            request.connection_type,
            request.native_network_range,
            site_type=request.site_type,
        )
        snapshot = self.sites[site_id]
        snapshot.description = request.description
        snapshot.country_code = request.location.country_code
        snapshot.city = request.location.city
        snapshot.address = request.location.address
        return site_id

    async def update_site_general(self, site_id: str, update: SiteGeneralUpdate) -> None:
        self._record("update_site_general", site_id, update)
        snapshot = self.sites[site_id]
        for key in ("name", "site_type", "description"):
            value = getattr(update, key)
            if value is not None:
                setattr(snapshot, key, value)
        if update.location is not None:
            location = update.location
            if location.country_code is not None:
                snapshot.country_code = location.country_code
            if location.city is not None:
                snapshot.city = location.city
            if location.address is not None:
                snapshot.address = location.address

    async def remove_site(self, site_id: str) -> None:
        self._record("remove_site", site_id)
        if site_id not in self.sites:
            raise ControlPlaneError(f"site {site_id} not found")
        del self.sites[site_id]
        del self.slots[site_id]
        self.ranges.pop(f"range-{site_id}", None)


def make_site(
    connection_type: str = "SOCKET_X1600",
    site_id: Optional[str] = None,
    **native,
) -> SiteConfig:
    """Declared X1600 branch on 10.20.0.0/24 unless overridden."""
    fields = {
        "native_network_range": "10.20.0.0/24",
        "local_ip": "10.20.0.1",
    }
    fields.update(native)
    return SiteConfig(
        name="Berlin",
        connection_type=connection_type,
        site_id=site_id,
        site_type="BRANCH",
        native_range=NativeRangeConfig(**fields),
    )


@pytest.fixture
def control_plane():
    return FakeControlPlane()


@pytest.fixture
def existing_site(control_plane):
    """An X1600 site whose native range sits on INT_5."""
    control_plane.add_existing_site("1001", "Berlin", "SOCKET_X1600", "10.20.0.0/24")
    return "1001"


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    monkeypatch.setenv("EDGELAN_LOG_FILE", str(tmp_path / "logs" / "edgelan.log"))
