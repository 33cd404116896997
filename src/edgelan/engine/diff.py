"""Drift between a declared site and its observed state.

Only fields the declared configuration sets are compared; everything else
is owned by the control-plane.
"""
from typing import Optional

from ..config.schema import (
    DestType,
    DhcpType,
    SiteConfig,
    SiteLocation,
)
from .addressing import subnets_equal
from .reassign import needs_reassignment
from .schema import ChangeType, DiffResult, FieldChange

NATIVE_RANGE_FIELDS = (
    "native_network_range",
    "local_ip",
    "interface_name",
    "vlan",
    "lag_min_links",
)

SITE_FIELDS = ("name", "site_type", "description")

LOCATION_FIELDS = ("country_code", "state_code", "timezone", "address", "city")

DHCP_FIELDS = (
    "dhcp_type",
    "ip_range",
    "relay_group_id",
    "relay_group_name",
    "dhcp_microsegmentation",
)


class DiffEngine:
    """Calculate differences between declared and observed state."""

    def calculate(
        self,
        declared: SiteConfig,
        observed: Optional[SiteConfig],
    ) -> DiffResult:
        """
        Calculate the drift of a site.

        Args:
            declared: Declared configuration
            observed: Hydrated observed configuration, None if the site
                does not exist yet

        Returns:
            DiffResult with field changes and any pending slot move
        """
        if observed is None:
            return DiffResult(
                change_type=ChangeType.CREATE,
                reassignment=(
                    (None, declared.native_range.interface_index)
                    if needs_reassignment(declared, None, establishing=True) else None
                ),
            )

        result = DiffResult()
        self._diff_site(declared, observed, result)
        self._diff_location(declared.site_location, observed.site_location, result)
        self._diff_native_range(declared, observed, result)

        current_index = observed.native_range.interface_index
        if needs_reassignment(declared, current_index):
            result.reassignment = (current_index, declared.native_range.interface_index)

        if result.reassignment:
            result.change_type = ChangeType.REASSIGN
        elif result.changes:
            result.change_type = ChangeType.MODIFY
        return result

    def _compare(self, result: DiffResult, path: str, current, desired) -> None:
        if desired is None or current == desired:
            return
        result.changes.append(FieldChange(path=path, current=current, desired=desired))

    def _diff_site(self, declared: SiteConfig, observed: SiteConfig, result: DiffResult) -> None:
        for name in SITE_FIELDS:
            desired = getattr(declared, name)
            if name == "description" and desired is not None and not desired.strip():
                desired = None
            self._compare(result, name, getattr(observed, name), desired)
        if declared.canonical_connection_type != observed.canonical_connection_type:
            result.changes.append(FieldChange(
                path="connection_type",
                current=observed.connection_type,
                desired=declared.connection_type,
            ))

    def _diff_location(
        self,
        declared: Optional[SiteLocation],
        observed: Optional[SiteLocation],
        result: DiffResult,
    ) -> None:
        if declared is None:
            return
        observed = observed or SiteLocation()
        for name in LOCATION_FIELDS:
            desired = getattr(declared, name)
            current = getattr(observed, name)
            if name in ("address", "city"):
                # Blank declared means "cleared"; reads back as absent
                if desired is not None and not desired.strip():
                    if current is not None:
                        result.changes.append(FieldChange(f"site_location.{name}", current, None))
                    continue
            self._compare(result, f"site_location.{name}", current, desired)

    def _diff_native_range(
        self,
        declared: SiteConfig,
        observed: SiteConfig,
        result: DiffResult,
    ) -> None:
        want = declared.native_range
        have = observed.native_range

        for name in NATIVE_RANGE_FIELDS:
            self._compare(result, f"native_range.{name}", getattr(have, name), getattr(want, name))

        self._compare(
            result,
            "native_range.interface_dest_type",
            have.interface_dest_type,
            want.interface_dest_type or DestType.LAN.value,
        )
        self._compare(result, "native_range.mdns_reflector", have.mdns_reflector, want.mdns_reflector)

        translated = want.translated_subnet
        if translated and subnets_equal(translated, want.native_network_range):
            translated = None
        if translated != have.translated_subnet and (translated or have.translated_subnet):
            result.changes.append(FieldChange(
                "native_range.translated_subnet", have.translated_subnet, translated
            ))

        want_dhcp = want.dhcp_settings
        have_dhcp = have.dhcp_settings
        if want_dhcp is None:
            if have_dhcp is not None and have_dhcp.dhcp_type != DhcpType.DHCP_DISABLED.value:
                result.changes.append(FieldChange(
                    "native_range.dhcp_settings.dhcp_type",
                    have_dhcp.dhcp_type,
                    DhcpType.DHCP_DISABLED.value,
                ))
            return

        for name in DHCP_FIELDS:
            self._compare(
                result,
                f"native_range.dhcp_settings.{name}",
                getattr(have_dhcp, name) if have_dhcp else None,
                getattr(want_dhcp, name),
            )


def summarize_diff(diff: DiffResult, site: str = "") -> str:
    """
    Create a human-readable summary of a diff.

    Useful for plan output and logging.
    """
    label = f"{site}: " if site else ""
    if diff.change_type == ChangeType.CREATE:
        lines = [f"{label}site will be created"]
        if diff.reassignment:
            lines.append(f"  [>] Native range moves to {diff.reassignment[1]}")
        return "\n".join(lines)

    if diff.no_change:
        return f"{label}No changes needed - observed state matches declared state"

    lines = [f"{label}Changes to apply ({diff.total_changes} total):"]
    if diff.reassignment:
        frm, to = diff.reassignment
        lines.append(f"  [>] Move native range {frm} -> {to}")
    for change in diff.changes:
        lines.append(f"  [~] {change.path}: {change.current!r} -> {change.desired!r}")
    return "\n".join(lines)
