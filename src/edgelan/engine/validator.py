"""Pre-flight validation for declared site configurations.

Catches inconsistent input before any control-plane communication.
"""

from ..config.schema import (
    DECLARABLE_DEST_TYPES,
    DEFAULT_SLOT_BY_CONNECTION_TYPE,
    LAG_MASTER_DEST_TYPES,
    SELECTABLE_SLOT_CONNECTION_TYPES,
    SLOT_INDEXES,
    DhcpSettings,
    DhcpType,
    NativeRangeConfig,
    SiteConfig,
    default_slot_for,
)
from .addressing import check_local_ip, parse_network, subnets_equal
from .errors import AddressNotInSubnetError, InvalidAddressError, InvalidCIDRError
from .schema import ValidationIssue, ValidationResult


class ConfigValidator:
    """Validate a declared site configuration for logical errors."""

    def validate(self, desired: SiteConfig) -> ValidationResult:
        """
        Validate a declared configuration.

        Performs pre-flight checks:
        - Connection type and slot index permitted for it
        - Native subnet well formed, local IP inside it
        - LAG role and min-links consistency
        - DHCP sub-fields matching the DHCP type
        - VLAN tag range

        Args:
            desired: The declared configuration to validate

        Returns:
            ValidationResult with valid flag, coded issues, and warnings
        """
        issues: list[ValidationIssue] = []
        warnings: list[str] = []

        self._validate_connection_type(desired, issues)

        native = desired.native_range
        if self._validate_subnet(native, issues):
            self._validate_local_ip(native, issues)
        self._validate_dest_type(native, issues)
        self._validate_lag(native, issues)
        self._validate_slot(desired, issues)
        self._validate_vlan(native, issues)
        if native.dhcp_settings is not None:
            self._validate_dhcp(native.dhcp_settings, issues)

        if subnets_equal(native.translated_subnet, native.native_network_range):
            warnings.append(
                "translated_subnet equals native_network_range and will be "
                "reported as absent"
            )

        return ValidationResult(
            valid=len(issues) == 0,
            issues=issues,
            warnings=warnings,
        )

    def _validate_connection_type(
        self,
        desired: SiteConfig,
        issues: list[ValidationIssue]
    ) -> None:
        if desired.canonical_connection_type not in DEFAULT_SLOT_BY_CONNECTION_TYPE:
            issues.append(ValidationIssue(
                "connection_type_unknown",
                f"Unknown connection_type '{desired.connection_type}'",
            ))

    def _validate_subnet(
        self,
        native: NativeRangeConfig,
        issues: list[ValidationIssue]
    ) -> bool:
        """Return False when the native subnet is present but unparseable."""
        if not native.native_network_range:
            return True
        try:
            parse_network(native.native_network_range)
        except InvalidCIDRError as e:
            issues.append(ValidationIssue("subnet_invalid", f"native_network_range {e}"))
            return False
        return True

    def _validate_local_ip(
        self,
        native: NativeRangeConfig,
        issues: list[ValidationIssue]
    ) -> None:
        if not native.local_ip or not native.native_network_range:
            return
        try:
            check_local_ip(native.local_ip, native.native_network_range)
        except InvalidAddressError as e:
            issues.append(ValidationIssue("local_ip_invalid", f"local_ip {e}"))
        except AddressNotInSubnetError:
            issues.append(ValidationIssue(
                "local_ip_not_in_subnet",
                f"Local IP must be within the native range: local_ip "
                f"'{native.local_ip}' is not within native_network_range "
                f"'{native.native_network_range}'",
            ))

    def _validate_dest_type(
        self,
        native: NativeRangeConfig,
        issues: list[ValidationIssue]
    ) -> None:
        valid = {d.value for d in DECLARABLE_DEST_TYPES}
        if (native.interface_dest_type or "LAN") not in valid:
            issues.append(ValidationIssue(
                "dest_type_invalid",
                f"Invalid interface_dest_type '{native.interface_dest_type}'. "
                f"Valid: {', '.join(sorted(valid))}",
            ))

    def _validate_lag(
        self,
        native: NativeRangeConfig,
        issues: list[ValidationIssue]
    ) -> None:
        dest_type = native.interface_dest_type or "LAN"
        is_master = dest_type in {d.value for d in LAG_MASTER_DEST_TYPES}
        has_min_links = native.lag_min_links is not None

        if is_master and not has_min_links:
            issues.append(ValidationIssue(
                "lag_without_min_links",
                f"When interface_dest_type is {dest_type}, lag_min_links must be specified",
            ))
        elif has_min_links and not is_master:
            issues.append(ValidationIssue(
                "min_links_without_lag",
                f"lag_min_links can only be configured when interface_dest_type "
                f"is LAN_LAG_MASTER or LAN_LAG_MASTER_AND_VRRP, but "
                f"interface_dest_type is {dest_type}",
            ))

    def _validate_slot(
        self,
        desired: SiteConfig,
        issues: list[ValidationIssue]
    ) -> None:
        index = desired.native_range.interface_index
        if not index:
            return

        if index not in SLOT_INDEXES:
            issues.append(ValidationIssue(
                "slot_unknown",
                f"Unknown interface_index '{index}'",
            ))
            return

        conn_type = desired.canonical_connection_type
        if conn_type in SELECTABLE_SLOT_CONNECTION_TYPES:
            return

        default_index = default_slot_for(conn_type)
        if default_index is None or index != default_index:
            issues.append(ValidationIssue(
                "slot_not_permitted",
                f"interface_index can only be explicitly configured for "
                f"{', '.join(sorted(SELECTABLE_SLOT_CONNECTION_TYPES))}; "
                f"connection_type {desired.connection_type} only supports "
                f"{default_index}",
            ))

    def _validate_vlan(
        self,
        native: NativeRangeConfig,
        issues: list[ValidationIssue]
    ) -> None:
        if native.vlan is not None and not 1 <= native.vlan <= 4094:
            issues.append(ValidationIssue(
                "vlan_out_of_range",
                f"Invalid VLAN tag {native.vlan}: must be between 1 and 4094",
            ))

    def _validate_dhcp(
        self,
        dhcp: DhcpSettings,
        issues: list[ValidationIssue]
    ) -> None:
        dhcp_type = dhcp.dhcp_type
        has_relay = bool(dhcp.relay_group_id) or bool(dhcp.relay_group_name)

        if dhcp_type != DhcpType.DHCP_RELAY.value and has_relay:
            issues.append(ValidationIssue(
                "relay_fields_without_relay",
                "relay_group_id and relay_group_name can only be configured "
                "when dhcp_type is DHCP_RELAY",
            ))
        if dhcp_type != DhcpType.DHCP_RANGE.value and dhcp.ip_range:
            issues.append(ValidationIssue(
                "range_field_without_range",
                "ip_range can only be configured when dhcp_type is DHCP_RANGE",
            ))
        if dhcp_type != DhcpType.DHCP_RANGE.value and dhcp.dhcp_microsegmentation:
            issues.append(ValidationIssue(
                "microsegmentation_without_range",
                "dhcp_microsegmentation can only be configured when dhcp_type "
                "is DHCP_RANGE",
            ))

        if dhcp_type == DhcpType.DHCP_RELAY.value:
            if dhcp.relay_group_id and dhcp.relay_group_name:
                issues.append(ValidationIssue(
                    "relay_group_ambiguous",
                    "When dhcp_type is DHCP_RELAY, specify either relay_group_id "
                    "or relay_group_name, but not both",
                ))
            elif not has_relay:
                issues.append(ValidationIssue(
                    "relay_group_missing",
                    "When dhcp_type is DHCP_RELAY, either relay_group_id or "
                    "relay_group_name must be specified",
                ))


def validate_site(desired: SiteConfig) -> ValidationResult:
    """Convenience wrapper around ConfigValidator."""
    return ConfigValidator().validate(desired)
