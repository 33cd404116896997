"""Declared configuration, settings and stored state."""
from .schema import (
    ConnectionType,
    DestType,
    DhcpType,
    DhcpSettings,
    SiteLocation,
    NativeRangeConfig,
    SiteConfig,
)
from .inventory import ControlPlaneSettings, SiteInventory
from .state_store import StateStore, StoredState

__all__ = [
    "ConnectionType",
    "DestType",
    "DhcpType",
    "DhcpSettings",
    "SiteLocation",
    "NativeRangeConfig",
    "SiteConfig",
    "ControlPlaneSettings",
    "SiteInventory",
    "StateStore",
    "StoredState",
]
