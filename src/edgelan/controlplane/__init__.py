"""Control-plane access."""
from .base import (
    ControlPlane,
    ControlPlaneError,
    InterfaceSlot,
    LocationRecord,
    NetworkRangeRecord,
    SiteSnapshot,
    SlotUpdate,
    DhcpUpdate,
    RangeUpdate,
    LocationInput,
    SiteCreate,
    SiteGeneralUpdate,
)
from .graphql import GraphQLControlPlane

__all__ = [
    "ControlPlane",
    "ControlPlaneError",
    "InterfaceSlot",
    "LocationRecord",
    "NetworkRangeRecord",
    "SiteSnapshot",
    "SlotUpdate",
    "DhcpUpdate",
    "RangeUpdate",
    "LocationInput",
    "SiteCreate",
    "SiteGeneralUpdate",
    "GraphQLControlPlane",
]
