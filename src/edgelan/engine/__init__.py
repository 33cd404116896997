"""Convergence Engine - declarative management of a site's native range.

The engine reconciles a declared site configuration with the remote
control-plane:
- Validate the declaration before any remote call
- Find the interface slot currently backing the native range
- Move the native range to the declared slot when it differs
- Update the range and interface, then read the site back

Usage:
    from edgelan.engine import ConvergenceEngine

    engine = ConvergenceEngine(control_plane)
    observed = await engine.establish(declared)
    observed = await engine.converge(declared, prior=observed)
"""

from .engine import ConvergenceEngine
from .schema import (
    ConvergeState,
    ConvergeRun,
    ChangeType,
    ValidationIssue,
    ValidationResult,
    ResolvedSlot,
    ReassignmentReport,
    FieldChange,
    DiffResult,
    PlanResult,
)
from .errors import (
    EngineError,
    ConfigValidationError,
    AddressError,
    InvalidAddressError,
    InvalidCIDRError,
    AddressNotInSubnetError,
    SlotResolutionError,
    RemoteCallError,
    ReassignmentStepError,
    FeatureUnavailableError,
    RelayGroupError,
)
from .validator import ConfigValidator, validate_site
from .resolver import SlotResolver
from .reassign import ReassignmentProtocol, needs_reassignment
from .updater import RangeInterfaceUpdater
from .hydrator import StateHydrator, NORMALIZATION_POLICY, location_hint, location_update_fields
from .diff import DiffEngine, summarize_diff

__all__ = [
    # Main engine
    "ConvergenceEngine",
    # Schema classes
    "ConvergeState",
    "ConvergeRun",
    "ChangeType",
    "ValidationIssue",
    "ValidationResult",
    "ResolvedSlot",
    "ReassignmentReport",
    "FieldChange",
    "DiffResult",
    "PlanResult",
    # Errors
    "EngineError",
    "ConfigValidationError",
    "AddressError",
    "InvalidAddressError",
    "InvalidCIDRError",
    "AddressNotInSubnetError",
    "SlotResolutionError",
    "RemoteCallError",
    "ReassignmentStepError",
    "FeatureUnavailableError",
    "RelayGroupError",
    # Components (for advanced use)
    "ConfigValidator",
    "validate_site",
    "SlotResolver",
    "ReassignmentProtocol",
    "needs_reassignment",
    "RangeInterfaceUpdater",
    "StateHydrator",
    "NORMALIZATION_POLICY",
    "location_hint",
    "location_update_fields",
    "DiffEngine",
    "summarize_diff",
]
