"""Exceptions raised by the convergence engine."""
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .schema import ConvergeRun, ValidationResult


class EngineError(Exception):
    """Base class for all engine failures.

    ``run`` is attached by the orchestrator so callers can see which state
    the invocation reached before it failed.
    """
    run: Optional["ConvergeRun"] = None


class ConfigValidationError(EngineError):
    """Declared configuration is internally inconsistent. No I/O was done."""

    def __init__(self, result: "ValidationResult"):
        self.result = result
        super().__init__(f"Validation failed: {'; '.join(result.errors)}")


class AddressError(EngineError, ValueError):
    """Invalid address or CIDR input."""


class InvalidAddressError(AddressError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"'{address}' is not a valid IP address")


class InvalidCIDRError(AddressError):
    def __init__(self, cidr: str):
        self.cidr = cidr
        super().__init__(f"'{cidr}' is not a valid CIDR notation")


class AddressNotInSubnetError(AddressError):
    def __init__(self, address: str, cidr: str):
        self.address = address
        self.cidr = cidr
        super().__init__(f"local IP '{address}' is not within subnet '{cidr}'")


class SlotResolutionError(EngineError):
    """No slot is flagged default and none matches the expected default index.

    The remote site needs manual intervention: mark the correct interface
    as default once in the management application or via the API.
    """

    def __init__(self, site_id: str, connection_type: Optional[str], expected_index: Optional[str]):
        self.site_id = site_id
        self.connection_type = connection_type
        self.expected_index = expected_index
        super().__init__(
            f"Site {site_id} has no interface flagged as default and no slot "
            f"matches default index {expected_index} for connection type "
            f"{connection_type}"
        )


class RemoteCallError(EngineError):
    """A control-plane call failed."""

    def __init__(
        self,
        operation: str,
        message: str,
        site_id: Optional[str] = None,
        slot: Optional[str] = None,
    ):
        self.operation = operation
        self.site_id = site_id
        self.slot = slot
        context = [f"site={site_id}"] if site_id else []
        if slot:
            context.append(f"slot={slot}")
        suffix = f" ({', '.join(context)})" if context else ""
        super().__init__(f"{operation} failed{suffix}: {message}")


class ReassignmentStepError(RemoteCallError):
    """A step of the reassignment protocol failed; the site may be mid-move."""

    def __init__(self, step: str, message: str, site_id: str, slot: Optional[str] = None):
        self.step = step
        super().__init__(f"reassignment step '{step}'", message, site_id=site_id, slot=slot)


class FeatureUnavailableError(EngineError):
    """Slot reassignment is not available for this deployment.

    Distinct from transient failures: retrying will not help until the
    control-plane exposes the is-default flag for the account.
    """


class RelayGroupError(EngineError):
    """DHCP relay group reference could not be resolved."""
