"""Result and bookkeeping records for the convergence engine."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ConvergeState(str, Enum):
    """States a single reconciliation invocation moves through."""
    ESTABLISHING = "establishing"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    REASSIGNING = "reassigning"
    UPDATING = "updating"
    HYDRATING = "hydrating"
    CONVERGED = "converged"
    FAILED = "failed"


class ChangeType(str, Enum):
    """Type of change in a diff."""
    CREATE = "create"
    MODIFY = "modify"
    REASSIGN = "reassign"
    NO_CHANGE = "no_change"


# --- Validation Results ---

@dataclass
class ValidationIssue:
    """A single rejection, tagged with a stable code."""
    code: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationResult:
    """Result of config validation."""
    valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in self.issues]


# --- Slot resolution ---

@dataclass
class ResolvedSlot:
    """The slot currently backing the native range."""
    index: str
    interface_id: str
    name: Optional[str] = None
    subnet: Optional[str] = None
    dest_type: Optional[str] = None
    # False when found through the default-slot table instead of the flag
    flagged: bool = True


# --- Reassignment ---

@dataclass
class ReassignmentReport:
    """Steps completed while moving the default slot."""
    site_id: str
    from_index: str
    to_index: str
    steps_completed: list[str] = field(default_factory=list)
    drained_members: list[str] = field(default_factory=list)


# --- Diff / plan ---

@dataclass
class FieldChange:
    """One drifted field."""
    path: str
    current: object = None
    desired: object = None


@dataclass
class DiffResult:
    """Drift between declared and observed configuration."""
    change_type: ChangeType = ChangeType.NO_CHANGE
    changes: list[FieldChange] = field(default_factory=list)
    reassignment: Optional[tuple[Optional[str], str]] = None

    @property
    def no_change(self) -> bool:
        return self.change_type == ChangeType.NO_CHANGE

    @property
    def total_changes(self) -> int:
        return len(self.changes) + (1 if self.reassignment else 0)


@dataclass
class PlanResult:
    """Read-only preview of a convergence pass."""
    validation: ValidationResult
    diff: Optional[DiffResult] = None
    summary: str = ""


# --- Run bookkeeping ---

@dataclass
class ConvergeRun:
    """Trace of one establish/converge invocation."""
    operation: str
    site_id: Optional[str] = None
    states: list[ConvergeState] = field(default_factory=list)
    reassignment: Optional[ReassignmentReport] = None
    error: Optional[str] = None

    @property
    def state(self) -> Optional[ConvergeState]:
        return self.states[-1] if self.states else None

    def enter(self, state: ConvergeState) -> None:
        self.states.append(state)

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "site_id": self.site_id,
            "states": [s.value for s in self.states],
            "reassigned": (
                f"{self.reassignment.from_index}->{self.reassignment.to_index}"
                if self.reassignment else None
            ),
            "error": self.error,
        }
