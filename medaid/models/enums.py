"""Enumerations for medical aid claim lifecycle states."""
from enum import Enum
from typing import Dict, FrozenSet, Optional


class ClaimStatus(str, Enum):
    """Persisted claim lifecycle states."""

    PROCESSING = "PROCESSING"
    PENDING_PATIENT_AUTH = "PENDING_PATIENT_AUTH"
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"


class IntegrationStatus(str, Enum):
    """State of the provider integration for a claim."""

    SUBMITTING = "SUBMITTING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    MANUAL = "MANUAL"


class SubmissionOutcome(str, Enum):
    """Statuses that only appear in submission responses, never on a claim."""

    MANUAL_PROCESSING = "MANUAL_PROCESSING"
    ERROR = "ERROR"


# allowed moves between persisted states
CLAIM_TRANSITIONS: Dict[ClaimStatus, FrozenSet[ClaimStatus]] = {
    ClaimStatus.PROCESSING: frozenset({
        ClaimStatus.APPROVED,
        ClaimStatus.PENDING_REVIEW,
        ClaimStatus.PENDING_PATIENT_AUTH,
    }),
    ClaimStatus.PENDING_REVIEW: frozenset({ClaimStatus.APPROVED, ClaimStatus.REJECTED}),
    ClaimStatus.PENDING_PATIENT_AUTH: frozenset({ClaimStatus.CLAIM_SUBMITTED}),
    ClaimStatus.CLAIM_SUBMITTED: frozenset({
        ClaimStatus.APPROVED,
        ClaimStatus.REJECTED,
        ClaimStatus.PAID,
    }),
    ClaimStatus.APPROVED: frozenset({ClaimStatus.PAID}),
    ClaimStatus.REJECTED: frozenset(),
    ClaimStatus.PAID: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[ClaimStatus] = frozenset(
    status for status, targets in CLAIM_TRANSITIONS.items() if not targets
)


def can_transition(current: ClaimStatus, target: ClaimStatus) -> bool:
    """Return True if a claim in ``current`` may move to ``target``."""
    return ClaimStatus(target) in CLAIM_TRANSITIONS[ClaimStatus(current)]


def is_terminal(status: ClaimStatus) -> bool:
    return ClaimStatus(status) in TERMINAL_STATUSES


def parse_status(value: Optional[str]) -> Optional[ClaimStatus]:
    """Map a raw status string onto ClaimStatus, or None if it is unknown."""
    if value is None:
        return None
    try:
        return ClaimStatus(value.strip().upper())
    except ValueError:
        return None
