"""
Approval workflow domain types (``approval_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the registration approval state machine: step
statuses and their legal transitions, request types, well-known approver
roles, the immutable snapshot of one approval step, and the outcome of an
approval.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Lifecycle -- ``WORKFLOW_TRANSITIONS`` defines the only valid status
  transitions.  ``approved`` and ``rejected`` have no outgoing edges, so a
  decided step is never reused; a new step is a new row.
* ``escalated`` is declared so stored data can carry it, but it has no
  incoming or outgoing edges: nothing in the kernel produces or consumes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class WorkflowStatus(str, Enum):
    """Approval step lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


WORKFLOW_TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    WorkflowStatus.PENDING: frozenset({
        WorkflowStatus.APPROVED,
        WorkflowStatus.REJECTED,
    }),
    WorkflowStatus.APPROVED: frozenset(),
    WorkflowStatus.REJECTED: frozenset(),
    # Reserved for manual reassignment; no transition rules defined yet.
    WorkflowStatus.ESCALATED: frozenset(),
}

TERMINAL_WORKFLOW_STATUSES: frozenset[WorkflowStatus] = frozenset({
    WorkflowStatus.APPROVED,
    WorkflowStatus.REJECTED,
})


class RequestType(str, Enum):
    """Closed set of request categories that carry an approval chain."""

    STUDENT_REGISTRATION = "student_registration"
    STAFF_REGISTRATION = "staff_registration"
    HOD_REGISTRATION = "hod_registration"
    PRINCIPAL_REGISTRATION = "principal_registration"


class ApproverRole(str, Enum):
    """Organizational roles that can act on an approval step."""

    STAFF = "staff"
    HOD = "hod"
    PRINCIPAL = "principal"
    ADMIN = "admin"


class RegistrationStatus(str, Enum):
    """Status of the external registration request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ActingApprover:
    """The authenticated identity attempting to decide a step."""

    actor_id: UUID
    role: str


@dataclass(frozen=True)
class RequestContext:
    """Organizational context of a registration request.

    Read from the registration store; drives approver resolution.
    ``class_name`` is only meaningful for student registrations.
    """

    request_id: UUID
    requested_role: str
    department_id: UUID | None = None
    college_id: UUID | None = None
    class_name: str | None = None


@dataclass(frozen=True)
class ApprovalWorkflow:
    """Immutable snapshot of one approval step.

    ``current_approver_id`` is None when no concrete holder could be
    resolved: any identity holding ``current_approver_role`` may act.
    ``approved_by`` records the deciding identity for both approvals and
    rejections; ``approved_at`` is only set on approval.
    """

    workflow_id: UUID
    request_type: RequestType
    request_id: UUID
    step_number: int
    current_approver_role: str
    status: WorkflowStatus
    created_at: datetime
    updated_at: datetime
    current_approver_id: UUID | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == WorkflowStatus.PENDING

    @property
    def is_open_claim(self) -> bool:
        """True when any holder of the role may act on this step."""
        return self.current_approver_id is None


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of approving a step.

    ``finalized`` is True when the approved step was the last in its chain;
    the caller must then finalize the registration exactly once.  Otherwise
    ``next_step`` is the newly created pending step.
    """

    approved: ApprovalWorkflow
    finalized: bool
    next_step: ApprovalWorkflow | None = None
