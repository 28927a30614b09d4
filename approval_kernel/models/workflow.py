"""
Module: approval_kernel.models.workflow
Responsibility: ORM persistence for approval workflow steps.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - At most one pending step per registration request: partial unique
      index on request_id WHERE status = 'pending' (PostgreSQL and
      SQLite), backed by UNIQUE(request_id, step_number).
    - Decided steps are immutable: ORM before_update / before_delete
      listeners refuse any change to a row whose stored status is not
      pending, and refuse deletes outright.
    - DB check constraints limit status and request_type values.

Failure modes:
    - IntegrityError on a second pending step or a repeated step number;
      the workflow service translates these to DuplicatePendingWorkflowError
      and DuplicateWorkflowStepError.
    - ImmutabilityViolationError on UPDATE of a decided step or any DELETE.

Audit relevance:
    Rows are never deleted.  The ordered rows for one request_id are the
    complete approval trail of that request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm.attributes import get_history

from approval_kernel.db.base import TimestampedBase, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.workflow import ApprovalWorkflow


STEP_UNIQUE_CONSTRAINT = "uq_approval_workflows_request_step"


def as_utc(value: datetime | None) -> datetime | None:
    """Re-attach UTC to timestamps from backends that store them naive."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class ApprovalWorkflowModel(TimestampedBase):
    """Persistent approval step.

    Contract:
        Created pending.  Moves once to approved or rejected and is then
        frozen; the next chain step is always a new row.
    """

    __tablename__ = "approval_workflows"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'escalated')",
            name="ck_approval_workflows_valid_status",
        ),
        CheckConstraint(
            "request_type IN ('student_registration', 'staff_registration', "
            "'hod_registration', 'principal_registration')",
            name="ck_approval_workflows_valid_request_type",
        ),
        CheckConstraint(
            "step_number >= 1",
            name="ck_approval_workflows_step_positive",
        ),
        # One pending step per request
        Index(
            "ix_approval_workflows_pending_unique",
            "request_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        UniqueConstraint(
            "request_id", "step_number",
            name=STEP_UNIQUE_CONSTRAINT,
        ),
        # Inbox: pending steps by role, oldest first
        Index(
            "ix_approval_workflows_inbox",
            "status", "current_approver_role", "created_at",
        ),
        Index("ix_approval_workflows_approver", "current_approver_id"),
        Index("ix_approval_workflows_request_id", "request_id"),
    )

    request_type: Mapped[str] = mapped_column(String(50), nullable=False)
    request_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    current_approver_role: Mapped[str] = mapped_column(String(50), nullable=False)
    current_approver_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalWorkflow {self.id} "
            f"{self.request_type}#{self.step_number}/{self.current_approver_role} "
            f"status={self.status}>"
        )

    def to_dto(self) -> ApprovalWorkflow:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.workflow import (
            ApprovalWorkflow as ApprovalWorkflowDTO,
            RequestType,
            WorkflowStatus,
        )

        return ApprovalWorkflowDTO(
            workflow_id=self.id,
            request_type=RequestType(self.request_type),
            request_id=self.request_id,
            step_number=self.step_number,
            current_approver_role=self.current_approver_role,
            current_approver_id=self.current_approver_id,
            status=WorkflowStatus(self.status),
            approved_by=self.approved_by,
            approved_at=as_utc(self.approved_at),
            rejection_reason=self.rejection_reason,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


# =============================================================================
# ORM-Level Immutability for Decided Steps
# =============================================================================


@event.listens_for(ApprovalWorkflowModel, "before_update")
def prevent_decided_workflow_update(mapper, connection, target):
    """Refuse updates to steps whose stored status is no longer pending."""
    history = get_history(target, "status")
    stored_status = history.deleted[0] if history.deleted else target.status
    if stored_status != "pending":
        raise ImmutabilityViolationError(
            entity_type="ApprovalWorkflow",
            entity_id=str(target.id),
            reason=f"Step is {stored_status} -- decided steps cannot be modified",
        )


@event.listens_for(ApprovalWorkflowModel, "before_delete")
def prevent_workflow_delete(mapper, connection, target):
    """Approval steps are permanent history."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalWorkflow",
        entity_id=str(target.id),
        reason="Approval steps are permanent history -- cannot delete",
    )
