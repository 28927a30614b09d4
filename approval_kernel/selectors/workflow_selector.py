"""
Module: approval_kernel.selectors.workflow_selector
Responsibility: Read projections over approval steps -- the approvals inbox
    of a role holder, the ordered trail of one registration request, and
    aggregate counts and approval latency.
Architecture position: Kernel > Selectors.  May import from models/,
    selectors/base.py and domain value objects.

Invariants enforced:
    - Inbox shows only pending steps.  Open-claim steps (no bound approver)
      appear in the inbox of every holder of the role.
    - History is ordered oldest first, so the roles read in order form the
      chain walked so far.
    - Approval latency averages only steps that were approved; rejected and
      pending steps carry no approved_at and are excluded.

Failure modes:
    - Returns empty lists / empty statistics when nothing matches.  Never
      raises for unknown roles, requests or colleges.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import desc, func, or_, select

from approval_kernel.domain.clock import elapsed_hours
from approval_kernel.domain.workflow import (
    ApprovalWorkflow,
    RequestType,
    WorkflowStatus,
)
from approval_kernel.models.directory import RegistrationRequestModel, UserModel
from approval_kernel.models.workflow import ApprovalWorkflowModel, as_utc
from approval_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PendingApproval:
    """A pending step with a summary of the applicant."""

    workflow: ApprovalWorkflow
    applicant_name: str | None
    applicant_email: str | None
    applicant_phone: str | None
    requested_role: str | None
    college_id: UUID | None
    department_id: UUID | None
    class_name: str | None


@dataclass(frozen=True)
class WorkflowHistoryEntry:
    """One step of a request's trail and who decided it."""

    workflow: ApprovalWorkflow
    approver_name: str | None = None
    approver_email: str | None = None


@dataclass(frozen=True)
class StatisticsRow:
    """Step count and mean approval latency for one (type, status) pair."""

    request_type: RequestType
    status: WorkflowStatus
    count: int
    avg_approval_hours: float | None


@dataclass(frozen=True)
class ApprovalStatistics:
    """Aggregate approval figures, rows ordered by count descending."""

    rows: tuple[StatisticsRow, ...]
    college_id: UUID | None = None

    @property
    def total(self) -> int:
        return sum(r.count for r in self.rows)

    def count_for(
        self,
        status: WorkflowStatus,
        request_type: RequestType | None = None,
    ) -> int:
        return sum(
            r.count
            for r in self.rows
            if r.status == status
            and (request_type is None or r.request_type == request_type)
        )

    def avg_approval_hours(self, request_type: RequestType) -> float | None:
        for row in self.rows:
            if row.request_type == request_type and row.status == WorkflowStatus.APPROVED:
                return row.avg_approval_hours
        return None


class WorkflowSelector(BaseSelector):
    """Read-only queries for approval steps."""

    def pending_for(
        self,
        role: str,
        approver_id: UUID | None = None,
    ) -> list[PendingApproval]:
        """Pending steps waiting on ``role``, oldest first.

        With ``approver_id`` the inbox is narrowed to steps bound to that
        identity plus open-claim steps.
        """
        stmt = (
            select(ApprovalWorkflowModel, RegistrationRequestModel)
            .outerjoin(
                RegistrationRequestModel,
                RegistrationRequestModel.id == ApprovalWorkflowModel.request_id,
            )
            .where(
                ApprovalWorkflowModel.status == WorkflowStatus.PENDING.value,
                ApprovalWorkflowModel.current_approver_role == role,
            )
        )
        if approver_id is not None:
            stmt = stmt.where(
                or_(
                    ApprovalWorkflowModel.current_approver_id.is_(None),
                    ApprovalWorkflowModel.current_approver_id == approver_id,
                )
            )
        stmt = stmt.order_by(
            ApprovalWorkflowModel.created_at, ApprovalWorkflowModel.request_id,
        )

        result = []
        for workflow, registration in self.session.execute(stmt).all():
            result.append(
                PendingApproval(
                    workflow=workflow.to_dto(),
                    applicant_name=registration.name if registration else None,
                    applicant_email=registration.email if registration else None,
                    applicant_phone=registration.phone if registration else None,
                    requested_role=registration.role if registration else None,
                    college_id=registration.college_id if registration else None,
                    department_id=registration.department_id if registration else None,
                    class_name=registration.class_name if registration else None,
                )
            )
        return result

    def history_for(self, request_id: UUID) -> list[WorkflowHistoryEntry]:
        """Every step recorded for ``request_id``, oldest first."""
        stmt = (
            select(ApprovalWorkflowModel, UserModel.name, UserModel.email)
            .outerjoin(UserModel, UserModel.id == ApprovalWorkflowModel.approved_by)
            .where(ApprovalWorkflowModel.request_id == request_id)
            .order_by(ApprovalWorkflowModel.created_at, ApprovalWorkflowModel.step_number)
        )
        return [
            WorkflowHistoryEntry(
                workflow=workflow.to_dto(),
                approver_name=name,
                approver_email=email,
            )
            for workflow, name, email in self.session.execute(stmt).all()
        ]

    def statistics(self, college_id: UUID | None = None) -> ApprovalStatistics:
        """Step counts by request type and status, with approval latency.

        ``college_id`` restricts the figures to registrations of one college.
        """
        count_col = func.count(ApprovalWorkflowModel.id).label("step_count")
        counts_stmt = select(
            ApprovalWorkflowModel.request_type,
            ApprovalWorkflowModel.status,
            count_col,
        )
        timings_stmt = select(
            ApprovalWorkflowModel.request_type,
            ApprovalWorkflowModel.status,
            ApprovalWorkflowModel.created_at,
            ApprovalWorkflowModel.approved_at,
        ).where(ApprovalWorkflowModel.approved_at.is_not(None))

        if college_id is not None:
            counts_stmt = counts_stmt.join(
                RegistrationRequestModel,
                RegistrationRequestModel.id == ApprovalWorkflowModel.request_id,
            ).where(RegistrationRequestModel.college_id == college_id)
            timings_stmt = timings_stmt.join(
                RegistrationRequestModel,
                RegistrationRequestModel.id == ApprovalWorkflowModel.request_id,
            ).where(RegistrationRequestModel.college_id == college_id)

        counts_stmt = counts_stmt.group_by(
            ApprovalWorkflowModel.request_type, ApprovalWorkflowModel.status,
        ).order_by(
            desc(count_col),
            ApprovalWorkflowModel.request_type,
            ApprovalWorkflowModel.status,
        )

        # Latency is averaged in Python: interval arithmetic is not portable.
        durations: dict[tuple[str, str], list[float]] = defaultdict(list)
        for request_type, status, created_at, approved_at in self.session.execute(timings_stmt):
            durations[(request_type, status)].append(
                elapsed_hours(as_utc(created_at), as_utc(approved_at))
            )

        rows = []
        for request_type, status, count in self.session.execute(counts_stmt):
            samples = durations.get((request_type, status))
            rows.append(
                StatisticsRow(
                    request_type=RequestType(request_type),
                    status=WorkflowStatus(status),
                    count=count,
                    avg_approval_hours=sum(samples) / len(samples) if samples else None,
                )
            )
        return ApprovalStatistics(rows=tuple(rows), college_id=college_id)
