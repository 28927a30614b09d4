"""
approval_kernel.services.workflow_service -- Approval step state machine.

Responsibility:
    Creates the first approval step of a registration request and moves
    steps from pending to approved or rejected.  Approving a step that is
    not the last in its chain opens the next step in the same transaction.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.  Reads the
    request context through the ``RegistrationRequestStore`` protocol and
    resolves approvers through ``ApproverResolver``.

Invariants enforced:
    - One pending step per request: checked before insert and backed by the
      partial unique index; a violation raises DuplicatePendingWorkflowError.
    - Decided steps are frozen: every status write is a conditional UPDATE
      matching ``status = 'pending'``.  A writer that matches no row lost a
      race and raises StaleWorkflowError.
    - Chain order: the first step is always the chain head, and each later
      step is produced only by ``ChainDefinition.next_role``, so the roles
      of a request's steps are always a prefix of its chain.
    - Transaction boundaries: flush only.  Approving a step and opening the
      next one commit or roll back together in the caller's transaction.

Failure modes:
    - WorkflowNotFoundError if the step does not exist.
    - WorkflowAlreadyResolvedError if the step is not pending.
    - StaleWorkflowError if a concurrent decision won.
    - ApproverRoleMismatchError / ApproverIdentityMismatchError when the
      acting identity may not decide the step.  Nothing is written.
    - MissingRejectionReasonError on blank rejection reasons.  Nothing is
      written.
    - UnknownRequestTypeError / InvalidChainError on creation.
    - RequestChainClosedError when a request whose chain was already
      rejected or finalized is started again.
    - RegistrationRequestNotFoundError when the next step needs a context
      the store no longer has.  The caller must roll back.
    - DuplicatePendingWorkflowError on a second pending step, and
      DuplicateWorkflowStepError when a concurrent writer took the step
      number.  Both leave the session needing rollback.

Concurrency:
    On PostgreSQL the step is read ``FOR UPDATE``, so a second approver
    blocks until the first commits and then sees the decided status.  On
    SQLite the conditional UPDATE is the first write of the transaction and
    the database write lock serializes racing decisions.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approval_kernel.domain.chain import ChainDefinition
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.collaborators import RegistrationRequestStore
from approval_kernel.domain.workflow import (
    TERMINAL_WORKFLOW_STATUSES,
    WORKFLOW_TRANSITIONS,
    ActingApprover,
    ApprovalOutcome,
    ApprovalWorkflow,
    RequestContext,
    RequestType,
    WorkflowStatus,
)
from approval_kernel.exceptions import (
    ApproverIdentityMismatchError,
    ApproverRoleMismatchError,
    DuplicatePendingWorkflowError,
    DuplicateWorkflowStepError,
    InvalidChainError,
    InvalidWorkflowTransitionError,
    MissingRejectionReasonError,
    RegistrationRequestNotFoundError,
    RequestChainClosedError,
    StaleWorkflowError,
    UnknownRequestTypeError,
    WorkflowAlreadyResolvedError,
    WorkflowNotFoundError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.models.workflow import STEP_UNIQUE_CONSTRAINT, ApprovalWorkflowModel
from approval_kernel.services.approver_resolver import ApproverResolver
from approval_kernel.services.base import BaseService

logger = get_logger("services.workflow")


class ApprovalWorkflowService(BaseService):
    """Drives registration requests through their approval chain."""

    def __init__(
        self,
        session: Session,
        resolver: ApproverResolver,
        registration_store: RegistrationRequestStore,
        chain_definition: ChainDefinition,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session)
        self._resolver = resolver
        self._registrations = registration_store
        self._chains = chain_definition
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_initial_workflow(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        first_role: str,
        context: RequestContext | None = None,
        approver_id: UUID | None = None,
    ) -> ApprovalWorkflow:
        """Open the first approval step for ``request_id``.

        ``first_role`` must be the head of the chain.  When
        ``approver_id`` is not given and ``context`` is, the approver is
        resolved; otherwise the step is an open claim.
        """
        chain = self._chains.chain_for(request_type)
        if chain is None:
            raise UnknownRequestTypeError(str(getattr(request_type, "value", request_type)))

        head = self._chains.first_role(chain.request_type)
        if self._chains.position_of(chain.request_type, first_role) is None:
            raise InvalidChainError(chain.request_type.value, first_role)
        if first_role != head:
            raise InvalidChainError(chain.request_type.value, first_role, expected_role=head)
        step_number = 1

        latest = self.session.execute(
            select(ApprovalWorkflowModel)
            .where(ApprovalWorkflowModel.request_id == request_id)
            .order_by(ApprovalWorkflowModel.step_number.desc())
            .limit(1)
        ).scalar_one_or_none()
        if latest is not None:
            if latest.status == WorkflowStatus.PENDING.value:
                raise DuplicatePendingWorkflowError(str(request_id))
            raise RequestChainClosedError(str(request_id), str(latest.id), latest.status)

        if approver_id is None and context is not None:
            approver_id = self._resolver.resolve(first_role, context)

        model = self._insert_step(
            request_type=chain.request_type,
            request_id=request_id,
            step_number=step_number,
            role=first_role,
            approver_id=approver_id,
        )

        logger.info(
            "workflow_created",
            extra={
                "workflow_id": str(model.id),
                "request_id": str(request_id),
                "request_type": chain.request_type.value,
                "step_number": step_number,
                "approver_role": first_role,
                "approver_id": str(approver_id) if approver_id else None,
            },
        )
        return model.to_dto()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, workflow_id: UUID, approver: ActingApprover) -> ApprovalOutcome:
        """Approve a pending step and open the next one, if any."""
        with LogContext.bind(workflow_id=str(workflow_id), actor_id=str(approver.actor_id)):
            model = self._load_for_decision(workflow_id, WorkflowStatus.APPROVED)
            self._check_actor(model, approver)

            self._compare_and_set(
                model,
                WorkflowStatus.APPROVED,
                approved_by=approver.actor_id,
                approved_at=self._clock.now(),
            )
            approved = model.to_dto()

            logger.info(
                "workflow_approved",
                extra={
                    "request_id": str(approved.request_id),
                    "step_number": approved.step_number,
                    "approver_role": approved.current_approver_role,
                },
            )

            next_role = self._chains.next_role(
                approved.request_type, approved.current_approver_role,
            )
            if next_role is None:
                logger.info(
                    "workflow_finalized",
                    extra={
                        "request_id": str(approved.request_id),
                        "request_type": approved.request_type.value,
                        "steps": approved.step_number,
                    },
                )
                return ApprovalOutcome(approved=approved, finalized=True)

            next_step = self._open_next_step(approved, next_role)
            return ApprovalOutcome(approved=approved, finalized=False, next_step=next_step)

    def reject(
        self,
        workflow_id: UUID,
        approver: ActingApprover,
        reason: str,
    ) -> ApprovalWorkflow:
        """Reject a pending step.  The chain stops; no step is opened."""
        if reason is None or not reason.strip():
            raise MissingRejectionReasonError(str(workflow_id))

        with LogContext.bind(workflow_id=str(workflow_id), actor_id=str(approver.actor_id)):
            model = self._load_for_decision(workflow_id, WorkflowStatus.REJECTED)
            self._check_actor(model, approver)

            self._compare_and_set(
                model,
                WorkflowStatus.REJECTED,
                approved_by=approver.actor_id,
                rejection_reason=reason.strip(),
            )
            rejected = model.to_dto()

            logger.info(
                "workflow_rejected",
                extra={
                    "request_id": str(rejected.request_id),
                    "step_number": rejected.step_number,
                    "approver_role": rejected.current_approver_role,
                },
            )
            return rejected

    def get_workflow(self, workflow_id: UUID) -> ApprovalWorkflow:
        model = self.session.get(ApprovalWorkflowModel, workflow_id)
        if model is None:
            raise WorkflowNotFoundError(str(workflow_id))
        return model.to_dto()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_for_decision(
        self,
        workflow_id: UUID,
        target: WorkflowStatus,
    ) -> ApprovalWorkflowModel:
        model = self.session.execute(
            select(ApprovalWorkflowModel)
            .where(ApprovalWorkflowModel.id == workflow_id)
            .with_for_update()
        ).scalar_one_or_none()
        if model is None:
            raise WorkflowNotFoundError(str(workflow_id))

        status = WorkflowStatus(model.status)
        if status in TERMINAL_WORKFLOW_STATUSES:
            raise WorkflowAlreadyResolvedError(
                str(workflow_id), status.value, target.value,
            )
        if status != WorkflowStatus.PENDING:
            raise InvalidWorkflowTransitionError(
                str(workflow_id), status.value, target.value,
            )
        return model

    @staticmethod
    def _check_actor(model: ApprovalWorkflowModel, approver: ActingApprover) -> None:
        if approver.role != model.current_approver_role:
            raise ApproverRoleMismatchError(
                str(model.id), model.current_approver_role, approver.role,
            )
        if (
            model.current_approver_id is not None
            and model.current_approver_id != approver.actor_id
        ):
            raise ApproverIdentityMismatchError(
                str(model.id), str(model.current_approver_id), str(approver.actor_id),
            )

    def _compare_and_set(
        self,
        model: ApprovalWorkflowModel,
        target: WorkflowStatus,
        **values,
    ) -> None:
        """Move ``model`` from pending to ``target`` if nobody else did first."""
        if target not in WORKFLOW_TRANSITIONS[WorkflowStatus.PENDING]:
            raise InvalidWorkflowTransitionError(
                str(model.id), WorkflowStatus.PENDING.value, target.value,
            )

        result = self.session.execute(
            update(ApprovalWorkflowModel)
            .where(
                ApprovalWorkflowModel.id == model.id,
                ApprovalWorkflowModel.status == WorkflowStatus.PENDING.value,
            )
            .values(status=target.value, updated_at=self._clock.now(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.refresh(model)
            logger.warning(
                "workflow_decision_lost_race",
                extra={
                    "request_id": str(model.request_id),
                    "target_status": target.value,
                    "current_status": model.status,
                },
            )
            raise StaleWorkflowError(str(model.id), model.status, target.value)

        self.session.refresh(model)

    def _open_next_step(
        self,
        approved: ApprovalWorkflow,
        next_role: str,
    ) -> ApprovalWorkflow:
        record = self._registrations.find_by_id(approved.request_id)
        if record is None:
            raise RegistrationRequestNotFoundError(str(approved.request_id))

        approver_id = self._resolver.resolve(next_role, record.context)
        model = self._insert_step(
            request_type=approved.request_type,
            request_id=approved.request_id,
            step_number=approved.step_number + 1,
            role=next_role,
            approver_id=approver_id,
        )

        logger.info(
            "workflow_created",
            extra={
                "workflow_id": str(model.id),
                "request_id": str(approved.request_id),
                "request_type": approved.request_type.value,
                "step_number": model.step_number,
                "approver_role": next_role,
                "approver_id": str(approver_id) if approver_id else None,
            },
        )
        return model.to_dto()

    def _insert_step(
        self,
        *,
        request_type: RequestType,
        request_id: UUID,
        step_number: int,
        role: str,
        approver_id: UUID | None,
    ) -> ApprovalWorkflowModel:
        now = self._clock.now()
        model = ApprovalWorkflowModel(
            request_type=request_type.value,
            request_id=request_id,
            step_number=step_number,
            current_approver_role=role,
            current_approver_id=approver_id,
            status=WorkflowStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as exc:
            step_taken = _violates_step_uniqueness(exc)
            logger.warning(
                "duplicate_workflow_step" if step_taken else "duplicate_pending_workflow",
                extra={"request_id": str(request_id), "step_number": step_number},
            )
            if step_taken:
                raise DuplicateWorkflowStepError(str(request_id), step_number) from exc
            raise DuplicatePendingWorkflowError(str(request_id)) from exc
        return model


def _violates_step_uniqueness(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from UNIQUE(request_id, step_number).

    PostgreSQL names the constraint in ``diag``; SQLite lists the columns.
    """
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint is not None:
        return constraint == STEP_UNIQUE_CONSTRAINT
    message = str(exc.orig)
    return STEP_UNIQUE_CONSTRAINT in message or "step_number" in message
