"""
approval_kernel.services.registration_coordinator -- Registration orchestration.

Responsibility:
    The caller-side glue around ``ApprovalWorkflowService``: opens the chain
    when a registration is submitted, applies the terminal outcome to the
    registration request (approved and provisioned, or rejected), and
    announces each transition through the ``NotificationDispatcher``.

Architecture position:
    Kernel > Services.  Composes the workflow service with the
    registration store, identity directory and notification dispatcher.
    Flush-only; the caller commits.

Invariants enforced:
    - A registration is finalized only when the kernel reports that the
      last step of its chain was approved.  The kernel lets exactly one
      approval of that step succeed, so finalization happens once.
    - Notifications are sent only after the kernel has returned.  A
      delivery failure is logged as ``notification_failed`` and never undoes
      the transition.

Failure modes:
    - RegistrationRequestNotFoundError on submit for an unknown request.
    - UnknownRequestTypeError on submit when no chain handles the
      applicant's requested role.
    - Every workflow service error propagates unchanged.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from approval_kernel.domain.chain import ChainDefinition
from approval_kernel.domain.collaborators import (
    IdentityDirectory,
    NotificationDispatcher,
    NotificationEvent,
    RegistrationRequestStore,
)
from approval_kernel.domain.workflow import (
    ActingApprover,
    ApprovalOutcome,
    ApprovalWorkflow,
    RegistrationStatus,
)
from approval_kernel.exceptions import (
    RegistrationRequestNotFoundError,
    UnknownRequestTypeError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.services.workflow_service import ApprovalWorkflowService

logger = get_logger("services.registration_coordinator")


class RegistrationApprovalCoordinator:
    """Runs registration requests through submit, approve and reject."""

    def __init__(
        self,
        workflow_service: ApprovalWorkflowService,
        registration_store: RegistrationRequestStore,
        directory: IdentityDirectory,
        notifier: NotificationDispatcher,
        chain_definition: ChainDefinition,
    ) -> None:
        self._workflows = workflow_service
        self._registrations = registration_store
        self._directory = directory
        self._notifier = notifier
        self._chains = chain_definition

    def submit(self, request_id: UUID) -> ApprovalWorkflow:
        """Open the approval chain for a newly submitted registration."""
        with LogContext.bind(request_id=str(request_id)):
            record = self._registrations.find_by_id(request_id)
            if record is None:
                raise RegistrationRequestNotFoundError(str(request_id))

            request_type = self._chains.request_type_for(record.requested_role)
            if request_type is None:
                raise UnknownRequestTypeError(record.requested_role)

            first_role = self._chains.first_approver_role_for(record.requested_role)
            workflow = self._workflows.create_initial_workflow(
                request_type, request_id, first_role, record.context,
            )

            self._announce_step(workflow, record.name, record.requested_role)
            return workflow

    def approve(self, workflow_id: UUID, approver: ActingApprover) -> ApprovalOutcome:
        outcome = self._workflows.approve(workflow_id, approver)
        request_id = outcome.approved.request_id

        with LogContext.bind(request_id=str(request_id)):
            if outcome.finalized:
                record = self._registrations.update_status(
                    request_id, RegistrationStatus.APPROVED, reviewed_by=approver.actor_id,
                )
                account = self._registrations.finalize(request_id)
                logger.info(
                    "registration_approved",
                    extra={"user_id": str(account.user_id), "role": account.role},
                )
                self._send(
                    NotificationEvent.REGISTRATION_APPROVED,
                    record.email,
                    {
                        "name": record.name,
                        "role": account.role,
                        "user_id": str(account.user_id),
                    },
                )
            elif outcome.next_step is not None:
                record = self._registrations.find_by_id(request_id)
                if record is not None:
                    self._announce_step(outcome.next_step, record.name, record.requested_role)

        return outcome

    def reject(
        self,
        workflow_id: UUID,
        approver: ActingApprover,
        reason: str,
    ) -> ApprovalWorkflow:
        rejected = self._workflows.reject(workflow_id, approver, reason)

        with LogContext.bind(request_id=str(rejected.request_id)):
            record = self._registrations.update_status(
                rejected.request_id,
                RegistrationStatus.REJECTED,
                reviewed_by=approver.actor_id,
                rejection_reason=rejected.rejection_reason,
            )
            logger.info(
                "registration_rejected",
                extra={"rejected_at_step": rejected.step_number},
            )
            self._send(
                NotificationEvent.REGISTRATION_REJECTED,
                record.email,
                {
                    "name": record.name,
                    "role": record.requested_role,
                    "reason": rejected.rejection_reason,
                },
            )
        return rejected

    def _announce_step(
        self,
        workflow: ApprovalWorkflow,
        applicant_name: str,
        requested_role: str,
    ) -> None:
        if workflow.current_approver_id is None:
            logger.info(
                "approval_step_open_claim",
                extra={
                    "workflow_id": str(workflow.workflow_id),
                    "approver_role": workflow.current_approver_role,
                },
            )
            return

        approver = self._directory.find_by_id(workflow.current_approver_id)
        if approver is None:
            logger.warning(
                "approver_identity_missing",
                extra={
                    "workflow_id": str(workflow.workflow_id),
                    "approver_id": str(workflow.current_approver_id),
                },
            )
            return

        self._send(
            NotificationEvent.APPROVAL_REQUIRED,
            approver.email,
            {
                "approver_name": approver.name,
                "applicant_name": applicant_name,
                "requested_role": requested_role,
                "workflow_id": str(workflow.workflow_id),
            },
        )

    def _send(
        self,
        event: NotificationEvent,
        recipient: str,
        payload: dict[str, Any],
    ) -> None:
        try:
            self._notifier.notify(event, recipient, payload)
        except Exception:
            logger.warning(
                "notification_failed",
                extra={"event": event.value, "recipient": recipient},
                exc_info=True,
            )
