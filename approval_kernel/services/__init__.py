"""Services for the approval kernel (write side)."""

from approval_kernel.services.approver_resolver import ApproverResolver
from approval_kernel.services.directory_service import (
    SqlIdentityDirectory,
    SqlRegistrationRequestStore,
)
from approval_kernel.services.notifications import LoggingNotificationDispatcher
from approval_kernel.services.registration_coordinator import (
    RegistrationApprovalCoordinator,
)
from approval_kernel.services.workflow_service import ApprovalWorkflowService

__all__ = [
    "ApprovalWorkflowService",
    "ApproverResolver",
    "LoggingNotificationDispatcher",
    "RegistrationApprovalCoordinator",
    "SqlIdentityDirectory",
    "SqlRegistrationRequestStore",
]
