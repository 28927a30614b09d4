"""
Pure domain layer.

Value objects, the approval chain definition, the approver resolution
policy and the collaborator protocols, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (apart from SystemClock)
"""

from approval_kernel.domain.chain import ApprovalChain, ChainDefinition
from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.collaborators import (
    Identity,
    IdentityDirectory,
    NotificationDispatcher,
    NotificationEvent,
    ProvisionedAccount,
    RegistrationRecord,
    RegistrationRequestStore,
)
from approval_kernel.domain.resolution import (
    ApproverScope,
    LookupStrategy,
    ResolutionPolicy,
    ResolutionRule,
)
from approval_kernel.domain.workflow import (
    TERMINAL_WORKFLOW_STATUSES,
    WORKFLOW_TRANSITIONS,
    ActingApprover,
    ApprovalOutcome,
    ApprovalWorkflow,
    ApproverRole,
    RegistrationStatus,
    RequestContext,
    RequestType,
    WorkflowStatus,
)

__all__ = [
    # Workflow
    "WorkflowStatus",
    "WORKFLOW_TRANSITIONS",
    "TERMINAL_WORKFLOW_STATUSES",
    "RequestType",
    "ApproverRole",
    "RegistrationStatus",
    "ActingApprover",
    "RequestContext",
    "ApprovalWorkflow",
    "ApprovalOutcome",
    # Chain
    "ApprovalChain",
    "ChainDefinition",
    # Resolution
    "LookupStrategy",
    "ApproverScope",
    "ResolutionRule",
    "ResolutionPolicy",
    # Collaborators
    "RegistrationRecord",
    "Identity",
    "ProvisionedAccount",
    "NotificationEvent",
    "RegistrationRequestStore",
    "IdentityDirectory",
    "NotificationDispatcher",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
