"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval decisions are audit-relevant. Callers (controllers, the
registration coordinator, tests) must be able to tell "you are not the
right approver" from "somebody already approved this" without parsing
message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ApprovalKernelError:

    ApprovalKernelError (base)
    |
    +-- NotFoundError
    |   +-- WorkflowNotFoundError
    |   +-- RegistrationRequestNotFoundError
    |
    +-- InvalidWorkflowTransitionError
    |   +-- WorkflowAlreadyResolvedError
    |   +-- StaleWorkflowError
    |   +-- RequestChainClosedError
    |
    +-- UnauthorizedApproverError
    |   +-- ApproverRoleMismatchError
    |   +-- ApproverIdentityMismatchError
    |
    +-- ChainError
    |   +-- InvalidChainError
    |   +-- UnknownRequestTypeError
    |
    +-- WorkflowValidationError
    |   +-- MissingRejectionReasonError
    |
    +-- ConflictError
    |   +-- DuplicatePendingWorkflowError
    |   +-- DuplicateWorkflowStepError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ChainConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                           | When Raised
----------------|--------------------------------|--------------------------------------
Not found       | WORKFLOW_NOT_FOUND             | Workflow ID doesn't exist
                | REGISTRATION_REQUEST_NOT_FOUND | Request ID unknown to the store
----------------|--------------------------------|--------------------------------------
Transition      | WORKFLOW_ALREADY_RESOLVED      | Acting on a non-pending step
                | STALE_WORKFLOW                 | Lost a race for the same step
                | REQUEST_CHAIN_CLOSED           | Restarting a rejected or finalized chain
----------------|--------------------------------|--------------------------------------
Authorization   | APPROVER_ROLE_MISMATCH         | Actor role != step role
                | APPROVER_IDENTITY_MISMATCH     | Step bound to a different identity
----------------|--------------------------------|--------------------------------------
Chain           | UNKNOWN_REQUEST_TYPE           | No chain for the request type
                | INVALID_CHAIN                  | First role is not the chain head
----------------|--------------------------------|--------------------------------------
Validation      | MISSING_REJECTION_REASON       | Reject called with a blank reason
----------------|--------------------------------|--------------------------------------
Conflict        | DUPLICATE_PENDING_WORKFLOW     | Second pending step for a request
                | DUPLICATE_WORKFLOW_STEP        | Step number taken by a concurrent writer
----------------|--------------------------------|--------------------------------------
Immutability    | IMMUTABILITY_VIOLATION         | Modifying a decided step
----------------|--------------------------------|--------------------------------------
Configuration   | CHAIN_CONFIGURATION_INVALID    | Chain YAML failed validation

===============================================================================
HANDLING PATTERNS
===============================================================================

1. AUTHORIZATION AND TRANSITION ERRORS ARE RETRYABLE:

    try:
        service.approve(workflow_id, approver)
    except UnauthorizedApproverError as e:
        return forbidden(code=e.code)
    except InvalidWorkflowTransitionError as e:
        # Someone else acted first -- reload the inbox
        return conflict(code=e.code, status=e.current_status)

2. CONFLICT ERRORS ARE BUGS:

    DuplicatePendingWorkflowError means two writers tried to advance the
    same request. The database refused the second one; investigate the
    caller, do not retry blindly.
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(ApprovalKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class WorkflowNotFoundError(NotFoundError):
    """Approval workflow step does not exist."""

    code: str = "WORKFLOW_NOT_FOUND"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Approval workflow not found: {workflow_id}")


class RegistrationRequestNotFoundError(NotFoundError):
    """Registration request does not exist in the registration store."""

    code: str = "REGISTRATION_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Registration request not found: {request_id}")


# Transition exceptions


class InvalidWorkflowTransitionError(ApprovalKernelError):
    """Base exception for illegal status transitions."""

    code: str = "INVALID_WORKFLOW_TRANSITION"

    def __init__(self, workflow_id: str, current_status: str, target_status: str):
        self.workflow_id = workflow_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Workflow {workflow_id} cannot move from "
            f"'{current_status}' to '{target_status}'"
        )


class WorkflowAlreadyResolvedError(InvalidWorkflowTransitionError):
    """The step has already been approved or rejected."""

    code: str = "WORKFLOW_ALREADY_RESOLVED"


class StaleWorkflowError(InvalidWorkflowTransitionError):
    """The step was resolved by a concurrent transaction after it was read."""

    code: str = "STALE_WORKFLOW"


class RequestChainClosedError(InvalidWorkflowTransitionError):
    """The request's chain was already rejected or finalized; it cannot restart."""

    code: str = "REQUEST_CHAIN_CLOSED"

    def __init__(self, request_id: str, workflow_id: str, current_status: str):
        self.request_id = request_id
        super().__init__(workflow_id, current_status, "pending")


# Authorization exceptions


class UnauthorizedApproverError(ApprovalKernelError):
    """Base exception for actors that may not act on a step."""

    code: str = "UNAUTHORIZED_APPROVER"


class ApproverRoleMismatchError(UnauthorizedApproverError):
    """Actor's role is not the role the step is waiting for."""

    code: str = "APPROVER_ROLE_MISMATCH"

    def __init__(self, workflow_id: str, expected_role: str, actual_role: str):
        self.workflow_id = workflow_id
        self.expected_role = expected_role
        self.actual_role = actual_role
        super().__init__(
            f"Workflow {workflow_id} requires role '{expected_role}', "
            f"actor has role '{actual_role}'"
        )


class ApproverIdentityMismatchError(UnauthorizedApproverError):
    """Step is bound to a different concrete approver."""

    code: str = "APPROVER_IDENTITY_MISMATCH"

    def __init__(self, workflow_id: str, expected_approver_id: str, actor_id: str):
        self.workflow_id = workflow_id
        self.expected_approver_id = expected_approver_id
        self.actor_id = actor_id
        super().__init__(
            f"Workflow {workflow_id} is assigned to {expected_approver_id}, "
            f"not {actor_id}"
        )


# Chain exceptions


class ChainError(ApprovalKernelError):
    """Base exception for approval chain lookups that cannot proceed."""

    code: str = "CHAIN_ERROR"


class InvalidChainError(ChainError):
    """A workflow cannot be placed on the approval chain."""

    code: str = "INVALID_CHAIN"

    def __init__(self, request_type: str, role: str, expected_role: str | None = None):
        self.request_type = request_type
        self.role = role
        self.expected_role = expected_role
        if expected_role is None:
            message = f"Role '{role}' is not part of the approval chain for '{request_type}'"
        else:
            message = (
                f"Chain for '{request_type}' starts at '{expected_role}', not '{role}'"
            )
        super().__init__(message)


class UnknownRequestTypeError(ChainError):
    """No approval chain is defined for the request type."""

    code: str = "UNKNOWN_REQUEST_TYPE"

    def __init__(self, request_type: str):
        self.request_type = request_type
        super().__init__(
            f"No approval chain defined for request type '{request_type}'"
        )


# Validation exceptions


class WorkflowValidationError(ApprovalKernelError):
    """Base exception for invalid caller input."""

    code: str = "WORKFLOW_VALIDATION_ERROR"


class MissingRejectionReasonError(WorkflowValidationError):
    """Reject was called without a reason."""

    code: str = "MISSING_REJECTION_REASON"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(
            f"Rejection reason is required when rejecting workflow {workflow_id}"
        )


# Conflict exceptions


class ConflictError(ApprovalKernelError):
    """Base exception for uniqueness violations surfaced by the store."""

    code: str = "CONFLICT"


class DuplicatePendingWorkflowError(ConflictError):
    """A pending step already exists for the request."""

    code: str = "DUPLICATE_PENDING_WORKFLOW"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(
            f"Registration request {request_id} already has a pending approval step"
        )


class DuplicateWorkflowStepError(ConflictError):
    """Another writer already inserted this step number for the request."""

    code: str = "DUPLICATE_WORKFLOW_STEP"

    def __init__(self, request_id: str, step_number: int):
        self.request_id = request_id
        self.step_number = step_number
        super().__init__(
            f"Registration request {request_id} already has approval step {step_number}"
        )


# Immutability exceptions


class ImmutabilityError(ApprovalKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a decided approval step."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ChainConfigurationError(ApprovalKernelError):
    """Approval chain configuration failed validation."""

    code: str = "CHAIN_CONFIGURATION_INVALID"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Invalid approval chain configuration: " + "; ".join(self.errors)
        )
