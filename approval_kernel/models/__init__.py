"""ORM models for the approval kernel."""

from approval_kernel.models.directory import RegistrationRequestModel, UserModel
from approval_kernel.models.workflow import ApprovalWorkflowModel

__all__ = [
    "ApprovalWorkflowModel",
    "RegistrationRequestModel",
    "UserModel",
]
