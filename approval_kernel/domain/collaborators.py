"""
Collaborator protocols (``approval_kernel.domain.collaborators``).

Responsibility
--------------
Interfaces the approval kernel consumes but does not own: the
registration-request store, the identity directory, and the notification
dispatcher.  SQL-backed implementations live in ``services/``; tests may
substitute their own.

Architecture position
---------------------
**Kernel domain layer** -- protocols and value objects only.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from approval_kernel.domain.resolution import ApproverScope
from approval_kernel.domain.workflow import RegistrationStatus, RequestContext


@dataclass(frozen=True)
class RegistrationRecord:
    """Applicant data held by the registration store."""

    request_id: UUID
    name: str
    email: str
    requested_role: str
    status: RegistrationStatus
    phone: str | None = None
    department_id: UUID | None = None
    college_id: UUID | None = None
    class_name: str | None = None

    @property
    def context(self) -> RequestContext:
        return RequestContext(
            request_id=self.request_id,
            requested_role=self.requested_role,
            department_id=self.department_id,
            college_id=self.college_id,
            class_name=self.class_name,
        )


@dataclass(frozen=True)
class Identity:
    """A user known to the identity directory."""

    user_id: UUID
    name: str
    email: str
    role: str


@dataclass(frozen=True)
class ProvisionedAccount:
    """Account created when a registration is finalized."""

    user_id: UUID
    email: str
    role: str
    registration_request_id: UUID


class NotificationEvent(str, Enum):
    """Transitions the orchestrating caller announces."""

    APPROVAL_REQUIRED = "approval_required"
    REGISTRATION_APPROVED = "registration_approved"
    REGISTRATION_REJECTED = "registration_rejected"


class RegistrationRequestStore(Protocol):
    """Source of registration requests and their terminal status."""

    def find_by_id(self, request_id: UUID) -> RegistrationRecord | None:
        ...

    def update_status(
        self,
        request_id: UUID,
        status: RegistrationStatus,
        reviewed_by: UUID | None = None,
        rejection_reason: str | None = None,
    ) -> RegistrationRecord:
        ...

    def finalize(self, request_id: UUID) -> ProvisionedAccount:
        """Provision the account for a fully approved registration."""
        ...


class IdentityDirectory(Protocol):
    """Read-only lookups of role/department/college assignments."""

    def find_active_by_role_and_scope(
        self,
        role: str,
        scope: ApproverScope,
    ) -> UUID | None:
        ...

    def find_by_id(self, user_id: UUID) -> Identity | None:
        ...


class NotificationDispatcher(Protocol):
    """Delivers transition notifications (email, in-app, ...)."""

    def notify(
        self,
        event: NotificationEvent,
        recipient: str,
        payload: dict[str, Any],
    ) -> None:
        ...
