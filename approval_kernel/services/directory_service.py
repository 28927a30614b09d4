"""
approval_kernel.services.directory_service -- SQL collaborator implementations.

Responsibility:
    Reference implementations of the ``RegistrationRequestStore`` and
    ``IdentityDirectory`` protocols over the ``registration_requests`` and
    ``users`` tables, so the kernel can run end to end without the host LMS.

Architecture position:
    Kernel > Services.  Flush-only, like every other service: the caller
    owns commit/rollback.

Failure modes:
    - RegistrationRequestNotFoundError from update_status / finalize when
      the request does not exist.
    - IntegrityError propagates if the users table already holds the
      applicant's email under another registration.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.collaborators import (
    Identity,
    ProvisionedAccount,
    RegistrationRecord,
)
from approval_kernel.domain.resolution import ApproverScope
from approval_kernel.domain.workflow import RegistrationStatus
from approval_kernel.exceptions import RegistrationRequestNotFoundError
from approval_kernel.logging_config import get_logger
from approval_kernel.models.directory import RegistrationRequestModel, UserModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.directory")


def _to_record(model: RegistrationRequestModel) -> RegistrationRecord:
    return RegistrationRecord(
        request_id=model.id,
        name=model.name,
        email=model.email,
        requested_role=model.role,
        status=RegistrationStatus(model.status),
        phone=model.phone,
        department_id=model.department_id,
        college_id=model.college_id,
        class_name=model.class_name,
    )


class SqlRegistrationRequestStore(BaseService):
    """Registration requests backed by the ``registration_requests`` table."""

    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        super().__init__(session)
        self._clock = clock or SystemClock()

    def find_by_id(self, request_id: UUID) -> RegistrationRecord | None:
        model = self.session.get(RegistrationRequestModel, request_id)
        return _to_record(model) if model is not None else None

    def update_status(
        self,
        request_id: UUID,
        status: RegistrationStatus,
        reviewed_by: UUID | None = None,
        rejection_reason: str | None = None,
    ) -> RegistrationRecord:
        model = self._load(request_id)
        model.status = RegistrationStatus(status).value
        model.reviewed_by = reviewed_by
        model.reviewed_at = self._clock.now()
        if rejection_reason is not None:
            model.rejection_reason = rejection_reason
        self.session.flush()

        logger.info(
            "registration_status_updated",
            extra={
                "request_id": str(request_id),
                "status": model.status,
                "reviewed_by": str(reviewed_by) if reviewed_by else None,
            },
        )
        return _to_record(model)

    def finalize(self, request_id: UUID) -> ProvisionedAccount:
        """Provision the applicant's account.

        Idempotent: a second call returns the account created by the first.
        """
        model = self._load(request_id)

        existing = self.session.execute(
            select(UserModel).where(UserModel.registration_request_id == request_id)
        ).scalar_one_or_none()
        if existing is not None:
            logger.info(
                "registration_already_finalized",
                extra={"request_id": str(request_id), "user_id": str(existing.id)},
            )
            return _to_account(existing, request_id)

        user = UserModel(
            name=model.name,
            email=model.email,
            role=model.role,
            status="active",
            college_id=model.college_id,
            department_id=model.department_id,
            registration_request_id=request_id,
            created_at=self._clock.now(),
        )
        self.session.add(user)
        self.session.flush()

        logger.info(
            "registration_finalized",
            extra={
                "request_id": str(request_id),
                "user_id": str(user.id),
                "role": user.role,
            },
        )
        return _to_account(user, request_id)

    def _load(self, request_id: UUID) -> RegistrationRequestModel:
        model = self.session.get(RegistrationRequestModel, request_id)
        if model is None:
            raise RegistrationRequestNotFoundError(str(request_id))
        return model


def _to_account(user: UserModel, request_id: UUID) -> ProvisionedAccount:
    return ProvisionedAccount(
        user_id=user.id,
        email=user.email,
        role=user.role,
        registration_request_id=request_id,
    )


class SqlIdentityDirectory:
    """Read-only approver lookups over the ``users`` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_active_by_role_and_scope(
        self,
        role: str,
        scope: ApproverScope,
    ) -> UUID | None:
        """Oldest active user holding ``role`` within ``scope``."""
        stmt = select(UserModel.id).where(
            UserModel.role == role,
            UserModel.status == "active",
        )
        if scope.department_id is not None:
            stmt = stmt.where(UserModel.department_id == scope.department_id)
        if scope.college_id is not None:
            stmt = stmt.where(UserModel.college_id == scope.college_id)
        if scope.class_in_charge is not None:
            stmt = stmt.where(UserModel.class_in_charge == scope.class_in_charge)

        stmt = stmt.order_by(UserModel.created_at, UserModel.email).limit(1)
        return self._session.execute(stmt).scalar_one_or_none()

    def find_by_id(self, user_id: UUID) -> Identity | None:
        user = self._session.get(UserModel, user_id)
        if user is None:
            return None
        return Identity(user_id=user.id, name=user.name, email=user.email, role=user.role)
