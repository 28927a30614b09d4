"""
Module: approval_kernel.models.directory
Responsibility: ORM persistence for the two collaborator tables the kernel
    reads: registration requests and directory users.

Architecture position: Kernel > Models.  May import from db/base.py only.

These are deliberately narrow projections of the LMS tables of the same
name: only the columns that approver resolution, the approvals inbox and
account provisioning need.  The kernel never writes to them; the SQL
collaborator implementations in services/ do.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString


class RegistrationRequestModel(Base):
    """Self-service registration awaiting approval."""

    __tablename__ = "registration_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_registration_requests_valid_status",
        ),
        Index("ix_registration_requests_status", "status"),
        Index("ix_registration_requests_college_id", "college_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    college_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    department_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    class_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<RegistrationRequest {self.id} {self.email} role={self.role} status={self.status}>"


class UserModel(Base):
    """Directory identity with its organizational assignments."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'pending')",
            name="ck_users_valid_status",
        ),
        Index("ix_users_role_department", "role", "department_id", "status"),
        Index("ix_users_role_college", "role", "college_id", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    college_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    department_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    class_in_charge: Mapped[str | None] = mapped_column(String(50), nullable=True)
    registration_request_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} role={self.role} status={self.status}>"
