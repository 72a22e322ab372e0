"""
User model — the authentication identity of a barangay portal user.

A User holds login credentials (email + Argon2id hash), profile fields, an
account status and a *set* of roles. Roles live in their own table
(user_roles) with one row per (user, role), so a health worker who is also a
parent can hold both BHW and PARENT_RESIDENT.

What a role may do is not stored per user: the role → permission table in
theycare.permissions is configuration. This model only records which roles a
user holds.

Account lifecycle:
  - Self-registration creates users as PENDING
  - An administrator approves (PENDING → ACTIVE), suspends or deactivates
  - Users are never hard-deleted; INACTIVE is the soft end state
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import String, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from theycare.database import Base


class Role(str, enum.Enum):
    """
    Roles a portal user can hold.

    Inherits from str so values serialize naturally to JSON and tokens.
    """
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    BARANGAY_CAPTAIN = "BARANGAY_CAPTAIN"
    BARANGAY_OFFICIAL = "BARANGAY_OFFICIAL"
    BHW = "BHW"                             # Barangay Health Worker
    BHW_COORDINATOR = "BHW_COORDINATOR"
    DAYCARE_STAFF = "DAYCARE_STAFF"
    DAYCARE_TEACHER = "DAYCARE_TEACHER"
    SK_OFFICER = "SK_OFFICER"               # Sangguniang Kabataan (youth council)
    SK_CHAIRMAN = "SK_CHAIRMAN"
    PARENT_RESIDENT = "PARENT_RESIDENT"
    PATIENT = "PATIENT"
    VISITOR = "VISITOR"


class AccountStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class UserRoleAssignment(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False)

    user: Mapped["User"] = relationship(back_populates="role_assignments")


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login identifier: unique, indexed, always stored lower-cased
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Philippine mobile number; OTP codes are sent here when SMS is enabled
    contact_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus),
        default=AccountStatus.PENDING,
        nullable=False,
        index=True,
    )

    otp_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    # selectin: role rows come along with every User query, which async
    # sessions need since lazy loading is not available there
    role_assignments: Mapped[list[UserRoleAssignment]] = relationship(
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def roles(self) -> frozenset[Role]:
        return frozenset(assignment.role for assignment in self.role_assignments)

    def set_roles(self, roles: Iterable[Role]) -> None:
        """
        Replace the user's role set.

        Only the difference is applied: unchanged roles keep their rows, so
        the (user_id, role) unique constraint never sees a delete and a
        re-insert of the same role in one flush.
        """
        wanted = set(roles)
        for assignment in list(self.role_assignments):
            if assignment.role not in wanted:
                self.role_assignments.remove(assignment)
        held = self.roles
        for role in sorted(wanted - held, key=lambda r: r.value):
            self.role_assignments.append(UserRoleAssignment(role=role))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
