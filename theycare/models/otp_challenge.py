"""
OtpChallenge model — one issued one-time code.

Every issuance is its own row. At most one row per (purpose, key) is live
(status ISSUED); issuing again marks the previous live row SUPERSEDED. Old
rows are kept so a superseded code can be recognised and rejected as
expired rather than merely "wrong".

Lifecycle:
    ISSUED ──verify ok──────────> VERIFIED   (single use)
       │───past expires_at──────> EXPIRED
       └───newer issuance───────> SUPERSEDED
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column

from theycare.database import Base


class OtpPurpose(str, enum.Enum):
    LOGIN = "LOGIN"
    PASSWORD_RESET = "PASSWORD_RESET"


class OtpStatus(str, enum.Enum):
    ISSUED = "ISSUED"
    VERIFIED = "VERIFIED"
    EXPIRED = "EXPIRED"
    SUPERSEDED = "SUPERSEDED"


class OtpChallenge(Base):
    __tablename__ = "otp_challenges"
    __table_args__ = (
        Index("ix_otp_challenges_purpose_key_issued", "purpose", "key", "issued_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    purpose: Mapped[OtpPurpose] = mapped_column(Enum(OtpPurpose), nullable=False)

    # Normalised (lower-cased) email of the user the code was issued for
    key: Mapped[str] = mapped_column(String(255), nullable=False)

    code: Mapped[str] = mapped_column(String(12), nullable=False)

    status: Mapped[OtpStatus] = mapped_column(
        Enum(OtpStatus),
        default=OtpStatus.ISSUED,
        nullable=False,
    )

    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    failed_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
