"""
OTP service — issuing and verifying one-time codes.

Challenge lifecycle per (purpose, key):

    NONE ──issue──> ISSUED ──verify ok──> VERIFIED
                      │──expires_at passed──> EXPIRED
                      └──issue again──────> SUPERSEDED

Issuing:
  1. Refuse once OTP_SEND_LIMIT codes went out for the key within
     OTP_SEND_WINDOW_MINUTES (failed sends are not counted)
  2. Generate a 6-digit code from the OS CSPRNG
  3. Dispatch it through the channel
  4. Only after a successful send: mark the previous live challenge
     SUPERSEDED and store the new one as ISSUED

  Dispatch comes first so a failed send persists nothing. The previous code
  stays valid and a retry issues cleanly.

Verifying:
  The newest challenge for the key is the live one (last writer wins by
  issued_at), even if a racing issuance left an older row marked ISSUED.
  Expiry is checked before the code is compared, so a correct code past its
  window is still rejected as expired.

This module knows nothing about sessions: callers mint a token after a
successful verify.
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.channels import OtpChannel, otp_message
from theycare.config import settings
from theycare.exceptions import (
    CodeExpiredError,
    DispatchFailureError,
    InvalidCodeError,
    TooManyAttemptsError,
)
from theycare.models.otp_challenge import OtpChallenge, OtpPurpose, OtpStatus
from theycare.models.user import User

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_key(email: str) -> str:
    return email.strip().lower()


def generate_code(length: int | None = None) -> str:
    """Uniformly random numeric code of ``length`` digits (leading zeros allowed)."""
    length = length or settings.OTP_LENGTH
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def destination_for(user: User, channel: OtpChannel) -> str:
    """SMS channels need the mobile number; everything else uses the email."""
    if channel.name == "telerivet":
        if not user.contact_number:
            raise DispatchFailureError("No mobile number on file for this account")
        return user.contact_number
    return user.email


async def _history(db: AsyncSession, key: str, purpose: OtpPurpose) -> list[OtpChallenge]:
    """All challenges for (purpose, key), newest first."""
    result = await db.execute(
        select(OtpChallenge)
        .where(OtpChallenge.key == key, OtpChallenge.purpose == purpose)
        .order_by(OtpChallenge.issued_at.desc())
    )
    return list(result.scalars().all())


async def issue(
    db: AsyncSession,
    key: str,
    purpose: OtpPurpose,
    destination: str,
    channel: OtpChannel,
) -> OtpChallenge:
    """
    Issue and dispatch a new code for ``key``.

    Returns:
        The new ISSUED challenge.

    Raises:
        TooManyAttemptsError: If the send limit for the key is reached.
        DispatchFailureError: If the channel could not send the code.
            Nothing is persisted in that case.
    """
    key = normalize_key(key)
    now = _utcnow()
    history = await _history(db, key, purpose)

    window_start = now - timedelta(minutes=settings.OTP_SEND_WINDOW_MINUTES)
    recent = sum(1 for c in history if _as_utc(c.issued_at) > window_start)
    if recent >= settings.OTP_SEND_LIMIT:
        logger.warning("otp_send_limited", purpose=purpose.value, key=key, recent=recent)
        raise TooManyAttemptsError("Too many codes requested. Please try again later.")

    code = generate_code()
    await channel.send(destination, otp_message(code))

    superseded = sum(1 for c in history if c.status == OtpStatus.ISSUED)
    if history:
        # Keep issued_at strictly increasing per key so "newest" is unambiguous
        latest = _as_utc(history[0].issued_at)
        if now <= latest:
            now = latest + timedelta(microseconds=1)

    await db.execute(
        update(OtpChallenge)
        .where(
            OtpChallenge.key == key,
            OtpChallenge.purpose == purpose,
            OtpChallenge.status == OtpStatus.ISSUED,
        )
        .values(status=OtpStatus.SUPERSEDED)
        .execution_options(synchronize_session="fetch")
    )

    challenge = OtpChallenge(
        purpose=purpose,
        key=key,
        code=code,
        status=OtpStatus.ISSUED,
        issued_at=now,
        expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        failed_attempts=0,
    )
    db.add(challenge)
    await db.flush()

    logger.info(
        "otp_issued",
        purpose=purpose.value,
        key=key,
        channel=channel.name,
        superseded=superseded,
    )
    return challenge


async def verify(
    db: AsyncSession,
    key: str,
    purpose: OtpPurpose,
    candidate: str,
    consume: bool = True,
) -> OtpChallenge:
    """
    Check ``candidate`` against the live challenge for ``key``.

    Args:
        consume: When False the code is checked but stays ISSUED, for
                 "is this reset code right?" pre-checks.

    Returns:
        The matched challenge (VERIFIED when consumed).

    Raises:
        InvalidCodeError: No challenge was ever issued, or the code is wrong.
        CodeExpiredError: The live challenge expired, was already used, or
            the candidate belongs to a superseded challenge.
        TooManyAttemptsError: The live challenge ran out of attempts.
    """
    key = normalize_key(key)
    candidate = candidate.strip()
    history = await _history(db, key, purpose)

    if not history:
        raise InvalidCodeError("No verification code found. Please request a new code.")

    live, older = history[0], history[1:]

    # A racing issuance may have left an older row ISSUED; the newest wins
    for challenge in older:
        if challenge.status == OtpStatus.ISSUED:
            challenge.status = OtpStatus.SUPERSEDED

    if live.status != OtpStatus.ISSUED:
        logger.info("otp_rejected", purpose=purpose.value, key=key, reason=live.status.value)
        if live.status == OtpStatus.VERIFIED:
            raise CodeExpiredError("Verification code has already been used. Please request a new code.")
        raise CodeExpiredError()

    now = _utcnow()
    if now >= _as_utc(live.expires_at):
        live.status = OtpStatus.EXPIRED
        logger.info("otp_rejected", purpose=purpose.value, key=key, reason="expired")
        raise CodeExpiredError()

    if live.failed_attempts >= settings.OTP_MAX_ATTEMPTS:
        logger.warning("otp_rejected", purpose=purpose.value, key=key, reason="attempts_exhausted")
        raise TooManyAttemptsError()

    if not hmac.compare_digest(live.code, candidate):
        if any(hmac.compare_digest(c.code, candidate) for c in older if c.status == OtpStatus.SUPERSEDED):
            logger.info("otp_rejected", purpose=purpose.value, key=key, reason="superseded")
            raise CodeExpiredError("This code was replaced by a newer one. Use the latest code sent to you.")
        live.failed_attempts += 1
        logger.info(
            "otp_rejected",
            purpose=purpose.value,
            key=key,
            reason="mismatch",
            failed_attempts=live.failed_attempts,
        )
        raise InvalidCodeError()

    if consume:
        live.status = OtpStatus.VERIFIED
        live.consumed_at = now
        logger.info("otp_verified", purpose=purpose.value, key=key)

    await db.flush()
    return live


async def latest_challenge(db: AsyncSession, key: str, purpose: OtpPurpose) -> OtpChallenge | None:
    """The newest challenge for ``key`` in any state, or None."""
    history = await _history(db, normalize_key(key), purpose)
    return history[0] if history else None
