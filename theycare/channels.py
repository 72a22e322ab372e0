"""
OTP dispatch channels.

A channel delivers a one-time code to a destination and reports failure by
raising DispatchFailureError; it never swallows a failed send. Two channels
exist:

  - ConsoleChannel: writes the code to the log. Local development only.
  - TelerivetSmsChannel: sends an SMS through the Telerivet REST API.

Routes receive the configured channel through the get_otp_channel()
dependency, which tests override with a recording fake.
"""

import re
from typing import Protocol

import httpx
import structlog

from theycare.config import settings
from theycare.exceptions import DispatchFailureError

logger = structlog.get_logger(__name__)

_PH_MOBILE = re.compile(r"^(\+63|0)?9\d{9}$")


def is_valid_philippine_number(phone: str) -> bool:
    """Accept 09XXXXXXXXX, 9XXXXXXXXX and +639XXXXXXXXX."""
    return bool(_PH_MOBILE.match(re.sub(r"[\s\-()]", "", phone)))


def format_philippine_number(phone: str) -> str:
    """Normalise a Philippine mobile number to E.164 (+639XXXXXXXXX)."""
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("63"):
        return f"+{digits}"
    if digits.startswith("0"):
        return f"+63{digits[1:]}"
    return f"+63{digits}"


def otp_message(code: str) -> str:
    return (
        f"Your Gabay Barangay verification code is: {code}. "
        f"This code will expire in {settings.OTP_EXPIRE_MINUTES} minutes."
    )


class OtpChannel(Protocol):
    name: str

    async def send(self, destination: str, message: str) -> None:
        """Deliver ``message`` or raise DispatchFailureError."""
        ...


class ConsoleChannel:
    name = "console"

    async def send(self, destination: str, message: str) -> None:
        logger.warning("otp_console_delivery", destination=destination, message=message)


class TelerivetSmsChannel:
    """
    SMS delivery through Telerivet.

    One POST per code with a bounded timeout and no retries: a failed send
    surfaces to the user, who can ask for a new code.
    """

    name = "telerivet"

    def __init__(
        self,
        api_key: str,
        project_id: str,
        base_url: str = settings.TELERIVET_API_URL,
        timeout: float = settings.OTP_DISPATCH_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.project_id = project_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send(self, destination: str, message: str) -> None:
        if not is_valid_philippine_number(destination):
            raise DispatchFailureError("Invalid Philippine phone number format")

        to_number = format_philippine_number(destination)
        url = f"{self.base_url}/projects/{self.project_id}/messages/send"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                auth=(self.api_key, ""),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    json={"to_number": to_number, "content": message},
                )
        except httpx.HTTPError as exc:
            logger.error("sms_dispatch_error", to_number=to_number, error=str(exc))
            raise DispatchFailureError() from exc

        if response.status_code >= 400:
            logger.error(
                "sms_dispatch_rejected",
                to_number=to_number,
                status_code=response.status_code,
            )
            raise DispatchFailureError()

        logger.info("sms_dispatched", to_number=to_number)


def build_channel(name: str | None = None) -> OtpChannel:
    name = name or settings.OTP_CHANNEL
    if name == "telerivet":
        if not settings.TELERIVET_API_KEY or not settings.TELERIVET_PROJECT_ID:
            raise RuntimeError(
                "Telerivet credentials not configured. "
                "Set TELERIVET_API_KEY and TELERIVET_PROJECT_ID."
            )
        return TelerivetSmsChannel(
            settings.TELERIVET_API_KEY,
            settings.TELERIVET_PROJECT_ID,
            base_url=settings.TELERIVET_API_URL,
            timeout=settings.OTP_DISPATCH_TIMEOUT_SECONDS,
        )
    return ConsoleChannel()


def get_otp_channel() -> OtpChannel:
    """FastAPI dependency returning the configured OTP channel."""
    return build_channel()
