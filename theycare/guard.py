"""
Route guard — what the client shell shows for a protected view.

evaluate() is a pure predicate over an AuthContext:

    loading               → WAITING   neutral spinner, neither content nor redirect
    no valid session      → REDIRECT  to the login page
    status != ACTIVE      → BLOCKED   "Account Pending Approval" naming the status
    missing permission    → DENIED
    otherwise             → ALLOW

A blocked account is an expected state, not an error. The same decisions
back the FastAPI dependencies in theycare.dependencies, which raise the
matching domain errors instead of returning a decision.
"""

import enum
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from theycare.context import AuthContext
from theycare.models.user import AccountStatus
from theycare.permissions import Permission

logger = structlog.get_logger(__name__)

LOGIN_PATH = "/login"

BLOCKED_TITLE = "Account Pending Approval"


class GuardOutcome(str, enum.Enum):
    WAITING = "waiting"
    REDIRECT = "redirect"
    BLOCKED = "blocked"
    DENIED = "denied"
    ALLOW = "allow"


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    redirect_to: str | None = None
    title: str | None = None
    message: str | None = None
    status: AccountStatus | None = None

    @property
    def renders_content(self) -> bool:
        return self.outcome == GuardOutcome.ALLOW


WAITING = GuardDecision(GuardOutcome.WAITING)


def blocked_message(status: AccountStatus) -> str:
    return (
        f"Your account is currently {status.value.lower()}. Please wait for an "
        "administrator to activate your account."
    )


def evaluate(
    context: AuthContext | None,
    *,
    loading: bool = False,
    required: Permission | None = None,
) -> GuardDecision:
    """Decide what a protected view renders for ``context``."""
    if loading:
        return WAITING

    if context is None:
        return GuardDecision(GuardOutcome.REDIRECT, redirect_to=LOGIN_PATH)

    if not context.is_active:
        return GuardDecision(
            GuardOutcome.BLOCKED,
            title=BLOCKED_TITLE,
            message=blocked_message(context.status),
            status=context.status,
        )

    if required is not None and not context.can(required):
        return GuardDecision(
            GuardOutcome.DENIED,
            message="You do not have access to this page",
            status=context.status,
        )

    return GuardDecision(GuardOutcome.ALLOW, status=context.status)


class RouteGuard:
    """
    Stateful guard for one protected view.

    Starts in WAITING. refresh() awaits the session lookup and only then
    replaces the decision, so a refresh cancelled mid-flight (navigation
    changed, view torn down) leaves the previous decision untouched.
    """

    def __init__(
        self,
        load_context: Callable[[], Awaitable[AuthContext | None]],
        required: Permission | None = None,
    ):
        self._load_context = load_context
        self.required = required
        self.decision: GuardDecision = WAITING

    async def refresh(self) -> GuardDecision:
        context = await self._load_context()
        decision = evaluate(context, required=self.required)
        self.decision = decision
        if decision.outcome != GuardOutcome.ALLOW:
            logger.info(
                "route_guard_rejected",
                outcome=decision.outcome.value,
                user_id=str(context.user_id) if context else None,
            )
        return decision
