"""
Tests for the route guard.

These tests verify:
  - Loading shows the neutral waiting state, never content or a redirect
  - No session redirects to the login page
  - Any non-ACTIVE status is blocked, naming the status
  - Missing permission is denied; otherwise content is allowed
  - A cancelled refresh leaves the previous decision in place
"""

import asyncio
import uuid

import pytest

from theycare.context import AuthContext
from theycare.guard import (
    BLOCKED_TITLE,
    LOGIN_PATH,
    WAITING,
    GuardOutcome,
    RouteGuard,
    evaluate,
)
from theycare.models.user import AccountStatus, Role
from theycare.permissions import Permission


def context(roles=(Role.BHW,), status=AccountStatus.ACTIVE) -> AuthContext:
    return AuthContext.build(uuid.uuid4(), "user@example.com", roles, status)


class TestEvaluate:

    def test_loading_waits(self):
        for ctx in (None, context(), context(status=AccountStatus.PENDING)):
            decision = evaluate(ctx, loading=True)
            assert decision is WAITING
            assert not decision.renders_content
            assert decision.redirect_to is None

    def test_no_session_redirects(self):
        decision = evaluate(None)
        assert decision.outcome == GuardOutcome.REDIRECT
        assert decision.redirect_to == LOGIN_PATH

    @pytest.mark.parametrize(
        "status",
        [AccountStatus.PENDING, AccountStatus.SUSPENDED, AccountStatus.INACTIVE],
    )
    def test_inactive_is_blocked(self, status):
        decision = evaluate(context(status=status))
        assert decision.outcome == GuardOutcome.BLOCKED
        assert not decision.renders_content
        assert decision.title == BLOCKED_TITLE
        assert status.value.lower() in decision.message
        assert decision.status == status

    def test_pending_admin_is_still_blocked(self):
        """Status is checked before permissions: roles never bypass approval."""
        decision = evaluate(
            context([Role.SYSTEM_ADMIN], AccountStatus.PENDING),
            required=Permission.USER_MANAGEMENT,
        )
        assert decision.outcome == GuardOutcome.BLOCKED

    def test_active_allowed(self):
        decision = evaluate(context())
        assert decision.outcome == GuardOutcome.ALLOW
        assert decision.renders_content

    def test_missing_permission_denied(self):
        decision = evaluate(context(), required=Permission.USER_MANAGEMENT)
        assert decision.outcome == GuardOutcome.DENIED
        assert not decision.renders_content

    def test_held_permission_allowed(self):
        decision = evaluate(context(), required=Permission.VACCINATIONS)
        assert decision.outcome == GuardOutcome.ALLOW


class TestRouteGuard:

    async def test_starts_waiting(self):
        async def load():
            return context()

        guard = RouteGuard(load)
        assert guard.decision is WAITING

    async def test_refresh_sets_decision(self):
        async def load():
            return context(status=AccountStatus.PENDING)

        guard = RouteGuard(load)
        decision = await guard.refresh()
        assert decision.outcome == GuardOutcome.BLOCKED
        assert guard.decision == decision

    async def test_refresh_with_required_permission(self):
        async def load():
            return context([Role.VISITOR])

        guard = RouteGuard(load, required=Permission.AUDIT_LOGS)
        assert (await guard.refresh()).outcome == GuardOutcome.DENIED

    async def test_cancelled_refresh_keeps_previous_decision(self):
        started = asyncio.Event()

        async def slow_load():
            started.set()
            await asyncio.sleep(10)
            return context(status=AccountStatus.SUSPENDED)

        guard = RouteGuard(slow_load)
        task = asyncio.create_task(guard.refresh())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert guard.decision is WAITING

    async def test_cancelled_refresh_after_allow(self):
        results = [context(), None]
        gate = asyncio.Event()

        async def load():
            ctx = results.pop(0)
            if ctx is None:
                await gate.wait()
            return ctx

        guard = RouteGuard(load)
        assert (await guard.refresh()).outcome == GuardOutcome.ALLOW

        task = asyncio.create_task(guard.refresh())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert guard.decision.outcome == GuardOutcome.ALLOW
