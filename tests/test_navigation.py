"""
Tests for permission-driven navigation.

These tests verify:
  - Sections appear only when a guard permission is held
  - Section titles, and item titles within a section, are unique
  - Sections sharing a title merge into the first one's position and link
  - Quick actions follow the same permission filter
"""

import itertools

import pytest

from theycare.models.user import Role
from theycare.navigation import (
    NavItem,
    NavSection,
    merge_sections,
    navigation_for,
    quick_actions_for,
)
from theycare.permissions import Permission, permissions_for


P = Permission


def titles(sections):
    return [s.title for s in sections]


def section(sections, title):
    return next(s for s in sections if s.title == title)


ROLE_SETS = [[r] for r in Role] + [list(pair) for pair in itertools.combinations(Role, 2)]


class TestUniqueness:

    @pytest.mark.parametrize("roles", ROLE_SETS, ids=lambda rs: "+".join(r.value for r in rs))
    def test_titles_are_unique(self, roles):
        sections = navigation_for(permissions_for(roles))
        assert len(titles(sections)) == len(set(titles(sections)))
        for s in sections:
            item_titles = [i.title for i in s.items]
            assert len(item_titles) == len(set(item_titles))

    def test_system_admin_sees_one_announcements_entry(self):
        sections = navigation_for(permissions_for([Role.SYSTEM_ADMIN]))
        announcements = [s for s in sections if s.title == "Announcements"]
        assert len(announcements) == 1
        # The first contribution keeps its link
        assert announcements[0].url == "/admin/announcements"


class TestVisibility:

    def test_bhw_navigation(self):
        sections = navigation_for(permissions_for([Role.BHW]))
        assert "Health Services" in titles(sections)
        assert "User Management" not in titles(sections)
        assert "Daycare Management" not in titles(sections)
        assert titles(sections)[0] == "Dashboard"

    def test_visitor_navigation(self):
        sections = navigation_for(permissions_for([Role.VISITOR]))
        assert titles(sections) == ["Dashboard", "Events", "Announcements"]
        events = section(sections, "Events")
        assert [i.title for i in events.items] == ["Browse Events"]
        assert section(sections, "Announcements").url == "/announcements"

    def test_items_filtered_individually(self):
        """A captain manages users but not roles."""
        sections = navigation_for(permissions_for([Role.BARANGAY_CAPTAIN]))
        users = section(sections, "User Management")
        assert [i.title for i in users.items] == ["All Users", "Pending Approvals"]

    def test_no_permissions_no_sections(self):
        assert navigation_for(frozenset()) == []

    def test_every_item_permission_is_held(self):
        held = permissions_for([Role.DAYCARE_TEACHER, Role.PARENT_RESIDENT])
        for s in navigation_for(held):
            assert s.guard & held
            for item in s.items:
                assert item.permission in held


class TestMerge:

    def test_health_statistics_lands_in_reports(self):
        """The BHW statistics link joins the main Reports & Analytics section."""
        sections = navigation_for(permissions_for([Role.BHW]))
        reports = section(sections, "Reports & Analytics")
        assert reports.url == "/reports"
        assert [i.title for i in reports.items] == [
            "Dashboard",
            "Health Reports",
            "Health Statistics",
        ]

    def test_later_contribution_wins_for_same_item_title(self):
        table = [
            NavSection("Tools", "/tools", frozenset({P.SYSTEM_SETTINGS}),
                       (NavItem("Settings", "/old", P.SYSTEM_SETTINGS),
                        NavItem("Backup", "/backup", P.SYSTEM_SETTINGS))),
            NavSection("Other", "/other", frozenset({P.SYSTEM_SETTINGS})),
            NavSection("Tools", "/tools-2", frozenset({P.AUDIT_LOGS}),
                       (NavItem("Settings", "/new", P.SYSTEM_SETTINGS),
                        NavItem("Logs", "/logs", P.SYSTEM_SETTINGS))),
        ]
        merged = merge_sections(table)

        assert titles(merged) == ["Tools", "Other"]
        tools = merged[0]
        assert tools.url == "/tools"
        assert tools.guard == {P.SYSTEM_SETTINGS, P.AUDIT_LOGS}
        assert [(i.title, i.url) for i in tools.items] == [
            ("Settings", "/new"),
            ("Backup", "/backup"),
            ("Logs", "/logs"),
        ]

    def test_navigation_for_uses_given_table(self):
        table = [
            NavSection("Only", "/only", frozenset({P.PUBLIC_EVENTS})),
            NavSection("Hidden", "/hidden", frozenset({P.AUDIT_LOGS})),
        ]
        assert titles(navigation_for({P.PUBLIC_EVENTS}, table)) == ["Only"]


class TestQuickActions:

    def test_bhw_quick_actions(self):
        names = [a.name for a in quick_actions_for(permissions_for([Role.BHW]))]
        assert "Add Patient" in names
        assert "Record Immunization" in names
        assert "Approve User" not in names

    def test_visitor_quick_actions(self):
        names = [a.name for a in quick_actions_for(permissions_for([Role.VISITOR]))]
        assert names == ["Browse Events"]


class TestNavigationEndpoint:

    async def test_navigation_endpoint(self, client, make_user, login):
        await make_user("parent@example.com", [Role.PARENT_RESIDENT])
        token = await login("parent@example.com")
        response = await client.get(
            "/auth/navigation", headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        data = response.json()
        assert "Daycare Services" in [s["title"] for s in data["sections"]]
        assert "Register Child" in [a["name"] for a in data["quick_actions"]]
