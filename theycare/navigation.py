"""
Permission-driven sidebar navigation.

The portal sidebar is computed, not stored: navigation_for() walks a static,
ordered table of section contributions and keeps what the caller's
permissions allow.

  - A contribution is kept iff the caller holds at least one permission from
    its guard set.
  - Each sub-item is kept individually, guarded by its own permission.
  - Contributions sharing a title collapse into one section. The first one
    keeps its position and link; sub-items are merged by title, a later
    contribution overwrites an earlier item with the same title, and items
    stay in first-seen order.

The merge is what lets several areas feed one section: the health worker
statistics link lands inside "Reports & Analytics", and the public
"Announcements" entry disappears under the admin one for callers who hold
both.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable

from theycare.permissions import Permission


P = Permission


@dataclass(frozen=True)
class NavItem:
    title: str
    url: str
    permission: Permission


@dataclass(frozen=True)
class NavSection:
    title: str
    url: str
    guard: frozenset[Permission]
    items: tuple[NavItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class QuickAction:
    name: str
    url: str
    permission: Permission


def _section(title, url, guard, items=()):
    return NavSection(
        title=title,
        url=url,
        guard=frozenset(guard),
        items=tuple(NavItem(*item) for item in items),
    )


# =============================================================================
# Navigation table (ordered)
# =============================================================================

NAVIGATION: tuple[NavSection, ...] = (
    # Any permission at all earns the dashboard
    _section("Dashboard", "/dashboard", Permission),
    _section(
        "User Management", "/admin/users",
        {P.USER_MANAGEMENT, P.ROLE_MANAGEMENT},
        [
            ("All Users", "/admin/users", P.USER_MANAGEMENT),
            ("Pending Approvals", "/admin/users/pending", P.USER_MANAGEMENT),
            ("Role Management", "/admin/users/roles", P.ROLE_MANAGEMENT),
        ],
    ),
    _section(
        "Reports & Analytics", "/reports",
        {P.REPORTS_DASHBOARD, P.HEALTH_REPORTS, P.DAYCARE_REPORTS, P.SK_REPORTS,
         P.CROSS_MODULE_ANALYTICS},
        [
            ("Dashboard", "/reports", P.REPORTS_DASHBOARD),
            ("Health Reports", "/reports/health", P.HEALTH_REPORTS),
            ("Daycare Reports", "/reports/daycare", P.DAYCARE_REPORTS),
            ("SK Reports", "/reports/sk", P.SK_REPORTS),
            ("Cross-Module Analytics", "/reports/analytics", P.CROSS_MODULE_ANALYTICS),
        ],
    ),
    _section("Announcements", "/admin/announcements", {P.ANNOUNCEMENTS}),
    _section(
        "System Settings", "/admin/settings",
        {P.SYSTEM_SETTINGS, P.BACKUP_MANAGEMENT, P.AUDIT_LOGS, P.BROADCAST_MANAGEMENT},
        [
            ("General Settings", "/admin/settings", P.SYSTEM_SETTINGS),
            ("Backup Management", "/admin/settings/backup", P.BACKUP_MANAGEMENT),
            ("Audit Logs", "/admin/settings/audit-logs", P.AUDIT_LOGS),
            ("Notifications", "/admin/settings/notifications", P.BROADCAST_MANAGEMENT),
        ],
    ),
    _section(
        "Health Services", "/health",
        {P.HEALTH_DASHBOARD, P.PATIENT_MANAGEMENT, P.APPOINTMENTS, P.HEALTH_RECORDS,
         P.VACCINATIONS},
        [
            ("Dashboard", "/health", P.HEALTH_DASHBOARD),
            ("Patient Management", "/health/patients", P.PATIENT_MANAGEMENT),
            ("Appointments", "/health/appointments", P.APPOINTMENTS),
            ("Immunization Cards", "/health/records", P.HEALTH_RECORDS),
            ("Vaccinations", "/health/vaccinations", P.VACCINATIONS),
        ],
    ),
    _section(
        "Reports & Analytics", "/reports/health/stats",
        {P.HEALTH_STATS},
        [("Health Statistics", "/reports/health/stats", P.HEALTH_STATS)],
    ),
    _section(
        "Daycare Management", "/daycare",
        {P.DAYCARE_DASHBOARD, P.STUDENT_REGISTRATIONS, P.ATTENDANCE_TRACKING,
         P.PROGRESS_REPORTS, P.LEARNING_MATERIALS, P.DAYCARE_CERTIFICATES},
        [
            ("Dashboard", "/daycare", P.DAYCARE_DASHBOARD),
            ("Registrations", "/daycare/registrations", P.STUDENT_REGISTRATIONS),
            ("Attendance", "/daycare/attendance", P.ATTENDANCE_TRACKING),
            ("Progress Reports", "/daycare/progress-reports", P.PROGRESS_REPORTS),
            ("Learning Materials", "/daycare/materials", P.LEARNING_MATERIALS),
            ("Certificates", "/daycare/certificates", P.DAYCARE_CERTIFICATES),
        ],
    ),
    _section(
        "SK Engagement", "/sk",
        {P.SK_DASHBOARD, P.EVENT_MANAGEMENT, P.ATTENDANCE_ANALYTICS, P.SK_ANALYTICS,
         P.SK_CERTIFICATES},
        [
            ("Dashboard", "/sk", P.SK_DASHBOARD),
            ("Event Management", "/sk/events", P.EVENT_MANAGEMENT),
            ("Attendance Tracking", "/sk/attendance", P.ATTENDANCE_ANALYTICS),
            ("Participation Analytics", "/sk/analytics", P.SK_ANALYTICS),
            ("Certificates", "/sk/certificates", P.SK_CERTIFICATES),
        ],
    ),
    _section(
        "My Health Records", "/health/my-records",
        {P.MY_HEALTH_RECORDS},
        [("Immunization Records", "/health/my-records", P.MY_HEALTH_RECORDS)],
    ),
    _section(
        "Daycare Services", "/daycare/registration",
        {P.CHILD_REGISTRATION, P.EDUCATIONAL_RESOURCES},
        [
            ("Child Registration", "/daycare/registration", P.CHILD_REGISTRATION),
            ("My Children's Progress", "/daycare/progress", P.CHILD_REGISTRATION),
            ("Educational Resources", "/daycare/resources", P.EDUCATIONAL_RESOURCES),
        ],
    ),
    _section(
        "Events", "/events",
        {P.EVENT_REGISTRATION, P.MY_EVENT_REGISTRATIONS, P.PUBLIC_EVENTS},
        [
            ("Browse Events", "/events/public", P.PUBLIC_EVENTS),
            ("Event Registration", "/sk/event-registration", P.EVENT_REGISTRATION),
            ("My Registrations", "/events/my-registrations", P.MY_EVENT_REGISTRATIONS),
        ],
    ),
    _section("Announcements", "/announcements", {P.PUBLIC_ANNOUNCEMENTS}),
)


QUICK_ACTIONS: tuple[QuickAction, ...] = (
    QuickAction("Approve User", "/admin/users/pending", P.USER_MANAGEMENT),
    QuickAction("View Reports", "/reports", P.REPORTS_DASHBOARD),
    QuickAction("System Backup", "/admin/settings/backup", P.BACKUP_MANAGEMENT),
    QuickAction("Add Patient", "/health/patients", P.PATIENT_MANAGEMENT),
    QuickAction("Schedule Appointment", "/health/appointments", P.APPOINTMENTS),
    QuickAction("Record Immunization", "/health/records", P.VACCINATIONS),
    QuickAction("Mark Attendance", "/daycare/attendance", P.ATTENDANCE_TRACKING),
    QuickAction("Upload Materials", "/daycare/materials", P.LEARNING_MATERIALS),
    QuickAction("Progress Report", "/daycare/progress-reports", P.PROGRESS_REPORTS),
    QuickAction("Create Event", "/sk/events", P.EVENT_MANAGEMENT),
    QuickAction("Track Attendance", "/sk/attendance", P.ATTENDANCE_ANALYTICS),
    QuickAction("Register Child", "/daycare/registration", P.CHILD_REGISTRATION),
    QuickAction("Browse Events", "/events/public", P.PUBLIC_EVENTS),
)


def merge_sections(sections: Iterable[NavSection]) -> list[NavSection]:
    """
    Collapse sections that share a title.

    The first section with a title keeps its position, link and guard. Its
    items are merged with every later namesake's: keyed by item title, last
    write wins, first-seen order is kept.
    """
    merged: dict[str, NavSection] = {}
    for section in sections:
        base = merged.get(section.title, section)
        items = {item.title: item for item in base.items} if base is not section else {}
        for item in section.items:
            items[item.title] = item
        merged[section.title] = replace(
            base,
            guard=base.guard | section.guard,
            items=tuple(items.values()),
        )
    return list(merged.values())


def navigation_for(
    permissions: Iterable[Permission],
    table: Iterable[NavSection] = NAVIGATION,
) -> list[NavSection]:
    """Build the caller's sidebar from their effective permissions."""
    held = frozenset(permissions)
    visible = []
    for section in table:
        if not section.guard & held:
            continue
        visible.append(replace(
            section,
            items=tuple(item for item in section.items if item.permission in held),
        ))
    return merge_sections(visible)


def quick_actions_for(permissions: Iterable[Permission]) -> list[QuickAction]:
    """Quick-action shortcuts, deduplicated by name (last write wins)."""
    held = frozenset(permissions)
    actions: dict[str, QuickAction] = {}
    for action in QUICK_ACTIONS:
        if action.permission in held:
            actions[action.name] = action
    return list(actions.values())
