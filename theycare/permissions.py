"""
Permissions and the role → permission table.

This defines WHAT each role may do. A user's effective permissions are the
union over every role they hold; nothing else (time of day, the resource
being touched) is consulted. Navigation building lives in navigation.py and
request gating in dependencies.py — both start from permissions_for().
"""

import enum
from typing import Iterable

from theycare.exceptions import InvalidRoleSetError
from theycare.models.user import Role


class Permission(str, enum.Enum):
    """Closed set of capability tags checked throughout the portal."""

    # Administrative
    ADMIN_DASHBOARD = "ADMIN_DASHBOARD"
    USER_MANAGEMENT = "USER_MANAGEMENT"
    ROLE_MANAGEMENT = "ROLE_MANAGEMENT"
    SYSTEM_SETTINGS = "SYSTEM_SETTINGS"
    AUDIT_LOGS = "AUDIT_LOGS"
    BACKUP_MANAGEMENT = "BACKUP_MANAGEMENT"
    ANNOUNCEMENTS = "ANNOUNCEMENTS"
    BROADCAST_MANAGEMENT = "BROADCAST_MANAGEMENT"

    # Health services
    HEALTH_DASHBOARD = "HEALTH_DASHBOARD"
    PATIENT_MANAGEMENT = "PATIENT_MANAGEMENT"
    APPOINTMENTS = "APPOINTMENTS"
    HEALTH_RECORDS = "HEALTH_RECORDS"
    VACCINATIONS = "VACCINATIONS"
    MY_HEALTH_RECORDS = "MY_HEALTH_RECORDS"

    # Daycare services
    DAYCARE_DASHBOARD = "DAYCARE_DASHBOARD"
    CHILD_REGISTRATION = "CHILD_REGISTRATION"
    STUDENT_REGISTRATIONS = "STUDENT_REGISTRATIONS"
    ATTENDANCE_TRACKING = "ATTENDANCE_TRACKING"
    PROGRESS_REPORTS = "PROGRESS_REPORTS"
    LEARNING_MATERIALS = "LEARNING_MATERIALS"
    EDUCATIONAL_RESOURCES = "EDUCATIONAL_RESOURCES"
    DAYCARE_CERTIFICATES = "DAYCARE_CERTIFICATES"

    # SK engagement
    SK_DASHBOARD = "SK_DASHBOARD"
    EVENT_MANAGEMENT = "EVENT_MANAGEMENT"
    EVENT_REGISTRATION = "EVENT_REGISTRATION"
    ATTENDANCE_ANALYTICS = "ATTENDANCE_ANALYTICS"
    SK_ANALYTICS = "SK_ANALYTICS"
    MY_EVENT_REGISTRATIONS = "MY_EVENT_REGISTRATIONS"
    SK_CERTIFICATES = "SK_CERTIFICATES"

    # Reports & analytics
    REPORTS_DASHBOARD = "REPORTS_DASHBOARD"
    HEALTH_REPORTS = "HEALTH_REPORTS"
    DAYCARE_REPORTS = "DAYCARE_REPORTS"
    SK_REPORTS = "SK_REPORTS"
    CROSS_MODULE_ANALYTICS = "CROSS_MODULE_ANALYTICS"
    HEALTH_STATS = "HEALTH_STATS"

    # Public
    PUBLIC_ANNOUNCEMENTS = "PUBLIC_ANNOUNCEMENTS"
    PUBLIC_EVENTS = "PUBLIC_EVENTS"


P = Permission

_PUBLIC = {P.PUBLIC_ANNOUNCEMENTS, P.PUBLIC_EVENTS}


# =============================================================================
# Role → permission table
# =============================================================================

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SYSTEM_ADMIN: frozenset(Permission),
    Role.BARANGAY_CAPTAIN: frozenset({
        P.ADMIN_DASHBOARD, P.USER_MANAGEMENT, P.ANNOUNCEMENTS, P.BROADCAST_MANAGEMENT,
        P.HEALTH_DASHBOARD, P.PATIENT_MANAGEMENT, P.APPOINTMENTS, P.HEALTH_RECORDS,
        P.DAYCARE_DASHBOARD, P.STUDENT_REGISTRATIONS, P.ATTENDANCE_TRACKING, P.PROGRESS_REPORTS,
        P.SK_DASHBOARD, P.EVENT_MANAGEMENT, P.ATTENDANCE_ANALYTICS, P.SK_ANALYTICS,
        P.REPORTS_DASHBOARD, P.HEALTH_REPORTS, P.DAYCARE_REPORTS, P.SK_REPORTS,
        P.CROSS_MODULE_ANALYTICS,
    }),
    Role.BARANGAY_OFFICIAL: frozenset({
        P.ADMIN_DASHBOARD, P.USER_MANAGEMENT, P.ANNOUNCEMENTS,
        P.HEALTH_DASHBOARD, P.PATIENT_MANAGEMENT, P.APPOINTMENTS,
        P.DAYCARE_DASHBOARD, P.STUDENT_REGISTRATIONS,
        P.SK_DASHBOARD, P.EVENT_MANAGEMENT,
        P.REPORTS_DASHBOARD, P.HEALTH_REPORTS, P.DAYCARE_REPORTS, P.SK_REPORTS,
    }),
    Role.BHW: frozenset({
        P.HEALTH_DASHBOARD, P.PATIENT_MANAGEMENT, P.APPOINTMENTS, P.HEALTH_RECORDS, P.VACCINATIONS,
        P.REPORTS_DASHBOARD, P.HEALTH_REPORTS, P.HEALTH_STATS,
    }),
    Role.BHW_COORDINATOR: frozenset({
        P.USER_MANAGEMENT,
        P.HEALTH_DASHBOARD, P.PATIENT_MANAGEMENT, P.APPOINTMENTS, P.HEALTH_RECORDS, P.VACCINATIONS,
        P.REPORTS_DASHBOARD, P.HEALTH_REPORTS, P.HEALTH_STATS, P.CROSS_MODULE_ANALYTICS,
    }),
    Role.DAYCARE_STAFF: frozenset({
        P.DAYCARE_DASHBOARD, P.STUDENT_REGISTRATIONS, P.ATTENDANCE_TRACKING, P.LEARNING_MATERIALS,
        P.REPORTS_DASHBOARD, P.DAYCARE_REPORTS,
    }),
    Role.DAYCARE_TEACHER: frozenset({
        P.DAYCARE_DASHBOARD, P.STUDENT_REGISTRATIONS, P.ATTENDANCE_TRACKING, P.PROGRESS_REPORTS,
        P.LEARNING_MATERIALS, P.EDUCATIONAL_RESOURCES, P.DAYCARE_CERTIFICATES,
        P.REPORTS_DASHBOARD, P.DAYCARE_REPORTS,
    }),
    Role.SK_OFFICER: frozenset({
        P.SK_DASHBOARD, P.EVENT_MANAGEMENT, P.EVENT_REGISTRATION, P.ATTENDANCE_ANALYTICS,
        P.REPORTS_DASHBOARD, P.SK_REPORTS,
    }),
    Role.SK_CHAIRMAN: frozenset({
        P.USER_MANAGEMENT,
        P.SK_DASHBOARD, P.EVENT_MANAGEMENT, P.EVENT_REGISTRATION, P.ATTENDANCE_ANALYTICS,
        P.SK_ANALYTICS, P.SK_CERTIFICATES,
        P.REPORTS_DASHBOARD, P.SK_REPORTS, P.CROSS_MODULE_ANALYTICS,
    }),
    Role.PARENT_RESIDENT: frozenset({
        P.MY_HEALTH_RECORDS,
        P.CHILD_REGISTRATION, P.EDUCATIONAL_RESOURCES,
        P.EVENT_REGISTRATION, P.MY_EVENT_REGISTRATIONS,
        *_PUBLIC,
    }),
    Role.PATIENT: frozenset({P.MY_HEALTH_RECORDS, *_PUBLIC}),
    Role.VISITOR: frozenset(_PUBLIC),
}

# Permissions that let a holder manage other accounts. A status change is
# refused when the target holds any of these that the actor does not.
ADMINISTRATIVE_PERMISSIONS: frozenset[Permission] = frozenset({
    P.ADMIN_DASHBOARD,
    P.USER_MANAGEMENT,
    P.ROLE_MANAGEMENT,
    P.SYSTEM_SETTINGS,
    P.AUDIT_LOGS,
    P.BACKUP_MANAGEMENT,
})

# Roles a person may request for themselves at registration. Staff and
# officer roles are granted by an administrator after approval.
SELF_SERVICE_ROLES: frozenset[Role] = frozenset({
    Role.VISITOR,
    Role.PARENT_RESIDENT,
    Role.PATIENT,
})

ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.SYSTEM_ADMIN: "System Administrator",
    Role.BARANGAY_CAPTAIN: "Barangay Captain",
    Role.BARANGAY_OFFICIAL: "Barangay Official",
    Role.BHW: "Barangay Health Worker",
    Role.BHW_COORDINATOR: "BHW Coordinator",
    Role.DAYCARE_STAFF: "Daycare Staff",
    Role.DAYCARE_TEACHER: "Daycare Teacher",
    Role.SK_OFFICER: "SK Officer",
    Role.SK_CHAIRMAN: "SK Chairman",
    Role.PARENT_RESIDENT: "Parent/Resident",
    Role.PATIENT: "Patient",
    Role.VISITOR: "Visitor",
}


def permissions_for(roles: Iterable[Role | str]) -> frozenset[Permission]:
    """
    Union of the configured permissions of every role in ``roles``.

    Roles missing from the table, including unknown strings from an old
    token, contribute nothing: the lookup fails closed.

    Raises:
        InvalidRoleSetError: If ``roles`` is empty. An empty set is a data
            error upstream, never an implicit VISITOR.
    """
    roles = list(roles)
    if not roles:
        raise InvalidRoleSetError()

    granted: set[Permission] = set()
    for role in roles:
        try:
            granted |= ROLE_PERMISSIONS.get(Role(role), frozenset())
        except ValueError:
            continue
    return frozenset(granted)


def authorize(required: Permission, caller_permissions: Iterable[Permission]) -> bool:
    """Allow iff ``required`` is one of the caller's permissions."""
    return required in set(caller_permissions)
