"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all() runs, and so other modules can import from
theycare.models directly.
"""

from theycare.models.user import User, UserRoleAssignment, Role, AccountStatus  # noqa: F401
from theycare.models.otp_challenge import OtpChallenge, OtpPurpose, OtpStatus  # noqa: F401
from theycare.models.audit_log import AuditLog  # noqa: F401
