"""
Kernel Data Models

SQLAlchemy models for users, courses, enrollments, certificates and the
audit log.
"""

from bootcamp.kernel.models.base import Base, TimestampMixin, enum_value, generate_uuid, utcnow
from bootcamp.kernel.models.user import COLLEGE_ROLES, OPERATOR_ROLES, RefreshToken, User, UserRole
from bootcamp.kernel.models.course import Course
from bootcamp.kernel.models.enrollment import (
    CompletedLesson,
    Enrollment,
    EnrollmentStatus,
    PaymentStatus,
)
from bootcamp.kernel.models.certificate import (
    ACTIVE_CERTIFICATE_STATUSES,
    Certificate,
    CertificateHistoryEntry,
    CertificateStatus,
)
from bootcamp.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "enum_value",
    "generate_uuid",
    "utcnow",
    # User
    "User",
    "UserRole",
    "RefreshToken",
    "COLLEGE_ROLES",
    "OPERATOR_ROLES",
    # Course
    "Course",
    # Enrollment
    "Enrollment",
    "EnrollmentStatus",
    "PaymentStatus",
    "CompletedLesson",
    # Certificate
    "Certificate",
    "CertificateStatus",
    "CertificateHistoryEntry",
    "ACTIVE_CERTIFICATE_STATUSES",
    # Event Log
    "EventLog",
    "EventType",
]
