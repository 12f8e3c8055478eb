"""
Kernel Layer

Foundational components shared by the engines and orchestration layers:
- Persistence models (users, courses, enrollments, certificates)
- Immutable Event Log (all mutations logged)
- Identity Core (user accounts, roles)
- Access Guard (dashboard routing decisions)

Invariants:
- All state changes logged before commit; logs immutable
- Certificate history is append-only
"""

from bootcamp.kernel.models import (
    User,
    UserRole,
    Course,
    Enrollment,
    EnrollmentStatus,
    CompletedLesson,
    Certificate,
    CertificateStatus,
    CertificateHistoryEntry,
    EventLog,
    EventType,
)

__all__ = [
    # User & Identity
    "User",
    "UserRole",
    # Course & Enrollment
    "Course",
    "Enrollment",
    "EnrollmentStatus",
    "CompletedLesson",
    # Certificates
    "Certificate",
    "CertificateStatus",
    "CertificateHistoryEntry",
    # Event Log
    "EventLog",
    "EventType",
]
