"""Orchestration layer - certificate state machine, course and enrollment services."""

from bootcamp.orchestration.certificate_lifecycle import (
    CertificateAction,
    CertificateLifecycle,
    next_state,
    valid_actions,
)
from bootcamp.orchestration.course_service import CourseService
from bootcamp.orchestration.enrollment_service import EnrollmentService

__all__ = [
    "CertificateAction",
    "CertificateLifecycle",
    "next_state",
    "valid_actions",
    "CourseService",
    "EnrollmentService",
]
