"""
Domain errors for enrollment, progress and certificate decisions.

Every error is a ValueError so service callers that only know the generic
contract keep working. The API layer maps ``status_code`` and ``code`` onto
the HTTP response.
"""

from typing import Any, Optional


class EnrollmentCoreError(ValueError):
    """Base class for typed, caller-facing failures."""

    status_code: int = 400
    code: str = "enrollment_core_error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.context = context

    @property
    def detail(self) -> str:
        return str(self)


class InvalidTopicReference(EnrollmentCoreError):
    """Topic is not part of the current course curriculum."""

    status_code = 400
    code = "invalid_topic_reference"


class NotEligible(EnrollmentCoreError):
    """Enrollment is not complete yet."""

    status_code = 400
    code = "not_eligible"


class AlreadyEnrolled(EnrollmentCoreError):
    """Already enrolled in this course."""

    status_code = 409
    code = "already_enrolled"


class AlreadyRequested(EnrollmentCoreError):
    """A certificate request is already pending for this enrollment."""

    status_code = 409
    code = "already_requested"

    def __init__(self, message: Optional[str] = None, certificate: Any = None, **context: Any):
        super().__init__(message, **context)
        self.certificate = certificate


class TerminalState(EnrollmentCoreError):
    """Certificate has already been issued or revoked."""

    status_code = 409
    code = "terminal_state"


class InvalidTransition(EnrollmentCoreError):
    """Cannot move to the requested state."""

    status_code = 409
    code = "invalid_transition"


class EnrollmentHasCertificates(EnrollmentCoreError):
    """Enrollment is referenced by a certificate and cannot be deleted."""

    status_code = 409
    code = "enrollment_has_certificates"


class Forbidden(EnrollmentCoreError):
    """Not authorized to perform this action."""

    status_code = 403
    code = "forbidden"


class CourseNotFound(EnrollmentCoreError):
    """Course not found."""

    status_code = 404
    code = "course_not_found"


class EnrollmentNotFound(EnrollmentCoreError):
    """Enrollment not found."""

    status_code = 404
    code = "enrollment_not_found"


class CertificateNotFound(EnrollmentCoreError):
    """Certificate not found."""

    status_code = 404
    code = "certificate_not_found"


class InvalidDecision(EnrollmentCoreError):
    """Decision payload is missing a required field."""

    status_code = 400
    code = "invalid_decision"


class InvalidCurriculum(EnrollmentCoreError):
    """Curriculum is malformed."""

    status_code = 400
    code = "invalid_curriculum"


class CourseSlugTaken(EnrollmentCoreError):
    """A course with this slug already exists."""

    status_code = 409
    code = "course_slug_taken"
