"""
Pydantic schemas for API request/response validation.
"""

from bootcamp.schemas.auth import (
    UserCreate,
    UserLogin,
    UserResponse,
    TokenResponse,
    RefreshTokenRequest,
    LogoutRequest,
    RoleChangeRequest,
)
from bootcamp.schemas.course import (
    ModuleSchema,
    CourseCreate,
    CurriculumUpdate,
    CourseResponse,
)
from bootcamp.schemas.enrollment import (
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    LessonCompletionRequest,
    ProgressResponse,
)
from bootcamp.schemas.certificate import (
    CertificateRequest,
    CertificateDecisionRequest,
    CertificateRevokeRequest,
    CertificateReissueRequest,
    CertificateResponse,
    CertificateApplyResponse,
    CertificateHistoryResponse,
)
from bootcamp.schemas.access import AccessDecisionResponse, LandingResponse
from bootcamp.schemas.common import (
    PaginatedResponse,
    ErrorResponse,
    SuccessResponse,
    HealthResponse,
)

__all__ = [
    # Auth
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "RefreshTokenRequest",
    "LogoutRequest",
    "RoleChangeRequest",
    # Course
    "ModuleSchema",
    "CourseCreate",
    "CurriculumUpdate",
    "CourseResponse",
    # Enrollment
    "EnrollmentCreate",
    "EnrollmentResponse",
    "EnrollmentStatusUpdate",
    "LessonCompletionRequest",
    "ProgressResponse",
    # Certificate
    "CertificateRequest",
    "CertificateDecisionRequest",
    "CertificateRevokeRequest",
    "CertificateReissueRequest",
    "CertificateResponse",
    "CertificateApplyResponse",
    "CertificateHistoryResponse",
    # Access
    "AccessDecisionResponse",
    "LandingResponse",
    # Common
    "PaginatedResponse",
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
]
