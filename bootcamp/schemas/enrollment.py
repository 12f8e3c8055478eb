"""
Enrollment and progress schemas.
"""

import uuid
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bootcamp.kernel.models.enrollment import EnrollmentStatus


class EnrollmentCreate(BaseModel):
    """Enroll by course id or by course slug."""

    course_id: Optional[uuid.UUID] = None
    course_slug: Optional[str] = None

    @model_validator(mode="after")
    def one_course_reference(self) -> "EnrollmentCreate":
        if self.course_id is None and not self.course_slug:
            raise ValueError("course_id or course_slug is required")
        return self


class EnrollmentResponse(BaseModel):
    """Enrollment. ``progress`` is server-derived and read-only."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    course_id: uuid.UUID
    status: str
    progress: int
    payment_status: str
    created_at: datetime
    updated_at: datetime


class EnrollmentStatusUpdate(BaseModel):
    """Requested status change. Progress is server-derived and not accepted here."""

    model_config = ConfigDict(extra="forbid")

    status: EnrollmentStatus


class LessonCompletionRequest(BaseModel):
    module_index: int = Field(..., ge=0)
    topic: str = Field(..., min_length=1)


class ProgressResponse(BaseModel):
    enrollment_id: uuid.UUID
    per_module_percent: Dict[int, int]
    overall_percent: int
    completed_topics: int
    total_topics: int
    is_complete: bool
