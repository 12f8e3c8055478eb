"""
Enrollment models - a student's registration in a course and the lessons
they have completed.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from bootcamp.kernel.models.base import Base, TimestampMixin, generate_uuid


class EnrollmentStatus(str, Enum):
    ENROLLED = "enrolled"
    INTEREST = "interest"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Owned by the payment collaborator; read-only here."""
    NONE = "none"
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class Enrollment(Base, TimestampMixin):
    """
    One user's enrollment in one course.

    ``progress`` is a cache of the computed overall percent. It is rewritten
    after every lesson completion and never taken from client input.
    """

    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=EnrollmentStatus.ENROLLED,
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.NONE,
    )

    __table_args__ = (
        # At most one non-cancelled enrollment per (user, course)
        Index(
            "uq_enrollments_active_user_course",
            "user_id",
            "course_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Enrollment {self.id} user={self.user_id} course={self.course_id}>"


class CompletedLesson(Base):
    """A (module, topic) pair the student has marked complete."""

    __tablename__ = "completed_lessons"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module_index: Mapped[int] = mapped_column(Integer, nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "enrollment_id",
            "module_index",
            "topic",
            name="uq_completed_lessons_enrollment_module_topic",
        ),
    )
