"""
Course model - owns the curriculum that progress is measured against.
"""

import uuid
from typing import List

from sqlalchemy import Boolean, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bootcamp.kernel.models.base import Base, TimestampMixin, generate_uuid


class Course(Base, TimestampMixin):
    """
    A bootcamp course.

    ``curriculum`` is an ordered JSON list of modules, each shaped like
    ``{"title": str, "week": int, "topics": [str, ...], "project": str}``.
    Only ``topics`` takes part in completion; the other keys are display data.
    """

    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    curriculum: Mapped[List[dict]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Course {self.slug}>"
