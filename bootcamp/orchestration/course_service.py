"""
Course service - the course and curriculum records progress is measured on.
"""

import re
import uuid
from typing import Any, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bootcamp.engines.progress.curriculum import CurriculumModel
from bootcamp.kernel.errors import CourseNotFound, CourseSlugTaken, InvalidCurriculum
from bootcamp.kernel.events.event_store import EventStore
from bootcamp.kernel.models.course import Course
from bootcamp.kernel.models.event_log import EventType
from bootcamp.kernel.models.user import User
from bootcamp.kernel.permissions.permission_service import PermissionService
from bootcamp.logging_config import get_logger

logger = get_logger(__name__)


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def build_curriculum(raw: Optional[Iterable[Any]]) -> CurriculumModel:
    """Validate raw curriculum JSON; duplicate topics in a module are rejected."""
    try:
        return CurriculumModel.from_raw(raw)
    except (ValidationError, TypeError) as e:
        raise InvalidCurriculum(str(e)) from e


class CourseService:
    """Create and look up courses; edit curricula (admin only)."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)
        self.permissions = PermissionService(session)

    async def get_course(self, course_id: uuid.UUID) -> Course:
        course = await self.session.get(Course, course_id)
        if course is None:
            raise CourseNotFound(course_id=str(course_id))
        return course

    async def get_course_by_slug(self, slug: str) -> Course:
        result = await self.session.execute(select(Course).where(Course.slug == slug))
        course = result.scalar_one_or_none()
        if course is None:
            raise CourseNotFound(slug=slug)
        return course

    async def create_course(
        self,
        title: str,
        actor: User,
        curriculum: Optional[Iterable[Any]] = None,
        slug: Optional[str] = None,
        published: bool = True,
    ) -> Course:
        await self.permissions.require_operator(actor, "user", actor.id, "create_course")
        slug = slugify(slug or title) or uuid.uuid4().hex[:8]
        model = build_curriculum(curriculum)

        existing = await self.session.execute(select(Course.id).where(Course.slug == slug))
        if existing.scalar_one_or_none() is not None:
            raise CourseSlugTaken(slug=slug)

        course = Course(
            title=title.strip(),
            slug=slug,
            curriculum=model.to_raw(),
            published=published,
        )
        self.session.add(course)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise CourseSlugTaken(slug=slug) from e
        await self.session.refresh(course)

        await self.event_store.log(
            event_type=EventType.COURSE_CREATED,
            entity_type="course",
            entity_id=course.id,
            user_id=actor.id,
            payload={"slug": slug, "modules": len(model.modules), "topics": model.total_topics},
        )
        logger.info("Course created", extra={"course_id": str(course.id), "slug": slug})
        return course

    async def update_curriculum(
        self,
        course_id: uuid.UUID,
        curriculum: Iterable[Any],
        actor: User,
    ) -> Course:
        """
        Replace a course curriculum.

        Cached enrollment progress is not rewritten here; it is refreshed on
        the next completion, and certificate eligibility is always recomputed.
        """
        await self.permissions.require_operator(actor, "course", course_id, "update_curriculum")
        course = await self.get_course(course_id)
        model = build_curriculum(curriculum)

        course.curriculum = model.to_raw()
        await self.event_store.log(
            event_type=EventType.CURRICULUM_UPDATED,
            entity_type="course",
            entity_id=course.id,
            user_id=actor.id,
            payload={"modules": len(model.modules), "topics": model.total_topics},
        )
        await self.session.flush()
        await self.session.refresh(course)
        return course
