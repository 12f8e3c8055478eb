"""
Course endpoints.
"""

import uuid

from fastapi import APIRouter, status

from bootcamp.api.deps import AdminUser, CurrentUser, DbSession
from bootcamp.orchestration.course_service import CourseService
from bootcamp.schemas.course import CourseCreate, CourseResponse, CurriculumUpdate

router = APIRouter()


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(data: CourseCreate, admin: AdminUser, db: DbSession):
    """Create a course with its curriculum (admin only)."""
    course = await CourseService(db).create_course(
        title=data.title,
        actor=admin,
        curriculum=[module.model_dump() for module in data.curriculum],
        slug=data.slug,
        published=data.published,
    )
    return CourseResponse.model_validate(course)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(course_id: uuid.UUID, user: CurrentUser, db: DbSession):
    course = await CourseService(db).get_course(course_id)
    return CourseResponse.model_validate(course)


@router.put("/{course_id}/curriculum", response_model=CourseResponse)
async def update_curriculum(
    course_id: uuid.UUID,
    data: CurriculumUpdate,
    admin: AdminUser,
    db: DbSession,
):
    """
    Replace a course curriculum (admin only).

    Existing completions that no longer match are ignored by progress.
    """
    course = await CourseService(db).update_curriculum(
        course_id,
        [module.model_dump() for module in data.curriculum],
        actor=admin,
    )
    return CourseResponse.model_validate(course)
