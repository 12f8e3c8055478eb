"""
Progress Tracker - derives completion percentages from completed lessons.

``compute_progress`` is pure. ``ProgressTracker`` loads the persisted
completion set for an enrollment and refreshes the cached ``progress``.
"""

import uuid
from typing import Any, Dict, Iterable, Set, Tuple

from pydantic import BaseModel, computed_field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bootcamp.engines.progress.curriculum import CurriculumModel
from bootcamp.kernel.models.enrollment import CompletedLesson, Enrollment, EnrollmentStatus

LessonKey = Tuple[int, str]


class ProgressReport(BaseModel):
    """Completion state of one enrollment against the current curriculum."""

    per_module_percent: Dict[int, int]
    overall_percent: int
    completed_topics: int = 0
    total_topics: int = 0

    @computed_field
    @property
    def is_complete(self) -> bool:
        return self.overall_percent == 100


def percent(done: int, total: int) -> int:
    """round(100 * done / total), halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


def _lesson_key(lesson: Any) -> LessonKey:
    if isinstance(lesson, tuple):
        return int(lesson[0]), str(lesson[1])
    return int(lesson.module_index), str(lesson.topic)


def compute_progress(curriculum: CurriculumModel, completed_lessons: Iterable[Any]) -> ProgressReport:
    """
    Compute per-module and overall percentages.

    Completions are ``(module_index, topic)`` tuples or objects with those
    attributes. Duplicates count once; pairs no longer in the curriculum are
    ignored. A module without topics reports 0 and is left out of the overall
    denominator.
    """
    completed: Set[LessonKey] = {_lesson_key(lesson) for lesson in completed_lessons}

    per_module: Dict[int, int] = {}
    done_all = 0
    total_all = 0
    for index, module in enumerate(curriculum.modules):
        total = len(module.topics)
        done = sum(1 for topic in module.topics if (index, topic) in completed)
        per_module[index] = percent(done, total)
        done_all += done
        total_all += total

    return ProgressReport(
        per_module_percent=per_module,
        overall_percent=percent(done_all, total_all),
        completed_topics=done_all,
        total_topics=total_all,
    )


class ProgressTracker:
    """Database-backed progress for enrollments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def completed_lessons(self, enrollment_id: uuid.UUID) -> list[LessonKey]:
        q = select(CompletedLesson.module_index, CompletedLesson.topic).where(
            CompletedLesson.enrollment_id == enrollment_id
        )
        result = await self.session.execute(q)
        return [(row.module_index, row.topic) for row in result.all()]

    async def compute(self, enrollment: Enrollment, curriculum: CurriculumModel) -> ProgressReport:
        """Recompute from the persisted completion set without writing."""
        return compute_progress(curriculum, await self.completed_lessons(enrollment.id))

    async def refresh(self, enrollment: Enrollment, curriculum: CurriculumModel) -> ProgressReport:
        """
        Recompute and store the progress cache on the enrollment.

        The first time progress reaches 100 the enrollment moves to
        ``completed``. That status is kept even if a later curriculum change
        lowers progress; certificate eligibility is recomputed from the
        completions on every request, so a stale ``completed`` grants nothing.
        Returns the fresh report.
        """
        report = await self.compute(enrollment, curriculum)
        enrollment.progress = report.overall_percent
        if report.is_complete and enrollment.status in (
            EnrollmentStatus.ENROLLED,
            EnrollmentStatus.INTEREST,
        ):
            enrollment.status = EnrollmentStatus.COMPLETED.value
        await self.session.flush()
        await self.session.refresh(enrollment)
        return report
