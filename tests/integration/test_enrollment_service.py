"""Integration tests for enrollments and lesson completion."""

import uuid

import pytest
from sqlalchemy import func, select

from bootcamp.kernel.errors import (
    AlreadyEnrolled,
    CourseNotFound,
    EnrollmentNotFound,
    Forbidden,
    EnrollmentHasCertificates,
    InvalidTopicReference,
    InvalidTransition,
)
from bootcamp.kernel.models import CompletedLesson, EventLog, EventType
from bootcamp.kernel.models.enrollment import Enrollment, EnrollmentStatus
from bootcamp.orchestration.course_service import CourseService
from bootcamp.orchestration.enrollment_service import EnrollmentService


async def lesson_count(session, enrollment_id) -> int:
    result = await session.execute(
        select(func.count(CompletedLesson.id)).where(CompletedLesson.enrollment_id == enrollment_id)
    )
    return result.scalar()


async def event_count(session, event_type: EventType) -> int:
    result = await session.execute(select(func.count(EventLog.id)).where(EventLog.event_type == event_type.value))
    return result.scalar()


class TestEnroll:
    """Tests for EnrollmentService.enroll."""

    @pytest.mark.asyncio
    async def test_enroll(self, db_session, student, course):
        enrollment = await EnrollmentService(db_session).enroll(student.id, course.id)
        await db_session.commit()

        assert enrollment.user_id == student.id
        assert enrollment.status == EnrollmentStatus.ENROLLED
        assert enrollment.progress == 0
        assert await event_count(db_session, EventType.ENROLLMENT_CREATED) == 1

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_rejected(self, db_session, student, course):
        service = EnrollmentService(db_session)
        await service.enroll(student.id, course.id)
        await db_session.commit()

        with pytest.raises(AlreadyEnrolled):
            await service.enroll(student.id, course.id)

    @pytest.mark.asyncio
    async def test_cancelled_enrollment_allows_reenroll(self, db_session, student, course):
        service = EnrollmentService(db_session)
        first = await service.enroll(student.id, course.id)
        await service.update_status(first.id, EnrollmentStatus.CANCELLED, student)
        await db_session.commit()

        second = await service.enroll(student.id, course.id)
        await db_session.commit()
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_unknown_course(self, db_session, student):
        with pytest.raises(CourseNotFound):
            await EnrollmentService(db_session).enroll(student.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_enrollments_scoped_to_owner(self, db_session, student, other_student, admin, course):
        service = EnrollmentService(db_session)
        await service.enroll(student.id, course.id)
        await service.enroll(other_student.id, course.id)
        await db_session.commit()

        mine, total = await service.list_enrollments(student)
        assert total == 1
        assert mine[0].user_id == student.id

        everything, total = await service.list_enrollments(admin)
        assert total == 2
        assert len(everything) == 2


class TestCompleteLesson:
    """Tests for lesson completion and progress."""

    @pytest.mark.asyncio
    async def test_progress_after_one_topic(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)

        report = await service.complete_lesson(enrollment.id, 0, "html", student)
        await db_session.commit()

        assert report.per_module_percent == {0: 50, 1: 0}
        assert report.overall_percent == 25
        assert enrollment.progress == 25

    @pytest.mark.asyncio
    async def test_completion_is_idempotent(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)

        first = await service.complete_lesson(enrollment.id, 0, "html", student)
        second = await service.complete_lesson(enrollment.id, 0, "html", student)
        await db_session.commit()

        assert first == second
        assert await lesson_count(db_session, enrollment.id) == 1
        assert await event_count(db_session, EventType.LESSON_COMPLETED) == 1

    @pytest.mark.asyncio
    async def test_invalid_topic_rejected(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await db_session.commit()

        with pytest.raises(InvalidTopicReference):
            await service.complete_lesson(enrollment.id, 0, "variables", student)
        with pytest.raises(InvalidTopicReference):
            await service.complete_lesson(enrollment.id, 5, "html", student)
        assert await lesson_count(db_session, enrollment.id) == 0

    @pytest.mark.asyncio
    async def test_full_completion_marks_enrollment_completed(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        for module_index, topic in [(0, "html"), (0, "css"), (1, "variables"), (1, "functions")]:
            report = await service.complete_lesson(enrollment.id, module_index, topic, student)
        await db_session.commit()

        assert report.is_complete
        assert enrollment.progress == 100
        assert enrollment.status == EnrollmentStatus.COMPLETED
        assert await event_count(db_session, EventType.ENROLLMENT_COMPLETED) == 1

    @pytest.mark.asyncio
    async def test_other_student_forbidden(self, db_session, student, other_student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await db_session.commit()

        with pytest.raises(Forbidden):
            await service.complete_lesson(enrollment.id, 0, "html", other_student)
        assert await event_count(db_session, EventType.ACCESS_FORBIDDEN) == 1
        assert await lesson_count(db_session, enrollment.id) == 0

    @pytest.mark.asyncio
    async def test_admin_may_complete_for_student(self, db_session, student, admin, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        report = await service.complete_lesson(enrollment.id, 1, "functions", admin)
        await db_session.commit()
        assert report.overall_percent == 25

    @pytest.mark.asyncio
    async def test_progress_follows_curriculum_edit(self, db_session, student, admin, course):
        """Removing a completed topic drops it from progress."""
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await service.complete_lesson(enrollment.id, 0, "html", student)
        await db_session.commit()

        await CourseService(db_session).update_curriculum(
            course.id,
            [{"title": "Foundations", "topics": ["css"]}, {"title": "JavaScript", "topics": ["variables"]}],
            admin,
        )
        await db_session.commit()

        report = await service.get_progress(enrollment.id, student)
        assert report.overall_percent == 0
        assert report.total_topics == 2

    @pytest.mark.asyncio
    async def test_unknown_enrollment(self, db_session, student):
        with pytest.raises(EnrollmentNotFound):
            await EnrollmentService(db_session).get_progress(uuid.uuid4(), student)


class TestUpdateStatus:
    """Tests for enrollment status changes."""

    @pytest.mark.asyncio
    async def test_interest_and_back(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)

        updated = await service.update_status(enrollment.id, EnrollmentStatus.INTEREST, student)
        assert updated.status == EnrollmentStatus.INTEREST
        updated = await service.update_status(enrollment.id, EnrollmentStatus.ENROLLED, student)
        await db_session.commit()

        assert updated.status == EnrollmentStatus.ENROLLED
        assert await event_count(db_session, EventType.ENROLLMENT_STATUS_CHANGED) == 2

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)

        await service.update_status(enrollment.id, "enrolled", student)
        await db_session.commit()
        assert await event_count(db_session, EventType.ENROLLMENT_STATUS_CHANGED) == 0

    @pytest.mark.asyncio
    async def test_completed_cannot_be_requested(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await db_session.commit()

        with pytest.raises(InvalidTransition):
            await service.update_status(enrollment.id, EnrollmentStatus.COMPLETED, student)
        assert enrollment.status == EnrollmentStatus.ENROLLED
        assert enrollment.progress == 0

    @pytest.mark.asyncio
    async def test_cancelled_is_final(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await service.update_status(enrollment.id, EnrollmentStatus.CANCELLED, student)
        await db_session.commit()

        with pytest.raises(InvalidTransition):
            await service.update_status(enrollment.id, EnrollmentStatus.ENROLLED, student)

    @pytest.mark.asyncio
    async def test_other_student_forbidden(self, db_session, student, other_student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await db_session.commit()

        with pytest.raises(Forbidden):
            await service.update_status(enrollment.id, EnrollmentStatus.CANCELLED, other_student)
        assert (await db_session.get(Enrollment, enrollment.id)).status == EnrollmentStatus.ENROLLED

    @pytest.mark.asyncio
    async def test_admin_may_cancel(self, db_session, student, admin, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        updated = await service.update_status(enrollment.id, EnrollmentStatus.CANCELLED, admin)
        await db_session.commit()
        assert updated.status == EnrollmentStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_blocked_by_certificate(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        for module_index, topic in [(0, "html"), (0, "css"), (1, "variables"), (1, "functions")]:
            await service.complete_lesson(enrollment.id, module_index, topic, student)
        await service.apply_for_certificate(enrollment.id, student)
        await db_session.commit()

        with pytest.raises(EnrollmentHasCertificates):
            await service.update_status(enrollment.id, EnrollmentStatus.CANCELLED, student)


class TestDeleteEnrollment:
    """Tests for enrollment deletion."""

    @pytest.mark.asyncio
    async def test_delete_removes_lessons(self, db_session, student, course):
        service = EnrollmentService(db_session)
        enrollment = await service.enroll(student.id, course.id)
        await service.complete_lesson(enrollment.id, 0, "html", student)
        await db_session.commit()

        await service.delete_enrollment(enrollment.id, student)
        await db_session.commit()

        assert await db_session.get(Enrollment, enrollment.id) is None
        assert await lesson_count(db_session, enrollment.id) == 0
