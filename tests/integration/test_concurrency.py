"""
Concurrency tests.

Each coroutine uses its own session (and connection) on the shared SQLite
file, so the unique constraints are what keeps the outcome consistent.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from bootcamp.kernel.models import Certificate, CompletedLesson
from bootcamp.orchestration.enrollment_service import EnrollmentService


async def complete_in_own_session(session_maker, enrollment_id, module_index, topic, actor):
    async with session_maker() as session:
        report = await EnrollmentService(session).complete_lesson(enrollment_id, module_index, topic, actor)
        await session.commit()
        return report


async def apply_in_own_session(session_maker, enrollment_id, actor):
    async with session_maker() as session:
        certificate, created = await EnrollmentService(session).apply_for_certificate(enrollment_id, actor)
        await session.commit()
        return certificate.id, created


@pytest.mark.asyncio
async def test_duplicate_completions_store_one_row(session_maker, db_session, student, course):
    enrollment = await EnrollmentService(db_session).enroll(student.id, course.id)
    await db_session.commit()

    reports = await asyncio.gather(
        complete_in_own_session(session_maker, enrollment.id, 0, "html", student),
        complete_in_own_session(session_maker, enrollment.id, 0, "html", student),
    )

    assert reports[0] == reports[1]
    assert reports[0].overall_percent == 25

    async with session_maker() as session:
        count = await session.execute(
            select(func.count(CompletedLesson.id)).where(CompletedLesson.enrollment_id == enrollment.id)
        )
        assert count.scalar() == 1


@pytest.mark.asyncio
async def test_concurrent_apply_creates_one_certificate(session_maker, db_session, student, course):
    service = EnrollmentService(db_session)
    enrollment = await service.enroll(student.id, course.id)
    for module_index, topic in [(0, "html"), (0, "css"), (1, "variables"), (1, "functions")]:
        await service.complete_lesson(enrollment.id, module_index, topic, student)
    await db_session.commit()

    results = await asyncio.gather(
        apply_in_own_session(session_maker, enrollment.id, student),
        apply_in_own_session(session_maker, enrollment.id, student),
    )

    ids = {certificate_id for certificate_id, _ in results}
    assert len(ids) == 1
    assert sorted(created for _, created in results) == [False, True]

    async with session_maker() as session:
        count = await session.execute(
            select(func.count(Certificate.id)).where(Certificate.enrollment_id == enrollment.id)
        )
        assert count.scalar() == 1
