"""
Enrollment service - orchestrates enrollments, lesson completion, progress
and certificate requests on top of the progress engine, the certificate
lifecycle and the permission checks.

Every operation re-reads the state it needs from the database. Progress is
always derived server-side from the persisted completion set.
"""

import uuid
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bootcamp.engines.progress.curriculum import CurriculumModel
from bootcamp.engines.progress.progress_tracker import ProgressReport, ProgressTracker
from bootcamp.kernel.errors import (
    AlreadyEnrolled,
    AlreadyRequested,
    CertificateNotFound,
    EnrollmentHasCertificates,
    EnrollmentNotFound,
    InvalidDecision,
    InvalidTransition,
    TerminalState,
)
from bootcamp.kernel.events.event_store import EventStore
from bootcamp.kernel.models.base import enum_value
from bootcamp.kernel.models.certificate import Certificate, CertificateHistoryEntry, CertificateStatus
from bootcamp.kernel.models.enrollment import CompletedLesson, Enrollment, EnrollmentStatus
from bootcamp.kernel.models.event_log import EventType
from bootcamp.kernel.models.user import User
from bootcamp.kernel.permissions.access_guard import (
    AccessDecision,
    RouteRequirement,
    get_access_guard,
)
from bootcamp.kernel.permissions.permission_service import PermissionService, is_admin
from bootcamp.orchestration.certificate_lifecycle import CertificateLifecycle
from bootcamp.orchestration.course_service import CourseService
from bootcamp.logging_config import get_logger

logger = get_logger(__name__)

DECISIONS = ("issue", "reject")

# Status changes a caller may request; ``completed`` is only reached through progress
_STATUS_TRANSITIONS = {
    EnrollmentStatus.ENROLLED: {EnrollmentStatus.INTEREST, EnrollmentStatus.CANCELLED},
    EnrollmentStatus.INTEREST: {EnrollmentStatus.ENROLLED, EnrollmentStatus.CANCELLED},
    EnrollmentStatus.COMPLETED: {EnrollmentStatus.CANCELLED},
    EnrollmentStatus.CANCELLED: set(),
}


class EnrollmentService:
    """
    Entry point for the enrollment core.

    Usage:
        service = EnrollmentService(session)
        enrollment = await service.enroll(user.id, course.id)
        report = await service.complete_lesson(enrollment.id, 0, "html-basics", user)
        certificate, created = await service.apply_for_certificate(enrollment.id, user)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)
        self.permissions = PermissionService(session)
        self.courses = CourseService(session)
        self.tracker = ProgressTracker(session)
        self.lifecycle = CertificateLifecycle(session)

    # Enrollment

    async def enroll(
        self,
        user_id: uuid.UUID,
        course_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> Enrollment:
        """
        Enroll a user in a course.

        Raises:
            CourseNotFound: unknown course
            AlreadyEnrolled: a non-cancelled enrollment already exists
        """
        await self.courses.get_course(course_id)

        existing = await self.session.execute(
            select(Enrollment.id).where(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
                Enrollment.status != EnrollmentStatus.CANCELLED.value,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyEnrolled(course_id=str(course_id))

        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.ENROLLED.value,
            progress=0,
        )
        self.session.add(enrollment)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent enroll of the same pair
            await self.session.rollback()
            raise AlreadyEnrolled(course_id=str(course_id)) from e
        await self.session.refresh(enrollment)

        await self.event_store.log(
            event_type=EventType.ENROLLMENT_CREATED,
            entity_type="enrollment",
            entity_id=enrollment.id,
            user_id=user_id,
            payload={"course_id": course_id},
            ip_address=ip_address,
        )
        logger.info(
            "Enrollment created",
            extra={"enrollment_id": str(enrollment.id), "user_id": str(user_id), "course_id": str(course_id)},
        )
        return enrollment

    async def _load_enrollment(self, enrollment_id: uuid.UUID) -> Enrollment:
        enrollment = await self.session.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFound(enrollment_id=str(enrollment_id))
        return enrollment

    async def get_enrollment(self, enrollment_id: uuid.UUID, actor: User, action: str = "view_enrollment") -> Enrollment:
        """Load an enrollment the actor owns (or any, for an admin)."""
        enrollment = await self._load_enrollment(enrollment_id)
        await self.permissions.require_enrollment_access(
            actor, enrollment.user_id, "enrollment", enrollment.id, action
        )
        return enrollment

    async def list_enrollments(
        self,
        actor: User,
        page: int = 1,
        page_size: int = 20,
        course_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[Enrollment], int]:
        """The actor's enrollments (every enrollment for an admin), newest first."""
        q = select(Enrollment)
        count_q = select(func.count(Enrollment.id))
        if not is_admin(actor):
            q = q.where(Enrollment.user_id == actor.id)
            count_q = count_q.where(Enrollment.user_id == actor.id)
        if course_id is not None:
            q = q.where(Enrollment.course_id == course_id)
            count_q = count_q.where(Enrollment.course_id == course_id)

        total = (await self.session.execute(count_q)).scalar() or 0
        q = q.order_by(Enrollment.created_at.desc(), Enrollment.id).offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(q)
        return list(result.scalars().all()), total

    async def update_status(
        self,
        enrollment_id: uuid.UUID,
        new_status: EnrollmentStatus,
        actor: User,
        ip_address: Optional[str] = None,
    ) -> Enrollment:
        """
        Move an enrollment between ``enrolled``, ``interest`` and ``cancelled``.

        Requesting the current status is a no-op. A cancelled enrollment stays
        cancelled; re-enrolling creates a new record.

        Raises:
            InvalidTransition: the change is not allowed (including any move to ``completed``)
            EnrollmentHasCertificates: cancelling an enrollment a certificate references
        """
        enrollment = await self.get_enrollment(enrollment_id, actor, action="update_enrollment_status")
        current = EnrollmentStatus(enum_value(enrollment.status))
        target = EnrollmentStatus(enum_value(new_status))
        if target == current:
            return enrollment
        if target not in _STATUS_TRANSITIONS[current]:
            raise InvalidTransition(
                f"Cannot move an enrollment from {current.value} to {target.value}",
                from_status=current.value,
                to_status=target.value,
            )

        if target == EnrollmentStatus.CANCELLED:
            count = await self.session.execute(
                select(func.count(Certificate.id)).where(Certificate.enrollment_id == enrollment.id)
            )
            if count.scalar():
                raise EnrollmentHasCertificates(
                    "Enrollment is referenced by a certificate and cannot be cancelled",
                    enrollment_id=str(enrollment.id),
                )

        enrollment.status = target.value
        await self.event_store.log(
            event_type=EventType.ENROLLMENT_STATUS_CHANGED,
            entity_type="enrollment",
            entity_id=enrollment.id,
            user_id=actor.id,
            payload={"from_status": current.value, "to_status": target.value},
            ip_address=ip_address,
        )
        await self.session.flush()
        await self.session.refresh(enrollment)
        logger.info(
            "Enrollment status changed",
            extra={"enrollment_id": str(enrollment.id), "from_status": current.value, "to_status": target.value},
        )
        return enrollment

    async def delete_enrollment(
        self,
        enrollment_id: uuid.UUID,
        actor: User,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Delete an enrollment and its completed lessons.

        Raises:
            EnrollmentHasCertificates: any certificate references it
        """
        enrollment = await self.get_enrollment(enrollment_id, actor, action="delete_enrollment")

        count = await self.session.execute(
            select(func.count(Certificate.id)).where(Certificate.enrollment_id == enrollment.id)
        )
        if count.scalar():
            raise EnrollmentHasCertificates(enrollment_id=str(enrollment.id))

        await self.session.execute(delete(CompletedLesson).where(CompletedLesson.enrollment_id == enrollment.id))
        await self.event_store.log(
            event_type=EventType.ENROLLMENT_DELETED,
            entity_type="enrollment",
            entity_id=enrollment.id,
            user_id=actor.id,
            payload={"course_id": enrollment.course_id, "owner_id": enrollment.user_id},
            ip_address=ip_address,
        )
        await self.session.delete(enrollment)
        await self.session.flush()
        logger.info("Enrollment deleted", extra={"enrollment_id": str(enrollment_id)})

    # Progress

    async def _curriculum_for(self, enrollment: Enrollment) -> CurriculumModel:
        course = await self.courses.get_course(enrollment.course_id)
        return CurriculumModel.from_course(course)

    def _insert_for_dialect(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise NotImplementedError(f"Lesson upsert is not supported on {dialect}")

    async def complete_lesson(
        self,
        enrollment_id: uuid.UUID,
        module_index: int,
        topic: str,
        actor: User,
        ip_address: Optional[str] = None,
    ) -> ProgressReport:
        """
        Mark a topic complete and return the recomputed progress.

        Idempotent: a second completion of the same topic inserts nothing and
        returns the same report.

        Raises:
            InvalidTopicReference: the pair is not in the current curriculum
        """
        enrollment = await self.get_enrollment(enrollment_id, actor, action="complete_lesson")
        curriculum = await self._curriculum_for(enrollment)
        curriculum.require_topic(module_index, topic)

        insert = self._insert_for_dialect()
        stmt = (
            insert(CompletedLesson)
            .values(
                id=uuid.uuid4(),
                enrollment_id=enrollment.id,
                module_index=module_index,
                topic=topic,
            )
            .on_conflict_do_nothing(index_elements=["enrollment_id", "module_index", "topic"])
        )
        result = await self.session.execute(stmt)
        inserted = bool(result.rowcount)

        was_completed = enrollment.status == EnrollmentStatus.COMPLETED
        report = await self.tracker.refresh(enrollment, curriculum)

        if inserted:
            await self.event_store.log(
                event_type=EventType.LESSON_COMPLETED,
                entity_type="enrollment",
                entity_id=enrollment.id,
                user_id=actor.id,
                payload={
                    "module_index": module_index,
                    "topic": topic,
                    "overall_percent": report.overall_percent,
                },
                ip_address=ip_address,
            )
        if report.is_complete and not was_completed and enrollment.status == EnrollmentStatus.COMPLETED:
            await self.event_store.log(
                event_type=EventType.ENROLLMENT_COMPLETED,
                entity_type="enrollment",
                entity_id=enrollment.id,
                user_id=actor.id,
                payload={"course_id": enrollment.course_id},
            )
            logger.info("Enrollment completed", extra={"enrollment_id": str(enrollment.id)})

        await self.session.flush()
        return report

    async def get_progress(self, enrollment_id: uuid.UUID, actor: User) -> ProgressReport:
        """Progress against the current curriculum (read-only)."""
        enrollment = await self.get_enrollment(enrollment_id, actor, action="view_progress")
        curriculum = await self._curriculum_for(enrollment)
        return await self.tracker.compute(enrollment, curriculum)

    # Certificates

    async def apply_for_certificate(
        self,
        enrollment_id: uuid.UUID,
        actor: User,
        note: str = "",
    ) -> Tuple[Certificate, bool]:
        """
        Request a certificate for a completed enrollment.

        Returns ``(certificate, created)``. When a request is already pending
        the pending record is returned with ``created=False``.

        Raises:
            NotEligible: progress below 100 against the current curriculum
            TerminalState: the certificate was already issued or revoked
        """
        enrollment = await self.get_enrollment(enrollment_id, actor, action="apply_for_certificate")
        enrollment_pk = enrollment.id
        curriculum = await self._curriculum_for(enrollment)
        report = await self.tracker.compute(enrollment, curriculum)

        try:
            certificate = await self.lifecycle.request(enrollment, actor.id, report, note=note)
        except AlreadyRequested as e:
            return e.certificate, False
        except IntegrityError:
            # A concurrent request won the partial unique index
            await self.session.rollback()
            winner = await self.lifecycle.active_certificate(enrollment_pk)
            if winner is None:
                raise
            if winner.status != CertificateStatus.REQUESTED:
                raise TerminalState(f"Certificate is {enum_value(winner.status)}") from None
            return winner, False

        return certificate, True

    async def _load_certificate(self, certificate_id: uuid.UUID) -> Certificate:
        certificate = await self.session.get(Certificate, certificate_id)
        if certificate is None:
            raise CertificateNotFound(certificate_id=str(certificate_id))
        return certificate

    async def decide_certificate(
        self,
        certificate_id: uuid.UUID,
        decision: str,
        actor: User,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Certificate:
        """
        Issue or reject a pending request (operators only).

        ``payload`` carries ``artifact_ref`` and optional ``issued_at`` for
        an issue, ``reason`` for a reject.
        """
        await self.permissions.require_operator(actor, "certificate", certificate_id, f"{decision}_certificate")
        if decision not in DECISIONS:
            raise InvalidDecision(f"Unknown decision {decision!r}; expected one of {', '.join(DECISIONS)}")

        certificate = await self._load_certificate(certificate_id)
        payload = payload or {}
        if decision == "issue":
            return await self.lifecycle.issue(
                certificate,
                actor.id,
                artifact_ref=payload.get("artifact_ref"),
                issued_at=payload.get("issued_at"),
            )
        return await self.lifecycle.reject(certificate, actor.id, reason=payload.get("reason"))

    async def revoke_certificate(
        self,
        certificate_id: uuid.UUID,
        actor: User,
        reason: Optional[str] = None,
    ) -> Certificate:
        await self.permissions.require_operator(actor, "certificate", certificate_id, "revoke_certificate")
        certificate = await self._load_certificate(certificate_id)
        return await self.lifecycle.revoke(certificate, actor.id, reason=reason)

    async def reissue_certificate(
        self,
        certificate_id: uuid.UUID,
        actor: User,
        artifact_ref: Optional[str],
    ) -> Certificate:
        await self.permissions.require_operator(actor, "certificate", certificate_id, "reissue_certificate")
        certificate = await self._load_certificate(certificate_id)
        return await self.lifecycle.reissue(certificate, actor.id, artifact_ref=artifact_ref)

    async def get_certificate(self, certificate_id: uuid.UUID, actor: User) -> Certificate:
        certificate = await self._load_certificate(certificate_id)
        await self.permissions.require_enrollment_access(
            actor, certificate.user_id, "certificate", certificate.id, "view_certificate"
        )
        return certificate

    async def get_enrollment_certificate(self, enrollment_id: uuid.UUID, actor: User) -> Optional[Certificate]:
        """The enrollment's active certificate, else its latest rejected one."""
        enrollment = await self.get_enrollment(enrollment_id, actor, action="view_certificate")
        return await self.lifecycle.current_certificate(enrollment.id)

    async def certificate_history(self, enrollment_id: uuid.UUID, actor: User) -> List[CertificateHistoryEntry]:
        """Every certificate transition of the enrollment, oldest first."""
        enrollment = await self.get_enrollment(enrollment_id, actor, action="view_certificate_history")
        return await self.lifecycle.history(enrollment.id)

    async def list_certificates(
        self,
        actor: User,
        status: Optional[CertificateStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Certificate], int]:
        """All certificates, optionally filtered by status (admin only)."""
        await self.permissions.require_operator(actor, "user", actor.id, "list_certificates")

        q = select(Certificate)
        count_q = select(func.count(Certificate.id))
        if status is not None:
            q = q.where(Certificate.status == enum_value(status))
            count_q = count_q.where(Certificate.status == enum_value(status))

        total = (await self.session.execute(count_q)).scalar() or 0
        q = q.order_by(Certificate.requested_at.desc()).offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(q)
        return list(result.scalars().all()), total

    async def list_my_certificates(self, actor: User) -> List[Certificate]:
        q = (
            select(Certificate)
            .where(Certificate.user_id == actor.id)
            .order_by(Certificate.requested_at.desc())
        )
        result = await self.session.execute(q)
        return list(result.scalars().all())

    # Navigation

    def resolve_route(
        self,
        actor: Optional[User],
        current_path: str,
        required_role: Optional[RouteRequirement] = None,
    ) -> AccessDecision:
        return get_access_guard().resolve_route(actor, current_path, required_role)

    def landing_path(self, actor: Optional[User], return_path: Optional[str] = None) -> str:
        return get_access_guard().landing_path(actor, return_path)
