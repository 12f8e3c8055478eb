"""
Enrollment endpoints: enroll, lesson completion, progress and certificate
requests.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, Request, Response, status

from bootcamp.api.deps import CurrentUser, DbSession, Enrollments, get_client_ip
from bootcamp.engines.progress.progress_tracker import ProgressReport
from bootcamp.orchestration.course_service import CourseService
from bootcamp.schemas.certificate import (
    CertificateApplyResponse,
    CertificateHistoryResponse,
    CertificateRequest,
    CertificateResponse,
)
from bootcamp.schemas.common import PaginatedResponse
from bootcamp.schemas.enrollment import (
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    LessonCompletionRequest,
    ProgressResponse,
)

router = APIRouter()


def _progress_response(enrollment_id: uuid.UUID, report: ProgressReport) -> ProgressResponse:
    return ProgressResponse(enrollment_id=enrollment_id, **report.model_dump())


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    request: Request,
    data: EnrollmentCreate,
    user: CurrentUser,
    db: DbSession,
    service: Enrollments,
):
    """Enroll the current user in a course, by id or slug."""
    course_id = data.course_id
    if course_id is None:
        course_id = (await CourseService(db).get_course_by_slug(data.course_slug)).id

    enrollment = await service.enroll(user.id, course_id, ip_address=get_client_ip(request))
    return EnrollmentResponse.model_validate(enrollment)


@router.get("", response_model=PaginatedResponse[EnrollmentResponse])
async def list_enrollments(
    user: CurrentUser,
    service: Enrollments,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    course_id: Optional[uuid.UUID] = None,
):
    """The current user's enrollments; admins see every enrollment."""
    items, total = await service.list_enrollments(user, page=page, page_size=page_size, course_id=course_id)
    return PaginatedResponse.create(
        items=[EnrollmentResponse.model_validate(e) for e in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(enrollment_id: uuid.UUID, user: CurrentUser, service: Enrollments):
    enrollment = await service.get_enrollment(enrollment_id, user)
    return EnrollmentResponse.model_validate(enrollment)


@router.patch("/{enrollment_id}", response_model=EnrollmentResponse)
async def update_enrollment_status(
    request: Request,
    enrollment_id: uuid.UUID,
    data: EnrollmentStatusUpdate,
    user: CurrentUser,
    service: Enrollments,
):
    """Change the enrollment status (owner or admin). ``completed`` is set by progress only."""
    enrollment = await service.update_status(
        enrollment_id,
        data.status,
        user,
        ip_address=get_client_ip(request),
    )
    return EnrollmentResponse.model_validate(enrollment)


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(
    request: Request,
    enrollment_id: uuid.UUID,
    user: CurrentUser,
    service: Enrollments,
):
    """Delete an enrollment. Refused while any certificate references it."""
    await service.delete_enrollment(enrollment_id, user, ip_address=get_client_ip(request))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{enrollment_id}/complete", response_model=ProgressResponse)
async def complete_lesson(
    request: Request,
    enrollment_id: uuid.UUID,
    data: LessonCompletionRequest,
    user: CurrentUser,
    service: Enrollments,
):
    """Mark a topic complete. Repeating the call changes nothing."""
    report = await service.complete_lesson(
        enrollment_id,
        data.module_index,
        data.topic,
        user,
        ip_address=get_client_ip(request),
    )
    return _progress_response(enrollment_id, report)


@router.get("/{enrollment_id}/progress", response_model=ProgressResponse)
async def get_progress(enrollment_id: uuid.UUID, user: CurrentUser, service: Enrollments):
    report = await service.get_progress(enrollment_id, user)
    return _progress_response(enrollment_id, report)


@router.post("/{enrollment_id}/certificates", response_model=CertificateApplyResponse)
async def apply_for_certificate(
    enrollment_id: uuid.UUID,
    user: CurrentUser,
    service: Enrollments,
    response: Response,
    data: Optional[CertificateRequest] = None,
):
    """
    Request a certificate.

    201 with the new request, or 200 with ``already_requested`` when a
    request is already pending.
    """
    certificate, created = await service.apply_for_certificate(
        enrollment_id,
        user,
        note=data.note if data else "",
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return CertificateApplyResponse(
        certificate=CertificateResponse.model_validate(certificate),
        already_requested=not created,
    )


@router.get("/{enrollment_id}/certificate", response_model=Optional[CertificateResponse])
async def get_enrollment_certificate(enrollment_id: uuid.UUID, user: CurrentUser, service: Enrollments):
    """The active certificate record, the latest rejected one, or null."""
    certificate = await service.get_enrollment_certificate(enrollment_id, user)
    return CertificateResponse.model_validate(certificate) if certificate else None


@router.get("/{enrollment_id}/certificate-history", response_model=List[CertificateHistoryResponse])
async def get_certificate_history(enrollment_id: uuid.UUID, user: CurrentUser, service: Enrollments):
    entries = await service.certificate_history(enrollment_id, user)
    return [CertificateHistoryResponse.model_validate(entry) for entry in entries]
