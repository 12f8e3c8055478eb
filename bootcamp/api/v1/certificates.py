"""
Certificate endpoints: listing and operator decisions.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query

from bootcamp.api.deps import CurrentUser, Enrollments
from bootcamp.kernel.models.certificate import CertificateStatus
from bootcamp.schemas.certificate import (
    CertificateDecisionRequest,
    CertificateReissueRequest,
    CertificateResponse,
    CertificateRevokeRequest,
)
from bootcamp.schemas.common import PaginatedResponse

router = APIRouter()


@router.get("", response_model=PaginatedResponse[CertificateResponse])
async def list_certificates(
    user: CurrentUser,
    service: Enrollments,
    status: Optional[CertificateStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """All certificates, optionally by status (admin only)."""
    items, total = await service.list_certificates(user, status=status, page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[CertificateResponse.model_validate(c) for c in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/my", response_model=List[CertificateResponse])
async def list_my_certificates(user: CurrentUser, service: Enrollments):
    certificates = await service.list_my_certificates(user)
    return [CertificateResponse.model_validate(c) for c in certificates]


@router.get("/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(certificate_id: uuid.UUID, user: CurrentUser, service: Enrollments):
    certificate = await service.get_certificate(certificate_id, user)
    return CertificateResponse.model_validate(certificate)


@router.post("/{certificate_id}/decision", response_model=CertificateResponse)
async def decide_certificate(
    certificate_id: uuid.UUID,
    data: CertificateDecisionRequest,
    user: CurrentUser,
    service: Enrollments,
):
    """Issue or reject a pending request (operators only)."""
    certificate = await service.decide_certificate(
        certificate_id,
        data.decision,
        user,
        payload=data.model_dump(exclude={"decision"}),
    )
    return CertificateResponse.model_validate(certificate)


@router.post("/{certificate_id}/revoke", response_model=CertificateResponse)
async def revoke_certificate(
    certificate_id: uuid.UUID,
    user: CurrentUser,
    service: Enrollments,
    data: Optional[CertificateRevokeRequest] = None,
):
    certificate = await service.revoke_certificate(certificate_id, user, reason=data.reason if data else None)
    return CertificateResponse.model_validate(certificate)


@router.post("/{certificate_id}/reissue", response_model=CertificateResponse)
async def reissue_certificate(
    certificate_id: uuid.UUID,
    data: CertificateReissueRequest,
    user: CurrentUser,
    service: Enrollments,
):
    """Replace the artifact of an issued certificate; the serial is kept."""
    certificate = await service.reissue_certificate(certificate_id, user, artifact_ref=data.artifact_ref)
    return CertificateResponse.model_validate(certificate)
