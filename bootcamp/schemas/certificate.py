"""
Certificate schemas.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CertificateRequest(BaseModel):
    note: str = Field("", max_length=2000)


class CertificateDecisionRequest(BaseModel):
    """
    Operator decision on a pending request.

    ``issue`` needs ``artifact_ref`` (``issued_at`` defaults to now);
    ``reject`` needs ``reason``, which may be empty.
    """

    decision: Literal["issue", "reject"]
    artifact_ref: Optional[str] = None
    issued_at: Optional[datetime] = None
    reason: Optional[str] = None


class CertificateRevokeRequest(BaseModel):
    reason: Optional[str] = None


class CertificateReissueRequest(BaseModel):
    artifact_ref: str = Field(..., min_length=1)


class CertificateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    enrollment_id: uuid.UUID
    user_id: uuid.UUID
    course_id: uuid.UUID
    status: str
    note: str
    requested_at: datetime
    serial: Optional[str] = None
    issued_at: Optional[datetime] = None
    artifact_ref: Optional[str] = None
    issued_by: Optional[uuid.UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    decided_by: Optional[uuid.UUID] = None
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None


class CertificateApplyResponse(BaseModel):
    """``already_requested`` is true when a pending request was returned."""

    certificate: CertificateResponse
    already_requested: bool = False


class CertificateHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    certificate_id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    from_state: str
    to_state: str
    reason: Optional[str] = None
    artifact_ref: Optional[str] = None
    created_at: datetime
