"""
State machine for the certificate lifecycle.

    NONE ──request──▶ REQUESTED ──issue──▶ ISSUED ──revoke──▶ REVOKED
                          │                  │  ▲
                        reject               └──┘ reissue
                          ▼
                      REJECTED ──request──▶ REQUESTED (new record)

Every transition appends a CertificateHistoryEntry and an audit event.
Who may trigger a transition is checked by the caller.
"""

import secrets
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bootcamp.config import get_settings
from bootcamp.engines.progress.progress_tracker import ProgressReport
from bootcamp.kernel.errors import (
    AlreadyRequested,
    InvalidDecision,
    InvalidTransition,
    NotEligible,
    TerminalState,
)
from bootcamp.kernel.events.event_store import EventStore
from bootcamp.kernel.models.base import enum_value, utcnow
from bootcamp.kernel.models.certificate import (
    ACTIVE_CERTIFICATE_STATUSES,
    Certificate,
    CertificateHistoryEntry,
    CertificateStatus,
)
from bootcamp.kernel.models.enrollment import Enrollment
from bootcamp.kernel.models.event_log import EventType
from bootcamp.logging_config import get_logger

logger = get_logger(__name__)


class CertificateAction(str, Enum):
    REQUEST = "request"
    ISSUE = "issue"
    REJECT = "reject"
    REVOKE = "revoke"
    REISSUE = "reissue"


# (from_state, action) -> to_state
_TRANSITIONS: Dict[Tuple[CertificateStatus, CertificateAction], CertificateStatus] = {
    (CertificateStatus.NONE, CertificateAction.REQUEST): CertificateStatus.REQUESTED,
    (CertificateStatus.REJECTED, CertificateAction.REQUEST): CertificateStatus.REQUESTED,
    (CertificateStatus.REQUESTED, CertificateAction.ISSUE): CertificateStatus.ISSUED,
    (CertificateStatus.REQUESTED, CertificateAction.REJECT): CertificateStatus.REJECTED,
    (CertificateStatus.ISSUED, CertificateAction.REVOKE): CertificateStatus.REVOKED,
    (CertificateStatus.ISSUED, CertificateAction.REISSUE): CertificateStatus.ISSUED,
}

OPERATOR_ACTIONS = frozenset({
    CertificateAction.ISSUE,
    CertificateAction.REJECT,
    CertificateAction.REVOKE,
    CertificateAction.REISSUE,
})

_TERMINAL_FOR = {
    CertificateStatus.ISSUED: {CertificateAction.REQUEST, CertificateAction.ISSUE, CertificateAction.REJECT},
    CertificateStatus.REVOKED: set(CertificateAction),
}

_EVENT_FOR: Dict[CertificateAction, EventType] = {
    CertificateAction.REQUEST: EventType.CERTIFICATE_REQUESTED,
    CertificateAction.ISSUE: EventType.CERTIFICATE_ISSUED,
    CertificateAction.REJECT: EventType.CERTIFICATE_REJECTED,
    CertificateAction.REVOKE: EventType.CERTIFICATE_REVOKED,
    CertificateAction.REISSUE: EventType.CERTIFICATE_REISSUED,
}


def valid_actions(state: CertificateStatus) -> List[CertificateAction]:
    """Actions the table admits from ``state``."""
    return [action for (from_state, action) in _TRANSITIONS if from_state == state]


def next_state(state: CertificateStatus, action: CertificateAction) -> CertificateStatus:
    """
    Look up the target state.

    Raises:
        AlreadyRequested: request while a request is pending
        TerminalState: the certificate is issued (for request/issue/reject) or revoked
        InvalidTransition: any other pair outside the table
    """
    state = CertificateStatus(enum_value(state))
    target = _TRANSITIONS.get((state, action))
    if target is not None:
        return target
    if state == CertificateStatus.REQUESTED and action == CertificateAction.REQUEST:
        raise AlreadyRequested()
    if action in _TERMINAL_FOR.get(state, ()):
        raise TerminalState(f"Certificate is {state.value}; cannot {action.value}")
    raise InvalidTransition(f"Cannot {action.value} a certificate that is {state.value}")


def generate_serial(prefix: Optional[str] = None) -> str:
    """``<prefix>-<12 uppercase hex>``."""
    prefix = prefix or get_settings().certificate_serial_prefix
    return f"{prefix}-{secrets.token_hex(6).upper()}"


class CertificateLifecycle:
    """Performs certificate transitions with history and audit logging."""

    SERIAL_ATTEMPTS = 5

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    # Reads

    async def active_certificate(self, enrollment_id: uuid.UUID) -> Optional[Certificate]:
        """The requested, issued or revoked record, if any (at most one exists)."""
        q = select(Certificate).where(
            Certificate.enrollment_id == enrollment_id,
            Certificate.status.in_([s.value for s in ACTIVE_CERTIFICATE_STATUSES]),
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def current_certificate(self, enrollment_id: uuid.UUID) -> Optional[Certificate]:
        """The active record, else the most recent rejected one."""
        active = await self.active_certificate(enrollment_id)
        if active is not None:
            return active
        q = (
            select(Certificate)
            .where(Certificate.enrollment_id == enrollment_id)
            .order_by(Certificate.requested_at.desc())
            .limit(1)
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def state_of(self, enrollment_id: uuid.UUID) -> CertificateStatus:
        current = await self.current_certificate(enrollment_id)
        if current is None:
            return CertificateStatus.NONE
        return CertificateStatus(enum_value(current.status))

    async def history(self, enrollment_id: uuid.UUID) -> List[CertificateHistoryEntry]:
        q = (
            select(CertificateHistoryEntry)
            .where(CertificateHistoryEntry.enrollment_id == enrollment_id)
            .order_by(CertificateHistoryEntry.id)
        )
        result = await self.session.execute(q)
        return list(result.scalars().all())

    # Transitions

    async def request(
        self,
        enrollment: Enrollment,
        actor_id: uuid.UUID,
        report: ProgressReport,
        note: str = "",
    ) -> Certificate:
        """
        Open a new certificate request.

        ``report`` must be computed from the persisted completions against
        the current curriculum.

        Raises:
            AlreadyRequested: carrying the pending record
            TerminalState: already issued or revoked
            NotEligible: progress below 100
        """
        current = await self.current_certificate(enrollment.id)
        from_state = CertificateStatus.NONE if current is None else CertificateStatus(enum_value(current.status))
        try:
            to_state = next_state(from_state, CertificateAction.REQUEST)
        except AlreadyRequested:
            raise AlreadyRequested(certificate=current) from None

        if not report.is_complete:
            raise NotEligible(
                f"Course progress is {report.overall_percent}%; certificates require 100%",
                overall_percent=report.overall_percent,
            )

        certificate = Certificate(
            enrollment_id=enrollment.id,
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            status=to_state.value,
            note=note or "",
            requested_at=utcnow(),
        )
        self.session.add(certificate)
        # Flush so a concurrent duplicate surfaces here as IntegrityError
        await self.session.flush()

        await self._record(certificate, actor_id, CertificateAction.REQUEST, from_state, to_state, reason=note or None)
        return certificate

    async def issue(
        self,
        certificate: Certificate,
        actor_id: uuid.UUID,
        artifact_ref: Optional[str],
        issued_at: Optional[datetime] = None,
    ) -> Certificate:
        from_state = CertificateStatus(enum_value(certificate.status))
        to_state = next_state(from_state, CertificateAction.ISSUE)
        if not artifact_ref or not artifact_ref.strip():
            raise InvalidDecision("An artifact reference is required to issue a certificate")

        certificate.status = to_state.value
        certificate.artifact_ref = artifact_ref.strip()
        certificate.issued_at = issued_at or utcnow()
        certificate.issued_by = actor_id
        certificate.decided_by = actor_id
        certificate.serial = await self._unique_serial()

        await self._record(
            certificate,
            actor_id,
            CertificateAction.ISSUE,
            from_state,
            to_state,
            artifact_ref=certificate.artifact_ref,
        )
        return certificate

    async def reject(
        self,
        certificate: Certificate,
        actor_id: uuid.UUID,
        reason: Optional[str],
    ) -> Certificate:
        """Reject a pending request. ``reason`` must be given but may be empty."""
        from_state = CertificateStatus(enum_value(certificate.status))
        to_state = next_state(from_state, CertificateAction.REJECT)
        if reason is None:
            raise InvalidDecision("A rejection reason is required")

        certificate.status = to_state.value
        certificate.rejected_at = utcnow()
        certificate.rejection_reason = reason
        certificate.decided_by = actor_id

        await self._record(certificate, actor_id, CertificateAction.REJECT, from_state, to_state, reason=reason)
        return certificate

    async def revoke(
        self,
        certificate: Certificate,
        actor_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Certificate:
        from_state = CertificateStatus(enum_value(certificate.status))
        to_state = next_state(from_state, CertificateAction.REVOKE)

        certificate.status = to_state.value
        certificate.revoked_at = utcnow()
        certificate.revocation_reason = reason

        await self._record(certificate, actor_id, CertificateAction.REVOKE, from_state, to_state, reason=reason)
        return certificate

    async def reissue(
        self,
        certificate: Certificate,
        actor_id: uuid.UUID,
        artifact_ref: Optional[str],
    ) -> Certificate:
        """Replace the artifact of an issued certificate; the serial is kept."""
        from_state = CertificateStatus(enum_value(certificate.status))
        to_state = next_state(from_state, CertificateAction.REISSUE)
        if not artifact_ref or not artifact_ref.strip():
            raise InvalidDecision("An artifact reference is required to re-issue a certificate")

        previous_ref = certificate.artifact_ref
        certificate.artifact_ref = artifact_ref.strip()
        certificate.issued_at = utcnow()
        certificate.issued_by = actor_id

        await self._record(
            certificate,
            actor_id,
            CertificateAction.REISSUE,
            from_state,
            to_state,
            artifact_ref=certificate.artifact_ref,
            extra={"previous_artifact_ref": previous_ref},
        )
        return certificate

    async def _unique_serial(self) -> str:
        for _ in range(self.SERIAL_ATTEMPTS):
            serial = generate_serial()
            exists = await self.session.execute(select(Certificate.id).where(Certificate.serial == serial))
            if exists.scalar_one_or_none() is None:
                return serial
        raise RuntimeError("Could not allocate a unique certificate serial")

    async def _record(
        self,
        certificate: Certificate,
        actor_id: uuid.UUID,
        action: CertificateAction,
        from_state: CertificateStatus,
        to_state: CertificateStatus,
        reason: Optional[str] = None,
        artifact_ref: Optional[str] = None,
        extra: Optional[dict] = None,
    ) -> None:
        self.session.add(
            CertificateHistoryEntry(
                enrollment_id=certificate.enrollment_id,
                certificate_id=certificate.id,
                actor_id=actor_id,
                from_state=from_state.value,
                to_state=to_state.value,
                reason=reason,
                artifact_ref=artifact_ref,
            )
        )
        await self.event_store.log(
            event_type=_EVENT_FOR[action],
            entity_type="certificate",
            entity_id=certificate.id,
            user_id=actor_id,
            payload={
                "enrollment_id": certificate.enrollment_id,
                "from_state": from_state.value,
                "to_state": to_state.value,
                "serial": certificate.serial,
                "reason": reason,
                "artifact_ref": artifact_ref,
                **(extra or {}),
            },
        )
        await self.session.flush()
        logger.info(
            "Certificate %s",
            action.value,
            extra={
                "certificate_id": str(certificate.id),
                "enrollment_id": str(certificate.enrollment_id),
                "from_state": from_state.value,
                "to_state": to_state.value,
            },
        )
