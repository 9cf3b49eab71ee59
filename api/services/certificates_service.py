"""Certificate issuance for Dogmania.

This module handles certificate business logic:
- Certificate id generation (128 random bits, never sequential)
- Issuance: re-validate, mint, log, certify - exactly once per certification
- Attaching the rendered artifact's storage handle (retryable)
- Listing certificates whose artifact is still missing

Rendering the document is done by an external collaborator, which receives a
CertificateIssued and later calls back with a storage handle. A rendering
failure never rolls back an issuance.
"""

import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from core.config import get_settings
from core.logger import get_logger
from core.wide_event import set_wide_event_fields, set_wide_event_nested
from models import Certification, CertificationState
from repositories.certification_repository import CertificationRepository
from repositories.issuance_repository import IssuanceRepository
from schemas import CertificateIssued
from services.certification_state import begin_issuance
from services.errors import (
    CertificateNotFound,
    CertificationNotFound,
    DuplicateIssuanceRace,
    IssuanceRecordMissing,
)
from services.progress_service import aggregate_type, fetch_progress_facts

logger = get_logger(__name__)


def generate_certificate_id() -> str:
    """Generate an unguessable certificate id.

    Format: {prefix}-{32 upper-case hex chars}, i.e. 128 bits from ``secrets``.
    """
    prefix = get_settings().certificate_id_prefix
    return f"{prefix}-{secrets.token_hex(16).upper()}"


async def _existing_certificate(
    db: AsyncSession,
    certification: Certification,
) -> CertificateIssued:
    issuance = await IssuanceRepository(db).get_by_certification_id(certification.id)
    if issuance is None:
        raise IssuanceRecordMissing(certification.id)
    return CertificateIssued(
        certificate_id=issuance.certificate_id,
        certification_id=certification.id,
        storage_handle=certification.storage_handle,
        already_issued=True,
    )


async def _issue_once(
    db: AsyncSession,
    certification_id: int,
    holder_display_name: str,
    dog_display_name: str | None,
    *,
    refresh: bool,
) -> CertificateIssued:
    cert_repo = CertificationRepository(db)
    certification = await cert_repo.get_by_id(certification_id, refresh=refresh)
    if certification is None:
        raise CertificationNotFound(certification_id)

    if certification.state == CertificationState.CERTIFIED:
        return await _existing_certificate(db, certification)

    facts = await fetch_progress_facts(db, certification.user_id, certification.dog_id)
    progress = aggregate_type(certification.certification_type, facts)
    path = begin_issuance(
        certification.id,
        certification.state,
        progress.completion_pct,
        progress.all_satisfied,
    )

    certification_type = certification.certification_type
    certificate_id = generate_certificate_id()
    try:
        async with db.begin_nested():
            if CertificationState.ELIGIBLE in path:
                await cert_repo.save_progress(
                    certification, CertificationState.ELIGIBLE, 100
                )
            issuance = await IssuanceRepository(db).create(
                certificate_id=certificate_id,
                certification_id=certification.id,
                user_id=certification.user_id,
                type_name=certification_type.name,
                level=certification_type.level,
                holder_display_name=holder_display_name,
                dog_display_name=dog_display_name,
            )
            await cert_repo.mark_certified(certification, issuance.issued_at)
    except (IntegrityError, StaleDataError) as e:
        raise DuplicateIssuanceRace(certification_id) from e

    logger.info(
        "certificate.issued",
        certificate_id=certificate_id,
        certification_id=certification.id,
        user_id=certification.user_id,
        dog_id=certification.dog_id,
        certification_type=certification_type.name,
        path=[state.value for state in path],
    )
    return CertificateIssued(
        certificate_id=certificate_id,
        certification_id=certification.id,
    )


async def issue_certificate(
    db: AsyncSession,
    certification_id: int,
    holder_display_name: str,
    dog_display_name: str | None = None,
) -> CertificateIssued:
    """Issue the certificate of an eligible certification, exactly once.

    Calling this again on a certified record returns the same certificate
    with ``already_issued=True``. A concurrent attempt that loses the race
    is retried by re-reading the record, so callers never see the race.

    Args:
        db: Database session
        certification_id: The certification to issue
        holder_display_name: Name snapshot printed and shown on verification
        dog_display_name: Optional dog name snapshot

    Returns:
        CertificateIssued to hand to the rendering collaborator

    Raises:
        CertificationNotFound: Unknown certification id
        NotEligible: Current progress does not satisfy every criterion
        EmptyCertificationType: The certification's type has no criteria
        DuplicateIssuanceRace: Still racing after all configured attempts
        IssuanceRecordMissing: Certified record without its log entry
    """
    max_attempts = get_settings().issuance_max_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            result = await _issue_once(
                db,
                certification_id,
                holder_display_name,
                dog_display_name,
                refresh=attempt > 1,
            )
        except DuplicateIssuanceRace:
            logger.info(
                "certificate.issue.race_lost",
                certification_id=certification_id,
                attempt=attempt,
            )
            continue

        set_wide_event_fields(certification_id=certification_id)
        set_wide_event_nested(
            "issuance",
            certificate_id=result.certificate_id,
            already_issued=result.already_issued,
            attempts=attempt,
        )
        return result

    raise DuplicateIssuanceRace(certification_id)


async def attach_storage_handle(
    db: AsyncSession,
    certificate_id: str,
    storage_handle: str,
) -> CertificateIssued:
    """Record where the rendered certificate document was stored.

    Safe to call again when a render is retried; the latest handle wins.

    Raises:
        CertificateNotFound: No certificate with that id was ever issued
        CertificationNotFound: The certification was purged after issuance
    """
    issuance = await IssuanceRepository(db).get_by_certificate_id(certificate_id)
    if issuance is None:
        raise CertificateNotFound(certificate_id)

    cert_repo = CertificationRepository(db)
    certification = await cert_repo.get_by_id(issuance.certification_id)
    if certification is None:
        raise CertificationNotFound(issuance.certification_id)

    replaced = certification.storage_handle
    await cert_repo.set_storage_handle(certification, storage_handle)

    logger.info(
        "certificate.artifact.attached",
        certificate_id=certificate_id,
        certification_id=certification.id,
        replaced=replaced is not None,
    )
    return CertificateIssued(
        certificate_id=certificate_id,
        certification_id=certification.id,
        storage_handle=storage_handle,
        already_issued=True,
    )


async def list_pending_artifacts(
    db: AsyncSession,
    *,
    limit: int = 100,
) -> list[CertificateIssued]:
    """Certified-but-unrendered certificates, oldest first, for render retries."""
    certifications = await CertificationRepository(db).get_missing_storage_handle(
        limit=limit
    )
    issuances = await IssuanceRepository(db).get_by_certification_ids(
        [c.id for c in certifications]
    )
    by_certification = {i.certification_id: i for i in issuances}

    return [
        CertificateIssued(
            certificate_id=by_certification[c.id].certificate_id,
            certification_id=c.id,
            already_issued=True,
        )
        for c in certifications
        if c.id in by_certification
    ]
