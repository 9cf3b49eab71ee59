"""Certification listing and issuance endpoints.

Route ordering note: per-certification routes carry a literal suffix
(/progress, /issue) so they never collide with the per-user listing.
"""

from fastapi import APIRouter, HTTPException, Path, Query, Request, Response

from core.database import DbSession
from core.logger import get_logger
from core.ratelimit import ISSUE_LIMIT, limiter
from schemas import (
    CertificateIssued,
    CertificationListResponse,
    CertificationSnapshot,
    IssueCertificateRequest,
)
from services.certificates_service import issue_certificate
from services.certifications_service import (
    get_certification_snapshot,
    get_certification_snapshots,
)
from services.errors import (
    CertificationNotFound,
    DuplicateIssuanceRace,
    EmptyCertificationType,
    IssuanceRecordMissing,
    NotEligible,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/certifications", tags=["certifications"])


@router.get(
    "/{user_id}",
    response_model=CertificationListResponse,
)
async def list_certifications(
    db: DbSession,
    user_id: str = Path(min_length=1, max_length=255),
    dog_id: str | None = Query(default=None, max_length=255),
) -> CertificationListResponse:
    """All certifications of a user (and optionally one dog), one per type."""
    snapshots = await get_certification_snapshots(db, user_id, dog_id)
    return CertificationListResponse(certifications=snapshots)


@router.get(
    "/{certification_id}/progress",
    response_model=CertificationSnapshot,
    responses={
        404: {"description": "Certification not found"},
        409: {"description": "Certification type has no criteria"},
    },
)
async def get_certification(
    certification_id: int,
    db: DbSession,
) -> CertificationSnapshot:
    """One certification with its current progress."""
    try:
        return await get_certification_snapshot(db, certification_id)
    except CertificationNotFound:
        raise HTTPException(status_code=404, detail="Certification not found")
    except EmptyCertificationType as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post(
    "/{certification_id}/issue",
    response_model=CertificateIssued,
    status_code=201,
    responses={
        200: {"description": "Certificate was already issued"},
        403: {"description": "Not every criterion is satisfied"},
        404: {"description": "Certification not found"},
        409: {"description": "Certification type has no criteria"},
        500: {"description": "Certified without an issuance record"},
        503: {"description": "Concurrent issuance did not settle"},
    },
)
@limiter.limit(ISSUE_LIMIT)
async def issue_certificate_endpoint(
    request: Request,
    response: Response,
    certification_id: int,
    body: IssueCertificateRequest,
    db: DbSession,
) -> CertificateIssued:
    """Issue the certificate of an eligible certification (idempotent)."""
    try:
        result = await issue_certificate(
            db,
            certification_id,
            holder_display_name=body.holder_display_name,
            dog_display_name=body.dog_display_name,
        )
    except CertificationNotFound:
        raise HTTPException(status_code=404, detail="Certification not found")
    except NotEligible as e:
        raise HTTPException(
            status_code=403,
            detail=f"Not eligible yet: {e.completion_pct}% complete",
        )
    except EmptyCertificationType as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DuplicateIssuanceRace:
        raise HTTPException(
            status_code=503,
            detail="Certificate issuance is busy. Please try again.",
            headers={"Retry-After": "1"},
        )
    except IssuanceRecordMissing as e:
        logger.error(
            "certificate.issuance_missing", certification_id=e.certification_id
        )
        raise HTTPException(
            status_code=500,
            detail="Certificate record is inconsistent. Please contact support.",
        )

    if result.already_issued:
        response.status_code = 200
    return result
