"""Certificate artifact and verification endpoints.

Route ordering note: Literal path segments (/pending-artifacts, /verify/) are
defined before parameterized segments (/{certificate_id}/) to prevent routing
conflicts.
"""

from fastapi import APIRouter, HTTPException, Path, Query, Request

from core.database import DbSession
from core.ratelimit import VERIFY_LIMIT, limiter
from schemas import (
    AttachArtifactRequest,
    CertificateIssued,
    CertificateVerifyResponse,
    PendingArtifactsResponse,
)
from services.certificates_service import (
    attach_storage_handle,
    list_pending_artifacts,
)
from services.errors import CertificateNotFound, CertificationNotFound
from services.verification_service import verify_certificate_with_message

router = APIRouter(prefix="/api/certificates", tags=["certificates"])


# --- Literal path routes (before parameterized) ---


@router.get("/pending-artifacts", response_model=PendingArtifactsResponse)
async def pending_artifacts(
    db: DbSession,
    limit: int = Query(100, ge=1, le=500),
) -> PendingArtifactsResponse:
    """Issued certificates whose rendered document was never stored."""
    certificates = await list_pending_artifacts(db, limit=limit)
    return PendingArtifactsResponse(certificates=certificates)


@router.get(
    "/verify/{certificate_id}",
    response_model=CertificateVerifyResponse,
    responses={
        422: {"description": "Validation error - id too short or long"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(VERIFY_LIMIT)
async def verify_certificate_endpoint(
    request: Request,
    db: DbSession,
    certificate_id: str = Path(min_length=10, max_length=64),
) -> CertificateVerifyResponse:
    """Verify a certificate by its id (public endpoint)."""
    result = await verify_certificate_with_message(db, certificate_id)

    return CertificateVerifyResponse(
        is_valid=result.is_valid,
        certificate=result.record,
        message=result.message,
    )


# --- Parameterized routes ---


@router.put(
    "/{certificate_id}/artifact",
    response_model=CertificateIssued,
    responses={404: {"description": "Certificate not found"}},
)
async def attach_artifact(
    body: AttachArtifactRequest,
    db: DbSession,
    certificate_id: str = Path(min_length=10, max_length=64),
) -> CertificateIssued:
    """Attach the storage handle of a rendered certificate document."""
    try:
        return await attach_storage_handle(db, certificate_id, body.storage_handle)
    except (CertificateNotFound, CertificationNotFound):
        raise HTTPException(status_code=404, detail="Certificate not found")
