"""Public certificate verification.

Answers strictly from the append-only issuance log, never from live
certification rows or profiles: a verifier sees the snapshot captured at
issuance and nothing else, and an id that once verified keeps verifying.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from repositories.issuance_repository import IssuanceRepository
from schemas import CertificateVerificationResult, IssuanceRecord


async def verify_certificate(
    db: AsyncSession,
    certificate_id: str,
) -> IssuanceRecord | None:
    """Look up a certificate by its public id.

    Returns:
        The issuance record, or None for an unknown id.
    """
    repo = IssuanceRepository(db)
    issuance = await repo.get_by_certificate_id(certificate_id.strip())
    return IssuanceRecord.model_validate(issuance) if issuance else None


async def verify_certificate_with_message(
    db: AsyncSession,
    certificate_id: str,
) -> CertificateVerificationResult:
    """Verify a certificate and return a user-friendly result."""
    record = await verify_certificate(db, certificate_id)

    if record is None:
        return CertificateVerificationResult(
            is_valid=False,
            record=None,
            message="Certificate not found. Please check the certificate ID.",
        )

    issued_date = record.issued_at.strftime("%B %d, %Y")
    holder = record.holder_display_name
    if record.dog_display_name:
        holder = f"{holder} with {record.dog_display_name}"

    return CertificateVerificationResult(
        is_valid=True,
        record=record,
        message=(
            f"Valid {record.level.value} certificate '{record.type_name}' "
            f"for {holder}, issued on {issued_date}"
        ),
    )
