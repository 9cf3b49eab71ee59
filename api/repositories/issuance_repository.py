"""Repository for the append-only certificate issuance log."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import CertificateIssuance, CertificationLevel, utcnow
from repositories.utils import log_slow_query


class IssuanceRepository:
    """Insert and read issuance records. There is no update or delete."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("get_issuance_by_certificate_id")
    async def get_by_certificate_id(
        self,
        certificate_id: str,
    ) -> CertificateIssuance | None:
        """Get an issuance record by its public certificate id."""
        return await self.db.get(CertificateIssuance, certificate_id)

    async def get_by_certification_id(
        self,
        certification_id: int,
    ) -> CertificateIssuance | None:
        result = await self.db.execute(
            select(CertificateIssuance).where(
                CertificateIssuance.certification_id == certification_id
            )
        )
        return result.scalar_one_or_none()

    async def get_by_certification_ids(
        self,
        certification_ids: list[int],
    ) -> Sequence[CertificateIssuance]:
        if not certification_ids:
            return []
        result = await self.db.execute(
            select(CertificateIssuance).where(
                CertificateIssuance.certification_id.in_(certification_ids)
            )
        )
        return result.scalars().all()

    async def create(
        self,
        certificate_id: str,
        certification_id: int,
        user_id: str,
        type_name: str,
        level: CertificationLevel,
        holder_display_name: str,
        dog_display_name: str | None,
    ) -> CertificateIssuance:
        """Append an issuance record.

        Sets issued_at to current UTC time. Calls flush() but does NOT commit;
        the unique certification_id constraint fails the flush if another
        attempt already issued for this certification.
        """
        issuance = CertificateIssuance(
            certificate_id=certificate_id,
            certification_id=certification_id,
            user_id=user_id,
            type_name=type_name,
            level=level,
            holder_display_name=holder_display_name,
            dog_display_name=dog_display_name,
            issued_at=utcnow(),
        )
        self.db.add(issuance)
        await self.db.flush()
        return issuance
