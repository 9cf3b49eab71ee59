"""Repository for the certification catalog (types and their criteria)."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    CertificationCriterion,
    CertificationLevel,
    CertificationType,
    CriterionKind,
)


class CatalogRepository:
    """Repository for certification type and criterion operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, certification_type_id: int) -> CertificationType | None:
        return await self.db.get(CertificationType, certification_type_id)

    async def get_by_name(self, name: str) -> CertificationType | None:
        result = await self.db.execute(
            select(CertificationType).where(CertificationType.name == name)
        )
        return result.scalar_one_or_none()

    async def get_all(self) -> Sequence[CertificationType]:
        """All certification types with their criteria loaded."""
        result = await self.db.execute(
            select(CertificationType).order_by(CertificationType.id)
        )
        return result.scalars().all()

    async def get_types_for_course(self, course_id: str) -> Sequence[CertificationType]:
        """Types with at least one criterion referencing the course."""
        result = await self.db.execute(
            select(CertificationType)
            .where(
                CertificationType.id.in_(
                    select(CertificationCriterion.certification_type_id).where(
                        CertificationCriterion.course_id == course_id
                    )
                )
            )
            .order_by(CertificationType.id)
        )
        return result.scalars().all()

    async def get_types_with_training_days(self) -> Sequence[CertificationType]:
        """Types with at least one training_days criterion."""
        result = await self.db.execute(
            select(CertificationType)
            .where(
                CertificationType.id.in_(
                    select(CertificationCriterion.certification_type_id).where(
                        CertificationCriterion.kind
                        == CriterionKind.TRAINING_DAYS.value
                    )
                )
            )
            .order_by(CertificationType.id)
        )
        return result.scalars().all()

    async def create(
        self,
        name: str,
        description: str,
        level: CertificationLevel,
        criteria: list[CertificationCriterion],
    ) -> CertificationType:
        """Create a type with its criteria.

        Calls flush() but does NOT commit; the caller owns the transaction.
        """
        certification_type = CertificationType(
            name=name,
            description=description,
            level=level,
            criteria=criteria,
        )
        self.db.add(certification_type)
        await self.db.flush()
        return certification_type
