"""Repository for certification records."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Certification, CertificationState, dog_key_for, utcnow
from repositories.utils import insert_if_absent, log_slow_query


class CertificationRepository:
    """Repository for certification CRUD and state writes."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("get_certification")
    async def get_by_id(
        self,
        certification_id: int,
        *,
        refresh: bool = False,
    ) -> Certification | None:
        """Get a certification by ID.

        ``refresh`` bypasses the identity map so a retry after a lost race
        sees the row as another transaction left it.
        """
        stmt = select(Certification).where(Certification.id == certification_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def get_for_user_dog(
        self,
        user_id: str,
        dog_id: str | None,
        certification_type_ids: list[int] | None = None,
    ) -> Sequence[Certification]:
        """Certifications of one (user, dog) context, optionally per type."""
        stmt = select(Certification).where(
            Certification.user_id == user_id,
            Certification.dog_key == dog_key_for(dog_id),
        )
        if certification_type_ids is not None:
            stmt = stmt.where(
                Certification.certification_type_id.in_(certification_type_ids)
            )
        result = await self.db.execute(stmt.order_by(Certification.id))
        return result.unique().scalars().all()

    async def get_certified_for_user(self, user_id: str) -> Sequence[Certification]:
        result = await self.db.execute(
            select(Certification)
            .where(
                Certification.user_id == user_id,
                Certification.state == CertificationState.CERTIFIED,
            )
            .order_by(Certification.issued_at)
        )
        return result.unique().scalars().all()

    async def get_missing_storage_handle(
        self, *, limit: int = 100
    ) -> Sequence[Certification]:
        """Certified records whose rendered artifact was never attached."""
        result = await self.db.execute(
            select(Certification)
            .where(
                Certification.state == CertificationState.CERTIFIED,
                Certification.storage_handle.is_(None),
            )
            .order_by(Certification.issued_at)
            .limit(limit)
        )
        return result.unique().scalars().all()

    async def insert_started(
        self,
        user_id: str,
        dog_id: str | None,
        certification_type_ids: list[int],
    ) -> int:
        """Insert ``started`` records for the given types unless present.

        Core INSERT bypasses the ORM, so version_id starts explicitly at 1.
        """
        now = utcnow()
        rows = [
            {
                "user_id": user_id,
                "dog_id": dog_id,
                "dog_key": dog_key_for(dog_id),
                "certification_type_id": type_id,
                "state": CertificationState.STARTED.value,
                "completion_pct": 0,
                "version_id": 1,
                "created_at": now,
                "updated_at": now,
            }
            for type_id in certification_type_ids
        ]
        return await insert_if_absent(
            self.db,
            Certification,
            rows,
            index_elements=["user_id", "dog_key", "certification_type_id"],
        )

    async def save_progress(
        self,
        certification: Certification,
        state: CertificationState,
        completion_pct: int,
    ) -> Certification:
        """Persist recomputed progress. Flushes (version checked), no commit."""
        certification.state = state
        certification.completion_pct = completion_pct
        await self.db.flush()
        return certification

    async def mark_certified(
        self,
        certification: Certification,
        issued_at: datetime,
    ) -> Certification:
        certification.state = CertificationState.CERTIFIED
        certification.completion_pct = 100
        certification.issued_at = issued_at
        await self.db.flush()
        return certification

    async def set_storage_handle(
        self,
        certification: Certification,
        storage_handle: str,
    ) -> Certification:
        certification.storage_handle = storage_handle
        await self.db.flush()
        return certification
