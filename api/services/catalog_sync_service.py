"""Reconcile certification records with the catalog.

Every (user, dog) context gets exactly one certification per catalog type.
Missing records are created in ``started`` state at 0% with insert-if-absent
semantics, so concurrent or repeated calls never create duplicates.
"""

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from models import Certification, CertificationType
from repositories.certification_repository import CertificationRepository

logger = get_logger(__name__)


async def ensure_records(
    db: AsyncSession,
    user_id: str,
    dog_id: str | None,
    types: Sequence[CertificationType],
) -> list[Certification]:
    """Ensure a certification exists for every type; return them all.

    Args:
        db: Database session
        user_id: Holder of the certifications
        dog_id: Dog the certifications are earned with, or None
        types: Certification types to reconcile

    Returns:
        One certification per given type, ordered like ``types``.
    """
    if not types:
        return []

    repo = CertificationRepository(db)
    type_ids = [t.id for t in types]

    existing = await repo.get_for_user_dog(user_id, dog_id, type_ids)
    have = {c.certification_type_id for c in existing}
    missing = [type_id for type_id in type_ids if type_id not in have]
    if not missing:
        return _in_type_order(existing, type_ids)

    created = await repo.insert_started(user_id, dog_id, missing)
    if created:
        logger.info(
            "certifications.created",
            user_id=user_id,
            dog_id=dog_id,
            created=created,
            requested=len(missing),
        )

    records = await repo.get_for_user_dog(user_id, dog_id, type_ids)
    return _in_type_order(records, type_ids)


def _in_type_order(
    records: Sequence[Certification],
    type_ids: list[int],
) -> list[Certification]:
    by_type = {r.certification_type_id: r for r in records}
    return [by_type[type_id] for type_id in type_ids if type_id in by_type]
