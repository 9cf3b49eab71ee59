"""Certification catalog administration.

Types are created once with their criteria and are not edited through this
service afterwards. Creation validates what evaluation would otherwise only
discover later: a type needs at least one criterion, and every criterion must
parse into a supported kind.
"""

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from models import CertificationCriterion, CertificationLevel, CertificationType
from repositories.catalog_repository import CatalogRepository
from schemas import CertificationTypeResponse, CriterionCreate, CriterionResponse
from services.criteria_service import CriterionDefinition, parse_criterion
from services.errors import EmptyCertificationType

logger = get_logger(__name__)

DEFAULT_CATALOG: list[dict] = [
    {
        "name": "Grundgehorsam",
        "description": "Basic obedience: sit, stay, recall and loose-leash walking",
        "level": CertificationLevel.BRONZE,
        "criteria": [
            {
                "kind": "course_completion",
                "course_id": "grundgehorsam",
                "required_value": 1,
                "description": "Complete the Grundgehorsam course",
            },
            {
                "kind": "quiz_score",
                "course_id": "grundgehorsam",
                "required_value": 70,
                "description": "Score at least 70 in the Grundgehorsam quiz",
            },
        ],
    },
    {
        "name": "Alltagsbegleiter",
        "description": "Everyday companion: calm in traffic, cafés and crowds",
        "level": CertificationLevel.SILVER,
        "criteria": [
            {
                "kind": "course_completion",
                "course_id": "alltagstraining",
                "required_value": 1,
                "description": "Complete the everyday training course",
            },
            {
                "kind": "training_days",
                "required_value": 30,
                "description": "Log training on 30 different days",
            },
        ],
    },
    {
        "name": "Hundeführerschein",
        "description": "Dog owner's licence: theory and practical exam preparation",
        "level": CertificationLevel.GOLD,
        "criteria": [
            {
                "kind": "course_completion",
                "course_id": "hundefuehrerschein",
                "required_value": 1,
                "description": "Complete the Hundeführerschein course",
            },
            {
                "kind": "quiz_score",
                "course_id": "hundefuehrerschein",
                "required_value": 80,
                "description": "Score at least 80 in the theory exam",
            },
            {
                "kind": "training_days",
                "required_value": 60,
                "description": "Log training on 60 different days",
            },
        ],
    },
]


class CertificationTypeExistsError(Exception):
    """Raised when a certification type name is already taken."""

    pass


def to_response(certification_type: CertificationType) -> CertificationTypeResponse:
    return CertificationTypeResponse(
        id=certification_type.id,
        name=certification_type.name,
        description=certification_type.description,
        level=certification_type.level,
        criteria=[
            CriterionResponse.model_validate(row) for row in certification_type.criteria
        ],
    )


async def create_certification_type(
    db: AsyncSession,
    name: str,
    description: str,
    level: CertificationLevel,
    criteria: Sequence[CriterionCreate],
) -> CertificationType:
    """Create a certification type with its criteria.

    Raises:
        EmptyCertificationType: No criteria given
        UnsupportedCriterionKind: A criterion cannot be evaluated
        CertificationTypeExistsError: The name is taken
    """
    if not criteria:
        raise EmptyCertificationType(name=name)

    for criterion in criteria:
        parse_criterion(
            CriterionDefinition(
                id=None,
                kind=criterion.kind.value,
                required_value=criterion.required_value,
                description=criterion.description,
                course_id=criterion.course_id,
            )
        )

    repo = CatalogRepository(db)
    if await repo.get_by_name(name) is not None:
        raise CertificationTypeExistsError(f"Certification type {name!r} exists")

    certification_type = await repo.create(
        name=name,
        description=description,
        level=level,
        criteria=[
            CertificationCriterion(
                kind=criterion.kind.value,
                course_id=criterion.course_id,
                required_value=criterion.required_value,
                description=criterion.description,
            )
            for criterion in criteria
        ],
    )
    logger.info(
        "certification_type.created",
        certification_type_id=certification_type.id,
        name=name,
        level=level.value,
        criteria=len(criteria),
    )
    return certification_type


async def list_certification_types(db: AsyncSession) -> list[CertificationTypeResponse]:
    """All catalog types, ordered by level (bronze first) then name."""
    types = await CatalogRepository(db).get_all()
    ordered = sorted(types, key=lambda t: (t.level.rank, t.name))
    return [to_response(t) for t in ordered]


async def seed_default_catalog(db: AsyncSession) -> int:
    """Create the default catalog types that do not exist yet.

    Returns:
        Number of types created
    """
    repo = CatalogRepository(db)
    created = 0
    for entry in DEFAULT_CATALOG:
        if await repo.get_by_name(entry["name"]) is not None:
            continue
        await create_certification_type(
            db,
            name=entry["name"],
            description=entry["description"],
            level=entry["level"],
            criteria=[CriterionCreate(**c) for c in entry["criteria"]],
        )
        created += 1
    return created
