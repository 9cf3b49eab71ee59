"""Achievement computation.

Achievements are computed on-the-fly from the same data certifications use.
No separate database table is needed - achievements are derived from:
- Certified certifications (one achievement each, at the type's level)
- Distinct training days (milestone achievements)
"""

from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from models import CertificationLevel
from repositories.certification_repository import CertificationRepository
from repositories.issuance_repository import IssuanceRepository
from repositories.progress_repository import ProgressRepository
from schemas import AchievementData


class TrainingMilestoneInfo(TypedDict):
    """Training milestone configuration."""

    id: str
    title: str
    description: str
    level: CertificationLevel
    required_days: int


TRAINING_MILESTONES: list[TrainingMilestoneInfo] = [
    {
        "id": "training_days_7",
        "title": "Training Week",
        "description": "Trained on 7 different days",
        "level": CertificationLevel.BRONZE,
        "required_days": 7,
    },
    {
        "id": "training_days_30",
        "title": "Training Month",
        "description": "Trained on 30 different days",
        "level": CertificationLevel.SILVER,
        "required_days": 30,
    },
    {
        "id": "training_days_100",
        "title": "Training Century",
        "description": "Trained on 100 different days",
        "level": CertificationLevel.GOLD,
        "required_days": 100,
    },
]


def compute_training_achievements(training_days: int) -> list[AchievementData]:
    """Compute which training milestones a user has reached.

    Args:
        training_days: Distinct calendar days with logged training

    Returns:
        List of earned AchievementData objects
    """
    return [
        AchievementData(
            id=milestone["id"],
            kind="training",
            title=milestone["title"],
            description=milestone["description"],
            level=milestone["level"],
        )
        for milestone in TRAINING_MILESTONES
        if training_days >= milestone["required_days"]
    ]


async def compute_certification_achievements(
    db: AsyncSession,
    user_id: str,
) -> list[AchievementData]:
    """One achievement per certified certification, oldest first."""
    certifications = await CertificationRepository(db).get_certified_for_user(user_id)
    issuances = await IssuanceRepository(db).get_by_certification_ids(
        [c.id for c in certifications]
    )
    dog_names = {i.certification_id: i.dog_display_name for i in issuances}

    achievements = []
    for certification in certifications:
        certification_type = certification.certification_type
        dog_name = dog_names.get(certification.id)
        description = certification_type.description or certification_type.name
        if dog_name:
            description = f"{description} (with {dog_name})"
        achievements.append(
            AchievementData(
                id=f"certification_{certification.id}",
                kind="certification",
                title=certification_type.name,
                description=description,
                level=certification_type.level,
                earned_at=certification.issued_at,
            )
        )
    return achievements


async def compute_achievements(
    db: AsyncSession,
    user_id: str,
) -> list[AchievementData]:
    """Compute all achievements a user has earned."""
    achievements = await compute_certification_achievements(db, user_id)
    training_days = await ProgressRepository(db).count_training_days(user_id)
    achievements.extend(compute_training_achievements(training_days))
    return achievements
