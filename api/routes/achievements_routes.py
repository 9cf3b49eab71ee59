"""Achievement endpoints."""

from fastapi import APIRouter, Path

from core.database import DbSession
from schemas import AchievementsResponse
from services.achievements_service import compute_achievements

router = APIRouter(prefix="/api/achievements", tags=["achievements"])


@router.get("/{user_id}", response_model=AchievementsResponse)
async def get_achievements(
    db: DbSession,
    user_id: str = Path(min_length=1, max_length=255),
) -> AchievementsResponse:
    """Certificates earned and training milestones reached by a user."""
    achievements = await compute_achievements(db, user_id)
    return AchievementsResponse(achievements=achievements)
