"""Progress event endpoints.

Events are facts reported by the course, quiz and training-log features.
Each one is stored idempotently and answered with the snapshots of the
certifications it affected.
"""

from fastapi import APIRouter

from core.database import DbSession
from schemas import (
    CertificationListResponse,
    CourseCompletedEvent,
    QuizScoredEvent,
    TrainingDayLoggedEvent,
)
from services.certifications_service import (
    record_course_completed,
    record_quiz_scored,
    record_training_day,
)

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post("/course-completed", response_model=CertificationListResponse)
async def course_completed(
    body: CourseCompletedEvent,
    db: DbSession,
) -> CertificationListResponse:
    """Record a course completion."""
    snapshots = await record_course_completed(db, body)
    return CertificationListResponse(certifications=snapshots)


@router.post("/quiz-scored", response_model=CertificationListResponse)
async def quiz_scored(
    body: QuizScoredEvent,
    db: DbSession,
) -> CertificationListResponse:
    """Record a quiz score. A lower score never replaces a higher one."""
    snapshots = await record_quiz_scored(db, body)
    return CertificationListResponse(certifications=snapshots)


@router.post("/training-day-logged", response_model=CertificationListResponse)
async def training_day_logged(
    body: TrainingDayLoggedEvent,
    db: DbSession,
) -> CertificationListResponse:
    """Record a training day. Logging the same day twice counts once."""
    snapshots = await record_training_day(db, body)
    return CertificationListResponse(certifications=snapshots)
