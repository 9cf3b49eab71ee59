"""Repository for raw progress facts: completions, quiz scores, training days.

All writes are idempotent so replayed or out-of-order events are harmless.
"""

from datetime import date

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import CourseCompletion, QuizBestScore, TrainingDay, dog_key_for, utcnow
from repositories.utils import dialect_insert, insert_if_absent, log_slow_query


class ProgressRepository:
    """Repository for progress fact tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record_course_completion(
        self,
        user_id: str,
        dog_id: str | None,
        course_id: str,
    ) -> bool:
        """Mark a course complete. Returns False if it already was."""
        inserted = await insert_if_absent(
            self.db,
            CourseCompletion,
            [
                {
                    "user_id": user_id,
                    "dog_key": dog_key_for(dog_id),
                    "course_id": course_id,
                    "completed_at": utcnow(),
                }
            ],
            index_elements=["user_id", "dog_key", "course_id"],
        )
        return inserted > 0

    async def record_quiz_score(
        self,
        user_id: str,
        dog_id: str | None,
        course_id: str,
        score: float,
    ) -> float:
        """Upsert keeping the maximum score. Returns the stored best score."""
        now = utcnow()
        stmt = dialect_insert(self.db, QuizBestScore).values(
            user_id=user_id,
            dog_key=dog_key_for(dog_id),
            course_id=course_id,
            best_score=score,
            updated_at=now,
        )
        incoming = stmt.excluded.best_score
        keep_best = case(
            (incoming > QuizBestScore.best_score, incoming),
            else_=QuizBestScore.best_score,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "dog_key", "course_id"],
            set_={"best_score": keep_best, "updated_at": now},
        ).returning(QuizBestScore.best_score)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def record_training_day(
        self,
        user_id: str,
        dog_id: str | None,
        training_date: date,
    ) -> bool:
        """Log a training day. Returns False if that day was already logged."""
        inserted = await insert_if_absent(
            self.db,
            TrainingDay,
            [
                {
                    "user_id": user_id,
                    "dog_key": dog_key_for(dog_id),
                    "training_date": training_date,
                    "created_at": utcnow(),
                }
            ],
            index_elements=["user_id", "dog_key", "training_date"],
        )
        return inserted > 0

    @log_slow_query("get_completed_courses")
    async def get_completed_courses(
        self, user_id: str, dog_id: str | None
    ) -> frozenset[str]:
        result = await self.db.execute(
            select(CourseCompletion.course_id).where(
                CourseCompletion.user_id == user_id,
                CourseCompletion.dog_key == dog_key_for(dog_id),
            )
        )
        return frozenset(result.scalars().all())

    @log_slow_query("get_best_quiz_scores")
    async def get_best_quiz_scores(
        self, user_id: str, dog_id: str | None
    ) -> dict[str, float]:
        result = await self.db.execute(
            select(QuizBestScore.course_id, QuizBestScore.best_score).where(
                QuizBestScore.user_id == user_id,
                QuizBestScore.dog_key == dog_key_for(dog_id),
            )
        )
        return {row.course_id: row.best_score for row in result.all()}

    @log_slow_query("get_training_days")
    async def get_training_days(
        self, user_id: str, dog_id: str | None
    ) -> frozenset[date]:
        result = await self.db.execute(
            select(TrainingDay.training_date).where(
                TrainingDay.user_id == user_id,
                TrainingDay.dog_key == dog_key_for(dog_id),
            )
        )
        return frozenset(result.scalars().all())

    async def count_training_days(self, user_id: str) -> int:
        """Distinct training days across all of a user's dogs."""
        result = await self.db.execute(
            select(TrainingDay.training_date)
            .where(TrainingDay.user_id == user_id)
            .distinct()
        )
        return len(result.scalars().all())
