"""Tests for achievement computation."""

from datetime import date, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from models import CertificationLevel, CertificationState, utcnow
from repositories.progress_repository import ProgressRepository
from services.achievements_service import (
    TRAINING_MILESTONES,
    compute_achievements,
    compute_training_achievements,
)
from tests.factories import (
    CertificateIssuanceFactory,
    CertificationFactory,
    CertificationTypeFactory,
    create_async,
)


@pytest.mark.unit
class TestTrainingAchievements:
    def test_no_days_no_achievements(self):
        assert compute_training_achievements(0) == []

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (6, []),
            (7, ["training_days_7"]),
            (29, ["training_days_7"]),
            (30, ["training_days_7", "training_days_30"]),
            (100, ["training_days_7", "training_days_30", "training_days_100"]),
        ],
    )
    def test_milestones(self, days: int, expected: list[str]):
        assert [a.id for a in compute_training_achievements(days)] == expected

    def test_milestone_levels_ascend(self):
        ranks = [m["level"].rank for m in TRAINING_MILESTONES]
        assert ranks == sorted(ranks)


@pytest.mark.integration
class TestComputeAchievements:
    async def test_certified_certification_is_an_achievement(
        self, db_session: AsyncSession
    ):
        cert_type = await create_async(
            CertificationTypeFactory,
            db_session,
            name="Hundeführerschein",
            level=CertificationLevel.GOLD,
        )
        certification = await create_async(
            CertificationFactory,
            db_session,
            user_id="user-a",
            certification_type_id=cert_type.id,
            state=CertificationState.CERTIFIED,
            completion_pct=100,
            issued_at=utcnow(),
        )
        await create_async(
            CertificateIssuanceFactory,
            db_session,
            certification_id=certification.id,
            user_id="user-a",
            dog_display_name="Rex",
        )

        achievements = await compute_achievements(db_session, "user-a")

        assert len(achievements) == 1
        achievement = achievements[0]
        assert achievement.id == f"certification_{certification.id}"
        assert achievement.kind == "certification"
        assert achievement.title == "Hundeführerschein"
        assert achievement.level == CertificationLevel.GOLD
        assert "(with Rex)" in achievement.description

    async def test_uncertified_records_are_not_achievements(
        self, db_session: AsyncSession
    ):
        cert_type = await create_async(CertificationTypeFactory, db_session)
        await create_async(
            CertificationFactory,
            db_session,
            user_id="user-b",
            certification_type_id=cert_type.id,
            state=CertificationState.ELIGIBLE,
            completion_pct=100,
        )

        assert await compute_achievements(db_session, "user-b") == []

    async def test_training_days_count_across_dogs(self, db_session: AsyncSession):
        repo = ProgressRepository(db_session)
        start = date(2026, 5, 1)
        for offset in range(4):
            day = start + timedelta(days=offset)
            await repo.record_training_day("user-c", "dog-1", day)
            await repo.record_training_day("user-c", "dog-2", day)
        for offset in range(4, 7):
            await repo.record_training_day("user-c", "dog-2", start + timedelta(offset))

        achievements = await compute_achievements(db_session, "user-c")

        assert [a.id for a in achievements] == ["training_days_7"]
