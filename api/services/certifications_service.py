"""Certification progress: event handling, recomputation and snapshots.

Progress events are recorded as idempotent facts, then only the affected
(user, dog, certification type) tuples are recomputed:

- course completed / quiz scored: types with a criterion on that course
- training day logged: types with a training_days criterion

Listing a context's certifications reconciles it with the catalog first, so
every type shows up, then recomputes on demand.
"""

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from core.config import get_settings
from core.logger import get_logger
from core.wide_event import set_wide_event_fields
from models import Certification, CertificationType
from repositories.catalog_repository import CatalogRepository
from repositories.certification_repository import CertificationRepository
from repositories.progress_repository import ProgressRepository
from schemas import (
    CertificationSnapshot,
    CertificationTypeSummary,
    CourseCompletedEvent,
    CriterionStatus,
    QuizScoredEvent,
    TrainingDayLoggedEvent,
)
from services.catalog_sync_service import ensure_records
from services.certification_state import apply_progress
from services.criteria_service import ProgressFacts
from services.errors import CertificationNotFound, EmptyCertificationType
from services.progress_service import (
    ProgressResult,
    aggregate_type,
    fetch_progress_facts,
)

logger = get_logger(__name__)


def to_snapshot(
    certification: Certification,
    progress: ProgressResult,
) -> CertificationSnapshot:
    return CertificationSnapshot(
        id=certification.id,
        type=CertificationTypeSummary.model_validate(certification.certification_type),
        dog_id=certification.dog_id,
        state=certification.state,
        completion_pct=certification.completion_pct,
        issued_at=certification.issued_at,
        criteria=[
            CriterionStatus(description=c.description, satisfied=c.satisfied)
            for c in progress.criteria
        ],
    )


async def recompute_certification(
    db: AsyncSession,
    certification: Certification,
    facts: ProgressFacts,
) -> ProgressResult:
    """Re-evaluate one certification against current facts and persist it.

    Concurrent recomputations of the same row are linearized by the row's
    version counter: on a lost race the row is re-read and re-evaluated.
    The promotion to ``eligible`` is therefore a checked write.

    Raises:
        EmptyCertificationType: the certification's type has no criteria.
    """
    progress = aggregate_type(certification.certification_type, facts)
    repo = CertificationRepository(db)
    attempts = get_settings().issuance_max_attempts

    for attempt in range(1, attempts + 1):
        previous_state = certification.state
        transition = apply_progress(
            previous_state, progress.completion_pct, progress.all_satisfied
        )
        if (
            transition.state == certification.state
            and transition.completion_pct == certification.completion_pct
        ):
            return progress

        try:
            async with db.begin_nested():
                await repo.save_progress(
                    certification, transition.state, transition.completion_pct
                )
        except StaleDataError:
            logger.info(
                "certification.recompute.conflict",
                certification_id=certification.id,
                attempt=attempt,
            )
            refreshed = await repo.get_by_id(certification.id, refresh=True)
            if refreshed is None:
                raise CertificationNotFound(certification.id) from None
            certification = refreshed
            continue

        if transition.changed:
            logger.info(
                "certification.transition",
                certification_id=certification.id,
                user_id=certification.user_id,
                dog_id=certification.dog_id,
                from_state=previous_state.value,
                to_state=transition.state.value,
            )
            set_wide_event_fields(
                certification_id=certification.id,
                certification_state=transition.state.value,
            )
        return progress

    # Another writer persisted a newer evaluation of the same facts.
    logger.warning(
        "certification.recompute.gave_up",
        certification_id=certification.id,
        attempts=attempts,
    )
    return progress


async def _recompute_all(
    db: AsyncSession,
    user_id: str,
    dog_id: str | None,
    types: Sequence[CertificationType],
) -> list[CertificationSnapshot]:
    """Reconcile and recompute the given types; a broken type skips alone."""
    certifications = await ensure_records(db, user_id, dog_id, types)
    if not certifications:
        return []

    facts = await fetch_progress_facts(db, user_id, dog_id)
    snapshots: list[CertificationSnapshot] = []
    for certification in certifications:
        try:
            progress = await recompute_certification(db, certification, facts)
        except EmptyCertificationType as e:
            logger.error(
                "certification_type.empty",
                certification_type_id=e.certification_type_id,
                name=e.name,
            )
            continue
        snapshots.append(to_snapshot(certification, progress))
    return snapshots


async def record_course_completed(
    db: AsyncSession,
    event: CourseCompletedEvent,
) -> list[CertificationSnapshot]:
    """Record a course completion and recompute the affected certifications."""
    await ProgressRepository(db).record_course_completion(
        event.user_id, event.dog_id, event.course_id
    )
    types = await CatalogRepository(db).get_types_for_course(event.course_id)
    return await _recompute_all(db, event.user_id, event.dog_id, types)


async def record_quiz_scored(
    db: AsyncSession,
    event: QuizScoredEvent,
) -> list[CertificationSnapshot]:
    """Record a quiz score (best-ever wins) and recompute affected certifications."""
    best = await ProgressRepository(db).record_quiz_score(
        event.user_id, event.dog_id, event.course_id, event.score
    )
    if best > event.score:
        logger.debug(
            "quiz.score.below_best",
            user_id=event.user_id,
            course_id=event.course_id,
            score=event.score,
            best_score=best,
        )
    types = await CatalogRepository(db).get_types_for_course(event.course_id)
    return await _recompute_all(db, event.user_id, event.dog_id, types)


async def record_training_day(
    db: AsyncSession,
    event: TrainingDayLoggedEvent,
) -> list[CertificationSnapshot]:
    """Record a training day and recompute certifications that count them."""
    await ProgressRepository(db).record_training_day(
        event.user_id, event.dog_id, event.date
    )
    types = await CatalogRepository(db).get_types_with_training_days()
    return await _recompute_all(db, event.user_id, event.dog_id, types)


async def get_certification_snapshots(
    db: AsyncSession,
    user_id: str,
    dog_id: str | None,
) -> list[CertificationSnapshot]:
    """All certifications of a (user, dog) context, one per catalog type."""
    types = await CatalogRepository(db).get_all()
    return await _recompute_all(db, user_id, dog_id, types)


async def get_certification_snapshot(
    db: AsyncSession,
    certification_id: int,
) -> CertificationSnapshot:
    """One certification, recomputed on demand.

    Raises:
        CertificationNotFound: unknown certification id.
        EmptyCertificationType: the certification's type has no criteria.
    """
    certification = await CertificationRepository(db).get_by_id(certification_id)
    if certification is None:
        raise CertificationNotFound(certification_id)

    facts = await fetch_progress_facts(db, certification.user_id, certification.dog_id)
    progress = await recompute_certification(db, certification, facts)
    return to_snapshot(certification, progress)
