"""Progress aggregation for certification types.

Combines all criteria of a type into one completion percentage plus a strict
all-satisfied verdict:

- completion_pct = floor(100 * mean(fraction)), every criterion weighted equally
- all_satisfied only when every fraction is exactly 1 (logical AND);
  a high average alone never makes a certification eligible

The percentage is for display; the verdict gates certification.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from models import CertificationCriterion, CertificationType
from repositories.progress_repository import ProgressRepository
from services.criteria_service import (
    ONE,
    ZERO,
    CriterionDefinition,
    ProgressFacts,
    evaluate_criterion,
    parse_criterion,
)
from services.errors import EmptyCertificationType, UnsupportedCriterionKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class CriterionProgress:
    """Evaluation of one criterion."""

    description: str
    fraction: Fraction

    @property
    def satisfied(self) -> bool:
        return self.fraction == ONE


@dataclass(frozen=True)
class ProgressResult:
    """Aggregated progress of one certification type for one context."""

    completion_pct: int
    all_satisfied: bool
    criteria: tuple[CriterionProgress, ...]


def definition_from_row(row: CertificationCriterion) -> CriterionDefinition:
    return CriterionDefinition(
        id=row.id,
        kind=row.kind,
        required_value=row.required_value,
        description=row.description,
        course_id=row.course_id,
    )


def _evaluate_safely(definition: CriterionDefinition, facts: ProgressFacts) -> Fraction:
    try:
        return evaluate_criterion(parse_criterion(definition), facts)
    except UnsupportedCriterionKind as e:
        # One malformed criterion must not block the others.
        logger.warning(
            "criterion.unsupported",
            criterion_id=e.criterion_id,
            kind=e.kind,
            reason=e.reason,
        )
        return ZERO


def aggregate(
    criteria: Sequence[CriterionDefinition],
    facts: ProgressFacts,
) -> ProgressResult:
    """Aggregate all criteria of a certification type.

    Raises:
        EmptyCertificationType: the criteria list is empty.
    """
    if not criteria:
        raise EmptyCertificationType()

    evaluated = tuple(
        CriterionProgress(
            description=definition.description,
            fraction=_evaluate_safely(definition, facts),
        )
        for definition in criteria
    )
    mean = sum((c.fraction for c in evaluated), ZERO) / len(evaluated)

    return ProgressResult(
        completion_pct=math.floor(100 * mean),
        all_satisfied=all(c.satisfied for c in evaluated),
        criteria=evaluated,
    )


def aggregate_type(
    certification_type: CertificationType,
    facts: ProgressFacts,
) -> ProgressResult:
    """Aggregate a stored certification type, naming it in configuration errors."""
    definitions = [definition_from_row(row) for row in certification_type.criteria]
    if not definitions:
        raise EmptyCertificationType(certification_type.id, certification_type.name)
    return aggregate(definitions, facts)


async def fetch_progress_facts(
    db: AsyncSession,
    user_id: str,
    dog_id: str | None,
) -> ProgressFacts:
    """Load the progress facts of one (user, dog) context."""
    repo = ProgressRepository(db)
    return ProgressFacts(
        completed_courses=await repo.get_completed_courses(user_id, dog_id),
        best_quiz_scores=await repo.get_best_quiz_scores(user_id, dog_id),
        training_days=await repo.get_training_days(user_id, dog_id),
    )
