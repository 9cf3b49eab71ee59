"""Criterion modelling and evaluation.

A stored criterion row carries a free-form ``kind`` string. Before evaluation
it is parsed into one of three closed variants, each holding only the fields
it needs:

- CourseCompletion: the referenced course is complete (no partial credit)
- QuizScore: best-ever score relative to the required threshold
- TrainingDays: distinct logged training days relative to the threshold

Evaluation returns an exact ``Fraction`` in [0, 1] so that percentage floors
are never skewed by float rounding.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from fractions import Fraction

from models import CriterionKind
from services.errors import UnsupportedCriterionKind

ZERO = Fraction(0)
ONE = Fraction(1)


@dataclass(frozen=True)
class CriterionDefinition:
    """A criterion as stored: kind string plus kind-dependent fields."""

    id: int | None
    kind: str
    required_value: float
    description: str = ""
    course_id: str | None = None


@dataclass(frozen=True)
class CourseCompletion:
    course_id: str


@dataclass(frozen=True)
class QuizScore:
    course_id: str
    threshold: float


@dataclass(frozen=True)
class TrainingDays:
    threshold: float


type Criterion = CourseCompletion | QuizScore | TrainingDays


@dataclass(frozen=True)
class ProgressFacts:
    """Everything known about one (user, dog) context's progress."""

    completed_courses: frozenset[str] = frozenset()
    best_quiz_scores: dict[str, float] = field(default_factory=dict)
    training_days: frozenset[date] = frozenset()


def parse_criterion(definition: CriterionDefinition) -> Criterion:
    """Turn a stored definition into a closed criterion variant.

    Raises:
        UnsupportedCriterionKind: unknown kind, a course-based kind
            without a course reference, or a non-finite threshold.
    """
    if not math.isfinite(definition.required_value):
        raise UnsupportedCriterionKind(
            definition.kind, definition.id, reason="threshold must be finite"
        )

    try:
        kind = CriterionKind(definition.kind)
    except ValueError:
        raise UnsupportedCriterionKind(definition.kind, definition.id) from None

    match kind:
        case CriterionKind.COURSE_COMPLETION if definition.course_id:
            return CourseCompletion(course_id=definition.course_id)
        case CriterionKind.QUIZ_SCORE if definition.course_id:
            return QuizScore(
                course_id=definition.course_id,
                threshold=definition.required_value,
            )
        case CriterionKind.TRAINING_DAYS:
            return TrainingDays(threshold=definition.required_value)
        case _:
            raise UnsupportedCriterionKind(definition.kind, definition.id)


def _exact(value: float | int) -> Fraction:
    # Decimal text, not the binary float: Fraction(0.29) would floor to 28%.
    return Fraction(str(value))


def _ratio(achieved: float | int, threshold: float) -> Fraction:
    # A non-positive threshold asks for nothing.
    if threshold <= 0:
        return ONE
    if not math.isfinite(achieved):
        return ONE if achieved > 0 else ZERO
    return min(ONE, _exact(achieved) / _exact(threshold))


def evaluate_criterion(criterion: Criterion, facts: ProgressFacts) -> Fraction:
    """Compute the satisfaction fraction of one criterion in [0, 1]."""
    match criterion:
        case CourseCompletion(course_id=course_id):
            return ONE if course_id in facts.completed_courses else ZERO
        case QuizScore(course_id=course_id, threshold=threshold):
            best = facts.best_quiz_scores.get(course_id)
            if best is None:
                return ZERO
            return max(ZERO, _ratio(best, threshold))
        case TrainingDays(threshold=threshold):
            return _ratio(len(facts.training_days), threshold)
        case _:
            raise UnsupportedCriterionKind(type(criterion).__name__)


def referenced_course(criterion: Criterion) -> str | None:
    """Course a criterion depends on, if any."""
    match criterion:
        case CourseCompletion(course_id=course_id) | QuizScore(course_id=course_id):
            return course_id
        case _:
            return None
