"""SQLAlchemy models for Dogmania certification tracking."""

from datetime import UTC, date, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def dog_key_for(dog_id: str | None) -> str:
    """Normalise an optional dog id for unique constraints.

    NULLs never collide in a unique index, so "no dog" is stored as "".
    """
    return dog_id or ""


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class CertificationLevel(str, PyEnum):
    """Ordered certification level: bronze < silver < gold < platinum."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]


_LEVEL_RANKS = {
    CertificationLevel.BRONZE: 0,
    CertificationLevel.SILVER: 1,
    CertificationLevel.GOLD: 2,
    CertificationLevel.PLATINUM: 3,
}


class CertificationState(str, PyEnum):
    """Lifecycle of a certification record: started -> eligible -> certified."""

    STARTED = "started"
    ELIGIBLE = "eligible"
    CERTIFIED = "certified"


class CriterionKind(str, PyEnum):
    """Criterion kinds the evaluator understands.

    The ``kind`` column is a plain string so that rows written by newer admin
    tooling still load; unknown kinds are rejected at evaluation time.
    """

    COURSE_COMPLETION = "course_completion"
    QUIZ_SCORE = "quiz_score"
    TRAINING_DAYS = "training_days"


class CertificationType(Base):
    """Catalog entry. Immutable once created; edited by administrators only."""

    __tablename__ = "certification_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level: Mapped[CertificationLevel] = mapped_column(
        Enum(
            CertificationLevel,
            name="certification_level",
            native_enum=False,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    criteria: Mapped[list["CertificationCriterion"]] = relationship(
        back_populates="certification_type",
        cascade="all, delete-orphan",
        order_by="CertificationCriterion.id",
        lazy="selectin",
    )


class CertificationCriterion(Base):
    """One requirement of a certification type. All must hold (logical AND)."""

    __tablename__ = "certification_criteria"
    __table_args__ = (
        Index("ix_certification_criteria_type", "certification_type_id"),
        Index("ix_certification_criteria_course", "course_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    certification_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("certification_types.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    course_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    required_value: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    certification_type: Mapped["CertificationType"] = relationship(
        back_populates="criteria"
    )


class Certification(TimestampMixin, Base):
    """A user's (and optionally their dog's) progress toward one type.

    ``version_id`` is an optimistic lock: concurrent writers of the same row
    fail with StaleDataError instead of silently overwriting each other.
    """

    __tablename__ = "certifications"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "dog_key",
            "certification_type_id",
            name="uq_certification_user_dog_type",
        ),
        Index("ix_certifications_user_dog", "user_id", "dog_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    dog_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    dog_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    certification_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("certification_types.id", ondelete="CASCADE"),
        nullable=False,
    )
    state: Mapped[CertificationState] = mapped_column(
        Enum(
            CertificationState,
            name="certification_state",
            native_enum=False,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=CertificationState.STARTED,
    )
    completion_pct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    issued_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    storage_handle: Mapped[str | None] = mapped_column(Text, nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    certification_type: Mapped["CertificationType"] = relationship(lazy="joined")

    __mapper_args__ = {"version_id_col": version_id}


class CertificateIssuance(Base):
    """Append-only issuance log read by public verification.

    Deliberately has no foreign key to certifications: purging a certification
    must not invalidate an id a verifier has already seen.
    """

    __tablename__ = "certificate_issuances"
    __table_args__ = (
        UniqueConstraint("certification_id", name="uq_issuance_certification"),
    )

    certificate_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    certification_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    type_name: Mapped[str] = mapped_column(String(255), nullable=False)
    level: Mapped[CertificationLevel] = mapped_column(
        Enum(
            CertificationLevel,
            name="certification_level",
            native_enum=False,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    holder_display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    dog_display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )


class CourseCompletion(Base):
    """A course marked complete for a (user, dog) context. Insert-if-absent."""

    __tablename__ = "course_completions"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "dog_key", "course_id", name="uq_course_completion"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    dog_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    course_id: Mapped[str] = mapped_column(String(100), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )


class QuizBestScore(Base):
    """Best quiz score ever recorded; later worse attempts never lower it."""

    __tablename__ = "quiz_best_scores"
    __table_args__ = (
        UniqueConstraint("user_id", "dog_key", "course_id", name="uq_quiz_best_score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    dog_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    course_id: Mapped[str] = mapped_column(String(100), nullable=False)
    best_score: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )


class TrainingDay(Base):
    """A distinct calendar day with logged training."""

    __tablename__ = "training_days"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "dog_key", "training_date", name="uq_training_day"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    dog_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    training_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
