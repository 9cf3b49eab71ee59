"""Pydantic schemas for API request/response validation."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import CertificationLevel, CertificationState, CriterionKind


def _clean_display_name(v: str) -> str:
    cleaned = " ".join(v.strip().split())
    if len(cleaned) < 2:
        raise ValueError("Name must be at least 2 characters")
    return cleaned


# ============ Health Schemas ============


class HealthResponse(BaseModel):
    status: str
    service: str


class PoolStatusResponse(BaseModel):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(HealthResponse):
    database: bool
    pool: PoolStatusResponse | None = None


# ============ Progress Event Schemas ============


class CourseCompletedEvent(BaseModel):
    """A course was completed, optionally together with a dog."""

    user_id: str = Field(min_length=1, max_length=255)
    dog_id: str | None = Field(default=None, max_length=255)
    course_id: str = Field(min_length=1, max_length=100)


class QuizScoredEvent(BaseModel):
    """A quiz attempt was scored. Only the best score ever counts."""

    user_id: str = Field(min_length=1, max_length=255)
    dog_id: str | None = Field(default=None, max_length=255)
    course_id: str = Field(min_length=1, max_length=100)
    score: float = Field(ge=0, allow_inf_nan=False)


class TrainingDayLoggedEvent(BaseModel):
    """A training session was logged for a calendar day."""

    user_id: str = Field(min_length=1, max_length=255)
    dog_id: str | None = Field(default=None, max_length=255)
    date: date


# ============ Certification Schemas ============


class CriterionStatus(BaseModel):
    description: str
    satisfied: bool


class CertificationTypeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    level: CertificationLevel


class CertificationSnapshot(BaseModel):
    """A certification as shown to its holder."""

    id: int
    type: CertificationTypeSummary
    dog_id: str | None = None
    state: CertificationState
    completion_pct: int = Field(ge=0, le=100)
    issued_at: datetime | None = None
    criteria: list[CriterionStatus]


class CertificationListResponse(BaseModel):
    certifications: list[CertificationSnapshot]


class CriterionCreate(BaseModel):
    kind: CriterionKind
    required_value: float = Field(allow_inf_nan=False)
    description: str = ""
    course_id: str | None = Field(default=None, max_length=100)


class CriterionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    required_value: float
    description: str
    course_id: str | None = None


class CertificationTypeResponse(CertificationTypeSummary):
    criteria: list[CriterionResponse]


class CertificationTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    level: CertificationLevel
    criteria: list[CriterionCreate]


# ============ Certificate Schemas ============


class IssueCertificateRequest(BaseModel):
    """Request to issue the certificate of an eligible certification."""

    holder_display_name: str = Field(min_length=2, max_length=100)
    dog_display_name: str | None = Field(default=None, max_length=100)

    @field_validator("holder_display_name")
    @classmethod
    def validate_holder_display_name(cls, v: str) -> str:
        return _clean_display_name(v)

    @field_validator("dog_display_name")
    @classmethod
    def validate_dog_display_name(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return _clean_display_name(v)


class CertificateIssued(BaseModel):
    """Handed to the rendering/upload collaborator."""

    certificate_id: str
    certification_id: int
    storage_handle: str | None = None
    already_issued: bool = False


class AttachArtifactRequest(BaseModel):
    storage_handle: str = Field(min_length=1, max_length=2048)


class PendingArtifactsResponse(BaseModel):
    certificates: list[CertificateIssued]


class IssuanceRecord(BaseModel):
    """What a public verifier learns about a certificate."""

    model_config = ConfigDict(from_attributes=True)

    certificate_id: str
    type_name: str
    level: CertificationLevel
    holder_display_name: str
    dog_display_name: str | None = None
    issued_at: datetime


class CertificateVerificationResult(BaseModel):
    """Service-layer verification result with a user-facing message."""

    is_valid: bool
    record: IssuanceRecord | None = None
    message: str


class CertificateVerifyResponse(BaseModel):
    """Response for certificate verification."""

    is_valid: bool
    certificate: IssuanceRecord | None = None
    message: str


# ============ Achievement Schemas ============


class AchievementData(BaseModel):
    """An achievement derived from certification and training progress."""

    id: str
    kind: str
    title: str
    description: str
    level: CertificationLevel
    earned_at: datetime | None = None


class AchievementsResponse(BaseModel):
    achievements: list[AchievementData]
