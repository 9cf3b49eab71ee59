"""Factory Boy factories for generating test data.

Factories provide a clean way to create test objects with sensible defaults.
Override specific fields as needed in tests.

Usage:
    # Create a certification type with one criterion
    cert_type = await create_async(
        CertificationTypeFactory,
        db_session,
        criteria=[CriterionFactory.build(course_id="grundgehorsam")],
    )

    # Create a certification for it
    certification = await create_async(
        CertificationFactory, db_session, certification_type_id=cert_type.id
    )
"""

import factory
from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    CertificateIssuance,
    Certification,
    CertificationCriterion,
    CertificationLevel,
    CertificationState,
    CertificationType,
    CriterionKind,
    dog_key_for,
    utcnow,
)

fake = Faker()


# =============================================================================
# Async Factory Helpers
# =============================================================================


async def create_async(
    factory_class: type[factory.Factory], db: AsyncSession, **kwargs
):
    """Create an instance using a factory and persist to database.

    Usage:
        cert_type = await create_async(CertificationTypeFactory, db_session)
    """
    instance = factory_class.build(**kwargs)
    db.add(instance)
    await db.flush()
    await db.refresh(instance)
    return instance


# =============================================================================
# Catalog Factories
# =============================================================================


class CriterionFactory(factory.Factory):
    """Factory for course completion criteria; override kind for others."""

    class Meta:
        model = CertificationCriterion

    kind = CriterionKind.COURSE_COMPLETION.value
    course_id = factory.Sequence(lambda n: f"course-{n}")
    required_value = 1
    description = factory.LazyAttribute(lambda o: f"Complete {o.course_id}")


class CertificationTypeFactory(factory.Factory):
    class Meta:
        model = CertificationType

    name = factory.Sequence(lambda n: f"Certification {n}")
    description = factory.LazyFunction(lambda: fake.sentence())
    level = CertificationLevel.BRONZE
    criteria = factory.LazyFunction(lambda: [CriterionFactory.build()])


# =============================================================================
# Certification Factories
# =============================================================================


class CertificationFactory(factory.Factory):
    """Factory for certification records. certification_type_id is required."""

    class Meta:
        model = Certification

    user_id = factory.LazyFunction(lambda: f"user_{fake.uuid4()}")
    dog_id = factory.LazyFunction(lambda: f"dog_{fake.uuid4()}")
    dog_key = factory.LazyAttribute(lambda o: dog_key_for(o.dog_id))
    state = CertificationState.STARTED
    completion_pct = 0
    issued_at = None
    storage_handle = None


class CertificateIssuanceFactory(factory.Factory):
    """Factory for issuance log entries. certification_id is required."""

    class Meta:
        model = CertificateIssuance

    certificate_id = factory.LazyFunction(
        lambda: f"DGM-{fake.hexify('^' * 32, upper=True)}"
    )
    user_id = factory.LazyFunction(lambda: f"user_{fake.uuid4()}")
    type_name = "Grundgehorsam"
    level = CertificationLevel.BRONZE
    holder_display_name = factory.LazyFunction(lambda: fake.name())
    dog_display_name = factory.LazyFunction(lambda: fake.first_name())
    issued_at = factory.LazyFunction(utcnow)


# =============================================================================
# Scenario helpers
# =============================================================================


def grundgehorsam_criteria(course_id: str = "grundgehorsam") -> list:
    """Course completion plus a quiz score of at least 70 on the same course."""
    return [
        CriterionFactory.build(
            kind=CriterionKind.COURSE_COMPLETION.value,
            course_id=course_id,
            required_value=1,
            description="Complete the Grundgehorsam course",
        ),
        CriterionFactory.build(
            kind=CriterionKind.QUIZ_SCORE.value,
            course_id=course_id,
            required_value=70,
            description="Score at least 70 in the Grundgehorsam quiz",
        ),
    ]
