"""Tests for public certificate verification."""

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from models import Certification, CertificationLevel
from repositories.progress_repository import ProgressRepository
from services.certificates_service import generate_certificate_id, issue_certificate
from services.verification_service import (
    verify_certificate,
    verify_certificate_with_message,
)
from tests.factories import (
    CertificateIssuanceFactory,
    CertificationFactory,
    CertificationTypeFactory,
    create_async,
    grundgehorsam_criteria,
)

pytestmark = pytest.mark.integration


async def _issue(db: AsyncSession, dog_display_name: str | None = "Bello") -> str:
    cert_type = await create_async(
        CertificationTypeFactory,
        db,
        name="Grundgehorsam",
        level=CertificationLevel.BRONZE,
        criteria=grundgehorsam_criteria(),
    )
    certification = await create_async(
        CertificationFactory,
        db,
        user_id="user-v",
        dog_id="dog-v",
        certification_type_id=cert_type.id,
    )
    repo = ProgressRepository(db)
    await repo.record_course_completion("user-v", "dog-v", "grundgehorsam")
    await repo.record_quiz_score("user-v", "dog-v", "grundgehorsam", 100)

    issued = await issue_certificate(
        db, certification.id, "Erika Mustermann", dog_display_name
    )
    return issued.certificate_id


class TestVerifyCertificate:
    async def test_round_trip(self, db_session: AsyncSession):
        certificate_id = await _issue(db_session)

        record = await verify_certificate(db_session, certificate_id)

        assert record is not None
        assert record.certificate_id == certificate_id
        assert record.type_name == "Grundgehorsam"
        assert record.level == CertificationLevel.BRONZE
        assert record.holder_display_name == "Erika Mustermann"
        assert record.dog_display_name == "Bello"

    async def test_unknown_id_returns_none(self, db_session: AsyncSession):
        assert await verify_certificate(db_session, generate_certificate_id()) is None

    async def test_surrounding_whitespace_is_ignored(self, db_session: AsyncSession):
        certificate_id = await _issue(db_session)
        assert await verify_certificate(db_session, f"  {certificate_id} ") is not None

    async def test_survives_certification_purge(self, db_session: AsyncSession):
        certificate_id = await _issue(db_session)
        await db_session.execute(delete(Certification))
        db_session.expunge_all()

        record = await verify_certificate(db_session, certificate_id)

        assert record is not None
        assert record.certificate_id == certificate_id


class TestVerifyWithMessage:
    async def test_valid_message_names_holder_and_dog(self, db_session: AsyncSession):
        issuance = await create_async(
            CertificateIssuanceFactory,
            db_session,
            certification_id=1,
            holder_display_name="Erika",
            dog_display_name="Bello",
        )

        result = await verify_certificate_with_message(
            db_session, issuance.certificate_id
        )

        assert result.is_valid is True
        assert result.record.certificate_id == issuance.certificate_id
        assert result.message.startswith("Valid bronze certificate 'Grundgehorsam'")
        assert "for Erika with Bello" in result.message

    async def test_message_without_dog(self, db_session: AsyncSession):
        issuance = await create_async(
            CertificateIssuanceFactory,
            db_session,
            certification_id=2,
            holder_display_name="Erika",
            dog_display_name=None,
        )

        result = await verify_certificate_with_message(
            db_session, issuance.certificate_id
        )

        assert "for Erika, issued on" in result.message

    async def test_unknown_id_is_negative_answer(self, db_session: AsyncSession):
        result = await verify_certificate_with_message(db_session, "DGM-NOPE-NOPE")

        assert result.is_valid is False
        assert result.record is None
        assert "not found" in result.message
