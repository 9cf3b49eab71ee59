"""Tests for certification listing and issuance routes."""

import math

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy import select

from models import (
    Certification,
    CertificationCriterion,
    CertificationLevel,
    CertificationState,
    CertificationType,
    utcnow,
)
from services.catalog_service import seed_default_catalog

pytestmark = pytest.mark.integration

USER_ID = "user-issue"
DOG_ID = "dog-issue"


async def _eligible_grundgehorsam(client: AsyncClient) -> int:
    body = {"user_id": USER_ID, "dog_id": DOG_ID, "course_id": "grundgehorsam"}
    await client.post("/api/events/course-completed", json=body)
    response = await client.post(
        "/api/events/quiz-scored", json={**body, "score": 90}
    )
    return response.json()["certifications"][0]["id"]


class TestListCertifications:
    async def test_lists_one_per_catalog_type(
        self, client: AsyncClient, seeded_catalog
    ):
        response = await client.get(f"/api/certifications/{USER_ID}")

        assert response.status_code == 200
        certifications = response.json()["certifications"]
        assert {c["type"]["name"] for c in certifications} == {
            "Grundgehorsam",
            "Alltagsbegleiter",
            "Hundeführerschein",
        }
        assert all(c["state"] == "started" for c in certifications)

    async def test_listing_twice_does_not_duplicate(
        self, client: AsyncClient, seeded_catalog
    ):
        first = await client.get(f"/api/certifications/{USER_ID}?dog_id={DOG_ID}")
        second = await client.get(f"/api/certifications/{USER_ID}?dog_id={DOG_ID}")

        assert [c["id"] for c in first.json()["certifications"]] == [
            c["id"] for c in second.json()["certifications"]
        ]

    async def test_stored_infinite_threshold_only_affects_its_type(
        self, client: AsyncClient, app: FastAPI
    ):
        async with app.state.session_maker() as session, session.begin():
            await seed_default_catalog(session)
            session.add(
                CertificationType(
                    name="Endlos",
                    description="",
                    level=CertificationLevel.GOLD,
                    criteria=[
                        CertificationCriterion(
                            kind="training_days",
                            required_value=math.inf,
                            description="Train forever",
                        )
                    ],
                )
            )

        response = await client.get(f"/api/certifications/{USER_ID}")

        assert response.status_code == 200
        by_name = {c["type"]["name"]: c for c in response.json()["certifications"]}
        assert "Grundgehorsam" in by_name
        assert by_name["Endlos"]["completion_pct"] == 0
        assert by_name["Endlos"]["criteria"] == [
            {"description": "Train forever", "satisfied": False}
        ]


class TestCertificationProgress:
    async def test_unknown_certification(self, client: AsyncClient):
        response = await client.get("/api/certifications/999/progress")
        assert response.status_code == 404


class TestIssueCertificate:
    async def test_issue_then_reissue(self, client: AsyncClient, seeded_catalog):
        certification_id = await _eligible_grundgehorsam(client)

        first = await client.post(
            f"/api/certifications/{certification_id}/issue",
            json={
                "holder_display_name": "  Erika   Mustermann ",
                "dog_display_name": "Bello",
            },
        )
        second = await client.post(
            f"/api/certifications/{certification_id}/issue",
            json={"holder_display_name": "Erika Mustermann"},
        )

        assert first.status_code == 201
        assert first.json()["already_issued"] is False
        assert second.status_code == 200
        assert second.json()["already_issued"] is True
        assert second.json()["certificate_id"] == first.json()["certificate_id"]

    async def test_not_eligible(self, client: AsyncClient, seeded_catalog):
        listed = await client.get(f"/api/certifications/{USER_ID}?dog_id={DOG_ID}")
        certification_id = listed.json()["certifications"][0]["id"]

        response = await client.post(
            f"/api/certifications/{certification_id}/issue",
            json={"holder_display_name": "Erika"},
        )

        assert response.status_code == 403
        assert "0% complete" in response.json()["detail"]

    async def test_unknown_certification(self, client: AsyncClient):
        response = await client.post(
            "/api/certifications/999/issue",
            json={"holder_display_name": "Erika"},
        )
        assert response.status_code == 404

    async def test_blank_holder_name_is_rejected(
        self, client: AsyncClient, seeded_catalog
    ):
        certification_id = await _eligible_grundgehorsam(client)

        response = await client.post(
            f"/api/certifications/{certification_id}/issue",
            json={"holder_display_name": "   "},
        )

        assert response.status_code == 422

    async def test_empty_type_conflict(self, client: AsyncClient, app: FastAPI):
        async with app.state.session_maker() as session, session.begin():
            await seed_default_catalog(session)
            session.add(
                CertificationType(
                    name="Leer", description="", level=CertificationLevel.BRONZE
                )
            )

        listed = await client.get(f"/api/certifications/{USER_ID}")
        names = {c["type"]["name"] for c in listed.json()["certifications"]}
        assert "Leer" not in names

        async with app.state.session_maker() as session:
            result = await session.execute(
                select(Certification.id)
                .join(CertificationType)
                .where(CertificationType.name == "Leer")
            )
            empty_id = result.scalar_one()

        response = await client.post(
            f"/api/certifications/{empty_id}/issue",
            json={"holder_display_name": "Erika"},
        )

        assert response.status_code == 409

    async def test_certified_without_log_entry(self, client: AsyncClient, app: FastAPI):
        async with app.state.session_maker() as session, session.begin():
            await seed_default_catalog(session)
            type_id = (
                await session.execute(
                    select(CertificationType.id).where(
                        CertificationType.name == "Grundgehorsam"
                    )
                )
            ).scalar_one()
            orphan = Certification(
                user_id=USER_ID,
                dog_id=None,
                dog_key="",
                certification_type_id=type_id,
                state=CertificationState.CERTIFIED,
                completion_pct=100,
                issued_at=utcnow(),
            )
            session.add(orphan)
            await session.flush()
            orphan_id = orphan.id

        response = await client.post(
            f"/api/certifications/{orphan_id}/issue",
            json={"holder_display_name": "Erika"},
        )

        assert response.status_code == 500
        assert "inconsistent" in response.json()["detail"]
