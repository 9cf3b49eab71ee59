"""Tests for certificate artifact and verification routes."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient

from core.ratelimit import limiter

pytestmark = pytest.mark.integration

BODY = {"user_id": "user-cert", "dog_id": "dog-cert", "course_id": "grundgehorsam"}


async def _issued_certificate_id(client: AsyncClient) -> str:
    await client.post("/api/events/course-completed", json=BODY)
    response = await client.post("/api/events/quiz-scored", json={**BODY, "score": 99})
    certification_id = response.json()["certifications"][0]["id"]
    issued = await client.post(
        f"/api/certifications/{certification_id}/issue",
        json={"holder_display_name": "Erika Mustermann", "dog_display_name": "Bello"},
    )
    return issued.json()["certificate_id"]


class TestVerifyCertificate:
    async def test_verifies_issued_certificate(
        self, client: AsyncClient, seeded_catalog
    ):
        certificate_id = await _issued_certificate_id(client)

        response = await client.get(f"/api/certificates/verify/{certificate_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["certificate"]["certificate_id"] == certificate_id
        assert data["certificate"]["type_name"] == "Grundgehorsam"
        assert data["certificate"]["level"] == "bronze"
        assert data["certificate"]["dog_display_name"] == "Bello"

    async def test_unknown_id_is_valid_negative_answer(self, client: AsyncClient):
        response = await client.get(
            "/api/certificates/verify/DGM-00000000000000000000000000000000"
        )

        assert response.status_code == 200
        assert response.json()["is_valid"] is False
        assert response.json()["certificate"] is None

    async def test_too_short_id_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/certificates/verify/short")
        assert response.status_code == 422

    async def test_is_rate_limited(self, client: AsyncClient):
        limiter.reset()
        with patch("core.ratelimit.limiter.enabled", True):
            statuses = [
                (
                    await client.get(
                        "/api/certificates/verify/DGM-RATELIMITRATELIMIT"
                    )
                ).status_code
                for _ in range(31)
            ]

        assert statuses[:30] == [200] * 30
        assert statuses[30] == 429


class TestArtifacts:
    async def test_pending_then_attached(self, client: AsyncClient, seeded_catalog):
        certificate_id = await _issued_certificate_id(client)

        pending = await client.get("/api/certificates/pending-artifacts")
        assert [c["certificate_id"] for c in pending.json()["certificates"]] == [
            certificate_id
        ]

        response = await client.put(
            f"/api/certificates/{certificate_id}/artifact",
            json={"storage_handle": "blob://certificates/1.pdf"},
        )
        assert response.status_code == 200
        assert response.json()["storage_handle"] == "blob://certificates/1.pdf"

        pending = await client.get("/api/certificates/pending-artifacts")
        assert pending.json()["certificates"] == []

    async def test_attach_to_unknown_certificate(self, client: AsyncClient):
        response = await client.put(
            "/api/certificates/DGM-00000000000000000000000000000000/artifact",
            json={"storage_handle": "blob://x"},
        )
        assert response.status_code == 404
