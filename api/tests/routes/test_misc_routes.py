"""Tests for achievements, catalog and health routes."""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

pytestmark = pytest.mark.integration


class TestAchievements:
    async def test_certificate_becomes_achievement(
        self, client: AsyncClient, seeded_catalog
    ):
        body = {
            "user_id": "user-ach",
            "dog_id": "dog-ach",
            "course_id": "grundgehorsam",
        }
        await client.post("/api/events/course-completed", json=body)
        scored = await client.post(
            "/api/events/quiz-scored", json={**body, "score": 80}
        )
        certification_id = scored.json()["certifications"][0]["id"]
        await client.post(
            f"/api/certifications/{certification_id}/issue",
            json={"holder_display_name": "Erika", "dog_display_name": "Bello"},
        )

        response = await client.get("/api/achievements/user-ach")

        assert response.status_code == 200
        achievements = response.json()["achievements"]
        assert [a["title"] for a in achievements] == ["Grundgehorsam"]
        assert achievements[0]["level"] == "bronze"

    async def test_new_user_has_none(self, client: AsyncClient):
        response = await client.get("/api/achievements/nobody")
        assert response.json() == {"achievements": []}


class TestCatalog:
    async def test_lists_seeded_types_by_level(
        self, client: AsyncClient, seeded_catalog
    ):
        response = await client.get("/api/certification-types")

        assert response.status_code == 200
        assert [t["level"] for t in response.json()] == ["bronze", "silver", "gold"]

    async def test_create_type(self, client: AsyncClient):
        payload = {
            "name": "Welpenschule",
            "level": "bronze",
            "criteria": [
                {
                    "kind": "course_completion",
                    "course_id": "welpen",
                    "required_value": 1,
                }
            ],
        }

        created = await client.post("/api/certification-types", json=payload)
        duplicate = await client.post("/api/certification-types", json=payload)

        assert created.status_code == 201
        assert created.json()["criteria"][0]["course_id"] == "welpen"
        assert duplicate.status_code == 409

    async def test_create_without_criteria(self, client: AsyncClient):
        response = await client.post(
            "/api/certification-types",
            json={"name": "Leer", "level": "gold", "criteria": []},
        )
        assert response.status_code == 422

    async def test_create_with_unknown_kind(self, client: AsyncClient):
        response = await client.post(
            "/api/certification-types",
            json={
                "name": "Agility",
                "level": "gold",
                "criteria": [{"kind": "agility_run", "required_value": 1}],
            },
        )
        assert response.status_code == 422

    async def test_create_with_infinite_threshold(self, client: AsyncClient):
        response = await client.post(
            "/api/certification-types",
            content=(
                '{"name": "Endlos", "level": "gold", "criteria": '
                '[{"kind": "training_days", "required_value": Infinity}]}'
            ),
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.json() == {
            "status": "healthy",
            "service": "dogmania-certification-api",
        }

    async def test_ready(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_not_ready_while_starting(self, client: AsyncClient, app: FastAPI):
        app.state.init_done = False
        response = await client.get("/ready")
        assert response.status_code == 503

    async def test_detailed(self, client: AsyncClient):
        response = await client.get("/health/detailed")
        assert response.status_code == 200
        assert response.json()["database"] is True
