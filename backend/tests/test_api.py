"""
Tests for the HTTP API.
"""
from urllib.parse import quote

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from recipe_api.main import app
from recipe_api.models import RecipeStatus


class TestHealth:
    """Tests for root and health endpoints."""

    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "online"

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "pending_pipelines" in data


class TestRecipeEndpoints:
    """Tests for recipe generation and lookup endpoints."""

    @pytest.mark.asyncio
    async def test_generate_then_poll(self, client: TestClient, generator, test_user):
        """POST returns the processing job; polling after the pipeline shows the recipe."""
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
            response = await async_client.post(
                "/api/recipes/generate",
                json={"video_id_or_url": "https://www.youtube.com/watch?v=abc123"},
                headers={"X-User-Id": str(test_user.id)},
            )
            assert response.status_code == 200
            job = response.json()
            assert job["status"] == "processing"
            assert job["youtube_id"] == "abc123"
            assert job["title"] is None

            assert await generator.wait_for_pending(timeout=10)

            response = await async_client.get(f"/api/recipes/{job['id']}")
            assert response.status_code == 200
            recipe = response.json()
            assert recipe["status"] == "completed"
            assert recipe["title"] == "T"
            assert recipe["ingredients"][0]["name"] == "salt"
            assert recipe["steps"][0]["step_number"] == 1

            response = await async_client.get(
                "/api/explorer/my-requests", headers={"X-User-Id": str(test_user.id)}
            )
            assert [item["id"] for item in response.json()] == [job["id"]]

    def test_generate_requires_input(self, client: TestClient):
        response = client.post("/api/recipes/generate", json={})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_generate_blank_input(self, client: TestClient):
        response = client.post("/api/recipes/generate", json={"video_id_or_url": "   "})
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_generate_unknown_user(self, client: TestClient, db: Session):
        response = client.post(
            "/api/recipes/generate",
            json={"video_id_or_url": "abc123"},
            headers={"X-User-Id": "999"},
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_get_by_video_url(self, client: TestClient, make_recipe):
        recipe = make_recipe("abc123", status=RecipeStatus.FAILED, title=None, error_message="no transcript")

        response = client.get("/api/recipes/by-video/" + quote("https://youtu.be/abc123", safe=""))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(recipe.id)
        assert data["status"] == "failed"
        assert data["error_message"] == "no transcript"

    def test_get_missing_recipe(self, client: TestClient, db: Session):
        response = client.get("/api/recipes/by-video/missing")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_invalid_recipe_id(self, client: TestClient, db: Session):
        response = client.get("/api/recipes/not-a-uuid")
        assert response.status_code == 422

    def test_delete_recipe(self, client: TestClient, make_recipe):
        recipe = make_recipe("abc123")

        response = client.delete(f"/api/recipes/{recipe.id}")
        assert response.status_code == 204

        response = client.get(f"/api/recipes/{recipe.id}")
        assert response.status_code == 404


class TestVideoEndpoints:
    """Tests for cached video data endpoints."""

    def test_get_video_data(self, client: TestClient):
        response = client.get("/api/videos/abc123")

        assert response.status_code == 200
        data = response.json()
        assert data["video_id"] == "abc123"
        assert data["is_complete"] is True
        assert data["total_comments"] == 1
        assert [segment["text"] for segment in data["transcript_segments"]] == ["Hello", "world"]

    def test_video_fetch_failure(self, client: TestClient, fake_youtube):
        fake_youtube.failing.add("video_info")

        response = client.get("/api/videos/abc123")

        assert response.status_code == 502
        assert response.json()["error_code"] == "VIDEO_FETCH_FAILED"

    def test_bulk(self, client: TestClient, fake_youtube):
        fake_youtube.failing_video_ids.add("bad1")

        response = client.post("/api/videos/bulk", json={"video_ids_or_urls": ["good1", "bad1"]})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][0]["video_id"] == "good1"
        assert data["results"][1]["status"] == "error"

    def test_bulk_requires_inputs(self, client: TestClient):
        response = client.post("/api/videos/bulk", json={"video_ids_or_urls": []})
        assert response.status_code == 422

        response = client.post("/api/videos/bulk", json={"video_ids_or_urls": ["abc123", " "]})
        assert response.status_code == 400


class TestExplorerEndpoints:
    """Tests for explorer endpoints."""

    def test_explore_requires_user(self, client: TestClient, db: Session):
        response = client.get("/api/explorer/explore")
        assert response.status_code == 401

    def test_explore(self, client: TestClient, test_user, make_recipe, make_video_record):
        make_recipe("abc123", categories=["korean"])
        make_video_record("abc123", view_count=10)

        response = client.get("/api/explorer/explore", headers={"X-User-Id": str(test_user.id)})

        assert response.status_code == 200
        data = response.json()
        assert data["requested_recipes"] == []
        assert [item["youtube_id"] for item in data["recommended_recipes"]] == ["abc123"]
        assert data["trending_recipes"][0]["view_count"] == 10

    def test_popular_is_public(self, client: TestClient, make_recipe):
        make_recipe("abc123")
        response = client.get("/api/explorer/popular", params={"limit": 5})
        assert response.status_code == 200
        assert len(response.json()) == 1


class TestSearchEndpoints:
    """Tests for search endpoints."""

    def test_search(self, client: TestClient, make_recipe):
        make_recipe("a", title="Kimchi Stew", categories=["korean"])
        make_recipe("b", title="Pancakes", categories=["dessert"])

        response = client.get("/api/search", params={"keyword": "kimchi"})

        assert response.status_code == 200
        data = response.json()
        assert [item["youtube_id"] for item in data["items"]] == ["a"]
        assert data["meta"]["total_items"] == 1

    def test_search_invalid_page(self, client: TestClient, db: Session):
        response = client.get("/api/search", params={"page": 0})
        assert response.status_code == 422

    def test_keywords(self, client: TestClient, make_recipe):
        make_recipe("a", title="Kimchi Stew", categories=["korean"])

        popular = client.get("/api/search/keywords/popular").json()
        suggested = client.get("/api/search/keywords/suggest", params={"q": "kim"}).json()

        assert popular["keywords"] == [{"keyword": "korean", "count": 1}]
        assert suggested["keywords"] == [{"keyword": "Kimchi Stew", "count": 1}]
