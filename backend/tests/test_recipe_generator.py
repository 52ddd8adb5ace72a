"""
Tests for the recipe generation orchestrator.
"""
import asyncio
import json
import threading
import uuid

import pytest
from sqlalchemy.orm import Session, sessionmaker

from recipe_api.database import SessionLocal, engine
from recipe_api.exceptions import APIProviderException, DatabaseException, NotFoundException
from recipe_api.models import Recipe, RecipeStatus, UserRecipeRequest
from recipe_api.schemas.video import TranscriptResult
from recipe_api.services import request_history
from recipe_api.services.recipe_generator import RecipeGenerator


class _NoRecipeQuery:
    def filter_by(self, **kwargs):
        return self

    def first(self):
        return None


class FirstLookupMissesSession(Session):
    """Session whose first recipe lookup finds nothing, as if a concurrent request inserted the row right after."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._missed = False

    def query(self, *entities, **kwargs):
        if not self._missed and entities == (Recipe,):
            self._missed = True
            return _NoRecipeQuery()
        return super().query(*entities, **kwargs)


class TestGenerateRecipe:
    """Tests for the happy path and job reuse."""

    @pytest.mark.asyncio
    async def test_generate_returns_processing_then_completes(self, generator, fake_provider):
        """The job comes back at once; the background pipeline fills it in."""
        recipe = await generator.generate_recipe("https://www.youtube.com/watch?v=abc123")

        assert recipe.youtube_id == "abc123"
        assert recipe.status == RecipeStatus.PROCESSING
        assert generator.pending_count == 1

        assert await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.COMPLETED
        assert stored.title == "T"
        assert stored.description == "D"
        assert stored.difficulty == "easy"
        assert stored.estimated_time == 10
        assert stored.servings == 2
        assert stored.ingredients == [{"name": "salt"}]
        assert stored.steps[0]["step_number"] == 1
        assert stored.categories == ["korean"]
        assert stored.tags == ["soup"]
        assert stored.nutrition == {"calories": 100.0}
        assert stored.error_message is None

        assert fake_provider.calls == ["[0.00s] Hello\n[5.00s] world"]

    @pytest.mark.asyncio
    async def test_completed_job_returned_unchanged(self, generator, fake_provider):
        first = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        again = await generator.generate_recipe("https://youtu.be/abc123")

        assert again.id == first.id
        assert again.status == RecipeStatus.COMPLETED
        assert generator.pending_count == 0
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_duplicate_request_while_processing(self, generator, fake_provider):
        """A second request during processing reuses the job and starts nothing."""
        fake_provider.gate = threading.Event()

        first = await generator.generate_recipe("abc123")
        await asyncio.sleep(0.1)
        second = await generator.generate_recipe("abc123")

        assert second.id == first.id
        assert second.status == RecipeStatus.PROCESSING
        assert generator.pending_count == 1

        fake_provider.gate.set()
        assert await generator.wait_for_pending(timeout=10)
        assert len(fake_provider.calls) == 1
        assert generator.get_recipe("abc123").status == RecipeStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_records_request_history(self, generator, test_user, db: Session):
        recipe = await generator.generate_recipe("abc123", user_id=test_user.id)
        await generator.wait_for_pending(timeout=10)

        entries = db.query(UserRecipeRequest).filter_by(user_id=test_user.id).all()
        assert len(entries) == 1
        assert entries[0].recipe_id == recipe.id

    @pytest.mark.asyncio
    async def test_history_failure_does_not_fail_request(self, generator, test_user, db: Session, monkeypatch):
        """The job still comes back and completes when the history row cannot be written."""
        def broken_history(session, user_id, recipe_id):
            raise DatabaseException("history table unavailable")

        monkeypatch.setattr(request_history, "create_or_update", broken_history)

        recipe = await generator.generate_recipe("abc123", user_id=test_user.id)

        assert recipe.status == RecipeStatus.PROCESSING
        assert generator.pending_count == 1

        assert await generator.wait_for_pending(timeout=10)
        assert generator.get_recipe_by_id(recipe.id).status == RecipeStatus.COMPLETED
        assert db.query(UserRecipeRequest).count() == 0

    @pytest.mark.asyncio
    async def test_fractional_time_is_rounded(self, generator, fake_provider, sample_recipe):
        sample_recipe["basic_info"]["estimated_time"] = 12.5
        sample_recipe["basic_info"]["servings"] = 3.7
        fake_provider.response = json.dumps(sample_recipe)

        recipe = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.COMPLETED
        assert stored.estimated_time == 12
        assert stored.servings == 4


class TestPipelineFailures:
    """Tests for pipelines that end in the failed state."""

    @pytest.mark.asyncio
    async def test_provider_error_marks_failed(self, generator, fake_provider):
        fake_provider.error = APIProviderException("gemini", "quota exhausted")

        recipe = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.FAILED
        assert "quota exhausted" in stored.error_message
        assert stored.title is None
        assert stored.ingredients is None
        assert stored.steps is None

    @pytest.mark.asyncio
    async def test_malformed_response_marks_failed(self, generator, fake_provider):
        fake_provider.response = "this is not json"

        recipe = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.FAILED
        assert "malformed JSON" in stored.error_message

    @pytest.mark.asyncio
    async def test_missing_title_marks_failed(self, generator, fake_provider, sample_recipe):
        del sample_recipe["basic_info"]["title"]
        fake_provider.response = json.dumps(sample_recipe)

        recipe = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.FAILED
        assert "basic_info.title" in stored.error_message

    @pytest.mark.asyncio
    async def test_empty_transcript_marks_failed(self, generator, fake_youtube, fake_provider):
        fake_youtube.transcript = TranscriptResult()

        recipe = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.FAILED
        assert "No transcript" in stored.error_message
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_video_fetch_error_marks_failed(self, generator, fake_youtube):
        fake_youtube.failing.add("video_info")

        recipe = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)

        stored = generator.get_recipe_by_id(recipe.id)
        assert stored.status == RecipeStatus.FAILED
        assert "video_info unavailable" in stored.error_message

    @pytest.mark.asyncio
    async def test_failed_job_is_retried(self, generator, fake_provider):
        fake_provider.error = APIProviderException("gemini", "temporary outage")
        first = await generator.generate_recipe("abc123")
        await generator.wait_for_pending(timeout=10)
        assert generator.get_recipe_by_id(first.id).status == RecipeStatus.FAILED

        fake_provider.error = None
        retried = await generator.generate_recipe("abc123")

        assert retried.id == first.id
        assert retried.status == RecipeStatus.PROCESSING
        assert retried.error_message is None

        await generator.wait_for_pending(timeout=10)
        stored = generator.get_recipe_by_id(first.id)
        assert stored.status == RecipeStatus.COMPLETED
        assert stored.error_message is None
        assert len(fake_provider.calls) == 2

    @pytest.mark.asyncio
    async def test_stale_retry_loses_to_winner(self, generator, make_recipe):
        """A caller that saw the failed row too late does not start a second pipeline."""
        make_recipe("abc123", status=RecipeStatus.FAILED, error_message="earlier failure")

        with SessionLocal() as stale:
            seen = stale.query(Recipe).filter_by(youtube_id="abc123").one()
            assert seen.status == RecipeStatus.FAILED

            await generator.generate_recipe("abc123")
            recipe, launch = generator._claim(stale, "abc123")

        assert launch is False
        assert recipe.status == RecipeStatus.PROCESSING
        assert generator.pending_count == 1
        await generator.wait_for_pending(timeout=10)

    @pytest.mark.asyncio
    async def test_concurrent_insert_reuses_winner(self, video_service, fake_provider, prompt_config, make_recipe):
        """Losing the insert race returns the row the other request created."""
        winner = make_recipe("abc123", status=RecipeStatus.PROCESSING)
        gen = RecipeGenerator(
            video_data_service=video_service,
            provider=fake_provider,
            prompt_config=prompt_config,
            session_factory=sessionmaker(
                bind=engine,
                class_=FirstLookupMissesSession,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            ),
            max_comments=100,
            language="ko",
        )

        recipe = await gen.generate_recipe("abc123")

        assert recipe.id == winner.id
        assert recipe.status == RecipeStatus.PROCESSING
        assert gen.pending_count == 0
        assert fake_provider.calls == []


class TestRecipeLookup:
    """Tests for reading and deleting recipes."""

    def test_unknown_video_not_found(self, generator, db: Session):
        with pytest.raises(NotFoundException):
            generator.get_recipe("missing")
        with pytest.raises(NotFoundException):
            generator.get_recipe_by_id(uuid.uuid4())

    def test_lookup_by_url(self, generator, make_recipe):
        recipe = make_recipe("abc123")
        assert generator.get_recipe("https://www.youtube.com/shorts/abc123").id == recipe.id

    def test_delete_removes_request_history(self, generator, make_recipe, test_user, db: Session):
        recipe = make_recipe("abc123")
        db.add(UserRecipeRequest(user_id=test_user.id, recipe_id=recipe.id))
        db.commit()

        generator.delete_recipe(recipe.id)

        with pytest.raises(NotFoundException):
            generator.get_recipe_by_id(recipe.id)
        db.expire_all()
        assert db.query(UserRecipeRequest).count() == 0
