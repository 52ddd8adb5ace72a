"""
Recipe generation orchestrator.

generate_recipe() claims the job for a video and returns at once; the actual
work (fetch transcript, call the extraction model, store the result) runs as
a detached asyncio task that always ends by writing a terminal status.

Job states: pending -> processing -> completed | failed, and failed -> processing
when generation is requested again. At most one pipeline runs per video.
"""

import asyncio
import logging
from typing import Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_api.config import settings
from recipe_api.database import SessionLocal
from recipe_api.exceptions import DatabaseException, ExtractionException, NotFoundException
from recipe_api.models.recipe import Recipe, RecipeStatus
from recipe_api.schemas.recipe import ExtractedRecipe
from recipe_api.services import request_history
from recipe_api.services.recipe_extraction import (
    PromptConfig,
    RecipeExtractionProvider,
    build_transcript_text,
    parse_recipe_payload,
)
from recipe_api.services.video_data_service import VideoDataService
from recipe_api.services.youtube_service import extract_video_id

logger = logging.getLogger(__name__)

# States a fresh request may move back to processing
CLAIMABLE_STATUSES = (RecipeStatus.FAILED, RecipeStatus.PENDING)


class RecipeGenerator:
    """Owns recipe jobs and the background pipelines that fill them."""

    def __init__(
        self,
        video_data_service: VideoDataService,
        provider: RecipeExtractionProvider,
        prompt_config: PromptConfig,
        session_factory=SessionLocal,
        max_comments: Optional[int] = None,
        language: Optional[str] = None
    ):
        self.video_data_service = video_data_service
        self.provider = provider
        self.prompt_config = prompt_config
        self.session_factory = session_factory
        self.max_comments = max_comments if max_comments is not None else settings.youtube_max_comments
        self.language = language or settings.youtube_default_language
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def generate_recipe(self, video_ref: str, user_id: Optional[int] = None) -> Recipe:
        """
        Return the job for a video, starting a pipeline when none is running or done.

        Must be called from a running event loop; the pipeline outlives the caller.
        """
        video_id = extract_video_id(video_ref)

        with self.session_factory() as session:
            recipe, launch = self._claim(session, video_id)

            if launch:
                self._launch(recipe.id, video_id)
            else:
                logger.info(
                    "Returning existing recipe job",
                    extra={"video_id": video_id, "recipe_id": str(recipe.id), "status": recipe.status.value}
                )

            if user_id is not None:
                # The job already exists; a lost history row must not fail the request
                try:
                    request_history.create_or_update(session, user_id, recipe.id)
                except (DatabaseException, SQLAlchemyError) as e:
                    session.rollback()
                    logger.warning(
                        "Failed to record recipe request history",
                        extra={"user_id": user_id, "recipe_id": str(recipe.id), "error": str(e)}
                    )

        return recipe

    def _claim(self, session: Session, video_id: str) -> Tuple[Recipe, bool]:
        """Find or create the job; the bool says whether this caller must start a pipeline."""
        recipe = session.query(Recipe).filter_by(youtube_id=video_id).first()

        if recipe is None:
            recipe = Recipe(youtube_id=video_id, status=RecipeStatus.PROCESSING)
            session.add(recipe)
            try:
                session.commit()
                logger.info("Created recipe job", extra={"video_id": video_id, "recipe_id": str(recipe.id)})
                return recipe, True
            except IntegrityError as e:
                session.rollback()
                recipe = session.query(Recipe).filter_by(youtube_id=video_id).first()
                if recipe is None:
                    raise DatabaseException(
                        f"Failed to create recipe job for {video_id}",
                        details={"video_id": video_id}
                    ) from e
                logger.info("Recipe job created concurrently, using existing row", extra={"video_id": video_id})

        if recipe.status not in CLAIMABLE_STATUSES:
            return recipe, False

        # Conditional update so only one of several concurrent retries wins
        claimed = session.query(Recipe).filter(
            Recipe.id == recipe.id,
            Recipe.status.in_(CLAIMABLE_STATUSES)
        ).update(
            {Recipe.status: RecipeStatus.PROCESSING, Recipe.error_message: None},
            synchronize_session=False
        )
        session.commit()
        session.refresh(recipe)

        if claimed:
            logger.info("Retrying recipe job", extra={"video_id": video_id, "recipe_id": str(recipe.id)})
        return recipe, claimed == 1

    def _launch(self, recipe_id: UUID, video_id: str) -> None:
        task = asyncio.create_task(self._run_pipeline(recipe_id, video_id), name=f"recipe-pipeline-{video_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_pipeline(self, recipe_id: UUID, video_id: str) -> None:
        logger.info("Recipe pipeline started", extra={"video_id": video_id, "recipe_id": str(recipe_id)})
        try:
            record = await self.video_data_service.get_comprehensive_video_data(
                video_id,
                max_comments=self.max_comments,
                language=self.language
            )

            if not record.transcript_full_text or not record.transcript_segments:
                raise ExtractionException(
                    f"No transcript available for video {video_id}",
                    details={"video_id": video_id}
                )

            transcript_text = build_transcript_text(record.transcript_segments)

            loop = asyncio.get_running_loop()
            raw_response = await loop.run_in_executor(
                None, self.provider.extract_recipe, transcript_text, self.prompt_config
            )

            extracted = parse_recipe_payload(raw_response)
            self._complete(recipe_id, extracted)

            logger.info(
                "Recipe generation completed",
                extra={"video_id": video_id, "recipe_id": str(recipe_id), "title": extracted.basic_info.title}
            )
        except Exception as e:
            logger.error(
                "Recipe generation failed",
                extra={"video_id": video_id, "recipe_id": str(recipe_id), "error_type": type(e).__name__},
                exc_info=True
            )
            self._fail(recipe_id, str(e) or type(e).__name__)

    def _complete(self, recipe_id: UUID, extracted: ExtractedRecipe) -> None:
        basic = extracted.basic_info
        with self.session_factory() as session:
            session.query(Recipe).filter(Recipe.id == recipe_id).update(
                {
                    Recipe.status: RecipeStatus.COMPLETED,
                    Recipe.title: basic.title,
                    Recipe.description: basic.description,
                    Recipe.difficulty: basic.difficulty,
                    Recipe.estimated_time: basic.estimated_time,
                    Recipe.servings: basic.servings,
                    Recipe.categories: list(extracted.metadata.categories),
                    Recipe.tags: list(extracted.metadata.tags),
                    Recipe.ingredients: [item.model_dump(exclude_none=True) for item in extracted.ingredients],
                    Recipe.steps: [step.model_dump(exclude_none=True) for step in extracted.steps],
                    Recipe.nutrition: extracted.nutrition.model_dump(exclude_none=True) if extracted.nutrition else None,
                    Recipe.error_message: None,
                },
                synchronize_session=False
            )
            session.commit()

    def _fail(self, recipe_id: UUID, message: str) -> None:
        try:
            with self.session_factory() as session:
                session.query(Recipe).filter(Recipe.id == recipe_id).update(
                    {Recipe.status: RecipeStatus.FAILED, Recipe.error_message: message},
                    synchronize_session=False
                )
                session.commit()
        except SQLAlchemyError:
            logger.critical(
                "Could not record recipe failure, job left in processing",
                extra={"recipe_id": str(recipe_id)},
                exc_info=True
            )

    def get_recipe(self, video_ref: str) -> Recipe:
        video_id = extract_video_id(video_ref)
        with self.session_factory() as session:
            recipe = session.query(Recipe).filter_by(youtube_id=video_id).first()
        if recipe is None:
            raise NotFoundException(f"Recipe not found: {video_id}", details={"video_id": video_id})
        return recipe

    def get_recipe_by_id(self, recipe_id: UUID) -> Recipe:
        with self.session_factory() as session:
            recipe = session.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFoundException(f"Recipe not found: {recipe_id}", details={"recipe_id": str(recipe_id)})
        return recipe

    def delete_recipe(self, recipe_id: UUID) -> None:
        """Delete a recipe; request history rows go with it through the foreign key."""
        with self.session_factory() as session:
            deleted = session.query(Recipe).filter(Recipe.id == recipe_id).delete(synchronize_session=False)
            session.commit()
        logger.info("Deleted recipe", extra={"recipe_id": str(recipe_id), "deleted": deleted})

    async def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for running pipelines to finish.

        Returns:
            True if all pipelines finished, False if the timeout expired first.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else max(deadline - loop.time(), 0)
            done, pending = await asyncio.wait(set(self._tasks), timeout=remaining)
            self._tasks.difference_update(done)
            if pending:
                logger.warning(f"{len(pending)} recipe pipeline(s) still running after timeout")
                return False
        return True
