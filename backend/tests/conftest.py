"""
Pytest configuration and fixtures for the test suite.
"""
import json
import os
import threading
from datetime import timedelta
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Set test environment before importing app
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db")
os.environ["RECIPE_EXTRACTION_PROVIDER"] = "gemini"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["LOG_FORMAT"] = "text"

from recipe_api.main import app
from recipe_api.api.deps import get_recipe_generator, get_video_data_service
from recipe_api.config import DEFAULT_PROMPT_CONFIG_PATH
from recipe_api.database import Base, SessionLocal, engine, get_db, utcnow
from recipe_api.exceptions import VideoFetchException
from recipe_api.models import Recipe, RecipeStatus, User, VideoRecord
from recipe_api.schemas.video import (
    ChannelInfo,
    CommentData,
    CommentsResult,
    TranscriptResult,
    TranscriptSegment,
    VideoInfo,
)
from recipe_api.services.recipe_extraction import RecipeExtractionProvider, load_prompt_config
from recipe_api.services.recipe_generator import RecipeGenerator
from recipe_api.services.video_data_service import VideoDataService
from recipe_api.services.youtube_service import extract_video_id


SAMPLE_RECIPE = {
    "basic_info": {
        "title": "T",
        "description": "D",
        "difficulty": "easy",
        "estimated_time": 10,
        "servings": 2,
    },
    "metadata": {"categories": ["korean"], "tags": ["soup"]},
    "ingredients": [{"name": "salt"}],
    "steps": [{"step_number": 1, "summary": "boil", "start_time_seconds": 0, "end_time_seconds": 5}],
    "nutrition": {"calories": 100},
}


class FakeYoutubeClient:
    """In-memory stand-in for YoutubeClient that records every call."""

    def __init__(self):
        self.calls = []
        self.failing = set()
        self.failing_video_ids = set()
        self.view_counts = {}
        self.transcript = TranscriptResult(
            language="ko",
            segments=[
                TranscriptSegment(text="Hello", start_ms=0, end_ms=5000, duration_ms=5000),
                TranscriptSegment(text="world", start_ms=5000, end_ms=9000, duration_ms=4000),
            ],
            full_text="Hello world",
        )
        self.comments = CommentsResult(
            total_comments=1,
            comments=[CommentData(id="c1", content="Looks delicious")],
        )

    def _check(self, category: str, video_id: Optional[str] = None):
        if category in self.failing or (video_id is not None and video_id in self.failing_video_ids):
            raise VideoFetchException(f"{category} unavailable", details={"video_id": video_id})

    def get_video_info(self, video_ref: str) -> VideoInfo:
        video_id = extract_video_id(video_ref)
        self.calls.append(("get_video_info", video_id))
        self._check("video_info", video_id)
        return VideoInfo(
            video_id=video_id,
            video_url=f"https://www.youtube.com/watch?v={video_id}",
            title=f"Video {video_id}",
            description="A cooking video",
            duration=300,
            view_count=self.view_counts.get(video_id, 1000),
            like_count=10,
            tags=["cooking"],
            thumbnails={
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
            channel_id="UC123",
            channel_name="Chef",
            channel_url="https://www.youtube.com/channel/UC123",
        )

    def get_channel_info(self, channel_id: str) -> ChannelInfo:
        self.calls.append(("get_channel_info", channel_id))
        self._check("channel_info")
        return ChannelInfo(channel_id=channel_id, name="Chef", description="Home cooking", subscriber_count="1200")

    def get_comments(self, video_ref: str, max_comments: int = 100) -> CommentsResult:
        video_id = extract_video_id(video_ref)
        self.calls.append(("get_comments", video_id))
        self._check("comments", video_id)
        return self.comments

    def get_transcript(self, video_ref: str, language: str = "ko") -> TranscriptResult:
        video_id = extract_video_id(video_ref)
        self.calls.append(("get_transcript", video_id))
        self._check("transcript", video_id)
        return self.transcript


class FakeExtractionProvider(RecipeExtractionProvider):
    """Extraction provider returning canned JSON; optionally blocks until released."""

    name = "fake"

    def __init__(self):
        self.calls = []
        self.response = json.dumps(SAMPLE_RECIPE)
        self.error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None

    def extract_recipe(self, transcript_text, prompt_config):
        self.calls.append(transcript_text)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.response

    def check_health(self) -> bool:
        return True


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sample_recipe() -> dict:
    return json.loads(json.dumps(SAMPLE_RECIPE))


@pytest.fixture
def fake_youtube() -> FakeYoutubeClient:
    return FakeYoutubeClient()


@pytest.fixture
def fake_provider() -> FakeExtractionProvider:
    return FakeExtractionProvider()


@pytest.fixture
def prompt_config():
    return load_prompt_config(DEFAULT_PROMPT_CONFIG_PATH)


@pytest.fixture
def video_service(db: Session, fake_youtube: FakeYoutubeClient) -> VideoDataService:
    return VideoDataService(client=fake_youtube)


@pytest.fixture
def generator(video_service, fake_provider, prompt_config) -> RecipeGenerator:
    return RecipeGenerator(
        video_data_service=video_service,
        provider=fake_provider,
        prompt_config=prompt_config,
        max_comments=100,
        language="ko",
    )


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user."""
    user = User(email="cook@example.com", nickname="cook")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_recipe(db: Session):
    """Factory inserting recipes with distinct, increasing created_at values."""
    base_time = utcnow() - timedelta(days=1)
    counter = {"n": 0}

    def _make(youtube_id: str, status: RecipeStatus = RecipeStatus.COMPLETED, **fields) -> Recipe:
        counter["n"] += 1
        created_at = fields.pop("created_at", base_time + timedelta(minutes=counter["n"]))
        recipe = Recipe(
            youtube_id=youtube_id,
            status=status,
            title=fields.pop("title", f"Recipe {youtube_id}"),
            created_at=created_at,
            updated_at=created_at,
            **fields
        )
        db.add(recipe)
        db.commit()
        db.refresh(recipe)
        return recipe

    return _make


@pytest.fixture
def make_video_record(db: Session):
    """Factory inserting cached video records."""

    def _make(video_id: str, **fields) -> VideoRecord:
        record = VideoRecord(video_id=video_id, video_url=f"https://www.youtube.com/watch?v={video_id}", **fields)
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture(scope="function")
def client(db: Session, video_service, generator) -> Generator[TestClient, None, None]:
    """Create a test client with database and service overrides."""

    def override_get_db_with_session():
        """Return the test database session."""
        yield db

    app.dependency_overrides[get_db] = override_get_db_with_session
    app.dependency_overrides[get_video_data_service] = lambda: video_service
    app.dependency_overrides[get_recipe_generator] = lambda: generator
    # No context manager: startup would build the real provider
    yield TestClient(app)
    app.dependency_overrides.clear()
