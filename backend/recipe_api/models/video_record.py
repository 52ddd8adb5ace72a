from typing import Any, Dict

from sqlalchemy import Column, String, DateTime, Integer, BigInteger, Boolean, Text, JSON

from recipe_api.database import Base, utcnow


class VideoRecord(Base):
    """
    Cached raw data collected from YouTube for a single video.
    Holds video, channel, comment and transcript information gathered
    incrementally; completeness is derived from the stored fields.
    """
    __tablename__ = 'youtube_raw'

    # Primary key
    id = Column(Integer, primary_key=True)

    # YouTube video identifier
    video_id = Column(String(64), unique=True, nullable=False, index=True)
    video_url = Column(String(1024), nullable=True)

    # Video basic info
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    view_count = Column(BigInteger, nullable=True)
    like_count = Column(BigInteger, nullable=True)
    upload_date = Column(String(100), nullable=True)
    category = Column(String(100), nullable=True)
    tags = Column(JSON, nullable=True)
    thumbnails = Column(JSON, nullable=True)
    is_live_content = Column(Boolean, nullable=False, default=False)
    is_shorts = Column(Boolean, nullable=False, default=False)

    # Channel info
    channel_id = Column(String(64), nullable=True, index=True)
    channel_name = Column(String(200), nullable=True)
    channel_url = Column(String(500), nullable=True)
    channel_description = Column(Text, nullable=True)
    channel_subscriber_count = Column(String(100), nullable=True)
    channel_video_count = Column(String(100), nullable=True)
    channel_thumbnails = Column(JSON, nullable=True)
    channel_avatar = Column(JSON, nullable=True)
    channel_keywords = Column(JSON, nullable=True)

    # Comments; NULL means comments were never collected
    total_comments = Column(Integer, nullable=True)
    comments = Column(JSON, nullable=True)

    # Transcript
    transcript_language = Column(String(10), nullable=True)
    transcript_segments = Column(JSON, nullable=True)  # [{text, start_ms, end_ms, duration_ms}]
    transcript_full_text = Column(Text, nullable=True)

    # Collection metadata
    collected_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    status = Column(String(50), nullable=False, default='active')  # active, error
    error_message = Column(Text, nullable=True)

    def has_basic_info(self) -> bool:
        return bool(self.title) and self.view_count is not None

    def has_channel_info(self) -> bool:
        return bool(self.channel_id) and bool(self.channel_name)

    def has_comments(self) -> bool:
        return self.total_comments is not None and self.total_comments > 0

    def has_transcript(self) -> bool:
        return bool(self.transcript_segments)

    def is_data_complete(self) -> bool:
        """True when no data category needs another fetch."""
        return (
            self.has_basic_info()
            and self.has_channel_info()
            and self.has_comments()
            and self.has_transcript()
        )

    def is_valid(self) -> bool:
        return self.status == 'active' and self.video_id is not None

    def mark_as_error(self, error_message: str) -> None:
        self.status = 'error'
        self.error_message = error_message
        self.updated_at = utcnow()

    def get_summary(self) -> Dict[str, Any]:
        return {
            'video_id': self.video_id,
            'title': self.title,
            'channel_name': self.channel_name,
            'view_count': self.view_count,
            'comment_count': self.total_comments,
            'has_transcript': self.has_transcript(),
        }

    def __repr__(self):
        return f"<VideoRecord(video_id='{self.video_id}', status='{self.status}')>"
