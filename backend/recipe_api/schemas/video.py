from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List, Dict, Any


class VideoInfo(BaseModel):
    """Basic video metadata returned by the YouTube data source."""
    video_id: str
    video_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    upload_date: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    thumbnails: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    is_live_content: bool = False
    is_shorts: bool = False

    # Channel identity is part of every video payload
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    channel_url: Optional[str] = None


class ChannelInfo(BaseModel):
    """Channel details fetched separately from the video."""
    channel_id: str
    name: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    subscriber_count: Optional[str] = None
    video_count: Optional[str] = None
    thumbnails: List[Dict[str, Any]] = Field(default_factory=list)
    avatar: Optional[Dict[str, Any]] = None
    keywords: List[str] = Field(default_factory=list)


class CommentAuthor(BaseModel):
    name: Optional[str] = None
    channel_id: Optional[str] = None
    thumbnail: Optional[str] = None


class CommentData(BaseModel):
    """A single top-level comment."""
    id: str
    author: CommentAuthor = Field(default_factory=CommentAuthor)
    content: str = ""
    published_time: Optional[str] = None
    like_count: int = 0
    reply_count: int = 0
    is_pinned: bool = False
    is_hearted_by_creator: bool = False


class CommentsResult(BaseModel):
    total_comments: int = 0
    comments: List[CommentData] = Field(default_factory=list)


class TranscriptSegment(BaseModel):
    """Caption segment with millisecond offsets."""
    text: str
    start_ms: int
    end_ms: int
    duration_ms: int


class TranscriptResult(BaseModel):
    language: Optional[str] = None
    segments: List[TranscriptSegment] = Field(default_factory=list)
    full_text: Optional[str] = None


class VideoDataResponse(BaseModel):
    """Response schema for a cached video record."""
    model_config = ConfigDict(from_attributes=True)

    video_id: str
    video_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    upload_date: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    thumbnails: Optional[Dict[str, Any]] = None
    is_live_content: bool = False
    is_shorts: bool = False

    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    channel_url: Optional[str] = None
    channel_description: Optional[str] = None
    channel_subscriber_count: Optional[str] = None
    channel_video_count: Optional[str] = None
    channel_thumbnails: Optional[List[Dict[str, Any]]] = None
    channel_avatar: Optional[Dict[str, Any]] = None
    channel_keywords: Optional[List[str]] = None

    total_comments: Optional[int] = None
    comments: Optional[List[CommentData]] = None

    transcript_language: Optional[str] = None
    transcript_segments: Optional[List[TranscriptSegment]] = None
    transcript_full_text: Optional[str] = None

    collected_at: datetime
    updated_at: datetime
    status: str
    error_message: Optional[str] = None
    is_complete: bool = False

    @classmethod
    def from_record(cls, record) -> "VideoDataResponse":
        response = cls.model_validate(record)
        response.is_complete = record.is_data_complete()
        return response


class BulkVideoDataRequest(BaseModel):
    """Request schema for fetching several videos at once."""
    video_ids_or_urls: List[str] = Field(
        min_length=1,
        description="List of YouTube video IDs or URLs"
    )
    max_comments: int = Field(default=100, ge=0, le=1000)
    language: str = Field(default="ko")


class BulkVideoDataResponse(BaseModel):
    """Per-input results in input order; null where nothing could be stored."""
    results: List[Optional[VideoDataResponse]]
    total: int
    successful: int
    failed: int
