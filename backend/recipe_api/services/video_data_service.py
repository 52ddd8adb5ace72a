"""
Video data cache: fetch-and-fill of YouTube raw data.

A record is created on first request and then topped up on later requests
until every data category (basic info, channel, comments, transcript) has
been collected. Complete records are served without touching YouTube.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recipe_api.database import SessionLocal, utcnow
from recipe_api.exceptions import DatabaseException, VideoFetchException
from recipe_api.models.video_record import VideoRecord
from recipe_api.schemas.video import ChannelInfo, CommentsResult, TranscriptResult, VideoInfo
from recipe_api.services.youtube_service import YoutubeClient, build_watch_url, extract_video_id

logger = logging.getLogger(__name__)

EMPTY_COMMENTS: Dict[str, Any] = {'total_comments': 0, 'comments': []}
EMPTY_TRANSCRIPT: Dict[str, Any] = {'transcript_segments': [], 'transcript_full_text': None}


def _basic_values(info: VideoInfo, include_shorts: bool = True) -> Dict[str, Any]:
    values = {
        'title': info.title,
        'description': info.description,
        'duration': info.duration,
        'view_count': info.view_count,
        'like_count': info.like_count,
        'upload_date': info.upload_date,
        'category': info.category,
        'tags': list(info.tags),
        'thumbnails': dict(info.thumbnails),
        'is_live_content': info.is_live_content,
        'channel_id': info.channel_id,
        'channel_name': info.channel_name,
        'channel_url': info.channel_url,
    }
    if include_shorts:
        values['is_shorts'] = info.is_shorts
    return values


def _channel_values(info: ChannelInfo) -> Dict[str, Any]:
    return {
        'channel_description': info.description,
        'channel_subscriber_count': info.subscriber_count,
        'channel_video_count': info.video_count,
        'channel_thumbnails': list(info.thumbnails),
        'channel_avatar': info.avatar,
        'channel_keywords': list(info.keywords),
    }


def _comment_values(result: CommentsResult) -> Dict[str, Any]:
    return {
        'total_comments': result.total_comments,
        'comments': [comment.model_dump() for comment in result.comments],
    }


def _transcript_values(result: TranscriptResult) -> Dict[str, Any]:
    return {
        'transcript_language': result.language,
        'transcript_segments': [segment.model_dump() for segment in result.segments],
        'transcript_full_text': result.full_text,
    }


def _assign(record: VideoRecord, values: Dict[str, Any]) -> bool:
    """Set the given columns on the record; returns True if any value changed."""
    changed = False
    for key, value in values.items():
        if getattr(record, key) != value:
            setattr(record, key, value)
            changed = True
    return changed


class VideoDataService:
    """Fetch-and-fill cache over the YouTube data source."""

    def __init__(self, client: Optional[YoutubeClient] = None, session_factory=SessionLocal):
        self.client = client or YoutubeClient()
        self.session_factory = session_factory

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        # yt-dlp and httpx block; keep them off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def _try_fetch(self, category: str, video_id: str, func: Callable[..., Any], *args: Any) -> Optional[Any]:
        """Fetch one optional data category; failures are logged and yield None."""
        try:
            return await self._call(func, *args)
        except Exception as e:
            logger.warning(
                f"Failed to fetch {category}, using empty default",
                extra={"video_id": video_id, "category": category, "error": str(e), "error_type": type(e).__name__}
            )
            return None

    async def get_comprehensive_video_data(
        self,
        video_ref: str,
        max_comments: int = 100,
        language: str = 'ko',
        session: Optional[Session] = None
    ) -> VideoRecord:
        """
        Return the cached record for a video, creating or filling it as needed.

        Raises:
            VideoFetchException: basic video info could not be fetched for a new record.
        """
        if session is not None:
            return await self._get_or_fill(session, video_ref, max_comments, language)
        with self.session_factory() as own_session:
            return await self._get_or_fill(own_session, video_ref, max_comments, language)

    async def get_bulk_comprehensive_video_data(
        self,
        video_refs: List[str],
        max_comments: int = 100,
        language: str = 'ko'
    ) -> List[Optional[VideoRecord]]:
        """
        Fetch several videos concurrently, each with its own session.
        Results follow input order; a failed input yields its stored error record, or None.
        """
        results = await asyncio.gather(
            *(self.get_comprehensive_video_data(ref, max_comments, language) for ref in video_refs),
            return_exceptions=True
        )

        records: List[Optional[VideoRecord]] = []
        for ref, result in zip(video_refs, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Bulk video fetch failed for one input",
                    extra={"video_ref": ref, "error": str(result), "error_type": type(result).__name__}
                )
                records.append(self.find_record(extract_video_id(ref)))
            elif isinstance(result, BaseException):
                raise result
            else:
                records.append(result)

        successful = sum(1 for record in records if record is not None and record.status == 'active')
        logger.info(f"Bulk video fetch complete: {successful}/{len(video_refs)} successful")
        return records

    def find_record(self, video_id: str) -> Optional[VideoRecord]:
        with self.session_factory() as session:
            return session.query(VideoRecord).filter_by(video_id=video_id).first()

    async def _get_or_fill(self, session: Session, video_ref: str, max_comments: int, language: str) -> VideoRecord:
        video_id = extract_video_id(video_ref)
        record = session.query(VideoRecord).filter_by(video_id=video_id).first()

        if record is None:
            return await self._collect(session, video_ref, video_id, max_comments, language)

        if record.is_data_complete():
            logger.debug("Video data served from cache", extra={"video_id": video_id})
            return record

        return await self._fill_missing(session, record, max_comments, language)

    async def _collect(self, session: Session, video_ref: str, video_id: str, max_comments: int, language: str) -> VideoRecord:
        now = utcnow()
        record = VideoRecord(
            video_id=video_id,
            video_url=build_watch_url(video_id),
            status='active',
            collected_at=now,
            updated_at=now,
        )

        try:
            info = await self._call(self.client.get_video_info, video_ref)
        except Exception as e:
            record.mark_as_error(str(e) or type(e).__name__)
            self._insert(session, record)
            logger.error(
                "Failed to collect basic video info",
                extra={"video_id": video_id, "error": str(e), "error_type": type(e).__name__}
            )
            if isinstance(e, VideoFetchException):
                raise
            raise VideoFetchException(
                f"Failed to fetch video info for {video_id}: {e}",
                details={"video_id": video_id}
            ) from e

        _assign(record, _basic_values(info))

        if info.channel_id:
            channel = await self._try_fetch('channel info', video_id, self.client.get_channel_info, info.channel_id)
            if channel is not None:
                _assign(record, _channel_values(channel))

        comments = await self._try_fetch('comments', video_id, self.client.get_comments, video_id, max_comments)
        _assign(record, _comment_values(comments) if comments is not None else dict(EMPTY_COMMENTS))

        transcript = await self._try_fetch('transcript', video_id, self.client.get_transcript, video_id, language)
        _assign(record, _transcript_values(transcript) if transcript is not None else dict(EMPTY_TRANSCRIPT))

        record = self._insert(session, record)
        logger.info(
            "Collected video data",
            extra={"video_id": video_id, "complete": record.is_data_complete()}
        )
        return record

    async def _fill_missing(self, session: Session, record: VideoRecord, max_comments: int, language: str) -> VideoRecord:
        video_id = record.video_id
        changed = False

        if not record.title or record.view_count is None:
            info = await self._try_fetch('video info', video_id, self.client.get_video_info, video_id)
            if info is not None:
                changed |= _assign(record, _basic_values(info, include_shorts=False))
                if record.status == 'error':
                    changed |= _assign(record, {'status': 'active', 'error_message': None})

        if not record.channel_description and record.channel_id:
            channel = await self._try_fetch('channel info', video_id, self.client.get_channel_info, record.channel_id)
            if channel is not None:
                changed |= _assign(record, _channel_values(channel))

        # Zero comments is treated like never collected, completeness requires at least one
        if not record.total_comments:
            comments = await self._try_fetch('comments', video_id, self.client.get_comments, video_id, max_comments)
            changed |= _assign(record, _comment_values(comments) if comments is not None else dict(EMPTY_COMMENTS))

        if not record.transcript_segments:
            transcript = await self._try_fetch('transcript', video_id, self.client.get_transcript, video_id, language)
            changed |= _assign(record, _transcript_values(transcript) if transcript is not None else dict(EMPTY_TRANSCRIPT))

        if changed:
            record.updated_at = utcnow()
            session.commit()
            logger.info(
                "Filled missing video data",
                extra={"video_id": video_id, "complete": record.is_data_complete()}
            )

        return record

    def _insert(self, session: Session, record: VideoRecord) -> VideoRecord:
        """Insert a new record; a concurrent insert of the same video wins and is returned."""
        session.add(record)
        try:
            session.commit()
            return record
        except IntegrityError as e:
            session.rollback()
            existing = session.query(VideoRecord).filter_by(video_id=record.video_id).first()
            if existing is None:
                raise DatabaseException(
                    f"Failed to save video record {record.video_id}",
                    details={"video_id": record.video_id}
                ) from e
            logger.info(
                "Video record created concurrently, using existing row",
                extra={"video_id": record.video_id}
            )
            return existing

