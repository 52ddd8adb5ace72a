import re
import logging
from typing import Optional, Dict, Any, List
from urllib.parse import urlparse

import httpx
import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from recipe_api.config import settings
from recipe_api.exceptions import VideoFetchException
from recipe_api.schemas.video import (
    VideoInfo,
    ChannelInfo,
    CommentAuthor,
    CommentData,
    CommentsResult,
    TranscriptSegment,
    TranscriptResult,
)

logger = logging.getLogger(__name__)

VIDEO_ID_PATTERNS = [
    re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)'),
    re.compile(r'youtube\.com/embed/([^&\n?#]+)'),
    re.compile(r'youtube\.com/v/([^&\n?#]+)'),
    re.compile(r'youtube\.com/shorts/([^&\n?#]+)'),
]

# i.ytimg.com file stems mapped to the conventional thumbnail size names
THUMBNAIL_NAMES = {
    'default': 'default',
    'mqdefault': 'medium',
    'hqdefault': 'high',
    'sddefault': 'standard',
    'maxresdefault': 'maxres',
}

CAPTION_FORMAT = 'json3'


def extract_video_id(video_ref: str) -> str:
    """
    Extract the video identifier from any supported YouTube URL.
    Input that matches no pattern is returned unchanged, so bare IDs pass through.
    """
    if not video_ref:
        return video_ref
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(video_ref)
        if match:
            return match.group(1)
    return video_ref


def is_youtube_url(video_ref: str) -> bool:
    return bool(video_ref) and any(pattern.search(video_ref) for pattern in VIDEO_ID_PATTERNS)


def is_shorts_url(video_ref: str) -> bool:
    return bool(video_ref) and '/shorts/' in video_ref


def build_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def get_ydl_opts_base() -> Dict[str, Any]:
    """Get base yt-dlp options with anti-blocking measures."""
    return {
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
        'noplaylist': True,
        'socket_timeout': settings.youtube_socket_timeout,
        'user_agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
        'extractor_args': {
            'youtube': {
                'player_client': ['android', 'web'],
            }
        },
        'http_headers': {
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'ko-kr,ko;q=0.9,en-us;q=0.8,en;q=0.5',
            'Sec-Fetch-Mode': 'navigate',
        }
    }


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def map_thumbnails(thumbnails: List[Dict[str, Any]], fallback_url: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """
    Map yt-dlp's flat thumbnail list onto named sizes (default, medium, high, ...).
    JPEG variants win over WebP ones of the same size.
    """
    named: Dict[str, Dict[str, Any]] = {}
    for thumb in thumbnails or []:
        url = thumb.get('url')
        if not url:
            continue
        filename = urlparse(url).path.rsplit('/', 1)[-1]
        stem, _, ext = filename.partition('.')
        name = THUMBNAIL_NAMES.get(stem)
        if not name:
            continue
        if name in named and ext != 'jpg':
            continue
        named[name] = {
            'url': url,
            'width': thumb.get('width'),
            'height': thumb.get('height'),
        }
    if not named and fallback_url:
        named['default'] = {'url': fallback_url, 'width': None, 'height': None}
    return named


def parse_video_info(data: Dict[str, Any], is_shorts: bool = False) -> VideoInfo:
    """Build VideoInfo from a sanitized yt-dlp info dict."""
    video_id = data.get('id')
    if not video_id:
        raise VideoFetchException("yt-dlp returned no video id", details={'keys': sorted(data.keys())[:20]})

    live_status = data.get('live_status')
    categories = data.get('categories') or []
    webpage_url = data.get('webpage_url') or ''

    return VideoInfo(
        video_id=video_id,
        video_url=build_watch_url(video_id),
        title=data.get('title'),
        description=data.get('description'),
        duration=_to_int(data.get('duration')),
        view_count=_to_int(data.get('view_count')),
        like_count=_to_int(data.get('like_count')),
        upload_date=data.get('upload_date'),
        category=categories[0] if categories else None,
        tags=data.get('tags') or [],
        thumbnails=map_thumbnails(data.get('thumbnails') or [], data.get('thumbnail')),
        is_live_content=bool(data.get('is_live') or data.get('was_live') or live_status in ('is_live', 'was_live', 'post_live')),
        is_shorts=is_shorts or '/shorts/' in webpage_url,
        channel_id=data.get('channel_id'),
        channel_name=data.get('channel') or data.get('uploader'),
        channel_url=data.get('channel_url') or data.get('uploader_url'),
    )


def parse_channel_info(data: Dict[str, Any], channel_id: str) -> ChannelInfo:
    """Build ChannelInfo from a yt-dlp channel tab payload."""
    thumbnails = [
        {'id': thumb.get('id'), 'url': thumb.get('url'), 'width': thumb.get('width'), 'height': thumb.get('height')}
        for thumb in data.get('thumbnails') or []
        if thumb.get('url')
    ]
    avatar = next((thumb for thumb in thumbnails if 'avatar' in str(thumb.get('id') or '')), None)
    follower_count = data.get('channel_follower_count')
    video_count = data.get('playlist_count')

    return ChannelInfo(
        channel_id=data.get('channel_id') or channel_id,
        name=data.get('channel') or data.get('title'),
        url=data.get('channel_url') or data.get('uploader_url') or f"https://www.youtube.com/channel/{channel_id}",
        description=data.get('description'),
        subscriber_count=str(follower_count) if follower_count is not None else None,
        video_count=str(video_count) if video_count is not None else None,
        thumbnails=[thumb for thumb in thumbnails if thumb is not avatar] if avatar else thumbnails,
        avatar=avatar,
        keywords=data.get('tags') or [],
    )


def parse_comments(data: Dict[str, Any], max_comments: int) -> CommentsResult:
    """
    Build top-level comments from yt-dlp's comment list.
    Replies are separate entries linked through 'parent'; they only feed reply_count.
    """
    raw_comments = data.get('comments') or []

    reply_counts: Dict[str, int] = {}
    for comment in raw_comments:
        parent = comment.get('parent')
        if parent and parent != 'root':
            reply_counts[parent] = reply_counts.get(parent, 0) + 1

    comments: List[CommentData] = []
    for comment in raw_comments:
        if comment.get('parent', 'root') != 'root':
            continue
        if len(comments) >= max_comments:
            break
        comment_id = str(comment.get('id') or '')
        published = comment.get('_time_text')
        if not published and comment.get('timestamp') is not None:
            published = str(comment['timestamp'])
        comments.append(CommentData(
            id=comment_id,
            author=CommentAuthor(
                name=comment.get('author'),
                channel_id=comment.get('author_id'),
                thumbnail=comment.get('author_thumbnail'),
            ),
            content=comment.get('text') or '',
            published_time=published,
            like_count=_to_int(comment.get('like_count')) or 0,
            reply_count=reply_counts.get(comment_id, 0),
            is_pinned=bool(comment.get('is_pinned')),
            is_hearted_by_creator=bool(comment.get('is_favorited')),
        ))

    return CommentsResult(total_comments=len(comments), comments=comments)


def select_caption_url(data: Dict[str, Any], language: str) -> Optional[str]:
    """
    Pick the json3 caption track for the language.
    Uploaded subtitles are preferred over automatic captions; regional
    variants (e.g. 'ko-KR') are accepted when the exact code is missing.
    """
    for key in ('subtitles', 'automatic_captions'):
        tracks_by_lang = data.get(key) or {}
        candidates = [language] + sorted(
            lang for lang in tracks_by_lang if lang != language and lang.split('-')[0] == language
        )
        for lang in candidates:
            for track in tracks_by_lang.get(lang) or []:
                if track.get('ext') == CAPTION_FORMAT and track.get('url'):
                    return track['url']
    return None


def parse_json3_transcript(payload: Dict[str, Any], language: str) -> TranscriptResult:
    """Convert a json3 caption document into millisecond-timed segments."""
    segments: List[TranscriptSegment] = []
    for event in payload.get('events') or []:
        segs = event.get('segs')
        if not segs:
            continue
        text = ''.join(seg.get('utf8', '') for seg in segs).strip()
        if not text:
            continue
        start_ms = _to_int(event.get('tStartMs')) or 0
        duration_ms = _to_int(event.get('dDurationMs')) or 0
        segments.append(TranscriptSegment(
            text=text,
            start_ms=start_ms,
            end_ms=start_ms + duration_ms,
            duration_ms=duration_ms,
        ))

    if not segments:
        return TranscriptResult()

    full_text = ' '.join(segment.text for segment in segments).strip()
    return TranscriptResult(language=language, segments=segments, full_text=full_text or None)


class YoutubeClient:
    """
    Blocking YouTube data source backed by yt-dlp.
    Every method raises VideoFetchException on failure; callers run them in a thread pool.
    """

    def __init__(self, http_timeout: float = 30.0):
        self.http_timeout = http_timeout

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type((DownloadError, ExtractorError)),
        reraise=True
    )
    def _extract_info(self, url: str, **overrides: Any) -> Dict[str, Any]:
        ydl_opts = get_ydl_opts_base()
        extractor_args = overrides.pop('extractor_args', None)
        ydl_opts.update(overrides)
        if extractor_args:
            ydl_opts['extractor_args']['youtube'].update(extractor_args)

        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)
            return ydl.sanitize_info(info)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    def _fetch_caption(self, url: str) -> Dict[str, Any]:
        response = httpx.get(url, timeout=self.http_timeout, follow_redirects=True)
        response.raise_for_status()
        return response.json()

    def get_video_info(self, video_ref: str) -> VideoInfo:
        video_id = extract_video_id(video_ref)
        try:
            data = self._extract_info(build_watch_url(video_id))
        except (DownloadError, ExtractorError) as e:
            logger.error(
                "Video info extraction failed",
                extra={"video_id": video_id, "error": str(e), "error_type": type(e).__name__}
            )
            raise VideoFetchException(
                f"Failed to fetch video info for {video_id}: {e}",
                details={"video_id": video_id}
            ) from e

        info = parse_video_info(data, is_shorts=is_shorts_url(video_ref))
        logger.info(f"Successfully extracted metadata for video: {info.video_id}")
        return info

    def get_channel_info(self, channel_id: str) -> ChannelInfo:
        url = f"https://www.youtube.com/channel/{channel_id}"
        try:
            # Channel metadata rides on the tab payload; one flat entry keeps it cheap
            data = self._extract_info(url, noplaylist=False, extract_flat=True, playlistend=1)
        except (DownloadError, ExtractorError) as e:
            logger.warning(
                "Channel info extraction failed",
                extra={"channel_id": channel_id, "error": str(e)}
            )
            raise VideoFetchException(
                f"Failed to fetch channel info for {channel_id}: {e}",
                details={"channel_id": channel_id}
            ) from e
        return parse_channel_info(data, channel_id)

    def get_comments(self, video_ref: str, max_comments: int = 100) -> CommentsResult:
        video_id = extract_video_id(video_ref)
        try:
            data = self._extract_info(
                build_watch_url(video_id),
                getcomments=True,
                extractor_args={
                    'comment_sort': ['top'],
                    # total, parents, replies, replies per thread
                    'max_comments': [str(max_comments * 3), str(max_comments), 'all', '10'],
                },
            )
        except (DownloadError, ExtractorError) as e:
            logger.warning(
                "Comment extraction failed",
                extra={"video_id": video_id, "error": str(e)}
            )
            raise VideoFetchException(
                f"Failed to fetch comments for {video_id}: {e}",
                details={"video_id": video_id}
            ) from e
        return parse_comments(data, max_comments)

    def get_transcript(self, video_ref: str, language: str = 'ko') -> TranscriptResult:
        video_id = extract_video_id(video_ref)
        try:
            data = self._extract_info(build_watch_url(video_id))
            caption_url = select_caption_url(data, language)
            if not caption_url:
                logger.info(
                    "No caption track available",
                    extra={"video_id": video_id, "language": language}
                )
                return TranscriptResult()
            payload = self._fetch_caption(caption_url)
        except (DownloadError, ExtractorError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Transcript extraction failed",
                extra={"video_id": video_id, "language": language, "error": str(e)}
            )
            raise VideoFetchException(
                f"Failed to fetch transcript for {video_id}: {e}",
                details={"video_id": video_id, "language": language}
            ) from e
        return parse_json3_transcript(payload, language)
