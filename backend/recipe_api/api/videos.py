import logging

from fastapi import APIRouter, Depends, Query

from recipe_api.api.deps import get_video_data_service
from recipe_api.config import settings
from recipe_api.exceptions import ValidationException
from recipe_api.schemas import BulkVideoDataRequest, BulkVideoDataResponse, VideoDataResponse
from recipe_api.services.video_data_service import VideoDataService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/bulk", response_model=BulkVideoDataResponse)
async def get_bulk_video_data(
    request: BulkVideoDataRequest,
    service: VideoDataService = Depends(get_video_data_service)
):
    """
    Fetch or fill cached data for several videos concurrently.

    One result per input, in input order. Inputs that failed return their
    stored error record, or null when nothing could be stored.
    """
    # Validate video IDs format
    for video_ref in request.video_ids_or_urls:
        if not video_ref or not video_ref.strip():
            raise ValidationException(
                "Invalid video ID format",
                details={"video_id": video_ref, "expected": "non-empty string"}
            )

    records = await service.get_bulk_comprehensive_video_data(
        request.video_ids_or_urls,
        max_comments=request.max_comments,
        language=request.language
    )
    results = [VideoDataResponse.from_record(record) if record is not None else None for record in records]
    successful = sum(1 for result in results if result is not None and result.status == 'active')

    return BulkVideoDataResponse(
        results=results,
        total=len(results),
        successful=successful,
        failed=len(results) - successful
    )


@router.get("/{video_ref:path}", response_model=VideoDataResponse)
async def get_video_data(
    video_ref: str,
    max_comments: int = Query(default=settings.youtube_max_comments, ge=0, le=1000),
    language: str = Query(default=settings.youtube_default_language),
    service: VideoDataService = Depends(get_video_data_service)
):
    """
    Get cached YouTube data for a video ID or URL, collecting whatever is missing.

    Full URLs must be URL-encoded so their query string stays part of the path.
    """
    record = await service.get_comprehensive_video_data(video_ref, max_comments=max_comments, language=language)
    return VideoDataResponse.from_record(record)
