"""Video collection endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from reelfeed.api.schemas import FetchResultResponse, VideoListResponse, VideoResponse
from reelfeed.services.video_cache import VideoCacheFetcher

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["videos"])


# Dependency placeholder for the video fetcher
async def get_fetcher() -> VideoCacheFetcher:
    """Get video fetcher instance."""
    raise NotImplementedError("Video fetcher dependency not configured")


@router.get("/videos", response_model=VideoListResponse)
async def list_videos(
    fetcher: VideoCacheFetcher = Depends(get_fetcher),  # noqa: B008
) -> Any:
    """
    Get the current video collection.

    Records are returned in listing order. While a fetch pass is running the
    collection holds the records published so far.
    """
    videos = fetcher.videos.value
    return VideoListResponse(
        videos=[VideoResponse.from_record(v) for v in videos],
        count=len(videos),
        is_fetching=fetcher.is_fetching.value,
        last_error=fetcher.last_error.value,
    )


@router.post(
    "/videos/refresh",
    response_model=FetchResultResponse,
    responses={
        502: {"description": "Video container could not be listed"},
    },
)
async def refresh_videos(
    fetcher: VideoCacheFetcher = Depends(get_fetcher),  # noqa: B008
) -> Any:
    """
    Run a fetch pass.

    Lists the remote container, downloads the videos missing from the local
    cache and republishes the collection. Videos that fail to resolve or
    download are reported under `skipped`. If a pass is already running,
    this request waits for it and then runs its own.
    """
    logger.info("video_refresh_requested")
    result = await fetcher.fetch_all()
    return FetchResultResponse.from_result(result)
