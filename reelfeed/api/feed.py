"""Feed selection endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Path

from reelfeed.api.schemas import FeedResponse, VideoResponse
from reelfeed.core.errors import APIError, ErrorCode
from reelfeed.services.feed import FeedSelection

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/feed", tags=["feed"])


# Dependency placeholder for the feed selection
async def get_feed() -> FeedSelection:
    """Get feed selection instance."""
    raise NotImplementedError("Feed selection dependency not configured")


def _feed_response(feed: FeedSelection) -> FeedResponse:
    record = feed.current()
    return FeedResponse(
        index=feed.index.value,
        count=len(feed.videos),
        video=VideoResponse.from_record(record) if record else None,
    )


@router.get("", response_model=FeedResponse)
async def get_selection(
    feed: FeedSelection = Depends(get_feed),  # noqa: B008
) -> Any:
    """Get the selected index and video. Both are null while the feed is empty."""
    return _feed_response(feed)


@router.post("/next", response_model=FeedResponse)
async def next_video(
    feed: FeedSelection = Depends(get_feed),  # noqa: B008
) -> Any:
    """Select the next video, wrapping to the first. No-op when the feed is empty."""
    feed.advance()
    return _feed_response(feed)


@router.post("/previous", response_model=FeedResponse)
async def previous_video(
    feed: FeedSelection = Depends(get_feed),  # noqa: B008
) -> Any:
    """Select the previous video, wrapping to the last. No-op when the feed is empty."""
    feed.retreat()
    return _feed_response(feed)


@router.post(
    "/select/{index}",
    response_model=FeedResponse,
    responses={
        404: {"description": "Index out of range"},
        409: {"description": "Feed is empty"},
    },
)
async def select_video(
    index: int = Path(..., ge=0, description="Position in the video collection"),  # noqa: B008
    feed: FeedSelection = Depends(get_feed),  # noqa: B008
) -> Any:
    """Jump to a video by position and bind it to the player."""
    count = len(feed.videos)
    if count == 0:
        raise APIError(ErrorCode.EMPTY_FEED, "The feed has no videos")

    try:
        feed.select(index)
    except IndexError as e:
        raise APIError(
            ErrorCode.INDEX_OUT_OF_RANGE,
            str(e),
            details=f"Valid indices are 0 to {count - 1}",
        ) from e

    logger.info("feed_video_selected", index=index)
    return _feed_response(feed)
