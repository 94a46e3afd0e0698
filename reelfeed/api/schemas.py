"""Request and response schemas for API endpoints.

This module provides Pydantic models for API request validation
and response serialization with OpenAPI examples.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from reelfeed.models.video import FetchResult, VideoRecord


class VideoResponse(BaseModel):
    """A cached video record."""

    video_id: str = Field(..., examples=["sunset_timelapse.mp4"])
    name: str = Field(..., examples=["sunset_timelapse.mp4"])
    local_path: str = Field(
        ..., examples=["/home/user/.cache/reelfeed/cached_videos/sunset_timelapse.mp4"]
    )
    remote_url: str = Field(
        ...,
        examples=[
            "https://firebasestorage.googleapis.com/v0/b/reelai.appspot.com/o/"
            "videos%2Fsunset_timelapse.mp4?alt=media&token=abc"
        ],
    )
    size: int = Field(..., description="File size in bytes", examples=[5242880])
    content_type: str = Field(..., examples=["video/mp4"])
    created_at: str = Field(..., examples=["2025-01-10T08:30:00+00:00"])

    @classmethod
    def from_record(cls, record: VideoRecord) -> "VideoResponse":
        return cls(**record.to_dict())


class VideoListResponse(BaseModel):
    """Current ordered video collection."""

    videos: List[VideoResponse]
    count: int = Field(..., examples=[4])
    is_fetching: bool = Field(..., examples=[False])
    last_error: Optional[str] = Field(None, examples=["Listing 'videos' failed"])


class SkippedItemResponse(BaseModel):
    """A blob that was left out of a fetch pass."""

    name: str = Field(..., examples=["broken_clip.mp4"])
    stage: str = Field(..., examples=["download"])
    error: str = Field(..., examples=["download timed out after 300s"])


class FetchResultResponse(BaseModel):
    """Summary of a fetch pass."""

    count: int = Field(..., description="Records published", examples=[3])
    listed: int = Field(..., description="Blobs listed", examples=[4])
    cache_hits: int = Field(..., examples=[2])
    downloaded: int = Field(..., examples=[1])
    skipped: List[SkippedItemResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: FetchResult) -> "FetchResultResponse":
        return cls(**result.to_dict())


class FeedResponse(BaseModel):
    """Feed selection state."""

    index: Optional[int] = Field(None, examples=[0])
    count: int = Field(..., examples=[4])
    video: Optional[VideoResponse] = None


class PlayerStateResponse(BaseModel):
    """Playback state and command flags."""

    state: Literal["idle", "loading", "playing", "paused"] = Field(..., examples=["playing"])
    is_playing: bool = Field(..., examples=[True])
    is_muted: bool = Field(..., examples=[False])
    is_loading: bool = Field(..., examples=[False])
    current_url: Optional[str] = Field(
        None, examples=["/home/user/.cache/reelfeed/cached_videos/sunset_timelapse.mp4"]
    )
    position: float = Field(0.0, description="Playback position in seconds", examples=[3.5])
    loop_count: int = Field(0, examples=[2])


class SeekRequest(BaseModel):
    """Seek command."""

    position: float = Field(..., ge=0, description="Target position in seconds", examples=[0.0])


class GenerationRequest(BaseModel):
    """Request body for creating a generation task."""

    prompt_image: str = Field(
        ..., description="URL of the source image", examples=["https://example.com/cat.png"]
    )
    prompt_text: str = Field(..., examples=["A cat walking along a beach at sunset"])
    watermark: bool = Field(False, description="Add a watermark to the output")
    duration: Optional[int] = Field(
        None, description="Video length in seconds (5 or 10)", examples=[5]
    )
    ratio: Optional[str] = Field(
        None, description="Aspect ratio", examples=["768:1280", "1280:768"]
    )


class GenerationResponse(BaseModel):
    """Created generation task."""

    task_id: str = Field(..., examples=["9f1c2d3e4b5a"])


class TaskStatusResponse(BaseModel):
    """Status of a generation task as reported by the remote function."""

    task_id: str = Field(..., examples=["9f1c2d3e4b5a"])
    status: Optional[str] = Field(None, examples=["PENDING", "RUNNING", "SUCCEEDED"])
    task: Dict[str, Any] = Field(default_factory=dict, description="Raw task payload")


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    status: Literal["healthy", "unhealthy"] = Field(..., examples=["healthy"])
    details: Optional[Dict[str, Any]] = Field(default=None, examples=[{"cached_videos": 4}])


class HealthResponse(BaseModel):
    """Detailed health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., examples=["healthy"])
    timestamp: str = Field(..., examples=["2025-12-25T10:30:00Z"])
    version: str = Field(..., examples=["0.1.0"])
    uptime_seconds: float = Field(..., examples=[3600.5])
    test_mode: bool = Field(False, examples=[False])
    components: Dict[str, ComponentHealth]


class LivenessResponse(BaseModel):
    """Simple liveness check response for container orchestration."""

    status: Literal["alive"] = Field(..., examples=["alive"])


class ReadinessResponse(BaseModel):
    """Readiness check response for load balancer integration."""

    status: Literal["ready", "not_ready"] = Field(..., examples=["ready"])
    ready: bool = Field(..., examples=[True])
    message: Optional[str] = Field(default=None, examples=["Video fetcher not configured"])


class ErrorDetail(BaseModel):
    """Structured error response.

    All API errors follow this format with machine-readable error codes
    and optional suggestions for resolution.
    """

    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["LISTING_FAILED", "EMPTY_FEED", "NO_VIDEO_BOUND"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["No video is bound to the player"],
    )
    details: Optional[str] = Field(None, description="Additional error context")
    timestamp: str = Field(..., examples=["2025-12-25T10:30:00Z"])
    request_id: Optional[str] = Field(
        None,
        description="Request ID for tracing",
        examples=["req_550e8400e29b"],
    )
    suggestion: Optional[str] = Field(
        None,
        description="Suggested action to resolve the error",
        examples=["Select a video in the feed before sending player commands"],
    )
