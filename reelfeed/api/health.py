"""Health check endpoints.

- /health: component status for the cache directory, the blob store and the feed
- /liveness: process is alive
- /readiness: services are configured and can take traffic
"""

import time
from datetime import datetime, timezone
from typing import Dict, Literal

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from reelfeed import __version__
from reelfeed.api.schemas import ComponentHealth, HealthResponse, LivenessResponse, ReadinessResponse

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])

# Track application start time for uptime calculation
_start_time: float = time.time()


def reset_start_time() -> None:
    """Reset the start time (for testing)."""
    global _start_time
    _start_time = time.time()


def _check_cache_storage() -> ComponentHealth:
    """Check the local cache directory."""
    try:
        from reelfeed.main import get_cache_directory

        cache = get_cache_directory()
        if not cache.path.is_dir():
            return ComponentHealth(
                status="unhealthy",
                details={"error": "Cache directory does not exist", "path": str(cache.path)},
            )
        usage = cache.get_disk_usage()

        return ComponentHealth(
            status="healthy",
            details={
                "path": str(cache.path),
                "available_gb": round(usage.available / (1024**3), 2),
                "used_percent": round(usage.percent_used, 1),
            },
        )
    except RuntimeError:
        # Cache directory not configured yet
        return ComponentHealth(
            status="unhealthy",
            details={"error": "Cache directory not configured"},
        )
    except Exception as e:
        return ComponentHealth(
            status="unhealthy",
            details={"error": str(e)},
        )


def _check_blob_store() -> ComponentHealth:
    """Check that a blob store is configured."""
    try:
        from reelfeed.main import get_fetcher

        fetcher = get_fetcher()
        return ComponentHealth(
            status="healthy",
            details={
                "backend": fetcher.blob_store.describe() or type(fetcher.blob_store).__name__,
                "container": fetcher.container,
            },
        )
    except RuntimeError:
        return ComponentHealth(
            status="unhealthy",
            details={"error": "Blob store not configured"},
        )


def _check_feed() -> ComponentHealth:
    """Report the state of the cached video feed.

    A failed last pass marks the feed unhealthy. An empty feed is healthy.
    """
    try:
        from reelfeed.main import get_fetcher

        fetcher = get_fetcher()
    except RuntimeError:
        return ComponentHealth(
            status="unhealthy",
            details={"error": "Video fetcher not configured"},
        )

    details: Dict[str, object] = {
        "cached_videos": len(fetcher.videos),
        "is_fetching": fetcher.is_fetching.value,
    }
    last_error = fetcher.last_error.value
    if last_error:
        details["error"] = last_error
        return ComponentHealth(status="unhealthy", details=details)
    return ComponentHealth(status="healthy", details=details)


def _is_test_mode() -> bool:
    try:
        from reelfeed.main import get_config

        return get_config().testing.test_mode
    except RuntimeError:
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All components healthy"},
        503: {"description": "One or more components unhealthy"},
    },
)
async def health_check() -> JSONResponse:
    """
    Detailed health check endpoint.

    Verifies all system components:
    - Local cache directory exists, with disk usage
    - Blob store is configured
    - Feed state (cached videos, last fetch error)

    Returns HTTP 200 if all components are healthy,
    HTTP 503 if any component is unhealthy.
    """
    components = {
        "cache_storage": _check_cache_storage(),
        "blob_store": _check_blob_store(),
        "feed": _check_feed(),
    }

    all_healthy = all(c.status == "healthy" for c in components.values())
    overall_status: Literal["healthy", "unhealthy"] = "healthy" if all_healthy else "unhealthy"

    uptime = time.time() - _start_time

    response = HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        uptime_seconds=round(uptime, 2),
        test_mode=_is_test_mode(),
        components=components,
    )

    status_code = status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.info(
        "health_check_completed",
        status=overall_status,
        components={k: v.status for k, v in components.items()},
    )

    return JSONResponse(content=response.model_dump(), status_code=status_code)


@router.get("/liveness", response_model=LivenessResponse)
async def liveness_check() -> LivenessResponse:
    """
    Liveness probe endpoint.

    Returns HTTP 200 if the process is alive.
    """
    return LivenessResponse(status="alive")


@router.get(
    "/readiness",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready to accept traffic"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness_check() -> JSONResponse:
    """
    Readiness probe endpoint.

    Returns HTTP 200 once the fetcher and the cache directory are configured.
    """
    issues = []

    if _check_blob_store().status != "healthy":
        issues.append("Video fetcher not configured")

    if _check_cache_storage().status != "healthy":
        issues.append("Cache storage not ready")

    if issues:
        response = ReadinessResponse(
            status="not_ready",
            ready=False,
            message="; ".join(issues),
        )
        return JSONResponse(
            content=response.model_dump(),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return JSONResponse(
        content=ReadinessResponse(status="ready", ready=True).model_dump(),
        status_code=status.HTTP_200_OK,
    )
