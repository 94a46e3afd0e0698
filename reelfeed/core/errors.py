"""Error codes and the exception handler that renders them.

Service and provider exceptions are mapped to an error code, an HTTP status
and a suggestion, and every error response carries the ErrorDetail body.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type

import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from reelfeed.core.logging import get_request_id
from reelfeed.core.metrics import MetricsCollector
from reelfeed.providers.exceptions import (
    BlobStoreError,
    FunctionsError,
    ListingError,
    ProviderError,
)
from reelfeed.services.cache_storage import CacheStorageError
from reelfeed.services.generation import (
    InvalidDurationError,
    InvalidPromptTextError,
    InvalidRatioError,
    InvalidTaskResponseError,
    VideoGenerationError,
)
from reelfeed.services.playback import NoVideoBoundError

logger = structlog.get_logger(__name__)


class ErrorCode:
    """Standardized error codes for API responses."""

    # Client Errors (4xx)
    INVALID_PROMPT = "INVALID_PROMPT"
    INVALID_DURATION = "INVALID_DURATION"
    INVALID_RATIO = "INVALID_RATIO"
    INVALID_REQUEST = "INVALID_REQUEST"
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
    EMPTY_FEED = "EMPTY_FEED"
    NO_VIDEO_BOUND = "NO_VIDEO_BOUND"
    NOT_FOUND = "NOT_FOUND"

    # Upstream Errors (5xx)
    LISTING_FAILED = "LISTING_FAILED"
    BLOB_STORE_ERROR = "BLOB_STORE_ERROR"
    GENERATION_FAILED = "GENERATION_FAILED"
    CACHE_STORAGE_ERROR = "CACHE_STORAGE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Service Unavailable (503)
    COMPONENT_UNAVAILABLE = "COMPONENT_UNAVAILABLE"


ERROR_CODE_TO_STATUS: Dict[str, int] = {
    # 400 Bad Request
    ErrorCode.INVALID_PROMPT: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_DURATION: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_RATIO: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REQUEST: HTTP_400_BAD_REQUEST,
    # 404 Not Found
    ErrorCode.INDEX_OUT_OF_RANGE: HTTP_404_NOT_FOUND,
    ErrorCode.NOT_FOUND: HTTP_404_NOT_FOUND,
    # 409 Conflict
    ErrorCode.EMPTY_FEED: HTTP_409_CONFLICT,
    ErrorCode.NO_VIDEO_BOUND: HTTP_409_CONFLICT,
    # 502 Bad Gateway
    ErrorCode.LISTING_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.BLOB_STORE_ERROR: HTTP_502_BAD_GATEWAY,
    ErrorCode.GENERATION_FAILED: HTTP_502_BAD_GATEWAY,
    # 500 Internal Server Error
    ErrorCode.CACHE_STORAGE_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    # 503 Service Unavailable
    ErrorCode.COMPONENT_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
}


ERROR_SUGGESTIONS: Dict[str, str] = {
    ErrorCode.INVALID_PROMPT: "Shorten the prompt text to 512 characters or fewer",
    ErrorCode.INVALID_DURATION: "Use a duration of 5 or 10 seconds",
    ErrorCode.INVALID_RATIO: "Use a ratio of '1280:768' (landscape) or '768:1280' (portrait)",
    ErrorCode.INVALID_REQUEST: "Check the request body against the API schema at /docs",
    ErrorCode.INDEX_OUT_OF_RANGE: "Use GET /api/v1/videos to see how many videos are available",
    ErrorCode.NOT_FOUND: "Check the resource identifier",
    ErrorCode.EMPTY_FEED: "Refresh the feed with POST /api/v1/videos/refresh",
    ErrorCode.NO_VIDEO_BOUND: "Select a video in the feed before sending player commands",
    ErrorCode.LISTING_FAILED: (
        "The video container could not be listed. The previous feed is kept; "
        "try refreshing again later"
    ),
    ErrorCode.BLOB_STORE_ERROR: "The storage backend failed. Check server logs for details",
    ErrorCode.GENERATION_FAILED: "The generation function failed. Try again later",
    ErrorCode.CACHE_STORAGE_ERROR: "The local video cache is not writable. Check the cache_dir setting",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Contact administrator if the issue persists",
    ErrorCode.COMPONENT_UNAVAILABLE: "A required component is unavailable. Check /health for status",
}


# Order matters: subclasses must come before their base classes
EXCEPTION_TO_ERROR_CODE: Dict[Type[Exception], str] = {
    InvalidPromptTextError: ErrorCode.INVALID_PROMPT,
    InvalidDurationError: ErrorCode.INVALID_DURATION,
    InvalidRatioError: ErrorCode.INVALID_RATIO,
    InvalidTaskResponseError: ErrorCode.GENERATION_FAILED,
    VideoGenerationError: ErrorCode.INVALID_REQUEST,
    NoVideoBoundError: ErrorCode.NO_VIDEO_BOUND,
    ListingError: ErrorCode.LISTING_FAILED,
    FunctionsError: ErrorCode.GENERATION_FAILED,
    BlobStoreError: ErrorCode.BLOB_STORE_ERROR,
    CacheStorageError: ErrorCode.CACHE_STORAGE_ERROR,
    # ProviderError must be last (after its subclasses)
    ProviderError: ErrorCode.BLOB_STORE_ERROR,
}

MAPPED_EXCEPTIONS = tuple(EXCEPTION_TO_ERROR_CODE)

# Codes for HTTPExceptions raised without a structured detail
_STATUS_FALLBACK_CODES: Dict[int, str] = {
    HTTP_400_BAD_REQUEST: ErrorCode.INVALID_REQUEST,
    HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.INVALID_REQUEST,
    HTTP_503_SERVICE_UNAVAILABLE: ErrorCode.COMPONENT_UNAVAILABLE,
}


class APIError(Exception):
    """Error carrying a code from ErrorCode, rendered as an ErrorDetail body.

    The HTTP status follows ERROR_CODE_TO_STATUS unless given explicitly, and
    the suggestion defaults to the one registered for the code.
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[str] = None,
        suggestion: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.details = details
        self.suggestion = suggestion or ERROR_SUGGESTIONS.get(error_code)
        self.status_code = status_code or ERROR_CODE_TO_STATUS.get(
            error_code, HTTP_500_INTERNAL_SERVER_ERROR
        )

    def to_body(self) -> Dict[str, Any]:
        """Build the ErrorDetail body, leaving out empty optional fields."""
        body: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": get_request_id(),
            "suggestion": self.suggestion,
        }
        return {key: value for key, value in body.items() if value}

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_body())


def map_exception_to_api_error(exc: Exception) -> APIError:
    """Map a provider or service exception to an APIError.

    Exceptions without a registered code become INTERNAL_ERROR with a generic
    message, so their text never reaches the client.
    """
    for exc_type, error_code in EXCEPTION_TO_ERROR_CODE.items():
        if isinstance(exc, exc_type):
            return APIError(error_code, str(exc))
    return APIError(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


def _from_http_exception(exc: HTTPException) -> APIError:
    detail = exc.detail
    if isinstance(detail, dict) and "error_code" in detail:
        return APIError(
            detail["error_code"],
            detail.get("message", str(detail)),
            details=detail.get("details"),
            status_code=exc.status_code,
        )
    return APIError(
        _STATUS_FALLBACK_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR),
        str(detail) if detail else "An error occurred",
        status_code=exc.status_code,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render any exception as an ErrorDetail response and count it."""
    path = request.url.path

    if isinstance(exc, APIError):
        api_error = exc
        logger.warning("api_error", error_code=exc.error_code, message=exc.message, path=path)
    elif isinstance(exc, HTTPException):
        api_error = _from_http_exception(exc)
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            error_code=api_error.error_code,
            path=path,
        )
    elif isinstance(exc, MAPPED_EXCEPTIONS):
        api_error = map_exception_to_api_error(exc)
        logger.warning(
            "service_error",
            error_code=api_error.error_code,
            error_type=type(exc).__name__,
            message=str(exc),
            path=path,
        )
    else:
        api_error = map_exception_to_api_error(exc)
        logger.error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error=str(exc),
            path=path,
            exc_info=exc,
        )

    MetricsCollector.record_error(api_error.error_code, path)
    return api_error.to_response()
