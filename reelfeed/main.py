"""FastAPI application entry point.

This module assembles all components and creates the main application.
"""

import asyncio
import contextlib
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from reelfeed import __version__
from reelfeed.api import feed, generation, health, metrics, player, videos
from reelfeed.core.config import Config, ConfigService, MonitoringConfig
from reelfeed.core.errors import (
    MAPPED_EXCEPTIONS,
    APIError,
    ErrorCode,
    global_exception_handler,
)
from reelfeed.core.logging import clear_request_id, configure_logging, set_request_id
from reelfeed.core.metrics import MetricsCollector, initialize_metrics
from reelfeed.providers.base import BlobStore, FunctionsClient
from reelfeed.providers.exceptions import ListingError
from reelfeed.providers.media import HeadlessMediaPlayer
from reelfeed.services.cache_storage import CacheDirectory
from reelfeed.services.feed import FeedSelection
from reelfeed.services.generation import VideoGenerationService
from reelfeed.services.playback import LoopingPlaybackController
from reelfeed.services.video_cache import VideoCacheFetcher

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics.

    Records request count and duration for all endpoints,
    using FastAPI route templates to normalize paths.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and record metrics."""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Use fixed label for unmatched routes to prevent unbounded cardinality
        route = request.scope.get("route")
        endpoint = route.path if route else "/unmatched"

        MetricsCollector.record_request(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
            duration=duration,
        )

        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the logging context and echoes it in the response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# Global service instances
_config: Optional[Config] = None
_cache_directory: Optional[CacheDirectory] = None
_fetcher: Optional[VideoCacheFetcher] = None
_controller: Optional[LoopingPlaybackController] = None
_feed: Optional[FeedSelection] = None
_generation_service: Optional[VideoGenerationService] = None
_initial_fetch_task: Optional[asyncio.Task] = None


def get_config() -> Config:
    """Get the loaded configuration."""
    if _config is None:
        raise RuntimeError("Configuration not loaded")
    return _config


def get_cache_directory() -> CacheDirectory:
    """Get the global cache directory instance."""
    if _cache_directory is None:
        raise RuntimeError("Cache directory not configured")
    return _cache_directory


def get_fetcher() -> VideoCacheFetcher:
    """Get the global video fetcher instance."""
    if _fetcher is None:
        raise RuntimeError("Video fetcher not configured")
    return _fetcher


def get_controller() -> LoopingPlaybackController:
    """Get the global playback controller instance."""
    if _controller is None:
        raise RuntimeError("Playback controller not configured")
    return _controller


def get_feed() -> FeedSelection:
    """Get the global feed selection instance."""
    if _feed is None:
        raise RuntimeError("Feed selection not configured")
    return _feed


def get_generation_service() -> VideoGenerationService:
    """Get the global generation service instance."""
    if _generation_service is None:
        raise APIError(
            ErrorCode.COMPONENT_UNAVAILABLE,
            "Video generation is not configured",
            details="Set functions.base_url to enable generation",
        )
    return _generation_service


def build_blob_store(config: Config) -> BlobStore:
    """Create the blob store for the configured mode."""
    if config.testing.test_mode:
        from reelfeed.testing import InMemoryBlobStore

        logger.info("test_mode_blob_store_configured")
        return InMemoryBlobStore.with_demo_videos(config.storage.container)

    from reelfeed.providers.firebase_storage import FirebaseBlobStore

    if not config.firebase.bucket:
        raise ValueError("A Firebase Storage bucket must be configured")
    return FirebaseBlobStore(
        bucket_name=config.firebase.bucket,
        credentials_path=config.firebase.credentials_path,
        signed_url_ttl=config.firebase.signed_url_ttl,
    )


def build_functions_client(config: Config) -> Optional[FunctionsClient]:
    """Create the generation functions client, or None when not configured."""
    if config.testing.test_mode:
        from reelfeed.testing import InMemoryFunctionsClient

        return InMemoryFunctionsClient(
            generate_function=config.functions.generate_function,
            status_function=config.functions.status_function,
            delete_function=config.functions.delete_function,
        )

    if not config.functions.base_url:
        return None

    from reelfeed.providers.functions import CallableFunctionsClient

    return CallableFunctionsClient(
        base_url=config.functions.base_url,
        id_token=config.functions.id_token,
    )


async def _initial_fetch(fetcher: VideoCacheFetcher) -> None:
    try:
        await fetcher.fetch_all()
    except ListingError:
        # Already logged and published through last_error by the fetcher
        pass


async def _close_client(client: object) -> None:
    aclose = getattr(client, "aclose", None)
    if aclose is not None:
        await aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown."""
    global _config, _cache_directory, _fetcher, _controller, _feed
    global _generation_service, _initial_fetch_task

    # Initialize metrics with application version
    initialize_metrics(__version__)

    # Load configuration
    config_service = ConfigService()
    config = config_service.load()
    config_service.validate()
    _config = config

    # Configure logging
    configure_logging(config.logging.level, config.logging.format)

    logger.info(
        "application_starting",
        version=__version__,
        cache_dir=config.storage.cache_dir,
        container=config.storage.container,
        test_mode=config.testing.test_mode,
    )

    # Local cache and remote store
    _cache_directory = CacheDirectory(config.storage)
    blob_store = build_blob_store(config)

    _fetcher = VideoCacheFetcher(
        blob_store=blob_store,
        cache=_cache_directory,
        timeouts=config.timeouts,
        container=config.storage.container,
    )
    _fetcher.bind_loop(asyncio.get_running_loop())

    # Playback and feed selection
    _controller = LoopingPlaybackController(
        HeadlessMediaPlayer(), start_muted=config.playback.start_muted
    )
    _feed = FeedSelection(_fetcher.videos, _controller)

    # Generation
    functions_client = build_functions_client(config)
    if functions_client is not None:
        _generation_service = VideoGenerationService(
            functions_client,
            generation_config=config.generation,
            functions_config=config.functions,
            timeout=config.timeouts.functions,
        )
        logger.info("generation_service_configured")
    else:
        logger.info("generation_service_disabled", reason="functions.base_url not set")

    _initial_fetch_task = asyncio.create_task(_initial_fetch(_fetcher))

    logger.info("application_startup_complete", version=__version__)

    yield

    # Shutdown
    logger.info("application_shutting_down")

    if _initial_fetch_task:
        _initial_fetch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _initial_fetch_task

    _feed.close()
    _controller.close()

    await _close_client(blob_store)
    if functions_client is not None:
        await _close_client(functions_client)

    _config = None
    _cache_directory = None
    _fetcher = None
    _controller = None
    _feed = None
    _generation_service = None
    _initial_fetch_task = None

    logger.info("application_shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Reelfeed API",
        description="Short-video feed backed by a local video cache, with looping playback",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    monitoring_config = MonitoringConfig()

    if monitoring_config.metrics_enabled:
        app.add_middleware(MetricsMiddleware)

    # Added last so it runs first and the request id covers the whole request
    app.add_middleware(RequestIdMiddleware)

    # Register global exception handlers
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(APIError, global_exception_handler)
    for exc_type in MAPPED_EXCEPTIONS:
        app.add_exception_handler(exc_type, global_exception_handler)

    # Override dependency injection for routers
    app.dependency_overrides[videos.get_fetcher] = get_fetcher
    app.dependency_overrides[feed.get_feed] = get_feed
    app.dependency_overrides[player.get_controller] = get_controller
    app.dependency_overrides[generation.get_generation_service] = get_generation_service

    # Register routers
    app.include_router(health.router)
    app.include_router(videos.router)
    app.include_router(feed.router)
    app.include_router(player.router)
    app.include_router(generation.router)
    if monitoring_config.metrics_enabled:
        app.include_router(metrics.router)

    return app


# Create the application instance
app = create_app()


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    import uvicorn

    server = ConfigService().load().server
    uvicorn.run("reelfeed.main:app", host=server.host, port=server.port)


if __name__ == "__main__":
    run()
