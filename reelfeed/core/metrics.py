"""Prometheus metrics collection.

Defines the metrics for HTTP requests, fetch passes of the local video
cache, playback loops and video generation calls.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

app_info = Info("reelfeed", "reelfeed application information")

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# Fetch pass metrics
fetch_passes_total = Counter(
    "fetch_passes_total",
    "Total video fetch passes by outcome",
    ["status"],
)

fetch_duration_seconds = Histogram(
    "fetch_duration_seconds",
    "Duration of a full fetch pass in seconds",
    buckets=[0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
)

cache_lookups_total = Counter(
    "cache_lookups_total",
    "Local cache lookups by result",
    ["result"],
)

video_downloads_total = Counter(
    "video_downloads_total",
    "Video blob downloads by status",
    ["status"],
)

video_download_size_bytes = Histogram(
    "video_download_size_bytes",
    "Downloaded video size in bytes",
    buckets=[1e5, 1e6, 5e6, 10e6, 50e6, 100e6, 500e6],
)

fetch_item_failures_total = Counter(
    "fetch_item_failures_total",
    "Items skipped during a fetch pass by failing stage",
    ["stage"],
)

cached_videos = Gauge(
    "cached_videos",
    "Number of videos in the published feed",
)

# Playback metrics
playback_binds_total = Counter(
    "playback_binds_total",
    "Number of times a new item was bound to the player",
)

playback_loops_total = Counter(
    "playback_loops_total",
    "Number of end-of-media loops back to the start",
)

# Generation metrics
generation_requests_total = Counter(
    "generation_requests_total",
    "Video generation function calls by operation and status",
    ["operation", "status"],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors by error code and endpoint",
    ["error_code", "endpoint"],
)


class MetricsCollector:
    """Static helpers for recording metrics in a consistent manner."""

    @staticmethod
    def record_request(
        method: str,
        endpoint: str,
        status: int,
        duration: float,
    ) -> None:
        """Record HTTP request metrics.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: Normalized endpoint path.
            status: HTTP response status code.
            duration: Request duration in seconds.
        """
        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

    @staticmethod
    def record_fetch_pass(status: str, duration: float) -> None:
        """Record a completed or failed fetch pass.

        Args:
            status: 'success' or 'failed'.
            duration: Pass duration in seconds.
        """
        fetch_passes_total.labels(status=status).inc()
        fetch_duration_seconds.observe(duration)

    @staticmethod
    def record_cache_lookup(hit: bool) -> None:
        cache_lookups_total.labels(result="hit" if hit else "miss").inc()

    @staticmethod
    def record_download(status: str, size: int = 0) -> None:
        """Record a blob download.

        Args:
            status: 'success' or 'failed'.
            size: Downloaded size in bytes, ignored when not positive.
        """
        video_downloads_total.labels(status=status).inc()
        if size > 0:
            video_download_size_bytes.observe(size)

    @staticmethod
    def record_item_failure(stage: str) -> None:
        fetch_item_failures_total.labels(stage=stage).inc()

    @staticmethod
    def update_cached_videos(count: int) -> None:
        cached_videos.set(count)

    @staticmethod
    def record_playback_bind() -> None:
        playback_binds_total.inc()

    @staticmethod
    def record_playback_loop() -> None:
        playback_loops_total.inc()

    @staticmethod
    def record_generation(operation: str, status: str) -> None:
        """Record a video generation function call.

        Args:
            operation: 'generate', 'status' or 'delete'.
            status: 'success' or 'failed'.
        """
        generation_requests_total.labels(operation=operation, status=status).inc()

    @staticmethod
    def record_error(error_code: str, endpoint: str) -> None:
        """Record an error occurrence.

        Args:
            error_code: Error code from ErrorCode class.
            endpoint: Endpoint where the error occurred.
        """
        errors_total.labels(error_code=error_code, endpoint=endpoint).inc()


def initialize_metrics(version: str) -> None:
    """Initialize application metrics with version information."""
    app_info.info({"version": version})
