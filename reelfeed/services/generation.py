"""Video generation client.

Validates generation requests and forwards them to the remote generation
functions. The generation itself runs remotely; this service only creates,
inspects and deletes tasks.
"""

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import quote

import structlog

from reelfeed.core.config import FunctionsConfig, GenerationConfig
from reelfeed.core.metrics import MetricsCollector
from reelfeed.providers.base import FunctionsClient
from reelfeed.providers.exceptions import FunctionsError
from reelfeed.services.observable import Published

logger = structlog.get_logger(__name__)


class VideoGenerationError(Exception):
    """Base exception for generation request errors."""

    pass


class InvalidPromptTextError(VideoGenerationError):
    """Raised when the prompt text is too long."""

    pass


class InvalidDurationError(VideoGenerationError):
    """Raised when the duration is not an allowed value."""

    pass


class InvalidRatioError(VideoGenerationError):
    """Raised when the aspect ratio is not an allowed value."""

    pass


class InvalidTaskResponseError(VideoGenerationError):
    """Raised when a generation function returns an unexpected payload."""

    pass


class InvalidTaskIdError(VideoGenerationError):
    """Raised when a task id cannot name a task."""

    pass


def utf16_length(text: str) -> int:
    """Length of `text` in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def _task_function(function: str, task_id: str) -> str:
    """Function name addressing one task, with the id as a single escaped segment."""
    if not task_id or task_id in (".", ".."):
        raise InvalidTaskIdError(f"Invalid task id: {task_id!r}")
    return f"{function}/{quote(task_id, safe='')}"


class VideoGenerationService:
    """Creates and tracks remote video generation tasks."""

    def __init__(
        self,
        functions: FunctionsClient,
        generation_config: Optional[GenerationConfig] = None,
        functions_config: Optional[FunctionsConfig] = None,
        timeout: float = 60,
    ) -> None:
        self.functions = functions
        self.timeout = timeout
        self.limits = generation_config or GenerationConfig()
        self.names = functions_config or FunctionsConfig()

        self.is_loading: Published[bool] = Published(False, name="generation_loading")
        self.error: Published[Optional[str]] = Published(None, name="generation_error")

    def validate(self, prompt_text: str, duration: int, ratio: str) -> None:
        """Check a generation request against the configured limits.

        Raises:
            InvalidPromptTextError: If the prompt is longer than allowed.
            InvalidDurationError: If the duration is not allowed.
            InvalidRatioError: If the ratio is not allowed.
        """
        length = utf16_length(prompt_text)
        if length > self.limits.max_prompt_length:
            raise InvalidPromptTextError(
                f"Prompt text must be less than or equal to {self.limits.max_prompt_length} "
                f"characters. Current length: {length}"
            )

        if duration not in self.limits.allowed_durations:
            allowed = " or ".join(str(d) for d in self.limits.allowed_durations)
            raise InvalidDurationError(
                f"Duration must be either {allowed} seconds. Received: {duration}"
            )

        if ratio not in self.limits.allowed_ratios:
            allowed = " or ".join(f"'{r}'" for r in self.limits.allowed_ratios)
            raise InvalidRatioError(f"Ratio must be either {allowed}. Received: {ratio}")

    async def generate_video(
        self,
        prompt_image: str,
        prompt_text: str,
        watermark: bool = False,
        duration: Optional[int] = None,
        ratio: Optional[str] = None,
    ) -> str:
        """Start a generation task from an image and a prompt.

        Args:
            prompt_image: URL of the source image.
            prompt_text: Text prompt.
            watermark: Whether the output carries a watermark.
            duration: Video length in seconds, defaults to the configured value.
            ratio: Aspect ratio, defaults to the configured value.

        Returns:
            The task id.

        Raises:
            VideoGenerationError: If the request is invalid or the response
                carries no task id.
            FunctionsError: If the function call fails.
        """
        duration = self.limits.default_duration if duration is None else duration
        ratio = self.limits.default_ratio if ratio is None else ratio

        self.is_loading.set(True)
        try:
            self.validate(prompt_text, duration, ratio)

            payload = {
                "promptImage": prompt_image,
                "promptText": prompt_text,
                "watermark": watermark,
                "duration": duration,
                "ratio": ratio,
            }
            result = await self._call("generate", self.names.generate_function, payload)

            if not isinstance(result, str) or not result:
                raise InvalidTaskResponseError("Invalid task ID received")

            logger.info("generation_task_created", task_id=result, duration=duration, ratio=ratio)
            return result
        except (VideoGenerationError, FunctionsError) as e:
            self.error.set(str(e))
            raise
        finally:
            self.is_loading.set(False)

    async def get_task_status(self, task_id: str) -> Dict[str, Any]:
        """Fetch the status of a generation task.

        Raises:
            InvalidTaskIdError: If the task id is empty or a dot segment.
            InvalidTaskResponseError: If the status is not a mapping.
            FunctionsError: If the function call fails.
        """
        try:
            result = await self._call("status", _task_function(self.names.status_function, task_id))
            if not isinstance(result, dict):
                raise InvalidTaskResponseError("Invalid task status received")
        except (VideoGenerationError, FunctionsError) as e:
            self.error.set(str(e))
            raise

        return result

    async def delete_task(self, task_id: str) -> None:
        """Delete a generation task.

        Raises:
            InvalidTaskIdError: If the task id is empty or a dot segment.
            FunctionsError: If the function call fails.
        """
        try:
            await self._call("delete", _task_function(self.names.delete_function, task_id))
        except (VideoGenerationError, FunctionsError) as e:
            self.error.set(str(e))
            raise

        logger.info("generation_task_deleted", task_id=task_id)

    async def _call(self, operation: str, name: str, data: Optional[Any] = None) -> Any:
        try:
            result = await asyncio.wait_for(self.functions.call(name, data), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            MetricsCollector.record_generation(operation, "failed")
            logger.warning("generation_call_timed_out", operation=operation, function=name)
            raise FunctionsError(f"Call to {name} timed out after {self.timeout}s") from e
        except FunctionsError:
            MetricsCollector.record_generation(operation, "failed")
            logger.warning("generation_call_failed", operation=operation, function=name)
            raise

        MetricsCollector.record_generation(operation, "success")
        return result
