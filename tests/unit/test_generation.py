"""Unit tests for the video generation client."""

import asyncio
from typing import Any, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from reelfeed.core.config import GenerationConfig
from reelfeed.providers.base import FunctionsClient
from reelfeed.providers.exceptions import FunctionsError
from reelfeed.providers.functions import CallableFunctionsClient
from reelfeed.services.generation import (
    InvalidDurationError,
    InvalidPromptTextError,
    InvalidRatioError,
    InvalidTaskIdError,
    InvalidTaskResponseError,
    VideoGenerationService,
    utf16_length,
)
from reelfeed.testing import InMemoryFunctionsClient

IMAGE_URL = "https://example.com/cat.png"


class SlowFunctionsClient(FunctionsClient):
    """Functions client whose calls never complete."""

    async def call(self, name: str, data: Optional[Any] = None) -> Any:
        await asyncio.Event().wait()


@pytest.fixture
def functions() -> InMemoryFunctionsClient:
    return InMemoryFunctionsClient()


@pytest.fixture
def service(functions: InMemoryFunctionsClient) -> VideoGenerationService:
    return VideoGenerationService(functions)


class TestValidation:
    """Tests for request validation."""

    def test_utf16_length_counts_surrogate_pairs(self) -> None:
        assert utf16_length("abc") == 3
        assert utf16_length("\U0001f600") == 2

    def test_prompt_at_limit_is_accepted(self, service: VideoGenerationService) -> None:
        service.validate("x" * 512, 5, "768:1280")

    def test_prompt_too_long(self, service: VideoGenerationService) -> None:
        with pytest.raises(InvalidPromptTextError, match="513"):
            service.validate("x" * 513, 5, "768:1280")

    def test_prompt_length_counts_utf16_units(self, service: VideoGenerationService) -> None:
        # 257 emoji are 514 UTF-16 code units
        with pytest.raises(InvalidPromptTextError):
            service.validate("\U0001f600" * 257, 5, "768:1280")

    @pytest.mark.parametrize("duration", [0, 3, 7, 15])
    def test_invalid_duration(self, service: VideoGenerationService, duration: int) -> None:
        with pytest.raises(InvalidDurationError, match=str(duration)):
            service.validate("prompt", duration, "768:1280")

    @pytest.mark.parametrize("ratio", ["16:9", "1280x768", ""])
    def test_invalid_ratio(self, service: VideoGenerationService, ratio: str) -> None:
        with pytest.raises(InvalidRatioError):
            service.validate("prompt", 5, ratio)

    def test_custom_limits(self, functions: InMemoryFunctionsClient) -> None:
        service = VideoGenerationService(
            functions, generation_config=GenerationConfig(max_prompt_length=10)
        )

        with pytest.raises(InvalidPromptTextError):
            service.validate("x" * 11, 5, "768:1280")


class TestGenerateVideo:
    """Tests for creating generation tasks."""

    @pytest.mark.asyncio
    async def test_generate_returns_task_id(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        task_id = await service.generate_video(IMAGE_URL, "A cat on a beach", duration=10)

        assert task_id in functions.tasks
        call = functions.calls[0]
        assert call["name"] == "imageToVideoFunc"
        assert call["data"] == {
            "promptImage": IMAGE_URL,
            "promptText": "A cat on a beach",
            "watermark": False,
            "duration": 10,
            "ratio": "768:1280",
        }

    @pytest.mark.asyncio
    async def test_generate_uses_defaults(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        await service.generate_video(IMAGE_URL, "prompt", watermark=True)

        data = functions.calls[0]["data"]
        assert data["duration"] == 5
        assert data["ratio"] == "768:1280"
        assert data["watermark"] is True

    @pytest.mark.asyncio
    async def test_invalid_request_is_not_sent(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        with pytest.raises(InvalidRatioError):
            await service.generate_video(IMAGE_URL, "prompt", ratio="1:1")

        assert functions.calls == []
        assert service.error.value is not None
        assert service.is_loading.value is False

    @pytest.mark.asyncio
    async def test_empty_ratio_is_rejected(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        with pytest.raises(InvalidRatioError):
            await service.generate_video(IMAGE_URL, "prompt", ratio="")

        assert functions.calls == []

    @pytest.mark.asyncio
    async def test_loading_flag_during_call(self, service: VideoGenerationService) -> None:
        flags = []
        service.is_loading.subscribe(flags.append)

        await service.generate_video(IMAGE_URL, "prompt")

        assert flags == [True, False]

    @pytest.mark.asyncio
    async def test_non_string_task_id(self) -> None:
        functions = AsyncMock(spec=FunctionsClient)
        functions.call.return_value = {"id": "abc"}
        service = VideoGenerationService(functions)

        with pytest.raises(InvalidTaskResponseError):
            await service.generate_video(IMAGE_URL, "prompt")

    @pytest.mark.asyncio
    async def test_empty_task_id(self) -> None:
        functions = AsyncMock(spec=FunctionsClient)
        functions.call.return_value = ""
        service = VideoGenerationService(functions)

        with pytest.raises(InvalidTaskResponseError):
            await service.generate_video(IMAGE_URL, "prompt")

    @pytest.mark.asyncio
    async def test_function_failure_propagates(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        functions.fail = True

        with pytest.raises(FunctionsError):
            await service.generate_video(IMAGE_URL, "prompt")

        assert "failed" in service.error.value

    @pytest.mark.asyncio
    async def test_call_timeout(self) -> None:
        service = VideoGenerationService(SlowFunctionsClient(), timeout=0.05)

        with pytest.raises(FunctionsError, match="timed out"):
            await service.generate_video(IMAGE_URL, "prompt")


class TestTasks:
    """Tests for task status and deletion."""

    @pytest.mark.asyncio
    async def test_get_task_status(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        task_id = await service.generate_video(IMAGE_URL, "prompt")

        status = await service.get_task_status(task_id)

        assert status == {"id": task_id, "status": "PENDING"}
        assert functions.calls[-1]["name"] == f"getTaskFunc/{task_id}"

    @pytest.mark.asyncio
    async def test_get_task_status_requires_mapping(self) -> None:
        functions = AsyncMock(spec=FunctionsClient)
        functions.call.return_value = "PENDING"
        service = VideoGenerationService(functions)

        with pytest.raises(InvalidTaskResponseError):
            await service.get_task_status("abc")

    @pytest.mark.asyncio
    async def test_unknown_task(self, service: VideoGenerationService) -> None:
        with pytest.raises(FunctionsError):
            await service.get_task_status("missing")

    @pytest.mark.asyncio
    async def test_delete_task(
        self, service: VideoGenerationService, functions: InMemoryFunctionsClient
    ) -> None:
        task_id = await service.generate_video(IMAGE_URL, "prompt")

        await service.delete_task(task_id)

        assert task_id not in functions.tasks
        assert functions.calls[-1]["name"] == f"deleteTaskFunc/{task_id}"

    @pytest.mark.asyncio
    async def test_task_id_is_escaped_in_function_name(self) -> None:
        functions = AsyncMock(spec=FunctionsClient)
        functions.call.return_value = {"status": "PENDING"}
        service = VideoGenerationService(functions)

        await service.get_task_status("abc?x=1")
        await service.delete_task("../imageToVideoFunc")

        names = [call.args[0] for call in functions.call.await_args_list]
        assert names == ["getTaskFunc/abc%3Fx%3D1", "deleteTaskFunc/..%2FimageToVideoFunc"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("task_id", ["", ".", ".."])
    async def test_dot_segment_task_id_is_rejected(self, task_id: str) -> None:
        functions = AsyncMock(spec=FunctionsClient)
        service = VideoGenerationService(functions)

        with pytest.raises(InvalidTaskIdError):
            await service.get_task_status(task_id)
        with pytest.raises(InvalidTaskIdError):
            await service.delete_task(task_id)

        functions.call.assert_not_awaited()
        assert service.error.value is not None

    @pytest.mark.asyncio
    async def test_task_id_stays_in_the_request_path(self) -> None:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"result": {"status": "PENDING"}})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = CallableFunctionsClient("https://fn.example", id_token="t", http_client=http)
        service = VideoGenerationService(client)

        await service.get_task_status("abc?admin=1")

        assert requests[0].url.query == b""
        assert requests[0].url.raw_path == b"/getTaskFunc/abc%3Fadmin%3D1"
