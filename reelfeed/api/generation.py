"""Video generation endpoints.

Generation runs remotely. These endpoints create, inspect and delete the
remote tasks through the generation functions.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, status

from reelfeed.api.schemas import GenerationRequest, GenerationResponse, TaskStatusResponse
from reelfeed.services.generation import VideoGenerationService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/generations", tags=["generation"])


# Dependency placeholder for the generation service
async def get_generation_service() -> VideoGenerationService:
    """Get video generation service instance."""
    raise NotImplementedError("Generation service dependency not configured")


@router.post(
    "",
    response_model=GenerationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid prompt, duration or ratio"},
        502: {"description": "Generation function failed"},
    },
)
async def create_generation(
    request: GenerationRequest,
    service: VideoGenerationService = Depends(get_generation_service),  # noqa: B008
) -> Any:
    """
    Create a generation task.

    Prompt text is limited to 512 characters, duration to 5 or 10 seconds
    and ratio to '1280:768' or '768:1280'. Omitted duration and ratio use
    the configured defaults.
    """
    logger.info(
        "generation_requested",
        duration=request.duration,
        ratio=request.ratio,
        watermark=request.watermark,
    )
    task_id = await service.generate_video(
        prompt_image=request.prompt_image,
        prompt_text=request.prompt_text,
        watermark=request.watermark,
        duration=request.duration,
        ratio=request.ratio,
    )
    return GenerationResponse(task_id=task_id)


@router.get(
    "/{task_id}",
    response_model=TaskStatusResponse,
    responses={502: {"description": "Generation function failed"}},
)
async def get_generation_status(
    task_id: str,
    service: VideoGenerationService = Depends(get_generation_service),  # noqa: B008
) -> Any:
    """Get the status of a generation task."""
    task = await service.get_task_status(task_id)
    task_status = task.get("status")
    return TaskStatusResponse(
        task_id=task_id,
        status=str(task_status) if task_status is not None else None,
        task=task,
    )


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={502: {"description": "Generation function failed"}},
)
async def delete_generation(
    task_id: str,
    service: VideoGenerationService = Depends(get_generation_service),  # noqa: B008
) -> None:
    """Delete a generation task."""
    await service.delete_task(task_id)
