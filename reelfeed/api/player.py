"""Player endpoints.

Commands act on the item bound by the feed selection. The renderer that
actually decodes the video follows GET /player and reports the end of the
bound item through POST /player/ended, which triggers the loop.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from reelfeed.api.schemas import PlayerStateResponse, SeekRequest
from reelfeed.providers.media import HeadlessMediaPlayer
from reelfeed.services.playback import LoopingPlaybackController, NoVideoBoundError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/player", tags=["player"])

_NO_VIDEO_RESPONSE = {409: {"description": "No video is bound to the player"}}


# Dependency placeholder for the playback controller
async def get_controller() -> LoopingPlaybackController:
    """Get playback controller instance."""
    raise NotImplementedError("Playback controller dependency not configured")


def _state_response(controller: LoopingPlaybackController) -> PlayerStateResponse:
    player = controller.player
    position = player.position if isinstance(player, HeadlessMediaPlayer) else 0.0
    return PlayerStateResponse(
        state=controller.state.value.value,
        is_playing=controller.is_playing.value,
        is_muted=controller.is_muted.value,
        is_loading=controller.is_loading.value,
        current_url=controller.current_url.value,
        position=position,
        loop_count=controller.loop_count,
    )


@router.get("", response_model=PlayerStateResponse)
async def get_player_state(
    controller: LoopingPlaybackController = Depends(get_controller),  # noqa: B008
) -> Any:
    """Get the playback state and command flags."""
    return _state_response(controller)


@router.post("/toggle-play", response_model=PlayerStateResponse, responses=_NO_VIDEO_RESPONSE)
async def toggle_play(
    controller: LoopingPlaybackController = Depends(get_controller),  # noqa: B008
) -> Any:
    """Pause when playing, play otherwise."""
    controller.toggle_play_pause()
    return _state_response(controller)


@router.post("/toggle-mute", response_model=PlayerStateResponse)
async def toggle_mute(
    controller: LoopingPlaybackController = Depends(get_controller),  # noqa: B008
) -> Any:
    """Flip the mute flag."""
    controller.toggle_mute()
    return _state_response(controller)


@router.post("/replay", response_model=PlayerStateResponse, responses=_NO_VIDEO_RESPONSE)
async def replay(
    controller: LoopingPlaybackController = Depends(get_controller),  # noqa: B008
) -> Any:
    """Restart the bound video from the beginning."""
    controller.replay()
    return _state_response(controller)


@router.post("/seek", response_model=PlayerStateResponse, responses=_NO_VIDEO_RESPONSE)
async def seek(
    request: SeekRequest,
    controller: LoopingPlaybackController = Depends(get_controller),  # noqa: B008
) -> Any:
    """Seek the bound video."""
    controller.seek(request.position)
    return _state_response(controller)


@router.post("/ended", response_model=PlayerStateResponse, responses=_NO_VIDEO_RESPONSE)
async def report_end_of_media(
    controller: LoopingPlaybackController = Depends(get_controller),  # noqa: B008
) -> Any:
    """Report that the renderer reached the end of the bound video."""
    player = controller.player
    if controller.bound_item is None or not isinstance(player, HeadlessMediaPlayer):
        raise NoVideoBoundError("No video is bound to the player")

    notified = player.finish_current_item()
    logger.debug("end_of_media_reported", observers_notified=notified)
    return _state_response(controller)
