from typing import Annotated
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
import logging

from channel_guide.dependencies import get_playlist_lookup, get_schedule_resolver
from channel_guide.errors import DirectoryFormatError, TransportError
from channel_guide.schemas import (
    ErrorDetail,
    NowNextResponse,
    PlaylistUpdateRequest,
    ScheduleResponse,
)
from channel_guide.services import (
    InMemoryPlaylistLookup,
    PlaylistChannel,
    ScheduleResolver,
    directory_scheduler
)
from channel_guide.utils.timezone import parse_tz_param


logger = logging.getLogger(__name__)

main_router = APIRouter()

TZ_QUERY_DESCRIPTION = "Fixed UTC offset for programme times, e.g. +0100 (invalid values fall back to UTC)"


def _not_found(channel_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": "No EPG data found for channel", "channel_id": channel_id}
    )


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = directory_scheduler.get_next_run_time()

    return {
        "service": "Channel Guide Service",
        "version": "0.1.0",
        "next_directory_refresh": next_run.isoformat() if next_run else None,
        "endpoints": {
            "epg": "/epg/{channel_id} - Full schedule for a channel",
            "now": "/epg/{channel_id}/now - Current and next programme",
            "refresh": "/directory/refresh - Force a channel directory refresh (POST)",
            "playlist": "/playlist/channels - Replace the playlist channels (PUT)",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(
    resolver: Annotated[ScheduleResolver, Depends(get_schedule_resolver)]
) -> dict:
    """Health check endpoint"""
    next_run = directory_scheduler.get_next_run_time()
    directory = resolver.state.directory
    age = directory.age_seconds()

    return {
        "status": "ok",
        "epg_enabled": resolver.settings.epg_enabled,
        "directory_channels": len(directory),
        "directory_age_seconds": round(age, 1) if age is not None else None,
        "directory_stale": directory.is_stale(),
        "cached_schedules": len(resolver.state.cache),
        "scheduler_running": directory_scheduler.is_running(),
        "next_directory_refresh": next_run.isoformat() if next_run else None
    }


@main_router.get("/epg/{channel_id}", response_model=ScheduleResponse, response_model_exclude_none=True)
async def get_channel_schedule(
    channel_id: str,
    resolver: Annotated[ScheduleResolver, Depends(get_schedule_resolver)],
    tz: Annotated[str | None, Query(description=TZ_QUERY_DESCRIPTION)] = None
):
    """
    Get the full schedule for a channel

    The guide covering the channel is fetched on a cache miss.

    Args:
        channel_id: Playlist channel ID, tvg-id, directory ID or name
        tz: Optional fixed UTC offset for the returned times

    Returns:
        Programmes sorted by start time, or 404 if no guide covers the channel
    """
    schedule = await resolver.get_schedule(channel_id)
    if schedule is None:
        return _not_found(channel_id)

    return ScheduleResponse.from_schedule(schedule, parse_tz_param(tz))


@main_router.get("/epg/{channel_id}/now", response_model=NowNextResponse, response_model_exclude_none=True)
async def get_channel_now_next(
    channel_id: str,
    resolver: Annotated[ScheduleResolver, Depends(get_schedule_resolver)],
    tz: Annotated[str | None, Query(description=TZ_QUERY_DESCRIPTION)] = None
):
    """Get the currently airing and next programme for a channel"""
    now_next = await resolver.get_now_next(channel_id)
    if now_next is None:
        return _not_found(channel_id)

    return NowNextResponse.from_now_next(now_next, parse_tz_param(tz))


@main_router.post("/directory/refresh")
async def trigger_directory_refresh(
    resolver: Annotated[ScheduleResolver, Depends(get_schedule_resolver)]
):
    """
    Manually refresh the channel directory

    Ignores the staleness TTL. The previous index is kept on failure.
    """
    logger.info("Manual directory refresh triggered via API")
    try:
        channel_count = await resolver.refresh_directory()
    except (TransportError, DirectoryFormatError) as e:
        logger.error(f"Manual directory refresh failed: {e}")
        detail = ErrorDetail(
            code="REFRESH_FAILED",
            message=str(e),
            context={"directory_api_base": resolver.settings.directory_api_base}
        )
        return JSONResponse(status_code=502, content={"detail": detail.model_dump()})

    return {"status": "ok", "directory_channels": channel_count}


@main_router.put("/playlist/channels")
async def replace_playlist_channels(
    request: PlaylistUpdateRequest,
    playlist: Annotated[InMemoryPlaylistLookup, Depends(get_playlist_lookup)]
) -> dict:
    """Replace the playlist channels used to resolve requested IDs"""
    playlist.replace(
        PlaylistChannel(id=c.id, name=c.name, tvg_id=c.tvg_id) for c in request.channels
    )
    return {"status": "ok", "channels": len(playlist)}
