"""
Guide Resolution Service

Resolves an arbitrary requested channel identifier to a cached schedule,
fetching the country guide on a cache miss.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import httpx

from channel_guide.config import CustomSettings
from channel_guide.errors import GuideServiceError
from channel_guide.services.directory_service import DirectoryIndex, fetch_directory
from channel_guide.services.guide_downloader_service import fetch_guide
from channel_guide.models import ChannelSchedule, NowNext, ParsedGuide
from channel_guide.services.playlist_lookup import PlaylistLookup
from channel_guide.services.schedule_cache import ScheduleCache
from channel_guide.utils.http_fetch import sanitize_url_for_logging
from channel_guide.utils.logging_helpers import (
    log_merge_summary,
    log_resolution_end,
    log_resolution_start,
)
from channel_guide.utils.rwlock import AsyncRWLock


logger = logging.getLogger(__name__)


class ResolutionOutcome(str, Enum):
    RESOLVED = "resolved"
    UNMATCHED = "unmatched"  # guide fetched, no schedule matched the request
    NO_DIRECTORY_MATCH = "no_directory_match"
    FAILED = "failed"


@dataclass(slots=True)
class GuideState:
    """Shared mutable state: the directory index and the schedule cache, each with its own lock."""
    directory: DirectoryIndex
    cache: ScheduleCache = field(default_factory=ScheduleCache)
    directory_lock: AsyncRWLock = field(default_factory=lambda: AsyncRWLock("directory"))
    cache_lock: AsyncRWLock = field(default_factory=lambda: AsyncRWLock("schedule cache"))

    @classmethod
    def from_settings(cls, settings: CustomSettings) -> "GuideState":
        return cls(
            directory=DirectoryIndex(
                ttl_seconds=settings.directory_ttl_sec,
                guide_base_url=settings.guide_base_url,
            )
        )


def alias_candidates(display_name: str, directory_names: list[str], requested_id: str) -> list[str]:
    """
    Names to probe in a guide's display-name index, in priority order:
    local display name, directory name and alt names, the requested ID,
    then the requested ID without its last dot-segment.
    """
    candidates = [display_name, *directory_names, requested_id]
    if "." in requested_id:
        candidates.append(requested_id.rsplit(".", 1)[0])
    return candidates


def find_alias_source(
    directory_id: str,
    parsed: ParsedGuide,
    candidates: list[str]
) -> str | None:
    """
    Pick the guide channel whose schedule should answer for the request.

    The directory ID itself wins when the guide has a schedule under it;
    otherwise the first candidate found in the display-name index.
    """
    if directory_id in parsed.schedules:
        logger.info("Match strategy: direct directory ID '%s' found in guide", directory_id)
        return directory_id

    for candidate in candidates:
        source = parsed.display_names.get(candidate.lower())
        if source is not None:
            logger.info("Match strategy: display-name '%s' -> guide channel '%s'", candidate, source)
            return source

    logger.warning(
        "No guide match. Tried candidates: %s. Available display names (sample): %s",
        candidates,
        list(parsed.display_names)[:20],
    )
    return None


class ScheduleResolver:
    """
    Serves schedule and now/next lookups, pulling guides through on a cache miss.

    Concurrent misses for channels in the same country each fetch the guide;
    both merges write the same schedules so the end state is unchanged.
    """

    def __init__(
        self,
        state: GuideState,
        client: httpx.AsyncClient,
        playlist: PlaylistLookup,
        settings: CustomSettings
    ) -> None:
        self.state = state
        self.client = client
        self.playlist = playlist
        self.settings = settings

    async def get_schedule(self, channel_id: str) -> ChannelSchedule | None:
        async with self.state.cache_lock.read():
            schedule = self.state.cache.get_schedule(channel_id)
        if schedule is not None:
            logger.debug("Guide cache hit for %s", channel_id)
            return schedule

        if not self.settings.epg_enabled:
            return None

        logger.info("Guide cache miss for %s, fetching on-demand", channel_id)
        await self.fetch_for_channel(channel_id)

        async with self.state.cache_lock.read():
            return self.state.cache.get_schedule(channel_id)

    async def get_now_next(self, channel_id: str, now: datetime | None = None) -> NowNext | None:
        now = now or datetime.now(timezone.utc)

        async with self.state.cache_lock.read():
            result = self.state.cache.get_now_next(channel_id, now)
        if result is not None or not self.settings.epg_enabled:
            return result

        await self.fetch_for_channel(channel_id)

        async with self.state.cache_lock.read():
            return self.state.cache.get_now_next(channel_id, now)

    async def ensure_directory_fresh(self) -> bool:
        """
        Refresh the directory if stale, with a re-check under the write lock
        so racing requests do not all hit the network.

        Returns:
            False if a needed refresh failed (the previous index is kept)
        """
        async with self.state.directory_lock.read():
            stale = self.state.directory.is_stale()
        if not stale:
            return True

        async with self.state.directory_lock.write():
            if not self.state.directory.is_stale():
                logger.debug("Channel directory refreshed by a concurrent request, skipping")
                return True
            try:
                await self._refresh_directory_locked()
            except GuideServiceError as e:
                logger.error("Channel directory refresh failed, keeping previous index: %s", e)
                return False
            except Exception as e:  # Catch-all to ensure API stability
                logger.error("Unexpected error refreshing channel directory: %s", e, exc_info=True)
                return False

        return True

    async def refresh_directory(self) -> int:
        """
        Refresh the directory unconditionally.

        Returns:
            Number of directory channels after the refresh

        Raises:
            TransportError, DirectoryFormatError: If the fetch fails
        """
        async with self.state.directory_lock.write():
            await self._refresh_directory_locked()
            return len(self.state.directory)

    async def _refresh_directory_locked(self) -> None:
        channels, guides = await fetch_directory(self.client, self.settings)
        self.state.directory.refresh(channels, guides)

    async def fetch_for_channel(self, requested_id: str) -> ResolutionOutcome:
        """
        Fetch the guide covering a requested channel and cache all its schedules.

        1. Ensures the channel directory is fresh
        2. Resolves the request to a directory ID (explicit ID, then name)
        3. Fetches and parses the country guide
        4. Merges every schedule and aliases the requested ID if needed

        Failures are logged and reported as an outcome; they never raise.
        """
        log_resolution_start(logger, requested_id)

        await self.ensure_directory_fresh()

        explicit_id, display_name = self.playlist.lookup(requested_id)

        async with self.state.directory_lock.read():
            directory = self.state.directory
            directory_id = directory.find_directory_id(explicit_id, display_name)
            if directory_id is not None:
                directory_names = directory.names_for(directory_id)
                guide_url = directory.guide_url(directory_id)
                country = directory.country_code(directory_id)

        if directory_id is None:
            logger.info("No directory match for channel %s (name=%s)", requested_id, display_name)
            log_resolution_end(logger, requested_id, ResolutionOutcome.NO_DIRECTORY_MATCH.value)
            return ResolutionOutcome.NO_DIRECTORY_MATCH

        logger.info(
            "Resolved %s -> directory_id=%s, playlist_name=%s, directory_names=%s",
            requested_id,
            directory_id,
            display_name,
            directory_names,
        )

        try:
            parsed = await fetch_guide(self.client, guide_url, country, self.settings)
        except GuideServiceError as e:
            logger.warning("Guide fetch failed for %s (%s): %s", requested_id, sanitize_url_for_logging(guide_url), e)
            log_resolution_end(logger, requested_id, ResolutionOutcome.FAILED.value)
            return ResolutionOutcome.FAILED
        except Exception as e:  # Catch-all to ensure API stability
            logger.error("Unexpected error fetching guide for %s: %s", requested_id, e, exc_info=True)
            log_resolution_end(logger, requested_id, ResolutionOutcome.FAILED.value)
            return ResolutionOutcome.FAILED

        logger.info(
            "Fetched %s programmes across %s guide channels (requested %s)",
            parsed.programme_count,
            len(parsed.schedules),
            requested_id,
        )

        async with self.state.cache_lock.write():
            cache = self.state.cache
            now = datetime.now(timezone.utc)
            cache.merge(parsed.schedules, now)

            if requested_id not in cache:
                candidates = alias_candidates(display_name, directory_names, requested_id)
                source_id = find_alias_source(directory_id, parsed, candidates)
                if source_id is not None and cache.alias(requested_id, source_id):
                    logger.info(
                        "Aliasing guide cache: %s -> %s (%s programmes)",
                        requested_id,
                        source_id,
                        len(cache.schedules[source_id].programmes),
                    )

            cache.touch(now)
            found = requested_id in cache
            cached_total = len(cache)

        log_merge_summary(logger, len(parsed.schedules), parsed.programme_count, cached_total)

        outcome = ResolutionOutcome.RESOLVED if found else ResolutionOutcome.UNMATCHED
        log_resolution_end(logger, requested_id, outcome.value)
        return outcome
