"""
Channel Directory Service

Lazily refreshed index of known channels, used to resolve an arbitrary
channel identifier to a directory ID and from there to a country guide URL.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterable

import httpx
from pydantic import TypeAdapter, ValidationError

from channel_guide.config import CustomSettings
from channel_guide.errors import DirectoryFormatError
from channel_guide.schemas import DirectoryChannelRecord, DirectoryGuideRecord
from channel_guide.models import DirectoryEntry, GuideSource
from channel_guide.utils.http_fetch import fetch_json


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 6 * 3600
DEFAULT_GUIDE_BASE_URL = "https://iptv-epg.org/files"
FALLBACK_COUNTRY = "us"

_channels_adapter = TypeAdapter(list[DirectoryChannelRecord])
_guides_adapter = TypeAdapter(list[DirectoryGuideRecord])


class DirectoryIndex:
    """
    In-memory index of directory channels keyed by ID and by lowercased name.

    The index is only ever replaced as a whole by refresh(); it starts empty
    and stale.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        guide_base_url: str = DEFAULT_GUIDE_BASE_URL,
        clock=time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.guide_base_url = guide_base_url.rstrip("/")
        self._clock = clock
        self.by_id: dict[str, DirectoryEntry] = {}
        self.by_name: dict[str, DirectoryEntry] = {}
        self.guides_by_channel: dict[str, GuideSource] = {}
        self.last_updated: float | None = None

    def __len__(self) -> int:
        return len(self.by_id)

    def is_stale(self, now: float | None = None) -> bool:
        """Whether the index was never populated or is older than the TTL."""
        if self.last_updated is None:
            return True
        current = self._clock() if now is None else now
        return current - self.last_updated > self.ttl_seconds

    def age_seconds(self) -> float | None:
        if self.last_updated is None:
            return None
        return self._clock() - self.last_updated

    def refresh(self, channels: Iterable[DirectoryEntry], guides: Iterable[GuideSource]) -> None:
        """
        Replace the whole index with freshly fetched data.

        Later channels sharing a (lowercased) name overwrite earlier ones.
        Only the first guide record per channel is kept.
        """
        by_id: dict[str, DirectoryEntry] = {}
        by_name: dict[str, DirectoryEntry] = {}
        guides_by_channel: dict[str, GuideSource] = {}

        for entry in channels:
            by_name[entry.name.lower()] = entry
            for alt_name in entry.alt_names:
                by_name[alt_name.lower()] = entry
            by_id[entry.id] = entry

        for guide in guides:
            if guide.channel:
                guides_by_channel.setdefault(guide.channel, guide)

        # Swap all mappings together
        self.by_id, self.by_name, self.guides_by_channel = by_id, by_name, guides_by_channel
        self.last_updated = self._clock()

        logger.info(
            "Channel directory updated: %s channels, %s names, %s guide mappings",
            len(by_id),
            len(by_name),
            len(guides_by_channel),
        )

    def find_directory_id(self, explicit_id: str | None, name: str) -> str | None:
        """
        Find the directory ID for a channel.

        Tries in order:
        1. Exact match of explicit_id against directory IDs
        2. Case-insensitive match of name against names and alt names
        """
        if explicit_id and explicit_id in self.by_id:
            return explicit_id

        entry = self.by_name.get(name.lower())
        if entry is not None:
            return entry.id

        return None

    def get(self, directory_id: str) -> DirectoryEntry | None:
        return self.by_id.get(directory_id)

    def names_for(self, directory_id: str) -> list[str]:
        """Primary name followed by alt names; empty if the ID is unknown."""
        entry = self.by_id.get(directory_id)
        if entry is None:
            return []
        return [entry.name, *entry.alt_names]

    def guide_source_for(self, directory_id: str) -> GuideSource | None:
        return self.guides_by_channel.get(directory_id)

    @staticmethod
    def country_code(directory_id: str) -> str:
        """Trailing dot-segment of a directory ID, lowercased (e.g. 'TF1.fr' -> 'fr')."""
        if "." not in directory_id:
            return FALLBACK_COUNTRY
        country = directory_id.rsplit(".", 1)[-1].strip().lower()
        return country or FALLBACK_COUNTRY

    def guide_url(self, directory_id: str) -> str:
        """URL of the country-level guide covering a directory ID."""
        return f"{self.guide_base_url}/epg-{self.country_code(directory_id)}.xml"


async def fetch_directory(
    client: httpx.AsyncClient,
    settings: CustomSettings
) -> tuple[list[DirectoryEntry], list[GuideSource]]:
    """
    Download the directory's channel and guide lists.

    Returns:
        Tuple of (channels, guides)

    Raises:
        TransportError: If either download fails
        DirectoryFormatError: If either payload does not validate
    """
    channels_url = f"{settings.directory_api_base}/channels.json"
    guides_url = f"{settings.directory_api_base}/guides.json"

    logger.info("Refreshing channel directory from %s", settings.directory_api_base)

    raw_channels = await fetch_json(client, channels_url, settings.directory_timeout_sec)
    raw_guides = await fetch_json(client, guides_url, settings.directory_timeout_sec)

    try:
        channel_records = _channels_adapter.validate_python(raw_channels)
        guide_records = _guides_adapter.validate_python(raw_guides)
    except ValidationError as e:
        raise DirectoryFormatError(f"Directory payload failed validation: {e.error_count()} errors") from e

    channels = [record.to_entry() for record in channel_records]
    guides = [record.to_source() for record in guide_records]
    logger.debug("Fetched %s directory channels and %s guide records", len(channels), len(guides))
    return channels, guides
