"""
Local playlist lookup

The playlist itself (M3U parsing, uploads) lives elsewhere; resolution only
needs to turn a requested identifier into an explicit alternate ID and a
display name.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol


logger = logging.getLogger(__name__)


class PlaylistLookup(Protocol):
    def lookup(self, requested_id: str) -> tuple[str | None, str]:
        """Return (explicit alternate ID, display name) for a requested channel."""
        ...


@dataclass(frozen=True, slots=True)
class PlaylistChannel:
    """The parts of a playlist channel that matter for guide resolution."""
    id: str
    name: str
    tvg_id: str | None = None


class InMemoryPlaylistLookup:
    """Playlist lookup over a replaceable in-memory channel list."""

    def __init__(self, channels: Iterable[PlaylistChannel] = ()):
        self._channels: list[PlaylistChannel] = list(channels)

    def replace(self, channels: Iterable[PlaylistChannel]) -> None:
        self._channels = list(channels)
        logger.info("Playlist lookup updated: %s channels", len(self._channels))

    def __len__(self) -> int:
        return len(self._channels)

    def lookup(self, requested_id: str) -> tuple[str | None, str]:
        """
        Match a channel by tvg-id, playlist ID or name.

        Unknown identifiers fall back to (requested_id, requested_id).
        """
        for channel in self._channels:
            if requested_id in (channel.tvg_id, channel.id, channel.name):
                return channel.tvg_id, channel.name
        return requested_id, requested_id
