"""
In-memory data models for directory entries, programmes and schedules.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """A known channel from the remote directory."""
    id: str
    name: str
    alt_names: tuple[str, ...] = ()
    country: str = ""
    categories: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GuideSource:
    """A guide record from the remote directory; only `channel` is consumed."""
    channel: str | None
    site: str = ""
    lang: str = ""


@dataclass(slots=True)
class ProgrammeListing:
    """A single programme decoded from an XMLTV guide."""
    id: str
    channel_id: str
    title: str
    start: datetime
    end: datetime
    description: str | None = None
    category: str | None = None
    icon_url: str | None = None

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(slots=True)
class ChannelSchedule:
    """Programmes for one channel, sorted ascending by start."""
    channel_id: str
    programmes: list[ProgrammeListing] = field(default_factory=list)

    def sort(self) -> None:
        self.programmes.sort(key=lambda programme: programme.start)


@dataclass(slots=True)
class NowNext:
    """Currently airing and following programme for a channel."""
    channel_id: str
    current: ProgrammeListing | None = None
    next: ProgrammeListing | None = None


@dataclass(slots=True)
class ParsedGuide:
    """Result of one guide parse: schedules plus lowercased display name -> channel id."""
    schedules: dict[str, ChannelSchedule] = field(default_factory=dict)
    display_names: dict[str, str] = field(default_factory=dict)

    @property
    def programme_count(self) -> int:
        return sum(len(schedule.programmes) for schedule in self.schedules.values())


__all__ = [
    "DirectoryEntry",
    "GuideSource",
    "ProgrammeListing",
    "ChannelSchedule",
    "NowNext",
    "ParsedGuide",
]
