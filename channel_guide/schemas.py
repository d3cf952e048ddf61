from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from channel_guide.models import (
    ChannelSchedule,
    DirectoryEntry,
    GuideSource,
    NowNext,
    ProgrammeListing,
)
from channel_guide.utils.timezone import convert_to_offset


class DirectoryChannelRecord(BaseModel):
    """Channel record from the directory's channels.json"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Directory channel ID (e.g., 'TF1.fr')")
    name: str = Field(..., description="Primary channel name")
    alt_names: list[str] = Field(default_factory=list, alias="altNames", description="Alternative names")
    country: str = Field(default="", description="ISO country code")
    categories: list[str] = Field(default_factory=list, description="Channel categories")

    @field_validator("alt_names", "categories", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        """Treat null lists as empty"""
        return value if value is not None else []

    @field_validator("country", mode="before")
    @classmethod
    def none_to_blank(cls, value):
        """Treat a null country as blank"""
        return value if value is not None else ""

    def to_entry(self) -> DirectoryEntry:
        return DirectoryEntry(
            id=self.id,
            name=self.name,
            alt_names=tuple(self.alt_names),
            country=self.country,
            categories=tuple(self.categories),
        )


class DirectoryGuideRecord(BaseModel):
    """Guide record from the directory's guides.json"""
    model_config = ConfigDict(extra="ignore")

    channel: str | None = Field(None, description="Directory channel ID this guide covers")
    site: str = Field(default="", description="Site providing the guide")
    lang: str = Field(default="", description="Guide language")

    def to_source(self) -> GuideSource:
        return GuideSource(channel=self.channel, site=self.site, lang=self.lang)


class ProgrammeResponse(BaseModel):
    """Single programme data"""
    id: str
    channel_id: str
    title: str
    description: str | None = None
    start: datetime
    end: datetime
    category: str | None = None
    icon_url: str | None = None

    @classmethod
    def from_listing(cls, listing: ProgrammeListing, tz: timezone | None = None) -> "ProgrammeResponse":
        return cls(
            id=listing.id,
            channel_id=listing.channel_id,
            title=listing.title,
            description=listing.description,
            start=convert_to_offset(listing.start, tz),
            end=convert_to_offset(listing.end, tz),
            category=listing.category,
            icon_url=listing.icon_url,
        )


class ScheduleResponse(BaseModel):
    """Schedule for one channel"""
    channel_id: str = Field(..., description="XMLTV channel ID the schedule was parsed for")
    programs: list[ProgrammeResponse] = Field(..., description="Programmes sorted by start time")

    @classmethod
    def from_schedule(cls, schedule: ChannelSchedule, tz: timezone | None = None) -> "ScheduleResponse":
        return cls(
            channel_id=schedule.channel_id,
            programs=[ProgrammeResponse.from_listing(p, tz) for p in schedule.programmes],
        )


class NowNextResponse(BaseModel):
    """Currently airing and next programme"""
    channel_id: str
    now: ProgrammeResponse | None = None
    next: ProgrammeResponse | None = None

    @classmethod
    def from_now_next(cls, now_next: NowNext, tz: timezone | None = None) -> "NowNextResponse":
        return cls(
            channel_id=now_next.channel_id,
            now=ProgrammeResponse.from_listing(now_next.current, tz) if now_next.current else None,
            next=ProgrammeResponse.from_listing(now_next.next, tz) if now_next.next else None,
        )


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'REFRESH_FAILED', 'VALIDATION_ERROR')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")


class PlaylistChannelRequest(BaseModel):
    """Playlist channel as pushed by the playlist layer"""
    id: str = Field(..., min_length=1, description="Playlist channel ID")
    name: str = Field(..., description="Channel display name")
    tvg_id: str | None = Field(None, description="tvg-id attribute from the playlist, if any")


class PlaylistUpdateRequest(BaseModel):
    """Replace the channels known to the playlist lookup"""
    channels: list[PlaylistChannelRequest] = Field(..., description="Playlist channels")
