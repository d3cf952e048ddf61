"""
Schedule Cache

In-memory store of per-channel programme schedules plus the now/next
lookup. Entries are replaced per channel on merge and never evicted.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from channel_guide.models import ChannelSchedule, NowNext


logger = logging.getLogger(__name__)


class ScheduleCache:
    """Schedules keyed by channel ID (XMLTV IDs and aliased request IDs)."""

    def __init__(self) -> None:
        self.schedules: dict[str, ChannelSchedule] = {}
        self.last_updated: datetime | None = None

    def __contains__(self, channel_id: str) -> bool:
        return channel_id in self.schedules

    def __len__(self) -> int:
        return len(self.schedules)

    def get_schedule(self, channel_id: str) -> ChannelSchedule | None:
        return self.schedules.get(channel_id)

    def get_now_next(self, channel_id: str, now: datetime) -> NowNext | None:
        """
        Find the current and next programme for a channel.

        Returns:
            None for an unknown channel; otherwise a NowNext whose fields
            may both be empty
        """
        schedule = self.schedules.get(channel_id)
        if schedule is None:
            return None

        result = NowNext(channel_id=channel_id)
        programmes = schedule.programmes
        for index, programme in enumerate(programmes):
            if programme.contains(now):
                result.current = programme
                result.next = programmes[index + 1] if index + 1 < len(programmes) else None
                break
            if programme.start > now:
                result.next = programme
                break

        return result

    def merge(self, schedules: Mapping[str, ChannelSchedule], now: datetime | None = None) -> int:
        """
        Replace each channel's schedule with the freshly parsed one.

        Returns:
            Number of channels written
        """
        for channel_id, schedule in schedules.items():
            schedule.sort()
            self.schedules[channel_id] = schedule

        self.touch(now)
        logger.debug("Merged %s schedules into cache (%s total)", len(schedules), len(self.schedules))
        return len(schedules)

    def alias(self, requested_id: str, source_channel_id: str) -> bool:
        """
        Make requested_id resolve to the schedule cached under source_channel_id.

        Returns:
            True if the source schedule exists and the alias was written
        """
        schedule = self.schedules.get(source_channel_id)
        if schedule is None:
            return False
        self.schedules[requested_id] = schedule
        return True

    def touch(self, now: datetime | None = None) -> None:
        self.last_updated = now or datetime.now(timezone.utc)
