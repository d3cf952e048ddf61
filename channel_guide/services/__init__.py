"""
Services package for the Channel Guide Service

This package contains all business logic and service layer components.
"""
from channel_guide.services.directory_service import DirectoryIndex, fetch_directory
from channel_guide.services.playlist_lookup import InMemoryPlaylistLookup, PlaylistChannel
from channel_guide.services.resolution_service import GuideState, ResolutionOutcome, ScheduleResolver
from channel_guide.services.schedule_cache import ScheduleCache
from channel_guide.services.scheduler_service import directory_scheduler
from channel_guide.services.xmltv_parser_service import parse_xmltv

__all__ = [
    'DirectoryIndex',
    'fetch_directory',
    'InMemoryPlaylistLookup',
    'PlaylistChannel',
    'GuideState',
    'ResolutionOutcome',
    'ScheduleResolver',
    'ScheduleCache',
    'directory_scheduler',
    'parse_xmltv',
]
