"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone


def log_resolution_start(logger: logging.Logger, channel_id: str) -> None:
    """
    Log the start of an on-demand guide resolution.

    Args:
        logger: Logger instance
        channel_id: Requested channel identifier
    """
    logger.info(f"Guide resolution for {channel_id} started at {datetime.now(timezone.utc).isoformat()}")


def log_resolution_end(logger: logging.Logger, channel_id: str, outcome: str) -> None:
    """
    Log the end of an on-demand guide resolution.

    Args:
        logger: Logger instance
        channel_id: Requested channel identifier
        outcome: Final resolution outcome
    """
    logger.info(f"Guide resolution for {channel_id} completed: {outcome}")


def log_merge_summary(
    logger: logging.Logger,
    channels_count: int,
    programmes_count: int,
    cached_total: int
) -> None:
    """
    Log merge operation summary.

    Args:
        logger: Logger instance
        channels_count: Number of merged channel schedules
        programmes_count: Number of merged programmes
        cached_total: Schedules held by the cache after the merge
    """
    logger.info(
        f"Merge summary - Channels: {channels_count}, Programmes: {programmes_count}, "
        f"Cached schedules: {cached_total}"
    )
