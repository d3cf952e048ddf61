"""
Guide Downloader Service

Handles downloading, decoding and parsing a country-level XMLTV guide.
"""
import logging

import httpx

from channel_guide.config import CustomSettings
from channel_guide.errors import GuideTooLargeError
from channel_guide.models import ParsedGuide
from channel_guide.services.xmltv_parser_service import parse_xmltv_async
from channel_guide.utils.http_fetch import decode_guide_body, fetch_bytes, sanitize_url_for_logging
from channel_guide.utils.timezone import country_utc_offset


logger = logging.getLogger(__name__)


async def fetch_guide(
    client: httpx.AsyncClient,
    url: str,
    country_code: str,
    settings: CustomSettings
) -> ParsedGuide:
    """
    Download and parse a single guide, accepting every channel in it

    Args:
        client: Shared HTTP client
        url: Guide URL
        country_code: Country whose standard UTC offset applies to
            timestamps that carry none
        settings: Timeouts and size cap

    Returns:
        ParsedGuide; empty when the body is oversized, empty or not UTF-8

    Raises:
        TransportError: If the download fails
        GuideTooLargeError: If the decompressed document exceeds the cap
        GuideParseError: If parsing times out
    """
    safe_url = sanitize_url_for_logging(url)
    logger.info(f"  [Guide {country_code}] Starting download: {safe_url}")

    try:
        body = await fetch_bytes(
            client,
            url,
            settings.guide_timeout_sec,
            max_size=settings.max_guide_size_bytes
        )
    except GuideTooLargeError:
        logger.warning(f"  [Guide {country_code}] {safe_url} exceeds {settings.max_guide_size_bytes} bytes, skipping")
        return ParsedGuide()

    logger.debug(f"  [Guide {country_code}] Body size: {len(body) / 1024 / 1024:.2f} MB")

    xml_text = decode_guide_body(body, settings.max_guide_size_bytes)
    if not xml_text:
        logger.warning(f"  [Guide {country_code}] Empty guide body from {safe_url}")
        return ParsedGuide()

    default_offset = country_utc_offset(country_code)
    logger.debug(f"  [Guide {country_code}] Parsing with default offset {default_offset}s")

    parsed = await parse_xmltv_async(
        xml_text,
        (),
        default_offset,
        max_size=settings.max_guide_size_bytes,
        parse_timeout_seconds=settings.guide_parse_timeout_sec
    )
    logger.info(
        f"  [Guide {country_code}] Parsing complete: {len(parsed.schedules)} channels, "
        f"{parsed.programme_count} programmes"
    )
    return parsed
