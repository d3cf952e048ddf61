from collections.abc import Iterable
from datetime import datetime, timezone, timedelta
from typing import Optional
import asyncio
import logging

from lxml import etree # type: ignore

from channel_guide.errors import GuideParseError, GuideTooLargeError
from channel_guide.models import ChannelSchedule, ParsedGuide, ProgrammeListing
from channel_guide.utils.timezone import parse_utc_offset

logger = logging.getLogger(__name__)

# Maximum allowed XML input size (50 MB)
MAX_GUIDE_SIZE = 50 * 1024 * 1024

_FEED_CHUNK_SIZE = 64 * 1024
_PROGRAMME_TEXT_TAGS = ("title", "desc", "category")


class _ProgrammeState:
    """Fields collected while inside a <programme> element"""

    def __init__(self, element: etree._Element, default_offset_seconds: int):
        self.channel_id = element.get('channel') or ''
        start_str = element.get('start')
        stop_str = element.get('stop')
        self.start = parse_xmltv_datetime(start_str, default_offset_seconds) if start_str else None
        self.stop = parse_xmltv_datetime(stop_str, default_offset_seconds) if stop_str else None
        self.text: dict[str, str] = {}
        self.icon_url: Optional[str] = None

    def set_text(self, tag: str, value: str) -> None:
        # First non-empty occurrence wins (guides repeat <title> per language)
        if value and tag not in self.text:
            self.text[tag] = value

    def to_listing(self) -> Optional[ProgrammeListing]:
        title = self.text.get('title')
        if not title or not self.channel_id:
            return None
        if self.start is None or self.stop is None or self.start >= self.stop:
            return None

        return ProgrammeListing(
            id=f"{self.channel_id}-{int(self.start.timestamp())}",
            channel_id=self.channel_id,
            title=title,
            start=self.start,
            end=self.stop,
            description=self.text.get('desc'),
            category=self.text.get('category'),
            icon_url=self.icon_url,
        )


def parse_xmltv(
    xml: str | bytes,
    channel_ids: Iterable[str] = (),
    default_offset_seconds: int = 0,
    *,
    max_size: int = MAX_GUIDE_SIZE
) -> ParsedGuide:
    """
    Parse XMLTV content into per-channel schedules and a display-name index

    The document is consumed in a single forward pass with a pull parser;
    finished <channel> and <programme> elements are discarded so memory
    stays flat for large country guides. The parser runs in recovery mode:
    a broken entry (undefined entity, stray markup, truncated tail) costs
    only that entry, never the rest of the guide.

    Args:
        xml: XMLTV document (already decompressed). Text input is always
            read as UTF-8, whatever encoding the XML declaration names
        channel_ids: Channel ids to keep; empty keeps every channel
        default_offset_seconds: UTC offset applied to timestamps without one

    Keyword Args:
        max_size: Size cap in bytes, checked before any parsing

    Returns:
        ParsedGuide with schedules keyed by XMLTV channel id and
        lowercased display names mapped to their channel id

    Raises:
        GuideTooLargeError: If the input exceeds max_size
    """
    # Text was already decoded as UTF-8; the declared encoding must not apply twice
    encoding = 'utf-8' if isinstance(xml, str) else None
    data = xml.encode('utf-8') if isinstance(xml, str) else xml
    if len(data) > max_size:
        raise GuideTooLargeError(len(data), max_size)

    result = ParsedGuide()
    if not data.strip():
        logger.debug("Empty guide document, nothing to parse")
        return result

    accepted = set(channel_ids)
    parser = etree.XMLPullParser(
        events=('start', 'end'),
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        recover=True,
        encoding=encoding,
    )

    state = _ParseState(result, accepted, default_offset_seconds)
    try:
        for offset in range(0, len(data), _FEED_CHUNK_SIZE):
            parser.feed(data[offset:offset + _FEED_CHUNK_SIZE])
            state.consume(parser.read_events())
        parser.close()
        state.consume(parser.read_events())
    except etree.XMLSyntaxError as e:
        # Unrecoverable input; keep whatever was collected before it
        logger.warning(f"  XML parsing stopped early, keeping {result.programme_count} programmes: {e}")

    for schedule in result.schedules.values():
        schedule.sort()

    logger.debug(
        f"XMLTV parsing complete: {len(result.schedules)} channels, "
        f"{result.programme_count} programmes, {len(result.display_names)} display names"
    )

    return result


class _ParseState:
    """Context flags for the event stream of one parse"""

    def __init__(self, result: ParsedGuide, accepted: set[str], default_offset_seconds: int):
        self.result = result
        self.accepted = accepted
        self.default_offset_seconds = default_offset_seconds
        self.in_channel = False
        self.channel_elem_id = ''
        self.programme: Optional[_ProgrammeState] = None

    def consume(self, events) -> None:
        for event, element in events:
            tag = _local_name(element.tag)
            if event == 'start':
                self._on_start(tag, element)
            else:
                self._on_end(tag, element)

    def _on_start(self, tag: str, element: etree._Element) -> None:
        if tag == 'channel':
            self.in_channel = True
            self.channel_elem_id = element.get('id') or ''
        elif tag == 'programme':
            self.programme = _ProgrammeState(element, self.default_offset_seconds)

    def _on_end(self, tag: str, element: etree._Element) -> None:
        if tag == 'display-name' and self.in_channel:
            name = _element_text(element)
            if name and self.channel_elem_id:
                self.result.display_names.setdefault(name.lower(), self.channel_elem_id)
        elif tag == 'channel':
            self.in_channel = False
            self.channel_elem_id = ''
            _discard(element)
        elif self.programme is not None and tag in _PROGRAMME_TEXT_TAGS:
            self.programme.set_text(tag, _element_text(element))
        elif self.programme is not None and tag == 'icon':
            src = element.get('src')
            if src:
                self.programme.icon_url = src
        elif tag == 'programme' and self.programme is not None:
            self._close_programme()
            _discard(element)

    def _close_programme(self) -> None:
        programme = self.programme
        self.programme = None
        if programme is None:
            return
        if self.accepted and programme.channel_id not in self.accepted:
            return

        listing = programme.to_listing()
        if listing is None:
            return

        schedule = self.result.schedules.get(listing.channel_id)
        if schedule is None:
            schedule = ChannelSchedule(channel_id=listing.channel_id)
            self.result.schedules[listing.channel_id] = schedule
        schedule.programmes.append(listing)


def parse_xmltv_datetime(time_str: str, default_offset_seconds: int = 0) -> Optional[datetime]:
    """
    Convert an XMLTV timestamp to a UTC datetime

    Args:
        time_str: XMLTV time like '20080715003000 -0600' or '20080715003000'
        default_offset_seconds: Offset used when the timestamp has none
            (or a malformed one)

    Returns:
        Timezone-aware datetime in UTC, or None if the local part is malformed
    """
    time_str = time_str.strip()
    time_part = time_str[:14]  # YYYYMMDDHHMMSS
    tz_part = time_str[14:].strip()

    if len(time_part) != 14 or not time_part.isdigit():
        return None

    try:
        dt = datetime.strptime(time_part, '%Y%m%d%H%M%S')
    except ValueError:
        return None

    offset_seconds = parse_utc_offset(tz_part) if tz_part else None
    if offset_seconds is None:
        offset_seconds = default_offset_seconds

    try:
        dt_utc = dt - timedelta(seconds=offset_seconds)
    except OverflowError:
        return None

    return dt_utc.replace(tzinfo=timezone.utc)


async def parse_xmltv_async(
    xml: str | bytes,
    channel_ids: Iterable[str] = (),
    default_offset_seconds: int = 0,
    *,
    max_size: int = MAX_GUIDE_SIZE,
    parse_timeout_seconds: int | None = None
) -> ParsedGuide:
    """
    Parse XMLTV content in the default thread pool with timeout protection.

    Keyword Args:
        max_size: Size cap in bytes
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Raises:
        GuideTooLargeError: If the input exceeds max_size
        GuideParseError: If parsing times out
    """
    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    loop = asyncio.get_running_loop()
    logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)
    parse_task = loop.run_in_executor(
        None,
        lambda: parse_xmltv(xml, channel_ids, default_offset_seconds, max_size=max_size)
    )

    try:
        if effective_timeout:
            return await asyncio.wait_for(parse_task, timeout=effective_timeout)
        return await parse_task
    except asyncio.TimeoutError:
        logger.error("XML parsing timed out after %s", timeout_display)
        raise GuideParseError("XML parsing timed out - file may be too large or malformed")


def _local_name(tag) -> str:
    """Strip any namespace from an element tag"""
    if not isinstance(tag, str):
        return ''
    return tag.rsplit('}', 1)[-1]


def _element_text(element: etree._Element) -> str:
    """Safely extract stripped text from an XML element"""
    return ''.join(element.itertext()).strip()


def _discard(element: etree._Element) -> None:
    """Free a finished element and any already-processed siblings"""
    element.clear()
    parent = element.getparent()
    if parent is None:
        return
    while element.getprevious() is not None:
        del parent[0]
