"""
Date and Time utilities

This module handles UTC offset parsing, XMLTV timestamp offsets and the
country code -> default UTC offset table used when a guide omits offsets.
"""
from datetime import datetime, timedelta, timezone
import logging
import re

logger = logging.getLogger(__name__)

_OFFSET_PATTERN = re.compile(r"^([+-])(\d{2})(\d{2})$")

# Standard (winter) time only. Countries spanning several zones use the
# zone covering most of the population.
COUNTRY_UTC_OFFSETS: dict[str, int] = {
    # Western Europe / UTC+0
    "uk": 0, "gb": 0, "ie": 0, "pt": 0, "is": 0, "fo": 0,
    "gh": 0, "sn": 0, "ci": 0,
    # Central Europe / UTC+1
    "fr": 3600, "de": 3600, "es": 3600, "it": 3600, "nl": 3600, "be": 3600,
    "lu": 3600, "ch": 3600, "at": 3600, "pl": 3600, "cz": 3600, "sk": 3600,
    "hu": 3600, "si": 3600, "hr": 3600, "ba": 3600, "rs": 3600, "me": 3600,
    "mk": 3600, "al": 3600, "dk": 3600, "se": 3600, "no": 3600, "mt": 3600,
    "ad": 3600, "mc": 3600, "sm": 3600, "va": 3600, "li": 3600, "xk": 3600,
    "ma": 3600, "dz": 3600, "tn": 3600, "ng": 3600, "ao": 3600, "cm": 3600, "cd": 3600,
    # Eastern Europe / UTC+2
    "fi": 7200, "ee": 7200, "lv": 7200, "lt": 7200, "ua": 7200, "ro": 7200,
    "bg": 7200, "gr": 7200, "cy": 7200, "md": 7200, "il": 7200, "ps": 7200,
    "lb": 7200, "eg": 7200, "ly": 7200, "za": 7200, "zw": 7200, "zm": 7200,
    "mz": 7200,
    # UTC+3
    "ru": 10800, "by": 10800, "tr": 10800, "sa": 10800, "iq": 10800,
    "kw": 10800, "qa": 10800, "bh": 10800, "ye": 10800, "jo": 10800,
    "sy": 10800, "ke": 10800, "et": 10800, "tz": 10800, "ug": 10800,
    "so": 10800,
    # UTC+3:30 to UTC+6
    "ir": 12600, "ae": 14400, "om": 14400, "az": 14400, "ge": 14400,
    "am": 14400, "af": 16200, "pk": 18000, "uz": 18000, "tj": 18000,
    "mv": 18000, "in": 19800, "lk": 19800, "np": 20700, "bd": 21600,
    "kz": 18000, "kg": 21600, "bt": 21600,
    # Asia-Pacific
    "mm": 23400, "th": 25200, "vn": 25200, "kh": 25200, "la": 25200,
    "id": 25200, "cn": 28800, "hk": 28800, "mo": 28800, "tw": 28800,
    "sg": 28800, "my": 28800, "ph": 28800, "mn": 28800, "bn": 28800,
    "jp": 32400, "kr": 32400, "kp": 32400, "au": 36000, "pg": 36000,
    "nz": 43200, "fj": 43200,
    # Americas
    "us": -18000, "ca": -18000, "mx": -21600, "gt": -21600, "sv": -21600,
    "hn": -21600, "ni": -21600, "cr": -21600, "pa": -18000, "cu": -18000,
    "jm": -18000, "ht": -18000, "do": -14400, "pr": -14400, "tt": -14400,
    "bb": -14400, "co": -18000, "pe": -18000, "ec": -18000, "ve": -14400,
    "bo": -14400, "py": -14400, "cl": -14400, "ar": -10800, "uy": -10800,
    "br": -10800, "gy": -14400, "sr": -10800,
}


def country_utc_offset(country_code: str) -> int:
    """
    Default UTC offset in seconds for a country code.

    Args:
        country_code: ISO 3166 alpha-2 code, any case (e.g. 'FR', 'us')

    Returns:
        Offset in seconds east of UTC, 0 for unknown codes
    """
    return COUNTRY_UTC_OFFSETS.get(country_code.strip().lower(), 0)


def parse_utc_offset(value: str) -> int | None:
    """
    Parse a signed '+HHMM' / '-HHMM' offset into seconds.

    Returns:
        Offset in seconds, or None if the value is not a well-formed offset
    """
    match = _OFFSET_PATTERN.match(value.strip())
    if match is None:
        return None

    sign, hours, minutes = match.groups()
    if int(minutes) >= 60:
        return None

    seconds = int(hours) * 3600 + int(minutes) * 60
    return -seconds if sign == "-" else seconds


def parse_tz_param(value: str | None) -> timezone | None:
    """
    Parse the optional `tz` query parameter of the EPG endpoints.

    An empty value means UTC. Anything malformed returns None so callers
    fall back to UTC output.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return timezone.utc

    # An unencoded '+' in a query string arrives as a space
    if value[0] not in "+-":
        value = f"+{value}"

    seconds = parse_utc_offset(value)
    if seconds is None:
        logger.debug("Ignoring malformed tz parameter: %r", value)
        return None
    if abs(seconds) >= 24 * 3600:
        return None
    return timezone(timedelta(seconds=seconds))


def convert_to_offset(dt: datetime, tz: timezone | None) -> datetime:
    """Convert an aware UTC datetime to the requested fixed offset (no-op for None)"""
    if tz is None:
        return dt
    return dt.astimezone(tz)
