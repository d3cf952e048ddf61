"""
HTTP fetch utilities

This module handles time-bounded downloads of directory JSON and guide
files, plus gzip detection and UTF-8 decoding of guide bodies.
"""
import gzip
import io
import json
import logging
import zlib
from typing import Any

import httpx

from channel_guide.errors import DirectoryFormatError, GuideTooLargeError, TransportError


logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


async def fetch_bytes(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_size: int | None = None
) -> bytes:
    """
    Download a resource into memory

    The body is streamed so an oversized response is abandoned as soon as
    it crosses max_size instead of being buffered in full.

    Args:
        client: Shared HTTP client
        url: URL to download from
        timeout: HTTP timeout in seconds
        max_size: Optional cap on the body size in bytes

    Returns:
        Response body

    Raises:
        TransportError: On network errors, timeouts and non-2xx responses
        GuideTooLargeError: If the body exceeds max_size
    """
    logger.debug(f"Downloading {sanitize_url_for_logging(url)} (timeout={timeout:.0f}s)")

    try:
        async with client.stream("GET", url, timeout=timeout) as response:
            response.raise_for_status()

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if max_size is not None and len(buffer) > max_size:
                    raise GuideTooLargeError(len(buffer), max_size)

    except httpx.HTTPStatusError as e:
        raise TransportError(url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise TransportError(url, f"{type(e).__name__}: {e}") from e

    logger.debug(f"Downloaded {len(buffer) / (1024 * 1024):.2f} MB from {sanitize_url_for_logging(url)}")
    return bytes(buffer)


async def fetch_json(client: httpx.AsyncClient, url: str, timeout: float) -> Any:
    """
    Download and decode a JSON document

    Raises:
        TransportError: On network errors, timeouts and non-2xx responses
        DirectoryFormatError: If the body is not valid JSON
    """
    body = await fetch_bytes(client, url, timeout)
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise DirectoryFormatError(f"Invalid JSON from {url}: {e}") from e


def decompress_gzip(data: bytes, max_size: int | None = None) -> bytes | None:
    """
    Decompress gzip data

    Args:
        data: Raw body
        max_size: Stop after max_size + 1 bytes so the parser's size guard
            still sees an oversized document

    Returns:
        Decompressed bytes, or None if the data is not gzip or is corrupt
    """
    if len(data) < 2 or data[:2] != GZIP_MAGIC:
        return None

    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data)) as stream:
            if max_size is None:
                return stream.read()
            return stream.read(max_size + 1)
    except (OSError, EOFError, zlib.error) as e:
        logger.warning(f"Failed to decompress gzip body: {e}")
        return None


def decode_guide_body(data: bytes, max_size: int | None = None) -> str:
    """
    Turn a downloaded guide body into XML text

    Gzip framing is detected by its magic bytes; anything else is treated
    as plain text. Bodies that are not valid UTF-8 decode to an empty string.

    Raises:
        GuideTooLargeError: If the decompressed document exceeds max_size
    """
    payload = decompress_gzip(data, max_size)
    if payload is None:
        payload = data
    elif max_size is not None and len(payload) > max_size:
        raise GuideTooLargeError(len(payload), max_size)

    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning(f"Guide body is not valid UTF-8 ({e.reason}), treating as empty")
        return ""


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url
