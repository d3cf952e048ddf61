"""
Shared pytest fixtures for the channel guide service tests.
"""
import gzip
import json

import httpx
import pytest
import pytest_asyncio

from channel_guide.config import CustomSettings
from channel_guide.dependencies import reset_service_locator


DIRECTORY_BASE = "https://directory.test/api"
GUIDE_BASE = "https://guides.test/files"

DIRECTORY_CHANNELS = [
    {
        "id": "TF1.fr",
        "name": "TF1",
        "altNames": ["Télévision française 1"],
        "country": "FR",
        "categories": ["general"],
    },
    {
        "id": "France2.fr",
        "name": "France 2",
        "altNames": None,
        "country": "FR",
        "categories": None,
    },
    {
        "id": "BBCOne.uk",
        "name": "BBC One",
        "altNames": ["BBC 1"],
        "country": "UK",
        "categories": [],
    },
]

DIRECTORY_GUIDES = [
    {"channel": "TF1.fr", "site": "tv.example.fr", "lang": "fr"},
    {"channel": None, "site": "orphan.example", "lang": "en"},
]

FR_GUIDE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<tv>
  <channel id="TF1.fr">
    <display-name>TF1</display-name>
    <display-name>Télévision française 1</display-name>
  </channel>
  <channel id="France2">
    <display-name>France 2</display-name>
  </channel>
  <programme start="20260211200000" stop="20260211210000" channel="TF1.fr">
    <title>Le 20h</title>
  </programme>
  <programme start="20260211190000" stop="20260211200000" channel="TF1.fr">
    <title>Jeu</title>
  </programme>
  <programme start="20260211190000" stop="20260211200000" channel="France2">
    <title>Journal</title>
    <desc>Les informations</desc>
  </programme>
</tv>
"""


def make_settings(**overrides) -> CustomSettings:
    """Build settings isolated from the environment's .env file."""
    values = {
        "directory_api_base": DIRECTORY_BASE,
        "guide_base_url": GUIDE_BASE,
        "directory_refresh_enabled": False,
        "guide_parse_timeout_sec": 0,
    }
    values.update(overrides)
    return CustomSettings(_env_file=None, **values)


class GuideServer:
    """
    In-memory stand-in for the directory API and the guide host.

    Routes are plain path -> (status, body) entries; every request is
    recorded so tests can count network hits.
    """

    def __init__(self):
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.requests: list[str] = []
        self.set_directory(DIRECTORY_CHANNELS, DIRECTORY_GUIDES)
        self.set_guide("fr", FR_GUIDE_XML)

    def set_directory(self, channels, guides) -> None:
        self.routes["/api/channels.json"] = (200, json.dumps(channels).encode("utf-8"))
        self.routes["/api/guides.json"] = (200, json.dumps(guides).encode("utf-8"))

    def set_guide(self, country: str, xml: str, *, compress: bool = False) -> None:
        body = xml.encode("utf-8")
        if compress:
            body = gzip.compress(body)
        self.routes[f"/files/epg-{country}.xml"] = (200, body)

    def set_status(self, path: str, status: int) -> None:
        self.routes[path] = (status, b"")

    def count(self, path: str) -> int:
        return sum(1 for requested in self.requests if requested == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        status, body = self.routes.get(path, (404, b""))
        return httpx.Response(status, content=body)


@pytest.fixture
def guide_server() -> GuideServer:
    return GuideServer()


@pytest_asyncio.fixture
async def http_client(guide_server):
    client = httpx.AsyncClient(transport=httpx.MockTransport(guide_server.handler))
    yield client
    await client.aclose()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture(autouse=True)
def clean_service_locator():
    """Every test starts with an empty service locator."""
    reset_service_locator()
    yield
    reset_service_locator()
