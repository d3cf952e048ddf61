"""
Unit tests for the channel directory index.
"""
import pytest

from channel_guide.errors import DirectoryFormatError, TransportError
from channel_guide.models import DirectoryEntry, GuideSource
from channel_guide.services.directory_service import DirectoryIndex, fetch_directory


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def index(clock):
    directory = DirectoryIndex(ttl_seconds=600, guide_base_url="https://guides.test/files/", clock=clock)
    directory.refresh(
        [
            DirectoryEntry(id="TF1.fr", name="TF1", alt_names=("Télévision française 1",), country="FR"),
            DirectoryEntry(id="France2.fr", name="France 2", country="FR"),
            DirectoryEntry(id="TF1", name="Other", country="XX"),
        ],
        [
            GuideSource(channel="TF1.fr", site="first.example"),
            GuideSource(channel="TF1.fr", site="second.example"),
            GuideSource(channel=None, site="orphan.example"),
        ],
    )
    return directory


class TestFindDirectoryId:
    """Tests for directory ID resolution."""

    def test_explicit_id_resolves_directly(self, index):
        assert index.find_directory_id("TF1.fr", "unused") == "TF1.fr"

    def test_alt_name_resolves_case_insensitively(self, index):
        """Accents are kept, case is folded."""
        assert index.find_directory_id(None, "télévision française 1") == "TF1.fr"

    def test_exact_id_wins_over_name(self, index):
        """'TF1' is both a directory ID and another entry's name."""
        assert index.find_directory_id("TF1", "TF1") == "TF1"

    def test_unknown_explicit_id_falls_back_to_name(self, index):
        assert index.find_directory_id("nope", "france 2") == "France2.fr"

    def test_unknown_channel(self, index):
        assert index.find_directory_id("nope", "Nope TV") is None


class TestRefresh:
    """Tests for index replacement."""

    def test_starts_empty_and_stale(self):
        directory = DirectoryIndex()
        assert len(directory) == 0
        assert directory.is_stale()
        assert directory.age_seconds() is None

    def test_first_guide_per_channel_is_kept(self, index):
        assert index.guide_source_for("TF1.fr").site == "first.example"
        assert index.guide_source_for("France2.fr") is None

    def test_refresh_replaces_everything(self, index):
        index.refresh([DirectoryEntry(id="BBCOne.uk", name="BBC One")], [])
        assert len(index) == 1
        assert index.find_directory_id(None, "TF1") is None
        assert index.guide_source_for("TF1.fr") is None

    def test_later_duplicate_name_wins(self):
        directory = DirectoryIndex()
        directory.refresh(
            [DirectoryEntry(id="A.fr", name="Same"), DirectoryEntry(id="B.fr", name="SAME")],
            [],
        )
        assert directory.find_directory_id(None, "same") == "B.fr"


class TestStaleness:
    """Tests for the TTL check."""

    def test_fresh_within_ttl(self, index, clock):
        clock.now += 600
        assert not index.is_stale()

    def test_stale_after_ttl(self, index, clock):
        clock.now += 601
        assert index.is_stale()

    def test_age(self, index, clock):
        clock.now += 42
        assert index.age_seconds() == 42


class TestGuideUrl:
    """Tests for country guide URLs."""

    def test_url_from_country_suffix(self, index):
        assert index.guide_url("TF1.fr") == "https://guides.test/files/epg-fr.xml"

    def test_country_is_lowercased(self, index):
        assert index.guide_url("BBCOne.UK") == "https://guides.test/files/epg-uk.xml"

    @pytest.mark.parametrize("directory_id", ["NoCountry", "Trailing."])
    def test_missing_country_falls_back_to_us(self, directory_id):
        assert DirectoryIndex.country_code(directory_id) == "us"

    def test_names_for(self, index):
        assert index.names_for("TF1.fr") == ["TF1", "Télévision française 1"]
        assert index.names_for("Unknown.fr") == []


class TestFetchDirectory:
    """Tests for downloading the directory."""

    @pytest.mark.asyncio
    async def test_fetches_channels_and_guides(self, http_client, settings):
        channels, guides = await fetch_directory(http_client, settings)

        assert [c.id for c in channels] == ["TF1.fr", "France2.fr", "BBCOne.uk"]
        assert channels[0].alt_names == ("Télévision française 1",)
        assert channels[1].alt_names == ()
        assert guides[0].channel == "TF1.fr"
        assert guides[1].channel is None

    @pytest.mark.asyncio
    async def test_invalid_payload(self, guide_server, http_client, settings):
        guide_server.set_directory([{"name": "missing id"}], [])
        with pytest.raises(DirectoryFormatError):
            await fetch_directory(http_client, settings)

    @pytest.mark.asyncio
    async def test_transport_failure(self, guide_server, http_client, settings):
        guide_server.set_status("/api/guides.json", 500)
        with pytest.raises(TransportError):
            await fetch_directory(http_client, settings)
