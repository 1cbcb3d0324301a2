import pytest
import requests
import spotipy

from playlist_bingo.core.catalog import SpotifyCatalog, extract_playlist_id
from playlist_bingo.core.config import Settings
from playlist_bingo.core.errors import AuthError, NotFoundError, RateLimitError, UpstreamError, ValidationError


PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"


def api_track(i, images=True):
    return {
        "id": f"t{i}",
        "name": f"Song {i}",
        "artists": [{"name": f"Artist {i}"}, {"name": "Feature"}],
        "album": {"images": [{"url": f"https://i.scdn.co/image/{i}"}] if images else []},
        "duration_ms": 200000 + i,
        "uri": f"spotify:track:t{i}",
        "external_urls": {"spotify": f"https://open.spotify.com/track/t{i}"},
    }


class FakeSpotify:
    def __init__(self, total=120, page_error=None, meta_error=None):
        self.total = total
        self.page_error = page_error
        self.meta_error = meta_error
        self.offsets = []

    def playlist(self, playlist_id, fields=None):
        if self.meta_error:
            raise self.meta_error
        return {
            "id": playlist_id,
            "name": "Party",
            "description": "",
            "owner": {"display_name": "dj"},
            "tracks": {"total": self.total},
            "external_urls": {"spotify": f"https://open.spotify.com/playlist/{playlist_id}"},
        }

    def playlist_items(self, playlist_id, limit=100, offset=0):
        if self.page_error:
            raise self.page_error
        self.offsets.append(offset)
        end = min(offset + limit, self.total)
        items = [{"track": api_track(i, images=i % 2 == 0)} for i in range(offset, end)]
        if offset == 0:
            items.append({"track": None})
            items.append({"track": {"id": None, "name": "local file", "artists": []}})
        return {"items": items, "next": "more" if end < self.total else None}


@pytest.mark.parametrize(
    "reference",
    [
        f"https://open.spotify.com/playlist/{PLAYLIST_ID}",
        f"https://open.spotify.com/playlist/{PLAYLIST_ID}?si=abc123",
        f"https://open.spotify.com/intl-de/playlist/{PLAYLIST_ID}",
        f"spotify:playlist:{PLAYLIST_ID}",
        PLAYLIST_ID,
    ],
)
def test_extract_playlist_id(reference):
    assert extract_playlist_id(reference) == PLAYLIST_ID


@pytest.mark.parametrize("reference", ["", "   ", "https://example.com/playlist", "spotify:album:abc"])
def test_extract_playlist_id_rejects_other_links(reference):
    assert extract_playlist_id(reference) is None


def test_fetch_paginates_and_skips_unplayable_items():
    client = FakeSpotify(total=230)
    playlist = SpotifyCatalog(client).fetch_playlist(f"spotify:playlist:{PLAYLIST_ID}")

    assert client.offsets == [0, 100, 200]
    assert len(playlist.tracks) == 230
    assert playlist.total_track_count == 230
    assert playlist.owner_name == "dj"
    assert playlist.description is None

    first, second = playlist.tracks[0], playlist.tracks[1]
    assert first.primary_artist == "Artist 0"
    assert first.all_artists == ("Artist 0", "Feature")
    assert first.artwork_url == "https://i.scdn.co/image/0"
    assert second.artwork_url is None
    assert [t.id for t in playlist.tracks[:3]] == ["t0", "t1", "t2"]


@pytest.mark.parametrize("reference", ["", "https://example.com/nope"])
def test_fetch_validates_reference(reference):
    with pytest.raises(ValidationError):
        SpotifyCatalog(FakeSpotify()).fetch_playlist(reference)


@pytest.mark.parametrize(
    "status,error",
    [(404, NotFoundError), (401, AuthError), (429, RateLimitError), (500, UpstreamError)],
)
def test_upstream_statuses_are_mapped(status, error):
    exc = spotipy.SpotifyException(status, -1, "nope", headers={"Retry-After": "7"})
    with pytest.raises(error) as info:
        SpotifyCatalog(FakeSpotify(meta_error=exc)).fetch_playlist(PLAYLIST_ID)
    assert info.value.status == status
    if status == 429:
        assert info.value.retry_after == 7


def test_errors_during_pagination_keep_status():
    exc = spotipy.SpotifyException(503, -1, "down")
    with pytest.raises(UpstreamError) as info:
        SpotifyCatalog(FakeSpotify(page_error=exc)).fetch_playlist(PLAYLIST_ID)
    assert info.value.status == 503


def test_transport_errors_become_upstream_errors():
    client = FakeSpotify(meta_error=requests.ConnectionError("offline"))
    with pytest.raises(UpstreamError) as info:
        SpotifyCatalog(client).fetch_playlist(PLAYLIST_ID)
    assert info.value.status is None


def test_missing_credentials_is_an_auth_error():
    catalog = SpotifyCatalog(settings=Settings())
    with pytest.raises(AuthError):
        catalog.fetch_playlist(PLAYLIST_ID)
