from io import BytesIO

from PIL import Image
import pytest

from playlist_bingo.core.models import Track


def make_track(i: int, artwork_url: str | None = None, name: str | None = None) -> Track:
    return Track(
        id=f"track{i:03d}",
        name=name or f"Song {i}",
        primary_artist=f"Artist {i}",
        all_artists=(f"Artist {i}", f"Guest {i}"),
        duration_ms=180_000 + i * 1000,
        artwork_url=artwork_url,
        uri=f"spotify:track:track{i:03d}",
        external_link=f"https://open.spotify.com/track/track{i:03d}",
    )


@pytest.fixture
def tracks():
    return [make_track(i) for i in range(30)]


def png_bytes(size=(64, 48), color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()
