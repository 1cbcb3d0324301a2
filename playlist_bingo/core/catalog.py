"""
Spotify playlist reader built on spotipy's client-credentials flow.

Only public playlists are reachable; no user login is involved.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator

import requests
import spotipy
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOauthError

from .config import Settings
from .errors import AuthError, NotFoundError, RateLimitError, UpstreamError, ValidationError
from .models import UNKNOWN_ARTIST, Playlist, Track


logger = logging.getLogger(__name__)

PAGE_SIZE = 100
REQUEST_TIMEOUT = 10

_PLAYLIST_URL_RE = re.compile(r"open\.spotify\.com/(?:[\w-]+/)?playlist/([A-Za-z0-9]+)")
_PLAYLIST_URI_RE = re.compile(r"^spotify:playlist:([A-Za-z0-9]+)$")
_PLAYLIST_ID_RE = re.compile(r"^[A-Za-z0-9]{22}$")

_PLAYLIST_FIELDS = "id,name,description,owner(display_name,id),tracks(total),external_urls"


def extract_playlist_id(reference: str) -> str | None:
    ref = (reference or "").strip()
    if not ref:
        return None
    for pattern in (_PLAYLIST_URI_RE, _PLAYLIST_URL_RE):
        match = pattern.search(ref)
        if match:
            return match.group(1)
    if _PLAYLIST_ID_RE.match(ref):
        return ref
    return None


def _track_from_item(item: dict[str, Any]) -> Track | None:
    track = (item or {}).get("track")
    # Removed tracks come back as null; local files have no id.
    if not track or not track.get("id"):
        return None

    artists = tuple(a.get("name") or "" for a in track.get("artists") or [] if a.get("name"))
    images = (track.get("album") or {}).get("images") or []
    return Track(
        id=track["id"],
        name=track.get("name") or "",
        primary_artist=artists[0] if artists else UNKNOWN_ARTIST,
        all_artists=artists,
        duration_ms=max(0, int(track.get("duration_ms") or 0)),
        artwork_url=images[0].get("url") if images else None,
        uri=track.get("uri") or f"spotify:track:{track['id']}",
        external_link=(track.get("external_urls") or {}).get("spotify") or "",
    )


def _translate(exc: spotipy.SpotifyException) -> UpstreamError:
    status = exc.http_status
    if status == 404:
        return NotFoundError("Playlist not found", status)
    if status in (401, 403):
        return AuthError("Authentication failed", status)
    if status == 429:
        retry_after = None
        headers = exc.headers or {}
        try:
            retry_after = int(headers.get("Retry-After") or headers.get("retry-after") or 0) or None
        except (TypeError, ValueError):
            pass
        return RateLimitError("Rate limit exceeded. Please try again later", status, retry_after=retry_after)
    return UpstreamError(f"Spotify API error: {status}", status)


class SpotifyCatalog:
    def __init__(self, client: Any = None, *, settings: Settings | None = None) -> None:
        self._client = client
        self._settings = settings or Settings()

    @property
    def client(self) -> Any:
        if self._client is None:
            client_id, client_secret = self._settings.require_spotify_credentials()
            auth = SpotifyClientCredentials(client_id=client_id, client_secret=client_secret)
            self._client = spotipy.Spotify(auth_manager=auth, requests_timeout=REQUEST_TIMEOUT)
        return self._client

    def _call(self, method: str, *args, **kwargs) -> dict[str, Any]:
        try:
            return getattr(self.client, method)(*args, **kwargs)
        except spotipy.SpotifyException as exc:
            logger.warning("Spotify %s failed with status %s: %s", method, exc.http_status, exc.msg)
            raise _translate(exc) from exc
        except SpotifyOauthError as exc:
            raise AuthError(f"Failed to get Spotify access token: {exc}") from exc
        except requests.RequestException as exc:
            raise UpstreamError(f"Failed to reach Spotify: {exc}") from exc

    def iter_tracks(self, playlist_id: str) -> Iterator[Track]:
        offset = 0
        while True:
            page = self._call("playlist_items", playlist_id, limit=PAGE_SIZE, offset=offset)
            items = page.get("items") or []
            for item in items:
                track = _track_from_item(item)
                if track is not None:
                    yield track
            if not page.get("next") or not items:
                break
            offset += PAGE_SIZE

    def fetch_playlist(self, reference: str) -> Playlist:
        if not (reference or "").strip():
            raise ValidationError("Playlist link cannot be empty")
        playlist_id = extract_playlist_id(reference)
        if not playlist_id:
            raise ValidationError("Invalid Spotify playlist link format")

        meta = self._call("playlist", playlist_id, fields=_PLAYLIST_FIELDS)
        tracks = tuple(self.iter_tracks(playlist_id))
        logger.info("Fetched %d tracks from playlist %s", len(tracks), playlist_id)

        owner = meta.get("owner") or {}
        return Playlist(
            id=meta.get("id") or playlist_id,
            name=meta.get("name") or "",
            description=meta.get("description") or None,
            owner_name=owner.get("display_name") or owner.get("id") or "",
            total_track_count=int((meta.get("tracks") or {}).get("total") or len(tracks)),
            canonical_link=(meta.get("external_urls") or {}).get("spotify")
            or f"https://open.spotify.com/playlist/{playlist_id}",
            tracks=tracks,
        )

    def fetch_tracks(self, reference: str) -> list[Track]:
        return list(self.fetch_playlist(reference).tracks)
