from __future__ import annotations

import csv
from io import StringIO
from typing import Iterable

from .models import Playlist, Track


def format_duration(duration_ms: int | None) -> str:
    if not duration_ms:
        return "0:00"
    total_seconds = duration_ms // 1000
    return f"{total_seconds // 60}:{total_seconds % 60:02d}"


def total_duration(tracks: Iterable[Track]) -> tuple[int, str]:
    total_ms = sum(t.duration_ms for t in tracks)
    hours, rest = divmod(total_ms, 60 * 60 * 1000)
    return total_ms, f"{hours}h {rest // (60 * 1000)}m"


def unique_artists(tracks: Iterable[Track]) -> list[str]:
    return sorted({t.primary_artist for t in tracks})


def tracks_by_artist(tracks: Iterable[Track]) -> dict[str, list[Track]]:
    grouped: dict[str, list[Track]] = {}
    for track in tracks:
        grouped.setdefault(track.primary_artist, []).append(track)
    return grouped


def sort_by_duration(tracks: Iterable[Track], *, descending: bool = False) -> list[Track]:
    return sorted(tracks, key=lambda t: t.duration_ms, reverse=descending)


def filter_by_duration(tracks: Iterable[Track], min_seconds: float, max_seconds: float) -> list[Track]:
    lo, hi = min_seconds * 1000, max_seconds * 1000
    return [t for t in tracks if lo <= t.duration_ms <= hi]


def search_tracks(tracks: Iterable[Track], query: str) -> list[Track]:
    q = query.casefold()
    return [
        t for t in tracks
        if q in t.name.casefold() or any(q in a.casefold() for a in (t.primary_artist, *t.all_artists))
    ]


def playlist_as_csv(playlist: Playlist) -> str:
    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["#", "Song Name", "Artist", "Duration"])
    for i, track in enumerate(playlist.tracks, start=1):
        writer.writerow([i, track.name, track.primary_artist, format_duration(track.duration_ms)])
    return buf.getvalue()
