from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .errors import ValidationError


UNKNOWN_ARTIST = "Unknown Artist"


class _FreeSpace:
    _instance: "_FreeSpace | None" = None

    def __new__(cls) -> "_FreeSpace":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FREE_SPACE"


FREE_SPACE = _FreeSpace()


@dataclass(frozen=True)
class Track:
    id: str
    name: str
    primary_artist: str
    all_artists: tuple[str, ...]
    duration_ms: int
    artwork_url: str | None
    uri: str
    external_link: str

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValidationError(f"Track {self.id!r} has a negative duration")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "primaryArtist": self.primary_artist,
            "allArtists": list(self.all_artists),
            "durationMs": self.duration_ms,
            "artworkUrl": self.artwork_url,
            "uri": self.uri,
            "externalLink": self.external_link,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        if not isinstance(data, dict):
            raise ValidationError("Track must be an object")
        try:
            artists = tuple(data.get("allArtists") or ())
            return cls(
                id=str(data["id"]),
                name=str(data["name"]),
                primary_artist=str(data.get("primaryArtist") or (artists[0] if artists else UNKNOWN_ARTIST)),
                all_artists=artists,
                duration_ms=int(data.get("durationMs") or 0),
                artwork_url=data.get("artworkUrl") or None,
                uri=str(data.get("uri") or ""),
                external_link=str(data.get("externalLink") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed track: {exc}") from exc


Occupant = Union[Track, _FreeSpace]


@dataclass
class Cell:
    row: int
    col: int
    occupant: Occupant
    marked: bool = False

    @property
    def is_free(self) -> bool:
        return self.occupant is FREE_SPACE

    @property
    def track(self) -> Track | None:
        return None if self.is_free else self.occupant  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"row": self.row, "col": self.col, "marked": self.marked}
        if self.is_free:
            data["free"] = True
        else:
            data["track"] = self.occupant.to_dict()  # type: ignore[union-attr]
        return data


@dataclass
class Board:
    id: str
    size: int
    cells: list[list[Cell]] = field(default_factory=list)

    def cell(self, row: int, col: int) -> Cell:
        return self.cells[row][col]

    def iter_cells(self):
        for row in self.cells:
            yield from row

    @property
    def tracks(self) -> list[Track]:
        return [c.occupant for c in self.iter_cells() if not c.is_free]  # type: ignore[misc]

    @property
    def free_cells(self) -> list[Cell]:
        return [c for c in self.iter_cells() if c.is_free]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "size": self.size,
            "cells": [[c.to_dict() for c in row] for row in self.cells],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Board":
        if not isinstance(data, dict):
            raise ValidationError("Board must be an object")
        try:
            size = int(data["size"])
            raw_rows = data["cells"]
            board_id = str(data["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed board: {exc}") from exc

        if not isinstance(raw_rows, list) or not all(isinstance(r, list) for r in raw_rows):
            raise ValidationError("Board cells must be a list of rows")
        if size <= 0 or len(raw_rows) != size or any(len(r) != size for r in raw_rows):
            raise ValidationError(f"Board cells must form a {size}x{size} grid")

        rows: list[list[Cell]] = []
        for r, raw_row in enumerate(raw_rows):
            row: list[Cell] = []
            for c, raw in enumerate(raw_row):
                if not isinstance(raw, dict):
                    raise ValidationError(f"Cell ({r}, {c}) must be an object")
                occupant: Occupant = FREE_SPACE if raw.get("free") else Track.from_dict(raw.get("track") or {})
                row.append(Cell(row=r, col=c, occupant=occupant, marked=bool(raw.get("marked"))))
            rows.append(row)
        return cls(id=board_id, size=size, cells=rows)


@dataclass(frozen=True)
class Playlist:
    id: str
    name: str
    description: str | None
    owner_name: str
    total_track_count: int
    canonical_link: str
    tracks: tuple[Track, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "ownerName": self.owner_name,
            "totalTrackCount": self.total_track_count,
            "canonicalLink": self.canonical_link,
            "tracks": [t.to_dict() for t in self.tracks],
        }
