"""
Export pipeline: validate a request, fetch tracks, generate boards, render and
package the result as a base64 payload with a dated filename.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging
import threading
from typing import Any, Mapping, Protocol, Sequence

from .config import Settings
from .errors import BingoError, RenderError, ValidationError
from .generator import SUPPORTED_SIZES, generate_multiple_boards
from .models import Board, Playlist
from .render import BoardRenderer


logger = logging.getLogger(__name__)


class OutputKind(str, Enum):
    SINGLE_DOCUMENT = "single-document"
    PER_BOARD_ARCHIVE = "per-board-archive"


class RenderStrategy(str, Enum):
    VECTOR_TABLE = "vector-table"
    RASTERIZED_IMAGE = "rasterized-image"


_EXTENSIONS = {OutputKind.SINGLE_DOCUMENT: "pdf", OutputKind.PER_BOARD_ARCHIVE: "zip"}
_MIMETYPES = {OutputKind.SINGLE_DOCUMENT: "application/pdf", OutputKind.PER_BOARD_ARCHIVE: "application/zip"}


class Catalog(Protocol):
    def fetch_playlist(self, reference: str) -> Playlist: ...


@dataclass(frozen=True)
class RenderJob:
    boards: tuple[Board, ...]
    include_free_space: bool
    output_kind: OutputKind = OutputKind.SINGLE_DOCUMENT
    strategy: RenderStrategy = RenderStrategy.RASTERIZED_IMAGE


@dataclass(frozen=True)
class ExportPayload:
    encoded_buffer: str
    filename: str
    mimetype: str

    def raw(self) -> bytes:
        return base64.b64decode(self.encoded_buffer)

    def to_dict(self) -> dict[str, str]:
        return {"encodedBuffer": self.encoded_buffer, "filename": self.filename}


def export_filename(kind: OutputKind, today: date | None = None) -> str:
    today = today or date.today()
    return f"bingo_boards_{today.isoformat()}.{_EXTENSIONS[kind]}"


def package_export(data: bytes, kind: OutputKind, today: date | None = None) -> ExportPayload:
    return ExportPayload(
        encoded_buffer=base64.b64encode(data).decode("ascii"),
        filename=export_filename(kind, today),
        mimetype=_MIMETYPES[kind],
    )


def _enum_value(enum_cls, raw: Any, default, field: str):
    if raw is None or raw == "":
        return default
    try:
        return enum_cls(raw)
    except ValueError as exc:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field} must be one of {allowed}, got {raw!r}") from exc


def _int_field(payload: Mapping[str, Any], field: str, default: int | None = None) -> int:
    raw = payload.get(field, default)
    # bool is an int subclass; reject it explicitly.
    if isinstance(raw, bool) or raw is None:
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(raw, str):
        raw = raw.strip()
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a whole number") from exc


@dataclass(frozen=True)
class ExportRequest:
    playlist_reference: str
    board_count: int = 1
    board_size: int = 5
    include_free_space: bool = True
    output_kind: OutputKind = OutputKind.SINGLE_DOCUMENT
    strategy: RenderStrategy = RenderStrategy.RASTERIZED_IMAGE
    seed: int | None = None

    def validate(self, max_boards: int | None = None) -> "ExportRequest":
        if not self.playlist_reference.strip():
            raise ValidationError("Playlist link cannot be empty")
        if self.board_count < 1:
            raise ValidationError("boardCount must be at least 1")
        if max_boards is not None and self.board_count > max_boards:
            raise ValidationError(f"boardCount must be at most {max_boards}")
        if self.board_size not in SUPPORTED_SIZES:
            raise ValidationError(f"boardSize must be one of {', '.join(map(str, SUPPORTED_SIZES))}")
        return self

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None, max_boards: int | None = None) -> "ExportRequest":
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be a JSON object")

        reference = payload.get("playlistReference")
        if not isinstance(reference, str):
            raise ValidationError("playlistReference must be a string")

        include_free = payload.get("includeFreeSpace", True)
        if not isinstance(include_free, bool):
            raise ValidationError("includeFreeSpace must be true or false")

        seed = payload.get("seed")
        return cls(
            playlist_reference=reference.strip(),
            board_count=_int_field(payload, "boardCount", 1),
            board_size=_int_field(payload, "boardSize", 5),
            include_free_space=include_free,
            output_kind=_enum_value(OutputKind, payload.get("outputKind"), OutputKind.SINGLE_DOCUMENT, "outputKind"),
            strategy=_enum_value(
                RenderStrategy, payload.get("renderStrategy"), RenderStrategy.RASTERIZED_IMAGE, "renderStrategy"
            ),
            seed=None if seed in (None, "") else _int_field(payload, "seed"),
        ).validate(max_boards)


def render_job(
    job: RenderJob,
    renderers: Mapping[RenderStrategy, BoardRenderer],
    *,
    cancel: threading.Event | None = None,
) -> bytes:
    renderer = renderers.get(job.strategy)
    if renderer is None:
        raise ValidationError(f"No renderer configured for {job.strategy.value}")

    try:
        if job.output_kind is OutputKind.PER_BOARD_ARCHIVE:
            return renderer.render_per_board_archive(job.boards, job.include_free_space, cancel=cancel)
        return renderer.render_single_document(job.boards, job.include_free_space, cancel=cancel)
    except BingoError:
        raise
    except Exception as exc:
        logger.exception("Rendering %d boards with %s failed", len(job.boards), job.strategy.value)
        raise RenderError(f"Failed to render bingo boards: {exc}") from exc


def export_boards(
    request: ExportRequest,
    catalog: Catalog,
    renderers: Mapping[RenderStrategy, BoardRenderer],
    *,
    cancel: threading.Event | None = None,
    today: date | None = None,
) -> ExportPayload:
    playlist = catalog.fetch_playlist(request.playlist_reference)
    boards = boards_for(playlist, request)
    job = RenderJob(
        boards=tuple(boards),
        include_free_space=request.include_free_space,
        output_kind=request.output_kind,
        strategy=request.strategy,
    )
    data = render_job(job, renderers, cancel=cancel)
    payload = package_export(data, request.output_kind, today)
    logger.info(
        "Exported %d %dx%d boards from %r as %s",
        request.board_count, request.board_size, request.board_size, playlist.name, payload.filename,
    )
    return payload


def default_renderers(settings: Settings) -> dict[RenderStrategy, BoardRenderer]:
    from .pdf import TableRenderer
    from .raster import RasterRenderer

    return {
        RenderStrategy.VECTOR_TABLE: TableRenderer.from_settings(settings),
        RenderStrategy.RASTERIZED_IMAGE: RasterRenderer.from_settings(settings),
    }


def boards_for(playlist: Playlist, request: ExportRequest) -> Sequence[Board]:
    return generate_multiple_boards(
        playlist.tracks,
        request.board_count,
        request.board_size,
        request.include_free_space,
        seed=request.seed,
    )
