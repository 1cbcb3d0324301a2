from __future__ import annotations

from io import BytesIO
import threading
from typing import Iterator, Sequence
import zipfile

from .errors import RenderCancelledError, ValidationError
from .models import Board, Cell


FREE_LABEL = "FREE"


def archive_name(board_number: int, extension: str) -> str:
    return f"bingo_board_{board_number:03d}.{extension}"


def board_title(board_number: int) -> str:
    return f"Bingo Board #{board_number}"


def show_free_label(cell: Cell, include_free_space: bool) -> bool:
    return cell.is_free and include_free_space


def check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise RenderCancelledError("Render cancelled")


def require_boards(boards: Sequence[Board]) -> None:
    if not boards:
        raise ValidationError("At least one board is required")


class BoardRenderer:
    """Shared shape of the two rendering strategies.

    Subclasses render one board to bytes (`render_board`) and one combined
    document (`render_single_document`); the per-board ZIP is built here.
    """

    extension = ""

    def render_board(
        self,
        board: Board,
        board_number: int,
        include_free_space: bool = True,
    ) -> bytes:
        raise NotImplementedError

    def render_single_document(
        self,
        boards: Sequence[Board],
        include_free_space: bool = True,
        *,
        cancel: threading.Event | None = None,
    ) -> bytes:
        raise NotImplementedError

    def _render_each(
        self,
        boards: Sequence[Board],
        include_free_space: bool,
        cancel: threading.Event | None,
    ) -> Iterator[bytes]:
        for i, board in enumerate(boards, start=1):
            check_cancelled(cancel)
            yield self.render_board(board, i, include_free_space)

    def render_per_board_archive(
        self,
        boards: Sequence[Board],
        include_free_space: bool = True,
        *,
        cancel: threading.Event | None = None,
    ) -> bytes:
        require_boards(boards)
        rendered = list(self._render_each(boards, include_free_space, cancel))
        check_cancelled(cancel)

        buf = BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for i, data in enumerate(rendered, start=1):
                zf.writestr(archive_name(i, self.extension), data)
        return buf.getvalue()
