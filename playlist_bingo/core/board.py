"""
Interactive board state: marking cells, detecting completed lines and views of a board.

Every operation mutates the board it receives and returns it, so a caller can
re-render straight from the return value.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from io import StringIO
import json

from .errors import OutOfRangeError
from .models import Board


ROW = "row"
COLUMN = "col"
DIAGONAL = "diag"


@dataclass(frozen=True)
class CompletedLine:
    kind: str
    index: int

    def __str__(self) -> str:
        return f"{self.kind}-{self.index}"


def _check_position(board: Board, row: int, col: int) -> None:
    if not (0 <= row < board.size and 0 <= col < board.size):
        raise OutOfRangeError(row, col, board.size)


def toggle_cell(board: Board, row: int, col: int) -> Board:
    _check_position(board, row, col)
    cell = board.cells[row][col]
    cell.marked = not cell.marked
    return board


def is_row_complete(board: Board, row: int) -> bool:
    return all(cell.marked for cell in board.cells[row])


def is_column_complete(board: Board, col: int) -> bool:
    return all(row[col].marked for row in board.cells)


def is_diagonal_complete(board: Board, diagonal: int) -> bool:
    # 0: top-left to bottom-right, 1: top-right to bottom-left
    if diagonal == 0:
        return all(row[i].marked for i, row in enumerate(board.cells))
    if diagonal == 1:
        return all(row[board.size - 1 - i].marked for i, row in enumerate(board.cells))
    return False


def get_completed_lines(board: Board) -> list[CompletedLine]:
    lines = [CompletedLine(ROW, i) for i in range(board.size) if is_row_complete(board, i)]
    lines += [CompletedLine(COLUMN, i) for i in range(board.size) if is_column_complete(board, i)]
    lines += [CompletedLine(DIAGONAL, d) for d in (0, 1) if is_diagonal_complete(board, d)]
    return lines


def has_won(board: Board) -> bool:
    return (
        any(is_row_complete(board, i) for i in range(board.size))
        or any(is_column_complete(board, i) for i in range(board.size))
        or is_diagonal_complete(board, 0)
        or is_diagonal_complete(board, 1)
    )


def is_blackout(board: Board) -> bool:
    return all(cell.marked for cell in board.iter_cells())


def reset_board(board: Board) -> Board:
    for cell in board.iter_cells():
        cell.marked = cell.is_free
    return board


def board_state(board: Board) -> dict:
    return {
        "board": board.to_dict(),
        "hasWon": has_won(board),
        "completedLines": [str(line) for line in get_completed_lines(board)],
        "isBlackout": is_blackout(board),
    }


def board_as_csv(board: Board) -> str:
    buf = StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in board.cells:
        writer.writerow(
            ["FREE" if c.is_free else f"{c.track.name} - {c.track.primary_artist}" for c in row]
        )
    return buf.getvalue().rstrip("\n")


def board_as_json(board: Board) -> str:
    return json.dumps(board.to_dict(), indent=2, ensure_ascii=False)


def shareable_text(board: Board) -> str:
    grid = "\n".join(" ".join("✓" if c.marked else "□" for c in row) for row in board.cells)
    return f"Playlist Bingo Board\n\n{grid}\n\nGenerated with Playlist Bingo"
