from __future__ import annotations

import random
import string
import time
from typing import Sequence

from .errors import InsufficientTracksError, ValidationError
from .models import FREE_SPACE, Board, Cell, Track


SUPPORTED_SIZES = (3, 4, 5)
FREE_SPACE_SIZE = 5
_ID_ALPHABET = string.digits + string.ascii_lowercase


def uses_free_space(size: int, include_free_space: bool) -> bool:
    return include_free_space and size == FREE_SPACE_SIZE


def required_track_count(size: int, include_free_space: bool) -> int:
    total = size * size
    return total - 1 if uses_free_space(size, include_free_space) else total


def generate_board_id(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"bingo-{int(time.time() * 1000)}-{suffix}"


def _check_size(size: int) -> None:
    if size not in SUPPORTED_SIZES:
        raise ValidationError(f"Board size must be one of {', '.join(map(str, SUPPORTED_SIZES))}, got {size}")


def generate_board(
    track_pool: Sequence[Track],
    size: int,
    include_free_space: bool,
    *,
    rng: random.Random | None = None,
) -> Board:
    _check_size(size)
    required = required_track_count(size, include_free_space)
    if len(track_pool) < required:
        raise InsufficientTracksError(required=required, available=len(track_pool), size=size)

    rng = rng or random.Random()
    shuffled = list(track_pool)
    rng.shuffle(shuffled)
    selected = iter(shuffled[:required])

    free = uses_free_space(size, include_free_space)
    centre = size // 2
    cells: list[list[Cell]] = []
    for row in range(size):
        cells.append([])
        for col in range(size):
            if free and row == centre and col == centre:
                cells[row].append(Cell(row=row, col=col, occupant=FREE_SPACE, marked=True))
            else:
                cells[row].append(Cell(row=row, col=col, occupant=next(selected)))

    return Board(id=generate_board_id(rng), size=size, cells=cells)


def generate_multiple_boards(
    track_pool: Sequence[Track],
    count: int,
    size: int,
    include_free_space: bool,
    *,
    seed: int | None = None,
) -> list[Board]:
    if count <= 0:
        raise ValidationError("count must be > 0")

    # Boards may share tracks with each other; only within-board uniqueness holds.
    rng = random.Random(seed)
    return [generate_board(track_pool, size, include_free_space, rng=rng) for _ in range(count)]
