import json

import pytest

from conftest import make_track
from playlist_bingo.core.board import (
    CompletedLine,
    board_as_csv,
    board_as_json,
    board_state,
    get_completed_lines,
    has_won,
    is_blackout,
    is_diagonal_complete,
    reset_board,
    shareable_text,
    toggle_cell,
)
from playlist_bingo.core.errors import OutOfRangeError
from playlist_bingo.core.generator import generate_board
from playlist_bingo.core.models import Board


def _mark(board, positions):
    for row, col in positions:
        board.cells[row][col].marked = True
    return board


def test_toggle_flips_one_cell_and_is_its_own_inverse(tracks):
    board = generate_board(tracks, 4, False)
    before = [[c.marked for c in row] for row in board.cells]

    toggle_cell(board, 1, 2)
    after = [[c.marked for c in row] for row in board.cells]
    diffs = [(r, c) for r in range(4) for c in range(4) if before[r][c] != after[r][c]]
    assert diffs == [(1, 2)]

    assert toggle_cell(board, 1, 2) is board
    assert [[c.marked for c in row] for row in board.cells] == before


@pytest.mark.parametrize("row,col", [(-1, 0), (0, -1), (3, 0), (0, 3), (5, 5)])
def test_toggle_out_of_range(tracks, row, col):
    board = generate_board(tracks, 3, False)
    with pytest.raises(OutOfRangeError):
        toggle_cell(board, row, col)


def test_single_row_wins_with_exactly_one_line(tracks):
    board = _mark(generate_board(tracks, 4, False), [(0, c) for c in range(4)])
    assert has_won(board)
    assert get_completed_lines(board) == [CompletedLine("row", 0)]


def test_column_and_diagonals(tracks):
    board = _mark(generate_board(tracks, 3, False), [(r, 1) for r in range(3)])
    assert [str(line) for line in get_completed_lines(board)] == ["col-1"]

    board = _mark(generate_board(tracks, 3, False), [(i, i) for i in range(3)])
    assert is_diagonal_complete(board, 0)
    assert not is_diagonal_complete(board, 1)
    assert [str(line) for line in get_completed_lines(board)] == ["diag-0"]

    board = _mark(generate_board(tracks, 3, False), [(i, 2 - i) for i in range(3)])
    assert [str(line) for line in get_completed_lines(board)] == ["diag-1"]
    assert not is_diagonal_complete(board, 2)


def test_all_simultaneous_lines_are_reported(tracks):
    board = _mark(generate_board(tracks, 3, False), [(0, 0), (0, 1), (0, 2), (1, 0), (2, 0), (1, 1), (2, 2)])
    assert [str(line) for line in get_completed_lines(board)] == ["row-0", "col-0", "diag-0", "diag-1"]


def test_x_pattern_alone_is_two_diagonals_not_a_special_win(tracks):
    positions = {(i, i) for i in range(5)} | {(i, 4 - i) for i in range(5)}
    board = _mark(generate_board(tracks, 5, False), positions)
    assert [str(line) for line in get_completed_lines(board)] == ["diag-0", "diag-1"]


def test_no_win_on_fresh_boards(tracks):
    assert not has_won(generate_board(tracks, 5, True))
    assert get_completed_lines(generate_board(tracks, 3, False)) == []


def test_free_space_counts_towards_lines(tracks):
    board = _mark(generate_board(tracks, 5, True), [(2, c) for c in (0, 1, 3, 4)])
    assert has_won(board)
    assert get_completed_lines(board) == [CompletedLine("row", 2)]


@pytest.mark.parametrize("size,free", [(3, False), (4, False), (5, True), (5, False)])
def test_blackout(tracks, size, free):
    board = generate_board(tracks, size, free)
    assert not is_blackout(board)
    for cell in board.iter_cells():
        cell.marked = True
    assert is_blackout(board)
    toggle_cell(board, size - 1, 0)
    assert not is_blackout(board)


def test_reset_keeps_only_free_space_marked():
    pool = [make_track(i) for i in range(25)]
    board = generate_board(pool, 5, True)
    assert len({t.id for t in board.tracks}) == 24
    for cell in board.iter_cells():
        cell.marked = True
    board.cell(2, 2).marked = False

    reset_board(board)
    assert [(c.row, c.col) for c in board.iter_cells() if c.marked] == [(2, 2)]
    reset_board(board)
    assert [(c.row, c.col) for c in board.iter_cells() if c.marked] == [(2, 2)]


def test_reset_without_free_space_clears_everything(tracks):
    board = _mark(generate_board(tracks, 3, False), [(0, 0), (1, 1)])
    assert not any(c.marked for c in reset_board(board).iter_cells())


def test_board_round_trips_through_dict(tracks):
    board = toggle_cell(generate_board(tracks, 5, True), 0, 4)
    restored = Board.from_dict(json.loads(json.dumps(board.to_dict())))
    assert restored == board
    assert restored.cell(2, 2).is_free


def test_board_state_payload(tracks):
    board = _mark(generate_board(tracks, 3, False), [(1, c) for c in range(3)])
    state = board_state(board)
    assert state["hasWon"] is True
    assert state["completedLines"] == ["row-1"]
    assert state["isBlackout"] is False
    assert state["board"]["id"] == board.id


def test_text_views(tracks):
    board = generate_board(tracks, 5, True)
    csv_text = board_as_csv(board)
    rows = csv_text.split("\n")
    assert len(rows) == 5
    assert '"FREE"' in rows[2]
    first = board.cell(0, 0).track
    assert rows[0].startswith(f'"{first.name} - {first.primary_artist}"')

    assert json.loads(board_as_json(board))["size"] == 5

    text = shareable_text(toggle_cell(board, 0, 0))
    grid = text.split("\n\n")[1].split("\n")
    assert grid[0].split(" ")[0] == "✓"
    assert grid[2].split(" ")[2] == "✓"
    assert grid[1].split(" ")[1] == "□"
