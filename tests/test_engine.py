import threading

import numpy as np
import pytest

from fairsweeper import engine as engine_module
from fairsweeper.config import EngineConfig
from fairsweeper.engine import Minesweeper
from fairsweeper.placement import GameMode
from fairsweeper.solver import CellHint, HintType


def _classic_with_layout(grid: np.ndarray, cfg: EngineConfig, **kwargs) -> Minesweeper:
    rows, cols = grid.shape
    game = Minesweeper(rows, cols, int(grid.sum()), "classic", seed=0, cfg=cfg, **kwargs)
    game.board.apply_mine_grid(grid)
    return game


def _corner_mine() -> np.ndarray:
    grid = np.zeros((3, 3), dtype=bool)
    grid[0, 0] = True
    return grid


def _assert_board_consistent(game: Minesweeper) -> None:
    board = game.board
    assert board.mine_grid().sum() == game.mines
    for r in range(board.rows):
        for c in range(board.cols):
            cell = board.cells[r][c]
            if cell.is_revealed and not cell.is_mine:
                assert cell.neighbor_mines == board.count_neighbor_mines(r, c)


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------


@pytest.mark.parametrize("rows, cols, mines", [(0, 5, 1), (5, 0, 1), (3, 3, 9), (3, 3, -1)])
def test_invalid_dimensions(rows, cols, mines):
    with pytest.raises(ValueError):
        Minesweeper(rows, cols, mines)


def test_invalid_mode():
    with pytest.raises(ValueError):
        Minesweeper(5, 5, 3, mode="hardcore")


def test_mode_accepts_enum_or_string():
    assert Minesweeper(5, 5, 3, GameMode.FAIR).mode is GameMode.FAIR
    assert Minesweeper(5, 5, 3, "training").mode is GameMode.TRAINING


def test_classic_layout_is_seeded():
    a = Minesweeper(9, 9, 10, "classic", seed=99)
    b = Minesweeper(9, 9, 10, "classic", seed=99)
    assert np.array_equal(a.board.mine_grid(), b.board.mine_grid())
    assert a.board.mine_grid().sum() == 10


def test_dynamic_modes_start_without_mines():
    game = Minesweeper(9, 9, 10, "fair")
    assert game.board.mine_grid().sum() == 0


# -----------------------------------------------------------------------------
# Reveal, flags, chording
# -----------------------------------------------------------------------------


def test_reveal_out_of_bounds(cfg):
    game = Minesweeper(4, 4, 2, cfg=cfg)
    with pytest.raises(ValueError):
        game.reveal(4, 0)
    with pytest.raises(ValueError):
        game.toggle_flag(-1, 0)
    with pytest.raises(ValueError):
        game.use_hint(0, 9)


def test_mine_hit_reports_all_mines(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    status, payload = game.reveal(0, 0)
    assert status == -1
    assert payload["all_mines"] == frozenset({(0, 0)})
    assert (0, 0) in payload["changed_cells"]
    assert game.game_over and not game.game_won
    assert game.reveal(2, 2) == (0, {})


def test_flood_reveal_and_win(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    status, payload = game.reveal(2, 2)
    assert status == 1
    assert game.game_won
    assert len(payload["revealed_cells"]) == 8
    assert (2, 2, 0) in payload["revealed_cells"]
    assert (1, 1, 1) in payload["revealed_cells"]


def test_flagged_cell_cannot_be_revealed(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    assert game.toggle_flag(2, 2) == (0, {"changed_cells": {(2, 2)}})
    assert game.board.cells[2][2].is_flagged
    assert game.reveal(2, 2) == (0, {})

    game.toggle_flag(2, 2)
    assert not game.board.cells[2][2].is_flagged


def test_flag_on_revealed_cell_is_ignored(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    game.reveal(1, 1)
    assert game.toggle_flag(1, 1) == (0, {})
    assert not game.board.cells[1][1].is_flagged


def test_chording_opens_neighbors_when_flags_match(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    status, payload = game.reveal(1, 1)
    assert status == 0
    assert payload["revealed_cells"] == [(1, 1, 1)]

    # No flags yet: nothing happens
    assert game.reveal(1, 1) == (0, {})

    game.toggle_flag(0, 0)
    status, payload = game.reveal(1, 1)
    assert status == 1
    assert game.board.revealed_count == 8


def test_chording_can_be_disabled(cfg):
    game = _classic_with_layout(_corner_mine(), cfg, chording=False)
    game.reveal(1, 1)
    game.toggle_flag(0, 0)
    assert game.reveal(1, 1) == (0, {})
    assert game.board.revealed_count == 1


def test_chording_with_wrong_flag_hits_mine(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    game.reveal(1, 1)
    game.toggle_flag(0, 1)
    status, payload = game.reveal(1, 1)
    assert status == -1
    assert payload["all_mines"] == frozenset({(0, 0)})


def test_classic_quick_start_opens_region(cfg):
    for seed in range(5):
        game = Minesweeper(9, 9, 10, "classic", quick_start=True, seed=seed, cfg=cfg)
        status, _ = game.reveal(4, 4)
        assert status != -1
        assert game.board.revealed_count >= 9
        _assert_board_consistent(game)


# -----------------------------------------------------------------------------
# Dynamic modes
# -----------------------------------------------------------------------------


@pytest.mark.parametrize("mode", ["fair", "training"])
def test_first_click_is_never_a_mine(mode, cfg):
    for seed in range(10):
        game = Minesweeper(9, 9, 10, mode, seed=seed, cfg=cfg)
        status, payload = game.reveal(seed % 9, (seed * 2) % 9)
        assert status != -1
        assert payload["changed_cells"]
        _assert_board_consistent(game)


def test_fair_quick_start_opens_block(cfg):
    for seed in range(5):
        game = Minesweeper(9, 9, 10, "fair", quick_start=True, seed=seed, cfg=cfg)
        game.reveal(4, 4)
        assert game.board.cells[4][4].neighbor_mines == 0
        assert game.board.revealed_count >= 9


def test_fair_game_stays_consistent_over_moves(cfg):
    game = Minesweeper(8, 8, 10, "fair", quick_start=True, seed=3, cfg=cfg)
    status, _ = game.reveal(3, 3)
    moves = 0
    while status == 0 and moves < 40:
        hidden = [pos for pos in game.board.hidden_cells() if not game.board.cells[pos[0]][pos[1]].is_flagged]
        r, c = hidden[moves % len(hidden)]
        status, _ = game.reveal(r, c)
        moves += 1
        _assert_board_consistent(game)
    assert status in (-1, 0, 1)


def test_training_mode_keeps_hints(cfg):
    game = Minesweeper(9, 9, 10, "training", quick_start=True, seed=1, cfg=cfg)
    status, _ = game.reveal(4, 4)
    hints = game.wait_for_hints()
    assert status == 1 or hints
    for h in hints:
        assert not game.board.cells[h.row][h.col].is_revealed
        assert h.kind in (HintType.SAFE, HintType.MINE, HintType.UNKNOWN)
    game.close()


def test_training_hint_cells_are_right(cfg):
    game = Minesweeper(9, 9, 10, "training", quick_start=True, seed=2, cfg=cfg)
    game.reveal(4, 4)
    for h in game.wait_for_hints():
        cell = game.board.cells[h.row][h.col]
        if h.kind is HintType.MINE:
            assert cell.is_mine
        elif h.kind is HintType.SAFE:
            assert not cell.is_mine
    game.close()


def test_training_move_returns_before_hints_are_computed(cfg, monkeypatch):
    started = threading.Event()
    release = threading.Event()

    def slow_hints(board, cfg=None):
        started.set()
        release.wait(5)
        return [CellHint(0, 0, HintType.UNKNOWN)]

    monkeypatch.setattr(engine_module, "calculate_cell_hints", slow_hints)
    game = Minesweeper(9, 9, 10, "training", quick_start=True, seed=1, cfg=cfg)

    status, payload = game.reveal(4, 4)
    assert status in (0, 1)
    assert payload["changed_cells"]
    if status == 0:
        assert game.cell_hints == []
        release.set()
        assert started.wait(5)
        assert game.wait_for_hints(timeout=5) == [CellHint(0, 0, HintType.UNKNOWN)]
    release.set()
    game.close()


def test_stale_hint_refresh_is_skipped(cfg, monkeypatch):
    calls = []

    def counting_hints(board, cfg=None):
        calls.append(board.revealed_count)
        return []

    monkeypatch.setattr(engine_module, "calculate_cell_hints", counting_hints)
    game = Minesweeper(9, 9, 10, "training", quick_start=True, seed=3, cfg=cfg)
    with game.board.lock:
        game.reveal(4, 4)
        if not game.game_over:
            r, c = game.board.hidden_cells()[0]
            game.toggle_flag(r, c)
    game.wait_for_hints(timeout=5)
    game.close()
    # Both moves ran before the worker got the lock: only the latest board is classified
    assert len(calls) == (0 if game.game_over else 1)


def test_fair_mode_has_no_stored_hints(cfg):
    game = Minesweeper(9, 9, 10, "fair", quick_start=True, seed=1, cfg=cfg)
    game.reveal(4, 4)
    assert game.cell_hints == []
    assert game.refresh_hints() == game.cell_hints


# -----------------------------------------------------------------------------
# Hints
# -----------------------------------------------------------------------------


def test_hint_flags_mines_and_reveals_safe_cells(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    assert game.use_hint(0, 0) == (0, {"changed_cells": {(0, 0)}})
    assert game.board.cells[0][0].is_flagged

    status, _ = game.use_hint(1, 1)
    assert status == 0
    assert game.board.cells[1][1].is_revealed
    assert game.hints_used == 2


def test_hint_limit(cfg):
    limited = cfg.model_copy(update={"max_hints": 1})
    game = _classic_with_layout(_corner_mine(), limited)
    game.use_hint(1, 1)
    assert game.use_hint(2, 2) == (0, {})
    assert game.hints_used == 1
    assert not game.board.cells[2][2].is_revealed


def test_hint_before_first_reveal_in_fair_mode(cfg):
    game = Minesweeper(9, 9, 10, "fair", seed=4, cfg=cfg)
    status, _ = game.use_hint(0, 0)
    assert status != -1
    assert game.board.cells[0][0].is_revealed
    assert game.hints_used == 1


def test_hint_on_revealed_cell_is_free(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    game.reveal(1, 1)
    assert game.use_hint(1, 1) == (0, {})
    assert game.hints_used == 0


# -----------------------------------------------------------------------------
# Display
# -----------------------------------------------------------------------------


def test_format_board_shape_and_symbols(cfg):
    game = _classic_with_layout(_corner_mine(), cfg)
    game.toggle_flag(0, 0)
    game.reveal(1, 1)
    text = game.format_board()
    lines = text.split("\n")
    assert len(lines) == 3 + 2
    assert "F" in lines[2]
    assert "." in lines[4]

    full = game.format_board(reveal_all=True)
    assert "M" in full
