"""Mine placement: static pre-placement and constraint-based placement on every click."""

import logging
import random
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Set, Tuple

import numpy as np

from .board import Board
from .boundary import BoundaryMap
from .config import EngineConfig
from .config import config as default_config
from .sat import SearchBudget, SolverBudgetExceeded
from .solver import CellHint, ConstraintSolver, make_solver
from .utils import empty_mine_grid

logger = logging.getLogger(__name__)


class GameMode(str, Enum):
    """Game modes; training and fair decide mines on every click."""

    CLASSIC = "classic"
    TRAINING = "training"
    FAIR = "fair"

    @property
    def dynamic(self) -> bool:
        return self is not GameMode.CLASSIC


# -----------------------------------------------------------------------------
# Placement policy
# -----------------------------------------------------------------------------


def _sample_grid(
    board: Board, candidates: List[Tuple[int, int]], count: int, rng: random.Random
) -> np.ndarray:
    grid = empty_mine_grid(board.rows, board.cols)
    for r, c in rng.sample(candidates, min(count, len(candidates))):
        grid[r, c] = True
    return grid


def random_fallback_grid(
    board: Board, click_row: int, click_col: int, mines: int, rng: random.Random
) -> np.ndarray:
    """
    Place `mines` uniformly at random among hidden cells other than the click.

    Used when no consistent shape exists; revealed cells are never touched.
    """
    eligible = [pos for pos in board.hidden_cells() if pos != (click_row, click_col)]
    if mines > len(eligible):
        logger.warning("Fallback can only place %d of %d mines", len(eligible), mines)
    logger.warning(
        "Falling back to random placement of %d mines for click (%d, %d)",
        mines,
        click_row,
        click_col,
    )
    return _sample_grid(board, eligible, mines, rng)


def quick_start_grid(
    board: Board, click_row: int, click_col: int, mines: int, rng: random.Random
) -> np.ndarray:
    """
    First-click layout that opens a region: no mines in the 3x3 block around the click.

    Cells of the block other than the click itself are used only if the rest
    of the board cannot hold every mine.
    """
    block = set(board.neighbors(click_row, click_col)) | {(click_row, click_col)}
    eligible = [pos for pos in board.hidden_cells() if pos not in block]
    grid = _sample_grid(board, eligible, mines, rng)

    shortfall = mines - len(eligible)
    if shortfall > 0:
        spare = list(board.neighbors(click_row, click_col))
        for r, c in rng.sample(spare, min(shortfall, len(spare))):
            grid[r, c] = True
    return grid


def _shape_grid(
    solver: ConstraintSolver,
    bmap: BoundaryMap,
    click_row: int,
    click_col: int,
    rng: random.Random,
) -> Optional[np.ndarray]:
    index = bmap.boundary_index(click_row, click_col)
    has_safe_cells = solver.has_safe_cells()

    if index == -1:
        outside_is_safe = (
            not bmap.frontier
            or solver.outside_is_safe()
            or (not has_safe_cells and solver.outside_can_be_safe())
        )
        if outside_is_safe:
            shape = solver.any_shape_with_one_empty()
            if shape is not None:
                logger.info("Click (%d, %d) off the frontier kept safe", click_row, click_col)
                return shape.mine_grid_with_empty(click_row, click_col, rng)
        else:
            shape = solver.any_shape_with_remaining()
            if shape is not None:
                logger.info("Click (%d, %d) off the frontier turned into a mine", click_row, click_col)
                return shape.mine_grid_with_mine(click_row, click_col, rng)
        return None

    can_be_safe = solver.can_be_safe_at(index)
    can_be_dangerous = solver.can_be_dangerous_at(index)

    if can_be_safe and (not can_be_dangerous or not has_safe_cells):
        shape = solver.any_safe_shape(index)
        outcome = "safe"
    else:
        shape = solver.any_dangerous_shape(index)
        outcome = "mine"

    if shape is None:
        return None
    logger.info(
        "Frontier click (%d, %d) resolved as %s (safe=%s, dangerous=%s, safe cells elsewhere=%s)",
        click_row,
        click_col,
        outcome,
        can_be_safe,
        can_be_dangerous,
        has_safe_cells,
    )
    return shape.mine_grid(rng)


def determine_mine_placement(
    board: Board,
    click_row: int,
    click_col: int,
    *,
    rng: Optional[random.Random] = None,
    cfg: Optional[EngineConfig] = None,
    quick_start: bool = False,
) -> np.ndarray:
    """
    Decide where every not-yet-exposed mine sits, given a click on a hidden cell.

    A frontier click is kept safe whenever it can be safe and either it can
    never be a mine or no provably safe cell exists elsewhere; otherwise the
    player is given a mine. A click off the frontier is safe only when the
    outside region is forced empty, or when nothing on the frontier is
    provably safe and the outside can hold an empty cell.

    Args:
        board: Board snapshot; coordinates are assumed in range and hidden.
        click_row: Row of the clicked cell.
        click_col: Column of the clicked cell.
        rng: Random source for the unconstrained part of the layout.
        cfg: Engine configuration (search budget).
        quick_start: On the first click, keep the 3x3 block around it empty.

    Returns:
        A (rows, cols) boolean grid for the hidden cells, holding exactly
        board.remaining_mines() mines whenever a consistent layout exists.
    """
    rng = rng or random.Random()
    mines = board.remaining_mines()

    if quick_start and board.revealed_count == 0:
        logger.info("Quick start: clearing the block around (%d, %d)", click_row, click_col)
        return quick_start_grid(board, click_row, click_col, mines, rng)

    bmap = BoundaryMap.from_board(board)
    grid: Optional[np.ndarray] = None
    try:
        solver = make_solver(bmap, mines, SearchBudget.from_config(cfg))
        grid = _shape_grid(solver, bmap, click_row, click_col, rng)
    except SolverBudgetExceeded as exc:
        logger.warning("Mine placement search aborted: %s", exc)

    if grid is None:
        return random_fallback_grid(board, click_row, click_col, mines, rng)
    return grid


# -----------------------------------------------------------------------------
# Hints
# -----------------------------------------------------------------------------


def calculate_cell_hints(board: Board, cfg: Optional[EngineConfig] = None) -> List[CellHint]:
    """
    Classify every frontier cell of a board as SAFE, MINE or UNKNOWN.

    Returns an empty list if the search budget runs out.
    """
    bmap = BoundaryMap.from_board(board)
    try:
        solver = make_solver(bmap, board.remaining_mines(), SearchBudget.from_config(cfg))
    except SolverBudgetExceeded as exc:
        logger.warning("Hint computation aborted: %s", exc)
        return []

    hints = solver.classification.hints()
    logger.info("Computed hints for %d frontier cells", len(hints))
    return hints


def calculate_safe_cells(board: Board, cfg: Optional[EngineConfig] = None) -> List[Tuple[int, int]]:
    """Frontier cells that can never hold a mine."""
    bmap = BoundaryMap.from_board(board)
    try:
        solver = make_solver(bmap, board.remaining_mines(), SearchBudget.from_config(cfg))
    except SolverBudgetExceeded as exc:
        logger.warning("Safe-cell computation aborted: %s", exc)
        return []
    return solver.classification.safe_cells()


# -----------------------------------------------------------------------------
# Strategies
# -----------------------------------------------------------------------------


class PlacementStrategy(ABC):
    """How a game decides its mines: once up front, or on every reveal."""

    @abstractmethod
    def prepare(self, board: Board) -> None:
        """Called once on a fresh board."""

    @abstractmethod
    def before_reveal(self, board: Board, row: int, col: int) -> Set[Tuple[int, int]]:
        """Called with the board lock held before (row, col) is revealed; returns changed cells."""


class StaticPlacement(PlacementStrategy):
    """Classic mode: mines are placed from a seed when the game is created."""

    def __init__(self, seed: Optional[int] = None, quick_start: bool = False) -> None:
        self.seed: int = seed if seed is not None else random.SystemRandom().randrange(2**63)
        self.quick_start = quick_start
        self._rng = random.Random(self.seed)

    def prepare(self, board: Board) -> None:
        cells = [(r, c) for r in range(board.rows) for c in range(board.cols)]
        for r, c in self._rng.sample(cells, board.mines):
            board.cells[r][c].is_mine = True
        board.recount_all()
        logger.info("Placed %d mines with seed %d", board.mines, self.seed)

    def before_reveal(self, board: Board, row: int, col: int) -> Set[Tuple[int, int]]:
        if not self.quick_start or board.revealed_count != 0:
            return set()
        return self._clear_block(board, row, col)

    def _clear_block(self, board: Board, row: int, col: int) -> Set[Tuple[int, int]]:
        """Move mines out of the 3x3 block around the first click."""
        block = set(board.neighbors(row, col)) | {(row, col)}
        moved = [pos for pos in block if board.cells[pos[0]][pos[1]].is_mine]
        if not moved:
            return set()

        free = [
            (r, c)
            for r in range(board.rows)
            for c in range(board.cols)
            if (r, c) not in block and not board.cells[r][c].is_mine
        ]
        targets = self._rng.sample(free, min(len(moved), len(free)))
        if len(targets) < len(moved):
            logger.warning("Quick start could only relocate %d of %d mines", len(targets), len(moved))

        # The clicked cell is cleared first
        moved.sort(key=lambda pos: pos != (row, col))
        grid = board.mine_grid()
        for r, c in moved[: len(targets)]:
            grid[r, c] = False
        for r, c in targets:
            grid[r, c] = True
        return board.apply_mine_grid(grid)


class DynamicPlacement(PlacementStrategy):
    """Training and fair modes: mines are decided by the constraint solver on every reveal."""

    def __init__(
        self,
        quick_start: bool = False,
        rng: Optional[random.Random] = None,
        cfg: Optional[EngineConfig] = None,
    ) -> None:
        self.quick_start = quick_start
        self.rng = rng or random.Random()
        self.cfg = cfg or default_config

    def prepare(self, board: Board) -> None:
        # Mines are decided on the first click
        return None

    def before_reveal(self, board: Board, row: int, col: int) -> Set[Tuple[int, int]]:
        grid = determine_mine_placement(
            board, row, col, rng=self.rng, cfg=self.cfg, quick_start=self.quick_start
        )
        return board.apply_mine_grid(grid)


def make_strategy(
    mode: GameMode,
    *,
    quick_start: bool = False,
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
) -> PlacementStrategy:
    """Select the placement strategy for a game mode."""
    if mode.dynamic:
        rng = random.Random(seed) if seed is not None else None
        return DynamicPlacement(quick_start=quick_start, rng=rng, cfg=cfg)
    return StaticPlacement(seed=seed, quick_start=quick_start)
