"""Generation of boards that can be solved from their opening without guessing."""

import logging
import random
from typing import List, Optional, Tuple

import numpy as np

from .boundary import BoundaryMap
from .config import EngineConfig
from .config import config as default_config
from .sat import SearchBudget, SolverBudgetExceeded
from .solver import make_solver
from .utils import get_neighborhoods, neighbor_mine_counts

logger = logging.getLogger(__name__)


def _first_safe_cell(mine_grid: np.ndarray) -> Optional[Tuple[int, int]]:
    safe = np.argwhere(~mine_grid)
    if len(safe) == 0:
        return None
    r, c = safe[0]
    return int(r), int(c)


def open_region(
    mine_grid: np.ndarray, opening: Tuple[int, int]
) -> List[Tuple[int, int, int]]:
    """
    Flood-fill reveal from a safe opening cell.

    Returns:
        (row, col, label) for every revealed cell.
    """
    rows, cols = mine_grid.shape
    counts = neighbor_mine_counts(mine_grid)
    neighborhoods = get_neighborhoods(rows, cols)

    revealed: List[Tuple[int, int, int]] = []
    seen = {opening}
    stack = [opening]
    while stack:
        r, c = stack.pop()
        label = int(counts[r, c])
        revealed.append((r, c, label))
        if label != 0:
            continue
        for nbr in neighborhoods[(r, c)]:
            if nbr in seen or mine_grid[nbr]:
                continue
            seen.add(nbr)
            stack.append(nbr)
    return revealed


def check_solvability(
    mine_grid: np.ndarray,
    mines: Optional[int] = None,
    opening: Optional[Tuple[int, int]] = None,
    cfg: Optional[EngineConfig] = None,
) -> bool:
    """
    Check that a fully placed board offers a logical move after its opening.

    The opening region is revealed by flood fill and the resulting frontier is
    classified; the board is accepted if the frontier is empty or some
    frontier cell is provably safe.

    Args:
        mine_grid: Boolean array of shape (rows, cols).
        mines: Total mine count; defaults to the number of mines in the grid.
        opening: Opening cell; defaults to the first safe cell in row-major order.
        cfg: Engine configuration (search budget).

    Returns:
        True if the board is accepted.
    """
    mine_grid = np.asarray(mine_grid, dtype=bool)
    rows, cols = mine_grid.shape
    if mines is None:
        mines = int(mine_grid.sum())

    if opening is None:
        opening = _first_safe_cell(mine_grid)
        if opening is None:
            return False
    if mine_grid[opening]:
        return False

    bmap = BoundaryMap.from_labels(rows, cols, open_region(mine_grid, opening))
    if not bmap.frontier:
        return True

    try:
        solver = make_solver(bmap, mines, SearchBudget.from_config(cfg))
    except SolverBudgetExceeded as exc:
        logger.info("Rejecting candidate board: %s", exc)
        return False
    return solver.has_safe_cells()


def generate_solvable_board(
    rows: int,
    cols: int,
    mines: int,
    max_attempts: Optional[int] = None,
    rng: Optional[random.Random] = None,
    opening: Optional[Tuple[int, int]] = None,
    cfg: Optional[EngineConfig] = None,
) -> Optional[np.ndarray]:
    """
    Draw random layouts until one passes check_solvability().

    Args:
        rows: Number of rows, must be > 0.
        cols: Number of columns, must be > 0.
        mines: Number of mines, 0 <= mines <= rows * cols.
        max_attempts: Candidates to try; defaults to cfg.generator_max_attempts.
        rng: Random source.
        opening: Opening cell passed to check_solvability().
        cfg: Engine configuration.

    Returns:
        The accepted boolean grid, or None if every attempt was rejected.

    Raises:
        ValueError: If dimensions or the mine count are invalid.
    """
    if rows <= 0 or cols <= 0:
        raise ValueError("rows and cols must be positive.")
    if not 0 <= mines <= rows * cols:
        raise ValueError("mines must be between 0 and rows * cols.")

    cfg = cfg or default_config
    rng = rng or random.Random()
    if max_attempts is None:
        max_attempts = cfg.generator_max_attempts

    for attempt in range(max_attempts):
        grid = np.zeros(rows * cols, dtype=bool)
        grid[np.array(rng.sample(range(rows * cols), mines), dtype=int)] = True
        grid = grid.reshape(rows, cols)

        if check_solvability(grid, mines, opening, cfg):
            logger.info("Accepted %dx%d board with %d mines after %d attempts", rows, cols, mines, attempt + 1)
            return grid

    logger.warning("No solvable %dx%d board with %d mines in %d attempts", rows, cols, mines, max_attempts)
    return None
