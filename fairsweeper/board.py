"""Board state shared by the game engine and the placement strategies."""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Set, Tuple

import numpy as np

from .utils import empty_mine_grid, get_neighborhoods

logger = logging.getLogger(__name__)


@dataclass
class Cell:
    is_mine: bool = False
    is_revealed: bool = False
    is_flagged: bool = False
    neighbor_mines: int = 0


class Board:
    """
    A rows x cols grid of cells with a fixed total mine budget.

    All mutation happens under `lock`; the placement pipeline reads a board
    snapshot and merges its grid back while the caller still holds it.
    """

    def __init__(self, rows: int, cols: int, mines: int) -> None:
        """
        Args:
            rows: Number of rows, must be > 0.
            cols: Number of columns, must be > 0.
            mines: Total number of mines, 0 <= mines < rows * cols.

        Raises:
            ValueError: If dimensions or the mine count are invalid.
        """
        if rows <= 0 or cols <= 0:
            raise ValueError("rows and cols must be positive.")
        if mines < 0:
            raise ValueError("mines must be non-negative.")
        if mines >= rows * cols:
            raise ValueError("mines must leave at least one safe cell.")

        self.rows: int = rows
        self.cols: int = cols
        self.mines: int = mines
        self.cells: List[List[Cell]] = [[Cell() for _ in range(cols)] for _ in range(rows)]
        self.revealed_count: int = 0
        self.lock = threading.RLock()

        self._neighborhoods: Dict[
            Tuple[int, int], Tuple[Tuple[int, int], ...]
        ] = get_neighborhoods(rows, cols)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def neighbors(self, row: int, col: int) -> Tuple[Tuple[int, int], ...]:
        """Return precomputed neighbor coordinates for a cell."""
        return self._neighborhoods[(row, col)]

    def count_neighbor_mines(self, row: int, col: int) -> int:
        return sum(1 for nr, nc in self.neighbors(row, col) if self.cells[nr][nc].is_mine)

    def mine_grid(self) -> np.ndarray:
        """Current mine layout as a boolean array."""
        grid = empty_mine_grid(self.rows, self.cols)
        for r in range(self.rows):
            for c in range(self.cols):
                grid[r, c] = self.cells[r][c].is_mine
        return grid

    def hidden_cells(self) -> List[Tuple[int, int]]:
        return [
            (r, c)
            for r in range(self.rows)
            for c in range(self.cols)
            if not self.cells[r][c].is_revealed
        ]

    def remaining_mines(self) -> int:
        """
        Mines that may still be placed among hidden cells.

        Every mine that does not sit on a revealed cell can move, so this is the
        total budget minus mines already exposed.
        """
        exposed = sum(
            1
            for row in self.cells
            for cell in row
            if cell.is_revealed and cell.is_mine
        )
        return max(0, self.mines - exposed)

    def safe_cells_total(self) -> int:
        return self.rows * self.cols - self.mines

    def is_won(self) -> bool:
        return self.revealed_count == self.safe_cells_total()

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def recount_all(self) -> None:
        """Populate every non-mine cell with its adjacent mine count."""
        for r in range(self.rows):
            for c in range(self.cols):
                if not self.cells[r][c].is_mine:
                    self.cells[r][c].neighbor_mines = self.count_neighbor_mines(r, c)

    def apply_mine_grid(self, grid: np.ndarray) -> Set[Tuple[int, int]]:
        """
        Merge a mine grid into the hidden cells and restore neighbor counts.

        Revealed cells keep their mine status. Every hidden cell whose status
        changed is reported together with its neighbors, and each reported
        non-mine cell is recounted.

        Args:
            grid: Boolean array of shape (rows, cols).

        Returns:
            The set of (row, col) coordinates whose state may have changed.
        """
        if grid.shape != (self.rows, self.cols):
            raise ValueError(
                f"Mine grid shape {grid.shape} does not match board {(self.rows, self.cols)}."
            )

        changed: Set[Tuple[int, int]] = set()
        for r in range(self.rows):
            for c in range(self.cols):
                cell = self.cells[r][c]
                if cell.is_revealed:
                    continue
                new_mine = bool(grid[r, c])
                if cell.is_mine != new_mine:
                    cell.is_mine = new_mine
                    changed.add((r, c))
                    changed.update(self.neighbors(r, c))

        for r, c in changed:
            cell = self.cells[r][c]
            if not cell.is_mine:
                cell.neighbor_mines = self.count_neighbor_mines(r, c)

        logger.debug("Applied mine grid: %d cells changed", len(changed))
        return changed

    def flood_reveal(self, row: int, col: int) -> List[Tuple[int, int]]:
        """
        Reveal (row, col) and spread through zero cells.

        Flagged and mined cells are never opened by the spread.

        Returns:
            Newly revealed cells in reveal order.
        """
        frontier: Deque[Tuple[int, int]] = deque([(row, col)])
        visited: Set[Tuple[int, int]] = {(row, col)}
        revealed: List[Tuple[int, int]] = []

        while frontier:
            cr, cc = frontier.popleft()
            cell = self.cells[cr][cc]
            if cell.is_revealed:
                continue

            cell.is_revealed = True
            self.revealed_count += 1
            revealed.append((cr, cc))

            if cell.is_mine or cell.neighbor_mines != 0:
                continue

            for nr, nc in self.neighbors(cr, cc):
                if (nr, nc) in visited:
                    continue
                nbr = self.cells[nr][nc]
                if nbr.is_revealed or nbr.is_flagged or nbr.is_mine:
                    continue
                visited.add((nr, nc))
                frontier.append((nr, nc))

        return revealed
