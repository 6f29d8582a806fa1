"""Revealed labels, the hidden frontier around them and trivially forced cells."""

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from .utils import get_neighborhoods

if TYPE_CHECKING:
    from .board import Board

logger = logging.getLogger(__name__)

HIDDEN = -1


class BoundaryMap:
    """
    Labels of revealed cells and the frontier of hidden cells next to them.

    Frontier cells are numbered in discovery order (row-major over revealed
    cells, then row-major over their neighbors). Frontier index i is SAT
    variable i + 1. Indices are only meaningful for the map that produced them.

    The forced-value cache holds True (forced mine) or False (forced safe) per
    hidden cell; it is filled by trivial deductions during recompute and by
    ConstraintSolver.run().
    """

    def __init__(self, rows: int, cols: int) -> None:
        if rows <= 0 or cols <= 0:
            raise ValueError("rows and cols must be positive.")

        self.rows: int = rows
        self.cols: int = cols
        self._neighborhoods: Dict[
            Tuple[int, int], Tuple[Tuple[int, int], ...]
        ] = get_neighborhoods(rows, cols)

        self._labels: List[List[int]] = [[HIDDEN] * cols for _ in range(rows)]
        self._index: List[List[int]] = [[-1] * cols for _ in range(rows)]
        self._cache: Dict[Tuple[int, int], bool] = {}
        self.frontier: List[Tuple[int, int]] = []
        self.revealed_count: int = 0
        self.outside_count: int = rows * cols

    @classmethod
    def from_labels(
        cls, rows: int, cols: int, labels: Iterable[Tuple[int, int, int]]
    ) -> "BoundaryMap":
        """Build a map from (row, col, label) triples with a single recompute."""
        bmap = cls(rows, cols)
        for row, col, label in labels:
            if bmap.in_bounds(row, col):
                bmap._labels[row][col] = label
        bmap.recompute()
        return bmap

    @classmethod
    def from_board(cls, board: "Board") -> "BoundaryMap":
        """Build a map from every revealed cell of a board."""
        return cls.from_labels(
            board.rows,
            board.cols,
            (
                (r, c, board.cells[r][c].neighbor_mines)
                for r in range(board.rows)
                for c in range(board.cols)
                if board.cells[r][c].is_revealed
            ),
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def neighbors(self, row: int, col: int) -> Tuple[Tuple[int, int], ...]:
        return self._neighborhoods[(row, col)]

    def label(self, row: int, col: int) -> int:
        """Revealed label of a cell, or -1 if hidden or out of range."""
        if not self.in_bounds(row, col):
            return HIDDEN
        return self._labels[row][col]

    def revealed_labels(self) -> Iterable[Tuple[int, int, int]]:
        """Yield (row, col, label) for every revealed cell in row-major order."""
        for r in range(self.rows):
            for c in range(self.cols):
                if self._labels[r][c] != HIDDEN:
                    yield r, c, self._labels[r][c]

    def boundary_index(self, row: int, col: int) -> int:
        """Frontier index of a cell, or -1 if it is not on the frontier."""
        if not self.in_bounds(row, col):
            return -1
        return self._index[row][col]

    def position(self, index: int) -> Tuple[int, int]:
        return self.frontier[index]

    def is_outside(self, row: int, col: int) -> bool:
        """True for hidden cells that are not on the frontier."""
        return self._labels[row][col] == HIDDEN and self._index[row][col] == -1

    def outside_cells(self) -> List[Tuple[int, int]]:
        return [
            (r, c)
            for r in range(self.rows)
            for c in range(self.cols)
            if self.is_outside(r, c)
        ]

    # -------------------------------------------------------------------------
    # Forced-value cache
    # -------------------------------------------------------------------------

    def cached(self, index: int) -> Optional[bool]:
        """Forced value of a frontier cell: True mine, False safe, None unknown."""
        if not 0 <= index < len(self.frontier):
            return None
        return self._cache.get(self.frontier[index])

    def set_cached(self, index: int, value: bool) -> None:
        if not 0 <= index < len(self.frontier):
            return
        self._cache[self.frontier[index]] = value

    def reset_cache(self) -> None:
        """Forget every forced classification."""
        self._cache.clear()

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def set_label(self, row: int, col: int, count: int) -> None:
        """Mark a cell revealed with its neighbor-mine count and recompute the frontier."""
        if not self.in_bounds(row, col):
            return
        self._labels[row][col] = count
        self._cache.pop((row, col), None)
        self.recompute()

    def recompute(self) -> None:
        """Rebuild the frontier, its index grid and the trivially forced cells."""
        self.frontier = []
        for r in range(self.rows):
            for c in range(self.cols):
                self._index[r][c] = -1

        revealed = 0
        forced_mines = 0
        forced_safes = 0

        for r in range(self.rows):
            for c in range(self.cols):
                label = self._labels[r][c]
                if label == HIDDEN:
                    continue
                revealed += 1

                hidden: List[Tuple[int, int]] = []
                for nr, nc in self.neighbors(r, c):
                    if self._labels[nr][nc] != HIDDEN:
                        continue
                    if self._index[nr][nc] == -1:
                        self._index[nr][nc] = len(self.frontier)
                        self.frontier.append((nr, nc))
                    hidden.append((nr, nc))

                if not hidden:
                    continue

                # As many hidden neighbors as the label: all of them are mines
                if len(hidden) == label:
                    for pos in hidden:
                        if pos not in self._cache:
                            self._cache[pos] = True
                            forced_mines += 1
                # A zero label: all hidden neighbors are safe
                elif label == 0:
                    for pos in hidden:
                        if pos not in self._cache:
                            self._cache[pos] = False
                            forced_safes += 1

        self.revealed_count = revealed
        self.outside_count = self.rows * self.cols - revealed - len(self.frontier)

        logger.debug(
            "Boundary recomputed: %d revealed, %d frontier, %d outside, "
            "%d forced mines, %d forced safes",
            revealed,
            len(self.frontier),
            self.outside_count,
            forced_mines,
            forced_safes,
        )
