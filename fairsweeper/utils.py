"""Grid helpers shared by the board, the boundary map and the generator."""

from functools import lru_cache
from typing import Dict, Tuple

import numpy as np

Pos = Tuple[int, int]

# 8-connectivity in row-major order
NEIGHBOR_OFFSETS: Tuple[Pos, ...] = tuple(
    (dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)
)


@lru_cache(maxsize=None)
def _neighborhoods(rows: int, cols: int) -> Dict[Pos, Tuple[Pos, ...]]:
    return {
        (r, c): tuple(
            (r + dr, c + dc)
            for dr, dc in NEIGHBOR_OFFSETS
            if 0 <= r + dr < rows and 0 <= c + dc < cols
        )
        for r in range(rows)
        for c in range(cols)
    }


def get_neighborhoods(rows: int, cols: int) -> Dict[Pos, Tuple[Pos, ...]]:
    """
    Neighbor table of a rows x cols grid, shared by every caller with that size.

    Args:
        rows: Number of grid rows. Must be positive.
        cols: Number of grid columns. Must be positive.

    Returns:
        Mapping from (row, col) to its in-bounds neighbors, in row-major order.
        The mapping is cached per grid size and must not be mutated.

    Raises:
        ValueError: If rows or cols is non-positive.
    """
    if rows <= 0 or cols <= 0:
        raise ValueError("rows and cols must be positive.")
    return _neighborhoods(rows, cols)


def empty_mine_grid(rows: int, cols: int) -> np.ndarray:
    """Return an all-False boolean grid of shape (rows, cols)."""
    return np.zeros((rows, cols), dtype=bool)


def neighbor_mine_counts(mine_grid: np.ndarray) -> np.ndarray:
    """
    Count mined 8-neighbors for every cell of a boolean mine grid.

    Args:
        mine_grid: Boolean array of shape (rows, cols).

    Returns:
        Integer array of the same shape. Mined cells get the count of their
        mined neighbors too; callers ignore those entries.
    """
    grid = np.asarray(mine_grid, dtype=np.int8)
    rows, cols = grid.shape
    padded = np.pad(grid, 1)
    counts = np.zeros((rows, cols), dtype=np.int8)
    for dr, dc in NEIGHBOR_OFFSETS:
        counts += padded[1 + dr : 1 + dr + rows, 1 + dc : 1 + dc + cols]
    return counts
