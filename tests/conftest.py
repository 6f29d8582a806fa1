import itertools
import random
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from fairsweeper.board import Board
from fairsweeper.boundary import BoundaryMap
from fairsweeper.config import EngineConfig


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def cfg() -> EngineConfig:
    return EngineConfig(
        solver_max_steps=200_000,
        solver_time_budget=30.0,
        generator_max_attempts=200,
        max_hints=3,
    )


@pytest.fixture
def make_board() -> Callable[..., Board]:
    """
    Build a board from rows of characters.

    '*' hidden mine, '.' hidden safe cell, 'o' revealed safe cell, 'F' flagged
    safe cell, 'X' flagged mine. Labels are recounted from the layout.
    """

    def build(layout: Sequence[str], mines: Optional[int] = None) -> Board:
        rows, cols = len(layout), len(layout[0])
        placed = sum(line.count("*") + line.count("X") for line in layout)
        board = Board(rows, cols, placed if mines is None else mines)
        for r, line in enumerate(layout):
            for c, ch in enumerate(line):
                cell = board.cells[r][c]
                cell.is_mine = ch in "*X"
                cell.is_flagged = ch in "FX"
                if ch == "o":
                    cell.is_revealed = True
                    board.revealed_count += 1
        board.recount_all()
        return board

    return build


@pytest.fixture
def brute_force() -> Callable[[BoundaryMap, int], Optional[Tuple[List[bool], List[bool]]]]:
    """
    Enumerate every layout of `mines` mines over the hidden cells of a map.

    Returns (can_be_safe, can_be_dangerous) per frontier index, or None if no
    layout matches the revealed labels.
    """

    def classify(bmap: BoundaryMap, mines: int) -> Optional[Tuple[List[bool], List[bool]]]:
        hidden = bmap.frontier + bmap.outside_cells()
        labels = list(bmap.revealed_labels())
        can_be_safe = [False] * len(bmap.frontier)
        can_be_dangerous = [False] * len(bmap.frontier)
        found = False

        for combo in itertools.combinations(hidden, mines):
            placed = set(combo)
            if any(
                sum(1 for nbr in bmap.neighbors(r, c) if nbr in placed) != label
                for r, c, label in labels
            ):
                continue
            found = True
            for i, pos in enumerate(bmap.frontier):
                if pos in placed:
                    can_be_dangerous[i] = True
                else:
                    can_be_safe[i] = True

        return (can_be_safe, can_be_dangerous) if found else None

    return classify
