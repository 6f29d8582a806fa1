import random

import numpy as np
import pytest

from fairsweeper.boundary import BoundaryMap
from fairsweeper.config import EngineConfig
from fairsweeper.generator import open_region
from fairsweeper.sat import SearchBudget
from fairsweeper.solver import CellHint, ConstraintSolver, HintType, make_solver
from fairsweeper.utils import neighbor_mine_counts


def _budget() -> SearchBudget:
    return SearchBudget(max_steps=200_000, time_limit=30.0)


def _random_opened_map(seed: int, rows: int, cols: int, mines: int) -> BoundaryMap:
    rng = random.Random(seed)
    grid = np.zeros(rows * cols, dtype=bool)
    grid[np.array(rng.sample(range(rows * cols), mines), dtype=int)] = True
    grid = grid.reshape(rows, cols)
    safe = [tuple(int(v) for v in pos) for pos in np.argwhere(~grid)]
    opening = rng.choice(safe)
    return BoundaryMap.from_labels(rows, cols, open_region(grid, opening))


def test_two_hidden_neighbors_of_a_two_are_mines():
    bmap = BoundaryMap.from_labels(1, 3, [(0, 1, 2)])
    solver = make_solver(bmap, 2, _budget())
    assert solver.classification.hints() == [
        CellHint(0, 0, HintType.MINE),
        CellHint(0, 2, HintType.MINE),
    ]
    assert not solver.has_safe_cells()


def test_zero_label_neighbors_are_safe():
    bmap = BoundaryMap.from_labels(3, 5, [(1, 1, 0)])
    solver = make_solver(bmap, 1, _budget())
    hints = solver.classification.hints()
    assert len(hints) == 8
    assert all(h.kind is HintType.SAFE for h in hints)
    assert solver.has_safe_cells()
    assert solver.classification.safe_cells() == bmap.frontier


def test_undecided_pair():
    bmap = BoundaryMap.from_labels(1, 4, [(0, 1, 1)])
    solver = make_solver(bmap, 1, _budget())
    assert solver.can_be_safe == [True, True]
    assert solver.can_be_dangerous == [True, True]
    assert not solver.has_safe_cells()
    assert solver.has_non_deadly_cells()
    assert [h.kind for h in solver.classification.hints()] == [HintType.UNKNOWN] * 2


def test_global_budget_decides_frontier():
    # One mine in total and a 1 next to two cells: the outside cell must be empty
    bmap = BoundaryMap.from_labels(1, 4, [(0, 1, 1)])
    solver = make_solver(bmap, 1, _budget())
    assert solver.outside_is_safe()

    # Two mines: one of them has to sit outside
    bmap = BoundaryMap.from_labels(1, 4, [(0, 1, 1)])
    solver = make_solver(bmap, 2, _budget())
    assert not solver.outside_is_safe()
    assert not solver.outside_can_be_safe()


def test_combined_labels_prove_a_safe_cell():
    # A row of 1s over a hidden row: the 1-1 pattern at each wall clears the inner cells
    labels = [(0, 0, 1), (0, 1, 1), (0, 2, 1), (0, 3, 1)]
    bmap = BoundaryMap.from_labels(2, 4, labels)
    solver = make_solver(bmap, 2, _budget())
    kinds = {pos: solver.classification.kind(i) for i, pos in enumerate(bmap.frontier)}
    assert kinds[(1, 2)] is HintType.SAFE
    assert kinds[(1, 1)] is HintType.SAFE
    assert kinds[(1, 0)] is HintType.MINE
    assert kinds[(1, 3)] is HintType.MINE


def test_every_frontier_cell_is_safe_or_dangerous():
    for seed in range(10):
        bmap = _random_opened_map(seed, 5, 5, 5)
        solver = make_solver(bmap, 5, _budget())
        assert solver.classification.is_consistent()
        assert len(solver.classification.hints()) == len(bmap.frontier)


@pytest.mark.parametrize("seed", range(12))
def test_matches_exhaustive_enumeration(seed, brute_force):
    bmap = _random_opened_map(seed, 3, 4, 3)
    expected = brute_force(bmap, 3)
    assert expected is not None

    solver = make_solver(bmap, 3, _budget())
    assert solver.can_be_safe == expected[0]
    assert solver.can_be_dangerous == expected[1]


def test_run_is_repeatable_on_the_same_map():
    bmap = _random_opened_map(3, 5, 5, 6)
    first = make_solver(bmap, 6, _budget()).classification
    second = make_solver(bmap, 6, _budget()).classification
    assert first == second


def test_forced_cells_are_cached_after_run():
    labels = [(0, 0, 1), (0, 1, 1), (0, 2, 1), (0, 3, 1)]
    bmap = BoundaryMap.from_labels(2, 4, labels)
    make_solver(bmap, 2, _budget())
    assert bmap.cached(bmap.boundary_index(1, 1)) is False
    assert bmap.cached(bmap.boundary_index(1, 0)) is True


def test_contradictory_labels_classify_nothing():
    bmap = BoundaryMap.from_labels(1, 3, [(0, 1, 3)])
    solver = make_solver(bmap, 2, _budget())
    assert not solver.classification.is_consistent()
    assert solver.classification.hints() == []
    assert solver.any_shape() is None


def test_shape_grid_respects_labels_and_budget(rng):
    for seed in range(8):
        bmap = _random_opened_map(seed, 6, 6, 7)
        solver = make_solver(bmap, 7, _budget())
        shape = solver.any_shape()
        assert shape is not None

        grid = shape.mine_grid(rng)
        assert grid.sum() == 7
        counts = neighbor_mine_counts(grid)
        for r, c, label in bmap.revealed_labels():
            assert not grid[r, c]
            assert counts[r, c] == label


def test_shape_with_outside_cell_mined_or_empty(rng):
    bmap = BoundaryMap.from_labels(1, 5, [(0, 1, 1)])
    solver = make_solver(bmap, 2, _budget())

    shape = solver.any_shape_with_remaining()
    assert shape is not None
    grid = shape.mine_grid_with_mine(0, 4, rng)
    assert grid[0, 4]
    assert grid.sum() == 2

    shape = solver.any_shape_with_one_empty()
    assert shape is not None
    grid = shape.mine_grid_with_empty(0, 3, rng)
    assert not grid[0, 3]
    assert grid.sum() == 2


def test_safe_and_dangerous_shapes():
    bmap = BoundaryMap.from_labels(1, 4, [(0, 1, 1)])
    solver = make_solver(bmap, 1, _budget())
    safe = solver.any_safe_shape(0)
    dangerous = solver.any_dangerous_shape(0)
    assert safe is not None and not safe.mines[0]
    assert dangerous is not None and dangerous.mines[0]
    assert dangerous.remaining == 0


def test_solver_without_labels_accepts_any_outside_layout():
    bmap = BoundaryMap(3, 3)
    solver = ConstraintSolver(bmap, 0, 4, _budget())
    classification = solver.run()
    assert classification.frontier == ()
    assert solver.outside_can_be_safe()
    assert not solver.outside_is_safe()


def _expert_midgame(seed: int):
    """Expert-sized layout with every zero region opened, as after several openings."""
    rng = random.Random(seed)
    rows, cols, mines = 16, 30, 99
    grid = np.zeros(rows * cols, dtype=bool)
    grid[np.array(rng.sample(range(rows * cols), mines), dtype=int)] = True
    grid = grid.reshape(rows, cols)
    counts = neighbor_mine_counts(grid)

    labels = {}
    for r in range(rows):
        for c in range(cols):
            if not grid[r, c] and counts[r, c] == 0 and (r, c) not in labels:
                for nr, nc, label in open_region(grid, (r, c)):
                    labels[(nr, nc)] = label
    triples = [(r, c, label) for (r, c), label in labels.items()]
    return BoundaryMap.from_labels(rows, cols, triples), grid


@pytest.mark.parametrize("seed", range(3))
def test_expert_midgame_fits_default_budget(seed):
    bmap, grid = _expert_midgame(seed)
    assert len(bmap.frontier) > 50

    budget = SearchBudget.from_config(EngineConfig(_env_file=None))
    solver = make_solver(bmap, 99, budget)

    classification = solver.classification
    assert classification.is_consistent()
    for i, (r, c) in enumerate(bmap.frontier):
        # The real layout is always one of the consistent ones
        if grid[r, c]:
            assert classification.can_be_dangerous[i]
        else:
            assert classification.can_be_safe[i]
    assert budget.steps < budget.max_steps


def test_components_are_solved_independently():
    # Two clues far apart share no cell, so they land in separate components
    bmap = BoundaryMap.from_labels(1, 9, [(0, 1, 1), (0, 7, 1)])
    solver = make_solver(bmap, 2, _budget())
    assert len(solver.components) == 2
    assert solver.counted is None
    assert [h.kind for h in solver.classification.hints()] == [HintType.UNKNOWN] * 4


def test_global_bound_builds_the_counter_only_when_needed():
    # Two separate 1-clues but only one mine in total: each needs the other's cell empty
    bmap = BoundaryMap.from_labels(1, 9, [(0, 1, 1), (0, 7, 1)])
    solver = make_solver(bmap, 1, _budget())
    assert solver.counted is not None
    assert solver.any_shape() is None
    assert not solver.classification.is_consistent()
