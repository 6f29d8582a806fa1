"""Frontier classification and mine-shape queries on top of the SAT layer."""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence, Set, Tuple

import numpy as np

from .boundary import BoundaryMap
from .sat import (
    Clause,
    Literal,
    SatSolver,
    SearchBudget,
    counter_at_least_clauses,
    counter_at_most_clauses,
)
from .utils import empty_mine_grid

logger = logging.getLogger(__name__)


class HintType(str, Enum):
    """Classification of a frontier cell shown in hint overlays."""

    SAFE = "SAFE"
    MINE = "MINE"
    UNKNOWN = "UNKNOWN"


class CellHint(NamedTuple):
    row: int
    col: int
    kind: HintType


@dataclass(frozen=True)
class Classification:
    """
    Result of ConstraintSolver.run(): what every frontier cell can still be.

    Entry i of each tuple refers to frontier[i].
    """

    frontier: Tuple[Tuple[int, int], ...]
    can_be_safe: Tuple[bool, ...]
    can_be_dangerous: Tuple[bool, ...]

    def kind(self, index: int) -> Optional[HintType]:
        """Hint type of a frontier cell, or None if it can be neither (inconsistent board)."""
        safe = self.can_be_safe[index]
        dangerous = self.can_be_dangerous[index]
        if safe and dangerous:
            return HintType.UNKNOWN
        if dangerous:
            return HintType.MINE
        if safe:
            return HintType.SAFE
        return None

    def hints(self) -> List[CellHint]:
        """(row, col, kind) for every frontier cell with a consistent classification."""
        out: List[CellHint] = []
        for i, (r, c) in enumerate(self.frontier):
            kind = self.kind(i)
            if kind is None:
                logger.warning("Frontier cell (%d, %d) can be neither safe nor a mine", r, c)
                continue
            out.append(CellHint(r, c, kind))
        return out

    def has_safe_cells(self) -> bool:
        return not all(self.can_be_dangerous)

    def has_non_deadly_cells(self) -> bool:
        return any(self.can_be_safe)

    def is_consistent(self) -> bool:
        return all(s or d for s, d in zip(self.can_be_safe, self.can_be_dangerous))

    def safe_cells(self) -> List[Tuple[int, int]]:
        return [pos for i, pos in enumerate(self.frontier) if not self.can_be_dangerous[i]]


class MineShape:
    """One satisfying frontier assignment plus the number of mines left for the outside."""

    def __init__(self, bmap: BoundaryMap, mines: Sequence[bool], remaining: int) -> None:
        self.boundary = bmap
        self.mines: List[bool] = list(mines)
        self.remaining: int = remaining

    def mine_grid(self, rng: random.Random) -> np.ndarray:
        """Full grid: frontier from the assignment, outside mines spread uniformly."""
        return self._materialize(rng, None, False)

    def mine_grid_with_mine(self, row: int, col: int, rng: random.Random) -> np.ndarray:
        """Full grid where the outside cell (row, col) takes one of the remaining mines."""
        return self._materialize(rng, (row, col), True)

    def mine_grid_with_empty(self, row: int, col: int, rng: random.Random) -> np.ndarray:
        """Full grid where the outside cell (row, col) is kept free of mines."""
        return self._materialize(rng, (row, col), False)

    def _materialize(
        self,
        rng: random.Random,
        except_pos: Optional[Tuple[int, int]],
        except_is_mine: bool,
    ) -> np.ndarray:
        bmap = self.boundary
        grid = empty_mine_grid(bmap.rows, bmap.cols)

        for i, (r, c) in enumerate(bmap.frontier):
            if i < len(self.mines) and self.mines[i]:
                grid[r, c] = True

        remaining = self.remaining
        if remaining <= 0:
            return grid

        candidates = [pos for pos in bmap.outside_cells() if pos != except_pos]
        if except_pos is not None and except_is_mine:
            grid[except_pos] = True
            remaining -= 1

        if remaining > len(candidates):
            logger.warning(
                "Shape leaves %d mines for %d outside cells", remaining, len(candidates)
            )
            remaining = len(candidates)

        for r, c in rng.sample(candidates, remaining):
            grid[r, c] = True
        return grid


class ConstraintSolver:
    """
    Decide which frontier cells can be safe and which can hold a mine.

    Clue constraints come from add_label(); the number of mines on the frontier
    is bounded by [min_mines, max_mines]. Cached forced values from the
    boundary map are folded into the clues and never tested.

    Uncached cells are split into components linked by shared clues, each
    with its own small SAT instance. A per-cell query only re-solves the
    component it touches. The global bound needs the merging counter over the whole
    frontier only when a combined witness breaks it, so that instance is
    built on demand.
    """

    def __init__(
        self,
        bmap: BoundaryMap,
        min_mines: int,
        max_mines: int,
        budget: Optional[SearchBudget] = None,
    ) -> None:
        self.boundary = bmap
        self.num_vars: int = len(bmap.frontier)
        self.min_mines: int = min_mines
        self.max_mines: int = max_mines
        self.budget: SearchBudget = budget or SearchBudget.from_config()

        self._labels: List[Tuple[int, List[int]]] = []

        self.cache: List[Optional[bool]] = [bmap.cached(i) for i in range(self.num_vars)]
        self.uncached: List[int] = [i for i, v in enumerate(self.cache) if v is None]
        self.cached_mines: int = sum(1 for v in self.cache if v)

        # (frontier indices, instance over local variables 1..len) per component
        self.components: List[Tuple[List[int], SatSolver]] = []
        self._component_of: Dict[int, int] = {}
        self._local: Dict[int, int] = {}
        self._base: Optional[List[List[bool]]] = None
        self._base_ready = False
        self._inconsistent = False

        self.counted: Optional[SatSolver] = None
        self.counter: List[int] = []

        self.can_be_safe: List[bool] = [False] * self.num_vars
        self.can_be_dangerous: List[bool] = [False] * self.num_vars
        self._encoded = False

    def add_label(self, label: int, indices: Sequence[int]) -> None:
        """Record a revealed clue over the frontier indices of its hidden neighbors."""
        self._labels.append((label, list(indices)))

    # -------------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------------

    def _residual(self, label: int, indices: Sequence[int]) -> Tuple[int, List[int]]:
        """Label minus cached mines, and the uncached indices it still constrains."""
        adjusted = label - sum(1 for i in indices if self.cache[i] is True)
        return adjusted, [i for i in indices if self.cache[i] is None]

    def _split_components(self) -> List[List[int]]:
        """Partition uncached frontier indices into groups connected by shared clues."""
        clues_of: Dict[int, List[int]] = {i: [] for i in self.uncached}
        for k, (_, indices) in enumerate(self._labels):
            for i in indices:
                if self.cache[i] is None:
                    clues_of[i].append(k)

        seen: Set[int] = set()
        groups: List[List[int]] = []
        for first in self.uncached:
            if first in seen:
                continue
            seen.add(first)
            stack = [first]
            group: List[int] = []
            while stack:
                i = stack.pop()
                group.append(i)
                for k in clues_of[i]:
                    for j in self._labels[k][1]:
                        if self.cache[j] is None and j not in seen:
                            seen.add(j)
                            stack.append(j)
            groups.append(sorted(group))
        return groups

    def _encode(self) -> None:
        if self._encoded:
            return
        self._encoded = True

        for n, group in enumerate(self._split_components()):
            for j, i in enumerate(group):
                self._component_of[i] = n
                self._local[i] = j + 1
            self.components.append((group, SatSolver(len(group), self.budget)))

        for label, indices in self._labels:
            adjusted, free = self._residual(label, indices)
            if not free:
                if adjusted != 0:
                    self._inconsistent = True
                continue
            sat = self.components[self._component_of[free[0]]][1]
            variables = [self._local[i] for i in free]
            sat.assert_at_least(variables, adjusted)
            sat.assert_at_most(variables, adjusted)

        logger.debug(
            "Encoded %d frontier vars (%d uncached) into %d components",
            self.num_vars,
            len(self.uncached),
            len(self.components),
        )

    def _counted_solver(self) -> SatSolver:
        """Whole-frontier instance with a mine counter over the uncached cells."""
        if self.counted is None:
            counted = SatSolver(self.num_vars, self.budget)
            for label, indices in self._labels:
                adjusted, free = self._residual(label, indices)
                variables = [i + 1 for i in free]
                counted.assert_at_least(variables, adjusted)
                counted.assert_at_most(variables, adjusted)
            for i, value in enumerate(self.cache):
                if value is not None:
                    counted.assert_clause((Literal(i + 1, value),))
            if self.uncached:
                self.counter = counted.add_counter([i + 1 for i in self.uncached])
            logger.debug(
                "Built mine counter: %d vars / %d clauses",
                counted.num_vars,
                len(counted.clauses),
            )
            self.counted = counted
        return self.counted

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _base_solutions(self) -> Optional[List[List[bool]]]:
        if not self._base_ready:
            self._base_ready = True
            solutions: List[List[bool]] = []
            for _, sat in self.components:
                solution = sat.solve()
                if solution is None:
                    return None
                solutions.append(solution)
            self._base = solutions
        return self._base

    def _assemble(self, solutions: List[List[bool]]) -> List[bool]:
        witness = [False] * (self.num_vars + 1)
        for i, value in enumerate(self.cache):
            if value:
                witness[i + 1] = True
        for (group, _), solution in zip(self.components, solutions):
            for j, i in enumerate(group):
                witness[i + 1] = solution[j + 1]
        return witness

    def _query(
        self, units: Sequence[Literal], at_least: int = 0, at_most: Optional[int] = None
    ) -> Optional[List[bool]]:
        """
        Find a frontier assignment that satisfies the given unit literals.

        Args:
            units: Literals over frontier variables (index + 1).
            at_least: Extra lower bound on the number of uncached mines.
            at_most: Extra upper bound on the number of uncached mines.

        Returns:
            A witness indexed like SatSolver.solve_with(), or None.
        """
        self._encode()
        if self._inconsistent:
            return None

        low = max(self.min_mines - self.cached_mines, at_least)
        high = self.max_mines - self.cached_mines
        if at_most is not None:
            high = min(high, at_most)

        base = self._base_solutions()
        if base is None:
            return None

        touched: Dict[int, List[Clause]] = {}
        for lit in units:
            i = lit.var - 1
            if self.cache[i] is not None:
                if self.cache[i] != lit.positive:
                    return None
                continue
            touched.setdefault(self._component_of[i], []).append(
                (Literal(self._local[i], lit.positive),)
            )

        solutions = list(base)
        for n, extra in touched.items():
            solution = self.components[n][1].solve_with(extra)
            if solution is None:
                return None
            solutions[n] = solution

        witness = self._assemble(solutions)
        placed = sum(1 for i in self.uncached if witness[i + 1])
        if low <= placed <= high:
            return witness

        counted = self._counted_solver()
        clauses: List[Clause] = [(lit,) for lit in units]
        clauses.extend(counter_at_least_clauses(self.counter, low))
        clauses.extend(counter_at_most_clauses(self.counter, high))
        return counted.solve_with(clauses)

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def _observe(self, witness: List[bool]) -> None:
        for i in self.uncached:
            if witness[i + 1]:
                self.can_be_dangerous[i] = True
            else:
                self.can_be_safe[i] = True

    def run(self) -> Classification:
        """
        Classify every frontier cell by testing both polarities.

        Witnesses found along the way are merged into can_be_safe /
        can_be_dangerous, so a polarity already seen is not tested again.
        Cells that resolve to a single polarity are written back into the
        boundary map cache.

        Raises:
            SolverBudgetExceeded: If the search budget runs out.
        """
        self._encode()

        for i, value in enumerate(self.cache):
            if value is not None:
                self.can_be_safe[i] = not value
                self.can_be_dangerous[i] = value

        if self.uncached:
            witness = self._query(())
            if witness is None:
                logger.warning(
                    "Constraints over %d frontier cells are unsatisfiable", self.num_vars
                )
                return self.classification
            self._observe(witness)

        for i in self.uncached:
            if not self.can_be_safe[i]:
                witness = self._query((Literal(i + 1, False),))
                if witness is not None:
                    self._observe(witness)

            if not self.can_be_dangerous[i]:
                witness = self._query((Literal(i + 1),))
                if witness is not None:
                    self._observe(witness)

            if self.can_be_dangerous[i] and not self.can_be_safe[i]:
                self.cache[i] = True
                self.boundary.set_cached(i, True)
            elif self.can_be_safe[i] and not self.can_be_dangerous[i]:
                self.cache[i] = False
                self.boundary.set_cached(i, False)

        logger.debug(
            "Classified %d frontier cells in %d search steps",
            self.num_vars,
            self.budget.steps,
        )
        return self.classification

    @property
    def classification(self) -> Classification:
        return Classification(
            frontier=tuple(self.boundary.frontier),
            can_be_safe=tuple(self.can_be_safe),
            can_be_dangerous=tuple(self.can_be_dangerous),
        )

    def can_be_safe_at(self, index: int) -> bool:
        return 0 <= index < self.num_vars and self.can_be_safe[index]

    def can_be_dangerous_at(self, index: int) -> bool:
        return 0 <= index < self.num_vars and self.can_be_dangerous[index]

    def has_safe_cells(self) -> bool:
        """True if some frontier cell can never hold a mine."""
        return not all(self.can_be_dangerous)

    def has_non_deadly_cells(self) -> bool:
        """True if some frontier cell can be safe."""
        return any(self.can_be_safe)

    # -------------------------------------------------------------------------
    # Outside-region queries
    # -------------------------------------------------------------------------

    def _leaves_remaining(self) -> int:
        # At most max - 1 mines on the frontier: at least one mine is left outside
        return self.max_mines - self.cached_mines - 1

    def _leaves_one_empty(self) -> int:
        # Enough frontier mines that the outside is not completely filled
        need = self.max_mines - self.boundary.outside_count + 1
        return need - self.cached_mines

    def outside_is_safe(self) -> bool:
        """True if every remaining mine is forced onto the frontier."""
        return self._query((), at_most=self._leaves_remaining()) is None

    def outside_can_be_safe(self) -> bool:
        """True if some consistent shape leaves at least one outside cell empty."""
        return self._query((), at_least=self._leaves_one_empty()) is not None

    # -------------------------------------------------------------------------
    # Shapes
    # -------------------------------------------------------------------------

    def _shape(self, witness: Optional[List[bool]]) -> Optional[MineShape]:
        if witness is None:
            return None
        mines = [witness[i + 1] for i in range(self.num_vars)]
        return MineShape(self.boundary, mines, self.max_mines - sum(mines))

    def any_shape(self) -> Optional[MineShape]:
        return self._shape(self._query(()))

    def any_safe_shape(self, index: int) -> Optional[MineShape]:
        """A shape with frontier cell `index` free of mines."""
        return self._shape(self._query((Literal(index + 1, False),)))

    def any_dangerous_shape(self, index: int) -> Optional[MineShape]:
        """A shape with a mine on frontier cell `index`."""
        return self._shape(self._query((Literal(index + 1),)))

    def any_shape_with_one_empty(self) -> Optional[MineShape]:
        """A shape that leaves at least one outside cell without a mine."""
        return self._shape(self._query((), at_least=self._leaves_one_empty()))

    def any_shape_with_remaining(self) -> Optional[MineShape]:
        """A shape that leaves at least one mine for the outside."""
        return self._shape(self._query((), at_most=self._leaves_remaining()))


def make_solver(
    bmap: BoundaryMap, max_mines: int, budget: Optional[SearchBudget] = None
) -> ConstraintSolver:
    """
    Build a solver from every revealed label of a boundary map and run it.

    Args:
        bmap: Boundary map of the current board.
        max_mines: Mines still to be placed among hidden cells.
        budget: Search budget; defaults to the configured one.

    Returns:
        The solver after run(); its classification is available.

    Raises:
        SolverBudgetExceeded: If the search budget runs out.
    """
    min_mines = max(0, max_mines - bmap.outside_count)
    solver = ConstraintSolver(bmap, min_mines, max_mines, budget)

    for r, c, label in bmap.revealed_labels():
        indices = [
            bmap.boundary_index(nr, nc)
            for nr, nc in bmap.neighbors(r, c)
            if bmap.boundary_index(nr, nc) != -1
        ]
        if indices:
            solver.add_label(label, indices)

    solver.run()
    return solver
