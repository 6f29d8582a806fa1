"""Small DPLL satisfiability solver with cardinality constraint helpers."""

import itertools
import logging
import time
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .config import EngineConfig
from .config import config as default_config

logger = logging.getLogger(__name__)


class Literal(NamedTuple):
    """A boolean variable (1-based) together with the polarity it is asserted in."""

    var: int
    positive: bool = True

    def __neg__(self) -> "Literal":
        return Literal(self.var, not self.positive)

    def __str__(self) -> str:
        return str(self.var) if self.positive else f"-{self.var}"


Clause = Tuple[Literal, ...]

# assignment[var] -> None (unassigned), True or False; index 0 unused
Assignment = List[Optional[bool]]

CONTRADICTION: Clause = ()


class SolverBudgetExceeded(RuntimeError):
    """Raised when a search runs past its step or wall-clock budget."""


class SearchBudget:
    """Decision-step and wall-clock allowance shared by every search of one computation."""

    # Check the clock only every N steps
    _CLOCK_EVERY = 32

    def __init__(self, max_steps: int, time_limit: float) -> None:
        self.max_steps = max_steps
        self.time_limit = time_limit
        self.steps = 0
        self._deadline = time.monotonic() + time_limit

    @classmethod
    def from_config(cls, cfg: Optional[EngineConfig] = None) -> "SearchBudget":
        cfg = cfg or default_config
        return cls(cfg.solver_max_steps, cfg.solver_time_budget)

    def tick(self) -> None:
        """Account for one search step, raising SolverBudgetExceeded when exhausted."""
        self.steps += 1
        if self.steps > self.max_steps:
            raise SolverBudgetExceeded(
                f"Search exceeded {self.max_steps} decision steps."
            )
        if self.steps % self._CLOCK_EVERY == 0 and time.monotonic() > self._deadline:
            raise SolverBudgetExceeded(
                f"Search exceeded {self.time_limit:.2f}s after {self.steps} steps."
            )


# -----------------------------------------------------------------------------
# Clause builders
# -----------------------------------------------------------------------------


def at_least_clauses(variables: Sequence[int], k: int) -> List[Clause]:
    """
    Encode "at least k of variables are true" by pigeonhole.

    Every subset of size len(variables) - k + 1 must contain a true variable.
    The number of clauses is binomial, so this is only meant for the at most
    8 neighbors of a single clue.
    """
    if k <= 0:
        return []
    if k > len(variables):
        return [CONTRADICTION]
    size = len(variables) - k + 1
    return [
        tuple(Literal(v) for v in subset)
        for subset in itertools.combinations(variables, size)
    ]


def at_most_clauses(variables: Sequence[int], k: int) -> List[Clause]:
    """Encode "at most k of variables are true": every (k+1)-subset has a false variable."""
    if k < 0:
        return [CONTRADICTION]
    if k >= len(variables):
        return []
    return [
        tuple(Literal(v, False) for v in subset)
        for subset in itertools.combinations(variables, k + 1)
    ]


def counter_at_least_clauses(counter: Sequence[int], k: int) -> List[Clause]:
    """Unit clauses forcing the first k threshold outputs of a counter true."""
    if k <= 0:
        return []
    if k > len(counter):
        return [CONTRADICTION]
    return [(Literal(counter[i]),) for i in range(k)]


def counter_at_most_clauses(counter: Sequence[int], k: int) -> List[Clause]:
    """Unit clauses forcing every threshold output beyond k false."""
    if k < 0:
        return [CONTRADICTION]
    return [(Literal(counter[i], False),) for i in range(k, len(counter))]


# -----------------------------------------------------------------------------
# Solver
# -----------------------------------------------------------------------------


class SatSolver:
    """
    DPLL solver over a growing clause set.

    Variables are numbered from 1. The first num_inputs of them are the
    problem variables, the rest are auxiliary ones from new_var(). Clauses are
    only ever appended through the assert_* methods; solve_with() answers
    queries with extra clauses without touching the stored set.

    The occurrence index and the propagation of the stored clauses are built
    on the first query and reused until the clause set changes.
    """

    def __init__(self, num_vars: int, budget: Optional[SearchBudget] = None) -> None:
        if num_vars < 0:
            raise ValueError("num_vars must be non-negative.")
        self.num_vars: int = num_vars
        self.num_inputs: int = num_vars
        self.clauses: List[Clause] = []
        self.budget: SearchBudget = budget or SearchBudget.from_config()

        self._occurs: Optional[List[List[int]]] = None
        self._root: Optional[Assignment] = None

    def new_var(self) -> int:
        """Allocate a fresh auxiliary variable."""
        self.num_vars += 1
        self._occurs = None
        return self.num_vars

    def assert_clause(self, literals: Iterable[Literal]) -> None:
        """Add a disjunction of literals."""
        clause = tuple(literals)
        for lit in clause:
            if not 1 <= lit.var <= self.num_vars:
                raise ValueError(f"Unknown variable {lit.var} in clause.")
        self.clauses.append(clause)
        self._occurs = None

    def assert_clauses(self, clauses: Iterable[Clause]) -> None:
        for clause in clauses:
            self.assert_clause(clause)

    def assert_at_least(self, variables: Sequence[int], k: int) -> None:
        self.assert_clauses(at_least_clauses(variables, k))

    def assert_at_most(self, variables: Sequence[int], k: int) -> None:
        self.assert_clauses(at_most_clauses(variables, k))

    def add_counter(self, variables: Sequence[int]) -> List[int]:
        """
        Build a merging counter over variables and return its threshold outputs.

        Output i (0-based) is true exactly when at least i + 1 of the inputs are
        true. Halves are counted recursively and merged with implication
        clauses in both directions, which keeps the encoding quadratic instead
        of binomial.

        Args:
            variables: Input variables (1-based ids).

        Returns:
            len(variables) output variables in increasing threshold order.
        """
        if len(variables) <= 1:
            return list(variables)

        mid = len(variables) // 2
        left = self.add_counter(variables[:mid])
        right = self.add_counter(variables[mid:])

        counter = [self.new_var() for _ in range(len(variables))]

        for a in range(len(left) + 1):
            for b in range(len(right) + 1):
                # >= a on the left and >= b on the right gives >= a + b
                if a > 0 and b > 0:
                    self.assert_clause(
                        (-Literal(left[a - 1]), -Literal(right[b - 1]), Literal(counter[a + b - 1]))
                    )
                elif a > 0:
                    self.assert_clause((-Literal(left[a - 1]), Literal(counter[a - 1])))
                elif b > 0:
                    self.assert_clause((-Literal(right[b - 1]), Literal(counter[b - 1])))

                # < a + 1 on the left and < b + 1 on the right gives < a + b + 1
                if a < len(left) and b < len(right):
                    self.assert_clause(
                        (Literal(left[a]), Literal(right[b]), -Literal(counter[a + b]))
                    )
                elif a < len(left):
                    self.assert_clause((Literal(left[a]), -Literal(counter[a + b])))
                elif b < len(right):
                    self.assert_clause((Literal(right[b]), -Literal(counter[a + b])))

        return counter

    def assert_counter_at_least(self, counter: Sequence[int], k: int) -> None:
        self.assert_clauses(counter_at_least_clauses(counter, k))

    def assert_counter_at_most(self, counter: Sequence[int], k: int) -> None:
        self.assert_clauses(counter_at_most_clauses(counter, k))

    def solve(self) -> Optional[List[bool]]:
        """Solve the stored clauses. See solve_with()."""
        return self.solve_with(())

    def solve_with(self, extra: Iterable[Sequence[Literal]]) -> Optional[List[bool]]:
        """
        Solve the stored clauses together with extra clauses.

        Args:
            extra: Additional clauses, used only for this query.

        Returns:
            A list indexed by variable (index 0 unused) holding a satisfying
            assignment, or None if unsatisfiable. Variables that appear in no
            clause read False.

        Raises:
            SolverBudgetExceeded: If the shared search budget runs out.
        """
        solution = self._dpll([tuple(c) for c in extra])
        if solution is None:
            return None
        return [bool(v) for v in solution]

    # -------------------------------------------------------------------------
    # DPLL internals
    # -------------------------------------------------------------------------

    def _prepare(self) -> Optional[Assignment]:
        """Index clause occurrences and propagate the stored clauses once per clause set."""
        if self._occurs is not None:
            return self._root

        occurs: List[List[int]] = [[] for _ in range(self.num_vars + 1)]
        for idx, clause in enumerate(self.clauses):
            for lit in clause:
                occurs[lit.var].append(idx)
        self._occurs = occurs

        root: Assignment = [None] * (self.num_vars + 1)
        ok, _ = self._propagate(self.clauses, root, list(range(len(self.clauses))), {})
        self._root = root if ok else None
        return self._root

    def _dpll(self, extra: List[Clause]) -> Optional[Assignment]:
        root = self._prepare()
        if root is None:
            return None

        base = len(self.clauses)
        clauses = self.clauses + extra
        extra_occurs: Dict[int, List[int]] = {}
        for offset, clause in enumerate(extra):
            for lit in clause:
                extra_occurs.setdefault(lit.var, []).append(base + offset)

        # (assignment, clauses to re-check, no variable below this index needs a branch)
        stack: List[Tuple[Assignment, List[int], int]] = [
            (root[:], list(range(base, len(clauses))), 1)
        ]

        while stack:
            self.budget.tick()
            assignment, pending, start = stack.pop()

            ok, var = self._propagate(clauses, assignment, pending, extra_occurs)
            if not ok:
                continue

            if var is None:
                var = self._branch_var(assignment, start, extra_occurs)
                if var is None:
                    return assignment
                start = var + 1

            watching = self._occurs[var] + extra_occurs.get(var, [])
            low = assignment[:]
            low[var] = False
            high = assignment
            high[var] = True
            # LIFO: the True branch is explored first
            stack.append((low, list(watching), start))
            stack.append((high, watching, start))

        return None

    def _propagate(
        self,
        clauses: List[Clause],
        assignment: Assignment,
        pending: List[int],
        extra_occurs: Dict[int, List[int]],
    ) -> Tuple[bool, Optional[int]]:
        """
        Unit-propagate in place over the clauses listed in pending.

        Returns:
            (ok, hint). ok is False on a clause with every literal false. hint
            is an unassigned input variable of the most reduced open clause
            seen, or None. Branching on it keeps the search next to the
            variables just decided.
        """
        occurs = self._occurs
        hint: Optional[int] = None
        hint_free = 0

        while pending:
            clause = clauses[pending.pop()]
            unassigned: Optional[Literal] = None
            candidate: Optional[int] = None
            free = 0
            satisfied = False
            for lit in clause:
                value = assignment[lit.var]
                if value is None:
                    free += 1
                    unassigned = lit
                    if lit.var <= self.num_inputs:
                        candidate = lit.var
                elif value == lit.positive:
                    satisfied = True
                    break

            if satisfied:
                continue
            if free == 0:
                return False, None
            if free == 1 and unassigned is not None:
                assignment[unassigned.var] = unassigned.positive
                pending.extend(occurs[unassigned.var])
                if extra_occurs:
                    pending.extend(extra_occurs.get(unassigned.var, ()))
            elif candidate is not None and (hint is None or free < hint_free):
                hint, hint_free = candidate, free

        if hint is not None and assignment[hint] is not None:
            hint = None
        return True, hint

    def _branch_var(
        self, assignment: Assignment, start: int, extra_occurs: Dict[int, List[int]]
    ) -> Optional[int]:
        """Lowest undecided variable from start on that occurs in some clause, or None."""
        occurs = self._occurs
        for var in range(start, len(assignment)):
            if assignment[var] is None and (occurs[var] or var in extra_occurs):
                return var
        return None
