"""
Fair Minesweeper

A Minesweeper engine that decides mine positions at click time:
- Boundary map: revealed labels and the hidden frontier around them
- SAT encoding: cardinality clauses and a counter gadget for the mine budget
- Placement policy: a click is kept safe unless a provably safe cell existed
- Board generation: rejection sampling of layouts solvable from their opening
"""

from .board import Board, Cell
from .boundary import BoundaryMap
from .config import EngineConfig, config, configure_logging
from .engine import Minesweeper, play_cli
from .generator import check_solvability, generate_solvable_board
from .placement import (
    GameMode,
    calculate_cell_hints,
    calculate_safe_cells,
    determine_mine_placement,
)
from .sat import SatSolver, SearchBudget, SolverBudgetExceeded
from .solver import CellHint, Classification, ConstraintSolver, HintType, MineShape, make_solver
from .analysis import (
    format_hint_grid,
    run_single_game,
    run_many_games,
    generator_acceptance_rate,
    run_level_analysis,
)

__version__ = "1.0.0"

__all__ = [
    # Core classes
    "Minesweeper",
    "Board",
    "Cell",
    "BoundaryMap",
    "ConstraintSolver",
    "Classification",
    "MineShape",
    "SatSolver",
    "SearchBudget",
    "GameMode",
    "CellHint",
    "HintType",
    # Errors
    "SolverBudgetExceeded",
    # Configuration
    "EngineConfig",
    "config",
    "configure_logging",
    # Placement and hints
    "make_solver",
    "determine_mine_placement",
    "calculate_cell_hints",
    "calculate_safe_cells",
    # Board generation
    "check_solvability",
    "generate_solvable_board",
    # CLI
    "play_cli",
    # Analysis functions
    "format_hint_grid",
    "run_single_game",
    "run_many_games",
    "generator_acceptance_rate",
    "run_level_analysis",
]
