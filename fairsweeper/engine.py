"""Minesweeper game engine with static (classic) and dynamic (training, fair) mine placement."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

from .board import Board
from .config import EngineConfig
from .config import config as default_config
from .placement import GameMode, calculate_cell_hints, make_strategy
from .solver import CellHint, HintType

logger = logging.getLogger(__name__)


class Minesweeper:
    """Minesweeper game engine: one board, one placement strategy, single writer per move."""

    def __init__(
        self,
        rows: int,
        cols: int,
        mines: int,
        mode: Union[GameMode, str] = GameMode.CLASSIC,
        *,
        quick_start: bool = False,
        chording: bool = True,
        seed: Optional[int] = None,
        cfg: Optional[EngineConfig] = None,
    ) -> None:
        """
        Initialize a game.

        Args:
            rows: Board height, must be > 0.
            cols: Board width, must be > 0.
            mines: Total number of mines, 0 <= mines < rows * cols.
            mode: One of {"classic", "training", "fair"}. Classic places mines
                up front; training and fair decide them on every reveal, and
                training also keeps hints for the frontier.
            quick_start: Keep the 3x3 block around the first click free of mines.
            chording: Revealing an opened number whose flags match it opens
                its remaining neighbors.
            seed: Seed for the mine layout (classic) or the random parts of
                dynamic placement.
            cfg: Engine configuration; defaults to the environment-derived one.

        Raises:
            ValueError: If dimensions, mine count or mode are invalid.
        """
        try:
            self.mode: GameMode = GameMode(mode)
        except ValueError:
            raise ValueError('mode must be "classic", "training" or "fair".') from None

        self.cfg: EngineConfig = cfg or default_config
        self.board: Board = Board(rows, cols, mines)
        self.rows: int = rows
        self.cols: int = cols
        self.mines: int = mines
        self.quick_start: bool = quick_start
        self.chording: bool = chording

        self.strategy = make_strategy(self.mode, quick_start=quick_start, seed=seed, cfg=self.cfg)
        self.strategy.prepare(self.board)

        self.game_over: bool = False
        self.game_won: bool = False
        self.hints_used: int = 0
        self.cell_hints: List[CellHint] = []

        # Training hints are refreshed off the move path; stale generations are skipped
        self._hint_generation: int = 0
        self._hint_executor: Optional[ThreadPoolExecutor] = None
        self._hint_future: Optional[Future] = None

    def _check_coords(self, row: int, col: int) -> None:
        if not self.board.in_bounds(row, col):
            raise ValueError("Cell coordinates are outside the board.")

    # -------------------------------------------------------------------------
    # Moves
    # -------------------------------------------------------------------------

    def reveal(self, row: int, col: int) -> Tuple[int, Dict[str, object]]:
        """
        Reveal a cell and return a status code plus payload.

        Args:
            row: Row of the cell to reveal.
            col: Column of the cell to reveal.

        Returns:
            Tuple of (status, payload) where status is:
                - -1: Mine hit (loss)
                - 0: Non-terminal reveal (or no-op)
                - 1: Win (all safe cells revealed)

            Payload contains "changed_cells" (set of (row, col)) and:
                - For status 0 or 1: "revealed_cells": List[(row, col, label)]
                - For status -1: "all_mines": FrozenSet[(row, col)]

        Raises:
            ValueError: If coordinates are out of bounds.
        """
        self._check_coords(row, col)

        with self.board.lock:
            if self.game_over:
                return 0, {}

            cell = self.board.cells[row][col]
            if cell.is_flagged:
                return 0, {}
            if cell.is_revealed:
                if self.chording and cell.neighbor_mines > 0:
                    return self._chord(row, col)
                return 0, {}

            changed = self.strategy.before_reveal(self.board, row, col)
            status, payload = self._open([(row, col)], changed)
            self._after_move()
            return status, payload

    def _open(
        self, targets: List[Tuple[int, int]], changed: Set[Tuple[int, int]]
    ) -> Tuple[int, Dict[str, object]]:
        revealed: List[Tuple[int, int]] = []

        for row, col in targets:
            cell = self.board.cells[row][col]
            if cell.is_revealed or cell.is_flagged:
                continue

            if cell.is_mine:
                cell.is_revealed = True
                changed.update(revealed)
                changed.add((row, col))
                self.game_over = True
                logger.info("Mine hit at (%d, %d)", row, col)
                all_mines: FrozenSet[Tuple[int, int]] = frozenset(
                    (r, c)
                    for r in range(self.rows)
                    for c in range(self.cols)
                    if self.board.cells[r][c].is_mine
                )
                return -1, {"changed_cells": changed, "all_mines": all_mines}

            revealed.extend(self.board.flood_reveal(row, col))

        changed.update(revealed)
        revealed_cells = [
            (r, c, self.board.cells[r][c].neighbor_mines) for r, c in revealed
        ]

        if self.board.is_won():
            self.game_over = True
            self.game_won = True
            logger.info("All safe cells revealed")
            return 1, {"changed_cells": changed, "revealed_cells": revealed_cells}

        return 0, {"changed_cells": changed, "revealed_cells": revealed_cells}

    def _chord(self, row: int, col: int) -> Tuple[int, Dict[str, object]]:
        cell = self.board.cells[row][col]
        neighbors = self.board.neighbors(row, col)
        flags = sum(1 for r, c in neighbors if self.board.cells[r][c].is_flagged)
        if flags != cell.neighbor_mines:
            logger.debug("Chording at (%d, %d) skipped: %d flags for label %d", row, col, flags, cell.neighbor_mines)
            return 0, {}

        status, payload = self._open(list(neighbors), set())
        self._after_move()
        return status, payload

    def toggle_flag(self, row: int, col: int) -> Tuple[int, Dict[str, object]]:
        """Flag or unflag a hidden cell. Flags never move mines."""
        self._check_coords(row, col)

        with self.board.lock:
            if self.game_over:
                return 0, {}
            cell = self.board.cells[row][col]
            if cell.is_revealed:
                return 0, {}
            cell.is_flagged = not cell.is_flagged
            self._after_move()
            return 0, {"changed_cells": {(row, col)}}

    def use_hint(self, row: int, col: int) -> Tuple[int, Dict[str, object]]:
        """
        Spend a hint on a hidden cell: a mine gets flagged, a safe cell gets revealed.

        Hints are limited to cfg.max_hints per game. In dynamic modes a hint
        before any reveal is an ordinary first click.
        """
        self._check_coords(row, col)

        with self.board.lock:
            if self.game_over or self.hints_used >= self.cfg.max_hints:
                return 0, {}
            cell = self.board.cells[row][col]
            if cell.is_revealed or cell.is_flagged:
                return 0, {}

            self.hints_used += 1
            if self.mode.dynamic and self.board.revealed_count == 0:
                changed = self.strategy.before_reveal(self.board, row, col)
                status, payload = self._open([(row, col)], changed)
            elif cell.is_mine:
                cell.is_flagged = True
                status, payload = 0, {"changed_cells": {(row, col)}}
            else:
                status, payload = self._open([(row, col)], set())

            self._after_move()
            return status, payload

    def _after_move(self) -> None:
        if self.mode is GameMode.TRAINING and not self.game_over:
            self._hint_generation += 1
            if self._hint_executor is None:
                self._hint_executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="fairsweeper-hints"
                )
            self._hint_future = self._hint_executor.submit(
                self._compute_hints, self._hint_generation
            )

    def _compute_hints(self, generation: int) -> None:
        # Runs on the hint worker once the move has released the board lock
        with self.board.lock:
            if generation != self._hint_generation:
                return
            self.cell_hints = calculate_cell_hints(self.board, self.cfg)
            logger.debug("Training hints refreshed: %d cells", len(self.cell_hints))

    def wait_for_hints(self, timeout: Optional[float] = None) -> List[CellHint]:
        """
        Block until the hint refresh scheduled by the last move has finished.

        Args:
            timeout: Seconds to wait; None waits indefinitely.

        Returns:
            The current training hints.

        Raises:
            concurrent.futures.TimeoutError: If the refresh is still running.
        """
        if self._hint_future is not None:
            self._hint_future.result(timeout)
        return self.cell_hints

    def refresh_hints(self) -> List[CellHint]:
        """Recompute frontier hints for the current board, in the calling thread."""
        with self.board.lock:
            self._hint_generation += 1
            self.cell_hints = calculate_cell_hints(self.board, self.cfg)
            return self.cell_hints

    def close(self) -> None:
        """Stop the hint worker, waiting for a running refresh."""
        if self._hint_executor is not None:
            self._hint_executor.shutdown(wait=True)
            self._hint_executor = None

    # -------------------------------------------------------------------------
    # Display methods
    # -------------------------------------------------------------------------

    _ANSI_RESET = "\033[0m"
    _ANSI_COORD = "\033[96m"
    _ANSI_MINE = "\033[91m"
    _ANSI_SAFE = "\033[92m"

    def _c(self, s: str) -> str:
        """Wrap string in coordinate color."""
        return f"{self._ANSI_COORD}{s}{self._ANSI_RESET}"

    def _m(self, s: str) -> str:
        """Wrap string in mine color (red)."""
        return f"{self._ANSI_MINE}{s}{self._ANSI_RESET}"

    def _s(self, s: str) -> str:
        """Wrap string in safe-hint color (green)."""
        return f"{self._ANSI_SAFE}{s}{self._ANSI_RESET}"

    def format_board(self, reveal_all: bool = False, show_hints: bool = True) -> str:
        """
        Render the board as a multi-line string for terminal display.

        Args:
            reveal_all: If True, show mines and all underlying values.
            show_hints: If True, overlay the current hints on hidden cells
                ("+" safe, "x" mine, "?" unknown).

        Returns:
            A formatted multi-line string with coordinate labels and the board grid.
        """
        hints: Dict[Tuple[int, int], HintType] = (
            {(h.row, h.col): h.kind for h in self.cell_hints} if show_hints else {}
        )

        def cell_str(r: int, c: int) -> str:
            cell = self.board.cells[r][c]
            if reveal_all or cell.is_revealed:
                if cell.is_mine:
                    return self._m("M")
                return str(cell.neighbor_mines)
            if cell.is_flagged:
                return self._m("F")
            kind = hints.get((r, c))
            if kind is HintType.SAFE:
                return self._s("+")
            if kind is HintType.MINE:
                return self._m("x")
            if kind is HintType.UNKNOWN:
                return "?"
            return "."

        # Header: column numbers
        header_cells = " ".join(f"{c:2d}" for c in range(self.cols))
        out = [self._c("   ") + self._c(header_cells)]

        # Separator line
        sep = self._c("   " + "-" * (3 * self.cols - 1))
        out.append(sep)

        # Rows with the row number at left
        for r in range(self.rows):
            row_cells = " ".join(f" {cell_str(r, c)}" for c in range(self.cols))
            out.append(self._c(f"{r:2d} ") + self._c("|") + row_cells)

        return "\n".join(out)

    def print_board(self) -> None:
        """Print the current visible board state to stdout."""
        print(self.format_board(reveal_all=False))

    def print_full_board(self) -> None:
        """Print the fully revealed underlying board to stdout (for debugging)."""
        print(self.format_board(reveal_all=True, show_hints=False))


def play_cli(game: Minesweeper) -> None:
    """
    Run a simple terminal UI for playing Minesweeper.

    Args:
        game: A Minesweeper instance to play against.
    """
    print(
        "Minesweeper CLI (enter: row col, 'f row col' to flag, 'h row col' for a hint). "
        "Coordinates are 0-based. Type 'q' to quit.\n"
    )
    print(game.format_board(reveal_all=False))

    while True:
        s = input("\nMove (row col): ").strip()
        if s.lower() in {"q", "quit", "exit"}:
            print("Quit.")
            return

        parts = s.replace(",", " ").split()
        action = "reveal"
        if parts and parts[0].lower() in {"f", "h"}:
            action = "flag" if parts[0].lower() == "f" else "hint"
            parts = parts[1:]

        if len(parts) != 2:
            print("Invalid input. Example: 3 5")
            continue

        try:
            row = int(parts[0])
            col = int(parts[1])
        except ValueError:
            print("Invalid input. Coordinates must be integers.")
            continue

        try:
            if action == "flag":
                status, _ = game.toggle_flag(row, col)
            elif action == "hint":
                status, _ = game.use_hint(row, col)
            else:
                status, _ = game.reveal(row, col)
        except ValueError as exc:
            print(f"Invalid move: {exc}")
            continue

        game.wait_for_hints()
        print(f"\nYou decided to {action} ({row}, {col}).\n")
        print(game.format_board(reveal_all=False))

        if status == -1:
            print("\nYou hit a mine. You lost.")
            print("\nFull board:")
            print(game.format_board(reveal_all=True, show_hints=False))
            return

        if status == 1:
            print("\nYou revealed all safe cells. You won!")
            print("\nFull board:")
            print(game.format_board(reveal_all=True, show_hints=False))
            return
