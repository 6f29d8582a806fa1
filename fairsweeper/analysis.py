"""Analysis and benchmarking tools for dynamic mine placement and board generation."""

import random
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np

from .config import EngineConfig
from .engine import Minesweeper
from .generator import check_solvability, generate_solvable_board
from .placement import GameMode, calculate_cell_hints
from .solver import CellHint, HintType

LEVELS: Dict[str, Tuple[int, int, int]] = {
    "beginner": (9, 9, 10),
    "intermediate": (16, 16, 40),
    "expert": (16, 30, 99),
}


def format_hint_grid(game: Minesweeper, hints: Optional[List[CellHint]] = None, *, show_coords: bool = True) -> str:
    """
    Format what a player can prove about the board as a human-readable string.

    Args:
        game: Game whose visible state will be displayed.
        hints: Hints to overlay; defaults to the game's training hints once
            the pending refresh has finished.
        show_coords: If True, include coordinate labels and a header.

    Returns:
        A text grid where revealed cells show their label, flags show 'F',
        frontier cells show 's' (safe), 'm' (mine) or '?' (unknown), and
        all other hidden cells show '.'.
    """
    if hints is None:
        hints = game.wait_for_hints()
    symbols = {HintType.SAFE: "s", HintType.MINE: "m", HintType.UNKNOWN: "?"}
    overlay = {(h.row, h.col): symbols[h.kind] for h in hints}

    def cell_char(r: int, c: int) -> str:
        cell = game.board.cells[r][c]
        if cell.is_revealed:
            return "*" if cell.is_mine else str(cell.neighbor_mines)
        if cell.is_flagged:
            return "F"
        return overlay.get((r, c), ".")

    lines: List[str] = []
    if show_coords:
        header = " ".join(f"{c:2d}" for c in range(game.cols))
        lines.append("   " + header)
        lines.append("   " + "-" * (3 * game.cols - 1))

    for r in range(game.rows):
        row = " ".join(f" {cell_char(r, c)}" for c in range(game.cols))
        lines.append(f"{r:2d} |" + row if show_coords else row)

    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Self-play
# -----------------------------------------------------------------------------


def run_single_game(
    rows: int,
    cols: int,
    mines: int,
    mode: str = "fair",
    *,
    quick_start: bool = True,
    seed: Optional[int] = None,
    show_boards: bool = False,
    cfg: Optional[EngineConfig] = None,
) -> Dict[str, object]:
    """
    Play one game with a hint-driven agent.

    The agent opens the centre cell, then repeatedly reveals every cell the
    hints prove safe and flags every cell they prove mined. When nothing is
    proven it guesses, preferring undecided frontier cells.

    Args:
        rows: Board height.
        cols: Board width.
        mines: Total number of mines on the board.
        mode: Game mode ("classic", "training" or "fair").
        quick_start: Keep the block around the first click free of mines.
        seed: Seed for both the game and the agent's guesses.
        show_boards: If True, print the final underlying board and hint grid.
        cfg: Engine configuration.

    Returns:
        Dict with keys "status" (-1 loss, 1 win, 0 move limit), "reveal_moves_count",
        "safe_moves_count", "guesses_count", "flags_count" and "revealed_cells_count".
    """
    game = Minesweeper(rows, cols, mines, mode, quick_start=quick_start, seed=seed, cfg=cfg)
    rng = random.Random(seed)

    stats: Dict[str, int] = defaultdict(int)
    status, _ = game.reveal(rows // 2, cols // 2)
    stats["reveal_moves_count"] += 1
    stats["guesses_count"] += 1

    move_limit = 2 * rows * cols
    while status == 0 and stats["reveal_moves_count"] < move_limit:
        if game.mode is GameMode.TRAINING:
            hints = game.wait_for_hints()
        else:
            hints = calculate_cell_hints(game.board, game.cfg)
        cells = game.board.cells

        for h in hints:
            if h.kind is HintType.MINE and not cells[h.row][h.col].is_flagged:
                game.toggle_flag(h.row, h.col)
                stats["flags_count"] += 1

        safe = [
            (h.row, h.col)
            for h in hints
            if h.kind is HintType.SAFE and not cells[h.row][h.col].is_revealed
        ]
        if safe:
            for r, c in safe:
                if cells[r][c].is_revealed:
                    continue
                if cells[r][c].is_flagged:
                    # Flagged on an earlier hint, proven safe since
                    game.toggle_flag(r, c)
                status, _ = game.reveal(r, c)
                stats["reveal_moves_count"] += 1
                stats["safe_moves_count"] += 1
                if status != 0:
                    break
            continue

        candidates = [
            (h.row, h.col)
            for h in hints
            if h.kind is HintType.UNKNOWN and not cells[h.row][h.col].is_flagged
        ]
        if not candidates:
            candidates = [(r, c) for r, c in game.board.hidden_cells() if not cells[r][c].is_flagged]
        if not candidates:
            break
        r, c = rng.choice(candidates)
        status, _ = game.reveal(r, c)
        stats["reveal_moves_count"] += 1
        stats["guesses_count"] += 1

    if show_boards:
        print(f"Mode: {game.mode.value}")
        print("Underlying board (mines visible):")
        print(game.format_board(reveal_all=True, show_hints=False))
        print()
        print("Player view (hints overlaid):")
        print(format_hint_grid(game, hints=[] if game.game_over else None))
        print()
        print(f"Finished with status {status}.")

    out: Dict[str, object] = dict(stats)
    out["status"] = status
    out["revealed_cells_count"] = game.board.revealed_count
    game.close()
    return out


def run_many_games(
    rows: int,
    cols: int,
    mines: int,
    runs: int,
    mode: str = "fair",
    *,
    quick_start: bool = True,
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
) -> Dict[str, float]:
    """
    Run many independent self-play games and return averaged metrics plus win rate.

    Args:
        rows: Board height.
        cols: Board width.
        mines: Total number of mines on the board.
        runs: Number of independent games to run.
        mode: Game mode ("classic", "training" or "fair").
        quick_start: Keep the block around the first click free of mines.
        seed: Base seed; game i uses seed + i.
        cfg: Engine configuration.

    Returns:
        Averages of per-game counters (prefixed with "avg_"), plus:
        - win_rate
        - safe_move_fraction: share of reveals that were proven safe
        - guess_failure_rate: losses per guess
    """
    if runs <= 0:
        raise ValueError("runs must be positive.")

    keys = ("reveal_moves_count", "safe_moves_count", "guesses_count", "flags_count", "revealed_cells_count")
    samples: Dict[str, List[float]] = {k: [] for k in keys}
    wins = 0
    losses = 0

    for i in range(runs):
        game_seed = None if seed is None else seed + i
        result = run_single_game(rows, cols, mines, mode, quick_start=quick_start, seed=game_seed, cfg=cfg)
        if result["status"] == 1:
            wins += 1
        elif result["status"] == -1:
            losses += 1
        for k in keys:
            samples[k].append(float(result.get(k, 0)))  # type: ignore[arg-type]

    out: Dict[str, float] = {f"avg_{k}": float(np.mean(v)) for k, v in samples.items()}
    out["win_rate"] = wins / runs

    total_moves = float(np.sum(samples["reveal_moves_count"]))
    total_guesses = float(np.sum(samples["guesses_count"]))
    out["safe_move_fraction"] = (
        float(np.sum(samples["safe_moves_count"])) / total_moves if total_moves > 0 else 0.0
    )
    out["guess_failure_rate"] = losses / total_guesses if total_guesses > 0 else 0.0
    return out


# -----------------------------------------------------------------------------
# Board generation
# -----------------------------------------------------------------------------


def generator_acceptance_rate(
    rows: int,
    cols: int,
    mines: int,
    samples: int,
    *,
    rng: Optional[random.Random] = None,
    cfg: Optional[EngineConfig] = None,
) -> float:
    """
    Fraction of uniformly random layouts that check_solvability() accepts.

    Args:
        rows: Board height.
        cols: Board width.
        mines: Number of mines per layout.
        samples: Number of layouts to draw.
        rng: Random source.
        cfg: Engine configuration (search budget).
    """
    if samples <= 0:
        raise ValueError("samples must be positive.")
    rng = rng or random.Random()

    accepted = 0
    for _ in range(samples):
        grid = np.zeros(rows * cols, dtype=bool)
        grid[np.array(rng.sample(range(rows * cols), mines), dtype=int)] = True
        if check_solvability(grid.reshape(rows, cols), mines, cfg=cfg):
            accepted += 1
    return accepted / samples


def run_level_analysis(
    runs: int,
    mode: str = "fair",
    *,
    generator_samples: int = 50,
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
) -> Dict[str, Dict[str, float]]:
    """
    Run aggregated self-play and generator tests on standard difficulty levels and plot summaries.

    Args:
        runs: Number of independent games to run per difficulty level.
        mode: Game mode for self-play.
        generator_samples: Random layouts drawn per level for the acceptance rate.
        seed: Base seed for games and layouts.
        cfg: Engine configuration.

    Returns:
        Mapping from level name to statistics dict returned by run_many_games(),
        extended with "generator_acceptance_rate".

    Standard difficulty levels:
        - Beginner: 9x9, 10 mines
        - Intermediate: 16x16, 40 mines
        - Expert: 16x30, 99 mines
    """
    rng = random.Random(seed)
    results: Dict[str, Dict[str, float]] = {}
    for level, (rows, cols, mines) in LEVELS.items():
        results[level] = run_many_games(rows, cols, mines, runs, mode, seed=seed, cfg=cfg)
        results[level]["generator_acceptance_rate"] = generator_acceptance_rate(
            rows, cols, mines, generator_samples, rng=rng, cfg=cfg
        )

    level_names = list(LEVELS.keys())
    x = np.arange(len(level_names))
    bar_w = 0.35

    # 1) Safe moves vs guesses
    safe_moves = [results[n]["avg_safe_moves_count"] for n in level_names]
    guesses = [results[n]["avg_guesses_count"] for n in level_names]

    plt.figure()  # type: ignore[misc]
    plt.bar(x - bar_w / 2, safe_moves, width=bar_w, label="proven safe")  # type: ignore[misc]
    plt.bar(x + bar_w / 2, guesses, width=bar_w, label="guesses")  # type: ignore[misc]
    plt.xticks(x, level_names)  # type: ignore[misc]
    plt.ylabel("Average reveals per game")  # type: ignore[misc]
    plt.title(f"Reveals by kind ({mode} mode)")  # type: ignore[misc]
    plt.legend()  # type: ignore[misc]
    plt.tight_layout()
    plt.show()  # type: ignore[misc]

    # 2) Win rate and generator acceptance by level
    win_rates = [results[n]["win_rate"] for n in level_names]
    acceptance = [results[n]["generator_acceptance_rate"] for n in level_names]

    plt.figure()  # type: ignore[misc]
    plt.bar(x - bar_w / 2, win_rates, width=bar_w, label="win rate")  # type: ignore[misc]
    plt.bar(x + bar_w / 2, acceptance, width=bar_w, label="generator acceptance")  # type: ignore[misc]
    plt.xticks(x, level_names)  # type: ignore[misc]
    plt.ylim(0.0, 1.0)  # type: ignore[misc]
    plt.title("Win rate and solvable-layout rate by difficulty level")  # type: ignore[misc]
    plt.legend()  # type: ignore[misc]
    plt.tight_layout()
    plt.show()  # type: ignore[misc]

    return results


def generate_level_boards(
    count: int,
    level: str = "beginner",
    *,
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
) -> List[np.ndarray]:
    """
    Generate up to `count` solvable boards for a standard level.

    Levels where generation gives up are simply shorter lists.
    """
    if level not in LEVELS:
        raise KeyError(f"Unknown level {level!r}.")
    rows, cols, mines = LEVELS[level]
    rng = random.Random(seed)

    boards: List[np.ndarray] = []
    for _ in range(count):
        grid = generate_solvable_board(rows, cols, mines, rng=rng, cfg=cfg)
        if grid is not None:
            boards.append(grid)
    return boards
