"""
Quickstart example for fairsweeper.

This script demonstrates dynamic mine placement, hints and board generation.
"""

import random

from fairsweeper import (
    Minesweeper,
    calculate_cell_hints,
    configure_logging,
    generate_solvable_board,
    run_many_games,
)
from fairsweeper.analysis import format_hint_grid


def main():
    configure_logging("INFO")

    print("=" * 60)
    print("fairsweeper - Quickstart Example")
    print("=" * 60)

    # Example 1: A training game with hints
    print("\n1. Opening a Beginner training game (9x9, 10 mines)...")
    print("-" * 60)

    game = Minesweeper(9, 9, 10, mode="training", quick_start=True, seed=7)
    status, payload = game.reveal(4, 4)
    print(f"Status: {status}, cells changed: {len(payload['changed_cells'])}")
    print(format_hint_grid(game))

    # Example 2: Fair mode, hints computed on demand
    print("\n2. Fair mode: a guess is only punished when a safe cell existed")
    print("-" * 60)

    fair = Minesweeper(9, 9, 10, mode="fair", seed=11)
    fair.reveal(0, 0)
    hints = calculate_cell_hints(fair.board)
    print(format_hint_grid(fair, hints))

    # Example 3: A board solvable from its opening
    print("\n3. Generating a solvable Intermediate layout (16x16, 40 mines)...")
    print("-" * 60)

    grid = generate_solvable_board(16, 16, 40, rng=random.Random(3))
    if grid is None:
        print("No solvable layout found within the attempt limit.")
    else:
        print("\n".join("".join("*" if m else "." for m in line) for line in grid))

    # Example 4: Self-play statistics
    print("\n4. Hint-driven agent on 20 fair Beginner games...")
    print("-" * 60)

    results = run_many_games(9, 9, 10, runs=20, mode="fair", seed=0)
    print(f"Win rate: {results['win_rate']*100:.1f}%")
    print(f"Average reveals per game: {results['avg_reveal_moves_count']:.1f}")
    print(f"Average guesses per game: {results['avg_guesses_count']:.1f}")
    print(f"Share of proven-safe reveals: {results['safe_move_fraction']*100:.1f}%")

    print("\n" + "=" * 60)
    print("Done! Try `streamlit run app/demo.py` for the interactive board.")
    print("=" * 60)


if __name__ == "__main__":
    main()
