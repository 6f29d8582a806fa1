"""
Fair Minesweeper - Interactive Demo

Run with: streamlit run app/demo.py
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import streamlit as st
from typing import Dict, Optional, Tuple

from fairsweeper import HintType, Minesweeper
from fairsweeper.config import configure_logging


def render_board_html(
    game: Minesweeper,
    highlight_cell: Optional[Tuple[int, int]] = None,
    show_mines: bool = False,
    show_hints: bool = True,
) -> str:
    """Render the board as HTML with styling."""
    # Scale cell size based on board width
    if game.cols >= 30:
        cell_size = 14
        font_size = "10px"
    elif game.cols >= 25:
        cell_size = 16
        font_size = "11px"
    elif game.cols >= 16:
        cell_size = 20
        font_size = "13px"
    else:
        cell_size = 26
        font_size = "15px"

    colors = {
        "0": "#cccccc",
        "1": "#0000ff",
        "2": "#008000",
        "3": "#ff0000",
        "4": "#000080",
        "5": "#800000",
        "6": "#008080",
        "7": "#000000",
        "8": "#808080",
    }
    hints: Dict[Tuple[int, int], HintType] = (
        {(h.row, h.col): h.kind for h in game.wait_for_hints()} if show_hints else {}
    )

    html = '<div style="font-family: monospace; line-height: 1.2;">'
    html += '<table style="border-collapse: collapse; margin: auto;">'

    for r in range(game.rows):
        html += "<tr>"
        for c in range(game.cols):
            cell_state = game.board.cells[r][c]
            kind = hints.get((r, c))

            if cell_state.is_revealed and cell_state.is_mine:
                cell = "M"  # Hit mine (caused loss)
                bg = "#ff0000"
                text_color = "#ffffff"
            elif cell_state.is_revealed:
                cell = str(cell_state.neighbor_mines)
                bg = "#f0f0f0" if cell == "0" else "#ffffff"
                text_color = colors.get(cell, "#000000")
            elif cell_state.is_flagged:
                cell = "F"
                bg = "#ffa500"
                text_color = "#ffffff"
            elif show_mines and cell_state.is_mine:
                cell = "M"
                bg = "#ffcccc"
                text_color = "#ff0000"
            elif kind is HintType.SAFE:
                cell = "+"
                bg = "#b6e3b6"
                text_color = "#006400"
            elif kind is HintType.MINE:
                cell = "x"
                bg = "#e3b6b6"
                text_color = "#8b0000"
            elif kind is HintType.UNKNOWN:
                cell = "?"
                bg = "#c0c0c0"
                text_color = "#333333"
            else:
                cell = "."
                bg = "#c0c0c0"
                text_color = "#666666"

            # Highlight last move
            border = "2px solid #ff0000" if (r, c) == highlight_cell else "1px solid #999"
            display = cell if cell != "0" else " "

            html += f'''<td style="
                width: {cell_size}px; height: {cell_size}px;
                text-align: center;
                background: {bg};
                border: {border};
                color: {text_color};
                font-weight: bold;
                font-size: {font_size};
            ">{display}</td>'''
        html += "</tr>"

    html += "</table></div>"
    return html


def new_game(rows: int, cols: int, mines: int, mode: str, quick_start: bool, chording: bool) -> None:
    st.session_state.game = Minesweeper(
        rows, cols, mines, mode, quick_start=quick_start, chording=chording
    )
    st.session_state.status = 0
    st.session_state.last_move = None


def main():
    configure_logging()
    st.set_page_config(
        page_title="Fair Minesweeper",
        page_icon="💣",
        layout="wide",
    )

    st.title("Fair Minesweeper")
    st.markdown("""
    Mines are decided on every click: you only lose a guess when a safe move existed.
    """)

    # Sidebar configuration
    st.sidebar.header("Game Configuration")

    preset = st.sidebar.selectbox(
        "Difficulty Preset",
        ["Beginner (9x9, 10)", "Intermediate (16x16, 40)", "Expert (16x30, 99)", "Custom"],
    )

    if preset == "Beginner (9x9, 10)":
        rows, cols, mines = 9, 9, 10
    elif preset == "Intermediate (16x16, 40)":
        rows, cols, mines = 16, 16, 40
    elif preset == "Expert (16x30, 99)":
        rows, cols, mines = 16, 30, 99
    else:
        cols = st.sidebar.slider("Width", 5, 30, 16)
        rows = st.sidebar.slider("Height", 5, 30, 16)
        max_mines = rows * cols - 9
        mines = st.sidebar.slider("Mines", 1, max_mines, min(40, max_mines))

    mode = st.sidebar.selectbox(
        "Mode",
        ["training", "fair", "classic"],
        help="training: fair placement plus SAFE/MINE/UNKNOWN hints on the frontier. "
             "fair: fair placement without hints. classic: mines placed up front.",
    )
    quick_start = st.sidebar.checkbox("Quick start", value=True, help="First click opens a region.")
    chording = st.sidebar.checkbox("Chording", value=True)

    # Auto-generate new game when settings change
    current_settings = (rows, cols, mines, mode, quick_start, chording)
    if st.session_state.get("prev_settings") != current_settings:
        new_game(rows, cols, mines, mode, quick_start, chording)
        st.session_state.prev_settings = current_settings

    game: Minesweeper = st.session_state.game

    col1, col2 = st.columns([3, 1])

    with col1:
        st.subheader("Game Board")

        in_col1, in_col2 = st.columns(2)
        with in_col1:
            row = st.number_input("Row", 0, rows - 1, rows // 2)
        with in_col2:
            col = st.number_input("Column", 0, cols - 1, cols // 2)

        btn_col1, btn_col2, btn_col3, btn_col4 = st.columns(4)
        with btn_col1:
            if st.button("Reveal", type="primary", disabled=game.game_over):
                st.session_state.status, _ = game.reveal(int(row), int(col))
                st.session_state.last_move = (int(row), int(col))
                st.rerun()
        with btn_col2:
            if st.button("Flag", disabled=game.game_over):
                game.toggle_flag(int(row), int(col))
                st.session_state.last_move = (int(row), int(col))
                st.rerun()
        with btn_col3:
            hints_left = game.cfg.max_hints - game.hints_used
            if st.button(f"Hint ({hints_left})", disabled=game.game_over or hints_left <= 0):
                st.session_state.status, _ = game.use_hint(int(row), int(col))
                st.session_state.last_move = (int(row), int(col))
                st.rerun()
        with btn_col4:
            if st.button("New Game"):
                new_game(rows, cols, mines, mode, quick_start, chording)
                st.rerun()

        html = render_board_html(
            game,
            highlight_cell=st.session_state.last_move,
            show_mines=game.game_over,
            show_hints=not game.game_over,
        )
        st.markdown(html, unsafe_allow_html=True)

        if st.session_state.status == 1:
            st.success("Solved! All safe cells revealed.")
        elif st.session_state.status == -1:
            st.error("Game Over! Hit a mine.")

        # Board legend
        st.markdown("""
        <div style="font-size: 12px; margin-top: 10px;">
        <b>Legend:</b>
        <span style="background: #c0c0c0; color: #666666; padding: 2px 6px; margin: 0 4px; font-weight: bold;">.</span> Unrevealed
        <span style="background: #b6e3b6; color: #006400; padding: 2px 6px; margin: 0 4px; font-weight: bold;">+</span> Provably safe
        <span style="background: #e3b6b6; color: #8b0000; padding: 2px 6px; margin: 0 4px; font-weight: bold;">x</span> Provably a mine
        <span style="background: #c0c0c0; color: #333333; padding: 2px 6px; margin: 0 4px; font-weight: bold;">?</span> Undecided
        <span style="background: #ffa500; color: white; padding: 2px 6px; margin: 0 4px; font-weight: bold;">F</span> Flagged
        <span style="background: #ff0000; color: white; padding: 2px 6px; margin: 0 4px; font-weight: bold;">M</span> Hit mine
        </div>
        """, unsafe_allow_html=True)

    with col2:
        st.subheader("Game Statistics")
        flags = sum(1 for line in game.board.cells for cell in line if cell.is_flagged)
        st.metric("Cells Revealed", f"{game.board.revealed_count} / {game.board.safe_cells_total()}")
        st.metric("Mines Left", game.mines - flags)
        st.metric("Hints Used", f"{game.hints_used} / {game.cfg.max_hints}")

        if game.mode.value == "training" and not game.game_over:
            counts = {kind: 0 for kind in HintType}
            for h in game.wait_for_hints():
                counts[h.kind] += 1
            st.markdown("---")
            st.markdown("**Frontier**")
            st.text(f"Safe: {counts[HintType.SAFE]}")
            st.text(f"Mine: {counts[HintType.MINE]}")
            st.text(f"Unknown: {counts[HintType.UNKNOWN]}")

        st.markdown("---")
        st.subheader("How It Works")
        st.markdown("""
        1. **Frontier**: hidden cells next to a revealed number
        2. **SAT**: every number becomes a cardinality constraint
        3. **Queries**: each frontier cell is tested as safe and as a mine
        4. **Placement**: a guess is only punished if a provably safe cell existed
        """)


if __name__ == "__main__":
    main()
