"""
Rules engine tests: status derivation, move validation, state invariants.
"""

from __future__ import annotations

import random

import pytest

from engine import (
    EMPTY_BOARD,
    GameState,
    Move,
    MoveError,
    accept_move,
    derive_status,
    opponent,
    parse_move,
)


def _board(rows):
    return tuple(tuple(None if ch == "." else ch for ch in row) for row in rows)


class TestOpponent:
    def test_flips(self):
        assert opponent("X") == "O"
        assert opponent("O") == "X"

    def test_involutive(self):
        for p in ("X", "O"):
            assert opponent(opponent(p)) == p

    def test_rejects_unknown(self):
        with pytest.raises(ValueError):
            opponent("Z")  # type: ignore[arg-type]


class TestDeriveStatus:
    def test_empty_board_in_progress(self):
        assert derive_status(EMPTY_BOARD) == "in_progress"

    @pytest.mark.parametrize(
        "rows",
        [
            ("XXX", "OO.", "..."),
            ("O..", "XXX", "O.."),
            ("X.O", "XO.", "X.."),
            ("O.X", ".OX", "..X"),
            ("X.O", ".XO", "..X"),
            ("O.X", ".X.", "X.O"),
        ],
    )
    def test_x_wins(self, rows):
        assert derive_status(_board(rows)) == "win_X"

    def test_o_wins_column(self):
        assert derive_status(_board(("XO.", "XO.", ".OX"))) == "win_O"

    def test_canonical_draw(self):
        assert derive_status(_board(("XOX", "XOO", "OXX"))) == "draw"

    def test_full_board_with_line_is_win_not_draw(self):
        assert derive_status(_board(("XXX", "OOX", "XOO"))) == "win_X"

    def test_first_line_in_scan_order_decides(self):
        # Unreachable in play; rows are scanned before columns.
        assert derive_status(_board(("OOO", "XXX", "..."))) == "win_O"
        assert derive_status(_board(("XXX", "OOO", "..."))) == "win_X"


class TestAcceptMove:
    def test_first_move_corner(self, new_state):
        st = accept_move(new_state, "X", Move(0, 0))
        occupied = [c for row in st.board for c in row if c is not None]
        assert occupied == ["X"]
        assert st.board[0][0] == "X"
        assert st.to_play == "O"
        assert st.status == "in_progress"

    def test_input_state_not_mutated(self, new_state):
        before = new_state.to_dict()
        accept_move(new_state, "X", Move(1, 1))
        assert new_state.to_dict() == before

    def test_completing_line_wins_immediately(self, make_state):
        st = make_state(("XX.", "OO.", "..."), to_play="X")
        st2 = accept_move(st, "X", Move(0, 2))
        assert st2.status == "win_X"
        assert st2.to_play == "O"

    def test_last_cell_draw(self, make_state):
        st = make_state(("XOX", "XOO", "OX."), to_play="X")
        st2 = accept_move(st, "X", Move(2, 2))
        assert st2.status == "draw"

    def test_out_of_turn(self, new_state):
        with pytest.raises(MoveError) as ei:
            accept_move(new_state, "O", Move(0, 0))
        assert ei.value.kind == "out_of_turn"

    def test_cell_occupied_leaves_state_unchanged(self, new_state):
        st = accept_move(new_state, "X", Move(0, 0))
        snapshot = st.to_dict()
        with pytest.raises(MoveError) as ei:
            accept_move(st, "O", Move(0, 0))
        assert ei.value.kind == "cell_occupied"
        assert st.to_dict() == snapshot

    @pytest.mark.parametrize("row,col", [(3, 0), (0, 3), (-1, 1), (1, -1), (10, 10)])
    def test_out_of_bounds(self, new_state, row, col):
        with pytest.raises(MoveError) as ei:
            accept_move(new_state, "X", Move(row, col))
        assert ei.value.kind == "out_of_bounds"

    def test_finished_game_rejects_moves(self, make_state):
        st = make_state(("XXX", "OO.", "..."), to_play="O")
        assert st.status == "win_X"
        with pytest.raises(MoveError) as ei:
            accept_move(st, "O", Move(2, 2))
        assert ei.value.kind == "not_in_progress"

    def test_not_in_progress_checked_before_turn(self, make_state):
        st = make_state(("XOX", "XOO", "OXX"), to_play="O")
        with pytest.raises(MoveError) as ei:
            accept_move(st, "X", Move(0, 0))
        assert ei.value.kind == "not_in_progress"

    def test_deterministic(self, make_state):
        a = make_state(("X..", ".O.", "..."))
        b = make_state(("X..", ".O.", "..."))
        assert accept_move(a, "X", Move(2, 2)) == accept_move(b, "X", Move(2, 2))

    def test_error_payload(self, new_state):
        with pytest.raises(MoveError) as ei:
            accept_move(new_state, "X", Move(5, 5))
        d = ei.value.to_dict()
        assert d["kind"] == "out_of_bounds"
        assert "out of bounds" in d["message"]


def test_random_playouts_keep_invariants():
    rng = random.Random(7)
    for _ in range(200):
        st = GameState.new_game()
        while not st.is_over():
            mover = st.to_play
            st = accept_move(st, mover, rng.choice(st.empty_cells()))
            assert st.status == derive_status(st.board)
            assert st.to_play == opponent(mover)
        with pytest.raises(MoveError):
            accept_move(st, st.to_play, Move(0, 0))


class TestParseMove:
    def test_ok(self):
        assert parse_move({"row": 1, "col": 2}) == Move(1, 2)

    def test_out_of_range_passes_through_to_rules(self):
        assert parse_move({"row": 7, "col": 0}) == Move(7, 0)

    @pytest.mark.parametrize(
        "payload",
        [None, [], {"row": 1}, {"row": "1", "col": 0}, {"row": 1.5, "col": 0}, {"row": True, "col": 0}],
    )
    def test_malformed(self, payload):
        with pytest.raises(ValueError):
            parse_move(payload)


class TestSerialization:
    def test_to_dict_shape(self, new_state):
        d = accept_move(new_state, "X", Move(0, 1)).to_dict()
        assert d["board"][0] == ["empty", "X", "empty"]
        assert d["status"] == "in_progress"
        assert d["to_play"] == "O"

    def test_from_dict_rederives_status(self):
        d = {
            "board": [["X", "X", "X"], ["O", "O", "empty"], ["empty", "empty", "empty"]],
            "status": "in_progress",
            "to_play": "O",
        }
        assert GameState.from_dict(d).status == "win_X"

    @pytest.mark.parametrize(
        "d",
        [
            {"board": [["empty"] * 3] * 2},
            {"board": [["empty"] * 3, ["empty"] * 3, ["Q", "empty", "empty"]]},
            {"board": [["empty"] * 3] * 3, "to_play": "Z"},
        ],
    )
    def test_from_dict_rejects(self, d):
        with pytest.raises(ValueError):
            GameState.from_dict(d)

    def test_render(self, make_state):
        text = make_state(("X..", ".O.", "...")).render()
        assert text.splitlines()[0] == "X . ."
        assert "Next to play: X" in text
