"""
Shared pytest fixtures.

Game state fixtures are function-scoped so every test starts from its own board.
"""

from pathlib import Path
import sys

import pytest

# Ensure the top-level modules are importable when running from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from engine import GameState  # noqa: E402


def board_from(rows):
    """Build a state from three strings like "XO." (status derived, X to play unless given)."""
    return [[{"X": "X", "O": "O"}.get(ch, "empty") for ch in row] for row in rows]


def state_from(rows, to_play="X") -> GameState:
    return GameState.from_dict({"board": board_from(rows), "to_play": to_play})


@pytest.fixture
def new_state() -> GameState:
    return GameState.new_game()


@pytest.fixture
def make_state():
    return state_from
