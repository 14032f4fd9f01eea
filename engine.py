# FILE: engine.py | version: 2026-10-18.v3
# (status always re-derived from the board; strict-turn; explicit bounds check)

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, NamedTuple, Optional, Tuple

Player = Literal["X", "O"]
Cell = Optional[Player]
Row = Tuple[Cell, Cell, Cell]
Board = Tuple[Row, Row, Row]
GameStatus = Literal["in_progress", "draw", "win_X", "win_O"]

PLAYERS: Tuple[Player, Player] = ("X", "O")
FIRST_PLAYER: Player = "X"
SECOND_PLAYER: Player = "O"

IN_PROGRESS: GameStatus = "in_progress"
DRAW: GameStatus = "draw"

SIZE = 3

# =============================================================================
# Winning lines (fixed order: rows, columns, diagonals)
# =============================================================================
WIN_LINES: List[Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]] = [
    ((0, 0), (0, 1), (0, 2)),
    ((1, 0), (1, 1), (1, 2)),
    ((2, 0), (2, 1), (2, 2)),
    ((0, 0), (1, 0), (2, 0)),
    ((0, 1), (1, 1), (2, 1)),
    ((0, 2), (1, 2), (2, 2)),
    ((0, 0), (1, 1), (2, 2)),
    ((0, 2), (1, 1), (2, 0)),
]

EMPTY_BOARD: Board = ((None, None, None), (None, None, None), (None, None, None))


# =============================================================================
# Errors
# =============================================================================

class GameError(ValueError):
    """Base error with a machine-readable kind and a human-readable message."""

    kind = "game_error"

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class MoveError(GameError):
    kind = "invalid_move"

    @classmethod
    def not_in_progress(cls) -> "MoveError":
        return cls("Game is not in progress", "not_in_progress")

    @classmethod
    def out_of_turn(cls, player: str, to_play: str) -> "MoveError":
        return cls(f"Not {player}'s turn (to_play={to_play})", "out_of_turn")

    @classmethod
    def cell_occupied(cls, row: int, col: int) -> "MoveError":
        return cls(f"Cell already occupied: ({row}, {col})", "cell_occupied")

    @classmethod
    def out_of_bounds(cls, row: Any, col: Any) -> "MoveError":
        return cls(f"Move out of bounds: ({row}, {col}); row and col must be in 0..2", "out_of_bounds")


class SolverError(GameError):
    kind = "solver_exhausted"


class SessionNotFound(GameError):
    kind = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(f"No active game for session: {session_id}")
        self.session_id = session_id


class StoreFull(GameError):
    kind = "store_full"

    def __init__(self, max_size: int):
        super().__init__(f"Too many active games (limit {max_size}); try again later")
        self.max_size = max_size


# =============================================================================
# Players / moves
# =============================================================================

def opponent(p: Player) -> Player:
    if p == "X":
        return "O"
    if p == "O":
        return "X"
    raise ValueError(f"Unknown player: {p!r}")


class Move(NamedTuple):
    row: int
    col: int


def _as_coord(v: Any, name: str) -> int:
    # bool is an int subclass; JSON true/false is not a coordinate
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{name} must be an integer")
    return v


def parse_move(d: Any) -> Move:
    if not isinstance(d, dict):
        raise ValueError("move must be an object like {\"row\": 0, \"col\": 2}")
    if "row" not in d or "col" not in d:
        raise ValueError("move requires both row and col")
    return Move(_as_coord(d["row"], "row"), _as_coord(d["col"], "col"))


def in_bounds(move: Move) -> bool:
    return 0 <= move.row < SIZE and 0 <= move.col < SIZE


# =============================================================================
# Board helpers (boards are tuples: every placement builds a new one)
# =============================================================================

def place(board: Board, move: Move, player: Player) -> Board:
    rows = [list(r) for r in board]
    rows[move.row][move.col] = player
    return tuple(tuple(r) for r in rows)  # type: ignore[return-value]


def empty_cells(board: Board) -> List[Move]:
    """Empty cells in row-major order."""
    return [Move(r, c) for r in range(SIZE) for c in range(SIZE) if board[r][c] is None]


def win_status(p: Player) -> GameStatus:
    return "win_X" if p == "X" else "win_O"


def winner_of(status: GameStatus) -> Optional[Player]:
    if status == "win_X":
        return "X"
    if status == "win_O":
        return "O"
    return None


def derive_status(board: Board) -> GameStatus:
    for line in WIN_LINES:
        a, b, c = (board[r][col] for r, col in line)
        if a is not None and a == b == c:
            return win_status(a)

    if all(cell is not None for row in board for cell in row):
        return DRAW
    return IN_PROGRESS


# =============================================================================
# Game state
# =============================================================================

@dataclass(frozen=True)
class GameState:
    board: Board = EMPTY_BOARD
    status: GameStatus = IN_PROGRESS
    to_play: Player = FIRST_PLAYER

    @classmethod
    def new_game(cls, first: Player = FIRST_PLAYER) -> "GameState":
        return cls(board=EMPTY_BOARD, status=IN_PROGRESS, to_play=first)

    def is_over(self) -> bool:
        return self.status != IN_PROGRESS

    def empty_cells(self) -> List[Move]:
        return empty_cells(self.board)

    def ply(self) -> int:
        return sum(1 for row in self.board for cell in row if cell is not None)

    def render(self) -> str:
        lines = [" ".join(cell or "." for cell in row) for row in self.board]
        lines.append(f"Status: {self.status}")
        lines.append(f"Next to play: {self.to_play}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "board": [[cell or "empty" for cell in row] for row in self.board],
            "status": self.status,
            "to_play": self.to_play,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GameState":
        """
        Build a state from its boundary form.

        The incoming "status" is ignored: status is always derived from the board.
        """
        raw = d.get("board")
        if not isinstance(raw, list) or len(raw) != SIZE:
            raise ValueError("board must be a 3x3 list")

        rows: List[Row] = []
        for raw_row in raw:
            if not isinstance(raw_row, list) or len(raw_row) != SIZE:
                raise ValueError("board must be a 3x3 list")
            row: List[Cell] = []
            for v in raw_row:
                if v in (None, "empty"):
                    row.append(None)
                elif v in PLAYERS:
                    row.append(v)
                else:
                    raise ValueError(f"Invalid cell value: {v!r}")
            rows.append(tuple(row))  # type: ignore[arg-type]

        to_play = d.get("to_play", FIRST_PLAYER)
        if to_play not in PLAYERS:
            raise ValueError(f"to_play must be X/O, got {to_play!r}")

        board: Board = tuple(rows)  # type: ignore[assignment]
        return cls(board=board, status=derive_status(board), to_play=to_play)


# =============================================================================
# Rules
# =============================================================================

def accept_move(state: GameState, player: Player, move: Move) -> GameState:
    """
    Validate and apply one ply. Returns a new state; the input is never mutated.

    Raises MoveError (not_in_progress, out_of_turn, out_of_bounds, cell_occupied).
    """
    if state.status != IN_PROGRESS:
        raise MoveError.not_in_progress()

    if player != state.to_play:
        raise MoveError.out_of_turn(player, state.to_play)

    if not in_bounds(move):
        raise MoveError.out_of_bounds(move.row, move.col)

    if state.board[move.row][move.col] is not None:
        raise MoveError.cell_occupied(move.row, move.col)

    board = place(state.board, move, state.to_play)
    return GameState(board=board, status=derive_status(board), to_play=opponent(state.to_play))
