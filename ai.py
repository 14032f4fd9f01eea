# FILE: ai.py | version: 2026-10-18.v2
# (exact minimax; alpha-beta variant keeps the same root move; first extremal move wins ties)

from __future__ import annotations

import math
from typing import List, Optional, Tuple

from engine import (
    GameState, Move, Player, SolverError,
    FIRST_PLAYER, SECOND_PLAYER, IN_PROGRESS, DRAW,
    accept_move, derive_status, empty_cells, opponent, place, winner_of,
)

# First (X) maximizes, Second (O) minimizes.
SCORE_WIN = 10
SCORE_DRAW = 0

AI_PLAYER: Player = SECOND_PLAYER

SolveResult = Tuple[int, Optional[Move]]


def terminal_score(state: GameState) -> Optional[int]:
    """Score of a finished board, or None while the game is still open."""
    status = derive_status(state.board)
    if status == IN_PROGRESS:
        return None
    if status == DRAW:
        return SCORE_DRAW
    return SCORE_WIN if winner_of(status) == FIRST_PLAYER else -SCORE_WIN


def _successor(state: GameState, move: Move) -> GameState:
    # Search owns the turn order, so no ownership check here.
    board = place(state.board, move, state.to_play)
    return GameState(board=board, status=derive_status(board), to_play=opponent(state.to_play))


# =============================================================================
# Plain exhaustive minimax
# =============================================================================

def minimax(state: GameState) -> SolveResult:
    score = terminal_score(state)
    if score is not None:
        return score, None

    maximizing = state.to_play == FIRST_PLAYER
    best_score = -math.inf if maximizing else math.inf
    best_move: Optional[Move] = None

    for move in empty_cells(state.board):
        child_score, _ = minimax(_successor(state, move))
        if (maximizing and child_score > best_score) or (not maximizing and child_score < best_score):
            best_score = child_score
            best_move = move

    return int(best_score), best_move


# =============================================================================
# Alpha-beta (fail-soft). Child values that cannot beat the current best come
# back as bounds on the same side, so the root choice matches minimax().
# =============================================================================

def _alphabeta(state: GameState, alpha: float, beta: float) -> SolveResult:
    score = terminal_score(state)
    if score is not None:
        return score, None

    maximizing = state.to_play == FIRST_PLAYER
    best_score = -math.inf if maximizing else math.inf
    best_move: Optional[Move] = None

    for move in empty_cells(state.board):
        child_score, _ = _alphabeta(_successor(state, move), alpha, beta)
        if maximizing:
            if child_score > best_score:
                best_score = child_score
                best_move = move
            alpha = max(alpha, best_score)
        else:
            if child_score < best_score:
                best_score = child_score
                best_move = move
            beta = min(beta, best_score)
        if alpha >= beta:
            break

    return int(best_score), best_move


def solve(state: GameState) -> SolveResult:
    """
    Game-theoretic value of `state` and the first optimal move in row-major order.

    A finished state returns its terminal score and no move.
    """
    return _alphabeta(state, -math.inf, math.inf)


def best_moves(state: GameState) -> List[Move]:
    """All moves achieving the minimax value (empty for finished games)."""
    if terminal_score(state) is not None:
        return []
    # Full window per child, so every score is exact.
    scored = [(solve(_successor(state, m))[0], m) for m in empty_cells(state.board)]
    pick = max if state.to_play == FIRST_PLAYER else min
    target = pick(s for s, _ in scored)
    return [m for s, m in scored if s == target]


# =============================================================================
# Turn driver
# =============================================================================

def play_optimal(state: GameState, player: Player = AI_PLAYER) -> GameState:
    """
    Apply the solver's move for `player`. No-op on a finished game.

    Raises SolverError if an open game yields no move, MoveError if it is not
    `player`'s turn.
    """
    if state.status != IN_PROGRESS:
        return state

    _score, move = solve(state)
    if move is None:
        raise SolverError("AI could not find a valid move")

    return accept_move(state, player, move)
