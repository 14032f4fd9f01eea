# FILE: sessions.py | version: 2026-10-18.v5
# (capped TTL store, per-session locks held across human ply + AI ply; finished games evicted)

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from typing import Dict, Tuple

import ai
from engine import FIRST_PLAYER, GameState, Move, Player, SessionNotFound, StoreFull, accept_move

logger = logging.getLogger(__name__)

HUMAN_PLAYER: Player = FIRST_PLAYER


def play_turn(st: GameState, move: Move) -> GameState:
    """Human ply, then the AI reply if the game is still open."""
    st = accept_move(st, HUMAN_PLAYER, move)
    if not st.is_over():
        st = ai.play_optimal(st, player=ai.AI_PLAYER)
    return st


# =============================================================================
# Multi-game registry
# =============================================================================

class SessionStore:
    """
    Thread-safe session store with a size cap, TTL and per-session locks.

    `_lock` only guards the dicts and is never held while a move is computed.
    A session's own lock is held for the whole turn, so requests for one game
    run one at a time while other games proceed independently.
    """

    def __init__(self, max_size: int = 200, ttl_seconds: int = 6 * 3600):
        self.max_size = int(max_size)
        self.ttl_seconds = int(ttl_seconds)
        self._lock = threading.Lock()
        self._data: "OrderedDict[str, GameState]" = OrderedDict()
        self._ts: Dict[str, float] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def _drop(self, key: str) -> None:
        self._data.pop(key, None)
        self._ts.pop(key, None)
        self._locks.pop(key, None)

    def _expired(self, key: str, now: float) -> bool:
        return now - self._ts.get(key, 0.0) > self.ttl_seconds

    def _idle(self, key: str, now: float) -> bool:
        # A held session lock means a turn is in flight.
        lk = self._locks.get(key)
        return self._expired(key, now) and not (lk is not None and lk.locked())

    def create(self) -> Tuple[str, GameState]:
        key = uuid.uuid4().hex
        st = GameState.new_game(HUMAN_PLAYER)
        now = time.time()
        with self._lock:
            # Open games are never dropped for room; only idle ones past the TTL.
            if len(self._data) >= self.max_size:
                for k in list(self._data.keys()):
                    if self._idle(k, now):
                        self._drop(k)
                        logger.info("session %s expired (store full)", k)
            if len(self._data) >= self.max_size:
                raise StoreFull(self.max_size)

            self._data[key] = st
            self._ts[key] = now
            self._locks[key] = threading.Lock()
        logger.info("session %s created", key)
        return key, st

    def lock_for(self, key: str) -> threading.Lock:
        with self._lock:
            lk = self._locks.get(key)
            if lk is None or key not in self._data:
                raise SessionNotFound(key)
            return lk

    def get(self, key: str) -> GameState:
        now = time.time()
        with self._lock:
            st = self._data.get(key)
            if st is None:
                raise SessionNotFound(key)

            if self._idle(key, now):
                self._drop(key)
                logger.info("session %s expired", key)
                raise SessionNotFound(key)

            self._data.move_to_end(key)
            self._ts[key] = now
            return st

    def discard(self, key: str) -> bool:
        with self._lock:
            present = key in self._data
            self._drop(key)
        return present

    def apply_human_move(self, key: str, move: Move) -> GameState:
        """
        Run one full turn on session `key` and return the resulting state.

        A game that ends on this turn is removed before returning. Errors
        (SessionNotFound, MoveError, SolverError) leave the stored state as it was.
        """
        with self.lock_for(key):
            # Re-read under the session lock: a request that held it before us may
            # have finished the game and evicted it.
            st = self.get(key)
            st = play_turn(st, move)

            with self._lock:
                if st.is_over():
                    self._drop(key)
                    logger.info("session %s finished: %s", key, st.status)
                elif key in self._data:
                    self._data[key] = st
                    self._data.move_to_end(key)
                    self._ts[key] = time.time()
            return st

    def cleanup(self) -> int:
        now = time.time()
        removed = 0
        with self._lock:
            for k in list(self._data.keys()):
                if self._idle(k, now):
                    self._drop(k)
                    removed += 1
        if removed:
            logger.info("cleanup removed %d idle sessions", removed)
        return removed


# =============================================================================
# Single-game variant (one global board, reset explicitly)
# =============================================================================

class SingleGame:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = GameState.new_game(HUMAN_PLAYER)

    def snapshot(self) -> GameState:
        with self._lock:
            return self._state

    def apply_human_move(self, move: Move) -> GameState:
        with self._lock:
            self._state = play_turn(self._state, move)
            if self._state.is_over():
                logger.info("single game finished: %s", self._state.status)
            return self._state

    def reset(self) -> GameState:
        with self._lock:
            self._state = GameState.new_game(HUMAN_PLAYER)
            logger.info("game state has been reset\n%s", self._state.render())
            return self._state
