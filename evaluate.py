# FILE: evaluate.py | version: 2026-10-18.v3
# Headless evaluator for the tic-tac-toe AI
#
# Design:
# - The AI always plays O through ai.play_optimal, exactly as the server does.
# - X policies:
#     * "random":  uniform over empty cells (numpy Generator, seeded per game).
#     * "optimal": ai.solve acting as X (first optimal move).
#     * "optimal_any": uniform over ai.best_moves, so X varies among optimal lines.
# - "exhaustive" mode walks every X strategy against the AI (O replies are
#   deterministic, so the tree only branches on X moves).
# - Any X win is a failure of the AI; the report says so.

from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import dataclass
from typing import Dict, Any, List, Literal, Optional

import numpy as np

import ai
from engine import FIRST_PLAYER, GameState, Move, accept_move, winner_of

logger = logging.getLogger(__name__)

XPolicy = Literal["random", "optimal", "optimal_any"]


@dataclass
class EvalConfig:
    games: int = 100
    base_seed: int = 12345
    x_policy: XPolicy = "random"
    progress_every: int = 0


def pick_x_move(st: GameState, policy: XPolicy, rng: Optional[np.random.Generator]) -> Move:
    if policy == "optimal":
        _score, move = ai.solve(st)
        if move is None:
            raise ValueError("no move available for X")
        return move
    cells = ai.best_moves(st) if policy == "optimal_any" else st.empty_cells()
    if rng is None:
        raise ValueError(f"{policy} policy requires an rng")
    return cells[int(rng.integers(len(cells)))]


def play_game(policy: XPolicy = "random", rng: Optional[np.random.Generator] = None) -> GameState:
    st = GameState.new_game(FIRST_PLAYER)
    while not st.is_over():
        if st.to_play == FIRST_PLAYER:
            st = accept_move(st, FIRST_PLAYER, pick_x_move(st, policy, rng))
        else:
            st = ai.play_optimal(st, player=ai.AI_PLAYER)
    return st


def _tally(results: Dict[str, int], st: GameState) -> None:
    w = winner_of(st.status)
    if w is None:
        results["draws"] += 1
    elif w == FIRST_PLAYER:
        results["x_wins"] += 1
    else:
        results["o_wins"] += 1


def run_eval(cfg: EvalConfig) -> Dict[str, Any]:
    t0 = time.time()
    results = {"x_wins": 0, "o_wins": 0, "draws": 0}

    for g in range(int(cfg.games)):
        rng = np.random.default_rng(int(cfg.base_seed) + g)
        st = play_game(cfg.x_policy, rng)
        _tally(results, st)
        if st.status == "win_X":
            logger.warning("AI lost game %d:\n%s", g, st.render())

        if cfg.progress_every and (g + 1) % int(cfg.progress_every) == 0:
            logger.info("progress %d/%d %s", g + 1, cfg.games, results)

    elapsed = time.time() - t0
    return {
        "mode": "sampled",
        "x_policy": cfg.x_policy,
        "games": int(cfg.games),
        **results,
        "ai_unbeaten": results["x_wins"] == 0,
        "elapsed_s": round(elapsed, 3),
        "ms_per_game": round(1000.0 * elapsed / max(1, int(cfg.games)), 3),
    }


def exhaustive_eval(start: Optional[GameState] = None) -> Dict[str, Any]:
    """Play the AI (O) against every possible sequence of X moves from `start`."""
    t0 = time.time()
    results = {"x_wins": 0, "o_wins": 0, "draws": 0}
    lost: List[Dict[str, Any]] = []

    stack: List[GameState] = [start or GameState.new_game(FIRST_PLAYER)]
    while stack:
        st = stack.pop()
        if st.is_over():
            _tally(results, st)
            if st.status == "win_X" and len(lost) < 10:
                lost.append(st.to_dict())
            continue
        if st.to_play != FIRST_PLAYER:
            stack.append(ai.play_optimal(st, player=ai.AI_PLAYER))
            continue
        for move in st.empty_cells():
            stack.append(accept_move(st, FIRST_PLAYER, move))

    return {
        "mode": "exhaustive",
        "games": sum(results.values()),
        **results,
        "ai_unbeaten": results["x_wins"] == 0,
        "lost_positions": lost,
        "elapsed_s": round(time.time() - t0, 3),
    }


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Evaluate the tic-tac-toe AI (plays O).")
    ap.add_argument("--games", type=int, default=100)
    ap.add_argument("--seed", type=int, default=12345)
    ap.add_argument("--x", choices=["random", "optimal", "optimal_any"], default="random", help="policy for the X side")
    ap.add_argument("--exhaustive", action="store_true", help="try every X strategy instead of sampling")
    ap.add_argument("--progress_every", type=int, default=0, help="log progress every N games (0=off).")
    ap.add_argument("--log_level", default="INFO")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.exhaustive:
        rep = exhaustive_eval()
    else:
        cfg = EvalConfig(
            games=int(args.games),
            base_seed=int(args.seed),
            x_policy=str(args.x),  # type: ignore[arg-type]
            progress_every=int(args.progress_every),
        )
        rep = run_eval(cfg)

    print(json.dumps(rep, ensure_ascii=False, indent=2), flush=True)
    return 0 if rep["ai_unbeaten"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
