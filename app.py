# FILE: app.py | version: 2026-10-18.v6
# (multi-session routes + single-game routes; typed errors mapped to status codes; CORS origin from env)

from __future__ import annotations

from flask import Flask, request, jsonify
from flask_cors import CORS
from typing import Dict, Any
import logging
import os
import time

from engine import GameError, MoveError, SessionNotFound, SolverError, StoreFull, parse_move
from sessions import SessionStore, SingleGame

logger = logging.getLogger(__name__)

# =============================================================================
# Settings
# =============================================================================

HOST = os.environ.get("TTT_HOST", "127.0.0.1")
PORT = int(os.environ.get("TTT_PORT", "3000"))
CORS_ORIGIN = os.environ.get("TTT_CORS_ORIGIN", "http://localhost:3001")
MAX_SESSIONS = int(os.environ.get("TTT_MAX_SESSIONS", "200"))
SESSION_TTL = int(os.environ.get("TTT_SESSION_TTL", str(6 * 3600)))
SESSION_CLEANUP_INTERVAL = int(os.environ.get("TTT_SESSION_CLEANUP_INTERVAL", "900"))
LOG_LEVEL = os.environ.get("TTT_LOG_LEVEL", "INFO").strip().upper()

app = Flask(__name__)
CORS(app, origins=[CORS_ORIGIN], methods=["GET", "POST"], allow_headers=["Content-Type"])

# =============================================================================
# Sessions
# =============================================================================

SESSIONS = SessionStore(max_size=MAX_SESSIONS, ttl_seconds=SESSION_TTL)
GAME = SingleGame()
_LAST_SESSION_CLEANUP = time.time()


def cleanup_old_sessions() -> None:
    global _LAST_SESSION_CLEANUP
    now = time.time()
    if now - _LAST_SESSION_CLEANUP < SESSION_CLEANUP_INTERVAL:
        return
    SESSIONS.cleanup()
    _LAST_SESSION_CLEANUP = now


# =============================================================================
# Helpers
# =============================================================================

def ok(payload: Dict[str, Any] | None = None):
    return jsonify({"ok": True, **(payload or {})})


def err(msg: str, code: int = 400, kind: str = "bad_request"):
    return jsonify({"ok": False, "error": msg, "kind": kind}), code


def game_err(e: GameError):
    if isinstance(e, SessionNotFound):
        return err(e.message, 404, e.kind)
    if isinstance(e, StoreFull):
        logger.warning("new game refused: %s", e.message)
        return err(e.message, 503, e.kind)
    if isinstance(e, SolverError):
        logger.error("solver failure: %s", e.message)
        return err(e.message, 500, e.kind)
    if isinstance(e, MoveError):
        logger.debug("rejected move: %s (%s)", e.message, e.kind)
    return err(e.message, 400, e.kind)


def read_move():
    data = request.get_json(silent=True)
    return parse_move(data)


# =============================================================================
# Routes: multi-session
# =============================================================================

@app.post("/api/newgame")
def api_new_game():
    try:
        session_id, st = SESSIONS.create()
    except GameError as e:
        return game_err(e)
    return ok({"session_id": session_id, "game_state": st.to_dict()})


@app.get("/api/games/<session_id>")
def api_game_state(session_id: str):
    try:
        st = SESSIONS.get(session_id)
        return ok({"session_id": session_id, "game_state": st.to_dict()})
    except GameError as e:
        return game_err(e)


@app.post("/api/games/<session_id>/move")
def api_game_move(session_id: str):
    try:
        move = read_move()
    except ValueError as e:
        return err(str(e))

    try:
        st = SESSIONS.apply_human_move(session_id, move)
        return ok({"session_id": session_id, "game_state": st.to_dict()})
    except GameError as e:
        return game_err(e)


# =============================================================================
# Routes: single game
# =============================================================================

@app.get("/api/state")
def api_state():
    return ok({"game_state": GAME.snapshot().to_dict()})


@app.post("/api/move")
def api_move():
    try:
        move = read_move()
    except ValueError as e:
        return err(str(e))

    try:
        st = GAME.apply_human_move(move)
        return ok({"game_state": st.to_dict()})
    except GameError as e:
        return game_err(e)


@app.post("/api/reset")
def api_reset():
    st = GAME.reset()
    return ok({"game_state": st.to_dict()})


@app.get("/api/health")
def api_health():
    return ok({"sessions": len(SESSIONS)})


@app.errorhandler(Exception)
def internal_error(e: Exception):
    # Flask routes HTTPException (404/405) here too; keep their status.
    code = getattr(e, "code", None)
    if isinstance(code, int) and 400 <= code < 500:
        return err(getattr(e, "description", str(e)), code, "http_error")
    logger.exception("unhandled error")
    return err("internal error", 500, "internal_error")


@app.before_request
def before_request():
    cleanup_old_sessions()


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("listening on http://%s:%d", HOST, PORT)
    app.run(host=HOST, port=PORT, threaded=True)
