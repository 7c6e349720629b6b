"""FastAPI application: WebSocket endpoint, high-score routes, game loop."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from .connection_manager import (
    ConnectionManager, build_outcome_msgs, build_start_msg, build_state_msg, scores_to_list,
)
from .constants import DEFAULT_SPEED_LEVEL, HIGHSCORE_TOP_N, HOST, MAX_GRID_SIZE, PORT
from .controls import steer, tick_interval
from .game import GameEngine
from .highscores import HighScoreStore
from .models import Difficulty, GameMode, HighScoreRecord

logger = logging.getLogger(__name__)

IDLE_POLL = 0.05


class Session:
    """One running game plus the driver bookkeeping around it."""

    def __init__(self, engine: GameEngine, speed_level: int = DEFAULT_SPEED_LEVEL):
        self.engine = engine
        self.speed_level = speed_level
        self.awaiting_level = False
        self.score_submitted = False

    @property
    def interval(self) -> float:
        state = self.engine.state
        return tick_interval(state.difficulty, self.speed_level, state.level) / 1000

    @property
    def running(self) -> bool:
        state = self.engine.state
        return not (state.is_paused or state.is_game_over or self.awaiting_level)


def start_session(msg: dict) -> Session:
    # Oversized grids are capped; non-positive ones are rejected by the engine
    width = min(int(msg.get("width", 30)), MAX_GRID_SIZE)
    height = min(int(msg.get("height", 30)), MAX_GRID_SIZE)
    engine = GameEngine(
        width, height,
        difficulty=Difficulty(msg.get("difficulty", "medium")),
        mode=GameMode(msg.get("mode", "classic")),
        walls_enabled=bool(msg.get("walls", True)),
        seed=msg.get("seed"),
    )
    return Session(engine, int(msg.get("speed", DEFAULT_SPEED_LEVEL)))


async def run_tick(app: FastAPI, session: Session):
    engine = session.engine
    result = engine.update()

    if result.level_completed:
        session.awaiting_level = True
    high = None
    if result.game_over:
        state = engine.state
        high = app.state.store.is_high_score(state.score, state.mode)

    manager: ConnectionManager = app.state.manager
    await manager.broadcast(build_state_msg(engine))
    for msg in build_outcome_msgs(engine, result, high):
        await manager.broadcast(msg)
    return result


async def game_loop(app: FastAPI):
    while True:
        session: Optional[Session] = app.state.session
        if session is None or not session.running:
            await asyncio.sleep(IDLE_POLL)
            continue

        try:
            await run_tick(app, session)
        except Exception:
            logger.exception("Tick failed, game loop keeps running")
        await asyncio.sleep(session.interval)


async def handle_message(app: FastAPI, ws: WebSocket, msg: dict):
    manager: ConnectionManager = app.state.manager
    session: Optional[Session] = app.state.session

    if msg["type"] == "start":
        session = start_session(msg)
        app.state.session = session
        await manager.broadcast(build_start_msg(session.engine))
        await manager.broadcast(build_state_msg(session.engine))
    elif session is None:
        await manager.send_personal(ws, json.dumps({"type": "error", "message": "no game running"}))
    elif msg["type"] == "input":
        state = session.engine.state
        if not (state.is_paused or state.is_game_over):
            steer(state.snake, msg.get("direction", ""))
    elif msg["type"] == "pause":
        if not session.engine.state.is_game_over:
            paused = session.engine.toggle_pause()
            await manager.broadcast(json.dumps({"type": "pause_state", "paused": paused}))
    elif msg["type"] == "next_level":
        if session.awaiting_level:
            session.awaiting_level = False
            was_paused = session.engine.state.is_paused
            result = session.engine.advance_to_next_level()
            if was_paused and not session.engine.state.is_paused:
                await manager.broadcast(json.dumps({"type": "pause_state", "paused": False}))
            if result.game_over:
                await manager.broadcast(json.dumps({
                    "type": "game_over",
                    "score": session.engine.state.score,
                    "collision": None,
                    "is_high_score": app.state.store.is_high_score(
                        session.engine.state.score, session.engine.state.mode),
                }))
            else:
                await manager.broadcast(build_start_msg(session.engine))
            await manager.broadcast(build_state_msg(session.engine))
    elif msg["type"] == "submit_score":
        await submit_score(app, ws, session, msg.get("initials"))
    else:
        await manager.send_personal(ws, json.dumps({
            "type": "error", "message": f"unknown message type {msg['type']!r}",
        }))


async def submit_score(app: FastAPI, ws: WebSocket, session: Session, initials: Optional[str]):
    store: HighScoreStore = app.state.store
    state = session.engine.state
    accepted = (state.is_game_over and not session.score_submitted
                and store.is_high_score(state.score, state.mode))
    if accepted:
        try:
            store.add(HighScoreRecord(
                score=state.score,
                mode=state.mode,
                difficulty=state.difficulty,
                level=state.level_number,
                date=datetime.now(),
                initials=initials,
            ))
        except OSError as e:
            logger.warning("Could not save high score to %s: %s", store.path, e)
            accepted = False
        else:
            session.score_submitted = True
    await app.state.manager.send_personal(ws, json.dumps({
        "type": "score_saved",
        "saved": accepted,
        "scores": scores_to_list(store.get_top_scores_by_mode(state.mode)),
    }))


def create_app(store: Optional[HighScoreStore] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(game_loop(app))
        yield
        task.cancel()

    app = FastAPI(lifespan=lifespan)
    app.state.store = store if store is not None else HighScoreStore()
    app.state.manager = ConnectionManager()
    app.state.session = None

    @app.get("/health")
    async def health():
        session = app.state.session
        return {"status": "ok", "running": bool(session and session.running)}

    @app.get("/highscores")
    async def highscores(mode: Optional[str] = None, limit: int = HIGHSCORE_TOP_N):
        store: HighScoreStore = app.state.store
        if mode:
            try:
                game_mode = GameMode(mode)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"unknown mode {mode!r}")
            records = store.get_top_scores_by_mode(game_mode, limit)
        else:
            records = store.get_top_scores(limit)
        return scores_to_list(records)

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        manager: ConnectionManager = app.state.manager
        await manager.connect(ws)
        try:
            while True:
                raw = await ws.receive_text()
                try:
                    await handle_message(app, ws, json.loads(raw))
                except (ValueError, KeyError, TypeError) as e:
                    await manager.send_personal(ws, json.dumps({"type": "error", "message": str(e)}))
        except WebSocketDisconnect:
            manager.disconnect(ws)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    print(f"Snake server starting on http://localhost:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT)
