"""WebSocket connection management and state serialization."""

import json
from typing import Optional

from fastapi import WebSocket

from .game import GameEngine, TickResult
from .models import HighScoreRecord


class ConnectionManager:
    def __init__(self):
        self.connections: set[WebSocket] = set()

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.connections.add(ws)

    def disconnect(self, ws: WebSocket):
        self.connections.discard(ws)

    async def broadcast(self, message: str):
        disconnected = []
        # connect/disconnect may run while a send is awaited
        for ws in list(self.connections):
            try:
                await ws.send_text(message)
            except Exception:
                disconnected.append(ws)
        for ws in disconnected:
            self.connections.discard(ws)

    async def send_personal(self, ws: WebSocket, message: str):
        await ws.send_text(message)


def build_state_msg(engine: GameEngine) -> str:
    return json.dumps({"type": "state", **engine.snapshot()})


def build_start_msg(engine: GameEngine) -> str:
    state = engine.state
    return json.dumps({
        "type": "game_start",
        "grid": [state.width, state.height],
        "obstacles": [list(p) for p in sorted(state.obstacles)],
        "level": state.level_number,
        "level_name": state.level.name if state.level else None,
    })


def build_outcome_msgs(engine: GameEngine, result: TickResult,
                       is_high_score: Optional[bool] = None) -> list[str]:
    """Messages the renderer reacts to (sounds, dialogs) for one tick."""
    state = engine.state
    msgs = []
    if result.food_type is not None:
        msgs.append(json.dumps({"type": "food_eaten", "food": result.food_type.value}))
    if result.level_completed:
        msgs.append(json.dumps({
            "type": "level_complete",
            "level": state.level_number,
            "score": state.score,
        }))
    if result.game_over:
        msgs.append(json.dumps({
            "type": "game_over",
            "score": state.score,
            "collision": result.collision,
            "is_high_score": bool(is_high_score),
        }))
    return msgs


def scores_to_list(records: list[HighScoreRecord]) -> list[dict]:
    return [dict(r.to_dict(), rank=i) for i, r in enumerate(records, start=1)]
