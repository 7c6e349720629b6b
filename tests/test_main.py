"""Tests for the FastAPI host: routes, WebSocket protocol and the tick driver."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from snake_engine.game import GameEngine
from snake_engine.highscores import HighScoreStore
from snake_engine import main
from snake_engine.connection_manager import ConnectionManager
from snake_engine.constants import MAX_GRID_SIZE
from snake_engine.main import Session, create_app, game_loop, run_tick
from snake_engine.models import Difficulty, Direction, GameMode, HighScoreRecord


@pytest.fixture
def app(tmp_path):
    return create_app(HighScoreStore(str(tmp_path / "scores.json")))


@pytest.fixture
def client(app):
    # No context manager: the background game loop stays off and tests drive ticks
    return TestClient(app)


def start(ws, **options):
    ws.send_json({"type": "start", "width": 30, "height": 30, "seed": 3, **options})
    first, second = ws.receive_json(), ws.receive_json()
    assert first["type"] == "game_start"
    assert second["type"] == "state"
    return first, second


class FakeSocket:
    """Stands in for a WebSocket; every call yields to the event loop."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def accept(self):
        await asyncio.sleep(0)

    async def send_text(self, message):
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

class TestRoutes:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "running": False}

    def test_highscores_empty(self, client):
        assert client.get("/highscores").json() == []

    def test_highscores_ranked(self, app, client):
        store = app.state.store
        for score in (30, 90, 60):
            store.add(HighScoreRecord(score=score, mode=GameMode.WALLS, difficulty=Difficulty.EASY))
        body = client.get("/highscores", params={"mode": "walls", "limit": 2}).json()
        assert [(r["rank"], r["score"]) for r in body] == [(1, 90), (2, 60)]

    def test_highscores_unknown_mode(self, client):
        assert client.get("/highscores", params={"mode": "bogus"}).status_code == 400


class TestWebSocket:
    def test_start_sends_grid_and_state(self, client):
        with client.websocket_connect("/ws") as ws:
            game_start, state = start(ws, mode="stages")
        assert game_start["grid"] == [15, 15]
        assert game_start["level_name"] == "Beginner"
        assert state["score"] == 0
        assert state["snake"][0] == [7, 7]

    def test_input_goes_through_reversal_guard(self, app, client):
        with client.websocket_connect("/ws") as ws:
            start(ws)
            ws.send_json({"type": "input", "direction": "left"})
            ws.send_json({"type": "input", "direction": "up"})
            ws.send_json({"type": "pause"})
            assert ws.receive_json() == {"type": "pause_state", "paused": True}
        snake = app.state.session.engine.state.snake
        assert snake.next_direction == Direction.UP

    def test_reversal_rejected(self, app, client):
        with client.websocket_connect("/ws") as ws:
            start(ws)
            ws.send_json({"type": "input", "direction": "left"})
            ws.send_json({"type": "pause"})
            ws.receive_json()
        assert app.state.session.engine.state.snake.next_direction == Direction.RIGHT

    def test_message_before_start_is_an_error(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "pause"})
            assert ws.receive_json()["type"] == "error"

    def test_bad_values_are_reported(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start", "mode": "nope"})
            assert ws.receive_json()["type"] == "error"
            ws.send_json({"type": "start", "width": 0, "height": 10})
            assert ws.receive_json()["type"] == "error"

    def test_oversized_grid_is_capped(self, client):
        with client.websocket_connect("/ws") as ws:
            game_start, _ = start(ws, width=100_000, height=50)
        assert game_start["grid"] == [MAX_GRID_SIZE, 50]

    def test_unknown_message_type(self, client):
        with client.websocket_connect("/ws") as ws:
            start(ws)
            ws.send_json({"type": "dance"})
            assert ws.receive_json()["type"] == "error"

    def test_submit_score_once_after_game_over(self, app, client):
        with client.websocket_connect("/ws") as ws:
            start(ws, mode="walls")
            state = app.state.session.engine.state
            state.score = 70
            state.is_game_over = True

            ws.send_json({"type": "submit_score", "initials": "xyz"})
            saved = ws.receive_json()
            assert saved["type"] == "score_saved"
            assert saved["saved"] is True
            assert saved["scores"][0]["initials"] == "XYZ"
            assert saved["scores"][0]["score"] == 70

            ws.send_json({"type": "submit_score", "initials": "abc"})
            assert ws.receive_json()["saved"] is False
        assert len(app.state.store.records) == 1

    def test_failed_save_reports_not_saved(self, tmp_path):
        app = create_app(HighScoreStore(str(tmp_path)))
        client = TestClient(app)
        with client.websocket_connect("/ws") as ws:
            start(ws, mode="walls")
            state = app.state.session.engine.state
            state.score = 70
            state.is_game_over = True

            ws.send_json({"type": "submit_score", "initials": "xyz"})
            saved = ws.receive_json()
            assert saved["saved"] is False
            assert saved["scores"] == []

            # the run can still be saved once the store is writable
            app.state.store.path = str(tmp_path / "scores.json")
            ws.send_json({"type": "submit_score", "initials": "xyz"})
            assert ws.receive_json()["saved"] is True

    def test_submit_score_while_playing_is_ignored(self, app, client):
        with client.websocket_connect("/ws") as ws:
            start(ws)
            ws.send_json({"type": "submit_score", "initials": "xyz"})
            assert ws.receive_json()["saved"] is False
        assert app.state.store.records == []


class TestDriver:
    def test_run_tick_advances_engine(self, app):
        engine = GameEngine(30, 30, Difficulty.MEDIUM, GameMode.CLASSIC, seed=5)
        engine.state.food = None
        session = Session(engine)
        asyncio.run(run_tick(app, session))
        assert engine.state.snake.head.x == 16

    def test_level_completion_holds_the_driver(self, app):
        engine = GameEngine(30, 30, Difficulty.MEDIUM, GameMode.STAGES, seed=5)
        engine.state.food = None
        engine.state.score = 50
        session = Session(engine)
        result = asyncio.run(run_tick(app, session))
        assert result.level_completed
        assert session.awaiting_level
        assert not session.running

    def test_session_interval_uses_level_speed(self):
        engine = GameEngine(30, 30, Difficulty.EASY, GameMode.STAGES, seed=5)
        assert Session(engine).interval == pytest.approx(0.3)
        engine.load_level(9)
        assert Session(engine, speed_level=3).interval == pytest.approx(0.07)

    def test_next_level_after_completion(self, app, client):
        with client.websocket_connect("/ws") as ws:
            start(ws, mode="stages")
            session = app.state.session
            session.awaiting_level = True
            ws.send_json({"type": "next_level"})
            game_start = ws.receive_json()
            state = ws.receive_json()
        assert game_start["type"] == "game_start"
        assert game_start["level"] == 2
        assert state["grid"] == [18, 18]
        assert not session.awaiting_level


    def test_next_level_resumes_a_paused_game(self, app, client):
        with client.websocket_connect("/ws") as ws:
            start(ws, mode="stages")
            session = app.state.session
            ws.send_json({"type": "pause"})
            assert ws.receive_json() == {"type": "pause_state", "paused": True}
            session.awaiting_level = True
            ws.send_json({"type": "next_level"})
            assert ws.receive_json() == {"type": "pause_state", "paused": False}
            assert ws.receive_json()["type"] == "game_start"
            assert ws.receive_json()["paused"] is False
        assert not session.engine.state.is_paused
        assert session.running

    def test_loop_survives_a_failing_tick(self, app, monkeypatch):
        calls = []

        async def flaky_tick(app, session):
            calls.append(session)
            if len(calls) == 1:
                raise RuntimeError("boom")

        async def scenario():
            task = asyncio.create_task(game_loop(app))
            await asyncio.sleep(0.2)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        monkeypatch.setattr(main, "run_tick", flaky_tick)
        engine = GameEngine(30, 30, Difficulty.HARD, GameMode.CLASSIC, seed=5)
        app.state.session = Session(engine, speed_level=9)
        asyncio.run(scenario())
        assert len(calls) >= 2


class TestConnectionManager:
    def test_connect_during_broadcast(self):
        async def scenario():
            manager = ConnectionManager()
            a, b = FakeSocket(), FakeSocket()
            await manager.connect(a)
            await manager.connect(b)
            task = asyncio.create_task(manager.broadcast("tick"))
            await asyncio.sleep(0)
            late = FakeSocket()
            await manager.connect(late)
            await task
            return manager, a, b, late

        manager, a, b, late = asyncio.run(scenario())
        assert a.sent == ["tick"]
        assert b.sent == ["tick"]
        assert late in manager.connections
        assert len(manager.connections) == 3

    def test_failing_socket_is_dropped(self):
        async def scenario():
            manager = ConnectionManager()
            good, bad = FakeSocket(), FakeSocket(fail=True)
            await manager.connect(good)
            await manager.connect(bad)
            await manager.broadcast("tick")
            return manager, good, bad

        manager, good, bad = asyncio.run(scenario())
        assert good.sent == ["tick"]
        assert manager.connections == {good}
