"""
API tests for the FastAPI host (REST, WebSocket and the tick scheduler)
"""

import asyncio
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

import server
from server import GameManager, app, manager


@pytest.fixture
def client():
    with TestClient(app) as c:
        c.post("/reset", json={"seed": 1, "initial_cash": 5000})
        yield c
        c.post("/pause")


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, message):
        self.sent.append(message)

    def types(self):
        return [m.get("type") for m in self.sent]


def make_manager(tick_rate_ms=100, **state_changes):
    mgr = GameManager(tick_rate_ms=tick_rate_ms)
    mgr.session.reset(seed=5, initial_cash=5000)
    if state_changes:
        mgr.session.state = replace(mgr.session.state, **state_changes)
    mgr.active_websocket = FakeSocket()
    return mgr


class TestRest:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "day": 1}

    def test_reset_with_cash(self, client):
        payload = client.post("/reset", json={"seed": 4, "initial_cash": 12000}).json()
        assert payload["day"] == 1
        assert payload["cash"] == 12000.0

    def test_trade_action(self, client):
        response = client.post("/actions", json={"type": "trade", "commodity_id": "oil", "quantity": 10})
        assert response.status_code == 200
        payload = response.json()
        assert abs(payload["cash"] - 4200.0) < 1e-9
        oil = next(i for i in payload["inventory"] if i["commodityId"] == "oil")
        assert oil["quantity"] == 10

    def test_rejected_action_returns_unchanged_state(self, client):
        payload = client.post("/actions", json={"type": "trade", "commodity_id": "gold", "quantity": 5}).json()
        assert payload["cash"] == 5000.0

    def test_unknown_action_is_422(self, client):
        response = client.post("/actions", json={"type": "launder", "amount": 10})
        assert response.status_code == 422

    def test_pause_blocks_actions(self, client):
        assert client.post("/pause").json()["isPaused"] is True
        payload = client.post("/actions", json={"type": "take_loan", "amount": 5000}).json()
        assert payload["debt"] == 0.0

        assert client.post("/resume").json()["isPaused"] is False
        payload = client.post("/actions", json={"type": "take_loan", "amount": 5000}).json()
        assert payload["debt"] == 5000.0


class TestWebSocket:
    def test_setup_and_action(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"command": "SETUP", "config": {"seed": 3}})
            message = ws.receive_json()
            assert message["type"] == "SETUP_COMPLETE"
            assert message["state"]["day"] == 1

            ws.send_json({"command": "ACTION", "action": {"type": "unlock_facility", "commodity_id": "oil"}})
            message = ws.receive_json()
            assert message["type"] == "STATE"
            assert message["state"]["facilities"][0]["commodityId"] == "oil"
            assert message["state"]["cash"] == 3000.0

    def test_stop_pauses_session(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"command": "STOP"})
            assert ws.receive_json() == {"type": "PAUSED"}
            assert manager.session.is_paused

    def test_bad_commands(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"command": "FLY"})
            assert ws.receive_json()["error"] == "Unknown command: FLY"

            ws.send_json({"command": "ACTION", "action": {"type": "trade", "quantity": "lots"}})
            assert ws.receive_json()["error"] == "Invalid payload"


class TestScheduler:
    def test_start_is_idempotent(self):
        async def scenario():
            mgr = make_manager(tick_rate_ms=1000)
            mgr.start()
            first = mgr._loop_task
            mgr.start()
            same = mgr._loop_task is first
            await mgr.stop()
            return same, first.done(), mgr._loop_task

        same, finished, task = asyncio.run(scenario())
        assert same
        assert finished
        assert task is None

    def test_stop_then_start_keeps_one_loop(self):
        async def scenario():
            mgr = make_manager(tick_rate_ms=100)
            mgr.start()
            await asyncio.sleep(0.02)
            await mgr.stop()
            mgr.start()
            await asyncio.sleep(0.55)
            await mgr.stop()
            return mgr.session.state.day

        # One tick on each start, then one per 100 ms: about 8 days.
        # Two loops would be near 13.
        assert asyncio.run(scenario()) <= 9

    def test_stop_freezes_the_day(self):
        async def scenario():
            mgr = make_manager(tick_rate_ms=50)
            mgr.start()
            await asyncio.sleep(0.12)
            await mgr.stop()
            day = mgr.session.state.day
            await asyncio.sleep(0.15)
            return day, mgr.session.state.day

        stopped, later = asyncio.run(scenario())
        assert stopped == later

    def test_resume_endpoint_restarts_ticking(self, monkeypatch):
        async def scenario():
            mgr = make_manager(tick_rate_ms=50)
            monkeypatch.setattr(server, "manager", mgr)
            await server.post_pause()
            paused_day = mgr.session.state.day

            payload = await server.post_resume()
            await asyncio.sleep(0.2)
            await mgr.stop()
            return payload["isPaused"], paused_day, mgr.session.state.day

        is_paused, before, after = asyncio.run(scenario())
        assert is_paused is False
        assert after > before

    def test_bankrupt_tick_pushes_game_over_once(self):
        async def scenario():
            mgr = make_manager(tick_rate_ms=50, cash=-5000.0)
            mgr.start()
            await asyncio.sleep(0.1)
            loop_done = mgr._loop_task.done()

            # A later push (e.g. a refused action) does not repeat it
            await mgr.push_state(mgr.session.state)
            return mgr, loop_done

        mgr, loop_done = asyncio.run(scenario())
        socket = mgr.active_websocket
        assert loop_done
        assert mgr.is_running is False
        assert socket.types().count("GAME_OVER") == 1
        assert socket.types()[:2] == ["STATE", "GAME_OVER"]
        assert mgr.session.state.day == 2

    def test_tax_tick_pushes_notice(self):
        async def scenario():
            mgr = make_manager(tick_rate_ms=1000, next_tax_day=2)
            mgr.start()
            await asyncio.sleep(0.05)
            pending = len(mgr._notice_tasks)
            await mgr.stop()
            return mgr, pending

        mgr, pending = asyncio.run(scenario())
        notices = [m for m in mgr.active_websocket.sent if m.get("type") == "TAX_NOTICE"]
        assert len(notices) == 1
        assert notices[0]["day"] == 2
        assert abs(notices[0]["amount"] - 750.0) < 1e-9
        assert pending == 1
