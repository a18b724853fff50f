import asyncio
import contextlib
import logging
import os
from typing import Any, Dict, Literal, Optional, Set

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError, confloat, conint

from config import CONFIG
from session import GameSession
from state import GameState

# Load environment variables from .env
load_dotenv()

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else None


SEED = _env_int("TRADESIM_SEED")
TICK_RATE_MS = _env_int("TRADESIM_TICK_MS") or CONFIG.session.tick_rate_ms
INITIAL_CASH = _env_float("TRADESIM_INITIAL_CASH")

app = FastAPI(title="TradeSim Backend", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------- Request Models ----------

class ActionRequest(BaseModel):
    type: Literal[
        "trade",
        "unlock_facility",
        "upgrade_facility",
        "sell_facility",
        "toggle_production",
        "take_loan",
        "repay",
    ]
    commodity_id: Optional[str] = None
    quantity: Optional[conint(ge=-1_000_000, le=1_000_000)] = None
    amount: Optional[confloat(ge=0)] = None


class SetupRequest(BaseModel):
    seed: Optional[int] = None
    initial_cash: Optional[confloat(ge=0)] = None


# ---------- Session host ----------

class GameManager:
    """
    Hosts one GameSession for the connected client.

    Plays the scheduler role: while running, it ticks the session every
    TICK_RATE_MS and pushes the new state to the websocket. At most one
    tick loop exists at a time.
    """

    def __init__(self, tick_rate_ms: int = TICK_RATE_MS):
        self.session = GameSession(seed=SEED, initial_cash=INITIAL_CASH)
        self.tick_rate_ms = tick_rate_ms
        self.is_running = False
        self.active_websocket: Optional[WebSocket] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._notice_tasks: Set[asyncio.Task] = set()

    async def setup(self, request: SetupRequest) -> Dict[str, Any]:
        await self.halt()
        self.session.reset(seed=request.seed, initial_cash=request.initial_cash)
        logger.info(f"Session set up: seed={self.session.seed}, cash={self.session.initial_cash:,.0f}")
        return self.session.snapshot()

    def start(self) -> None:
        self.session.resume()
        if self.session.is_game_over:
            logger.warning("Game over; RESET required before START")
            return
        self.is_running = True
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self.run_loop())

    async def stop(self) -> None:
        self.session.pause()
        await self.halt()

    async def halt(self) -> None:
        """Stop ticking and wait for the loop task to finish."""
        self.is_running = False
        task, self._loop_task = self._loop_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def act(self, request: ActionRequest) -> Dict[str, Any]:
        self.session.act(request.model_dump(exclude_none=True))
        return self.session.snapshot()

    async def send(self, message: Dict[str, Any]) -> None:
        if self.active_websocket:
            await self.active_websocket.send_json(message)

    async def push_state(self, previous: Optional[GameState] = None) -> None:
        """Send STATE, plus TAX_NOTICE and GAME_OVER when they happened since ``previous``."""
        state = self.session.state
        await self.send({"type": "STATE", "state": self.session.snapshot()})

        previous_tax_day = previous.last_tax_day if previous is not None else None
        if state.last_tax_day is not None and state.last_tax_day != previous_tax_day:
            await self.send({"type": "TAX_NOTICE", "amount": state.last_tax_bill, "day": state.last_tax_day})
            task = asyncio.create_task(self._clear_tax_notice(state.last_tax_day))
            self._notice_tasks.add(task)
            task.add_done_callback(self._notice_tasks.discard)

        if state.is_game_over and (previous is None or not previous.is_game_over):
            await self.send({"type": "GAME_OVER", "day": state.day})

    async def _clear_tax_notice(self, day: int) -> None:
        await asyncio.sleep(CONFIG.fiscal.notification_seconds)
        try:
            await self.send({"type": "TAX_NOTICE_CLEARED", "day": day})
        except (RuntimeError, WebSocketDisconnect):
            logger.debug("Socket closed before tax notice cleared")

    async def run_loop(self):
        logger.info(f"Starting tick loop ({self.tick_rate_ms} ms/day)")
        period = self.tick_rate_ms / 1000.0
        try:
            while self.is_running:
                start_time = asyncio.get_event_loop().time()

                previous = self.session.state
                self.session.tick()
                await self.push_state(previous)

                if self.session.is_game_over:
                    self.is_running = False
                    break

                elapsed = asyncio.get_event_loop().time() - start_time
                await asyncio.sleep(max(0.0, period - elapsed))

        except Exception as e:
            logger.error(f"Tick loop error: {e}")
            self.is_running = False
            if self.active_websocket:
                await self.active_websocket.send_json({"error": str(e)})


manager = GameManager()

# ---------- REST Endpoints ----------

@app.get("/health")
async def health():
    return {"status": "ok", "day": manager.session.state.day}


@app.get("/state")
async def get_state():
    return manager.session.snapshot()


@app.post("/actions")
async def post_action(req: ActionRequest):
    return manager.act(req)


@app.post("/reset")
async def post_reset(req: SetupRequest):
    return await manager.setup(req)


@app.post("/pause")
async def post_pause():
    await manager.stop()
    return manager.session.snapshot()


@app.post("/resume")
async def post_resume():
    manager.start()
    return manager.session.snapshot()


# ---------- WebSocket ----------

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    manager.active_websocket = websocket
    logger.info("WebSocket connected")

    try:
        while True:
            data = await websocket.receive_json()
            command = data.get("command")

            try:
                if command == "SETUP":
                    snapshot = await manager.setup(SetupRequest(**data.get("config", {})))
                    await websocket.send_json({"type": "SETUP_COMPLETE", "state": snapshot})
                elif command == "START":
                    manager.start()
                elif command == "STOP":
                    await manager.stop()
                    await websocket.send_json({"type": "PAUSED"})
                elif command == "RESET":
                    snapshot = await manager.setup(SetupRequest())
                    await websocket.send_json({"type": "RESET", "state": snapshot})
                elif command == "ACTION":
                    previous = manager.session.state
                    manager.session.act(ActionRequest(**data.get("action", {})).model_dump(exclude_none=True))
                    await manager.push_state(previous)
                else:
                    await websocket.send_json({"error": f"Unknown command: {command}"})
            except ValidationError as e:
                await websocket.send_json({"error": "Invalid payload", "detail": str(e)})

    except WebSocketDisconnect:
        await manager.halt()
        manager.active_websocket = None
        logger.info("Client disconnected")


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("TRADESIM_HOST", "127.0.0.1"), port=int(os.getenv("TRADESIM_PORT", "8000")))
