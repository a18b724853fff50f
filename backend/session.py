"""
Game Session

Owns the one live GameState of a game and is the only thing allowed to
replace it. Ticks and player actions are serialized through a single lock,
so a tick can never interleave with an action on cash or inventory.

The session also carries the concerns that sit around the pure transition
functions: the pause gate, full resets, the seeded random source, and the
display lifetime of tax notifications.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Mapping, Optional

import numpy as np

from catalog import Catalog, DEFAULT_CATALOG
from config import CONFIG, SimulationConfig
from economy import ACTION_TYPES, apply_action, advance_day
from state import GameState, init_state, net_equity, to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxNotice:
    """A tax bill the view should show until ``expires_at`` (monotonic clock)."""

    amount: float
    day: int
    expires_at: float


class GameSession:
    def __init__(
        self,
        catalog: Catalog = DEFAULT_CATALOG,
        config: SimulationConfig = CONFIG,
        seed: Optional[int] = None,
        initial_cash: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self.config = config
        self.seed = seed if seed is not None else config.session.seed
        self.initial_cash = initial_cash if initial_cash is not None else config.session.initial_cash
        self._clock = clock
        self._lock = threading.Lock()
        self.is_paused = False
        self.tax_notice: Optional[TaxNotice] = None
        self.history: Deque[Dict[str, float]] = deque(maxlen=config.market.history_length)
        self._reset_locked()

    # ---------- Lifecycle ----------

    def _reset_locked(self) -> None:
        self.rng = np.random.default_rng(self.seed)
        self.state: GameState = init_state(self.catalog, self.initial_cash, self.config)
        self.tax_notice = None
        self.history.clear()
        self._record_history()

    def reset(self, seed: Optional[int] = None, initial_cash: Optional[float] = None) -> GameState:
        """Start over from day 1; the only way out of a game over."""
        with self._lock:
            if seed is not None:
                self.seed = seed
            if initial_cash is not None:
                self.initial_cash = initial_cash
            self._reset_locked()
            self.is_paused = False
            logger.info(f"Session reset (seed={self.seed}, cash={self.initial_cash:,.0f})")
            return self.state

    def pause(self) -> None:
        with self._lock:
            self.is_paused = True

    def resume(self) -> None:
        with self._lock:
            self.is_paused = False

    @property
    def is_game_over(self) -> bool:
        return self.state.is_game_over

    @property
    def accepts_input(self) -> bool:
        return not (self.is_paused or self.state.is_game_over)

    # ---------- Transitions ----------

    def tick(self) -> GameState:
        """Advance one day unless paused or over."""
        with self._lock:
            if not self.accepts_input:
                return self.state
            previous = self.state
            self.state = advance_day(previous, self.rng, self.catalog, self.config)
            self._after_transition(previous)
            self._record_history()
            return self.state

    def act(self, action: Mapping[str, Any]) -> GameState:
        """
        Apply one player action.

        Args:
            action: Mapping with ``type`` and the action's arguments

        Returns:
            The current snapshot (unchanged if the action was refused)
        """
        kind = action.get("type")
        if kind == "advance_day":
            return self.tick()
        if kind not in ACTION_TYPES:
            logger.debug(f"Ignored unknown action type: {kind!r}")
            return self.state
        with self._lock:
            if not self.accepts_input:
                logger.debug(f"Ignored {action.get('type')}: session not accepting input")
                return self.state
            previous = self.state
            self.state = apply_action(previous, action, self.rng, self.catalog, self.config)
            self._after_transition(previous)
            return self.state

    def _after_transition(self, previous: GameState) -> None:
        state = self.state
        if state.last_tax_day is not None and state.last_tax_day != previous.last_tax_day:
            self.tax_notice = TaxNotice(
                amount=state.last_tax_bill or 0.0,
                day=state.last_tax_day,
                expires_at=self._clock() + self.config.fiscal.notification_seconds,
            )
        if state.active_event is not None and previous.active_event is None:
            logger.info(f"Day {state.day}: {state.active_event.name} ({state.active_event.description})")
        if state.is_game_over and not previous.is_game_over:
            logger.warning(
                f"Bankrupt on day {state.day}: net equity "
                f"{net_equity(state, self.catalog, self.config):,.2f}"
            )

    def _record_history(self) -> None:
        self.history.append({
            "day": self.state.day,
            "cash": self.state.cash,
            "debt": self.state.debt,
            "netEquity": net_equity(self.state, self.catalog, self.config),
        })

    # ---------- Reads ----------

    def current_tax_notice(self) -> Optional[TaxNotice]:
        """The pending notice, or None once its display time has passed."""
        notice = self.tax_notice
        if notice is not None and self._clock() >= notice.expires_at:
            self.tax_notice = None
            return None
        return notice

    def snapshot(self) -> Dict[str, Any]:
        """View payload: state, derived figures, session flags."""
        with self._lock:
            payload = to_dict(self.state, self.catalog, self.config)
            notice = self.current_tax_notice()
            payload.update({
                "isPaused": self.is_paused,
                "taxNotice": {"amount": notice.amount, "day": notice.day} if notice else None,
                "loanOptions": list(self.config.credit.loan_options),
                "equityHistory": list(self.history),
            })
            return payload
