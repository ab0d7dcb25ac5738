"""
TutorRuntime — owns one learner's AppState and the pacing timers.

The settle delay after a correct column (and the auto-advance after a
correct training answer) is a deadline, not a background task: every
operation polls the timer first, and a due timer fires its transition
only if its token still names the current session/question. Replacing
or leaving the session cancels the timer.

Sync routes run in FastAPI's threadpool, so every public operation holds
the runtime's lock for its whole read-modify-write.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import random
import threading
import time
from typing import Callable, Optional

from columncraft.services import app_state as nav
from columncraft.services.app_state import AppState, BoardScreen, TrainingScreen
from columncraft.services.step_validator import Outcome, SlotKind
from columncraft.services.telemetry import emit_event
from columncraft.skills.mental_training import TrainingMode
from columncraft.utils.column_solver import Operation

logger = logging.getLogger("columncraft.runtime")


def _locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class SettleTimer:
    """Deadline armed with a token; cancelled by disarming."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.token: Optional[str] = None
        self.deadline: Optional[float] = None

    @property
    def armed(self) -> bool:
        return self.token is not None

    def arm(self, token: str, delay_seconds: float) -> None:
        self.token = token
        self.deadline = self._clock() + max(delay_seconds, 0.0)

    def cancel(self) -> None:
        self.token = None
        self.deadline = None

    def remaining(self) -> float:
        if not self.armed:
            return 0.0
        return max(self.deadline - self._clock(), 0.0)

    def pop_due(self) -> Optional[str]:
        """Disarm and return the token if the deadline has passed."""
        if not self.armed or self._clock() < self.deadline:
            return None
        token = self.token
        self.cancel()
        return token


class TutorRuntime:
    def __init__(
        self,
        player_id: str,
        *,
        columns: int,
        settle_delay_ms: int,
        training_delay_ms: int,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        on_complete: Optional[Callable[["TutorRuntime"], None]] = None,
    ):
        self.player_id = player_id
        self.state = AppState(columns=columns)
        self.settle_delay = settle_delay_ms / 1000
        self.training_delay = training_delay_ms / 1000
        self.rng = rng or random.Random()
        self.on_complete = on_complete
        self.board_timer = SettleTimer(clock)
        self.training_timer = SettleTimer(clock)
        # re-entrant: operations poll() while already holding it
        self._lock = threading.RLock()

    # ── timers ────────────────────────────────────────────────────────────

    @_locked
    def poll(self) -> AppState:
        """Fire whichever pending transition is due."""
        token = self.board_timer.pop_due()
        if token is not None:
            logger.debug("settle due for session %s", token)
            self.state = nav.advance_board(self.state, token)

        token = self.training_timer.pop_due()
        if token is not None:
            self.state = nav.next_training_problem(self.state, self.rng, problem_id=token)
        return self.state

    async def wait_settled(self) -> AppState:
        """Sleep out any pending delay, then apply it."""
        while self.board_timer.armed or self.training_timer.armed:
            delay = max(self.board_timer.remaining(), self.training_timer.remaining())
            await asyncio.sleep(delay)
            self.poll()
        return self.state

    def _replace_state(self, state: AppState) -> None:
        self.board_timer.cancel()
        self.training_timer.cancel()
        self.state = state

    # ── board ─────────────────────────────────────────────────────────────

    @_locked
    def start_board(self, operation: Operation, operands: Optional[list[int]] = None,
                    directive: Optional[dict] = None) -> AppState:
        self.poll()
        self._replace_state(nav.start_board(self.state, operation, self.rng, operands, directive))
        return self.state

    @_locked
    def next_board_problem(self, directive: Optional[dict] = None) -> AppState:
        self.poll()
        self._replace_state(nav.next_board_problem(self.state, self.rng, directive))
        return self.state

    @_locked
    def edit(self, slot: SlotKind, column_index: int, raw_text: str) -> AppState:
        self.poll()
        self.state = nav.edit_board(self.state, slot, column_index, raw_text)
        return self.state

    @_locked
    def submit(self) -> Outcome:
        self.poll()
        before = self.state
        self.state, outcome = nav.submit_board(self.state)
        session = self.state.screen.session

        emit_event(
            "board_submit",
            player_id=self.player_id,
            operation=session.problem.operation.value,
            column=min(before.screen.session.active_column, session.columns - 1),
            outcome=outcome.value,
        )

        if outcome is Outcome.STEP_CORRECT and not self.board_timer.armed:
            self.board_timer.arm(session.session_id, self.settle_delay)
        elif outcome is Outcome.PROBLEM_COMPLETE and self.state.streak > before.streak:
            emit_event("problem_complete", player_id=self.player_id, streak=self.state.streak)
            if self.on_complete is not None:
                self.on_complete(self)
        return outcome

    # ── training ──────────────────────────────────────────────────────────

    @_locked
    def start_training(self, mode: TrainingMode) -> AppState:
        self.poll()
        self._replace_state(nav.start_training(self.state, mode, self.rng))
        return self.state

    @_locked
    def answer_training(self, raw_answer: str) -> Optional[dict]:
        self.poll()
        self.state, grade = nav.answer_training(self.state, raw_answer)
        screen = self.state.screen
        if grade and grade["is_correct"] and isinstance(screen, TrainingScreen):
            self.training_timer.arm(screen.problem.problem_id, self.training_delay)
        return grade

    @_locked
    def next_training_problem(self) -> AppState:
        self.poll()
        self._replace_state(nav.next_training_problem(self.state, self.rng))
        return self.state

    # ── navigation ────────────────────────────────────────────────────────

    @_locked
    def open_training_menu(self) -> AppState:
        self.poll()
        self._replace_state(nav.open_training_menu(self.state))
        return self.state

    @_locked
    def exit_to_menu(self) -> AppState:
        self.poll()
        self._replace_state(nav.exit_to_menu(self.state))
        return self.state

    @_locked
    def exit_to_training_menu(self) -> AppState:
        self.poll()
        self._replace_state(nav.exit_to_training_menu(self.state))
        return self.state

    @property
    def board(self) -> Optional[BoardScreen]:
        screen = self.state.screen
        return screen if isinstance(screen, BoardScreen) else None
