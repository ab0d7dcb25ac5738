"""
Top-level tutor state as a tagged union of screens plus pure transitions.

Navigation never touches the arithmetic: the board screen only wraps a
ValidationSession, and every transition returns a new AppState.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import Optional, Union

from columncraft.services.step_validator import (
    Outcome,
    SlotKind,
    Status,
    ValidationSession,
    advance,
    create_session,
    set_input,
    submit,
)
from columncraft.skills.mental_training import MENTAL_TRAINING, TrainingMode, TrainingProblem
from columncraft.skills.registry import contract_for
from columncraft.utils.column_solver import TOTAL_COLUMNS, Operation, Problem

logger = logging.getLogger(__name__)


class WrongScreenError(RuntimeError):
    pass


@dataclass(frozen=True)
class MenuScreen:
    kind: str = "MENU"


@dataclass(frozen=True)
class TrainingMenuScreen:
    kind: str = "TRAINING_MENU"


@dataclass(frozen=True)
class BoardScreen:
    session: ValidationSession
    solved: bool = False
    kind: str = "BOARD"


@dataclass(frozen=True)
class TrainingScreen:
    problem: TrainingProblem
    answer: str = ""
    status: Status = Status.DEFAULT
    feedback: str = ""
    kind: str = "TRAINING"


Screen = Union[MenuScreen, TrainingMenuScreen, BoardScreen, TrainingScreen]


@dataclass(frozen=True)
class AppState:
    screen: Screen = MenuScreen()
    streak: int = 0
    columns: int = TOTAL_COLUMNS


def _board(state: AppState) -> BoardScreen:
    if not isinstance(state.screen, BoardScreen):
        raise WrongScreenError(f"expected BOARD, current screen is {state.screen.kind}")
    return state.screen


def _training(state: AppState) -> TrainingScreen:
    if not isinstance(state.screen, TrainingScreen):
        raise WrongScreenError(f"expected TRAINING, current screen is {state.screen.kind}")
    return state.screen


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

def start_board(
    state: AppState,
    operation: Operation,
    rng: random.Random,
    operands: Optional[list[int]] = None,
    directive: Optional[dict] = None,
) -> AppState:
    """Open the board with a fixed problem (`operands`) or a generated one."""
    if operands is not None:
        problem = Problem.from_operands(operation, operands)
    else:
        problem = contract_for(operation).build_variant(rng, directive)
    logger.info("board started: %s %s", problem.operation.value, problem.operands)
    return replace(state, screen=BoardScreen(session=create_session(problem, state.columns)))


def edit_board(state: AppState, slot: SlotKind, column_index: int, raw_text: str) -> AppState:
    board = _board(state)
    session = set_input(board.session, slot, column_index, raw_text)
    return replace(state, screen=replace(board, session=session))


def submit_board(state: AppState) -> tuple[AppState, Outcome]:
    """Submit the active column. A newly solved board bumps the streak once."""
    board = _board(state)
    session, outcome = submit(board.session)

    newly_solved = outcome is Outcome.PROBLEM_COMPLETE and not board.session.is_complete
    streak = state.streak + 1 if newly_solved else state.streak
    screen = replace(board, session=session, solved=board.solved or newly_solved)
    return replace(state, screen=screen, streak=streak), outcome


def advance_board(state: AppState, session_id: str) -> AppState:
    """Apply a settle transition, but only to the session that scheduled it."""
    board = state.screen
    if not isinstance(board, BoardScreen) or board.session.session_id != session_id:
        logger.debug("dropping stale advance for session %s", session_id)
        return state
    return replace(state, screen=replace(board, session=advance(board.session)))


def next_board_problem(state: AppState, rng: random.Random, directive: Optional[dict] = None) -> AppState:
    board = _board(state)
    return start_board(state, board.session.problem.operation, rng, directive=directive)


# ---------------------------------------------------------------------------
# Mental training
# ---------------------------------------------------------------------------

def start_training(state: AppState, mode: TrainingMode, rng: random.Random) -> AppState:
    problem = MENTAL_TRAINING.build_variant(rng, mode)
    return replace(state, screen=TrainingScreen(problem=problem))


def answer_training(state: AppState, raw_answer: str) -> tuple[AppState, Optional[dict]]:
    """
    Grade a training answer.
    Empty answers and answers given while waiting for auto-advance are
    ignored (grade is None). A wrong answer clears the input.
    """
    training = _training(state)
    raw_answer = (raw_answer or "").strip()
    if not raw_answer or training.status is Status.CORRECT:
        return state, None

    grade = MENTAL_TRAINING.grade(training.problem, raw_answer)
    if grade["is_correct"]:
        screen = replace(training, answer=raw_answer, status=Status.CORRECT, feedback="Correct!")
        return replace(state, screen=screen, streak=state.streak + 1), grade

    screen = replace(training, answer="", status=Status.ERROR, feedback="Try again!")
    return replace(state, screen=screen), grade


def next_training_problem(state: AppState, rng: random.Random, problem_id: Optional[str] = None) -> AppState:
    """New drill question in the same mode. With `problem_id`, only replaces that question."""
    training = state.screen
    if not isinstance(training, TrainingScreen):
        if problem_id is not None:
            return state
        raise WrongScreenError(f"expected TRAINING, current screen is {state.screen.kind}")
    if problem_id is not None and training.problem.problem_id != problem_id:
        return state
    return start_training(state, training.problem.mode, rng)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def open_training_menu(state: AppState) -> AppState:
    return replace(state, screen=TrainingMenuScreen())


def exit_to_menu(state: AppState) -> AppState:
    return replace(state, screen=MenuScreen())


def exit_to_training_menu(state: AppState) -> AppState:
    _training(state)
    return replace(state, screen=TrainingMenuScreen())
