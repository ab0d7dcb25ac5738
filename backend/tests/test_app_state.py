"""
Tests for the pure navigation transitions in app_state.py.
"""
import random

import pytest
from columncraft.services import app_state as nav
from columncraft.services.app_state import (
    AppState,
    BoardScreen,
    MenuScreen,
    TrainingMenuScreen,
    TrainingScreen,
    WrongScreenError,
)
from columncraft.services.step_validator import Outcome, SlotKind, Status
from columncraft.skills.mental_training import TrainingMode
from columncraft.utils.column_solver import Operation


def solve(state, fill_column):
    """Drive the board to completion, returning every outcome seen."""
    outcomes = []
    while not state.screen.session.is_complete:
        board = state.screen
        state = nav.AppState(
            screen=BoardScreen(session=fill_column(board.session), solved=board.solved),
            streak=state.streak,
            columns=state.columns,
        )
        state, outcome = nav.submit_board(state)
        outcomes.append(outcome)
        state = nav.advance_board(state, state.screen.session.session_id)
    return state, outcomes


class TestBoard:
    def test_starts_on_menu(self):
        state = AppState()
        assert isinstance(state.screen, MenuScreen)
        assert state.streak == 0

    def test_start_board_with_fixed_problem(self):
        state = nav.start_board(AppState(), Operation.ADDITION, random.Random(0), operands=[48, 37])
        assert isinstance(state.screen, BoardScreen)
        assert state.screen.session.problem.operands == (48, 37)
        assert state.screen.session.active_column == 0

    def test_start_board_generates_problem(self):
        state = nav.start_board(AppState(), Operation.SUBTRACTION, random.Random(4))
        assert len(state.screen.session.problem.operands) == 2
        assert not state.screen.session.is_malformed

    def test_edit_requires_board(self):
        with pytest.raises(WrongScreenError):
            nav.edit_board(AppState(), SlotKind.RESULT, 0, "5")
        with pytest.raises(WrongScreenError):
            nav.submit_board(AppState())

    def test_streak_counts_each_solved_board_once(self, fill_column):
        state = nav.start_board(AppState(columns=2), Operation.ADDITION, random.Random(0), operands=[48, 37])
        state, outcomes = solve(state, fill_column)
        assert outcomes == [Outcome.STEP_CORRECT, Outcome.PROBLEM_COMPLETE]
        assert state.streak == 1
        assert state.screen.solved

        state, outcome = nav.submit_board(state)
        assert outcome is Outcome.PROBLEM_COMPLETE
        assert state.streak == 1

    def test_stale_advance_is_dropped(self, fill_column):
        state = nav.start_board(AppState(), Operation.ADDITION, random.Random(0), operands=[48, 37])
        old_id = state.screen.session.session_id
        state = nav.AppState(screen=BoardScreen(session=fill_column(state.screen.session)))
        state, outcome = nav.submit_board(state)
        assert outcome is Outcome.STEP_CORRECT

        fresh = nav.next_board_problem(state, random.Random(1))
        assert nav.advance_board(fresh, old_id) is fresh
        assert nav.advance_board(nav.exit_to_menu(state), old_id).screen == MenuScreen()

        advanced = nav.advance_board(state, old_id)
        assert advanced.screen.session.active_column == 1

    def test_next_board_problem_keeps_operation(self):
        state = nav.start_board(AppState(), Operation.SUBTRACTION, random.Random(0), operands=[52, 48])
        nxt = nav.next_board_problem(state, random.Random(9))
        assert nxt.screen.session.problem.operation is Operation.SUBTRACTION
        assert nxt.screen.session.session_id != state.screen.session.session_id
        assert nxt.screen.solved is False


class TestTraining:
    def _start(self):
        return nav.start_training(AppState(), TrainingMode.DOUBLES, random.Random(5))

    def test_empty_answer_is_ignored(self):
        state = self._start()
        new_state, grade = nav.answer_training(state, "  ")
        assert grade is None
        assert new_state is state

    def test_wrong_answer_clears_input(self):
        state = self._start()
        wrong = str(state.screen.problem.expected_result + 1)
        state, grade = nav.answer_training(state, wrong)
        assert grade["is_correct"] is False
        assert state.screen.status is Status.ERROR
        assert state.screen.answer == ""
        assert state.streak == 0

    def test_correct_answer_bumps_streak_once(self):
        state = self._start()
        right = str(state.screen.problem.expected_result)
        state, grade = nav.answer_training(state, right)
        assert grade["is_correct"] is True
        assert state.screen.status is Status.CORRECT
        assert state.streak == 1

        state, grade = nav.answer_training(state, right)
        assert grade is None
        assert state.streak == 1

    def test_next_training_problem_token(self):
        state = self._start()
        problem_id = state.screen.problem.problem_id
        assert nav.next_training_problem(state, random.Random(1), problem_id="stale") is state

        nxt = nav.next_training_problem(state, random.Random(1), problem_id=problem_id)
        assert isinstance(nxt.screen, TrainingScreen)
        assert nxt.screen.problem.problem_id != problem_id
        assert nxt.screen.problem.mode is TrainingMode.DOUBLES

        menu = nav.exit_to_menu(state)
        assert nav.next_training_problem(menu, random.Random(1), problem_id=problem_id) is menu
        with pytest.raises(WrongScreenError):
            nav.next_training_problem(menu, random.Random(1))


class TestNavigation:
    def test_menus(self):
        state = nav.open_training_menu(AppState())
        assert isinstance(state.screen, TrainingMenuScreen)

        state = nav.start_training(state, TrainingMode.BRIDGE_10, random.Random(0))
        state = nav.exit_to_training_menu(state)
        assert isinstance(state.screen, TrainingMenuScreen)

        assert isinstance(nav.exit_to_menu(state).screen, MenuScreen)

    def test_exit_to_training_menu_requires_training(self):
        with pytest.raises(WrongScreenError):
            nav.exit_to_training_menu(AppState())
