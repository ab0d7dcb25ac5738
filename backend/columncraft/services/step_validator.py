from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum

from columncraft.utils.column_solver import (
    TOTAL_COLUMNS,
    ColumnExpectation,
    MalformedProblemError,
    Operation,
    Problem,
    create_expectations,
    digit_at,
)

logger = logging.getLogger("columncraft.step_validator")

_DIGITS = re.compile(r"[0-9]*")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BORROW_MARKER = "1"

_MAX_LENGTH = {
    "RESULT": 1,
    "TOP_AUX": 2,
    "BOTTOM_AUX": 2,   # a bottom digit of 9 becomes "10"
}


class SlotKind(str, Enum):
    RESULT = "RESULT"
    TOP_AUX = "TOP_AUX"
    BOTTOM_AUX = "BOTTOM_AUX"


class Status(str, Enum):
    DEFAULT = "DEFAULT"
    ERROR = "ERROR"
    CORRECT = "CORRECT"


class Outcome(str, Enum):
    MISSING_RESULT = "MISSING_RESULT"
    WRONG_RESULT = "WRONG_RESULT"
    WRONG_CARRY = "WRONG_CARRY"
    SPURIOUS_CARRY = "SPURIOUS_CARRY"
    BORROW_EXPECTED = "BORROW_EXPECTED"
    BORROW_NOT_EXPECTED = "BORROW_NOT_EXPECTED"
    EQUAL_ADDITION_MISMATCH = "EQUAL_ADDITION_MISMATCH"
    EQUAL_ADDITION_SPURIOUS = "EQUAL_ADDITION_SPURIOUS"
    MALFORMED_PROBLEM = "MALFORMED_PROBLEM"
    STEP_CORRECT = "STEP_CORRECT"
    PROBLEM_COMPLETE = "PROBLEM_COMPLETE"


class InvalidInputError(ValueError):
    pass


class ReadOnlySlotError(ValueError):
    pass


@dataclass(frozen=True)
class ValidationSession:
    problem: Problem
    expectations: tuple[ColumnExpectation, ...]
    columns: int
    result_inputs: tuple[str, ...]
    top_aux_inputs: tuple[str, ...]
    bottom_aux_inputs: tuple[str, ...]
    active_column: int = 0
    status: Status = Status.DEFAULT
    feedback: str = ""
    pending_advance: bool = False
    issues: tuple[str, ...] = ()
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_complete(self) -> bool:
        return self.active_column >= self.columns

    @property
    def is_malformed(self) -> bool:
        return bool(self.issues)

    def slots(self, kind: SlotKind) -> tuple[str, ...]:
        if kind is SlotKind.RESULT:
            return self.result_inputs
        if kind is SlotKind.TOP_AUX:
            return self.top_aux_inputs
        return self.bottom_aux_inputs


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------

def create_session(problem: Problem, columns: int = TOTAL_COLUMNS) -> ValidationSession:
    """
    Fresh session for `problem`: empty slots, active column 0.
    Expectations are computed here once and never again for this session.
    A malformed problem still yields a session; its submits report
    MALFORMED_PROBLEM.
    """
    empty = ("",) * columns
    try:
        expectations = create_expectations(problem, columns)
        issues = ()
    except MalformedProblemError as exc:
        logger.warning("[step_validator.create_session] %s", exc)
        expectations = ()
        issues = tuple(exc.issues)

    return ValidationSession(
        problem=problem,
        expectations=expectations,
        columns=columns,
        result_inputs=empty,
        top_aux_inputs=empty,
        bottom_aux_inputs=empty,
        feedback="Start from the right!",
        issues=issues,
    )


def editable_slots(session: ValidationSession) -> set[tuple[SlotKind, int]]:
    """(slot kind, column) pairs the learner may type into right now."""
    if session.is_complete or session.pending_advance or session.is_malformed:
        return set()

    c = session.active_column
    out = {(SlotKind.RESULT, c)}
    if session.problem.operation is Operation.ADDITION:
        out.add((SlotKind.TOP_AUX, c + 1))
    else:
        out.add((SlotKind.TOP_AUX, c))
        out.add((SlotKind.BOTTOM_AUX, c + 1))
    return {(kind, col) for kind, col in out if col < session.columns}


def set_input(session: ValidationSession, slot: SlotKind, column_index: int, raw_text: str) -> ValidationSession:
    slot = SlotKind(slot)
    raw_text = raw_text or ""

    if not 0 <= column_index < session.columns:
        raise InvalidInputError(f"column {column_index} is outside the board")
    if not _DIGITS.fullmatch(raw_text):
        raise InvalidInputError("only digits are allowed")
    if len(raw_text) > _MAX_LENGTH[slot.value]:
        raise InvalidInputError(f"{slot.value} holds at most {_MAX_LENGTH[slot.value]} digit(s)")
    if (slot, column_index) not in editable_slots(session):
        raise ReadOnlySlotError(f"{slot.value} at column {column_index} is read-only")

    values = list(session.slots(slot))
    values[column_index] = raw_text
    return _with_slots(session, slot, tuple(values), status=Status.DEFAULT, feedback="")


# ---------------------------------------------------------------------------
# Canonical slot values
# ---------------------------------------------------------------------------

def expected_slots(session: ValidationSession, column_index: int) -> dict[SlotKind, str]:
    """What a fully solved board shows in each slot of one column."""
    problem = session.problem
    exp = session.expectations
    own = exp[column_index]
    prev_carry = exp[column_index - 1].next_carry if column_index > 0 else 0

    if problem.operation is Operation.ADDITION:
        top = str(prev_carry) if prev_carry else ""
        bottom = ""
    else:
        top = BORROW_MARKER if own.next_carry else ""
        bottom = str(digit_at(problem.subtrahend, column_index) + 1) if prev_carry else ""

    return {
        SlotKind.RESULT: str(own.result_digit),
        SlotKind.TOP_AUX: top,
        SlotKind.BOTTOM_AUX: bottom,
    }


def column_matches_expectation(session: ValidationSession, column_index: int) -> bool:
    expected = expected_slots(session, column_index)
    return all(session.slots(kind)[column_index] == value for kind, value in expected.items())


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

def feedback_for(outcome: Outcome, session: ValidationSession) -> str:
    c = min(session.active_column, session.columns - 1)
    problem = session.problem

    if outcome is Outcome.BORROW_EXPECTED:
        top = digit_at(problem.minuend, c)
        return f"The top number is smaller, so write a 1 to turn it into 1{top}."
    if outcome is Outcome.EQUAL_ADDITION_MISMATCH:
        bottom = digit_at(problem.subtrahend, c + 1)
        return f"Now add 1 to the bottom number of the next column ({bottom} + 1)."
    if outcome is Outcome.MALFORMED_PROBLEM:
        return f"This problem cannot be solved on the board ({', '.join(session.issues)})."

    return _FEEDBACK[outcome]


_FEEDBACK = {
    Outcome.MISSING_RESULT: "The result is missing.",
    Outcome.WRONG_RESULT: "That result is not right. Try again.",
    Outcome.WRONG_CARRY: "Don't forget the carry! (above the next column)",
    Outcome.SPURIOUS_CARRY: "There is no carry here.",
    Outcome.BORROW_NOT_EXPECTED: "No need to borrow here.",
    Outcome.EQUAL_ADDITION_SPURIOUS: "Nothing is carried to the next column.",
    Outcome.STEP_CORRECT: "Well done!",
    Outcome.PROBLEM_COMPLETE: "Well done!",
}


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def submit(session: ValidationSession) -> tuple[ValidationSession, Outcome]:
    """
    Validate the active column.
    Failures leave the active column where it is and set status ERROR.
    A correct non-final column sets a pending advance (see `advance`);
    the final column goes straight to COMPLETE.
    """
    if session.is_malformed:
        return _fail(session, Outcome.MALFORMED_PROBLEM), Outcome.MALFORMED_PROBLEM
    if session.is_complete:
        return session, Outcome.PROBLEM_COMPLETE
    if session.pending_advance:
        return session, Outcome.STEP_CORRECT

    failure = _check_column(session)
    if failure is not None:
        logger.debug("column %d failed: %s", session.active_column, failure.value)
        return _fail(session, failure), failure

    session = _lock_column(session)
    c = session.active_column
    if c + 1 >= session.columns:
        done = replace(
            session,
            active_column=session.columns,
            status=Status.CORRECT,
            feedback=feedback_for(Outcome.PROBLEM_COMPLETE, session),
        )
        return done, Outcome.PROBLEM_COMPLETE

    settling = replace(
        session,
        status=Status.CORRECT,
        pending_advance=True,
        feedback=feedback_for(Outcome.STEP_CORRECT, session),
    )
    return settling, Outcome.STEP_CORRECT


def advance(session: ValidationSession) -> ValidationSession:
    """Settle transition after a correct column. No-op unless one is pending."""
    if not session.pending_advance:
        return session
    return replace(
        session,
        active_column=session.active_column + 1,
        pending_advance=False,
        status=Status.DEFAULT,
        feedback="",
    )


def _check_column(session: ValidationSession) -> Outcome | None:
    c = session.active_column
    expected = session.expectations[c]
    raw = session.result_inputs[c]

    if not raw:
        return Outcome.MISSING_RESULT
    if int(raw) != expected.result_digit:
        return Outcome.WRONG_RESULT

    if session.problem.operation is Operation.ADDITION:
        return _check_carry(session, expected)
    return _check_borrow(session, expected)


def _check_carry(session: ValidationSession, expected: ColumnExpectation) -> Outcome | None:
    carry_slot = _slot_or_empty(session.top_aux_inputs, session.active_column + 1)
    if expected.next_carry > 0:
        if carry_slot != str(expected.next_carry):
            return Outcome.WRONG_CARRY
    elif not _is_blank(carry_slot):
        return Outcome.SPURIOUS_CARRY
    return None


def _check_borrow(session: ValidationSession, expected: ColumnExpectation) -> Outcome | None:
    c = session.active_column
    borrowed = expected.next_carry == 1

    marker = session.top_aux_inputs[c]
    if borrowed:
        if marker != BORROW_MARKER:
            return Outcome.BORROW_EXPECTED
    elif not _is_blank(marker):
        return Outcome.BORROW_NOT_EXPECTED

    if c + 1 >= session.columns:
        return None

    adjusted = session.bottom_aux_inputs[c + 1]
    if borrowed:
        if adjusted != str(digit_at(session.problem.subtrahend, c + 1) + 1):
            return Outcome.EQUAL_ADDITION_MISMATCH
    elif not _is_blank(adjusted):
        return Outcome.EQUAL_ADDITION_SPURIOUS
    return None


def _lock_column(session: ValidationSession) -> ValidationSession:
    """Normalise the slots this column's validation covered."""
    c = session.active_column
    result = list(session.result_inputs)
    top = list(session.top_aux_inputs)
    bottom = list(session.bottom_aux_inputs)

    result[c] = expected_slots(session, c)[SlotKind.RESULT]
    if session.problem.operation is Operation.ADDITION:
        if c + 1 < session.columns:
            top[c + 1] = expected_slots(session, c + 1)[SlotKind.TOP_AUX]
    else:
        top[c] = expected_slots(session, c)[SlotKind.TOP_AUX]
        if c + 1 < session.columns:
            bottom[c + 1] = expected_slots(session, c + 1)[SlotKind.BOTTOM_AUX]

    return replace(
        session,
        result_inputs=tuple(result),
        top_aux_inputs=tuple(top),
        bottom_aux_inputs=tuple(bottom),
    )


def _fail(session: ValidationSession, outcome: Outcome) -> ValidationSession:
    return replace(session, status=Status.ERROR, feedback=feedback_for(outcome, session))


def _with_slots(session: ValidationSession, slot: SlotKind, values: tuple[str, ...], **changes) -> ValidationSession:
    if slot is SlotKind.RESULT:
        return replace(session, result_inputs=values, **changes)
    if slot is SlotKind.TOP_AUX:
        return replace(session, top_aux_inputs=values, **changes)
    return replace(session, bottom_aux_inputs=values, **changes)


def _slot_or_empty(values: tuple[str, ...], index: int) -> str:
    return values[index] if index < len(values) else ""


def _is_blank(value: str) -> bool:
    return value in ("", "0")
