"""
column_solver.py — deterministic column-by-column arithmetic.

Python computes every expected digit and carry/borrow for the board.
The learner only fills the slots — the answers never come from input.

Columns are indexed from the units column (0) leftward. Subtraction uses
the equal-additions method: a column that borrows ten pays it back by
adding one to the next column's bottom digit.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

TOTAL_COLUMNS = 6  # 5 digits + 1 for a final carry

ADDITION_OPERANDS = (2, 4)
SUBTRACTION_OPERANDS = 2


class Operation(str, Enum):
    ADDITION = "ADDITION"
    SUBTRACTION = "SUBTRACTION"


class MalformedProblemError(ValueError):
    def __init__(self, issues: list[str]):
        self.issues = list(issues)
        super().__init__(f"malformed problem: {', '.join(self.issues)}")


@dataclass(frozen=True)
class Problem:
    operation: Operation
    operands: tuple[int, ...]
    expected_result: int
    problem_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_operands(cls, operation: Operation, operands) -> "Problem":
        operation = Operation(operation)
        operands = tuple(int(n) for n in operands)
        if operation is Operation.ADDITION:
            expected = sum(operands)
        else:
            expected = operands[0] - sum(operands[1:]) if operands else 0
        return cls(operation=operation, operands=operands, expected_result=expected)

    @property
    def minuend(self) -> int:
        return self.operands[0]

    @property
    def subtrahend(self) -> int:
        return self.operands[1]


@dataclass(frozen=True)
class ColumnExpectation:
    result_digit: int
    next_carry: int


def digit_at(number: int, column_index: int) -> int:
    """
    Digit of `number` at `column_index` (0 = units).
    Columns past the number's natural width read as 0.
    Examples:
        digit_at(48, 0) → 8
        digit_at(48, 1) → 4
        digit_at(48, 5) → 0
    """
    return (number // 10 ** column_index) % 10


def validate_problem(problem: Problem, columns: int = TOTAL_COLUMNS) -> list[str]:
    issues = []
    count = len(problem.operands)

    if problem.operation is Operation.ADDITION:
        low, high = ADDITION_OPERANDS
        if not low <= count <= high:
            issues.append("operand_count")
    elif count != SUBTRACTION_OPERANDS:
        issues.append("operand_count")

    if any(n < 0 for n in problem.operands):
        issues.append("negative_operand")

    if issues:
        return issues

    if problem.operation is Operation.ADDITION:
        actual = sum(problem.operands)
    else:
        actual = problem.minuend - problem.subtrahend
        if actual < 0:
            issues.append("negative_result")

    if actual != problem.expected_result:
        issues.append("expected_result_mismatch")

    widest = max(list(problem.operands) + [max(actual, 0)])
    if len(str(widest)) > columns:
        issues.append("exceeds_capacity")

    return issues


def solve_column(problem: Problem, column_index: int, previous_carry: int) -> ColumnExpectation:
    """
    Expected result digit for one column and the carry/borrow handed to
    the next column on the left.

    Addition:    sum = Σ digits + previous_carry → (sum % 10, sum // 10).
                 The carry is not clamped; four addends can carry 3.
    Subtraction: effective_bottom = bottom + previous_carry. When the top
                 digit is smaller, borrow ten → (top + 10 - effective_bottom, 1),
                 otherwise (top - effective_bottom, 0).
    """
    if column_index < 0:
        raise ValueError("column_index must be >= 0")
    if previous_carry < 0:
        raise ValueError("previous_carry must be >= 0")

    digits = [digit_at(n, column_index) for n in problem.operands]

    if problem.operation is Operation.ADDITION:
        total = sum(digits) + previous_carry
        return ColumnExpectation(result_digit=total % 10, next_carry=total // 10)

    top, bottom = digits[0], digits[1]
    effective_bottom = bottom + previous_carry
    if top < effective_bottom:
        return ColumnExpectation(result_digit=(top + 10) - effective_bottom, next_carry=1)
    return ColumnExpectation(result_digit=top - effective_bottom, next_carry=0)


def create_expectations(problem: Problem, columns: int = TOTAL_COLUMNS) -> tuple[ColumnExpectation, ...]:
    """Fold solve_column from the units column leftward, carry seeded at 0."""
    issues = validate_problem(problem, columns)
    if issues:
        raise MalformedProblemError(issues)

    expectations = []
    carry = 0
    for column_index in range(columns):
        expectation = solve_column(problem, column_index, carry)
        expectations.append(expectation)
        carry = expectation.next_carry
    return tuple(expectations)


def reassemble(expectations) -> int:
    """Read the result digits back as a number (column 0 is the units)."""
    return sum(e.result_digit * 10 ** i for i, e in enumerate(expectations))


def has_regrouping(problem: Problem, columns: int = TOTAL_COLUMNS) -> bool:
    """True when at least one column carries (addition) or borrows (subtraction)."""
    return any(e.next_carry for e in create_expectations(problem, columns))
