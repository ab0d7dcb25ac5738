"""Column subtraction with borrow (equal additions) — SkillContract implementation."""

import random

from .base import SkillContract
from .column_addition import place_name
from columncraft.utils.column_solver import (
    Operation,
    Problem,
    create_expectations,
    digit_at,
    reassemble,
)


class ColumnSubtractionWithBorrowContract(SkillContract):
    skill_tag = "column_sub_with_borrow"

    def build_variant(self, rng: random.Random, directive: dict | None = None) -> Problem:
        fallback = Problem.from_operands(Operation.SUBTRACTION, (50213, 17486))
        return self._build_regrouping(rng, directive, fallback)

    def _draw(self, rng: random.Random) -> Problem:
        # keep the result positive and reasonably large
        a = rng.randint(30000, 99999)
        b = rng.randint(10000, a - 1000)
        return Problem.from_operands(Operation.SUBTRACTION, (a, b))

    def explain(self, problem: Problem) -> dict:
        if self.validate(problem):
            return {"steps": [], "final_answer": None}

        expectations = create_expectations(problem, self.columns)
        steps = []
        carry_in = 0
        for i, exp in enumerate(expectations):
            top = digit_at(problem.minuend, i)
            bottom = digit_at(problem.subtrahend, i) + carry_in
            if exp.next_carry:
                steps.append(
                    f"{place_name(i).capitalize()}: {top} < {bottom}, borrow ten: "
                    f"1{top} − {bottom} = {exp.result_digit}, add 1 to the next bottom digit"
                )
            else:
                steps.append(f"{place_name(i).capitalize()}: {top} − {bottom} = {exp.result_digit}")
            carry_in = exp.next_carry

        return {
            "steps": steps,
            "final_answer": str(reassemble(expectations)),
        }
