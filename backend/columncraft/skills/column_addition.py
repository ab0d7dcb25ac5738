"""Column addition with carry — SkillContract implementation."""

import random

from .base import SkillContract
from columncraft.utils.column_solver import (
    Operation,
    Problem,
    create_expectations,
    digit_at,
    reassemble,
)

_PLACE_NAMES = ["units", "tens", "hundreds", "thousands", "ten thousands", "hundred thousands"]


def place_name(column_index: int) -> str:
    if column_index < len(_PLACE_NAMES):
        return _PLACE_NAMES[column_index]
    return f"column {column_index + 1}"


class ColumnAdditionContract(SkillContract):
    skill_tag = "column_add_with_carry"

    def build_variant(self, rng: random.Random, directive: dict | None = None) -> Problem:
        fallback = Problem.from_operands(Operation.ADDITION, (48275, 36958, 17486))
        return self._build_regrouping(rng, directive, fallback)

    def _draw(self, rng: random.Random) -> Problem:
        count = rng.randint(3, 4)
        operands = [rng.randint(10000, 99999) for _ in range(count)]
        return Problem.from_operands(Operation.ADDITION, operands)

    def explain(self, problem: Problem) -> dict:
        if self.validate(problem):
            return {"steps": [], "final_answer": None}

        expectations = create_expectations(problem, self.columns)
        steps = []
        carry_in = 0
        for i, exp in enumerate(expectations):
            digits = [digit_at(n, i) for n in problem.operands]
            terms = [str(d) for d in digits] + ([str(carry_in)] if carry_in else [])
            total = sum(digits) + carry_in
            step = f"{place_name(i).capitalize()}: {' + '.join(terms)} = {total} → write {exp.result_digit}"
            if exp.next_carry:
                step += f", carry {exp.next_carry}"
            steps.append(step)
            carry_in = exp.next_carry

        return {
            "steps": steps,
            "final_answer": str(reassemble(expectations)),
        }
