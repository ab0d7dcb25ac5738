"""Base skill contract for board problems.

Every operation-specific skill (ColumnAddition, ColumnSubtraction)
subclasses SkillContract and overrides the relevant methods.
"""

import random

from columncraft.utils.column_solver import Problem, TOTAL_COLUMNS, has_regrouping, validate_problem


class SkillContract:
    skill_tag: str = ""
    columns: int = TOTAL_COLUMNS

    def build_variant(self, rng: random.Random, directive: dict | None = None) -> Problem:
        raise NotImplementedError

    def validate(self, problem: Problem) -> list[str]:
        return validate_problem(problem, self.columns)

    def explain(self, problem: Problem) -> dict:
        """
        Deterministic explanation builder.
        Returns structured explanation:
        {
            "steps": [str, ...],
            "final_answer": str | None
        }
        """
        return {
            "steps": [],
            "final_answer": None,
        }

    def _build_regrouping(self, rng: random.Random, directive: dict | None, fallback: Problem) -> Problem:
        """Retry until the problem regroups when the directive asks for it."""
        if not (directive and directive.get("carry_required")):
            return self._draw(rng)
        for _ in range(50):
            problem = self._draw(rng)
            if has_regrouping(problem, self.columns):
                return problem
        return fallback

    def _draw(self, rng: random.Random) -> Problem:
        raise NotImplementedError
