"""Mental-arithmetic drills — doubles, friends of ten, bridging ten."""

import random
import uuid
from dataclasses import dataclass, field
from enum import Enum


class TrainingMode(str, Enum):
    DOUBLES = "DOUBLES"
    COMPLEMENTS_10 = "COMPLEMENTS_10"
    BRIDGE_10 = "BRIDGE_10"


TRAINING_TITLES = {
    TrainingMode.DOUBLES: "Doubles",
    TrainingMode.COMPLEMENTS_10: "Friends of 10",
    TrainingMode.BRIDGE_10: "Bridging 10",
}


@dataclass(frozen=True)
class TrainingProblem:
    mode: TrainingMode
    question_text: str
    expected_result: int
    problem_id: str = field(default_factory=lambda: uuid.uuid4().hex)


class MentalTrainingContract:
    skill_tag = "mental_training"

    def build_variant(self, rng: random.Random, mode: TrainingMode) -> TrainingProblem:
        mode = TrainingMode(mode)

        if mode is TrainingMode.DOUBLES:
            n = rng.randint(1, 10)
            return TrainingProblem(mode, f"{n} + {n}", n + n)

        if mode is TrainingMode.COMPLEMENTS_10:
            n = rng.randint(1, 9)
            return TrainingProblem(mode, f"From {n} to 10 is...", 10 - n)

        # starting a bit higher makes it real bridge practice
        start = rng.randint(5, 9)
        end = rng.randint(11, 19)
        return TrainingProblem(mode, f"From {start} to {end} is...", end - start)

    def grade(self, problem: TrainingProblem, student_answer: str) -> dict:
        result = {
            "is_correct": False,
            "expected": problem.expected_result,
            "student": None,
            "error_type": None,
        }

        try:
            student = int(student_answer)
        except (TypeError, ValueError):
            result["error_type"] = "invalid_format"
            return result

        result["student"] = student
        if student == problem.expected_result:
            result["is_correct"] = True
        else:
            result["error_type"] = "wrong_answer"
        return result


MENTAL_TRAINING = MentalTrainingContract()
