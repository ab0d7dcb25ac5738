from pydantic import BaseModel, Field
from typing import Optional

from columncraft.services.step_validator import Outcome, SlotKind, Status
from columncraft.skills.mental_training import TrainingMode
from columncraft.utils.column_solver import Operation


# ──────────────────────────────────────────────
# Requests
# ──────────────────────────────────────────────

class StartBoardRequest(BaseModel):
    operation: Operation
    operands: Optional[list[int]] = None
    carry_required: bool = False


class EditRequest(BaseModel):
    slot: SlotKind
    column: int = Field(ge=0)
    value: str = ""


class StartTrainingRequest(BaseModel):
    mode: TrainingMode


class AnswerRequest(BaseModel):
    answer: str = ""


# ──────────────────────────────────────────────
# Views
# ──────────────────────────────────────────────

class ColumnView(BaseModel):
    index: int
    digits: list[int]
    result: str = ""
    top_aux: str = ""
    bottom_aux: str = ""
    active: bool = False
    locked: bool = False


class BoardView(BaseModel):
    session_id: str
    operation: Operation
    operands: list[int]
    columns: int
    active_column: int
    status: Status
    feedback: str = ""
    pending_advance: bool = False
    complete: bool = False
    solved: bool = False
    issues: list[str] = []
    settle_delay_ms: int
    column_views: list[ColumnView] = []


class TrainingView(BaseModel):
    mode: TrainingMode
    title: str
    question_text: str
    answer: str = ""
    status: Status
    feedback: str = ""


class PlayerStateResponse(BaseModel):
    player_id: str
    screen: str
    streak: int = 0
    boards_completed: int = 0
    board: Optional[BoardView] = None
    training: Optional[TrainingView] = None


# ──────────────────────────────────────────────
# Endpoint-level response schemas
# ──────────────────────────────────────────────

class SubmitResponse(BaseModel):
    outcome: Outcome
    state: PlayerStateResponse


class GradeResult(BaseModel):
    is_correct: Optional[bool] = None
    expected: Optional[int] = None
    student: Optional[int] = None
    error_type: Optional[str] = None


class AnswerResponse(BaseModel):
    grade: Optional[GradeResult] = None
    state: PlayerStateResponse


class ExplainResponse(BaseModel):
    steps: list[str] = []
    final_answer: Optional[str] = None
