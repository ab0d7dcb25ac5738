import logging

from fastapi import APIRouter, HTTPException

from columncraft.models.tutor import (
    AnswerRequest,
    AnswerResponse,
    BoardView,
    ColumnView,
    EditRequest,
    ExplainResponse,
    GradeResult,
    PlayerStateResponse,
    StartBoardRequest,
    StartTrainingRequest,
    SubmitResponse,
    TrainingView,
)
from columncraft.services.app_state import BoardScreen, TrainingScreen, WrongScreenError
from columncraft.services.player_store import PlayerNotFoundError, get_player_store
from columncraft.services.runtime import TutorRuntime
from columncraft.services.step_validator import InvalidInputError, ReadOnlySlotError
from columncraft.services.telemetry import instrument
from columncraft.skills.mental_training import TRAINING_TITLES
from columncraft.skills.registry import contract_for
from columncraft.utils.column_solver import Problem, digit_at, validate_problem

logger = logging.getLogger("columncraft.players")

router = APIRouter(prefix="/api/v1/players", tags=["players"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_runtime(player_id: str) -> TutorRuntime:
    try:
        return get_player_store().get(player_id)
    except PlayerNotFoundError:
        raise HTTPException(status_code=404, detail="Player not found")


def _board_view(runtime: TutorRuntime, board: BoardScreen) -> BoardView:
    session = board.session
    views = []
    for i in range(session.columns):
        views.append(ColumnView(
            index=i,
            digits=[digit_at(n, i) for n in session.problem.operands],
            result=session.result_inputs[i],
            top_aux=session.top_aux_inputs[i],
            bottom_aux=session.bottom_aux_inputs[i],
            active=i == session.active_column,
            locked=i < session.active_column,
        ))
    return BoardView(
        session_id=session.session_id,
        operation=session.problem.operation,
        operands=list(session.problem.operands),
        columns=session.columns,
        active_column=session.active_column,
        status=session.status,
        feedback=session.feedback,
        pending_advance=session.pending_advance,
        complete=session.is_complete,
        solved=board.solved,
        issues=list(session.issues),
        settle_delay_ms=int(runtime.settle_delay * 1000),
        column_views=views,
    )


def _state_response(runtime: TutorRuntime) -> PlayerStateResponse:
    state = runtime.state
    screen = state.screen
    out = PlayerStateResponse(
        player_id=runtime.player_id,
        screen=screen.kind,
        streak=state.streak,
        boards_completed=get_player_store().completed_boards(runtime.player_id),
    )
    if isinstance(screen, BoardScreen):
        out.board = _board_view(runtime, screen)
    elif isinstance(screen, TrainingScreen):
        out.training = TrainingView(
            mode=screen.problem.mode,
            title=TRAINING_TITLES[screen.problem.mode],
            question_text=screen.problem.question_text,
            answer=screen.answer,
            status=screen.status,
            feedback=screen.feedback,
        )
    return out


def _conflict(exc: Exception) -> HTTPException:
    return HTTPException(status_code=409, detail=str(exc))


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

@router.post("", response_model=PlayerStateResponse)
@instrument(route="/api/v1/players", version="v1")
def create_player():
    runtime = get_player_store().create()
    return _state_response(runtime)


@router.get("/{player_id}", response_model=PlayerStateResponse)
async def get_player(player_id: str, wait: bool = False):
    """
    Current state; applies any settle/auto-advance that has come due.
    With `wait=true`, sleeps out a pending delay first.
    """
    runtime = _get_runtime(player_id)
    if wait:
        await runtime.wait_settled()
    else:
        runtime.poll()
    return _state_response(runtime)


@router.delete("/{player_id}", status_code=204)
def delete_player(player_id: str):
    try:
        get_player_store().delete(player_id)
    except PlayerNotFoundError:
        raise HTTPException(status_code=404, detail="Player not found")


@router.post("/{player_id}/menu", response_model=PlayerStateResponse)
def back_to_menu(player_id: str):
    runtime = _get_runtime(player_id)
    runtime.exit_to_menu()
    return _state_response(runtime)


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

@router.post("/{player_id}/board", response_model=PlayerStateResponse)
@instrument(route="/api/v1/players/board", version="v1")
def start_board(player_id: str, payload: StartBoardRequest):
    """Start a board with a fixed problem (`operands`) or a generated one."""
    runtime = _get_runtime(player_id)
    if payload.operands is not None:
        problem = Problem.from_operands(payload.operation, payload.operands)
        issues = validate_problem(problem, runtime.state.columns)
        if issues:
            raise HTTPException(status_code=422, detail={"issues": issues})

    directive = {"carry_required": True} if payload.carry_required else None
    runtime.start_board(payload.operation, payload.operands, directive)
    return _state_response(runtime)


@router.post("/{player_id}/board/input", response_model=PlayerStateResponse)
def edit_board(player_id: str, payload: EditRequest):
    runtime = _get_runtime(player_id)
    try:
        runtime.edit(payload.slot, payload.column, payload.value)
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except (ReadOnlySlotError, WrongScreenError) as exc:
        raise _conflict(exc)
    return _state_response(runtime)


@router.post("/{player_id}/board/submit", response_model=SubmitResponse)
@instrument(route="/api/v1/players/board/submit", version="v1")
def submit_board(player_id: str):
    runtime = _get_runtime(player_id)
    try:
        outcome = runtime.submit()
    except WrongScreenError as exc:
        raise _conflict(exc)
    return SubmitResponse(outcome=outcome, state=_state_response(runtime))


@router.post("/{player_id}/board/next", response_model=PlayerStateResponse)
def next_board_problem(player_id: str):
    runtime = _get_runtime(player_id)
    try:
        runtime.next_board_problem()
    except WrongScreenError as exc:
        raise _conflict(exc)
    return _state_response(runtime)


@router.get("/{player_id}/board/explain", response_model=ExplainResponse)
def explain_board(player_id: str):
    """Worked solution, one step per column."""
    runtime = _get_runtime(player_id)
    board = runtime.board
    if board is None:
        raise HTTPException(status_code=409, detail="No board in progress")
    problem = board.session.problem
    return ExplainResponse(**contract_for(problem.operation).explain(problem))


# ---------------------------------------------------------------------------
# Mental training
# ---------------------------------------------------------------------------

@router.post("/{player_id}/training-menu", response_model=PlayerStateResponse)
def open_training_menu(player_id: str):
    runtime = _get_runtime(player_id)
    runtime.open_training_menu()
    return _state_response(runtime)


@router.post("/{player_id}/training", response_model=PlayerStateResponse)
def start_training(player_id: str, payload: StartTrainingRequest):
    runtime = _get_runtime(player_id)
    runtime.start_training(payload.mode)
    return _state_response(runtime)


@router.post("/{player_id}/training/answer", response_model=AnswerResponse)
@instrument(route="/api/v1/players/training/answer", version="v1")
def answer_training(player_id: str, payload: AnswerRequest):
    runtime = _get_runtime(player_id)
    try:
        grade = runtime.answer_training(payload.answer)
    except WrongScreenError as exc:
        raise _conflict(exc)
    return AnswerResponse(
        grade=GradeResult(**grade) if grade else None,
        state=_state_response(runtime),
    )


@router.post("/{player_id}/training/next", response_model=PlayerStateResponse)
def next_training_problem(player_id: str):
    runtime = _get_runtime(player_id)
    try:
        runtime.next_training_problem()
    except WrongScreenError as exc:
        raise _conflict(exc)
    return _state_response(runtime)


@router.post("/{player_id}/training/exit", response_model=PlayerStateResponse)
def exit_training(player_id: str):
    runtime = _get_runtime(player_id)
    try:
        runtime.exit_to_training_menu()
    except WrongScreenError as exc:
        raise _conflict(exc)
    return _state_response(runtime)
