import pytest
from fastapi.testclient import TestClient
from columncraft.core.config import get_settings
from columncraft.main import app
from columncraft.services.player_store import PLAYER_STORE

client = TestClient(app)

BASE = "/api/v1/players"


@pytest.fixture(autouse=True)
def no_delays(monkeypatch):
    # settle immediately so the next request sees the advanced board
    monkeypatch.setenv("SETTLE_DELAY_MS", "0")
    monkeypatch.setenv("TRAINING_ADVANCE_DELAY_MS", "0")
    get_settings.cache_clear()
    PLAYER_STORE.clear()
    yield
    get_settings.cache_clear()
    PLAYER_STORE.clear()


@pytest.fixture
def player_id():
    response = client.post(BASE)
    assert response.status_code == 200
    return response.json()["player_id"]


def put(player_id, slot, column, value):
    return client.post(f"{BASE}/{player_id}/board/input", json={"slot": slot, "column": column, "value": value})


def test_root_and_health():
    assert client.get("/").json()["health"] == "/health"
    assert client.get("/health").json() == {"status": "ok"}


def test_new_player_starts_on_menu(player_id):
    body = client.get(f"{BASE}/{player_id}").json()
    assert body["screen"] == "MENU"
    assert body["streak"] == 0
    assert body["board"] is None


def test_unknown_player():
    assert client.get(f"{BASE}/nobody").status_code == 404


def test_delete_player(player_id):
    assert client.delete(f"{BASE}/{player_id}").status_code == 204
    assert client.get(f"{BASE}/{player_id}").status_code == 404
    assert client.delete(f"{BASE}/{player_id}").status_code == 404


def test_wait_returns_settled_board(monkeypatch):
    monkeypatch.setenv("SETTLE_DELAY_MS", "200")
    get_settings.cache_clear()
    player_id = client.post(BASE).json()["player_id"]

    client.post(f"{BASE}/{player_id}/board", json={"operation": "ADDITION", "operands": [48, 37]})
    put(player_id, "RESULT", 0, "5")
    put(player_id, "TOP_AUX", 1, "1")
    body = client.post(f"{BASE}/{player_id}/board/submit").json()
    assert body["state"]["board"]["pending_advance"] is True

    board = client.get(f"{BASE}/{player_id}", params={"wait": "true"}).json()["board"]
    assert board["active_column"] == 1
    assert board["pending_advance"] is False


def test_solve_addition_board(player_id):
    body = client.post(f"{BASE}/{player_id}/board", json={"operation": "ADDITION", "operands": [48, 37]}).json()
    board = body["board"]
    assert body["screen"] == "BOARD"
    assert board["columns"] == 6
    assert board["column_views"][0]["digits"] == [8, 7]
    assert board["column_views"][0]["active"] is True

    put(player_id, "RESULT", 0, "5")
    put(player_id, "TOP_AUX", 1, "1")
    body = client.post(f"{BASE}/{player_id}/board/submit").json()
    assert body["outcome"] == "STEP_CORRECT"
    assert body["state"]["board"]["status"] == "CORRECT"
    assert body["state"]["board"]["pending_advance"] is True

    board = client.get(f"{BASE}/{player_id}").json()["board"]
    assert board["active_column"] == 1
    assert board["column_views"][0]["locked"] is True

    digits = {1: "8", 2: "0", 3: "0", 4: "0", 5: "0"}
    for column, digit in digits.items():
        assert put(player_id, "RESULT", column, digit).status_code == 200
        body = client.post(f"{BASE}/{player_id}/board/submit").json()

    assert body["outcome"] == "PROBLEM_COMPLETE"
    assert body["state"]["streak"] == 1
    assert body["state"]["board"]["solved"] is True
    assert body["state"]["board"]["complete"] is True
    assert body["state"]["boards_completed"] == 1

    # resubmitting a solved board is not another completion
    again = client.post(f"{BASE}/{player_id}/board/submit").json()
    assert again["state"]["boards_completed"] == 1


def test_wrong_carry_does_not_advance(player_id):
    client.post(f"{BASE}/{player_id}/board", json={"operation": "ADDITION", "operands": [48, 37]})
    put(player_id, "RESULT", 0, "5")
    body = client.post(f"{BASE}/{player_id}/board/submit").json()
    assert body["outcome"] == "WRONG_CARRY"
    assert body["state"]["board"]["status"] == "ERROR"
    assert body["state"]["board"]["active_column"] == 0


def test_subtraction_borrow_feedback(player_id):
    client.post(f"{BASE}/{player_id}/board", json={"operation": "SUBTRACTION", "operands": [52, 48]})
    put(player_id, "RESULT", 0, "4")
    put(player_id, "TOP_AUX", 0, "1")
    put(player_id, "BOTTOM_AUX", 1, "4")
    body = client.post(f"{BASE}/{player_id}/board/submit").json()
    assert body["outcome"] == "EQUAL_ADDITION_MISMATCH"
    assert "(4 + 1)" in body["state"]["board"]["feedback"]


def test_input_rejections(player_id):
    client.post(f"{BASE}/{player_id}/board", json={"operation": "ADDITION", "operands": [48, 37]})
    assert put(player_id, "RESULT", 0, "x").status_code == 422
    assert put(player_id, "RESULT", 3, "1").status_code == 409
    assert put(player_id, "RESULT", -1, "1").status_code == 422


def test_malformed_fixed_problem(player_id):
    response = client.post(f"{BASE}/{player_id}/board", json={"operation": "SUBTRACTION", "operands": [48, 52]})
    assert response.status_code == 422
    assert "negative_result" in response.json()["detail"]["issues"]


def test_generated_board_and_explain(player_id):
    body = client.post(f"{BASE}/{player_id}/board", json={"operation": "SUBTRACTION", "carry_required": True}).json()
    assert len(body["board"]["operands"]) == 2

    explain = client.get(f"{BASE}/{player_id}/board/explain").json()
    assert len(explain["steps"]) == 6
    a, b = body["board"]["operands"]
    assert explain["final_answer"] == str(a - b)

    old = body["board"]["session_id"]
    nxt = client.post(f"{BASE}/{player_id}/board/next").json()
    assert nxt["board"]["session_id"] != old


def test_board_actions_need_a_board(player_id):
    assert client.post(f"{BASE}/{player_id}/board/submit").status_code == 409
    assert client.get(f"{BASE}/{player_id}/board/explain").status_code == 409


def test_training_round(player_id):
    client.post(f"{BASE}/{player_id}/training-menu")
    body = client.post(f"{BASE}/{player_id}/training", json={"mode": "DOUBLES"}).json()
    training = body["training"]
    assert body["screen"] == "TRAINING"
    assert training["title"] == "Doubles"

    n = int(training["question_text"].split(" + ")[0])
    wrong = client.post(f"{BASE}/{player_id}/training/answer", json={"answer": str(2 * n + 1)}).json()
    assert wrong["grade"]["is_correct"] is False
    assert wrong["state"]["training"]["status"] == "ERROR"

    right = client.post(f"{BASE}/{player_id}/training/answer", json={"answer": str(2 * n)}).json()
    assert right["grade"]["is_correct"] is True
    assert right["state"]["streak"] == 1

    after = client.get(f"{BASE}/{player_id}").json()
    assert after["training"]["status"] == "DEFAULT"

    back = client.post(f"{BASE}/{player_id}/training/exit").json()
    assert back["screen"] == "TRAINING_MENU"
    assert client.post(f"{BASE}/{player_id}/menu").json()["screen"] == "MENU"
