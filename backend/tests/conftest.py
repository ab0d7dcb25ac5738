import pytest

from columncraft.services.step_validator import SlotKind, expected_slots, set_input
from columncraft.utils.column_solver import Operation


def fill_active_column(session):
    """Type the correct values into every slot the active column is judged on."""
    c = session.active_column
    columns = session.columns
    session = set_input(session, SlotKind.RESULT, c, expected_slots(session, c)[SlotKind.RESULT])

    if session.problem.operation is Operation.ADDITION:
        if c + 1 < columns:
            carry = expected_slots(session, c + 1)[SlotKind.TOP_AUX]
            session = set_input(session, SlotKind.TOP_AUX, c + 1, carry)
        return session

    session = set_input(session, SlotKind.TOP_AUX, c, expected_slots(session, c)[SlotKind.TOP_AUX])
    if c + 1 < columns:
        adjusted = expected_slots(session, c + 1)[SlotKind.BOTTOM_AUX]
        session = set_input(session, SlotKind.BOTTOM_AUX, c + 1, adjusted)
    return session


@pytest.fixture
def fill_column():
    return fill_active_column
