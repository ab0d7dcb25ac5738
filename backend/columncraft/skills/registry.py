"""Read-only skill registry — maps skill_tag to contract instance."""

from .column_addition import ColumnAdditionContract
from .column_subtraction import ColumnSubtractionWithBorrowContract
from columncraft.utils.column_solver import Operation

SKILL_REGISTRY = {
    "column_add_with_carry": ColumnAdditionContract(),
    "column_sub_with_borrow": ColumnSubtractionWithBorrowContract(),
}

_BY_OPERATION = {
    Operation.ADDITION: "column_add_with_carry",
    Operation.SUBTRACTION: "column_sub_with_borrow",
}


def contract_for(operation: Operation):
    return SKILL_REGISTRY[_BY_OPERATION[Operation(operation)]]
