"""Read-only reference tables."""

from src.reference.deployment_data import (
    DEFAULT_EXPENSE_ADJUSTMENTS,
    DEFAULT_PAY_RATES,
    ExpenseAdjustmentTemplate,
    PayRateTable,
)

__all__ = [
    "DEFAULT_EXPENSE_ADJUSTMENTS",
    "DEFAULT_PAY_RATES",
    "ExpenseAdjustmentTemplate",
    "PayRateTable",
]
