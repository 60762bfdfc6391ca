"""
Deployment Budget Projection

Keeps a budget consistent with its inputs:
- the baseline monthly expenses and savings
- the per-category deployment figures
- the deployment's additional monthly pay
- the deployment's duration

Projection formulas:
    projected_monthly = normal_savings + (normal_expenses - deployment_expenses)
                        + additional_monthly_pay
    projected_total   = projected_monthly * ceil(duration_days / 30)
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Union
from uuid import UUID

from src.clock import months_in
from src.models.budget import DeploymentBudget, DeploymentExpenseAdjustment
from src.reference import ExpenseAdjustmentTemplate

DEFAULT_INITIAL_EXPENSE_RATIO = Decimal("0.5")


def build_expense_adjustments(
    template: Iterable[ExpenseAdjustmentTemplate],
) -> list[DeploymentExpenseAdjustment]:
    """Seed one zeroed row per template category; the member fills in figures."""
    return [
        DeploymentExpenseAdjustment(
            category_id=entry.category_id,
            category_name=entry.category_name,
            adjustment_type=entry.adjustment_type,
            reason=entry.reason,
        )
        for entry in template
    ]


def sum_deployment_expenses(adjustments: Iterable[DeploymentExpenseAdjustment]) -> Decimal:
    return sum((row.deployment_budget for row in adjustments), Decimal("0"))


def compute_budget_totals(
    budget: DeploymentBudget,
    additional_monthly_pay: Decimal,
    duration_days: int,
    days_per_month: int = 30,
) -> DeploymentBudget:
    """Return a copy of the budget with every derived figure recomputed."""
    deployment_expenses = budget.deployment_monthly_expenses
    if budget.is_itemized:
        deployment_expenses = sum_deployment_expenses(budget.expense_adjustments)

    projected_monthly = (
        budget.normal_monthly_savings
        + (budget.normal_monthly_expenses - deployment_expenses)
        + additional_monthly_pay
    )

    return budget.model_copy(update={
        "deployment_monthly_expenses": deployment_expenses,
        "projected_monthly_savings": projected_monthly,
        "projected_total_savings": projected_monthly * months_in(duration_days, days_per_month),
    })


def create_deployment_budget(
    deployment_id: UUID,
    normal_monthly_expenses: Decimal,
    normal_monthly_savings: Decimal,
    template: Iterable[ExpenseAdjustmentTemplate],
    additional_monthly_pay: Decimal,
    duration_days: int,
    now: datetime,
    initial_expense_ratio: Union[Decimal, float] = DEFAULT_INITIAL_EXPENSE_RATIO,
    days_per_month: int = 30,
) -> DeploymentBudget:
    """
    Create a budget seeded from the category template.

    Deployment expenses start as an estimate (half the baseline by
    default) until the member edits a category.
    """
    normal_monthly_expenses = Decimal(str(normal_monthly_expenses))
    ratio = Decimal(str(initial_expense_ratio))

    budget = DeploymentBudget(
        deployment_id=deployment_id,
        normal_monthly_expenses=normal_monthly_expenses,
        normal_monthly_savings=Decimal(str(normal_monthly_savings)),
        expense_adjustments=build_expense_adjustments(template),
        deployment_monthly_expenses=normal_monthly_expenses * ratio,
        created_at=now,
        updated_at=now,
    )
    return compute_budget_totals(budget, additional_monthly_pay, duration_days, days_per_month)


def apply_expense_adjustment(
    budget: DeploymentBudget,
    category_id: str,
    deployment_budget: Decimal,
    additional_monthly_pay: Decimal,
    duration_days: int,
    now: datetime,
    days_per_month: int = 30,
) -> Optional[DeploymentBudget]:
    """
    Replace one category's deployment figure and re-project.

    Returns None when the category is unknown; the caller leaves the
    budget untouched in that case.
    """
    if budget.get_adjustment(category_id) is None:
        return None

    # Validated: a negative amount raises instead of reaching storage
    amount = Decimal(str(deployment_budget))
    rows = [
        DeploymentExpenseAdjustment.model_validate(
            {**row.model_dump(), "deployment_budget": amount}
        )
        if row.category_id == category_id else row
        for row in budget.expense_adjustments
    ]
    updated = budget.model_copy(update={
        "expense_adjustments": rows,
        "is_itemized": True,
        "updated_at": now,
    })
    return compute_budget_totals(updated, additional_monthly_pay, duration_days, days_per_month)
