"""
Pure calculation functions.

Each module recomputes one family of derived fields from its inputs and
returns new records; the lifecycle manager runs them all after every
mutation.
"""

from src.calculations.budget import (
    apply_expense_adjustment,
    build_expense_adjustments,
    compute_budget_totals,
    create_deployment_budget,
)
from src.calculations.countdown import build_countdown, upcoming_milestones
from src.calculations.pay import (
    calculate_additional_monthly_pay,
    calculate_tax_savings,
    compute_pay_totals,
    estimate_sdp_interest,
)
from src.calculations.phase import classify_phase
from src.calculations.savings import (
    add_milestone,
    append_snapshot,
    check_milestones,
    compute_savings_totals,
    months_to_goal,
    new_savings_tracker,
    set_savings_goal,
)

__all__ = [
    "add_milestone",
    "append_snapshot",
    "apply_expense_adjustment",
    "build_countdown",
    "build_expense_adjustments",
    "calculate_additional_monthly_pay",
    "calculate_tax_savings",
    "check_milestones",
    "classify_phase",
    "compute_budget_totals",
    "compute_pay_totals",
    "compute_savings_totals",
    "create_deployment_budget",
    "estimate_sdp_interest",
    "months_to_goal",
    "new_savings_tracker",
    "set_savings_goal",
    "upcoming_milestones",
]
