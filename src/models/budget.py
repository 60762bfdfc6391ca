"""
Deployment Budget and Savings Records

The budget projects a reduced-expense month and the savings it frees up;
the savings tracker records what actually happened, month by month,
against a goal and a set of milestones.

DESIGN DECISION: Milestone achievement is append-only. Once a milestone
is marked achieved (with a timestamp) it stays achieved, even if a later
snapshot brings current savings back under the target.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.clock import utc_now


class AdjustmentType(str, Enum):
    """How a spending category is expected to change while deployed."""
    REDUCE = "reduce"
    ELIMINATE = "eliminate"
    INCREASE = "increase"
    NO_CHANGE = "no_change"


# =============================================================================
# BUDGET
# =============================================================================

class DeploymentExpenseAdjustment(BaseModel):
    """One spending category: normal budget vs. deployment budget."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: str = Field(..., min_length=1, max_length=50)
    category_name: str = Field(..., min_length=1, max_length=100)
    normal_budget: Decimal = Field(default=Decimal("0"), ge=0)
    deployment_budget: Decimal = Field(default=Decimal("0"), ge=0)
    adjustment_type: AdjustmentType
    reason: Optional[str] = Field(default=None, max_length=300)


class FamilyBudgetCategory(BaseModel):
    category_id: str
    budget_amount: Decimal = Field(ge=0)


class FamilyBudget(BaseModel):
    """Separate allowance for the family at home."""

    monthly_allowance: Decimal = Field(ge=0)
    emergency_fund_target: Decimal = Field(ge=0)
    categories: list[FamilyBudgetCategory] = Field(default_factory=list)


class SavingsAllocation(BaseModel):
    """Where projected deployment savings are meant to go."""

    emergency_fund: Decimal = Field(default=Decimal("0"), ge=0)
    debt_payoff: Decimal = Field(default=Decimal("0"), ge=0)
    investments: Decimal = Field(default=Decimal("0"), ge=0)
    savings_goals: Decimal = Field(default=Decimal("0"), ge=0)
    tsp: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def total(self) -> Decimal:
        return (
            self.emergency_fund
            + self.debt_payoff
            + self.investments
            + self.savings_goals
            + self.tsp
        )


class DeploymentBudget(BaseModel):
    """
    Budget profile for the active deployment.

    Until the first category is edited, deployment_monthly_expenses holds a
    starting estimate. After that (is_itemized=True) it is always the sum
    of the adjustment rows.
    """

    id: UUID = Field(default_factory=uuid4)
    deployment_id: UUID

    # Pre-deployment baseline
    normal_monthly_expenses: Decimal = Field(ge=0)
    normal_monthly_savings: Decimal = Field(ge=0)

    # Deployment adjustments
    expense_adjustments: list[DeploymentExpenseAdjustment] = Field(default_factory=list)
    deployment_monthly_expenses: Decimal = Decimal("0")
    is_itemized: bool = Field(
        default=False,
        description="True once deployment expenses are the sum of the category rows"
    )

    family_budget: Optional[FamilyBudget] = None
    savings_allocation: Optional[SavingsAllocation] = None

    # Derived projections
    projected_monthly_savings: Decimal = Decimal("0")
    projected_total_savings: Decimal = Decimal("0")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def get_adjustment(self, category_id: str) -> Optional[DeploymentExpenseAdjustment]:
        for adjustment in self.expense_adjustments:
            if adjustment.category_id == category_id:
                return adjustment
        return None


# =============================================================================
# SAVINGS TRACKER
# =============================================================================

class SavingsSnapshotInput(BaseModel):
    """What the caller records for a month. The cumulative figure is derived."""

    month: str = Field(
        ...,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Calendar month, YYYY-MM"
    )
    start_balance: Decimal = Decimal("0")
    end_balance: Decimal = Decimal("0")
    military_income: Decimal = Decimal("0")
    deployment_bonus_pay: Decimal = Field(
        default=Decimal("0"),
        description="HFP, FSA and similar pays received this month"
    )
    tax_savings: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_savings: Decimal = Field(
        ...,
        description="Net saved this month; negative when the month drew savings down"
    )


class DeploymentSavingsSnapshot(SavingsSnapshotInput):
    cumulative_savings: Decimal = Decimal("0")


class SavingsMilestone(BaseModel):
    """A named savings target with a one-way achieved flag."""

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(ge=0)
    is_achieved: bool = False
    achieved_at: Optional[datetime] = None
    is_deployment_goal: bool = Field(
        default=False,
        description="The seed milestone that tracks the overall savings goal"
    )


class DeploymentSavingsTracker(BaseModel):
    """Savings progress for the active deployment."""

    deployment_id: UUID

    savings_goal: Decimal = Field(ge=0)

    # Progress
    current_savings: Decimal = Decimal("0")
    progress_percent: float = 0.0

    monthly_snapshots: list[DeploymentSavingsSnapshot] = Field(default_factory=list)
    milestones: list[SavingsMilestone] = Field(default_factory=list)

    # Projections
    projected_end_total: Decimal = Decimal("0")
    on_track: bool = True
    days_remaining: int = 0
