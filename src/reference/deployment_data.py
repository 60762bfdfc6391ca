"""
Deployment Reference Data

Pay rates and the default expense-adjustment template the engine reads.
These are 2024 figures; designations and rates change, so they are
passed into the lifecycle manager rather than imported by the calculators.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.budget import AdjustmentType


class PayRateTable(BaseModel):
    """Monthly deployment pay rates and statutory caps."""
    model_config = ConfigDict(frozen=True)

    # HFP and IDP pay the same amount; only one is ever paid
    hostile_fire_pay: Decimal = Decimal("225")
    imminent_danger_pay: Decimal = Decimal("225")

    family_separation_allowance: Decimal = Decimal("250")

    # Officer CZTE cap: highest enlisted (E-9 over 26) pay plus HFP
    czte_officer_monthly_cap: Decimal = Decimal("10472.70")

    # Savings Deposit Program
    sdp_max_deposit: Decimal = Decimal("10000")
    sdp_annual_interest_rate: Decimal = Decimal("0.10")


DEFAULT_PAY_RATES = PayRateTable()


class ExpenseAdjustmentTemplate(BaseModel):
    """Suggested treatment of one spending category while deployed."""
    model_config = ConfigDict(frozen=True)

    category_id: str
    category_name: str
    adjustment_type: AdjustmentType
    reason: Optional[str] = Field(default=None)


def _template(
    category_id: str,
    category_name: str,
    adjustment_type: AdjustmentType,
    reason: str,
) -> ExpenseAdjustmentTemplate:
    return ExpenseAdjustmentTemplate(
        category_id=category_id,
        category_name=category_name,
        adjustment_type=adjustment_type,
        reason=reason,
    )


# These are suggestions - members customize the figures per category
DEFAULT_EXPENSE_ADJUSTMENTS: tuple[ExpenseAdjustmentTemplate, ...] = (
    # Eliminate - typically zero during deployment
    _template("dining_out", "Dining Out", AdjustmentType.ELIMINATE,
              "Meals provided on deployment"),
    _template("entertainment", "Entertainment", AdjustmentType.ELIMINATE,
              "Limited entertainment options available"),
    _template("streaming", "Streaming Services", AdjustmentType.REDUCE,
              "Consider pausing some subscriptions"),
    _template("gym", "Gym Membership", AdjustmentType.ELIMINATE,
              "Base gym facilities available"),
    _template("personal_care", "Haircuts/Personal Care", AdjustmentType.ELIMINATE,
              "Base services typically free"),
    _template("fuel", "Gas/Fuel", AdjustmentType.ELIMINATE,
              "Vehicle not in use during deployment"),
    _template("car_wash", "Car Wash", AdjustmentType.ELIMINATE,
              "Vehicle stored during deployment"),

    # Reduce - lower but not eliminated
    _template("groceries", "Groceries", AdjustmentType.REDUCE,
              "Family-only groceries (if applicable)"),
    _template("clothing", "Clothing", AdjustmentType.REDUCE,
              "Minimal civilian clothing needs"),
    _template("phone", "Phone", AdjustmentType.REDUCE,
              "Consider international plan or WiFi calling"),
    _template("utilities", "Utilities", AdjustmentType.REDUCE,
              "May be lower with fewer occupants"),
    _template("car_insurance", "Car Insurance", AdjustmentType.REDUCE,
              "Contact insurer for deployment discount"),

    # No change - essential expenses continue
    _template("rent", "Rent/Mortgage", AdjustmentType.NO_CHANGE,
              "Housing expenses continue"),
    _template("car_payment", "Car Payment", AdjustmentType.NO_CHANGE,
              "Payment continues during deployment"),
    _template("health_insurance", "Health Insurance", AdjustmentType.NO_CHANGE,
              "TRICARE continues"),
    _template("life_insurance", "Life Insurance (SGLI)", AdjustmentType.NO_CHANGE,
              "Essential protection continues"),
    _template("child_care", "Child Care", AdjustmentType.NO_CHANGE,
              "May need to continue for family"),

    # Increase - deployment-specific expenses
    _template("shipping", "Care Packages/Shipping", AdjustmentType.INCREASE,
              "Sending/receiving care packages"),
    _template("communication", "Communication (Calls/Video)", AdjustmentType.INCREASE,
              "International calling or data plans"),
)
