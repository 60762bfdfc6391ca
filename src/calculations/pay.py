"""
Deployment Pay Calculations

Pure functions over the pay toggle record. The lifecycle manager stores
their results back into the record; nothing here mutates its input.

All figures are ESTIMATES. The member's LES is the source of truth.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from src.models.deployment import CZTEStatus, DeploymentPayAdjustments
from src.reference import DEFAULT_PAY_RATES, PayRateTable

DEFAULT_TAX_RATE = Decimal("0.22")

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_decimal(value: Union[Decimal, float, int]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def calculate_additional_monthly_pay(
    adjustments: DeploymentPayAdjustments,
    rates: PayRateTable = DEFAULT_PAY_RATES,
) -> Decimal:
    """Sum the special pays switched on in the toggle set."""
    total = Decimal("0")

    # HFP and IDP are mutually exclusive: pay once if either is set
    if adjustments.hostile_fire_pay or adjustments.imminent_danger_pay:
        total += rates.hostile_fire_pay

    if adjustments.family_separation_allowance:
        total += rates.family_separation_allowance

    if adjustments.hardship_duty_pay and adjustments.hardship_duty_rate:
        total += adjustments.hardship_duty_rate

    return total


def calculate_tax_savings(
    monthly_taxable_income: Union[Decimal, float, int],
    czte_status: CZTEStatus,
    rates: PayRateTable = DEFAULT_PAY_RATES,
    tax_rate: Union[Decimal, float] = DEFAULT_TAX_RATE,
) -> Decimal:
    """
    Estimate monthly federal tax avoided under the Combat Zone Tax Exclusion.

    Officers (CAPPED) can only exclude up to the statutory monthly cap.
    """
    if czte_status == CZTEStatus.NONE:
        return Decimal("0")

    excluded = _as_decimal(monthly_taxable_income)
    if czte_status == CZTEStatus.CAPPED:
        excluded = min(excluded, rates.czte_officer_monthly_cap)

    return _money(excluded * _as_decimal(tax_rate))


def compute_pay_totals(
    adjustments: DeploymentPayAdjustments,
    rates: PayRateTable = DEFAULT_PAY_RATES,
    tax_rate: Union[Decimal, float] = DEFAULT_TAX_RATE,
) -> DeploymentPayAdjustments:
    """Return a copy of the toggle set with both derived totals recomputed."""
    income = adjustments.monthly_taxable_income or Decimal("0")
    return adjustments.model_copy(update={
        "additional_monthly_pay": calculate_additional_monthly_pay(adjustments, rates),
        "estimated_tax_savings": calculate_tax_savings(
            income, adjustments.czte_status, rates, tax_rate
        ),
    })


def estimate_sdp_interest(
    adjustments: DeploymentPayAdjustments,
    months: int,
    rates: PayRateTable = DEFAULT_PAY_RATES,
) -> Decimal:
    """
    Simple interest earned in the Savings Deposit Program over `months`.

    The deposit is capped at the program maximum. Zero when not enrolled.
    """
    if not adjustments.savings_deposit_program or months <= 0:
        return Decimal("0")

    principal = min(adjustments.sdp_amount or Decimal("0"), rates.sdp_max_deposit)
    return _money(principal * rates.sdp_annual_interest_rate * months / 12)
