"""
Deployment Records

These models define the canonical deployment record and everything
embedded in it: location, pay adjustments and countdown milestones.

DESIGN DECISION: Derived fields (phase, additional_monthly_pay,
estimated_tax_savings) live on the records so the UI can read them
directly, but they are CACHED PROJECTIONS. Only the lifecycle manager's
recompute step writes them.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from src.clock import utc_now


# =============================================================================
# ENUMS
# =============================================================================

class DeploymentPhase(str, Enum):
    """Temporal phase of a deployment."""
    PRE_DEPLOYMENT = "pre_deployment"    # Up to 90 days before departure
    DEPLOYMENT = "deployment"            # Currently deployed
    REDEPLOYMENT = "redeployment"        # Final 30 days before expected return
    POST_DEPLOYMENT = "post_deployment"  # First 90 days home
    NOT_DEPLOYED = "not_deployed"        # Normal status


class DeploymentType(str, Enum):
    """Type of military deployment/operation."""
    COMBAT = "combat"
    CONTINGENCY = "contingency"
    PEACEKEEPING = "peacekeeping"
    HUMANITARIAN = "humanitarian"
    TRAINING = "training"
    TDY = "tdy"              # Temporary Duty
    SEA_DUTY = "sea_duty"
    OTHER = "other"


class CZTEStatus(str, Enum):
    """
    Combat Zone Tax Exclusion status.

    Enlisted members and warrant officers exclude all pay; commissioned
    officers are capped at the highest enlisted pay plus HFP.
    """
    FULL = "full"
    CAPPED = "capped"
    NONE = "none"


class ConnectivityLevel(str, Enum):
    """Expected connectivity at the deployed location."""
    GOOD = "good"
    LIMITED = "limited"
    MINIMAL = "minimal"
    NONE = "none"


class CountdownMilestoneType(str, Enum):
    """Kind of date the member is counting down to."""
    PERSONAL = "personal"
    MILITARY = "military"
    HOLIDAY = "holiday"
    FINANCIAL = "financial"


# =============================================================================
# EMBEDDED VALUE OBJECTS
# =============================================================================

class DeploymentLocation(BaseModel):
    """Where the member is deployed."""
    model_config = ConfigDict(str_strip_whitespace=True)

    country_code: str = Field(
        ...,
        min_length=2,
        max_length=3,
        description="ISO country code"
    )
    location_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    combat_zone_id: Optional[str] = None
    base_or_camp: Optional[str] = Field(default=None, max_length=200)
    is_hazardous: bool = False
    is_remote: bool = False
    connectivity_level: ConnectivityLevel = ConnectivityLevel.GOOD


class DeploymentPayAdjustments(BaseModel):
    """
    Pay toggles for the deployment and the totals derived from them.

    CRITICAL: additional_monthly_pay and estimated_tax_savings are
    recomputed from the toggles after every change. Setting them by hand
    has no lasting effect.
    """

    # Combat/hazard pays (HFP and IDP are the same payment, never both)
    hostile_fire_pay: bool = False
    imminent_danger_pay: bool = False
    hardship_duty_pay: bool = False
    hardship_duty_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Monthly HDP-L rate for the location"
    )

    # Separation pay
    family_separation_allowance: bool = False

    # Tax treatment
    combat_zone_tax_exclusion: bool = False
    czte_status: CZTEStatus = CZTEStatus.NONE
    monthly_taxable_income: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Taxable monthly income the stored tax estimate is based on"
    )

    # Allowances
    bah_continuation: bool = True

    # Savings Deposit Program
    savings_deposit_program: bool = False
    sdp_amount: Optional[Decimal] = Field(default=None, ge=0)

    # Derived totals
    additional_monthly_pay: Decimal = Decimal("0")
    estimated_tax_savings: Decimal = Decimal("0")


class CountdownMilestone(BaseModel):
    """A dated event the member is counting down to (R&R, birthday, payday)."""

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    event_date: date
    type: CountdownMilestoneType = CountdownMilestoneType.PERSONAL


# =============================================================================
# DEPLOYMENT RECORD
# =============================================================================

class DeploymentInfo(BaseModel):
    """
    The canonical deployment record.

    Exactly one may be active at a time; ended deployments move to history.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)

    # Status
    is_active: bool = True
    phase: DeploymentPhase = Field(
        default=DeploymentPhase.NOT_DEPLOYED,
        description="Cached phase; recomputed from the dates after every mutation"
    )
    type: DeploymentType

    # Dates
    notification_date: Optional[date] = None
    departure_date: date
    expected_return_date: date
    actual_return_date: Optional[date] = None

    location: DeploymentLocation
    pay_adjustments: DeploymentPayAdjustments = Field(
        default_factory=DeploymentPayAdjustments
    )

    # Family & savings
    family_budget_enabled: bool = False
    savings_goal_amount: Optional[Decimal] = Field(default=None, ge=0)

    countdown_milestones: list[CountdownMilestone] = Field(default_factory=list)

    # Metadata
    order_number: Optional[str] = Field(default=None, max_length=50)
    unit_name: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_dates(self) -> 'DeploymentInfo':
        """Validate date relationships."""
        if self.expected_return_date < self.departure_date:
            raise ValueError("Expected return date cannot be before departure date")

        return self
