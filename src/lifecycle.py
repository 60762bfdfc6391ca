"""
Deployment Lifecycle Manager

This module ties together the calculators, the offline queue, storage
and the audit log behind one service object. Callers (a UI layer, a
CLI, tests) talk only to DeploymentLifecycleManager.

DESIGN DECISION: Every mutation follows the same three steps:
1. Change the canonical inputs (dates, toggles, baseline figures, snapshots)
2. Recompute EVERY derived field from those inputs (_recompute_all)
3. Save the full state blob, then write the audit events

Because step 2 always runs in full, no derived figure can drift from its
inputs. The calculators are pure; only this module stores their results.

CRITICAL: Missing preconditions (no active deployment, no budget, no
tracker, unknown category or milestone) are NOT errors. The operation is
skipped, audited at WARNING, and the method returns False (or None).
Storage failures ARE errors: they are audited and re-raised untouched.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from src.audit import AuditLogger
from src.calculations import (
    add_milestone,
    append_snapshot,
    apply_expense_adjustment,
    build_countdown,
    calculate_tax_savings,
    check_milestones,
    classify_phase,
    compute_budget_totals,
    compute_pay_totals,
    compute_savings_totals,
    create_deployment_budget,
    estimate_sdp_interest,
    months_to_goal,
    new_savings_tracker,
    set_savings_goal,
)
from src.clock import ClockInterface, SystemClock, days_between, days_until, months_in
from src.config import LifecycleSettings, Settings, get_settings
from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.models.budget import (
    DeploymentBudget,
    DeploymentSavingsTracker,
    FamilyBudget,
    FamilyBudgetCategory,
    SavingsAllocation,
    SavingsSnapshotInput,
)
from src.models.countdown import DeploymentCountdown, DeploymentSummary
from src.models.deployment import (
    CountdownMilestone,
    CountdownMilestoneType,
    CZTEStatus,
    DeploymentInfo,
    DeploymentLocation,
    DeploymentPayAdjustments,
    DeploymentPhase,
    DeploymentType,
)
from src.models.state import EngineState
from src.models.sync import OfflineItemType, OfflineQueueItem, OfflineSyncState, SyncStatus
from src.reference import (
    DEFAULT_EXPENSE_ADJUSTMENTS,
    DEFAULT_PAY_RATES,
    ExpenseAdjustmentTemplate,
    PayRateTable,
)
from src.services.storage import (
    InMemoryStateStorage,
    JsonFileStateStorage,
    StateStorageInterface,
    StorageError,
    create_audit_storage,
    create_state_storage,
)
from src.sync import OfflineMutationQueue, SyncHandlerInterface


Number = Union[Decimal, int, float, str]

# Fields update_deployment may not touch; they are owned by the engine
# or by a dedicated operation (actual_return_date: end_deployment).
PROTECTED_DEPLOYMENT_FIELDS = frozenset({
    "id",
    "is_active",
    "phase",
    "actual_return_date",
    "created_at",
    "updated_at",
    "pay_adjustments",
    "countdown_milestones",
})

# Derived pay totals are recomputed, never accepted from callers
DERIVED_PAY_FIELDS = frozenset({"additional_monthly_pay", "estimated_tax_savings"})


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class DeploymentLifecycleManager:
    """
    Owns the engine state and exposes every deployment operation.

    One instance per member. All collaborators are injected so tests can
    pin the clock and keep everything in memory.
    """

    def __init__(
        self,
        storage: Optional[StateStorageInterface] = None,
        clock: Optional[ClockInterface] = None,
        pay_rates: PayRateTable = DEFAULT_PAY_RATES,
        expense_template: tuple[ExpenseAdjustmentTemplate, ...] = DEFAULT_EXPENSE_ADJUSTMENTS,
        sync_handler: Optional[SyncHandlerInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LifecycleSettings] = None,
    ):
        self._storage = storage or InMemoryStateStorage()
        self._clock = clock or SystemClock()
        self._rates = pay_rates
        self._template = tuple(expense_template)
        self._sync_handler = sync_handler
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().lifecycle

        loaded = self._storage.load()
        self._state = loaded or EngineState()
        self._queue = self._bind_queue()

        if loaded is not None:
            # Time has passed since the save; bring cached projections current
            self._recompute_all()
            self._audit.log(AuditEventBuilder.state_persisted(
                event_type=AuditEventType.STATE_LOADED,
                has_active_deployment=self._state.active_deployment is not None,
                queue_length=len(self._state.offline_sync.queue),
            ))

    def _bind_queue(self) -> OfflineMutationQueue:
        return OfflineMutationQueue(
            state=self._state.offline_sync,
            handler=self._sync_handler,
            clock=self._clock,
        )

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def state(self) -> EngineState:
        """Deep copy of the current state. Mutating it has no effect on the engine."""
        return self._state.model_copy(deep=True)

    @property
    def active_deployment(self) -> Optional[DeploymentInfo]:
        return self._state.active_deployment

    @property
    def deployment_budget(self) -> Optional[DeploymentBudget]:
        return self._state.deployment_budget

    @property
    def savings_tracker(self) -> Optional[DeploymentSavingsTracker]:
        return self._state.savings_tracker

    @property
    def offline_sync(self) -> OfflineSyncState:
        return self._state.offline_sync

    # =========================================================================
    # RECOMPUTE / PERSIST
    # =========================================================================

    def _duration_days(self, deployment: DeploymentInfo) -> int:
        return days_between(deployment.departure_date, deployment.expected_return_date)

    def _current_phase(self, deployment: DeploymentInfo) -> DeploymentPhase:
        s = self._settings
        return classify_phase(
            deployment.departure_date,
            deployment.expected_return_date,
            deployment.actual_return_date,
            self._clock.now(),
            pre_deployment_window_days=s.pre_deployment_window_days,
            redeployment_window_days=s.redeployment_window_days,
            post_deployment_window_days=s.post_deployment_window_days,
        )

    def _recompute_all(self) -> list[AuditEvent]:
        """
        Rebuild every derived field from the canonical inputs.

        Returns audit events for anything the recompute itself caused
        (phase transitions, milestones reached).
        """
        events: list[AuditEvent] = []

        # Past deployments keep aging out of the post-deployment window.
        history = []
        for past in self._state.deployment_history:
            phase = self._current_phase(past)
            if phase != past.phase:
                events.append(AuditEventBuilder.phase_changed(
                    deployment_id=past.id,
                    old_phase=past.phase.value,
                    new_phase=phase.value,
                ))
                past = past.model_copy(update={"phase": phase})
            history.append(past)
        self._state.deployment_history = history

        deployment = self._state.active_deployment
        if deployment is None:
            return events

        s = self._settings
        now = self._clock.now()

        phase = self._current_phase(deployment)
        if phase != deployment.phase:
            events.append(AuditEventBuilder.phase_changed(
                deployment_id=deployment.id,
                old_phase=deployment.phase.value,
                new_phase=phase.value,
            ))

        pay = compute_pay_totals(deployment.pay_adjustments, self._rates, s.default_tax_rate)
        deployment = deployment.model_copy(update={"phase": phase, "pay_adjustments": pay})
        self._state.active_deployment = deployment

        duration = self._duration_days(deployment)

        budget = self._state.deployment_budget
        if budget is not None:
            budget = compute_budget_totals(
                budget, pay.additional_monthly_pay, duration, s.days_per_month
            )
            self._state.deployment_budget = budget

        tracker = self._state.savings_tracker
        if tracker is not None:
            tracker = compute_savings_totals(
                tracker,
                duration_days=duration,
                days_remaining=max(0, days_until(now, deployment.expected_return_date)),
                projected_monthly_savings=budget.projected_monthly_savings if budget else None,
                days_per_month=s.days_per_month,
                on_track_threshold=s.on_track_threshold,
            )
            tracker, achieved = check_milestones(tracker, now)
            self._state.savings_tracker = tracker
            events.extend(
                AuditEventBuilder.milestone_achieved(
                    milestone_id=m.id,
                    name=m.name,
                    target_amount=str(m.target_amount),
                )
                for m in achieved
            )

        return events

    def _commit(self, *events: AuditEvent) -> None:
        """Recompute, save the full state, then audit."""
        derived_events = self._recompute_all()
        self._state.saved_at = self._clock.now()

        try:
            self._storage.save(self._state)
        except StorageError as e:
            self._audit.log_state_save_failed(e)
            raise

        self._audit.log(AuditEventBuilder.state_persisted(
            event_type=AuditEventType.STATE_SAVED,
            has_active_deployment=self._state.active_deployment is not None,
            queue_length=len(self._state.offline_sync.queue),
        ))
        for event in (*events, *derived_events):
            self._audit.log(event)

    def _skip(self, operation: str, reason: str) -> bool:
        self._audit.log_precondition_not_met(operation, reason)
        return False

    def _with_savings_goal(self, deployment: DeploymentInfo, goal: Decimal) -> DeploymentInfo:
        return DeploymentInfo.model_validate({
            **deployment.model_dump(),
            "savings_goal_amount": goal,
            "updated_at": self._clock.now(),
        })

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start_deployment(
        self,
        deployment_type: Union[DeploymentType, str],
        departure_date: date,
        expected_return_date: date,
        location: Union[DeploymentLocation, dict],
        **details: Any,
    ) -> UUID:
        """
        Create and activate a deployment. Returns its id.

        A hazardous location switches on hostile fire pay and full CZTE.
        Any deployment already active is discarded together with its
        budget and savings tracker.
        """
        now = self._clock.now()
        location = DeploymentLocation.model_validate(location)

        pay = DeploymentPayAdjustments()
        if location.is_hazardous:
            pay = pay.model_copy(update={
                "hostile_fire_pay": True,
                "combat_zone_tax_exclusion": True,
                "czte_status": CZTEStatus.FULL,
            })

        deployment = DeploymentInfo(
            type=DeploymentType(deployment_type),
            departure_date=departure_date,
            expected_return_date=expected_return_date,
            location=location,
            pay_adjustments=pay,
            created_at=now,
            updated_at=now,
            **details,
        )
        deployment = deployment.model_copy(update={"phase": self._current_phase(deployment)})

        replaced = self._state.active_deployment
        if replaced is not None:
            structlog.get_logger(__name__).warning(
                "active_deployment_replaced",
                replaced_id=str(replaced.id),
            )

        self._state.active_deployment = deployment
        self._state.deployment_budget = None
        self._state.savings_tracker = None

        self._commit(AuditEventBuilder.deployment_started(
            deployment_id=deployment.id,
            deployment_type=deployment.type.value,
            phase=deployment.phase.value,
        ))
        return deployment.id

    def update_deployment(self, **changes: Any) -> bool:
        """
        Change fields of the active deployment (dates, location, metadata).

        Raises ValueError for unknown or engine-owned fields and
        ValidationError when the result is not a valid deployment.
        """
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("update_deployment", "no active deployment")

        rejected = set(changes) - (set(DeploymentInfo.model_fields) - PROTECTED_DEPLOYMENT_FIELDS)
        if rejected:
            raise ValueError(f"Cannot update deployment fields: {sorted(rejected)}")

        updated = DeploymentInfo.model_validate({
            **deployment.model_dump(),
            **changes,
            "updated_at": self._clock.now(),
        })
        self._state.active_deployment = updated

        self._commit(AuditEventBuilder.deployment_updated(
            deployment_id=updated.id,
            fields=sorted(changes),
        ))
        return True

    def end_deployment(self, actual_return_date: date) -> bool:
        """
        Close the active deployment and move it to history.

        The budget and savings tracker belong to the active deployment
        and are discarded with it.
        """
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("end_deployment", "no active deployment")

        ended = deployment.model_copy(update={
            "is_active": False,
            "actual_return_date": actual_return_date,
            "updated_at": self._clock.now(),
        })
        ended = ended.model_copy(update={"phase": self._current_phase(ended)})

        self._state.deployment_history.append(ended)
        self._state.active_deployment = None
        self._state.deployment_budget = None
        self._state.savings_tracker = None

        self._commit(AuditEventBuilder.deployment_ended(
            deployment_id=ended.id,
            actual_return_date=actual_return_date.isoformat(),
        ))
        return True

    def cancel_deployment(self) -> bool:
        """Discard the active deployment without recording it in history."""
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("cancel_deployment", "no active deployment")

        self._state.active_deployment = None
        self._state.deployment_budget = None
        self._state.savings_tracker = None

        self._commit(AuditEventBuilder.deployment_cancelled(deployment_id=deployment.id))
        return True

    def refresh_phase(self) -> bool:
        """Re-classify the phase against the clock and persist any change."""
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("refresh_phase", "no active deployment")

        if self._current_phase(deployment) == deployment.phase:
            return True

        self._state.active_deployment = deployment.model_copy(
            update={"updated_at": self._clock.now()}
        )
        self._commit()
        return True

    # =========================================================================
    # PAY
    # =========================================================================

    def update_pay_adjustments(self, **changes: Any) -> bool:
        """Merge toggle changes into the active deployment's pay record."""
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("update_pay_adjustments", "no active deployment")

        rejected = set(changes) - (set(DeploymentPayAdjustments.model_fields) - DERIVED_PAY_FIELDS)
        if rejected:
            raise ValueError(f"Cannot update pay fields: {sorted(rejected)}")

        pay = DeploymentPayAdjustments.model_validate({
            **deployment.pay_adjustments.model_dump(),
            **changes,
        })
        self._state.active_deployment = deployment.model_copy(update={
            "pay_adjustments": pay,
            "updated_at": self._clock.now(),
        })

        pay = compute_pay_totals(pay, self._rates, self._settings.default_tax_rate)
        self._commit(AuditEventBuilder.pay_adjusted(
            deployment_id=deployment.id,
            additional_monthly_pay=str(pay.additional_monthly_pay),
            estimated_tax_savings=str(pay.estimated_tax_savings),
        ))
        return True

    def enable_combat_zone_benefits(self) -> bool:
        return self.update_pay_adjustments(
            hostile_fire_pay=True,
            combat_zone_tax_exclusion=True,
            czte_status=CZTEStatus.FULL,
        )

    def disable_combat_zone_benefits(self) -> bool:
        return self.update_pay_adjustments(
            hostile_fire_pay=False,
            imminent_danger_pay=False,
            combat_zone_tax_exclusion=False,
            czte_status=CZTEStatus.NONE,
        )

    def get_additional_monthly_pay(self) -> Decimal:
        deployment = self._state.active_deployment
        if deployment is None:
            return Decimal("0")
        return deployment.pay_adjustments.additional_monthly_pay

    def get_estimated_tax_savings(self, monthly_taxable_income: Number) -> Decimal:
        """Monthly tax avoided at the given income under the deployment's CZTE status."""
        deployment = self._state.active_deployment
        if deployment is None:
            return Decimal("0")
        return calculate_tax_savings(
            _to_decimal(monthly_taxable_income),
            deployment.pay_adjustments.czte_status,
            self._rates,
            self._settings.default_tax_rate,
        )

    def get_estimated_sdp_interest(self) -> Decimal:
        """SDP interest over the whole deployment, if enrolled."""
        deployment = self._state.active_deployment
        if deployment is None:
            return Decimal("0")
        months = months_in(self._duration_days(deployment), self._settings.days_per_month)
        return estimate_sdp_interest(deployment.pay_adjustments, months, self._rates)

    # =========================================================================
    # BUDGET
    # =========================================================================

    def create_deployment_budget(
        self,
        normal_monthly_expenses: Number,
        normal_monthly_savings: Number,
    ) -> bool:
        """Create (or replace) the budget for the active deployment."""
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("create_deployment_budget", "no active deployment")

        s = self._settings
        budget = create_deployment_budget(
            deployment_id=deployment.id,
            normal_monthly_expenses=_to_decimal(normal_monthly_expenses),
            normal_monthly_savings=_to_decimal(normal_monthly_savings),
            template=self._template,
            additional_monthly_pay=deployment.pay_adjustments.additional_monthly_pay,
            duration_days=self._duration_days(deployment),
            now=self._clock.now(),
            initial_expense_ratio=s.initial_expense_ratio,
            days_per_month=s.days_per_month,
        )
        self._state.deployment_budget = budget

        self._commit(AuditEventBuilder.budget_event(
            event_type=AuditEventType.BUDGET_CREATED,
            budget_id=budget.id,
            description=f"Deployment budget created from ${budget.normal_monthly_expenses}/month baseline",
            details={
                "normal_monthly_expenses": str(budget.normal_monthly_expenses),
                "normal_monthly_savings": str(budget.normal_monthly_savings),
            },
        ))
        return True

    def update_expense_adjustment(self, category_id: str, deployment_budget: Number) -> bool:
        """Set one category's deployment-time monthly figure."""
        budget = self._state.deployment_budget
        deployment = self._state.active_deployment
        if budget is None or deployment is None:
            return self._skip("update_expense_adjustment", "no deployment budget")

        updated = apply_expense_adjustment(
            budget,
            category_id,
            _to_decimal(deployment_budget),
            additional_monthly_pay=deployment.pay_adjustments.additional_monthly_pay,
            duration_days=self._duration_days(deployment),
            now=self._clock.now(),
            days_per_month=self._settings.days_per_month,
        )
        if updated is None:
            return self._skip("update_expense_adjustment", f"unknown category {category_id!r}")

        self._state.deployment_budget = updated
        self._commit(AuditEventBuilder.budget_event(
            event_type=AuditEventType.EXPENSE_ADJUSTED,
            budget_id=updated.id,
            description=f"Expense category {category_id} set to ${deployment_budget}/month",
            details={"category_id": category_id, "deployment_budget": str(deployment_budget)},
        ))
        return True

    def set_family_budget(
        self,
        monthly_allowance: Number,
        emergency_fund_target: Number,
        categories: Optional[list[Union[FamilyBudgetCategory, dict]]] = None,
    ) -> bool:
        """Attach a family budget and flag the deployment as family-budgeted."""
        budget = self._state.deployment_budget
        deployment = self._state.active_deployment
        if budget is None or deployment is None:
            return self._skip("set_family_budget", "no deployment budget")

        now = self._clock.now()
        family_budget = FamilyBudget(
            monthly_allowance=_to_decimal(monthly_allowance),
            emergency_fund_target=_to_decimal(emergency_fund_target),
            categories=[FamilyBudgetCategory.model_validate(c) for c in categories or []],
        )
        self._state.deployment_budget = budget.model_copy(update={
            "family_budget": family_budget,
            "updated_at": now,
        })
        self._state.active_deployment = deployment.model_copy(update={
            "family_budget_enabled": True,
            "updated_at": now,
        })

        self._commit(AuditEventBuilder.budget_event(
            event_type=AuditEventType.FAMILY_BUDGET_SET,
            budget_id=budget.id,
            description=f"Family budget set: ${family_budget.monthly_allowance}/month",
            details={
                "monthly_allowance": str(family_budget.monthly_allowance),
                "emergency_fund_target": str(family_budget.emergency_fund_target),
            },
        ))
        return True

    def set_savings_allocation(self, allocation: Union[SavingsAllocation, dict]) -> bool:
        """Record how projected savings will be split across buckets."""
        budget = self._state.deployment_budget
        if budget is None:
            return self._skip("set_savings_allocation", "no deployment budget")

        allocation = SavingsAllocation.model_validate(allocation)
        self._state.deployment_budget = budget.model_copy(update={
            "savings_allocation": allocation,
            "updated_at": self._clock.now(),
        })

        self._commit(AuditEventBuilder.budget_event(
            event_type=AuditEventType.SAVINGS_ALLOCATION_SET,
            budget_id=budget.id,
            description=f"Savings allocation set: ${allocation.total}/month",
            details={"total": str(allocation.total)},
        ))
        return True

    # =========================================================================
    # SAVINGS
    # =========================================================================

    def initialize_savings_tracker(self, savings_goal: Number) -> bool:
        """Start tracking savings toward a goal for the active deployment."""
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("initialize_savings_tracker", "no active deployment")

        goal = _to_decimal(savings_goal)
        tracker = new_savings_tracker(
            deployment.id,
            goal,
            days_remaining=max(0, days_until(self._clock.now(), deployment.expected_return_date)),
        )
        self._state.active_deployment = self._with_savings_goal(deployment, goal)
        self._state.savings_tracker = tracker

        self._commit(AuditEventBuilder.savings_event(
            event_type=AuditEventType.SAVINGS_TRACKER_INITIALIZED,
            deployment_id=deployment.id,
            description=f"Savings tracker started with ${goal} goal",
            details={"savings_goal": str(goal)},
        ))
        return True

    def update_savings_goal(self, amount: Number) -> bool:
        """Change the goal; the seed milestone follows it."""
        tracker = self._state.savings_tracker
        if tracker is None:
            return self._skip("update_savings_goal", "no savings tracker")

        goal = _to_decimal(amount)
        updated_tracker = set_savings_goal(tracker, goal)

        deployment = self._state.active_deployment
        if deployment is not None:
            self._state.active_deployment = self._with_savings_goal(deployment, goal)
        self._state.savings_tracker = updated_tracker

        self._commit(AuditEventBuilder.savings_event(
            event_type=AuditEventType.SAVINGS_GOAL_UPDATED,
            deployment_id=tracker.deployment_id,
            description=f"Savings goal changed to ${goal}",
            details={"old_goal": str(tracker.savings_goal), "new_goal": str(goal)},
        ))
        return True

    def record_savings_snapshot(self, snapshot: Union[SavingsSnapshotInput, dict]) -> bool:
        """Append one month of savings. Milestones are checked afterwards."""
        tracker = self._state.savings_tracker
        if tracker is None:
            return self._skip("record_savings_snapshot", "no savings tracker")

        snapshot = SavingsSnapshotInput.model_validate(snapshot)
        self._state.savings_tracker = append_snapshot(tracker, snapshot)

        self._commit(AuditEventBuilder.savings_event(
            event_type=AuditEventType.SNAPSHOT_RECORDED,
            deployment_id=tracker.deployment_id,
            description=f"Savings snapshot for {snapshot.month}: ${snapshot.net_savings} net",
            details={"month": snapshot.month, "net_savings": str(snapshot.net_savings)},
        ))
        return True

    def add_savings_milestone(self, name: str, target_amount: Number) -> Optional[UUID]:
        """Add a milestone. Returns its id, or None without a tracker."""
        tracker = self._state.savings_tracker
        if tracker is None:
            self._skip("add_savings_milestone", "no savings tracker")
            return None

        tracker, milestone = add_milestone(
            tracker, name, _to_decimal(target_amount), self._clock.now()
        )
        self._state.savings_tracker = tracker

        events = [AuditEventBuilder.savings_event(
            event_type=AuditEventType.MILESTONE_ADDED,
            deployment_id=tracker.deployment_id,
            description=f"Milestone added: {name} (${milestone.target_amount})",
            details={"milestone_id": str(milestone.id), "target_amount": str(milestone.target_amount)},
        )]
        if milestone.is_achieved:
            events.append(AuditEventBuilder.milestone_achieved(
                milestone_id=milestone.id,
                name=milestone.name,
                target_amount=str(milestone.target_amount),
            ))
        self._commit(*events)
        return milestone.id

    def check_milestones(self) -> bool:
        """Mark every milestone the current savings already reach."""
        if self._state.savings_tracker is None:
            return self._skip("check_milestones", "no savings tracker")

        # The recompute step performs the check and audits new achievements
        self._commit()
        return True

    def get_months_to_goal(self) -> int:
        """Months of projected saving still needed; 0 without a tracker or budget."""
        tracker = self._state.savings_tracker
        budget = self._state.deployment_budget
        if tracker is None or budget is None:
            return 0
        return months_to_goal(tracker, budget.projected_monthly_savings)

    # =========================================================================
    # COUNTDOWN & SUMMARY
    # =========================================================================

    def get_countdown(self) -> Optional[DeploymentCountdown]:
        deployment = self._state.active_deployment
        if deployment is None:
            return None
        return build_countdown(
            deployment,
            self._clock.now(),
            phase=self._current_phase(deployment),
            days_per_month=self._settings.days_per_month,
        )

    def get_deployment_summary(self) -> Optional[DeploymentSummary]:
        deployment = self._state.active_deployment
        if deployment is None:
            return None

        countdown = self.get_countdown()
        tracker = self._state.savings_tracker
        return DeploymentSummary(
            is_deployed=self.is_deployed(),
            phase=countdown.phase,
            days_remaining=countdown.days_remaining,
            percent_complete=countdown.percent_complete,
            additional_monthly_pay=deployment.pay_adjustments.additional_monthly_pay,
            projected_savings=self.get_projected_savings(),
            savings_progress=tracker.progress_percent if tracker else 0.0,
            next_milestone=countdown.upcoming_milestones[0] if countdown.upcoming_milestones else None,
        )

    def is_deployed(self) -> bool:
        """True only while actually in theater (not pre/post or redeployment)."""
        deployment = self._state.active_deployment
        if deployment is None or not deployment.is_active:
            return False
        return self._current_phase(deployment) == DeploymentPhase.DEPLOYMENT

    def get_deployment_duration(self) -> int:
        deployment = self._state.active_deployment
        if deployment is None:
            return 0
        return self._duration_days(deployment)

    def get_days_remaining(self) -> int:
        deployment = self._state.active_deployment
        if deployment is None:
            return 0
        return max(0, days_until(self._clock.now(), deployment.expected_return_date))

    def get_projected_savings(self) -> Decimal:
        budget = self._state.deployment_budget
        if budget is None:
            return Decimal("0")
        return budget.projected_total_savings

    def add_countdown_milestone(
        self,
        name: str,
        event_date: date,
        milestone_type: Union[CountdownMilestoneType, str] = CountdownMilestoneType.PERSONAL,
    ) -> Optional[UUID]:
        """Add a dated event to count down to. Returns its id."""
        deployment = self._state.active_deployment
        if deployment is None:
            self._skip("add_countdown_milestone", "no active deployment")
            return None

        milestone = CountdownMilestone(
            name=name,
            event_date=event_date,
            type=CountdownMilestoneType(milestone_type),
        )
        self._state.active_deployment = deployment.model_copy(update={
            "countdown_milestones": [*deployment.countdown_milestones, milestone],
            "updated_at": self._clock.now(),
        })

        self._commit(AuditEventBuilder.countdown_milestone(
            event_type=AuditEventType.COUNTDOWN_MILESTONE_ADDED,
            milestone_id=milestone.id,
            name=milestone.name,
        ))
        return milestone.id

    def remove_countdown_milestone(self, milestone_id: Union[UUID, str]) -> bool:
        deployment = self._state.active_deployment
        if deployment is None:
            return self._skip("remove_countdown_milestone", "no active deployment")

        milestone_id = UUID(str(milestone_id))
        remaining = [m for m in deployment.countdown_milestones if m.id != milestone_id]
        if len(remaining) == len(deployment.countdown_milestones):
            return self._skip("remove_countdown_milestone", f"unknown milestone {milestone_id}")

        removed = next(m for m in deployment.countdown_milestones if m.id == milestone_id)
        self._state.active_deployment = deployment.model_copy(update={
            "countdown_milestones": remaining,
            "updated_at": self._clock.now(),
        })

        self._commit(AuditEventBuilder.countdown_milestone(
            event_type=AuditEventType.COUNTDOWN_MILESTONE_REMOVED,
            milestone_id=removed.id,
            name=removed.name,
        ))
        return True

    # =========================================================================
    # OFFLINE QUEUE
    # =========================================================================

    def add_to_offline_queue(
        self,
        item_type: Union[OfflineItemType, str],
        data: dict[str, Any],
    ) -> UUID:
        """Buffer a mutation for the next sync. Works with or without a deployment."""
        item = self._queue.add(OfflineItemType(item_type), data)
        self._commit(AuditEventBuilder.queue_item_added(
            item_id=item.id,
            item_type=item.type.value,
            pending_items=self._state.offline_sync.pending_items,
        ))
        return item.id

    def _drain_events(self, attempted: list[OfflineQueueItem]) -> list[AuditEvent]:
        failed = [item for item in attempted if item.sync_status == SyncStatus.FAILED]
        events = [
            AuditEventBuilder.queue_item_failed(
                item_id=item.id,
                retry_count=item.retry_count,
                error_message=item.error or "",
            )
            for item in failed
        ]
        events.append(AuditEventBuilder.queue_processed(
            attempted=len(attempted),
            synced=len(attempted) - len(failed),
            failed=len(failed),
        ))
        return events

    async def process_offline_queue(self) -> list[OfflineQueueItem]:
        """
        Push pending items through the sync handler, oldest first.

        Returns the attempted items. Nothing is saved when offline or
        when there was nothing to attempt.
        """
        attempted = await self._queue.process()
        if not attempted:
            return []

        self._commit(*self._drain_events(attempted))
        return attempted

    async def set_online_status(self, is_online: bool) -> list[OfflineQueueItem]:
        """Record connectivity; coming back online drains the queue."""
        if is_online == self._state.offline_sync.is_online:
            return []

        attempted = await self._queue.set_online_status(is_online)

        events = [AuditEventBuilder.connectivity_changed(is_online=is_online)]
        if attempted:
            events.extend(self._drain_events(attempted))
        self._commit(*events)
        return attempted

    def clear_synced_items(self) -> int:
        """Drop synced items from the queue. Returns how many were removed."""
        removed = self._queue.clear_synced_items()
        if removed:
            self._commit(AuditEventBuilder.queue_cleared(
                removed=removed,
                remaining=len(self._state.offline_sync.queue),
            ))
        return removed

    def retry_failed_items(self) -> int:
        """Put failed items back in line for the next drain."""
        retried = self._queue.retry_failed_items()
        if retried:
            self._commit()
        return retried

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_deployment_history(self) -> list[DeploymentInfo]:
        """Past deployments, each classified against the current date."""
        return [self._as_of_now(d) for d in self._state.deployment_history]

    def get_deployment_by_id(self, deployment_id: Union[UUID, str]) -> Optional[DeploymentInfo]:
        """Look up the active deployment or a past one."""
        deployment_id = UUID(str(deployment_id))
        active = self._state.active_deployment
        if active is not None and active.id == deployment_id:
            return active
        for deployment in self._state.deployment_history:
            if deployment.id == deployment_id:
                return self._as_of_now(deployment)
        return None

    def _as_of_now(self, deployment: DeploymentInfo) -> DeploymentInfo:
        phase = self._current_phase(deployment)
        if phase == deployment.phase:
            return deployment
        return deployment.model_copy(update={"phase": phase})

    # =========================================================================
    # UTILITY
    # =========================================================================

    def reset(self) -> None:
        """Wipe everything, history and queue included."""
        self._state = EngineState(saved_at=self._clock.now())
        self._queue = self._bind_queue()
        self._commit(AuditEventBuilder.state_persisted(
            event_type=AuditEventType.STATE_RESET,
            has_active_deployment=False,
            queue_length=0,
        ))


def create_lifecycle_manager(
    settings: Optional[Settings] = None,
    clock: Optional[ClockInterface] = None,
    sync_handler: Optional[SyncHandlerInterface] = None,
) -> DeploymentLifecycleManager:
    """
    Factory function to build a manager from settings.

    Falls back to the local JSON file when the configured backend
    cannot be set up (e.g. Google Sheets credentials missing).
    """
    settings = settings or get_settings()
    logger = structlog.get_logger(__name__)

    try:
        storage = create_state_storage(settings)
        audit_storage = create_audit_storage(settings)
    except Exception as e:
        # Storage not configured - continue on the local file
        logger.warning("storage_not_configured", error=str(e))
        storage = JsonFileStateStorage(settings.storage.state_file_path)
        audit_storage = None

    return DeploymentLifecycleManager(
        storage=storage,
        clock=clock,
        sync_handler=sync_handler,
        audit_logger=AuditLogger(audit_storage),
        settings=settings.lifecycle,
    )
