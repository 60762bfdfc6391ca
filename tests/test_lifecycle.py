"""
Tests for DeploymentLifecycleManager

Test strategy:
1. Worked examples from the deployment planning guide, end to end
2. Invariants: derived fields always match a fresh recompute
3. Missing preconditions are skipped, audited, and never saved
4. Every mutation saves the full state; a new manager restores it
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.audit import AuditLogger
from src.calculations import (
    classify_phase,
    compute_budget_totals,
    compute_pay_totals,
)
from src.clock import days_between
from src.lifecycle import DeploymentLifecycleManager
from src.models.audit import AuditEventType, AuditSeverity
from src.models.deployment import CZTEStatus, DeploymentPhase, DeploymentType
from src.models.sync import OfflineItemType, SyncStatus
from src.services.storage import InMemoryStateStorage, StorageError
from src.sync import SyncError, SyncHandlerInterface

DEPARTURE = date(2024, 1, 1)
EXPECTED_RETURN = date(2024, 10, 1)


def event_types(audit_storage) -> list[AuditEventType]:
    return [e.event_type for e in audit_storage.events]


def assert_derived_consistent(manager, clock):
    """Every stored derived figure equals a recompute from the inputs."""
    deployment = manager.active_deployment
    assert deployment.phase == classify_phase(
        deployment.departure_date,
        deployment.expected_return_date,
        deployment.actual_return_date,
        clock.now(),
    )
    assert deployment.pay_adjustments == compute_pay_totals(deployment.pay_adjustments)

    budget = manager.deployment_budget
    if budget is not None:
        duration = days_between(deployment.departure_date, deployment.expected_return_date)
        assert budget == compute_budget_totals(
            budget, deployment.pay_adjustments.additional_monthly_pay, duration
        )


class FailingStorage(InMemoryStateStorage):
    def save(self, state):
        raise StorageError("disk full")


class ScriptedSyncHandler(SyncHandlerInterface):
    async def push(self, item):
        if item.data.get("fail"):
            raise SyncError("rejected")


# =============================================================================
# WORKED EXAMPLES
# =============================================================================

class TestWorkedExamples:
    """The two reference scenarios, driven through the public API."""

    def test_countdown_and_pay_example(self, deployed_manager):
        """Day 91 of a Jan 1 -> Oct 1 deployment; HFP + FSA pays $475."""
        countdown = deployed_manager.get_countdown()
        assert countdown.days_complete == 91
        assert countdown.percent_complete == pytest.approx(33.2, abs=0.1)
        assert countdown.phase == DeploymentPhase.DEPLOYMENT
        assert deployed_manager.active_deployment.phase == DeploymentPhase.DEPLOYMENT

        assert deployed_manager.update_pay_adjustments(
            hostile_fire_pay=True,
            family_separation_allowance=True,
        ) is True
        assert deployed_manager.get_additional_monthly_pay() == Decimal("475")

    def test_budget_projection_example(self, deployed_manager):
        """500 + (4000 - 2000) + 475 = 2975/month; 10 months = 29,750."""
        deployed_manager.update_pay_adjustments(
            hostile_fire_pay=True,
            family_separation_allowance=True,
        )
        assert deployed_manager.create_deployment_budget(4000, 500) is True

        budget = deployed_manager.deployment_budget
        assert budget.deployment_monthly_expenses == Decimal("2000")
        assert budget.projected_monthly_savings == Decimal("2975")
        assert budget.projected_total_savings == Decimal("29750")
        assert deployed_manager.get_projected_savings() == Decimal("29750")


# =============================================================================
# LIFECYCLE
# =============================================================================

class TestStartDeployment:
    """Tests for creating a deployment."""

    def test_returns_id_and_activates(self, manager, safe_location):
        deployment_id = manager.start_deployment(
            "training", DEPARTURE, EXPECTED_RETURN, safe_location
        )
        deployment = manager.active_deployment
        assert deployment.id == deployment_id
        assert deployment.is_active is True
        assert deployment.type == DeploymentType.TRAINING

    def test_hazardous_location_enables_combat_pay(self, manager, hazardous_location):
        manager.start_deployment(
            DeploymentType.COMBAT, DEPARTURE, EXPECTED_RETURN, hazardous_location
        )
        pay = manager.active_deployment.pay_adjustments
        assert pay.hostile_fire_pay is True
        assert pay.combat_zone_tax_exclusion is True
        assert pay.czte_status == CZTEStatus.FULL
        assert pay.additional_monthly_pay == Decimal("225")

    def test_safe_location_has_no_special_pay(self, deployed_manager):
        assert deployed_manager.get_additional_monthly_pay() == Decimal("0")

    def test_phase_classified_at_start(self, manager, clock, safe_location):
        """Starting 60 days before departure lands in pre-deployment."""
        clock.set(date(2023, 11, 2))
        manager.start_deployment("combat", DEPARTURE, EXPECTED_RETURN, safe_location)
        assert manager.active_deployment.phase == DeploymentPhase.PRE_DEPLOYMENT

    def test_return_before_departure_rejected(self, manager, safe_location):
        with pytest.raises(ValidationError):
            manager.start_deployment("combat", EXPECTED_RETURN, DEPARTURE, safe_location)
        assert manager.active_deployment is None

    def test_optional_details(self, manager, safe_location):
        manager.start_deployment(
            "contingency", DEPARTURE, EXPECTED_RETURN, safe_location,
            unit_name="2nd Brigade", order_number="ORD-1234",
        )
        assert manager.active_deployment.unit_name == "2nd Brigade"

    def test_replaces_previous_deployment(self, deployed_manager, safe_location):
        """Starting again discards the old deployment and its budget."""
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.start_deployment("tdy", DEPARTURE, EXPECTED_RETURN, safe_location)
        assert deployed_manager.deployment_budget is None
        assert deployed_manager.get_deployment_history() == []

    def test_audited(self, deployed_manager, audit_storage):
        assert AuditEventType.DEPLOYMENT_STARTED in event_types(audit_storage)


class TestUpdateDeployment:
    """Tests for editing the active deployment."""

    def test_extending_return_reprojects_budget(self, deployed_manager):
        """Moving the return date changes duration-driven figures."""
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.update_deployment(expected_return_date=date(2024, 12, 1))

        # 335 days -> 12 months at 2500/month
        assert deployed_manager.get_deployment_duration() == 335
        assert deployed_manager.deployment_budget.projected_total_savings == Decimal("30000")

    def test_date_change_reclassifies_phase(self, deployed_manager):
        deployed_manager.update_deployment(expected_return_date=date(2024, 4, 20))
        assert deployed_manager.active_deployment.phase == DeploymentPhase.REDEPLOYMENT

    def test_engine_owned_fields_rejected(self, deployed_manager):
        with pytest.raises(ValueError):
            deployed_manager.update_deployment(phase=DeploymentPhase.POST_DEPLOYMENT)
        with pytest.raises(ValueError):
            deployed_manager.update_deployment(no_such_field=1)

    def test_return_date_only_set_by_ending(self, deployed_manager, state_storage):
        saves = state_storage.save_count
        with pytest.raises(ValueError):
            deployed_manager.update_deployment(actual_return_date=date(2024, 3, 15))

        deployed = deployed_manager.active_deployment
        assert deployed.actual_return_date is None
        assert deployed.phase == DeploymentPhase.DEPLOYMENT
        assert state_storage.save_count == saves

    def test_invalid_dates_rejected(self, deployed_manager):
        with pytest.raises(ValidationError):
            deployed_manager.update_deployment(expected_return_date=date(2023, 6, 1))
        assert deployed_manager.active_deployment.expected_return_date == EXPECTED_RETURN

    def test_location_update(self, deployed_manager):
        deployed_manager.update_deployment(
            location={"country_code": "PL", "location_name": "Poznan"}
        )
        assert deployed_manager.active_deployment.location.country_code == "PL"


class TestEndAndCancel:
    """Tests for closing a deployment."""

    def test_end_moves_to_history(self, deployed_manager, clock):
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.initialize_savings_tracker(20000)
        deployment_id = deployed_manager.active_deployment.id

        clock.set(date(2024, 10, 3))
        assert deployed_manager.end_deployment(date(2024, 10, 2)) is True

        assert deployed_manager.active_deployment is None
        assert deployed_manager.deployment_budget is None
        assert deployed_manager.savings_tracker is None

        history = deployed_manager.get_deployment_history()
        assert len(history) == 1
        assert history[0].id == deployment_id
        assert history[0].is_active is False
        assert history[0].actual_return_date == date(2024, 10, 2)
        assert history[0].phase == DeploymentPhase.POST_DEPLOYMENT

    def test_get_by_id_finds_history(self, deployed_manager):
        deployment_id = deployed_manager.active_deployment.id
        assert deployed_manager.get_deployment_by_id(deployment_id).is_active is True

        deployed_manager.end_deployment(date(2024, 9, 30))
        found = deployed_manager.get_deployment_by_id(str(deployment_id))
        assert found is not None
        assert found.is_active is False

    def test_history_ages_out_of_post_deployment(
        self, deployed_manager, clock, state_storage, audit_storage
    ):
        deployment_id = deployed_manager.active_deployment.id
        deployed_manager.end_deployment(date(2024, 4, 1))
        assert deployed_manager.get_deployment_history()[0].phase == DeploymentPhase.POST_DEPLOYMENT

        # 91 days home
        clock.set(date(2024, 7, 1))
        assert deployed_manager.get_deployment_history()[0].phase == DeploymentPhase.NOT_DEPLOYED
        assert deployed_manager.get_deployment_by_id(deployment_id).phase == DeploymentPhase.NOT_DEPLOYED

        deployed_manager.add_to_offline_queue("transaction", {})
        assert state_storage.load().deployment_history[0].phase == DeploymentPhase.NOT_DEPLOYED
        phase_event = [
            e for e in audit_storage.events if e.event_type == AuditEventType.PHASE_CHANGED
        ][-1]
        assert phase_event.entity_id == deployment_id
        assert phase_event.details["new_phase"] == "not_deployed"

    def test_get_by_unknown_id(self, deployed_manager):
        assert deployed_manager.get_deployment_by_id(uuid4()) is None

    def test_cancel_discards(self, deployed_manager, audit_storage):
        assert deployed_manager.cancel_deployment() is True
        assert deployed_manager.active_deployment is None
        assert deployed_manager.get_deployment_history() == []
        assert AuditEventType.DEPLOYMENT_CANCELLED in event_types(audit_storage)


class TestPhaseRefresh:
    """Tests for re-deriving phase as the clock moves."""

    def test_refresh_moves_into_redeployment(self, deployed_manager, clock, audit_storage):
        clock.set(date(2024, 9, 5))
        assert deployed_manager.refresh_phase() is True
        assert deployed_manager.active_deployment.phase == DeploymentPhase.REDEPLOYMENT

        changes = [e for e in audit_storage.events if e.event_type == AuditEventType.PHASE_CHANGED]
        assert changes[-1].details == {"old_phase": "deployment", "new_phase": "redeployment"}

    def test_refresh_without_change_does_not_save(self, deployed_manager, state_storage):
        saves = state_storage.save_count
        deployed_manager.refresh_phase()
        assert state_storage.save_count == saves

    def test_is_deployed_reads_fresh_phase(self, deployed_manager, clock):
        """Queries use the clock even before the cached phase is refreshed."""
        assert deployed_manager.is_deployed() is True
        clock.set(date(2024, 9, 5))
        assert deployed_manager.is_deployed() is False
        assert deployed_manager.get_countdown().phase == DeploymentPhase.REDEPLOYMENT


# =============================================================================
# PAY
# =============================================================================

class TestPay:
    """Tests for pay toggles through the manager."""

    def test_update_is_idempotent(self, deployed_manager):
        toggles = {"hostile_fire_pay": True, "family_separation_allowance": True}
        deployed_manager.update_pay_adjustments(**toggles)
        first = deployed_manager.active_deployment.pay_adjustments
        deployed_manager.update_pay_adjustments(**toggles)
        assert deployed_manager.active_deployment.pay_adjustments == first

    def test_derived_totals_cannot_be_set(self, deployed_manager):
        with pytest.raises(ValueError):
            deployed_manager.update_pay_adjustments(additional_monthly_pay=Decimal("1000"))

    def test_combat_zone_toggles(self, deployed_manager):
        deployed_manager.enable_combat_zone_benefits()
        pay = deployed_manager.active_deployment.pay_adjustments
        assert pay.hostile_fire_pay and pay.combat_zone_tax_exclusion
        assert pay.czte_status == CZTEStatus.FULL

        deployed_manager.update_pay_adjustments(imminent_danger_pay=True)
        deployed_manager.disable_combat_zone_benefits()
        pay = deployed_manager.active_deployment.pay_adjustments
        assert not (pay.hostile_fire_pay or pay.imminent_danger_pay or pay.combat_zone_tax_exclusion)
        assert pay.czte_status == CZTEStatus.NONE
        assert pay.additional_monthly_pay == Decimal("0")

    def test_pay_change_flows_into_budget(self, deployed_manager):
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.enable_combat_zone_benefits()
        assert deployed_manager.deployment_budget.projected_monthly_savings == Decimal("2725")

    def test_estimated_tax_savings(self, deployed_manager):
        assert deployed_manager.get_estimated_tax_savings(5000) == Decimal("0")
        deployed_manager.update_pay_adjustments(czte_status=CZTEStatus.CAPPED)
        assert deployed_manager.get_estimated_tax_savings(12000) == Decimal("2303.99")

    def test_stored_tax_estimate_uses_income(self, deployed_manager):
        deployed_manager.update_pay_adjustments(
            czte_status=CZTEStatus.FULL,
            monthly_taxable_income=Decimal("4000"),
        )
        assert deployed_manager.active_deployment.pay_adjustments.estimated_tax_savings == Decimal("880.00")

    def test_sdp_interest(self, deployed_manager):
        assert deployed_manager.get_estimated_sdp_interest() == Decimal("0")
        deployed_manager.update_pay_adjustments(
            savings_deposit_program=True,
            sdp_amount=Decimal("10000"),
        )
        # 10 months at 10% a year on $10,000
        assert deployed_manager.get_estimated_sdp_interest() == Decimal("833.33")


# =============================================================================
# BUDGET
# =============================================================================

class TestBudget:
    """Tests for budget operations through the manager."""

    def test_sum_invariant(self, deployed_manager):
        deployed_manager.create_deployment_budget(4000, 500)
        for category_id, amount in [("rent", 1500), ("phone", 40), ("shipping", 60)]:
            assert deployed_manager.update_expense_adjustment(category_id, amount) is True
            budget = deployed_manager.deployment_budget
            assert budget.deployment_monthly_expenses == sum(
                row.deployment_budget for row in budget.expense_adjustments
            )
        assert deployed_manager.deployment_budget.deployment_monthly_expenses == Decimal("1600")

    def test_unknown_category_is_noop(self, deployed_manager, state_storage, audit_storage):
        deployed_manager.create_deployment_budget(4000, 500)
        before = deployed_manager.deployment_budget
        saves = state_storage.save_count

        assert deployed_manager.update_expense_adjustment("no_such_category", 100) is False
        assert deployed_manager.deployment_budget == before
        assert state_storage.save_count == saves
        assert audit_storage.events[-1].event_type == AuditEventType.PRECONDITION_NOT_MET

    def test_family_budget_enables_flag(self, deployed_manager):
        deployed_manager.create_deployment_budget(4000, 500)
        assert deployed_manager.set_family_budget(1800, 5000) is True

        family = deployed_manager.deployment_budget.family_budget
        assert family.monthly_allowance == Decimal("1800")
        assert family.emergency_fund_target == Decimal("5000")
        assert family.categories == []
        assert deployed_manager.active_deployment.family_budget_enabled is True

    def test_savings_allocation(self, deployed_manager):
        deployed_manager.create_deployment_budget(4000, 500)
        assert deployed_manager.set_savings_allocation(
            {"emergency_fund": 500, "tsp": 1000, "investments": 475}
        ) is True
        assert deployed_manager.deployment_budget.savings_allocation.total == Decimal("1975")


# =============================================================================
# SAVINGS
# =============================================================================

class TestSavings:
    """Tests for savings tracking through the manager."""

    def test_initialize(self, deployed_manager):
        assert deployed_manager.initialize_savings_tracker(30000) is True
        tracker = deployed_manager.savings_tracker
        assert tracker.savings_goal == Decimal("30000")
        assert tracker.days_remaining == 183
        assert [m.name for m in tracker.milestones] == ["Deployment Goal"]
        assert deployed_manager.active_deployment.savings_goal_amount == Decimal("30000")

    def test_snapshot_updates_progress_and_projection(self, deployed_manager):
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.initialize_savings_tracker(30000)
        deployed_manager.record_savings_snapshot({"month": "2024-01", "net_savings": "3000"})

        tracker = deployed_manager.savings_tracker
        assert tracker.current_savings == Decimal("3000")
        assert tracker.progress_percent == pytest.approx(10.0)
        assert tracker.on_track is True
        # 3000 now + 2500/month over the 7 remaining months
        assert tracker.projected_end_total == Decimal("20500")

    def test_milestones_monotonic(self, deployed_manager, audit_storage):
        deployed_manager.initialize_savings_tracker(30000)
        milestone_id = deployed_manager.add_savings_milestone("Emergency fund", 5000)

        deployed_manager.record_savings_snapshot({"month": "2024-01", "net_savings": "6000"})
        deployed_manager.record_savings_snapshot({"month": "2024-02", "net_savings": "-4000"})

        milestone = next(m for m in deployed_manager.savings_tracker.milestones if m.id == milestone_id)
        assert deployed_manager.savings_tracker.current_savings == Decimal("2000")
        assert milestone.is_achieved is True
        assert event_types(audit_storage).count(AuditEventType.MILESTONE_ACHIEVED) == 1

    def test_goal_update_moves_seed(self, deployed_manager):
        deployed_manager.initialize_savings_tracker(30000)
        deployed_manager.record_savings_snapshot({"month": "2024-01", "net_savings": "5000"})
        deployed_manager.update_savings_goal(5000)

        seed = deployed_manager.savings_tracker.milestones[0]
        assert seed.target_amount == Decimal("5000")
        assert seed.is_achieved is True
        assert deployed_manager.savings_tracker.progress_percent == pytest.approx(100.0)

    def test_check_milestones(self, deployed_manager):
        deployed_manager.initialize_savings_tracker(30000)
        assert deployed_manager.check_milestones() is True
        assert deployed_manager.savings_tracker.milestones[0].is_achieved is False

    def test_months_to_goal(self, deployed_manager):
        assert deployed_manager.get_months_to_goal() == 0
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.initialize_savings_tracker(30000)
        # 30000 at 2500/month
        assert deployed_manager.get_months_to_goal() == 12

    def test_bad_snapshot_rejected(self, deployed_manager):
        deployed_manager.initialize_savings_tracker(30000)
        with pytest.raises(ValidationError):
            deployed_manager.record_savings_snapshot({"month": "2024-1", "net_savings": "1"})


# =============================================================================
# COUNTDOWN & SUMMARY
# =============================================================================

class TestCountdownAndSummary:
    """Tests for read-side views."""

    def test_no_deployment(self, manager):
        assert manager.get_countdown() is None
        assert manager.get_deployment_summary() is None
        assert manager.is_deployed() is False
        assert manager.get_deployment_duration() == 0
        assert manager.get_days_remaining() == 0
        assert manager.get_projected_savings() == Decimal("0")
        assert manager.get_additional_monthly_pay() == Decimal("0")

    def test_summary(self, deployed_manager):
        deployed_manager.enable_combat_zone_benefits()
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.initialize_savings_tracker(30000)
        deployed_manager.add_countdown_milestone("R&R", date(2024, 6, 15), "military")

        summary = deployed_manager.get_deployment_summary()
        assert summary.is_deployed is True
        assert summary.phase == DeploymentPhase.DEPLOYMENT
        assert summary.days_remaining == 183
        assert summary.additional_monthly_pay == Decimal("225")
        assert summary.projected_savings == Decimal("27250")
        assert summary.savings_progress == 0.0
        assert summary.next_milestone.name == "R&R"

    def test_countdown_milestones(self, deployed_manager):
        first = deployed_manager.add_countdown_milestone("Birthday", date(2024, 5, 2))
        deployed_manager.add_countdown_milestone("Anniversary", date(2024, 2, 14))

        upcoming = deployed_manager.get_countdown().upcoming_milestones
        assert [m.name for m in upcoming] == ["Birthday"]

        assert deployed_manager.remove_countdown_milestone(first) is True
        assert deployed_manager.get_countdown().upcoming_milestones == []
        assert deployed_manager.remove_countdown_milestone(first) is False


# =============================================================================
# PRECONDITIONS
# =============================================================================

class TestPreconditions:
    """Operations without their required records are skipped, not raised."""

    def test_without_deployment(self, manager, state_storage, audit_storage):
        assert manager.update_deployment(unit_name="x") is False
        assert manager.end_deployment(date(2024, 5, 1)) is False
        assert manager.cancel_deployment() is False
        assert manager.refresh_phase() is False
        assert manager.update_pay_adjustments(hostile_fire_pay=True) is False
        assert manager.create_deployment_budget(4000, 500) is False
        assert manager.initialize_savings_tracker(1000) is False
        assert manager.add_countdown_milestone("x", date(2024, 5, 1)) is None

        assert state_storage.save_count == 0
        assert all(e.severity == AuditSeverity.WARNING for e in audit_storage.events)
        assert set(event_types(audit_storage)) == {AuditEventType.PRECONDITION_NOT_MET}

    def test_without_budget_or_tracker(self, deployed_manager):
        assert deployed_manager.update_expense_adjustment("rent", 100) is False
        assert deployed_manager.set_family_budget(100, 100) is False
        assert deployed_manager.set_savings_allocation({}) is False
        assert deployed_manager.update_savings_goal(100) is False
        assert deployed_manager.record_savings_snapshot({"month": "2024-01", "net_savings": 1}) is False
        assert deployed_manager.add_savings_milestone("x", 1) is None
        assert deployed_manager.check_milestones() is False


# =============================================================================
# CONSISTENCY
# =============================================================================

class TestConsistency:
    """Derived fields never drift from their inputs."""

    def test_after_mixed_operations(self, deployed_manager, clock):
        operations = [
            lambda m: m.update_pay_adjustments(hostile_fire_pay=True),
            lambda m: m.create_deployment_budget(4200, 300),
            lambda m: m.update_expense_adjustment("rent", 1500),
            lambda m: m.update_pay_adjustments(family_separation_allowance=True),
            lambda m: m.update_deployment(expected_return_date=date(2024, 11, 15)),
            lambda m: m.initialize_savings_tracker(25000),
            lambda m: m.record_savings_snapshot({"month": "2024-01", "net_savings": 2100}),
            lambda m: m.disable_combat_zone_benefits(),
        ]
        for operation in operations:
            operation(deployed_manager)
            assert_derived_consistent(deployed_manager, clock)

        clock.set(date(2024, 10, 20))
        deployed_manager.refresh_phase()
        assert_derived_consistent(deployed_manager, clock)


# =============================================================================
# PERSISTENCE
# =============================================================================

class TestPersistence:
    """Tests for save-after-mutation and reload."""

    def test_every_mutation_saves(self, deployed_manager, state_storage):
        saves = state_storage.save_count
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.update_expense_adjustment("rent", 1000)
        assert state_storage.save_count == saves + 2

    def test_reload_restores_everything(
        self, deployed_manager, state_storage, clock, lifecycle_settings
    ):
        deployed_manager.enable_combat_zone_benefits()
        deployed_manager.create_deployment_budget(4000, 500)
        deployed_manager.initialize_savings_tracker(30000)
        deployed_manager.add_to_offline_queue("transaction", {"amount": 12})

        restored = DeploymentLifecycleManager(
            storage=state_storage,
            clock=clock,
            settings=lifecycle_settings,
        )
        assert restored.active_deployment == deployed_manager.active_deployment
        assert restored.deployment_budget == deployed_manager.deployment_budget
        assert restored.savings_tracker == deployed_manager.savings_tracker
        assert len(restored.offline_sync.queue) == 1

    def test_reload_refreshes_phase(self, deployed_manager, state_storage, clock, lifecycle_settings):
        clock.set(date(2024, 9, 20))
        restored = DeploymentLifecycleManager(
            storage=state_storage, clock=clock, settings=lifecycle_settings
        )
        assert restored.active_deployment.phase == DeploymentPhase.REDEPLOYMENT

    def test_save_failure_raises_and_is_audited(
        self, clock, audit_storage, lifecycle_settings, safe_location
    ):
        manager = DeploymentLifecycleManager(
            storage=FailingStorage(),
            clock=clock,
            audit_logger=AuditLogger(audit_storage),
            settings=lifecycle_settings,
        )
        with pytest.raises(StorageError):
            manager.start_deployment("combat", DEPARTURE, EXPECTED_RETURN, safe_location)

        failure = audit_storage.events[-1]
        assert failure.event_type == AuditEventType.STATE_SAVE_FAILED
        assert failure.error_message == "disk full"

    def test_negative_expense_rejected_before_save(
        self, deployed_manager, state_storage, clock, lifecycle_settings
    ):
        deployed_manager.create_deployment_budget(4000, 500)
        before = deployed_manager.deployment_budget
        saves = state_storage.save_count

        with pytest.raises(ValidationError):
            deployed_manager.update_expense_adjustment("rent", -50)

        assert deployed_manager.deployment_budget == before
        assert state_storage.save_count == saves
        restored = DeploymentLifecycleManager(
            storage=state_storage, clock=clock, settings=lifecycle_settings
        )
        assert restored.deployment_budget == before

    def test_negative_goal_rejected_before_save(
        self, deployed_manager, state_storage, clock, lifecycle_settings
    ):
        deployed_manager.initialize_savings_tracker(30000)
        saves = state_storage.save_count

        with pytest.raises(ValidationError):
            deployed_manager.update_savings_goal(-100)
        with pytest.raises(ValidationError):
            deployed_manager.initialize_savings_tracker(-100)

        assert deployed_manager.savings_tracker.savings_goal == Decimal("30000")
        assert deployed_manager.active_deployment.savings_goal_amount == Decimal("30000")
        assert state_storage.save_count == saves
        restored = DeploymentLifecycleManager(
            storage=state_storage, clock=clock, settings=lifecycle_settings
        )
        assert restored.savings_tracker.savings_goal == Decimal("30000")

    def test_state_is_a_copy(self, deployed_manager):
        snapshot = deployed_manager.state
        snapshot.active_deployment = None
        assert deployed_manager.active_deployment is not None

    def test_reset(self, deployed_manager, state_storage):
        deployed_manager.end_deployment(date(2024, 9, 30))
        deployed_manager.add_to_offline_queue("transaction", {})
        deployed_manager.reset()

        assert deployed_manager.get_deployment_history() == []
        assert deployed_manager.offline_sync.queue == []
        assert state_storage.load().deployment_history == []


# =============================================================================
# OFFLINE QUEUE
# =============================================================================

class TestOfflineQueue:
    """Tests for the queue as exposed by the manager."""

    @pytest.fixture
    def queue_manager(self, state_storage, clock, audit_storage, lifecycle_settings):
        return DeploymentLifecycleManager(
            storage=state_storage,
            clock=clock,
            sync_handler=ScriptedSyncHandler(),
            audit_logger=AuditLogger(audit_storage),
            settings=lifecycle_settings,
        )

    def test_queue_independent_of_deployment(self, queue_manager):
        item_id = queue_manager.add_to_offline_queue(OfflineItemType.BUDGET_UPDATE, {"x": 1})
        assert queue_manager.offline_sync.queue[0].id == item_id
        assert queue_manager.offline_sync.pending_items == 1

    @pytest.mark.asyncio
    async def test_process_and_clear(self, queue_manager, state_storage, audit_storage):
        queue_manager.add_to_offline_queue("transaction", {"name": "A"})
        queue_manager.add_to_offline_queue("transaction", {"name": "B", "fail": True})
        queue_manager.add_to_offline_queue("transaction", {"name": "C"})

        attempted = await queue_manager.process_offline_queue()

        assert [i.sync_status for i in attempted] == [
            SyncStatus.SYNCED, SyncStatus.FAILED, SyncStatus.SYNCED,
        ]
        assert queue_manager.offline_sync.failed_items == 1
        assert state_storage.load().offline_sync.failed_items == 1
        assert AuditEventType.QUEUE_ITEM_FAILED in event_types(audit_storage)

        assert queue_manager.clear_synced_items() == 2
        assert [i.data["name"] for i in queue_manager.offline_sync.queue] == ["B"]

        assert queue_manager.retry_failed_items() == 1
        assert queue_manager.offline_sync.pending_items == 1

    @pytest.mark.asyncio
    async def test_reconnect_drains(self, queue_manager, audit_storage):
        await queue_manager.set_online_status(False)
        queue_manager.add_to_offline_queue("goal_update", {"name": "A"})
        assert await queue_manager.process_offline_queue() == []

        attempted = await queue_manager.set_online_status(True)
        assert len(attempted) == 1
        assert queue_manager.offline_sync.queue[0].sync_status == SyncStatus.SYNCED
        assert event_types(audit_storage).count(AuditEventType.CONNECTIVITY_CHANGED) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
