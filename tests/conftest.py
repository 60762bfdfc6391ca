"""Shared fixtures: a pinned clock and in-memory collaborators."""

from datetime import date

import pytest

from src.audit import AuditLogger
from src.clock import FixedClock
from src.config import LifecycleSettings
from src.lifecycle import DeploymentLifecycleManager
from src.models.deployment import DeploymentLocation, DeploymentType
from src.services.storage import InMemoryAuditStorage, InMemoryStateStorage


DEPARTURE = date(2024, 1, 1)
EXPECTED_RETURN = date(2024, 10, 1)


@pytest.fixture
def clock():
    """Day 91 of a deployment that left on 2024-01-01."""
    return FixedClock(date(2024, 4, 1))


@pytest.fixture
def lifecycle_settings():
    return LifecycleSettings(
        pre_deployment_window_days=90,
        redeployment_window_days=30,
        post_deployment_window_days=90,
        days_per_month=30,
        on_track_threshold=0.9,
        default_tax_rate=0.22,
        initial_expense_ratio=0.5,
    )


@pytest.fixture
def state_storage():
    return InMemoryStateStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def manager(state_storage, clock, audit_storage, lifecycle_settings):
    return DeploymentLifecycleManager(
        storage=state_storage,
        clock=clock,
        audit_logger=AuditLogger(audit_storage),
        settings=lifecycle_settings,
    )


@pytest.fixture
def safe_location():
    return DeploymentLocation(
        country_code="DE",
        location_name="Grafenwoehr",
        base_or_camp="Rose Barracks",
    )


@pytest.fixture
def hazardous_location():
    return DeploymentLocation(
        country_code="IQ",
        location_name="Al Asad",
        combat_zone_id="iraq",
        is_hazardous=True,
        is_remote=True,
        connectivity_level="limited",
    )


@pytest.fixture
def deployed_manager(manager, safe_location):
    """Manager with an active 2024-01-01 -> 2024-10-01 deployment."""
    manager.start_deployment(
        DeploymentType.CONTINGENCY,
        DEPARTURE,
        EXPECTED_RETURN,
        safe_location,
    )
    return manager
