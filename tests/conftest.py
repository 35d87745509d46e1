"""
Pytest configuration for clinical alert engine tests
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add parent directory to path to import package modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from clinical_alerts.schemas.patient_context import (
    PatientContext,
    Medication,
    Condition,
    VitalTrend,
    Allergy,
    MedicationStatus,
    ClinicalStatus,
)
from clinical_alerts.services.alert_engine import (
    AlertEngineConfig,
    ClinicalAlertEngine,
    ClinicalAlertStore,
)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock that only moves when told to"""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def config():
    return AlertEngineConfig()


@pytest.fixture
def store(clock):
    return ClinicalAlertStore(session_id="session-test", clock=clock)


@pytest.fixture
def engine(store, config, clock):
    return ClinicalAlertEngine(store=store, config=config, clock=clock)


@pytest.fixture
def empty_context():
    return PatientContext()


@pytest.fixture
def hypertensive_context():
    return PatientContext(
        active_conditions=[
            Condition(code="I10", display="Hypertension", clinical_status=ClinicalStatus.ACTIVE),
        ],
        recent_vitals=[
            VitalTrend(
                parameter="blood_pressure_systolic",
                value=172,
                timestamp=NOW - timedelta(hours=6),
                trend="increasing",
            ),
        ],
    )


@pytest.fixture
def diabetic_context():
    return PatientContext(
        active_conditions=[
            Condition(code="E11", display="Type 2 diabetes mellitus", clinical_status=ClinicalStatus.ACTIVE),
        ],
        recent_vitals=[
            VitalTrend(parameter="glucose", value=210, timestamp=NOW - timedelta(days=1), trend="increasing"),
        ],
    )


@pytest.fixture
def anticoagulated_context():
    return PatientContext(
        active_medications=[
            Medication(
                name="Warfarin",
                status=MedicationStatus.ACTIVE,
                category="anticoagulants",
                prescribed_date=NOW - timedelta(days=2),
            ),
            Medication(
                name="Aspirin",
                status=MedicationStatus.ACTIVE,
                category="antiplatelet",
                prescribed_date=NOW - timedelta(days=10),
            ),
        ],
        allergies=[Allergy(substance="penicillin", severity="severe")],
    )
