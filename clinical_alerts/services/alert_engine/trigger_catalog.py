"""
Trigger Catalog - Static keyword rules used for first-pass transcript scanning.

Rules are evaluated in table order. Within a rule, keywords are tested in the
order listed and the first one found wins.
"""

from typing import Optional, Tuple
from dataclasses import dataclass

from .models import AlertType, AlertSeverity, ContextRequirement
from .config_service import (
    ANTICOAGULANT_TERMS,
    ASPIRIN_TERMS,
    ACE_INHIBITOR_TERMS,
    POTASSIUM_TERMS,
    BETA_BLOCKER_TERMS,
    CALCIUM_CHANNEL_TERMS,
)


@dataclass(frozen=True)
class TriggerRule:
    """Keyword set mapped to an alert type, severity and citation"""
    keywords: Tuple[str, ...]
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    source: str
    source_url: Optional[str] = None
    requirement: ContextRequirement = ContextRequirement.NONE

    @property
    def requires_context(self) -> bool:
        return self.requirement != ContextRequirement.NONE


INTERACTING_DRUG_KEYWORDS: Tuple[str, ...] = tuple(
    ANTICOAGULANT_TERMS
    + ASPIRIN_TERMS
    + ACE_INHIBITOR_TERMS
    + POTASSIUM_TERMS
    + BETA_BLOCKER_TERMS
    + CALCIUM_CHANNEL_TERMS
)


TRIGGER_CATALOG: Tuple[TriggerRule, ...] = (
    TriggerRule(
        keywords=("sepsis", "septic shock", "blood infection", "systemic infection"),
        alert_type=AlertType.SEPSIS,
        severity=AlertSeverity.CRITICAL,
        message="Potential sepsis indicators detected. Consider immediate assessment and intervention.",
        source="NICE Guideline NG51",
        source_url="https://www.nice.org.uk/guidance/ng51",
    ),
    TriggerRule(
        keywords=("contraindicated", "contraindication", "should not take", "avoid with"),
        alert_type=AlertType.CONTRAINDICATION,
        severity=AlertSeverity.CRITICAL,
        message="Medication contraindication detected. Verify patient safety before proceeding.",
        source="BMJ Clinical Guidelines",
        source_url="https://www.bmj.com/clinical-evidence",
    ),
    TriggerRule(
        keywords=("drug interaction", "medication conflict", "dangerous combination"),
        alert_type=AlertType.MEDICATION_CONFLICT,
        severity=AlertSeverity.CRITICAL,
        message="Potential drug interaction identified. Review medication compatibility.",
        source="FDA Drug Interaction Database",
    ),
    TriggerRule(
        keywords=("allergic to", "allergy", "adverse reaction", "allergic reaction"),
        alert_type=AlertType.ALLERGY,
        severity=AlertSeverity.CRITICAL,
        message="Allergy alert triggered. Verify patient allergy status immediately.",
        source="Clinical Safety Guidelines",
    ),
    TriggerRule(
        keywords=("overdose", "too much", "exceeded dose", "double dose", "maximum dose"),
        alert_type=AlertType.DOSAGE_ERROR,
        severity=AlertSeverity.CAUTION,
        message="Potential dosage concern detected. Verify medication amounts.",
        source="Pharmacy Guidelines",
    ),
    # Context-gated rules below only become alerts after the context evaluator
    # corroborates them against the patient's record.
    TriggerRule(
        keywords=("blood pressure", "b/p", "hypertensive"),
        alert_type=AlertType.CONTRAINDICATION,
        severity=AlertSeverity.CAUTION,
        message="Blood pressure reading mentioned.",
        source="AHA/ACC Hypertension Guidelines",
        source_url="https://www.ahajournals.org/hypertension-guidelines",
        requirement=ContextRequirement.BLOOD_PRESSURE,
    ),
    TriggerRule(
        keywords=("heart rate", "pulse"),
        alert_type=AlertType.CONTRAINDICATION,
        severity=AlertSeverity.CAUTION,
        message="Heart rate reading mentioned.",
        source="AHA/ACC Clinical Guidelines",
        requirement=ContextRequirement.HEART_RATE,
    ),
    TriggerRule(
        keywords=("glucose", "blood sugar", "hba1c"),
        alert_type=AlertType.CONTRAINDICATION,
        severity=AlertSeverity.CAUTION,
        message="Glycemic measurement mentioned.",
        source="ADA Clinical Guidelines",
        source_url="https://diabetesjournals.org/care",
        requirement=ContextRequirement.GLUCOSE,
    ),
    TriggerRule(
        keywords=INTERACTING_DRUG_KEYWORDS,
        alert_type=AlertType.MEDICATION_CONFLICT,
        severity=AlertSeverity.CAUTION,
        message="Interacting medication mentioned.",
        source="FDA Drug Interaction Database",
        requirement=ContextRequirement.MEDICATION_INTERACTION,
    ),
)
