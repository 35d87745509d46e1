"""
Patient Context Schemas
Pydantic models for the clinical context snapshot a caller supplies with each transcript
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum


class MedicationStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ClinicalStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    INACTIVE = "inactive"


class VitalTrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class AllergySeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class ContextModel(BaseModel):
    """Accepts camelCase or snake_case keys; instances are read-only"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Medication(ContextModel):
    """Medication on the patient's current list"""
    name: str
    status: MedicationStatus = MedicationStatus.ACTIVE
    category: str = ""
    prescribed_date: datetime

    def prescribed_days_ago(self, now: datetime) -> float:
        prescribed = self.prescribed_date
        if prescribed.tzinfo is None:
            prescribed = prescribed.replace(tzinfo=timezone.utc)
        return (now - prescribed).total_seconds() / 86400.0


class Condition(ContextModel):
    """Coded diagnosis with its clinical status"""
    code: str
    display: str
    clinical_status: ClinicalStatus = ClinicalStatus.ACTIVE
    onset_date: Optional[datetime] = None


class VitalTrend(ContextModel):
    """Recent vital sign reading"""
    parameter: str
    value: float
    timestamp: datetime
    trend: VitalTrendDirection = VitalTrendDirection.STABLE


class Allergy(ContextModel):
    substance: str
    severity: AllergySeverity = AllergySeverity.MODERATE


class PatientContext(ContextModel):
    """Snapshot of medications, conditions, vitals and allergies for one analysis call"""
    active_medications: List[Medication] = Field(default_factory=list)
    active_conditions: List[Condition] = Field(default_factory=list)
    recent_vitals: List[VitalTrend] = Field(default_factory=list)
    allergies: List[Allergy] = Field(default_factory=list)

    def conditions_matching(
        self,
        keyword: str,
        status: ClinicalStatus = ClinicalStatus.ACTIVE
    ) -> List[Condition]:
        """Conditions whose display names contain keyword and carry the given status"""
        needle = keyword.lower()
        return [
            c for c in self.active_conditions
            if needle in c.display.lower() and c.clinical_status == status
        ]

    def has_active_condition(self, keyword: str) -> bool:
        return bool(self.conditions_matching(keyword, ClinicalStatus.ACTIVE))

    def vitals_for(self, fragment: str) -> List[VitalTrend]:
        return [v for v in self.recent_vitals if fragment in v.parameter]
