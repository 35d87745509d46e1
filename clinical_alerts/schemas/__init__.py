from .patient_context import (
    PatientContext,
    Medication,
    Condition,
    VitalTrend,
    Allergy,
    MedicationStatus,
    ClinicalStatus,
    VitalTrendDirection,
    AllergySeverity,
)

__all__ = [
    'PatientContext',
    'Medication',
    'Condition',
    'VitalTrend',
    'Allergy',
    'MedicationStatus',
    'ClinicalStatus',
    'VitalTrendDirection',
    'AllergySeverity',
]
