"""
Suppression Rule Evaluator - Withholds alerts the patient context invalidates.

Built-in rules:
1. resolved_condition: a corroborating condition is recorded as resolved
2. inactive_medication: a medication conflict names a medication that is not active

Suppressed alerts keep their suppression records and stay in the audit store;
they are only excluded from the active view. Further rules are predicates
over (alert, patient_context) returning a reason or None.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from clinical_alerts.schemas.patient_context import (
    PatientContext,
    ClinicalStatus,
    MedicationStatus,
)

from .models import Alert, AlertType, SuppressionRecord

logger = logging.getLogger(__name__)

SuppressionPredicate = Callable[[Alert, PatientContext], Optional[str]]


@dataclass(frozen=True)
class SuppressionRule:
    condition: str
    predicate: SuppressionPredicate


def resolved_condition(alert: Alert, context: PatientContext) -> Optional[str]:
    factors = alert.contextual_factors
    if not factors or not factors.active_conditions:
        return None
    named = {c.lower() for c in factors.active_conditions}
    for condition in context.active_conditions:
        if condition.clinical_status == ClinicalStatus.RESOLVED and condition.display.lower() in named:
            return f"Alert suppressed due to resolved clinical condition: {condition.display}"
    return None


def inactive_medication(alert: Alert, context: PatientContext) -> Optional[str]:
    if alert.alert_type != AlertType.MEDICATION_CONFLICT:
        return None
    factors = alert.contextual_factors
    if not factors or not factors.active_medications:
        return None
    named = {m.lower() for m in factors.active_medications}
    for med in context.active_medications:
        if med.status != MedicationStatus.ACTIVE and med.name.lower() in named:
            return f"Alert suppressed due to {med.status.value} medication status: {med.name}"
    return None


DEFAULT_SUPPRESSION_RULES = (
    SuppressionRule(condition="resolved_condition", predicate=resolved_condition),
    SuppressionRule(condition="inactive_medication", predicate=inactive_medication),
)


class SuppressionEvaluator:
    """Applies suppression rules in registration order"""

    def __init__(self, rules: Optional[Iterable[SuppressionRule]] = None):
        self.rules: List[SuppressionRule] = list(
            DEFAULT_SUPPRESSION_RULES if rules is None else rules
        )

    def register(self, rule: SuppressionRule) -> None:
        self.rules.append(rule)

    def evaluate(self, alert: Alert, context: PatientContext) -> List[SuppressionRecord]:
        """All suppression records that apply to the alert"""
        records = []
        for rule in self.rules:
            reason = rule.predicate(alert, context)
            if reason:
                records.append(SuppressionRecord(condition=rule.condition, reason=reason))
        return records

    def suppress(self, alerts: Iterable[Alert], context: PatientContext) -> List[Alert]:
        """
        Return the alerts that survive suppression. Suppressed alerts are
        annotated in place with their suppression records.
        """
        kept = []
        for alert in alerts:
            records = self.evaluate(alert, context)
            if records:
                alert.suppression_rules = records
                logger.info(
                    f"Suppressed alert {alert.id} ({alert.alert_type.value}): "
                    f"{', '.join(r.condition for r in records)}"
                )
                continue
            kept.append(alert)
        return kept
