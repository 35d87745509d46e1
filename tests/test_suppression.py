"""
Tests for duplicate suppression and context-based suppression rules.
"""

import pytest
from datetime import timedelta

from clinical_alerts.schemas.patient_context import (
    PatientContext,
    Medication,
    Condition,
    MedicationStatus,
    ClinicalStatus,
)
from clinical_alerts.services.alert_engine import (
    Alert,
    AlertDeduplicator,
    AlertType,
    AlertSeverity,
    AlertPriority,
    AlertOrigin,
    ContextualFactors,
    SuppressionEvaluator,
    SuppressionRule,
)

from conftest import NOW


def make_alert(
    alert_type=AlertType.SEPSIS,
    phrase="sepsis",
    timestamp=NOW,
    factors=None,
    alert_id="alert-1",
):
    return Alert(
        id=alert_id,
        alert_type=alert_type,
        severity=AlertSeverity.CRITICAL,
        priority=AlertPriority.CRITICAL,
        message="test alert",
        source="test",
        detected_phrase=phrase,
        timestamp=timestamp,
        context="context",
        risk_score=0.9,
        action_required=True,
        origin=AlertOrigin.CONTEXTUAL if factors else AlertOrigin.KEYWORD,
        contextual_factors=factors,
    )


class TestDeduplicator:
    """Same (type, phrase) within 30 seconds is a duplicate"""

    def test_same_pair_inside_window_is_duplicate(self):
        dedup = AlertDeduplicator(30)
        first = make_alert()
        second = make_alert(alert_id="alert-2", timestamp=NOW + timedelta(seconds=29))
        assert dedup.should_emit(second, [first]) is False

    def test_window_is_exclusive(self):
        dedup = AlertDeduplicator(30)
        first = make_alert()
        second = make_alert(alert_id="alert-2", timestamp=NOW + timedelta(seconds=30))
        assert dedup.should_emit(second, [first]) is True

    def test_window_is_symmetric(self):
        dedup = AlertDeduplicator(30)
        later = make_alert(timestamp=NOW + timedelta(seconds=10))
        earlier = make_alert(alert_id="alert-2")
        assert dedup.is_duplicate(earlier, later) is True

    def test_different_phrase_is_not_duplicate(self):
        dedup = AlertDeduplicator(30)
        first = make_alert()
        second = make_alert(alert_id="alert-2", phrase="septic shock")
        assert dedup.should_emit(second, [first]) is True

    def test_different_type_is_not_duplicate(self):
        dedup = AlertDeduplicator(30)
        first = make_alert()
        second = make_alert(alert_id="alert-2", alert_type=AlertType.ALLERGY)
        assert dedup.should_emit(second, [first]) is True

    def test_empty_history_always_emits(self):
        assert AlertDeduplicator().should_emit(make_alert(), []) is True


class TestResolvedConditionRule:
    """Rule 1: resolved corroborating condition"""

    def test_resolved_condition_suppresses(self):
        context = PatientContext(active_conditions=[
            Condition(code="I10", display="Hypertension", clinical_status=ClinicalStatus.RESOLVED),
        ])
        alert = make_alert(factors=ContextualFactors(active_conditions=["hypertension"]))

        kept = SuppressionEvaluator().suppress([alert], context)

        assert kept == []
        assert alert.is_suppressed
        assert alert.suppression_rules[0].condition == "resolved_condition"
        assert "resolved clinical condition" in alert.suppression_rules[0].reason

    def test_active_condition_keeps_alert(self, hypertensive_context):
        alert = make_alert(factors=ContextualFactors(active_conditions=["hypertension"]))
        assert SuppressionEvaluator().suppress([alert], hypertensive_context) == [alert]
        assert alert.suppression_rules == []

    def test_alert_without_factors_is_untouched(self, empty_context):
        alert = make_alert()
        assert SuppressionEvaluator().suppress([alert], empty_context) == [alert]


class TestInactiveMedicationRule:
    """Rule 2: medication conflicts naming a non-active medication"""

    def _context(self, status):
        return PatientContext(active_medications=[
            Medication(name="Aspirin", status=status, prescribed_date=NOW - timedelta(days=3)),
        ])

    @pytest.mark.parametrize("status", [MedicationStatus.INACTIVE, MedicationStatus.SUSPENDED])
    def test_non_active_medication_suppresses(self, status):
        alert = make_alert(
            alert_type=AlertType.MEDICATION_CONFLICT,
            phrase="warfarin + aspirin",
            factors=ContextualFactors(active_medications=["warfarin", "aspirin"]),
        )
        kept = SuppressionEvaluator().suppress([alert], self._context(status))

        assert kept == []
        assert alert.suppression_rules[0].condition == "inactive_medication"

    def test_active_medication_keeps_alert(self):
        alert = make_alert(
            alert_type=AlertType.MEDICATION_CONFLICT,
            factors=ContextualFactors(active_medications=["aspirin"]),
        )
        assert SuppressionEvaluator().suppress([alert], self._context(MedicationStatus.ACTIVE)) == [alert]

    def test_rule_only_applies_to_medication_conflicts(self):
        alert = make_alert(
            alert_type=AlertType.ALLERGY,
            factors=ContextualFactors(active_medications=["aspirin"]),
        )
        assert SuppressionEvaluator().suppress([alert], self._context(MedicationStatus.INACTIVE)) == [alert]


class TestExtensibleRules:
    """Custom predicates register alongside the built-in rules"""

    def test_custom_rule_suppresses(self, empty_context):
        evaluator = SuppressionEvaluator()
        evaluator.register(SuppressionRule(
            condition="comfort_care",
            predicate=lambda alert, ctx: "Comfort care only" if alert.alert_type == AlertType.SEPSIS else None,
        ))
        alert = make_alert()

        assert evaluator.suppress([alert], empty_context) == []
        assert alert.suppression_rules[0].condition == "comfort_care"

    def test_all_matching_rules_are_recorded(self):
        context = PatientContext(
            active_conditions=[
                Condition(code="I10", display="Hypertension", clinical_status=ClinicalStatus.RESOLVED),
            ],
            active_medications=[
                Medication(name="Lisinopril", status=MedicationStatus.INACTIVE, prescribed_date=NOW),
            ],
        )
        alert = make_alert(
            alert_type=AlertType.MEDICATION_CONFLICT,
            factors=ContextualFactors(
                active_medications=["lisinopril"],
                active_conditions=["hypertension"],
            ),
        )
        SuppressionEvaluator().suppress([alert], context)
        assert [r.condition for r in alert.suppression_rules] == ["resolved_condition", "inactive_medication"]

    def test_empty_rule_set_keeps_everything(self, empty_context):
        alert = make_alert()
        assert SuppressionEvaluator(rules=[]).suppress([alert], empty_context) == [alert]
