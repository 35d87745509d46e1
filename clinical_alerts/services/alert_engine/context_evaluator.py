"""
Context Evaluator - Corroborates candidate alerts against patient context.

Rules:
1. Blood Pressure: requires an active hypertension diagnosis; systolic/diastolic thresholds
2. Heart Rate: threshold-gated, no diagnosis requirement
3. Uncontrolled Diabetes: requires an active diabetes diagnosis; glucose above the warning value
4. Drug Interaction: both drugs active and prescribed within the lookback window
5. Context-free rules (sepsis, allergy, contraindication, dosage) pass through at a fixed risk score

Numeric values are extracted from the full transcript, not from the candidate excerpt.
Readings that fail to parse or fall outside plausible bounds are skipped.
"""

import re
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from clinical_alerts.config import settings
from clinical_alerts.schemas.patient_context import (
    PatientContext,
    Medication,
    MedicationStatus,
)

from .config_service import AlertEngineConfig, DrugInteraction, VitalThreshold
from .models import (
    Alert,
    AlertOrigin,
    AlertPriority,
    AlertSeverity,
    AlertType,
    ContextRequirement,
    ContextualFactors,
    new_alert_id,
)
from .text_scanner import CandidateAlert, extract_context

logger = logging.getLogger(__name__)

BLOOD_PRESSURE_PATTERN = re.compile(r"(\d{2,3})\s*/\s*(\d{2,3})")

PRIORITY_RANK = {
    AlertPriority.INFO: 0,
    AlertPriority.WARNING: 1,
    AlertPriority.CRITICAL: 2,
}


def extract_labeled_values(text: str, labels: List[str]) -> List[float]:
    """Numbers following each label, e.g. 'glucose of 250' -> 250.0"""
    values = []
    lowered = text.lower()
    for label in labels:
        # the value must follow the label within the same sentence
        pattern = re.compile(rf"{re.escape(label.lower())}[^\d.!?]*([\d.]+)")
        for match in pattern.finditer(lowered):
            try:
                values.append(float(match.group(1)))
            except ValueError:
                logger.debug(f"Skipping unparseable value for '{label}': {match.group(1)!r}")
    return values


def extract_blood_pressure_readings(
    text: str,
    systolic: VitalThreshold,
    diastolic: VitalThreshold
) -> List[Tuple[int, int, str]]:
    """Plausible (systolic, diastolic, matched text) readings in order of appearance"""
    readings = []
    for match in BLOOD_PRESSURE_PATTERN.finditer(text):
        sys_value = int(match.group(1))
        dia_value = int(match.group(2))
        if not (systolic.is_plausible(sys_value) and diastolic.is_plausible(dia_value)):
            logger.debug(f"Discarding implausible blood pressure reading: {match.group(0)}")
            continue
        readings.append((sys_value, dia_value, match.group(0)))
    return readings


def _format_value(value: float) -> str:
    return f"{value:g}"


def _worst_priority(*priorities: Optional[AlertPriority]) -> Optional[AlertPriority]:
    present = [p for p in priorities if p is not None]
    if not present:
        return None
    return max(present, key=lambda p: PRIORITY_RANK[p])


class ContextEvaluator:
    """Turns candidates into scored alerts, dropping those the context does not support"""

    def __init__(
        self,
        config: Optional[AlertEngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or AlertEngineConfig.from_settings(settings)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._handlers: Dict[ContextRequirement, Callable] = {
            ContextRequirement.NONE: self._pass_through,
            ContextRequirement.BLOOD_PRESSURE: self._evaluate_blood_pressure,
            ContextRequirement.HEART_RATE: self._evaluate_heart_rate,
            ContextRequirement.GLUCOSE: self._evaluate_glucose,
            ContextRequirement.MEDICATION_INTERACTION: self._evaluate_interactions,
        }

    def evaluate(
        self,
        candidates: List[CandidateAlert],
        transcript: str,
        patient_context: PatientContext
    ) -> List[Alert]:
        alerts: List[Alert] = []
        for candidate in candidates:
            handler = self._handlers[candidate.requirement]
            produced = handler(candidate, transcript, patient_context)
            if not produced and candidate.requirement != ContextRequirement.NONE:
                logger.debug(
                    f"Dropped {candidate.requirement.value} candidate "
                    f"'{candidate.detected_phrase}': context not met"
                )
            alerts.extend(produced)
        return alerts

    # === CONTEXT-FREE RULES ===

    def _pass_through(
        self,
        candidate: CandidateAlert,
        transcript: str,
        context: PatientContext
    ) -> List[Alert]:
        """Keyword rules with no context requirement keep their nominal severity"""
        priority = (
            AlertPriority.CRITICAL
            if candidate.severity == AlertSeverity.CRITICAL
            else AlertPriority.WARNING
        )

        # Record medications named in the excerpt so suppression can see them
        excerpt = candidate.context.lower()
        mentioned = [
            med.name.lower() for med in context.active_medications
            if med.name.lower() in excerpt
        ]
        factors = ContextualFactors(active_medications=mentioned) if mentioned else None

        return [Alert(
            id=new_alert_id(),
            alert_type=candidate.alert_type,
            severity=candidate.severity,
            priority=priority,
            message=candidate.message,
            source=candidate.source,
            source_url=candidate.source_url,
            detected_phrase=candidate.detected_phrase,
            timestamp=self.clock(),
            context=candidate.context,
            contextual_factors=factors,
            risk_score=self.config.default_risk_score(candidate.severity),
            action_required=priority == AlertPriority.CRITICAL,
            origin=AlertOrigin.KEYWORD,
        )]

    # === VITAL SIGN RULES ===

    def _vital_alert(
        self,
        candidate: CandidateAlert,
        priority: AlertPriority,
        message: str,
        detected_phrase: str,
        context_excerpt: str,
        factors: ContextualFactors
    ) -> Alert:
        severity = AlertSeverity.CRITICAL if priority == AlertPriority.CRITICAL else AlertSeverity.CAUTION
        return Alert(
            id=new_alert_id(),
            alert_type=candidate.alert_type,
            severity=severity,
            priority=priority,
            message=message,
            source=candidate.source,
            source_url=candidate.source_url,
            detected_phrase=detected_phrase,
            timestamp=self.clock(),
            context=context_excerpt,
            contextual_factors=factors,
            risk_score=self.config.risk_score_for_priority(priority),
            action_required=priority == AlertPriority.CRITICAL,
            origin=AlertOrigin.CONTEXTUAL,
        )

    def _evaluate_blood_pressure(
        self,
        candidate: CandidateAlert,
        transcript: str,
        context: PatientContext
    ) -> List[Alert]:
        """Rule 1: elevated BP is only alert-worthy in a patient with active hypertension"""
        systolic = self.config.get_threshold("blood_pressure_systolic")
        diastolic = self.config.get_threshold("blood_pressure_diastolic")
        condition_keyword = systolic.condition_keyword or "hypertension"

        if not context.has_active_condition(condition_keyword):
            return []

        alerts = []
        seen = set()
        trends = [v.model_dump(mode="json") for v in context.vitals_for("blood_pressure")]

        for sys_value, dia_value, raw in extract_blood_pressure_readings(transcript, systolic, diastolic):
            reading = f"{sys_value}/{dia_value}"
            if reading in seen:
                continue
            seen.add(reading)

            priority = _worst_priority(systolic.classify(sys_value), diastolic.classify(dia_value))
            if priority is None:
                continue

            alerts.append(self._vital_alert(
                candidate,
                priority=priority,
                message=f"Elevated blood pressure ({reading}) detected in hypertensive patient",
                detected_phrase=reading,
                context_excerpt=extract_context(transcript, raw, self.config.context_fallback_chars),
                factors=ContextualFactors(
                    active_conditions=[condition_keyword],
                    vital_trends=trends,
                ),
            ))
        return alerts

    def _evaluate_heart_rate(
        self,
        candidate: CandidateAlert,
        transcript: str,
        context: PatientContext
    ) -> List[Alert]:
        """Rule 2: tachycardia by threshold"""
        threshold = self.config.get_threshold("heart_rate")
        if threshold.condition_keyword and not context.has_active_condition(threshold.condition_keyword):
            return []

        alerts = []
        seen = set()
        trends = [v.model_dump(mode="json") for v in context.vitals_for("heart_rate")]

        for value in extract_labeled_values(transcript, threshold.labels):
            if not threshold.is_plausible(value):
                logger.debug(f"Discarding implausible heart rate: {value}")
                continue
            priority = threshold.classify(value)
            if priority is None or value in seen:
                continue
            seen.add(value)

            phrase = f"heart rate {_format_value(value)}"
            alerts.append(self._vital_alert(
                candidate,
                priority=priority,
                message=f"Tachycardia detected: heart rate {_format_value(value)} bpm",
                detected_phrase=phrase,
                context_excerpt=extract_context(
                    transcript, candidate.detected_phrase, self.config.context_fallback_chars
                ),
                factors=ContextualFactors(
                    active_conditions=[threshold.condition_keyword] if threshold.condition_keyword else [],
                    vital_trends=trends,
                ),
            ))
        return alerts

    # === DIAGNOSIS RULES ===

    def _evaluate_glucose(
        self,
        candidate: CandidateAlert,
        transcript: str,
        context: PatientContext
    ) -> List[Alert]:
        """Rule 3: uncontrolled diabetes, gated on an active diabetes diagnosis"""
        threshold = self.config.get_threshold("glucose")
        condition_keyword = threshold.condition_keyword or "diabetes"

        if not context.has_active_condition(condition_keyword):
            return []

        elevated = [
            value for value in extract_labeled_values(transcript, threshold.labels)
            if threshold.is_plausible(value) and value > threshold.warning_value
        ]
        if not elevated:
            return []

        value = _format_value(elevated[0])
        return [Alert(
            id=new_alert_id(),
            alert_type=AlertType.CONTRAINDICATION,
            severity=AlertSeverity.CRITICAL,
            priority=AlertPriority.CRITICAL,
            message=f"Uncontrolled diabetes detected: Glucose {value}mg/dL",
            source=candidate.source,
            source_url=candidate.source_url,
            detected_phrase=f"glucose {value}",
            timestamp=self.clock(),
            context=extract_context(transcript, candidate.detected_phrase, self.config.context_fallback_chars),
            contextual_factors=ContextualFactors(
                active_conditions=[condition_keyword],
                vital_trends=[v.model_dump(mode="json") for v in context.vitals_for("glucose")],
            ),
            risk_score=self.config.diagnosis_risk_score,
            action_required=True,
            origin=AlertOrigin.CONTEXTUAL,
        )]

    # === MEDICATION RULES ===

    def _recent_active_medications(self, context: PatientContext) -> List[Medication]:
        """Active medications prescribed within the lookback window"""
        now = self.clock()
        lookback = self.config.medication_lookback_days
        return [
            med for med in context.active_medications
            if med.status == MedicationStatus.ACTIVE
            and med.prescribed_days_ago(now) <= lookback
        ]

    def _evaluate_interactions(
        self,
        candidate: CandidateAlert,
        transcript: str,
        context: PatientContext
    ) -> List[Alert]:
        """Rule 4: interacting pairs among recent active medications"""
        recent = self._recent_active_medications(context)
        if len(recent) < 2:
            return []

        lowered = transcript.lower()
        alerts = []
        for interaction in self.config.drug_interactions:
            alert = self._check_interaction(interaction, candidate, transcript, lowered, recent)
            if alert:
                alerts.append(alert)
        return alerts

    def _check_interaction(
        self,
        interaction: DrugInteraction,
        candidate: CandidateAlert,
        transcript: str,
        lowered: str,
        recent: List[Medication]
    ) -> Optional[Alert]:
        first = next((m for m in recent if interaction.matches_first(m.name, m.category)), None)
        second = next(
            (m for m in recent if m is not first and interaction.matches_second(m.name, m.category)),
            None
        )
        if first is None or second is None:
            return None

        first_name = first.name.lower()
        second_name = second.name.lower()
        if not (interaction.mentioned_in(lowered) or first_name in lowered or second_name in lowered):
            return None

        priority = interaction.priority
        severity = AlertSeverity.CRITICAL if priority == AlertPriority.CRITICAL else AlertSeverity.CAUTION
        label = "Critical" if priority == AlertPriority.CRITICAL else "Potential"
        mention = next(
            (term for term in (first_name, second_name) if term in lowered),
            candidate.detected_phrase
        )

        logger.info(f"Drug interaction corroborated: {interaction.key} ({priority.value})")
        return Alert(
            id=new_alert_id(),
            alert_type=AlertType.MEDICATION_CONFLICT,
            severity=severity,
            priority=priority,
            message=(
                f"{label} drug interaction: {first.name.title()} + {second.name.title()} "
                f"({interaction.description})"
            ),
            source=interaction.source,
            detected_phrase=f"{first_name} + {second_name}",
            timestamp=self.clock(),
            context=extract_context(transcript, mention, self.config.context_fallback_chars),
            contextual_factors=ContextualFactors(
                active_medications=[first_name, second_name],
                timeframe=f"last {self.config.medication_lookback_days} days",
            ),
            risk_score=self.config.interaction_risk_score(priority),
            action_required=priority == AlertPriority.CRITICAL,
            origin=AlertOrigin.CONTEXTUAL,
        )
