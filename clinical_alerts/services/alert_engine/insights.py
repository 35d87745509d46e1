"""
Insight Service - Clinician-facing insight cards and alert filtering.

Insight cards summarize risk patterns in a transcript with recommendations:
- Uncontrolled diabetes (glucose above the warning value)
- Hypertension despite active beta-blocker therapy

Alert filtering applies a severity threshold and, for medication conflicts,
requires an active medication to be named in the alert excerpt.
"""

import json
import logging
from datetime import datetime, timezone
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Callable, Dict, Any, List, Optional

from clinical_alerts.config import settings
from clinical_alerts.schemas.patient_context import PatientContext, MedicationStatus

from .config_service import AlertEngineConfig
from .context_evaluator import extract_blood_pressure_readings, extract_labeled_values
from .models import Alert, AlertPriority, AlertType, new_alert_id

logger = logging.getLogger(__name__)


class InsightRiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class InsightCategory(str, Enum):
    MEDICATION = "medication"
    VITALS = "vitals"
    DIAGNOSIS = "diagnosis"
    CONTRAINDICATION = "contraindication"


RISK_ORDER = [InsightRiskLevel.LOW, InsightRiskLevel.MODERATE, InsightRiskLevel.HIGH, InsightRiskLevel.CRITICAL]

# Alerts are ranked on the same scale as insight cards for threshold filtering
PRIORITY_TO_RISK = {
    AlertPriority.INFO: InsightRiskLevel.LOW,
    AlertPriority.WARNING: InsightRiskLevel.MODERATE,
    AlertPriority.CRITICAL: InsightRiskLevel.CRITICAL,
}


@dataclass
class InsightSource:
    name: str
    type: str
    url: Optional[str] = None


@dataclass
class InsightCard:
    """Summarized risk pattern with recommendations"""
    id: str
    title: str
    summary: str
    risk_level: InsightRiskLevel
    category: InsightCategory
    source: InsightSource
    triggers: List[str]
    context: str
    recommendations: List[str]
    timestamp: datetime
    confidence: float
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level.value
        data["category"] = self.category.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class AlertFilterCriteria:
    severity_threshold: InsightRiskLevel = InsightRiskLevel.MODERATE
    medication_categories: List[str] = field(
        default_factory=lambda: ["anticoagulants", "beta-blockers", "ace-inhibitors"]
    )
    require_active_medications: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity_threshold"] = self.severity_threshold.value
        return data


class InsightService:
    """Generates and manages insight cards for one session"""

    DIABETES_CONFIDENCE = 0.85
    BETA_BLOCKER_CONFIDENCE = 0.78

    # Stage 1 hypertension cut-offs used for the beta-blocker insight
    INSIGHT_SYSTOLIC_LIMIT = 140
    INSIGHT_DIASTOLIC_LIMIT = 90

    def __init__(
        self,
        config: Optional[AlertEngineConfig] = None,
        criteria: Optional[AlertFilterCriteria] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or AlertEngineConfig.from_settings(settings)
        self.criteria = criteria or AlertFilterCriteria()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._cards: List[InsightCard] = []

    def generate_insight_cards(self, transcript: str, patient_context: PatientContext) -> List[InsightCard]:
        if not transcript or not transcript.strip():
            return []

        new_cards = []
        card = self._diabetes_insight(transcript)
        if card:
            new_cards.append(card)
        card = self._beta_blocker_insight(transcript, patient_context)
        if card:
            new_cards.append(card)

        self._cards.extend(new_cards)
        if new_cards:
            logger.info(f"Generated {len(new_cards)} insight card(s)")
        return new_cards

    def _diabetes_insight(self, transcript: str) -> Optional[InsightCard]:
        lowered = transcript.lower()
        if not any(term in lowered for term in ("glucose", "blood sugar", "diabetes")):
            return None

        threshold = self.config.get_threshold("glucose")
        values = [
            v for v in extract_labeled_values(transcript, threshold.labels)
            if threshold.is_plausible(v)
        ]
        if not any(v > threshold.warning_value for v in values):
            return None

        return InsightCard(
            id=f"insight-{new_alert_id()}",
            title="Uncontrolled Diabetes Detected",
            summary=(
                "Elevated glucose levels indicate potential diabetes management "
                "issues requiring immediate attention."
            ),
            risk_level=InsightRiskLevel.HIGH,
            category=InsightCategory.DIAGNOSIS,
            source=InsightSource(
                name="ADA Clinical Guidelines",
                type="guideline",
                url="https://diabetesjournals.org/care",
            ),
            triggers=["elevated glucose", "diabetes mention"],
            context=transcript[:200],
            recommendations=[
                "Review current diabetes medications",
                "Consider insulin adjustment",
                "Schedule endocrinology consultation",
            ],
            timestamp=self.clock(),
            confidence=self.DIABETES_CONFIDENCE,
        )

    def _beta_blocker_insight(self, transcript: str, context: PatientContext) -> Optional[InsightCard]:
        lowered = transcript.lower()
        if "blood pressure" not in lowered and "hypertension" not in lowered:
            return None

        beta_blockers = [
            med for med in context.active_medications
            if med.status == MedicationStatus.ACTIVE
            and "beta" in med.category.lower() and "blocker" in med.category.lower()
        ]
        if not beta_blockers:
            return None

        readings = extract_blood_pressure_readings(
            transcript,
            self.config.get_threshold("blood_pressure_systolic"),
            self.config.get_threshold("blood_pressure_diastolic"),
        )
        elevated = any(
            s > self.INSIGHT_SYSTOLIC_LIMIT or d > self.INSIGHT_DIASTOLIC_LIMIT
            for s, d, _ in readings
        )
        if not elevated:
            return None

        return InsightCard(
            id=f"insight-{new_alert_id()}",
            title="Hypertension Despite Beta-Blocker Therapy",
            summary=(
                "Patient shows elevated BP readings while on active beta-blocker "
                "therapy, suggesting need for medication adjustment."
            ),
            risk_level=InsightRiskLevel.MODERATE,
            category=InsightCategory.MEDICATION,
            source=InsightSource(
                name="AHA/ACC Hypertension Guidelines",
                type="guideline",
                url="https://www.ahajournals.org/doi/10.1161/HYP.0000000000000065",
            ),
            triggers=["elevated BP", "active beta-blocker"],
            context=transcript[:200],
            recommendations=[
                "Consider beta-blocker dose adjustment",
                "Evaluate medication adherence",
                "Add ACE inhibitor if not contraindicated",
            ],
            timestamp=self.clock(),
            confidence=self.BETA_BLOCKER_CONFIDENCE,
        )

    def get_insight_cards(
        self,
        category: Optional[InsightCategory] = None,
        risk_level: Optional[InsightRiskLevel] = None
    ) -> List[InsightCard]:
        """Active cards, newest first"""
        cards = [c for c in self._cards if c.is_active]
        if category is not None:
            cards = [c for c in cards if c.category == category]
        if risk_level is not None:
            cards = [c for c in cards if c.risk_level == risk_level]
        return sorted(cards, key=lambda c: c.timestamp, reverse=True)

    def dismiss_insight_card(self, card_id: str) -> bool:
        for card in self._cards:
            if card.id == card_id:
                card.is_active = False
                return True
        logger.warning(f"Cannot dismiss unknown insight card: {card_id}")
        return False

    def filter_alerts(
        self,
        alerts: List[Alert],
        patient_context: PatientContext,
        criteria: Optional[AlertFilterCriteria] = None
    ) -> List[Alert]:
        criteria = criteria or self.criteria
        threshold_index = RISK_ORDER.index(criteria.severity_threshold)
        active_names = [
            med.name.lower() for med in patient_context.active_medications
            if med.status == MedicationStatus.ACTIVE
        ]

        filtered = []
        for alert in alerts:
            if RISK_ORDER.index(PRIORITY_TO_RISK[alert.priority]) < threshold_index:
                continue
            if criteria.require_active_medications and alert.alert_type == AlertType.MEDICATION_CONFLICT:
                excerpt = alert.context.lower()
                if not any(name in excerpt for name in active_names):
                    continue
            filtered.append(alert)
        return filtered

    def export_insights(self) -> str:
        return json.dumps({
            "filterCriteria": self.criteria.to_dict(),
            "insightCards": [c.to_dict() for c in self._cards],
        }, indent=2)
