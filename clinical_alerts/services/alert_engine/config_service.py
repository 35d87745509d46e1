"""
Alert Engine Configuration Service - Thresholds, risk scores and interaction tables.

Provides centralized configuration for:
- Per-parameter critical/warning thresholds and plausibility bounds
- Risk score mapping by priority and rule family
- Duplicate suppression window
- Medication lookback window for interaction checks
- Drug interaction matrix
"""

import logging
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict

from clinical_alerts.config import settings

from .models import AlertPriority, AlertSeverity

logger = logging.getLogger(__name__)


ANTICOAGULANT_TERMS = ["warfarin", "coumadin"]
ASPIRIN_TERMS = ["aspirin", "acetylsalicylic"]
ACE_INHIBITOR_TERMS = ["lisinopril", "ramipril", "enalapril", "perindopril", "captopril"]
POTASSIUM_TERMS = ["potassium chloride", "potassium citrate", "k-dur", "klor-con"]
BETA_BLOCKER_TERMS = ["metoprolol", "bisoprolol", "carvedilol", "atenolol", "propranolol", "nebivolol"]
CALCIUM_CHANNEL_TERMS = ["verapamil", "diltiazem"]


def _normalize_label(value: str) -> str:
    return value.lower().replace("_", " ").replace("-", " ").strip()


@dataclass
class VitalThreshold:
    """Threshold policy for a single measured parameter"""
    parameter: str
    critical_value: float
    warning_value: float
    labels: List[str] = field(default_factory=list)
    condition_keyword: Optional[str] = None
    plausible_min: Optional[float] = None
    plausible_max: Optional[float] = None

    def is_plausible(self, value: float) -> bool:
        """Bounds are exclusive; readings on or outside them are discarded"""
        if self.plausible_min is not None and value <= self.plausible_min:
            return False
        if self.plausible_max is not None and value >= self.plausible_max:
            return False
        return True

    def classify(self, value: float) -> Optional[AlertPriority]:
        if value >= self.critical_value:
            return AlertPriority.CRITICAL
        if value >= self.warning_value:
            return AlertPriority.WARNING
        return None


@dataclass
class DrugInteraction:
    """Pair of medication classes that must not be co-prescribed unreviewed"""
    key: str
    first_class: str
    first_terms: List[str]
    second_class: str
    second_terms: List[str]
    priority: AlertPriority
    description: str
    source: str = "FDA Drug Interaction Database"

    @staticmethod
    def _matches(terms: List[str], class_label: str, name: str, category: str) -> bool:
        lowered = name.lower()
        if any(term in lowered for term in terms):
            return True
        return bool(category) and _normalize_label(class_label) in _normalize_label(category)

    def matches_first(self, name: str, category: str = "") -> bool:
        return self._matches(self.first_terms, self.first_class, name, category)

    def matches_second(self, name: str, category: str = "") -> bool:
        return self._matches(self.second_terms, self.second_class, name, category)

    def mentioned_in(self, lowered_text: str) -> bool:
        return any(term in lowered_text for term in self.first_terms + self.second_terms)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["priority"] = self.priority.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DrugInteraction':
        data = dict(data)
        data["priority"] = AlertPriority(data["priority"])
        return cls(**data)


@dataclass
class AlertEngineConfig:
    """Complete Alert Engine configuration"""

    # Duplicate (type, phrase) suppression
    dedup_window_seconds: float = 30.0

    # Interaction checks only consider recent prescriptions
    medication_lookback_days: int = 30

    # Transcript handling
    max_transcript_chars: int = 20000
    context_fallback_chars: int = 100

    # Risk scores by priority for threshold-gated readings
    critical_risk_score: float = 0.9
    warning_risk_score: float = 0.7

    # Risk scores for rules that pass through without context
    keyword_critical_risk_score: float = 0.9
    keyword_caution_risk_score: float = 0.6

    # Diagnosis-gated rules (uncontrolled diabetes)
    diagnosis_risk_score: float = 0.85

    # Drug interactions by interaction priority
    interaction_critical_risk_score: float = 0.95
    interaction_warning_risk_score: float = 0.7

    vital_thresholds: Dict[str, VitalThreshold] = field(default_factory=dict)
    drug_interactions: List[DrugInteraction] = field(default_factory=list)

    def __post_init__(self):
        """Initialize default threshold and interaction tables"""
        if not self.vital_thresholds:
            self.vital_thresholds = {
                "blood_pressure_systolic": VitalThreshold(
                    parameter="blood_pressure_systolic",
                    critical_value=180,
                    warning_value=160,
                    condition_keyword="hypertension",
                    plausible_min=70,
                    plausible_max=250
                ),
                "blood_pressure_diastolic": VitalThreshold(
                    parameter="blood_pressure_diastolic",
                    critical_value=110,
                    warning_value=100,
                    condition_keyword="hypertension",
                    plausible_min=40,
                    plausible_max=150
                ),
                "heart_rate": VitalThreshold(
                    parameter="heart_rate",
                    critical_value=120,
                    warning_value=100,
                    labels=["heart rate", "pulse"],
                    plausible_min=20,
                    plausible_max=300
                ),
                # warning_value gates the uncontrolled-diabetes rule
                "glucose": VitalThreshold(
                    parameter="glucose",
                    critical_value=250,
                    warning_value=180,
                    labels=["glucose", "blood sugar"],
                    condition_keyword="diabetes",
                    plausible_min=20,
                    plausible_max=1000
                ),
            }
        if not self.drug_interactions:
            self.drug_interactions = [
                DrugInteraction(
                    key="warfarin_aspirin",
                    first_class="anticoagulant",
                    first_terms=list(ANTICOAGULANT_TERMS),
                    second_class="aspirin",
                    second_terms=list(ASPIRIN_TERMS),
                    priority=AlertPriority.CRITICAL,
                    description="Increased bleeding risk"
                ),
                DrugInteraction(
                    key="ace_inhibitor_potassium",
                    first_class="ace inhibitor",
                    first_terms=list(ACE_INHIBITOR_TERMS),
                    second_class="potassium supplement",
                    second_terms=list(POTASSIUM_TERMS),
                    priority=AlertPriority.WARNING,
                    description="Hyperkalemia risk"
                ),
                DrugInteraction(
                    key="beta_blocker_calcium_channel",
                    first_class="beta blocker",
                    first_terms=list(BETA_BLOCKER_TERMS),
                    second_class="calcium channel blocker",
                    second_terms=list(CALCIUM_CHANNEL_TERMS),
                    priority=AlertPriority.WARNING,
                    description="Bradycardia risk"
                ),
            ]

    def get_threshold(self, parameter: str) -> VitalThreshold:
        """Get threshold policy for a parameter"""
        if parameter not in self.vital_thresholds:
            raise KeyError(f"No threshold configured for parameter: {parameter}")
        return self.vital_thresholds[parameter]

    def risk_score_for_priority(self, priority: AlertPriority) -> float:
        if priority == AlertPriority.CRITICAL:
            return self.critical_risk_score
        return self.warning_risk_score

    def default_risk_score(self, severity: AlertSeverity) -> float:
        """Risk score for rules that need no patient context"""
        if severity == AlertSeverity.CRITICAL:
            return self.keyword_critical_risk_score
        return self.keyword_caution_risk_score

    def interaction_risk_score(self, priority: AlertPriority) -> float:
        if priority == AlertPriority.CRITICAL:
            return self.interaction_critical_risk_score
        return self.interaction_warning_risk_score

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for storage"""
        return {
            "dedup_window_seconds": self.dedup_window_seconds,
            "medication_lookback_days": self.medication_lookback_days,
            "max_transcript_chars": self.max_transcript_chars,
            "context_fallback_chars": self.context_fallback_chars,
            "critical_risk_score": self.critical_risk_score,
            "warning_risk_score": self.warning_risk_score,
            "keyword_critical_risk_score": self.keyword_critical_risk_score,
            "keyword_caution_risk_score": self.keyword_caution_risk_score,
            "diagnosis_risk_score": self.diagnosis_risk_score,
            "interaction_critical_risk_score": self.interaction_critical_risk_score,
            "interaction_warning_risk_score": self.interaction_warning_risk_score,
            "vital_thresholds": {
                name: asdict(threshold)
                for name, threshold in self.vital_thresholds.items()
            },
            "drug_interactions": [i.to_dict() for i in self.drug_interactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AlertEngineConfig':
        """Create config from dictionary"""
        data = dict(data)
        thresholds = {}
        if "vital_thresholds" in data:
            for name, threshold_data in data.pop("vital_thresholds").items():
                thresholds[name] = VitalThreshold(**threshold_data)
        interactions = [
            DrugInteraction.from_dict(i) for i in data.pop("drug_interactions", [])
        ]

        config = cls(**data)
        if thresholds:
            config.vital_thresholds = thresholds
        if interactions:
            config.drug_interactions = interactions
        return config

    @classmethod
    def from_settings(cls, app_settings) -> 'AlertEngineConfig':
        """Build config from environment-driven application settings"""
        return cls(
            dedup_window_seconds=app_settings.ALERT_DEDUP_WINDOW_SECONDS,
            medication_lookback_days=app_settings.ALERT_MEDICATION_LOOKBACK_DAYS,
            max_transcript_chars=app_settings.ALERT_MAX_TRANSCRIPT_CHARS,
        )


class AlertConfigService:
    """Service for managing Alert Engine configuration, owned per engine"""

    def __init__(self, config: Optional[AlertEngineConfig] = None):
        self._config = config or AlertEngineConfig.from_settings(settings)

    @property
    def config(self) -> AlertEngineConfig:
        """Get current configuration"""
        return self._config

    def update_config(self, updates: Dict[str, Any]) -> AlertEngineConfig:
        """Update configuration with new values"""
        try:
            current_dict = self._config.to_dict()
            current_dict.update(updates)
            self._config = AlertEngineConfig.from_dict(current_dict)
            logger.info(f"Alert Engine config updated: {list(updates.keys())}")
            return self._config
        except (TypeError, ValueError, KeyError) as e:
            logger.error(f"Error updating config: {e}")
            raise

    def reset_to_defaults(self) -> AlertEngineConfig:
        """Reset to default configuration"""
        self._config = AlertEngineConfig.from_settings(settings)
        logger.info("Alert Engine config reset to defaults")
        return self._config

    def get_threshold(self, parameter: str) -> VitalThreshold:
        return self._config.get_threshold(parameter)

    def classify_reading(self, parameter: str, value: float) -> Optional[AlertPriority]:
        """Get priority for a reading, or None when implausible or below warning"""
        threshold = self._config.get_threshold(parameter)
        if not threshold.is_plausible(value):
            return None
        return threshold.classify(value)
