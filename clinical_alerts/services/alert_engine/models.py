"""
Alert Engine Models - Shared alert types, lifecycle records and errors.

An Alert has a common core (type, severity, phrase, lifecycle flags) and an
optional contextual payload recording which medications, conditions and vitals
corroborated it. The `origin` tag tells the two shapes apart.
"""

import uuid
from datetime import datetime
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from enum import Enum


class AlertEngineError(Exception):
    """Base error for the alert engine"""


class AlertValidationError(AlertEngineError, ValueError):
    """Input rejected before any state change"""


class AlertType(str, Enum):
    SEPSIS = "sepsis"
    MEDICATION_CONFLICT = "medication_conflict"
    CONTRAINDICATION = "contraindication"
    ALLERGY = "allergy"
    DOSAGE_ERROR = "dosage_error"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    CAUTION = "caution"


class AlertPriority(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertOrigin(str, Enum):
    """Which stage produced the alert"""
    KEYWORD = "keyword"
    CONTEXTUAL = "contextual"


class ContextRequirement(str, Enum):
    """Corroboration a trigger rule needs before it becomes an alert"""
    NONE = "none"
    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    GLUCOSE = "glucose"
    MEDICATION_INTERACTION = "medication_interaction"


class ResponseAction(str, Enum):
    ACKNOWLEDGE = "acknowledge"
    OVERRIDE = "override"


def new_alert_id() -> str:
    return str(uuid.uuid4())


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass
class UserResponse:
    """Clinician action recorded against an alert"""
    action: ResponseAction
    timestamp: datetime
    comment: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "comment": self.comment,
            "timestamp": self.timestamp.isoformat(),
            "userId": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserResponse':
        return cls(
            action=ResponseAction(data["action"]),
            timestamp=_parse_timestamp(data["timestamp"]),
            comment=data.get("comment"),
            user_id=data.get("userId"),
        )


@dataclass
class SuppressionRecord:
    """Why an alert was withheld from the active view"""
    condition: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"condition": self.condition, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SuppressionRecord':
        return cls(condition=data["condition"], reason=data["reason"])


@dataclass
class ContextualFactors:
    """Patient context that corroborated an alert"""
    active_medications: List[str] = field(default_factory=list)
    active_conditions: List[str] = field(default_factory=list)
    vital_trends: List[Dict[str, Any]] = field(default_factory=list)
    timeframe: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activeMedications": list(self.active_medications),
            "activeConditions": list(self.active_conditions),
            "vitalTrends": [dict(v) for v in self.vital_trends],
            "timeframe": self.timeframe,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContextualFactors':
        return cls(
            active_medications=list(data.get("activeMedications") or []),
            active_conditions=list(data.get("activeConditions") or []),
            vital_trends=[dict(v) for v in data.get("vitalTrends") or []],
            timeframe=data.get("timeframe"),
        )


@dataclass
class Alert:
    """Full alert record held by the alert store"""
    id: str
    alert_type: AlertType
    severity: AlertSeverity
    priority: AlertPriority
    message: str
    source: str
    detected_phrase: str
    timestamp: datetime
    context: str
    risk_score: float
    action_required: bool
    origin: AlertOrigin = AlertOrigin.KEYWORD
    source_url: Optional[str] = None
    contextual_factors: Optional[ContextualFactors] = None
    suppression_rules: List[SuppressionRecord] = field(default_factory=list)
    is_acknowledged: bool = False
    is_overridden: bool = False
    user_response: Optional[UserResponse] = None

    @property
    def is_suppressed(self) -> bool:
        return bool(self.suppression_rules)

    @property
    def is_resolved(self) -> bool:
        """Acknowledged or overridden by a clinician"""
        return self.is_acknowledged or self.is_overridden

    @property
    def is_active(self) -> bool:
        return not self.is_resolved and not self.is_suppressed

    def to_dict(self) -> Dict[str, Any]:
        """Audit export shape (camelCase keys, ISO timestamps)"""
        return {
            "id": self.id,
            "type": self.alert_type.value,
            "severity": self.severity.value,
            "priority": self.priority.value,
            "origin": self.origin.value,
            "message": self.message,
            "source": self.source,
            "sourceUrl": self.source_url,
            "detectedPhrase": self.detected_phrase,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "contextualFactors": self.contextual_factors.to_dict() if self.contextual_factors else None,
            "riskScore": self.risk_score,
            "actionRequired": self.action_required,
            "suppressionRules": [r.to_dict() for r in self.suppression_rules] or None,
            "isAcknowledged": self.is_acknowledged,
            "isOverridden": self.is_overridden,
            "userResponse": self.user_response.to_dict() if self.user_response else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Alert':
        factors = data.get("contextualFactors")
        response = data.get("userResponse")
        return cls(
            id=data["id"],
            alert_type=AlertType(data["type"]),
            severity=AlertSeverity(data["severity"]),
            priority=AlertPriority(data["priority"]),
            origin=AlertOrigin(data.get("origin", AlertOrigin.KEYWORD.value)),
            message=data["message"],
            source=data["source"],
            source_url=data.get("sourceUrl"),
            detected_phrase=data["detectedPhrase"],
            timestamp=_parse_timestamp(data["timestamp"]),
            context=data["context"],
            contextual_factors=ContextualFactors.from_dict(factors) if factors else None,
            risk_score=float(data["riskScore"]),
            action_required=bool(data["actionRequired"]),
            suppression_rules=[
                SuppressionRecord.from_dict(r) for r in data.get("suppressionRules") or []
            ],
            is_acknowledged=bool(data.get("isAcknowledged", False)),
            is_overridden=bool(data.get("isOverridden", False)),
            user_response=UserResponse.from_dict(response) if response else None,
        )
