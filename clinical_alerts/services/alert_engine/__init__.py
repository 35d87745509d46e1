"""
Alert Engine Service Package - Clinical alert detection with contextual suppression.

Components:
1. TRIGGER_CATALOG - Static keyword rules mapped to alert type, severity and citation
2. TextScanner - Keyword matching with sentence-level context extraction
3. ContextEvaluator - Vital, diagnosis and drug-interaction corroboration with risk scoring
4. AlertDeduplicator - 30-second (type, phrase) duplicate window
5. SuppressionEvaluator - Resolved-condition and inactive-medication suppression
6. ClinicalAlertStore - Per-session alert history, acknowledge/override lifecycle, stats, audit export
7. ClinicalAlertEngine - Synchronous pipeline over one session's store
8. AlertSessionRegistry - One independent engine per patient session
9. AlertConfigService - Thresholds, risk scores and interaction tables
10. InsightService - Insight cards and alert filtering
"""

from .models import (
    Alert,
    AlertType,
    AlertSeverity,
    AlertPriority,
    AlertOrigin,
    ContextRequirement,
    ContextualFactors,
    ResponseAction,
    SuppressionRecord,
    UserResponse,
    AlertEngineError,
    AlertValidationError,
)
from .config_service import AlertEngineConfig, AlertConfigService, VitalThreshold, DrugInteraction
from .trigger_catalog import TriggerRule, TRIGGER_CATALOG
from .text_scanner import TextScanner, CandidateAlert
from .context_evaluator import ContextEvaluator
from .deduplicator import AlertDeduplicator
from .suppression import SuppressionEvaluator, SuppressionRule
from .alert_store import ClinicalAlertStore, AlertStats
from .engine import ClinicalAlertEngine, AlertSessionRegistry
from .insights import InsightService, InsightCard, AlertFilterCriteria
from .evaluation import calculate_detection_metrics, DetectionMetrics

__all__ = [
    'Alert',
    'AlertType',
    'AlertSeverity',
    'AlertPriority',
    'AlertOrigin',
    'ContextRequirement',
    'ContextualFactors',
    'ResponseAction',
    'SuppressionRecord',
    'UserResponse',
    'AlertEngineError',
    'AlertValidationError',
    'AlertEngineConfig',
    'AlertConfigService',
    'VitalThreshold',
    'DrugInteraction',
    'TriggerRule',
    'TRIGGER_CATALOG',
    'TextScanner',
    'CandidateAlert',
    'ContextEvaluator',
    'AlertDeduplicator',
    'SuppressionEvaluator',
    'SuppressionRule',
    'ClinicalAlertStore',
    'AlertStats',
    'ClinicalAlertEngine',
    'AlertSessionRegistry',
    'InsightService',
    'InsightCard',
    'AlertFilterCriteria',
    'calculate_detection_metrics',
    'DetectionMetrics',
]
