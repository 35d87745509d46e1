"""
Detection metrics for benchmarking alert output against labelled cases.
"""

from dataclasses import dataclass
from typing import Dict, Any, Iterable, Union

from .models import Alert, AlertType


@dataclass
class DetectionMetrics:
    precision: float
    recall: float
    f1_score: float
    coverage: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1_score,
            "coverage": self.coverage,
        }


def _case_type(case: Union[Dict[str, Any], AlertType, str]) -> AlertType:
    if isinstance(case, dict):
        case = case["type"]
    return AlertType(case)


def calculate_detection_metrics(
    alerts: Iterable[Alert],
    actual_cases: Iterable[Union[Dict[str, Any], AlertType, str]]
) -> DetectionMetrics:
    """
    Precision/recall by alert type. An alert is a true positive when a labelled
    case of the same type exists. Every ratio is 0.0 when its denominator is zero.
    """
    alert_list = list(alerts)
    case_types = [_case_type(c) for c in actual_cases]
    labelled = set(case_types)

    true_positives = sum(1 for a in alert_list if a.alert_type in labelled)
    false_positives = len(alert_list) - true_positives
    false_negatives = max(len(case_types) - true_positives, 0)

    precision = true_positives / (true_positives + false_positives) if alert_list else 0.0
    recall_denominator = true_positives + false_negatives
    recall = true_positives / recall_denominator if recall_denominator else 0.0
    f1_score = 2 * precision * recall / (precision + recall) if (precision + recall) else 0.0
    coverage = min(true_positives / len(case_types), 1.0) if case_types else 0.0

    return DetectionMetrics(
        precision=precision,
        recall=recall,
        f1_score=f1_score,
        coverage=coverage,
    )
