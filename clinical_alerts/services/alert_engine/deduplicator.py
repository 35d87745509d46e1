"""
Deduplicator - Suppresses repeat emission of the same (type, phrase) pair.

Two alerts are duplicates when type and detected phrase match and their
timestamps are less than the window apart. Comparison runs against every
alert the session has stored, not just the current batch.
"""

import logging
from datetime import timedelta
from typing import Iterable

from .models import Alert

logger = logging.getLogger(__name__)


class AlertDeduplicator:
    """Window-based duplicate check"""

    def __init__(self, window_seconds: float = 30.0):
        self.window = timedelta(seconds=window_seconds)

    def is_duplicate(self, alert: Alert, other: Alert) -> bool:
        if alert.alert_type != other.alert_type:
            return False
        if alert.detected_phrase != other.detected_phrase:
            return False
        return abs(alert.timestamp - other.timestamp) < self.window

    def should_emit(self, alert: Alert, existing_alerts: Iterable[Alert]) -> bool:
        """True to emit, False to drop as a duplicate"""
        for existing in existing_alerts:
            if self.is_duplicate(alert, existing):
                logger.info(
                    f"Suppressing duplicate alert: {alert.alert_type.value}:"
                    f"{alert.detected_phrase} (matches {existing.id})"
                )
                return False
        return True
