"""
Alert Store - Per-session alert history with acknowledge/override lifecycle.

State per alert:
- active: neither acknowledged, overridden nor suppressed
- suppressed: stored for audit with suppression records, never shown as active
- acknowledged / overridden: terminal; a resolved alert cannot be resolved again

The store only grows. clear_all() is the explicit session reset.
All mutations are serialized by a re-entrant lock owned by the store.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Callable, Dict, Any, Optional, List

from clinical_alerts.config import settings

from .models import (
    Alert,
    AlertSeverity,
    AlertValidationError,
    ResponseAction,
    UserResponse,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1

AlertCallback = Callable[[Alert], None]


@dataclass
class AlertStats:
    """Rolled-up counts over active alerts"""
    critical: int
    caution: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return {"critical": self.critical, "caution": self.caution, "total": self.total}


class ClinicalAlertStore:
    """Holds every alert produced for one patient session"""

    def __init__(
        self,
        session_id: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.session_id = session_id
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.lock = threading.RLock()
        self._alerts: List[Alert] = []
        self._index: Dict[str, Alert] = {}
        self._on_new_alert: Optional[AlertCallback] = None
        self._on_alert_update: Optional[AlertCallback] = None

    def set_callbacks(
        self,
        on_new_alert: Optional[AlertCallback] = None,
        on_alert_update: Optional[AlertCallback] = None
    ) -> None:
        """Register listeners; passing None leaves an existing listener in place"""
        if on_new_alert is not None:
            self._on_new_alert = on_new_alert
        if on_alert_update is not None:
            self._on_alert_update = on_alert_update

    def add(self, alert: Alert) -> Alert:
        self.add_all([alert])
        return alert

    def add_all(self, alerts: List[Alert]) -> List[Alert]:
        """
        Persist a batch, then notify listeners. The batch is validated up front
        so either every alert is stored or none is.
        """
        with self.lock:
            seen = set(self._index)
            for alert in alerts:
                if alert.id in seen:
                    raise AlertValidationError(f"Alert id already stored: {alert.id}")
                seen.add(alert.id)
            for alert in alerts:
                self._alerts.append(alert)
                self._index[alert.id] = alert

        for alert in alerts:
            if not alert.is_suppressed:
                self._notify(self._on_new_alert, alert)
        return alerts

    def _notify(self, callback: Optional[AlertCallback], alert: Alert) -> None:
        if callback is None:
            return
        try:
            callback(alert)
        except Exception as e:
            logger.error(f"Error notifying listener for alert {alert.id}: {e}")

    def get(self, alert_id: str) -> Optional[Alert]:
        with self.lock:
            return self._index.get(alert_id)

    def __len__(self) -> int:
        with self.lock:
            return len(self._alerts)

    # === LIFECYCLE ===

    def _resolve(
        self,
        alert_id: str,
        action: ResponseAction,
        comment: Optional[str],
        user_id: Optional[str]
    ) -> bool:
        with self.lock:
            alert = self._index.get(alert_id)
            if alert is None:
                logger.warning(f"Cannot {action.value} unknown alert: {alert_id}")
                return False

            if alert.is_resolved:
                previous = alert.user_response.action.value if alert.user_response else "resolved"
                logger.warning(
                    f"Rejecting {action.value} for alert {alert_id}: already {previous}"
                )
                return False

            if action == ResponseAction.ACKNOWLEDGE:
                alert.is_acknowledged = True
            else:
                alert.is_overridden = True
            alert.user_response = UserResponse(
                action=action,
                timestamp=self.clock(),
                comment=comment,
                user_id=user_id or settings.ALERT_AUDIT_USER_ID,
            )

        outcome = "acknowledged" if action == ResponseAction.ACKNOWLEDGE else "overridden"
        logger.info(
            f"Alert {alert_id} {outcome} by {alert.user_response.user_id or 'unknown user'}"
            f" (session={self.session_id})"
        )
        self._notify(self._on_alert_update, alert)
        return True

    def acknowledge(self, alert_id: str, user_id: Optional[str] = None) -> bool:
        """Mark an alert acknowledged. False when unknown or already resolved."""
        return self._resolve(alert_id, ResponseAction.ACKNOWLEDGE, None, user_id)

    def override(self, alert_id: str, comment: str, user_id: Optional[str] = None) -> bool:
        """
        Override an alert with a mandatory justification.
        Raises AlertValidationError for a blank comment; False when unknown or already resolved.
        """
        if comment is None or not comment.strip():
            raise AlertValidationError("Override requires a non-empty comment")
        return self._resolve(alert_id, ResponseAction.OVERRIDE, comment.strip(), user_id)

    # === VIEWS ===

    def all_alerts(self) -> List[Alert]:
        with self.lock:
            return list(self._alerts)

    def active_alerts(self) -> List[Alert]:
        with self.lock:
            return [a for a in self._alerts if a.is_active]

    def suppressed_alerts(self) -> List[Alert]:
        with self.lock:
            return [a for a in self._alerts if a.is_suppressed]

    def resolved_alerts(self) -> List[Alert]:
        with self.lock:
            return [a for a in self._alerts if a.is_resolved]

    def stats(self) -> AlertStats:
        active = self.active_alerts()
        return AlertStats(
            critical=sum(1 for a in active if a.severity == AlertSeverity.CRITICAL),
            caution=sum(1 for a in active if a.severity == AlertSeverity.CAUTION),
            total=len(active),
        )

    def clear_all(self) -> None:
        with self.lock:
            count = len(self._alerts)
            self._alerts = []
            self._index = {}
        logger.info(f"Cleared {count} alert(s) (session={self.session_id})")

    # === AUDIT EXPORT ===

    def to_dict(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "version": EXPORT_VERSION,
                "sessionId": self.session_id,
                "alerts": [a.to_dict() for a in self._alerts],
            }

    def export_log(self) -> str:
        """Full alert history, including suppressed and resolved alerts, as JSON"""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_export(
        cls,
        payload: str,
        clock: Optional[Callable[[], datetime]] = None
    ) -> 'ClinicalAlertStore':
        """Rebuild a store from export_log() output"""
        try:
            data = json.loads(payload)
            store = cls(session_id=data.get("sessionId"), clock=clock)
            for item in data["alerts"]:
                store.add(Alert.from_dict(item))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            if isinstance(e, AlertValidationError):
                raise
            raise AlertValidationError(f"Invalid alert log: {e}") from e
        return store
