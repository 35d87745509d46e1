"""
Tests for the alert store lifecycle, stats, callbacks and audit export.
"""

import json

import pytest

from clinical_alerts.config import settings
from clinical_alerts.services.alert_engine import (
    Alert,
    AlertType,
    AlertSeverity,
    AlertPriority,
    AlertValidationError,
    ClinicalAlertStore,
    ResponseAction,
)

from conftest import NOW


def make_alert(alert_id, severity=AlertSeverity.CRITICAL, alert_type=AlertType.SEPSIS):
    return Alert(
        id=alert_id,
        alert_type=alert_type,
        severity=severity,
        priority=AlertPriority.CRITICAL if severity == AlertSeverity.CRITICAL else AlertPriority.WARNING,
        message="test alert",
        source="test",
        detected_phrase=alert_type.value,
        timestamp=NOW,
        context="context",
        risk_score=0.9 if severity == AlertSeverity.CRITICAL else 0.6,
        action_required=severity == AlertSeverity.CRITICAL,
    )


class TestLifecycle:
    """Acknowledge/override are terminal and mutually exclusive"""

    def test_acknowledge_records_response(self, store, clock):
        store.add(make_alert("a1"))
        clock.advance(5)

        assert store.acknowledge("a1", user_id="dr-smith") is True

        alert = store.get("a1")
        assert alert.is_acknowledged is True
        assert alert.is_overridden is False
        assert alert.user_response.action == ResponseAction.ACKNOWLEDGE
        assert alert.user_response.user_id == "dr-smith"
        assert alert.user_response.timestamp == clock()
        assert store.active_alerts() == []

    def test_repeat_resolution_is_rejected(self, store, clock):
        store.add(make_alert("a1"))
        store.acknowledge("a1")
        first_response = store.get("a1").user_response
        clock.advance(60)

        assert store.acknowledge("a1") is False
        assert store.override("a1", "Reviewed with pharmacy") is False

        alert = store.get("a1")
        assert alert.is_overridden is False
        assert alert.user_response is first_response
        assert alert.user_response.timestamp == NOW

    def test_override_records_trimmed_comment(self, store):
        store.add(make_alert("a1"))

        assert store.override("a1", "  Benefit outweighs risk  ", user_id="dr-lee") is True

        alert = store.get("a1")
        assert alert.is_overridden is True
        assert alert.is_acknowledged is False
        assert alert.user_response.action == ResponseAction.OVERRIDE
        assert alert.user_response.comment == "Benefit outweighs risk"

    @pytest.mark.parametrize("comment", ["", "   ", None])
    def test_override_requires_comment(self, store, comment):
        store.add(make_alert("a1"))

        with pytest.raises(AlertValidationError):
            store.override("a1", comment)

        assert store.get("a1").is_active

    def test_unknown_alert_returns_false(self, store):
        assert store.acknowledge("missing") is False
        assert store.override("missing", "reason") is False

    def test_duplicate_id_is_rejected(self, store):
        store.add(make_alert("a1"))
        with pytest.raises(AlertValidationError):
            store.add(make_alert("a1"))
        assert len(store) == 1

    def test_batch_with_duplicate_id_stores_nothing(self, store):
        store.add(make_alert("a1"))
        with pytest.raises(AlertValidationError):
            store.add_all([make_alert("a2"), make_alert("a1")])
        assert [a.id for a in store.all_alerts()] == ["a1"]

    def test_resolved_view(self, store):
        store.add(make_alert("a1"))
        store.add(make_alert("a2", alert_type=AlertType.ALLERGY))
        store.add(make_alert("a3", alert_type=AlertType.CONTRAINDICATION))
        store.acknowledge("a1")
        store.override("a3", "Discussed with cardiology")

        assert [a.id for a in store.resolved_alerts()] == ["a1", "a3"]
        assert [a.id for a in store.active_alerts()] == ["a2"]

    def test_audit_user_fallback(self, store, monkeypatch):
        monkeypatch.setattr(settings, "ALERT_AUDIT_USER_ID", "clinical-audit")
        store.add(make_alert("a1"))
        store.add(make_alert("a2", alert_type=AlertType.ALLERGY))

        store.acknowledge("a1")
        store.acknowledge("a2", user_id="dr-smith")

        assert store.get("a1").user_response.user_id == "clinical-audit"
        assert store.get("a2").user_response.user_id == "dr-smith"


class TestStats:
    """Stats count active alerts only"""

    def test_stats_by_severity(self, store):
        store.add(make_alert("a1"))
        store.add(make_alert("a2", severity=AlertSeverity.CAUTION, alert_type=AlertType.DOSAGE_ERROR))
        store.add(make_alert("a3", alert_type=AlertType.ALLERGY))

        stats = store.stats()
        assert stats.to_dict() == {"critical": 2, "caution": 1, "total": 3}

        store.acknowledge("a1")
        assert store.stats().to_dict() == {"critical": 1, "caution": 1, "total": 2}

    def test_clear_all_resets_session(self, store):
        store.add(make_alert("a1"))
        store.clear_all()

        assert len(store) == 0
        assert store.stats().total == 0
        assert store.acknowledge("a1") is False


class TestCallbacks:
    """Listeners fire after state changes"""

    def test_new_and_update_callbacks(self, store):
        created, updated = [], []
        store.set_callbacks(on_new_alert=created.append, on_alert_update=updated.append)

        store.add(make_alert("a1"))
        store.acknowledge("a1")
        store.acknowledge("a1")

        assert [a.id for a in created] == ["a1"]
        assert [a.id for a in updated] == ["a1"]

    def test_listener_errors_are_contained(self, store):
        def broken_listener(alert):
            raise RuntimeError("listener down")

        store.set_callbacks(on_new_alert=broken_listener, on_alert_update=broken_listener)

        store.add_all([make_alert("a1"), make_alert("a2", alert_type=AlertType.ALLERGY)])
        assert len(store) == 2
        assert store.acknowledge("a1") is True
        assert store.get("a1").is_acknowledged

    def test_partial_registration_keeps_existing_listener(self, store):
        created = []
        store.set_callbacks(on_new_alert=created.append)
        store.set_callbacks(on_alert_update=lambda alert: None)

        store.add(make_alert("a1"))
        assert len(created) == 1


class TestAuditExport:
    """Export contains every alert and round-trips losslessly"""

    def test_export_round_trip_is_identical(self, engine, hypertensive_context):
        engine.analyze("Concern for sepsis. Blood pressure 190/120.", hypertensive_context)
        alerts = engine.store.all_alerts()
        engine.store.acknowledge(alerts[0].id, user_id="dr-smith")
        engine.store.override(alerts[1].id, "Known white coat hypertension")

        exported = engine.store.export_log()
        restored = ClinicalAlertStore.from_export(exported)

        assert restored.export_log() == exported
        assert restored.session_id == "session-test"
        assert len(restored) == 2

    def test_export_shape(self, store):
        store.add(make_alert("a1"))
        data = json.loads(store.export_log())

        assert data["version"] == 1
        assert data["sessionId"] == "session-test"
        entry = data["alerts"][0]
        assert entry["type"] == "sepsis"
        assert entry["detectedPhrase"] == "sepsis"
        assert entry["timestamp"] == "2026-10-18T12:00:00+00:00"
        assert entry["userResponse"] is None
        assert entry["suppressionRules"] is None

    @pytest.mark.parametrize("payload", [
        "not json",
        "{}",
        '{"alerts": [{"id": "a1"}]}',
        '{"alerts": [{"id": "a1", "type": "unknown"}]}',
        "[]",
    ])
    def test_invalid_export_raises(self, payload):
        with pytest.raises(AlertValidationError):
            ClinicalAlertStore.from_export(payload)
