"""
Clinical Alert Engine - Orchestrates the transcript analysis pipeline.

For each finalized transcript segment:
1. Text Scanner → candidate alerts from the trigger catalog
2. Context Evaluator → scored alerts corroborated by patient context
3. Deduplicator → drops (type, phrase) repeats inside the window
4. Suppression Evaluator → withholds alerts the context invalidates
5. Alert Store → persists everything, suppressed alerts included

Each patient session owns its own engine and store; nothing is shared across sessions.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from clinical_alerts.config import settings
from clinical_alerts.schemas.patient_context import PatientContext

from .alert_store import ClinicalAlertStore
from .config_service import AlertEngineConfig
from .context_evaluator import ContextEvaluator
from .deduplicator import AlertDeduplicator
from .models import Alert
from .suppression import SuppressionEvaluator
from .text_scanner import TextScanner

logger = logging.getLogger(__name__)

ContextInput = Union[PatientContext, Dict[str, Any], None]


def coerce_patient_context(patient_context: ContextInput) -> PatientContext:
    if patient_context is None:
        return PatientContext()
    if isinstance(patient_context, PatientContext):
        return patient_context
    return PatientContext.model_validate(patient_context)


class ClinicalAlertEngine:
    """Synchronous alert pipeline bound to one session's alert store"""

    def __init__(
        self,
        store: Optional[ClinicalAlertStore] = None,
        config: Optional[AlertEngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        suppression: Optional[SuppressionEvaluator] = None
    ):
        self.config = config or AlertEngineConfig.from_settings(settings)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.store = store if store is not None else ClinicalAlertStore(clock=self.clock)
        self.scanner = TextScanner(fallback_chars=self.config.context_fallback_chars)
        self.evaluator = ContextEvaluator(self.config, clock=self.clock)
        self.deduplicator = AlertDeduplicator(self.config.dedup_window_seconds)
        self.suppression = suppression or SuppressionEvaluator()

    def analyze(self, transcript: Optional[str], patient_context: ContextInput = None) -> List[Alert]:
        """
        Analyze one transcript segment against the patient's context.
        Returns the newly stored alerts that were not suppressed.
        """
        if not isinstance(transcript, str) or not transcript.strip():
            return []

        if len(transcript) > self.config.max_transcript_chars:
            logger.warning(
                f"Transcript truncated from {len(transcript)} to "
                f"{self.config.max_transcript_chars} characters"
            )
            transcript = transcript[:self.config.max_transcript_chars]

        context = coerce_patient_context(patient_context)

        candidates = self.scanner.scan(transcript)
        if not candidates:
            return []

        with self.store.lock:
            evaluated = self.evaluator.evaluate(candidates, transcript, context)

            fresh: List[Alert] = []
            existing = self.store.all_alerts()
            for alert in evaluated:
                if self.deduplicator.should_emit(alert, existing + fresh):
                    fresh.append(alert)

            kept = self.suppression.suppress(fresh, context)
            self.store.add_all(fresh)

        if kept:
            logger.info(
                f"Analysis produced {len(kept)} alert(s), "
                f"{len(fresh) - len(kept)} suppressed (session={self.store.session_id})"
            )
        return kept


class AlertSessionRegistry:
    """Hands out one independent engine (and store) per patient session"""

    def __init__(
        self,
        config: Optional[AlertEngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or AlertEngineConfig.from_settings(settings)
        self.clock = clock
        self._engines: Dict[str, ClinicalAlertEngine] = {}
        self._lock = threading.Lock()

    def get_engine(self, session_id: str) -> ClinicalAlertEngine:
        with self._lock:
            engine = self._engines.get(session_id)
            if engine is None:
                store = ClinicalAlertStore(session_id=session_id, clock=self.clock)
                engine = ClinicalAlertEngine(store=store, config=self.config, clock=self.clock)
                self._engines[session_id] = engine
                logger.info(f"Opened alert session: {session_id}")
            return engine

    def close_session(self, session_id: str) -> bool:
        with self._lock:
            engine = self._engines.pop(session_id, None)
        if engine is None:
            return False
        logger.info(f"Closed alert session: {session_id}")
        return True

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._engines)
