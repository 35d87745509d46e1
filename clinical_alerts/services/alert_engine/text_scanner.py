"""
Text Scanner - Matches a transcript against the trigger catalog.

Produces one candidate per matched rule. Pure: no state, no side effects.
"""

import re
import logging
from typing import Optional, List, Sequence
from dataclasses import dataclass

from .models import AlertType, AlertSeverity, ContextRequirement
from .trigger_catalog import TriggerRule, TRIGGER_CATALOG

logger = logging.getLogger(__name__)

SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class CandidateAlert:
    """Keyword match not yet validated against patient context"""
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    source: str
    source_url: Optional[str]
    detected_phrase: str
    context: str
    requirement: ContextRequirement = ContextRequirement.NONE


def first_matching_keyword(rule: TriggerRule, lowered_transcript: str) -> Optional[str]:
    """First keyword of the rule, in table order, contained in the transcript"""
    for keyword in rule.keywords:
        if keyword.lower() in lowered_transcript:
            return keyword
    return None


def extract_context(transcript: str, phrase: str, fallback_chars: int = 100) -> str:
    """
    First sentence containing the phrase (split on . ! ?).
    Falls back to the start of the transcript when no sentence contains it.
    """
    needle = phrase.lower()
    for sentence in SENTENCE_BOUNDARY.split(transcript):
        if needle in sentence.lower():
            return sentence.strip()
    return transcript[:fallback_chars].strip()


class TextScanner:
    """Scans finalized transcript text for trigger keywords"""

    def __init__(
        self,
        catalog: Sequence[TriggerRule] = TRIGGER_CATALOG,
        fallback_chars: int = 100
    ):
        self.catalog = tuple(catalog)
        self.fallback_chars = fallback_chars

    def scan(self, transcript: str) -> List[CandidateAlert]:
        if not transcript or not transcript.strip():
            return []

        lowered = transcript.lower()
        candidates = []

        for rule in self.catalog:
            keyword = first_matching_keyword(rule, lowered)
            if keyword is None:
                continue

            candidates.append(CandidateAlert(
                alert_type=rule.alert_type,
                severity=rule.severity,
                message=rule.message,
                source=rule.source,
                source_url=rule.source_url,
                detected_phrase=keyword,
                context=extract_context(transcript, keyword, self.fallback_chars),
                requirement=rule.requirement,
            ))

        if candidates:
            logger.debug(f"Scanner matched {len(candidates)} trigger rule(s)")
        return candidates
