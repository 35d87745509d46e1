import os
import logging
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Duplicate (type, phrase) pairs inside this window never produce a second alert
    ALERT_DEDUP_WINDOW_SECONDS: float = float(os.getenv("ALERT_DEDUP_WINDOW_SECONDS", "30"))

    # Interacting drugs must both have been prescribed within this many days
    ALERT_MEDICATION_LOOKBACK_DAYS: int = int(os.getenv("ALERT_MEDICATION_LOOKBACK_DAYS", "30"))

    # Caps regex cost per analyzed segment
    ALERT_MAX_TRANSCRIPT_CHARS: int = int(os.getenv("ALERT_MAX_TRANSCRIPT_CHARS", "20000"))

    ALERT_AUDIT_USER_ID: Optional[str] = os.getenv("ALERT_AUDIT_USER_ID")

    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def configure_logging(level: Optional[str] = None) -> int:
    """
    Configure root logging for processes embedding the alert engine.
    Returns the numeric level that was applied.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format='%(levelname)s:%(name)s:%(message)s'
    )
    logging.getLogger('clinical_alerts').setLevel(numeric_level)
    return numeric_level
