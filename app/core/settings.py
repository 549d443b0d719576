# app/core/settings.py
from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "buyplan-api"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # --- Engine ---
    # unset: the engine_v3.yaml shipped with the wholesale vertical
    BUYPLAN_CONFIG_PATH: Optional[str] = None

    # --- OA planner ---
    # longer churn is counted as this many weeks
    OA_CHURN_CAP_WEEKS: Optional[Decimal] = Decimal("15")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
