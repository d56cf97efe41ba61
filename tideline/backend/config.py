"""Tideline — Application Configuration."""

import json
import logging
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional

_cfg_logger = logging.getLogger("tideline.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    app_name: str = "Tideline"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # AIS vessel stream
    aisstream_api_key: str = ""
    aisstream_url: str = "wss://stream.aisstream.io/v0/stream"
    vessel_update_interval_ms: int = 1000
    max_vessels: int = 500
    reconnect_delay_ms: int = 5000
    max_reconnect_attempts: int = 5

    # Simulated roster used when no AISStream key is configured
    use_fallback_vessels: bool = True
    fallback_refresh_interval: int = 10

    # Prediction-market collector
    prediction_interval: int = 300
    polymarket_url: str = "https://gamma-api.polymarket.com/markets"
    metaculus_url: str = "https://www.metaculus.com/api2/questions/"
    prediction_limit: int = 20

    # Pipeline caps
    max_alerts: int = 25
    max_signals: int = 8

    # Data overrides (JSON files); built-in tables are used when unset
    zone_catalog_path: Optional[str] = None
    signal_tables_path: Optional[str] = None

    model_config = {"env_file": ".env", "env_prefix": "TIDELINE_"}


def _load_settings() -> Settings:
    """Load settings, supplementing with credentials.json for the AISStream key."""
    s = Settings()

    # Auto-load credentials from credentials.json if not set via env
    creds_path = Path(__file__).resolve().parent.parent / "credentials.json"
    if creds_path.exists():
        try:
            creds = json.loads(creds_path.read_text(encoding="utf-8"))

            if not s.aisstream_api_key:
                s.aisstream_api_key = creds.get("aisstream_api_key", "")
                if s.aisstream_api_key:
                    _cfg_logger.info("AISStream credentials loaded from %s", creds_path.name)
        except Exception as e:
            _cfg_logger.warning("Failed to read credentials.json: %s", e)

    return s


settings = _load_settings()
