from __future__ import annotations

import tempfile

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_prefix": "PROBER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Alerting
    alert_threshold: int = 100  # badness at which a probe is alerting
    alerts_disabled: bool = False
    max_alert_frequency: float = 15 * 60  # seconds between delivered alerts

    # Scoring defaults (per-probe overrides win)
    min_badness: int = 0
    badness_increment: int = 10  # on failure
    badness_decrement: int = 1  # on success

    # Scheduling
    default_interval: float = 61.0  # seconds
    history_capacity: int = 200  # records kept per probe

    # Selection, comma-separated probe names
    disabled_probes: str = ""
    only_probes: str = ""

    # YAML outcome log
    outcome_log_enabled: bool = True
    outcome_log_dir: str = tempfile.gettempdir()
    outcome_log_name: str = "prober.outcomes.log"

    # Probe definitions
    registry_path: str = "probes.yaml"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Alert channels (optional, Slack / Discord webhooks)
    slack_webhook_url: str = ""
    discord_webhook_url: str = ""


settings = Settings()
