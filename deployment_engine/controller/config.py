#deployment_engine\controller\config.py

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ControllerSettings(BaseSettings):
    """Controller configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONTROLLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    controller_id: str = "controller-1"

    # Worker pool
    max_concurrent_reconciles: int = 2
    poll_interval_seconds: float = 1.0

    # Requeue delays
    requeue_after_error_seconds: float = 15.0
    init_job_poll_seconds: float = 30.0

    # Init job retries before it counts as failed
    init_job_backoff_limit: int = 2

    # Periodic full resync
    resync_period_seconds: float = 300.0

    # Object store backend
    store_backend: Literal["postgres", "memory"] = "postgres"


settings = ControllerSettings()
