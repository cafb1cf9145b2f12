"""
Environment-based configuration using Pydantic Settings.

Every SystemConfig field can be overridden with a GOAP_-prefixed variable,
e.g. GOAP_TICK_INTERVAL_SECONDS=2, or from a local .env file.
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from goap_kernel.models.system import SystemConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class GOAPSettings(BaseSettings):
    """Process-level settings for the GOAP kernel."""

    model_config = SettingsConfigDict(
        env_prefix="GOAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Root log level")

    # Planner
    max_planning_depth: int = Field(default=10, ge=1, description="Max actions per plan")
    planning_timeout_ms: float = Field(default=30000, gt=0, description="Planner wall-clock budget")

    # Executor
    execution_timeout_ms: float = Field(default=300000, gt=0, description="Whole-plan budget")
    action_timeout_ms: float = Field(default=30000, gt=0, description="Per-action budget")
    action_time_scale: float = Field(default=1.0, ge=0, description="Multiplier on simulated durations")

    # Monitoring loop
    tick_interval_seconds: float = Field(default=5.0, gt=0, description="Seconds between ticks")
    order_backlog_threshold: int = Field(default=5, ge=0, description="Queued orders before a backlog goal")
    max_goal_retries: int = Field(default=3, ge=1, description="Planning failures before abandoning a goal")
    dynamic_priorities: bool = Field(default=True, description="Boost agent priority from world conditions")

    def to_system_config(self) -> SystemConfig:
        return SystemConfig(**self.model_dump(include=set(SystemConfig.model_fields)))


@lru_cache()
def get_settings() -> GOAPSettings:
    """Get cached settings instance."""
    return GOAPSettings()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the kernel and its API."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level.upper())
