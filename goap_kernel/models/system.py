"""System configuration and status."""

from pydantic import BaseModel, Field


class SystemConfig(BaseModel):
    """Configuration for the GOAP system."""

    max_planning_depth: int = Field(ge=1, default=10)
    planning_timeout_ms: float = Field(gt=0, default=30000)
    execution_timeout_ms: float = Field(gt=0, default=300000)
    action_timeout_ms: float = Field(gt=0, default=30000)
    tick_interval_seconds: float = Field(gt=0, default=5.0)
    order_backlog_threshold: int = Field(ge=0, default=5)
    max_goal_retries: int = Field(ge=1, default=3)
    action_time_scale: float = Field(ge=0, default=1.0)  # 0 disables simulated latency
    dynamic_priorities: bool = True


class SystemStatus(BaseModel):
    active_agents: int
    running_plans: int
    completed_plans: int
    failed_plans: int
    queued_goals: int
    uptime_seconds: float
    is_running: bool
    world_version: int
    ticks: int
