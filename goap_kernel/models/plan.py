"""Plan — an ordered Action sequence produced by the Planner for one Goal."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from goap_kernel.models.action import Action


class PlanStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_PLAN_STATUSES = frozenset({
    PlanStatus.COMPLETED,
    PlanStatus.FAILED,
    PlanStatus.CANCELLED,
})


class Plan(BaseModel):
    """A concrete plan. Never empty: an empty search result is a failure."""

    id: str
    goal_id: str
    agent_id: Optional[str] = None
    actions: List[Action] = Field(min_length=1)
    status: PlanStatus = PlanStatus.PENDING
    cursor: int = 0                         # index of the next action to run
    estimated_cost: float = 0.0
    failure_reason: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PLAN_STATUSES

    @property
    def action_names(self) -> List[str]:
        return [a.name for a in self.actions]

    @property
    def remaining_actions(self) -> List[Action]:
        return self.actions[self.cursor:]


class PlannerResult(BaseModel):
    """Outcome of a single planning request."""

    success: bool
    message: str
    plan: Optional[Plan] = None
    explored_nodes: int = 0
    planning_time_ms: float = 0.0
