"""Goal — a desired partial world state, plus its lifecycle record."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from goap_kernel.models.world import Conditions


class GoalCategory(str, Enum):
    ORDER_FULFILLMENT = "order_fulfillment"
    INVENTORY_OPTIMIZATION = "inventory_optimization"
    QUALITY_ASSURANCE = "quality_assurance"
    EQUIPMENT_MAINTENANCE = "equipment_maintenance"
    GENERAL = "general"                     # fallback, no capability bonus


class GoalContext(BaseModel):
    type: GoalCategory = GoalCategory.GENERAL
    scenario: Optional[str] = None          # set when synthesized by a scenario rule
    details: dict = {}


class Goal(BaseModel):
    """What the warehouse should look like. Users or scenarios declare these."""

    id: str
    name: str
    description: str = ""
    target_state: Conditions
    priority: int = Field(ge=0, default=5)
    context: GoalContext = GoalContext()


class GoalStatus(str, Enum):
    QUEUED = "queued"                       # waiting for an agent / a plan
    EXECUTING = "executing"                 # bound to a running plan
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ABANDONED = "abandoned"                 # retry budget exhausted


TERMINAL_GOAL_STATUSES = frozenset({
    GoalStatus.COMPLETED,
    GoalStatus.FAILED,
    GoalStatus.CANCELLED,
    GoalStatus.ABANDONED,
})


class GoalRecord(BaseModel):
    """Orchestrator bookkeeping for one submitted goal."""

    goal: Goal
    status: GoalStatus = GoalStatus.QUEUED
    sequence: int                           # submission order
    attempts: int = 0                       # planning failures so far
    agent_id: Optional[str] = None
    plan_id: Optional[str] = None
    last_error: Optional[str] = None
    submitted_at: datetime
    retired_at: Optional[datetime] = None

    @property
    def in_flight(self) -> bool:
        return self.status not in TERMINAL_GOAL_STATUSES


class GoalSubmission(BaseModel):
    """Answer to a goal submission."""

    accepted: bool
    goal_id: str
    reason: Optional[str] = None
