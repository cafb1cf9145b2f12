"""Execution Result — outcome from the Executor."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class FailureKind(str, Enum):
    PLANNING_FAILURE = "planning_failure"
    ASSIGNMENT_FAILURE = "assignment_failure"
    PRECONDITION_VIOLATION = "precondition_violation"
    EXECUTION_TIMEOUT = "execution_timeout"
    ACTION_FAILURE = "action_failure"
    CANCELLED = "cancelled"


class ExecutionResult(BaseModel):
    """Outcome of running one plan to a terminal status."""

    plan_id: str
    agent_id: str
    success: bool
    message: str
    status: str
    executed_actions: List[str] = []
    failure_kind: Optional[FailureKind] = None
    failed_step: Optional[int] = None       # 1-based
    duration_seconds: float = 0.0


class ExecutionContext(BaseModel):
    """What a callback learns about the plan it is observing."""

    plan_id: str
    agent_id: str
    goal_id: str
    step: int                               # 1-based index of the current action
    total_steps: int
    world_version: int
