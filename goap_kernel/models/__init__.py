"""GOAP Kernel data models."""

from goap_kernel.models.action import Action, ActionResult
from goap_kernel.models.agent import Agent, AgentMetrics, AgentType
from goap_kernel.models.execution import (
    ExecutionContext,
    ExecutionResult,
    FailureKind,
)
from goap_kernel.models.goal import (
    Goal,
    GoalCategory,
    GoalContext,
    GoalRecord,
    GoalStatus,
    GoalSubmission,
)
from goap_kernel.models.plan import Plan, PlannerResult, PlanStatus
from goap_kernel.models.scenario import ScenarioActivation
from goap_kernel.models.system import SystemConfig, SystemStatus
from goap_kernel.models.world import (
    ConditionOperator,
    EffectOp,
    EffectOperation,
    Predicate,
    StateChange,
    StateKey,
)

__all__ = [
    "Action",
    "ActionResult",
    "Agent",
    "AgentMetrics",
    "AgentType",
    "ConditionOperator",
    "EffectOp",
    "EffectOperation",
    "ExecutionContext",
    "ExecutionResult",
    "FailureKind",
    "Goal",
    "GoalCategory",
    "GoalContext",
    "GoalRecord",
    "GoalStatus",
    "GoalSubmission",
    "Plan",
    "PlanStatus",
    "PlannerResult",
    "Predicate",
    "ScenarioActivation",
    "StateChange",
    "StateKey",
    "SystemConfig",
    "SystemStatus",
]
