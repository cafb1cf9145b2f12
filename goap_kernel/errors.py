"""
Error taxonomy for the GOAP kernel.

PlanningFailure and AssignmentFailure are recoverable: the goal stays queued
for the next monitoring tick. PreconditionViolation and ExecutionTimeout end
the plan they occur in. ConfigurationError is raised straight to the caller.
"""

from typing import Optional


class GOAPError(Exception):
    """Base class for all kernel errors."""


class PlanningFailure(GOAPError):
    """No satisfying action path was found, or the search bounds were hit."""


class AssignmentFailure(GOAPError):
    """No eligible agent is available for a goal."""


class PreconditionViolation(GOAPError):
    """Live world state no longer satisfies the next action's preconditions."""

    def __init__(self, step: int, action_name: str, keys: Optional[list] = None):
        self.step = step
        self.action_name = action_name
        self.keys = keys or []
        super().__init__(f"precondition violated at step {step}")


class ExecutionTimeout(GOAPError):
    """An action or a whole plan exceeded its time budget."""


class ExecutionError(GOAPError):
    """Raised when a plan cannot be handed to the executor."""


class ConfigurationError(GOAPError):
    """Invalid setup: duplicate agent id, empty catalog, double start."""
