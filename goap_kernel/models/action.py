"""Action — a pure state-transition descriptor the Planner composes into Plans."""

from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field

from goap_kernel.models.world import Conditions, Effects


class Action(BaseModel):
    """A primitive warehouse operation with typed preconditions and effects."""

    model_config = ConfigDict(frozen=True)

    name: str                               # e.g., "pick_order"
    description: str = ""
    preconditions: Conditions = {}
    effects: Effects = {}
    cost: float = Field(ge=0, default=1.0)
    required_capabilities: FrozenSet[str] = frozenset()  # any one suffices
    duration_seconds: float = Field(ge=0, default=0.0)   # simulated latency
    timeout_ms: Optional[float] = Field(gt=0, default=None)

    def __hash__(self) -> int:
        return hash(self.name)

    def performable_by(self, capabilities) -> bool:
        """True if an agent with these capabilities may perform this action."""
        if not self.required_capabilities:
            return True
        return bool(self.required_capabilities & set(capabilities))


class ActionResult(BaseModel):
    """Outcome of performing a single action."""

    action_name: str
    success: bool
    message: str = ""
    data: dict = {}
    error: Optional[str] = None
    timed_out: bool = False
    duration_seconds: float = 0.0
