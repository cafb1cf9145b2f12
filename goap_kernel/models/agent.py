"""Agent — a long-lived warehouse worker that owns at most one Plan."""

from enum import Enum
from typing import Optional, Set

from pydantic import BaseModel, Field

from goap_kernel.models.plan import Plan


class AgentType(str, Enum):
    WAREHOUSE_MANAGER = "warehouse_manager"
    INVENTORY_SPECIALIST = "inventory_specialist"
    ORDER_PICKER = "order_picker"
    SHIPPING_AGENT = "shipping_agent"
    RECEIVING_AGENT = "receiving_agent"
    QUALITY_INSPECTOR = "quality_inspector"
    MAINTENANCE_TECH = "maintenance_tech"
    LOGISTICS_COORDINATOR = "logistics_coordinator"
    AUTONOMOUS_ROBOT = "autonomous_robot"
    GENERIC = "generic"


class AgentMetrics(BaseModel):
    tasks_completed: int = 0
    tasks_failed: int = 0
    average_duration_seconds: float = 0.0

    def record(self, success: bool, duration_seconds: float) -> None:
        """Fold one finished plan into the running counters."""
        if success:
            self.tasks_completed += 1
        else:
            self.tasks_failed += 1
        total = self.tasks_completed + self.tasks_failed
        self.average_duration_seconds += (
            duration_seconds - self.average_duration_seconds
        ) / total


class Agent(BaseModel):
    """A worker with a capability set. Its world_state is a read-only snapshot."""

    id: str
    name: str
    type: AgentType = AgentType.GENERIC
    capabilities: Set[str] = set()
    priority: int = Field(ge=0, default=5)
    priority_boost: int = 0                 # set by priority rebalancing
    current_plan: Optional[Plan] = None
    world_state: dict = {}
    metrics: AgentMetrics = AgentMetrics()
    is_active: bool = True
    location: Optional[str] = None

    @property
    def is_idle(self) -> bool:
        return self.is_active and self.current_plan is None

    @property
    def effective_priority(self) -> int:
        return self.priority + self.priority_boost
