"""
GOAP Kernel API — FastAPI endpoints.

Exposes the GOAP system via a REST API for:
- Goal submission and inspection
- World state inspection and external events
- Monitoring loop control
- Agent roster management
- Active plan inspection
"""

from typing import List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from goap_kernel.config import configure_logging, get_settings
from goap_kernel.errors import ConfigurationError
from goap_kernel.models.agent import AgentType
from goap_kernel.models.goal import Goal, GoalCategory, GoalContext, GoalStatus
from goap_kernel.models.plan import Plan
from goap_kernel.models.system import SystemConfig
from goap_kernel.models.world import Conditions, Effects
from goap_kernel.orchestrator.system import GOAPSystem


# --- Request/Response Models ---

class GoalCreateRequest(BaseModel):
    id: Optional[str] = None
    name: str
    description: str = ""
    target_state: Conditions
    priority: int = 5
    type: GoalCategory = GoalCategory.GENERAL
    details: dict = {}


class WorldUpdateRequest(BaseModel):
    effects: Effects
    source: str = "api"


class AgentCreateRequest(BaseModel):
    type: AgentType
    name: str
    warehouse_id: str
    capabilities: Optional[List[str]] = None


class TeamCreateRequest(BaseModel):
    warehouse_id: str


def _plan_summary(plan: Plan) -> dict:
    return {
        "id": plan.id,
        "goal_id": plan.goal_id,
        "agent_id": plan.agent_id,
        "status": plan.status.value,
        "actions": plan.action_names,
        "cursor": plan.cursor,
        "estimated_cost": plan.estimated_cost,
        "started_at": plan.started_at.isoformat() if plan.started_at else None,
    }


def _agent_summary(agent) -> dict:
    return {
        "id": agent.id,
        "name": agent.name,
        "type": agent.type.value,
        "capabilities": sorted(agent.capabilities),
        "priority": agent.priority,
        "priority_boost": agent.priority_boost,
        "is_active": agent.is_active,
        "location": agent.location,
        "current_plan": agent.current_plan.id if agent.current_plan else None,
        "metrics": agent.metrics.model_dump(),
    }


# --- Application Factory ---

def create_app(
    system: Optional[GOAPSystem] = None,
    config: Optional[SystemConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="GOAP Kernel API",
        description="Goal-Oriented Action Planning for warehouse operations",
        version="0.1.0",
    )

    goap = system or GOAPSystem(config=config)

    # Store components on app state for access in endpoints
    app.state.system = goap

    # === GOALS ===

    @app.post("/goals")
    def submit_goal(req: GoalCreateRequest):
        """Declare a new goal."""
        goal = Goal(
            id=req.id or f"goal_{uuid4().hex[:12]}",
            name=req.name,
            description=req.description,
            target_state=req.target_state,
            priority=req.priority,
            context=GoalContext(type=req.type, details=req.details),
        )
        submission = goap.submit_goal(goal)
        if not submission.accepted:
            raise HTTPException(409, submission.reason)
        return submission.model_dump(mode="json")

    @app.get("/goals")
    def list_goals(status: Optional[GoalStatus] = None):
        """All known goals, optionally filtered by status."""
        return [r.model_dump(mode="json") for r in goap.list_goals(status)]

    @app.get("/goals/{goal_id}")
    def get_goal(goal_id: str):
        record = goap.get_goal(goal_id)
        if not record:
            raise HTTPException(404, "Goal not found")
        return record.model_dump(mode="json")

    # === WORLD STATE ===

    @app.get("/world/state")
    def get_world_state():
        """Current canonical world state."""
        return {
            "version": goap.store.version,
            "state": goap.store.get_state_snapshot(),
        }

    @app.get("/world/changes")
    def get_world_changes(limit: int = 20):
        """Most recent accepted writes."""
        return [c.model_dump(mode="json") for c in goap.store.get_recent_changes(limit)]

    @app.post("/world/apply")
    def apply_world_update(req: WorldUpdateRequest):
        """Report an external event."""
        goap.apply_world_update(req.effects, source=req.source)
        return {"version": goap.store.version, "state": goap.store.get_state_snapshot()}

    # === SYSTEM ===

    @app.get("/system/status")
    def system_status():
        return goap.get_status().model_dump()

    @app.get("/system/config")
    def system_config():
        return goap.config.model_dump()

    @app.post("/system/tick")
    async def trigger_tick():
        """Force a monitoring cycle (for testing)."""
        return await goap.tick()

    # === AGENTS ===

    @app.get("/agents")
    def list_agents():
        return [_agent_summary(a) for a in goap.list_agents()]

    @app.post("/agents")
    def create_agent(req: AgentCreateRequest):
        agent = goap.create_agent(req.type, req.name, req.warehouse_id, req.capabilities)
        return _agent_summary(agent)

    @app.post("/agents/team")
    def create_team(req: TeamCreateRequest):
        """Register the standard roster for a warehouse."""
        try:
            agents = goap.create_warehouse_team(req.warehouse_id)
        except ConfigurationError as e:
            raise HTTPException(409, str(e))
        return [_agent_summary(a) for a in agents]

    @app.delete("/agents/{agent_id}")
    def remove_agent(agent_id: str):
        if not goap.remove_agent(agent_id):
            raise HTTPException(404, "Agent not found")
        return {"status": "removed", "agent_id": agent_id}

    # === PLANS ===

    @app.get("/plans/active")
    def get_active_plans():
        return [_plan_summary(p) for p in goap.get_active_plans()]

    return app


# Default application instance, configured from GOAP_* environment variables
_settings = get_settings()
configure_logging(_settings.log_level)
app = create_app(config=_settings.to_system_config())
