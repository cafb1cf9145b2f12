"""
GOAP System — the monitoring loop that turns world state into running plans.

States:
  STOPPED → RUNNING → STOPPED

Every tick:
  1. Scenario detection: one goal per detected scenario class, unless a goal
     for that scenario is still in flight
  2. Assignment sweep over queued goals (priority desc, then submission order):
     satisfied goals retire, otherwise best agent → plan → executor task
  3. Completion handling (on plan finish): free the agent, record metrics,
     retire the goal

Planning failures keep the goal queued until max_goal_retries is spent.
Assignment failures (every agent busy) never consume a retry.
"""

import asyncio
import itertools
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from goap_kernel.agents.registry import AgentRegistry
from goap_kernel.catalog.actions import ActionCatalog, build_warehouse_catalog
from goap_kernel.catalog.agents import (
    create_agent,
    create_warehouse_team,
    default_warehouse_state,
    rebalance_priorities,
)
from goap_kernel.errors import (
    AssignmentFailure,
    ConfigurationError,
    ExecutionError,
    PlanningFailure,
)
from goap_kernel.execution.executor import GOAPExecutor
from goap_kernel.models.action import Action, ActionResult
from goap_kernel.models.agent import Agent, AgentType
from goap_kernel.models.execution import ExecutionContext, ExecutionResult, FailureKind
from goap_kernel.models.goal import Goal, GoalRecord, GoalStatus, GoalSubmission
from goap_kernel.models.plan import Plan, PlanStatus
from goap_kernel.models.system import SystemConfig, SystemStatus
from goap_kernel.orchestrator.scenarios import ScenarioWatcher
from goap_kernel.planning.planner import GOAPPlanner
from goap_kernel.world_model.conditions import is_satisfied
from goap_kernel.world_model.store import WorldSnapshot, WorldStateStore

logger = logging.getLogger(__name__)


class GOAPSystem:
    """Owns the world state, the agent roster and every running plan."""

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        catalog: Optional[ActionCatalog] = None,
        store: Optional[WorldStateStore] = None,
        registry: Optional[AgentRegistry] = None,
        planner: Optional[GOAPPlanner] = None,
        executor: Optional[GOAPExecutor] = None,
        watcher: Optional[ScenarioWatcher] = None,
    ):
        self.config = config or SystemConfig()
        self.catalog = catalog if catalog is not None else build_warehouse_catalog()
        self.store = store if store is not None else WorldStateStore(default_warehouse_state())
        self.registry = registry if registry is not None else AgentRegistry()
        self.planner = planner or GOAPPlanner(
            max_depth=self.config.max_planning_depth,
            timeout_ms=self.config.planning_timeout_ms,
        )
        self.executor = executor or GOAPExecutor(
            plan_timeout_ms=self.config.execution_timeout_ms,
            action_timeout_ms=self.config.action_timeout_ms,
            time_scale=self.config.action_time_scale,
        )
        self.watcher = watcher or ScenarioWatcher(
            backlog_threshold=self.config.order_backlog_threshold,
        )

        self._goals: Dict[str, GoalRecord] = {}
        self._sequence = itertools.count()
        self._plans: Dict[str, Plan] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._completed_plans = 0
        self._failed_plans = 0
        self._ticks = 0

        self._running = False
        self._started_at: Optional[float] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._monitor: Optional[asyncio.Task] = None

        self.store.subscribe(self._on_world_change)
        self._on_world_change(self.store.snapshot())

    # === LIFECYCLE ===

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the monitoring loop. The first tick runs immediately."""
        if self._running:
            raise ConfigurationError("GOAP system is already running")
        self._running = True
        self._started_at = time.monotonic()
        self._stop_event = asyncio.Event()
        self._monitor = asyncio.create_task(self._run_monitor(self._stop_event))
        logger.info(
            "GOAP system started with %d agents, tick every %gs",
            len(self.registry), self.config.tick_interval_seconds,
        )

    async def stop(self) -> None:
        """Halt the monitoring loop and cancel every in-flight plan."""
        if not self._running:
            return
        self._stop_event.set()
        if self._monitor is not None:
            await self._monitor
            self._monitor = None

        tasks = list(self._tasks.values())
        for plan_id, task in list(self._tasks.items()):
            plan = self._plans.get(plan_id)
            if plan is not None:
                self.executor.cancel(plan, "system stopped")
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        # Tasks cancelled before their first step never reach the executor
        for plan in list(self._plans.values()):
            self._settle_unstarted(plan)

        self._running = False
        logger.info("GOAP system stopped, %d plans cancelled", len(tasks))

    async def _run_monitor(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Monitoring tick failed")
            try:
                await asyncio.wait_for(
                    stop_event.wait(),
                    timeout=self.config.tick_interval_seconds,
                )
            except asyncio.TimeoutError:
                continue

    async def tick(self, current_time: Optional[datetime] = None) -> dict:
        """
        Run a single monitoring cycle.
        Returns the goals it synthesized and the goals it put to work.
        """
        self._ticks += 1
        synthesized = self._detect_scenarios(current_time)
        assigned = self._assign_goals()
        return {
            "tick": self._ticks,
            "synthesized_goals": synthesized,
            "assigned_goals": assigned,
        }

    # === GOALS ===

    def submit_goal(self, goal: Goal) -> GoalSubmission:
        """Queue a goal for the next assignment sweep."""
        if not goal.target_state:
            return GoalSubmission(accepted=False, goal_id=goal.id, reason="goal has an empty target state")
        existing = self._goals.get(goal.id)
        if existing is not None and existing.in_flight:
            return GoalSubmission(accepted=False, goal_id=goal.id, reason="goal already in flight")

        self._goals[goal.id] = GoalRecord(
            goal=goal,
            sequence=next(self._sequence),
            submitted_at=datetime.now(timezone.utc),
        )
        logger.info("Goal %s (%s) queued with priority %d", goal.id, goal.name, goal.priority)
        return GoalSubmission(accepted=True, goal_id=goal.id)

    def get_goal(self, goal_id: str) -> Optional[GoalRecord]:
        return self._goals.get(goal_id)

    def list_goals(self, status: Optional[GoalStatus] = None) -> List[GoalRecord]:
        """Goal records in submission order, optionally filtered by status."""
        records = sorted(self._goals.values(), key=lambda r: r.sequence)
        if status is not None:
            records = [r for r in records if r.status == status]
        return records

    def _detect_scenarios(self, current_time: Optional[datetime]) -> List[str]:
        in_flight = {
            r.goal.context.scenario
            for r in self._goals.values()
            if r.in_flight and r.goal.context.scenario
        }
        created = []
        for detected in self.watcher.check(self.store.snapshot(), current_time):
            if detected.scenario in in_flight:
                continue
            submission = self.submit_goal(detected.goal)
            if submission.accepted:
                in_flight.add(detected.scenario)
                created.append(detected.goal.id)
                logger.info(
                    "Scenario %s detected, raised goal %s", detected.scenario, detected.goal.id
                )
        return created

    def _assign_goals(self) -> List[str]:
        queued = sorted(
            (r for r in self._goals.values() if r.status == GoalStatus.QUEUED),
            key=lambda r: (-r.goal.priority, r.sequence),
        )
        assigned = []
        for record in queued:
            snapshot = self.store.snapshot()
            if is_satisfied(snapshot, record.goal.target_state):
                self._retire(record, GoalStatus.COMPLETED, "goal already satisfied")
                continue
            try:
                self._assign(record, snapshot)
            except AssignmentFailure as e:
                record.last_error = str(e)
                logger.debug("Goal %s waits for an agent: %s", record.goal.id, e)
                continue
            except PlanningFailure as e:
                record.attempts += 1
                record.last_error = str(e)
                if record.attempts >= self.config.max_goal_retries:
                    logger.warning(
                        "Goal %s abandoned after %d planning failures: %s",
                        record.goal.id, record.attempts, e,
                    )
                    self._retire(record, GoalStatus.ABANDONED, str(e))
                else:
                    logger.warning(
                        "Planning failed for goal %s (attempt %d/%d): %s",
                        record.goal.id, record.attempts, self.config.max_goal_retries, e,
                    )
                continue
            assigned.append(record.goal.id)
        return assigned

    def _assign(self, record: GoalRecord, snapshot: WorldSnapshot) -> Plan:
        """Bind a goal to the best idle agent and launch its plan."""
        goal = record.goal
        agent = self.registry.find_best_agent(goal)
        if agent is None:
            raise AssignmentFailure(f"no idle agent available for goal {goal.id}")

        actions = self.catalog.for_capabilities(agent.capabilities)
        result = self.planner.plan(goal, snapshot, actions)
        if not result.success or result.plan is None:
            raise PlanningFailure(result.message)

        plan = result.plan
        plan.agent_id = agent.id
        agent.current_plan = plan
        record.status = GoalStatus.EXECUTING
        record.agent_id = agent.id
        record.plan_id = plan.id
        record.last_error = None
        self._plans[plan.id] = plan
        self._tasks[plan.id] = asyncio.create_task(
            self._run_plan(record, plan, agent), name=f"plan:{plan.id}"
        )
        logger.info(
            "Goal %s assigned to agent %s with plan %s (cost %g): %s",
            goal.id, agent.id, plan.id, plan.estimated_cost, plan.action_names,
        )
        return plan

    # === EXECUTION ===

    async def _run_plan(self, record: GoalRecord, plan: Plan, agent: Agent) -> None:
        try:
            await self.executor.execute_plan(
                plan,
                agent,
                self.store,
                timeout_ms=self.config.execution_timeout_ms,
                on_action_complete=self._on_action_complete,
                on_plan_complete=lambda result: self._on_plan_complete(record, agent, plan, result),
            )
        except ExecutionError as e:
            # Cancelled before its first step, e.g. its agent was removed
            logger.warning("Plan %s did not start: %s", plan.id, e)
            cancelled = plan.status == PlanStatus.CANCELLED
            self._on_plan_complete(record, agent, plan, ExecutionResult(
                plan_id=plan.id,
                agent_id=agent.id,
                success=False,
                message=plan.failure_reason or str(e),
                status=plan.status.value,
                failure_kind=FailureKind.CANCELLED if cancelled else FailureKind.ACTION_FAILURE,
            ))
        finally:
            self._tasks.pop(plan.id, None)

    def _on_action_complete(
        self, action: Action, result: ActionResult, context: ExecutionContext
    ) -> None:
        logger.debug(
            "Agent %s finished %s (%d/%d), world v%d",
            context.agent_id, action.name, context.step, context.total_steps,
            context.world_version,
        )

    def _on_plan_complete(
        self, record: GoalRecord, agent: Agent, plan: Plan, result: ExecutionResult
    ) -> None:
        if self._plans.pop(plan.id, None) is None:
            return
        if agent.current_plan is plan:
            agent.current_plan = None
        agent.metrics.record(result.success, result.duration_seconds)

        if result.success:
            self._completed_plans += 1
        else:
            self._failed_plans += 1

        if result.success and is_satisfied(self.store.snapshot(), record.goal.target_state):
            self._retire(record, GoalStatus.COMPLETED, None)
        elif result.success:
            self._retire(record, GoalStatus.FAILED, "plan completed but goal is not satisfied")
        elif result.failure_kind == FailureKind.CANCELLED:
            self._retire(record, GoalStatus.CANCELLED, result.message)
        else:
            self._retire(record, GoalStatus.FAILED, result.message)

    def _settle_unstarted(self, plan: Plan) -> None:
        self.executor.cancel(plan, "system stopped")
        record = self._goals.get(plan.goal_id)
        agent = self.registry.get(plan.agent_id) if plan.agent_id else None
        if record is None or agent is None:
            self._plans.pop(plan.id, None)
            return
        self._on_plan_complete(record, agent, plan, ExecutionResult(
            plan_id=plan.id,
            agent_id=agent.id,
            success=False,
            message="system stopped",
            status=PlanStatus.CANCELLED.value,
            failure_kind=FailureKind.CANCELLED,
            failed_step=plan.cursor + 1,
        ))

    def _retire(self, record: GoalRecord, status: GoalStatus, reason: Optional[str]) -> None:
        record.status = status
        record.retired_at = datetime.now(timezone.utc)
        if reason:
            record.last_error = reason
        log = logger.info if status == GoalStatus.COMPLETED else logger.warning
        log("Goal %s %s%s", record.goal.id, status.value, f": {reason}" if reason else "")

    def get_active_plans(self) -> List[Plan]:
        """Plans bound to an agent and not yet finished."""
        return list(self._plans.values())

    # === WORLD STATE ===

    def get_world_state_snapshot(self) -> WorldSnapshot:
        return self.store.snapshot()

    def apply_world_update(self, effects: Mapping, source: str = "external") -> WorldSnapshot:
        """Report an external event (a truck arriving, a new order) to the store."""
        return self.store.apply(effects, source=source)

    def _on_world_change(self, snapshot: WorldSnapshot) -> None:
        self.registry.refresh_world_state(snapshot)
        if self.config.dynamic_priorities:
            rebalance_priorities(
                self.registry.list(), snapshot, self.config.order_backlog_threshold
            )

    # === AGENTS ===

    def add_agent(self, agent: Agent) -> Agent:
        snapshot = self.store.snapshot()
        self.registry.add(agent, world_state=snapshot)
        if self.config.dynamic_priorities:
            rebalance_priorities([agent], snapshot, self.config.order_backlog_threshold)
        return agent

    def remove_agent(self, agent_id: str) -> bool:
        """Remove an agent. A plan it is running is cancelled."""
        agent = self.registry.get(agent_id)
        if agent is not None and agent.current_plan is not None:
            plan = agent.current_plan
            self.executor.cancel(plan, f"agent {agent_id} removed")
        return self.registry.remove(agent_id)

    def list_agents(self) -> List[Agent]:
        return self.registry.list()

    def create_agent(
        self,
        agent_type: AgentType,
        name: str,
        warehouse_id: str,
        capabilities: Optional[Iterable[str]] = None,
    ) -> Agent:
        """Create and register an agent for a warehouse role."""
        agent_id = f"{warehouse_id}_{agent_type.value}_{uuid4().hex[:6]}"
        return self.add_agent(create_agent(agent_type, agent_id, name, capabilities))

    def create_warehouse_team(self, warehouse_id: str) -> List[Agent]:
        """Register the standard roster for one warehouse."""
        return [self.add_agent(agent) for agent in create_warehouse_team(warehouse_id)]

    # === STATUS ===

    def get_status(self) -> SystemStatus:
        agents = self.registry.list()
        uptime = time.monotonic() - self._started_at if self._started_at is not None else 0.0
        return SystemStatus(
            active_agents=sum(1 for a in agents if a.is_active),
            running_plans=len(self._plans),
            completed_plans=self._completed_plans,
            failed_plans=self._failed_plans,
            queued_goals=sum(1 for r in self._goals.values() if r.status == GoalStatus.QUEUED),
            uptime_seconds=round(uptime, 3),
            is_running=self._running,
            world_version=self.store.version,
            ticks=self._ticks,
        )
