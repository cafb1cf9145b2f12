"""
GOAP Executor — runs a Plan's actions in order against the live World State.

Behavioral Contract:
- Accepts only pending plans
- Re-validates each action's preconditions against the canonical store, never
  against the snapshot the plan was made from; a mismatch fails the plan
- Applies an action's effects only after the action succeeds
- No retries and no rollback: a failed action fails the plan, and a plan
  cancelled or timed out keeps the effects already applied
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from goap_kernel.errors import ExecutionError, ExecutionTimeout, PreconditionViolation
from goap_kernel.models.action import Action, ActionResult
from goap_kernel.models.agent import Agent
from goap_kernel.models.execution import ExecutionContext, ExecutionResult, FailureKind
from goap_kernel.models.plan import Plan, PlanStatus
from goap_kernel.world_model.conditions import unsatisfied
from goap_kernel.world_model.store import WorldSnapshot, WorldStateStore

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Action, Agent, WorldSnapshot], Any]
ActionCallback = Callable[[Action, ActionResult, ExecutionContext], Any]
PlanCallback = Callable[[ExecutionResult], Any]


class _Outcome:
    """How the step loop ended."""

    def __init__(
        self,
        status: PlanStatus,
        message: str,
        kind: Optional[FailureKind] = None,
        step: Optional[int] = None,
    ):
        self.status = status
        self.message = message
        self.kind = kind
        self.step = step


class GOAPExecutor:
    """
    Dispatches plan actions to registered handlers. Actions without a
    handler are simulated by waiting out their duration.
    """

    def __init__(
        self,
        plan_timeout_ms: float = 300000,
        action_timeout_ms: float = 30000,
        time_scale: float = 1.0,
    ):
        self.plan_timeout_ms = plan_timeout_ms
        self.action_timeout_ms = action_timeout_ms
        self.time_scale = time_scale
        self._handlers: Dict[str, ActionHandler] = {}

    def register_handler(self, action_name: str, handler: ActionHandler) -> None:
        """Register the side effect performed for an action (sync or async)."""
        self._handlers[action_name] = handler

    def cancel(self, plan: Plan, reason: str = "cancelled") -> bool:
        """Stop a plan before its next action. Returns False if already terminal."""
        if plan.is_terminal:
            return False
        plan.status = PlanStatus.CANCELLED
        plan.failure_reason = reason
        return True

    async def execute_plan(
        self,
        plan: Plan,
        agent: Agent,
        store: WorldStateStore,
        timeout_ms: Optional[float] = None,
        on_action_complete: Optional[ActionCallback] = None,
        on_plan_complete: Optional[PlanCallback] = None,
    ) -> ExecutionResult:
        """
        Execute a pending plan to completion, failure or cancellation.

        GUARD: a plan is executed at most once.
        """
        if plan.status != PlanStatus.PENDING:
            raise ExecutionError(
                f"Cannot execute plan {plan.id}: status is {plan.status.value}, not pending."
            )
        if plan.agent_id is not None and plan.agent_id != agent.id:
            raise ExecutionError(
                f"Plan {plan.id} belongs to agent {plan.agent_id}, not {agent.id}."
            )

        budget_ms = timeout_ms if timeout_ms is not None else self.plan_timeout_ms
        plan.status = PlanStatus.EXECUTING
        plan.started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        executed: List[str] = []

        logger.info(
            "Agent %s starting plan %s for goal %s: %s",
            agent.id, plan.id, plan.goal_id, plan.action_names,
        )

        try:
            outcome = await asyncio.wait_for(
                self._run_steps(plan, agent, store, executed, on_action_complete),
                timeout=budget_ms / 1000.0,
            )
        except PreconditionViolation as e:
            outcome = _Outcome(
                PlanStatus.FAILED, str(e), FailureKind.PRECONDITION_VIOLATION, e.step
            )
        except asyncio.TimeoutError:
            outcome = _Outcome(
                PlanStatus.CANCELLED,
                f"plan execution timed out after {budget_ms:g}ms",
                FailureKind.EXECUTION_TIMEOUT,
                plan.cursor + 1,
            )
        except asyncio.CancelledError:
            outcome = _Outcome(
                PlanStatus.CANCELLED,
                plan.failure_reason or "plan execution cancelled",
                FailureKind.CANCELLED,
                plan.cursor + 1,
            )
            result = self._finish(plan, agent, outcome, executed, start)
            await self._notify(on_plan_complete, result)
            raise

        result = self._finish(plan, agent, outcome, executed, start)
        await self._notify(on_plan_complete, result)
        return result

    async def _run_steps(
        self,
        plan: Plan,
        agent: Agent,
        store: WorldStateStore,
        executed: List[str],
        on_action_complete: Optional[ActionCallback],
    ) -> _Outcome:
        total = len(plan.actions)
        while plan.cursor < total:
            if plan.status == PlanStatus.CANCELLED:
                return _Outcome(
                    PlanStatus.CANCELLED,
                    plan.failure_reason or "plan execution cancelled",
                    FailureKind.CANCELLED,
                    plan.cursor + 1,
                )

            action = plan.actions[plan.cursor]
            step = plan.cursor + 1
            live = store.snapshot()
            broken = unsatisfied(live, action.preconditions)
            if broken:
                logger.warning(
                    "Plan %s: %s preconditions no longer hold at step %d (%s)",
                    plan.id, action.name, step, sorted(broken),
                )
                raise PreconditionViolation(step, action.name, sorted(broken))

            logger.info("Plan %s step %d/%d: %s", plan.id, step, total, action.name)
            result = await self._perform(action, agent, live)
            if not result.success:
                kind = (
                    FailureKind.EXECUTION_TIMEOUT if result.timed_out
                    else FailureKind.ACTION_FAILURE
                )
                return _Outcome(
                    PlanStatus.FAILED,
                    f"action {action.name} failed at step {step}: {result.error}",
                    kind,
                    step,
                )

            # The action happened; its effects stand even if the plan was cancelled meanwhile
            store.apply(action.effects, source=f"{agent.id}:{action.name}")
            plan.cursor += 1
            executed.append(action.name)

            context = ExecutionContext(
                plan_id=plan.id,
                agent_id=agent.id,
                goal_id=plan.goal_id,
                step=step,
                total_steps=total,
                world_version=store.version,
            )
            await self._notify(on_action_complete, action, result, context)

        return _Outcome(PlanStatus.COMPLETED, f"plan completed: {total} actions executed")

    async def _perform(self, action: Action, agent: Agent, snapshot: WorldSnapshot) -> ActionResult:
        """Run one action's handler under its own time budget."""
        handler = self._handlers.get(action.name, self._simulate)
        timeout_ms = action.timeout_ms or self.action_timeout_ms
        start = time.monotonic()
        try:
            outcome = await asyncio.wait_for(
                self._invoke(handler, action, agent, snapshot),
                timeout=timeout_ms / 1000.0,
            )
        except (asyncio.TimeoutError, ExecutionTimeout):
            return ActionResult(
                action_name=action.name,
                success=False,
                error=f"timed out after {timeout_ms:g}ms",
                timed_out=True,
                duration_seconds=round(time.monotonic() - start, 3),
            )
        except Exception as e:
            logger.warning("Action %s raised: %s", action.name, e)
            return ActionResult(
                action_name=action.name,
                success=False,
                error=str(e),
                duration_seconds=round(time.monotonic() - start, 3),
            )

        elapsed = round(time.monotonic() - start, 3)
        if isinstance(outcome, ActionResult):
            return outcome.model_copy(update={"duration_seconds": elapsed})
        return ActionResult(
            action_name=action.name,
            success=True,
            message=f"{action.name} completed",
            data=outcome or {},
            duration_seconds=elapsed,
        )

    @staticmethod
    async def _invoke(handler: ActionHandler, action: Action, agent: Agent, snapshot: WorldSnapshot) -> Any:
        outcome = handler(action, agent, snapshot)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    async def _simulate(self, action: Action, agent: Agent, snapshot: WorldSnapshot) -> dict:
        delay = action.duration_seconds * self.time_scale
        if delay > 0:
            await asyncio.sleep(delay)
        return {"status": "completed", "agent_id": agent.id}

    def _finish(
        self,
        plan: Plan,
        agent: Agent,
        outcome: _Outcome,
        executed: List[str],
        start: float,
    ) -> ExecutionResult:
        plan.status = outcome.status
        plan.finished_at = datetime.now(timezone.utc)
        if outcome.status != PlanStatus.COMPLETED:
            plan.failure_reason = outcome.message

        success = outcome.status == PlanStatus.COMPLETED
        log = logger.info if success else logger.warning
        log("Plan %s %s: %s", plan.id, outcome.status.value, outcome.message)

        return ExecutionResult(
            plan_id=plan.id,
            agent_id=agent.id,
            success=success,
            message=outcome.message,
            status=outcome.status.value,
            executed_actions=list(executed),
            failure_kind=outcome.kind,
            failed_step=outcome.step if not success else None,
            duration_seconds=round(time.monotonic() - start, 3),
        )

    @staticmethod
    async def _notify(callback: Optional[Callable], *args: Any) -> None:
        """Invoke an observer callback; its errors never change the plan outcome."""
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Execution callback %r failed", callback)
