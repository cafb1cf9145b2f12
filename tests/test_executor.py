"""Tests for the GOAP Executor."""

import asyncio
from datetime import datetime, timezone

import pytest

from goap_kernel.errors import ExecutionError
from goap_kernel.execution.executor import GOAPExecutor
from goap_kernel.models.action import Action, ActionResult
from goap_kernel.models.agent import Agent
from goap_kernel.models.execution import FailureKind
from goap_kernel.models.plan import Plan, PlanStatus
from goap_kernel.world_model.store import WorldStateStore


def _make_plan(actions=None, agent_id: str = "picker_1") -> Plan:
    return Plan(
        id="plan_1",
        goal_id="goal_1",
        agent_id=agent_id,
        actions=actions or [
            Action(name="Pick", preconditions={"hasOrder": True}, effects={"orderPicked": True}),
            Action(name="Pack", preconditions={"orderPicked": True}, effects={"orderPacked": True}),
        ],
        created_at=datetime.now(timezone.utc),
    )


def _make_agent(agent_id: str = "picker_1") -> Agent:
    return Agent(id=agent_id, name="Picker", capabilities={"order_fulfillment"})


def _make_executor(**kwargs) -> GOAPExecutor:
    kwargs.setdefault("time_scale", 0)
    return GOAPExecutor(**kwargs)


class TestExecutePlan:
    @pytest.mark.asyncio
    async def test_completes_and_applies_effects(self):
        store = WorldStateStore({"hasOrder": True})
        plan = _make_plan()
        result = await _make_executor().execute_plan(plan, _make_agent(), store)

        assert result.success
        assert result.status == "completed"
        assert result.executed_actions == ["Pick", "Pack"]
        assert plan.status == PlanStatus.COMPLETED
        assert plan.cursor == 2
        assert store.get("orderPacked") is True
        assert store.version == 2

    @pytest.mark.asyncio
    async def test_precondition_violation_at_step_two(self):
        store = WorldStateStore({"hasOrder": True})
        plan = _make_plan()

        def flip_back(action, result, context):
            if action.name == "Pick":
                store.apply({"orderPicked": False}, source="external")

        result = await _make_executor().execute_plan(
            plan, _make_agent(), store, on_action_complete=flip_back
        )

        assert not result.success
        assert result.failure_kind == FailureKind.PRECONDITION_VIOLATION
        assert result.failed_step == 2
        assert result.executed_actions == ["Pick"]
        assert plan.status == PlanStatus.FAILED
        assert store.get("orderPacked") is None

    @pytest.mark.asyncio
    async def test_action_failure_stops_plan(self):
        store = WorldStateStore({"hasOrder": True})
        executor = _make_executor()
        executor.register_handler(
            "Pick", lambda action, agent, snapshot: ActionResult(
                action_name=action.name, success=False, error="scanner offline"
            )
        )
        plan = _make_plan()
        result = await executor.execute_plan(plan, _make_agent(), store)

        assert result.failure_kind == FailureKind.ACTION_FAILURE
        assert result.failed_step == 1
        assert "scanner offline" in result.message
        assert store.version == 0

    @pytest.mark.asyncio
    async def test_handler_exception_is_action_failure(self):
        executor = _make_executor()

        def broken(action, agent, snapshot):
            raise RuntimeError("conveyor jammed")

        executor.register_handler("Pick", broken)
        result = await executor.execute_plan(
            _make_plan(), _make_agent(), WorldStateStore({"hasOrder": True})
        )
        assert result.failure_kind == FailureKind.ACTION_FAILURE
        assert "conveyor jammed" in result.message

    @pytest.mark.asyncio
    async def test_action_timeout(self):
        executor = _make_executor(action_timeout_ms=20)
        blocker = asyncio.Event()

        async def stuck(action, agent, snapshot):
            await blocker.wait()

        executor.register_handler("Pack", stuck)
        plan = _make_plan()
        store = WorldStateStore({"hasOrder": True})
        result = await executor.execute_plan(plan, _make_agent(), store)

        assert plan.status == PlanStatus.FAILED
        assert result.failure_kind == FailureKind.EXECUTION_TIMEOUT
        assert result.failed_step == 2
        # No rollback of the step that already ran
        assert store.get("orderPicked") is True

    @pytest.mark.asyncio
    async def test_plan_timeout_cancels(self):
        executor = _make_executor(action_timeout_ms=10000)
        blocker = asyncio.Event()

        async def stuck(action, agent, snapshot):
            await blocker.wait()

        executor.register_handler("Pick", stuck)
        plan = _make_plan()
        result = await executor.execute_plan(
            plan, _make_agent(), WorldStateStore({"hasOrder": True}), timeout_ms=20
        )

        assert plan.status == PlanStatus.CANCELLED
        assert result.failure_kind == FailureKind.EXECUTION_TIMEOUT


class TestExecutionGuards:
    @pytest.mark.asyncio
    async def test_refuses_non_pending_plan(self):
        plan = _make_plan()
        plan.status = PlanStatus.COMPLETED
        with pytest.raises(ExecutionError):
            await _make_executor().execute_plan(plan, _make_agent(), WorldStateStore())

    @pytest.mark.asyncio
    async def test_refuses_plan_of_another_agent(self):
        with pytest.raises(ExecutionError):
            await _make_executor().execute_plan(
                _make_plan(agent_id="someone_else"), _make_agent(), WorldStateStore()
            )

    @pytest.mark.asyncio
    async def test_cancel_stops_before_next_action(self):
        store = WorldStateStore({"hasOrder": True})
        executor = _make_executor()
        plan = _make_plan()

        def cancel_after_pick(action, result, context):
            executor.cancel(plan, "operator request")

        result = await executor.execute_plan(
            plan, _make_agent(), store, on_action_complete=cancel_after_pick
        )
        assert plan.status == PlanStatus.CANCELLED
        assert result.failure_kind == FailureKind.CANCELLED
        assert result.executed_actions == ["Pick"]
        assert result.message == "operator request"
        assert not executor.cancel(plan)

    @pytest.mark.asyncio
    async def test_task_cancellation_reports_and_reraises(self):
        executor = _make_executor()
        blocker = asyncio.Event()
        finished = []

        async def stuck(action, agent, snapshot):
            await blocker.wait()

        executor.register_handler("Pick", stuck)
        plan = _make_plan()
        task = asyncio.create_task(executor.execute_plan(
            plan, _make_agent(), WorldStateStore({"hasOrder": True}),
            on_plan_complete=finished.append,
        ))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert plan.status == PlanStatus.CANCELLED
        assert finished[0].failure_kind == FailureKind.CANCELLED

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_change_outcome(self):
        def broken(*args):
            raise RuntimeError("observer down")

        result = await _make_executor().execute_plan(
            _make_plan(), _make_agent(), WorldStateStore({"hasOrder": True}),
            on_action_complete=broken,
        )
        assert result.success
