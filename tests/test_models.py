"""Tests for core data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from goap_kernel.models import (
    Action,
    Agent,
    AgentMetrics,
    AgentType,
    ConditionOperator,
    EffectOp,
    EffectOperation,
    Goal,
    GoalCategory,
    GoalRecord,
    GoalStatus,
    Plan,
    PlanStatus,
    Predicate,
    SystemConfig,
)


def _make_action(name: str = "pick_order", **kwargs) -> Action:
    defaults = dict(
        preconditions={"has_order": True},
        effects={"order_picked": True},
        cost=1,
    )
    defaults.update(kwargs)
    return Action(name=name, **defaults)


class TestAction:
    def test_actions_are_immutable(self):
        action = _make_action()
        with pytest.raises(ValidationError):
            action.cost = 5

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            _make_action(cost=-1)

    def test_performable_by_any_capability(self):
        action = _make_action(required_capabilities=frozenset({"packaging", "order_fulfillment"}))
        assert action.performable_by({"packaging"})
        assert action.performable_by({"order_fulfillment", "shipping"})
        assert not action.performable_by({"shipping"})

    def test_unrestricted_action_performable_by_anyone(self):
        assert _make_action().performable_by(set())

    def test_predicate_conditions_parse_from_json(self):
        action = Action.model_validate({
            "name": "pick_order",
            "preconditions": {"orders_in_queue": {"operator": ">", "value": 0}},
            "effects": {"picked_count": {"operation": "increment", "value": 1}},
        })
        assert action.preconditions["orders_in_queue"] == Predicate(
            operator=ConditionOperator.GT, value=0
        )
        assert action.effects["picked_count"] == EffectOp(
            operation=EffectOperation.INCREMENT, value=1
        )


class TestGoal:
    def test_default_context_is_general(self):
        goal = Goal(id="g1", name="Pack", target_state={"order_packed": True})
        assert goal.context.type == GoalCategory.GENERAL
        assert goal.priority == 5

    def test_record_in_flight_until_retired(self):
        goal = Goal(id="g1", name="Pack", target_state={"order_packed": True})
        record = GoalRecord(goal=goal, sequence=0, submitted_at=datetime.now(timezone.utc))
        assert record.in_flight
        record.status = GoalStatus.EXECUTING
        assert record.in_flight
        record.status = GoalStatus.ABANDONED
        assert not record.in_flight


class TestPlan:
    def test_plan_cannot_be_empty(self):
        with pytest.raises(ValidationError):
            Plan(id="p1", goal_id="g1", actions=[], created_at=datetime.now(timezone.utc))

    def test_remaining_actions_follow_cursor(self):
        plan = Plan(
            id="p1",
            goal_id="g1",
            actions=[_make_action("pick"), _make_action("pack")],
            created_at=datetime.now(timezone.utc),
        )
        assert plan.status == PlanStatus.PENDING
        assert plan.action_names == ["pick", "pack"]
        plan.cursor = 1
        assert [a.name for a in plan.remaining_actions] == ["pack"]
        assert not plan.is_terminal
        plan.status = PlanStatus.CANCELLED
        assert plan.is_terminal


class TestAgent:
    def test_idle_requires_active_and_no_plan(self):
        agent = Agent(id="a1", name="Picker", type=AgentType.ORDER_PICKER)
        assert agent.is_idle
        agent.is_active = False
        assert not agent.is_idle

    def test_effective_priority_includes_boost(self):
        agent = Agent(id="a1", name="Shipping", priority=7, priority_boost=3)
        assert agent.effective_priority == 10

    def test_metrics_running_average(self):
        metrics = AgentMetrics()
        metrics.record(True, 2.0)
        metrics.record(False, 4.0)
        assert metrics.tasks_completed == 1
        assert metrics.tasks_failed == 1
        assert metrics.average_duration_seconds == pytest.approx(3.0)


class TestSystemConfig:
    def test_defaults(self):
        config = SystemConfig()
        assert config.max_planning_depth == 10
        assert config.planning_timeout_ms == 30000
        assert config.tick_interval_seconds == 5.0
        assert config.max_goal_retries == 3

    def test_retries_must_be_positive(self):
        with pytest.raises(ValidationError):
            SystemConfig(max_goal_retries=0)
