"""Tests for the Agent Registry, the warehouse roster and the action catalog."""

import pytest

from goap_kernel.agents.registry import AgentRegistry, capability_bonus, score_agent
from goap_kernel.catalog.actions import ActionCatalog, build_warehouse_catalog
from goap_kernel.catalog.agents import (
    create_agent,
    create_warehouse_team,
    rebalance_priorities,
)
from goap_kernel.errors import ConfigurationError
from goap_kernel.models.action import Action
from goap_kernel.models.agent import Agent, AgentType
from goap_kernel.models.goal import Goal, GoalCategory, GoalContext
from goap_kernel.models.plan import Plan


def _make_goal(category: GoalCategory = GoalCategory.GENERAL) -> Goal:
    return Goal(
        id="goal_1",
        name="Test goal",
        target_state={"done": True},
        context=GoalContext(type=category),
    )


def _make_team_registry(warehouse_id: str = "wh1") -> AgentRegistry:
    registry = AgentRegistry()
    for agent in create_warehouse_team(warehouse_id):
        registry.add(agent)
    return registry


class TestScoring:
    def test_capability_bonus_per_tag(self):
        agent = Agent(id="a1", name="Picker", capabilities={"order_fulfillment", "shipping"})
        assert capability_bonus(agent, GoalCategory.ORDER_FULFILLMENT) == 8
        assert capability_bonus(agent, GoalCategory.GENERAL) == 0

    def test_score_includes_priority_and_boost(self):
        agent = Agent(id="a1", name="Tech", priority=5, priority_boost=4, capabilities={"maintenance"})
        assert score_agent(agent, _make_goal(GoalCategory.EQUIPMENT_MAINTENANCE)) == 14


class TestAssignment:
    def test_restock_goes_to_inventory_specialist(self):
        registry = _make_team_registry()
        agent = registry.find_best_agent(_make_goal(GoalCategory.INVENTORY_OPTIMIZATION))
        assert agent.id == "wh1_inventory"

    def test_order_goal_goes_to_picker(self):
        registry = _make_team_registry()
        agent = registry.find_best_agent(_make_goal(GoalCategory.ORDER_FULFILLMENT))
        assert agent.id == "wh1_picker"

    def test_capable_agent_beats_higher_priority(self):
        registry = AgentRegistry()
        registry.add(Agent(id="boss", name="Boss", priority=10, capabilities={"management"}))
        registry.add(Agent(id="tech", name="Tech", priority=1, capabilities={"repair"}))
        agent = registry.find_best_agent(_make_goal(GoalCategory.EQUIPMENT_MAINTENANCE))
        assert agent.id == "tech"

    def test_ties_go_to_first_registered(self):
        registry = AgentRegistry()
        registry.add(Agent(id="first", name="First", priority=5))
        registry.add(Agent(id="second", name="Second", priority=5))
        assert registry.find_best_agent(_make_goal()).id == "first"

    def test_busy_and_inactive_agents_are_skipped(self):
        registry = AgentRegistry()
        busy = registry.add(Agent(id="busy", name="Busy", priority=9))
        busy.current_plan = Plan.model_construct(id="p1", goal_id="g0")
        registry.add(Agent(id="off", name="Off", priority=8, is_active=False))
        registry.add(Agent(id="free", name="Free", priority=1))
        assert registry.find_best_agent(_make_goal()).id == "free"
        assert [a.id for a in registry.busy_agents()] == ["busy"]

    def test_no_idle_agent(self):
        assert AgentRegistry().find_best_agent(_make_goal()) is None

    def test_rank_agents_best_first(self):
        registry = _make_team_registry()
        ranked = registry.rank_agents(_make_goal(GoalCategory.QUALITY_ASSURANCE))
        assert ranked[0][0].id == "wh1_quality"
        scores = [score for _, score in ranked]
        assert scores == sorted(scores, reverse=True)


class TestRoster:
    def test_duplicate_agent_id_rejected(self):
        registry = AgentRegistry()
        registry.add(Agent(id="a1", name="One"))
        with pytest.raises(ConfigurationError):
            registry.add(Agent(id="a1", name="Again"))

    def test_remove(self):
        registry = AgentRegistry()
        registry.add(Agent(id="a1", name="One"))
        assert registry.remove("a1")
        assert not registry.remove("a1")
        assert "a1" not in registry

    def test_warehouse_team(self):
        team = create_warehouse_team("wh1")
        assert len(team) == 10
        assert team[0].id == "wh1_manager"
        assert {a.type for a in team} >= {AgentType.ORDER_PICKER, AgentType.AUTONOMOUS_ROBOT}

    def test_create_agent_with_custom_capabilities(self):
        agent = create_agent(AgentType.SHIPPING_AGENT, "ship_9", "Ship", capabilities=["shipping"])
        assert agent.capabilities == {"shipping"}
        assert agent.priority == 7

    def test_refresh_world_state(self):
        registry = _make_team_registry()
        registry.refresh_world_state({"dock_available": False})
        assert all(a.world_state == {"dock_available": False} for a in registry.list())


class TestPriorityRebalancing:
    def test_backlog_boosts_shipping(self):
        team = create_warehouse_team("wh1")
        rebalance_priorities(team, {"orders_in_queue": [f"ORD-{i}" for i in range(6)]})
        shipping = next(a for a in team if a.type == AgentType.SHIPPING_AGENT)
        assert shipping.priority_boost == 3
        assert shipping.effective_priority == 10

    def test_broken_equipment_boosts_maintenance(self):
        team = create_warehouse_team("wh1")
        rebalance_priorities(team, {"equipment_needs_maintenance": ["forklift_2"]})
        tech = next(a for a in team if a.type == AgentType.MAINTENANCE_TECH)
        assert tech.priority_boost == 4

    def test_boost_clears_when_condition_resolves(self):
        team = create_warehouse_team("wh1")
        rebalance_priorities(team, {"equipment_needs_maintenance": ["forklift_2"]})
        rebalance_priorities(team, {"equipment_needs_maintenance": []})
        assert all(a.priority_boost == 0 for a in team)


class TestActionCatalog:
    def test_duplicate_action_rejected(self):
        catalog = ActionCatalog([Action(name="pick")])
        with pytest.raises(ConfigurationError):
            catalog.register(Action(name="pick"))

    def test_empty_catalog_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            ActionCatalog().for_capabilities({"shipping"})

    def test_for_capabilities_keeps_registration_order(self):
        catalog = build_warehouse_catalog()
        names = [a.name for a in catalog.for_capabilities({"order_fulfillment", "shipping"})]
        assert names == ["pick_order", "pack_order", "dispatch_orders"]

    def test_unrestricted_actions_available_to_all(self):
        catalog = ActionCatalog([
            Action(name="sweep"),
            Action(name="repair", required_capabilities=frozenset({"repair"})),
        ])
        assert [a.name for a in catalog.for_capabilities(set())] == ["sweep"]
