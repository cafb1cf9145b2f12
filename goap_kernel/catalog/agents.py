"""
Warehouse agent roster — pre-configured agents for each warehouse role,
the default warehouse world state, and condition-driven priority boosts.
"""

from typing import Callable, Dict, Iterable, List, Mapping, Optional

from goap_kernel.errors import ConfigurationError
from goap_kernel.models.agent import Agent, AgentType
from goap_kernel.models.world import StateKey

# (capabilities, base priority, home location)
_ROLE_PROFILES: Dict[AgentType, tuple] = {
    AgentType.WAREHOUSE_MANAGER: (
        {"management", "coordination", "resource_allocation", "planning", "oversight"},
        10,
        "manager_office",
    ),
    AgentType.INVENTORY_SPECIALIST: (
        {"inventory_management", "receiving", "cycle_counting", "stock_analysis",
         "equipment_operation"},
        8,
        "warehouse_floor",
    ),
    AgentType.ORDER_PICKER: (
        {"order_fulfillment", "packaging", "shipping", "barcode_scanning"},
        8,
        "pick_zone",
    ),
    AgentType.SHIPPING_AGENT: (
        {"shipping", "logistics", "route_planning", "packaging", "carrier_coordination"},
        7,
        "shipping_dock",
    ),
    AgentType.RECEIVING_AGENT: (
        {"receiving", "inventory_management", "quality_inspection", "equipment_operation",
         "documentation"},
        8,
        "receiving_dock",
    ),
    AgentType.QUALITY_INSPECTOR: (
        {"quality_control", "inspection", "compliance_checking", "documentation",
         "defect_identification"},
        6,
        "quality_station",
    ),
    AgentType.MAINTENANCE_TECH: (
        {"maintenance", "equipment_operation", "repair", "preventive_maintenance",
         "troubleshooting"},
        5,
        "maintenance_shop",
    ),
    AgentType.LOGISTICS_COORDINATOR: (
        {"logistics", "coordination", "route_planning", "scheduling", "optimization"},
        7,
        "logistics_center",
    ),
    AgentType.AUTONOMOUS_ROBOT: (
        {"inventory_movement", "autonomous_navigation", "barcode_scanning",
         "weight_measurement", "obstacle_avoidance"},
        4,
        "charging_station",
    ),
}


def default_warehouse_state() -> dict:
    """The world state of an idle, fully staffed warehouse."""
    return {
        StateKey.DOCK_AVAILABLE: True,
        StateKey.STAFF_AVAILABLE: True,
        StateKey.EQUIPMENT_AVAILABLE: True,
        StateKey.TRUCK_ARRIVED: False,
        StateKey.REPLENISHMENT_ORDERED: False,
        StateKey.STOCK_REPLENISHED: False,
        StateKey.INVENTORY_RELOCATED: False,
        StateKey.LOW_STOCK_ITEMS: [],
        StateKey.ORDERS_IN_QUEUE: [],
        StateKey.ORDER_PICKED: False,
        StateKey.ORDER_PACKED: False,
        StateKey.DELIVERY_SCHEDULED: False,
        StateKey.ROUTES_OPTIMIZED: False,
        StateKey.ITEMS_NEED_INSPECTION: [],
        StateKey.EQUIPMENT_NEEDS_MAINTENANCE: [],
    }


def create_agent(
    agent_type: AgentType,
    agent_id: str,
    name: str,
    capabilities: Optional[Iterable[str]] = None,
) -> Agent:
    """Create an agent for a warehouse role, optionally overriding its capabilities."""
    profile = _ROLE_PROFILES.get(agent_type)
    if profile is None:
        raise ConfigurationError(f"Unsupported agent type: {agent_type}")
    default_capabilities, priority, location = profile
    return Agent(
        id=agent_id,
        name=name,
        type=agent_type,
        capabilities=set(capabilities) if capabilities is not None else set(default_capabilities),
        priority=priority,
        location=location,
    )


def create_warehouse_team(warehouse_id: str) -> List[Agent]:
    """The fixed roster for one warehouse, in registration order."""
    roles = [
        (AgentType.WAREHOUSE_MANAGER, "manager", "Manager"),
        (AgentType.INVENTORY_SPECIALIST, "inventory", "Inventory"),
        (AgentType.ORDER_PICKER, "picker", "Picker"),
        (AgentType.SHIPPING_AGENT, "shipping", "Shipping"),
        (AgentType.RECEIVING_AGENT, "receiving", "Receiving"),
        (AgentType.QUALITY_INSPECTOR, "quality", "Quality"),
        (AgentType.MAINTENANCE_TECH, "maintenance", "Maintenance"),
        (AgentType.LOGISTICS_COORDINATOR, "logistics", "Logistics"),
        (AgentType.AUTONOMOUS_ROBOT, "robot_01", "Robot-01"),
        (AgentType.AUTONOMOUS_ROBOT, "robot_02", "Robot-02"),
    ]
    return [
        create_agent(agent_type, f"{warehouse_id}_{suffix}", f"{label}-{warehouse_id}")
        for agent_type, suffix, label in roles
    ]


def _list_length(snapshot: Mapping, key: str) -> int:
    value = snapshot.get(key)
    return len(value) if isinstance(value, (list, tuple)) else 0


_BOOST_RULES: Dict[AgentType, Callable[[Mapping, int], int]] = {
    # Shipping is urgent when orders pile up beyond the backlog threshold
    AgentType.SHIPPING_AGENT: lambda s, threshold: (
        3 if _list_length(s, StateKey.ORDERS_IN_QUEUE) > threshold else 0
    ),
    AgentType.MAINTENANCE_TECH: lambda s, threshold: (
        4 if _list_length(s, StateKey.EQUIPMENT_NEEDS_MAINTENANCE) > 0 else 0
    ),
    AgentType.QUALITY_INSPECTOR: lambda s, threshold: (
        2 if _list_length(s, StateKey.ITEMS_NEED_INSPECTION) > 3 else 0
    ),
}


def rebalance_priorities(
    agents: Iterable[Agent], snapshot: Mapping, backlog_threshold: int = 5
) -> None:
    """Set each agent's priority boost from current warehouse conditions."""
    for agent in agents:
        rule = _BOOST_RULES.get(agent.type)
        agent.priority_boost = rule(snapshot, backlog_threshold) if rule else 0
