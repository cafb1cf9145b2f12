"""
Action Catalog — the registered library of primitive warehouse actions.

Actions are registered once, in a fixed order (the Planner's final
tie-breaker), and indexed by the capability tags that may perform them.
"""

import logging
from typing import Dict, Iterable, List, Optional

from goap_kernel.errors import ConfigurationError
from goap_kernel.models.action import Action
from goap_kernel.models.world import (
    ConditionOperator,
    EffectOp,
    EffectOperation,
    Predicate,
    StateKey,
)

logger = logging.getLogger(__name__)

NOT_EMPTY = Predicate(operator=ConditionOperator.GT, value=0)


class ActionCatalog:
    """Registration-ordered action library with a capability index."""

    def __init__(self, actions: Optional[Iterable[Action]] = None):
        self._actions: Dict[str, Action] = {}
        self._by_capability: Dict[str, List[str]] = {}
        self._unrestricted: List[str] = []
        for action in actions or []:
            self.register(action)

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, name: str) -> bool:
        return name in self._actions

    def register(self, action: Action) -> None:
        """Register an action. Names are unique within a catalog."""
        if action.name in self._actions:
            raise ConfigurationError(f"Action already registered: {action.name}")
        self._actions[action.name] = action
        if not action.required_capabilities:
            self._unrestricted.append(action.name)
        for capability in sorted(action.required_capabilities):
            self._by_capability.setdefault(capability, []).append(action.name)

    def get(self, name: str) -> Optional[Action]:
        return self._actions.get(name)

    def all(self) -> List[Action]:
        """All actions, in registration order."""
        return list(self._actions.values())

    def capabilities(self) -> List[str]:
        return sorted(self._by_capability)

    def for_capabilities(self, capabilities: Iterable[str]) -> List[Action]:
        """
        Actions an agent with these capabilities may perform, in
        registration order. An action needs any one of its tags.
        """
        if not self._actions:
            raise ConfigurationError("Action catalog is empty")
        allowed = set(self._unrestricted)
        for capability in capabilities:
            allowed.update(self._by_capability.get(capability, ()))
        return [a for name, a in self._actions.items() if name in allowed]


def warehouse_actions() -> List[Action]:
    """The default warehouse action library."""
    return [
        # --- Inventory ---
        Action(
            name="order_replenishment",
            description="Raise a purchase order for items running low",
            preconditions={
                StateKey.LOW_STOCK_ITEMS: NOT_EMPTY,
                StateKey.STAFF_AVAILABLE: True,
            },
            effects={
                StateKey.REPLENISHMENT_ORDERED: True,
                StateKey.TRUCK_ARRIVED: True,
            },
            cost=2,
            required_capabilities=frozenset({"inventory_management", "procurement"}),
            duration_seconds=1.0,
        ),
        Action(
            name="receive_inventory",
            description="Unload and book in an incoming shipment",
            preconditions={
                StateKey.DOCK_AVAILABLE: True,
                StateKey.STAFF_AVAILABLE: True,
                StateKey.TRUCK_ARRIVED: True,
            },
            effects={
                StateKey.TRUCK_ARRIVED: False,
                StateKey.REPLENISHMENT_ORDERED: False,
                StateKey.STOCK_REPLENISHED: True,
                StateKey.ITEMS_NEED_INSPECTION: EffectOp(
                    operation=EffectOperation.PUSH, value="incoming_batch"
                ),
            },
            cost=5,
            required_capabilities=frozenset({"receiving", "inventory_management"}),
            duration_seconds=2.0,
        ),
        Action(
            name="check_inventory_levels",
            description="Audit quantities after replenishment and clear the low-stock list",
            preconditions={
                StateKey.STAFF_AVAILABLE: True,
                StateKey.STOCK_REPLENISHED: True,
            },
            effects={
                StateKey.LOW_STOCK_ITEMS: [],
                StateKey.STOCK_REPLENISHED: False,
            },
            cost=2,
            required_capabilities=frozenset({"inventory_management", "cycle_counting"}),
            duration_seconds=1.0,
        ),
        Action(
            name="move_inventory",
            description="Relocate inventory within the warehouse",
            preconditions={
                StateKey.STAFF_AVAILABLE: True,
                StateKey.EQUIPMENT_AVAILABLE: True,
            },
            effects={StateKey.INVENTORY_RELOCATED: True},
            cost=3,
            required_capabilities=frozenset({
                "inventory_management", "equipment_operation", "inventory_movement",
            }),
            duration_seconds=1.5,
        ),
        # --- Orders ---
        Action(
            name="pick_order",
            description="Pick items for the queued customer orders",
            preconditions={
                StateKey.STAFF_AVAILABLE: True,
                StateKey.ORDERS_IN_QUEUE: NOT_EMPTY,
            },
            effects={StateKey.ORDER_PICKED: True},
            cost=4,
            required_capabilities=frozenset({"order_fulfillment", "inventory_management"}),
            duration_seconds=3.0,
        ),
        Action(
            name="pack_order",
            description="Package picked items for shipping",
            preconditions={
                StateKey.ORDER_PICKED: True,
                StateKey.STAFF_AVAILABLE: True,
            },
            effects={StateKey.ORDER_PACKED: True},
            cost=3,
            required_capabilities=frozenset({"packaging", "order_fulfillment"}),
            duration_seconds=2.0,
        ),
        Action(
            name="dispatch_orders",
            description="Hand packed orders to the carrier and clear the queue",
            preconditions={
                StateKey.ORDER_PACKED: True,
                StateKey.DOCK_AVAILABLE: True,
            },
            effects={
                StateKey.ORDERS_IN_QUEUE: [],
                StateKey.ORDER_PICKED: False,
                StateKey.ORDER_PACKED: False,
                StateKey.DELIVERY_SCHEDULED: True,
            },
            cost=2,
            required_capabilities=frozenset({"shipping", "logistics"}),
            duration_seconds=1.0,
        ),
        # --- Shipping ---
        Action(
            name="optimize_routes",
            description="Calculate delivery routes for scheduled shipments",
            preconditions={StateKey.DELIVERY_SCHEDULED: True},
            effects={StateKey.ROUTES_OPTIMIZED: True},
            cost=4,
            required_capabilities=frozenset({"logistics", "route_planning"}),
            duration_seconds=2.5,
        ),
        # --- Maintenance ---
        Action(
            name="perform_maintenance",
            description="Repair equipment flagged for maintenance",
            preconditions={
                StateKey.EQUIPMENT_NEEDS_MAINTENANCE: NOT_EMPTY,
                StateKey.STAFF_AVAILABLE: True,
            },
            effects={
                StateKey.EQUIPMENT_NEEDS_MAINTENANCE: [],
                StateKey.EQUIPMENT_AVAILABLE: True,
            },
            cost=6,
            required_capabilities=frozenset({"maintenance", "repair"}),
            duration_seconds=4.0,
        ),
        # --- Quality ---
        Action(
            name="inspect_items",
            description="Quality-inspect received batches",
            preconditions={
                StateKey.ITEMS_NEED_INSPECTION: NOT_EMPTY,
                StateKey.STAFF_AVAILABLE: True,
            },
            effects={StateKey.ITEMS_NEED_INSPECTION: []},
            cost=3,
            required_capabilities=frozenset({"quality_control", "inspection"}),
            duration_seconds=2.5,
        ),
        # --- Logistics ---
        Action(
            name="coordinate_resources",
            description="Reallocate staff and equipment to the order queue",
            preconditions={StateKey.ORDERS_IN_QUEUE: NOT_EMPTY},
            effects={
                StateKey.STAFF_AVAILABLE: True,
                StateKey.EQUIPMENT_AVAILABLE: True,
            },
            cost=2,
            required_capabilities=frozenset({"management", "coordination"}),
            duration_seconds=1.0,
        ),
    ]


def build_warehouse_catalog() -> ActionCatalog:
    """Create a catalog holding the default warehouse actions."""
    catalog = ActionCatalog(warehouse_actions())
    logger.debug("Warehouse catalog built with %d actions", len(catalog))
    return catalog
