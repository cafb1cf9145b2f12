"""World State — the shared facts every Action and Goal is expressed over."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class StateKey:
    """Well-known warehouse state keys agreed upon by Actions and Goals."""

    DOCK_AVAILABLE = "dock_available"
    STAFF_AVAILABLE = "staff_available"
    EQUIPMENT_AVAILABLE = "equipment_available"
    TRUCK_ARRIVED = "truck_arrived"
    REPLENISHMENT_ORDERED = "replenishment_ordered"
    STOCK_REPLENISHED = "stock_replenished"
    INVENTORY_RELOCATED = "inventory_relocated"
    LOW_STOCK_ITEMS = "low_stock_items"
    ORDERS_IN_QUEUE = "orders_in_queue"
    ORDER_PICKED = "order_picked"
    ORDER_PACKED = "order_packed"
    DELIVERY_SCHEDULED = "delivery_scheduled"
    ROUTES_OPTIMIZED = "routes_optimized"
    ITEMS_NEED_INSPECTION = "items_need_inspection"
    EQUIPMENT_NEEDS_MAINTENANCE = "equipment_needs_maintenance"


class ConditionOperator(str, Enum):
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    NE = "!="
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class EffectOperation(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
    PUSH = "push"
    REMOVE = "remove"
    TOGGLE = "toggle"


class Predicate(BaseModel):
    """A non-equality requirement on a single state key."""

    model_config = ConfigDict(frozen=True)

    operator: ConditionOperator
    value: Optional[Union[bool, int, float, str]] = None


class EffectOp(BaseModel):
    """A relative state change (counter or list update) instead of an assignment."""

    model_config = ConfigDict(frozen=True)

    operation: EffectOperation
    value: Optional[Union[bool, int, float, str]] = None


StateValue = Union[bool, int, float, str, List[str]]
Condition = Union[Predicate, bool, int, float, str, List[str]]
Effect = Union[EffectOp, bool, int, float, str, List[str]]

Conditions = Dict[str, Condition]
Effects = Dict[str, Effect]


class StateChange(BaseModel):
    """One accepted write to the canonical world state."""

    version: int
    effects: dict
    changed_keys: List[str]
    applied_at: datetime
