"""
Scenario detection — rule-based watchers over the canonical World State.

Each rule recognizes one trouble pattern (low stock, order backlog, ...) and
synthesizes the Goal that resolves it. Rules are deterministic and cheap;
they run on every monitoring tick.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional
from uuid import uuid4

from croniter import croniter

from goap_kernel.models.goal import Goal, GoalCategory, GoalContext
from goap_kernel.models.scenario import ScenarioActivation
from goap_kernel.models.world import StateKey

logger = logging.getLogger(__name__)

Detector = Callable[[Mapping], Optional[dict]]


def is_activation_open(activation: ScenarioActivation, current_time: datetime) -> bool:
    """Determine if a rule may fire at current_time."""
    if activation.always:
        return True
    if activation.schedule:
        try:
            return bool(croniter.match(activation.schedule, current_time))
        except (ValueError, KeyError):
            # Invalid cron expression, treat as closed (fail-safe)
            logger.warning("Invalid scenario schedule %r", activation.schedule)
            return False
    return False


class DetectedScenario:
    """A trouble pattern found in the world state, with the goal that fixes it."""

    def __init__(self, scenario: str, goal: Goal, evidence: Optional[dict] = None):
        self.scenario = scenario
        self.goal = goal
        self.evidence = evidence or {}
        self.detected_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "scenario": self.scenario,
            "goal_id": self.goal.id,
            "evidence": self.evidence,
            "detected_at": self.detected_at.isoformat(),
        }


class ScenarioRule:
    """One scenario class: how to detect it and which goal to raise."""

    def __init__(
        self,
        name: str,
        goal_name: str,
        description: str,
        category: GoalCategory,
        target_state: dict,
        priority: int,
        detector: Detector,
        activation: Optional[ScenarioActivation] = None,
    ):
        self.name = name
        self.goal_name = goal_name
        self.description = description
        self.category = category
        self.target_state = target_state
        self.priority = priority
        self.detector = detector
        self.activation = activation or ScenarioActivation()

    def build_goal(self, evidence: dict) -> Goal:
        return Goal(
            id=f"{self.name}_{uuid4().hex[:12]}",
            name=self.goal_name,
            description=self.description,
            target_state=dict(self.target_state),
            priority=self.priority,
            context=GoalContext(type=self.category, scenario=self.name, details=evidence),
        )


def _items(snapshot: Mapping, key: str) -> list:
    value = snapshot.get(key)
    return list(value) if isinstance(value, (list, tuple)) else []


class ScenarioWatcher:
    """Runs every registered scenario rule against a world snapshot."""

    def __init__(self, backlog_threshold: int = 5):
        self.backlog_threshold = backlog_threshold
        self._rules: List[ScenarioRule] = []
        self._register_default_rules()

    @property
    def rules(self) -> List[ScenarioRule]:
        return list(self._rules)

    def register(self, rule: ScenarioRule) -> None:
        """Add a rule, replacing any rule of the same name."""
        self._rules = [r for r in self._rules if r.name != rule.name]
        self._rules.append(rule)

    def unregister(self, name: str) -> bool:
        before = len(self._rules)
        self._rules = [r for r in self._rules if r.name != name]
        return len(self._rules) < before

    def _register_default_rules(self) -> None:
        """Register the warehouse trouble patterns."""
        self._rules = [
            ScenarioRule(
                name="low_stock",
                goal_name="Restock Low Inventory",
                description="Address low stock items",
                category=GoalCategory.INVENTORY_OPTIMIZATION,
                target_state={StateKey.LOW_STOCK_ITEMS: []},
                priority=9,
                detector=self._detect_low_stock,
            ),
            ScenarioRule(
                name="order_backlog",
                goal_name="Process Order Backlog",
                description="Clear the order queue",
                category=GoalCategory.ORDER_FULFILLMENT,
                target_state={StateKey.ORDERS_IN_QUEUE: []},
                priority=10,
                detector=self._detect_order_backlog,
            ),
            ScenarioRule(
                name="inspection_backlog",
                goal_name="Inspect Received Items",
                description="Quality-inspect batches waiting for inspection",
                category=GoalCategory.QUALITY_ASSURANCE,
                target_state={StateKey.ITEMS_NEED_INSPECTION: []},
                priority=8,
                detector=self._detect_inspection_backlog,
            ),
            ScenarioRule(
                name="equipment_maintenance",
                goal_name="Maintain Equipment",
                description="Repair equipment flagged for maintenance",
                category=GoalCategory.EQUIPMENT_MAINTENANCE,
                target_state={StateKey.EQUIPMENT_NEEDS_MAINTENANCE: []},
                priority=7,
                detector=self._detect_equipment_maintenance,
            ),
        ]

    def check(
        self, snapshot: Mapping, current_time: Optional[datetime] = None
    ) -> List[DetectedScenario]:
        """Run all open rules and return the scenarios they detect."""
        if current_time is None:
            current_time = datetime.now(timezone.utc)

        detected = []
        for rule in self._rules:
            if not is_activation_open(rule.activation, current_time):
                continue
            evidence = rule.detector(snapshot)
            if evidence is not None:
                detected.append(DetectedScenario(rule.name, rule.build_goal(evidence), evidence))
        return detected

    # --- Default detectors ---

    def _detect_low_stock(self, snapshot: Mapping) -> Optional[dict]:
        items = _items(snapshot, StateKey.LOW_STOCK_ITEMS)
        return {"low_stock_items": items} if items else None

    def _detect_order_backlog(self, snapshot: Mapping) -> Optional[dict]:
        orders = _items(snapshot, StateKey.ORDERS_IN_QUEUE)
        if len(orders) > self.backlog_threshold:
            return {"queued_orders": len(orders), "threshold": self.backlog_threshold}
        return None

    def _detect_inspection_backlog(self, snapshot: Mapping) -> Optional[dict]:
        batches = _items(snapshot, StateKey.ITEMS_NEED_INSPECTION)
        return {"batches": batches} if batches else None

    def _detect_equipment_maintenance(self, snapshot: Mapping) -> Optional[dict]:
        equipment = _items(snapshot, StateKey.EQUIPMENT_NEEDS_MAINTENANCE)
        return {"equipment": equipment} if equipment else None
