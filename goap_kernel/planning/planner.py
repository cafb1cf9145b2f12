"""
GOAP Planner — backward-chaining best-first search over action effects.

Search runs from the goal towards the current world state:
  - A node holds the conditions that must be true before its action path
    runs, the accumulated action cost and the path itself (last action first).
    Conditions already true in the snapshot stay in the node, so an action
    chosen later in the search cannot silently undo them.
  - An action expands a node when its effects achieve or advance at least one
    condition without contradicting another. Each condition on a key the
    action writes is regressed to what must hold before the effect (a count
    that must reach 2 after an increment must reach 1 before it); the rest
    carry over, and the action's preconditions are added.
  - Nodes are ordered by cost + heuristic (conditions not yet true in the
    snapshot), then by path length, then by the registration order of the
    actions in the path, so identical inputs always produce the identical plan.
  - A node is a solution once its path, replayed forwards from the snapshot,
    respects every precondition and ends in a state satisfying the goal.
"""

import heapq
import itertools
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from goap_kernel.models.action import Action
from goap_kernel.models.goal import Goal
from goap_kernel.models.plan import Plan, PlannerResult
from goap_kernel.world_model.conditions import (
    ACHIEVED,
    ADVANCED,
    CONFLICT,
    KEPT,
    MISSING,
    apply_effects,
    conditions_key,
    is_satisfied,
    keys_of,
    regress_condition,
    same_condition,
    unsatisfied,
)

logger = logging.getLogger(__name__)

NO_ACTIONS = "no actions available"
UNREACHABLE = "unreachable goal condition"
EXHAUSTED = "search exhausted"
ALREADY_SATISFIED = "goal already satisfied"


class _SearchNode:
    __slots__ = ("conditions", "cost", "path")

    def __init__(self, conditions: Dict[str, object], cost: float, path: Tuple[Action, ...]):
        self.conditions = conditions
        self.cost = cost
        self.path = path                    # regression order: last action first

    @property
    def depth(self) -> int:
        return len(self.path)

    def forward_actions(self) -> List[Action]:
        return list(reversed(self.path))


class GOAPPlanner:
    """Finds a minimal-cost action sequence that realizes a goal."""

    def __init__(self, max_depth: int = 10, timeout_ms: float = 30000):
        self.max_depth = max_depth
        self.timeout_ms = timeout_ms

    def plan(
        self,
        goal: Goal,
        world_state: Mapping[str, object],
        available_actions: Sequence[Action],
        max_depth: Optional[int] = None,
        timeout_ms: Optional[float] = None,
    ) -> PlannerResult:
        """
        Search for a plan. Failures are reported in the result, never raised:
        an empty catalog, an unreachable condition, or exhausted search bounds.
        """
        started = time.monotonic()
        max_depth = max_depth if max_depth is not None else self.max_depth
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        deadline = started + timeout_ms / 1000.0

        open_conditions = unsatisfied(world_state, goal.target_state)
        if not open_conditions:
            return self._result(True, ALREADY_SATISFIED, started)
        actions = list(available_actions)
        if not actions:
            return self._result(False, NO_ACTIONS, started)

        registration = {action.name: i for i, action in enumerate(actions)}
        unit_cost = self._cheapest_cost_per_effect(actions)

        missing = [
            key for key, expected in open_conditions.items()
            if not any(self._advances(a, key, expected, world_state) for a in actions)
        ]
        if missing:
            return self._result(False, f"{UNREACHABLE}: {keys_of(missing)}", started)

        counter = itertools.count()
        frontier: List[tuple] = []

        def push(node: _SearchNode) -> None:
            outstanding = len(unsatisfied(world_state, node.conditions))
            priority = node.cost + outstanding * unit_cost
            order = tuple(registration[a.name] for a in node.forward_actions())
            heapq.heappush(frontier, (priority, node.depth, order, next(counter), node))

        push(_SearchNode(dict(goal.target_state), 0.0, ()))
        expanded: Dict[tuple, float] = {}
        dead_ends: set = set()
        depth_limited = False
        explored = 0

        while frontier:
            if time.monotonic() > deadline:
                logger.info("Planning for goal %s timed out after %d nodes", goal.id, explored)
                return self._result(False, f"{EXHAUSTED}: timeout", started, explored)

            node = heapq.heappop(frontier)[-1]
            explored += 1

            forward = node.forward_actions()
            if forward and self._replays(world_state, forward, goal.target_state):
                plan = self._build_plan(goal, forward)
                logger.debug(
                    "Plan for goal %s: %s (cost %.2f, %d nodes)",
                    goal.id, plan.action_names, plan.estimated_cost, explored,
                )
                return self._result(
                    True,
                    f"plan found with {len(forward)} actions",
                    started,
                    explored,
                    plan,
                )

            key = conditions_key(node.conditions)
            best = expanded.get(key)
            if best is not None and best <= node.cost:
                continue
            expanded[key] = node.cost

            if node.depth >= max_depth:
                depth_limited = True
                continue

            successors = 0
            for action in actions:
                successor = self._regress(node, action, world_state)
                if successor is not None:
                    push(successor)
                    successors += 1
            if successors == 0:
                dead_ends.update(
                    k for k, v in unsatisfied(world_state, node.conditions).items()
                    if not any(self._advances(a, k, v, world_state) for a in actions)
                )

        if depth_limited:
            return self._result(False, f"{EXHAUSTED}: depth limit {max_depth}", started, explored)
        detail = keys_of(dead_ends) if dead_ends else keys_of(open_conditions)
        return self._result(False, f"{UNREACHABLE}: {detail}", started, explored)

    # --- Search helpers ---

    @staticmethod
    def _advances(action: Action, key: str, expected: object, world_state: Mapping) -> bool:
        """True if the action's effect on key achieves or moves towards expected."""
        if key not in action.effects:
            return False
        outcome, _ = regress_condition(action.effects[key], expected, world_state.get(key, MISSING))
        return outcome in (ACHIEVED, ADVANCED)

    def _regress(
        self, node: _SearchNode, action: Action, world_state: Mapping
    ) -> Optional[_SearchNode]:
        """Regress a node's conditions through an action, or None if irrelevant."""
        remaining = {}
        relevant = False
        for key, expected in node.conditions.items():
            if key not in action.effects:
                remaining[key] = expected
                continue
            outcome, prior = regress_condition(
                action.effects[key], expected, world_state.get(key, MISSING)
            )
            if outcome == CONFLICT:
                return None                 # would undo a condition we still need
            if outcome != KEPT:
                relevant = True
            if outcome != ACHIEVED:
                remaining[key] = prior
        if not relevant:
            return None

        for key, expected in action.preconditions.items():
            if key in remaining:
                if not same_condition(remaining[key], expected):
                    return None
                continue
            remaining[key] = expected

        return _SearchNode(remaining, node.cost + action.cost, node.path + (action,))

    @staticmethod
    def _replays(
        world_state: Mapping, actions: Iterable[Action], target_state: Mapping
    ) -> bool:
        """Simulate the plan forwards and check every precondition and the goal."""
        state = dict(world_state)
        for action in actions:
            if not is_satisfied(state, action.preconditions):
                return False
            state, _ = apply_effects(state, action.effects)
        return is_satisfied(state, target_state)

    @staticmethod
    def _cheapest_cost_per_effect(actions: Iterable[Action]) -> float:
        """
        Lower bound on the cost of satisfying one condition. For unit-cost
        actions with one effect each, the heuristic is the condition count.
        """
        ratios = [a.cost / len(a.effects) for a in actions if a.effects]
        return min(ratios) if ratios else 0.0

    def _build_plan(self, goal: Goal, actions: List[Action]) -> Plan:
        return Plan(
            id=f"plan_{uuid4().hex[:12]}",
            goal_id=goal.id,
            actions=actions,
            estimated_cost=sum(a.cost for a in actions),
            created_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def _result(
        success: bool,
        message: str,
        started: float,
        explored: int = 0,
        plan: Optional[Plan] = None,
    ) -> PlannerResult:
        return PlannerResult(
            success=success,
            message=message,
            plan=plan,
            explored_nodes=explored,
            planning_time_ms=round((time.monotonic() - started) * 1000, 3),
        )
