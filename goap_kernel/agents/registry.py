"""
Agent Registry — the roster of agents and the goal assignment heuristic.

Only active agents without a current plan are candidates. When any candidate
carries a capability tag of the goal's category, the others are excluded.
Score = priority + priority boost + capability bonus; the highest score wins
and ties go to the agent registered first.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from goap_kernel.errors import ConfigurationError
from goap_kernel.models.agent import Agent
from goap_kernel.models.goal import Goal, GoalCategory

logger = logging.getLogger(__name__)

CAPABILITY_BONUSES: Dict[GoalCategory, Dict[str, int]] = {
    GoalCategory.ORDER_FULFILLMENT: {"order_fulfillment": 5, "shipping": 3},
    GoalCategory.INVENTORY_OPTIMIZATION: {"inventory_management": 5, "receiving": 3},
    GoalCategory.QUALITY_ASSURANCE: {"quality_control": 5, "inspection": 3},
    GoalCategory.EQUIPMENT_MAINTENANCE: {"maintenance": 5, "repair": 3},
    GoalCategory.GENERAL: {},
}


def capability_bonus(agent: Agent, category: GoalCategory) -> int:
    """Fixed increments for each of the category's tags the agent carries."""
    bonuses = CAPABILITY_BONUSES.get(category, {})
    return sum(points for tag, points in bonuses.items() if tag in agent.capabilities)


def score_agent(agent: Agent, goal: Goal) -> int:
    return agent.effective_priority + capability_bonus(agent, goal.context.type)


class AgentRegistry:
    """In-memory agent roster, kept in registration order."""

    def __init__(self):
        self._agents: Dict[str, Agent] = {}

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def add(self, agent: Agent, world_state: Optional[Mapping] = None) -> Agent:
        """Register an agent. Duplicate ids are a configuration error."""
        if agent.id in self._agents:
            raise ConfigurationError(f"Duplicate agent id: {agent.id}")
        if world_state is not None:
            agent.world_state = world_state
        self._agents[agent.id] = agent
        logger.info("Added agent %s (%s)", agent.id, agent.type.value)
        return agent

    def remove(self, agent_id: str) -> bool:
        """Remove an agent from the roster."""
        if agent_id in self._agents:
            del self._agents[agent_id]
            logger.info("Removed agent %s", agent_id)
            return True
        return False

    def get(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get(agent_id)

    def list(self) -> List[Agent]:
        return list(self._agents.values())

    def idle_agents(self) -> List[Agent]:
        return [a for a in self._agents.values() if a.is_idle]

    def busy_agents(self) -> List[Agent]:
        return [a for a in self._agents.values() if a.current_plan is not None]

    def refresh_world_state(self, snapshot: Mapping) -> None:
        """Hand every agent the latest canonical snapshot."""
        for agent in self._agents.values():
            agent.world_state = snapshot

    def rank_agents(self, goal: Goal) -> List[Tuple[Agent, int]]:
        """Eligible agents with their scores, best first."""
        candidates = self.idle_agents()
        tags = CAPABILITY_BONUSES.get(goal.context.type, {})
        if tags:
            capable = [a for a in candidates if a.capabilities & set(tags)]
            if capable:
                candidates = capable

        scored = [(agent, score_agent(agent, goal)) for agent in candidates]
        # sorted() is stable, so equal scores keep registration order
        return sorted(scored, key=lambda pair: -pair[1])

    def find_best_agent(self, goal: Goal) -> Optional[Agent]:
        """The most suitable idle agent for a goal, or None."""
        ranked = self.rank_agents(goal)
        return ranked[0][0] if ranked else None
