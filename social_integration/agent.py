"""
Agent class for the host/guest social network.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from .core.mathematics import clamp_opinion

logger = logging.getLogger(__name__)

# Position returned by Agent.find_connection for an unconnected partner
NOT_FOUND = -1


class AgentType(Enum):
    """Sub-population an agent belongs to. Fixed at creation."""

    HOST = 1
    GUEST = -1


@dataclass
class Connection:
    """One end of an undirected social tie, as stored by the owning agent."""

    partner_id: int
    partner_opinion: float
    reward: float
    # Never incremented; connections are rebuilt from scratch every step.
    duration: int = 0


class Agent:
    """
    Represents an individual agent in the social network.

    An agent only keeps its own end of every connection. Whoever adds or
    removes a connection is responsible for mirroring the change on the
    partner agent.
    """

    def __init__(self, agent_id: int, agent_type: AgentType, opinion: float,
                 display_position: Optional[Sequence[float]] = None):
        """
        Initialize an agent.

        Args:
            agent_id: Unique identifier for the agent
            agent_type: Host or guest
            opinion: Initial opinion value (hosts >= 0, guests <= 0)
            display_position: Initial (x, y) position for graphic display
        """
        self.agent_id = agent_id
        self.agent_type = agent_type
        self.opinion = clamp_opinion(agent_type.value, float(opinion))
        self.idling = False
        self.connections: List[Connection] = []
        self.total_utility = 0.0
        self.cost = 0.0
        if display_position is None:
            display_position = (0.0, 0.0)
        self.display_position = np.asarray(display_position, dtype=float)

    @property
    def is_host(self) -> bool:
        return self.agent_type is AgentType.HOST

    @property
    def net_utility(self) -> float:
        """Total reward received from connections minus the cost of keeping them."""
        return self.total_utility - self.cost

    @property
    def num_connections(self) -> int:
        return len(self.connections)

    def get_opinion(self) -> float:
        return self.opinion

    def update_opinion(self, new_opinion: float):
        """
        Update the agent's opinion.

        A value on the wrong side of zero for the agent's type is set to 0.

        Args:
            new_opinion: Candidate opinion value
        """
        self.opinion = clamp_opinion(self.agent_type.value, float(new_opinion))

    def connected_ids(self) -> List[int]:
        return [c.partner_id for c in self.connections]

    def add_connection(self, partner_id: int, partner_opinion: float, reward: float):
        """
        Append a connection and add its reward to the total utility.

        Args:
            partner_id: Id of the connected agent
            partner_opinion: Opinion of the partner at connection time
            reward: Utility this agent receives from the partner
        """
        self.connections.append(Connection(partner_id, float(partner_opinion), float(reward)))
        self.total_utility += reward

    def find_connection(self, partner_id: int) -> int:
        """
        Find the list position of the connection to a partner.

        Returns:
            Position in ``connections``, or ``NOT_FOUND`` if unconnected
        """
        for position, connection in enumerate(self.connections):
            if connection.partner_id == partner_id:
                return position
        return NOT_FOUND

    def remove_connection(self, partner_id: int) -> int:
        """
        Remove the connection to a partner.

        Args:
            partner_id: Id of the connected agent

        Returns:
            Duration of the removed connection, or 0 if there was none
        """
        position = self.find_connection(partner_id)
        if position == NOT_FOUND:
            logger.error(
                f"Agent {self.agent_id} has no connection to agent {partner_id} "
                f"({self.num_connections} connections); nothing removed"
            )
            return 0
        return self.remove_connection_at(position)

    def remove_connection_at(self, position: int) -> int:
        """
        Remove a connection by its list position.

        Returns:
            Duration of the removed connection
        """
        if position < 0 or position >= len(self.connections):
            raise IndexError(
                f"Agent {self.agent_id}: connection position {position} out of range"
            )
        connection = self.connections.pop(position)
        self.total_utility -= connection.reward
        return connection.duration

    def clear_connections(self):
        self.connections.clear()
        self.total_utility = 0.0

    def get_reward(self, partner_id: int) -> float:
        position = self.find_connection(partner_id)
        if position == NOT_FOUND:
            raise KeyError(f"Agent {self.agent_id} is not connected to agent {partner_id}")
        return self.connections[position].reward

    def get_partner_opinion(self, partner_id: int) -> float:
        position = self.find_connection(partner_id)
        if position == NOT_FOUND:
            raise KeyError(f"Agent {self.agent_id} is not connected to agent {partner_id}")
        return self.connections[position].partner_opinion

    def snapshot(self) -> dict:
        """Read-only view handed to display and reporting collaborators."""
        return {
            'agent_id': self.agent_id,
            'agent_type': self.agent_type.name.lower(),
            'opinion': float(self.opinion),
            'position': self.display_position.tolist(),
        }

    def __repr__(self) -> str:
        return (f"Agent(id={self.agent_id}, type={self.agent_type.name}, "
                f"opinion={self.opinion:.3f}, links={self.num_connections})")
