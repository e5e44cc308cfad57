"""
Network graph model for managing the host/guest social network.

NetworkModel owns the agents, the model parameters and the random generator.
Every timestep it derives a set of dense matrices from the agents' connection
lists, runs the opinion and rewiring dynamics on them and writes the result
back into the connection lists. It also provides the statistics layer.
"""

import copy
import logging
from typing import List, Dict, Any, Optional, Sequence

import numpy as np
import networkx as nx

from ..agent import Agent, AgentType
from ..config.config_manager import ConfigManager, DEFAULT_PARAMETERS, BOOLEAN_PARAMETERS, parse_bool
from ..core.mathematics import (
    OpinionPolicy,
    utility_function,
    connection_cost,
    update_opinions,
    all_pairs_distances,
    UNREACHABLE,
    DISTANCE_HISTOGRAM_SIZE,
    get_network_info,
)
from ..core.social_dynamics import evolve_adjacency

logger = logging.getLogger(__name__)

LINK_CATEGORIES = ("total", "host_host", "host_guest", "guest_host", "guest_guest")
REWARD_CATEGORIES = ("total", "host_host", "guest_guest", "host_guest")
POPULATION_CATEGORIES = ("total", "host", "guest")


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator) / float(denominator) if denominator else 0.0


class StepMatrices:
    """
    Dense matrices derived from the connection lists for a single timestep.

    Row/column i refers to ``agents[i]`` at the time the matrices were built.
    They are discarded at the end of the step and must not be kept across a
    change of the agent list.
    """

    def __init__(self, adjacency: np.ndarray, link_count: np.ndarray):
        self.adjacency = adjacency
        self.link_count = link_count
        self.utility = np.zeros(adjacency.shape, dtype=float)

    @property
    def size(self) -> int:
        return self.adjacency.shape[0]


class NetworkModel:
    """
    Manages the social network structure and provides analysis methods.
    """

    def __init__(self, parameters: Optional[Dict[str, Any]] = None,
                 opinion_policy: OpinionPolicy = OpinionPolicy.STOCHASTIC_NEIGHBOR,
                 random_seed: Optional[int] = None):
        """
        Initialize an empty network model.

        Agents are added by the topology builder (see network.generator) or
        individually with add_agent.

        Args:
            parameters: Overrides of the default model parameters
            opinion_policy: Opinion update policy used by every step
            random_seed: Seed of the random generator shared by all stochastic steps
        """
        self.random_seed = random_seed
        self.rng = np.random.default_rng(random_seed)
        self.opinion_policy = opinion_policy

        self.parameters = dict(DEFAULT_PARAMETERS)
        for name, value in (parameters or {}).items():
            self.change_parameter(name, value)

        self.agents: List[Agent] = []
        self.num_host = 0
        self.num_guest = 0
        self._next_id = 0

        self._matrices: Optional[StepMatrices] = None
        self._distance_matrix: Optional[np.ndarray] = None
        self._distance_histogram: Optional[np.ndarray] = None
        self.dist_up_to_date = False

        self._link_stats = {key: 0.0 for key in LINK_CATEGORIES}
        self._reward_stats = {key: 0.0 for key in REWARD_CATEGORIES}
        self._reward_totals = {key: 0.0 for key in REWARD_CATEGORIES}
        self.stats: Dict[str, Dict[str, float]] = {}

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def change_parameter(self, name: str, value: Any):
        """
        Change one model parameter.

        Boolean parameters accept bools, numbers and the words read by
        ``parse_bool`` ("false", "0", "no", ...).

        Raises:
            ValueError: If no parameter has that name, or the value cannot be
                read for it
        """
        if name not in DEFAULT_PARAMETERS:
            raise ValueError(f"No parameter called {name}")
        if name in BOOLEAN_PARAMETERS:
            self.parameters[name] = parse_bool(value) if isinstance(value, str) else bool(value)
        else:
            self.parameters[name] = float(value)
        logger.debug(f"{name} is {self.parameters[name]}")

    def reset_parameters_from_file(self, file_name: str):
        """
        Apply the model parameters found in a parameter file.

        Initial-condition and driver keys in the file are ignored. A file that
        cannot be read leaves the current values in place.

        Raises:
            ValueError: If the file names an unknown parameter or gives a
                parameter an unreadable value; nothing is applied then
        """
        config = ConfigManager(file_name)
        rejected = config.rejected_model_params()
        if rejected:
            raise ValueError(f"No usable parameter called {', '.join(rejected)} in {file_name}")
        for name, value in config.get_model_params().items():
            self.change_parameter(name, value)

    def get_parameters(self) -> Dict[str, Any]:
        return dict(self.parameters)

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def add_agent(self, agent_type: AgentType, opinion: float,
                  display_position: Optional[Sequence[float]] = None) -> Agent:
        """
        Create an unconnected agent with the next free id and append it.

        Returns:
            The new agent
        """
        agent = Agent(self._next_id, agent_type, opinion, display_position)
        self._next_id += 1
        self.agents.append(agent)
        if agent.is_host:
            self.num_host += 1
        else:
            self.num_guest += 1
        self._refresh_link_stats()
        self._invalidate_distances()
        return agent

    def remove_agent(self, agent_id: int):
        """
        Remove an agent and every connection that points to it.

        Raises:
            KeyError: If no agent has that id
        """
        index = self.index_of(agent_id)
        agent = self.agents.pop(index)
        for partner_id in agent.connected_ids():
            self.get_agent(partner_id).remove_connection(agent_id)
        if agent.is_host:
            self.num_host -= 1
        else:
            self.num_guest -= 1
        self._refresh_link_stats()
        self._invalidate_distances()

    def index_of(self, agent_id: int) -> int:
        for index, agent in enumerate(self.agents):
            if agent.agent_id == agent_id:
                return index
        raise KeyError(f"No agent with id {agent_id}")

    def get_agent(self, agent_id: int) -> Agent:
        return self.agents[self.index_of(agent_id)]

    def connect(self, agent_a: Agent, agent_b: Agent):
        """Create a tie on both endpoints, with rewards from the reward model."""
        reward_a, reward_b = utility_function(
            agent_a.agent_type.value, agent_a.opinion,
            agent_b.agent_type.value, agent_b.opinion, self.parameters)
        agent_a.add_connection(agent_b.agent_id, agent_b.opinion, reward_a)
        agent_b.add_connection(agent_a.agent_id, agent_a.opinion, reward_b)
        self._invalidate_distances()

    def disconnect(self, agent_a: Agent, agent_b: Agent):
        """Remove a tie from both endpoints."""
        agent_a.remove_connection(agent_b.agent_id)
        agent_b.remove_connection(agent_a.agent_id)
        self._invalidate_distances()

    def set_guests_idling(self, value: bool):
        """Freeze (or release) the opinions and connections of all guests."""
        for agent in self.agents:
            if not agent.is_host:
                agent.idling = value

    def agent_snapshots(self) -> List[Dict[str, Any]]:
        """Id, type, opinion and display position of every agent."""
        return [agent.snapshot() for agent in self.agents]

    def _opinion_vector(self) -> np.ndarray:
        return np.array([agent.opinion for agent in self.agents], dtype=float)

    def _type_vector(self) -> np.ndarray:
        return np.array([agent.agent_type.value for agent in self.agents], dtype=int)

    def _idling_vector(self) -> np.ndarray:
        return np.array([agent.idling for agent in self.agents], dtype=bool)

    # ------------------------------------------------------------------
    # Step engine
    # ------------------------------------------------------------------

    def create_adjacency_matrix(self) -> StepMatrices:
        """
        Build the adjacency matrix and link counts from the connection lists.

        Raises:
            RuntimeError: If a connection is not mirrored by its partner, points
                to an unknown agent or is listed twice
        """
        n = len(self.agents)
        index = {agent.agent_id: i for i, agent in enumerate(self.agents)}
        adjacency = np.zeros((n, n), dtype=np.int8)
        link_count = np.zeros(n, dtype=np.int64)

        for i, agent in enumerate(self.agents):
            for partner_id in agent.connected_ids():
                j = index.get(partner_id)
                if j is None or j == i:
                    raise RuntimeError(
                        f"Agent {agent.agent_id} holds an invalid connection to {partner_id}")
                if adjacency[i, j]:
                    raise RuntimeError(
                        f"Agent {agent.agent_id} lists agent {partner_id} twice")
                adjacency[i, j] = 1
            link_count[i] = agent.num_connections

        if not np.array_equal(adjacency, adjacency.T):
            raise RuntimeError("Adjacency matrix is not symmetric")
        return StepMatrices(adjacency, link_count)

    def update_utility_matrix(self, matrices: StepMatrices):
        """Recompute U_ij = reward i receives from j for every connected pair."""
        self._check_size(matrices)
        types = self._type_vector()
        opinions = self._opinion_vector()
        utility = np.zeros(matrices.adjacency.shape, dtype=float)
        rows, cols = np.nonzero(np.triu(matrices.adjacency, 1))
        for i, j in zip(rows, cols):
            utility[i, j], utility[j, i] = utility_function(
                types[i], opinions[i], types[j], opinions[j], self.parameters)
        matrices.utility = utility

    def create_utility_matrix(self) -> StepMatrices:
        matrices = self.create_adjacency_matrix()
        self.update_utility_matrix(matrices)
        return matrices

    def update_opinions(self, matrices: StepMatrices):
        """Run one opinion-update pass with the configured policy."""
        self._check_size(matrices)
        new_opinions = update_opinions(
            self._opinion_vector(), self._type_vector(), matrices.adjacency,
            matrices.utility, matrices.link_count, self._idling_vector(),
            self.parameters, self.opinion_policy, self.rng)
        for agent, opinion in zip(self.agents, new_opinions):
            agent.update_opinion(opinion)

    def evolve_adjacency_matrix(self, matrices: StepMatrices) -> int:
        """Run one rewiring pass on the step matrices."""
        self._check_size(matrices)
        return evolve_adjacency(
            matrices.adjacency, matrices.utility, matrices.link_count,
            self._type_vector(), self._opinion_vector(), self._idling_vector(),
            self.parameters, self.rng)

    def update_connections(self, matrices: StepMatrices):
        """
        Rebuild every agent's connection list from the step matrices.

        Also resets costs and net utilities and refreshes the link and reward
        statistics.
        """
        self._check_size(matrices)
        alpha = self.parameters["alpha"]

        for i, agent in enumerate(self.agents):
            agent.clear_connections()
            for j in np.flatnonzero(matrices.adjacency[i]):
                partner = self.agents[j]
                agent.add_connection(partner.agent_id, partner.opinion, float(matrices.utility[i, j]))
            agent.cost = connection_cost(int(matrices.link_count[i]), alpha)

        self._refresh_link_stats()
        self._invalidate_distances()

    def _refresh_link_stats(self):
        """Recompute the link and reward statistics from the connection lists."""
        is_host = {agent.agent_id: agent.is_host for agent in self.agents}
        links = {"host_host": 0, "host_guest": 0, "guest_guest": 0}
        rewards = {"host_host": 0.0, "host_guest": 0.0, "guest_guest": 0.0}
        total_links = 0
        total_reward = 0.0

        for agent in self.agents:
            for connection in agent.connections:
                partner_is_host = is_host[connection.partner_id]
                if agent.is_host and partner_is_host:
                    category = "host_host"
                elif agent.is_host or partner_is_host:
                    category = "host_guest"
                else:
                    category = "guest_guest"
                links[category] += 1
                rewards[category] += connection.reward
            total_links += agent.num_connections
            total_reward += agent.total_utility

        self._link_stats = {
            "total": _ratio(total_links, len(self.agents)),
            "host_host": _ratio(links["host_host"], self.num_host),
            "host_guest": _ratio(links["host_guest"], self.num_host) / 2,
            "guest_host": _ratio(links["host_guest"], self.num_guest) / 2,
            "guest_guest": _ratio(links["guest_guest"], self.num_guest),
        }
        self._reward_totals = {"total": float(total_reward),
                               **{key: float(value) for key, value in rewards.items()}}
        self._reward_stats = {
            "total": _ratio(total_reward, total_links),
            **{key: _ratio(rewards[key], links[key]) for key in rewards},
        }

    def next_time_step(self):
        """
        Advance the simulation from time t to t+1.
        """
        matrices = self.create_utility_matrix()
        self._matrices = matrices
        try:
            if self.parameters["enable_op"]:
                self.update_opinions(matrices)
            self.update_utility_matrix(matrices)
            if self.parameters["enable_net"]:
                self.evolve_adjacency_matrix(matrices)
            self.update_connections(matrices)
        finally:
            self._matrices = None

    def advance(self, n_steps: int = 1):
        for _ in range(n_steps):
            self.next_time_step()

    def host_initiation(self, n_steps: int = 50) -> float:
        """
        Let the host community settle before guests take part.

        Guests idle while the hosts rewire for n_steps rounds with no opinion
        change. Then the guests are released and the statistics refreshed.

        Returns:
            Average number of host-host links per host
        """
        self.set_guests_idling(True)
        matrices = self.create_utility_matrix()
        self._matrices = matrices
        try:
            for _ in range(n_steps):
                self.update_utility_matrix(matrices)
                self.evolve_adjacency_matrix(matrices)
            self.update_connections(matrices)
        finally:
            self._matrices = None
            self.set_guests_idling(False)

        stats = self.compute_aggregates()
        logger.info(f"Host initiation finished after {n_steps} steps: "
                    f"{stats['avg_link']['host_host']:.3f} host links per host")
        return stats["avg_link"]["host_host"]

    def initialize_connections(self):
        """Resync connection lists, costs and statistics after construction."""
        matrices = self.create_utility_matrix()
        self.update_connections(matrices)
        self._distance_matrix = None
        self._distance_histogram = None
        self.dist_up_to_date = False

    def _check_size(self, matrices: StepMatrices):
        n = len(self.agents)
        if (matrices.adjacency.shape != (n, n) or matrices.utility.shape != (n, n)
                or matrices.link_count.shape != (n,)):
            raise RuntimeError(
                f"Step matrices sized for {matrices.size} agents, network has {n}")

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def compute_aggregates(self) -> Dict[str, Dict[str, float]]:
        """
        Compute averages of opinion and net utility per population.

        The returned snapshot also carries the link and reward averages of
        the latest connection update. It replaces ``stats`` as a whole.

        Returns:
            Copy of the statistics snapshot
        """
        opinion_sum = {"host": 0.0, "guest": 0.0}
        utility_sum = {"host": 0.0, "guest": 0.0}
        for agent in self.agents:
            group = "host" if agent.is_host else "guest"
            opinion_sum[group] += agent.opinion
            utility_sum[group] += agent.net_utility

        n = self.num_host + self.num_guest
        self.stats = {
            "avg_link": dict(self._link_stats),
            "avg_opinion": {
                "total": _ratio(opinion_sum["host"] + opinion_sum["guest"], n),
                "host": _ratio(opinion_sum["host"], self.num_host),
                "guest": _ratio(opinion_sum["guest"], self.num_guest),
            },
            "avg_utility": {
                "total": _ratio(utility_sum["host"] + utility_sum["guest"], n),
                "host": _ratio(utility_sum["host"], self.num_host),
                "guest": _ratio(utility_sum["guest"], self.num_guest),
            },
            "avg_reward": dict(self._reward_stats),
            "total_reward": dict(self._reward_totals),
        }
        return self.get_stats()

    def get_stats(self) -> Dict[str, Dict[str, float]]:
        return copy.deepcopy(self.stats)

    def is_distance_matrix_updated(self) -> bool:
        return self.dist_up_to_date

    def _invalidate_distances(self):
        self.dist_up_to_date = False

    def update_distance_matrix(self):
        """
        Recompute all-pairs shortest path lengths and their histogram.

        Uses the adjacency of the running step if there is one, otherwise
        builds it from the connection lists just for this computation.
        """
        matrices = self._matrices if self._matrices is not None else self.create_adjacency_matrix()
        self._distance_matrix, self._distance_histogram = all_pairs_distances(matrices.adjacency)
        self.dist_up_to_date = True

    def distances(self) -> np.ndarray:
        """
        All-pairs distances in edge count; UNREACHABLE for disconnected pairs.
        """
        if not self.dist_up_to_date:
            self.update_distance_matrix()
        return self._distance_matrix.copy()

    def distance_histogram(self) -> List[int]:
        """Number of ordered node pairs at each distance below the histogram size."""
        if not self.dist_up_to_date:
            self.update_distance_matrix()
        return self._distance_histogram.tolist()

    def cluster_groups(self) -> List[List[int]]:
        """
        Partition the agent indices into clusters of mutually reachable agents.

        Repeatedly takes the first unassigned index and groups with it every
        unassigned index at a finite distance. Distances are always recomputed,
        since connections may have been changed through the Agent API.
        """
        self.update_distance_matrix()
        remaining = list(range(len(self.agents)))
        clusters = []
        while remaining:
            src = remaining[0]
            group = [src]
            rest = []
            for index in remaining[1:]:
                if self._distance_matrix[src, index] < UNREACHABLE:
                    group.append(index)
                else:
                    rest.append(index)
            clusters.append(group)
            remaining = rest
        return clusters

    def cluster_count(self) -> int:
        """Number of connected components at the moment."""
        return len(self.cluster_groups())

    def degree_histogram(self, max_degree: int) -> List[int]:
        """
        Count agents by number of connections; degrees >= max_degree are dropped.
        """
        degree = [0] * max_degree
        for agent in self.agents:
            if agent.num_connections < max_degree:
                degree[agent.num_connections] += 1
        return degree

    def adjacency_snapshot(self) -> np.ndarray:
        """Copy of the adjacency matrix implied by the current connections."""
        return self.create_adjacency_matrix().adjacency.copy()

    def link_counts(self) -> np.ndarray:
        return np.array([agent.num_connections for agent in self.agents], dtype=np.int64)

    def to_networkx(self) -> nx.Graph:
        """Current network as a networkx graph keyed by agent id."""
        graph = nx.Graph()
        for agent in self.agents:
            graph.add_node(agent.agent_id, agent_type=agent.agent_type.name.lower(),
                           opinion=float(agent.opinion))
        for agent in self.agents:
            for partner_id in agent.connected_ids():
                graph.add_edge(agent.agent_id, partner_id)
        return graph

    def get_network_info(self) -> Dict[str, Any]:
        info = get_network_info(self.adjacency_snapshot())
        info.update({"n_host": self.num_host, "n_guest": self.num_guest})
        return info

    def __len__(self) -> int:
        return len(self.agents)


__all__ = ["NetworkModel", "StepMatrices", "DISTANCE_HISTOGRAM_SIZE", "UNREACHABLE"]
