"""
Core mathematical functions for the host/guest network simulation.

This module provides the reward model that drives both opinion influence and
edge formation, the degree-based connection cost, the opinion update policies
and the shortest-path routines used by the statistics layer. Functions work on
plain numpy arrays indexed by the per-step matrix position of each agent;
agent types are passed as their integer codes (+1 host, -1 guest).
"""

import heapq
from enum import Enum
from typing import Dict, Any, List, Tuple, Optional

import numpy as np

HOST_TYPE = 1
GUEST_TYPE = -1

# Distance between nodes with no connecting path
UNREACHABLE = np.iinfo(np.int32).max
# Number of integer distance buckets kept in the degree-of-separation histogram
DISTANCE_HISTOGRAM_SIZE = 50

# ============================================================================
# REWARD MODEL
# ============================================================================

def clamp_opinion(agent_type: int, opinion: float) -> float:
    """Set an opinion that crossed to the other type's side of zero to 0."""
    if (agent_type == HOST_TYPE and opinion < 0) or (agent_type == GUEST_TYPE and opinion > 0):
        return 0.0
    return opinion

def clamp_opinions(agent_types: np.ndarray, opinions: np.ndarray) -> np.ndarray:
    """Vectorised clamp_opinion over a whole population."""
    crossed = ((agent_types == HOST_TYPE) & (opinions < 0)) | ((agent_types == GUEST_TYPE) & (opinions > 0))
    return np.where(crossed, 0.0, opinions)

def utility_function(type_a: int, opinion_a: float, type_b: int, opinion_b: float,
                     parameters: Dict[str, Any]) -> Tuple[float, float]:
    """
    Reward exchanged by two connected agents.

    Each direction is a Gaussian in the opinion distance,
    A * exp(-(x_a - x_b)^2 / sigma2), with A = AH for agents of the same type
    and AG across types, and sigma2 twice the opinion variance of the
    receiving agent's type.

    Args:
        type_a: Type code of agent a
        opinion_a: Opinion of agent a
        type_b: Type code of agent b
        opinion_b: Opinion of agent b
        parameters: Model parameters (AH, AG, sigmaH, sigmaG)

    Returns:
        Tuple of (reward a receives from b, reward b receives from a)
    """
    magnitude = parameters["AH"] if type_a == type_b else parameters["AG"]
    diff2 = (opinion_a - opinion_b) ** 2

    sigma2_a = 2.0 * (parameters["sigmaH"] if type_a == HOST_TYPE else parameters["sigmaG"])
    reward_a = magnitude * np.exp(-diff2 / sigma2_a)
    if type_a == type_b:
        return float(reward_a), float(reward_a)

    sigma2_b = 2.0 * (parameters["sigmaH"] if type_b == HOST_TYPE else parameters["sigmaG"])
    reward_b = magnitude * np.exp(-diff2 / sigma2_b)
    return float(reward_a), float(reward_b)

def reward(type_a: int, opinion_a: float, type_b: int, opinion_b: float,
           parameters: Dict[str, Any]) -> float:
    """Reward agent a receives from its tie to agent b."""
    return utility_function(type_a, opinion_a, type_b, opinion_b, parameters)[0]

def connection_cost(n_links: int, alpha: float) -> float:
    """Cost of maintaining n_links connections: exp(n / alpha)."""
    return float(np.exp(n_links / alpha))

# ============================================================================
# OPINION DYNAMICS MODELS
# ============================================================================

class OpinionPolicy(Enum):
    """How opinions move at each step, and whether hosts take part."""

    WEIGHTED_AVERAGE = "weighted_average"
    STOCHASTIC_NEIGHBOR = "stochastic_neighbor"
    WEIGHTED_AVERAGE_GUESTS = "weighted_average_guests"
    STOCHASTIC_NEIGHBOR_GUESTS = "stochastic_neighbor_guests"

    @property
    def guests_only(self) -> bool:
        return self.value.endswith("_guests")

    @property
    def stochastic(self) -> bool:
        return self.value.startswith("stochastic")

    @classmethod
    def from_name(cls, name: str) -> "OpinionPolicy":
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown opinion policy: {name}") from None

def update_opinions_weighted_average(X_k: np.ndarray, U_k: np.ndarray, kappa: float,
                                     update_mask: np.ndarray) -> np.ndarray:
    """
    Utility-weighted average update:
    x_i[k+1] = (kappa x_i[k] + sum_j U_ij x_j[k]) / (kappa + sum_j U_ij)

    Evaluated synchronously on the old opinions. U_k is zero for unconnected
    pairs, so only neighbours contribute.
    """
    total_utility = U_k.sum(axis=1)
    denominator = kappa + total_utility
    X_next = X_k.copy()
    active = update_mask & (denominator != 0)
    X_next[active] = (kappa * X_k[active] + U_k[active] @ X_k) / denominator[active]
    return X_next

def update_opinions_stochastic_neighbor(X_k: np.ndarray, A_k: np.ndarray, U_k: np.ndarray,
                                        kappa: float, welfare: float,
                                        update_mask: np.ndarray,
                                        rng: np.random.Generator) -> np.ndarray:
    """
    Single-neighbour update: each agent moves towards one neighbour drawn
    with probability proportional to the reward it provides. The welfare
    baseline acts as an extra weight that leaves the opinion unchanged.

    x_i[k+1] = (kappa x_i[k] + x_j[k]) / (kappa + 1)

    Agents are visited in index order and each consumes exactly one draw.
    """
    X_next = X_k.copy()
    for i in np.flatnonzero(update_mask):
        neighbors = np.flatnonzero(A_k[i])
        rewards = U_k[i, neighbors]
        total = rewards.sum() + welfare
        # one draw per linked agent, even when no weight can be drawn against
        draw = rng.random()
        if total <= 0:
            continue
        chosen = np.flatnonzero(draw <= np.cumsum(rewards) / total)
        if chosen.size:
            j = neighbors[chosen[0]]
            X_next[i] = (kappa * X_k[i] + X_k[j]) / (kappa + 1.0)
    return X_next

def update_opinions(X_k: np.ndarray, agent_types: np.ndarray, A_k: np.ndarray, U_k: np.ndarray,
                    link_count: np.ndarray, idling: np.ndarray, parameters: Dict[str, Any],
                    policy: OpinionPolicy, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    One opinion-update pass with the given policy.

    Agents without links and idling agents keep their opinion; guest-only
    policies also leave hosts untouched. Results are clamped by type.

    Returns:
        New opinion vector
    """
    update_mask = (link_count > 0) & ~idling
    if policy.guests_only:
        update_mask &= agent_types != HOST_TYPE

    if policy.stochastic:
        if rng is None:
            raise ValueError("stochastic opinion policies need a random generator")
        X_next = update_opinions_stochastic_neighbor(
            X_k, A_k, U_k, parameters["kappa"], parameters["welfare"], update_mask, rng)
    else:
        X_next = update_opinions_weighted_average(X_k, U_k, parameters["kappa"], update_mask)

    return clamp_opinions(agent_types, X_next)

# ============================================================================
# NETWORK ANALYSIS
# ============================================================================

def algorithm_dijkstra(neighbors: List[np.ndarray], src: int) -> np.ndarray:
    """
    Shortest distances, in edge count, from src to every node.

    Args:
        neighbors: Neighbour index array of each node
        src: Index of the source node

    Returns:
        Distance vector; UNREACHABLE where no path exists, 0 at src
    """
    n = len(neighbors)
    dist = np.full(n, UNREACHABLE, dtype=np.int64)
    visited = np.zeros(n, dtype=bool)
    dist[src] = 0
    queue = [(0, src)]
    while queue:
        d, u = heapq.heappop(queue)
        if visited[u]:
            continue
        visited[u] = True
        for v in neighbors[u]:
            if not visited[v] and d + 1 < dist[v]:
                dist[v] = d + 1
                heapq.heappush(queue, (d + 1, int(v)))
    return dist

def all_pairs_distances(A_k: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run Dijkstra from every node of an unweighted adjacency matrix.

    Returns:
        Tuple of (n x n distance matrix, histogram of distances below
        DISTANCE_HISTOGRAM_SIZE over all ordered pairs)
    """
    n = A_k.shape[0]
    neighbors = [np.flatnonzero(A_k[i]) for i in range(n)]
    distances = np.full((n, n), UNREACHABLE, dtype=np.int64)
    for src in range(n):
        distances[src] = algorithm_dijkstra(neighbors, src)

    finite = distances[distances < DISTANCE_HISTOGRAM_SIZE]
    histogram = np.bincount(finite, minlength=DISTANCE_HISTOGRAM_SIZE)
    return distances, histogram

def get_network_info(adjacency_matrix: np.ndarray) -> Dict[str, Any]:
    """Get information about a network"""
    n_agents = adjacency_matrix.shape[0]
    degrees = np.sum(adjacency_matrix, axis=1)
    total_edges = int(np.sum(adjacency_matrix) // 2)
    max_possible_edges = n_agents * (n_agents - 1) / 2
    density = total_edges / max_possible_edges if max_possible_edges > 0 else 0

    return {
        "n_agents": n_agents,
        "total_edges": total_edges,
        "density": density,
        "average_degree": float(np.mean(degrees)) if n_agents else 0.0,
        "max_degree": int(np.max(degrees)) if n_agents else 0,
        "min_degree": int(np.min(degrees)) if n_agents else 0,
    }
