"""
Utility-driven network rewiring.

Every step each active agent looks at one randomly drawn partner and either
adds the missing tie or cuts the existing one, whichever direction the
partner falls in, if doing so does not lower its net utility.
"""

import logging
from typing import Dict, Any

import numpy as np

from .mathematics import utility_function, connection_cost

logger = logging.getLogger(__name__)


def evolve_adjacency(adjacency: np.ndarray,
                     utility: np.ndarray,
                     link_count: np.ndarray,
                     agent_types: np.ndarray,
                     opinions: np.ndarray,
                     idling: np.ndarray,
                     parameters: Dict[str, Any],
                     rng: np.random.Generator) -> int:
    """
    Apply one rewiring pass in place.

    Agents are visited in index order. For agent i a partner j is drawn
    uniformly among all agents, redrawing while j == i or j is idling. If i
    and j are unconnected (or i has no links) adding the tie is proposed;
    otherwise cutting it is. The change is accepted when

        proposed_reward - cost(proposed degree) >= -cost(current degree)

    where the proposed reward is U(i from j) for an addition and -U_ij for a
    removal. Accepted changes are visible to agents visited later in the pass.

    Args:
        adjacency: 0/1 adjacency matrix (mutated)
        utility: Utility matrix, U_ij = reward i receives from j (mutated)
        link_count: Degree of each agent (mutated)
        agent_types: Type code of each agent
        opinions: Opinion of each agent
        idling: Idling flag of each agent
        parameters: Model parameters
        rng: Shared random generator

    Returns:
        Number of accepted changes
    """
    n = adjacency.shape[0]
    alpha = parameters["alpha"]
    n_active = int(np.count_nonzero(~idling))
    changes = 0

    for i in range(n):
        if idling[i]:
            continue
        # i itself is active, so another active agent must exist to draw
        if n_active < 2:
            continue

        while True:
            j = int(rng.integers(n))
            if j == i or idling[j]:
                continue
            break

        nlink_i = int(link_count[i])
        adding = adjacency[i, j] == 0 or nlink_i == 0
        if adding:
            reward_ij, reward_ji = utility_function(
                agent_types[i], opinions[i], agent_types[j], opinions[j], parameters)
            proposed_reward = reward_ij
            proposed_cost = connection_cost(nlink_i + 1, alpha)
        else:
            proposed_reward = -utility[i, j]
            proposed_cost = connection_cost(nlink_i - 1, alpha)

        current_cost = connection_cost(nlink_i, alpha)
        if proposed_reward - proposed_cost < -current_cost:
            continue

        if adding:
            adjacency[i, j] = adjacency[j, i] = 1
            utility[i, j] = reward_ij
            utility[j, i] = reward_ji
            link_count[i] += 1
            link_count[j] += 1
        else:
            adjacency[i, j] = adjacency[j, i] = 0
            utility[i, j] = utility[j, i] = 0.0
            link_count[i] -= 1
            link_count[j] -= 1
        changes += 1

    logger.debug(f"Rewiring pass accepted {changes} changes")
    return changes
