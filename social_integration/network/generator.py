"""
Network generator: builds the initial host/guest population and its ties.
"""

import logging
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..agent import AgentType, NOT_FOUND
from ..core.mathematics import OpinionPolicy
from .graph_model import NetworkModel

logger = logging.getLogger(__name__)

# Display discs; they only matter to the graphic collaborator
HOST_DISC_CENTER = (-60.0, 0.0)
GUEST_DISC_CENTER = (60.0, 0.0)
DISC_RADIUS = 50.0

DEFAULT_REWIRE_PROBABILITY = 0.1

TOPOLOGIES = ("host_smallworld", "smallworld", "random", "host_smallworld_guests_linked")


def random_position_in_disc(rng: np.random.Generator, center: Sequence[float],
                            radius: float) -> Tuple[float, float]:
    """Uniformly distributed point inside a disc."""
    r = radius * np.sqrt(rng.random())
    theta = 2.0 * np.pi * rng.random()
    return center[0] + r * np.cos(theta), center[1] + r * np.sin(theta)


def _indices_of(network: NetworkModel, agent_type: AgentType) -> List[int]:
    return [i for i, agent in enumerate(network.agents) if agent.agent_type is agent_type]


def _connected(network: NetworkModel, i: int, j: int) -> bool:
    return network.agents[i].find_connection(network.agents[j].agent_id) != NOT_FOUND


def set_neighbor_connections(network: NetworkModel, members: Sequence[int], links_per_agent: int):
    """
    Ring lattice: connect each member to the links_per_agent // 2 nearest
    members on each side of the circular ordering of ``members``.

    Pairs that are already connected are skipped, so short rings wrap onto
    themselves without duplicating ties.
    """
    m = len(members)
    half = links_per_agent // 2
    for position, i in enumerate(members):
        for offset in range(-half, half + 1):
            j = members[(position + offset) % m]
            if j == i or _connected(network, i, j):
                continue
            network.connect(network.agents[i], network.agents[j])


def rewire_initial_connections(network: NetworkModel, members: Sequence[int],
                               rewire_probability: float = DEFAULT_REWIRE_PROBABILITY):
    """
    Watts-Strogatz rewiring of the ties among ``members``.

    Each tie in a member's list is, with probability rewire_probability,
    cut on both ends and replaced by a tie to a random member that is not
    yet connected.

    Raises:
        RuntimeError: If a member is tied to an agent outside ``members``
    """
    rng = network.rng
    member_by_id = {network.agents[k].agent_id: k for k in members}
    for i in members:
        agent = network.agents[i]
        for position in range(agent.num_connections):
            if rng.random() > rewire_probability:
                continue
            partner_id = agent.connections[position].partner_id
            k = member_by_id.get(partner_id)
            if k is None:
                raise RuntimeError(
                    f"Agent {agent.agent_id} is tied to agent {partner_id} outside the rewired group")
            network.agents[k].remove_connection(agent.agent_id)
            agent.remove_connection_at(position)

            while True:
                target = members[int(rng.integers(len(members)))]
                if target == i or _connected(network, i, target):
                    continue
                network.connect(agent, network.agents[target])
                break


def _link_to_random(network: NetworkModel, i: int, candidates: Sequence[int]) -> bool:
    """Tie agent i to a random unconnected candidate; False if none is left."""
    available = [k for k in candidates if k != i and not _connected(network, i, k)]
    if not available:
        return False
    while True:
        k = candidates[int(network.rng.integers(len(candidates)))]
        if k == i or _connected(network, i, k):
            continue
        network.connect(network.agents[i], network.agents[k])
        return True


def random_links(network: NetworkModel, links_per_agent: int):
    """
    Each agent makes links_per_agent // 2 ties to random agents, so the
    average degree ends up close to links_per_agent.
    """
    everyone = list(range(len(network.agents)))
    for i in everyone:
        for _ in range(links_per_agent // 2):
            if not _link_to_random(network, i, everyone):
                break


def link_guests_to_random_hosts(network: NetworkModel, links_per_agent: int):
    """Each guest makes links_per_agent ties to random hosts."""
    hosts = _indices_of(network, AgentType.HOST)
    for i in _indices_of(network, AgentType.GUEST):
        for _ in range(links_per_agent):
            if not _link_to_random(network, i, hosts):
                break


def link_guests_to_fraction_hosts(network: NetworkModel, links_per_agent: int,
                                  host_fraction: Optional[float] = None):
    """
    Each guest makes links_per_agent ties, int(links_per_agent * host_fraction)
    of them to random hosts and the rest to random other guests.

    host_fraction defaults to the model parameter ini_hlink_frac.
    """
    if host_fraction is None:
        host_fraction = network.parameters["ini_hlink_frac"]
    hosts = _indices_of(network, AgentType.HOST)
    guests = _indices_of(network, AgentType.GUEST)
    host_links = int(links_per_agent * host_fraction)
    for i in guests:
        for j in range(links_per_agent):
            _link_to_random(network, i, hosts if j < host_links else guests)
    network.initialize_connections()


def create_network_model(n_agents: int,
                         n_guests: int = 0,
                         guest_ratio: float = 0.1,
                         links_per_agent: int = 5,
                         initial_opinion: float = 1.0,
                         topology: str = "host_smallworld",
                         parameters: Optional[Dict[str, Any]] = None,
                         opinion_policy: Union[OpinionPolicy, str] = OpinionPolicy.STOCHASTIC_NEIGHBOR,
                         random_seed: Optional[int] = None,
                         rewire_probability: float = DEFAULT_REWIRE_PROBABILITY) -> NetworkModel:
    """
    Create a NetworkModel with an initial host/guest population.

    Args:
        n_agents: Total number of agents
        n_guests: Number of guests; when 0 the guest_ratio is used instead
        guest_ratio: Fraction of guests, used only when n_guests is 0
        links_per_agent: Target average number of ties per agent
        initial_opinion: Opinion intensity; hosts start at +value, guests at -value
        topology: One of TOPOLOGIES
        parameters: Model parameter overrides
        opinion_policy: Opinion update policy (enum or its name)
        random_seed: Seed of the shared random generator
        rewire_probability: Watts-Strogatz rewiring probability

    Returns:
        The constructed network model
    """
    if topology not in TOPOLOGIES:
        raise ValueError(f"Unknown topology: {topology}")
    if n_agents < 0:
        raise ValueError("n_agents must not be negative")
    if not isinstance(opinion_policy, OpinionPolicy):
        opinion_policy = OpinionPolicy.from_name(opinion_policy)

    if n_guests:
        n_host = n_agents - n_guests
    else:
        n_host = int(n_agents * (1.0 - guest_ratio))
    if n_host < 0:
        raise ValueError(f"Cannot have {n_guests} guests among {n_agents} agents")

    network = NetworkModel(parameters, opinion_policy=opinion_policy, random_seed=random_seed)
    rng = network.rng
    for i in range(n_agents):
        if i < n_host:
            position = random_position_in_disc(rng, HOST_DISC_CENTER, DISC_RADIUS)
            network.add_agent(AgentType.HOST, initial_opinion, position)
        else:
            position = random_position_in_disc(rng, GUEST_DISC_CENTER, DISC_RADIUS)
            network.add_agent(AgentType.GUEST, -initial_opinion, position)

    if links_per_agent:
        hosts = list(range(n_host))
        if topology == "smallworld":
            everyone = list(range(n_agents))
            set_neighbor_connections(network, everyone, links_per_agent)
            rewire_initial_connections(network, everyone, rewire_probability)
        elif topology == "random":
            random_links(network, links_per_agent)
        else:
            set_neighbor_connections(network, hosts, links_per_agent)
            rewire_initial_connections(network, hosts, rewire_probability)
            if topology == "host_smallworld_guests_linked":
                link_guests_to_random_hosts(network, links_per_agent)

    network.initialize_connections()
    logger.info(f"Created {topology} network: {network.num_host} hosts, "
                f"{network.num_guest} guests, {links_per_agent} links per agent")
    return network


def get_network_params(config_manager) -> Dict[str, Any]:
    """Keyword arguments for create_network_model taken from a ConfigManager."""
    params = config_manager.get_population_params()
    settings = config_manager.get_run_settings()
    params.update({
        "topology": settings["topology"],
        "opinion_policy": settings["opinion_policy"],
        "random_seed": settings["random_seed"],
        "parameters": config_manager.get_model_params(),
    })
    return params
