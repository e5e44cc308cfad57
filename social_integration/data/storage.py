"""
In-memory storage of the statistics recorded during a run.
"""

import copy
from typing import List, Dict, Any, Optional

import numpy as np


class DataStorage:
    """
    Keeps the statistics snapshots and opinion vectors of recorded timesteps.
    """

    def __init__(self):
        """Initialize data storage."""
        self.timesteps: List[int] = []
        self.stats_history: List[Dict[str, Dict[str, float]]] = []
        self.opinion_history: List[np.ndarray] = []
        self.cluster_history: List[Optional[int]] = []
        self.n_agents = 0
        self.guest_ratio = 0.0

    def initialize(self, n_agents: int, guest_ratio: float):
        """
        Reset storage for a new run.

        Args:
            n_agents: Number of agents
            guest_ratio: Fraction of guests in the population
        """
        self.timesteps = []
        self.stats_history = []
        self.opinion_history = []
        self.cluster_history = []
        self.n_agents = n_agents
        self.guest_ratio = guest_ratio

    def store_timestep(self, timestep: int, stats: Dict[str, Dict[str, float]],
                       opinions: np.ndarray, n_clusters: Optional[int] = None):
        """
        Store timestep data.

        Args:
            timestep: Current timestep
            stats: Statistics snapshot of the network
            opinions: Opinion vector
            n_clusters: Number of connected components, if computed
        """
        self.timesteps.append(timestep)
        self.stats_history.append(copy.deepcopy(stats))
        self.opinion_history.append(np.array(opinions, dtype=float))
        self.cluster_history.append(n_clusters)

    def series(self, group: str, key: str) -> List[float]:
        """
        One statistic over all recorded timesteps, e.g. ('avg_link', 'guest_host').
        """
        return [stats[group][key] for stats in self.stats_history]

    def latest(self) -> Optional[Dict[str, Dict[str, float]]]:
        return copy.deepcopy(self.stats_history[-1]) if self.stats_history else None

    def __len__(self) -> int:
        return len(self.timesteps)

    def get_simulation_results(self) -> Dict[str, Any]:
        """
        Get complete simulation results.

        Returns:
            Dictionary containing all recorded data as plain Python types
        """
        return {
            'timesteps': list(self.timesteps),
            'stats_history': copy.deepcopy(self.stats_history),
            'opinion_history': [op.tolist() for op in self.opinion_history],
            'cluster_history': list(self.cluster_history),
            'n_agents': self.n_agents,
            'guest_ratio': self.guest_ratio,
        }
