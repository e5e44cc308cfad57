"""
Core mathematical functions for the host/guest network simulation.
"""

from .mathematics import (
    OpinionPolicy,
    utility_function,
    reward,
    connection_cost,
    update_opinions,
    all_pairs_distances,
    UNREACHABLE,
)
from .social_dynamics import evolve_adjacency

__all__ = [
    "OpinionPolicy",
    "utility_function",
    "reward",
    "connection_cost",
    "update_opinions",
    "all_pairs_distances",
    "UNREACHABLE",
    "evolve_adjacency",
]
