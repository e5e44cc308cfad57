"""
Network container and topology builder.
"""

from .graph_model import NetworkModel, StepMatrices
from .generator import create_network_model, link_guests_to_fraction_hosts, get_network_params

__all__ = [
    "NetworkModel",
    "StepMatrices",
    "create_network_model",
    "link_guests_to_fraction_hosts",
    "get_network_params",
]
