from .agent import Agent, AgentType
from .config.config_manager import ConfigManager
from .core.mathematics import OpinionPolicy
from .network.graph_model import NetworkModel
from .network.generator import create_network_model
from .simulation.controller import Controller

__all__ = [
    "Agent",
    "AgentType",
    "ConfigManager",
    "OpinionPolicy",
    "NetworkModel",
    "create_network_model",
    "Controller",
]
