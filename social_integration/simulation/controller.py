"""
Simulation controller for the host/guest network.
"""

import logging
from typing import Dict, Any, Optional

from tqdm import tqdm

from ..config.config_manager import ConfigManager
from ..data.analysis import format_report
from ..data.storage import DataStorage
from ..network.generator import create_network_model, get_network_params
from ..network.graph_model import NetworkModel

logger = logging.getLogger(__name__)


class Controller:
    """
    Drives a NetworkModel through time and records its statistics.

    The controller is the whole simulation context: it owns the network, the
    current time and the recorded history. Runs can be paused between steps
    by calling ``step`` instead of ``run_simulation``.
    """

    def __init__(self,
                 network: Optional[NetworkModel] = None,
                 num_timesteps: int = 100,
                 report_interval: int = 10,
                 track_clusters: bool = False,
                 host_initiation_steps: int = 0,
                 **network_kwargs):
        """
        Initialize simulation controller.

        Args:
            network: An existing network; built with create_network_model
                from network_kwargs when omitted
            num_timesteps: Number of steps run by run_simulation
            report_interval: Record and log statistics every this many steps
            track_clusters: Also record the number of clusters (costly)
            host_initiation_steps: If positive, let hosts settle for this many
                steps with guests idling before the run starts
            network_kwargs: Arguments for create_network_model
        """
        if report_interval <= 0:
            raise ValueError("report_interval must be positive")
        self.network = network if network is not None else create_network_model(**network_kwargs)
        self.num_timesteps = num_timesteps
        self.report_interval = report_interval
        self.track_clusters = track_clusters
        self.t = 0

        self.storage = DataStorage()
        self.storage.initialize(len(self.network), self.guest_ratio)

        if host_initiation_steps > 0:
            self.network.host_initiation(host_initiation_steps)

    @classmethod
    def from_config(cls, config_path: Optional[str], **overrides) -> "Controller":
        """
        Build a controller from a parameter file.

        Keyword overrides replace the corresponding file settings
        (e.g. num_timesteps, random_seed).
        """
        config = ConfigManager(config_path)
        if not config.validate_config():
            raise ValueError(f"Invalid configuration in {config_path}")

        settings = config.get_run_settings()
        network_kwargs = get_network_params(config)
        for key in ("random_seed", "topology", "opinion_policy"):
            if overrides.get(key) is not None:
                network_kwargs[key] = overrides.pop(key)
            overrides.pop(key, None)

        kwargs = {
            "num_timesteps": settings["num_timesteps"],
            "report_interval": settings["report_interval"],
            "host_initiation_steps": 50 if settings["host_initiation"] else 0,
        }
        kwargs.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**kwargs, **network_kwargs)

    @property
    def guest_ratio(self) -> float:
        return self.network.num_guest / len(self.network) if len(self.network) else 0.0

    def step(self, n_steps: int = 1):
        """Advance the network by n_steps and record statistics when due."""
        for _ in range(n_steps):
            self.network.advance(1)
            self.t += 1
            if self.t % self.report_interval == 0:
                self._store_current_state()

    def run_simulation(self, progress_bar: bool = True) -> Dict[str, Any]:
        """Run the simulation for num_timesteps steps."""
        if not self.storage.timesteps:
            self._store_current_state()

        iterator = range(self.num_timesteps)
        if progress_bar:
            iterator = tqdm(iterator, desc=f"Simulating ({len(self.network)} agents)", unit="step")

        for _ in iterator:
            self.step(1)

        if self.storage.timesteps[-1] != self.t:
            self._store_current_state()

        return self._get_simulation_results()

    def _store_current_state(self):
        """Compute aggregates and record them."""
        stats = self.network.compute_aggregates()
        n_clusters = self.network.cluster_count() if self.track_clusters else None
        opinions = [agent.opinion for agent in self.network.agents]
        self.storage.store_timestep(self.t, stats, opinions, n_clusters)
        logger.info("\n" + format_report(stats, self.t, self.guest_ratio))
        if n_clusters is not None:
            logger.info(f"Number of clusters = {n_clusters}")

    def _get_simulation_results(self) -> Dict[str, Any]:
        """Get simulation results."""
        results = self.storage.get_simulation_results()
        results['experiment_metadata'] = {
            'n_agents': len(self.network),
            'n_host': self.network.num_host,
            'n_guest': self.network.num_guest,
            'num_timesteps': self.t,
            'random_seed': self.network.random_seed,
            'opinion_policy': self.network.opinion_policy.value,
            'parameters': self.network.get_parameters(),
        }
        results['final_agents'] = self.network.agent_snapshots()
        results['degree_histogram'] = self.network.degree_histogram(20)
        return results
