"""
Configuration manager for the host/guest network simulation.

Parameter files are plain text with one ``name value`` pair per line::

    n_node 500
    immigrant_number 50
    AH 10.0
    enable_net 1

Blank lines and ``#`` comments are skipped. Unknown names and unreadable
values are not applied; they are listed on the ConfigManager so that callers
can refuse the file.
"""

import logging
from typing import Dict, Any, List, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS: Dict[str, Any] = {
    'AH': 10.0,        # reward magnitude between agents of the same type
    'AG': 10.0,        # reward magnitude between a host and a guest
    'sigmaH': 1.0,     # opinion variance of hosts
    'sigmaG': 1.0,     # opinion variance of guests
    'kappa': 100.0,    # opinion inertia
    'alpha': 3.0,      # scale of the degree cost exp(n / alpha)
    'welfare': 0.0,    # welfare baseline
    'gamma': 1.0,      # accepted for parameter file compatibility, not used by the dynamics
    'ini_hlink_frac': 0.9,  # default fraction of guest ties made to hosts
    'enable_op': True,
    'enable_net': True,
}

BOOLEAN_PARAMETERS = frozenset({'enable_op', 'enable_net'})

DEFAULT_INITIAL_CONDITIONS: Dict[str, Any] = {
    'n_node': 500,
    'immigrant_number': 50,
    'immigrant_ratio': 0.1,
    'initial_connections': 5,
    'initial_opinions': 1.0,
}

DEFAULT_RUN_SETTINGS: Dict[str, Any] = {
    'random_seed': None,
    'num_timesteps': 100,
    'report_interval': 10,
    'opinion_policy': 'stochastic_neighbor',
    'topology': 'host_smallworld',
    'host_initiation': False,
}

_INTEGER_KEYS = frozenset({'n_node', 'immigrant_number', 'initial_connections',
                           'random_seed', 'num_timesteps', 'report_interval'})
_BOOLEAN_KEYS = BOOLEAN_PARAMETERS | {'host_initiation'}
_STRING_KEYS = frozenset({'opinion_policy', 'topology'})

_TRUE_WORDS = {'1', 'true', 'yes', 'on'}
_FALSE_WORDS = {'0', 'false', 'no', 'off'}


def parse_bool(text: str) -> bool:
    """Read 1/0, true/false, yes/no or on/off; anything else is a ValueError."""
    word = text.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {text}")


def _parse_value(name: str, text: str) -> Any:
    if name in _BOOLEAN_KEYS:
        return parse_bool(text)
    if name in _STRING_KEYS:
        return text
    if name in _INTEGER_KEYS:
        return int(float(text))
    return float(text)


class ConfigManager:
    """
    Manages configuration for the simulation.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to the parameter file; None means defaults only
        """
        self.config_path = config_path
        # Names read from the file but not applied
        self.unknown_keys: List[str] = []
        self.malformed_keys: List[str] = []
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Read recognized ``name value`` pairs from the parameter file.

        Unknown names and unreadable values are skipped here and listed in
        ``unknown_keys`` / ``malformed_keys`` for the caller to act on.
        """
        if self.config_path is None:
            return {}

        config_path = Path(self.config_path)
        try:
            lines = config_path.read_text().splitlines()
        except OSError as e:
            logger.warning(f"Unable to open {config_path} ({e}); "
                           f"the simulation will proceed with the default parameter values")
            return {}

        known = (set(DEFAULT_PARAMETERS) | set(DEFAULT_INITIAL_CONDITIONS)
                 | set(DEFAULT_RUN_SETTINGS))
        config = {}
        for line_number, line in enumerate(lines, start=1):
            fields = line.split('#', 1)[0].split()
            if len(fields) < 2:
                continue
            name, text = fields[0], fields[1]
            if name not in known:
                logger.debug(f"{config_path}:{line_number}: ignoring unknown key '{name}'")
                self.unknown_keys.append(name)
                continue
            try:
                config[name] = _parse_value(name, text)
            except (ValueError, OverflowError):
                logger.debug(f"{config_path}:{line_number}: ignoring malformed value for '{name}'")
                self.malformed_keys.append(name)
                continue
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self.config.get(key, default)

    def get_model_params(self) -> Dict[str, Any]:
        """
        Get the model parameters set in the file.

        Only names present in the file are returned, so the result can be
        applied as overrides on top of the current values.
        """
        return {name: value for name, value in self.config.items() if name in DEFAULT_PARAMETERS}

    def rejected_model_params(self) -> List[str]:
        """
        Names that would have been taken as model parameters but were not:
        unknown names, and parameter names with an unreadable value.
        Initial-condition and driver keys are never reported.
        """
        return self.unknown_keys + [name for name in self.malformed_keys if name in DEFAULT_PARAMETERS]

    def get_population_params(self) -> Dict[str, Any]:
        """
        Get the initial conditions of the population.

        Returns:
            Dictionary with n_agents, n_guests, guest_ratio, links_per_agent
            and initial_opinion
        """
        values = {key: self.get(key, default) for key, default in DEFAULT_INITIAL_CONDITIONS.items()}
        return {
            'n_agents': values['n_node'],
            'n_guests': values['immigrant_number'],
            'guest_ratio': values['immigrant_ratio'],
            'links_per_agent': values['initial_connections'],
            'initial_opinion': values['initial_opinions'],
        }

    def get_run_settings(self) -> Dict[str, Any]:
        """
        Get driver settings (seed, run length, reporting, policy, topology).
        """
        return {key: self.get(key, default) for key, default in DEFAULT_RUN_SETTINGS.items()}

    def validate_config(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if configuration is valid
        """
        rejected = self.rejected_model_params()
        if rejected:
            logger.error(f"Unusable parameters in {self.config_path}: {', '.join(rejected)}")
            return False

        population = self.get_population_params()

        if population['n_agents'] <= 0:
            logger.error("n_node must be positive")
            return False

        if population['n_guests'] < 0 or population['n_guests'] > population['n_agents']:
            logger.error("immigrant_number must be between 0 and n_node")
            return False

        if not 0.0 <= population['guest_ratio'] <= 1.0:
            logger.error("immigrant_ratio must be in [0, 1]")
            return False

        if population['links_per_agent'] < 0:
            logger.error("initial_connections must not be negative")
            return False

        if population['initial_opinion'] < 0:
            logger.error("initial_opinions must not be negative")
            return False

        if self.get('alpha', DEFAULT_PARAMETERS['alpha']) <= 0:
            logger.error("alpha must be positive")
            return False

        if self.get('num_timesteps', DEFAULT_RUN_SETTINGS['num_timesteps']) < 0:
            logger.error("num_timesteps must not be negative")
            return False

        if self.get('report_interval', DEFAULT_RUN_SETTINGS['report_interval']) <= 0:
            logger.error("report_interval must be positive")
            return False

        return True
