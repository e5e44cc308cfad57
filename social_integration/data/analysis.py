"""
Data analysis for simulation results.
"""

from typing import Dict, List, Any

import numpy as np

from .storage import DataStorage


def _safe_div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def integration_indicators(stats: Dict[str, Dict[str, float]], guest_ratio: float) -> Dict[str, float]:
    """
    Indicators of how well guests are integrated into the host community.

    guest_integration: share of guest links that go to hosts, relative to the
        host share of the population (1.0 means guests link to hosts as often
        as random mixing would predict).
    guest_utility_ratio: average guest net utility over average host net utility.
    cross_reward_share: share of all rewards flowing through host-guest links,
        relative to the fair share 2 r (1 - r) of random mixing.

    Args:
        stats: Statistics snapshot from NetworkModel.compute_aggregates
        guest_ratio: Fraction of guests in the population

    Returns:
        Dictionary of indicators
    """
    links = stats['avg_link']
    utility = stats['avg_utility']
    rewards = stats['total_reward']

    guest_links = links['guest_host'] + links['guest_guest']
    host_share = 1.0 - guest_ratio
    fair_cross_share = 2.0 * guest_ratio * (1.0 - guest_ratio)

    return {
        'guest_integration': _safe_div(_safe_div(links['guest_host'], guest_links), host_share),
        'guest_utility_ratio': _safe_div(utility['guest'], utility['host']),
        'cross_reward_share': _safe_div(_safe_div(rewards['host_guest'], rewards['total']), fair_cross_share),
    }


def format_report(stats: Dict[str, Dict[str, float]], timestep: int, guest_ratio: float) -> str:
    """Multi-line text report of one statistics snapshot."""
    links = stats['avg_link']
    utility = stats['avg_utility']
    opinion = stats['avg_opinion']
    indicators = integration_indicators(stats, guest_ratio)

    lines = [
        f"Time = {timestep}",
        "Average number of links per node: all, h2h/h, h2g/h, g2h/g, g2g/g",
        "\t" + "\t".join(f"{links[key]:.4f}" for key in
                         ('total', 'host_host', 'host_guest', 'guest_host', 'guest_guest')),
        f"Indicator of guest integration = {indicators['guest_integration']:.4f}",
        "Average utility per node: all, host, guest",
        "\t" + "\t".join(f"{utility[key]:.4f}" for key in ('total', 'host', 'guest')),
        "Average opinion per node: all, host, guest",
        "\t" + "\t".join(f"{opinion[key]:.4f}" for key in ('total', 'host', 'guest')),
        f"Guest utility compares to host utility = {indicators['guest_utility_ratio']:.4f}",
        f"Rewards through host-guest links compares to the fair share = {indicators['cross_reward_share']:.4f}",
    ]
    return "\n".join(lines)


class SimulationAnalyzer:
    """
    Analyzes simulation results and generates insights.
    """

    def __init__(self, data_storage: DataStorage):
        """
        Initialize analyzer.

        Args:
            data_storage: Data storage containing simulation results
        """
        self.data_storage = data_storage

    def analyze_link_evolution(self) -> Dict[str, Any]:
        """
        Analyze how the ties between and within populations evolve.

        Returns:
            Dictionary containing link evolution analysis
        """
        if not self.data_storage.stats_history:
            return {}

        guest_ratio = self.data_storage.guest_ratio
        integration = [integration_indicators(stats, guest_ratio)['guest_integration']
                       for stats in self.data_storage.stats_history]
        total_links = self.data_storage.series('avg_link', 'total')

        return {
            'avg_links_history': total_links,
            'guest_host_history': self.data_storage.series('avg_link', 'guest_host'),
            'guest_guest_history': self.data_storage.series('avg_link', 'guest_guest'),
            'integration_history': integration,
            'final_avg_links': total_links[-1],
            'final_integration': integration[-1],
        }

    def analyze_opinion_evolution(self) -> Dict[str, Any]:
        """
        Analyze opinion evolution over time.

        Returns:
            Dictionary containing opinion evolution analysis
        """
        opinion_history = self.data_storage.opinion_history
        if not opinion_history:
            return {}

        host_opinions = self.data_storage.series('avg_opinion', 'host')
        guest_opinions = self.data_storage.series('avg_opinion', 'guest')
        variance_history = [float(np.var(opinions)) if len(opinions) else 0.0
                            for opinions in opinion_history]
        gap_history = [h - g for h, g in zip(host_opinions, guest_opinions)]

        return {
            'host_opinion_history': host_opinions,
            'guest_opinion_history': guest_opinions,
            'opinion_gap_history': gap_history,
            'variance_history': variance_history,
            'initial_gap': gap_history[0],
            'final_gap': gap_history[-1],
        }

    def analyze_clusters(self) -> Dict[str, Any]:
        """
        Summarize the connected-component counts that were recorded.
        """
        recorded = [(t, c) for t, c in zip(self.data_storage.timesteps,
                                           self.data_storage.cluster_history) if c is not None]
        if not recorded:
            return {}
        return {
            'cluster_history': [c for _, c in recorded],
            'cluster_timesteps': [t for t, _ in recorded],
            'final_clusters': recorded[-1][1],
        }

    def generate_comprehensive_report(self) -> Dict[str, Any]:
        """
        Generate a comprehensive analysis report.

        Returns:
            Dictionary containing comprehensive analysis
        """
        latest = self.data_storage.latest()
        report = {
            'n_agents': self.data_storage.n_agents,
            'guest_ratio': self.data_storage.guest_ratio,
            'recorded_timesteps': len(self.data_storage),
            'link_evolution': self.analyze_link_evolution(),
            'opinion_evolution': self.analyze_opinion_evolution(),
            'clusters': self.analyze_clusters(),
        }
        if latest is not None:
            report['final_indicators'] = integration_indicators(latest, self.data_storage.guest_ratio)
        return report

    def summary_lines(self) -> List[str]:
        """Short human-readable summary of the run."""
        report = self.generate_comprehensive_report()
        lines = [
            f"Number of agents: {report['n_agents']}",
            f"Recorded timesteps: {report['recorded_timesteps']}",
        ]
        indicators = report.get('final_indicators')
        if indicators:
            lines.append(f"Final guest integration: {indicators['guest_integration']:.4f}")
            lines.append(f"Final guest/host utility: {indicators['guest_utility_ratio']:.4f}")
        opinions = report['opinion_evolution']
        if opinions:
            lines.append(f"Host-guest opinion gap: {opinions['initial_gap']:.4f} -> {opinions['final_gap']:.4f}")
        clusters = report['clusters']
        if clusters:
            lines.append(f"Final number of clusters: {clusters['final_clusters']}")
        return lines
