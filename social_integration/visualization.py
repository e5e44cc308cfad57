"""
Visualization module for the host/guest network simulation.

Static matplotlib figures for inspecting a run: node display positions with
their ties, and the recorded statistics history.
"""

import json
from typing import Dict, Any, Optional

import matplotlib.pyplot as plt
import numpy as np

from .data.storage import DataStorage
from .network.graph_model import NetworkModel


def plot_network_snapshot(network: NetworkModel, save_path: Optional[str] = None,
                          title: Optional[str] = None):
    """
    Plot agents at their display positions, colored by opinion.

    Hosts are drawn as circles and guests as squares; ties are straight lines.

    Args:
        network: Network to draw
        save_path: Optional path to save the plot
        title: Optional figure title
    """
    snapshots = network.agent_snapshots()
    positions = {s['agent_id']: s['position'] for s in snapshots}

    fig, ax = plt.subplots(figsize=(12, 8))
    for agent in network.agents:
        x0, y0 = positions[agent.agent_id]
        for partner_id in agent.connected_ids():
            # each tie once
            if partner_id > agent.agent_id:
                x1, y1 = positions[partner_id]
                ax.plot([x0, x1], [y0, y1], color='gray', linewidth=0.5, alpha=0.4, zorder=1)

    for agent_type, marker in (('host', 'o'), ('guest', 's')):
        group = [s for s in snapshots if s['agent_type'] == agent_type]
        if not group:
            continue
        xy = np.array([s['position'] for s in group], dtype=float)
        opinions = [s['opinion'] for s in group]
        scatter = ax.scatter(xy[:, 0], xy[:, 1], c=opinions, cmap='coolwarm_r',
                             vmin=-1, vmax=1, marker=marker, s=25,
                             label=agent_type, zorder=2)
    if snapshots:
        fig.colorbar(scatter, ax=ax, label='Opinion')
        ax.legend(loc='upper right')

    ax.set_aspect('equal')
    ax.set_title(title or f'Network snapshot ({network.num_host} hosts, {network.num_guest} guests)')
    ax.set_xticks([])
    ax.set_yticks([])

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)


def plot_stats_history(storage: DataStorage, save_path: Optional[str] = None):
    """
    Plot link, opinion and utility averages per population over time.

    Args:
        storage: Recorded statistics of a run
        save_path: Optional path to save the plot
    """
    timesteps = storage.timesteps
    fig, axes = plt.subplots(3, 1, figsize=(12, 12), sharex=True)

    for key, label in (('total', 'all'), ('host_host', 'host-host per host'),
                       ('guest_host', 'guest-host per guest'),
                       ('guest_guest', 'guest-guest per guest')):
        axes[0].plot(timesteps, storage.series('avg_link', key), label=label)
    axes[0].set_ylabel('Average links')

    for group, color in (('total', 'black'), ('host', 'tab:blue'), ('guest', 'tab:red')):
        axes[1].plot(timesteps, storage.series('avg_opinion', group), color=color, label=group)
        axes[2].plot(timesteps, storage.series('avg_utility', group), color=color, label=group)
    axes[1].set_ylabel('Average opinion')
    axes[1].set_ylim(-1, 1)
    axes[2].set_ylabel('Average net utility')
    axes[2].set_xlabel('Timestep')

    for ax in axes:
        ax.grid(True, alpha=0.3)
        ax.legend(loc='best', fontsize='small')

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)


def plot_degree_histogram(network: NetworkModel, max_degree: int = 20,
                          save_path: Optional[str] = None):
    """Bar chart of the degree distribution below max_degree."""
    counts = network.degree_histogram(max_degree)

    plt.figure(figsize=(10, 6))
    plt.bar(range(max_degree), counts, color='tab:blue')
    plt.xlabel('Number of connections')
    plt.ylabel('Number of agents')
    plt.title('Degree distribution')
    plt.grid(True, alpha=0.3, axis='y')

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close()


def save_simulation_data(results: Dict[str, Any], save_path: str):
    """
    Save simulation results to a JSON file.

    Args:
        results: Results dictionary from Controller.run_simulation
        save_path: Path to save the JSON file
    """
    with open(save_path, 'w') as f:
        json.dump(results, f, indent=2)
