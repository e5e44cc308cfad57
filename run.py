#!/usr/bin/env python3
"""
Run a host/guest social integration simulation from a parameter file.
"""

import argparse
import logging
import os

from social_integration.data.analysis import SimulationAnalyzer
from social_integration.simulation.controller import Controller
from social_integration.visualization import (
    plot_network_snapshot,
    plot_stats_history,
    plot_degree_histogram,
    save_simulation_data,
)


def main():
    parser = argparse.ArgumentParser(description="Run a host/guest social integration simulation")
    parser.add_argument("--config", default=None, help="Parameter file path (defaults are used if omitted)")
    parser.add_argument("--steps", type=int, default=None, help="Number of timesteps (overrides the file)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (overrides the file)")
    parser.add_argument("--topology", default=None, help="Initial topology (overrides the file)")
    parser.add_argument("--policy", default=None, help="Opinion update policy (overrides the file)")
    parser.add_argument("--clusters", action="store_true", help="Record the number of clusters")
    parser.add_argument("--output-dir", default=None, help="Directory for results and plots")
    parser.add_argument("--plot", action="store_true", help="Save figures to the output directory")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')
    logger = logging.getLogger(__name__)

    controller = Controller.from_config(
        args.config,
        num_timesteps=args.steps,
        random_seed=args.seed,
        topology=args.topology,
        opinion_policy=args.policy,
        track_clusters=args.clusters,
    )
    logger.info(f"Starting simulation: {len(controller.network)} agents, "
                f"{controller.num_timesteps} timesteps, "
                f"policy {controller.network.opinion_policy.value}")

    results = controller.run_simulation(progress_bar=not args.no_progress)

    for line in SimulationAnalyzer(controller.storage).summary_lines():
        logger.info(line)

    if args.output_dir:
        os.makedirs(args.output_dir, exist_ok=True)
        results_path = os.path.join(args.output_dir, "results.json")
        save_simulation_data(results, results_path)
        logger.info(f"Results saved to: {results_path}")

        if args.plot:
            plot_network_snapshot(controller.network, os.path.join(args.output_dir, "network.png"))
            plot_stats_history(controller.storage, os.path.join(args.output_dir, "stats_history.png"))
            plot_degree_histogram(controller.network, save_path=os.path.join(args.output_dir, "degrees.png"))
            logger.info(f"Figures saved to: {args.output_dir}")
    elif args.plot:
        logger.warning("--plot needs --output-dir; no figures saved")


if __name__ == "__main__":
    main()
