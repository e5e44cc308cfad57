"""Tests for the simulation driver."""

import logging

import pytest

from social_integration.network.generator import create_network_model
from social_integration.simulation.controller import Controller


def make_controller(**kwargs):
    options = dict(n_agents=30, n_guests=5, links_per_agent=4, random_seed=3,
                   num_timesteps=5, report_interval=2)
    options.update(kwargs)
    return Controller(**options)


def test_run_records_at_report_interval():
    controller = make_controller()
    results = controller.run_simulation(progress_bar=False)

    assert results["timesteps"] == [0, 2, 4, 5]
    assert len(results["stats_history"]) == 4
    assert len(results["opinion_history"][-1]) == 30
    assert results["experiment_metadata"]["n_guest"] == 5
    assert results["experiment_metadata"]["num_timesteps"] == 5
    assert results["experiment_metadata"]["opinion_policy"] == "stochastic_neighbor"
    assert len(results["final_agents"]) == 30
    assert sum(results["degree_histogram"]) <= 30


def test_same_seed_same_results():
    a = make_controller().run_simulation(progress_bar=False)
    b = make_controller().run_simulation(progress_bar=False)
    assert a["stats_history"] == b["stats_history"]
    assert a["opinion_history"] == b["opinion_history"]


def test_report_is_logged(caplog):
    with caplog.at_level(logging.INFO, logger="social_integration.simulation.controller"):
        make_controller(num_timesteps=2).run_simulation(progress_bar=False)

    assert "Time = 0" in caplog.text
    assert "Time = 2" in caplog.text
    assert "Indicator of guest integration" in caplog.text


def test_step_can_be_paused():
    controller = make_controller(report_interval=1)
    controller.step(2)
    assert controller.t == 2
    assert controller.storage.timesteps == [1, 2]

    controller.step()
    assert controller.storage.timesteps == [1, 2, 3]


def test_track_clusters():
    controller = make_controller(track_clusters=True)
    results = controller.run_simulation(progress_bar=False)
    assert all(isinstance(n, int) and n >= 1 for n in results["cluster_history"])


def test_existing_network_and_host_initiation():
    network = create_network_model(20, n_guests=4, links_per_agent=4,
                                   topology="host_smallworld_guests_linked", random_seed=8)
    controller = Controller(network, num_timesteps=1, report_interval=1, host_initiation_steps=5)

    assert controller.network is network
    assert controller.guest_ratio == pytest.approx(0.2)
    assert not any(agent.idling for agent in network.agents)


def test_invalid_report_interval():
    with pytest.raises(ValueError):
        make_controller(report_interval=0)


def test_from_config(tmp_path):
    path = tmp_path / "params.txt"
    path.write_text("n_node 30\nimmigrant_number 5\ninitial_connections 4\n"
                    "num_timesteps 3\nreport_interval 1\nopinion_policy weighted_average\n")

    controller = Controller.from_config(str(path), num_timesteps=None, random_seed=4)
    results = controller.run_simulation(progress_bar=False)

    assert controller.network.random_seed == 4
    assert results["timesteps"] == [0, 1, 2, 3]
    assert results["experiment_metadata"]["opinion_policy"] == "weighted_average"


def test_from_invalid_config(tmp_path):
    path = tmp_path / "params.txt"
    path.write_text("n_node 10\nimmigrant_number 20\n")
    with pytest.raises(ValueError):
        Controller.from_config(str(path))


def test_from_config_refuses_misspelled_parameter(tmp_path):
    path = tmp_path / "params.txt"
    path.write_text("n_node 30\nimmigrant_number 5\nkapa 50\n")
    with pytest.raises(ValueError):
        Controller.from_config(str(path))
