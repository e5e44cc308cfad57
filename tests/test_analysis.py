"""Tests for statistics storage and the derived indicators."""

import pytest

from social_integration.data.analysis import SimulationAnalyzer, integration_indicators, format_report
from social_integration.data.storage import DataStorage
from social_integration.simulation.controller import Controller


def sample_stats():
    return {
        'avg_link': {'total': 4.0, 'host_host': 4.0, 'host_guest': 0.5,
                     'guest_host': 2.0, 'guest_guest': 2.0},
        'avg_opinion': {'total': 0.0, 'host': 0.5, 'guest': -0.5},
        'avg_utility': {'total': 7.5, 'host': 10.0, 'guest': 5.0},
        'avg_reward': {'total': 5.0, 'host_host': 6.0, 'guest_guest': 4.0, 'host_guest': 2.0},
        'total_reward': {'total': 100.0, 'host_host': 60.0, 'guest_guest': 20.0, 'host_guest': 20.0},
    }


def test_integration_indicators():
    indicators = integration_indicators(sample_stats(), guest_ratio=0.5)

    assert indicators['guest_integration'] == pytest.approx(1.0)
    assert indicators['guest_utility_ratio'] == pytest.approx(0.5)
    assert indicators['cross_reward_share'] == pytest.approx(0.4)


def test_indicators_without_guests_are_zero():
    stats = sample_stats()
    stats['avg_link'].update(guest_host=0.0, guest_guest=0.0)
    stats['total_reward'] = {key: 0.0 for key in stats['total_reward']}

    indicators = integration_indicators(stats, guest_ratio=0.0)
    assert indicators['guest_integration'] == 0.0
    assert indicators['cross_reward_share'] == 0.0


def test_format_report():
    lines = format_report(sample_stats(), 10, 0.5).splitlines()

    assert lines[0] == "Time = 10"
    assert lines[2] == "\t4.0000\t4.0000\t0.5000\t2.0000\t2.0000"
    assert lines[3] == "Indicator of guest integration = 1.0000"
    assert lines[-1].endswith("0.4000")


def test_storage_series_and_latest():
    storage = DataStorage()
    storage.initialize(4, 0.5)
    storage.store_timestep(0, sample_stats(), [0.5, 0.5, -0.5, -0.5])
    later = sample_stats()
    later['avg_link']['total'] = 5.0
    storage.store_timestep(10, later, [0.4, 0.5, -0.3, -0.5], n_clusters=2)

    assert len(storage) == 2
    assert storage.series('avg_link', 'total') == [4.0, 5.0]
    assert storage.latest()['avg_link']['total'] == 5.0

    results = storage.get_simulation_results()
    assert results['timesteps'] == [0, 10]
    assert results['cluster_history'] == [None, 2]
    assert results['opinion_history'][1] == [0.4, 0.5, -0.3, -0.5]


def test_analyzer_on_empty_storage():
    analyzer = SimulationAnalyzer(DataStorage())

    assert analyzer.analyze_link_evolution() == {}
    assert analyzer.analyze_opinion_evolution() == {}
    assert analyzer.analyze_clusters() == {}
    assert 'final_indicators' not in analyzer.generate_comprehensive_report()


def test_analyzer_on_a_run():
    controller = Controller(n_agents=30, n_guests=6, links_per_agent=4, random_seed=5,
                            num_timesteps=4, report_interval=2, track_clusters=True)
    controller.run_simulation(progress_bar=False)
    analyzer = SimulationAnalyzer(controller.storage)

    report = analyzer.generate_comprehensive_report()
    assert report['recorded_timesteps'] == 3
    assert len(report['link_evolution']['integration_history']) == 3
    assert report['opinion_evolution']['initial_gap'] == pytest.approx(2.0)
    assert report['clusters']['cluster_timesteps'] == [0, 2, 4]

    lines = analyzer.summary_lines()
    assert lines[0] == "Number of agents: 30"
    assert any(line.startswith("Final number of clusters") for line in lines)
