"""Tests for the reward model, opinion policies and shortest paths."""

import math

import networkx as nx
import numpy as np
import pytest

from social_integration.config.config_manager import DEFAULT_PARAMETERS
from social_integration.core.mathematics import (
    HOST_TYPE,
    GUEST_TYPE,
    UNREACHABLE,
    DISTANCE_HISTOGRAM_SIZE,
    OpinionPolicy,
    utility_function,
    reward,
    connection_cost,
    clamp_opinions,
    update_opinions,
    update_opinions_stochastic_neighbor,
    all_pairs_distances,
    get_network_info,
)


def params(**overrides):
    values = dict(DEFAULT_PARAMETERS)
    values.update(overrides)
    return values


def test_reward_at_equal_opinions_is_AH():
    assert reward(HOST_TYPE, 0.5, HOST_TYPE, 0.5, params()) == pytest.approx(10.0)
    assert reward(GUEST_TYPE, -0.2, GUEST_TYPE, -0.2, params(AH=4.0)) == pytest.approx(4.0)


def test_cross_type_reward_uses_receiver_variance():
    p = params(AG=6.0, sigmaH=1.0, sigmaG=2.0)
    to_host, to_guest = utility_function(HOST_TYPE, 1.0, GUEST_TYPE, -1.0, p)

    assert to_host == pytest.approx(6.0 * math.exp(-4.0 / 2.0))
    assert to_guest == pytest.approx(6.0 * math.exp(-4.0 / 4.0))


def test_same_type_reward_is_symmetric():
    a, b = utility_function(HOST_TYPE, 1.0, HOST_TYPE, 0.2, params())
    assert a == b
    assert a == pytest.approx(10.0 * math.exp(-0.64 / 2.0))


def test_connection_cost():
    assert connection_cost(0, 3.0) == 1.0
    assert connection_cost(3, 3.0) == pytest.approx(math.e)


def test_clamp_opinions():
    types = np.array([HOST_TYPE, HOST_TYPE, GUEST_TYPE, GUEST_TYPE])
    opinions = np.array([-0.1, 0.4, 0.2, -0.3])
    assert clamp_opinions(types, opinions).tolist() == [0.0, 0.4, 0.0, -0.3]


def test_opinion_policy_from_name():
    assert OpinionPolicy.from_name("Weighted_Average") is OpinionPolicy.WEIGHTED_AVERAGE
    assert OpinionPolicy.from_name("stochastic_neighbor_guests").guests_only
    assert OpinionPolicy.STOCHASTIC_NEIGHBOR.stochastic
    assert not OpinionPolicy.WEIGHTED_AVERAGE.stochastic

    with pytest.raises(ValueError):
        OpinionPolicy.from_name("majority_vote")


def _pair(x0, x1, types=(HOST_TYPE, HOST_TYPE), p=None):
    p = p or params()
    A = np.array([[0, 1], [1, 0]], dtype=np.int8)
    u01, u10 = utility_function(types[0], x0, types[1], x1, p)
    U = np.array([[0.0, u01], [u10, 0.0]])
    return np.array([x0, x1]), np.array(types), A, U, np.array([1, 1])


def test_weighted_average_update():
    p = params(kappa=2.0)
    X, types, A, U, links = _pair(1.0, 0.5, p=p)
    idling = np.zeros(2, dtype=bool)

    X_next = update_opinions(X, types, A, U, links, idling, p, OpinionPolicy.WEIGHTED_AVERAGE)

    u = U[0, 1]
    assert X_next[0] == pytest.approx((2.0 * 1.0 + u * 0.5) / (2.0 + u))
    assert X_next[1] == pytest.approx((2.0 * 0.5 + u * 1.0) / (2.0 + u))


def test_update_clamps_crossing_guest():
    p = params(kappa=1.0)
    X, types, A, U, links = _pair(1.0, -0.1, types=(HOST_TYPE, GUEST_TYPE), p=p)
    idling = np.zeros(2, dtype=bool)

    X_next = update_opinions(X, types, A, U, links, idling, p, OpinionPolicy.WEIGHTED_AVERAGE)

    assert X_next[1] == 0.0
    assert X_next[0] >= 0.0


def test_idle_and_unlinked_agents_keep_opinion():
    p = params(kappa=1.0)
    X, types, A, U, links = _pair(1.0, 0.2, p=p)
    idling = np.array([True, False])

    X_next = update_opinions(X, types, A, U, links, idling, p, OpinionPolicy.WEIGHTED_AVERAGE)
    assert X_next[0] == 1.0
    assert X_next[1] != 0.2

    X_next = update_opinions(X, types, A, U, np.array([0, 0]), np.zeros(2, dtype=bool), p,
                             OpinionPolicy.WEIGHTED_AVERAGE)
    assert X_next.tolist() == [1.0, 0.2]


def test_guest_policy_leaves_hosts_unchanged():
    p = params(kappa=1.0)
    X, types, A, U, links = _pair(0.8, -0.2, types=(HOST_TYPE, GUEST_TYPE), p=p)
    idling = np.zeros(2, dtype=bool)

    X_next = update_opinions(X, types, A, U, links, idling, p, OpinionPolicy.WEIGHTED_AVERAGE_GUESTS)
    assert X_next[0] == 0.8


def test_stochastic_single_neighbor_moves_towards_it():
    p = params(kappa=3.0, welfare=0.0)
    X, types, A, U, links = _pair(1.0, 0.2, p=p)
    idling = np.zeros(2, dtype=bool)

    X_next = update_opinions(X, types, A, U, links, idling, p, OpinionPolicy.STOCHASTIC_NEIGHBOR,
                             np.random.default_rng(0))

    assert X_next[0] == pytest.approx((3.0 * 1.0 + 0.2) / 4.0)
    assert X_next[1] == pytest.approx((3.0 * 0.2 + 1.0) / 4.0)


def test_stochastic_policy_needs_generator():
    X, types, A, U, links = _pair(1.0, 0.2)
    with pytest.raises(ValueError):
        update_opinions(X, types, A, U, links, np.zeros(2, dtype=bool), params(),
                        OpinionPolicy.STOCHASTIC_NEIGHBOR)


def test_distances_on_path_with_isolated_node():
    graph = nx.path_graph(4)
    graph.add_node(4)
    A = nx.to_numpy_array(graph, nodelist=range(5), dtype=np.int8)

    distances, histogram = all_pairs_distances(A)

    assert distances[0, 3] == 3
    assert distances[0, 4] == UNREACHABLE
    assert np.all(np.diag(distances) == 0)
    assert len(histogram) == DISTANCE_HISTOGRAM_SIZE
    assert histogram[:4].tolist() == [5, 6, 4, 2]
    assert histogram.sum() == 17


def test_distances_match_networkx():
    graph = nx.gnp_random_graph(30, 0.08, seed=11)
    A = nx.to_numpy_array(graph, nodelist=range(30), dtype=np.int8)

    distances, _ = all_pairs_distances(A)

    expected = dict(nx.all_pairs_shortest_path_length(graph))
    for i in range(30):
        for j in range(30):
            assert distances[i, j] == expected[i].get(j, UNREACHABLE)
    assert np.array_equal(distances, distances.T)


def test_get_network_info():
    A = nx.to_numpy_array(nx.cycle_graph(4), dtype=np.int8)
    info = get_network_info(A)

    assert info["n_agents"] == 4
    assert info["total_edges"] == 4
    assert info["density"] == pytest.approx(4 / 6)
    assert info["average_degree"] == 2.0


def _star(rewards, x_center=0.5, x_leaves=(1.0, 0.0)):
    """Agent 0 linked to agents 1..k with the given rewards U[0, j]."""
    k = len(rewards)
    A = np.zeros((k + 1, k + 1), dtype=np.int8)
    A[0, 1:] = A[1:, 0] = 1
    U = np.zeros((k + 1, k + 1))
    U[0, 1:] = rewards
    X = np.array([x_center, *x_leaves])
    mask = np.zeros(k + 1, dtype=bool)
    mask[0] = True
    return X, A, U, mask


def test_stochastic_choice_is_proportional_to_reward():
    X, A, U, mask = _star([1.0, 3.0])
    moved_to = {1: (2.0 * 0.5 + 1.0) / 3.0, 2: (2.0 * 0.5 + 0.0) / 3.0}

    for seed in range(30):
        draw = np.random.default_rng(seed).random()
        expected = 1 if draw <= 0.25 else 2
        X_next = update_opinions_stochastic_neighbor(X, A, U, 2.0, 0.0, mask,
                                                     np.random.default_rng(seed))
        assert X_next[0] == pytest.approx(moved_to[expected])
        assert X_next[1:].tolist() == X[1:].tolist()


def test_stochastic_choice_frequencies():
    X, A, U, mask = _star([1.0, 3.0])
    rng = np.random.default_rng(123)
    first = 0
    trials = 4000
    for _ in range(trials):
        X_next = update_opinions_stochastic_neighbor(X, A, U, 2.0, 0.0, mask, rng)
        if X_next[0] > 0.5:
            first += 1

    assert abs(first / trials - 0.25) < 0.03


def test_welfare_is_a_null_weight():
    X, A, U, mask = _star([1.0, 3.0])

    # welfare equal to the rewards: half the draws leave the opinion alone
    for seed in range(30):
        draw = np.random.default_rng(seed).random()
        X_next = update_opinions_stochastic_neighbor(X, A, U, 2.0, 4.0, mask,
                                                     np.random.default_rng(seed))
        if draw <= 0.125:
            assert X_next[0] == pytest.approx(2.0 / 3.0)
        elif draw <= 0.5:
            assert X_next[0] == pytest.approx(1.0 / 3.0)
        else:
            assert X_next[0] == 0.5

    rng = np.random.default_rng(7)
    for _ in range(200):
        X_next = update_opinions_stochastic_neighbor(X, A, U, 2.0, 1e9, mask, rng)
        assert X_next[0] == 0.5


def test_stochastic_update_draws_once_per_linked_agent():
    X, A, U, mask = _star([0.0, 0.0])
    rng = np.random.default_rng(3)
    twin = np.random.default_rng(3)

    X_next = update_opinions_stochastic_neighbor(X, A, U, 2.0, 0.0, mask, rng)

    assert X_next.tolist() == X.tolist()
    twin.random()
    assert rng.random() == twin.random()
