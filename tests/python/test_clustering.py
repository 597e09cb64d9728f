from __future__ import annotations

from pygame.math import Vector2

from flocksim.sim.systems.clustering import (
    CLUSTER_DISTANCE,
    cluster_labels,
    cluster_sizes,
    count_clusters,
)


def test_packed_agents_form_one_cluster():
    center = Vector2(200.0, 200.0)
    offsets = [(0, 0), (14, 0), (-14, 0), (0, 14), (0, -14), (10, 10), (-10, -10)]
    positions = [center + Vector2(dx, dy) for dx, dy in offsets]
    assert all((p - center).length() < 29.0 for p in positions)
    assert count_clusters(positions) == 1


def test_spread_agents_are_each_their_own_cluster():
    positions = [Vector2(x * 31.0, y * 31.0) for x in range(5) for y in range(4)]
    assert count_clusters(positions) == len(positions)


def test_threshold_is_strict():
    positions = [Vector2(0.0, 0.0), Vector2(CLUSTER_DISTANCE, 0.0)]
    assert count_clusters(positions) == 2
    positions = [Vector2(0.0, 0.0), Vector2(CLUSTER_DISTANCE - 1e-6, 0.0)]
    assert count_clusters(positions) == 1


def test_clusters_are_transitive_chains():
    chain = [Vector2(i * 25.0, 0.0) for i in range(40)]
    assert count_clusters(chain) == 1
    assert cluster_sizes(chain) == [40]


def test_labels_follow_first_member_order():
    positions = [Vector2(0.0, 0.0), Vector2(500.0, 0.0), Vector2(10.0, 0.0), Vector2(505.0, 0.0), Vector2(900.0, 0.0)]
    assert cluster_labels(positions) == [0, 1, 0, 1, 2]
    assert cluster_sizes(positions) == [2, 2, 1]


def test_empty_population_has_no_clusters():
    assert count_clusters([]) == 0
    assert cluster_sizes([]) == []


def test_large_chain_does_not_recurse():
    chain = [Vector2(i * 1.0, 0.0) for i in range(1500)]
    assert count_clusters(chain) == 1
