from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from flocksim.sim.core.config import SimulationConfig, SimulationMode
from flocksim.sim.systems import steering


def _isolated_config(**overrides) -> SimulationConfig:
    values = dict(alignment_weight=0.0, cohesion_weight=0.0)
    values.update(overrides)
    return SimulationConfig(**values)


def _force_on(index, positions, velocities, config, obstacles=(), width=800.0, height=600.0):
    neighbors = [i for i in range(len(positions)) if i != index]
    dist_sq = [(positions[i] - positions[index]).length_squared() for i in neighbors]
    return steering.compute_steering_force(
        index,
        positions,
        velocities,
        neighbors,
        dist_sq,
        config,
        list(obstacles),
        width,
        height,
        config.max_speed,
        config.max_force,
    )


def test_close_pair_pushes_apart():
    config = _isolated_config(separation_radius=25.0)
    positions = [Vector2(400.0, 300.0), Vector2(410.0, 300.0)]
    velocities = [Vector2(), Vector2()]

    left = _force_on(0, positions, velocities, config)
    right = _force_on(1, positions, velocities, config)

    assert left.length() > 0.0
    assert right.length() > 0.0
    assert left.x < 0.0 and left.y == approx(0.0)
    assert right.x > 0.0 and right.y == approx(0.0)
    assert left.length() <= config.max_force + 1e-12


def test_separation_ignores_agents_outside_radius_and_coincident_agents():
    positions = [Vector2(0.0, 0.0), Vector2(25.0, 0.0), Vector2(0.0, 0.0)]
    velocities = [Vector2(1.0, 0.0)] * 3
    result = steering.separation(0, positions, velocities, [1, 2], [625.0, 0.0], 25.0, 2.0)
    assert result == Vector2()


def test_separation_steers_against_current_velocity():
    positions = [Vector2(0.0, 0.0), Vector2(0.0, 5.0)]
    velocities = [Vector2(1.0, 0.0), Vector2()]
    result = steering.separation(0, positions, velocities, [1], [25.0], 25.0, 2.0)
    assert result.x == approx(-1.0)
    assert result.y == approx(-2.0)


def test_alignment_matches_neighbor_heading_and_is_capped():
    velocities = [Vector2(0.0, 0.0), Vector2(0.0, 1.0), Vector2(0.0, 3.0)]
    result = steering.alignment(0, velocities, [1, 2], [100.0, 400.0], 50.0, 2.0, 0.05)
    assert result.length() == approx(0.05)
    assert result.x == approx(0.0)
    assert result.y > 0.0


def test_alignment_without_neighbors_is_zero():
    assert steering.alignment(0, [Vector2(1.0, 1.0)], [], [], 50.0, 2.0, 0.05) == Vector2()


def test_cohesion_seeks_neighbor_centroid():
    positions = [Vector2(0.0, 0.0), Vector2(10.0, 10.0), Vector2(10.0, -10.0)]
    velocities = [Vector2()] * 3
    result = steering.cohesion(0, positions, velocities, [1, 2], [200.0, 200.0], 50.0, 2.0, 0.5)
    assert result.x == approx(0.5)
    assert result.y == approx(0.0)


def test_seek_is_capped_at_max_force():
    result = steering.seek(Vector2(0.0, 0.0), Vector2(0.0, 0.0), Vector2(100.0, 0.0), 2.0, 0.03)
    assert result.x == approx(0.03)
    assert result.y == approx(0.0)


def test_isolated_agent_receives_no_force():
    config = SimulationConfig()
    force = _force_on(0, [Vector2(400.0, 300.0)], [Vector2(1.0, -0.5)], config)
    assert force == Vector2()


def test_panic_is_zero_exactly_at_center():
    center = Vector2(400.0, 300.0)
    assert steering.panic(center, center) == Vector2()
    assert steering.mode_force(SimulationMode.PANIC, Vector2(center), Vector2(), center, 2.0, 0.03) == Vector2()


def test_panic_pushes_radially_outward():
    center = Vector2(400.0, 300.0)
    push = steering.panic(Vector2(400.0, 200.0), center)
    assert push.x == approx(0.0)
    assert push.y == approx(-steering.PANIC_STRENGTH)


def test_gathering_mode_pulls_toward_center():
    config = SimulationConfig(mode=SimulationMode.GATHERING)
    force = _force_on(0, [Vector2(300.0, 300.0)], [Vector2()], config)
    assert force.x > 0.0
    assert force.y == approx(0.0)


def test_normal_mode_adds_no_term():
    assert steering.mode_force(SimulationMode.NORMAL, Vector2(1.0, 1.0), Vector2(), Vector2(5.0, 5.0), 2.0, 1.0) == Vector2()


def test_total_force_is_limited_by_configured_max_force():
    config = SimulationConfig(max_force=0.2, mode=SimulationMode.PANIC)
    positions = [Vector2(20.0, 20.0), Vector2(25.0, 22.0), Vector2(18.0, 30.0)]
    velocities = [Vector2(2.0, 0.0), Vector2(-1.0, 1.0), Vector2(0.0, -2.0)]
    for index in range(3):
        assert _force_on(index, positions, velocities, config).length() <= 0.2 + 1e-12
