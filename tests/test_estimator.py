import math

import numpy as np
import pytest

from rasterscan import ConfigurationError, estimate, estimate_point


def _reference(c, max_iterations, escape_radius):
    """Straightforward scalar loop used to cross-check the batched kernel."""
    iterations = 1
    z = c
    fast = c
    dz = complex(1, 0)
    while abs(z) <= escape_radius and iterations < max_iterations:
        dz = 2 * z * dz + 1
        z = z * z + c
        iterations += 1
        fast = fast * fast + c
        fast = fast * fast + c
        if z == fast:
            iterations = max_iterations
    return z, dz, iterations


@pytest.mark.parametrize("max_iterations", [2, 10, 1000, 10 ** 6])
def test_origin_is_periodic_interior(max_iterations):
    result = estimate_point(0j, max_iterations)
    assert bool(result.interior)
    assert bool(result.periodic)
    assert int(result.iterations) == max_iterations


def test_period_two_orbit_is_detected():
    result = estimate_point(-1 + 0j, 10 ** 6)
    assert bool(result.interior)
    assert bool(result.periodic)


def test_cusp_point_is_interior():
    result = estimate_point(-0.75 + 0j, 1000)
    assert bool(result.interior)
    assert float(result.distance) == 0.0


def test_escape_after_six_iterations():
    result = estimate_point(0.5 + 0j, 100, 10.0)
    assert not bool(result.interior)
    assert not bool(result.periodic)
    assert int(result.iterations) == 6
    assert 6 < float(result.dwell) < 7


def test_large_point_dwell_is_smoothed():
    result = estimate_point(5 + 5j, 100, 10.0)
    assert not bool(result.interior)
    assert int(result.iterations) == 2
    assert 2 < float(result.dwell) < 3


def test_point_outside_radius_never_iterates():
    c = 20 + 0j
    result = estimate_point(c, 100, 10.0)
    assert int(result.iterations) == 1
    expected_dwell = 1 + math.log2(math.log2(20.0)) - math.log2(math.log2(10.0))
    assert float(result.dwell) == pytest.approx(expected_dwell)
    assert float(result.distance) == pytest.approx(20.0 * math.log(20.0))
    assert float(result.phase) == pytest.approx(0.0)


def test_single_iteration_budget_marks_everything_interior():
    result = estimate(np.array([0j, 0.5 + 0j, 20 + 0j]), 1)
    assert result.interior.all()


def test_batch_matches_reference_loop():
    points = np.array(
        [
            [0.5 + 0j, 0.4 + 0.4j, -2.1 + 0.3j, 1 + 1j],
            [-1.5 + 1.0j, 0.6 + 0.6j, 0j, -1 + 0j],
            [-0.1 + 0.1j, -1.2 + 0.1j, 5 + 5j, -0.3 - 0.2j],
        ],
        dtype=np.complex128,
    )
    max_iterations, radius = 200, 10.0

    result = estimate(points, max_iterations, radius)
    assert result.dwell.shape == points.shape

    for index, c in np.ndenumerate(points):
        z, dz, iterations = _reference(complex(c), max_iterations, radius)
        assert result.iterations[index] == iterations
        if iterations >= max_iterations:
            assert result.interior[index]
            assert result.distance[index] == 0.0
            assert result.dwell[index] == max_iterations
        else:
            mag = abs(z)
            dwell = iterations + math.log2(math.log2(mag)) - math.log2(math.log2(radius))
            assert not result.interior[index]
            assert result.distance[index] == pytest.approx(mag * math.log(mag) / abs(dz), rel=1e-9)
            assert result.dwell[index] == pytest.approx(dwell, rel=1e-9)
            assert result.phase[index] == pytest.approx(math.atan2(z.imag, z.real), abs=1e-12)


def test_escaped_outputs_are_in_range():
    rng = np.random.default_rng(7)
    points = rng.uniform(-2.5, 1.5, 200) + 1j * rng.uniform(-2.0, 2.0, 200)
    result = estimate(points, 500)
    escaped = result.escaped
    assert escaped.any()
    assert (result.distance[escaped] >= 0).all()
    assert (result.dwell >= 1).all()
    assert (result.phase > -math.pi).all()
    assert (result.phase <= math.pi).all()


def test_scalar_and_batch_agree():
    points = np.array([1 + 1j, -2.1 + 0.3j, -0.1 + 0.1j, 0.5 + 0j])
    batch = estimate(points, 300)
    for i, c in enumerate(points):
        single = estimate_point(c, 300)
        assert float(single.dwell) == pytest.approx(batch.dwell[i], rel=1e-12)
        assert float(single.distance) == pytest.approx(batch.distance[i], rel=1e-12)
        assert bool(single.interior) == batch.interior[i]


@pytest.mark.parametrize("max_iterations", [0, -5, 2.5])
def test_rejects_bad_budget(max_iterations):
    with pytest.raises(ConfigurationError):
        estimate_point(0j, max_iterations)


@pytest.mark.parametrize("radius", [1.0, 0.5, math.inf])
def test_rejects_bad_escape_radius(radius):
    with pytest.raises(ConfigurationError):
        estimate_point(0j, 100, radius)
