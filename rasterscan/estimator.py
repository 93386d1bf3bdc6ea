"""Escape-time iteration with derivative tracking and period detection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .window import ConfigurationError

ESCAPE_RADIUS = 10.0

_INT32_MAX = np.iinfo(np.int32).max


@dataclass(frozen=True)
class IterationResult:
    """Per-point outputs of the distance estimator.

    Every field has the shape of the evaluated points. Interior entries carry a
    zero distance and a dwell equal to the iteration budget.
    """

    distance: np.ndarray
    dwell: np.ndarray
    phase: np.ndarray
    iterations: np.ndarray
    interior: np.ndarray
    periodic: np.ndarray

    @property
    def escaped(self) -> np.ndarray:
        return np.logical_not(self.interior)


@tf.function
def _estimator_step(
    cs: tf.Tensor,
    zs: tf.Tensor,
    dzs: tf.Tensor,
    fast: tf.Tensor,
    ns: tf.Tensor,
    periodic: tf.Tensor,
    active: tf.Tensor,
    max_iterations: tf.Tensor,
    escape_radius: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance the slow orbit, its derivative and the fast orbit for active points."""

    one = tf.constant(1.0, dtype=tf.complex128)
    two = tf.constant(2.0, dtype=tf.complex128)

    zs_new = zs * zs + cs
    dzs_new = two * zs * dzs + one
    fast_new = fast * fast + cs
    fast_new = fast_new * fast_new + cs
    ns_new = ns + 1

    # Exact comparison, no tolerance.
    cycle = tf.logical_and(active, tf.equal(zs_new, fast_new))
    ns_new = tf.where(cycle, tf.fill(tf.shape(ns), max_iterations), ns_new)

    zs = tf.where(active, zs_new, zs)
    dzs = tf.where(active, dzs_new, dzs)
    fast = tf.where(active, fast_new, fast)
    ns = tf.where(active, ns_new, ns)
    periodic = tf.logical_or(periodic, cycle)

    inside = tf.abs(zs) <= escape_radius
    active = tf.logical_and(active, tf.logical_and(inside, ns < max_iterations))
    return zs, dzs, fast, ns, periodic, active


@tf.function(
    input_signature=(
        tf.TensorSpec(shape=None, dtype=tf.complex128),
        tf.TensorSpec(shape=[], dtype=tf.int32),
        tf.TensorSpec(shape=[], dtype=tf.float64),
    )
)
def _estimator_run(cs: tf.Tensor, max_iterations: tf.Tensor, escape_radius: tf.Tensor):
    """Iterate every point until it escapes, cycles or exhausts the budget."""

    zs = tf.identity(cs)
    dzs = tf.ones_like(cs)
    fast = tf.identity(cs)
    ns = tf.ones(tf.shape(cs), dtype=tf.int32)
    periodic = tf.zeros(tf.shape(cs), dtype=tf.bool)
    active = tf.logical_and(tf.abs(cs) <= escape_radius, ns < max_iterations)

    def cond(zs, dzs, fast, ns, periodic, active):
        return tf.reduce_any(active)

    def body(zs, dzs, fast, ns, periodic, active):
        return _estimator_step(cs, zs, dzs, fast, ns, periodic, active, max_iterations, escape_radius)

    zs, dzs, _, ns, periodic, _ = tf.while_loop(cond, body, (zs, dzs, fast, ns, periodic, active))

    escaped = tf.less(ns, max_iterations)
    zeros = tf.zeros(tf.shape(cs), dtype=tf.float64)
    log2 = tf.math.log(tf.constant(2.0, dtype=tf.float64))

    mag = tf.abs(zs)
    log_mag = tf.math.log(mag)
    distance = tf.where(escaped, mag * log_mag / tf.abs(dzs), zeros)

    log2_log2_mag = tf.math.log(log_mag / log2) / log2
    log2_log2_radius = tf.math.log(tf.math.log(escape_radius) / log2) / log2
    correction = tf.where(escaped, log2_log2_mag - log2_log2_radius, zeros)
    dwell = tf.cast(ns, tf.float64) + correction

    phase = tf.math.angle(zs)
    return distance, dwell, phase, ns, periodic


def check_budget(max_iterations: int, escape_radius: float) -> None:
    if int(max_iterations) != max_iterations or not 1 <= max_iterations <= _INT32_MAX:
        raise ConfigurationError(f"max_iterations must be an integer in [1, {_INT32_MAX}], got {max_iterations!r}")
    if not np.isfinite(escape_radius) or escape_radius <= 1.0:
        raise ConfigurationError(f"escape_radius must be greater than 1, got {escape_radius!r}")


def estimate(
    points,
    max_iterations: int,
    escape_radius: float = ESCAPE_RADIUS,
    *,
    device: Optional[str] = None,
) -> IterationResult:
    """Run the distance estimator over an array of complex points."""

    check_budget(max_iterations, escape_radius)
    cs = np.asarray(points, dtype=np.complex128)

    with tf.device(device if device is not None else "/CPU:0"):
        distance, dwell, phase, ns, periodic = _estimator_run(
            tf.convert_to_tensor(cs, dtype=tf.complex128),
            tf.constant(int(max_iterations), dtype=tf.int32),
            tf.constant(float(escape_radius), dtype=tf.float64),
        )

    ns = np.asarray(ns.numpy())
    return IterationResult(
        distance=np.asarray(distance.numpy()),
        dwell=np.asarray(dwell.numpy()),
        phase=np.asarray(phase.numpy()),
        iterations=ns,
        interior=np.asarray(ns >= max_iterations),
        periodic=np.asarray(periodic.numpy()),
    )


def estimate_point(c: complex, max_iterations: int, escape_radius: float = ESCAPE_RADIUS) -> IterationResult:
    """Single-point convenience wrapper around :func:`estimate` (0-d arrays)."""

    return estimate(np.complex128(c), max_iterations, escape_radius)
