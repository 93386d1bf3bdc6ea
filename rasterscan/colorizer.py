"""Colouring of distance estimator output.

The mapping combines three signals: the distance estimate sets the brightness
(a dark shell around the set that fades out over eight octaves), the smooth
dwell picks a position on a colour wheel with a white centre and saturated rim,
and the escape angle nudges the hue to make external rays visible. The wheel
parametrisation follows Robert Munafo's notes at http://mrob.com/pub/muency/color.html.
"""

from __future__ import annotations

import numpy as np

from .estimator import IterationResult

CHANNEL_MAX = 65535
INTERIOR_RGBA = (CHANNEL_MAX, CHANNEL_MAX, CHANNEL_MAX, CHANNEL_MAX)

BRIGHTNESS_OCTAVES = 8
DWELL_LOG_BASE = 100000.0
STRIPE_VALUE = 0.85
STRIPE_RADIUS = 0.667
PHASE_NUDGE = 0.02
FRACTIONAL_NUDGE = 0.0001
HUE_TURNS = 5.0


def distance_to_value(distance: np.ndarray, span: float, image_size: int) -> np.ndarray:
    """Brightness in [0, 1] from the distance estimate measured in screen pixels."""

    distance = np.asarray(distance, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        dscale = np.log2(distance / span * (image_size / 2))
    octaves = np.float64(BRIGHTNESS_OCTAVES)
    return np.select(
        [dscale > 0, dscale > -octaves],
        [np.ones_like(dscale), (octaves + dscale) / octaves],
        default=0.0,
    )


def dwell_to_wheel(dwell: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Map dwell onto an ``(angle, radius)`` position of the colour wheel.

    Positions are spread evenly as dwell grows; the square root slows the
    radius down away from the centre.
    """

    dwell = np.asarray(dwell, dtype=np.float64)
    p = np.log(dwell) / np.log(DWELL_LOG_BASE)
    low = p < 0.5
    q = np.where(low, 1.0 - 1.5 * p, 1.5 * p - 0.5)
    angle = np.where(low, 1 - q, q)
    radius = np.sqrt(q)
    return angle, radius


def shade(result: IterationResult, span: float, image_size: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(hue, saturation, value)`` for the escaped entries of ``result``.

    The arrays are one-dimensional, in the order of ``result.escaped`` when used as
    a boolean index. Hue is in degrees.
    """

    escaped = result.escaped
    dwell = np.asarray(result.dwell, dtype=np.float64)[escaped]
    phase = np.asarray(result.phase, dtype=np.float64)[escaped]
    distance = np.asarray(result.distance, dtype=np.float64)[escaped]

    stripe = np.floor(dwell)
    fractional = dwell - stripe

    value = distance_to_value(distance, span, image_size)
    angle, radius = dwell_to_wheel(dwell)

    # alternate stripes are darker and more pastel
    odd = stripe.astype(np.int64) % 2 != 0
    value = np.where(odd, STRIPE_VALUE * value, value)
    radius = np.where(odd, STRIPE_RADIUS * radius, radius)

    angle = np.where(phase < 0, angle + PHASE_NUDGE, angle)
    angle = angle + FRACTIONAL_NUDGE * fractional

    hue = angle * HUE_TURNS
    hue = hue - np.floor(hue)
    hue = hue * 359

    saturation = radius - np.floor(radius)
    return hue, saturation, value


def hsv_to_rgb(hue: np.ndarray, saturation: np.ndarray, value: np.ndarray) -> np.ndarray:
    """Convert HSV (hue in degrees) to opaque 16-bit RGBA.

    The result has the broadcast shape of the inputs plus a trailing axis of 4.
    """

    hue = np.asarray(hue, dtype=np.float64)
    saturation = np.asarray(saturation, dtype=np.float64)
    value = np.asarray(value, dtype=np.float64)

    hp = hue / 60.0
    c = value * saturation
    x = c * (1.0 - np.abs(np.fmod(hp, 2.0) - 1.0))
    m = value - c

    sector = np.floor(hp)
    s0, s1, s2, s3, s4, s5 = (sector == k for k in range(6))
    r = np.select([s0, s1, s4, s5], [c, x, x, c], default=0.0)
    g = np.select([s0, s1, s2, s3], [x, c, c, x], default=0.0)
    b = np.select([s2, s3, s4, s5], [x, c, c, x], default=0.0)

    def to_channel(v: np.ndarray) -> np.ndarray:
        return np.clip(v * float(CHANNEL_MAX), 0, CHANNEL_MAX).astype(np.uint16)

    alpha = np.full(np.shape(m), CHANNEL_MAX, dtype=np.uint16)
    return np.stack([to_channel(m + r), to_channel(m + g), to_channel(m + b), alpha], axis=-1)


def colorize(result: IterationResult, span: float, image_size: int) -> np.ndarray:
    """Colour every entry of ``result``; interior points come out white."""

    shape = np.shape(result.interior)
    rgba = np.empty(shape + (4,), dtype=np.uint16)
    rgba[...] = INTERIOR_RGBA

    escaped = result.escaped
    if np.any(escaped):
        rgba[escaped] = hsv_to_rgb(*shade(result, span, image_size))
    return rgba
