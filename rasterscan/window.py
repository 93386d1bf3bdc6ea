"""Mapping between the pixel grid and the complex plane."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


class ConfigurationError(ValueError):
    """Raised when render settings are rejected before any work starts."""


@dataclass(frozen=True)
class ViewWindow:
    """Square region of the complex plane shown in the image.

    ``span`` is the full width (and height) of the region in plane units.
    """

    center: complex
    span: float

    def __post_init__(self) -> None:
        center = complex(self.center)
        span = float(self.span)
        if not (math.isfinite(center.real) and math.isfinite(center.imag)):
            raise ConfigurationError(f"window center must be finite, got {self.center!r}")
        if not math.isfinite(span) or span <= 0:
            raise ConfigurationError(f"window span must be a positive number, got {self.span!r}")
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "span", span)

    @classmethod
    def from_parts(cls, real: float, imag: float, span: float) -> "ViewWindow":
        return cls(center=complex(real, imag), span=span)

    @property
    def lower_left(self) -> complex:
        half = self.span / 2
        return complex(self.center.real - half, self.center.imag - half)

    @property
    def upper_right(self) -> complex:
        half = self.span / 2
        return complex(self.center.real + half, self.center.imag + half)


def pixel_to_complex(window: ViewWindow, x: int, y: int, image_size: int) -> complex:
    """Return the plane coordinate sampled by pixel ``(x, y)``."""

    low = window.lower_left
    real = x * window.span / image_size + low.real
    imag = y * window.span / image_size + low.imag
    return complex(real, imag)


def plane_grid(window: ViewWindow, image_size: int, start: int, stop: int) -> np.ndarray:
    """Build the sample grid for plane rows ``start <= y < stop``.

    The result has shape ``(stop - start, image_size)``; entry ``[j, x]`` equals
    ``pixel_to_complex(window, x, start + j, image_size)`` exactly.
    """

    low = window.lower_left
    span = np.float64(window.span)

    cols = np.arange(image_size, dtype=np.float64)
    rows = np.arange(start, stop, dtype=np.float64)

    real = cols * span / np.float64(image_size) + np.float64(low.real)
    imag = rows * span / np.float64(image_size) + np.float64(low.imag)

    X, Y = np.meshgrid(real, imag)
    grid = np.empty(X.shape, dtype=np.complex128)
    grid.real = X
    grid.imag = Y
    return grid
