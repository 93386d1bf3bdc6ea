"""Assembly of full rasters from the per-pixel pipeline."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .colorizer import colorize
from .estimator import ESCAPE_RADIUS, check_budget, estimate
from .window import ConfigurationError, ViewWindow, plane_grid

BAND_HEIGHT = 32


@dataclass(frozen=True)
class RenderParameters:
    """Parameters that describe a single render of the Mandelbrot set."""

    window: ViewWindow
    image_size: int
    max_iterations: int
    escape_radius: float = ESCAPE_RADIUS
    band_height: int = BAND_HEIGHT
    workers: Optional[int] = None

    def validate(self) -> None:
        if not isinstance(self.window, ViewWindow):
            raise ConfigurationError(f"window must be a ViewWindow, got {type(self.window).__name__}")
        if int(self.image_size) != self.image_size or self.image_size <= 0:
            raise ConfigurationError(f"image_size must be a positive integer, got {self.image_size!r}")
        check_budget(self.max_iterations, self.escape_radius)
        if self.band_height < 1:
            raise ConfigurationError(f"band_height must be at least 1, got {self.band_height!r}")
        if self.workers is not None and self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers!r}")

    def bands(self) -> list[tuple[int, int]]:
        """Plane row ranges ``[start, stop)`` covering the image."""

        size = int(self.image_size)
        step = int(self.band_height)
        return [(start, min(start + step, size)) for start in range(0, size, step)]


def _render_band(params: RenderParameters, raster: np.ndarray, start: int, stop: int, device: Optional[str]) -> None:
    size = int(params.image_size)
    points = plane_grid(params.window, size, start, stop)
    result = estimate(points, params.max_iterations, params.escape_radius, device=device)
    rgba = colorize(result, params.window.span, size)
    # plane row y lands on raster row size - 1 - y
    raster[size - stop:size - start] = rgba[::-1]


def render_frame(
    params: RenderParameters,
    *,
    device: Optional[str] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> np.ndarray:
    """Render ``params`` into a ``(size, size, 4)`` uint16 RGBA raster.

    Row 0 of the raster is the top of the picture, i.e. the largest imaginary
    part. Bands are evaluated concurrently and write disjoint row slices.
    """

    params.validate()
    size = int(params.image_size)
    raster = np.zeros((size, size, 4), dtype=np.uint16)

    bands = params.bands()
    workers = params.workers or os.cpu_count() or 1
    workers = min(workers, len(bands))

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_render_band, params, raster, start, stop, device) for start, stop in bands]
        for done, future in enumerate(as_completed(futures), start=1):
            future.result()
            if progress is not None:
                progress(done, len(futures))

    return raster


def render(
    window: ViewWindow,
    image_size: int,
    max_iterations: int,
    *,
    escape_radius: float = ESCAPE_RADIUS,
    band_height: int = BAND_HEIGHT,
    workers: Optional[int] = None,
    device: Optional[str] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> np.ndarray:
    """Render ``window`` at ``image_size`` pixels square."""

    params = RenderParameters(
        window=window,
        image_size=image_size,
        max_iterations=max_iterations,
        escape_radius=escape_radius,
        band_height=band_height,
        workers=workers,
    )
    return render_frame(params, device=device, progress=progress)
