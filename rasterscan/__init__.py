"""Public API for distance-estimated Mandelbrot rendering."""

from .colorizer import INTERIOR_RGBA, colorize, hsv_to_rgb, shade
from .estimator import ESCAPE_RADIUS, IterationResult, estimate, estimate_point
from .output import downsample, to_image, write_image
from .renderer import RenderParameters, render, render_frame
from .window import ConfigurationError, ViewWindow, pixel_to_complex, plane_grid

__all__ = [
    "ConfigurationError",
    "ESCAPE_RADIUS",
    "INTERIOR_RGBA",
    "IterationResult",
    "RenderParameters",
    "ViewWindow",
    "colorize",
    "downsample",
    "estimate",
    "estimate_point",
    "hsv_to_rgb",
    "pixel_to_complex",
    "plane_grid",
    "render",
    "render_frame",
    "shade",
    "to_image",
    "write_image",
]
