"""Conversion of rasters to Pillow images and writing them to disk."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import PIL.Image

from .window import ConfigurationError

_FORMATS_WITHOUT_ALPHA = {"JPEG", "BMP", "PPM"}


def to_image(raster: np.ndarray) -> PIL.Image.Image:
    """Reduce a 16-bit RGBA raster to an 8-bit RGBA image."""

    raster = np.asarray(raster)
    if raster.ndim != 3 or raster.shape[2] != 4:
        raise ValueError(f"expected an (height, width, 4) raster, got shape {raster.shape}")
    pixels = (raster.astype(np.uint16) >> 8).astype(np.uint8)
    return PIL.Image.fromarray(pixels)


def downsample(image: PIL.Image.Image, factor: int = 2) -> PIL.Image.Image:
    """Shrink ``image`` by ``factor`` with a Lanczos filter for anti-aliasing."""

    if int(factor) != factor or factor < 1:
        raise ConfigurationError(f"downsample factor must be a positive integer, got {factor!r}")
    if factor == 1:
        return image
    width, height = image.size
    size = (max(width // factor, 1), max(height // factor, 1))
    return image.resize(size, PIL.Image.Resampling.LANCZOS)


def pil_format_name(ext: str) -> str:
    upper = ext.upper().lstrip(".")
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_image(image: PIL.Image.Image, output_path: Path, image_format: str = "png") -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = pil_format_name(image_format)
    if pil_format in _FORMATS_WITHOUT_ALPHA and image.mode == "RGBA":
        image = image.convert("RGB")
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)
