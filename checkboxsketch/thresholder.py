"""
Thresholder

Reduces sampled pixels to luminance and compares against a cutoff.
Dark pixels become checked cells (True), light pixels unchecked (False).
"""

import numpy as np

from .config import ProcessingParameters
from .grid import Grid
from .sampler import Raster, round_half_up, sample


def grayscale(pixels: np.ndarray) -> np.ndarray:
    """Mean of the R, G and B channels; alpha is ignored."""
    rgb = np.asarray(pixels)[..., :3].astype(np.float64)
    return rgb.sum(axis=-1) / 3


def is_dark(r: int, g: int, b: int, threshold: int) -> bool:
    return (r + g + b) / 3 < threshold


def threshold_pixels(pixels: np.ndarray, threshold: int) -> Grid:
    """
    Convert a sampled RGBA buffer into a checkbox grid.

    Args:
        pixels: H x W x 3/4 array
        threshold: 0-255 cutoff; pixels strictly darker than it are checked
    """
    return Grid(grayscale(pixels) < threshold)


def auto_threshold(pixels: np.ndarray) -> int:
    """Average grayscale of the whole buffer, rounded to the nearest integer."""
    gray = grayscale(pixels)
    if gray.size == 0:
        raise ValueError("Cannot compute a threshold for an empty buffer")
    return min(255, max(0, round_half_up(float(gray.mean()))))


def pixels_to_grid(pixels: Raster, params: ProcessingParameters) -> Grid:
    """Run the full sample + threshold pipeline on one source raster."""
    sampled = sample(pixels, params.resolution, params.maintain_aspect_ratio)
    return threshold_pixels(sampled, params.threshold)
