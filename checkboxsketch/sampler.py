"""
Sampler

Rescales a source raster (still image or captured video frame) down to
the checkbox grid resolution using nearest-neighbour sampling.
"""

import math
import numpy as np
from PIL import Image
from typing import Tuple, Union

Raster = Union[Image.Image, np.ndarray]

WHITE = (255, 255, 255, 255)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def canvas_size(width: int, height: int, resolution: int,
                maintain_aspect_ratio: bool) -> Tuple[int, int]:
    """
    Calculate the sampled canvas dimensions.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        resolution: Target side length of the (square) grid
        maintain_aspect_ratio: Keep the source proportions instead of squashing

    Returns:
        (canvas_width, canvas_height)
    """
    if not maintain_aspect_ratio:
        return resolution, resolution

    aspect_ratio = width / height
    if aspect_ratio > 1:
        # Wider than square
        canvas_width = resolution
        canvas_height = round_half_up(resolution / aspect_ratio)
    else:
        # Taller than (or exactly) square
        canvas_width = round_half_up(resolution * aspect_ratio)
        canvas_height = resolution

    return max(1, canvas_width), max(1, canvas_height)


def to_rgba_array(pixels: Raster) -> np.ndarray:
    """Return an H x W x 4 uint8 array for a PIL image or RGB/RGBA array."""
    if isinstance(pixels, Image.Image):
        return np.array(pixels.convert("RGBA"), dtype=np.uint8)

    arr = np.asarray(pixels, dtype=np.uint8)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Expected an H x W x 3/4 array, got shape {arr.shape}")
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return arr


def flatten_on_white(pixels: Raster) -> np.ndarray:
    """
    Composite the raster over an opaque white background.

    Transparent regions come out white, so they read as light (unchecked).
    """
    rgba = Image.fromarray(to_rgba_array(pixels))
    background = Image.new("RGBA", rgba.size, WHITE)
    return np.array(Image.alpha_composite(background, rgba), dtype=np.uint8)


def resample(pixels: np.ndarray, canvas_width: int, canvas_height: int) -> np.ndarray:
    """
    Nearest-neighbour resize.

    Destination pixel (x, y) reads source pixel
    (floor(x / canvas_width * width), floor(y / canvas_height * height)).
    """
    height, width = pixels.shape[:2]
    src_x = (np.arange(canvas_width) * width) // canvas_width
    src_y = (np.arange(canvas_height) * height) // canvas_height
    return pixels[src_y[:, None], src_x[None, :]]


def sample(pixels: Raster, resolution: int, maintain_aspect_ratio: bool) -> np.ndarray:
    """
    Flatten a raster against white and resample it to grid size.

    Returns:
        canvas_height x canvas_width x 4 uint8 array
    """
    flat = flatten_on_white(pixels)
    height, width = flat.shape[:2]
    if width == 0 or height == 0:
        raise ValueError("Cannot sample an empty raster")

    canvas_width, canvas_height = canvas_size(
        width, height, resolution, maintain_aspect_ratio)
    return resample(flat, canvas_width, canvas_height)
