"""Display transform and PNG export for accumulated images.

The renderer produces linear, unbounded radiance. Turning that into an
8-bit file goes through three steps:

1. exposure scaling and tone mapping (HDR to [0, 1])
2. gamma encoding
3. quantization to uint8

Example:
    >>> from src.pathtracer.preview.export import save_png
    >>> save_png(tracer.get_image_numpy(), "output.png", tone_map="reinhard")
"""

from pathlib import Path
from typing import Literal

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Reinhard operator on exposure-scaled radiance: c / (1 + c)."""
    scaled = np.maximum(image, 0.0) * exposure
    return (scaled / (1.0 + scaled)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Exponential exposure curve: 1 - exp(-c * exposure)."""
    return (1.0 - np.exp(-np.maximum(image, 0.0) * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Gamma-encode an image in [0, 1]. Values outside are clamped first."""
    if gamma <= 0.0:
        raise ValueError(f"gamma = {gamma} must be positive")
    clamped = np.clip(image, 0.0, 1.0)
    if gamma == 1.0:
        return clamped.astype(np.float32)
    return np.power(clamped, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "reinhard",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply tone mapping and gamma to a linear image.

    Args:
        image: Linear radiance, shape (H, W, 3).
        tone_map: "none" (scale and clamp), "reinhard" or "exposure".
        gamma: Display gamma.
        exposure: Multiplier applied before tone mapping.

    Returns:
        Display-ready image in [0, 1], dtype float32.

    Raises:
        ValueError: If tone_map is not a known method.
    """
    # Non-finite values come from diverged samples and display as black
    result = np.nan_to_num(np.asarray(image, dtype=np.float32), nan=0.0, posinf=0.0, neginf=0.0)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result, exposure)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map == "none":
        result = result * exposure
    else:
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    return apply_gamma(result, gamma)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "reinhard",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear image to 8-bit, rounding to the nearest level."""
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return np.round(processed * 255.0).astype(np.uint8)


def save_png(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "reinhard",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Write a linear image of shape (H, W, 3) as an 8-bit RGB PNG.

    Raises:
        ValueError: If the image is not (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    pixels = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(pixels).save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared difference between two images of equal shape.

    Raises:
        ValueError: If the shapes differ.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")
    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
