"""Preview module: display transform and image export.

Components:
    export: Tone mapping, gamma, PNG output and image comparison
"""

from .export import (
    ToneMapMethod,
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    process_image_for_display,
    save_png,
    tone_map_exposure,
    tone_map_reinhard,
)

__all__ = [
    "ToneMapMethod",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "image_to_uint8",
    "save_png",
    "compute_rmse",
]
