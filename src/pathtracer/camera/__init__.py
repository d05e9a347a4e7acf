"""Camera module: primary ray generation.

Components:
    camera: Thin-lens perspective camera (pinhole when aperture is 0)
"""

from .camera import Camera, generate_ray, get_camera_info, setup_camera

__all__ = [
    "Camera",
    "setup_camera",
    "generate_ray",
    "get_camera_info",
]
