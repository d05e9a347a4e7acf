"""Thin-lens perspective camera used for primary ray generation.

The camera builds an orthonormal basis (u, v, w) on the host with NumPy:

- w points from lookat toward lookfrom (opposite the view direction)
- u points right in the image plane
- v points up in the image plane

The image plane sits at ``focus_dist`` in front of the lens. With
``aperture = 0`` every ray starts at ``lookfrom`` and the camera is a plain
pinhole; a positive aperture spreads ray origins over a disk of that
diameter, giving depth of field around the focus plane.

Example:
    >>> camera = Camera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=1.0,
    ... )
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray, make_ray


@dataclass
class Camera:
    """Configuration for the perspective camera.

    Attributes:
        lookfrom: Camera position in world space.
        lookat: Point the camera looks at.
        vup: Up direction used to orient the camera.
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Image width divided by height.
        aperture: Lens diameter; 0 for a pinhole.
        focus_dist: Distance from the lens to the plane in perfect focus.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 40.0
    aspect_ratio: float = 1.0
    aperture: float = 0.0
    focus_dist: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov = {self.vfov} must be in (0, 180) degrees")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio = {self.aspect_ratio} must be positive")
        if self.aperture < 0.0:
            raise ValueError(f"aperture = {self.aperture} must be non-negative")
        if self.focus_dist <= 0.0:
            raise ValueError(f"focus_dist = {self.focus_dist} must be positive")
        if np.allclose(self.lookfrom, self.lookat):
            raise ValueError("lookfrom and lookat must be different points")

    def to_dict(self) -> dict[str, Any]:
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
            "aperture": self.aperture,
            "focus_dist": self.focus_dist,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Camera":
        return cls(
            lookfrom=tuple(data["lookfrom"]),
            lookat=tuple(data["lookat"]),
            vup=tuple(data.get("vup", (0.0, 1.0, 0.0))),
            vfov=data.get("vfov", 40.0),
            aspect_ratio=data.get("aspect_ratio", 1.0),
            aperture=data.get("aperture", 0.0),
            focus_dist=data.get("focus_dist", 1.0),
        )


# =============================================================================
# Camera State (Taichi fields)
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())
_lens_radius = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: Camera) -> None:
    """Upload a camera configuration to the Taichi fields.

    Must be called from Python before any kernel generates primary rays.

    Raises:
        ValueError: If vup is parallel to the view direction.
    """
    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h * camera.focus_dist
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float32)
    lookat = np.array(camera.lookat, dtype=np.float32)
    vup = np.array(camera.vup, dtype=np.float32)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)

    u = np.cross(vup, w)
    u_norm = np.linalg.norm(u)
    if u_norm < 1e-8:
        raise ValueError(f"vup {camera.vup} is parallel to the view direction")
    u = u / u_norm

    v = np.cross(w, u)

    horizontal = viewport_width * u
    vertical = viewport_height * v
    lower_left = lookfrom - camera.focus_dist * w - horizontal / 2.0 - vertical / 2.0

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0


@ti.func
def _sample_unit_disk(lens_u: ti.f32, lens_v: ti.f32) -> tm.vec2:
    """Map two uniforms to a point in the unit disk (polar mapping)."""
    r = ti.sqrt(lens_u)
    phi = 2.0 * tm.pi * lens_v
    return tm.vec2(r * ti.cos(phi), r * ti.sin(phi))


@ti.func
def generate_ray(s: ti.f32, t: ti.f32, lens_u: ti.f32, lens_v: ti.f32) -> Ray:
    """Generate a primary ray through normalized image coordinates.

    Args:
        s: Horizontal coordinate in [0, 1] (left to right).
        t: Vertical coordinate in [0, 1] (bottom to top).
        lens_u: Uniform in [0, 1) for the lens radius.
        lens_v: Uniform in [0, 1) for the lens angle.

    Returns:
        A ray with a unit direction.
    """
    disk = _lens_radius[None] * _sample_unit_disk(lens_u, lens_v)
    offset = _camera_u[None] * disk.x + _camera_v[None] * disk.y
    origin = _camera_origin[None] + offset
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    return make_ray(origin, target - origin)


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the uploaded camera state for debugging and tests."""

    def _tuple(field: Any) -> tuple[float, float, float]:
        value = field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _tuple(_camera_origin),
        "u": _tuple(_camera_u),
        "v": _tuple(_camera_v),
        "w": _tuple(_camera_w),
        "horizontal": _tuple(_viewport_horizontal),
        "vertical": _tuple(_viewport_vertical),
        "lower_left": _tuple(_lower_left_corner),
    }
