"""Ray data structure and vector utilities shared by every pipeline stage.

The reflection and refraction helpers follow the GLSL conventions: the
incident vector points toward the surface, and ``refract`` returns the zero
vector when total internal reflection occurs. The scatter stage relies on
that zero result to detect TIR.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.ray import Ray, ray_at
    >>> # Inside a kernel:
    >>> # point = ray_at(Ray(origin=o, direction=d), t)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and a unit direction.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3). Re-normalized by every
            stage that produces a new direction.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point ``origin + t * direction``."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray, normalizing the direction."""
    return Ray(origin=origin, direction=tm.normalize(direction))


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    The result does not depend on the sign of the normal, so callers may pass
    either the outward or the ray-facing normal.

    Args:
        incident: The incoming direction (pointing toward the surface).
        normal: The surface normal (unit length).

    Returns:
        The mirrored direction ``I - 2 (I . N) N``.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract an incident vector through a surface (Snell's law).

    Args:
        incident: The incoming direction (unit length).
        normal: The normal on the incident side of the surface (unit length).
        eta: Ratio of refractive indices, n_incident / n_transmitted.

    Returns:
        The refracted direction, or the zero vector on total internal
        reflection.
    """
    cos_i = -tm.dot(incident, normal)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def rotate_about_axis(v: vec3, angle: ti.f32, axis: vec3) -> vec3:
    """Rotate ``v`` by ``angle`` radians about the unit vector ``axis``.

    Rodrigues' rotation formula; matches a right-handed rotation matrix built
    from the same axis and angle.
    """
    c = ti.cos(angle)
    s = ti.sin(angle)
    return v * c + tm.cross(axis, v) * s + axis * tm.dot(axis, v) * (1.0 - c)


@ti.func
def sanitize_color(color: vec3) -> vec3:
    """Clamp negatives to zero and replace NaN/Inf channels with zero."""
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result
