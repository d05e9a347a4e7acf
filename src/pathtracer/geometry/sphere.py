"""Sphere primitive with robust ray-sphere intersection.

Intersection uses the robust quadratic formulation from Ray Tracing Gems
(section 7.2.2). The discriminant is computed as ``a * (r^2 - |l|^2)`` where
``l = oc - (h / a) * d`` is the offset from the center to the closest point
on the ray, so it stays accurate for spheres far from the ray origin. With
``q = -(h + sign(h) * sqrt(d))`` the roots are ``q / a`` and ``c / q``, which
avoids subtracting two nearly equal numbers.

The returned normal is the geometric outward normal, regardless of which
side the ray arrives from. The scatter stage decides whether the ray is
entering or leaving from the sign of ``dot(normal, direction)``.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3

# Sentinel distance returned on a miss
MISS_T = -1.0


@ti.func
def _sphere_roots(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Return the two roots of ``a t^2 + 2 h t + c = 0`` in ascending order."""
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        # Tangent ray through the center plane; fall back to the textbook form
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    return ti.min(t0, t1), ti.max(t0, t1)


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    center: vec3,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
):
    """Intersect a ray with a sphere.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray.
        center: Sphere center.
        radius: Sphere radius (positive).
        t_min: Hits at or below this distance are rejected.
        t_max: Hits at or beyond this distance are rejected.

    Returns:
        A tuple (t, outward_normal). ``t`` is MISS_T when nothing is hit
        inside (t_min, t_max).
    """
    oc = ray_origin - center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - radius * radius
    # Equals h^2 - a c; l is the offset from the center to the closest point
    l = oc - (h / a) * ray_direction
    discriminant = a * (radius * radius - tm.dot(l, l))

    t_hit = MISS_T
    normal = vec3(0.0, 0.0, 0.0)

    if discriminant >= 0.0:
        t0, t1 = _sphere_roots(h, a, c, ti.sqrt(discriminant))
        if t0 > t_min and t0 < t_max:
            t_hit = t0
        elif t1 > t_min and t1 < t_max:
            t_hit = t1

        if t_hit > 0.0:
            normal = (ray_origin + t_hit * ray_direction - center) / radius

    return t_hit, normal
