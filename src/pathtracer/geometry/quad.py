"""Quad (parallelogram) primitive with ray-quad intersection.

A quad is a corner ``Q`` and two edge vectors ``u`` and ``v``; it spans the
parallelogram Q, Q+u, Q+v, Q+u+v. The outward normal is
``normalize(cross(u, v))`` (right-hand rule), so the winding of the edges
decides which side is the front.

Intersection first finds the plane hit, then expresses the hit point in the
quad's (alpha, beta) coordinates and accepts it when both lie in [0, 1].
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3
from src.pathtracer.geometry.sphere import MISS_T


@ti.func
def hit_quad(
    ray_origin: vec3,
    ray_direction: vec3,
    corner: vec3,
    edge_u: vec3,
    edge_v: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
):
    """Intersect a ray with a quad.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray.
        corner: The corner point Q.
        edge_u: First edge vector.
        edge_v: Second edge vector.
        t_min: Hits at or below this distance are rejected.
        t_max: Hits at or beyond this distance are rejected.

    Returns:
        A tuple (t, outward_normal). ``t`` is MISS_T on a miss, on a ray
        parallel to the plane, or for a degenerate quad.
    """
    n = tm.cross(edge_u, edge_v)
    n_dot_n = tm.dot(n, n)

    t_hit = MISS_T
    normal = vec3(0.0, 0.0, 0.0)

    if n_dot_n > 1e-10:
        unit_n = n / ti.sqrt(n_dot_n)
        denom = tm.dot(unit_n, ray_direction)

        if ti.abs(denom) > 1e-8:
            t = tm.dot(unit_n, corner - ray_origin) / denom
            if t > t_min and t < t_max:
                # Planar coordinates: alpha = w_u . (P - Q), beta = w_v . (P - Q)
                p_minus_q = ray_origin + t * ray_direction - corner
                alpha = tm.dot(tm.cross(edge_v, n) / n_dot_n, p_minus_q)
                beta = tm.dot(tm.cross(n, edge_u) / n_dot_n, p_minus_q)
                if 0.0 <= alpha <= 1.0 and 0.0 <= beta <= 1.0:
                    t_hit = t
                    normal = unit_n

    return t_hit, normal


def quad_normal(
    edge_u: tuple[float, float, float],
    edge_v: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Compute the unit outward normal of a quad on the host side.

    Raises:
        ValueError: If the edges are parallel (zero-area quad).
    """
    nx = edge_u[1] * edge_v[2] - edge_u[2] * edge_v[1]
    ny = edge_u[2] * edge_v[0] - edge_u[0] * edge_v[2]
    nz = edge_u[0] * edge_v[1] - edge_u[1] * edge_v[0]
    length = (nx * nx + ny * ny + nz * nz) ** 0.5
    if length < 1e-8:
        raise ValueError(f"Quad edges {edge_u} and {edge_v} are parallel")
    return (nx / length, ny / length, nz / length)
