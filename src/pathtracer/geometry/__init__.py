"""Geometry module: primitive intersection routines.

Components:
    sphere: Ray-sphere intersection (robust quadratic)
    quad: Ray-parallelogram intersection

Every routine is a Taichi function returning ``(t, outward_normal)`` with
``t = MISS_T`` (negative) on a miss, which is the same convention the
scene-level intersection stage stores per path.
"""

from .quad import hit_quad, quad_normal
from .sphere import MISS_T, hit_sphere

__all__ = [
    "MISS_T",
    "hit_sphere",
    "hit_quad",
    "quad_normal",
]
