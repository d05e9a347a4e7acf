"""Wavefront path tracing stages.

Instead of tracing each path to completion inside one kernel, the paths of
an iteration advance together one bounce at a time. Each stage is its own
kernel launch over the active working set, and each launch is a barrier:

    generate_camera_paths        one path per pixel, throughput (1, 1, 1)
    repeat up to trace_depth times:
        compute_intersections    nearest hit or miss per active path
        scatter_paths            new ray and throughput for surviving hits
        gather_and_terminate     deposit finished paths, mark survivors
        compact                  pack surviving path indices
    force_terminate              deposit anything still alive

Path state is stored Structure-of-Arrays, one slot per pixel, and never
moves. The working set is a list of slot indices held in one of two buffers;
compaction partitions it into the other buffer with an atomic counter, so
the order of survivors is arbitrary, and the buffers then swap roles.

Every path deposits into the accumulator exactly once per iteration: on a
miss (throughput times background), on an emissive hit (throughput times
emitted radiance), when absorbed, when its bounce budget runs out, or in the
forced-termination pass. The last three deposit zero.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.pathtrace import clear_accumulator, trace_iteration
    >>> clear_accumulator()
    >>> terminated = trace_iteration(iteration=0, settings=settings)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.camera import generate_ray
from src.pathtracer.core.ray import sanitize_color, vec3
from src.pathtracer.core.sampler import next_uniform, seed_sampler
from src.pathtracer.core.settings import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, RenderSettings
from src.pathtracer.materials.registry import (
    MaterialKind,
    emitted_radiance,
    get_material,
    get_material_kind,
)
from src.pathtracer.materials.scatter import scatter_ray
from src.pathtracer.scene.intersection import intersect_scene

# =============================================================================
# Constants
# =============================================================================

MAX_PATHS = MAX_IMAGE_WIDTH * MAX_IMAGE_HEIGHT

# Intersection range; T_MIN rejects hits on the surface a ray just left
T_MIN = 1e-4
T_MAX = 1e10

# Russian roulette survival probability cap
MAX_RR_PROBABILITY = 0.95

# =============================================================================
# Path State (one slot per pixel)
# =============================================================================

_path_origin = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATHS)
_path_direction = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATHS)
_path_color = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATHS)
_path_pixel = ti.field(dtype=ti.i32, shape=MAX_PATHS)
_path_remaining = ti.field(dtype=ti.i32, shape=MAX_PATHS)
_path_rng = ti.field(dtype=ti.u32, shape=MAX_PATHS)
_path_absorbed = ti.field(dtype=ti.i32, shape=MAX_PATHS)
_path_alive = ti.field(dtype=ti.i32, shape=MAX_PATHS)

# Intersection per path slot, valid for the current bounce
_isect_t = ti.field(dtype=ti.f32, shape=MAX_PATHS)
_isect_normal = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATHS)
_isect_material = ti.field(dtype=ti.i32, shape=MAX_PATHS)

# Working set: indices of active path slots. Two buffers alternate roles;
# compaction reads the current one and writes the other
_active_a = ti.field(dtype=ti.i32, shape=MAX_PATHS)
_active_b = ti.field(dtype=ti.i32, shape=MAX_PATHS)
_working_sets = (_active_a, _active_b)
_current_set = 0
_num_active = ti.field(dtype=ti.i32, shape=())
_num_next = ti.field(dtype=ti.i32, shape=())

# Image accumulator, indexed by pixel (row-major, row 0 at the bottom)
_accumulator = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATHS)
_deposits = ti.field(dtype=ti.i32, shape=MAX_PATHS)

_background = ti.Vector.field(3, dtype=ti.f32, shape=())


# =============================================================================
# Helpers
# =============================================================================


@ti.func
def _deposit(path: ti.i32, radiance: vec3):
    pixel = _path_pixel[path]
    # Augmented assignment on a field is an atomic add in Taichi
    _accumulator[pixel] += sanitize_color(radiance)
    ti.atomic_add(_deposits[pixel], 1)
    _path_alive[path] = 0


@ti.func
def _luminance(color: vec3) -> ti.f32:
    return 0.2126 * color.x + 0.7152 * color.y + 0.0722 * color.z


# =============================================================================
# Stage Kernels
# =============================================================================


@ti.kernel
def _generate_camera_paths(
    active: ti.template(), iteration: ti.i32, width: ti.i32, height: ti.i32, trace_depth: ti.i32
):
    """Spawn one jittered camera path per pixel and fill the working set."""
    for idx in range(width * height):
        i = idx % width
        j = idx // width

        state = seed_sampler(idx, iteration, 0)
        jitter_u, state = next_uniform(state)
        jitter_v, state = next_uniform(state)
        lens_u, state = next_uniform(state)
        lens_v, state = next_uniform(state)

        s = (ti.cast(i, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
        t = (ti.cast(j, ti.f32) + jitter_v) / ti.cast(height, ti.f32)
        ray = generate_ray(s, t, lens_u, lens_v)

        _path_origin[idx] = ray.origin
        _path_direction[idx] = ray.direction
        _path_color[idx] = vec3(1.0, 1.0, 1.0)
        _path_pixel[idx] = idx
        _path_remaining[idx] = trace_depth
        _path_rng[idx] = state
        _path_absorbed[idx] = 0
        _path_alive[idx] = 1
        active[idx] = idx

    _num_active[None] = width * height


@ti.kernel
def _compute_intersections(active: ti.template()):
    """Find the nearest hit for every active path."""
    for k in range(_num_active[None]):
        p = active[k]
        isect = intersect_scene(_path_origin[p], _path_direction[p], T_MIN, T_MAX)
        _isect_t[p] = isect.t
        _isect_normal[p] = isect.surface_normal
        _isect_material[p] = isect.material_id


@ti.kernel
def _scatter_paths(active: ti.template(), iteration: ti.i32, depth: ti.i32, ray_epsilon: ti.f32):
    """Scatter every active path that hit a non-emissive surface.

    Args:
        iteration: Iteration number, for sampler seeding.
        depth: Bounce depth, starting at 1.
        ray_epsilon: Offset applied to the new ray origin.
    """
    for k in range(_num_active[None]):
        p = active[k]
        t = _isect_t[p]
        if t > 0.0:
            material_id = _isect_material[p]
            if get_material_kind(material_id) != int(MaterialKind.EMISSIVE):
                state = seed_sampler(_path_pixel[p], iteration, depth)
                origin, direction, attenuation, absorbed, state = scatter_ray(
                    _path_origin[p],
                    _path_direction[p],
                    t,
                    _isect_normal[p],
                    get_material(material_id),
                    state,
                    ray_epsilon,
                )
                _path_origin[p] = origin
                _path_direction[p] = direction
                _path_color[p] = _path_color[p] * attenuation
                _path_absorbed[p] = absorbed
                _path_rng[p] = state


@ti.kernel
def _gather_and_terminate(active: ti.template(), depth: ti.i32, russian_roulette_depth: ti.i32):
    """Deposit finished paths and mark survivors alive.

    Args:
        depth: Bounce depth, starting at 1.
        russian_roulette_depth: First depth at which Russian roulette
            applies; 0 disables it.
    """
    for k in range(_num_active[None]):
        p = active[k]
        t = _isect_t[p]
        color = _path_color[p]
        finished = 0
        radiance = vec3(0.0, 0.0, 0.0)

        if t < 0.0:
            radiance = color * _background[None]
            finished = 1
        else:
            material = get_material(_isect_material[p])
            if material.kind == int(MaterialKind.EMISSIVE):
                radiance = color * emitted_radiance(material)
                finished = 1
            elif _path_absorbed[p] == 1:
                finished = 1
            else:
                remaining = _path_remaining[p] - 1
                _path_remaining[p] = remaining
                if remaining <= 0:
                    finished = 1
                elif russian_roulette_depth > 0 and depth >= russian_roulette_depth:
                    survival = tm.min(_luminance(color), MAX_RR_PROBABILITY)
                    u, state = next_uniform(_path_rng[p])
                    _path_rng[p] = state
                    if u >= survival:
                        finished = 1
                    else:
                        _path_color[p] = color / survival

        if finished == 1:
            _deposit(p, radiance)
        else:
            _path_alive[p] = 1


@ti.kernel
def _compact_paths(active: ti.template(), next_active: ti.template()):
    """Partition surviving path indices of ``active`` into ``next_active``."""
    _num_next[None] = 0
    for k in range(_num_active[None]):
        p = active[k]
        if _path_alive[p] == 1:
            slot = ti.atomic_add(_num_next[None], 1)
            next_active[slot] = p
    _num_active[None] = _num_next[None]


@ti.kernel
def _force_terminate(active: ti.template()):
    """Deposit zero for every path still in the working set."""
    for k in range(_num_active[None]):
        _deposit(active[k], vec3(0.0, 0.0, 0.0))
    _num_active[None] = 0


@ti.kernel
def _clear_accumulator_kernel():
    for p in range(MAX_PATHS):
        _accumulator[p] = vec3(0.0, 0.0, 0.0)
        _deposits[p] = 0


# =============================================================================
# Python-side orchestration
# =============================================================================


def set_background(background: tuple[float, float, float]) -> None:
    _background[None] = vec3(background[0], background[1], background[2])


def clear_accumulator() -> None:
    """Zero the image accumulator and the per-pixel deposit counters."""
    _clear_accumulator_kernel()


def clear_working_set() -> None:
    global _current_set
    _current_set = 0
    _num_active[None] = 0
    _num_next[None] = 0


def _active_set():
    return _working_sets[_current_set]


def generate_camera_paths(iteration: int, width: int, height: int, trace_depth: int) -> None:
    """Spawn one camera path per pixel into a fresh working set."""
    global _current_set
    _current_set = 0
    _generate_camera_paths(_active_set(), iteration, width, height, trace_depth)


def compute_intersections() -> None:
    _compute_intersections(_active_set())


def scatter_paths(iteration: int, depth: int, ray_epsilon: float) -> None:
    _scatter_paths(_active_set(), iteration, depth, ray_epsilon)


def gather_and_terminate(depth: int, russian_roulette_depth: int) -> None:
    _gather_and_terminate(_active_set(), depth, russian_roulette_depth)


def force_terminate() -> None:
    """Deposit zero for every path still in the working set and empty it."""
    _force_terminate(_active_set())


def get_active_count() -> int:
    """Number of paths in the current working set."""
    return int(_num_active[None])


def get_active_indices() -> npt.NDArray[np.int32]:
    """Path slots of the current working set, in working-set order."""
    return _active_set().to_numpy()[: get_active_count()]


def compact() -> int:
    """Compact the working set and return the number of surviving paths."""
    global _current_set
    next_set = 1 - _current_set
    _compact_paths(_active_set(), _working_sets[next_set])
    _current_set = next_set
    return get_active_count()


def trace_iteration(iteration: int, settings: RenderSettings) -> list[int]:
    """Run the full bounce loop for one iteration.

    Args:
        iteration: Iteration number; selects the sampler streams.
        settings: Session settings.

    Returns:
        Number of paths terminated at each bounce, in bounce order. A final
        entry is appended when the forced-termination pass deposits paths.
    """
    set_background(settings.background)
    generate_camera_paths(iteration, settings.width, settings.height, settings.trace_depth)

    terminated_per_bounce: list[int] = []
    active = get_active_count()
    for depth in range(1, settings.trace_depth + 1):
        if active == 0:
            break
        compute_intersections()
        scatter_paths(iteration, depth, settings.ray_epsilon)
        gather_and_terminate(depth, settings.russian_roulette_depth)
        survivors = compact()
        terminated_per_bounce.append(active - survivors)
        active = survivors

    if active > 0:
        force_terminate()
        terminated_per_bounce.append(active)

    return terminated_per_bounce


def get_accumulated_numpy(width: int, height: int) -> npt.NDArray[np.float32]:
    """Raw accumulated radiance, shape (height, width, 3), top row first."""
    flat = _accumulator.to_numpy()[: width * height]
    image = flat.reshape(height, width, 3)
    return np.flipud(image).astype(np.float32)


def get_deposit_counts(width: int, height: int) -> npt.NDArray[np.int32]:
    """Per-pixel deposit counts, shape (height, width), top row first."""
    flat = _deposits.to_numpy()[: width * height]
    return np.flipud(flat.reshape(height, width)).astype(np.int32)


def get_path_throughputs(count: int) -> npt.NDArray[np.float32]:
    """Throughput of the first ``count`` path slots, for diagnostics."""
    return _path_color.to_numpy()[:count].astype(np.float32)
