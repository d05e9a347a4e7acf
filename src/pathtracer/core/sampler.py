"""Deterministic per-path random sampling.

Every path owns an explicit 32-bit sampler state. The state is derived from
(pixel index, iteration, bounce depth) through a chain of Wang integer hashes,
then advanced with a xorshift32 generator. No global RNG is touched, so the
pipeline stages can run over any number of paths in any order and still
produce the same image for the same iteration index.

Usage within a Taichi function:
    state = seed_sampler(pixel_index, iteration, depth)
    u1, state = next_uniform(state)
    u2, state = next_uniform(state)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti

# Salt mixed into the bounce depth so depth 0 does not hash a plain zero
DEPTH_SALT = 0x2545F491

# Replacement for a zero state (xorshift32 never leaves zero)
ZERO_STATE_FALLBACK = 0x6D2B79F5

# 1 / 2^24: scales the top 24 bits of the state into [0, 1)
INV_2_POW_24 = 1.0 / 16777216.0

# Capacity of the host-side sample buffer used by sample_uniforms()
MAX_HOST_SAMPLES = 65536


@ti.func
def wang_hash(seed: ti.u32) -> ti.u32:
    """Thomas Wang's 32-bit integer hash."""
    s = seed
    s = (s ^ ti.cast(61, ti.u32)) ^ ti.bit_shr(s, 16)
    s = s * ti.cast(9, ti.u32)
    s = s ^ ti.bit_shr(s, 4)
    s = s * ti.cast(0x27D4EB2D, ti.u32)
    s = s ^ ti.bit_shr(s, 15)
    return s


@ti.func
def xorshift32(state: ti.u32) -> ti.u32:
    """Advance a xorshift32 generator by one step."""
    s = state
    s = s ^ (s << 13)
    s = s ^ ti.bit_shr(s, 17)
    s = s ^ (s << 5)
    return s


@ti.func
def seed_sampler(pixel_index: ti.i32, iteration: ti.i32, depth: ti.i32) -> ti.u32:
    """Derive the sampler state for one path at one bounce.

    Args:
        pixel_index: Linear index of the pixel that spawned the path.
        iteration: Progressive iteration number.
        depth: Bounce depth. Depth 0 is reserved for camera ray generation.

    Returns:
        A non-zero u32 sampler state.
    """
    h = wang_hash(ti.cast(depth, ti.u32) + ti.cast(DEPTH_SALT, ti.u32))
    h = wang_hash(h ^ ti.cast(iteration, ti.u32))
    h = wang_hash(h ^ ti.cast(pixel_index, ti.u32))
    if h == 0:
        h = ti.cast(ZERO_STATE_FALLBACK, ti.u32)
    return h


@ti.func
def next_uniform(state: ti.u32):
    """Draw one uniform sample in [0, 1).

    Args:
        state: The current sampler state.

    Returns:
        A tuple (value, new_state).
    """
    s = xorshift32(state)
    value = ti.cast(ti.bit_shr(s, 8), ti.f32) * INV_2_POW_24
    return value, s


# =============================================================================
# Host-side access (testing and diagnostics)
# =============================================================================

_host_samples = ti.field(dtype=ti.f32, shape=MAX_HOST_SAMPLES)


@ti.kernel
def _fill_host_samples(pixel_index: ti.i32, iteration: ti.i32, depth: ti.i32, count: ti.i32):
    state = seed_sampler(pixel_index, iteration, depth)
    ti.loop_config(serialize=True)
    for i in range(count):
        value, state = next_uniform(state)
        _host_samples[i] = value


def sample_uniforms(
    pixel_index: int,
    iteration: int,
    depth: int,
    count: int,
) -> npt.NDArray[np.float32]:
    """Return the first ``count`` uniforms of a path's sampler stream.

    Args:
        pixel_index: Linear pixel index.
        iteration: Iteration number.
        depth: Bounce depth.
        count: Number of samples (at most MAX_HOST_SAMPLES).

    Returns:
        NumPy array of shape (count,) with dtype float32.

    Raises:
        ValueError: If count is not in [1, MAX_HOST_SAMPLES].
    """
    if count < 1 or count > MAX_HOST_SAMPLES:
        raise ValueError(f"count must be in [1, {MAX_HOST_SAMPLES}], got {count}")

    _fill_host_samples(pixel_index, iteration, depth, count)
    return _host_samples.to_numpy()[:count].copy()
