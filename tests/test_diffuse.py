"""Unit tests for diffuse (cosine-weighted hemisphere) scattering.

Tests cover:
- Unit-length output
- Hemisphere containment for arbitrary normals
- Cosine-weighted distribution (mean cosine of 2/3)
- Facing-normal selection for back-side hits
- Attenuation equal to the base color
"""

import numpy as np
import pytest
import taichi as ti

N_SAMPLES = 4096


def _sample_directions(normal, incident=(0.0, 0.0, -1.0)):
    """Draw N_SAMPLES diffuse bounces and return (directions, attenuations)."""
    from src.pathtracer.core.sampler import seed_sampler
    from src.pathtracer.core.ray import vec3
    from src.pathtracer.materials.diffuse import scatter_diffuse

    directions = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)
    attenuations = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

    @ti.kernel
    def sample_kernel(nx: ti.f32, ny: ti.f32, nz: ti.f32, ix: ti.f32, iy: ti.f32, iz: ti.f32):
        n = ti.math.normalize(vec3(nx, ny, nz))
        d = ti.math.normalize(vec3(ix, iy, iz))
        for i in range(N_SAMPLES):
            state = seed_sampler(i, 0, 1)
            direction, attenuation, state = scatter_diffuse(d, n, vec3(0.2, 0.4, 0.6), state)
            directions[i] = direction
            attenuations[i] = attenuation

    sample_kernel(*normal, *incident)
    return directions.to_numpy(), attenuations.to_numpy()


class TestHemisphereDirection:
    @pytest.mark.parametrize(
        "normal",
        [
            (0.0, 0.0, 1.0),
            (1.0, 0.0, 0.0),
            (0.0, -1.0, 0.0),
            (0.577, 0.577, 0.577),
            (0.1, -0.9, 0.3),
        ],
    )
    def test_unit_length_and_in_hemisphere(self, normal):
        # Incident ray points against the normal so the facing normal is n
        n = np.array(normal) / np.linalg.norm(normal)
        directions, _ = _sample_directions(tuple(n), tuple(-n))

        lengths = np.linalg.norm(directions, axis=1)
        np.testing.assert_allclose(lengths, 1.0, atol=1e-4)
        assert np.all(directions @ n >= -1e-5)

    def test_mean_cosine_is_two_thirds(self):
        directions, _ = _sample_directions((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))
        mean_cos = directions[:, 1].mean()
        assert abs(mean_cos - 2.0 / 3.0) < 0.02

    def test_azimuth_is_symmetric(self):
        directions, _ = _sample_directions((0.0, 0.0, 1.0))
        assert abs(directions[:, 0].mean()) < 0.05
        assert abs(directions[:, 1].mean()) < 0.05


class TestFacingNormal:
    def test_back_side_hit_scatters_to_incoming_side(self):
        """A ray travelling along +n hit the back face; bounces go to -n."""
        directions, _ = _sample_directions((0.0, 0.0, 1.0), (0.0, 0.0, 1.0))
        assert np.all(directions[:, 2] <= 1e-5)


class TestAttenuation:
    def test_attenuation_is_base_color(self):
        _, attenuations = _sample_directions((0.0, 0.0, 1.0))
        np.testing.assert_allclose(attenuations, np.tile([0.2, 0.4, 0.6], (N_SAMPLES, 1)), atol=1e-6)


class TestHemisphereMapping:
    def test_u1_one_gives_normal(self):
        """cos(theta) = sqrt(u1), so u1 -> 1 maps onto the normal itself."""
        from src.pathtracer.core.ray import vec3
        from src.pathtracer.materials.diffuse import calculate_random_direction_in_hemisphere

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            n = ti.math.normalize(vec3(0.3, 0.4, -0.5))
            result[None] = calculate_random_direction_in_hemisphere(n, 1.0, 0.37)

        test_kernel()
        expected = np.array([0.3, 0.4, -0.5]) / np.linalg.norm([0.3, 0.4, -0.5])
        np.testing.assert_allclose(result[None].to_numpy(), expected, atol=1e-5)

    def test_u1_zero_is_tangent(self):
        from src.pathtracer.core.ray import vec3
        from src.pathtracer.materials.diffuse import calculate_random_direction_in_hemisphere

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = calculate_random_direction_in_hemisphere(vec3(0.0, 0.0, 1.0), 0.0, 0.25)

        test_kernel()
        d = result[None].to_numpy()
        assert abs(d[2]) < 1e-6
        assert abs(np.linalg.norm(d) - 1.0) < 1e-5
