"""Tests for the PathTracer session lifecycle.

Tests cover:
- Rendering before initialize() raises
- initialize() validation (camera, empty scene, oversized images)
- run_one_iteration() statistics and iteration bookkeeping
- render() callbacks and the generator variant
- release_resources() clears the accumulator
"""

import numpy as np
import pytest


def _initialized_tracer(lit_sphere_scene, **settings_overrides):
    from src.pathtracer.core.driver import PathTracer
    from src.pathtracer.core.settings import RenderSettings

    scene, camera = lit_sphere_scene
    params = {"width": 16, "height": 16, "trace_depth": 4}
    params.update(settings_overrides)
    tracer = PathTracer()
    tracer.initialize(scene, camera, RenderSettings(**params))
    return tracer


class TestUninitialized:
    def test_run_before_initialize_raises(self):
        from src.pathtracer.core.driver import PathTracer

        tracer = PathTracer()
        assert not tracer.is_initialized
        with pytest.raises(RuntimeError, match="initialize"):
            tracer.run_one_iteration(0)

    def test_readout_before_initialize_raises(self):
        from src.pathtracer.core.driver import PathTracer

        with pytest.raises(RuntimeError):
            PathTracer().get_image_numpy()

    def test_release_without_initialize_is_noop(self):
        from src.pathtracer.core.driver import PathTracer

        PathTracer().release_resources()


class TestInitialize:
    def test_uses_scene_camera_by_default(self, lit_sphere_scene):
        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.core.settings import RenderSettings

        scene, camera = lit_sphere_scene
        scene.camera = camera
        tracer = PathTracer()
        tracer.initialize(scene, settings=RenderSettings(width=8, height=8))
        assert tracer.is_initialized

    def test_missing_camera_raises(self, lit_sphere_scene):
        from src.pathtracer.core.driver import PathTracer

        scene, _ = lit_sphere_scene
        with pytest.raises(ValueError, match="camera"):
            PathTracer().initialize(scene)

    def test_empty_scene_raises(self, lit_sphere_scene):
        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.scene.manager import SceneManager

        _, camera = lit_sphere_scene
        with pytest.raises(ValueError, match="empty"):
            PathTracer().initialize(SceneManager(), camera)

    def test_oversized_image_raises(self):
        from src.pathtracer.core.settings import RenderSettings

        with pytest.raises(ValueError):
            RenderSettings(width=4096, height=4096)

    def test_viewport_follows_image_aspect_ratio(self, lit_sphere_scene):
        from src.pathtracer.camera.camera import get_camera_info

        _, camera = lit_sphere_scene
        assert camera.aspect_ratio == 1.0
        _initialized_tracer(lit_sphere_scene, width=64, height=32)

        info = get_camera_info()
        width = np.linalg.norm(info["horizontal"])
        height = np.linalg.norm(info["vertical"])
        assert width / height == pytest.approx(2.0, rel=1e-5)
        # The caller's camera is left as it was
        assert camera.aspect_ratio == 1.0

    def test_reinitialize_resets_accumulator(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        tracer.render(2)
        assert tracer.iteration_count == 2

        scene, camera = lit_sphere_scene
        tracer.initialize(scene, camera, tracer.settings)
        assert tracer.iteration_count == 0
        assert np.all(tracer.get_accumulated_numpy() == 0.0)


class TestRunOneIteration:
    def test_stats(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        stats = tracer.run_one_iteration(0)

        assert stats.iteration == 0
        assert stats.num_paths == 256
        assert stats.total_terminated == 256
        assert 1 <= stats.bounces <= 4
        assert stats.elapsed >= 0.0
        assert tracer.iteration_count == 1

    def test_default_iteration_index_advances(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        assert tracer.run_one_iteration().iteration == 0
        assert tracer.run_one_iteration().iteration == 1

    def test_negative_iteration_rejected(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        with pytest.raises(ValueError):
            tracer.run_one_iteration(-1)

    def test_one_deposit_per_pixel_per_iteration(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        for i in range(4):
            tracer.run_one_iteration(i)
        np.testing.assert_array_equal(tracer.get_deposit_counts(), 4)


class TestRender:
    def test_callback_receives_progress(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        calls = []
        tracer.render(5, batch_size=2, callback=lambda done, target: calls.append((done, target)))
        assert calls == [(2, 5), (4, 5), (5, 5)]

    def test_generator_variant(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        progress = list(tracer.render_progressive(3))
        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_zero_iterations_is_noop(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        tracer.render(0)
        assert tracer.iteration_count == 0

    def test_image_is_accumulator_over_iterations(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene)
        tracer.render(3)
        np.testing.assert_allclose(
            tracer.get_image_numpy(), tracer.get_accumulated_numpy() / 3.0, rtol=1e-6
        )

    def test_image_shape(self, lit_sphere_scene):
        tracer = _initialized_tracer(lit_sphere_scene, width=20, height=10)
        tracer.render(1)
        assert tracer.get_image_numpy().shape == (10, 20, 3)


class TestRelease:
    def test_release_clears_state(self, lit_sphere_scene):
        from src.pathtracer.core import pathtrace

        tracer = _initialized_tracer(lit_sphere_scene)
        tracer.render(2)
        tracer.release_resources()

        assert not tracer.is_initialized
        assert tracer.iteration_count == 0
        assert pathtrace.get_active_count() == 0
        assert np.all(pathtrace.get_accumulated_numpy(16, 16) == 0.0)
        with pytest.raises(RuntimeError):
            tracer.run_one_iteration(0)
