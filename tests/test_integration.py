"""Integration tests for the end-to-end rendering pipeline.

Tests are designed to be fast (low resolution, few iterations) while still
exercising scene building, camera setup, the full bounce loop, accumulation
and export.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

import numpy as np


class TestLitSphere:
    def test_sphere_brighter_than_background(self, lit_sphere_scene):
        """A white diffuse sphere under an area light shows up against black."""
        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.core.settings import RenderSettings

        scene, camera = lit_sphere_scene
        tracer = PathTracer()
        tracer.initialize(scene, camera, RenderSettings(width=32, height=32, trace_depth=5))
        tracer.render(16)

        image = tracer.get_image_numpy()
        center = image[14:18, 14:18].mean()
        corner = image[0:3, 0:3].mean()

        assert center > 0.0
        assert corner == 0.0
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)

    def test_lit_top_brighter_than_bottom(self, lit_sphere_scene):
        """The light is above the sphere, so its upper half receives more light."""
        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.core.settings import RenderSettings

        scene, camera = lit_sphere_scene
        tracer = PathTracer()
        tracer.initialize(scene, camera, RenderSettings(width=32, height=32, trace_depth=3))
        tracer.render(32)

        image = tracer.get_image_numpy()
        # Rows are top-first; the sphere spans the middle of the image
        upper = image[10:15, 13:19].mean()
        lower = image[18:23, 13:19].mean()
        assert upper > lower


class TestCornellBoxIntegration:
    def test_cornell_box_end_to_end(self, tmp_path):
        from PIL import Image

        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.core.settings import RenderSettings
        from src.pathtracer.scene.cornell_box import create_cornell_box_scene

        scene, camera = create_cornell_box_scene()
        tracer = PathTracer()
        tracer.initialize(scene, camera, RenderSettings(width=32, height=32, trace_depth=6))
        tracer.render(4)

        image = tracer.get_image_numpy()
        assert image.shape == (32, 32, 3)
        assert np.all(np.isfinite(image))
        assert image.mean() > 0.0

        output = tmp_path / "cornell.png"
        tracer.save_image(output)
        with Image.open(output) as png:
            assert png.size == (32, 32)
            assert png.mode == "RGB"

    def test_more_iterations_reduce_noise(self):
        """Averages over more iterations move closer to a converged reference."""
        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.core.settings import RenderSettings
        from src.pathtracer.preview.export import compute_rmse
        from src.pathtracer.scene.cornell_box import create_cornell_box_scene

        scene, camera = create_cornell_box_scene()
        tracer = PathTracer()
        settings = RenderSettings(width=16, height=16, trace_depth=4)

        tracer.initialize(scene, camera, settings)
        tracer.render(128)
        reference = tracer.get_image_numpy()

        tracer.initialize(scene, camera, settings)
        for i in range(1000, 1002):
            tracer.run_one_iteration(i)
        few = tracer.get_image_numpy()

        tracer.initialize(scene, camera, settings)
        for i in range(2000, 2032):
            tracer.run_one_iteration(i)
        many = tracer.get_image_numpy()

        assert compute_rmse(many, reference) < compute_rmse(few, reference)


class TestSceneFile:
    def test_render_from_json(self, tmp_path, lit_sphere_scene):
        from src.pathtracer.core.driver import PathTracer
        from src.pathtracer.core.settings import RenderSettings
        from src.pathtracer.scene.manager import load_scene_file, save_scene_file

        scene, camera = lit_sphere_scene
        scene.camera = camera
        path = tmp_path / "lit_sphere.json"
        save_scene_file(scene, path)

        loaded = load_scene_file(path)
        tracer = PathTracer()
        tracer.initialize(loaded, settings=RenderSettings(width=16, height=16, trace_depth=4))
        tracer.render(4)
        assert tracer.get_image_numpy().max() > 0.0
