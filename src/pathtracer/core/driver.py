"""Path tracer driver: session lifecycle and progressive rendering.

The PathTracer owns a render session. ``initialize`` uploads the camera and
resets the accumulator; ``run_one_iteration`` runs the wavefront bounce
loop once, adding exactly one sample per pixel; ``release_resources`` ends
the session. The accumulated image is the running sum of all iterations and
is read out divided by the iteration count.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.pathtracer.core.driver import PathTracer
    >>> from src.pathtracer.core.settings import RenderSettings
    >>> from src.pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> tracer = PathTracer()
    >>> tracer.initialize(scene, camera, RenderSettings(width=256, height=256))
    >>> tracer.render(64)
    >>> tracer.save_image("cornell_box.png")
"""

import logging
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass, field, replace
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.pathtracer.camera.camera import Camera, setup_camera
from src.pathtracer.core import pathtrace
from src.pathtracer.core.settings import RenderSettings
from src.pathtracer.preview.export import ToneMapMethod, save_png
from src.pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Callback receives (completed_iterations, target_iterations)
ProgressCallback = Callable[[int, int], None]


@dataclass
class IterationStats:
    """Summary of one iteration of the bounce loop.

    Attributes:
        iteration: Iteration number that was rendered.
        num_paths: Paths spawned (one per pixel).
        terminated_per_bounce: Paths terminated at each bounce, including a
            final forced-termination entry when one was needed.
        elapsed: Wall-clock seconds spent on the iteration.
    """

    iteration: int
    num_paths: int
    terminated_per_bounce: list[int] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def bounces(self) -> int:
        return len(self.terminated_per_bounce)

    @property
    def total_terminated(self) -> int:
        return sum(self.terminated_per_bounce)


class PathTracer:
    """Progressive wavefront path tracer.

    Attributes:
        settings: Settings of the current session, or None before initialize().
        iteration_count: Number of iterations accumulated in this session.
    """

    def __init__(self) -> None:
        self.settings: RenderSettings | None = None
        self.iteration_count = 0
        self._scene: SceneManager | None = None
        self._camera: Camera | None = None

    @property
    def is_initialized(self) -> bool:
        return self.settings is not None

    def initialize(
        self,
        scene: SceneManager,
        camera: Camera | None = None,
        settings: RenderSettings | None = None,
    ) -> None:
        """Start a render session.

        Args:
            scene: The scene to render. Its materials and geoms are already
                resident in the kernel-side tables.
            camera: Camera to render from; defaults to ``scene.camera``.
                Its aspect ratio is replaced by the one of the image.
            settings: Session settings; defaults to 256x256.

        Raises:
            ValueError: If no camera is available or the scene is empty.
        """
        if settings is None:
            settings = RenderSettings(width=256, height=256)
        if camera is None:
            camera = scene.camera
        if camera is None:
            raise ValueError("No camera given and the scene does not define one")
        if scene.get_geom_count() == 0:
            raise ValueError("Cannot render an empty scene")

        if self.is_initialized:
            self.release_resources()

        # The image shape decides the viewport, whatever the camera was built for
        if camera.aspect_ratio != settings.aspect_ratio:
            logger.debug(
                "Camera aspect ratio %.4f replaced by image aspect ratio %.4f",
                camera.aspect_ratio,
                settings.aspect_ratio,
            )
            camera = replace(camera, aspect_ratio=settings.aspect_ratio)

        setup_camera(camera)
        pathtrace.set_background(settings.background)
        pathtrace.clear_working_set()
        pathtrace.clear_accumulator()

        self._scene = scene
        self._camera = camera
        self.settings = settings
        self.iteration_count = 0

        logger.info(
            "Initialized %dx%d render: %d geoms, %d materials, trace depth %d",
            settings.width,
            settings.height,
            scene.get_geom_count(),
            scene.get_material_count(),
            settings.trace_depth,
        )

    def release_resources(self) -> None:
        """End the session and clear the working set and accumulator."""
        if not self.is_initialized:
            return
        pathtrace.clear_working_set()
        pathtrace.clear_accumulator()
        logger.info("Released render session after %d iterations", self.iteration_count)
        self.settings = None
        self._scene = None
        self._camera = None
        self.iteration_count = 0

    def _require_settings(self) -> RenderSettings:
        if self.settings is None:
            raise RuntimeError("PathTracer has not been initialized. Call initialize() first.")
        return self.settings

    def run_one_iteration(self, iteration: int | None = None) -> IterationStats:
        """Trace one path per pixel through the full bounce loop.

        Args:
            iteration: Iteration number used for sampler seeding. Defaults to
                the number of iterations already accumulated.

        Returns:
            Statistics for the iteration.

        Raises:
            RuntimeError: If the tracer has not been initialized.
            ValueError: If iteration is negative.
        """
        settings = self._require_settings()
        if iteration is None:
            iteration = self.iteration_count
        if iteration < 0:
            raise ValueError(f"iteration = {iteration} must be non-negative")

        start = time.perf_counter()
        terminated = pathtrace.trace_iteration(iteration, settings)
        elapsed = time.perf_counter() - start

        self.iteration_count += 1
        stats = IterationStats(
            iteration=iteration,
            num_paths=settings.num_pixels,
            terminated_per_bounce=terminated,
            elapsed=elapsed,
        )
        logger.debug(
            "Iteration %d: %d bounces, %.3fs", iteration, stats.bounces, stats.elapsed
        )
        return stats

    def render(
        self,
        num_iterations: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Accumulate several iterations, calling back after each batch.

        Args:
            num_iterations: Iterations to add to the accumulator.
            batch_size: Iterations between callbacks.
            callback: Optional callable receiving
                (completed_iterations, target_iterations).
        """
        for completed, target in self.render_progressive(num_iterations, batch_size):
            if callback is not None:
                callback(completed, target)

    def render_progressive(
        self,
        num_iterations: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Generator form of render(), yielding progress after each batch.

        Yields:
            Tuple of (completed_iterations, target_iterations).
        """
        self._require_settings()
        if num_iterations <= 0:
            return
        if batch_size < 1:
            raise ValueError(f"batch_size = {batch_size} must be at least 1")

        target = self.iteration_count + num_iterations
        remaining = num_iterations
        while remaining > 0:
            batch = min(batch_size, remaining)
            for _ in range(batch):
                self.run_one_iteration()
            remaining -= batch
            yield (self.iteration_count, target)

    def get_accumulated_numpy(self) -> npt.NDArray[np.float32]:
        """Raw accumulator sums, shape (height, width, 3), top row first."""
        settings = self._require_settings()
        return pathtrace.get_accumulated_numpy(settings.width, settings.height)

    def get_deposit_counts(self) -> npt.NDArray[np.int32]:
        settings = self._require_settings()
        return pathtrace.get_deposit_counts(settings.width, settings.height)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Averaged linear radiance, shape (height, width, 3), top row first.

        Returns zeros before the first iteration.
        """
        accumulated = self.get_accumulated_numpy()
        if self.iteration_count == 0:
            return np.zeros_like(accumulated)
        return (accumulated / float(self.iteration_count)).astype(np.float32)

    def save_image(
        self,
        filepath: str | Path,
        exposure: float = 1.0,
        tone_map: ToneMapMethod = "reinhard",
        gamma: float = 2.2,
    ) -> None:
        """Tone map the averaged image and write it as a PNG."""
        save_png(self.get_image_numpy(), filepath, exposure=exposure, tone_map=tone_map, gamma=gamma)
        logger.info("Saved %d-iteration image to %s", self.iteration_count, filepath)

    def __repr__(self) -> str:
        if self.settings is None:
            return "PathTracer(uninitialized)"
        return (
            f"PathTracer(width={self.settings.width}, height={self.settings.height}, "
            f"iterations={self.iteration_count})"
        )
