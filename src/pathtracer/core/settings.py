"""Render settings for a path tracing session."""

from dataclasses import dataclass

# Path state buffers are preallocated for this resolution
MAX_IMAGE_WIDTH = 1024
MAX_IMAGE_HEIGHT = 1024

DEFAULT_TRACE_DEPTH = 8
DEFAULT_RAY_EPSILON = 1e-3


@dataclass
class RenderSettings:
    """Configuration of one render session.

    Attributes:
        width: Image width in pixels (at most MAX_IMAGE_WIDTH).
        height: Image height in pixels (at most MAX_IMAGE_HEIGHT).
        trace_depth: Maximum number of bounces per path.
        ray_epsilon: Distance a scattered ray's origin is pushed along its
            new direction to avoid re-hitting the surface it left.
        background: Radiance returned by rays that leave the scene.
        russian_roulette_depth: Bounce depth from which paths may be
            terminated early by Russian roulette. 0 disables it.
    """

    width: int
    height: int
    trace_depth: int = DEFAULT_TRACE_DEPTH
    ray_epsilon: float = DEFAULT_RAY_EPSILON
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)
    russian_roulette_depth: int = 0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size {self.width}x{self.height} must be positive")
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.trace_depth < 1:
            raise ValueError(f"trace_depth = {self.trace_depth} must be at least 1")
        if self.ray_epsilon <= 0.0:
            raise ValueError(f"ray_epsilon = {self.ray_epsilon} must be positive")
        if len(self.background) != 3 or any(c < 0.0 for c in self.background):
            raise ValueError(f"background {self.background} must be 3 non-negative values")
        if self.russian_roulette_depth < 0:
            raise ValueError(
                f"russian_roulette_depth = {self.russian_roulette_depth} must be >= 0"
            )

    @property
    def num_pixels(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height
