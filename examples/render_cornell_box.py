#!/usr/bin/env python3
"""Render the Cornell box (or a JSON scene file) with the wavefront path tracer.

Usage:
    python -m examples.render_cornell_box [options]

Example:
    python -m examples.render_cornell_box --width 256 --height 256 --iterations 64
    python -m examples.render_cornell_box --scene my_scene.json --depth 12
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("render_cornell_box")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene with the wavefront path tracer.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=512, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=512, help="Image height in pixels")
    parser.add_argument(
        "--iterations", type=int, default=100, help="Iterations (samples per pixel) to render"
    )
    parser.add_argument("--depth", type=int, default=8, help="Maximum bounces per path")
    parser.add_argument(
        "--russian-roulette",
        type=int,
        default=0,
        help="Bounce depth at which Russian roulette starts (0 disables it)",
    )
    parser.add_argument(
        "--scene", type=Path, default=None, help="JSON scene file (default: Cornell box)"
    )
    parser.add_argument("--output", type=Path, default=Path("cornell_box.png"))
    parser.add_argument("--exposure", type=float, default=1.0)
    parser.add_argument("--batch-size", type=int, default=10, help="Iterations per progress log")
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def render(args: argparse.Namespace) -> Path:
    """Build the scene, render it and save the image.

    Returns:
        Path to the saved image.
    """
    # Imported after ti.init(): these modules allocate Taichi fields on import
    from src.pathtracer.core.driver import PathTracer
    from src.pathtracer.core.settings import RenderSettings
    from src.pathtracer.scene.cornell_box import create_cornell_box_scene
    from src.pathtracer.scene.manager import load_scene_file

    settings = RenderSettings(
        width=args.width,
        height=args.height,
        trace_depth=args.depth,
        russian_roulette_depth=args.russian_roulette,
    )

    if args.scene is not None:
        scene = load_scene_file(args.scene)
        camera = scene.camera
    else:
        scene, camera = create_cornell_box_scene(aspect_ratio=settings.aspect_ratio)

    tracer = PathTracer()
    tracer.initialize(scene, camera, settings)

    start_time = time.perf_counter()

    def progress(completed: int, target: int) -> None:
        elapsed = time.perf_counter() - start_time
        rate = completed / elapsed if elapsed > 0 else 0.0
        logger.info("%d/%d iterations (%.1f it/s)", completed, target, rate)

    tracer.render(args.iterations, batch_size=args.batch_size, callback=progress)
    tracer.save_image(args.output, exposure=args.exposure)
    tracer.release_resources()

    logger.info("Total time: %.2fs", time.perf_counter() - start_time)
    return args.output


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cpu:
        ti.init(arch=ti.cpu)
    else:
        # ti.gpu falls back to the CPU backend when no GPU is available
        ti.init(arch=ti.gpu)

    try:
        output = render(args)
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("Render failed: %s", e)
        return 1

    logger.info("Saved to %s", output.absolute())
    return 0


if __name__ == "__main__":
    sys.exit(main())
