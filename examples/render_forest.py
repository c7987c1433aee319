#!/usr/bin/env python3
"""Generate and render a forest scene.

This script builds a forest end to end: it scatters conifers over the ground
seen by the camera, lights the scene with one of the sun presets and renders
it into a resumable PNG. Interrupt it with Ctrl-C and run it again to resume.

Usage:
    python -m examples.render_forest [options]

Options:
    --width WIDTH       Image width in pixels (default: 320)
    --height HEIGHT     Image height in pixels (default: 240)
    --samples SAMPLES   Number of samples per pixel (default: 16)
    --density DENSITY   Share of the ground covered by trees (default: 0.4)
    --sun {golden,blue,none}
                        Directional light preset (default: golden)
    --seed SEED         Random seed (default: 1)
    --output OUTPUT     Output file path (default: forest.png)
    --quiet             Suppress progress output

Example:
    python -m examples.render_forest --width 160 --height 120 --samples 4
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import numpy as np
import taichi as ti

EYE = (0.0, 6.0, -2.0)
DIRECTION = (0.0, -3.0, 1.0)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate and render a forest scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=320,
        help="Image width in pixels (default: 320)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=240,
        help="Image height in pixels (default: 240)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=16,
        help="Number of samples per pixel (default: 16)",
    )
    parser.add_argument(
        "--density",
        type=float,
        default=0.4,
        help="Share of the ground covered by trees (default: 0.4)",
    )
    parser.add_argument(
        "--sun",
        choices=["golden", "blue", "none"],
        default="golden",
        help="Directional light preset (default: golden)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=1,
        help="Random seed (default: 1)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="forest.png",
        help="Output file path (default: forest.png)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_forest(
    width: int = 320,
    height: int = 240,
    num_samples: int = 16,
    density: float = 0.4,
    sun: str = "golden",
    seed: int = 1,
    output_path: str = "forest.png",
    quiet: bool = False,
) -> Path:
    """Generate a forest scene and render it to a PNG.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        num_samples: Number of samples per pixel.
        density: Share of the camera footprint covered by trees.
        sun: Sun preset name.
        seed: Seed of the forest placement and of the sampler.
        output_path: Output file path (PNG).
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.canopy.camera.angular import setup_camera
    from src.canopy.camera.eye import CameraContext, Eye
    from src.canopy.core.progressive import RenderProgress, ResumableRenderer
    from src.canopy.scene.forest import generate_forest
    from src.canopy.scene.manager import SUN_PRESETS, Scene
    from src.canopy.scene.signature import make_signature

    camera = CameraContext(Eye(EYE, DIRECTION), width, height)

    if not quiet:
        print(f"Creating forest scene ({width}x{height})...")
    scene = Scene()
    scene.add_ground()
    scene.set_sun(SUN_PRESETS[sun])
    trees = generate_forest(
        scene, camera.footprint(), density, rng=np.random.default_rng(seed)
    )
    scene.add(make_signature(camera))
    if not quiet:
        print(f"  {trees} conifers, {scene.primitive_count()} primitives")

    scene.upload()
    setup_camera(camera)

    renderer = ResumableRenderer(output_path, width, height)

    if not quiet:
        print(f"Rendering {num_samples} samples per pixel...")

    start_time = time.time()

    def progress_callback(progress: RenderProgress) -> None:
        if not quiet:
            print(
                f"\r  Progress: {progress.done}/{progress.total} pixels "
                f"({progress.fraction * 100:.1f}%)",
                end="",
                flush=True,
            )

    with renderer.cancel_on_signals():
        progress = renderer.render(nsamples=num_samples, callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    total_time = time.time() - start_time
    if not quiet:
        if progress.complete:
            print(f"Saved to: {renderer.output_path.absolute()}")
        else:
            print(f"Interrupted, {progress.remaining} pixels left; run again to resume")
        print(f"Total time: {total_time:.2f}s")

    return renderer.output_path


def main() -> int:
    """Main entry point."""
    args = parse_args()

    ti.init(arch=ti.cpu, random_seed=args.seed)

    try:
        render_forest(
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            density=args.density,
            sun=args.sun,
            seed=args.seed,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
