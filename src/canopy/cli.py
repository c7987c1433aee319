"""Command line interface.

Three commands share the camera options (eye position, viewing direction and
resolution):

    generate  scatter a conifer forest over the camera footprint and save
              the scene as JSON
    extract   approximate a photo with a grid of coloured spheres and save
              the scene as JSON
    render    render a JSON scene into a resumable PNG

Usage:
    python -m src.canopy generate --eye 0,2,0 --dir 0,-3,1 --size 320x240 \\
        --density 0.5 --out forest.json --seed 1
    python -m src.canopy render --scene forest.json --out forest.png \\
        --eye 0,2,0 --dir 0,-3,1 --size 320x240 --samples 16

Interrupting a render (Ctrl-C) finishes the current tile, saves the partial
image and exits normally; running the same command again resumes it.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import numpy as np
import taichi as ti

from src.canopy import __version__
from src.canopy.camera.eye import CameraContext, Eye
from src.canopy.config import DEPTH_MAX, MAX_OBJECTS, MAX_PRIMITIVES, SNAP_EPSILON, RenderConfig
from src.canopy.logging_config import setup_logging
from src.canopy.scene.manager import SUN_PRESETS, Scene

logger = logging.getLogger(__name__)

# Owl placed by ``generate --owl``: distance ahead of the eye and scale
OWL_DISTANCE = 4.0
OWL_SCALE = 1.0
OWL_CLEARANCE = 0.6


def parse_vector(text: str) -> tuple[float, float, float]:
    """argparse type for ``x,y,z``."""
    parts = text.split(",")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"expected x,y,z, got {text!r}")
    try:
        x, y, z = (float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected three numbers, got {text!r}") from None
    return (x, y, z)


def parse_size(text: str) -> tuple[int, int]:
    """argparse type for ``WIDTHxHEIGHT``."""
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integer sizes, got {text!r}") from None
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"sizes must be positive, got {text!r}")
    return (width, height)


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def _add_camera_args(parser: argparse.ArgumentParser, size_required: bool = True) -> None:
    parser.add_argument(
        "--eye",
        type=parse_vector,
        required=True,
        help="Eye position x,y,z",
    )
    parser.add_argument(
        "--dir",
        type=parse_vector,
        required=True,
        help="Viewing direction x,y,z (must not be vertical)",
    )
    if size_required:
        parser.add_argument(
            "--size",
            type=parse_size,
            default=(640, 480),
            help="Image size WIDTHxHEIGHT (default: 640x480)",
        )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (default: a fresh random seed)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the generate, extract and render commands."""
    parser = argparse.ArgumentParser(
        prog="canopy",
        description="Monte Carlo forest ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress (-v for INFO, -vv for DEBUG)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # generate
    generate = subparsers.add_parser(
        "generate",
        help="Generate a forest scene",
        description="Scatter conifers over the ground seen by the camera.",
    )
    _add_camera_args(generate)
    generate.add_argument(
        "--density",
        type=float,
        required=True,
        help="Share of the ground footprint covered by trees, in (0, 1)",
    )
    generate.add_argument("--out", required=True, help="Output scene JSON file")
    generate.add_argument(
        "--sun",
        choices=["golden", "blue", "none"],
        default="golden",
        help="Directional light preset (default: golden)",
    )
    generate.add_argument(
        "--owl",
        action="store_true",
        help="Put an owl on the ground in front of the camera",
    )
    generate.add_argument(
        "--snap-epsilon",
        type=float,
        default=SNAP_EPSILON,
        help=f"Snap threshold of triangle vertices (default: {SNAP_EPSILON})",
    )

    # extract
    extract = subparsers.add_parser(
        "extract",
        help="Approximate a photo with spheres",
        description="Build a scene of coloured spheres that reproduces a photo.",
    )
    _add_camera_args(extract, size_required=False)
    extract.add_argument("--photo", required=True, help="Input image (PNG, JPEG, ...)")
    extract.add_argument(
        "--spheres",
        type=_positive_int,
        required=True,
        help="Number of spheres along the vertical axis",
    )
    extract.add_argument("--out", required=True, help="Output scene JSON file")
    extract.add_argument(
        "--arch",
        choices=["cpu", "gpu"],
        default="cpu",
        help="Taichi backend (default: cpu)",
    )

    # render
    render = subparsers.add_parser(
        "render",
        help="Render a scene into a resumable PNG",
        description=(
            "Render a scene. An existing output PNG with unfinished pixels is "
            "resumed; a finished one is left untouched."
        ),
    )
    _add_camera_args(render)
    render.add_argument("--scene", required=True, help="Scene JSON file")
    render.add_argument("--out", required=True, help="Output PNG file")
    render.add_argument(
        "--samples",
        type=_positive_int,
        default=16,
        help="Samples per pixel (default: 16)",
    )
    render.add_argument(
        "--sun",
        choices=["keep", "golden", "blue", "none"],
        default="keep",
        help="Override the scene's directional light (default: keep)",
    )
    render.add_argument("--no-shadows", action="store_true", help="Disable the sun blend")
    render.add_argument(
        "--no-diffuse",
        action="store_true",
        help="Use surface colours without diffuse bounces",
    )
    render.add_argument(
        "--signature",
        nargs="?",
        const="CANOPY",
        default=None,
        metavar="LABEL",
        help="Stamp a label in the bottom-right corner (default label: CANOPY)",
    )
    render.add_argument(
        "--depth-max",
        type=int,
        default=DEPTH_MAX,
        help=f"Maximum number of diffuse bounces (default: {DEPTH_MAX})",
    )
    render.add_argument(
        "--rows-per-tile",
        type=_positive_int,
        default=16,
        help="Image rows per kernel launch (default: 16)",
    )
    render.add_argument(
        "--arch",
        choices=["cpu", "gpu"],
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    render.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def _init_taichi(arch: str, seed: Optional[int]) -> None:
    if seed is None:
        seed = int(np.random.default_rng().integers(2**31 - 1))
    logger.debug("taichi: arch=%s random_seed=%d", arch, seed)
    backend = ti.gpu if arch == "gpu" else ti.cpu
    ti.init(arch=backend, random_seed=seed)


def _owl_position(camera: CameraContext) -> tuple[float, float, float]:
    """Ground position OWL_DISTANCE ahead of the eye, body resting on y = 0."""
    forward = np.array([camera.direction[0], 0.0, camera.direction[2]])
    forward /= np.linalg.norm(forward)
    ground = camera.origin + OWL_DISTANCE * forward
    return (float(ground[0]), 0.7 * OWL_SCALE, float(ground[2]))


def cmd_generate(args: argparse.Namespace) -> int:
    from src.canopy.scene.forest import PRIMITIVES_PER_TREE, Circle, generate_forest
    from src.canopy.scene.objects import Owl

    width, height = args.size
    camera = CameraContext(Eye(args.eye, args.dir), width, height)
    rng = np.random.default_rng(args.seed)

    scene = Scene()
    scene.add_ground()
    scene.set_sun(SUN_PRESETS[args.sun])

    reserved = []
    if args.owl:
        center = _owl_position(camera)
        scene.add(Owl(center, OWL_SCALE))
        reserved.append(Circle((center[0], 0.0, center[2]), OWL_CLEARANCE * OWL_SCALE))

    # Room left in the device scene tables
    max_trees = min(
        (MAX_PRIMITIVES - scene.primitive_count()) // PRIMITIVES_PER_TREE,
        MAX_OBJECTS - len(scene),
    )
    trees = generate_forest(
        scene,
        camera.footprint(),
        args.density,
        rng=rng,
        reserved=reserved,
        snap_epsilon=args.snap_epsilon,
        max_trees=max_trees,
    )
    primitives = scene.primitive_count()
    if primitives > MAX_PRIMITIVES:
        raise ValueError(
            f"scene has {primitives} primitives, more than the renderer holds ({MAX_PRIMITIVES})"
        )
    scene.save(args.out)
    print(f"Generated {trees} conifers ({primitives} primitives) -> {args.out}")
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    from src.canopy.preview.export import load_rgb

    photo = load_rgb(args.photo)
    height, width = photo.shape[:2]
    camera = CameraContext(Eye(args.eye, args.dir), width, height)

    _init_taichi(args.arch, args.seed)
    from src.canopy.scene.extraction import generate_from_image

    scene = Scene()
    count = generate_from_image(
        scene, camera, photo, args.spheres, rng=np.random.default_rng(args.seed)
    )
    scene.save(args.out)
    print(f"Extracted {count} spheres from {args.photo} -> {args.out}")
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    width, height = args.size
    camera = CameraContext(Eye(args.eye, args.dir), width, height)
    config = RenderConfig(
        depth_max=args.depth_max,
        diffuse=not args.no_diffuse,
        shadows=not args.no_shadows,
    )

    scene = Scene.load(args.scene)
    if args.sun != "keep":
        scene.set_sun(SUN_PRESETS[args.sun])
    if args.signature is not None:
        from src.canopy.scene.signature import make_signature

        scene.add(make_signature(camera, args.signature))

    _init_taichi(args.arch, args.seed)
    # Lazy imports: these modules allocate Taichi fields
    from src.canopy.camera.angular import setup_camera
    from src.canopy.core.progressive import RenderProgress, ResumableRenderer

    renderer = ResumableRenderer(args.out, width, height)
    if renderer.complete:
        print(f"{args.out} is already complete")
        return 0

    scene.upload(config)
    setup_camera(camera)

    def progress_callback(progress: RenderProgress) -> None:
        if args.quiet:
            return
        eta = "?" if progress.eta is None else f"{progress.eta:.0f}s"
        print(
            f"\r  Progress: {progress.done}/{progress.total} pixels "
            f"({progress.fraction * 100:.1f}%) - eta {eta}",
            end="",
            file=sys.stderr,
            flush=True,
        )

    with renderer.cancel_on_signals():
        progress = renderer.render(
            nsamples=args.samples,
            rows_per_tile=args.rows_per_tile,
            callback=progress_callback,
        )
    if not args.quiet:
        print(file=sys.stderr)

    if progress.complete:
        print(f"Saved to: {renderer.output_path.absolute()} ({progress.elapsed:.2f}s)")
    else:
        print(
            f"Interrupted with {progress.remaining} pixels left; "
            f"run the same command again to resume {args.out}"
        )
    return 0


COMMANDS = {
    "generate": cmd_generate,
    "extract": cmd_extract,
    "render": cmd_render,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    levels = {0: "WARNING", 1: "INFO"}
    setup_logging(levels.get(args.verbose, "DEBUG"))

    try:
        return COMMANDS[args.command](args)
    except (ValueError, RuntimeError, OSError) as e:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
