"""Resumable, interruptible renderer.

This module drives the integrator over the whole image and keeps the work
durable:

- The output PNG doubles as the progress file. Pixels that are not rendered
  yet hold a sentinel value (see src.canopy.preview.export); a run only
  renders sentinel pixels, so re-running against a finished image does
  nothing and re-running against a partial one completes it.
- The image is rendered in tiles of rows, one kernel launch per tile. Inside
  a tile the pixels are processed in parallel by Taichi.
- cancel() (safe to call from a signal handler or another thread) stops new
  tiles from being launched; the tile in flight always finishes, so every
  written pixel is a complete, averaged colour.
- The buffer is saved whatever happens, RGBA while incomplete and RGB once
  complete.
- Progress (pixels done, freshly computed, elapsed time and ETA) is reported
  to an optional callback after every tile and logged.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.canopy.core.progressive import ResumableRenderer
    >>> renderer = ResumableRenderer("forest.png", 320, 240)
    >>> with renderer.cancel_on_signals():
    ...     progress = renderer.render(nsamples=16)
    >>> progress.complete
    True
"""

import contextlib
import logging
import os
import signal
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.canopy.core.color import color_to_bytes
from src.canopy.core.integrator import render_pixel
from src.canopy.preview.export import (
    SENTINEL,
    is_complete,
    load_buffer,
    new_buffer,
    save_buffer,
    sentinel_mask,
)

logger = logging.getLogger(__name__)

# Default number of image rows rendered per kernel launch
ROWS_PER_TILE = 16

_SENTINEL_R, _SENTINEL_G, _SENTINEL_B, _SENTINEL_A = SENTINEL

# Atomic progress counters, reset at the start of every run
_pixels_done = ti.field(dtype=ti.i32, shape=())
_pixels_computed = ti.field(dtype=ti.i32, shape=())


@dataclass(frozen=True)
class RenderProgress:
    """Snapshot of a render run.

    Attributes:
        total: Number of pixels in the image.
        done: Pixels visited during this run, rendered or skipped.
        computed: Pixels actually rendered during this run.
        elapsed: Seconds since the run started.
        eta: Estimated seconds until the end of the run, None until a pixel
            has been computed.
        remaining: Sentinel pixels left in the buffer.
    """

    total: int
    done: int
    computed: int
    elapsed: float
    eta: float | None
    remaining: int

    @property
    def fraction(self) -> float:
        """Share of the image visited during this run."""
        return self.done / self.total if self.total else 1.0

    @property
    def complete(self) -> bool:
        return self.remaining == 0


# Type alias for progress callback
ProgressCallback = Callable[[RenderProgress], None]


@ti.kernel
def _render_rows(
    image: ti.types.ndarray(dtype=ti.u8, ndim=3),
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    nsamples: ti.i32,
):
    """Render every sentinel pixel of rows [row_start, row_end)."""
    for y, x in ti.ndrange((row_start, row_end), (0, width)):
        pending = (
            image[y, x, 0] == _SENTINEL_R
            and image[y, x, 1] == _SENTINEL_G
            and image[y, x, 2] == _SENTINEL_B
            and image[y, x, 3] == _SENTINEL_A
        )
        if pending:
            pixel = color_to_bytes(render_pixel(x, y, width, height, nsamples))
            for c in ti.static(range(3)):
                image[y, x, c] = ti.cast(pixel[c], ti.u8)
            image[y, x, 3] = ti.cast(255, ti.u8)
            ti.atomic_add(_pixels_computed[None], 1)
        ti.atomic_add(_pixels_done[None], 1)


class ResumableRenderer:
    """Renders the uploaded scene into a resumable PNG.

    The scene, the render configuration and the camera must have been
    uploaded before render() is called (see Scene.upload and
    src.canopy.camera.angular.setup_camera).

    Attributes:
        output_path: The PNG the buffer is loaded from and saved to.
        width: Image width in pixels.
        height: Image height in pixels.
        buffer: The (height, width, 4) uint8 render buffer.
    """

    def __init__(self, output_path: str | os.PathLike[str], width: int, height: int) -> None:
        """Open or create the render buffer.

        Args:
            output_path: Output PNG path. An existing file is resumed.
            width: Image width in pixels.
            height: Image height in pixels.

        Raises:
            ValueError: If the path is not a .png, the resolution is not
                positive or an existing image has a different resolution.
            OSError: If an existing file cannot be read.
        """
        self.output_path = Path(output_path)
        if self.output_path.suffix.lower() != ".png":
            raise ValueError(f"output must be a .png file, got {self.output_path}")
        if width <= 0 or height <= 0:
            raise ValueError(f"resolution must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self._cancel = threading.Event()

        if self.output_path.exists():
            buffer = load_buffer(self.output_path)
            found = (buffer.shape[1], buffer.shape[0])
            if found != (width, height):
                raise ValueError(
                    f"{self.output_path} is {found[0]}x{found[1]}, "
                    f"expected {width}x{height}"
                )
            self.buffer = buffer
            logger.info(
                "resuming %s: %d of %d pixels left",
                self.output_path,
                self.remaining,
                width * height,
            )
        else:
            self.buffer = new_buffer(width, height)

    @property
    def remaining(self) -> int:
        """Number of pixels still holding the sentinel."""
        return int(sentinel_mask(self.buffer).sum())

    @property
    def complete(self) -> bool:
        return is_complete(self.buffer)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Ask the running render to stop after the current tile.

        Safe to call from signal handlers and other threads.
        """
        self._cancel.set()

    @contextlib.contextmanager
    def cancel_on_signals(
        self, signals: tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)
    ) -> Iterator[None]:
        """Map SIGINT/SIGTERM to cancel() for the duration of the block.

        Outside the main thread signal handlers cannot be installed and the
        block runs without them.
        """
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def handler(signum, frame):
            logger.info("received signal %d, finishing the current tile", signum)
            self.cancel()

        previous = {sig: signal.signal(sig, handler) for sig in signals}
        try:
            yield
        finally:
            for sig, old in previous.items():
                signal.signal(sig, old)

    def _progress(self, start: float) -> RenderProgress:
        done = int(_pixels_done[None])
        computed = int(_pixels_computed[None])
        total = self.width * self.height
        elapsed = time.monotonic() - start
        eta = None
        if computed > 0:
            eta = elapsed / computed * (total - done)
        return RenderProgress(
            total=total,
            done=done,
            computed=computed,
            elapsed=elapsed,
            eta=eta,
            remaining=self.remaining,
        )

    def render(
        self,
        nsamples: int,
        rows_per_tile: int = ROWS_PER_TILE,
        callback: ProgressCallback | None = None,
    ) -> RenderProgress:
        """Render every remaining pixel, tile by tile.

        The buffer is saved to output_path when the run ends, whether it
        completed, was cancelled or failed.

        Args:
            nsamples: Jittered samples averaged per pixel.
            rows_per_tile: Image rows per kernel launch; the granularity of
                cancellation and progress reports.
            callback: Optional callback receiving a RenderProgress after each
                tile.

        Returns:
            The progress at the end of the run.

        Raises:
            ValueError: If nsamples or rows_per_tile is not positive.
        """
        if nsamples <= 0:
            raise ValueError(f"nsamples must be positive, got {nsamples}")
        if rows_per_tile <= 0:
            raise ValueError(f"rows_per_tile must be positive, got {rows_per_tile}")

        _pixels_done[None] = 0
        _pixels_computed[None] = 0
        start = time.monotonic()
        logger.info(
            "rendering %dx%d, %d samples per pixel, %d pixels left",
            self.width,
            self.height,
            nsamples,
            self.remaining,
        )

        try:
            for row_start in range(0, self.height, rows_per_tile):
                if self._cancel.is_set():
                    logger.info("render cancelled at row %d", row_start)
                    break
                row_end = min(row_start + rows_per_tile, self.height)
                _render_rows(self.buffer, row_start, row_end, self.width, self.height, nsamples)
                ti.sync()

                progress = self._progress(start)
                logger.debug(
                    "rows %d-%d done, %d/%d pixels, eta %s",
                    row_start,
                    row_end,
                    progress.done,
                    progress.total,
                    "?" if progress.eta is None else f"{progress.eta:.1f}s",
                )
                if callback is not None:
                    callback(progress)
        finally:
            save_buffer(self.buffer, self.output_path)

        progress = self._progress(start)
        logger.info(
            "%s: %d pixels computed in %.1fs, %d left",
            self.output_path,
            progress.computed,
            progress.elapsed,
            progress.remaining,
        )
        return progress

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """The RGB part of the buffer, shape (height, width, 3)."""
        return np.ascontiguousarray(self.buffer[..., :3])

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ResumableRenderer(output_path={str(self.output_path)!r}, "
            f"width={self.width}, height={self.height}, remaining={self.remaining})"
        )
