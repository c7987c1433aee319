"""Image buffer persistence.

Render buffers are (height, width, 4) uint8 arrays. A pixel that has not been
rendered yet holds the sentinel value SENTINEL, fully transparent magenta,
which no rendered pixel can take since rendered pixels are opaque. The buffer
is written as an RGBA PNG while sentinels remain, so that a later run can
resume from it, and flattened to an RGB PNG once it is complete.

Example:
    >>> from src.canopy.preview.export import new_buffer, save_buffer
    >>> buffer = new_buffer(64, 48)
    >>> save_buffer(buffer, "partial.png")  # RGBA, resumable
"""

from __future__ import annotations

import os
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Fully transparent magenta marks a pixel that still has to be rendered
SENTINEL = (255, 0, 255, 0)


def new_buffer(width: int, height: int) -> npt.NDArray[np.uint8]:
    """Allocate a buffer with every pixel set to the sentinel."""
    buffer = np.empty((height, width, 4), dtype=np.uint8)
    buffer[...] = SENTINEL
    return buffer


def sentinel_mask(buffer: npt.NDArray[np.uint8]) -> npt.NDArray[np.bool_]:
    """Boolean (height, width) mask of the pixels still holding the sentinel."""
    return np.all(buffer == np.asarray(SENTINEL, dtype=np.uint8), axis=-1)


def is_complete(buffer: npt.NDArray[np.uint8]) -> bool:
    """True once no sentinel pixel remains."""
    return not bool(sentinel_mask(buffer).any())


def load_buffer(filepath: str | os.PathLike[str]) -> npt.NDArray[np.uint8]:
    """Load a render buffer from a PNG.

    RGB images are promoted to opaque RGBA, i.e. treated as complete.

    Args:
        filepath: Path of an RGB or RGBA PNG.

    Returns:
        A C-contiguous (height, width, 4) uint8 array.

    Raises:
        OSError: If the file cannot be read or is not an image.
    """
    with PILImage.open(filepath) as image:
        # Copy: the renderer writes into the buffer in place
        return np.array(image.convert("RGBA"), dtype=np.uint8, order="C")


def save_buffer(buffer: npt.NDArray[np.uint8], filepath: str | os.PathLike[str]) -> None:
    """Save a render buffer as PNG.

    The image is written next to the target and moved over it, so an
    interrupted save never leaves a truncated file behind.

    Args:
        buffer: (height, width, 4) uint8 array.
        filepath: Output path (should end in .png).
    """
    path = Path(filepath)
    if is_complete(buffer):
        image = PILImage.fromarray(np.ascontiguousarray(buffer[..., :3]))
    else:
        image = PILImage.fromarray(np.ascontiguousarray(buffer))

    tmp = path.with_name(path.name + ".part")
    image.save(tmp, format="PNG")
    os.replace(tmp, path)


def load_rgb(filepath: str | os.PathLike[str]) -> npt.NDArray[np.uint8]:
    """Load any image as a (height, width, 3) uint8 array."""
    with PILImage.open(filepath) as image:
        return np.array(image.convert("RGB"), dtype=np.uint8, order="C")


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
