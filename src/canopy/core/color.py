"""Colour <-> pixel conversion.

Colours are carried as RGB vectors with channels nominally in [0, 1]; pixels
are bytes in [0, 255]. Conversion to a pixel saturates: values <= 0 give 0 and
values >= 1 give 255. Converting back recovers the original value within one
quantization step (1/255).

The host functions operate on NumPy arrays of any leading shape; the Taichi
function color_to_bytes is used by the render kernel.
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


def color_to_pixel(color: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Convert colours in [0, 1] to bytes, clamping out-of-range values.

    Args:
        color: Array of shape (..., 3) (or any shape) of float channels.

    Returns:
        Array of the same shape with dtype uint8.
    """
    c = np.clip(np.asarray(color, dtype=np.float64), 0.0, 1.0)
    return np.rint(c * 255.0).astype(np.uint8)


def pixel_to_color(pixel: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Convert bytes in [0, 255] to float channels in [0, 1]."""
    return np.asarray(pixel, dtype=np.float64) / 255.0


def rgb(r: int, g: int, b: int) -> tuple[float, float, float]:
    """Build a colour tuple from byte channels, e.g. rgb(242, 144, 45)."""
    return (r / 255.0, g / 255.0, b / 255.0)


def mix(
    a: Sequence[float], b: Sequence[float], c: float
) -> tuple[float, float, float]:
    """Host-side linear interpolation a * (1 - c) + b * c."""
    return (
        a[0] * (1.0 - c) + b[0] * c,
        a[1] * (1.0 - c) + b[1] * c,
        a[2] * (1.0 - c) + b[2] * c,
    )


@ti.func
def color_to_bytes(color: vec3) -> vec3:
    """Clamp a colour to [0, 1] and scale it to rounded byte values.

    The result is still a float vector; the caller casts each channel.
    """
    c = tm.clamp(color, 0.0, 1.0)
    return ti.round(c * 255.0)
