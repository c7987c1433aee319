"""Render buffer I/O.

The render buffer is an RGBA uint8 array whose unfinished pixels hold the
SENTINEL value; it is saved as RGBA PNG while incomplete and as RGB once
every pixel is rendered.

Example:
    >>> from src.canopy.preview import new_buffer, save_buffer
    >>> buffer = new_buffer(64, 48)
    >>> save_buffer(buffer, "partial.png")
"""

from src.canopy.preview.export import (
    SENTINEL,
    compute_rmse,
    is_complete,
    load_buffer,
    load_rgb,
    new_buffer,
    save_buffer,
    sentinel_mask,
)

__all__ = [
    "SENTINEL",
    "new_buffer",
    "sentinel_mask",
    "is_complete",
    "load_buffer",
    "save_buffer",
    "load_rgb",
    "compute_rmse",
]
