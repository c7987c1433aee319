"""Signature stamp: a short label drawn with small spheres.

The label is written with a 3x5 dot font in the bottom-right corner of the
view, just behind the unit-distance screen, so it shows up at the same place
and size in every render whatever the scene contains.
"""

from __future__ import annotations

from src.canopy.camera.eye import CameraContext
from src.canopy.scene.objects import SIGNATURE_RED, Signature

DEFAULT_LABEL = "CANOPY"

# Dot diameter as a fraction of the screen height
DOT_SCALE = 0.008

# 3x5 glyphs, top row first; "#" is a dot
FONT: dict[str, tuple[str, ...]] = {
    "A": (".#.", "#.#", "###", "#.#", "#.#"),
    "B": ("##.", "#.#", "##.", "#.#", "##."),
    "C": (".##", "#..", "#..", "#..", ".##"),
    "D": ("##.", "#.#", "#.#", "#.#", "##."),
    "E": ("###", "#..", "##.", "#..", "###"),
    "F": ("###", "#..", "##.", "#..", "#.."),
    "G": (".##", "#..", "#.#", "#.#", ".##"),
    "H": ("#.#", "#.#", "###", "#.#", "#.#"),
    "I": ("###", ".#.", ".#.", ".#.", "###"),
    "J": ("..#", "..#", "..#", "#.#", ".#."),
    "K": ("#.#", "#.#", "##.", "#.#", "#.#"),
    "L": ("#..", "#..", "#..", "#..", "###"),
    "M": ("#.#", "###", "###", "#.#", "#.#"),
    "N": ("##.", "#.#", "#.#", "#.#", "#.#"),
    "O": (".#.", "#.#", "#.#", "#.#", ".#."),
    "P": ("##.", "#.#", "##.", "#..", "#.."),
    "Q": (".#.", "#.#", "#.#", "##.", ".##"),
    "R": ("##.", "#.#", "##.", "#.#", "#.#"),
    "S": (".##", "#..", ".#.", "..#", "##."),
    "T": ("###", ".#.", ".#.", ".#.", ".#."),
    "U": ("#.#", "#.#", "#.#", "#.#", "###"),
    "V": ("#.#", "#.#", "#.#", "#.#", ".#."),
    "W": ("#.#", "#.#", "###", "###", "#.#"),
    "X": ("#.#", "#.#", ".#.", "#.#", "#.#"),
    "Y": ("#.#", "#.#", ".#.", ".#.", ".#."),
    "Z": ("###", "..#", ".#.", "#..", "###"),
    "0": ("###", "#.#", "#.#", "#.#", "###"),
    "1": (".#.", "##.", ".#.", ".#.", "###"),
    "2": ("##.", "..#", ".#.", "#..", "###"),
    "3": ("##.", "..#", ".#.", "..#", "##."),
    "4": ("#.#", "#.#", "###", "..#", "..#"),
    "5": ("###", "#..", "##.", "..#", "##."),
    "6": (".##", "#..", "###", "#.#", "###"),
    "7": ("###", "..#", ".#.", ".#.", ".#."),
    "8": ("###", "#.#", "###", "#.#", "###"),
    "9": ("###", "#.#", "###", "..#", "##."),
    ".": ("...", "...", "...", "...", ".#."),
    "-": ("...", "...", "###", "...", "..."),
    " ": ("...", "...", "...", "...", "..."),
}

GLYPH_WIDTH = 3
GLYPH_HEIGHT = 5


def label_dots(label: str) -> list[tuple[int, int]]:
    """Dot coordinates (column, row) of a label, row 0 at the bottom.

    Raises:
        ValueError: If the label holds a character the font does not have.
    """
    dots = []
    for index, char in enumerate(label.upper()):
        glyph = FONT.get(char)
        if glyph is None:
            raise ValueError(f"signature: unsupported character {char!r}")
        x0 = index * (GLYPH_WIDTH + 1)
        for row, line in enumerate(glyph):
            for col, cell in enumerate(line):
                if cell == "#":
                    dots.append((x0 + col, GLYPH_HEIGHT - 1 - row))
    return dots


def label_width(label: str) -> int:
    """Width of a label in dots, without the trailing spacing column."""
    return max(len(label) * (GLYPH_WIDTH + 1) - 1, 0)


def make_signature(
    camera: CameraContext, label: str = DEFAULT_LABEL, color=SIGNATURE_RED
) -> Signature:
    """Build the signature object for a camera.

    The dot diameter is DOT_SCALE times the screen height. The label sits
    two dots above the bottom edge and ends one dot before the right edge.

    Args:
        camera: The camera the signature is attached to.
        label: Text to stamp.
        color: Colour of the dots.

    Returns:
        A Signature made of one small sphere per dot.
    """
    screen_height = 2.0 / camera.aspect_ratio
    diameter = DOT_SCALE * screen_height

    center = camera.origin + camera.direction * (1.0 + 2.0 * diameter)
    bottom_right = center + camera.right - camera.up / camera.aspect_ratio
    base = (
        bottom_right
        - (label_width(label) + 1) * diameter * camera.right
        + 2.0 * diameter * camera.up
    )

    centers = []
    for col, row in label_dots(label):
        p = base + col * diameter * camera.right + row * diameter * camera.up
        centers.append((float(p[0]), float(p[1]), float(p[2])))

    return Signature(
        centers=centers,
        radius=diameter / 2.0,
        color=(float(color[0]), float(color[1]), float(color[2])),
    )
