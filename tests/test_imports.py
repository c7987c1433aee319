"""Import checks for the modules that define Taichi kernels and functions.

Taichi reads the annotations of @ti.func and @ti.kernel arguments when they
are decorated, so these modules must import cleanly once Taichi is
initialized (the conftest fixture takes care of that).
"""

import importlib
from pathlib import Path

import pytest

PACKAGE_DIR = Path(__file__).resolve().parent.parent / "src" / "canopy"


@pytest.mark.parametrize(
    "module,names",
    [
        ("src.canopy.core.color", ["color_to_bytes", "color_to_pixel", "pixel_to_color"]),
        ("src.canopy.core.progressive", ["ResumableRenderer", "RenderProgress", "ROWS_PER_TILE"]),
        ("src.canopy.scene.extraction", ["generate_from_image", "grid_geometry", "BACK_SCALE"]),
        ("src.canopy.core.integrator", ["setup_render_config", "setup_sun"]),
        ("src.canopy.scene.intersection", ["clear_scene"]),
    ],
)
def test_kernel_modules_import(module, names):
    mod = importlib.import_module(module)
    for name in names:
        assert hasattr(mod, name), f"{module} has no {name}"


def test_taichi_modules_keep_real_annotations():
    """Postponed (string) annotations break Taichi's argument type lookup."""
    offenders = []
    for path in sorted(PACKAGE_DIR.rglob("*.py")):
        text = path.read_text(encoding="utf-8")
        if "@ti." in text and "from __future__ import annotations" in text:
            offenders.append(str(path.relative_to(PACKAGE_DIR)))
    assert offenders == []
