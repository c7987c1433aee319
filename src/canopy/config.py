"""Render configuration and tuning constants.

All constants that the integrator and the intersection routines depend on are
collected here and carried by a RenderConfig instance instead of being read
from module globals inside kernels. The configuration is uploaded into Taichi
fields with setup_render_config() before rendering.

Example:
    >>> from src.canopy.config import RenderConfig
    >>> config = RenderConfig(depth_max=4, shadows=False)
    >>> config.depth_max
    4
"""

from dataclasses import dataclass

# Maximum recursion depth of the diffuse bounce (a hit deeper than this is black)
DEPTH_MAX = 8

# Minimum ray parameter accepted as a hit (avoids self-intersection)
T_MIN = 1e-4

# Upper bound of the ray parameter; stands in for +infinity on the device
T_MAX = 1e10

# Offset along the normal for shadow ray origins
SHADOW_EPSILON = 1e-4

# Rays with |direction . normal| below this are treated as parallel to a plane
PARALLEL_EPSILON = 1e-6

# Vertex components smaller than this are snapped to 0 before computing normals
SNAP_EPSILON = 1e-9

# Sky gradient stops (RGB in [0, 1])
SKY_HORIZON = (77 / 255.0, 143 / 255.0, 170 / 255.0)
SKY_ZENITH = (1.0, 1.0, 1.0)

# Capacity of the device scene tables (objects and flattened primitives)
MAX_OBJECTS = 65536
MAX_PRIMITIVES = 262144


@dataclass(frozen=True)
class RenderConfig:
    """Tuning knobs of the light-transport integrator.

    Attributes:
        depth_max: Number of diffuse bounces before a path returns black.
        t_min: Lower bound of the valid ray parameter interval.
        shadow_epsilon: Distance the shadow ray origin is pushed along the normal.
        parallel_epsilon: Threshold of the ray/plane parallelism test.
        diffuse: Trace Lambertian bounces. When False the surface colour is
            used directly.
        shadows: Apply the directional light (sun) blend.
        sun_on_bounces: Apply the sun blend at every bounce, not only at the
            primary hit.
        sky_horizon: Sky colour for horizontal rays.
        sky_zenith: Sky colour for vertical rays.
    """

    depth_max: int = DEPTH_MAX
    t_min: float = T_MIN
    shadow_epsilon: float = SHADOW_EPSILON
    parallel_epsilon: float = PARALLEL_EPSILON
    diffuse: bool = True
    shadows: bool = True
    sun_on_bounces: bool = True
    sky_horizon: tuple[float, float, float] = SKY_HORIZON
    sky_zenith: tuple[float, float, float] = SKY_ZENITH

    def __post_init__(self) -> None:
        if self.depth_max < 0:
            raise ValueError(f"depth_max must be non-negative, got {self.depth_max}")
        if self.t_min <= 0.0:
            raise ValueError(f"t_min must be positive, got {self.t_min}")
