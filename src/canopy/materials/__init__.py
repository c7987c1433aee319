"""Surface scattering. Every surface is an ideal diffuse (Lambertian) reflector."""

from .lambertian import scatter_lambertian

__all__ = ["scatter_lambertian"]
