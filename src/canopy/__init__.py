"""Monte Carlo forest ray tracer built on Taichi.

The package renders procedurally generated forests (and sphere mosaics of
photos) with a Lambertian path tracer lit by a sky gradient and an optional
sun. Renders are resumable: the output PNG marks unfinished pixels and an
interrupted run picks up where it stopped.

Subpackages:
    core: Vector helpers, colour conversion, 3x3 solver, integrator and the
        resumable renderer
    geometry: Device primitives (plane, sphere, ellipsoid, triangle) and
        their intersection routines
    materials: Lambertian scattering
    scene: Host scene objects, persistence, device upload, forest generation,
        photo extraction and the signature stamp
    camera: Angular camera model and ground footprint
    preview: PNG buffer handling

Modules that allocate Taichi fields (scene.intersection, camera.angular,
core.integrator, core.progressive, scene.extraction) must be imported after
ti.init() and are not re-exported by the package __init__ files.
"""

__version__ = "0.1.0"
