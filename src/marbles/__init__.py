"""Marbles: a Taichi sphere path tracer.

This package renders scenes of spheres with a Monte Carlo path tracer running
in Taichi kernels, with support for:
- Lambertian, metal, dielectric and emissive materials
- Solid, checker and image textures
- A thin-lens camera with defocus blur
- Progressive rendering with accumulation and a time budget
- PPM and PNG output

Subpackages:
    core: Ray and interval utilities, the integrator and the render loop
    geometry: Sphere intersection and hit records
    materials: Scattering models and textures
    scene: Scene storage, the scene manager and preset scenes
    camera: Thin-lens camera with ray generation
    preview: Gamma encoding and image export

Modules:
    config: Render configuration and Taichi initialisation
    logging_config: Logging setup
"""

__version__ = "0.1.0"
