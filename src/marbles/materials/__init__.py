"""Materials module for surface scattering models.

This module implements the material models a ray can meet at a surface:

Components:
    lambertian: Ideal diffuse reflection, albedo supplied by a texture
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like materials with refraction (Schlick reflectance)
    diffuse_light: Emissive surfaces that never scatter
    texture: Solid, checker and image textures
    scatter: The ScatterRecord every material returns

Each material provides:
    - a field-backed registry (add_*, clear_*, get_*_count)
    - scatter_*_by_id(material_idx, ray, rec) -> ScatterRecord

All scattering computations are implemented as Taichi functions.
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_ior,
    get_dielectric_material_count,
    refraction_ratio,
    scatter_dielectric,
    scatter_dielectric_by_id,
    will_reflect,
)
from .diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
    get_diffuse_light_color,
    get_diffuse_light_emission,
    get_diffuse_light_emission_by_id,
    get_diffuse_light_intensity,
    get_diffuse_light_material_count,
    scatter_diffuse_light_by_id,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    get_lambertian_texture_id,
    scatter_lambertian,
    scatter_lambertian_by_id,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
)
from .scatter import ScatterRecord, make_absorbed, make_scattered, scattered_ray
from .texture import (
    TextureType,
    add_checker_texture,
    add_image_texture,
    add_solid_texture,
    clear_textures,
    get_texture_count,
    image_texels,
    texture_value,
)

__all__ = [
    # Scatter
    "ScatterRecord",
    "make_scattered",
    "make_absorbed",
    "scattered_ray",
    # Textures
    "TextureType",
    "add_solid_texture",
    "add_checker_texture",
    "add_image_texture",
    "clear_textures",
    "get_texture_count",
    "image_texels",
    "texture_value",
    # Lambertian
    "scatter_lambertian",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_texture_id",
    "get_lambertian_albedo",
    # Metal
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
    # Dielectric
    "scatter_dielectric",
    "scatter_dielectric_by_id",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_ior",
    "refraction_ratio",
    "will_reflect",
    # Diffuse light
    "scatter_diffuse_light_by_id",
    "add_diffuse_light_material",
    "clear_diffuse_light_materials",
    "get_diffuse_light_material_count",
    "get_diffuse_light_color",
    "get_diffuse_light_intensity",
    "get_diffuse_light_emission",
    "get_diffuse_light_emission_by_id",
]
