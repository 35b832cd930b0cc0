"""Scene module for scene storage, management and presets.

Components:
    intersection: Sphere storage in Taichi fields and closest-hit queries
    manager: SceneManager coordinating spheres, materials and textures
    presets: Ready-made scenes returning (SceneManager, Camera)

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for sphere data
    - A unified material ID space mapped onto per-type registries
"""

from .intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    TextureInfo,
    get_material_type,
    get_material_type_index,
    material_type_indices,
    material_types,
    num_materials,
)
from .presets import (
    PRESETS,
    create_checkered_scene,
    create_emissive_scene,
    create_random_marbles_scene,
    create_single_sphere_scene,
    create_three_spheres_scene,
    get_preset,
)

__all__ = [
    # Intersection module
    "add_sphere",
    "clear_scene",
    "get_sphere",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "TextureInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    "material_types",
    "material_type_indices",
    "num_materials",
    # Presets
    "PRESETS",
    "get_preset",
    "create_single_sphere_scene",
    "create_three_spheres_scene",
    "create_random_marbles_scene",
    "create_checkered_scene",
    "create_emissive_scene",
]
