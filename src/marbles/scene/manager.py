"""Scene building and material bookkeeping.

Every material gets a scene-wide material id when it is registered. Two
parallel fields map that id to the material's kind and to its slot in the
registry of that kind, and the integrator uses them to pick the scattering
function for a hit. A material id can be referenced by any number of
spheres; all materials live until the scene is cleared.

SceneManager is the Python front end: it registers textures, materials and
spheres, holds the background gradient, and converts the whole scene to and
from plain dicts (and JSON files). Taichi fields are global, so there is one
live scene per process and a new SceneManager starts from empty storage.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(ior=1.5)
    >>> scene.add_sphere((0.0, 0.0, -1.0), 0.5, glass)
    0
"""

import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any

import numpy as np
import taichi as ti

from marbles.materials.dielectric import (
    add_dielectric_material as _add_dielectric_material,
)
from marbles.materials.dielectric import clear_dielectric_materials
from marbles.materials.diffuse_light import (
    add_diffuse_light_material as _add_diffuse_light_material,
)
from marbles.materials.diffuse_light import clear_diffuse_light_materials
from marbles.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    clear_lambertian_materials,
    get_lambertian_material_count,
)
from marbles.materials.lambertian import (
    add_lambertian_material as _add_lambertian_material,
)
from marbles.materials.metal import add_metal_material as _add_metal_material
from marbles.materials.metal import clear_metal_materials
from marbles.materials.texture import (
    TextureType,
    add_checker_texture,
    add_image_texture,
    add_solid_texture,
    clear_textures,
    get_texture_count,
    image_texels,
)
from marbles.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

Color = tuple[float, float, float]

# Gradient seen by escaping rays, from straight down to straight up
DEFAULT_BACKGROUND_BOTTOM: Color = (1.0, 1.0, 1.0)
DEFAULT_BACKGROUND_TOP: Color = (0.5, 0.7, 1.0)


class MaterialType(IntEnum):
    """Kind tag stored per material id; compared with int() in kernels."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    DIFFUSE_LIGHT = 3


MAX_MATERIALS = 1024

# material id -> MaterialType value
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material id -> slot in the registry of its kind
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """MaterialType value of a material id, or -1 if it is not registered."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Registry slot of a material id within its kind, or -1 if unregistered.

    The second metal registered has slot 1 whatever its material id is.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


def _as_triple(values: Any, name: str) -> Color:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass
class MaterialInfo:
    """Host-side record of one registered material.

    params holds what the material was created with, in the form written
    by to_config().
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class TextureInfo:
    texture_id: int
    texture_type: TextureType
    params: dict[str, Any]


@dataclass
class SphereInfo:
    sphere_index: int
    center: Color
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Serialisable form of a scene.

    Each list entry is a dict with a "type" key (for textures and
    materials) plus that kind's parameters. Materials refer to textures,
    and spheres to materials, by position in the lists.
    """

    textures: list[dict[str, Any]] = field(default_factory=list)
    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    background: dict[str, list[float]] = field(
        default_factory=lambda: {
            "bottom": list(DEFAULT_BACKGROUND_BOTTOM),
            "top": list(DEFAULT_BACKGROUND_TOP),
        }
    )


class SceneManager:
    """Builds the scene held in the global Taichi fields.

    Attributes:
        textures: Registered textures, indexed by texture id.
        materials: Registered materials, indexed by material id.
        spheres: Spheres in insertion order.
        background_bottom: Background colour looking straight down.
        background_top: Background colour looking straight up.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        >>> scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)
        0
        >>> scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), fuzz=0.0)
        (1, 1)
    """

    def __init__(self) -> None:
        self.textures: list[TextureInfo] = []
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.background_bottom: Color = DEFAULT_BACKGROUND_BOTTOM
        self.background_top: Color = DEFAULT_BACKGROUND_TOP
        self.clear()

    def clear(self) -> None:
        """Empty every sphere, material and texture store and reset the background."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        clear_textures()
        _clear_material_tracking()
        self.textures.clear()
        self.materials.clear()
        self.spheres.clear()
        self.background_bottom = DEFAULT_BACKGROUND_BOTTOM
        self.background_top = DEFAULT_BACKGROUND_TOP

    def set_background(self, bottom: Color, top: Color) -> None:
        """Set the gradient seen by rays that leave the scene.

        The blend follows the y component of the unit direction. A black
        gradient leaves emissive materials as the only light.

        Raises:
            ValueError: If a colour component is negative.
        """
        for name, color in (("bottom", bottom), ("top", top)):
            for i, component in enumerate(color):
                if component < 0.0:
                    raise ValueError(f"Background {name} component {i} = {component} is negative.")
        self.background_bottom = _as_triple(bottom, "bottom")
        self.background_top = _as_triple(top, "top")

    # -------------------------------------------------------------------------
    # Textures
    # -------------------------------------------------------------------------

    def add_solid_texture(self, color: Color) -> int:
        """Register a constant-colour texture and return its id."""
        texture_id = add_solid_texture(color)
        self.textures.append(TextureInfo(texture_id, TextureType.SOLID, {"color": list(color)}))
        return texture_id

    def add_checker_texture(self, odd: Color, even: Color, frequency: float = 10.0) -> int:
        """Register a 3D checker of odd and even cells pi / frequency wide.

        Raises:
            ValueError: If a colour is outside [0, 1] or frequency is not
                positive.
        """
        texture_id = add_checker_texture(odd, even, frequency)
        params = {"odd": list(odd), "even": list(even), "frequency": frequency}
        self.textures.append(TextureInfo(texture_id, TextureType.CHECKER, params))
        return texture_id

    def add_image_texture(self, source: str | Path | np.ndarray) -> int:
        """Register an image texture from a file or an (H, W, 3) array.

        Arrays are kept in the scene's params as nested lists of [0, 1]
        floats, so the scene can be written out without the original file
        and uint8 input reloads at the same brightness.

        Raises:
            ValueError: If the image has the wrong shape or out-of-range
                texels.
            RuntimeError: If the texture or texel capacity is exceeded.
            OSError: If the image file cannot be read.
        """
        if isinstance(source, np.ndarray):
            pixels = image_texels(source)
            texture_id = add_image_texture(pixels)
            params: dict[str, Any] = {"pixels": pixels.tolist()}
        else:
            texture_id = add_image_texture(source)
            params = {"path": str(source)}
        self.textures.append(TextureInfo(texture_id, TextureType.IMAGE, params))
        return texture_id

    def get_texture_count(self) -> int:
        return get_texture_count()

    # -------------------------------------------------------------------------
    # Materials
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_material_slot() -> None:
        # Runs before any per-type registry or texture is written
        if num_materials[None] >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = int(num_materials[None])

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        logger.debug("material %d: %s %s", material_id, material_type.name.lower(), params)
        return material_id

    def add_lambertian_material(
        self,
        albedo: Color | None = None,
        texture_id: int | None = None,
    ) -> int:
        """Register a diffuse material.

        Pass exactly one of albedo (stored as a new solid texture) or the id
        of a texture registered earlier.

        Returns:
            The material id.

        Raises:
            ValueError: If both or neither source is given, an albedo
                component is outside [0, 1], or the texture id is unknown.
            RuntimeError: If a capacity is exceeded.
        """
        if (albedo is None) == (texture_id is None):
            raise ValueError("Specify exactly one of albedo or texture_id")
        self._require_material_slot()
        if texture_id is None:
            if get_lambertian_material_count() >= MAX_LAMBERTIAN_MATERIALS:
                raise RuntimeError(
                    f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
                )
            texture_id = self.add_solid_texture(albedo)

        type_index = _add_lambertian_material(texture_id)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"texture_id": texture_id}
        )

    def add_metal_material(self, albedo: Color, fuzz: float = 0.0) -> int:
        """Register a metal; fuzz 0 is a perfect mirror, 1 the roughest.

        Raises:
            ValueError: If an albedo component or fuzz is outside [0, 1].
            RuntimeError: If a capacity is exceeded.
        """
        self._require_material_slot()
        type_index = _add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": list(albedo), "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Register a clear refractive material.

        ior is relative to the medium outside the sphere, so an air bubble
        inside glass uses 1 / 1.5.

        Raises:
            ValueError: If ior is not positive.
            RuntimeError: If a capacity is exceeded.
        """
        self._require_material_slot()
        type_index = _add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def add_diffuse_light_material(self, color: Color, intensity: float = 1.0) -> int:
        """Register an emitter radiating color * intensity.

        Raises:
            ValueError: If a colour component or the intensity is negative.
            RuntimeError: If a capacity is exceeded.
        """
        self._require_material_slot()
        type_index = _add_diffuse_light_material(color, intensity)
        return self._register_material(
            MaterialType.DIFFUSE_LIGHT,
            type_index,
            {"color": list(color), "intensity": intensity},
        )

    def get_material_count(self) -> int:
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Host-side record of material_id, or None if it is not registered."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Host-side counterpart of get_material_type(); None if unregistered."""
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    # -------------------------------------------------------------------------
    # Spheres
    # -------------------------------------------------------------------------

    def add_sphere(self, center: Color, radius: float, material_id: int) -> int:
        """Add a sphere using an already registered material.

        Returns:
            The sphere index.

        Raises:
            ValueError: If the radius is not positive or the material id is
                not registered.
            RuntimeError: If the sphere capacity is exceeded.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _as_triple(center, "center")
        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, center, radius, material_id))
        return sphere_index

    # The add_*_sphere helpers register a new material for the sphere and
    # return (sphere_index, material_id).

    def add_lambertian_sphere(
        self, center: Color, radius: float, albedo: Color
    ) -> tuple[int, int]:
        material_id = self.add_lambertian_material(albedo=albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self, center: Color, radius: float, albedo: Color, fuzz: float = 0.0
    ) -> tuple[int, int]:
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self, center: Color, radius: float, ior: float = 1.5
    ) -> tuple[int, int]:
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    def add_diffuse_light_sphere(
        self, center: Color, radius: float, color: Color, intensity: float = 1.0
    ) -> tuple[int, int]:
        material_id = self.add_diffuse_light_material(color, intensity)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------

    def to_config(self) -> SceneConfig:
        """Describe the current scene as a SceneConfig that from_config() accepts."""
        config = SceneConfig(
            background={
                "bottom": list(self.background_bottom),
                "top": list(self.background_top),
            }
        )
        for tex in self.textures:
            config.textures.append({"type": tex.texture_type.name.lower(), **tex.params})
        for mat in self.materials:
            config.materials.append({"type": mat.material_type.name.lower(), **mat.params})
        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )
        return config

    def _load_texture(self, entry: dict[str, Any]) -> None:
        kind = entry.get("type", "").lower()
        if kind == "solid":
            self.add_solid_texture(_as_triple(entry.get("color", [0.5, 0.5, 0.5]), "color"))
        elif kind == "checker":
            self.add_checker_texture(
                _as_triple(entry.get("odd", [0.2, 0.3, 0.1]), "odd"),
                _as_triple(entry.get("even", [0.9, 0.9, 0.9]), "even"),
                entry.get("frequency", 10.0),
            )
        elif kind == "image":
            if "path" in entry:
                self.add_image_texture(entry["path"])
            elif "pixels" in entry:
                self.add_image_texture(np.asarray(entry["pixels"], dtype=np.float32))
            else:
                raise ValueError("Image texture needs a 'path' or 'pixels' entry")
        else:
            raise ValueError(f"Unknown texture type: {kind}")

    def _load_material(self, entry: dict[str, Any]) -> None:
        kind = entry.get("type", "").lower()
        if kind == "lambertian":
            if "texture_id" in entry:
                self.add_lambertian_material(texture_id=entry["texture_id"])
            else:
                albedo = _as_triple(entry.get("albedo", [0.5, 0.5, 0.5]), "albedo")
                self.add_lambertian_material(albedo=albedo)
        elif kind == "metal":
            albedo = _as_triple(entry.get("albedo", [0.8, 0.8, 0.8]), "albedo")
            self.add_metal_material(albedo, entry.get("fuzz", 0.0))
        elif kind == "dielectric":
            self.add_dielectric_material(entry.get("ior", 1.5))
        elif kind == "diffuse_light":
            color = _as_triple(entry.get("color", [1.0, 1.0, 1.0]), "color")
            self.add_diffuse_light_material(color, entry.get("intensity", 1.0))
        else:
            raise ValueError(f"Unknown material type: {kind}")

    def from_config(self, config: SceneConfig) -> None:
        """Replace the scene with the one described by config.

        Textures load before materials and materials before spheres, so the
        ids in config are list positions.

        Raises:
            ValueError: If an entry is invalid.
        """
        self.clear()

        for entry in config.textures:
            self._load_texture(entry)
        for entry in config.materials:
            self._load_material(entry)
        for entry in config.spheres:
            center = _as_triple(entry.get("center", [0.0, 0.0, 0.0]), "center")
            self.add_sphere(center, entry.get("radius", 1.0), entry.get("material_id", 0))

        background = config.background or {}
        self.set_background(
            _as_triple(background.get("bottom", DEFAULT_BACKGROUND_BOTTOM), "bottom"),
            _as_triple(background.get("top", DEFAULT_BACKGROUND_TOP), "top"),
        )
        logger.info(
            "loaded scene: %d textures, %d materials, %d spheres",
            len(self.textures),
            len(self.materials),
            len(self.spheres),
        )

    def to_dict(self) -> dict[str, Any]:
        """to_config() as a plain JSON-serialisable dict."""
        config = self.to_config()
        return {
            "textures": config.textures,
            "materials": config.materials,
            "spheres": config.spheres,
            "background": config.background,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Replace the scene with a to_dict() style mapping.

        Missing lists are empty; a missing background is the default one.
        """
        config = SceneConfig(
            textures=data.get("textures", []),
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
        )
        if "background" in data:
            config.background = data["background"]
        self.from_config(config)

    def save_json(self, path: str | Path) -> None:
        """Write to_dict() to path as indented JSON."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info("saved scene to %s", path)

    def load_json(self, path: str | Path) -> None:
        """Replace the scene with the contents of a JSON file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not JSON or describes an invalid scene.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        self.from_dict(data)
