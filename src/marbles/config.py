"""Render configuration.

RenderConfig gathers every knob of a render run. Values come from the
dataclass defaults, then optionally from MARBLES_* environment variables
(from_env), a dict (from_dict) or a JSON file (from_json).

    MARBLES_SCENE=random_marbles MARBLES_SPP=200 python examples/render_spheres.py

This module must not import anything that declares Taichi fields: it is
used to pick the arch before ti.init() runs.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import taichi as ti

logger = logging.getLogger(__name__)

ENV_PREFIX = "MARBLES_"

RENDER_MODES = ("basic", "antialiased")
ARCHS = ("cpu", "gpu")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable suffix -> field name
_ENV_FIELDS = {
    "SCENE": "scene",
    "WIDTH": "image_width",
    "ASPECT_RATIO": "aspect_ratio",
    "SPP": "samples_per_pixel",
    "MAX_DEPTH": "max_depth",
    "MODE": "mode",
    "GAMMA": "gamma",
    "SEED": "seed",
    "ARCH": "arch",
    "OUTPUT": "output",
    "BATCH_SIZE": "batch_size",
    "TIME_BUDGET": "time_budget",
    "LOG_LEVEL": "log_level",
}


@dataclass
class RenderConfig:
    """Settings for one render run.

    Attributes:
        scene: Name of the preset scene to render.
        image_width: Output width in pixels.
        aspect_ratio: Width over height.
        samples_per_pixel: Samples per pixel in antialiased mode.
        max_depth: Maximum bounces per path.
        mode: "basic" (one centre ray per pixel) or "antialiased".
        gamma: Gamma exponent for output encoding.
        seed: Seed for Taichi's random generator and the scene layout.
        arch: "cpu" or "gpu".
        output: Output image path (.ppm or .png).
        batch_size: Samples per progress step.
        time_budget: Optional wall-clock limit in seconds.
        log_level: Logging level name.
    """

    scene: str = "random_marbles"
    image_width: int = 400
    aspect_ratio: float = 16.0 / 9.0
    samples_per_pixel: int = 100
    max_depth: int = 50
    mode: str = "antialiased"
    gamma: float = 2.0
    seed: int = 0
    arch: str = "gpu"
    output: str = "marbles.png"
    batch_size: int = 16
    time_budget: float | None = None
    log_level: str = "INFO"

    def validate(self) -> None:
        """Check every setting.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not self.scene:
            raise ValueError("scene must not be empty")
        if self.image_width < 1:
            raise ValueError(f"image_width must be at least 1, got {self.image_width}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.mode not in RENDER_MODES:
            raise ValueError(f"mode must be one of {RENDER_MODES}, got {self.mode!r}")
        if self.gamma <= 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.arch not in ARCHS:
            raise ValueError(f"arch must be one of {ARCHS}, got {self.arch!r}")
        if Path(self.output).suffix.lower() not in (".ppm", ".png"):
            raise ValueError(f"output must end in .ppm or .png, got {self.output!r}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.time_budget is not None and self.time_budget <= 0.0:
            raise ValueError(f"time_budget must be positive, got {self.time_budget}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")

    def with_overrides(self, overrides: Mapping[str, Any]) -> RenderConfig:
        """Return a copy with the given fields replaced.

        Values are coerced to the field's type, so strings from the
        environment or the command line are accepted.

        Raises:
            ValueError: If a key is not a field or a value cannot be coerced.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        coerced = {name: _coerce(name, value) for name, value in overrides.items()}
        return replace(self, **coerced)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RenderConfig:
        """Create a config from defaults plus the given overrides."""
        return cls().with_overrides(data)

    @classmethod
    def from_json(cls, path: str | Path) -> RenderConfig:
        """Create a config from a JSON object file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object")
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: RenderConfig | None = None,
    ) -> RenderConfig:
        """Apply MARBLES_* environment variables on top of base (or defaults).

        An empty MARBLES_TIME_BUDGET clears the budget.
        """
        if environ is None:
            environ = os.environ
        overrides = {
            field_name: environ[ENV_PREFIX + suffix]
            for suffix, field_name in _ENV_FIELDS.items()
            if ENV_PREFIX + suffix in environ
        }
        if overrides:
            logger.debug("config overrides from environment: %s", sorted(overrides))
        return (base or cls()).with_overrides(overrides)

    def to_dict(self) -> dict[str, Any]:
        """Return the config as a plain dict."""
        return asdict(self)


def _coerce(name: str, value: Any) -> Any:
    if name in ("image_width", "samples_per_pixel", "max_depth", "seed", "batch_size"):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if name in ("aspect_ratio", "gamma"):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be a number, got {value!r}") from None
    if name == "time_budget":
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"time_budget must be a number, got {value!r}") from None
    if name in ("mode", "arch"):
        return str(value).lower()
    if name == "log_level":
        return str(value).upper()
    return str(value)


def init_taichi(config: RenderConfig) -> str:
    """Initialise Taichi for the configured arch and seed.

    A GPU request falls back to the CPU backend when no GPU backend can be
    initialised.

    Returns:
        The arch actually in use ("cpu" or "gpu").
    """
    if config.arch == "gpu":
        try:
            ti.init(arch=ti.gpu, random_seed=config.seed)
        except RuntimeError as exc:
            logger.warning("GPU backend unavailable (%s), falling back to CPU", exc)
        else:
            if ti.lang.impl.current_cfg().arch != ti.cpu:
                logger.info("using GPU backend")
                return "gpu"
            logger.warning("no GPU backend found, using CPU")
            return "cpu"

    ti.init(arch=ti.cpu, random_seed=config.seed)
    logger.info("using CPU backend")
    return "cpu"
