"""Step configuration parser."""

from __future__ import annotations
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from omegaconf import DictConfig, OmegaConf

from ..utils.validation import ConfigurationError, require_length, require_positive
from .material_presets import resolve_material_preset

BOUNDARY_POLICIES = ("slip", "sticky", "none")


@dataclass(frozen=True)
class MPMConfig:
    """
    Immutable parameters of one MPM step.

    The physical attributes and their defaults mirror the registered
    operator; the remaining fields fix the implementation policies for
    domain walls and numerical guards.
    """

    dt: float = 0.01
    dx: float = 0.01
    E: float = 50.0
    nu: float = 0.3
    m_p: float = 100.0
    V_p: float = 10.0
    gravity: Tuple[float, ...] = (0.0, 0.0, 0.0)
    resolution: Tuple[int, ...] = (100, 100, 100)

    boundary: str = "slip"      # slip | sticky | none
    boundary_width: int = 3     # boundary layer thickness in nodes
    clip_bound: float = 0.5     # particle position margin in units of dx
    mass_epsilon: float = 1e-15
    det_epsilon: float = 1e-6

    def __post_init__(self):
        # Normalise list-like inputs (OmegaConf ListConfig, numpy arrays)
        object.__setattr__(self, "gravity", tuple(float(g) for g in self.gravity))
        object.__setattr__(self, "resolution", tuple(int(r) for r in self.resolution))
        self.validate()

    @property
    def dim(self) -> int:
        return len(self.resolution)

    @property
    def num_cells(self) -> int:
        n = 1
        for r in self.resolution:
            n *= r
        return n

    @property
    def inv_dx(self) -> float:
        return 1.0 / self.dx

    def validate(self) -> None:
        """
        Check every attribute once, before any step executes.

        Raises:
            ConfigurationError: naming the offending value
        """
        for name in ("dt", "dx", "E", "nu", "m_p", "V_p"):
            require_positive(name, getattr(self, name))
        if self.nu >= 0.5:
            raise ConfigurationError(f"Need nu < 0.5, got {self.nu}")

        if self.dim not in (2, 3):
            raise ConfigurationError(
                f"Resolution must describe a 2D or 3D grid, got {list(self.resolution)}"
            )
        require_length("gravity", self.gravity, self.dim)
        for r in self.resolution:
            if r < 3:
                raise ConfigurationError(
                    f"Need every resolution entry >= 3, got {list(self.resolution)}"
                )

        if self.boundary not in BOUNDARY_POLICIES:
            raise ConfigurationError(
                f"Unknown boundary policy: '{self.boundary}'. "
                f"Available: {', '.join(BOUNDARY_POLICIES)}"
            )
        if self.boundary_width < 0:
            raise ConfigurationError(f"Need boundary_width >= 0, got {self.boundary_width}")
        if not 0.0 <= self.clip_bound <= 1.0:
            raise ConfigurationError(f"Need 0 <= clip_bound <= 1, got {self.clip_bound}")
        require_positive("mass_epsilon", self.mass_epsilon)
        require_positive("det_epsilon", self.det_epsilon)

    def check_dim(self, dim: int) -> None:
        """Check the attribute lengths against the particle tensors' spatial dimension."""
        require_length("gravity", self.gravity, dim)
        require_length("resolution", self.resolution, dim)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["gravity"] = list(self.gravity)
        d["resolution"] = list(self.resolution)
        return d

    @classmethod
    def from_omegaconf(cls, config: Union[DictConfig, Dict[str, Any]]) -> "MPMConfig":
        """
        Build a step configuration from a parsed YAML tree.

        Args:
            config: Configuration with keys:
                mpm:
                    - dt, dx (float)
                    - gravity (list of D floats)
                    - resolution (list of D ints)
                    - boundary, boundary_width, clip_bound (optional policies)
                material:
                    - preset (optional, see MATERIAL_PRESETS)
                    - youngs_modulus, poissons_ratio (float)
                    - particle_volume (float, V_p)
                    - particle_mass (float, m_p), or density to derive
                      m_p = density * particle_volume

        Returns:
            Validated MPMConfig
        """
        if not isinstance(config, DictConfig):
            config = OmegaConf.create(config)
        config = resolve_material_preset(config)

        defaults = cls.__dataclass_fields__
        mpm = config.get("mpm", None) or OmegaConf.create({})
        material = config.get("material", None) or OmegaConf.create({})

        kwargs: Dict[str, Any] = {}
        for key in ("dt", "dx", "gravity", "resolution", "boundary",
                    "boundary_width", "clip_bound", "mass_epsilon", "det_epsilon"):
            if mpm.get(key, None) is not None:
                kwargs[key] = mpm[key]

        if material.get("youngs_modulus", None) is not None:
            kwargs["E"] = float(material.youngs_modulus)
        if material.get("poissons_ratio", None) is not None:
            kwargs["nu"] = float(material.poissons_ratio)

        V_p = float(material.get("particle_volume", defaults["V_p"].default))
        kwargs["V_p"] = V_p
        if material.get("particle_mass", None) is not None:
            kwargs["m_p"] = float(material.particle_mass)
        elif material.get("density", None) is not None:
            kwargs["m_p"] = float(material.density) * V_p

        return cls(**kwargs)


def load_config(config_path: Union[str, Path]) -> DictConfig:
    """
    Load YAML configuration

    Args:
        config_path: Path to YAML config file

    Returns:
        OmegaConf configuration object
    """
    if not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    config = OmegaConf.load(config_path)

    if "mpm" not in config:
        raise ConfigurationError("Missing required config section: mpm")

    print(f"[Config] Loaded configuration from: {config_path}")
    return config
