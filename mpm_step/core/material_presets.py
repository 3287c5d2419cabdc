"""Material presets for common elastic solids.

Each preset maps a material name to the fixed-corotated parameters and the
density used to derive the particle mass from the particle volume.

Usage in config:
    material:
      preset: "jelly"         # fills youngs_modulus, poissons_ratio, density
      youngs_modulus: 2.0e3   # optional: explicit values win over the preset
"""

from ..utils.validation import ConfigurationError

MATERIAL_PRESETS = {
    "default": {
        "youngs_modulus": 50.0,
        "poissons_ratio": 0.3,
        "density": 10.0,
        "description": "Soft solid matching the operator defaults (m_p=100, V_p=10)",
    },
    "jelly": {
        "youngs_modulus": 1.0e3,
        "poissons_ratio": 0.2,
        "density": 1.0,
        "description": "Very soft gel, large visible deformation",
    },
    "rubber": {
        "youngs_modulus": 1.0e5,
        "poissons_ratio": 0.45,
        "density": 1100.0,
        "description": "Nearly incompressible rubber",
    },
    "foam": {
        "youngs_modulus": 5.0e3,
        "poissons_ratio": 0.1,
        "density": 50.0,
        "description": "Highly compressible foam",
    },
}

# Keys that get applied from preset to config.material
_PRESET_KEYS = ["youngs_modulus", "poissons_ratio", "density"]


def resolve_material_preset(config):
    """Apply material preset values to config, allowing individual overrides.

    If config.material.preset is set to a valid preset name, every preset
    key that is not already given in config.material is filled in.

    Args:
        config: OmegaConf configuration object (modified in-place)

    Returns:
        config (same object, for chaining)
    """
    from omegaconf import OmegaConf

    material = config.get("material", None)
    if material is None:
        return config

    preset_name = material.get("preset", None)
    if preset_name is None:
        return config

    if preset_name not in MATERIAL_PRESETS:
        available = ", ".join(sorted(MATERIAL_PRESETS.keys()))
        raise ConfigurationError(
            f"Unknown material preset: '{preset_name}'. "
            f"Available: {available}"
        )

    preset = MATERIAL_PRESETS[preset_name]
    print(f"[Material] Applying preset: '{preset_name}' ({preset['description']})")

    for key in _PRESET_KEYS:
        if material.get(key, None) is None:
            OmegaConf.update(config, f"material.{key}", preset[key])

    print(
        f"  E={config.material.youngs_modulus:.2e}, "
        f"nu={config.material.poissons_ratio}, "
        f"rho={config.material.density}"
    )

    return config
