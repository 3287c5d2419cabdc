from .config import MPMConfig, load_config, BOUNDARY_POLICIES
from .material_presets import MATERIAL_PRESETS, resolve_material_preset

__all__ = [
    'MPMConfig',
    'load_config',
    'BOUNDARY_POLICIES',
    'MATERIAL_PRESETS',
    'resolve_material_preset',
]
