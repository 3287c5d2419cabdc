"""Single explicit MLS-MPM step over a batch of independent particle sets."""

from .core import MPMConfig, load_config, MATERIAL_PRESETS
from .mpm_core import MPMModel, StepOutput, QuadraticBSpline, Grid
from .constitutive_models import FixedCorotatedElasticity
from .ops import mpm, infer_output_shapes
from .utils import ConfigurationError, ShapeError

__all__ = [
    "mpm",
    "infer_output_shapes",
    "MPMConfig",
    "load_config",
    "MATERIAL_PRESETS",
    "MPMModel",
    "StepOutput",
    "QuadraticBSpline",
    "Grid",
    "FixedCorotatedElasticity",
    "ConfigurationError",
    "ShapeError",
]
