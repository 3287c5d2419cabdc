"""Common utilities for the MPM step."""

from .validation import (
    ConfigurationError,
    ShapeError,
    require_positive,
    require_length,
    validate_particle_shapes,
)
from .debug import (
    is_debug_enabled,
    debug_print,
    debug_tensor_info,
    get_tensor_stats,
    TensorStats,
)

__all__ = [
    # Validation
    "ConfigurationError",
    "ShapeError",
    "require_positive",
    "require_length",
    "validate_particle_shapes",

    # Debug
    "is_debug_enabled",
    "debug_print",
    "debug_tensor_info",
    "get_tensor_stats",
    "TensorStats",
]
