from .abstract import Elasticity
from .physical_constitutive_models import (
    FixedCorotatedElasticity,
    cofactor,
    safe_determinant,
    piola_to_kirchhoff,
    lame_parameters,
)

__all__ = [
    'Elasticity',
    'FixedCorotatedElasticity',
    'cofactor',
    'safe_determinant',
    'piola_to_kirchhoff',
    'lame_parameters',
]
