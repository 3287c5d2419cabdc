from .interpolation import QuadraticBSpline
from .grid import Grid
from .boundary import slip_boundary, sticky_boundary, make_boundary_condition
from .mpm_model import MPMModel, StepOutput, to_particle_major, to_host_layout

__all__ = [
    'QuadraticBSpline',
    'Grid',
    'slip_boundary',
    'sticky_boundary',
    'make_boundary_condition',
    'MPMModel',
    'StepOutput',
    'to_particle_major',
    'to_host_layout',
]
