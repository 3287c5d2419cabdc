"""
Host binding of the MPM step.

``mpm`` plays the role of the registered operator: it validates the
attributes once, checks the four particle tensors for mutual compatibility
before any numeric work, runs the kernel and hands back the six outputs.
"""

from typing import *

import numpy as np
import torch
from torch import Tensor

from .core.config import MPMConfig
from .mpm_core.mpm_model import MPMModel, StepOutput
from .utils.validation import ConfigurationError, validate_particle_shapes

ArrayLike = Union[Tensor, np.ndarray]


def infer_output_shapes(
    x_shape: Sequence[int],
    v_shape: Sequence[int],
    C_shape: Sequence[int],
    F_shape: Sequence[int],
    gravity: Sequence[float],
    resolution: Sequence[int],
) -> Tuple[Tuple[int, ...], ...]:
    """
    Shape function of the operator.

    Returns:
        Shapes of (position_out, velocity_out, affine_out, deformation_out,
        poly_out, grid_out)

    Raises:
        ShapeError: If the particle tensors disagree
        ConfigurationError: If gravity/resolution lengths differ from D
    """
    batch_size, dim, _ = validate_particle_shapes(x_shape, v_shape, C_shape, F_shape)

    if len(gravity) != dim:
        raise ConfigurationError(
            f"Gravity length must be equal to {dim}, but is {len(gravity)}"
        )
    if len(resolution) != dim:
        raise ConfigurationError(
            f"Resolution length must be equal to {dim}, but is {len(resolution)}"
        )

    num_cells = int(np.prod(resolution))
    return (
        tuple(x_shape),
        tuple(v_shape),
        tuple(C_shape),
        tuple(F_shape),
        tuple(F_shape),
        (batch_size, num_cells, dim + 1),
    )


def _as_tensor(value: ArrayLike, dtype: Optional[torch.dtype], device) -> Tensor:
    if isinstance(value, np.ndarray):
        value = torch.from_numpy(value)
    return value.to(device=device, dtype=dtype)


def mpm(
    position: ArrayLike,
    velocity: ArrayLike,
    affine: ArrayLike,
    deformation: ArrayLike,
    dt: float = 0.01,
    dx: float = 0.01,
    E: float = 50.0,
    nu: float = 0.3,
    m_p: float = 100.0,
    V_p: float = 10.0,
    gravity: Sequence[float] = (0.0, 0.0, 0.0),
    resolution: Sequence[int] = (100, 100, 100),
    **policies,
) -> StepOutput:
    """
    Run one MPM step on a batch of particle sets.

    Args:
        position: (B, D, N) particle positions
        velocity: (B, D, N) particle velocities
        affine: (B, D, D, N) APIC affine matrices
        deformation: (B, D, D, N) deformation gradients
        dt, dx, E, nu, m_p, V_p, gravity, resolution: step attributes
        **policies: boundary, boundary_width, clip_bound, mass_epsilon,
            det_epsilon (see MPMConfig)

    Returns:
        StepOutput(position_out, velocity_out, affine_out, deformation_out,
        poly_out, grid_out); tensors follow the dtype and device of position
    """
    config = MPMConfig(
        dt=dt, dx=dx, E=E, nu=nu, m_p=m_p, V_p=V_p,
        gravity=tuple(gravity), resolution=tuple(resolution),
        **policies,
    )

    infer_output_shapes(
        tuple(position.shape), tuple(velocity.shape),
        tuple(affine.shape), tuple(deformation.shape),
        config.gravity, config.resolution,
    )

    x = _as_tensor(position, None, None)
    dtype, device = x.dtype, x.device
    if not dtype.is_floating_point:
        dtype = torch.float32
        x = x.to(dtype)
    v = _as_tensor(velocity, dtype, device)
    C = _as_tensor(affine, dtype, device)
    F = _as_tensor(deformation, dtype, device)

    model = MPMModel(config, device=device)
    return model(x, v, C, F)
