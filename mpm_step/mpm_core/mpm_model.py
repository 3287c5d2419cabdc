from typing import *

import torch
from torch import Tensor

from ..constitutive_models import FixedCorotatedElasticity, piola_to_kirchhoff
from ..core.config import MPMConfig
from ..utils.debug import debug_tensor_info
from ..utils.validation import validate_particle_shapes
from .boundary import make_boundary_condition
from .grid import Grid
from .interpolation import QuadraticBSpline


class StepOutput(NamedTuple):
    position_out: Tensor     # (B, D, N)
    velocity_out: Tensor     # (B, D, N)
    affine_out: Tensor       # (B, D, D, N)
    deformation_out: Tensor  # (B, D, D, N)
    poly_out: Tensor         # (B, D, D, N) polar rotation R of F
    grid_out: Tensor         # (B, num_cells, D + 1)


def to_particle_major(t: Tensor) -> Tensor:
    """(B, D, N) -> (B*N, D) and (B, D, D, N) -> (B*N, D, D)."""
    if t.dim() == 3:
        return t.permute(0, 2, 1).reshape(-1, t.shape[1])
    return t.permute(0, 3, 1, 2).reshape(-1, t.shape[1], t.shape[2])


def to_host_layout(t: Tensor, batch_size: int, n_particles: int) -> Tensor:
    """Inverse of ``to_particle_major``."""
    if t.dim() == 2:
        return t.reshape(batch_size, n_particles, t.shape[1]).permute(0, 2, 1).contiguous()
    D = t.shape[1]
    return t.reshape(batch_size, n_particles, D, D).permute(0, 2, 3, 1).contiguous()


class MPMModel:
    def __init__(
        self,
        config: MPMConfig,
        device: torch.device = 'cpu',
    ):
        # save simulation parameters
        self.config: MPMConfig = config
        self.dim: int = config.dim
        self.dt: float = float(config.dt)
        self.dx: float = float(config.dx)
        self.inv_dx: float = 1.0 / self.dx
        self.p_mass: float = float(config.m_p)
        self.vol: float = float(config.V_p)
        self.mass_epsilon: float = float(config.mass_epsilon)
        self.device: torch.device = device

        self.gravity: Tensor = torch.tensor(config.gravity, device=device)
        self.clip_bound: float = config.clip_bound * self.dx
        # nodes span [0, (res - 1) dx]; same margin from the first and the last node
        last_node = (torch.tensor(config.resolution, dtype=torch.float64, device=device) - 1) * self.dx
        self.upper_bound: Tensor = last_node - self.clip_bound  # (D,)

        self.kernel = QuadraticBSpline(config.resolution, config.dx, device=device)
        self.elasticity = FixedCorotatedElasticity(
            E=config.E, nu=config.nu, dim=self.dim, det_epsilon=config.det_epsilon,
        ).to(device)

        # bc
        self.post_grid_process: List[Callable[[Grid], None]] = []
        boundary_condition = make_boundary_condition(config.boundary, config.boundary_width)
        if boundary_condition is not None:
            self.post_grid_process.append(boundary_condition)

    def __call__(self, x: Tensor, v: Tensor, C: Tensor, F: Tensor) -> StepOutput:
        return self.p2g2p(x, v, C, F)

    def p2g2p(self, x: Tensor, v: Tensor, C: Tensor, F: Tensor) -> StepOutput:
        """
        Advance every batch instance by one step.

        Args:
            x: (B, D, N) positions
            v: (B, D, N) velocities
            C: (B, D, D, N) affine matrices
            F: (B, D, D, N) deformation gradients

        Returns:
            StepOutput with the replaced particle set, the polar rotation of
            the input deformation gradients and the rasterized grid
        """
        batch_size, dim, n_particles = validate_particle_shapes(x.shape, v.shape, C.shape, F.shape)
        self.config.check_dim(dim)

        x_p = to_particle_major(x)
        v_p = to_particle_major(v)
        C_p = to_particle_major(C)
        F_p = to_particle_major(F)

        # each instance scatters into its own slice of the flat grid
        cell_offset = torch.arange(batch_size, device=x.device).repeat_interleave(n_particles) * self.kernel.num_cells

        # calculate temporary variables for both p2g and g2p (weight, dweight, dpos, index)
        stencil = self.kernel(x_p, cell_offset)

        stress, R = self.elasticity(F_p)

        grid = self.p2g(batch_size, stencil, v_p, C_p, F_p, stress)
        debug_tensor_info("P2G grid_m", grid.grid_m)

        self.grid_update(grid)
        debug_tensor_info("Grid velocity", grid.grid_mv)

        x_p, v_p, C_p, F_p = self.g2p(grid, stencil, x_p, F_p)
        debug_tensor_info("G2P velocity", v_p)

        return StepOutput(
            position_out=to_host_layout(x_p, batch_size, n_particles),
            velocity_out=to_host_layout(v_p, batch_size, n_particles),
            affine_out=to_host_layout(C_p, batch_size, n_particles),
            deformation_out=to_host_layout(F_p, batch_size, n_particles),
            poly_out=to_host_layout(R, batch_size, n_particles),
            grid_out=grid.output(),
        )

    def p2g(
        self,
        batch_size: int,
        stencil: Tuple[Tensor, Tensor, Tensor, Tensor],
        v: Tensor,
        C: Tensor,
        F: Tensor,
        stress: Tensor,
    ) -> Grid:
        """
        Scatter mass and APIC momentum plus the internal force impulse.

        Args:
            stencil: (weight, dweight, dpos, index) from the interpolation kernel
            v: (P, D) velocities
            C: (P, D, D) affine matrices
            F: (P, D, D) deformation gradients
            stress: (P, D, D) first Piola-Kirchhoff stress

        Returns:
            Freshly allocated grid holding mass and unnormalised momentum
        """
        weight, dweight, dpos, index = stencil
        grid = Grid(batch_size, self.config.resolution, dtype=v.dtype, device=v.device)

        tau = piola_to_kirchhoff(F, stress)
        mv = -self.dt * self.vol * torch.einsum('bij, bkj -> bki', tau, dweight) +\
            self.p_mass * weight.unsqueeze(2) * (v.unsqueeze(1) + torch.einsum('bij, bkj -> bki', C, dpos))  # (P, S, D)
        m = weight * self.p_mass  # (P, S)

        grid.add_momentum(index, mv.reshape(-1, self.dim))
        grid.add_mass(index, m.reshape(-1))
        return grid

    def grid_update(self, grid: Grid) -> None:
        grid.update(self.dt, self.gravity.to(grid.grid_mv.dtype), self.mass_epsilon)

        # post-grid operation
        for operation in self.post_grid_process:
            operation(grid)

    def g2p(
        self,
        grid: Grid,
        stencil: Tuple[Tensor, Tensor, Tensor, Tensor],
        x: Tensor,
        F: Tensor,
    ) -> Tuple[Tensor, Tensor, Tensor, Tensor]:
        weight, _, dpos, index = stencil
        n_stencil = weight.shape[1]

        v_g = grid.gather(index).reshape(weight.shape[0], n_stencil, self.dim)  # (P, S, D)
        v = (weight.unsqueeze(2) * v_g).sum(dim=1)  # (P, D)
        C = self.kernel.apic_factor * torch.einsum('bk, bki, bkj -> bij', weight, v_g, dpos)  # (P, D, D)

        x = x + v * self.dt
        lower = x.new_tensor(self.clip_bound)
        x = torch.minimum(torch.maximum(x, lower), self.upper_bound.to(x.dtype))

        I = torch.eye(self.dim, dtype=F.dtype, device=F.device).unsqueeze(0)
        F = torch.bmm(I + self.dt * C, F)
        return x, v, C, F
