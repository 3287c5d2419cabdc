from typing import *

import numpy as np
import torch
from torch import Tensor


class Grid:
    """
    Transient background grid for one step of a batch of instances.

    Instance ``b`` owns the flat node range ``[b * num_cells, (b + 1) * num_cells)``.
    During P2G the accumulators are only written through ``add_mass`` and
    ``add_momentum``; ``update`` then turns momentum into velocity in place.
    """

    def __init__(
        self,
        batch_size: int,
        resolution: Sequence[int],
        dtype: torch.dtype = torch.float32,
        device: torch.device = 'cpu',
    ):
        self.batch_size: int = int(batch_size)
        self.dim: int = len(resolution)
        self.num_cells: int = int(np.prod(resolution))
        self.resolution = torch.tensor(list(resolution), dtype=torch.long, device=device)

        n_nodes = self.batch_size * self.num_cells
        self.grid_mv = torch.zeros((n_nodes, self.dim), dtype=dtype, device=device)
        self.grid_m = torch.zeros((n_nodes,), dtype=dtype, device=device)

        grid_ranges = [torch.arange(int(r), device=device) for r in resolution]
        grid_x = torch.meshgrid(*grid_ranges, indexing='ij')
        self.grid_x = torch.stack(grid_x, dim=-1).reshape(-1, self.dim)  # (num_cells, D) node indices

    def add_mass(self, index: Tensor, m: Tensor) -> None:
        self.grid_m.index_add_(0, index, m)

    def add_momentum(self, index: Tensor, mv: Tensor) -> None:
        self.grid_mv.index_add_(0, index, mv)

    def update(self, dt: float, gravity: Tensor, mass_epsilon: float = 1e-15) -> None:
        """Momentum to velocity plus gravity; massless nodes get zero velocity."""
        selected_idx = self.grid_m > mass_epsilon
        inv_m = torch.where(selected_idx, 1.0 / self.grid_m.clamp_min(mass_epsilon), torch.zeros_like(self.grid_m))
        v = self.grid_mv * inv_m.unsqueeze(1) + dt * gravity
        self.grid_mv = torch.where(selected_idx.unsqueeze(1), v, torch.zeros_like(v))

    def velocity(self) -> Tensor:
        """(B, num_cells, D) view of the node velocities."""
        return self.grid_mv.view(self.batch_size, self.num_cells, self.dim)

    def set_velocity(self, v: Tensor) -> None:
        self.grid_mv = v.reshape(-1, self.dim)

    def gather(self, index: Tensor) -> Tensor:
        return self.grid_mv.index_select(dim=0, index=index)

    def total_mass(self) -> Tensor:
        """(B,) mass per instance."""
        return self.grid_m.view(self.batch_size, self.num_cells).sum(dim=1)

    def total_momentum(self) -> Tensor:
        """(B, D) summed momentum channel per instance (meaningful before ``update``)."""
        return self.grid_mv.view(self.batch_size, self.num_cells, self.dim).sum(dim=1)

    def output(self) -> Tensor:
        """(B, num_cells, D + 1) packed as [velocity..., mass] per node."""
        grid = torch.cat([self.grid_mv, self.grid_m.unsqueeze(1)], dim=1)
        return grid.view(self.batch_size, self.num_cells, self.dim + 1)
