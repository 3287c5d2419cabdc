"""
Domain wall conditions applied to grid velocities after the grid update.

Every operation takes the grid and edits its node velocities. Nodes whose
index along axis d is below ``width`` or at least ``res[d] - width`` form the
boundary layer of the corresponding faces.
"""

from typing import *

import torch

from .grid import Grid


def _boundary_layer(grid: Grid, width: int) -> Tuple[torch.Tensor, torch.Tensor]:
    # (num_cells, D) masks for the lower and upper face of every axis
    low = grid.grid_x < width
    high = grid.grid_x >= (grid.resolution - width)
    return low, high


def slip_boundary(width: int) -> Callable[[Grid], None]:
    """
    No-penetration wall: the wall-normal component is zeroed when it points
    out of the domain, tangential components are kept.
    """
    def operation(grid: Grid) -> None:
        low, high = _boundary_layer(grid, width)
        v = grid.velocity()
        outward = (low & (v < 0)) | (high & (v > 0))
        grid.set_velocity(torch.where(outward, torch.zeros_like(v), v))

    return operation


def sticky_boundary(width: int) -> Callable[[Grid], None]:
    """Sticky wall: every velocity component is zeroed inside the boundary layer."""
    def operation(grid: Grid) -> None:
        low, high = _boundary_layer(grid, width)
        layer = (low | high).any(dim=-1, keepdim=True)  # (num_cells, 1)
        v = grid.velocity()
        grid.set_velocity(torch.where(layer, torch.zeros_like(v), v))

    return operation


def make_boundary_condition(policy: str, width: int) -> Optional[Callable[[Grid], None]]:
    if policy == "slip":
        return slip_boundary(width)
    if policy == "sticky":
        return sticky_boundary(width)
    if policy == "none":
        return None
    raise ValueError(f"invalid boundary policy: {policy}")
