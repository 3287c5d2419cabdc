import itertools
from typing import *

import numpy as np
import torch
from torch import Tensor


class QuadraticBSpline:
    """
    Quadratic B-spline interpolation over a 3^D node stencil.

    Particles are located in kernel space (``x / dx``). The kernel position is
    clamped into ``[0.5, res - 1.5]`` and the stencil base into
    ``[0, res - 3]`` so that every stencil node is a valid grid node and every
    weight stays in [0, 1]. Interior particles are unaffected by the clamp,
    which includes every position ``MPMModel`` can produce with the default
    half-cell clip margin.
    """

    support = 3

    def __init__(
        self,
        resolution: Sequence[int],
        dx: float,
        device: torch.device = 'cpu',
    ):
        self.dim: int = len(resolution)
        self.dx: float = float(dx)
        self.inv_dx: float = 1.0 / self.dx
        self.num_cells: int = int(np.prod(resolution))
        self.device = device

        self.resolution = torch.tensor(list(resolution), dtype=torch.long, device=device)  # (D,)

        # row-major linearisation, last axis fastest
        strides = [1] * self.dim
        for d in range(self.dim - 2, -1, -1):
            strides[d] = strides[d + 1] * int(resolution[d + 1])
        self.strides = torch.tensor(strides, dtype=torch.long, device=device)  # (D,)

        self.offset = torch.tensor(
            list(itertools.product(range(self.support), repeat=self.dim)),
            dtype=torch.long,
            device=device,
        )  # (3^D, D)

    @property
    def stencil_size(self) -> int:
        return self.offset.shape[0]

    @property
    def apic_factor(self) -> float:
        """Inverse inertia-like tensor D_p^-1 = 4 / dx^2 of the quadratic spline."""
        return 4.0 * self.inv_dx * self.inv_dx

    def __call__(self, x: Tensor, cell_offset: Optional[Tensor] = None) -> Tuple[Tensor, Tensor, Tensor, Tensor]:
        return self.weight_and_index(x, cell_offset)

    def weight_and_index(self, x: Tensor, cell_offset: Optional[Tensor] = None) -> Tuple[Tensor, Tensor, Tensor, Tensor]:
        """
        Compute weight functions and grid indices for particle-grid transfers.

        Args:
            x: (P, D) particle positions
            cell_offset: optional (P,) offset added to every flat node index,
                used to give each batch instance its own slice of the grid

        Returns:
            weight: (P, S) stencil weights, summing to 1 per particle
            dweight: (P, S, D) weight gradients
            dpos: (P, S, D) node position minus particle position
            index: (P*S,) flattened grid indices
        """
        px = x * self.inv_dx
        lower = px.new_tensor(0.5)
        upper = (self.resolution - 1.5).to(px.dtype)
        px = torch.minimum(torch.maximum(px, lower), upper)

        base = torch.floor(px - 0.5).long()
        base = torch.minimum(base.clamp_min(0), self.resolution - 3)  # (P, D)
        fx = px - base.to(px.dtype)  # (P, D), in [0.5, 1.5]

        w = [
            0.5 * (1.5 - fx) ** 2,
            0.75 - (fx - 1) ** 2,
            0.5 * (fx - 0.5) ** 2
        ]
        w = torch.stack(w, dim=-1)  # (P, D, 3)
        dw = [
            fx - 1.5,
            -2.0 * (fx - 1.0),
            fx - 0.5
        ]
        dw = torch.stack(dw, dim=-1)  # (P, D, 3)

        # per-axis factors of every stencil node: (P, S, D)
        axes = torch.arange(self.dim, device=x.device)
        w_s = w[:, axes, self.offset]
        dw_s = dw[:, axes, self.offset]

        weight = w_s.prod(dim=-1)  # (P, S)
        dweight = [
            torch.cat([w_s[..., :d], dw_s[..., d:d + 1], w_s[..., d + 1:]], dim=-1).prod(dim=-1)
            for d in range(self.dim)
        ]
        dweight = self.inv_dx * torch.stack(dweight, dim=-1)  # (P, S, D)

        dpos = (self.offset.to(px.dtype).unsqueeze(0) - fx.unsqueeze(1)) * self.dx  # (P, S, D)

        index3 = base.unsqueeze(1) + self.offset.unsqueeze(0)  # (P, S, D)
        index = (index3 * self.strides).sum(dim=-1)  # (P, S)
        if cell_offset is not None:
            index = index + cell_offset.unsqueeze(1)

        return weight, dweight, dpos, index.reshape(-1)
