from typing import *
import torch, torch.nn as nn

class Elasticity(nn.Module):
    """Base class for elasticity models with a few helpers."""
    def __init__(self, dim: int = 3) -> None:
        super().__init__()
        self.dim = dim

    @staticmethod
    def transpose(M: torch.Tensor) -> torch.Tensor:
        return M.transpose(1, 2)

    @staticmethod
    def svd(F: torch.Tensor):
        # Robust SVD for batched DxD
        U, S, Vh = torch.linalg.svd(F, full_matrices=False)
        return U, S, Vh

    def polar(self, F: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Polar decomposition F = R S through the SVD F = U diag(sigma) Vh.

        The last singular pair is negated when U Vh is a reflection, so R is
        always a proper rotation (det R = +1) and S = V diag(sigma) Vh stays
        symmetric.

        Returns:
            R: (N, D, D) rotation
            S: (N, D, D) symmetric stretch
        """
        U, sigma, Vh = self.svd(F)

        reflection = torch.det(torch.matmul(U, Vh)) < 0
        flip = torch.ones_like(sigma)
        flip[:, -1] = 1.0 - 2.0 * reflection.to(sigma.dtype)

        U = U * flip.unsqueeze(1)
        sigma = sigma * flip

        R = torch.matmul(U, Vh)
        S = torch.matmul(torch.matmul(self.transpose(Vh), torch.diag_embed(sigma)), Vh)
        return R, S

    def forward(self, *args, **kwargs) -> torch.Tensor:
        raise NotImplementedError
