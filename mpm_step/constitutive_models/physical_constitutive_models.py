from typing import *

import torch
from torch import Tensor

from .abstract import Elasticity


def cofactor(F: Tensor) -> Tensor:
    """
    Cofactor matrix cof(F) = det(F) F^-T of a batch of 2x2 or 3x3 matrices.

    Computed in closed form so it stays finite for singular F.
    """
    if F.shape[-1] == 2:
        a, b = F[:, 0, 0], F[:, 0, 1]
        c, d = F[:, 1, 0], F[:, 1, 1]
        return torch.stack([
            torch.stack([d, -c], dim=-1),
            torch.stack([-b, a], dim=-1),
        ], dim=1)

    r0, r1, r2 = F[:, 0], F[:, 1], F[:, 2]
    return torch.stack([
        torch.cross(r1, r2, dim=-1),
        torch.cross(r2, r0, dim=-1),
        torch.cross(r0, r1, dim=-1),
    ], dim=1)


def safe_determinant(F: Tensor, eps: float) -> Tuple[Tensor, Tensor]:
    """
    Determinant of F and its copy floored away from zero.

    |J| < eps is replaced by +-eps keeping the sign (a zero determinant maps
    to +eps).

    Returns:
        J: (N,) raw determinant
        J_safe: (N,) floored determinant
    """
    J = torch.det(F)
    floor = torch.where(J < 0, -torch.full_like(J, eps), torch.full_like(J, eps))
    J_safe = torch.where(J.abs() < eps, floor, J)
    return J, J_safe


def lame_parameters(E: float, nu: float) -> Tuple[float, float]:
    """Shear modulus mu and first Lame parameter lambda from (E, nu)."""
    mu = E / (2 * (1 + nu))
    la = E * nu / ((1 + nu) * (1 - 2 * nu))
    return mu, la


class FixedCorotatedElasticity(Elasticity):
    def __init__(self, E: float = 50.0, nu: float = 0.3, dim: int = 3, det_epsilon: float = 1e-6) -> None:
        super().__init__(dim)

        # python floats, so the stress is formed in the dtype of F
        self.mu, self.la = lame_parameters(float(E), float(nu))
        self.det_epsilon = det_epsilon

    def forward(self, F: Tensor) -> Tuple[Tensor, Tensor]:
        """
        Args:
            F: (N, D, D) deformation gradients

        Returns:
            P: (N, D, D) first Piola-Kirchhoff stress
               2 mu (F - R) + lambda (J - 1) J F^-T
            R: (N, D, D) rotation of the polar decomposition F = R S
        """
        R, _ = self.polar(F)

        _, J = safe_determinant(F, self.det_epsilon)
        J = J.view(-1, 1, 1)
        F_inv_T = cofactor(F) / J

        corotated_stress = 2 * self.mu * (F - R)
        volume_stress = self.la * (J - 1) * J * F_inv_T

        stress = corotated_stress + volume_stress
        return stress, R


def piola_to_kirchhoff(F: torch.Tensor, P: torch.Tensor) -> torch.Tensor:
    """
    Convert Piola stress to Kirchhoff stress: τ = P * F^T

    Args:
        F: deformation gradient (N, D, D)
        P: Piola stress (N, D, D)

    Returns:
        τ: Kirchhoff stress (N, D, D)
    """
    return P @ F.transpose(1, 2)
