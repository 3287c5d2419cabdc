import math

import pytest
import torch

from mpm_step.constitutive_models import (
    FixedCorotatedElasticity,
    cofactor,
    safe_determinant,
    piola_to_kirchhoff,
    lame_parameters,
)


def rotation_2d(theta: float) -> torch.Tensor:
    c, s = math.cos(theta), math.sin(theta)
    return torch.tensor([[c, -s], [s, c]], dtype=torch.float64)


def random_deformation(n: int, dim: int, seed: int = 0, scale: float = 0.3) -> torch.Tensor:
    g = torch.Generator().manual_seed(seed)
    return torch.eye(dim, dtype=torch.float64) + scale * torch.randn((n, dim, dim), generator=g, dtype=torch.float64)


@pytest.mark.parametrize("dim", [2, 3])
def test_identity_is_stress_free(dim):
    model = FixedCorotatedElasticity(E=1e3, nu=0.3, dim=dim)
    F = torch.eye(dim, dtype=torch.float64).expand(5, dim, dim).contiguous()

    P, R = model(F)

    assert torch.allclose(P, torch.zeros_like(P), atol=1e-9)
    assert torch.allclose(R, F, atol=1e-12)


def test_pure_rotation_is_stress_free():
    model = FixedCorotatedElasticity(E=1e3, nu=0.3, dim=2)
    F = torch.stack([rotation_2d(t) for t in (0.1, 1.3, -2.0)])

    P, R = model(F)

    assert torch.allclose(P, torch.zeros_like(P), atol=1e-9)
    assert torch.allclose(R, F, atol=1e-12)


@pytest.mark.parametrize("dim", [2, 3])
def test_polar_decomposition(dim):
    model = FixedCorotatedElasticity(dim=dim)
    F = random_deformation(64, dim, seed=1, scale=0.8)

    R, S = model.polar(F)

    I = torch.eye(dim, dtype=torch.float64).expand_as(R)
    assert torch.allclose(R @ R.transpose(1, 2), I, atol=1e-10)
    assert torch.allclose(torch.det(R), torch.ones(64, dtype=torch.float64), atol=1e-10)
    assert torch.allclose(S, S.transpose(1, 2), atol=1e-10)
    assert torch.allclose(R @ S, F, atol=1e-10)


def test_polar_of_inverted_element_is_proper_rotation():
    model = FixedCorotatedElasticity(dim=3)
    F = torch.diag(torch.tensor([1.0, 1.2, -0.8], dtype=torch.float64)).unsqueeze(0)

    R, S = model.polar(F)

    assert torch.det(R).item() == pytest.approx(1.0)
    assert torch.allclose(R @ S, F, atol=1e-12)


@pytest.mark.parametrize("dim", [2, 3])
def test_stress_matches_fixed_corotated_formula(dim):
    E, nu = 500.0, 0.25
    model = FixedCorotatedElasticity(E=E, nu=nu, dim=dim)
    F = random_deformation(32, dim, seed=2, scale=0.2)

    P, R = model(F)

    mu = E / (2 * (1 + nu))
    la = E * nu / ((1 + nu) * (1 - 2 * nu))
    J = torch.det(F).view(-1, 1, 1)
    expected = 2 * mu * (F - R) + la * (J - 1) * J * torch.linalg.inv(F).transpose(1, 2)
    assert torch.allclose(P, expected, rtol=1e-5, atol=1e-6)


def test_lame_parameters():
    mu, la = lame_parameters(260.0, 0.3)

    assert mu == pytest.approx(100.0)
    assert la == pytest.approx(150.0)


def test_material_constants_keep_float64_precision():
    E, nu = 123.456789, 0.3
    model = FixedCorotatedElasticity(E=E, nu=nu, dim=2)
    F = torch.tensor([[[1.3, 0.0], [0.0, 1.0]]], dtype=torch.float64)

    P, R = model(F)

    mu = E / (2 * (1 + nu))
    la = E * nu / ((1 + nu) * (1 - 2 * nu))
    J = 1.3
    expected = 2 * mu * 0.3 + la * (J - 1) * J / 1.3
    assert P[0, 0, 0].item() == pytest.approx(expected, rel=1e-12)


@pytest.mark.parametrize("dim", [2, 3])
def test_kirchhoff_stress_is_symmetric(dim):
    model = FixedCorotatedElasticity(E=200.0, nu=0.3, dim=dim)
    F = random_deformation(16, dim, seed=3)

    P, _ = model(F)
    tau = piola_to_kirchhoff(F, P)

    assert torch.allclose(tau, tau.transpose(1, 2), atol=1e-8)


@pytest.mark.parametrize("dim", [2, 3])
def test_cofactor_is_det_times_inverse_transpose(dim):
    F = random_deformation(20, dim, seed=4)

    expected = torch.det(F).view(-1, 1, 1) * torch.linalg.inv(F).transpose(1, 2)

    assert torch.allclose(cofactor(F), expected, atol=1e-10)


def test_determinant_floor_keeps_sign():
    F = torch.stack([
        torch.diag(torch.tensor([1.0, 1e-9], dtype=torch.float64)),
        torch.diag(torch.tensor([-1.0, 1e-9], dtype=torch.float64)),
        torch.zeros((2, 2), dtype=torch.float64),
        torch.diag(torch.tensor([2.0, 0.5], dtype=torch.float64)),
    ])

    J, J_safe = safe_determinant(F, eps=1e-6)

    assert J_safe.tolist() == pytest.approx([1e-6, -1e-6, 1e-6, 1.0])
    assert J[3].item() == pytest.approx(1.0)


@pytest.mark.parametrize("dim", [2, 3])
def test_singular_deformation_gives_finite_stress(dim):
    model = FixedCorotatedElasticity(E=1e3, nu=0.3, dim=dim)
    flat = torch.eye(dim, dtype=torch.float64)
    flat[-1, -1] = 0.0
    F = torch.stack([torch.zeros((dim, dim), dtype=torch.float64), flat])

    P, R = model(F)

    assert torch.all(torch.isfinite(P))
    assert torch.all(torch.isfinite(R))


def test_float32_input_keeps_dtype():
    model = FixedCorotatedElasticity(dim=2)
    F = torch.eye(2).expand(3, 2, 2).contiguous()

    P, R = model(F)

    assert P.dtype == torch.float32
    assert R.dtype == torch.float32
