import pytest
import torch

from mpm_step.core.config import MPMConfig


def make_config(dim: int = 2, res: int = 16, **overrides) -> MPMConfig:
    params = dict(
        dt=1e-3,
        dx=1.0 / res,
        E=100.0,
        nu=0.3,
        m_p=1.0,
        V_p=(0.5 / res) ** dim,
        gravity=(0.0,) * dim,
        resolution=(res,) * dim,
    )
    params.update(overrides)
    return MPMConfig(**params)


def make_particles(batch_size: int, n_particles: int, dim: int = 2, low: float = 0.35, high: float = 0.65,
                   seed: int = 0, dtype: torch.dtype = torch.float64):
    """Particles at rest in host layout: x, v (B, D, N), C, F (B, D, D, N)."""
    g = torch.Generator().manual_seed(seed)
    x = low + (high - low) * torch.rand((batch_size, dim, n_particles), generator=g, dtype=dtype)
    v = torch.zeros((batch_size, dim, n_particles), dtype=dtype)
    C = torch.zeros((batch_size, dim, dim, n_particles), dtype=dtype)
    F = torch.eye(dim, dtype=dtype).reshape(1, dim, dim, 1).repeat(batch_size, 1, 1, n_particles)
    return x, v, C, F


@pytest.fixture
def config_2d() -> MPMConfig:
    return make_config(dim=2)


@pytest.fixture
def config_3d() -> MPMConfig:
    return make_config(dim=3, res=8)
