"""Input validation utilities."""

from __future__ import annotations
from typing import Sequence, Tuple


class ConfigurationError(ValueError):
    """Invalid step configuration (attribute values, lengths, policies)."""


class ShapeError(ValueError):
    """Particle tensors whose shapes are not mutually compatible."""


def require_positive(name: str, value: float):
    """
    Check that a scalar attribute is strictly positive.

    Raises:
        ConfigurationError: If value <= 0
    """
    if not value > 0:
        raise ConfigurationError(f"Need {name} > 0, got {value}")


def require_length(name: str, values: Sequence, dim: int):
    """
    Check that a list attribute has one entry per spatial dimension.

    Raises:
        ConfigurationError: If len(values) != dim
    """
    if len(values) != dim:
        raise ConfigurationError(
            f"{name.capitalize()} length must be equal to {dim}, but is {len(values)}"
        )


def validate_particle_shapes(
    x_shape: Tuple[int, ...],
    v_shape: Tuple[int, ...],
    C_shape: Tuple[int, ...],
    F_shape: Tuple[int, ...],
) -> Tuple[int, int, int]:
    """
    Validate the host layout of the four particle tensors.

    Args:
        x_shape: position shape (B, D, N)
        v_shape: velocity shape (B, D, N)
        C_shape: affine shape (B, D, D, N)
        F_shape: deformation shape (B, D, D, N)

    Returns:
        (batch_size, dim, num_particles)

    Raises:
        ShapeError: If ranks are wrong or batch/dim/particle axes disagree
    """
    x_shape, v_shape = tuple(x_shape), tuple(v_shape)
    C_shape, F_shape = tuple(C_shape), tuple(F_shape)

    for name, shape, rank in (
        ("position", x_shape, 3),
        ("velocity", v_shape, 3),
        ("affine", C_shape, 4),
        ("deformation", F_shape, 4),
    ):
        if len(shape) != rank:
            raise ShapeError(f"{name} must have rank {rank}, got shape {shape}")

    batch_size, dim, particles = x_shape

    checks = (
        ("batch", "velocity", v_shape[0], batch_size),
        ("batch", "affine", C_shape[0], batch_size),
        ("batch", "deformation", F_shape[0], batch_size),
        ("dim", "velocity", v_shape[1], dim),
        ("dim", "affine", C_shape[1], dim),
        ("dim", "affine", C_shape[2], dim),
        ("dim", "deformation", F_shape[1], dim),
        ("dim", "deformation", F_shape[2], dim),
        ("particle", "velocity", v_shape[2], particles),
        ("particle", "affine", C_shape[3], particles),
        ("particle", "deformation", F_shape[3], particles),
    )
    shapes = {"velocity": v_shape, "affine": C_shape, "deformation": F_shape}
    for axis, name, got, expected in checks:
        if got != expected:
            raise ShapeError(
                f"{axis} axis of {name} {shapes[name]} does not match "
                f"position {x_shape}: {got} != {expected}"
            )

    return batch_size, dim, particles
