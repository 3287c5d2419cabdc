"""
Entry point for a single batched MPM step

This script:
1. Loads configuration from YAML
2. Samples a block of particles for every batch instance
3. Runs one MPM step
4. Prints conservation diagnostics and optionally saves the outputs

Usage:
    python run.py --config configs/default.yaml
    python run.py --config configs/default.yaml --batch 4 --per-axis 12 --output step.npz
"""

import argparse
from typing import Optional, Sequence

import numpy as np
import torch
from omegaconf import DictConfig, OmegaConf

from mpm_step.core.config import MPMConfig, load_config
from mpm_step.mpm_core.mpm_model import MPMModel, StepOutput


# ============================================================================
# Configuration & Setup
# ============================================================================

def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Single batched MLS-MPM step",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py --config configs/default.yaml
  python run.py --config configs/default.yaml --boundary sticky --batch 4
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default="configs/default.yaml",
        help="Path to YAML configuration file"
    )

    parser.add_argument(
        "--batch", "-b",
        type=int,
        default=None,
        help="Override number of independent instances"
    )

    parser.add_argument(
        "--per-axis", "-n",
        type=int,
        default=None,
        help="Override particles per axis of the sampled block"
    )

    parser.add_argument(
        "--boundary",
        type=str,
        default=None,
        help="Override boundary policy (slip/sticky/none)"
    )

    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Override device (cuda/cpu)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Save the step outputs to this .npz file"
    )

    return parser.parse_args(argv)


def apply_cli_overrides(config: DictConfig, args) -> DictConfig:
    """
    Apply command-line argument overrides to config

    Args:
        config: Base configuration
        args: Parsed command-line arguments

    Returns:
        Modified configuration
    """
    if args.batch is not None:
        OmegaConf.update(config, "particles.batch_size", args.batch)
        print(f"[Config] Override batch size: {args.batch}")

    if args.per_axis is not None:
        OmegaConf.update(config, "particles.per_axis", args.per_axis)
        print(f"[Config] Override particles per axis: {args.per_axis}")

    if args.boundary is not None:
        OmegaConf.update(config, "mpm.boundary", args.boundary)
        print(f"[Config] Override boundary: {args.boundary}")

    if args.device is not None:
        OmegaConf.update(config, "device.type", args.device)
        print(f"[Config] Override device: {args.device}")

    return config


# ============================================================================
# Particle Sampling
# ============================================================================

def sample_particles(config: DictConfig, dim: int):
    """
    Sample a regular block of particles for every batch instance

    Args:
        config: Configuration with a ``particles`` section
        dim: Spatial dimension

    Returns:
        Tuple of numpy arrays (x, v, C, F) in (B, D, N) / (B, D, D, N) layout
    """
    particles = config.get("particles", None) or OmegaConf.create({})
    batch_size = int(particles.get("batch_size", 1))
    per_axis = int(particles.get("per_axis", 8))
    center = np.asarray(list(particles.get("center", [0.5] * dim)), dtype=np.float32)
    size = np.asarray(list(particles.get("size", [0.2] * dim)), dtype=np.float32)
    velocity = np.asarray(list(particles.get("velocity", [0.0] * dim)), dtype=np.float32)
    jitter = float(particles.get("jitter", 0.0))
    rng = np.random.default_rng(int(particles.get("seed", 0)))

    if center.shape != (dim,) or size.shape != (dim,) or velocity.shape != (dim,):
        raise ValueError(
            f"particles.center/size/velocity must have {dim} entries, got "
            f"{center.shape}, {size.shape}, {velocity.shape}"
        )

    # cell-centred lattice inside the block
    ticks = (np.arange(per_axis, dtype=np.float32) + 0.5) / per_axis
    lattice = np.stack(np.meshgrid(*([ticks] * dim), indexing="ij"), axis=0).reshape(dim, -1)
    block = (center - 0.5 * size)[:, None] + lattice * size[:, None]  # (D, N)
    n_particles = block.shape[1]

    x = np.repeat(block[None], batch_size, axis=0)
    if jitter > 0:
        spacing = (size / per_axis)[None, :, None]
        x = x + jitter * spacing * rng.uniform(-0.5, 0.5, size=x.shape).astype(np.float32)
    v = np.broadcast_to(velocity[None, :, None], (batch_size, dim, n_particles)).copy()
    C = np.zeros((batch_size, dim, dim, n_particles), dtype=np.float32)
    F = np.broadcast_to(
        np.eye(dim, dtype=np.float32)[None, :, :, None], (batch_size, dim, dim, n_particles)
    ).copy()

    print(f"[Particles] {batch_size} instance(s) x {n_particles} particles")
    return x.astype(np.float32), v, C, F


# ============================================================================
# Diagnostics
# ============================================================================

def print_diagnostics(config: MPMConfig, output: StepOutput, n_particles: int):
    """Print per-instance grid mass and particle momentum after the step"""
    grid = output.grid_out
    dim = config.dim
    grid_mass = grid[..., dim].sum(dim=1)  # (B,)
    momentum = config.m_p * output.velocity_out.sum(dim=2)  # (B, D)

    print(f"\n{'='*60}")
    print("Step Diagnostics")
    print(f"{'='*60}")
    for b in range(grid.shape[0]):
        print(f"  [Instance {b}] grid mass={grid_mass[b].item():.6e} "
              f"(expected {n_particles * config.m_p:.6e}), "
              f"momentum={momentum[b].tolist()}")
    det_F = torch.det(output.deformation_out.permute(0, 3, 1, 2))
    print(f"  - det(F) range: [{det_F.min().item():.6f}, {det_F.max().item():.6f}]")
    print(f"{'='*60}\n")


def save_outputs(path: str, output: StepOutput):
    arrays = {name: value.detach().cpu().numpy() for name, value in output._asdict().items()}
    np.savez(path, **arrays)
    print(f"[Output] Saved step outputs to: {path}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)
    config = apply_cli_overrides(config, args)

    mpm_config = MPMConfig.from_omegaconf(config)
    print(f"[MPM] dt={mpm_config.dt}, dx={mpm_config.dx}, resolution={list(mpm_config.resolution)}")
    print(f"[MPM] E={mpm_config.E}, nu={mpm_config.nu}, m_p={mpm_config.m_p}, V_p={mpm_config.V_p}")
    print(f"[MPM] Boundary: {mpm_config.boundary} (width {mpm_config.boundary_width})")

    device_cfg = config.get("device", None) or OmegaConf.create({})
    device = torch.device(device_cfg.get("type", "cpu"))

    x, v, C, F = sample_particles(config, mpm_config.dim)
    tensors = [torch.from_numpy(a).to(device) for a in (x, v, C, F)]

    model = MPMModel(mpm_config, device=device)
    output = model(*tensors)

    print_diagnostics(mpm_config, output, x.shape[2])

    if args.output is not None:
        save_outputs(args.output, output)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
