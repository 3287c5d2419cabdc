"""Debug output of the step phases, switched on with ``MPM_DEBUG=1``."""

from __future__ import annotations
from typing import NamedTuple
import os

import torch

DEBUG_ENV_VAR = "MPM_DEBUG"
_OFF_VALUES = ("0", "", "false", "no", "off")


class TensorStats(NamedTuple):
    min: float
    max: float
    mean: float
    nonfinite: int


def is_debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV_VAR, "0").strip().lower() not in _OFF_VALUES


def debug_print(*args, **kwargs):
    if is_debug_enabled():
        print(*args, **kwargs)


def get_tensor_stats(tensor: torch.Tensor) -> TensorStats:
    """
    Summary of a tensor over its finite entries.

    NaN/inf entries are counted in ``nonfinite`` and left out of min/max/mean,
    so a single blown-up particle does not hide the rest of the field.
    """
    t = tensor.detach().double().reshape(-1)
    finite = torch.isfinite(t)
    nonfinite = int((~finite).sum().item())
    t = t[finite]
    if t.numel() == 0:
        return TensorStats(0.0, 0.0, 0.0, nonfinite)
    return TensorStats(t.min().item(), t.max().item(), t.mean().item(), nonfinite)


def debug_tensor_info(name: str, tensor: torch.Tensor):
    if not is_debug_enabled():
        return
    stats = get_tensor_stats(tensor)
    line = (f"[{name}] shape={tuple(tensor.shape)} dtype={tensor.dtype} "
            f"min={stats.min:.4e} max={stats.max:.4e} mean={stats.mean:.4e}")
    if stats.nonfinite:
        line += f" nonfinite={stats.nonfinite}"
    print(line)
