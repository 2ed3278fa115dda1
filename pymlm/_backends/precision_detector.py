"""
CUDA device detection for backend selection.

pymlm promises statistics that match double-precision per-response OLS,
so the only hardware question that matters is whether a GPU runs FP64
at full rate. Consumer cards run it at 1/32 to 1/64 of FP32 speed.
"""

from dataclasses import dataclass
from typing import Optional

# Data center parts with full-rate FP64 units
FULL_RATE_FP64_MODELS = ('A100', 'A800', 'H100', 'H200', 'H800', 'V100', 'P100')


@dataclass(frozen=True)
class GPUCapabilities:
    """What backend selection needs to know about the device."""
    has_gpu: bool
    gpu_name: str
    full_rate_fp64: bool

    @property
    def gpu_type(self) -> str:
        return 'nvidia' if self.has_gpu else 'none'


NO_GPU = GPUCapabilities(has_gpu=False, gpu_name="CPU only", full_rate_fp64=False)


def is_full_rate_fp64(gpu_name: str) -> bool:
    """True for NVIDIA data center GPUs that run FP64 at half FP32 speed or better."""
    name = gpu_name.upper()
    return any(model in name for model in FULL_RATE_FP64_MODELS)


def detect_gpu_capabilities() -> GPUCapabilities:
    """Inspect the first CUDA device, if torch and CUDA are present."""
    try:
        import torch
    except ImportError:
        return NO_GPU

    if not torch.cuda.is_available():
        return NO_GPU

    gpu_name = torch.cuda.get_device_name(0)
    return GPUCapabilities(
        has_gpu=True,
        gpu_name=gpu_name,
        full_rate_fp64=is_full_rate_fp64(gpu_name),
    )


def wants_fp64(use_fp64: Optional[bool]) -> bool:
    """
    Resolve the caller's precision preference.

    FP32 is opt-in only: None keeps double precision so results stay
    within floating-point tolerance of the CPU solver.
    """
    return use_fp64 is not False
