"""
Backend selection and management.

Provides unified interface for CPU and NVIDIA GPU (PyTorch) solvers.
"""

import importlib.util
import logging
from typing import Optional

from .base import BackendBase, MultiFitResult
from .precision_detector import (
    detect_gpu_capabilities,
    wants_fp64,
    GPUCapabilities
)
from .cpu_fp64_backend import CPUBackendFP64
from .gpu_fp32_backend import PyTorchBackendFP32
from .gpu_fp64_backend import PyTorchBackendFP64
from .. import _config

logger = logging.getLogger(__name__)

# GPU backends import torch lazily; they are usable only if it is installed.
PYTORCH_AVAILABLE = importlib.util.find_spec("torch") is not None


def get_backend(backend: str = 'auto', use_fp64: Optional[bool] = None) -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str
        Backend selection:
        - 'auto': configured default (see pymlm.set_backend), else
          auto-select based on hardware
        - 'cpu': CPU with NumPy (FP64, reference)
        - 'gpu' / 'pytorch': PyTorch CUDA (NVIDIA only)

    use_fp64 : bool or None
        Precision preference:
        - None or True: FP64. With 'auto' a GPU is used only if it
          runs FP64 at full rate, otherwise the CPU solver.
        - False: allow FP32 on the GPU (faster, about 1e-7 relative
          error, so results no longer match per-response OLS to 1e-9)

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> # Auto-select best backend
    >>> backend = get_backend('auto')

    >>> # Force CPU for exact reproducibility
    >>> backend = get_backend('cpu')
    """
    if isinstance(backend, BackendBase):
        return backend

    backend = backend.strip().lower()
    if backend == 'auto':
        configured = _config.get_default_backend()
        if configured != 'auto':
            logger.debug("Using configured default backend %r", configured)
            return get_backend(configured, use_fp64=use_fp64)
        result = _auto_backend(use_fp64)

    elif backend == 'cpu':
        result = CPUBackendFP64()

    elif backend in ('gpu', 'pytorch'):
        caps = detect_gpu_capabilities()

        if not caps.has_gpu:
            raise ValueError(
                "No GPU detected.\n"
                "Options:\n"
                "  - Use backend='cpu'\n"
                "  - Install PyTorch with CUDA for NVIDIA"
            )

        if wants_fp64(use_fp64):
            result = PyTorchBackendFP64()
        else:
            result = PyTorchBackendFP32()

    else:
        raise ValueError(
            f"Unknown backend: '{backend}'\n"
            f"Valid options: 'auto', 'cpu', 'gpu', 'pytorch'"
        )

    logger.debug("Selected backend %s", result.name)
    return result


def _auto_backend(use_fp64: Optional[bool]) -> BackendBase:
    caps = detect_gpu_capabilities()
    if not caps.has_gpu or not PYTORCH_AVAILABLE:
        return CPUBackendFP64()

    if not wants_fp64(use_fp64):
        return PyTorchBackendFP32()

    # FP64 on a consumer card is slower than the CPU solver
    if caps.full_rate_fp64:
        return PyTorchBackendFP64()
    return CPUBackendFP64()


def list_available_backends() -> list:
    """List names of available backends."""
    backends = ['cpu']
    if PYTORCH_AVAILABLE and detect_gpu_capabilities().has_gpu:
        backends.append('pytorch')
    return backends


def print_backend_info():
    """Print detailed backend information (diagnostic)."""
    caps = detect_gpu_capabilities()

    print("pymlm Backend Status")
    print("=" * 50)
    print(f"\nAvailable Backends:")
    print("  CPU (FP64):          ✓ - pivoted QR (exact OLS)")
    print(f"  PyTorch CUDA:        {'✓' if 'pytorch' in list_available_backends() else '✗'} - batched QR")

    print(f"\nHardware Detection:")
    if caps.has_gpu:
        print(f"  GPU Type: {caps.gpu_type}")
        print(f"  GPU Name: {caps.gpu_name}")
        print(f"  FP64 Rate: {'full' if caps.full_rate_fp64 else 'reduced'}")
    else:
        print(f"  No GPU detected")

    print(f"\nDefault Backend:")
    try:
        backend = get_backend('auto')
        print(f"  {backend.name}")
    except (RuntimeError, ValueError, ImportError) as e:
        print(f"  Error: {e}")


__all__ = [
    'get_backend',
    'list_available_backends',
    'print_backend_info',
    'BackendBase',
    'MultiFitResult',
    'CPUBackendFP64',
    'PyTorchBackendFP32',
    'PyTorchBackendFP64',
    'GPUCapabilities',
    'detect_gpu_capabilities',
    'PYTORCH_AVAILABLE',
]


if __name__ == "__main__":
    print_backend_info()
