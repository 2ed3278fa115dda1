"""
GPU backend using PyTorch with FP64 precision.

For data center GPUs: A100, H100, V100.
"""

import warnings
from typing import Optional

from .gpu_fp32_backend import PyTorchBackendFP32
from .precision_detector import detect_gpu_capabilities


class PyTorchBackendFP64(PyTorchBackendFP32):
    """
    PyTorch GPU backend with FP64 precision.

    Same as FP32 but uses float64 precision.
    Only recommended for data center GPUs with full FP64 support.
    """

    def __init__(self, device: Optional[str] = None):
        """Initialize PyTorch FP64 backend."""
        super().__init__(device=device)
        self.name = "pytorch_fp64"
        self.precision = "fp64"
        self.dtype = self.torch.float64

    def _select_device(self, requested):
        """CUDA when present, else CPU tensors. Warns when FP64 runs at reduced rate."""
        torch = self.torch

        if requested is None:
            if not torch.cuda.is_available():
                warnings.warn("No CUDA GPU available, using CPU tensors", UserWarning)
            requested = 'cuda' if torch.cuda.is_available() else 'cpu'

        device = torch.device(requested)
        if device.type == 'mps':
            raise ValueError(
                "PyTorch backend does not support Apple MPS (Metal), which has no FP64. "
                "Use get_backend('cpu') instead."
            )

        if device.type == 'cuda':
            caps = detect_gpu_capabilities()
            if not caps.full_rate_fp64:
                warnings.warn(
                    f"{caps.gpu_name} runs FP64 at a fraction of FP32 throughput; "
                    f"backend='cpu' is usually faster at the same precision",
                    UserWarning
                )

        return device
