"""
GPU backend using PyTorch with FP32 precision.

NVIDIA CUDA GPUs only.
"""

import numpy as np
from typing import Optional, Any, Sequence

from .base import GPUBackend, MultiFitResult
from .._core.context import FitContext
from ..errors import SingularDesignError


class PyTorchBackendFP32(GPUBackend):
    """
    PyTorch GPU backend with FP32 precision.

    Keeps all computation on GPU using torch tensors.
    Only converts at entry (numpy → torch) and exit (torch → numpy).
    All response columns are solved in one batched triangular solve.

    Requirements:
    - NVIDIA GPU with CUDA support
    - PyTorch with CUDA enabled
    """

    def __init__(self, device: Optional[str] = None):
        """Initialize PyTorch FP32 backend."""
        self.name = "pytorch_fp32"
        self.precision = "fp32"

        try:
            import torch
            self.torch = torch
        except ImportError:
            raise ImportError(
                "PyTorch required for GPU backend. "
                "Install: pip install pymlm[gpu]"
            )

        self.dtype = torch.float32
        self.device = self._select_device(device)

    def _select_device(self, requested: Optional[str]) -> Any:
        """Select CUDA GPU device. Fails if CUDA unavailable."""
        torch = self.torch

        if requested:
            device = torch.device(requested)

            if device.type == 'mps':
                raise ValueError(
                    "PyTorch backend does not support Apple MPS (Metal). "
                    "Use get_backend('cpu') instead."
                )

            return device

        if not torch.cuda.is_available():
            raise RuntimeError(
                "PyTorch backend requires NVIDIA CUDA GPU.\n"
                "Options:\n"
                "  1. Use get_backend('cpu') for CPU (FP64)\n"
                "  2. Install CUDA-enabled PyTorch"
            )

        return torch.device('cuda')

    def _to_tensor(self, arr: np.ndarray):
        return self.torch.as_tensor(np.ascontiguousarray(arr), dtype=self.dtype, device=self.device)

    @staticmethod
    def _to_numpy(t) -> np.ndarray:
        return t.detach().cpu().numpy().astype(np.float64)

    def decompose(
        self,
        X: np.ndarray,
        coef_names: Optional[Sequence[str]] = None,
        tol: Optional[float] = None,
    ) -> FitContext:
        """
        QR decomposition of the design on GPU.

        Unpivoted QR; rank is judged from |diag(R)| against its maximum.
        """
        torch = self.torch
        X = np.array(X, dtype=np.float64)
        n, p = X.shape
        names = self._names(coef_names, p)

        # Convert to GPU tensors ONCE at entry
        X_gpu = self._to_tensor(X)

        if tol is None:
            # Scale by p, not n, so tolerance does not explode on tall designs
            tol = p * torch.finfo(self.dtype).eps

        Q, R = torch.linalg.qr(X_gpu, mode='reduced')

        R_diag = torch.abs(torch.diagonal(R))
        if R_diag.numel() == 0 or float(R_diag.max().item()) == 0.0:
            rank = 0
            small = list(range(p))
        else:
            keep = R_diag > tol * R_diag.max()
            rank = int(torch.sum(keep).item())
            small = [i for i, k in enumerate(keep.cpu().tolist()) if not k]
        if n < p:
            rank = min(rank, n)
            small = small + list(range(n, p))

        if rank < p:
            raise SingularDesignError(rank, p, aliased=[names[i] for i in small])

        eye = torch.eye(p, dtype=self.dtype, device=self.device)
        R_inv = torch.linalg.solve_triangular(R, eye, upper=True)
        xtx_inv = R_inv @ R_inv.T

        ones = torch.ones(n, 1, dtype=self.dtype, device=self.device)
        resid_one = ones - Q @ (Q.T @ ones)
        intercept_tol = float(np.sqrt(torch.finfo(self.dtype).eps)) * np.sqrt(n)
        has_intercept = bool(torch.linalg.norm(resid_one).item() <= intercept_tol)

        # Convert ONCE at exit
        return FitContext(
            X=X,
            coef_names=names,
            xtx_inv=self._to_numpy(xtx_inv),
            rank=rank,
            df_residual=n - rank,
            has_intercept=has_intercept,
            qr_Q=self._to_numpy(Q),
            qr_R=self._to_numpy(R),
            qr_pivot=np.arange(p, dtype=np.int64),
            qr_tol=float(tol),
        )

    def fit_responses(self, context: FitContext, Y: np.ndarray) -> MultiFitResult:
        """
        Solve R B = Q'Y for all columns on GPU.

        ALL computation happens on GPU with torch tensors.
        Only convert at boundaries (entry/exit).
        """
        torch = self.torch
        Y = np.asarray(Y, dtype=np.float64)
        p, m = context.n_coef, Y.shape[1]

        Y_gpu = self._to_tensor(Y)
        X_gpu = self._to_tensor(context.X)

        if m == 0:
            coef = torch.empty((p, 0), dtype=self.dtype, device=self.device)
        else:
            Q_gpu = self._to_tensor(context.qr_Q)
            R_gpu = self._to_tensor(context.qr_R)
            coef_piv = torch.linalg.solve_triangular(R_gpu, Q_gpu.T @ Y_gpu, upper=True)
            pivot = torch.as_tensor(context.qr_pivot, device=self.device)
            coef = torch.empty_like(coef_piv)
            coef[pivot, :] = coef_piv

        fitted = X_gpu @ coef
        residuals = Y_gpu - fitted
        rss = torch.sum(residuals ** 2, dim=0)

        if context.has_intercept:
            rss_null = torch.sum((Y_gpu - Y_gpu.mean(dim=0)) ** 2, dim=0)
        else:
            rss_null = torch.sum(Y_gpu ** 2, dim=0)

        return MultiFitResult(
            coef=self._to_numpy(coef),
            fitted_values=self._to_numpy(fitted),
            residuals=self._to_numpy(residuals),
            rss=self._to_numpy(rss),
            rss_null=self._to_numpy(rss_null),
            df_residual=context.df_residual,
        )

    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'gpu',
            'precision': self.precision,
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
