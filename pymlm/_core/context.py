"""
Shared fit context for a design matrix.

Everything that depends only on X (Gram inverse, rank, residual df,
null-model structure, QR factors) is computed once and handed to the
per-response computations explicitly.
"""

import numpy as np
from typing import Optional, Tuple
from dataclasses import dataclass


@dataclass(frozen=True, eq=False)
class FitContext:
    """Design-only quantities shared by every response."""
    X: np.ndarray             # Design matrix (n, p)
    coef_names: Tuple[str, ...]
    xtx_inv: np.ndarray       # (X'X)^-1, (p, p)
    rank: int
    df_residual: int          # n - p, same for every response
    has_intercept: bool       # Constant vector lies in col(X)
    qr_Q: np.ndarray          # Thin Q, (n, p), pivoted column order
    qr_R: np.ndarray          # Upper triangular R, (p, p)
    qr_pivot: np.ndarray      # Column pivot (0-indexed)
    qr_tol: float             # Tolerance used for rank

    def __post_init__(self):
        for arr in (self.X, self.xtx_inv, self.qr_Q, self.qr_R, self.qr_pivot):
            arr.setflags(write=False)

    @property
    def n_obs(self) -> int:
        return self.X.shape[0]

    @property
    def n_coef(self) -> int:
        return self.X.shape[1]

    @property
    def df_model(self) -> int:
        """Numerator df of the overall F-test."""
        return self.n_coef - 1 if self.has_intercept else self.n_coef

    @property
    def stdev_unscaled(self) -> np.ndarray:
        """sqrt(diag((X'X)^-1)): coefficient SEs per unit residual SD."""
        return np.sqrt(np.diag(self.xtx_inv))


def build_fit_context(
    X: np.ndarray,
    coef_names=None,
    tol: Optional[float] = None,
    backend=None,
) -> FitContext:
    """
    Decompose the design matrix once.

    Delegates to backend-specific implementation.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Full design matrix (intercept column included if wanted)
    coef_names : sequence of str, optional
        Coefficient labels
    tol : float, optional
        Relative tolerance for rank determination
    backend : Backend, optional
        Computational backend

    Returns
    -------
    FitContext

    Raises
    ------
    SingularDesignError
        If X is not full column rank
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    return backend.decompose(X, coef_names=coef_names, tol=tol)
