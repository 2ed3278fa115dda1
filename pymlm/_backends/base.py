"""
Abstract base classes for backends.

Defines the interface all backends must implement.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Optional, Sequence
from dataclasses import dataclass

from .._core.context import FitContext


@dataclass
class MultiFitResult:
    """Raw least-squares results for all responses."""
    coef: np.ndarray           # (p, m), column j fits response j
    fitted_values: np.ndarray  # (n, m)
    residuals: np.ndarray      # (n, m)
    rss: np.ndarray            # (m,) residual sum of squares
    rss_null: np.ndarray       # (m,) RSS of the null model
    df_residual: int


class BackendBase(ABC):
    """Abstract base class for all backends."""

    @abstractmethod
    def decompose(
        self,
        X: np.ndarray,
        coef_names: Optional[Sequence[str]] = None,
        tol: Optional[float] = None,
    ) -> FitContext:
        """
        Decompose the design matrix once for all responses.

        Parameters
        ----------
        X : ndarray, shape (n, p)
            Full design matrix
        coef_names : sequence of str, optional
            Coefficient labels
        tol : float, optional
            Relative tolerance for rank determination

        Returns
        -------
        FitContext
            Shared design quantities (all numpy arrays, float64)

        Raises
        ------
        SingularDesignError
            If X is not full column rank
        """
        pass

    @abstractmethod
    def fit_responses(self, context: FitContext, Y: np.ndarray) -> MultiFitResult:
        """
        Fit all response columns against a decomposed design.

        Backends implement ALL computation internally using their
        native types, only converting at entry/exit.
        """
        pass

    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass

    @staticmethod
    def _names(coef_names, p):
        if coef_names is None:
            return tuple(f'x{i}' for i in range(p))
        return tuple(str(c) for c in coef_names)


class CPUBackend(BackendBase):
    """CPU backend base class (always FP64)."""
    pass


class GPUBackend(BackendBase):
    """GPU backend base class."""
    pass
