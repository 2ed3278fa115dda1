"""
Core algorithms (backend-agnostic).
"""

from .context import FitContext, build_fit_context
from .lm_solver import fit_multi_response
from .fdist import fit_f_dist, squeeze_var, trigamma_inverse

__all__ = [
    "FitContext",
    "build_fit_context",
    "fit_multi_response",
    "fit_f_dist",
    "squeeze_var",
    "trigamma_inverse",
]
