"""
Multi-response linear model solver.

Delegates to backend for actual computation.
"""

import numpy as np

from .context import FitContext


def fit_multi_response(
    context: FitContext,
    Y: np.ndarray,
    backend=None,
):
    """
    Fit every column of Y against the shared design.

    This is just a thin wrapper - backends do all the work.

    Parameters
    ----------
    context : FitContext
        Decomposed design (from build_fit_context)
    Y : ndarray, shape (n, m)
        Response matrix, one column per response
    backend : Backend, optional
        Computational backend

    Returns
    -------
    result : MultiFitResult (from backend)
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    return backend.fit_responses(context, Y)
