"""
Utility functions.
"""

import numpy as np
import pandas as pd

from .errors import DimensionMismatchError, InvalidResponseError


def check_design(X, dtype=np.float64):
    """
    Validate design matrix input.

    Returns
    -------
    (values, names)
        Float array of shape (n, p) and coefficient names
    """
    if isinstance(X, pd.DataFrame):
        names = [str(c) for c in X.columns]
        values = X.to_numpy(dtype=dtype)
    else:
        values = np.asarray(X, dtype=dtype)
        if values.ndim == 1:
            values = values[:, np.newaxis]
        names = [f'x{i}' for i in range(values.shape[1])] if values.ndim == 2 else []

    if values.ndim != 2:
        raise ValueError("X must be 2-dimensional")
    if values.shape[1] == 0:
        raise ValueError("X must have at least one column")
    if not np.all(np.isfinite(values)):
        raise ValueError("X contains NaN or Inf")
    return values, names


def check_response(Y, dtype=np.float64):
    """
    Validate response matrix input.

    A 1-d input is one response. Any column holding NaN or Inf fails
    the whole batch with InvalidResponseError.

    Returns
    -------
    (values, names)
        Float array of shape (n, m) and response names
    """
    if isinstance(Y, pd.DataFrame):
        names = [str(c) for c in Y.columns]
        values = Y.to_numpy(dtype=dtype)
    elif isinstance(Y, pd.Series):
        names = [str(Y.name) if Y.name is not None else 'y0']
        values = Y.to_numpy(dtype=dtype)[:, np.newaxis]
    else:
        values = np.asarray(Y, dtype=dtype)
        if values.ndim == 1:
            values = values[:, np.newaxis]
        names = [f'y{j}' for j in range(values.shape[1])] if values.ndim == 2 else []

    if values.ndim != 2:
        raise ValueError("Y must be 1- or 2-dimensional")

    bad = ~np.all(np.isfinite(values), axis=0)
    if np.any(bad):
        raise InvalidResponseError([names[j] for j in np.flatnonzero(bad)])
    return values, names


def check_same_rows(X, Y):
    """Row counts of design and response must match."""
    if X.shape[0] != Y.shape[0]:
        raise DimensionMismatchError(
            f"X has {X.shape[0]} rows but Y has {Y.shape[0]}"
        )
