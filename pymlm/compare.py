"""
Cross-validation of the vectorized fit against per-response OLS.

Route A fits every probeset on its own with statsmodels OLS and pulls
its statistics into the same SummaryResult schema; route B is
summarize(). compare_summaries() reports every entry where the two
disagree beyond tolerance.
"""

import logging
import numpy as np
import pandas as pd
import statsmodels.api as sm
from typing import Tuple
from dataclasses import dataclass

from ._utils import check_design, check_response, check_same_rows
from .errors import DimensionMismatchError, SingularDesignError
from .summary import COEF_FIELDS, MODEL_FIELDS, SummaryResult

logger = logging.getLogger(__name__)

# Default tolerances for two double-precision routes
RTOL = 1e-9
ATOL = 1e-10


def fit_each(X, Y) -> SummaryResult:
    """
    Fit each response column separately with statsmodels OLS.

    Parameters
    ----------
    X : DataFrame or array, shape (n, p)
        Full design matrix
    Y : DataFrame or array, shape (n, m)
        Responses

    Returns
    -------
    SummaryResult
        Same schema as summarize()
    """
    X_values, X_names = check_design(X)
    Y_values, Y_names = check_response(Y)
    check_same_rows(X_values, Y_values)

    n, p = X_values.shape
    m = Y_values.shape[1]

    rank = np.linalg.matrix_rank(X_values)
    if rank < p:
        raise SingularDesignError(rank, p)

    # statsmodels detects explicit and implicit constants the same way
    # for every response, so ask once
    k_constant = sm.OLS(np.zeros(n), X_values).k_constant
    df_model = p - k_constant

    coefficients = np.empty((m, p, 4))
    model_stats = np.empty((m, 5))

    for j in range(m):
        res = sm.OLS(Y_values[:, j], X_values).fit()
        coefficients[j] = np.column_stack([res.params, res.bse, res.tvalues, res.pvalues])

        if df_model > 0:
            f_stat, f_p = res.fvalue, res.f_pvalue
        else:
            f_stat, f_p = np.nan, np.nan

        model_stats[j] = [np.sqrt(res.scale), res.rsquared, f_stat, df_model, f_p]

    return SummaryResult(
        coefficients=coefficients,
        full_model_stats=model_stats,
        coef_names=tuple(X_names),
        response_names=tuple(Y_names),
        df_residual=n - p,
        n_obs=n,
        has_intercept=bool(k_constant),
        xtx_inv=np.linalg.inv(X_values.T @ X_values),
    )


@dataclass(frozen=True, eq=False)
class ComparisonReport:
    """Outcome of comparing two SummaryResults entry by entry."""
    mismatches: pd.DataFrame   # One row per entry outside tolerance
    max_abs_diff: pd.Series    # Per statistic
    n_compared: int
    rtol: float
    atol: float
    labels: Tuple[str, str]

    @property
    def ok(self) -> bool:
        return self.mismatches.empty

    def __str__(self):
        status = "OK" if self.ok else f"{len(self.mismatches)} mismatch(es)"
        lines = [
            f"{self.labels[0]} vs {self.labels[1]}: {status} "
            f"({self.n_compared} values, rtol={self.rtol:g}, atol={self.atol:g})",
            "Max |difference|:",
        ]
        for stat, diff in self.max_abs_diff.items():
            lines.append(f"  {stat:<12} {diff:.3e}")
        return "\n".join(lines)


def _abs_diff(a, b):
    both_nan = np.isnan(a) & np.isnan(b)
    with np.errstate(invalid='ignore'):
        diff = np.abs(a - b)
    return np.where(both_nan, 0.0, diff)


def compare_summaries(
    a: SummaryResult,
    b: SummaryResult,
    rtol: float = RTOL,
    atol: float = ATOL,
    labels: Tuple[str, str] = ('a', 'b'),
) -> ComparisonReport:
    """
    Compare two summaries of the same responses.

    Mismatches are reported, not raised. NaN in both is a match.

    Raises
    ------
    DimensionMismatchError
        If the summaries do not cover the same responses and coefficients
    """
    if a.coef_names != b.coef_names:
        raise DimensionMismatchError(
            f"Coefficient names differ: {a.coef_names} vs {b.coef_names}"
        )
    if a.response_names != b.response_names:
        raise DimensionMismatchError("Response names differ")

    rows = []
    max_diff = {}

    close = np.isclose(a.coefficients, b.coefficients, rtol=rtol, atol=atol, equal_nan=True)
    diff = _abs_diff(a.coefficients, b.coefficients)
    for s, stat in enumerate(COEF_FIELDS):
        max_diff[stat] = float(diff[:, :, s].max()) if diff.size else 0.0
    for j, k, s in np.argwhere(~close):
        rows.append((a.response_names[j], a.coef_names[k], COEF_FIELDS[s],
                     a.coefficients[j, k, s], b.coefficients[j, k, s], diff[j, k, s]))

    close = np.isclose(a.full_model_stats, b.full_model_stats, rtol=rtol, atol=atol, equal_nan=True)
    diff = _abs_diff(a.full_model_stats, b.full_model_stats)
    for s, stat in enumerate(MODEL_FIELDS):
        max_diff[stat] = float(diff[:, s].max()) if diff.size else 0.0
    for j, s in np.argwhere(~close):
        rows.append((a.response_names[j], None, MODEL_FIELDS[s],
                     a.full_model_stats[j, s], b.full_model_stats[j, s], diff[j, s]))

    mismatches = pd.DataFrame(
        rows,
        columns=['response', 'coefficient', 'statistic', labels[0], labels[1], 'abs_diff'],
    )
    if not mismatches.empty:
        logger.warning(
            "%d statistic(s) differ between %s and %s beyond rtol=%g, atol=%g",
            len(mismatches), labels[0], labels[1], rtol, atol,
        )

    return ComparisonReport(
        mismatches=mismatches,
        max_abs_diff=pd.Series(max_diff, name='max_abs_diff'),
        n_compared=int(a.coefficients.size + a.full_model_stats.size),
        rtol=rtol,
        atol=atol,
        labels=tuple(labels),
    )


def cross_validate(X, Y, rtol: float = RTOL, atol: float = ATOL, **kwargs) -> ComparisonReport:
    """
    Fit both routes and compare them.

    Parameters
    ----------
    X, Y
        Design and response matrices
    rtol, atol : float
        Comparison tolerances
    **kwargs
        Passed to summarize() (backend, use_fp64, tol). The backend
        defaults to 'cpu' (FP64), not the configured default.
    """
    from .mlm import summarize

    kwargs.setdefault('backend', 'cpu')
    per_response = fit_each(X, Y)
    vectorized = summarize(X, Y, **kwargs)
    return compare_summaries(
        per_response, vectorized, rtol=rtol, atol=atol,
        labels=('per_response', 'vectorized'),
    )
