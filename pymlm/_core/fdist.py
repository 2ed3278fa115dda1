"""
Scaled F-distribution fit for Empirical Bayes variance shrinkage.

Method of moments on log variances (Smyth 2004, limma fitFDist and
squeezeVar). Assumes s2_j ~ s2_prior * F(df, df_prior).
"""

import warnings
import numpy as np
from typing import Tuple, Union
from scipy.special import digamma, polygamma


def trigamma_inverse(y: np.ndarray, tol: float = 1e-8, maxiter: int = 50) -> np.ndarray:
    """
    Solve trigamma(x) = y for x > 0 by Newton iteration.

    Vectorized over y. Starting point and step follow limma's
    trigammaInverse, which converges monotonically on 1/trigamma.
    """
    y = np.atleast_1d(np.asarray(y, dtype=np.float64))
    x = np.full_like(y, np.nan)

    big = y > 1e7
    tiny = y < 1e-6
    mid = (y > 0) & ~big & ~tiny

    x[big] = 1.0 / np.sqrt(y[big])
    x[tiny & (y > 0)] = 1.0 / y[tiny & (y > 0)]

    if np.any(mid):
        xm = 0.5 + 1.0 / y[mid]
        ym = y[mid]
        for _ in range(maxiter):
            tri = polygamma(1, xm)
            dif = tri * (1.0 - tri / ym) / polygamma(2, xm)
            xm = xm + dif
            if np.max(-dif / xm) < tol:
                break
        else:
            warnings.warn("trigamma_inverse: iteration limit exceeded", UserWarning)
        x[mid] = xm

    return x


def fit_f_dist(
    s2: np.ndarray,
    df: Union[float, np.ndarray],
) -> Tuple[float, float]:
    """
    Estimate the prior (s2_prior, df_prior) from sample variances.

    Algorithm:
        1. z = log(s2); e = z - digamma(df/2) + log(df/2)
        2. v = var(e) - mean(trigamma(df/2))
        3. df_prior = 2 * trigamma_inverse(v)           if v > 0, else inf
        4. s2_prior = exp(mean(e) + digamma(df_prior/2) - log(df_prior/2)),
           or the pooled mean variance when df_prior is inf

    Parameters
    ----------
    s2 : ndarray, shape (m,)
        Residual variances
    df : float or ndarray
        Residual degrees of freedom (scalar or per-response)

    Returns
    -------
    (s2_prior, df_prior)
        df_prior is np.inf when the variances are no more dispersed
        than sampling noise alone explains, and 0 when fewer than two
        usable variances exist.
    """
    s2 = np.asarray(s2, dtype=np.float64)
    df = np.broadcast_to(np.asarray(df, dtype=np.float64), s2.shape)

    ok = np.isfinite(s2) & np.isfinite(df) & (df > 1e-15) & (s2 > -1e-15)
    x = np.maximum(s2[ok], 0.0)
    d = df[ok]

    if x.size < 2:
        warnings.warn(
            f"Only {x.size} usable variance(s); no shrinkage possible",
            UserWarning
        )
        return (float(x[0]) if x.size == 1 else np.nan), 0.0

    # Avoid log(0)
    med = np.median(x)
    if med == 0:
        warnings.warn("More than half of residual variances are exactly zero", UserWarning)
        med = 1.0
    x = np.maximum(x, 1e-5 * med)

    e = np.log(x) - digamma(d / 2.0) + np.log(d / 2.0)
    emean = np.mean(e)
    evar = np.var(e, ddof=1) - np.mean(polygamma(1, d / 2.0))

    if evar > 0:
        df_prior = 2.0 * float(trigamma_inverse(evar)[0])
        s2_prior = float(np.exp(emean + digamma(df_prior / 2.0) - np.log(df_prior / 2.0)))
    else:
        # Infinite prior df: the prior is the pooled variance
        df_prior = np.inf
        s2_prior = float(np.mean(x))

    return s2_prior, df_prior


def squeeze_var(
    s2: np.ndarray,
    df: Union[float, np.ndarray],
    s2_prior: float,
    df_prior: float,
) -> np.ndarray:
    """
    Posterior variances: s2_post = (df*s2 + df_prior*s2_prior) / (df + df_prior).

    A weighted average, so s2_post always lies between s2 and s2_prior.
    """
    s2 = np.asarray(s2, dtype=np.float64)
    df = np.broadcast_to(np.asarray(df, dtype=np.float64), s2.shape)

    if np.isinf(df_prior):
        return np.full_like(s2, s2_prior)
    if df_prior == 0:
        return s2.copy()

    return (df * s2 + df_prior * s2_prior) / (df + df_prior)
