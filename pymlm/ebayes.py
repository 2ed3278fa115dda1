"""
Empirical Bayes variance shrinkage and moderated t-statistics.

Pools the per-response residual variances toward a common
scaled-inverse-chi-squared prior fitted across all responses, then
recomputes t-statistics with the posterior variances.
"""

import logging
import numpy as np
import pandas as pd
from typing import Tuple, Union
from dataclasses import dataclass
from scipy.stats import t as t_dist
from statsmodels.stats.multitest import multipletests

from ._core.fdist import fit_f_dist, squeeze_var
from .errors import ShrinkageError
from .summary import SummaryResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ShrinkageResult:
    """Moderated statistics for every response and coefficient."""
    s2_prior: float
    df_prior: float
    s2_post: np.ndarray      # (m,) posterior variances
    df_total: np.ndarray     # (m,) df for moderated t
    coefficients: np.ndarray # (m, p) estimates (unchanged by shrinkage)
    std_errors: np.ndarray   # (m, p) moderated standard errors
    t_values: np.ndarray     # (m, p) moderated t
    p_values: np.ndarray     # (m, p) two-sided
    sigma2: np.ndarray       # (m,) raw residual variances
    coef_names: Tuple[str, ...]
    response_names: Tuple[str, ...]

    def __post_init__(self):
        for arr in (self.s2_post, self.df_total, self.coefficients, self.std_errors,
                    self.t_values, self.p_values, self.sigma2):
            arr.setflags(write=False)

    def _coef_index(self, coef: Union[int, str]) -> int:
        if isinstance(coef, (int, np.integer)):
            return int(coef)
        try:
            return self.coef_names.index(str(coef))
        except ValueError:
            raise KeyError(f"Unknown coefficient: {coef!r}") from None

    def top_table(
        self,
        coef: Union[int, str] = -1,
        number: int = 10,
        adjust: str = 'fdr_bh',
        sort_by: str = 'p',
    ) -> pd.DataFrame:
        """
        Rank responses by evidence for one coefficient (like limma's topTable).

        Parameters
        ----------
        coef : int or str
            Coefficient index or name (default: last column)
        number : int
            Rows to return; None for all
        adjust : str
            statsmodels multipletests method, or 'none'
        sort_by : str
            'p' (p-value), 't' (|t|), 'estimate' (|estimate|) or 'none'

        Returns
        -------
        DataFrame
            estimate, t, p_value, adj_p_value, s2_post; indexed by response
        """
        k = self._coef_index(coef)
        p = self.p_values[:, k]

        if adjust == 'none' or p.size == 0:
            adj_p = p.copy()
        else:
            adj_p = multipletests(p, method=adjust)[1]

        table = pd.DataFrame({
            'estimate': self.coefficients[:, k],
            't': self.t_values[:, k],
            'p_value': p,
            'adj_p_value': adj_p,
            's2_post': self.s2_post,
        }, index=pd.Index(list(self.response_names), name='response'))

        if sort_by == 'p':
            order = np.argsort(p, kind='stable')
        elif sort_by == 't':
            order = np.argsort(-np.abs(self.t_values[:, k]), kind='stable')
        elif sort_by == 'estimate':
            order = np.argsort(-np.abs(self.coefficients[:, k]), kind='stable')
        elif sort_by == 'none':
            order = np.arange(p.size)
        else:
            raise ValueError(f"Unknown sort_by: {sort_by!r}")

        table = table.iloc[order]
        if number is not None:
            table = table.head(number)
        return table


class EmpiricalBayesShrinkage:
    """
    Empirical Bayes moderation of residual variances.

    Parameters
    ----------
    sigma2 : ndarray, shape (m,)
        Residual variances from the summarizer
    df_residual : int or ndarray
        Residual degrees of freedom (shared or per response)

    Examples
    --------
    >>> eb = EmpiricalBayesShrinkage(summary.sigma2, summary.df_residual)
    >>> s2_prior, df_prior = eb.fit()
    >>> s2_post, df_total = eb.squeeze()
    """

    def __init__(self, sigma2, df_residual):
        self.sigma2 = np.asarray(sigma2, dtype=np.float64)
        self.df_residual = np.broadcast_to(
            np.asarray(df_residual, dtype=np.float64), self.sigma2.shape
        )
        self.s2_prior = None
        self.df_prior = None

    def fit(self) -> Tuple[float, float]:
        """Fit the prior by method of moments on log variances."""
        if self.sigma2.size == 0:
            raise ShrinkageError("No responses to moderate")
        if not np.any(self.df_residual > 0):
            raise ShrinkageError("No residual degrees of freedom in linear model fits")

        self.s2_prior, self.df_prior = fit_f_dist(self.sigma2, self.df_residual)
        logger.debug("Prior fitted: s2_prior=%g, df_prior=%g", self.s2_prior, self.df_prior)
        return self.s2_prior, self.df_prior

    def squeeze(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Returns:
        - posterior variances
        - total degrees of freedom (df + df_prior, capped at the pooled df)
        """
        if self.df_prior is None:
            self.fit()

        s2_post = squeeze_var(self.sigma2, self.df_residual, self.s2_prior, self.df_prior)

        df_pooled = float(np.sum(self.df_residual[np.isfinite(self.sigma2)]))
        df_total = np.minimum(self.df_residual + self.df_prior, df_pooled)
        return s2_post, df_total

    def moderate(self, summary: SummaryResult) -> ShrinkageResult:
        """Recalculate t and p with posterior variances."""
        s2_post, df_total = self.squeeze()

        estimates = summary.estimates
        with np.errstate(divide='ignore', invalid='ignore'):
            se = np.sqrt(np.outer(s2_post, np.diag(summary.xtx_inv)))
            t_stat = estimates / se
            p_val = 2 * t_dist.sf(np.abs(t_stat), df=df_total[:, np.newaxis])

        return ShrinkageResult(
            s2_prior=float(self.s2_prior),
            df_prior=float(self.df_prior),
            s2_post=s2_post,
            df_total=np.array(df_total),
            coefficients=np.array(estimates),
            std_errors=se,
            t_values=t_stat,
            p_values=p_val,
            sigma2=np.array(self.sigma2),
            coef_names=summary.coef_names,
            response_names=summary.response_names,
        )


def ebayes(summary: SummaryResult) -> ShrinkageResult:
    """
    Empirical Bayes moderated t-statistics for a SummaryResult.

    Parameters
    ----------
    summary : SummaryResult
        Output of summarize() / MultiResponseLinearModel

    Returns
    -------
    ShrinkageResult

    Raises
    ------
    ShrinkageError
        If the fits have no residual degrees of freedom
    """
    eb = EmpiricalBayesShrinkage(summary.sigma2, summary.df_residual)
    return eb.moderate(summary)
