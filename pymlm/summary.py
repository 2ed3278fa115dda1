"""
Fixed result schema for multi-response linear model fits.

SummaryResult replaces ad hoc introspection of fitted-model objects
with named, documented arrays:

    coefficients      (m, p, 4)  estimate, std_error, t_value, p_value
    full_model_stats  (m, 5)     sigma, r_squared, f_statistic, df_model, f_pvalue
"""

import warnings
import numpy as np
import pandas as pd
from typing import Sequence, Tuple, Union
from dataclasses import dataclass
from scipy import stats

from ._core.context import FitContext
from ._backends.base import MultiFitResult
from .errors import DimensionMismatchError

COEF_FIELDS = ('estimate', 'std_error', 't_value', 'p_value')
MODEL_FIELDS = ('sigma', 'r_squared', 'f_statistic', 'df_model', 'f_pvalue')


@dataclass(frozen=True, eq=False)
class FitResult:
    """Least-squares fit of a single response."""
    response: str
    coef_names: Tuple[str, ...]
    coefficients: np.ndarray   # (p,)
    sigma: float               # Residual standard deviation
    fitted_values: np.ndarray  # (n,)
    residuals: np.ndarray      # (n,)

    def __post_init__(self):
        for arr in (self.coefficients, self.fitted_values, self.residuals):
            arr.setflags(write=False)

    @property
    def coef(self) -> pd.Series:
        """Named coefficients (pandas Series)."""
        return pd.Series(self.coefficients, index=list(self.coef_names), name=self.response)


@dataclass(frozen=True, eq=False)
class SummaryResult:
    """Per-response and per-coefficient statistics for m responses."""
    coefficients: np.ndarray       # (m, p, 4)
    full_model_stats: np.ndarray   # (m, 5)
    coef_names: Tuple[str, ...]
    response_names: Tuple[str, ...]
    df_residual: int
    n_obs: int
    has_intercept: bool
    xtx_inv: np.ndarray            # (p, p), shared

    def __post_init__(self):
        m, p = len(self.response_names), len(self.coef_names)
        if self.coefficients.shape != (m, p, 4):
            raise DimensionMismatchError(
                f"coefficients has shape {self.coefficients.shape}, expected {(m, p, 4)}"
            )
        if self.full_model_stats.shape != (m, 5):
            raise DimensionMismatchError(
                f"full_model_stats has shape {self.full_model_stats.shape}, expected {(m, 5)}"
            )
        for arr in (self.coefficients, self.full_model_stats, self.xtx_inv):
            arr.setflags(write=False)

    @classmethod
    def from_fit(
        cls,
        context: FitContext,
        fit: MultiFitResult,
        response_names: Sequence[str],
    ) -> "SummaryResult":
        """
        Compute standard errors, t-stats, p-values and F-tests.

        Uses only the shared design quantities in `context` plus each
        response's own RSS, so every row is independent of the others.
        """
        df = context.df_residual
        m = fit.rss.shape[0]
        p = context.n_coef

        if df <= 0 and m > 0:
            warnings.warn(
                f"No residual degrees of freedom (n = p = {p}); "
                f"standard errors and tests are undefined",
                UserWarning
            )

        estimates = fit.coef.T
        with np.errstate(divide='ignore', invalid='ignore'):
            sigma2 = fit.rss / df if df > 0 else np.full(m, np.nan)
            # Var(b_jk) = sigma_j^2 * (X'X)^-1_kk
            se = np.sqrt(np.outer(sigma2, np.diag(context.xtx_inv)))
            t_values = estimates / se
            if df > 0:
                p_values = 2 * stats.t.sf(np.abs(t_values), df)
            else:
                p_values = np.full((m, p), np.nan)

            r_squared = 1.0 - fit.rss / fit.rss_null
            df_model = context.df_model
            if df_model > 0 and df > 0:
                f_stat = ((fit.rss_null - fit.rss) / df_model) / sigma2
                f_pvalue = stats.f.sf(f_stat, df_model, df)
            else:
                # Intercept-only model: no F-test against itself
                f_stat = np.full(m, np.nan)
                f_pvalue = np.full(m, np.nan)

        coefficients = np.stack([estimates, se, t_values, p_values], axis=-1)
        full_model_stats = np.column_stack([
            np.sqrt(sigma2),
            r_squared,
            f_stat,
            np.full(m, float(df_model)),
            f_pvalue,
        ])

        return cls(
            coefficients=coefficients.reshape(m, p, 4),
            full_model_stats=full_model_stats.reshape(m, 5),
            coef_names=tuple(context.coef_names),
            response_names=tuple(str(r) for r in response_names),
            df_residual=df,
            n_obs=context.n_obs,
            has_intercept=context.has_intercept,
            xtx_inv=np.array(context.xtx_inv),
        )

    # ------------------------------------------------------------------
    # Array views

    @property
    def n_responses(self) -> int:
        return len(self.response_names)

    @property
    def n_coef(self) -> int:
        return len(self.coef_names)

    @property
    def estimates(self) -> np.ndarray:
        """(m, p) coefficient estimates."""
        return self.coefficients[:, :, 0]

    @property
    def std_errors(self) -> np.ndarray:
        return self.coefficients[:, :, 1]

    @property
    def t_values(self) -> np.ndarray:
        return self.coefficients[:, :, 2]

    @property
    def p_values(self) -> np.ndarray:
        return self.coefficients[:, :, 3]

    @property
    def sigma(self) -> np.ndarray:
        """(m,) residual standard errors."""
        return self.full_model_stats[:, 0]

    @property
    def sigma2(self) -> np.ndarray:
        """(m,) residual variances."""
        return self.full_model_stats[:, 0] ** 2

    @property
    def r_squared(self) -> np.ndarray:
        return self.full_model_stats[:, 1]

    @property
    def adj_r_squared(self) -> np.ndarray:
        if self.df_residual <= 0:
            return np.full(self.n_responses, np.nan)
        n_minus = self.n_obs - (1 if self.has_intercept else 0)
        return 1.0 - (1.0 - self.r_squared) * n_minus / self.df_residual

    @property
    def f_statistic(self) -> np.ndarray:
        return self.full_model_stats[:, 2]

    @property
    def df_model(self) -> int:
        return self.n_coef - 1 if self.has_intercept else self.n_coef

    @property
    def f_pvalue(self) -> np.ndarray:
        return self.full_model_stats[:, 4]

    @property
    def stdev_unscaled(self) -> np.ndarray:
        """(p,) sqrt(diag((X'X)^-1))."""
        return np.sqrt(np.diag(self.xtx_inv))

    # ------------------------------------------------------------------
    # Tabular views

    def _index(self, response: Union[int, str]) -> int:
        if isinstance(response, (int, np.integer)):
            if not -self.n_responses <= response < self.n_responses:
                raise IndexError(f"response index {response} out of range")
            return int(response) % self.n_responses
        try:
            return self.response_names.index(str(response))
        except ValueError:
            raise KeyError(f"Unknown response: {response!r}") from None

    def coef_table(self, response: Union[int, str]) -> pd.DataFrame:
        """Coefficient table for one response (like R's summary.lm)."""
        j = self._index(response)
        return pd.DataFrame(
            self.coefficients[j],
            index=list(self.coef_names),
            columns=['Estimate', 'Std. Error', 't value', 'Pr(>|t|)'],
        )

    def to_frame(self) -> pd.DataFrame:
        """Long format: one row per (response, coefficient)."""
        m, p = self.n_responses, self.n_coef
        frame = pd.DataFrame(
            self.coefficients.reshape(m * p, 4),
            columns=list(COEF_FIELDS),
        )
        frame.insert(0, 'coefficient', np.tile(np.asarray(self.coef_names, dtype=object), m))
        frame.insert(0, 'response', np.repeat(np.asarray(self.response_names, dtype=object), p))
        return frame

    def model_frame(self) -> pd.DataFrame:
        """One row per response: sigma, R², F-test."""
        frame = pd.DataFrame(
            self.full_model_stats,
            index=pd.Index(list(self.response_names), name='response'),
            columns=list(MODEL_FIELDS),
        )
        frame['adj_r_squared'] = self.adj_r_squared
        return frame

    # ------------------------------------------------------------------
    # Subsetting

    def select(self, responses) -> "SummaryResult":
        """Summary restricted to the given responses (names or indices)."""
        idx = [self._index(r) for r in responses]
        return SummaryResult(
            coefficients=self.coefficients[idx],
            full_model_stats=self.full_model_stats[idx],
            coef_names=self.coef_names,
            response_names=tuple(self.response_names[i] for i in idx),
            df_residual=self.df_residual,
            n_obs=self.n_obs,
            has_intercept=self.has_intercept,
            xtx_inv=np.array(self.xtx_inv),
        )

    @classmethod
    def concat(cls, summaries: Sequence["SummaryResult"]) -> "SummaryResult":
        """Stack summaries fitted against the same design."""
        summaries = list(summaries)
        if not summaries:
            raise ValueError("Need at least one summary to concatenate")

        first = summaries[0]
        for s in summaries[1:]:
            if (s.coef_names != first.coef_names
                    or s.df_residual != first.df_residual
                    or s.n_obs != first.n_obs):
                raise DimensionMismatchError(
                    "Summaries were fitted against different designs"
                )

        return cls(
            coefficients=np.concatenate([s.coefficients for s in summaries], axis=0),
            full_model_stats=np.concatenate([s.full_model_stats for s in summaries], axis=0),
            coef_names=first.coef_names,
            response_names=tuple(r for s in summaries for r in s.response_names),
            df_residual=first.df_residual,
            n_obs=first.n_obs,
            has_intercept=first.has_intercept,
            xtx_inv=np.array(first.xtx_inv),
        )

    def __len__(self) -> int:
        return self.n_responses

    def __repr__(self):
        return (f"SummaryResult(responses={self.n_responses}, coef={self.n_coef}, "
                f"df_residual={self.df_residual})")
