"""
Multi-response linear regression with R-style interface and output.

One design matrix, many responses (probesets). This is the user-facing
API that analysts actually use.
"""

import logging
import numpy as np
import pandas as pd
from typing import Optional, Union
from scipy import stats

from ._backends import get_backend
from ._core import build_fit_context, fit_multi_response
from ._utils import check_design, check_response, check_same_rows
from .errors import DimensionMismatchError
from .summary import FitResult, SummaryResult

logger = logging.getLogger(__name__)


class MultiResponseLinearModel:
    """
    Fit one linear model per response column against a shared design
    (like R's lm() with a matrix response).

    The design is decomposed once; coefficients for all responses come
    from a single batched solve.

    Examples
    --------
    >>> from pymlm import mlm, dummy_design
    >>>
    >>> # expr: samples × probesets DataFrame, stage: one label per sample
    >>> X = dummy_design(stage)
    >>> model = mlm(X, expr)
    >>>
    >>> model.summary('1415670_at')   # Prints table like R
    >>> res = model.summary_result    # All responses, fixed schema
    >>> res.p_values                  # (m, p) coefficient p-values
    >>> model.ebayes().top_table('E12')
    """

    def __init__(
        self,
        X: Union[pd.DataFrame, np.ndarray],
        Y: Union[pd.DataFrame, pd.Series, np.ndarray],
        backend: str = 'auto',
        use_fp64: Optional[bool] = None,
        tol: Optional[float] = None,
    ):
        """
        Fit multi-response linear model.

        Parameters
        ----------
        X : DataFrame or array, shape (n, p)
            Full design matrix, intercept column included if wanted.
            DataFrame column names label the coefficients.
        Y : DataFrame, Series or array, shape (n, m)
            Responses, one column per probeset. DataFrame column names
            label the responses. A 1-d input is a single response.
        backend : str
            Computational backend: 'auto', 'cpu', 'gpu'
        use_fp64 : bool, optional
            False allows an FP32 GPU backend; None or True keep FP64
        tol : float, optional
            Relative tolerance for rank determination

        Raises
        ------
        DimensionMismatchError
            Row counts of X and Y differ
        InvalidResponseError
            Any response column contains NaN or Inf
        SingularDesignError
            X is not full column rank
        """
        self.X_values, self.X_names = check_design(X)
        self.Y_values, self.Y_names = check_response(Y)
        check_same_rows(self.X_values, self.Y_values)

        if isinstance(Y, (pd.DataFrame, pd.Series)):
            self.sample_index = Y.index
        elif isinstance(X, pd.DataFrame):
            self.sample_index = X.index
        else:
            self.sample_index = pd.RangeIndex(self.X_values.shape[0])

        self.n_obs, self.n_coef = self.X_values.shape
        self.n_responses = self.Y_values.shape[1]

        self.backend = get_backend(backend, use_fp64=use_fp64)
        logger.debug(
            "Fitting %d responses on %d samples × %d coefficients (%s)",
            self.n_responses, self.n_obs, self.n_coef, self.backend.name,
        )

        # Shared design quantities, computed once
        self.context = build_fit_context(
            self.X_values, coef_names=self.X_names, tol=tol, backend=self.backend
        )
        self._fit = fit_multi_response(self.context, self.Y_values, backend=self.backend)

        self.summary_result = SummaryResult.from_fit(self.context, self._fit, self.Y_names)

    @property
    def df_residual(self) -> int:
        return self.context.df_residual

    @property
    def xtx_inv(self) -> np.ndarray:
        """(X'X)^-1, shared by all responses."""
        return self.context.xtx_inv

    @property
    def coefficients(self) -> pd.DataFrame:
        """Coefficients (p × m DataFrame, one column per response)."""
        return pd.DataFrame(self._fit.coef, index=self.X_names, columns=self.Y_names)

    @property
    def fitted_values(self) -> pd.DataFrame:
        return pd.DataFrame(self._fit.fitted_values, index=self.sample_index, columns=self.Y_names)

    @property
    def residuals(self) -> pd.DataFrame:
        return pd.DataFrame(self._fit.residuals, index=self.sample_index, columns=self.Y_names)

    @property
    def sigma(self) -> pd.Series:
        """Residual standard error per response."""
        return pd.Series(self.summary_result.sigma, index=self.Y_names, name='sigma')

    def fit_result(self, response: Union[int, str]) -> FitResult:
        """Fit of a single response."""
        j = self.summary_result._index(response)
        return FitResult(
            response=self.Y_names[j],
            coef_names=tuple(self.X_names),
            coefficients=self._fit.coef[:, j].copy(),
            sigma=float(self.summary_result.sigma[j]),
            fitted_values=self._fit.fitted_values[:, j].copy(),
            residuals=self._fit.residuals[:, j].copy(),
        )

    def conf_int(self, response: Union[int, str], alpha: float = 0.05) -> pd.DataFrame:
        """
        Confidence intervals for one response's coefficients.

        Parameters
        ----------
        response : int or str
            Response index or name
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        DataFrame
            Confidence intervals with columns 'lower' and 'upper'
        """
        j = self.summary_result._index(response)
        t_crit = stats.t.ppf(1 - alpha/2, self.df_residual)
        est = self.summary_result.estimates[j]
        se = self.summary_result.std_errors[j]

        return pd.DataFrame({
            'lower': est - t_crit * se,
            'upper': est + t_crit * se
        }, index=self.X_names)

    def predict(self, newdata: Union[pd.DataFrame, np.ndarray]) -> pd.DataFrame:
        """
        Predict all responses for new design rows.

        Parameters
        ----------
        newdata : DataFrame or array
            New design rows
            - If DataFrame: must have columns matching the design
            - If array: must have the same number of columns as X

        Returns
        -------
        DataFrame
            Predictions, one column per response
        """
        if isinstance(newdata, pd.DataFrame):
            X_new = newdata[self.X_names].to_numpy(dtype=np.float64)
            index = newdata.index
        else:
            X_new = np.atleast_2d(np.asarray(newdata, dtype=np.float64))
            index = None

        if X_new.shape[1] != self.n_coef:
            raise DimensionMismatchError(
                f"newdata has {X_new.shape[1]} columns, design has {self.n_coef}"
            )

        return pd.DataFrame(X_new @ self._fit.coef, index=index, columns=self.Y_names)

    def ebayes(self):
        """Empirical Bayes moderated statistics for all responses."""
        from .ebayes import ebayes
        return ebayes(self.summary_result)

    def summary(self, response: Union[int, str] = 0):
        """
        Print summary of one response's regression (like R's summary.lm).
        """
        res = self.summary_result
        j = res._index(response)
        resid = self._fit.residuals[:, j]

        print()
        print("="*80)
        print("LINEAR REGRESSION RESULTS")
        print("="*80)
        print()

        print(f"Response: {self.Y_names[j]}  ({j + 1} of {self.n_responses})")
        print(f"Number of observations: {self.n_obs}")
        print(f"Degrees of freedom: {self.df_residual} (residual), {res.df_model} (model)")
        print()

        print("Residuals:")
        q = np.percentile(resid, [0, 25, 50, 75, 100])
        for label, value in zip(['Min:', '1Q:', 'Median:', '3Q:', 'Max:'], q):
            print(f"  {label:<7} {value:>10.4f}")
        print()

        print("Coefficients:")
        print("-"*80)
        print(f"{'Variable':<20} {'Estimate':>12} {'Std. Error':>12} {'t value':>10} {'Pr(>|t|)':>12}")
        print("-"*80)

        for k, name in enumerate(self.X_names):
            est, se, t, p = res.coefficients[j, k]
            if np.isnan(p):
                sig = ''
                p_str = 'NA'
            else:
                if p < 0.001:
                    sig = ' ***'
                elif p < 0.01:
                    sig = ' **'
                elif p < 0.05:
                    sig = ' *'
                elif p < 0.1:
                    sig = ' .'
                else:
                    sig = ''

                p_str = f"{p:.4f}" if p >= 0.0001 else "<.0001"

            print(f"{name:<20} {est:>12.4f} {se:>12.4f} {t:>10.3f} {p_str:>12}{sig}")

        print("-"*80)
        print("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        print()

        print(f"Residual standard error: {res.sigma[j]:.4f} on {self.df_residual} degrees of freedom")
        print(f"Multiple R-squared:      {res.r_squared[j]:.4f}")
        print(f"Adjusted R-squared:      {res.adj_r_squared[j]:.4f}")

        f_stat, f_p = res.f_statistic[j], res.f_pvalue[j]
        if not np.isnan(f_stat):
            f_pval_str = f"{f_p:.4e}" if f_p >= 2.2e-16 else "< 2.2e-16"
            print(f"F-statistic:             {f_stat:.2f} on {res.df_model} and {self.df_residual} DF, p-value: {f_pval_str}")

        print()
        print(f"Backend: {self.backend.name}")
        print("="*80)
        print()

    def __repr__(self):
        return (f"MultiResponseLinearModel(n={self.n_obs}, p={self.n_coef}, "
                f"responses={self.n_responses})")


def mlm(X, Y, **kwargs):
    """
    Fit multi-response linear model (convenience function).

    Parameters
    ----------
    X : DataFrame or array
        Design matrix (see dummy_design)
    Y : DataFrame or array
        Responses, samples in rows
    **kwargs
        Additional arguments passed to MultiResponseLinearModel

    Returns
    -------
    MultiResponseLinearModel
        Fitted model object
    """
    return MultiResponseLinearModel(X, Y, **kwargs)


def summarize(X, Y, **kwargs) -> SummaryResult:
    """
    Coefficient and whole-model statistics for every response.

    (X'X)^-1, residual df and the null-model structure are computed
    once and shared by all m responses. The result matches fitting
    each column on its own.

    Parameters
    ----------
    X : DataFrame or array, shape (n, p)
        Full-rank design matrix
    Y : DataFrame or array, shape (n, m)
        Response matrix
    **kwargs
        backend, use_fp64, tol (see MultiResponseLinearModel). Results
        are double precision unless use_fp64=False selects an FP32 GPU
        backend.

    Returns
    -------
    SummaryResult
        coefficients (m, p, 4) and full_model_stats (m, 5)

    Raises
    ------
    SingularDesignError, InvalidResponseError, DimensionMismatchError
    """
    return MultiResponseLinearModel(X, Y, **kwargs).summary_result
