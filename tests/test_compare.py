"""
Cross-validate the vectorized summarizer against per-response statsmodels fits.
"""

import logging
import pytest
import numpy as np
import pandas as pd

from pymlm import (
    summarize, fit_each, compare_summaries, cross_validate, dummy_design, SummaryResult,
)
from pymlm.errors import DimensionMismatchError, SingularDesignError


STAGES = ['E10', 'E11', 'E12', 'E13', 'E14', 'E15', 'E16', 'E17', 'P0']


@pytest.fixture
def stage():
    return pd.Series(np.repeat(STAGES, 3), name='stage')


@pytest.fixture
def expression():
    rng = np.random.default_rng(2024)
    m = 200
    level = rng.normal(8.0, 1.5, size=m)
    trend = rng.normal(0, 0.3, size=(len(STAGES), m)).cumsum(axis=0)
    Y = level + np.repeat(trend, 3, axis=0) + rng.normal(0, 0.25, size=(27, m))
    return pd.DataFrame(Y, columns=[f'14156{j:02d}_at' for j in range(m)])


class TestRoutesAgree:

    def test_treatment_coding(self, stage, expression):
        report = cross_validate(dummy_design(stage), expression, backend='cpu')
        assert report.ok, str(report)
        assert report.n_compared == 200 * 9 * 4 + 200 * 5
        assert report.labels == ('per_response', 'vectorized')

    def test_cell_means_coding(self, stage, expression):
        X = dummy_design(stage, intercept=False)
        report = cross_validate(X, expression, backend='cpu')
        assert report.ok, str(report)

        # Implicit constant: F test is against the intercept-only model
        res = fit_each(X, expression)
        assert res.has_intercept
        np.testing.assert_array_equal(res.df_model, 8)

    def test_through_origin(self, expression):
        rng = np.random.default_rng(5)
        X = pd.DataFrame({'dose': rng.uniform(0.5, 2.0, 27), 'age': rng.uniform(1, 3, 27)})
        report = cross_validate(X, expression, backend='cpu')
        assert report.ok, str(report)
        assert not fit_each(X, expression).has_intercept

    def test_intercept_only(self, expression):
        X = pd.DataFrame({'Intercept': np.ones(27)})
        report = cross_validate(X, expression, backend='cpu')
        assert report.ok, str(report)
        assert np.isnan(fit_each(X, expression).f_statistic).all()

    def test_str(self, stage, expression):
        report = cross_validate(dummy_design(stage), expression.iloc[:, :5], backend='cpu')
        text = str(report)
        assert text.startswith('per_response vs vectorized: OK')
        assert 'p_value' in text


class TestMismatchDetection:

    def _perturbed(self, res: SummaryResult, j, k, s, delta):
        coefficients = np.array(res.coefficients)
        coefficients[j, k, s] += delta
        return SummaryResult(
            coefficients=coefficients,
            full_model_stats=np.array(res.full_model_stats),
            coef_names=res.coef_names,
            response_names=res.response_names,
            df_residual=res.df_residual,
            n_obs=res.n_obs,
            has_intercept=res.has_intercept,
            xtx_inv=np.array(res.xtx_inv),
        )

    def test_reports_injected_difference(self, stage, expression, caplog):
        res = summarize(dummy_design(stage), expression, backend='cpu')
        bad = self._perturbed(res, 3, 2, 1, 1e-4)

        with caplog.at_level(logging.WARNING, logger='pymlm.compare'):
            report = compare_summaries(res, bad)

        assert not report.ok
        assert len(report.mismatches) == 1
        row = report.mismatches.iloc[0]
        assert row['response'] == res.response_names[3]
        assert row['coefficient'] == res.coef_names[2]
        assert row['statistic'] == 'std_error'
        assert row['abs_diff'] == pytest.approx(1e-4)
        assert report.max_abs_diff['std_error'] == pytest.approx(1e-4)
        assert 'differ' in caplog.text

    def test_nan_in_both_matches(self, expression):
        X = pd.DataFrame({'Intercept': np.ones(27)})
        res = summarize(X, expression, backend='cpu')
        report = compare_summaries(res, res)
        assert report.ok
        assert report.max_abs_diff['f_statistic'] == 0.0

    def test_different_responses_raise(self, stage, expression):
        X = dummy_design(stage)
        a = summarize(X, expression.iloc[:, :10], backend='cpu')
        b = summarize(X, expression.iloc[:, 10:20], backend='cpu')
        with pytest.raises(DimensionMismatchError):
            compare_summaries(a, b)

    def test_different_coefficients_raise(self, stage, expression):
        a = summarize(dummy_design(stage), expression, backend='cpu')
        b = summarize(dummy_design(stage, intercept=False), expression, backend='cpu')
        with pytest.raises(DimensionMismatchError, match="Coefficient names"):
            compare_summaries(a, b)


def test_cross_validate_ignores_configured_backend(stage, expression, monkeypatch):
    import pymlm
    import pymlm._backends as backends
    from pymlm._backends.precision_detector import NO_GPU

    monkeypatch.setattr(backends, 'detect_gpu_capabilities', lambda: NO_GPU)
    pymlm.set_backend('gpu')
    try:
        X = dummy_design(stage)
        with pytest.raises(ValueError, match="No GPU detected"):
            summarize(X, expression)
        report = cross_validate(X, expression)
        assert report.ok, str(report)
    finally:
        pymlm.set_backend('auto')


def test_fit_each_rejects_singular_design(stage, expression):
    X = dummy_design(stage, intercept=False)
    X.insert(0, 'Intercept', 1.0)
    with pytest.raises(SingularDesignError) as excinfo:
        fit_each(X, expression)
    assert excinfo.value.rank == 9
    assert excinfo.value.n_coef == 10


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
