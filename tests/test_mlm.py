"""
Test the user-facing MultiResponseLinearModel and SummaryResult views.
"""

import pytest
import numpy as np
import pandas as pd
from scipy import stats

from pymlm import mlm, dummy_design, MultiResponseLinearModel, SummaryResult
from pymlm.errors import DimensionMismatchError


def make_data(m=6, seed=0):
    rng = np.random.default_rng(seed)
    stage = pd.Series(np.repeat(['E10', 'E12', 'E14', 'P0'], 3), name='stage')
    X = dummy_design(stage)
    effects = rng.normal(0, 1, size=(X.shape[1], m))
    Y = pd.DataFrame(
        X.to_numpy() @ effects + rng.normal(0, 0.5, size=(12, m)),
        index=[f'GSM{i}' for i in range(12)],
        columns=[f'{1415670 + j}_at' for j in range(m)],
    )
    return X, Y


@pytest.fixture
def model():
    X, Y = make_data()
    return mlm(X, Y, backend='cpu')


class TestModelAttributes:

    def test_repr(self, model):
        assert repr(model) == "MultiResponseLinearModel(n=12, p=4, responses=6)"

    def test_coefficients_frame(self, model):
        coef = model.coefficients
        assert coef.shape == (4, 6)
        assert list(coef.index) == ['Intercept', 'stageE12', 'stageE14', 'stageP0']
        np.testing.assert_allclose(coef.to_numpy().T, model.summary_result.estimates)

    def test_residuals_and_fitted_add_up(self, model):
        X, Y = make_data()
        np.testing.assert_allclose(
            (model.fitted_values + model.residuals).to_numpy(), Y.to_numpy(), rtol=1e-12
        )
        assert list(model.residuals.index) == list(Y.index)

    def test_sigma(self, model):
        rss = (model.residuals ** 2).sum().to_numpy()
        np.testing.assert_allclose(model.sigma.to_numpy(), np.sqrt(rss / 8), rtol=1e-12)

    def test_fit_result(self, model):
        fr = model.fit_result('1415672_at')
        assert fr.response == '1415672_at'
        assert fr.coef.index.tolist() == list(model.X_names)
        np.testing.assert_allclose(fr.coefficients, model.coefficients['1415672_at'])
        np.testing.assert_allclose(fr.residuals, model.residuals['1415672_at'])
        assert fr.sigma == pytest.approx(model.sigma['1415672_at'])
        with pytest.raises(ValueError):
            fr.residuals[0] = 0.0

    def test_fit_result_by_position(self, model):
        assert model.fit_result(-1).response == '1415675_at'
        with pytest.raises(KeyError):
            model.fit_result('not_a_probe')
        with pytest.raises(IndexError):
            model.fit_result(6)


class TestInference:

    def test_conf_int(self, model):
        ci = model.conf_int('1415670_at', alpha=0.05)
        res = model.summary_result
        t_crit = stats.t.ppf(0.975, 8)
        np.testing.assert_allclose(
            ci['upper'] - ci['lower'], 2 * t_crit * res.std_errors[0], rtol=1e-12
        )
        np.testing.assert_allclose((ci['upper'] + ci['lower']) / 2, res.estimates[0])

    def test_predict(self, model):
        X, _ = make_data()
        pred = model.predict(X)
        np.testing.assert_allclose(pred.to_numpy(), model.fitted_values.to_numpy(), rtol=1e-12)

    def test_predict_wrong_width(self, model):
        with pytest.raises(DimensionMismatchError):
            model.predict(np.ones((2, 3)))

    def test_summary_prints_table(self, model, capsys):
        model.summary('1415671_at')
        out = capsys.readouterr().out
        assert 'LINEAR REGRESSION RESULTS' in out
        assert 'Response: 1415671_at' in out
        assert 'stageE14' in out
        assert 'F-statistic' in out
        assert 'cpu_fp64' in out

    def test_ebayes_shortcut(self, model):
        eb = model.ebayes()
        assert eb.response_names == model.summary_result.response_names
        assert eb.t_values.shape == (6, 4)


class TestSummaryViews:

    def test_coef_table(self, model):
        table = model.summary_result.coef_table('1415670_at')
        assert list(table.columns) == ['Estimate', 'Std. Error', 't value', 'Pr(>|t|)']
        assert table.shape == (4, 4)

    def test_to_frame_is_long(self, model):
        frame = model.summary_result.to_frame()
        assert frame.shape == (6 * 4, 6)
        first = frame.iloc[:4]
        assert (first['response'] == '1415670_at').all()
        assert first['coefficient'].tolist() == list(model.X_names)
        np.testing.assert_allclose(
            frame['p_value'].to_numpy(), model.summary_result.p_values.ravel()
        )

    def test_model_frame(self, model):
        frame = model.summary_result.model_frame()
        assert frame.index.name == 'response'
        assert list(frame.columns) == [
            'sigma', 'r_squared', 'f_statistic', 'df_model', 'f_pvalue', 'adj_r_squared'
        ]
        r2 = frame['r_squared'].to_numpy()
        np.testing.assert_allclose(
            frame['adj_r_squared'].to_numpy(), 1 - (1 - r2) * 11 / 8, rtol=1e-12
        )

    def test_select(self, model):
        res = model.summary_result
        sub = res.select(['1415672_at', 0])
        assert sub.response_names == ('1415672_at', '1415670_at')
        np.testing.assert_array_equal(sub.coefficients[1], res.coefficients[0])

    def test_concat_rejects_other_design(self, model):
        X, Y = make_data()
        other = mlm(X.iloc[:, :3], Y, backend='cpu').summary_result
        with pytest.raises(DimensionMismatchError):
            SummaryResult.concat([model.summary_result, other])

    def test_summary_is_immutable(self, model):
        res = model.summary_result
        with pytest.raises(ValueError):
            res.coefficients[0, 0, 0] = 1.0
        with pytest.raises(AttributeError):
            res.df_residual = 3


def test_array_inputs_get_default_names():
    rng = np.random.default_rng(3)
    X = np.column_stack([np.ones(10), rng.normal(size=10)])
    Y = rng.normal(size=(10, 2))
    model = MultiResponseLinearModel(X, Y, backend='cpu')
    assert model.X_names == ['x0', 'x1']
    assert model.Y_names == ['y0', 'y1']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
