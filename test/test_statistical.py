import math
import unittest

import numpy as np
import pandas as pd
import pytest

from finclick.analysis.advanced.statistical import (
    multiple_regression_analysis, advanced_time_series_analysis, arima_analysis, garch_analysis,
    pca_statistical_analysis, factor_analysis, variance_anova_analysis, cointegration_analysis,
    var_model_analysis, vecm_analysis, copula_analysis, extreme_value_analysis, kaplan_meier,
    survival_analysis, markov_model_analysis, threshold_model_analysis, regime_switching_analysis,
    chaos_theory_analysis, fractal_analysis, bootstrap_analysis, wavelet_analysis
)
from finclick.analysis.quantitative.wavelet_denoising import denoise_series, wavelet_decompose
from finclick.core.exceptions import InsufficientDataError

from sample_data import make_asset_returns, make_prices, make_returns


def cointegrated_levels(n=400, seed=21):
    rng = np.random.default_rng(seed)
    common = np.cumsum(rng.normal(0, 0.01, n))
    return pd.DataFrame({'x': 100 * np.exp(common),
                         'y': 50 * np.exp(common + rng.normal(0, 0.005, n))})


class TestSurvival(unittest.TestCase):
    def test_kaplan_meier_curve(self):
        curve = kaplan_meier(np.array([1, 2, 2, 3, 4], dtype=float), np.array([1, 1, 0, 1, 0]))
        self.assertEqual(curve['time'].tolist(), [1.0, 2.0, 3.0])
        self.assertEqual(curve['at_risk'].tolist(), [5, 4, 2])
        np.testing.assert_allclose(curve['survival'].values, [0.8, 0.6, 0.3])

    def test_survival_analysis(self):
        result = survival_analysis(durations=[1, 2, 2, 3, 4], events=[1, 1, 0, 1, 0])
        self.assertEqual(result.data['median_survival_km'], 3.0)
        self.assertEqual(result.data['censored'], 2)
        self.assertEqual(result.data['hazard_rate'], 0.25)
        self.assertAlmostEqual(result.data['median_survival_exponential'], round(math.log(2) / 0.25, 2))

    def test_survival_needs_events(self):
        with self.assertRaises(InsufficientDataError):
            survival_analysis(durations=[1, 2, 3, 4, 5], events=[0, 0, 0, 0, 1])
        with self.assertRaises(InsufficientDataError):
            survival_analysis(durations=[1, 2, 3], events=[1, 1])

    def test_drawdown_recovery_spells(self):
        # Two down days recovered on the fourth, then an open drawdown at the end
        returns = pd.Series([0.02, -0.01, -0.01, 0.03] * 25 + [-0.05])
        result = survival_analysis(returns=returns)
        self.assertEqual(result.data['subject'], 'drawdown recovery')
        self.assertEqual(result.data['events'], 25)
        self.assertEqual(result.data['censored'], 1)
        self.assertEqual(result.data['median_survival_km'], 2.0)


class TestRegressionAndVariance(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(4)
        n = 200
        self.factors = pd.DataFrame({'x1': rng.normal(0, 1, n), 'x2': rng.normal(0, 1, n)})
        self.y = 0.8 * self.factors['x1'] - 0.3 * self.factors['x2'] + rng.normal(0, 0.2, n)

    def test_multiple_regression(self):
        result = multiple_regression_analysis(self.y, self.factors)
        self.assertAlmostEqual(result.data['coefficients']['x1'], 0.8, delta=0.05)
        self.assertAlmostEqual(result.data['coefficients']['x2'], -0.3, delta=0.05)
        self.assertEqual(result.data['significant_regressors'], ['x1', 'x2'])
        self.assertLess(max(result.data['vif'].values()), 2)
        self.assertGreater(result.data['r_squared'], 0.9)

    def test_regression_on_asset_columns(self):
        result = multiple_regression_analysis(asset_returns=make_asset_returns(), dependent='BBB')
        self.assertEqual(result.data['dependent'], 'BBB')
        self.assertIn('AAA', result.data['coefficients'])

    def test_anova(self):
        result = variance_anova_analysis(groups={'a': [1.0, 1.1, 0.9, 1.05], 'b': [2.0, 2.1, 1.9, 2.05],
                                                 'c': [3.0, 3.1, 2.9, 3.05]})
        self.assertTrue(result.data['means_differ'])
        self.assertGreater(result.data['eta_squared'], 0.9)

    def test_anova_needs_two_groups(self):
        with self.assertRaises(InsufficientDataError):
            variance_anova_analysis(groups={'a': [1.0, 2.0, 3.0]})

    def test_pca_and_factor_analysis(self):
        pca = pca_statistical_analysis(make_asset_returns())
        self.assertAlmostEqual(sum(pca.data['explained_variance_ratio']), 100.0, delta=0.1)
        self.assertLessEqual(pca.data['components_for_target'], 3)

        factors = factor_analysis(make_asset_returns(), n_factors=5)
        self.assertEqual(factors.data['n_factors'], 2)
        self.assertEqual(set(factors.data['communalities']), {'AAA', 'BBB', 'CCC'})


class TestMultivariateSeries(unittest.TestCase):
    def test_cointegration_found(self):
        result = cointegration_analysis(levels=cointegrated_levels())
        self.assertEqual(result.data['cointegrated_pairs'], ['x~y'])
        self.assertGreaterEqual(result.data['johansen']['rank'], 1)

    def test_levels_must_be_positive(self):
        levels = cointegrated_levels()
        levels.iloc[5, 0] = -1
        with self.assertRaises(InsufficientDataError):
            cointegration_analysis(levels=levels)

    def test_var_granger_causality(self):
        rng = np.random.default_rng(8)
        lead = rng.normal(0, 0.01, 400)
        lag = np.r_[0.0, 0.6 * lead[:-1]] + rng.normal(0, 0.005, 400)
        result = var_model_analysis(pd.DataFrame({'lead': lead, 'lag': lag}), steps=3)
        self.assertIn('lead->lag', result.data['significant_causality'])
        self.assertEqual(len(result.data['forecast']['lag']), 3)
        self.assertTrue(result.data['stable'])

    @pytest.mark.slow
    def test_vecm(self):
        result = vecm_analysis(levels=cointegrated_levels(), steps=4)
        self.assertGreaterEqual(result.data['cointegration_rank'], 1)
        self.assertEqual(len(result.data['forecast_relative_level']['x']), 4)

    def test_copula(self):
        frame = make_asset_returns()
        result = copula_analysis(asset_returns=frame[['AAA', 'BBB']])
        self.assertGreater(result.data['kendall_tau'], 0.1)
        self.assertIn(result.data['best_copula'], ('gaussian', 'student_t'))


class TestUnivariateModels(unittest.TestCase):
    def setUp(self):
        self.returns, _ = make_returns(n=500)

    def test_time_series_decomposition(self):
        result = advanced_time_series_analysis(prices=make_prices())
        self.assertEqual(len(result.data['decomposition']['seasonal_pattern']), 5)
        self.assertTrue(result.data['returns_stationarity']['is_stationary'])

    @pytest.mark.slow
    def test_arima(self):
        result = arima_analysis(prices=make_prices(), steps=5)
        self.assertEqual(result.data['series'], 'prices')
        self.assertEqual(len(result.data['forecast']), 5)

    @pytest.mark.slow
    def test_garch(self):
        result = garch_analysis(self.returns, horizon=5)
        self.assertIn(result.data['selected_model'], ('garch', 'gjr_garch'))
        self.assertGreater(result.data['next_period_var_pct'], 0)

    def test_garch_needs_history(self):
        with self.assertRaises(InsufficientDataError):
            garch_analysis(self.returns[:50])

    def test_extreme_values(self):
        result = extreme_value_analysis(self.returns)
        self.assertGreater(result.data['evt_var_pct'], 0)
        self.assertGreaterEqual(result.data['gpd']['exceedances'], 10)
        self.assertEqual(result.data['gev']['blocks'], 500 // 21)

    def test_markov_chain(self):
        result = markov_model_analysis(self.returns)
        self.assertEqual(result.data['states'], ['down', 'flat', 'up'])
        for row in result.data['transition_matrix'].values():
            self.assertAlmostEqual(sum(row.values()), 1.0, places=3)
        self.assertAlmostEqual(sum(result.data['stationary_distribution'].values()), 1.0, places=3)

    def test_threshold_model(self):
        result = threshold_model_analysis(self.returns)
        total = result.data['lower_regime']['observations'] + result.data['upper_regime']['observations']
        self.assertEqual(total, len(self.returns) - 1)
        self.assertIn(result.data['current_regime'], ('lower', 'upper'))

    @pytest.mark.slow
    def test_regime_switching(self):
        rng = np.random.default_rng(12)
        returns = pd.Series(np.r_[rng.normal(0.001, 0.005, 250), rng.normal(-0.002, 0.03, 250)])
        result = regime_switching_analysis(returns)
        self.assertEqual(result.data['current_regime'], result.data['turbulent_regime'])
        self.assertEqual(len(result.recommendations), 1)

    def test_chaos_on_noise(self):
        result = chaos_theory_analysis(self.returns, max_points=300)
        self.assertEqual(result.data['points_used'], 300)
        self.assertFalse(result.data['chaotic'])

    def test_fractal(self):
        result = fractal_analysis(self.returns)
        self.assertGreater(result.data['hurst_exponent'], 0)
        self.assertLess(result.data['hurst_exponent'], 1)
        self.assertAlmostEqual(result.data['fractal_dimension'], 2 - result.data['hurst_exponent'], places=3)

    def test_bootstrap_is_seeded(self):
        first = bootstrap_analysis(self.returns, samples=500)
        second = bootstrap_analysis(self.returns, samples=500)
        self.assertEqual(first.data, second.data)
        sharpe = first.data['sharpe_ratio']
        self.assertLessEqual(sharpe['lower'], sharpe['estimate'])
        self.assertLessEqual(sharpe['estimate'], sharpe['upper'])

    def test_block_bootstrap(self):
        result = bootstrap_analysis(self.returns, samples=200, block_size=10)
        self.assertEqual(result.data['block_size'], 10)

    def test_wavelet(self):
        result = wavelet_analysis(self.returns)
        self.assertGreater(result.data['noise_share_pct'], 0)
        self.assertLessEqual(result.data['noise_share_pct'], 100)
        self.assertEqual(len(result.data['denoised_tail']), 20)

    def test_wavelet_accepts_read_only_input(self):
        values = self.returns.to_numpy(dtype=float, copy=True)
        values.flags.writeable = False
        decomposition = wavelet_decompose(values, 'db4', level=3)
        self.assertEqual(decomposition['level'], 3)
        self.assertEqual(len(denoise_series(values)['denoised']), len(values))


if __name__ == '__main__':
    unittest.main()
